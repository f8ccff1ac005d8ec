"""Tests for application configuration."""

import logging

from app.config import DEFAULT_AUTH_SECRET, Settings, settings


class TestSettings:
    """Tests for the Settings class and module-level settings instance."""

    def _defaults(self, monkeypatch):
        for name in ("AUTH_SECRET", "ENVIRONMENT", "DATABASE_URL", "ROUTER_MONITOR_URL"):
            monkeypatch.delenv(name, raising=False)
        return Settings(_env_file=None)

    def test_default_database_url(self, monkeypatch):
        """Default DATABASE_URL should be a local SQLite file."""
        assert self._defaults(monkeypatch).DATABASE_URL == "sqlite:///./noc_dashboard.db"

    def test_default_app_name(self, monkeypatch):
        """Default APP_NAME should be the service name."""
        assert self._defaults(monkeypatch).APP_NAME == "NOC Dashboard Service"

    def test_default_token_lifetime_is_one_day(self, monkeypatch):
        """Tokens and cookies should both live 24 hours by default."""
        defaults = self._defaults(monkeypatch)
        assert defaults.AUTH_TOKEN_TTL_MS == 86_400_000
        assert defaults.AUTH_COOKIE_MAX_AGE == 86_400

    def test_default_cookie_name(self, monkeypatch):
        assert self._defaults(monkeypatch).AUTH_COOKIE_NAME == "auth-token"

    def test_default_monitor_settings(self, monkeypatch):
        """Monitor should reconnect every 5 seconds and keep 60 points."""
        defaults = self._defaults(monkeypatch)
        assert defaults.ROUTER_MONITOR_URL == "wss://isolir.gmdp.net.id/ws/"
        assert defaults.ROUTER_MONITOR_RECONNECT_DELAY == 5.0
        assert defaults.ROUTER_HISTORY_LIMIT == 60

    def test_default_secret_is_flagged(self, monkeypatch):
        """Falling back to the development secret should be detectable."""
        defaults = self._defaults(monkeypatch)
        assert defaults.AUTH_SECRET == DEFAULT_AUTH_SECRET
        assert defaults.uses_default_secret is True

    def test_secret_from_environment(self, monkeypatch):
        monkeypatch.setenv("AUTH_SECRET", "from-env")
        configured = Settings(_env_file=None)
        assert configured.AUTH_SECRET == "from-env"
        assert configured.uses_default_secret is False

    def test_blank_secret_falls_back_to_default(self, monkeypatch):
        """An empty AUTH_SECRET counts as unset rather than breaking startup."""
        monkeypatch.setenv("AUTH_SECRET", "")
        configured = Settings(_env_file=None)
        assert configured.AUTH_SECRET == DEFAULT_AUTH_SECRET
        assert configured.uses_default_secret is True
        assert Settings(AUTH_SECRET="   ", _env_file=None).uses_default_secret is True

    def test_secure_cookies_only_in_production(self):
        """The Secure cookie flag should follow ENVIRONMENT."""
        assert Settings(ENVIRONMENT="development", _env_file=None).secure_cookies is False
        assert Settings(ENVIRONMENT="production", _env_file=None).secure_cookies is True
        assert Settings(ENVIRONMENT="Production", _env_file=None).secure_cookies is True

    def test_settings_is_instance_of_settings_class(self):
        """Module-level settings should be an instance of Settings."""
        assert isinstance(settings, Settings)


class TestDefaultSecretWarning:
    """Building the app with the development secret should be logged."""

    def test_warns_on_default_secret(self, caplog):
        from app.main import create_app

        with caplog.at_level(logging.WARNING, logger="app.main"):
            create_app(
                Settings(
                    AUTH_SECRET=DEFAULT_AUTH_SECRET,
                    ROUTER_MONITOR_ENABLED=False,
                    _env_file=None,
                )
            )
        assert "AUTH_SECRET" in caplog.text

    def test_silent_with_configured_secret(self, caplog):
        from app.main import create_app

        with caplog.at_level(logging.WARNING, logger="app.main"):
            create_app(Settings(AUTH_SECRET="configured", ROUTER_MONITOR_ENABLED=False, _env_file=None))
        assert "AUTH_SECRET" not in caplog.text

    def test_blank_secret_builds_app_with_warning(self, caplog, monkeypatch):
        from app.main import create_app

        monkeypatch.setenv("AUTH_SECRET", "")
        with caplog.at_level(logging.WARNING, logger="app.main"):
            built = create_app(Settings(ROUTER_MONITOR_ENABLED=False, _env_file=None))
        assert built.state.token_service.verify(built.state.token_service.issue(1, "a"))
        assert "AUTH_SECRET" in caplog.text
