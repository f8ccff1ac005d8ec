"""SQLAlchemy ORM models for the NOC Dashboard Service."""

from sqlalchemy import Column, Integer, String

from app.database import Base


class AdminUser(Base):
    """An operator account allowed to sign in to the dashboard.

    Attributes:
        id: Auto-incremented primary key, used as the token subject id.
        username: Unique login name.
        password: Stored credential. Legacy rows hold plain text, an MD5 or
                  SHA-256 hex digest; accounts created by the CLI hold a
                  bcrypt hash. NULL or empty disables the account.
    """

    __tablename__ = "admin_users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    username = Column(String(255), nullable=False, unique=True, index=True)
    password = Column(String(255), nullable=True)

    def __repr__(self):
        return f"<AdminUser(id={self.id!r}, username={self.username!r})>"
