"""CLI script to create an admin account or reset its password.

Usage:
    python scripts/create_admin.py --username admin --password secret [--database-url sqlite:///./noc_dashboard.db]

Creates the necessary tables if they don't exist, then stores the password
as a bcrypt hash. An existing account with the same username gets its
password replaced.
"""

import argparse
import logging
import sys
from pathlib import Path

# Ensure project root is in the Python path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from app.database import build_engine, init_db
from app.models import AdminUser
from app.services.credentials import hash_password

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def main(args=None):
    """Main entry point for the admin account CLI script.

    Args:
        args: Command-line arguments (defaults to sys.argv if None).

    Returns:
        Exit code (0 for success, 1 for failure).
    """
    parser = argparse.ArgumentParser(
        description="Create a dashboard admin account or reset its password"
    )
    parser.add_argument(
        "--username",
        type=str,
        required=True,
        help="Admin username",
    )
    parser.add_argument(
        "--password",
        type=str,
        required=True,
        help="Admin password (stored as a bcrypt hash)",
    )
    parser.add_argument(
        "--database-url",
        type=str,
        default=None,
        help="Database URL (default: uses DATABASE_URL env var or sqlite:///./noc_dashboard.db)",
    )

    parsed_args = parser.parse_args(args)

    username = parsed_args.username.strip()
    if not username:
        logger.error("Username must not be blank")
        return 1
    if not parsed_args.password:
        logger.error("Password must not be blank")
        return 1

    try:
        password_hash = hash_password(parsed_args.password)
    except ValueError as e:
        logger.error("Cannot store password: %s", e)
        return 1

    # Set up database connection
    if parsed_args.database_url:
        database_url = parsed_args.database_url
    else:
        from app.config import settings
        database_url = settings.DATABASE_URL

    try:
        db_engine = build_engine(database_url)
        init_db(db_engine)
    except SQLAlchemyError as e:
        logger.error("Could not open database: %s", e)
        return 1

    Session = sessionmaker(bind=db_engine)
    session = Session()

    try:
        user = session.execute(
            select(AdminUser).where(AdminUser.username == username)
        ).scalar_one_or_none()
        if user is None:
            user = AdminUser(username=username)
            session.add(user)
            action = "Created"
        else:
            action = "Updated password of"

        user.password = password_hash
        session.commit()
        logger.info("%s admin %r (id=%d)", action, username, user.id)
        return 0

    except SQLAlchemyError as e:
        session.rollback()
        logger.error("Database error: %s", e)
        return 1
    finally:
        session.close()


if __name__ == "__main__":
    sys.exit(main())
