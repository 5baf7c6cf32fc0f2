# src/modgate/scripts/init_db.py
"""Create tables and optionally register a user for local development.

Usage:
  python -m modgate.scripts.init_db
  python -m modgate.scripts.init_db --user-id u-1 --username alice --moderator --token
"""

from __future__ import annotations

import argparse
import logging
import sys

from modgate.core.security import create_access_token
from modgate.db.session import SessionLocal, create_tables
from modgate.models import User
from modgate.models.user import ROLE_MEMBER, ROLE_MODERATOR

logger = logging.getLogger(__name__)


def ensure_user(user_id: str, username: str, moderator: bool = False) -> User:
    """Insert the user, or update the role of an existing one."""
    role = ROLE_MODERATOR if moderator else ROLE_MEMBER
    db = SessionLocal()
    try:
        user = db.get(User, user_id)
        if user is None:
            user = User(user_id=user_id, username=username, role=role)
            db.add(user)
            logger.info("Created user %s (%s)", user_id, role)
        else:
            user.role = role
            logger.info("Updated role of %s to %s", user_id, role)
        db.commit()
        db.refresh(user)
        return user
    finally:
        db.close()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Initialise the modgate database.")
    parser.add_argument("--user-id", help="Register a user with this id")
    parser.add_argument("--username", help="Username for --user-id (defaults to the id)")
    parser.add_argument("--moderator", action="store_true", help="Grant the moderator role")
    parser.add_argument("--token", action="store_true", help="Print a bearer token for the user")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO)
    create_tables()
    logger.info("Database tables are in place")

    if args.user_id:
        user = ensure_user(args.user_id, args.username or args.user_id, args.moderator)
        if args.token:
            print(create_access_token(user.user_id))
    elif args.token:
        parser.error("--token requires --user-id")
    return 0


if __name__ == "__main__":
    sys.exit(main())
