"""
Create a verified user (e.g. the first admin), seeding the built-in roles if needed.
Run from project root:
  python -m app.scripts.create_user USERNAME EMAIL PASSWORD [role]
Example:
  python -m app.scripts.create_user admin admin@example.com your-secure-password admin
"""
import argparse
import logging
import re
import sys

from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.core.database import session_scope
from app.core.security import (
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    USERNAME_MAX_LEN,
    USERNAME_MIN_LEN,
    hash_password,
)
from app.models import Role, User
from app.schemas.auth import EMAIL_PATTERN
from app.services.permissions import ROLE_NAMES, seed_default_roles

logger = logging.getLogger(__name__)


def create_user(
    db: Session,
    username: str,
    email: str,
    password: str,
    role_name: str,
    first_name: str | None = None,
    last_name: str = "",
) -> User:
    """Insert a verified user with `role_name`. Raises ValueError on bad input or duplicates."""
    username = username.strip().lower()
    email = email.strip().lower()
    if not (USERNAME_MIN_LEN <= len(username) <= USERNAME_MAX_LEN):
        raise ValueError(f"Username must be {USERNAME_MIN_LEN}-{USERNAME_MAX_LEN} characters.")
    if not re.match(EMAIL_PATTERN, email):
        raise ValueError("Invalid email address.")
    if not (PASSWORD_MIN_LEN <= len(password) <= PASSWORD_MAX_LEN):
        raise ValueError(f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.")

    seed_default_roles(db)
    role = db.query(Role).filter(Role.name == role_name).first()
    if role is None:
        raise ValueError(f"Role '{role_name}' does not exist.")
    existing = db.query(User.id).filter(or_(User.username == username, User.email == email)).first()
    if existing is not None:
        raise ValueError(f"User '{username}' or '{email}' already exists.")

    user = User(
        first_name=first_name or username,
        last_name=last_name,
        username=username,
        email=email,
        password_hash=hash_password(password),
        role_id=role.id,
        is_verified=True,
    )
    db.add(user)
    db.flush()
    return user


def main() -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
    )
    parser = argparse.ArgumentParser(description="Create a verified TaskHub user.")
    parser.add_argument("username", help=f"Username ({USERNAME_MIN_LEN}-{USERNAME_MAX_LEN} chars)")
    parser.add_argument("email", help="Email address")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument("role", nargs="?", default="user", choices=list(ROLE_NAMES))
    parser.add_argument("--first-name", default=None, help="Defaults to the username")
    parser.add_argument("--last-name", default="")
    args = parser.parse_args()

    try:
        with session_scope() as db:
            user = create_user(
                db,
                args.username,
                args.email,
                args.password,
                args.role,
                first_name=args.first_name,
                last_name=args.last_name,
            )
            username = user.username
    except ValueError as e:
        print(str(e), file=sys.stderr)
        return 1
    logger.info("Created user '%s' with role '%s'.", username, args.role)
    return 0


if __name__ == "__main__":
    sys.exit(main())
