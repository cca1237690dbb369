"""
Create a user, or reset the password and role of an existing one.

    python scripts/create_user.py --username "Brandon Dennis" --password 123456 --role student
"""
import argparse
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from app_logging import logger  # noqa: E402
from database import SessionLocal, init_db  # noqa: E402
from models import User, UserRole  # noqa: E402
from routers.auth import get_password_hash  # noqa: E402


def upsert_user(db, username: str, password: str, role: UserRole) -> User:
    user = db.query(User).filter(User.username == username).first()
    if user is None:
        user = User(username=username)
        db.add(user)
    user.password_hash = get_password_hash(password)
    user.role = role.value
    db.commit()
    db.refresh(user)
    return user


def main() -> None:
    parser = argparse.ArgumentParser(description="Create or update a user")
    parser.add_argument("--username", required=True)
    parser.add_argument("--password", required=True)
    parser.add_argument(
        "--role",
        choices=[role.value for role in UserRole],
        default=UserRole.STUDENT.value,
    )
    args = parser.parse_args()

    init_db()
    db = SessionLocal()
    try:
        user = upsert_user(db, args.username, args.password, UserRole(args.role))
        logger.info(f"Created/updated user: {user.username} (role: {user.role})")
    finally:
        db.close()


if __name__ == "__main__":
    main()
