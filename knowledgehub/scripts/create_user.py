"""
Create a user (e.g. the first admin). Run from project root:
  python -m knowledgehub.scripts.create_user EMAIL NAME PASSWORD [role] [--can-create-notes]
Example:
  python -m knowledgehub.scripts.create_user admin@example.com "Site Admin" your-secure-password admin
"""
import argparse
import sys

from knowledgehub.core.database import SessionLocal
from knowledgehub.core.security import (
    NAME_MAX_LEN,
    NAME_MIN_LEN,
    PASSWORD_MAX_LEN,
    PASSWORD_MIN_LEN,
    hash_password,
)
from knowledgehub.models.user import ROLES, User


def main() -> int:
    parser = argparse.ArgumentParser(description="Create a KnowledgeHub user.")
    parser.add_argument("email", help="Login email (stored lower-case)")
    parser.add_argument("name", help=f"Display name ({NAME_MIN_LEN}-{NAME_MAX_LEN} chars)")
    parser.add_argument("password", help=f"Password ({PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} chars)")
    parser.add_argument("role", nargs="?", default="viewer", choices=list(ROLES))
    parser.add_argument(
        "--can-create-notes",
        action="store_true",
        help="Grant note creation to a non-admin user",
    )
    args = parser.parse_args()

    email = args.email.strip().lower()
    name = args.name.strip()
    if "@" not in email:
        print("Invalid email address.", file=sys.stderr)
        return 1
    if not (NAME_MIN_LEN <= len(name) <= NAME_MAX_LEN):
        print(f"Name must be {NAME_MIN_LEN}-{NAME_MAX_LEN} characters.", file=sys.stderr)
        return 1
    if not (PASSWORD_MIN_LEN <= len(args.password) <= PASSWORD_MAX_LEN):
        print(
            f"Password must be {PASSWORD_MIN_LEN}-{PASSWORD_MAX_LEN} characters.",
            file=sys.stderr,
        )
        return 1

    db = SessionLocal()
    try:
        existing = db.query(User).filter(User.email == email).first()
        if existing:
            print(f"User '{email}' already exists.", file=sys.stderr)
            return 1
        user = User(
            email=email,
            name=name,
            password_hash=hash_password(args.password),
            role=args.role,
            can_create_notes=args.role == "admin" or args.can_create_notes,
        )
        db.add(user)
        db.commit()
        print(f"Created user '{email}' with role '{args.role}'.")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
