"""
Add a handful of sample notes for a user. Run from project root:
  python -m knowledgehub.scripts.seed_notes [EMAIL]
Without EMAIL the first admin account is used.
"""
import argparse
import sys

from knowledgehub.core.database import SessionLocal
from knowledgehub.models import Note, User
from knowledgehub.services.tags import normalize_tags

SAMPLE_NOTES = [
    {
        "title": "Welcome to KnowledgeHub",
        "content": (
            "This is your personal knowledge management system. Organize thoughts, ideas, "
            "projects and learning resources in one place."
        ),
        "category": "ideas",
        "tags": ["welcome", "getting-started", "demo"],
    },
    {
        "title": "Python Best Practices",
        "content": (
            "Prefer context managers for resources. Keep functions small. Use type hints at "
            "module boundaries and let exceptions propagate to one handler."
        ),
        "category": "learning",
        "tags": ["python", "programming", "best-practices", "tips"],
    },
    {
        "title": "KnowledgeHub Architecture",
        "content": (
            "FastAPI serves the REST API, SQLAlchemy maps SQLite or Postgres tables, and "
            "authentication uses JWT bearer tokens with role-based access control."
        ),
        "category": "projects",
        "tags": ["architecture", "fastapi", "sqlalchemy", "jwt", "rbac"],
    },
    {
        "title": "Useful Development Resources",
        "content": (
            "Python documentation, the FastAPI tutorial, SQLAlchemy ORM docs and jwt.io "
            "for token debugging."
        ),
        "category": "resources",
        "tags": ["development", "documentation", "tools", "reference"],
    },
    {
        "title": "Role-Based Access Control",
        "content": (
            "Three roles: admin (full access), editor and viewer. Non-admins need the "
            "can_create_notes capability to write notes."
        ),
        "category": "learning",
        "tags": ["rbac", "security", "permissions", "roles"],
    },
]


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed sample notes for a KnowledgeHub user.")
    parser.add_argument("email", nargs="?", help="Owner of the notes (default: first admin)")
    args = parser.parse_args()

    db = SessionLocal()
    try:
        q = db.query(User)
        if args.email:
            q = q.filter(User.email == args.email.strip().lower())
        else:
            q = q.filter(User.role == "admin").order_by(User.id)
        user = q.first()
        if user is None:
            print("No matching user found.", file=sys.stderr)
            return 1
        for sample in SAMPLE_NOTES:
            db.add(Note(user_id=user.id, **{**sample, "tags": normalize_tags(sample["tags"])}))
        db.commit()
        total = db.query(Note).filter(Note.user_id == user.id).count()
        print(f"Added {len(SAMPLE_NOTES)} notes for '{user.email}' ({total} in total).")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
