"""
Create all tables for a fresh database (development and SQLite). Run from project root:
  python -m knowledgehub.scripts.init_db
Postgres deployments should run `alembic upgrade head` instead.
"""
import sys

from sqlalchemy.exc import SQLAlchemyError

from knowledgehub.core.config import settings
from knowledgehub.core.database import REQUIRED_TABLES, SessionLocal, find_missing_tables, init_db


def main() -> int:
    try:
        init_db()
    except SQLAlchemyError as e:
        print(f"Could not create tables: {e}", file=sys.stderr)
        return 1

    db = SessionLocal()
    try:
        missing = find_missing_tables(db, REQUIRED_TABLES)
    finally:
        db.close()
    if missing:
        print(f"Tables still missing: {', '.join(missing)}", file=sys.stderr)
        return 1
    print(f"Database ready at {settings.database_url.split('@')[-1]}.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
