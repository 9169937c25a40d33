"""Shared test helpers: in-memory SQLite database, users, tokens and an API test case."""

import unittest
from functools import lru_cache

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from knowledgehub.api.rate_limit import limiter
from knowledgehub.core.database import get_db, init_db
from knowledgehub.core.security import hash_password
from knowledgehub.main import app
from knowledgehub.models import Note, User
from knowledgehub.services.users import issue_session

PASSWORD = "secret123"


def create_test_engine():
    """One shared connection, so every session sees the same in-memory database."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    return engine


@lru_cache
def password_hash() -> str:
    return hash_password(PASSWORD)


def make_user(
    db: Session,
    email: str,
    role: str = "viewer",
    can_create_notes: bool = False,
    name: str = "Test User",
    is_active: bool = True,
) -> User:
    user = User(
        email=email,
        name=name,
        password_hash=password_hash(),
        role=role,
        can_create_notes=can_create_notes,
        is_active=is_active,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_note(db: Session, user: User, **fields) -> Note:
    values = {"title": "Note", "content": "Body", "category": "ideas", "tags": []}
    values.update(fields)
    note = Note(user_id=user.id, **values)
    db.add(note)
    db.commit()
    db.refresh(note)
    return note


def auth_headers(db: Session, user: User) -> dict[str, str]:
    issued = issue_session(db, user)
    db.commit()
    return {"Authorization": f"Bearer {issued.token}"}


class ApiTestCase(unittest.TestCase):
    """Runs the app against a fresh in-memory database per test."""

    def setUp(self) -> None:
        self.engine = create_test_engine()
        self.Session = sessionmaker(bind=self.engine, autocommit=False, autoflush=False)

        def override_get_db():
            db = self.Session()
            try:
                yield db
            finally:
                db.close()

        app.dependency_overrides[get_db] = override_get_db
        limiter.reset()
        self.client = TestClient(app)
        self.db = self.Session()

    def tearDown(self) -> None:
        self.db.close()
        app.dependency_overrides.clear()
        self.engine.dispose()

    def editor(self, email: str = "editor@example.com") -> tuple[User, dict[str, str]]:
        user = make_user(self.db, email, role="editor", can_create_notes=True)
        return user, auth_headers(self.db, user)

    def viewer(self, email: str = "viewer@example.com") -> tuple[User, dict[str, str]]:
        user = make_user(self.db, email)
        return user, auth_headers(self.db, user)

    def admin(self, email: str = "admin@example.com") -> tuple[User, dict[str, str]]:
        user = make_user(self.db, email, role="admin", can_create_notes=True)
        return user, auth_headers(self.db, user)
