"""Accounts, login sessions and admin permission changes."""

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from knowledgehub.core.errors import AuthenticationFailed, Conflict, NotFound, ValidationFailed
from knowledgehub.core.security import (
    IssuedToken,
    create_access_token,
    hash_password,
    verify_password,
)
from knowledgehub.models import User, UserSession
from knowledgehub.models.base import utcnow
from knowledgehub.schemas.auth import PermissionsUpdateRequest, RegisterRequest

logger = logging.getLogger(__name__)


def issue_session(db: Session, user: User) -> IssuedToken:
    """Sign a token for `user` and record its session row. Caller commits."""
    issued = create_access_token(sub=user.id)
    db.add(UserSession(user_id=user.id, token_id=issued.token_id, expires_at=issued.expires_at))
    return issued


def register_user(db: Session, body: RegisterRequest) -> tuple[User, IssuedToken]:
    """Create a viewer account without note-creation rights and log it in."""
    if db.query(User.id).filter(User.email == body.email).first() is not None:
        raise Conflict("User with this email already exists")
    user = User(
        name=body.name,
        email=body.email,
        password_hash=hash_password(body.password),
        role="viewer",
        can_create_notes=False,
    )
    db.add(user)
    try:
        db.flush()
    except IntegrityError as e:
        db.rollback()
        raise Conflict("User with this email already exists") from e
    issued = issue_session(db, user)
    db.commit()
    db.refresh(user)
    logger.info("User registered", extra={"user_id": user.id})
    return user, issued


def authenticate(db: Session, email: str, password: str) -> tuple[User, IssuedToken]:
    """Check credentials of an active account and start a session."""
    user = db.query(User).filter(User.email == email, User.is_active.is_(True)).first()
    if user is None or not verify_password(password, user.password_hash):
        raise AuthenticationFailed("Invalid credentials")
    issued = issue_session(db, user)
    db.commit()
    return user, issued


def revoke_session(db: Session, token_id: str) -> bool:
    deleted = db.query(UserSession).filter(UserSession.token_id == token_id).delete(
        synchronize_session=False
    )
    db.commit()
    return deleted > 0


def session_exists(db: Session, token_id: str) -> bool:
    return db.query(UserSession.id).filter(UserSession.token_id == token_id).first() is not None


def get_active_user(db: Session, user_id: int) -> User | None:
    return db.query(User).filter(User.id == user_id, User.is_active.is_(True)).first()


def update_profile(db: Session, user_id: int, name: str) -> User:
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    user.name = name
    user.updated_at = utcnow()
    db.commit()
    db.refresh(user)
    return user


def list_active_users(db: Session) -> list[User]:
    return (
        db.query(User)
        .filter(User.is_active.is_(True))
        .order_by(User.created_at.desc(), User.id.desc())
        .all()
    )


def update_permissions(
    db: Session, user_id: int, body: PermissionsUpdateRequest, acting_admin_id: int
) -> User:
    """Apply only the supplied permission fields to the target user."""
    changes = body.model_dump(exclude_unset=True, exclude_none=True)
    if not changes:
        raise ValidationFailed("Empty update: provide can_create_notes and/or role")
    user = db.get(User, user_id)
    if user is None:
        raise NotFound("User not found")
    if changes.get("role", user.role) == "admin":
        changes["can_create_notes"] = True
    changes["updated_at"] = utcnow()
    db.query(User).filter(User.id == user_id).update(changes, synchronize_session="fetch")
    db.commit()
    db.refresh(user)
    logger.info(
        "User permissions updated",
        extra={
            "target_user_id": user_id,
            "admin_user_id": acting_admin_id,
            "fields": sorted(k for k in changes if k != "updated_at"),
        },
    )
    return user
