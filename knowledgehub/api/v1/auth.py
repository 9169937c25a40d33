"""Registration, JWT login/logout, profile, and the auth dependencies used by every router."""

import logging
from typing import Annotated

import jwt
from fastapi import APIRouter, Depends, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from knowledgehub.core.database import get_db
from knowledgehub.core.errors import AuthenticationFailed, PermissionDenied
from knowledgehub.core.security import decode_access_token
from knowledgehub.models.user import User
from knowledgehub.schemas.auth import (
    AuthData,
    CurrentUser,
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    UserData,
    UserProfile,
)
from knowledgehub.schemas.common import Envelope
from knowledgehub.services import users

logger = logging.getLogger(__name__)

router = APIRouter()
security = HTTPBearer(auto_error=False)

Credentials = Annotated[HTTPAuthorizationCredentials | None, Depends(security)]


def _resolve_token(token: str, db: Session) -> tuple[User, str]:
    """Return the active user and session id behind a bearer token, or raise 401."""
    try:
        payload = decode_access_token(token)
    except jwt.ExpiredSignatureError:
        raise AuthenticationFailed("Token expired")
    except jwt.PyJWTError:
        raise AuthenticationFailed("Invalid token")
    token_id = payload.get("jti")
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        raise AuthenticationFailed("Invalid token")
    if not token_id or not users.session_exists(db, token_id):
        raise AuthenticationFailed("Invalid token")
    user = users.get_active_user(db, user_id)
    if user is None:
        raise AuthenticationFailed("Invalid token")
    return user, token_id


def get_current_user(
    credentials: Credentials,
    db: Annotated[Session, Depends(get_db)],
) -> CurrentUser:
    """Dependency: require a valid Bearer JWT with a live session. Raises 401 otherwise."""
    if credentials is None:
        raise AuthenticationFailed("Access token required")
    user, _ = _resolve_token(credentials.credentials, db)
    return CurrentUser.model_validate(user)


def get_optional_user(
    credentials: Credentials,
    db: Annotated[Session, Depends(get_db)],
) -> CurrentUser | None:
    """Dependency: like get_current_user, but an absent or bad token yields None."""
    if credentials is None:
        return None
    try:
        user, _ = _resolve_token(credentials.credentials, db)
    except AuthenticationFailed:
        return None
    return CurrentUser.model_validate(user)


def require_note_creation(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Dependency: admins, or users granted can_create_notes. Raises 403 otherwise."""
    if current_user.role != "admin" and not current_user.can_create_notes:
        raise PermissionDenied(
            "You do not have permission to create notes. Contact an administrator.",
            code="INSUFFICIENT_PERMISSIONS",
        )
    return current_user


def require_admin(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> CurrentUser:
    """Dependency: require authenticated user with role 'admin'. Raises 403 for non-admin."""
    if current_user.role != "admin":
        raise PermissionDenied("Admin access required", code="ADMIN_REQUIRED")
    return current_user


@router.post("/register", response_model=Envelope[AuthData], status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[AuthData]:
    """Create a viewer account and return a token for it."""
    user, issued = users.register_user(db, body)
    return Envelope(
        message="User registered successfully",
        data=AuthData(token=issued.token, user=CurrentUser.model_validate(user)),
    )


@router.post("/login", response_model=Envelope[AuthData])
def login(
    body: LoginRequest,
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[AuthData]:
    """
    Authenticate with email and password; returns a JWT access token.
    Include the token in the Authorization header as: Bearer <token>
    """
    user, issued = users.authenticate(db, body.email, body.password)
    logger.info("User logged in", extra={"user_id": user.id})
    return Envelope(
        message="Login successful",
        data=AuthData(token=issued.token, user=CurrentUser.model_validate(user)),
    )


@router.post("/logout", response_model=Envelope[None])
def logout(
    credentials: Credentials,
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[None]:
    """Revoke the presented token; it is rejected by every later request."""
    if credentials is None:
        raise AuthenticationFailed("Access token required")
    _, token_id = _resolve_token(credentials.credentials, db)
    users.revoke_session(db, token_id)
    return Envelope(message="Logout successful")


@router.get("/profile", response_model=Envelope[UserData])
def get_profile(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[UserData]:
    user = users.get_active_user(db, current_user.id)
    if user is None:
        raise AuthenticationFailed("Invalid token")
    return Envelope(data=UserData(user=UserProfile.model_validate(user)))


@router.put("/profile", response_model=Envelope[UserData])
def update_profile(
    body: ProfileUpdateRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[UserData]:
    user = users.update_profile(db, current_user.id, body.name)
    return Envelope(
        message="Profile updated successfully",
        data=UserData(user=UserProfile.model_validate(user)),
    )


@router.get("/verify", response_model=Envelope[dict[str, CurrentUser]])
def verify(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
) -> Envelope[dict[str, CurrentUser]]:
    """Cheap token check for clients; echoes the principal."""
    return Envelope(message="Token is valid", data={"user": current_user})
