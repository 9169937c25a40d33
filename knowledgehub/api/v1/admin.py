"""Admin-only user management: list accounts, grant roles and note-creation rights."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from knowledgehub.api.v1.auth import require_admin
from knowledgehub.core.database import get_db
from knowledgehub.schemas.auth import (
    CurrentUser,
    PermissionsUpdateRequest,
    UserData,
    UserProfile,
    UsersData,
)
from knowledgehub.schemas.common import Envelope
from knowledgehub.services import users

router = APIRouter()


@router.get("/users", response_model=Envelope[UsersData])
def list_users(
    _admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[UsersData]:
    """List active users, newest first (admin only)."""
    rows = users.list_active_users(db)
    return Envelope(data=UsersData(users=[UserProfile.model_validate(u) for u in rows]))


@router.put("/users/{user_id}/permissions", response_model=Envelope[UserData])
def update_user_permissions(
    user_id: int,
    body: PermissionsUpdateRequest,
    admin: Annotated[CurrentUser, Depends(require_admin)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[UserData]:
    """Change a user's role and/or can_create_notes flag; only supplied fields are written."""
    user = users.update_permissions(db, user_id, body, acting_admin_id=admin.id)
    return Envelope(
        message="User permissions updated successfully",
        data=UserData(user=UserProfile.model_validate(user)),
    )
