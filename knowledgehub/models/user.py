"""ORM models for application users (auth and RBAC) and their issued sessions."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, false, func, true

from knowledgehub.models.base import Base, utcnow

ROLES = ("admin", "editor", "viewer")


class User(Base):
    """
    User account for JWT authentication and role-based access control.

    role: 'admin', 'editor' or 'viewer'. Viewers may create notes only when
    can_create_notes is set; admins always may.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(100), nullable=False)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False, default="viewer", server_default="viewer")
    can_create_notes = Column(Boolean, nullable=False, default=False, server_default=false())
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())


class UserSession(Base):
    """One row per issued access token; deleting the row revokes the token."""

    __tablename__ = "user_sessions"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    token_id = Column(String(64), nullable=False, unique=True, index=True)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
