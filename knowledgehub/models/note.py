"""ORM models for notes and per-user custom categories."""

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    false,
    func,
    true,
)

from knowledgehub.models.base import Base, TagList, utcnow

PREDEFINED_CATEGORIES = ("ideas", "projects", "learning", "resources")


class Note(Base):
    """
    A knowledge entry owned by one user.

    source_* columns are set only for notes created by RSS import
    (source_type 'rss') or quick capture (source_type 'quick-capture').
    """

    __tablename__ = "notes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    content = Column(Text, nullable=False)
    category = Column(String(50), nullable=False, index=True)
    tags = Column(TagList, nullable=False, default=list)
    source_url = Column(String(2048), nullable=True, index=True)
    source_type = Column(String(32), nullable=True)
    source_title = Column(String(255), nullable=True)
    is_archived = Column(Boolean, nullable=False, default=False, server_default=false())
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())


class UserCategory(Base):
    """Custom category defined by a user in addition to the predefined ones."""

    __tablename__ = "user_categories"
    __table_args__ = (UniqueConstraint("user_id", "name", name="uq_user_categories_user_id_name"),)

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    display_name = Column(String(100), nullable=False)
    description = Column(String(255), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
