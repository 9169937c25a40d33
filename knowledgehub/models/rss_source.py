"""ORM model for RSS feeds a user imports notes from."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, func, true

from knowledgehub.models.base import Base, utcnow


class RssSource(Base):
    __tablename__ = "rss_sources"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    url = Column(String(2048), nullable=False)
    category = Column(String(50), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())
    last_fetched = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
