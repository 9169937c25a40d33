"""Core app configuration, database, security and errors."""

from knowledgehub.core.config import get_settings, settings
from knowledgehub.core.database import get_db

__all__ = ["get_settings", "settings", "get_db"]
