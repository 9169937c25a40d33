"""SQLAlchemy ORM models."""

from knowledgehub.models.base import Base
from knowledgehub.models.note import PREDEFINED_CATEGORIES, Note, UserCategory
from knowledgehub.models.rss_source import RssSource
from knowledgehub.models.user import ROLES, User, UserSession
from knowledgehub.models.workflow import (
    ATTACHMENT_TYPES,
    STEP_STATUSES,
    WORKFLOW_PRIORITIES,
    WORKFLOW_STATUSES,
    Workflow,
    WorkflowAttachment,
    WorkflowStep,
)

__all__ = [
    "ATTACHMENT_TYPES",
    "Base",
    "Note",
    "PREDEFINED_CATEGORIES",
    "ROLES",
    "RssSource",
    "STEP_STATUSES",
    "User",
    "UserCategory",
    "UserSession",
    "WORKFLOW_PRIORITIES",
    "WORKFLOW_STATUSES",
    "Workflow",
    "WorkflowAttachment",
    "WorkflowStep",
]
