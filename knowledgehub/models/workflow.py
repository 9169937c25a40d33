"""ORM models for workflows, their ordered steps and attachments."""

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import relationship

from knowledgehub.models.base import Base, TagList, utcnow

WORKFLOW_STATUSES = ("draft", "active", "completed", "archived")
WORKFLOW_PRIORITIES = ("low", "medium", "high", "urgent")
STEP_STATUSES = ("pending", "in_progress", "completed", "skipped")
ATTACHMENT_TYPES = ("note", "url", "file")


class Workflow(Base):
    """
    A user's multi-step plan.

    Steps and attachments are removed by the database (ON DELETE CASCADE) when
    the workflow row is deleted; the relationships are passive for deletes.
    """

    __tablename__ = "workflows"

    id = Column(Integer, primary_key=True, autoincrement=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(50), nullable=False, default="general", server_default="general")
    priority = Column(String(16), nullable=False, default="medium", server_default="medium", index=True)
    status = Column(String(16), nullable=False, default="active", server_default="active", index=True)
    tags = Column(TagList, nullable=False, default=list)
    due_date = Column(Date, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    steps = relationship(
        "WorkflowStep",
        order_by="WorkflowStep.step_order",
        passive_deletes=True,
        lazy="selectin",
    )
    attachments = relationship(
        "WorkflowAttachment",
        order_by="WorkflowAttachment.id",
        passive_deletes=True,
        lazy="selectin",
    )


class WorkflowStep(Base):
    __tablename__ = "workflow_steps"

    id = Column(Integer, primary_key=True, autoincrement=True)
    workflow_id = Column(Integer, ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    step_order = Column(Integer, nullable=False, default=0, server_default="0")
    status = Column(String(16), nullable=False, default="pending", server_default="pending")
    due_date = Column(Date, nullable=True)
    assignee = Column(String(255), nullable=True)
    notes = Column(Text, nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())


class WorkflowAttachment(Base):
    """A note, URL or file linked to a workflow. attachment_id references a note id for type 'note'."""

    __tablename__ = "workflow_attachments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    workflow_id = Column(Integer, ForeignKey("workflows.id", ondelete="CASCADE"), nullable=False, index=True)
    attachment_type = Column(String(16), nullable=False)
    attachment_id = Column(Integer, nullable=True)
    url = Column(String(2048), nullable=True)
    title = Column(String(500), nullable=True)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, server_default=func.now())
