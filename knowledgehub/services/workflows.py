"""Workflow reads and mutations, including steps, attachments and statistics."""

import logging
from datetime import date

from sqlalchemy import case, func
from sqlalchemy.orm import Session

from knowledgehub.core.errors import NotFound, ValidationFailed
from knowledgehub.models import Note, Workflow, WorkflowAttachment, WorkflowStep
from knowledgehub.models.base import utcnow
from knowledgehub.schemas.workflow import (
    AttachmentCreate,
    StepCreate,
    WorkflowCreate,
    WorkflowsQuery,
    WorkflowStats,
    WorkflowStepCreate,
    WorkflowStepUpdate,
    WorkflowUpdate,
)
from knowledgehub.services.listing import WORKFLOWS, Page, build_filters, run_listing

logger = logging.getLogger(__name__)


def list_workflows(db: Session, query: WorkflowsQuery, scope_user_id: int | None) -> Page:
    """Page of workflows; scope_user_id=None lists workflows of every user."""
    filters = build_filters(
        status=query.status,
        priority=query.priority,
        category=query.category,
        tags=query.tags,
        search=query.search,
    )
    return run_listing(
        db,
        WORKFLOWS,
        filters,
        scope_user_id=scope_user_id,
        sort=query.sort,
        order=query.order,
        limit=query.limit,
        offset=query.offset,
    )


def get_workflow(db: Session, user_id: int | None, workflow_id: int) -> Workflow:
    """Owned workflow, or any workflow when user_id is None (public read)."""
    q = db.query(Workflow).filter(Workflow.id == workflow_id)
    if user_id is not None:
        q = q.filter(Workflow.user_id == user_id)
    workflow = q.first()
    if workflow is None:
        raise NotFound("Workflow not found")
    return workflow


def _new_step(workflow_id: int, order: int, step: StepCreate) -> WorkflowStep:
    return WorkflowStep(
        workflow_id=workflow_id,
        title=step.title,
        description=step.description or None,
        step_order=order,
        due_date=step.due_date,
        assignee=step.assignee or None,
    )


def create_workflow(db: Session, user_id: int, body: WorkflowCreate) -> Workflow:
    """
    Insert the workflow and all of its steps in one transaction.

    Steps are ordered by their position in body.steps. If any insert fails the
    whole transaction is rolled back and no rows remain.
    """
    try:
        workflow = Workflow(
            user_id=user_id,
            title=body.title,
            description=body.description,
            category=body.category,
            priority=body.priority,
            status=body.status,
            tags=body.tags,
            due_date=body.due_date,
        )
        db.add(workflow)
        db.flush()
        for index, step in enumerate(body.steps):
            db.add(_new_step(workflow.id, index, step))
        db.flush()
        db.commit()
    except Exception:
        db.rollback()
        logger.exception("Workflow creation rolled back", extra={"user_id": user_id})
        raise
    db.refresh(workflow)
    return workflow


def update_workflow(db: Session, user_id: int, workflow_id: int, body: WorkflowUpdate) -> Workflow:
    """
    Write exactly the supplied fields plus updated_at.

    Entering 'completed' stamps completed_at. Leaving 'completed' keeps the old
    stamp; it is not cleared.
    """
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationFailed("Empty update: at least one field must be provided")
    for key in ("title", "category", "priority", "status", "tags"):
        if key in changes and changes[key] is None:
            raise ValidationFailed(f'"{key}" must not be null')
    workflow = get_workflow(db, user_id, workflow_id)
    now = utcnow()
    if changes.get("status") == "completed" and workflow.status != "completed":
        changes["completed_at"] = now
    changes["updated_at"] = now
    db.query(Workflow).filter(Workflow.id == workflow.id, Workflow.user_id == user_id).update(
        changes, synchronize_session="fetch"
    )
    db.commit()
    db.refresh(workflow)
    return workflow


def delete_workflow(db: Session, user_id: int, workflow_id: int) -> int:
    """Hard delete; steps and attachments go with it through ON DELETE CASCADE."""
    deleted = (
        db.query(Workflow)
        .filter(Workflow.id == workflow_id, Workflow.user_id == user_id)
        .delete(synchronize_session=False)
    )
    if deleted == 0:
        raise NotFound("Workflow not found")
    db.commit()
    return workflow_id


def add_step(db: Session, user_id: int, workflow_id: int, body: WorkflowStepCreate) -> WorkflowStep:
    workflow = get_workflow(db, user_id, workflow_id)
    step = _new_step(workflow.id, body.step_order, body)
    db.add(step)
    db.commit()
    db.refresh(step)
    return step


def _get_step(db: Session, workflow_id: int, step_id: int) -> WorkflowStep:
    step = (
        db.query(WorkflowStep)
        .filter(WorkflowStep.id == step_id, WorkflowStep.workflow_id == workflow_id)
        .first()
    )
    if step is None:
        raise NotFound("Step not found")
    return step


def update_step(
    db: Session, user_id: int, workflow_id: int, step_id: int, body: WorkflowStepUpdate
) -> WorkflowStep:
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise ValidationFailed("Empty update: at least one field must be provided")
    for key in ("title", "status", "step_order"):
        if key in changes and changes[key] is None:
            raise ValidationFailed(f'"{key}" must not be null')
    workflow = get_workflow(db, user_id, workflow_id)
    step = _get_step(db, workflow.id, step_id)
    now = utcnow()
    if changes.get("status") == "completed" and step.status != "completed":
        changes["completed_at"] = now
    changes["updated_at"] = now
    db.query(WorkflowStep).filter(WorkflowStep.id == step.id).update(
        changes, synchronize_session="fetch"
    )
    db.commit()
    db.refresh(step)
    return step


def delete_step(db: Session, user_id: int, workflow_id: int, step_id: int) -> int:
    workflow = get_workflow(db, user_id, workflow_id)
    deleted = (
        db.query(WorkflowStep)
        .filter(WorkflowStep.id == step_id, WorkflowStep.workflow_id == workflow.id)
        .delete(synchronize_session=False)
    )
    if deleted == 0:
        raise NotFound("Step not found")
    db.commit()
    return step_id


def add_attachment(
    db: Session, user_id: int, workflow_id: int, body: AttachmentCreate
) -> WorkflowAttachment:
    """Attach a note (must be the caller's own), URL or file reference to a workflow."""
    workflow = get_workflow(db, user_id, workflow_id)
    if body.attachment_type == "note":
        owned = (
            db.query(Note.id)
            .filter(Note.id == body.attachment_id, Note.user_id == user_id)
            .first()
        )
        if owned is None:
            raise NotFound("Note not found")
    attachment = WorkflowAttachment(workflow_id=workflow.id, **body.model_dump())
    db.add(attachment)
    db.commit()
    db.refresh(attachment)
    return attachment


def workflow_stats(db: Session, user_id: int, today: date | None = None) -> WorkflowStats:
    """Status/priority counts and overdue workflows, ignoring archived ones."""
    today = today or utcnow().date()

    def count_where(condition):
        return func.sum(case((condition, 1), else_=0))

    row = (
        db.query(
            func.count(Workflow.id),
            count_where(Workflow.status == "draft"),
            count_where(Workflow.status == "active"),
            count_where(Workflow.status == "completed"),
            count_where(Workflow.priority == "urgent"),
            count_where(Workflow.priority == "high"),
            count_where(
                (Workflow.due_date.is_not(None))
                & (Workflow.due_date < today)
                & (Workflow.status != "completed")
            ),
        )
        .filter(Workflow.user_id == user_id, Workflow.status != "archived")
        .one()
    )
    total, draft, active, completed, urgent, high, overdue = (int(v or 0) for v in row)
    return WorkflowStats(
        total_workflows=total,
        draft_workflows=draft,
        active_workflows=active,
        completed_workflows=completed,
        urgent_workflows=urgent,
        high_priority_workflows=high,
        overdue_workflows=overdue,
    )
