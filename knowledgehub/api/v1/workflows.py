"""Workflows endpoints: listings, CRUD, steps, attachments and statistics."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from knowledgehub.api.v1.auth import get_current_user, get_optional_user
from knowledgehub.core.database import get_db
from knowledgehub.schemas.auth import CurrentUser
from knowledgehub.schemas.common import DeletedData, Envelope, Pagination
from knowledgehub.schemas.workflow import (
    AttachmentCreate,
    AttachmentData,
    AttachmentRead,
    StepData,
    WorkflowCreate,
    WorkflowData,
    WorkflowDetail,
    WorkflowRead,
    WorkflowsListData,
    WorkflowsQuery,
    WorkflowStats,
    WorkflowStepCreate,
    WorkflowStepRead,
    WorkflowStepUpdate,
    WorkflowUpdate,
)
from knowledgehub.services import workflows
from knowledgehub.services.listing import Page

router = APIRouter()


def _list_payload(page: Page) -> WorkflowsListData:
    return WorkflowsListData(
        workflows=[WorkflowRead.model_validate(w) for w in page.rows],
        pagination=Pagination(
            total=page.total, limit=page.limit, offset=page.offset, has_more=page.has_more
        ),
    )


def _detail(workflow) -> WorkflowData:
    return WorkflowData(workflow=WorkflowDetail.model_validate(workflow))


@router.get("", response_model=Envelope[WorkflowsListData])
def list_workflows(
    query: Annotated[WorkflowsQuery, Query()],
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[WorkflowsListData]:
    """The caller's workflows filtered by status, priority, category, tags and search."""
    page = workflows.list_workflows(db, query, scope_user_id=current_user.id)
    return Envelope(data=_list_payload(page))


@router.get("/public", response_model=Envelope[WorkflowsListData])
def list_public_workflows(
    query: Annotated[WorkflowsQuery, Query()],
    _user: Annotated[CurrentUser | None, Depends(get_optional_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[WorkflowsListData]:
    page = workflows.list_workflows(db, query, scope_user_id=None)
    return Envelope(data=_list_payload(page))


@router.get("/stats/summary", response_model=Envelope[dict[str, WorkflowStats]])
def get_workflow_stats(
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[dict[str, WorkflowStats]]:
    return Envelope(data={"stats": workflows.workflow_stats(db, current_user.id)})


@router.get("/public/{workflow_id}", response_model=Envelope[WorkflowData])
def get_public_workflow(
    workflow_id: int,
    _user: Annotated[CurrentUser | None, Depends(get_optional_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[WorkflowData]:
    return Envelope(data=_detail(workflows.get_workflow(db, None, workflow_id)))


@router.get("/{workflow_id}", response_model=Envelope[WorkflowData])
def get_workflow(
    workflow_id: int,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[WorkflowData]:
    """An owned workflow with its steps (in step_order) and attachments."""
    return Envelope(data=_detail(workflows.get_workflow(db, current_user.id, workflow_id)))


@router.post("", response_model=Envelope[WorkflowData], status_code=status.HTTP_201_CREATED)
def create_workflow(
    body: WorkflowCreate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[WorkflowData]:
    """Create a workflow and its steps atomically; step order follows the array order."""
    workflow = workflows.create_workflow(db, current_user.id, body)
    return Envelope(message="Workflow created successfully", data=_detail(workflow))


@router.put("/{workflow_id}", response_model=Envelope[WorkflowData])
def update_workflow(
    workflow_id: int,
    body: WorkflowUpdate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[WorkflowData]:
    workflow = workflows.update_workflow(db, current_user.id, workflow_id, body)
    return Envelope(message="Workflow updated successfully", data=_detail(workflow))


@router.delete("/{workflow_id}", response_model=Envelope[DeletedData])
def delete_workflow(
    workflow_id: int,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[DeletedData]:
    deleted_id = workflows.delete_workflow(db, current_user.id, workflow_id)
    return Envelope(message="Workflow deleted successfully", data=DeletedData(id=deleted_id))


@router.post(
    "/{workflow_id}/steps",
    response_model=Envelope[StepData],
    status_code=status.HTTP_201_CREATED,
)
def add_step(
    workflow_id: int,
    body: WorkflowStepCreate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[StepData]:
    step = workflows.add_step(db, current_user.id, workflow_id, body)
    return Envelope(
        message="Step created successfully",
        data=StepData(step=WorkflowStepRead.model_validate(step)),
    )


@router.put("/{workflow_id}/steps/{step_id}", response_model=Envelope[StepData])
def update_step(
    workflow_id: int,
    step_id: int,
    body: WorkflowStepUpdate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[StepData]:
    step = workflows.update_step(db, current_user.id, workflow_id, step_id, body)
    return Envelope(
        message="Step updated successfully",
        data=StepData(step=WorkflowStepRead.model_validate(step)),
    )


@router.delete("/{workflow_id}/steps/{step_id}", response_model=Envelope[DeletedData])
def delete_step(
    workflow_id: int,
    step_id: int,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[DeletedData]:
    deleted_id = workflows.delete_step(db, current_user.id, workflow_id, step_id)
    return Envelope(message="Step deleted successfully", data=DeletedData(id=deleted_id))


@router.post(
    "/{workflow_id}/attachments",
    response_model=Envelope[AttachmentData],
    status_code=status.HTTP_201_CREATED,
)
def add_attachment(
    workflow_id: int,
    body: AttachmentCreate,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[Session, Depends(get_db)],
) -> Envelope[AttachmentData]:
    attachment = workflows.add_attachment(db, current_user.id, workflow_id, body)
    return Envelope(
        message="Attachment added successfully",
        data=AttachmentData(attachment=AttachmentRead.model_validate(attachment)),
    )
