"""Response envelope and pagination shared by every endpoint."""

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

DataT = TypeVar("DataT")


class Envelope(BaseModel, Generic[DataT]):
    """Every response body: {success, message?, data?}. Errors add a machine-readable code."""

    success: bool = True
    message: str | None = None
    data: DataT | None = None


class ErrorEnvelope(BaseModel):
    success: bool = False
    message: str
    code: str | None = None


class Pagination(BaseModel):
    """Listing metadata; hasMore is true when offset + limit < total."""

    model_config = {"populate_by_name": True}

    total: int = Field(..., ge=0)
    limit: int = Field(..., ge=1)
    offset: int = Field(..., ge=0)
    has_more: bool = Field(..., alias="hasMore")


class DeletedData(BaseModel):
    id: int
