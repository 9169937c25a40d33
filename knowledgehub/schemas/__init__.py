"""Pydantic request/response schemas."""

from knowledgehub.schemas.common import Envelope, ErrorEnvelope, Pagination
from knowledgehub.schemas.health import HealthResponse

__all__ = [
    "Envelope",
    "ErrorEnvelope",
    "HealthResponse",
    "Pagination",
]
