"""Pydantic schemas for health check responses."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class DatabaseHealth(BaseModel):
    connected: bool
    total_tables: int | None = Field(default=None, alias="totalTables")
    required_tables: int | None = Field(default=None, alias="requiredTables")
    missing_tables: list[str] = Field(default_factory=list, alias="missingTables")
    status: Literal["healthy", "degraded", "unhealthy"]

    model_config = {"populate_by_name": True}


class HealthResponse(BaseModel):
    """Response body for the health check endpoint; 503 unless status is healthy."""

    success: bool
    message: str
    timestamp: datetime
    version: str
    environment: str = Field(description="Current app environment (e.g. dev, prod)")
    uptime: float = Field(description="Seconds since the process started")
    database: DatabaseHealth
    features: dict[str, Literal["available", "unavailable"]] = Field(default_factory=dict)
