"""Health check endpoint: database connectivity and presence of the required tables."""

import time
from datetime import UTC, datetime
from typing import Annotated

from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from knowledgehub.core.config import get_settings
from knowledgehub.core.database import (
    REQUIRED_TABLES,
    check_db_connected,
    count_tables,
    find_missing_tables,
    get_db,
)
from knowledgehub.schemas.health import DatabaseHealth, HealthResponse

router = APIRouter()

STARTED_AT = time.monotonic()

MESSAGES = {
    "healthy": "KnowledgeHub API is running",
    "degraded": "KnowledgeHub API is running with missing tables",
    "unhealthy": "KnowledgeHub API cannot reach its database",
}


def inspect_database(db: Session) -> DatabaseHealth:
    if not check_db_connected(db):
        return DatabaseHealth(connected=False, status="unhealthy")
    try:
        missing = find_missing_tables(db, REQUIRED_TABLES)
        total = count_tables(db)
    except SQLAlchemyError:
        return DatabaseHealth(connected=False, status="unhealthy")
    return DatabaseHealth(
        connected=True,
        total_tables=total,
        required_tables=len(REQUIRED_TABLES),
        missing_tables=missing,
        status="degraded" if missing else "healthy",
    )


@router.get("", response_model=HealthResponse)
def get_health(
    response: Response,
    db: Annotated[Session, Depends(get_db)],
) -> HealthResponse:
    """
    Return service health and database state.
    Used by load balancers and monitoring; anything but healthy answers 503.
    """
    settings = get_settings()
    database = inspect_database(db)
    if database.status != "healthy":
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    available = "available" if database.connected else "unavailable"
    return HealthResponse(
        success=database.status == "healthy",
        message=MESSAGES[database.status],
        timestamp=datetime.now(UTC),
        version=settings.APP_VERSION,
        environment=settings.APP_ENV,
        uptime=round(time.monotonic() - STARTED_AT, 3),
        database=database,
        features={"notes": available, "workflows": available, "rss": available},
    )
