"""Health check endpoints for liveness and readiness probes."""
import sqlite3
from typing import Literal

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from collector.database import Database
from collector.search import SearchService

router = APIRouter(prefix="/health", tags=["health"])


class LivenessResponse(BaseModel):
    """Response model for liveness probe."""

    status: Literal["alive"]


class ReadinessCheck(BaseModel):
    """Individual dependency check result.

    Attributes:
        name: Identifier for the dependency being checked.
        status: Result of the check ('ok' or 'failed').
        message: Error details when status is 'failed'.
    """

    name: str
    status: Literal["ok", "failed"]
    message: str | None = None


class ReadinessResponse(BaseModel):
    """Response model for readiness probe.

    Attributes:
        status: Overall readiness ('ready' or 'not_ready').
        search_backend: Backend queries go to first ('managed' or 'fallback').
        checks: List of individual dependency check results.
    """

    status: Literal["ready", "not_ready"]
    search_backend: str
    checks: list[ReadinessCheck]


def _check_database(database: Database) -> ReadinessCheck:
    name = f"db:{database.path}"
    try:
        database.ping()
        return ReadinessCheck(name=name, status="ok")
    except sqlite3.Error as e:
        return ReadinessCheck(name=name, status="failed", message=str(e))


def _check_full_text(database: Database) -> ReadinessCheck:
    if database.fts_available:
        return ReadinessCheck(name="fts5", status="ok")
    return ReadinessCheck(
        name="fts5",
        status="failed",
        message="FTS5 unavailable, managed search will fall back",
    )


@router.get("/live", response_model=LivenessResponse)
async def liveness() -> LivenessResponse:
    """Liveness probe endpoint.

    Returns:
        Liveness status response.
    """
    return LivenessResponse(status="alive")


@router.get("/ready", response_model=ReadinessResponse)
async def readiness(request: Request) -> JSONResponse:
    """Readiness probe endpoint.

    The database must answer a query. A missing FTS5 module is reported
    but does not fail readiness, since searches still fall back to the
    in-process scorer.

    Returns:
        Readiness status with individual check results; 503 if the
        database check fails.
    """
    database: Database = request.app.state.database
    search_service: SearchService = request.app.state.search_service

    db_check = _check_database(database)
    checks = [db_check, _check_full_text(database)]
    ready = db_check.status == "ok"
    response = ReadinessResponse(
        status="ready" if ready else "not_ready",
        search_backend=search_service.backend_name,
        checks=checks,
    )
    code = status.HTTP_200_OK if ready else status.HTTP_503_SERVICE_UNAVAILABLE
    return JSONResponse(content=response.model_dump(), status_code=code)
