"""Admin endpoints for search index maintenance."""

import structlog
from fastapi import APIRouter, Query, Request

from collector.config import Settings
from collector.figures import FigureRepository
from collector.search.schemas import BackfillReport
from collector.search.selector import SearchService

logger = structlog.get_logger()

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post(
    "/search/reindex",
    response_model=BackfillReport,
    summary="Rebuild the search index",
    description="Regenerates the search document of every stored figure in batches.",
)
async def reindex(
    request: Request,
    dry_run: bool = Query(default=False, description="Count figures without writing"),
) -> BackfillReport:
    """Run a full search index resynchronization.

    Args:
        request: FastAPI request (provides access to app state).
        dry_run: When True, only count the figures that would be indexed.

    Returns:
        Totals for the run, including failed batches.
    """
    settings: Settings = request.app.state.settings
    repository: FigureRepository = request.app.state.figure_repository
    search_service: SearchService = request.app.state.search_service

    logger.info("search_reindex_requested", dry_run=dry_run)
    return await search_service.resync(
        repository,
        batch_size=settings.reindex_batch_size,
        dry_run=dry_run,
    )
