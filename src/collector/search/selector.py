"""Backend selection and the search façade used by callers."""

from collections.abc import Awaitable, Callable, Sequence
from typing import Protocol

import structlog

from collector.figures.repository import FigureRepository
from collector.figures.schemas import Figure
from collector.search.indexer import SearchIndexer, backfill_search_index
from collector.search.queries import QueryShape, normalize_query
from collector.search.schemas import (
    BackfillReport,
    IndexOutcome,
    ResultRecord,
    SearchOptions,
)

logger = structlog.get_logger()

WORD_WHEEL_DEFAULT_LIMIT = 10


class RankedSearch(Protocol):
    """A search backend answering every query shape."""

    async def word_wheel(self, query: str, owner_id: str, limit: int = 10) -> list[ResultRecord]:
        ...

    async def partial(
        self, query: str, owner_id: str, options: SearchOptions | None = None
    ) -> list[ResultRecord]:
        ...

    async def full(self, query: str, owner_id: str) -> list[ResultRecord]:
        ...

    async def public(
        self, query: str, options: SearchOptions | None = None
    ) -> list[ResultRecord]:
        ...


class FallbackOnError:
    """Run queries on a primary backend, re-issuing them on a fallback if it raises.

    There is no retry: one failure sends that query to the fallback.
    Cancellation (``asyncio.CancelledError``) is not an ``Exception`` and
    propagates untouched.
    """

    def __init__(self, primary: RankedSearch, fallback: RankedSearch) -> None:
        self._primary = primary
        self._fallback = fallback

    async def _guarded(
        self,
        shape: QueryShape,
        query: str,
        primary: Callable[[], Awaitable[list[ResultRecord]]],
        fallback: Callable[[], Awaitable[list[ResultRecord]]],
    ) -> list[ResultRecord]:
        try:
            return await primary()
        except Exception as e:
            logger.warning(
                "search_fallback",
                shape=shape.value,
                query=query,
                error=str(e),
                error_type=type(e).__name__,
            )
            return await fallback()

    async def word_wheel(self, query: str, owner_id: str, limit: int = 10) -> list[ResultRecord]:
        return await self._guarded(
            QueryShape.WORD_WHEEL,
            query,
            lambda: self._primary.word_wheel(query, owner_id, limit),
            lambda: self._fallback.word_wheel(query, owner_id, limit),
        )

    async def partial(
        self, query: str, owner_id: str, options: SearchOptions | None = None
    ) -> list[ResultRecord]:
        return await self._guarded(
            QueryShape.PARTIAL,
            query,
            lambda: self._primary.partial(query, owner_id, options),
            lambda: self._fallback.partial(query, owner_id, options),
        )

    async def full(self, query: str, owner_id: str) -> list[ResultRecord]:
        return await self._guarded(
            QueryShape.FULL,
            query,
            lambda: self._primary.full(query, owner_id),
            lambda: self._fallback.full(query, owner_id),
        )

    async def public(
        self, query: str, options: SearchOptions | None = None
    ) -> list[ResultRecord]:
        return await self._guarded(
            QueryShape.PUBLIC,
            query,
            lambda: self._primary.public(query, options),
            lambda: self._fallback.public(query, options),
        )


def select_backend(
    managed_enabled: bool,
    managed: RankedSearch,
    fallback: RankedSearch,
) -> RankedSearch:
    """Pick the backend for a configuration.

    Args:
        managed_enabled: Whether the managed full-text index may be used.
        managed: Managed index backend.
        fallback: In-process scoring backend.

    Returns:
        The managed backend wrapped with fallback-on-error, or the
        fallback backend alone.
    """
    if managed_enabled:
        return FallbackOnError(managed, fallback)
    return fallback


class SearchService:
    """Single entry point for figure search and search index maintenance.

    Queries below a shape's minimum length return an empty list without
    reaching any backend.
    """

    def __init__(
        self,
        backend: RankedSearch,
        indexer: SearchIndexer,
        managed_enabled: bool = False,
    ) -> None:
        """Initialize the search façade.

        Args:
            backend: Backend returned by ``select_backend``.
            indexer: Indexer for write-path maintenance.
            managed_enabled: Whether ``backend`` tries the managed index
                first; reported by health checks.
        """
        self._backend = backend
        self._indexer = indexer
        self.managed_enabled = managed_enabled

    @property
    def backend_name(self) -> str:
        return "managed" if self.managed_enabled else "fallback"

    async def word_wheel(
        self, query: str, owner_id: str, limit: int = WORD_WHEEL_DEFAULT_LIMIT
    ) -> list[ResultRecord]:
        """Autocomplete suggestions for a query of at least 3 characters."""
        normalized = normalize_query(QueryShape.WORD_WHEEL, query)
        if normalized is None:
            return []
        return await self._backend.word_wheel(normalized, owner_id, limit)

    async def partial(
        self, query: str, owner_id: str, options: SearchOptions | None = None
    ) -> list[ResultRecord]:
        """Substring search for a query of at least 3 characters."""
        normalized = normalize_query(QueryShape.PARTIAL, query)
        if normalized is None:
            return []
        return await self._backend.partial(normalized, owner_id, options or SearchOptions())

    async def full_search(self, query: str, owner_id: str) -> list[ResultRecord]:
        """Multi-term search over one owner's collection."""
        normalized = normalize_query(QueryShape.FULL, query)
        if normalized is None:
            return []
        results = await self._backend.full(normalized, owner_id)
        logger.info("figure_search", query=normalized, results=len(results))
        return results

    async def public_search(
        self, query: str, options: SearchOptions | None = None
    ) -> list[ResultRecord]:
        """Multi-term search over every collection, without owner ids."""
        normalized = normalize_query(QueryShape.PUBLIC, query)
        if normalized is None:
            return []
        return await self._backend.public(normalized, options or SearchOptions())

    async def reindex(self, figure: Figure) -> IndexOutcome:
        return await self._indexer.upsert(figure)

    async def unindex(self, figure_id: str) -> IndexOutcome:
        return await self._indexer.delete(figure_id)

    async def reindex_batch(self, figures: Sequence[Figure]) -> IndexOutcome:
        return await self._indexer.bulk_upsert(figures)

    async def resync(
        self,
        repository: FigureRepository,
        batch_size: int = 100,
        dry_run: bool = False,
    ) -> BackfillReport:
        """Rebuild every figure's search document from the repository."""
        return await backfill_search_index(repository, self._indexer, batch_size, dry_run)
