"""Search path backed by the managed full-text index."""

from collector.figures.schemas import derive_manufacturer
from collector.search.queries import (
    QueryShape,
    full_clauses,
    normalize_query,
    partial_clauses,
    word_wheel_clauses,
)
from collector.search.schemas import (
    EntityKind,
    ResultRecord,
    SearchDocument,
    SearchOptions,
    ShouldClause,
)
from collector.search.store import SearchDocumentStore

FULL_RESULT_LIMIT = 100


def to_result(document: SearchDocument, score: float, include_owner: bool = True) -> ResultRecord:
    """Map an indexed document back to the caller-facing result shape.

    The manufacturer is derived from the denormalized company credits
    rather than stored on the document.
    """
    return ResultRecord(
        id=document.entity_id,
        name=document.figure_name or "",
        manufacturer=derive_manufacturer(document.company_roles),
        scale=document.scale,
        mfc_link=document.mfc_link,
        image_url=document.image_url,
        origin=document.origin,
        category=document.category,
        tags=list(document.tags),
        company_roles=list(document.company_roles),
        artist_roles=list(document.artist_roles),
        owner_id=document.owner_id if include_owner else None,
        search_score=score,
    )


class ManagedIndexSearch:
    """Ranked search delegated to the managed full-text index.

    Errors raised by the index propagate unchanged; recovering from them
    is the backend selector's job.
    """

    def __init__(self, store: SearchDocumentStore, index_name: str = "unified_search") -> None:
        """Initialize managed search.

        Args:
            store: Store answering ranked queries.
            index_name: Name of the full-text index to query.
        """
        self._store = store
        self._index_name = index_name

    async def _query(
        self,
        owner_id: str | None,
        should: list[ShouldClause],
        skip: int,
        limit: int,
        include_owner: bool = True,
    ) -> list[ResultRecord]:
        ranked = await self._store.ranked_query(
            self._index_name,
            owner_id,
            EntityKind.FIGURE,
            should,
            skip=skip,
            limit=limit,
        )
        return [to_result(document, score, include_owner) for document, score in ranked]

    async def word_wheel(self, query: str, owner_id: str, limit: int = 10) -> list[ResultRecord]:
        normalized = normalize_query(QueryShape.WORD_WHEEL, query)
        if normalized is None:
            return []
        return await self._query(owner_id, word_wheel_clauses(normalized), 0, limit)

    async def partial(
        self, query: str, owner_id: str, options: SearchOptions | None = None
    ) -> list[ResultRecord]:
        normalized = normalize_query(QueryShape.PARTIAL, query)
        if normalized is None:
            return []
        options = options or SearchOptions()
        return await self._query(
            owner_id, partial_clauses(normalized), options.offset, options.limit
        )

    async def full(self, query: str, owner_id: str) -> list[ResultRecord]:
        normalized = normalize_query(QueryShape.FULL, query)
        if normalized is None:
            return []
        return await self._query(owner_id, full_clauses(normalized), 0, FULL_RESULT_LIMIT)

    async def public(
        self, query: str, options: SearchOptions | None = None
    ) -> list[ResultRecord]:
        normalized = normalize_query(QueryShape.PUBLIC, query)
        if normalized is None:
            return []
        options = options or SearchOptions()
        return await self._query(
            None,
            full_clauses(normalized),
            options.offset,
            options.limit,
            include_owner=False,
        )
