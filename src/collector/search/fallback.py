"""Filter-then-score search over the figure collection.

Used when the managed full-text index is disabled or failing. Candidates
come from a plain filtered scan of the owner's figures; each is scored
with a fixed weight table and the list is sorted locally.

Scoring weights, per query term:

- exact scale match: 2.0
- name starts with the term / term at a word boundary: 1.5,
  otherwise name contains the term: 1.0
- manufacturer starts with the term / word boundary: 1.25,
  otherwise manufacturer contains the term: 0.75
- a location value contains the term: 0.5
- a box / storage value contains the term: 0.5

Equal scores keep the order the repository returned (insertion order).
"""

import structlog

from collector.figures.repository import FigurePredicate, FigureRepository
from collector.figures.schemas import Figure
from collector.search.queries import (
    QueryShape,
    ScoringFields,
    full_predicate,
    normalize_query,
    partial_predicate,
    split_terms,
    starts_word,
    word_wheel_predicate,
)
from collector.search.schemas import ResultRecord, SearchOptions

logger = structlog.get_logger()

WORD_WHEEL_FETCH_CAP = 50
PARTIAL_FETCH_CAP = 100
FULL_FETCH_LIMIT = 100
OVERFETCH_FACTOR = 3


def compute_score(figure: Figure, query: str) -> float:
    """Score a figure against a query with the fallback weight table.

    Args:
        figure: Candidate figure.
        query: Raw query; split into lowercase whitespace-separated terms.

    Returns:
        Summed score over all terms, rounded to 2 decimal places.
    """
    fields = ScoringFields.from_figure(figure)
    score = 0.0

    for term in split_terms(query):
        if fields.scale == term:
            score += 2.0

        if starts_word(fields.name, term):
            score += 1.5
        elif term in fields.name:
            score += 1.0

        if starts_word(fields.manufacturer, term):
            score += 1.25
        elif term in fields.manufacturer:
            score += 0.75

        if any(term in value for value in fields.locations):
            score += 0.5
        if any(term in value for value in fields.boxes):
            score += 0.5

    return round(score, 2)


def to_result(figure: Figure, query: str, include_owner: bool = True) -> ResultRecord:
    return ResultRecord(
        id=figure.id,
        name=figure.name,
        manufacturer=figure.display_manufacturer or None,
        scale=figure.scale,
        mfc_link=figure.mfc_link,
        image_url=figure.image_url,
        origin=figure.origin,
        category=figure.category,
        tags=list(figure.tags),
        company_roles=list(figure.company_roles),
        artist_roles=list(figure.artist_roles),
        owner_id=figure.owner_id if include_owner else None,
        search_score=compute_score(figure, query),
    )


class FallbackScoringSearch:
    """Ranked search computed in-process from a filtered figure scan."""

    def __init__(self, repository: FigureRepository) -> None:
        self._repository = repository

    async def _ranked(
        self,
        owner_id: str | None,
        query: str,
        predicate: FigurePredicate,
        fetch_limit: int,
        include_owner: bool = True,
    ) -> list[ResultRecord]:
        figures = await self._repository.find_filtered(owner_id, predicate, fetch_limit)
        logger.debug("fallback_candidates", candidates=len(figures), fetch_limit=fetch_limit)
        results = [to_result(figure, query, include_owner) for figure in figures]
        # sorted() is stable, so ties keep repository order
        return sorted(results, key=lambda result: result.search_score, reverse=True)

    async def word_wheel(self, query: str, owner_id: str, limit: int = 10) -> list[ResultRecord]:
        """Autocomplete suggestions for a partially typed query."""
        normalized = normalize_query(QueryShape.WORD_WHEEL, query)
        if normalized is None:
            return []
        fetch_limit = min(limit * OVERFETCH_FACTOR, WORD_WHEEL_FETCH_CAP)
        results = await self._ranked(
            owner_id, normalized, word_wheel_predicate(normalized), fetch_limit
        )
        return results[:limit]

    async def partial(
        self, query: str, owner_id: str, options: SearchOptions | None = None
    ) -> list[ResultRecord]:
        """Substring search with limit/offset pagination."""
        normalized = normalize_query(QueryShape.PARTIAL, query)
        if normalized is None:
            return []
        options = options or SearchOptions()
        window_end = options.offset + options.limit
        fetch_limit = min(window_end * OVERFETCH_FACTOR, PARTIAL_FETCH_CAP)
        results = await self._ranked(
            owner_id, normalized, partial_predicate(normalized), fetch_limit
        )
        return results[options.offset : window_end]

    async def full(self, query: str, owner_id: str) -> list[ResultRecord]:
        """Multi-term search: every term must match some field."""
        normalized = normalize_query(QueryShape.FULL, query)
        if normalized is None:
            return []
        return await self._ranked(
            owner_id, normalized, full_predicate(normalized), FULL_FETCH_LIMIT
        )

    async def public(
        self, query: str, options: SearchOptions | None = None
    ) -> list[ResultRecord]:
        """Multi-term search across every owner; owner ids are omitted."""
        normalized = normalize_query(QueryShape.PUBLIC, query)
        if normalized is None:
            return []
        options = options or SearchOptions()
        results = await self._ranked(
            None,
            normalized,
            full_predicate(normalized),
            FULL_FETCH_LIMIT,
            include_owner=False,
        )
        return results[options.offset : options.offset + options.limit]
