"""Figure search with a managed full-text index and a scoring fallback."""

from collector.search.fallback import FallbackScoringSearch, compute_score
from collector.search.indexer import SearchIndexer, backfill_search_index
from collector.search.managed import ManagedIndexSearch
from collector.search.schemas import (
    EntityKind,
    IndexOutcome,
    ResultRecord,
    SearchDocument,
    SearchOptions,
    SearchResponse,
)
from collector.search.selector import (
    FallbackOnError,
    RankedSearch,
    SearchService,
    select_backend,
)
from collector.search.store import SearchDocumentStore, SqliteSearchStore

__all__ = [
    "EntityKind",
    "FallbackOnError",
    "FallbackScoringSearch",
    "IndexOutcome",
    "ManagedIndexSearch",
    "RankedSearch",
    "ResultRecord",
    "SearchDocument",
    "SearchDocumentStore",
    "SearchIndexer",
    "SearchOptions",
    "SearchResponse",
    "SearchService",
    "SqliteSearchStore",
    "backfill_search_index",
    "compute_score",
    "select_backend",
]
