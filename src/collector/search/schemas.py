"""Pydantic schemas for search documents, queries and results."""

import datetime
from enum import Enum
from typing import Annotated, Literal

from pydantic import BaseModel, Field

from collector.figures.schemas import ArtistRole, CompanyRole


class EntityKind(str, Enum):
    """Kinds of entity that can own a search document."""

    FIGURE = "figure"
    COMPANY = "company"
    ARTIST = "artist"


class SearchDocument(BaseModel):
    """Denormalized, independently queryable projection of an entity.

    One document exists per (entity_kind, entity_id).

    Attributes:
        search_text: Every searchable field joined by single spaces.
        name_searchable: Lowercased, trimmed entity name.
        owner_id: Owner scope of the document.
        release_barcodes: Barcodes of every release.
        popularity: Popularity counter, untouched by upserts.
    """

    entity_kind: EntityKind = EntityKind.FIGURE
    entity_id: str
    owner_id: str | None = None
    search_text: str
    name_searchable: str

    figure_name: str | None = None
    scale: str | None = None
    mfc_link: str | None = None
    mfc_id: int | None = None
    image_url: str | None = None
    origin: str | None = None
    category: str | None = None
    company_roles: list[CompanyRole] = Field(default_factory=list)
    artist_roles: list[ArtistRole] = Field(default_factory=list)
    release_barcodes: list[str] = Field(default_factory=list)
    release_dates: list[datetime.date] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    popularity: int = 0


class SearchOptions(BaseModel):
    """Pagination window for a search."""

    limit: int = Field(default=10, ge=1)
    offset: int = Field(default=0, ge=0)


class ResultRecord(BaseModel):
    """Caller-facing search hit.

    ``search_score`` units depend on the backend that produced the hit;
    only the order within one response is meaningful.
    """

    id: str
    name: str
    manufacturer: str | None = None
    scale: str | None = None
    mfc_link: str | None = None
    image_url: str | None = None
    origin: str | None = None
    category: str | None = None
    tags: list[str] = Field(default_factory=list)
    company_roles: list[CompanyRole] = Field(default_factory=list)
    artist_roles: list[ArtistRole] = Field(default_factory=list)
    owner_id: str | None = None
    search_score: float = 0.0


class SearchResponse(BaseModel):
    """Search response envelope.

    Attributes:
        query: The original search query string.
        count: Number of results returned.
        results: Ranked results, most relevant first.
    """

    query: str
    count: int
    results: list[ResultRecord]


class AutocompleteClause(BaseModel):
    """Prefix match on every query token, tolerating ``max_edits`` typos."""

    kind: Literal["autocomplete"] = "autocomplete"
    query: str
    path: str
    max_edits: int = Field(default=0, ge=0, le=2)


class TextClause(BaseModel):
    """Whole-token match on every query token."""

    kind: Literal["text"] = "text"
    query: str
    path: str


class SubstringClause(BaseModel):
    """Match the query anywhere inside the field, without fuzziness."""

    kind: Literal["substring"] = "substring"
    query: str
    path: str


class EqualsClause(BaseModel):
    """Case-insensitive exact match of a field, scored at ``boost``."""

    kind: Literal["equals"] = "equals"
    path: str
    value: str
    boost: float = 1.0


ShouldClause = Annotated[
    AutocompleteClause | TextClause | SubstringClause | EqualsClause,
    Field(discriminator="kind"),
]


class IndexOperation(str, Enum):
    """Search index maintenance operations."""

    UPSERT = "upsert"
    DELETE = "delete"
    BULK_UPSERT = "bulk_upsert"


class IndexOutcome(BaseModel):
    """Result of a best-effort index maintenance call.

    Attributes:
        ok: Whether the store accepted the write.
        operation: Which maintenance operation ran.
        count: Number of documents written or removed.
        error: Failure description when ok is False.
    """

    ok: bool
    operation: IndexOperation
    count: int = 0
    error: str | None = None


class BackfillReport(BaseModel):
    """Summary of a full search index resynchronization."""

    processed: int = 0
    upserted: int = 0
    failed_batches: int = 0
    dry_run: bool = False
