"""Query shapes shared by both search backends.

Each shape has a minimum query length, a set of should-clauses for the
managed full-text index and a candidate predicate for the fallback scorer.
The fallback predicates only look at the fields ``compute_score`` scores,
so a figure that passes a filter can always be ranked on why it matched.
"""

import re
from dataclasses import dataclass
from enum import Enum

from collector.figures.repository import FigurePredicate
from collector.figures.schemas import Figure
from collector.search.schemas import (
    AutocompleteClause,
    EqualsClause,
    ShouldClause,
    SubstringClause,
    TextClause,
)

SCALE_BOOST = 2.0
FUZZY_MAX_EDITS = 1

# Tag groups standing in for the legacy flat location / box fields
LOCATION_TAG_GROUP = "location"
BOX_TAG_GROUP = "box"

_WHITESPACE = re.compile(r"\s+")


class QueryShape(str, Enum):
    """The query shapes the search façade answers."""

    WORD_WHEEL = "word_wheel"
    PARTIAL = "partial"
    FULL = "full"
    PUBLIC = "public"


MIN_QUERY_LENGTH: dict[QueryShape, int] = {
    QueryShape.WORD_WHEEL: 3,
    QueryShape.PARTIAL: 3,
    QueryShape.FULL: 1,
    QueryShape.PUBLIC: 1,
}


def normalize_query(shape: QueryShape, raw: str | None) -> str | None:
    """Trim a raw query and check it against the shape's minimum length.

    Args:
        shape: Query shape being answered.
        raw: Query as typed by the user.

    Returns:
        The trimmed query, or None if it must short-circuit to no results.
    """
    if not raw:
        return None
    query = raw.strip()
    if len(query) < MIN_QUERY_LENGTH[shape]:
        return None
    return query


def split_terms(query: str) -> list[str]:
    """Split a query into lowercase whitespace-separated terms."""
    return [term for term in _WHITESPACE.split(query.lower()) if term]


# Managed full-text index clauses


def word_wheel_clauses(query: str) -> list[ShouldClause]:
    return [
        AutocompleteClause(query=query, path="search_text", max_edits=FUZZY_MAX_EDITS),
        EqualsClause(path="scale", value=query, boost=SCALE_BOOST),
    ]


def partial_clauses(query: str) -> list[ShouldClause]:
    return [
        SubstringClause(query=query, path="search_text"),
        EqualsClause(path="scale", value=query, boost=SCALE_BOOST),
    ]


def full_clauses(query: str) -> list[ShouldClause]:
    """Clauses for multi-term search.

    The autocomplete and text clauses each require every query token, so
    a document only matches through them when all terms are present.
    """
    return [
        AutocompleteClause(query=query, path="search_text", max_edits=FUZZY_MAX_EDITS),
        TextClause(query=query, path="name_searchable"),
        EqualsClause(path="scale", value=query, boost=SCALE_BOOST),
    ]


# Fallback scoring fields and predicates


@dataclass(frozen=True)
class ScoringFields:
    """Lowercased figure fields visible to the fallback filter and scorer.

    Attributes:
        name: Figure name.
        manufacturer: Display manufacturer (legacy field or derived).
        scale: Figure scale.
        locations: Legacy location plus ``location:`` tag values.
        boxes: Legacy box number / storage detail plus ``box:`` tag values.
    """

    name: str
    manufacturer: str
    scale: str
    locations: tuple[str, ...]
    boxes: tuple[str, ...]

    @classmethod
    def from_figure(cls, figure: Figure) -> "ScoringFields":
        locations = [figure.location or "", *figure.tag_values(LOCATION_TAG_GROUP)]
        boxes = [
            figure.box_number or "",
            figure.storage_detail or "",
            *figure.tag_values(BOX_TAG_GROUP),
        ]
        return cls(
            name=figure.name.lower(),
            manufacturer=figure.display_manufacturer.lower(),
            scale=(figure.scale or "").lower(),
            locations=tuple(v.lower() for v in locations if v),
            boxes=tuple(v.lower() for v in boxes if v),
        )

    def storage_values(self) -> tuple[str, ...]:
        return self.locations + self.boxes


def starts_word(text: str, term: str) -> bool:
    """True if ``term`` starts ``text`` or follows a space inside it."""
    return text.startswith(term) or f" {term}" in text


def _term_matches(fields: ScoringFields, term: str) -> bool:
    return (
        fields.scale == term
        or term in fields.name
        or term in fields.manufacturer
        or any(term in value for value in fields.storage_values())
    )


def word_wheel_predicate(query: str) -> FigurePredicate:
    """Prefix match at a word start, or an exact scale match."""
    needle = query.lower()

    def matches(figure: Figure) -> bool:
        fields = ScoringFields.from_figure(figure)
        return (
            fields.scale == needle
            or starts_word(fields.name, needle)
            or starts_word(fields.manufacturer, needle)
            or any(starts_word(value, needle) for value in fields.storage_values())
        )

    return matches


def partial_predicate(query: str) -> FigurePredicate:
    """The whole query as a substring of any one field, or an exact scale."""
    needle = query.lower()

    def matches(figure: Figure) -> bool:
        return _term_matches(ScoringFields.from_figure(figure), needle)

    return matches


def full_predicate(query: str) -> FigurePredicate:
    """Every term must match at least one field."""
    terms = split_terms(query)

    def matches(figure: Figure) -> bool:
        fields = ScoringFields.from_figure(figure)
        return all(_term_matches(fields, term) for term in terms)

    return matches
