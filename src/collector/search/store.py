"""Search document store and the FTS5-backed managed full-text index."""

import asyncio
import re
import sqlite3
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Protocol

from collector.database import Database
from collector.search.errors import ManagedIndexError, UnsupportedClauseError
from collector.search.schemas import (
    AutocompleteClause,
    EntityKind,
    EqualsClause,
    SearchDocument,
    ShouldClause,
    SubstringClause,
    TextClause,
)

# Mirrors the unicode61 tokenizer closely enough for query building
_TOKEN = re.compile(r"\w+")

_FTS_COLUMNS = frozenset({"search_text", "name_searchable"})
_EQUALS_COLUMNS = {"scale": "scale"}

# Tokens shorter than this are never expanded fuzzily
_FUZZY_MIN_TOKEN = 3

RankedDocument = tuple[SearchDocument, float]


class SearchDocumentStore(Protocol):
    """Storage and ranked retrieval of search documents."""

    async def upsert_by_key(self, document: SearchDocument) -> None:
        """Insert or replace the document keyed by (entity_kind, entity_id)."""
        ...

    async def delete_by_key(self, entity_kind: EntityKind, entity_id: str) -> bool:
        """Remove a document, returning True if one existed."""
        ...

    async def bulk_upsert(self, documents: Sequence[SearchDocument]) -> int:
        """Upsert many documents at once, returning how many were written."""
        ...

    async def get_by_key(
        self, entity_kind: EntityKind, entity_id: str
    ) -> SearchDocument | None:
        """Return a stored document or None."""
        ...

    async def ranked_query(
        self,
        index_name: str,
        owner_id: str | None,
        entity_kind: EntityKind,
        should: Sequence[ShouldClause],
        skip: int = 0,
        limit: int = 10,
    ) -> list[RankedDocument]:
        """Run a compound should-query, best score first."""
        ...


def levenshtein_distance(s1: str, s2: str) -> int:
    """Calculate Levenshtein distance between two strings."""
    if len(s1) < len(s2):
        return levenshtein_distance(s2, s1)
    if len(s2) == 0:
        return len(s1)

    prev_row = list(range(len(s2) + 1))
    for i, c1 in enumerate(s1):
        curr_row = [i + 1]
        for j, c2 in enumerate(s2):
            insertions = prev_row[j + 1] + 1
            deletions = curr_row[j] + 1
            substitutions = prev_row[j] + (c1 != c2)
            curr_row.append(min(insertions, deletions, substitutions))
        prev_row = curr_row

    return prev_row[-1]


def _quote(text: str) -> str:
    """Quote a string as an FTS5 phrase."""
    return '"' + text.replace('"', '""') + '"'


def _tokens(query: str) -> list[str]:
    return _TOKEN.findall(query.lower())


class SqliteSearchStore:
    """Search documents in SQLite with FTS5 ranking.

    Documents live in ``search_documents``; their text fields are mirrored
    into ``search_fts`` (unicode61, bm25 ranking) and ``search_trigram``
    (substring matching). ``ranked_query`` plays the part of the managed
    full-text index: each should-clause contributes its own score and a
    document's score is the sum over the clauses it satisfies.
    """

    def __init__(self, database: Database, index_name: str = "unified_search") -> None:
        """Initialize the store.

        Args:
            database: Initialized database shared with the figure repository.
            index_name: Name under which the full-text index answers queries.
        """
        self._db = database
        self._index_name = index_name

    @property
    def index_name(self) -> str:
        return self._index_name

    async def upsert_by_key(self, document: SearchDocument) -> None:
        await asyncio.to_thread(self._upsert_many, [document])

    async def bulk_upsert(self, documents: Sequence[SearchDocument]) -> int:
        if not documents:
            return 0
        return await asyncio.to_thread(self._upsert_many, list(documents))

    def _upsert_many(self, documents: list[SearchDocument]) -> int:
        with self._db.session() as conn:
            for document in documents:
                self._upsert(conn, document)
        return len(documents)

    def _upsert(self, conn: sqlite3.Connection, document: SearchDocument) -> None:
        """Replace one document and its full-text rows.

        The popularity column is left untouched on update.
        """
        conn.execute(
            """
            INSERT INTO search_documents
                (entity_kind, entity_id, owner_id, scale, data, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT (entity_kind, entity_id) DO UPDATE SET
                owner_id = excluded.owner_id,
                scale = excluded.scale,
                data = excluded.data,
                updated_at = excluded.updated_at
            """,
            (
                document.entity_kind.value,
                document.entity_id,
                document.owner_id,
                document.scale or "",
                document.model_dump_json(exclude={"popularity"}),
                datetime.now(UTC).isoformat(),
            ),
        )
        doc_id = conn.execute(
            "SELECT doc_id FROM search_documents WHERE entity_kind = ? AND entity_id = ?",
            (document.entity_kind.value, document.entity_id),
        ).fetchone()[0]

        if self._db.fts_available:
            conn.execute("DELETE FROM search_fts WHERE rowid = ?", (doc_id,))
            conn.execute(
                "INSERT INTO search_fts (rowid, search_text, name_searchable) VALUES (?, ?, ?)",
                (doc_id, document.search_text, document.name_searchable),
            )
        if self._db.trigram_available:
            conn.execute("DELETE FROM search_trigram WHERE rowid = ?", (doc_id,))
            conn.execute(
                "INSERT INTO search_trigram (rowid, search_text) VALUES (?, ?)",
                (doc_id, document.search_text),
            )

    async def delete_by_key(self, entity_kind: EntityKind, entity_id: str) -> bool:
        return await asyncio.to_thread(self._delete, entity_kind, entity_id)

    def _delete(self, entity_kind: EntityKind, entity_id: str) -> bool:
        with self._db.session() as conn:
            row = conn.execute(
                "SELECT doc_id FROM search_documents WHERE entity_kind = ? AND entity_id = ?",
                (entity_kind.value, entity_id),
            ).fetchone()
            if row is None:
                return False
            doc_id = row["doc_id"]
            conn.execute("DELETE FROM search_documents WHERE doc_id = ?", (doc_id,))
            if self._db.fts_available:
                conn.execute("DELETE FROM search_fts WHERE rowid = ?", (doc_id,))
            if self._db.trigram_available:
                conn.execute("DELETE FROM search_trigram WHERE rowid = ?", (doc_id,))
        return True

    async def get_by_key(
        self, entity_kind: EntityKind, entity_id: str
    ) -> SearchDocument | None:
        return await asyncio.to_thread(self._get, entity_kind, entity_id)

    def _get(self, entity_kind: EntityKind, entity_id: str) -> SearchDocument | None:
        with self._db.session() as conn:
            row = conn.execute(
                "SELECT data, popularity FROM search_documents "
                "WHERE entity_kind = ? AND entity_id = ?",
                (entity_kind.value, entity_id),
            ).fetchone()
        return self._load(row) if row else None

    async def count(self, entity_kind: EntityKind | None = None) -> int:
        return await asyncio.to_thread(self._count, entity_kind)

    def _count(self, entity_kind: EntityKind | None) -> int:
        with self._db.session() as conn:
            if entity_kind is None:
                row = conn.execute("SELECT COUNT(*) FROM search_documents").fetchone()
            else:
                row = conn.execute(
                    "SELECT COUNT(*) FROM search_documents WHERE entity_kind = ?",
                    (entity_kind.value,),
                ).fetchone()
        return row[0]

    @staticmethod
    def _load(row: sqlite3.Row) -> SearchDocument:
        document = SearchDocument.model_validate_json(row["data"])
        document.popularity = row["popularity"]
        return document

    async def ranked_query(
        self,
        index_name: str,
        owner_id: str | None,
        entity_kind: EntityKind,
        should: Sequence[ShouldClause],
        skip: int = 0,
        limit: int = 10,
    ) -> list[RankedDocument]:
        """Run a compound should-query against the full-text index.

        A document must satisfy at least one clause. Results are sorted by
        summed clause score, descending, then paginated.

        Args:
            index_name: Index to query; must match this store's index.
            owner_id: Owner scope, or None for unscoped public queries.
            entity_kind: Entity kind filter.
            should: Score-accumulating clauses.
            skip: Number of ranked documents to skip.
            limit: Maximum number of documents to return.

        Returns:
            (document, score) pairs, best first.

        Raises:
            ManagedIndexError: If the index is unknown, unavailable, or
                rejects the query.
        """
        return await asyncio.to_thread(
            self._ranked_query, index_name, owner_id, entity_kind, list(should), skip, limit
        )

    def _ranked_query(
        self,
        index_name: str,
        owner_id: str | None,
        entity_kind: EntityKind,
        should: list[ShouldClause],
        skip: int,
        limit: int,
    ) -> list[RankedDocument]:
        if index_name != self._index_name:
            raise ManagedIndexError(f"unknown search index {index_name!r}", index_name)
        if not self._db.fts_available:
            raise ManagedIndexError("full-text index is unavailable", index_name)
        if not should or limit <= 0:
            return []

        scope_sql = "d.entity_kind = ?"
        scope_params: list[str] = [entity_kind.value]
        if owner_id is not None:
            scope_sql += " AND d.owner_id = ?"
            scope_params.append(owner_id)

        scores: dict[int, float] = {}
        try:
            with self._db.session() as conn:
                for clause in should:
                    for doc_id, score in self._evaluate(conn, clause, scope_sql, scope_params):
                        scores[doc_id] = scores.get(doc_id, 0.0) + score

                ranked = sorted(scores.items(), key=lambda item: (-item[1], item[0]))
                window = ranked[skip : skip + limit]
                if not window:
                    return []

                placeholders = ",".join("?" for _ in window)
                rows = conn.execute(
                    f"SELECT doc_id, data, popularity FROM search_documents "
                    f"WHERE doc_id IN ({placeholders})",
                    [doc_id for doc_id, _ in window],
                ).fetchall()
        except sqlite3.Error as e:
            raise ManagedIndexError(f"search index rejected query: {e}", index_name) from e

        documents = {row["doc_id"]: self._load(row) for row in rows}
        return [
            (documents[doc_id], score) for doc_id, score in window if doc_id in documents
        ]

    def _evaluate(
        self,
        conn: sqlite3.Connection,
        clause: ShouldClause,
        scope_sql: str,
        scope_params: list[str],
    ) -> list[tuple[int, float]]:
        """Return (doc_id, score) for every in-scope document matching a clause."""
        if isinstance(clause, EqualsClause):
            column = _EQUALS_COLUMNS.get(clause.path)
            if column is None:
                raise UnsupportedClauseError(f"equals on {clause.path!r} is not indexed")
            rows = conn.execute(
                f"SELECT d.doc_id FROM search_documents d "
                f"WHERE lower(d.{column}) = ? AND {scope_sql}",
                [clause.value.lower(), *scope_params],
            ).fetchall()
            return [(row["doc_id"], clause.boost) for row in rows]

        if isinstance(clause, SubstringClause):
            if clause.path != "search_text":
                raise UnsupportedClauseError(f"substring on {clause.path!r} is not indexed")
            if not self._db.trigram_available:
                raise UnsupportedClauseError("substring matching needs the trigram tokenizer")
            return self._match(conn, "search_trigram", _quote(clause.query), scope_sql, scope_params)

        if clause.path not in _FTS_COLUMNS:
            raise UnsupportedClauseError(f"{clause.kind} on {clause.path!r} is not indexed")

        tokens = _tokens(clause.query)
        if not tokens:
            return []

        if isinstance(clause, TextClause):
            expression = " AND ".join(f"{clause.path} : {_quote(t)}" for t in tokens)
        elif isinstance(clause, AutocompleteClause):
            groups = []
            for token in tokens:
                prefixes = self._expand_prefix(conn, token, clause.max_edits)
                groups.append(
                    "(" + " OR ".join(f"{clause.path} : {_quote(p)}*" for p in sorted(prefixes)) + ")"
                )
            expression = " AND ".join(groups)
        else:
            raise UnsupportedClauseError(f"unknown clause kind {clause.kind!r}")

        return self._match(conn, "search_fts", expression, scope_sql, scope_params)

    @staticmethod
    def _match(
        conn: sqlite3.Connection,
        table: str,
        expression: str,
        scope_sql: str,
        scope_params: list[str],
    ) -> list[tuple[int, float]]:
        rows = conn.execute(
            f"""
            SELECT m.doc_id, m.rank FROM (
                SELECT rowid AS doc_id, bm25({table}) AS rank
                FROM {table} WHERE {table} MATCH ?
            ) m
            JOIN search_documents d ON d.doc_id = m.doc_id
            WHERE {scope_sql}
            """,
            [expression, *scope_params],
        ).fetchall()
        # bm25() is lower-is-better; flip it so higher scores rank first
        return [(row["doc_id"], -row["rank"]) for row in rows]

    @staticmethod
    def _expand_prefix(conn: sqlite3.Connection, token: str, max_edits: int) -> set[str]:
        """Find indexed prefixes within ``max_edits`` edits of a query token."""
        prefixes = {token}
        if max_edits == 0 or len(token) < _FUZZY_MIN_TOKEN:
            return prefixes

        lengths = range(max(1, len(token) - max_edits), len(token) + max_edits + 1)
        for row in conn.execute("SELECT term FROM search_fts_vocab"):
            term = row["term"]
            for length in lengths:
                prefix = term[:length]
                if len(prefix) == length and levenshtein_distance(token, prefix) <= max_edits:
                    prefixes.add(prefix)
        return prefixes
