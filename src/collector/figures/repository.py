"""SQLite-backed figure repository."""

import asyncio
import sqlite3
from collections.abc import AsyncIterator, Callable

import structlog

from collector.database import Database
from collector.figures.schemas import Figure

logger = structlog.get_logger()

FigurePredicate = Callable[[Figure], bool]


class FigureRepository:
    """Stores figures as JSON rows keyed by id.

    Rows keep their insertion sequence across updates, which is the order
    ``find_filtered`` returns matches in.
    """

    def __init__(self, database: Database) -> None:
        self._db = database

    async def save(self, figure: Figure) -> None:
        """Insert a figure or replace the stored copy with the same id."""
        await asyncio.to_thread(self._save, figure)

    def _save(self, figure: Figure) -> None:
        with self._db.session() as conn:
            conn.execute(
                """
                INSERT INTO figures (id, owner_id, data) VALUES (?, ?, ?)
                ON CONFLICT (id) DO UPDATE SET
                    owner_id = excluded.owner_id,
                    data = excluded.data
                """,
                (figure.id, figure.owner_id, figure.model_dump_json()),
            )

    async def get(self, figure_id: str) -> Figure | None:
        return await asyncio.to_thread(self._get, figure_id)

    def _get(self, figure_id: str) -> Figure | None:
        with self._db.session() as conn:
            row = conn.execute(
                "SELECT data FROM figures WHERE id = ?", (figure_id,)
            ).fetchone()
        return Figure.model_validate_json(row["data"]) if row else None

    async def delete(self, figure_id: str) -> bool:
        """Delete a figure.

        Returns:
            True if a row was removed.
        """
        return await asyncio.to_thread(self._delete, figure_id)

    def _delete(self, figure_id: str) -> bool:
        with self._db.session() as conn:
            cursor = conn.execute("DELETE FROM figures WHERE id = ?", (figure_id,))
        return cursor.rowcount > 0

    async def count(self) -> int:
        return await asyncio.to_thread(self._count)

    def _count(self) -> int:
        with self._db.session() as conn:
            return conn.execute("SELECT COUNT(*) FROM figures").fetchone()[0]

    async def find_filtered(
        self,
        owner_id: str | None,
        predicate: FigurePredicate,
        limit: int,
    ) -> list[Figure]:
        """Return up to ``limit`` figures matching a predicate.

        Args:
            owner_id: Restrict the scan to one owner's figures. None scans
                every owner and is reserved for public catalog search.
            predicate: Match test applied to each candidate figure.
            limit: Maximum number of figures to return.

        Returns:
            Matching figures in insertion order.
        """
        return await asyncio.to_thread(self._find_filtered, owner_id, predicate, limit)

    def _find_filtered(
        self,
        owner_id: str | None,
        predicate: FigurePredicate,
        limit: int,
    ) -> list[Figure]:
        if limit <= 0:
            return []

        if owner_id is None:
            sql = "SELECT data FROM figures ORDER BY seq"
            params: tuple[str, ...] = ()
        else:
            sql = "SELECT data FROM figures WHERE owner_id = ? ORDER BY seq"
            params = (owner_id,)

        matches: list[Figure] = []
        with self._db.session() as conn:
            for row in conn.execute(sql, params):
                try:
                    figure = Figure.model_validate_json(row["data"])
                except ValueError:
                    logger.warning("figure_row_invalid")
                    continue
                if predicate(figure):
                    matches.append(figure)
                    if len(matches) >= limit:
                        break
        return matches

    async def iter_batches(self, batch_size: int = 100) -> AsyncIterator[list[Figure]]:
        """Yield every stored figure in insertion-ordered batches.

        Args:
            batch_size: Maximum figures per batch.

        Yields:
            Lists of at most ``batch_size`` figures.
        """
        last_seq = 0
        while True:
            rows = await asyncio.to_thread(self._batch_after, last_seq, batch_size)
            if not rows:
                return
            last_seq = rows[-1][0]
            yield [figure for _, figure in rows]

    def _batch_after(self, last_seq: int, batch_size: int) -> list[tuple[int, Figure]]:
        with self._db.session() as conn:
            rows: list[sqlite3.Row] = conn.execute(
                "SELECT seq, data FROM figures WHERE seq > ? ORDER BY seq LIMIT ?",
                (last_seq, batch_size),
            ).fetchall()
        return [(row["seq"], Figure.model_validate_json(row["data"])) for row in rows]
