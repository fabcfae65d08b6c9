"""Keeps search documents in step with the figures they describe."""

from collections.abc import Sequence

import structlog

from collector.figures.repository import FigureRepository
from collector.figures.schemas import Figure
from collector.search.schemas import (
    BackfillReport,
    EntityKind,
    IndexOperation,
    IndexOutcome,
    SearchDocument,
)
from collector.search.store import SearchDocumentStore

logger = structlog.get_logger()

_SCALAR_FIELDS = (
    "name",
    "mfc_title",
    "origin",
    "version",
    "category",
    "classification",
    "scale",
    "materials",
)


def _strip_tag_group(tag: str) -> str:
    """Drop the ``group:`` prefix of a tag ("location:room-3" -> "room-3")."""
    _, sep, value = tag.partition(":")
    return value if sep else tag


def compose_search_text(figure: Figure) -> str:
    """Join every searchable figure field into one space-separated blob.

    Order: company names, legacy manufacturer, artist names, the scalar
    fields in ``_SCALAR_FIELDS`` order, release barcodes, then tags with
    their group prefix stripped. Empty fields contribute nothing.

    Args:
        figure: Figure to describe.

    Returns:
        The search text.
    """
    parts: list[str] = [cr.company_name for cr in figure.company_roles]
    parts.append(figure.manufacturer)
    parts.extend(ar.artist_name for ar in figure.artist_roles)
    parts.extend(getattr(figure, field) or "" for field in _SCALAR_FIELDS)
    parts.extend(release.barcode or "" for release in figure.releases)
    parts.extend(_strip_tag_group(tag) for tag in figure.tags)
    return " ".join(part.strip() for part in parts if part and part.strip())


def compose_name_searchable(figure: Figure) -> str:
    return figure.name.lower().strip()


def build_search_document(figure: Figure) -> SearchDocument:
    """Project a figure onto its search document."""
    return SearchDocument(
        entity_kind=EntityKind.FIGURE,
        entity_id=figure.id,
        owner_id=figure.owner_id,
        search_text=compose_search_text(figure),
        name_searchable=compose_name_searchable(figure),
        figure_name=figure.name,
        scale=figure.scale,
        mfc_link=figure.mfc_link,
        mfc_id=figure.mfc_id,
        image_url=figure.image_url,
        origin=figure.origin,
        category=figure.category,
        company_roles=[cr.model_copy() for cr in figure.company_roles],
        artist_roles=[ar.model_copy() for ar in figure.artist_roles],
        release_barcodes=[r.barcode for r in figure.releases if r.barcode],
        release_dates=[r.date for r in figure.releases if r.date],
        tags=list(figure.tags),
    )


class SearchIndexer:
    """Best-effort search index maintenance for figure write paths.

    No method raises: store failures are logged and reported through the
    returned ``IndexOutcome`` so a failed index write never fails the
    figure write it accompanies.
    """

    def __init__(self, store: SearchDocumentStore) -> None:
        self._store = store

    async def upsert(self, figure: Figure) -> IndexOutcome:
        """Create or replace the search document of a figure."""
        try:
            await self._store.upsert_by_key(build_search_document(figure))
        except Exception as e:
            logger.error("search_index_upsert_failed", figure_id=figure.id, error=str(e))
            return IndexOutcome(ok=False, operation=IndexOperation.UPSERT, error=str(e))
        logger.debug("search_index_upserted", figure_id=figure.id)
        return IndexOutcome(ok=True, operation=IndexOperation.UPSERT, count=1)

    async def delete(self, figure_id: str) -> IndexOutcome:
        """Remove the search document of a deleted figure."""
        try:
            removed = await self._store.delete_by_key(EntityKind.FIGURE, figure_id)
        except Exception as e:
            logger.error("search_index_delete_failed", figure_id=figure_id, error=str(e))
            return IndexOutcome(ok=False, operation=IndexOperation.DELETE, error=str(e))
        logger.debug("search_index_deleted", figure_id=figure_id, removed=removed)
        return IndexOutcome(ok=True, operation=IndexOperation.DELETE, count=int(removed))

    async def bulk_upsert(self, figures: Sequence[Figure]) -> IndexOutcome:
        """Create or replace the search documents of many figures at once."""
        if not figures:
            return IndexOutcome(ok=True, operation=IndexOperation.BULK_UPSERT)
        try:
            written = await self._store.bulk_upsert(
                [build_search_document(figure) for figure in figures]
            )
        except Exception as e:
            logger.error(
                "search_index_bulk_upsert_failed", figures=len(figures), error=str(e)
            )
            return IndexOutcome(ok=False, operation=IndexOperation.BULK_UPSERT, error=str(e))
        return IndexOutcome(ok=True, operation=IndexOperation.BULK_UPSERT, count=written)


async def backfill_search_index(
    repository: FigureRepository,
    indexer: SearchIndexer,
    batch_size: int = 100,
    dry_run: bool = False,
) -> BackfillReport:
    """Rebuild the search documents of every stored figure.

    A failed batch is counted and skipped; the remaining batches still run.

    Args:
        repository: Source of truth for figures.
        indexer: Indexer used to write the documents.
        batch_size: Figures per bulk upsert.
        dry_run: Count figures without writing anything.

    Returns:
        Totals for the run.
    """
    report = BackfillReport(dry_run=dry_run)

    async for batch in repository.iter_batches(batch_size):
        report.processed += len(batch)
        if dry_run:
            continue
        outcome = await indexer.bulk_upsert(batch)
        if outcome.ok:
            report.upserted += outcome.count
        else:
            report.failed_batches += 1

    logger.info(
        "search_index_backfilled",
        processed=report.processed,
        upserted=report.upserted,
        failed_batches=report.failed_batches,
        dry_run=dry_run,
    )
    return report
