"""Backend selection and search façade tests."""

import asyncio
from collections.abc import Callable
from unittest.mock import AsyncMock

import pytest

from collector.app import build_search_service
from collector.config import Settings
from collector.figures import Figure, FigureRepository
from collector.search import (
    FallbackOnError,
    FallbackScoringSearch,
    ManagedIndexSearch,
    ResultRecord,
    SearchIndexer,
    SearchOptions,
    SearchService,
    SqliteSearchStore,
    select_backend,
)
from collector.search.errors import ManagedIndexError

MakeFigure = Callable[..., Figure]

OWNER_A = "64f000000000000000000001"


def _result(figure_id: str = "fig-0001") -> ResultRecord:
    return ResultRecord(id=figure_id, name="Saber", owner_id=OWNER_A, search_score=1.5)


def _backend(results: list[ResultRecord] | None = None) -> AsyncMock:
    backend = AsyncMock()
    for method in ("word_wheel", "partial", "full", "public"):
        getattr(backend, method).return_value = results or []
    return backend


class TestSelectBackend:
    """Tests for select_backend."""

    def test_disabled_returns_fallback(self) -> None:
        managed, fallback = _backend(), _backend()
        assert select_backend(False, managed, fallback) is fallback

    def test_enabled_wraps_managed(self) -> None:
        backend = select_backend(True, _backend(), _backend())
        assert isinstance(backend, FallbackOnError)


class TestManagedSearchEnabled:
    """Tests for the configuration gate on the managed backend."""

    @pytest.mark.parametrize(
        "kwargs,expected",
        [
            ({}, False),
            ({"search_backend_enabled": True}, True),
            ({"search_backend_enabled": True, "test_mode": "memory"}, False),
            ({"search_backend_enabled": True, "integration_test": True}, False),
            ({"search_backend_enabled": True, "test_mode": "unit"}, True),
        ],
    )
    def test_matrix(self, kwargs: dict, expected: bool) -> None:
        assert Settings(**kwargs).managed_search_enabled is expected

    def test_build_search_service(
        self,
        repository: FigureRepository,
        store: SqliteSearchStore,
    ) -> None:
        service = build_search_service(Settings(search_backend_enabled=True), repository, store)
        assert service.backend_name == "managed"
        service = build_search_service(Settings(), repository, store)
        assert service.backend_name == "fallback"


class TestFallbackOnError:
    """Tests for fallback-on-error decoration."""

    @pytest.mark.asyncio
    async def test_primary_result_is_used(self) -> None:
        primary, fallback = _backend([_result()]), _backend()
        backend = FallbackOnError(primary, fallback)

        results = await backend.full("saber", OWNER_A)

        assert results == [_result()]
        fallback.full.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_primary_failure_reissues_on_fallback(self) -> None:
        primary, fallback = _backend(), _backend([_result()])
        primary.word_wheel.side_effect = ManagedIndexError("index offline", "unified_search")
        backend = FallbackOnError(primary, fallback)

        results = await backend.word_wheel("Sab", OWNER_A, 5)

        assert results == [_result()]
        fallback.word_wheel.assert_awaited_once_with("Sab", OWNER_A, 5)

    @pytest.mark.asyncio
    async def test_any_exception_falls_back(self) -> None:
        primary, fallback = _backend(), _backend([_result()])
        options = SearchOptions(limit=5, offset=5)
        primary.partial.side_effect = RuntimeError("connection reset")
        primary.public.side_effect = TimeoutError()
        backend = FallbackOnError(primary, fallback)

        assert await backend.partial("sab", OWNER_A, options) == [_result()]
        assert await backend.public("sab", options) == [_result()]
        fallback.partial.assert_awaited_once_with("sab", OWNER_A, options)
        fallback.public.assert_awaited_once_with("sab", options)

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self) -> None:
        primary, fallback = _backend(), _backend()
        primary.full.side_effect = asyncio.CancelledError()
        backend = FallbackOnError(primary, fallback)

        with pytest.raises(asyncio.CancelledError):
            await backend.full("saber", OWNER_A)
        fallback.full.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_fallback_failure_propagates(self) -> None:
        primary, fallback = _backend(), _backend()
        primary.full.side_effect = ManagedIndexError("index offline")
        fallback.full.side_effect = RuntimeError("database closed")
        backend = FallbackOnError(primary, fallback)

        with pytest.raises(RuntimeError):
            await backend.full("saber", OWNER_A)

    @pytest.mark.asyncio
    async def test_broken_index_falls_back_to_scoring(
        self,
        repository: FigureRepository,
        store: SqliteSearchStore,
        make_figure: MakeFigure,
    ) -> None:
        """A real index failure still yields scored results."""
        figure = make_figure("Saber")
        await repository.save(figure)
        managed = ManagedIndexSearch(store, index_name="not_created")
        backend = select_backend(True, managed, FallbackScoringSearch(repository))

        results = await backend.word_wheel("Sab", OWNER_A)

        assert [r.id for r in results] == [figure.id]
        assert results[0].search_score == 1.5


class TestSearchService:
    """Tests for the search façade."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("query", ["", "  ", "ab", " ab "])
    async def test_short_queries_skip_backend(self, query: str) -> None:
        backend = _backend([_result()])
        service = SearchService(backend, SearchIndexer(AsyncMock()))

        assert await service.word_wheel(query, OWNER_A) == []
        assert await service.partial(query, OWNER_A) == []
        backend.word_wheel.assert_not_awaited()
        backend.partial.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_blank_full_search_skips_backend(self) -> None:
        backend = _backend([_result()])
        service = SearchService(backend, SearchIndexer(AsyncMock()))

        assert await service.full_search("   ", OWNER_A) == []
        assert await service.public_search("") == []
        backend.full.assert_not_awaited()
        backend.public.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_queries_are_trimmed(self) -> None:
        backend = _backend([_result()])
        service = SearchService(backend, SearchIndexer(AsyncMock()))

        await service.word_wheel("  saber ", OWNER_A)
        await service.full_search(" good smile ", OWNER_A)

        backend.word_wheel.assert_awaited_once_with("saber", OWNER_A, 10)
        backend.full.assert_awaited_once_with("good smile", OWNER_A)

    @pytest.mark.asyncio
    async def test_partial_defaults_options(self) -> None:
        backend = _backend()
        service = SearchService(backend, SearchIndexer(AsyncMock()))

        await service.partial("saber", OWNER_A)

        backend.partial.assert_awaited_once_with("saber", OWNER_A, SearchOptions())

    @pytest.mark.asyncio
    async def test_index_maintenance_delegates_to_indexer(
        self,
        repository: FigureRepository,
        store: SqliteSearchStore,
        make_figure: MakeFigure,
    ) -> None:
        service = build_search_service(Settings(), repository, store)
        figures = [make_figure("Saber"), make_figure("Rin")]

        assert (await service.reindex(figures[0])).ok
        assert (await service.reindex_batch(figures)).count == 2
        assert await store.count() == 2
        assert (await service.unindex(figures[0].id)).ok
        assert await store.count() == 1

    @pytest.mark.asyncio
    async def test_resync(
        self,
        repository: FigureRepository,
        store: SqliteSearchStore,
        make_figure: MakeFigure,
    ) -> None:
        service = build_search_service(Settings(), repository, store)
        for name in ("Saber", "Rin", "Sakura"):
            await repository.save(make_figure(name))

        report = await service.resync(repository, batch_size=2)

        assert report.processed == 3
        assert report.upserted == 3
        assert await store.count() == 3
