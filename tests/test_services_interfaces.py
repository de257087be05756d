"""Tests for service interface adapters and defaults."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from arxiv_catalog.models import FeedIntent, UserConfig
from arxiv_catalog.services.fetch_client import HttpxFetchClient
from arxiv_catalog.services.interfaces import (
    AppServices,
    CatalogService,
    DefaultCatalogService,
    FetchClient,
    PaperStore,
    build_default_app_services,
)
from arxiv_catalog.store import SqlitePaperStore


def test_build_default_app_services_protocol_compatible(tmp_path) -> None:
    services = build_default_app_services(UserConfig(), db_path=tmp_path / "papers.db")

    assert isinstance(services, AppServices)
    assert isinstance(services.catalog, CatalogService)
    assert isinstance(services.store, PaperStore)
    assert isinstance(services.store, SqlitePaperStore)
    assert services.store.db_path == tmp_path / "papers.db"


def test_httpx_fetch_client_satisfies_protocol() -> None:
    assert isinstance(HttpxFetchClient(), FetchClient)


def test_memory_store_double_satisfies_protocol(memory_store) -> None:
    assert isinstance(memory_store, PaperStore)


@pytest.mark.asyncio
async def test_default_catalog_adapter_delegates(make_paper) -> None:
    client = AsyncMock()
    service = DefaultCatalogService(client, base_url="http://localhost/api")
    intent = FeedIntent.browse("cs")

    with (
        patch(
            "arxiv_catalog.services.interfaces._catalog.fetch_papers",
            new=AsyncMock(return_value=[make_paper(paper_id="2401.22222v1")]),
        ) as fetch,
        patch(
            "arxiv_catalog.services.interfaces._catalog.fetch_papers_with_fallback",
            new=AsyncMock(return_value=[]),
        ) as fetch_fallback,
    ):
        papers = await service.fetch(intent)
        fallback_papers = await service.fetch_with_fallback(FeedIntent.latest())

    assert [p.paper_id for p in papers] == ["2401.22222v1"]
    assert fallback_papers == []
    fetch.assert_awaited_once_with(
        client=client, intent=intent, base_url="http://localhost/api", now=None
    )
    fetch_fallback.assert_awaited_once()
    assert service.describe(intent) == "cat:cs*"
