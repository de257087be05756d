"""Service interfaces + default adapters for coordinator-level dependency injection."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Protocol, runtime_checkable

import httpx

from arxiv_catalog.models import FeedIntent, Paper, UserConfig
from arxiv_catalog.query import ARXIV_API_URL, describe_intent
from arxiv_catalog.services import catalog_service as _catalog
from arxiv_catalog.services.fetch_client import FetchResponse, HttpxFetchClient


@runtime_checkable
class FetchClient(Protocol):
    """Narrow transport interface: fetch bytes for a request URL."""

    async def fetch(self, request: str) -> FetchResponse:
        """Return status + body, or raise TransportError."""
        ...


@runtime_checkable
class PaperStore(Protocol):
    """Durable paper persistence keyed by paper id. All methods may raise StoreError."""

    def upsert(self, paper: Paper) -> None:
        """Insert the paper, or overwrite the stored record with the same id."""
        ...

    def fetch_all(self) -> list[Paper]:
        """Return every stored paper."""
        ...

    def fetch_favorites(self) -> list[Paper]:
        """Return every stored paper flagged favorite."""
        ...

    def fetch_by_id(self, paper_id: str) -> Paper | None:
        """Return the stored paper with this id, if any."""
        ...


@runtime_checkable
class CatalogService(Protocol):
    """Interface for turning intents into parsed paper lists."""

    def describe(self, intent: FeedIntent) -> str:
        """Build a user-facing label for an intent."""
        ...

    async def fetch(self, intent: FeedIntent) -> list[Paper]:
        """Fetch one page for the intent; raises a CatalogError on failure."""
        ...

    async def fetch_with_fallback(self, intent: FeedIntent) -> list[Paper]:
        """Fetch with the narrower fallback chain on empty/network failure."""
        ...


class DefaultCatalogService:
    """Default adapter that delegates to the function-based catalog service."""

    def __init__(
        self,
        client: FetchClient,
        *,
        base_url: str = ARXIV_API_URL,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._client = client
        self._base_url = base_url
        self._now = now

    def describe(self, intent: FeedIntent) -> str:
        return describe_intent(intent)

    async def fetch(self, intent: FeedIntent) -> list[Paper]:
        return await _catalog.fetch_papers(
            client=self._client,
            intent=intent,
            base_url=self._base_url,
            now=self._now,
        )

    async def fetch_with_fallback(self, intent: FeedIntent) -> list[Paper]:
        return await _catalog.fetch_papers_with_fallback(
            client=self._client,
            intent=intent,
            base_url=self._base_url,
            now=self._now,
        )


@dataclass(slots=True)
class AppServices:
    """Aggregated collaborators consumed by the view coordinator.

    ``store`` may be None, in which case favorites live in memory only.
    """

    catalog: CatalogService
    store: PaperStore | None = None


def build_default_app_services(
    config: UserConfig,
    *,
    db_path: Path | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> AppServices:
    """Build default services: httpx transport, arXiv catalog, SQLite store."""
    from arxiv_catalog.store import SqlitePaperStore, get_store_db_path

    fetch_client = HttpxFetchClient(
        http_client,
        timeout_seconds=config.request_timeout_seconds,
        user_agent=config.user_agent,
    )
    return AppServices(
        catalog=DefaultCatalogService(fetch_client),
        store=SqlitePaperStore(db_path or get_store_db_path()),
    )


__all__ = [
    "AppServices",
    "CatalogService",
    "DefaultCatalogService",
    "FetchClient",
    "PaperStore",
    "build_default_app_services",
]
