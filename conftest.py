"""Shared test fixtures for arxiv-catalog tests."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from xml.sax.saxutils import escape

import pytest

from arxiv_catalog.errors import StoreError
from arxiv_catalog.models import FeedIntent, Paper

ATOM_HEADER = '<?xml version="1.0" encoding="UTF-8"?>\n<feed xmlns="http://www.w3.org/2005/Atom">'

# ── Factories ────────────────────────────────────────────────────────────────


@pytest.fixture
def make_paper():
    """Factory fixture for creating Paper instances with sensible defaults."""

    def _make(
        paper_id: str = "2401.12345v1",
        title: str = "Test Paper",
        summary: str = "Test abstract content.",
        authors: str = "Test Author",
        published: datetime | None = None,
        updated: datetime | None = None,
        categories: list[str] | None = None,
        is_favorite: bool = False,
        favorited_at: datetime | None = None,
    ) -> Paper:
        published = published or datetime(2024, 1, 15, 12, 0, tzinfo=UTC)
        return Paper(
            paper_id=paper_id,
            title=title,
            summary=summary,
            authors=authors,
            published=published,
            updated=updated or published,
            pdf_url=f"http://arxiv.org/pdf/{paper_id}",
            landing_page_url=f"http://arxiv.org/abs/{paper_id}",
            categories=categories if categories is not None else ["cs.AI"],
            is_favorite=is_favorite,
            favorited_at=favorited_at if is_favorite else None,
        )

    return _make


def _atom_entry(
    paper_id: str | None = "2401.12345v1",
    title: str | None = "Test Paper",
    summary: str = "Test abstract content.",
    authors: tuple[str, ...] = ("Test Author",),
    published: str = "2024-01-15T12:00:00Z",
    updated: str | None = "2024-01-16T12:00:00Z",
    categories: tuple[str, ...] = ("cs.AI",),
    links: bool = True,
) -> str:
    """Render one arXiv-style Atom entry; pass None to omit id or title."""
    parts = ["<entry>"]
    if paper_id is not None:
        parts.append(f"<id>http://arxiv.org/abs/{escape(paper_id)}</id>")
    if updated is not None:
        parts.append(f"<updated>{escape(updated)}</updated>")
    parts.append(f"<published>{escape(published)}</published>")
    if title is not None:
        parts.append(f"<title>{escape(title)}</title>")
    parts.append(f"<summary>{escape(summary)}</summary>")
    for name in authors:
        parts.append(f"<author><name>{escape(name)}</name></author>")
    if links and paper_id is not None:
        parts.append(
            f'<link href="http://arxiv.org/abs/{paper_id}" rel="alternate" type="text/html"/>'
        )
        parts.append(
            f'<link title="pdf" href="http://arxiv.org/pdf/{paper_id}" '
            'rel="related" type="application/pdf"/>'
        )
    for term in categories:
        parts.append(f'<category term="{escape(term)}" scheme="http://arxiv.org/schemas/atom"/>')
    parts.append("</entry>")
    return "".join(parts)


@pytest.fixture
def make_feed():
    """Factory fixture: wrap entry strings (see ``make_entry``) in an Atom feed."""

    def _make(*entries: str) -> bytes:
        body = "".join(entries)
        return f"{ATOM_HEADER}<title>arXiv Query</title>{body}</feed>".encode()

    return _make


# ── Fakes ────────────────────────────────────────────────────────────────────


class FakeCatalog:
    """CatalogService double: per-key results, optional gates to hold fetches open."""

    def __init__(self) -> None:
        self.results: dict[str, list[Paper] | Exception] = {}
        self.gates: dict[str, asyncio.Event] = {}
        self.calls: list[FeedIntent] = []
        self.fallback_calls: list[FeedIntent] = []

    @staticmethod
    def key_for(intent: FeedIntent) -> str:
        if intent.kind == "latest":
            return "latest"
        if intent.kind == "search":
            return f"search:{intent.query}"
        return intent.category

    def describe(self, intent: FeedIntent) -> str:
        return self.key_for(intent)

    async def _resolve(self, intent: FeedIntent) -> list[Paper]:
        key = self.key_for(intent)
        gate = self.gates.get(key)
        if gate is not None:
            await gate.wait()
        result = self.results.get(key, [])
        if isinstance(result, Exception):
            raise result
        return [paper.with_favorite(paper.is_favorite, paper.favorited_at) for paper in result]

    async def fetch(self, intent: FeedIntent) -> list[Paper]:
        self.calls.append(intent)
        return await self._resolve(intent)

    async def fetch_with_fallback(self, intent: FeedIntent) -> list[Paper]:
        self.fallback_calls.append(intent)
        return await self._resolve(intent)


class MemoryStore:
    """PaperStore double backed by a dict; ``fail`` makes every call raise StoreError."""

    def __init__(self, papers: list[Paper] | None = None) -> None:
        self.records: dict[str, Paper] = {p.paper_id: p for p in papers or []}
        self.fail = False
        self.upserts: list[Paper] = []

    def _check(self) -> None:
        if self.fail:
            raise StoreError("disk I/O error")

    def upsert(self, paper: Paper) -> None:
        self._check()
        self.upserts.append(paper)
        self.records[paper.paper_id] = paper

    def fetch_all(self) -> list[Paper]:
        self._check()
        return list(self.records.values())

    def fetch_favorites(self) -> list[Paper]:
        self._check()
        return [p for p in self.records.values() if p.is_favorite]

    def fetch_by_id(self, paper_id: str) -> Paper | None:
        self._check()
        return self.records.get(paper_id)


@pytest.fixture
def fake_catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def make_entry():
    """Factory fixture rendering one arXiv-style Atom entry string."""
    return _atom_entry
