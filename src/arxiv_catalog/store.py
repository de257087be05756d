"""SQLite-backed paper store keyed by arXiv id."""

from __future__ import annotations

import json
import logging
import sqlite3
from contextlib import closing
from datetime import UTC, datetime
from pathlib import Path

from platformdirs import user_config_dir

from arxiv_catalog.errors import StoreError
from arxiv_catalog.models import CONFIG_APP_NAME, Paper

logger = logging.getLogger(__name__)

STORE_DB_FILENAME = "papers.db"

_COLUMNS = (
    "paper_id, title, summary, authors, published, updated, pdf_url, "
    "landing_page_url, categories_json, is_favorite, favorited_at"
)


def get_store_db_path() -> Path:
    """Get the path to the paper store database."""
    config_dir = Path(user_config_dir(CONFIG_APP_NAME))
    return config_dir / STORE_DB_FILENAME


def init_store_db(db_path: Path) -> None:
    """Create the papers table if it doesn't exist."""
    db_path.parent.mkdir(parents=True, exist_ok=True)
    with closing(sqlite3.connect(str(db_path))) as conn, conn:
        conn.execute(
            "CREATE TABLE IF NOT EXISTS papers ("
            "  paper_id TEXT PRIMARY KEY,"
            "  title TEXT NOT NULL,"
            "  summary TEXT NOT NULL,"
            "  authors TEXT NOT NULL,"
            "  published TEXT NOT NULL,"
            "  updated TEXT,"
            "  pdf_url TEXT NOT NULL DEFAULT '',"
            "  landing_page_url TEXT NOT NULL DEFAULT '',"
            "  categories_json TEXT NOT NULL DEFAULT '[]',"
            "  is_favorite INTEGER NOT NULL DEFAULT 0,"
            "  favorited_at TEXT"
            ")"
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_papers_favorite ON papers (is_favorite)"
        )


def _format_timestamp(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.isoformat()


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    parsed = datetime.fromisoformat(value)
    # Ensure timezone-aware values for comparisons against fetched papers
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def _paper_to_row(paper: Paper) -> tuple:
    return (
        paper.paper_id,
        paper.title,
        paper.summary,
        paper.authors,
        _format_timestamp(paper.published),
        _format_timestamp(paper.updated),
        paper.pdf_url,
        paper.landing_page_url,
        json.dumps(list(paper.categories), ensure_ascii=False),
        1 if paper.is_favorite else 0,
        _format_timestamp(paper.favorited_at) if paper.is_favorite else None,
    )


def _row_to_paper(row: tuple) -> Paper | None:
    """Deserialize a stored row; returns None for rows that cannot be decoded."""
    (
        paper_id,
        title,
        summary,
        authors,
        published,
        updated,
        pdf_url,
        landing_page_url,
        categories_json,
        is_favorite,
        favorited_at,
    ) = row
    try:
        categories = json.loads(categories_json or "[]")
        if not isinstance(categories, list):
            categories = []
        is_fav = bool(is_favorite)
        return Paper(
            paper_id=paper_id,
            title=title,
            summary=summary,
            authors=authors,
            published=_parse_timestamp(published) or datetime.now(UTC),
            updated=_parse_timestamp(updated),
            pdf_url=pdf_url or "",
            landing_page_url=landing_page_url or "",
            categories=[str(c) for c in categories],
            is_favorite=is_fav,
            favorited_at=_parse_timestamp(favorited_at) if is_fav else None,
        )
    except (TypeError, ValueError, json.JSONDecodeError):
        logger.warning("Skipping undecodable stored paper %s", paper_id, exc_info=True)
        return None


class SqlitePaperStore:
    """PaperStore implementation over a single SQLite file.

    Every call opens a short-lived connection, so instances are safe to use
    from ``asyncio.to_thread`` workers. ``sqlite3.Error`` surfaces as
    ``StoreError``.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._initialized = False

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            init_store_db(self._db_path)
            self._initialized = True

    def _select(self, where: str = "", params: tuple = ()) -> list[Paper]:
        try:
            self._ensure_initialized()
            with closing(sqlite3.connect(str(self._db_path))) as conn:
                rows = conn.execute(
                    f"SELECT {_COLUMNS} FROM papers {where}", params
                ).fetchall()
        except (sqlite3.Error, OSError) as exc:
            logger.warning("Failed to read paper store %s", self._db_path, exc_info=True)
            raise StoreError(f"Paper store read failed: {exc}") from exc
        papers = []
        for row in rows:
            paper = _row_to_paper(row)
            if paper is not None:
                papers.append(paper)
        return papers

    def upsert(self, paper: Paper) -> None:
        """Insert the paper, or overwrite the stored record with the same id."""
        try:
            self._ensure_initialized()
            with closing(sqlite3.connect(str(self._db_path))) as conn, conn:
                conn.execute(
                    f"INSERT OR REPLACE INTO papers ({_COLUMNS}) "
                    "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                    _paper_to_row(paper),
                )
        except (sqlite3.Error, OSError) as exc:
            logger.warning("Failed to save paper %s", paper.paper_id, exc_info=True)
            raise StoreError(f"Paper store write failed: {exc}") from exc

    def fetch_all(self) -> list[Paper]:
        return self._select("ORDER BY paper_id")

    def fetch_favorites(self) -> list[Paper]:
        return self._select("WHERE is_favorite = 1 ORDER BY favorited_at DESC")

    def fetch_by_id(self, paper_id: str) -> Paper | None:
        papers = self._select("WHERE paper_id = ?", (paper_id,))
        return papers[0] if papers else None


__all__ = [
    "STORE_DB_FILENAME",
    "SqlitePaperStore",
    "get_store_db_path",
    "init_store_db",
]
