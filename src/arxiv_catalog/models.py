"""Data models and constants for the arXiv catalog core."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime

# Application identity used for platformdirs paths
CONFIG_APP_NAME = "arxiv-catalog"

# Cache keys, in the fixed scan order used for de-duplication
LATEST_KEY = "latest"
SEARCH_KEY = "search"
FAVORITES_KEY = "favorites"
SUBJECT_CATEGORY_KEYS: tuple[str, ...] = (
    "cs",
    "math",
    "physics",
    "q-bio",
    "q-fin",
    "stat",
    "eess",
    "econ",
)
FETCHABLE_KEYS: tuple[str, ...] = (LATEST_KEY, *SUBJECT_CATEGORY_KEYS)
CATEGORY_KEYS: tuple[str, ...] = (*FETCHABLE_KEYS, SEARCH_KEY, FAVORITES_KEY)
CATEGORY_LABELS: dict[str, str] = {
    "latest": "Latest",
    "cs": "Computer Science",
    "math": "Mathematics",
    "physics": "Physics",
    "q-bio": "Quantitative Biology",
    "q-fin": "Quantitative Finance",
    "stat": "Statistics",
    "eess": "Electrical Engineering and Systems Science",
    "econ": "Economics",
    "search": "Search Results",
    "favorites": "Favorites",
}

# Intent kinds
INTENT_KINDS = ("latest", "category", "search")

# arXiv API sort options
SORT_FIELDS = ("lastUpdatedDate", "submittedDate", "relevance")
SORT_ORDERS = ("descending", "ascending")

# Page size limits (values outside are clamped by config before querying)
DEFAULT_MAX_RESULTS = 10
MAX_RESULTS_LIMIT = 100

# Auto-refresh interval limits, in minutes
DEFAULT_REFRESH_INTERVAL_MINUTES = 30
MIN_REFRESH_INTERVAL_MINUTES = 5
MAX_REFRESH_INTERVAL_MINUTES = 120

DEFAULT_USER_AGENT = "arxiv-catalog/1.0"
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30

# Cache states
STATUS_EMPTY = "empty"
STATUS_LOADING = "loading"
STATUS_LOADED = "loaded"
STATUS_ERRORED = "errored"


@dataclass(slots=True)
class Paper:
    """Represents one normalized arXiv paper record."""

    paper_id: str
    title: str
    summary: str
    authors: str
    published: datetime
    updated: datetime | None = None
    pdf_url: str = ""
    landing_page_url: str = ""
    categories: list[str] = field(default_factory=list)
    is_favorite: bool = False
    favorited_at: datetime | None = None

    @property
    def primary_category(self) -> str:
        return self.categories[0] if self.categories else ""

    @property
    def category_text(self) -> str:
        """Categories joined with single spaces, primary first."""
        return " ".join(self.categories)

    def with_favorite(self, is_favorite: bool, favorited_at: datetime | None) -> Paper:
        """Return a copy carrying the given favorite state."""
        return replace(
            self,
            categories=list(self.categories),
            is_favorite=is_favorite,
            favorited_at=favorited_at if is_favorite else None,
        )


@dataclass(slots=True)
class FeedIntent:
    """What the caller wants fetched: browse latest, browse a category, or search."""

    kind: str
    category: str = ""
    query: str = ""
    page_size: int = DEFAULT_MAX_RESULTS
    sort_by: str = "lastUpdatedDate"
    sort_order: str = "descending"
    # Exact categories OR-ed together for "latest"; empty means the default areas
    any_of: tuple[str, ...] = ()

    @classmethod
    def latest(
        cls, page_size: int = DEFAULT_MAX_RESULTS, any_of: tuple[str, ...] = ()
    ) -> FeedIntent:
        return cls(kind="latest", page_size=page_size, any_of=any_of)

    @classmethod
    def browse(cls, category: str, page_size: int = DEFAULT_MAX_RESULTS) -> FeedIntent:
        return cls(kind="category", category=category, page_size=page_size)

    @classmethod
    def search(
        cls, query: str, category: str = "", page_size: int = DEFAULT_MAX_RESULTS
    ) -> FeedIntent:
        return cls(kind="search", query=query, category=category, page_size=page_size)


@dataclass(slots=True)
class CacheState:
    """Current contents and load status of one named cache."""

    status: str = STATUS_EMPTY
    papers: list[Paper] = field(default_factory=list)
    error: str | None = None


@dataclass(slots=True)
class UserConfig:
    """Preferences passed explicitly into the coordinator."""

    max_results: int = DEFAULT_MAX_RESULTS
    default_category: str = LATEST_KEY
    refresh_interval_minutes: int = DEFAULT_REFRESH_INTERVAL_MINUTES
    auto_refresh: bool = False
    show_notifications: bool = False
    use_fallback_queries: bool = True
    persist_fetched_papers: bool = True
    request_timeout_seconds: int = DEFAULT_REQUEST_TIMEOUT_SECONDS
    user_agent: str = DEFAULT_USER_AGENT
    version: int = 1


__all__ = [
    "CATEGORY_KEYS",
    "CATEGORY_LABELS",
    "CONFIG_APP_NAME",
    "DEFAULT_MAX_RESULTS",
    "DEFAULT_REFRESH_INTERVAL_MINUTES",
    "DEFAULT_REQUEST_TIMEOUT_SECONDS",
    "DEFAULT_USER_AGENT",
    "FAVORITES_KEY",
    "FETCHABLE_KEYS",
    "INTENT_KINDS",
    "LATEST_KEY",
    "MAX_REFRESH_INTERVAL_MINUTES",
    "MAX_RESULTS_LIMIT",
    "MIN_REFRESH_INTERVAL_MINUTES",
    "SEARCH_KEY",
    "SORT_FIELDS",
    "SORT_ORDERS",
    "STATUS_EMPTY",
    "STATUS_ERRORED",
    "STATUS_LOADED",
    "STATUS_LOADING",
    "SUBJECT_CATEGORY_KEYS",
    "CacheState",
    "FeedIntent",
    "Paper",
    "UserConfig",
]
