"""arXiv catalog core: Atom feed parsing, query building and synchronized paper views."""

from arxiv_catalog.coordinator import ViewCoordinator
from arxiv_catalog.errors import (
    CatalogError,
    InvalidQuery,
    NetworkError,
    ParseError,
    StoreError,
    TransportError,
)
from arxiv_catalog.models import CATEGORY_KEYS, CacheState, FeedIntent, Paper, UserConfig
from arxiv_catalog.parsing import parse_feed
from arxiv_catalog.query import build_request

__all__ = [
    "CATEGORY_KEYS",
    "CacheState",
    "CatalogError",
    "FeedIntent",
    "InvalidQuery",
    "NetworkError",
    "Paper",
    "ParseError",
    "StoreError",
    "TransportError",
    "UserConfig",
    "ViewCoordinator",
    "build_request",
    "parse_feed",
]
