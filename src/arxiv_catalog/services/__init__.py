"""Internal service layer: transport, catalog fetching, and interfaces."""

from arxiv_catalog.services.catalog_service import (
    fetch_papers,
    fetch_papers_with_fallback,
)
from arxiv_catalog.services.fetch_client import FetchResponse, HttpxFetchClient

__all__ = [
    "FetchResponse",
    "HttpxFetchClient",
    "fetch_papers",
    "fetch_papers_with_fallback",
]
