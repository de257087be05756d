"""Internal catalog service: intent -> request -> fetch -> parse, with fallback queries."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import TYPE_CHECKING

from arxiv_catalog.errors import NetworkError, TransportError
from arxiv_catalog.models import FeedIntent, Paper
from arxiv_catalog.parsing import parse_feed
from arxiv_catalog.query import ARXIV_API_URL, build_request, describe_intent, fallback_intents

if TYPE_CHECKING:
    from arxiv_catalog.services.interfaces import FetchClient

logger = logging.getLogger(__name__)


async def fetch_papers(
    *,
    client: FetchClient,
    intent: FeedIntent,
    base_url: str = ARXIV_API_URL,
    now: Callable[[], datetime] | None = None,
) -> list[Paper]:
    """Fetch and parse a single page of papers for an intent.

    Raises:
        InvalidQuery: the intent cannot be turned into a request.
        NetworkError: transport failure or a non-2xx status.
        ParseError: the response body is not an Atom feed.
    """
    request = build_request(intent, base_url=base_url)
    try:
        response = await client.fetch(request)
    except TransportError as exc:
        raise NetworkError(message=str(exc) or "transport error") from exc

    if not response.ok:
        logger.warning("%s returned HTTP %d", describe_intent(intent), response.status_code)
        raise NetworkError(status_code=response.status_code)

    papers = parse_feed(response.body, now=now)
    logger.debug("Fetched %d papers for %s", len(papers), describe_intent(intent))
    return papers


async def fetch_papers_with_fallback(
    *,
    client: FetchClient,
    intent: FeedIntent,
    base_url: str = ARXIV_API_URL,
    now: Callable[[], datetime] | None = None,
) -> list[Paper]:
    """Fetch an intent, retrying narrower known-good queries on empty or network failure.

    Only NetworkError and empty results trigger the fallback chain; InvalidQuery
    and ParseError propagate immediately. When every attempt fails, the primary
    attempt's error is raised (or its empty result returned).
    """
    primary_error: NetworkError | None = None
    try:
        papers = await fetch_papers(client=client, intent=intent, base_url=base_url, now=now)
    except NetworkError as exc:
        primary_error = exc
    else:
        if papers:
            return papers

    for fallback in fallback_intents(intent):
        logger.info(
            "Primary query %s %s, trying %s",
            describe_intent(intent),
            "failed" if primary_error else "was empty",
            describe_intent(fallback),
        )
        try:
            papers = await fetch_papers(client=client, intent=fallback, base_url=base_url, now=now)
        except NetworkError:
            logger.warning("Fallback query %s failed", describe_intent(fallback), exc_info=True)
            continue
        if papers:
            return papers

    if primary_error is not None:
        raise primary_error
    return []


__all__ = [
    "fetch_papers",
    "fetch_papers_with_fallback",
]
