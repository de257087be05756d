"""arXiv API request construction from caller intents."""

from __future__ import annotations

import re
from urllib.parse import quote

from arxiv_catalog.errors import InvalidQuery
from arxiv_catalog.models import INTENT_KINDS, SORT_FIELDS, SORT_ORDERS, FeedIntent

ARXIV_API_URL = "https://export.arxiv.org/api/query"

# Most active top-level subject areas, OR-ed together for the "latest" view
LATEST_SUBJECT_PREFIXES: tuple[str, ...] = ("cs", "stat", "math")

# Narrower, known-good queries tried in order when "latest" comes back empty or fails
LATEST_FALLBACK_CATEGORIES: tuple[tuple[str, ...], ...] = (
    ("cs.LG", "cs.AI", "cs.CV"),
    ("cs.LG",),
)

# Category codes look like "cs", "cs.AI", "q-bio.NC", "hep-th"
_CATEGORY_PATTERN = re.compile(r"^[A-Za-z0-9.\-]+$")

_OR = "+OR+"
_AND = "+AND+"


def _clean_category(category: str) -> str:
    cleaned = category.strip()
    if not cleaned or not _CATEGORY_PATTERN.match(cleaned):
        raise InvalidQuery(f"Invalid category code: {category!r}")
    return cleaned


def _encode_text(text: str) -> str:
    """Percent-encode free text so it is safe inside the query string."""
    try:
        return quote(text, safe="", encoding="utf-8", errors="strict")
    except UnicodeEncodeError as exc:
        raise InvalidQuery(f"Search text cannot be encoded: {exc.reason}") from exc


def build_search_query(intent: FeedIntent) -> str:
    """Build the ``search_query`` constraint for an intent.

    - latest: ``cat:cs.*+OR+cat:stat.*+OR+cat:math.*`` (or the exact
      ``any_of`` categories when given)
    - category: ``cat:<code>*``
    - search: ``all:<text>`` optionally ``+AND+cat:<code>*``
    """
    if intent.kind == "latest":
        if intent.any_of:
            return _OR.join(f"cat:{_clean_category(code)}" for code in intent.any_of)
        return _OR.join(f"cat:{prefix}.*" for prefix in LATEST_SUBJECT_PREFIXES)

    if intent.kind == "category":
        return f"cat:{_clean_category(intent.category)}*"

    if intent.kind == "search":
        text = " ".join(intent.query.split())
        if not text:
            raise InvalidQuery("Search text must not be empty")
        constraint = f"all:{_encode_text(text)}"
        if intent.category.strip():
            constraint += f"{_AND}cat:{_clean_category(intent.category)}*"
        return constraint

    raise InvalidQuery(
        f"Unsupported intent kind: {intent.kind!r}. Expected one of: {', '.join(INTENT_KINDS)}"
    )


def build_request(intent: FeedIntent, *, base_url: str = ARXIV_API_URL) -> str:
    """Build the full request URL for an intent.

    Page size is trusted as given; callers clamp it to 1-100 beforehand.
    """
    if intent.sort_by not in SORT_FIELDS:
        raise InvalidQuery(f"Unsupported sort field: {intent.sort_by!r}")
    if intent.sort_order not in SORT_ORDERS:
        raise InvalidQuery(f"Unsupported sort order: {intent.sort_order!r}")

    search_query = build_search_query(intent)
    return (
        f"{base_url}?search_query={search_query}"
        f"&start=0&max_results={intent.page_size}"
        f"&sortBy={intent.sort_by}&sortOrder={intent.sort_order}"
    )


def describe_intent(intent: FeedIntent) -> str:
    """Build a human-readable label for an intent (never raises)."""
    if intent.kind == "latest":
        codes = intent.any_of or tuple(f"{p}.*" for p in LATEST_SUBJECT_PREFIXES)
        return "latest (" + " OR ".join(codes) + ")"
    if intent.kind == "category":
        return f"cat:{intent.category.strip()}*"
    if intent.kind == "search":
        label = f'search "{" ".join(intent.query.split())}"'
        if intent.category.strip():
            label += f" in {intent.category.strip()}"
        return label
    return intent.kind


def fallback_intents(intent: FeedIntent) -> list[FeedIntent]:
    """Return the narrower queries to try when a primary "latest" fetch fails."""
    if intent.kind != "latest" or intent.any_of:
        return []
    return [
        FeedIntent.latest(page_size=intent.page_size, any_of=codes)
        for codes in LATEST_FALLBACK_CATEGORIES
    ]


__all__ = [
    "ARXIV_API_URL",
    "LATEST_FALLBACK_CATEGORIES",
    "LATEST_SUBJECT_PREFIXES",
    "build_request",
    "build_search_query",
    "describe_intent",
    "fallback_intents",
]
