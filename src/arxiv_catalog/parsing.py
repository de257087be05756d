"""Atom feed parsing: raw arXiv API bytes to normalized Paper records."""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from collections.abc import Callable
from datetime import UTC, datetime

from arxiv_catalog.errors import ParseError
from arxiv_catalog.models import Paper

logger = logging.getLogger(__name__)

ATOM_NAMESPACE = "http://www.w3.org/2005/Atom"
PDF_MIME_TYPE = "application/pdf"

# arXiv reports query errors as a regular entry whose id points here
_API_ERROR_MARKER = "/api/errors"


def normalize_text(text: str | None) -> str:
    """Trim and collapse internal whitespace (newlines and tabs included)."""
    if not text:
        return ""
    return " ".join(text.split())


def extract_paper_id(raw_id: str) -> str:
    """Return the last path segment of an entry id URL.

    Examples:
    - http://arxiv.org/abs/2401.12345v2 -> 2401.12345v2
    - http://arxiv.org/abs/hep-th/9901001v1 -> 9901001v1
    """
    cleaned = raw_id.strip().rstrip("/")
    if not cleaned:
        return ""
    return cleaned.rsplit("/", 1)[-1].strip()


def parse_timestamp(raw: str) -> datetime | None:
    """Parse an Atom date-time into an aware UTC datetime, or None if malformed."""
    cleaned = raw.strip()
    if not cleaned:
        return None

    normalized = cleaned
    if normalized.endswith("Z"):
        normalized = normalized[:-1] + "+00:00"

    try:
        parsed = datetime.fromisoformat(normalized)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=UTC)
    return parsed.astimezone(UTC)


def _qualify(namespace: str, tag: str) -> str:
    return f"{{{namespace}}}{tag}" if namespace else tag


def _namespace_of(element: ET.Element) -> str:
    if element.tag.startswith("{"):
        return element.tag[1 : element.tag.index("}")]
    return ""


def _child_text(node: ET.Element, namespace: str, tag: str) -> str:
    """Extract normalized text of the first matching child element."""
    found = node.find(_qualify(namespace, tag))
    if found is None:
        return ""
    return normalize_text("".join(found.itertext()))


def _extract_links(entry: ET.Element, namespace: str) -> tuple[str, str]:
    """Return (pdf_url, landing_page_url) from typed link relations."""
    pdf_url = ""
    landing_page_url = ""
    for link in entry.findall(_qualify(namespace, "link")):
        href = (link.get("href") or "").strip()
        if not href:
            continue
        rel = (link.get("rel") or "alternate").strip().lower()
        link_type = (link.get("type") or "").strip().lower()
        title = (link.get("title") or "").strip().lower()
        is_pdf = (
            link_type == PDF_MIME_TYPE
            or title == "pdf"
            or (rel == "related" and ("/pdf/" in href or href.endswith(".pdf")))
        )
        if is_pdf:
            if not pdf_url:
                pdf_url = href
        elif rel == "alternate" and not landing_page_url:
            landing_page_url = href
    return pdf_url, landing_page_url


def _extract_categories(entry: ET.Element, namespace: str) -> list[str]:
    categories: list[str] = []
    for category in entry.findall(_qualify(namespace, "category")):
        term = normalize_text(category.get("term"))
        if term and term not in categories:
            categories.append(term)
    return categories


def _parse_entry(
    entry: ET.Element, namespace: str, now: Callable[[], datetime]
) -> Paper | None:
    """Build one Paper, or None when an identity field (id, title) is missing."""
    raw_id = _child_text(entry, namespace, "id")
    if _API_ERROR_MARKER in raw_id:
        logger.warning(
            "arXiv API reported an error: %s", _child_text(entry, namespace, "summary")
        )
        return None

    paper_id = extract_paper_id(raw_id)
    title = _child_text(entry, namespace, "title")
    if not paper_id or not title:
        logger.debug("Dropping feed entry without id or title (id=%r)", raw_id)
        return None

    author_names = [
        normalize_text("".join(name.itertext()))
        for name in entry.findall(
            f"{_qualify(namespace, 'author')}/{_qualify(namespace, 'name')}"
        )
    ]

    raw_published = _child_text(entry, namespace, "published")
    published = parse_timestamp(raw_published)
    if published is None:
        logger.debug("Unparseable published date %r for %s", raw_published, paper_id)
        published = now()

    raw_updated = _child_text(entry, namespace, "updated")
    if raw_updated:
        updated = parse_timestamp(raw_updated)
        if updated is None:
            logger.debug("Unparseable updated date %r for %s", raw_updated, paper_id)
            updated = now()
    else:
        updated = published

    pdf_url, landing_page_url = _extract_links(entry, namespace)
    return Paper(
        paper_id=paper_id,
        title=title,
        summary=_child_text(entry, namespace, "summary"),
        authors=", ".join(name for name in author_names if name),
        published=published,
        updated=updated,
        pdf_url=pdf_url,
        landing_page_url=landing_page_url,
        categories=_extract_categories(entry, namespace),
    )


def parse_feed(raw: bytes | str, *, now: Callable[[], datetime] | None = None) -> list[Paper]:
    """Parse an Atom feed into Paper records, preserving server order.

    Malformed entries are dropped; malformed metadata fields are defaulted.
    Raises ParseError only when the payload as a whole is not an Atom feed.
    """
    clock = now or (lambda: datetime.now(UTC))
    if isinstance(raw, str):
        raw = raw.encode("utf-8")
    if not raw.strip():
        raise ParseError("Empty feed response")

    try:
        root = ET.fromstring(raw)
    except ET.ParseError as exc:
        raise ParseError(f"Invalid feed XML: {exc}") from exc

    namespace = _namespace_of(root)
    if root.tag != _qualify(namespace, "feed") or namespace not in ("", ATOM_NAMESPACE):
        raise ParseError(f"Unexpected feed root element: {root.tag}")

    papers: list[Paper] = []
    seen_ids: set[str] = set()
    entries = root.findall(_qualify(namespace, "entry"))
    for entry in entries:
        paper = _parse_entry(entry, namespace, clock)
        if paper is None or paper.paper_id in seen_ids:
            continue
        seen_ids.add(paper.paper_id)
        papers.append(paper)

    logger.debug("Parsed %d of %d feed entries", len(papers), len(entries))
    return papers


__all__ = [
    "ATOM_NAMESPACE",
    "PDF_MIME_TYPE",
    "extract_paper_id",
    "normalize_text",
    "parse_feed",
    "parse_timestamp",
]
