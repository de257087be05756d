"""User-facing copy for coordinator errors and CLI confirmations."""

from __future__ import annotations

from arxiv_catalog.errors import CatalogError, InvalidQuery, NetworkError, ParseError, StoreError
from arxiv_catalog.models import CATEGORY_LABELS, Paper


def _ensure_sentence(text: str) -> str:
    """Return text with terminal sentence punctuation."""
    cleaned = text.strip()
    if not cleaned:
        return ""
    if cleaned.endswith((".", "!", "?")):
        return cleaned
    return f"{cleaned}."


def build_next_step_hint(next_step: str) -> str:
    """Build a canonical next-step guidance line."""
    return f"Next step: {_ensure_sentence(next_step)}"


def build_actionable_error(
    action: str,
    *,
    next_step: str,
    why: str | None = None,
) -> str:
    """Build a 2-3 line actionable error message."""
    lines = [f"Could not {action.strip()}."]
    if why:
        lines.append(f"Why: {_ensure_sentence(why)}")
    lines.append(build_next_step_hint(next_step))
    return "\n".join(lines)


def build_actionable_success(
    message: str,
    *,
    detail: str | None = None,
) -> str:
    """Build a concise success message with optional detail."""
    lines = [_ensure_sentence(message)]
    if detail:
        lines.append(_ensure_sentence(detail))
    return "\n".join(lines)


def next_step_for_error(exc: CatalogError) -> str:
    """Pick the guidance line that matches an error class."""
    if isinstance(exc, InvalidQuery):
        return "adjust the search text or category and try again"
    if isinstance(exc, NetworkError):
        if exc.status_code is not None and exc.status_code >= 500:
            return "arXiv may be temporarily unavailable; reload in a few minutes"
        return "check your connection and reload"
    if isinstance(exc, ParseError):
        return "reload later; arXiv returned an unreadable feed"
    if isinstance(exc, StoreError):
        return "check that the paper database is writable"
    return "reload and try again"


def category_label(key: str) -> str:
    return CATEGORY_LABELS.get(key, key)


def build_load_error(key: str, exc: CatalogError) -> str:
    """Build the visible error recorded when a cache reload fails."""
    return build_actionable_error(
        f"load {category_label(key)}",
        why=exc.message,
        next_step=next_step_for_error(exc),
    )


def build_search_error(query: str, exc: CatalogError) -> str:
    return build_actionable_error(
        f'search arXiv for "{query.strip()}"',
        why=exc.message,
        next_step=next_step_for_error(exc),
    )


def build_favorite_persist_error(paper_id: str, exc: CatalogError) -> str:
    """Build the error shown when a toggle was applied in memory only."""
    return build_actionable_error(
        f"save favorite for {paper_id}",
        why=f"{exc.message}; the change is kept for this session only",
        next_step=next_step_for_error(exc),
    )


def build_favorites_load_error(exc: CatalogError) -> str:
    return build_actionable_error(
        "load saved favorites",
        why=f"{exc.message}; showing favorites from this session",
        next_step=next_step_for_error(exc),
    )


def build_unknown_paper_error(paper_id: str) -> str:
    return build_actionable_error(
        f"find paper {paper_id}",
        next_step="reload a category that lists it, then try again",
    )


def build_favorite_toggled_message(paper: Paper) -> str:
    """Build the confirmation line shown after a toggle."""
    action = "Added to favorites" if paper.is_favorite else "Removed from favorites"
    return build_actionable_success(f"{action}: {paper.paper_id}", detail=paper.title)


__all__ = [
    "build_actionable_error",
    "build_actionable_success",
    "build_favorite_persist_error",
    "build_favorite_toggled_message",
    "build_favorites_load_error",
    "build_load_error",
    "build_next_step_hint",
    "build_search_error",
    "build_unknown_paper_error",
    "category_label",
    "next_step_for_error",
]
