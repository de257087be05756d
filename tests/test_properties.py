"""Property-based tests using Hypothesis.

Verifies invariants across parsing, query building, config clamping and
favorites ordering. Each test runs 50 examples in CI, 200 in dev.

Run:
    pytest tests/test_properties.py -v
    pytest tests/test_properties.py -v --hypothesis-seed=0  # reproducible
"""

from __future__ import annotations

from datetime import UTC, datetime
from xml.sax.saxutils import escape

import hypothesis.strategies as st
from hypothesis import given, settings

from arxiv_catalog.config import (
    _config_to_dict,
    _dict_to_config,
    clamp_max_results,
    clamp_refresh_interval,
)
from arxiv_catalog.coordinator import sort_favorites
from arxiv_catalog.errors import InvalidQuery
from arxiv_catalog.models import (
    CATEGORY_KEYS,
    MAX_REFRESH_INTERVAL_MINUTES,
    MAX_RESULTS_LIMIT,
    MIN_REFRESH_INTERVAL_MINUTES,
    FeedIntent,
    Paper,
    UserConfig,
)
from arxiv_catalog.parsing import normalize_text, parse_feed
from arxiv_catalog.query import build_search_query

# ── Hypothesis profiles ─────────────────────────────────────────────
settings.register_profile("ci", max_examples=50, deadline=None)
settings.register_profile("dev", max_examples=200, deadline=None)
settings.load_profile("ci")

# ── Custom strategies ────────────────────────────────────────────────

_FIXED_NOW = datetime(2025, 1, 1, tzinfo=UTC)


@st.composite
def arxiv_ids(draw: st.DrawFn) -> str:
    """Generate new-style arXiv ids with a version, like '2401.12345v2'."""
    yy = draw(st.integers(min_value=7, max_value=99))
    mm = draw(st.integers(min_value=1, max_value=12))
    number = draw(st.integers(min_value=1, max_value=99999))
    version = draw(st.integers(min_value=1, max_value=9))
    return f"{yy:02d}{mm:02d}.{number:05d}v{version}"


# XML 1.0 cannot carry most control characters; keep to printable text + whitespace
_xml_text = st.text(
    alphabet=st.characters(
        blacklist_categories=("Cs", "Cc", "Cn"),
        whitelist_characters=" \t\n",
    ),
    max_size=60,
)

_titles = _xml_text.filter(lambda s: normalize_text(s) != "")


def _entry(paper_id: str, title: str) -> str:
    return (
        f"<entry><id>http://arxiv.org/abs/{paper_id}</id>"
        f"<title>{escape(title)}</title>"
        "<published>2024-01-15T12:00:00Z</published></entry>"
    )


def _feed(entries: list[str]) -> bytes:
    body = "".join(entries)
    return f'<feed xmlns="http://www.w3.org/2005/Atom">{body}</feed>'.encode()


# ── Parsing ──────────────────────────────────────────────────────────


@given(st.lists(st.tuples(arxiv_ids(), _titles), max_size=8, unique_by=lambda t: t[0]))
def test_parse_feed_preserves_order_and_ids(rows) -> None:
    papers = parse_feed(_feed([_entry(i, t) for i, t in rows]), now=lambda: _FIXED_NOW)

    assert [p.paper_id for p in papers] == [i for i, _ in rows]
    assert [p.title for p in papers] == [normalize_text(t) for _, t in rows]


@given(st.lists(st.tuples(arxiv_ids(), _titles), min_size=1, max_size=6))
def test_parse_feed_ids_are_unique(rows) -> None:
    papers = parse_feed(_feed([_entry(i, t) for i, t in rows]))
    ids = [p.paper_id for p in papers]
    assert len(ids) == len(set(ids))
    assert set(ids) == {i for i, _ in rows}


@given(st.lists(st.tuples(arxiv_ids(), _titles), max_size=5))
def test_parse_feed_is_deterministic(rows) -> None:
    raw = _feed([_entry(i, t) for i, t in rows])
    assert parse_feed(raw, now=lambda: _FIXED_NOW) == parse_feed(raw, now=lambda: _FIXED_NOW)


@given(st.text())
def test_normalize_text_is_idempotent(text: str) -> None:
    once = normalize_text(text)
    assert normalize_text(once) == once
    assert once == once.strip()
    assert "  " not in once


# ── Query ────────────────────────────────────────────────────────────


@given(st.text(min_size=1, max_size=40))
def test_search_query_is_url_safe_or_invalid(text: str) -> None:
    try:
        query = build_search_query(FeedIntent.search(text))
    except InvalidQuery:
        return
    assert query.startswith("all:")
    encoded = query[len("all:") :]
    assert " " not in encoded
    assert "&" not in encoded
    assert "#" not in encoded


# ── Config ───────────────────────────────────────────────────────────


@given(st.integers(min_value=-(10**6), max_value=10**6))
def test_clamped_max_results_in_range(value: int) -> None:
    assert 1 <= clamp_max_results(value) <= MAX_RESULTS_LIMIT


@given(st.integers(min_value=-(10**6), max_value=10**6))
def test_clamped_refresh_interval_in_range(value: int) -> None:
    clamped = clamp_refresh_interval(value)
    assert MIN_REFRESH_INTERVAL_MINUTES <= clamped <= MAX_REFRESH_INTERVAL_MINUTES


@given(
    st.builds(
        UserConfig,
        max_results=st.integers(min_value=1, max_value=MAX_RESULTS_LIMIT),
        default_category=st.sampled_from(CATEGORY_KEYS),
        refresh_interval_minutes=st.integers(
            min_value=MIN_REFRESH_INTERVAL_MINUTES, max_value=MAX_REFRESH_INTERVAL_MINUTES
        ),
        auto_refresh=st.booleans(),
        show_notifications=st.booleans(),
        use_fallback_queries=st.booleans(),
        persist_fetched_papers=st.booleans(),
        request_timeout_seconds=st.integers(min_value=1, max_value=300),
    )
)
def test_config_round_trip(config: UserConfig) -> None:
    assert _dict_to_config(_config_to_dict(config)) == config


@given(st.dictionaries(st.text(max_size=10), st.none() | st.integers() | st.text(max_size=5)))
def test_dict_to_config_never_raises(data: dict) -> None:
    config = _dict_to_config(data)
    assert 1 <= config.max_results <= MAX_RESULTS_LIMIT
    assert config.default_category in CATEGORY_KEYS


# ── Favorites ordering ───────────────────────────────────────────────


@given(
    st.lists(
        st.none() | st.datetimes(min_value=datetime(1970, 1, 1), timezones=st.just(UTC)),
        max_size=10,
    )
)
def test_sort_favorites_descending_with_undated_last(stamps) -> None:
    papers = [
        Paper(
            paper_id=str(n),
            title="t",
            summary="",
            authors="",
            published=_FIXED_NOW,
            is_favorite=True,
            favorited_at=stamp,
        )
        for n, stamp in enumerate(stamps)
    ]
    ordered = [p.favorited_at for p in sort_favorites(papers)]

    dated = [s for s in ordered if s is not None]
    assert dated == sorted(dated, reverse=True)
    if None in ordered:
        assert all(s is None for s in ordered[ordered.index(None) :])
