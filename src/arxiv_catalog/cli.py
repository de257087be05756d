"""Command-line harness: load one view through the coordinator and print it."""

from __future__ import annotations

import argparse
import asyncio
import logging
import logging.handlers
import sys
from collections.abc import Callable
from pathlib import Path

from platformdirs import user_config_dir
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from arxiv_catalog.action_messages import build_actionable_error, build_favorite_toggled_message
from arxiv_catalog.config import clamp_max_results, load_config
from arxiv_catalog.coordinator import ViewCoordinator
from arxiv_catalog.models import (
    CATEGORY_LABELS,
    CONFIG_APP_NAME,
    FAVORITES_KEY,
    FETCHABLE_KEYS,
    LATEST_KEY,
    MAX_RESULTS_LIMIT,
    SEARCH_KEY,
    Paper,
    UserConfig,
)
from arxiv_catalog.services.interfaces import AppServices, build_default_app_services

logger = logging.getLogger(__name__)

ServicesFactory = Callable[..., AppServices]


def _configure_logging(debug: bool) -> None:
    """Configure logging. When debug=True, logs to file at DEBUG level."""
    if not debug:
        # Default: keep library logging out of the printed tables
        logging.disable(logging.CRITICAL)
        return

    log_dir = Path(user_config_dir(CONFIG_APP_NAME))
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "debug.log"

    handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s %(name)s %(levelname)s %(message)s",
            datefmt="%H:%M:%S",
        )
    )
    logging.root.addHandler(handler)
    logging.root.setLevel(logging.DEBUG)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="arxiv-catalog",
        description="Fetch arXiv papers by category or search and manage favorites",
    )
    view = parser.add_mutually_exclusive_group()
    view.add_argument(
        "--category",
        choices=FETCHABLE_KEYS,
        default=None,
        help="Category to load (default: config default_category)",
    )
    view.add_argument(
        "--search",
        type=str,
        default=None,
        help="Search all fields for this text",
    )
    view.add_argument(
        "--favorites",
        action="store_true",
        help="Show saved favorites instead of fetching",
    )
    parser.add_argument(
        "--search-category",
        type=str,
        default="",
        help="Restrict --search to an arXiv category prefix (for example: cs.AI)",
    )
    parser.add_argument(
        "--toggle",
        metavar="ID",
        type=str,
        default=None,
        help="Toggle favorite status for a paper id after loading",
    )
    parser.add_argument(
        "--max-results",
        type=int,
        default=None,
        help=f"Page size (1-{MAX_RESULTS_LIMIT}; default: config value)",
    )
    parser.add_argument(
        "--db",
        type=Path,
        default=None,
        help="Paper database path (default: papers.db in the config directory)",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging to file (~/.config/arxiv-catalog/debug.log)",
    )
    return parser


def _render_papers(console: Console, title: str, papers: list[Paper]) -> None:
    table = Table(title=escape(title), show_lines=False)
    table.add_column("", width=1)
    table.add_column("ID", no_wrap=True)
    table.add_column("Title")
    table.add_column("Authors")
    table.add_column("Updated", no_wrap=True)
    for paper in papers:
        stamp = paper.updated or paper.published
        table.add_row(
            "*" if paper.is_favorite else "",
            escape(paper.paper_id),
            escape(paper.title),
            escape(paper.authors),
            stamp.strftime("%Y-%m-%d"),
        )
    console.print(table)


async def _load_view(args: argparse.Namespace, coordinator: ViewCoordinator) -> tuple[str, bool]:
    """Load the requested view; returns its cache key and whether loading succeeded."""
    if args.favorites:
        coordinator.select(FAVORITES_KEY)
        return FAVORITES_KEY, await coordinator.load_favorites()
    if args.search is not None:
        return SEARCH_KEY, await coordinator.search(args.search, args.search_category)

    key = args.category or coordinator.config.default_category
    if key == SEARCH_KEY:
        key = LATEST_KEY
    coordinator.select(key)
    return key, await coordinator.reload(key)


async def _run(
    args: argparse.Namespace,
    coordinator: ViewCoordinator,
    console: Console,
) -> int:
    key, ok = await _load_view(args, coordinator)
    if not ok:
        message = coordinator.error(key)
        if message:
            print(message, file=sys.stderr)

    if args.toggle:
        load_error = coordinator.error(coordinator.active_key)
        paper = await coordinator.toggle_favorite(args.toggle.strip())
        if paper is None:
            print(coordinator.error(coordinator.active_key) or "", file=sys.stderr)
            return 1
        console.print(escape(build_favorite_toggled_message(paper)))
        error = coordinator.error(coordinator.active_key)
        if error and error != load_error:
            print(error, file=sys.stderr)

    papers = coordinator.papers(key)
    if papers:
        _render_papers(console, CATEGORY_LABELS.get(key, key), papers)
    elif ok:
        console.print(f"No papers in {escape(CATEGORY_LABELS.get(key, key))}.")
    return 0 if ok or papers else 1


def main(
    argv: list[str] | None = None,
    *,
    load_config_fn: Callable[[], UserConfig] = load_config,
    services_factory: ServicesFactory = build_default_app_services,
    configure_logging_fn: Callable[[bool], None] = _configure_logging,
    console: Console | None = None,
) -> int:
    """Main entry point. Returns exit code."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.search is not None and not args.search.strip():
        print(
            build_actionable_error(
                "run the search",
                why="the search text is empty",
                next_step="pass some words to --search",
            ),
            file=sys.stderr,
        )
        return 1
    if args.search_category and args.search is None:
        print("Error: --search-category requires --search", file=sys.stderr)
        return 1

    configure_logging_fn(args.debug)
    logger.debug("arxiv-catalog starting, argv=%s", argv)

    config = load_config_fn()
    if args.max_results is not None:
        config.max_results = clamp_max_results(args.max_results)

    services = services_factory(config, db_path=args.db)
    coordinator = ViewCoordinator(services, config)
    return asyncio.run(_run(args, coordinator, console or Console()))


__all__ = [
    "_configure_logging",
    "main",
]
