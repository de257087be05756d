"""ViewCoordinator: keeps category caches, search results and favorites consistent.

All state is owned by one asyncio event loop. The only awaits are catalog
fetches and store calls (run via ``asyncio.to_thread``); every cache commit is
a synchronous replacement of a ``CacheState`` object, so observers never see a
half-updated list.

Favorite reconciliation precedence for a freshly fetched paper:

  1. state recorded in memory this session (toggles)
  2. favorite state already held by any in-memory cache
  3. the store's favorite record
  4. the fetched default (not favorite)
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Coroutine
from dataclasses import fields, replace
from datetime import UTC, datetime
from typing import Any

from arxiv_catalog.action_messages import (
    build_favorite_persist_error,
    build_favorites_load_error,
    build_load_error,
    build_search_error,
    build_unknown_paper_error,
)
from arxiv_catalog.config import clamp_max_results, clamp_refresh_interval
from arxiv_catalog.errors import CatalogError, StoreError
from arxiv_catalog.events import (
    ActiveKeyChanged,
    AutoRefreshChanged,
    CacheReplaced,
    CoordinatorEvent,
    DefaultCategoryChanged,
    ErrorChanged,
    LoadingChanged,
    PageSizeChanged,
    RefreshIntervalChanged,
    SettingChanged,
    SettingsReset,
)
from arxiv_catalog.models import (
    CATEGORY_KEYS,
    FAVORITES_KEY,
    FETCHABLE_KEYS,
    LATEST_KEY,
    SEARCH_KEY,
    STATUS_EMPTY,
    STATUS_ERRORED,
    STATUS_LOADED,
    STATUS_LOADING,
    CacheState,
    FeedIntent,
    Paper,
    UserConfig,
)
from arxiv_catalog.services.interfaces import AppServices

logger = logging.getLogger(__name__)

Listener = Callable[[CoordinatorEvent], None]

_DISTANT_PAST = datetime.min.replace(tzinfo=UTC)


def sort_favorites(papers: list[Paper]) -> list[Paper]:
    """Sort by favorited_at descending; papers without a timestamp go last."""
    return sorted(papers, key=lambda p: p.favorited_at or _DISTANT_PAST, reverse=True)


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _unexpected_error(exc: Exception) -> CatalogError:
    return CatalogError(str(exc) or type(exc).__name__)


class ViewCoordinator:
    """Single owner of every paper cache and the favorites set."""

    def __init__(
        self,
        services: AppServices,
        config: UserConfig | None = None,
        *,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._catalog = services.catalog
        self._store = services.store
        self._config = config if config is not None else UserConfig()
        self._clock = clock

        self._caches: dict[str, CacheState] = {key: CacheState() for key in CATEGORY_KEYS}
        self._inflight: dict[str, asyncio.Task[bool]] = {}
        # Favorite state decided this session, keyed by paper id
        self._known_favorites: dict[str, tuple[bool, datetime | None]] = {}
        self._store_lock = asyncio.Lock()
        self._listeners: list[Listener] = []

        self._active_key = self._config.default_category
        self._search_query = ""
        self._search_category = ""
        self._search_active = False
        self._search_generation = 0
        self._search_task: asyncio.Task[bool] | None = None
        self._search_task_args: tuple[str, str] | None = None

    # ========================================================================
    # Accessors
    # ========================================================================

    @property
    def config(self) -> UserConfig:
        return self._config

    @property
    def active_key(self) -> str:
        return self._active_key

    @property
    def active_papers(self) -> list[Paper]:
        return self.papers(self._active_key)

    @property
    def search_query(self) -> str:
        return self._search_query

    @property
    def search_category(self) -> str:
        return self._search_category

    @property
    def is_search_active(self) -> bool:
        return self._search_active

    @property
    def favorite_ids(self) -> set[str]:
        """Ids currently favorited anywhere in memory."""
        ids = {
            paper.paper_id
            for state in self._caches.values()
            for paper in state.papers
            if paper.is_favorite
        }
        for paper_id, (is_favorite, _) in self._known_favorites.items():
            if is_favorite:
                ids.add(paper_id)
            else:
                ids.discard(paper_id)
        return ids

    def state(self, key: str) -> CacheState:
        self._check_key(key)
        return self._caches[key]

    def papers(self, key: str) -> list[Paper]:
        return list(self.state(key).papers)

    def is_loading(self, key: str) -> bool:
        return self.state(key).status == STATUS_LOADING

    def error(self, key: str) -> str | None:
        return self.state(key).error

    def unique_papers(self) -> list[Paper]:
        """One paper per id across latest + subject caches, first occurrence wins."""
        seen: set[str] = set()
        unique: list[Paper] = []
        for key in FETCHABLE_KEYS:
            for paper in self._caches[key].papers:
                if paper.paper_id not in seen:
                    seen.add(paper.paper_id)
                    unique.append(paper)
        return unique

    # ========================================================================
    # Change notification
    # ========================================================================

    def subscribe(self, callback: Listener) -> Callable[[], None]:
        """Register a listener; returns a function that unregisters it."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _emit(self, event: CoordinatorEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Coordinator listener failed on %r", event)

    # ========================================================================
    # State transitions
    # ========================================================================

    @staticmethod
    def _check_key(key: str) -> None:
        if key not in CATEGORY_KEYS:
            raise ValueError(f"Unknown category key: {key!r}")

    def _set_active(self, key: str) -> None:
        if key == self._active_key:
            return
        previous, self._active_key = self._active_key, key
        self._emit(ActiveKeyChanged(previous=previous, current=key))

    def _begin_loading(self, key: str) -> None:
        self._caches[key] = replace(self._caches[key], status=STATUS_LOADING)
        self._emit(LoadingChanged(key=key, is_loading=True))

    def _commit(self, key: str, papers: list[Paper], *, error: str | None = None) -> None:
        previous = self._caches[key]
        status = STATUS_ERRORED if error else STATUS_LOADED
        self._caches[key] = CacheState(status=status, papers=list(papers), error=error)
        self._emit(CacheReplaced(key=key, count=len(papers)))
        if previous.status == STATUS_LOADING:
            self._emit(LoadingChanged(key=key, is_loading=False))
        if previous.error != error:
            self._emit(ErrorChanged(key=key, message=error))

    def _fail(self, key: str, message: str) -> None:
        """Record a failed load, keeping the previous papers."""
        previous = self._caches[key]
        self._caches[key] = replace(previous, status=STATUS_ERRORED, error=message)
        if previous.status == STATUS_LOADING:
            self._emit(LoadingChanged(key=key, is_loading=False))
        self._emit(ErrorChanged(key=key, message=message))

    def _set_error(self, key: str, message: str | None) -> None:
        previous = self._caches[key]
        if previous.error == message:
            return
        self._caches[key] = replace(previous, error=message)
        self._emit(ErrorChanged(key=key, message=message))

    def _replace_papers(self, key: str, papers: list[Paper]) -> None:
        self._caches[key] = replace(self._caches[key], papers=papers)
        self._emit(CacheReplaced(key=key, count=len(papers)))

    # ========================================================================
    # Reconciliation helpers
    # ========================================================================

    def _cached_favorites(self) -> dict[str, Paper]:
        """Favorited papers held by any cache, keyed by id."""
        cached: dict[str, Paper] = {}
        for key in (FAVORITES_KEY, SEARCH_KEY, *FETCHABLE_KEYS):
            for paper in self._caches[key].papers:
                if paper.is_favorite:
                    cached.setdefault(paper.paper_id, paper)
        return cached

    def _reconciled(
        self, paper: Paper, stored: dict[str, Paper], cached: dict[str, Paper]
    ) -> Paper:
        known = self._known_favorites.get(paper.paper_id)
        if known is not None:
            return paper.with_favorite(*known)
        favorite = cached.get(paper.paper_id)
        if favorite is not None:
            return paper.with_favorite(True, favorite.favorited_at)
        record = stored.get(paper.paper_id)
        if record is not None and record.is_favorite:
            return paper.with_favorite(True, record.favorited_at)
        return paper

    async def _stored_favorites(self) -> dict[str, Paper] | None:
        """Store favorites by id; None when the store failed."""
        if self._store is None:
            return {}
        try:
            favorites = await asyncio.to_thread(self._store.fetch_favorites)
        except StoreError:
            logger.warning("Could not read favorites from store", exc_info=True)
            return None
        return {paper.paper_id: paper for paper in favorites}

    async def _fetch_reconciled(
        self, intent: FeedIntent, *, use_fallback: bool
    ) -> tuple[list[Paper], bool]:
        """Fetch an intent and reconcile favorites; raises CatalogError.

        Returns the papers and whether the store was readable.
        """
        if use_fallback:
            fresh = await self._catalog.fetch_with_fallback(intent)
        else:
            fresh = await self._catalog.fetch(intent)
        stored = await self._stored_favorites()
        cached = self._cached_favorites()
        reconciled = [self._reconciled(p, stored or {}, cached) for p in fresh]
        return reconciled, stored is not None

    async def _persist_fetched(self, papers: list[Paper]) -> None:
        """Write fetched papers to the store, reflecting current memory state."""
        if self._store is None or not papers or not self._config.persist_fetched_papers:
            return
        async with self._store_lock:
            cached = self._cached_favorites()
            snapshot = [self._reconciled(paper, {}, cached) for paper in papers]
            try:
                await asyncio.to_thread(self._upsert_all, snapshot)
            except StoreError:
                logger.warning("Could not persist %d fetched papers", len(snapshot), exc_info=True)

    def _upsert_all(self, papers: list[Paper]) -> None:
        assert self._store is not None
        for paper in papers:
            self._store.upsert(paper)

    # ========================================================================
    # Reload
    # ========================================================================

    def _intent_for(self, key: str) -> FeedIntent:
        page_size = clamp_max_results(self._config.max_results)
        if key == LATEST_KEY:
            return FeedIntent.latest(page_size=page_size)
        return FeedIntent.browse(key, page_size=page_size)

    async def _join(self, key: str, start: Callable[[], Coroutine[Any, Any, bool]]) -> bool:
        """Join the in-flight task for key, or start one."""
        task = self._inflight.get(key)
        if task is None or task.done():
            task = asyncio.create_task(start())
            self._inflight[key] = task
            task.add_done_callback(lambda done, k=key: self._forget_task(k, done))
        else:
            logger.debug("Joining in-flight reload for %s", key)
        return await asyncio.shield(task)

    def _forget_task(self, key: str, task: asyncio.Task[bool]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]

    async def reload(self, key: str) -> bool:
        """Reload one cache; returns False (and records an error) on failure."""
        self._check_key(key)
        if key == FAVORITES_KEY:
            return await self.load_favorites()
        if key == SEARCH_KEY:
            if not self._search_active:
                return False
            return await self._join_search()
        return await self._join(key, lambda: self._run_reload(key))

    async def _run_reload(self, key: str) -> bool:
        intent = self._intent_for(key)
        use_fallback = key == LATEST_KEY and self._config.use_fallback_queries
        self._begin_loading(key)
        try:
            papers, store_ok = await self._fetch_reconciled(intent, use_fallback=use_fallback)
        except CatalogError as exc:
            logger.warning("Reload of %s failed: %s", key, exc.message)
            self._fail(key, build_load_error(key, exc))
            return False
        except Exception as exc:
            logger.warning("Unexpected reload failure for %s: %s", key, exc, exc_info=True)
            self._fail(key, build_load_error(key, _unexpected_error(exc)))
            return False

        self._commit(key, papers)
        logger.info("Reloaded %s with %d papers", key, len(papers))
        if store_ok:
            await self._persist_fetched(papers)
        return True

    async def refresh_active(self) -> bool:
        """Reload the active key unless it is already loading."""
        if self.is_loading(self._active_key):
            return False
        return await self.reload(self._active_key)

    def select(self, key: str) -> None:
        """Make key the active view."""
        self._check_key(key)
        self._set_active(key)

    # ========================================================================
    # Favorites
    # ========================================================================

    def _find_cached(self, paper_id: str) -> Paper | None:
        for key in CATEGORY_KEYS:
            for paper in self._caches[key].papers:
                if paper.paper_id == paper_id:
                    return paper
        return None

    def _persist_toggle(self, updated: Paper) -> None:
        assert self._store is not None
        existing = self._store.fetch_by_id(updated.paper_id)
        if existing is not None:
            record = existing.with_favorite(updated.is_favorite, updated.favorited_at)
        else:
            record = updated
        self._store.upsert(record)

    def _apply_favorite(self, updated: Paper) -> None:
        """Propagate a paper's favorite state into every cache holding it."""
        for key in (*FETCHABLE_KEYS, SEARCH_KEY):
            papers = self._caches[key].papers
            if not any(p.paper_id == updated.paper_id for p in papers):
                continue
            self._replace_papers(
                key,
                [
                    p.with_favorite(updated.is_favorite, updated.favorited_at)
                    if p.paper_id == updated.paper_id
                    else p
                    for p in papers
                ],
            )

        favorites = [
            p for p in self._caches[FAVORITES_KEY].papers if p.paper_id != updated.paper_id
        ]
        if updated.is_favorite:
            favorites.append(updated)
        self._replace_papers(FAVORITES_KEY, sort_favorites(favorites))

    async def toggle_favorite(self, paper_id: str) -> Paper | None:
        """Flip a paper's favorite state everywhere; None when the id is unknown."""
        async with self._store_lock:
            current = self._find_cached(paper_id)
            if current is None and self._store is not None:
                try:
                    current = await asyncio.to_thread(self._store.fetch_by_id, paper_id)
                except StoreError:
                    logger.warning("Store lookup failed for %s", paper_id, exc_info=True)
            if current is None:
                logger.warning("Cannot toggle unknown paper %s", paper_id)
                self._set_error(self._active_key, build_unknown_paper_error(paper_id))
                return None

            turning_on = not current.is_favorite
            updated = current.with_favorite(turning_on, self._clock() if turning_on else None)
            self._known_favorites[paper_id] = (updated.is_favorite, updated.favorited_at)

            if self._store is not None:
                try:
                    await asyncio.to_thread(self._persist_toggle, updated)
                except StoreError as exc:
                    logger.warning("Favorite for %s kept in memory only", paper_id, exc_info=True)
                    self._set_error(self._active_key, build_favorite_persist_error(paper_id, exc))

            self._apply_favorite(updated)
            logger.info("Favorite %s for %s", "set" if turning_on else "cleared", paper_id)
            return updated

    async def load_favorites(self) -> bool:
        """Rebuild the favorites cache from the store plus in-memory favorites."""
        return await self._join(FAVORITES_KEY, self._run_load_favorites)

    def _memory_favorites(self) -> list[Paper]:
        candidates: list[Paper] = list(self._caches[FAVORITES_KEY].papers)
        for key in (SEARCH_KEY, *FETCHABLE_KEYS):
            candidates.extend(p for p in self._caches[key].papers if p.is_favorite)
        return candidates

    async def _run_load_favorites(self) -> bool:
        self._begin_loading(FAVORITES_KEY)
        error: str | None = None
        stored: list[Paper] = []
        if self._store is not None:
            try:
                stored = await asyncio.to_thread(self._store.fetch_favorites)
            except StoreError as exc:
                logger.warning("Falling back to in-memory favorites", exc_info=True)
                error = build_favorites_load_error(exc)

        merged: dict[str, Paper] = {}
        for paper in (*stored, *self._memory_favorites()):
            merged.setdefault(paper.paper_id, paper)

        favorites: list[Paper] = []
        for paper in merged.values():
            known = self._known_favorites.get(paper.paper_id)
            if known is not None:
                if not known[0]:
                    continue
                paper = paper.with_favorite(*known)
            elif not paper.is_favorite:
                continue
            favorites.append(paper)

        self._commit(FAVORITES_KEY, sort_favorites(favorites), error=error)
        logger.info("Loaded %d favorites", len(favorites))
        return error is None

    # ========================================================================
    # Search
    # ========================================================================

    async def search(self, query: str, category: str = "") -> bool:
        """Run a search into the search cache; blank queries are ignored."""
        text = " ".join(query.split())
        if not text:
            return False
        self._search_query, self._search_category = text, category.strip()
        self._search_active = True
        self._set_active(SEARCH_KEY)
        return await self._join_search()

    async def _join_search(self) -> bool:
        """Join the in-flight run of the current search, or start one."""
        args = (self._search_query, self._search_category)
        task = self._search_task
        if task is not None and not task.done() and self._search_task_args == args:
            logger.debug("Joining in-flight search %r", args[0])
            return await asyncio.shield(task)

        self._search_generation += 1
        task = asyncio.create_task(self._run_search(*args, generation=self._search_generation))
        self._search_task, self._search_task_args = task, args
        return await asyncio.shield(task)

    async def _run_search(self, text: str, category: str, *, generation: int) -> bool:
        intent = FeedIntent.search(
            text, category, page_size=clamp_max_results(self._config.max_results)
        )
        self._begin_loading(SEARCH_KEY)
        try:
            papers, store_ok = await self._fetch_reconciled(intent, use_fallback=False)
        except Exception as exc:
            if generation != self._search_generation:
                return False
            if isinstance(exc, CatalogError):
                logger.warning("Search %r failed: %s", text, exc.message)
            else:
                logger.warning("Unexpected search failure for %r: %s", text, exc, exc_info=True)
                exc = _unexpected_error(exc)
            self._fail(SEARCH_KEY, build_search_error(text, exc))
            return False

        if generation != self._search_generation:
            logger.debug("Discarding stale results for search %r", text)
            return False
        self._commit(SEARCH_KEY, papers)
        logger.info("Search %r returned %d papers", text, len(papers))
        if store_ok:
            await self._persist_fetched(papers)
        return True

    def clear_search(self) -> None:
        """Drop search results; the active view reverts to the default category."""
        self._search_generation += 1
        self._search_task = None
        self._search_task_args = None
        self._search_query = ""
        self._search_category = ""
        self._search_active = False

        previous = self._caches[SEARCH_KEY]
        self._caches[SEARCH_KEY] = CacheState()
        self._emit(CacheReplaced(key=SEARCH_KEY, count=0))
        if previous.status == STATUS_LOADING:
            self._emit(LoadingChanged(key=SEARCH_KEY, is_loading=False))
        if previous.error is not None:
            self._emit(ErrorChanged(key=SEARCH_KEY, message=None))

        default = self._config.default_category
        self._set_active(default if default != SEARCH_KEY else LATEST_KEY)

    # ========================================================================
    # Settings
    # ========================================================================

    async def apply_setting(self, event: SettingChanged) -> None:
        """Apply a settings change; page size changes reload the active view."""
        if isinstance(event, PageSizeChanged):
            new_size = clamp_max_results(event.max_results)
            if new_size == self._config.max_results:
                return
            self._config.max_results = new_size
            await self._reload_after_page_size_change()
        elif isinstance(event, DefaultCategoryChanged):
            self._check_key(event.category)
            self._config.default_category = event.category
        elif isinstance(event, RefreshIntervalChanged):
            self._config.refresh_interval_minutes = clamp_refresh_interval(event.minutes)
        elif isinstance(event, AutoRefreshChanged):
            self._config.auto_refresh = event.enabled
        elif isinstance(event, SettingsReset):
            previous_size = self._config.max_results
            defaults = UserConfig()
            for field in fields(UserConfig):
                setattr(self._config, field.name, getattr(defaults, field.name))
            if self._config.max_results != previous_size:
                await self._reload_after_page_size_change()
        else:
            raise TypeError(f"Unsupported setting event: {event!r}")

    async def _reload_after_page_size_change(self) -> None:
        key = self._active_key
        if key == SEARCH_KEY or key in FETCHABLE_KEYS:
            if self._caches[key].status != STATUS_EMPTY:
                await self.reload(key)


__all__ = [
    "ViewCoordinator",
    "sort_favorites",
]
