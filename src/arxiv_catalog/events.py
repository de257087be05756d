"""Typed change notifications emitted by the coordinator and settings events it consumes."""

from __future__ import annotations

from dataclasses import dataclass

# ============================================================================
# Coordinator -> observers
# ============================================================================


@dataclass(slots=True, frozen=True)
class CacheReplaced:
    """A cache's paper list was replaced (reload, toggle, search or clear)."""

    key: str
    count: int


@dataclass(slots=True, frozen=True)
class LoadingChanged:
    key: str
    is_loading: bool


@dataclass(slots=True, frozen=True)
class ErrorChanged:
    """A cache's visible error was set (message) or cleared (None)."""

    key: str
    message: str | None


@dataclass(slots=True, frozen=True)
class ActiveKeyChanged:
    previous: str
    current: str


CoordinatorEvent = CacheReplaced | LoadingChanged | ErrorChanged | ActiveKeyChanged


# ============================================================================
# Settings -> coordinator
# ============================================================================


@dataclass(slots=True, frozen=True)
class PageSizeChanged:
    max_results: int


@dataclass(slots=True, frozen=True)
class DefaultCategoryChanged:
    category: str


@dataclass(slots=True, frozen=True)
class RefreshIntervalChanged:
    minutes: int


@dataclass(slots=True, frozen=True)
class AutoRefreshChanged:
    enabled: bool


@dataclass(slots=True, frozen=True)
class SettingsReset:
    """Every preference returns to its default value."""


SettingChanged = (
    PageSizeChanged
    | DefaultCategoryChanged
    | RefreshIntervalChanged
    | AutoRefreshChanged
    | SettingsReset
)


__all__ = [
    "ActiveKeyChanged",
    "AutoRefreshChanged",
    "CacheReplaced",
    "CoordinatorEvent",
    "DefaultCategoryChanged",
    "ErrorChanged",
    "LoadingChanged",
    "PageSizeChanged",
    "RefreshIntervalChanged",
    "SettingChanged",
    "SettingsReset",
]
