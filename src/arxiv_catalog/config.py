"""Configuration persistence: load, save, and value clamping."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any

from platformdirs import user_config_dir

from arxiv_catalog.models import (
    CATEGORY_KEYS,
    CONFIG_APP_NAME,
    DEFAULT_MAX_RESULTS,
    DEFAULT_REFRESH_INTERVAL_MINUTES,
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_USER_AGENT,
    LATEST_KEY,
    MAX_REFRESH_INTERVAL_MINUTES,
    MAX_RESULTS_LIMIT,
    MIN_REFRESH_INTERVAL_MINUTES,
    UserConfig,
)

logger = logging.getLogger(__name__)

# ============================================================================
# Configuration Persistence
# ============================================================================
#
# Validation contract: _dict_to_config() guarantees valid output for any input:
#
#   Field                     Rule                        Handler
#   ────────────────────────  ──────────────────────────  ────────────────────────
#   max_results               1 ≤ x ≤ 100                 clamp_max_results
#   refresh_interval_minutes  5 ≤ x ≤ 120                 clamp_refresh_interval
#   default_category          in CATEGORY_KEYS            _coerce_default_category
#   request_timeout_seconds   x ≥ 1                       _coerce_timeout
#   scalar fields             type-checked via _safe_get  _dict_to_config
#
CONFIG_FILENAME = "config.json"


def get_config_path() -> Path:
    """Get the path to the configuration file.

    Uses platformdirs for cross-platform config directory:
    - Linux: ~/.config/arxiv-catalog/config.json
    - macOS: ~/Library/Application Support/arxiv-catalog/config.json
    - Windows: %APPDATA%/arxiv-catalog/config.json
    """
    config_dir = Path(user_config_dir(CONFIG_APP_NAME))
    return config_dir / CONFIG_FILENAME


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def clamp_max_results(value: Any) -> int:
    """Validate and clamp the page size used for arXiv API queries."""
    if not _is_int(value):
        return DEFAULT_MAX_RESULTS
    return max(1, min(value, MAX_RESULTS_LIMIT))


def clamp_refresh_interval(value: Any) -> int:
    """Validate and clamp the auto-refresh interval, in minutes."""
    if not _is_int(value):
        return DEFAULT_REFRESH_INTERVAL_MINUTES
    return max(MIN_REFRESH_INTERVAL_MINUTES, min(value, MAX_REFRESH_INTERVAL_MINUTES))


def _coerce_default_category(value: Any) -> str:
    if isinstance(value, str) and value in CATEGORY_KEYS:
        return value
    return LATEST_KEY


def _coerce_timeout(value: Any) -> int:
    if not _is_int(value) or value < 1:
        return DEFAULT_REQUEST_TIMEOUT_SECONDS
    return value


def _config_to_dict(config: UserConfig) -> dict[str, Any]:
    """Serialize UserConfig to a JSON-compatible dictionary."""
    return {
        "version": config.version,
        "max_results": clamp_max_results(config.max_results),
        "default_category": _coerce_default_category(config.default_category),
        "refresh_interval_minutes": clamp_refresh_interval(config.refresh_interval_minutes),
        "auto_refresh": config.auto_refresh,
        "show_notifications": config.show_notifications,
        "use_fallback_queries": config.use_fallback_queries,
        "persist_fetched_papers": config.persist_fetched_papers,
        "request_timeout_seconds": config.request_timeout_seconds,
        "user_agent": config.user_agent,
    }


def _safe_get(data: dict, key: str, default: Any, expected_type: type) -> Any:
    """Safely get a value from dict with type validation.

    Returns the default if key is missing or value has wrong type.
    """
    value = data.get(key, default)
    if not isinstance(value, expected_type):
        return default
    return value


def _dict_to_config(data: dict[str, Any]) -> UserConfig:
    """Deserialize a dictionary to UserConfig with type validation."""
    if not isinstance(data, dict):
        raise TypeError(f"expected a JSON object, got {type(data).__name__}")

    user_agent = _safe_get(data, "user_agent", DEFAULT_USER_AGENT, str).strip()
    return UserConfig(
        max_results=clamp_max_results(data.get("max_results", DEFAULT_MAX_RESULTS)),
        default_category=_coerce_default_category(data.get("default_category")),
        refresh_interval_minutes=clamp_refresh_interval(
            data.get("refresh_interval_minutes", DEFAULT_REFRESH_INTERVAL_MINUTES)
        ),
        auto_refresh=_safe_get(data, "auto_refresh", False, bool),
        show_notifications=_safe_get(data, "show_notifications", False, bool),
        use_fallback_queries=_safe_get(data, "use_fallback_queries", True, bool),
        persist_fetched_papers=_safe_get(data, "persist_fetched_papers", True, bool),
        request_timeout_seconds=_coerce_timeout(data.get("request_timeout_seconds")),
        user_agent=user_agent or DEFAULT_USER_AGENT,
        version=_safe_get(data, "version", 1, int),
    )


def load_config(config_path: Path | None = None) -> UserConfig:
    """Load configuration from disk.

    Returns default config if file doesn't exist or is corrupted.
    Logs specific errors to help diagnose config issues.
    """
    config_path = config_path or get_config_path()

    if not config_path.exists():
        return UserConfig()

    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
        return _dict_to_config(data)
    except json.JSONDecodeError as e:
        logger.warning("Config file has invalid JSON, using defaults: %s", e)
        return UserConfig()
    except (KeyError, TypeError) as e:
        logger.warning("Config file has invalid structure, using defaults: %s", e)
        return UserConfig()
    except OSError as e:
        logger.warning("Could not read config file, using defaults: %s", e)
        return UserConfig()


def save_config(config: UserConfig, config_path: Path | None = None) -> bool:
    """Save configuration to disk atomically.

    Writes to a temp file in the same directory, then os.replace()s it over
    the real file. Returns True on success, False on failure.
    """
    config_path = config_path or get_config_path()

    try:
        config_path.parent.mkdir(parents=True, exist_ok=True)

        json_str = json.dumps(_config_to_dict(config), indent=2, ensure_ascii=False)
        fd, tmp_path = tempfile.mkstemp(dir=config_path.parent, suffix=".tmp", prefix=".config-")
        closed = False
        try:
            os.write(fd, json_str.encode("utf-8"))
            os.close(fd)
            closed = True
            os.replace(tmp_path, config_path)
        except BaseException:
            if not closed:
                os.close(fd)
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise
        return True
    except OSError as e:
        logger.error("Failed to save config: %s", e)
        return False


__all__ = [
    "CONFIG_FILENAME",
    "clamp_max_results",
    "clamp_refresh_interval",
    "get_config_path",
    "load_config",
    "save_config",
]
