"""Sync configuration read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from drivesync.logging_config import get_logger

logger = get_logger("config")

# env vars for sync configuration
ENV_INDEX_API_KEY = "DRIVESYNC_INDEX_API_KEY"
ENV_POLL_INTERVAL = "DRIVESYNC_POLL_INTERVAL"
ENV_CALL_TIMEOUT = "DRIVESYNC_CALL_TIMEOUT"
ENV_NORMALIZE_ORDER = "DRIVESYNC_NORMALIZE_ORDER"

DEFAULT_POLL_INTERVAL = 5.0


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").lower() in ("true", "1", "yes", "on")


def _env_seconds(name: str, default: float | None) -> float | None:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("ignoring %s=%r: not a number", name, raw)
        return default
    if value <= 0:
        logger.warning("ignoring %s=%r: must be positive", name, raw)
        return default
    return value


def _poll_interval_from_env() -> float:
    value = _env_seconds(ENV_POLL_INTERVAL, DEFAULT_POLL_INTERVAL)
    assert value is not None
    return value


@dataclass
class SyncConfig:
    """Configuration for the sync scheduler and engine.

    Environment variables:
        DRIVESYNC_INDEX_API_KEY: Initial index credential (default empty)
        DRIVESYNC_POLL_INTERVAL: Seconds between change checks (default 5)
        DRIVESYNC_CALL_TIMEOUT: Per collaborator call timeout in seconds
            (default unset, calls may block indefinitely)
        DRIVESYNC_NORMALIZE_ORDER: Sort snapshots by id before
            fingerprinting so reordering alone is not a change
    """

    api_key: str = field(
        default_factory=lambda: os.environ.get(ENV_INDEX_API_KEY, "")
    )
    poll_interval: float = field(default_factory=_poll_interval_from_env)
    call_timeout: float | None = field(
        default_factory=lambda: _env_seconds(ENV_CALL_TIMEOUT, None)
    )
    normalize_order: bool = field(
        default_factory=lambda: _env_flag(ENV_NORMALIZE_ORDER)
    )

    @property
    def has_api_key(self) -> bool:
        return bool(self.api_key.strip())
