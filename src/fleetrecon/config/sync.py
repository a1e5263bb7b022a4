"""Synchronization, matching and health-check defaults."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Final

from .env import env_float, env_int
from .errors import ConfigurationError

VALID_INTERVALS: Final[tuple[int, ...]] = (15, 30, 60, 360, 1440)
DEFAULT_INTERVAL_MINUTES: Final[int] = 60
DEFAULT_AUTO_ACCEPT_THRESHOLD: Final[float] = 0.6
DEFAULT_HEALTH_FAST_MS: Final[float] = 2000.0
DEFAULT_PROBE_TIMEOUT_SECONDS: Final[float] = 15.0
DEFAULT_STALE_HEALTH_MINUTES: Final[float] = 15.0


@dataclass(frozen=True, slots=True)
class SyncConfig:
    valid_intervals: tuple[int, ...] = field(default_factory=lambda: VALID_INTERVALS)
    default_interval_minutes: int = DEFAULT_INTERVAL_MINUTES
    auto_accept_threshold: float = DEFAULT_AUTO_ACCEPT_THRESHOLD
    health_fast_ms: float = DEFAULT_HEALTH_FAST_MS
    probe_timeout_seconds: float = DEFAULT_PROBE_TIMEOUT_SECONDS
    stale_health_minutes: float = DEFAULT_STALE_HEALTH_MINUTES

    def __post_init__(self) -> None:
        if not 0.0 <= self.auto_accept_threshold < 1.0:
            raise ConfigurationError("Auto-accept threshold must lie in [0, 1)")
        if self.default_interval_minutes not in self.valid_intervals:
            raise ConfigurationError(
                f"Default interval {self.default_interval_minutes} is not an allowed interval"
            )


def get_sync_config() -> SyncConfig:
    return SyncConfig(
        default_interval_minutes=env_int(
            "FLEETRECON_DEFAULT_INTERVAL_MINUTES", DEFAULT_INTERVAL_MINUTES
        ),
        auto_accept_threshold=env_float(
            "FLEETRECON_AUTO_ACCEPT_THRESHOLD", DEFAULT_AUTO_ACCEPT_THRESHOLD
        ),
        health_fast_ms=env_float("FLEETRECON_HEALTH_FAST_MS", DEFAULT_HEALTH_FAST_MS),
        probe_timeout_seconds=env_float(
            "FLEETRECON_PROBE_TIMEOUT_SECONDS", DEFAULT_PROBE_TIMEOUT_SECONDS
        ),
        stale_health_minutes=env_float(
            "FLEETRECON_STALE_HEALTH_MINUTES", DEFAULT_STALE_HEALTH_MINUTES
        ),
    )
