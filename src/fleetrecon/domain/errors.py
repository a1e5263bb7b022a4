"""Error taxonomy for synchronization and reconciliation."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from fleetrecon.domain.model import SourceType


class FleetReconError(Exception):
    """Base class for errors raised by the sync engine."""


class ValidationError(FleetReconError, ValueError):
    """Raised when a caller supplies a value outside the accepted domain."""


class SourceUnavailableError(FleetReconError, RuntimeError):
    """Raised by source adapters when a fetch or probe cannot complete."""

    def __init__(self, source: SourceType, message: str) -> None:
        super().__init__(message)
        self.source = source


class ConcurrentSyncError(FleetReconError, RuntimeError):
    """Raised (or reported) when a sync is requested while one is already running."""

    def __init__(self, source: SourceType) -> None:
        super().__init__(f"A sync for {source} is already running")
        self.source = source


class PersistenceError(FleetReconError, RuntimeError):
    """Raised when the canonical store cannot read or write state."""
