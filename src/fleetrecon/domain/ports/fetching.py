"""Ports for fetching inventory from external sources."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from fleetrecon.domain.model import SourceRecord, SourceType


@dataclass(slots=True)
class FetchResult:
    """Full snapshot of one source's machines."""

    records: list[SourceRecord] = field(default_factory=list["SourceRecord"])
    count: int | None = None

    def __post_init__(self) -> None:
        if self.count is None:
            self.count = len(self.records)


@runtime_checkable
class SourceAdapter(Protocol):
    """Async port implemented once per inventory source.

    Both calls raise ``SourceUnavailableError`` on network, auth or query failure.
    """

    @property
    def source_type(self) -> SourceType: ...

    async def fetch_all(self) -> FetchResult: ...

    async def probe(self) -> float:
        """Perform a cheap liveness check and return the response time in milliseconds."""
        ...


__all__ = ["FetchResult", "SourceAdapter"]
