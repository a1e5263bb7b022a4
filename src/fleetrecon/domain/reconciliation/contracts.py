"""Value objects produced by the reconciliation pass."""

from __future__ import annotations

from dataclasses import dataclass

from fleetrecon.domain.model import MatchType


@dataclass(frozen=True, slots=True)
class MatchDecision:
    """Planned mapping state for one azure record."""

    azure_record_id: str
    legacy_record_id: str | None
    confidence: float

    @property
    def match_type(self) -> MatchType:
        return MatchType.UNMATCHED if self.legacy_record_id is None else MatchType.AUTO


@dataclass(frozen=True, slots=True)
class ScoredPair:
    confidence: float
    azure_record_id: str
    legacy_record_id: str

    @property
    def sort_key(self) -> tuple[float, str, str]:
        # highest confidence first, then azure id ascending, then smallest legacy id
        return (-self.confidence, self.azure_record_id, self.legacy_record_id)


@dataclass(slots=True)
class ReconciliationResult:
    """Counts describing what one reconciliation pass changed."""

    created: int = 0
    updated: int = 0
    unchanged: int = 0
    removed: int = 0
    manual_preserved: int = 0
    auto_matched: int = 0
    unmatched: int = 0

    @property
    def changed(self) -> bool:
        return bool(self.created or self.updated or self.removed)
