"""Read-only dashboard figures derived from records, mappings and schedules."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Final

from fleetrecon.domain.model import AZURE_SOURCE, LEGACY_SOURCE, MatchType

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence
    from datetime import datetime

    from fleetrecon.domain.model import Mapping, SourceRecord
    from fleetrecon.domain.ports import InventoryUnitOfWork

HIGH_CONFIDENCE: Final[float] = 0.9
MEDIUM_CONFIDENCE: Final[float] = 0.7
UNKNOWN_BUCKET: Final[str] = "Unknown"
UNASSIGNED_BUCKET: Final[str] = "Unassigned"


@dataclass(frozen=True, slots=True)
class OverviewStats:
    azure_total: int
    legacy_total: int
    matched_count: int
    unmatched_azure: int
    unmatched_legacy: int
    match_percentage: float
    auto_matched: int
    manual_matched: int
    last_azure_sync: datetime | None
    last_legacy_sync: datetime | None


@dataclass(frozen=True, slots=True)
class ConfidenceDistribution:
    high: int = 0
    medium: int = 0
    low: int = 0

    @property
    def total(self) -> int:
        return self.high + self.medium + self.low


@dataclass(frozen=True, slots=True)
class MatchingStats:
    total_mappings: int
    matched: int
    unmatched: int
    auto_matched: int
    manual_matched: int
    match_percentage: float
    confidence_distribution: ConfidenceDistribution


@dataclass(frozen=True, slots=True)
class MachineBreakdown:
    by_operating_system: dict[str, int] = field(default_factory=dict[str, int])
    by_wave: dict[str, int] = field(default_factory=dict[str, int])
    by_environment: dict[str, int] = field(default_factory=dict[str, int])


def percentage(part: int, whole: int) -> float:
    if whole <= 0:
        return 0.0
    return round(part / whole * 100, 1)


def confidence_distribution(mappings: Iterable[Mapping]) -> ConfidenceDistribution:
    high = medium = low = 0
    for mapping in mappings:
        if mapping.match_type is not MatchType.AUTO:
            continue
        if mapping.confidence >= HIGH_CONFIDENCE:
            high += 1
        elif mapping.confidence >= MEDIUM_CONFIDENCE:
            medium += 1
        else:
            low += 1
    return ConfidenceDistribution(high=high, medium=medium, low=low)


@dataclass(slots=True)
class StatisticsAggregator:
    """Computes figures on demand; never writes to the store."""

    unit_of_work_factory: Callable[[], InventoryUnitOfWork]

    def get_overview_stats(self) -> OverviewStats:
        with self.unit_of_work_factory() as uow:
            repositories = uow.repositories
            azure_total = repositories.records.count(AZURE_SOURCE)
            legacy_total = repositories.records.count(LEGACY_SOURCE)
            mappings = repositories.mappings.list()
            azure_schedule = repositories.schedules.get(AZURE_SOURCE)
            legacy_schedule = repositories.schedules.get(LEGACY_SOURCE)

        matched = [mapping for mapping in mappings if mapping.is_matched]
        linked_legacy = {mapping.legacy_record_id for mapping in matched}
        return OverviewStats(
            azure_total=azure_total,
            legacy_total=legacy_total,
            matched_count=len(matched),
            unmatched_azure=max(0, azure_total - len(matched)),
            unmatched_legacy=max(0, legacy_total - len(linked_legacy)),
            match_percentage=percentage(len(matched), azure_total),
            auto_matched=_count(matched, MatchType.AUTO),
            manual_matched=_count(matched, MatchType.MANUAL),
            last_azure_sync=azure_schedule.last_sync_at if azure_schedule else None,
            last_legacy_sync=legacy_schedule.last_sync_at if legacy_schedule else None,
        )

    def get_matching_stats(self) -> MatchingStats:
        with self.unit_of_work_factory() as uow:
            mappings = uow.repositories.mappings.list()

        matched = sum(1 for mapping in mappings if mapping.is_matched)
        return MatchingStats(
            total_mappings=len(mappings),
            matched=matched,
            unmatched=len(mappings) - matched,
            auto_matched=_count(mappings, MatchType.AUTO),
            manual_matched=_count(mappings, MatchType.MANUAL),
            match_percentage=percentage(matched, len(mappings)),
            confidence_distribution=confidence_distribution(mappings),
        )

    def get_machine_breakdown(self) -> MachineBreakdown:
        with self.unit_of_work_factory() as uow:
            azure_records = uow.repositories.records.list(AZURE_SOURCE)
            legacy_records = uow.repositories.records.list(LEGACY_SOURCE)

        return MachineBreakdown(
            by_operating_system=_bucket(azure_records, "operating_system", UNKNOWN_BUCKET),
            by_wave=_bucket(legacy_records, "wave", UNASSIGNED_BUCKET),
            by_environment=_bucket(legacy_records, "environment", UNKNOWN_BUCKET),
        )


def _count(mappings: Sequence[Mapping], match_type: MatchType) -> int:
    return sum(1 for mapping in mappings if mapping.match_type is match_type)


def _bucket(records: Iterable[SourceRecord], attribute: str, missing: str) -> dict[str, int]:
    counts: Counter[str] = Counter()
    for record in records:
        value = record.attributes.get(attribute)
        label = str(value).strip() if value is not None else ""
        counts[label or missing] += 1
    return dict(sorted(counts.items(), key=lambda item: (-item[1], item[0])))
