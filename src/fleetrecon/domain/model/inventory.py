"""Inventory records and the mappings that link them across sources."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import NAMESPACE_URL, UUID, uuid5

from fleetrecon.domain.model.enums import MatchType

if TYPE_CHECKING:
    from datetime import datetime

    from fleetrecon.domain.model.enums import SourceType

_MAPPING_NAMESPACE = uuid5(NAMESPACE_URL, "fleetrecon:mapping")


def mapping_id_for(azure_record_id: str) -> UUID:
    """Stable mapping id: one mapping per azure record, same id on every recomputation."""
    return uuid5(_MAPPING_NAMESPACE, azure_record_id)


@dataclass(eq=False, kw_only=True)
class SourceRecord:
    """One discovered machine as reported by one source."""

    source_type: SourceType
    source_id: str
    display_name: str
    attributes: dict[str, object] = field(default_factory=dict[str, object])
    synced_at: datetime | None = None

    @property
    def key(self) -> tuple[SourceType, str]:
        return self.source_type, self.source_id

    def overwrite(self, other: SourceRecord) -> None:
        """Replace every mutable field with the values of a freshly fetched record."""

        if other.key != self.key:
            raise ValueError(f"Cannot overwrite {self.key} with record {other.key}")
        self.display_name = other.display_name
        self.attributes = dict(other.attributes)
        self.synced_at = other.synced_at


@dataclass(eq=False, kw_only=True)
class Mapping:
    """Belief that an azure record and (optionally) a legacy record are the same machine."""

    id: UUID
    azure_record_id: str
    legacy_record_id: str | None
    match_type: MatchType
    confidence: float
    created_at: datetime
    updated_at: datetime

    def __post_init__(self) -> None:
        _check_link(self.match_type, self.legacy_record_id, self.confidence)

    @classmethod
    def create(
        cls,
        *,
        azure_record_id: str,
        legacy_record_id: str | None,
        match_type: MatchType,
        confidence: float,
        now: datetime,
    ) -> Mapping:
        return cls(
            id=mapping_id_for(azure_record_id),
            azure_record_id=azure_record_id,
            legacy_record_id=legacy_record_id,
            match_type=match_type,
            confidence=confidence,
            created_at=now,
            updated_at=now,
        )

    @property
    def is_manual(self) -> bool:
        return self.match_type is MatchType.MANUAL

    @property
    def is_matched(self) -> bool:
        return self.match_type is not MatchType.UNMATCHED

    def relink(
        self,
        *,
        legacy_record_id: str | None,
        match_type: MatchType,
        confidence: float,
        now: datetime,
    ) -> bool:
        """Apply a new link; returns ``False`` (and leaves ``updated_at``) when nothing changed."""

        _check_link(match_type, legacy_record_id, confidence)
        if (
            self.legacy_record_id == legacy_record_id
            and self.match_type is match_type
            and self.confidence == confidence
        ):
            return False
        self.legacy_record_id = legacy_record_id
        self.match_type = match_type
        self.confidence = confidence
        self.updated_at = now
        return True


def _check_link(match_type: MatchType, legacy_record_id: str | None, confidence: float) -> None:
    if not 0.0 <= confidence <= 1.0:
        raise ValueError(f"Confidence must lie in [0, 1], got {confidence}")
    if match_type is MatchType.UNMATCHED and legacy_record_id is not None:
        raise ValueError("Unmatched mappings cannot link a legacy record")
    if match_type is not MatchType.UNMATCHED and legacy_record_id is None:
        raise ValueError(f"{match_type.value.capitalize()} mappings must link a legacy record")
