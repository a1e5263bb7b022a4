"""Recompute the azure-to-legacy mapping set from the current records.

The pass is deterministic and idempotent:
- manual mappings are never touched, and the legacy records they link are
  withheld from automatic matching
- every remaining azure record is scored against every eligible legacy record
- pairs above the auto-accept threshold are accepted greedily, highest
  confidence first, so each legacy record backs at most one automatic match
- mappings keep their id and ``updated_at`` when a pass leaves them unchanged
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from fleetrecon.config.sync import DEFAULT_AUTO_ACCEPT_THRESHOLD
from fleetrecon.domain.clock import utc_now
from fleetrecon.domain.errors import ValidationError
from fleetrecon.domain.model import (
    AZURE_SOURCE,
    LEGACY_SOURCE,
    Mapping,
    MatchType,
)

from .contracts import MatchDecision, ReconciliationResult, ScoredPair
from .normalize import identity_signals
from .scoring import similarity

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

    from fleetrecon.domain.clock import Clock
    from fleetrecon.domain.model import SourceRecord
    from fleetrecon.domain.ports import InventoryRepositories, InventoryUnitOfWork

log = logging.getLogger(__name__)


def plan_matches(
    azure_records: Iterable[SourceRecord],
    legacy_records: Iterable[SourceRecord],
    *,
    manual_mappings: Iterable[Mapping] = (),
    threshold: float = DEFAULT_AUTO_ACCEPT_THRESHOLD,
) -> dict[str, MatchDecision]:
    """Decide the automatic mapping state of every non-manual azure record."""

    manual = list(manual_mappings)
    manual_azure = {mapping.azure_record_id for mapping in manual}
    reserved_legacy = {
        mapping.legacy_record_id for mapping in manual if mapping.legacy_record_id is not None
    }

    candidates = sorted(
        (record for record in azure_records if record.source_id not in manual_azure),
        key=lambda record: record.source_id,
    )
    eligible = [
        (record.source_id, identity_signals(record))
        for record in sorted(legacy_records, key=lambda record: record.source_id)
        if record.source_id not in reserved_legacy
    ]

    pairs: list[ScoredPair] = []
    for azure_record in candidates:
        azure_signals = identity_signals(azure_record)
        for legacy_id, legacy_signals in eligible:
            score = similarity(azure_signals, legacy_signals)
            if score > threshold:
                pairs.append(ScoredPair(score, azure_record.source_id, legacy_id))
    pairs.sort(key=lambda pair: pair.sort_key)

    accepted: dict[str, ScoredPair] = {}
    consumed: set[str] = set()
    for pair in pairs:
        if pair.azure_record_id in accepted or pair.legacy_record_id in consumed:
            continue
        accepted[pair.azure_record_id] = pair
        consumed.add(pair.legacy_record_id)

    decisions: dict[str, MatchDecision] = {}
    for azure_record in candidates:
        pair = accepted.get(azure_record.source_id)
        if pair is None:
            decisions[azure_record.source_id] = MatchDecision(
                azure_record_id=azure_record.source_id,
                legacy_record_id=None,
                confidence=0.0,
            )
        else:
            decisions[azure_record.source_id] = MatchDecision(
                azure_record_id=pair.azure_record_id,
                legacy_record_id=pair.legacy_record_id,
                confidence=pair.confidence,
            )
    return decisions


@dataclass(slots=True)
class Reconciler:
    """Apply ``plan_matches`` to the canonical store and manage manual overrides."""

    unit_of_work_factory: Callable[[], InventoryUnitOfWork]
    auto_accept_threshold: float = DEFAULT_AUTO_ACCEPT_THRESHOLD
    clock: Clock = field(default=utc_now)

    def reconcile(self) -> ReconciliationResult:
        with self.unit_of_work_factory() as uow:
            result = self._reconcile(uow.repositories)
            uow.commit()
        log.info(
            "Reconciled mappings: created=%s updated=%s removed=%s unchanged=%s "
            "auto=%s unmatched=%s manual=%s",
            result.created,
            result.updated,
            result.removed,
            result.unchanged,
            result.auto_matched,
            result.unmatched,
            result.manual_preserved,
        )
        return result

    def set_manual_mapping(self, azure_record_id: str, legacy_record_id: str) -> Mapping:
        """Pin an azure record to a legacy record; automatic matching will not revisit it."""

        now = self.clock()
        with self.unit_of_work_factory() as uow:
            repositories = uow.repositories
            if repositories.records.get(AZURE_SOURCE, azure_record_id) is None:
                raise ValidationError(f"Unknown {AZURE_SOURCE} record: {azure_record_id}")
            if repositories.records.get(LEGACY_SOURCE, legacy_record_id) is None:
                raise ValidationError(f"Unknown {LEGACY_SOURCE} record: {legacy_record_id}")
            for other in repositories.mappings.list(match_type=MatchType.MANUAL):
                if (
                    other.legacy_record_id == legacy_record_id
                    and other.azure_record_id != azure_record_id
                ):
                    raise ValidationError(
                        f"{LEGACY_SOURCE} record {legacy_record_id} is already manually "
                        f"mapped to {other.azure_record_id}"
                    )

            mapping = repositories.mappings.get_by_azure_record(azure_record_id)
            if mapping is None:
                mapping = Mapping.create(
                    azure_record_id=azure_record_id,
                    legacy_record_id=legacy_record_id,
                    match_type=MatchType.MANUAL,
                    confidence=1.0,
                    now=now,
                )
                repositories.mappings.add(mapping)
            else:
                mapping.relink(
                    legacy_record_id=legacy_record_id,
                    match_type=MatchType.MANUAL,
                    confidence=1.0,
                    now=now,
                )
            uow.commit()
        log.info("Manual mapping set: %s -> %s", azure_record_id, legacy_record_id)
        # an automatic mapping may have held this legacy record
        self.reconcile()
        return mapping

    def clear_manual_mapping(self, azure_record_id: str) -> Mapping | None:
        """Hand a manually mapped record back to automatic matching."""

        with self.unit_of_work_factory() as uow:
            mapping = uow.repositories.mappings.get_by_azure_record(azure_record_id)
            if mapping is None or not mapping.is_manual:
                raise ValidationError(
                    f"No manual mapping for {AZURE_SOURCE} record {azure_record_id}"
                )
            mapping.relink(
                legacy_record_id=None,
                match_type=MatchType.UNMATCHED,
                confidence=0.0,
                now=self.clock(),
            )
            uow.commit()
        log.info("Manual mapping cleared for %s", azure_record_id)
        self.reconcile()
        with self.unit_of_work_factory() as uow:
            return uow.repositories.mappings.get_by_azure_record(azure_record_id)

    def _reconcile(self, repositories: InventoryRepositories) -> ReconciliationResult:
        now = self.clock()
        azure_records = list(repositories.records.list(AZURE_SOURCE))
        legacy_records = list(repositories.records.list(LEGACY_SOURCE))
        existing = {mapping.azure_record_id: mapping for mapping in repositories.mappings.list()}
        manual = [mapping for mapping in existing.values() if mapping.is_manual]

        decisions = plan_matches(
            azure_records,
            legacy_records,
            manual_mappings=manual,
            threshold=self.auto_accept_threshold,
        )

        result = ReconciliationResult(manual_preserved=len(manual))
        for azure_record_id, decision in decisions.items():
            if decision.match_type is MatchType.AUTO:
                result.auto_matched += 1
            else:
                result.unmatched += 1

            mapping = existing.get(azure_record_id)
            if mapping is None:
                repositories.mappings.add(
                    Mapping.create(
                        azure_record_id=azure_record_id,
                        legacy_record_id=decision.legacy_record_id,
                        match_type=decision.match_type,
                        confidence=decision.confidence,
                        now=now,
                    )
                )
                result.created += 1
            elif mapping.relink(
                legacy_record_id=decision.legacy_record_id,
                match_type=decision.match_type,
                confidence=decision.confidence,
                now=now,
            ):
                result.updated += 1
            else:
                result.unchanged += 1

        for azure_record_id, mapping in existing.items():
            if mapping.is_manual or azure_record_id in decisions:
                continue
            repositories.mappings.remove(mapping)
            result.removed += 1

        return result
