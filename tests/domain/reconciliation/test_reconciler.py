from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from fleetrecon.domain.errors import ValidationError
from fleetrecon.domain.model import AZURE_SOURCE, MatchType
from fleetrecon.domain.reconciliation import Reconciler
from tests.helpers.fakes import START
from tests.helpers.records import make_azure_record, make_legacy_record

if TYPE_CHECKING:
    from collections.abc import Callable

    from fleetrecon.domain.model import Mapping, SourceRecord
    from fleetrecon.domain.ports import InventoryUnitOfWork
    from tests.helpers.fakes import FakeClock

type UowFactory = Callable[[], InventoryUnitOfWork]


def _store(factory: UowFactory, *records: SourceRecord) -> None:
    with factory() as uow:
        for record in records:
            uow.repositories.records.upsert(record)
        uow.commit()


def _mappings(factory: UowFactory) -> dict[str, Mapping]:
    with factory() as uow:
        return {mapping.azure_record_id: mapping for mapping in uow.repositories.mappings.list()}


@pytest.fixture
def reconciler(unit_of_work_factory: UowFactory, clock: FakeClock) -> Reconciler:
    _store(
        unit_of_work_factory,
        make_azure_record("a1", "web01", ips=["10.0.0.1"]),
        make_azure_record("a2", "mail03", ips=["10.0.0.9"]),
        make_legacy_record("l1", "web01", ips=["10.0.0.1"]),
        make_legacy_record("l2", "fileserver", ips=["10.0.0.50"]),
    )
    return Reconciler(unit_of_work_factory=unit_of_work_factory, clock=clock)


def test_reconcile_creates_one_mapping_per_azure_record(
    reconciler: Reconciler, unit_of_work_factory: UowFactory
) -> None:
    result = reconciler.reconcile()

    assert result.created == 2
    assert result.auto_matched == 1
    assert result.unmatched == 1
    mappings = _mappings(unit_of_work_factory)
    assert mappings["a1"].legacy_record_id == "l1"
    assert mappings["a1"].match_type is MatchType.AUTO
    assert mappings["a1"].confidence == 1.0
    assert mappings["a2"].match_type is MatchType.UNMATCHED
    assert mappings["a2"].legacy_record_id is None


def test_reconcile_is_idempotent(
    reconciler: Reconciler, unit_of_work_factory: UowFactory, clock: FakeClock
) -> None:
    reconciler.reconcile()
    before = _mappings(unit_of_work_factory)
    clock.advance(hours=1)

    result = reconciler.reconcile()

    assert result.changed is False
    assert result.unchanged == 2
    after = _mappings(unit_of_work_factory)
    for azure_id, mapping in after.items():
        assert mapping.id == before[azure_id].id
        assert mapping.updated_at == START


def test_reconcile_removes_mappings_of_vanished_records(
    reconciler: Reconciler, unit_of_work_factory: UowFactory
) -> None:
    reconciler.reconcile()
    with unit_of_work_factory() as uow:
        uow.repositories.records.remove_missing(AZURE_SOURCE, ["a1"])
        uow.commit()

    result = reconciler.reconcile()

    assert result.removed == 1
    assert set(_mappings(unit_of_work_factory)) == {"a1"}


def test_manual_mapping_survives_reconciliation(
    reconciler: Reconciler, unit_of_work_factory: UowFactory
) -> None:
    reconciler.reconcile()

    mapping = reconciler.set_manual_mapping("a2", "l2")
    reconciler.reconcile()
    with unit_of_work_factory() as uow:
        uow.repositories.records.remove_missing(AZURE_SOURCE, ["a1"])
        uow.commit()
    result = reconciler.reconcile()

    assert mapping.match_type is MatchType.MANUAL
    assert result.manual_preserved == 1
    stored = _mappings(unit_of_work_factory)["a2"]
    assert stored.match_type is MatchType.MANUAL
    assert stored.legacy_record_id == "l2"
    assert stored.confidence == 1.0


def test_manual_mapping_takes_legacy_record_from_automatic_match(
    reconciler: Reconciler, unit_of_work_factory: UowFactory
) -> None:
    reconciler.reconcile()

    reconciler.set_manual_mapping("a2", "l1")

    mappings = _mappings(unit_of_work_factory)
    assert mappings["a2"].legacy_record_id == "l1"
    assert mappings["a2"].is_manual
    assert mappings["a1"].match_type is MatchType.UNMATCHED


def test_set_manual_mapping_validates_records(reconciler: Reconciler) -> None:
    with pytest.raises(ValidationError, match="missing"):
        reconciler.set_manual_mapping("missing", "l1")
    with pytest.raises(ValidationError, match="l9"):
        reconciler.set_manual_mapping("a1", "l9")


def test_legacy_record_cannot_be_pinned_twice(reconciler: Reconciler) -> None:
    reconciler.set_manual_mapping("a1", "l2")

    with pytest.raises(ValidationError, match="already manually mapped"):
        reconciler.set_manual_mapping("a2", "l2")


def test_clear_manual_mapping_returns_record_to_automatic_matching(
    reconciler: Reconciler,
) -> None:
    reconciler.set_manual_mapping("a1", "l2")

    mapping = reconciler.clear_manual_mapping("a1")

    assert mapping is not None
    assert mapping.match_type is MatchType.AUTO
    assert mapping.legacy_record_id == "l1"


def test_clear_manual_mapping_requires_manual_mapping(reconciler: Reconciler) -> None:
    reconciler.reconcile()

    with pytest.raises(ValidationError):
        reconciler.clear_manual_mapping("a1")
    with pytest.raises(ValidationError):
        reconciler.clear_manual_mapping("unknown")
