from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from fleetrecon import main as main_module
from fleetrecon.config import MissingConfigurationError
from fleetrecon.domain.model import AZURE_SOURCE, LEGACY_SOURCE
from tests.helpers.fakes import FakeSourceAdapter
from tests.helpers.records import make_azure_record, make_legacy_record
from tests.helpers.services import build_test_service

if TYPE_CHECKING:
    from collections.abc import Callable

    from fleetrecon.app import InventorySyncService
    from fleetrecon.domain.ports import InventoryUnitOfWork
    from tests.helpers.fakes import FakeClock, FakeTimer


@pytest.fixture
def service(
    unit_of_work_factory: Callable[[], InventoryUnitOfWork],
    clock: FakeClock,
    timer: FakeTimer,
    monkeypatch: pytest.MonkeyPatch,
) -> InventorySyncService:
    azure = FakeSourceAdapter(
        AZURE_SOURCE, [make_azure_record("a1", "web01", ips=["10.0.0.1"])], timer=timer
    )
    legacy = FakeSourceAdapter(
        LEGACY_SOURCE, [make_legacy_record("1", "web01", ips=["10.0.0.1"])], timer=timer
    )
    built = build_test_service(
        unit_of_work_factory, adapters=[azure, legacy], clock=clock, timer=timer
    )
    monkeypatch.setattr(main_module, "build_service", lambda: built)
    monkeypatch.setattr(main_module, "load_dotenv", lambda: False)
    return built


def test_sync_command_prints_outcome(
    service: InventorySyncService, capsys: pytest.CaptureFixture[str]
) -> None:
    assert main_module.main(["sync", "azure-migrate"]) == 0

    out = capsys.readouterr().out
    assert "azure-migrate: success (1 records" in out
    assert service.get_schedule(AZURE_SOURCE).last_sync_count == 1


def test_sync_command_fails_when_source_fails(
    service: InventorySyncService, capsys: pytest.CaptureFixture[str]
) -> None:
    adapter = service.adapters[LEGACY_SOURCE]
    assert isinstance(adapter, FakeSourceAdapter)
    adapter.fetch_error = RuntimeError("database offline")

    assert main_module.main(["sync", "drmigrate"]) == 1

    assert "error: database offline" in capsys.readouterr().out


def test_schedule_command_updates_schedule(
    service: InventorySyncService, capsys: pytest.CaptureFixture[str]
) -> None:
    assert main_module.main(["schedule", "drmigrate", "--enable", "--interval", "360"]) == 0

    schedule = service.get_schedule(LEGACY_SOURCE)
    assert schedule.enabled is True
    assert schedule.interval_minutes == 360
    assert "drmigrate: enabled, every 360 minutes" in capsys.readouterr().out
    assert not service.scheduler.registry.active_sources


def test_schedule_command_shows_schedule(
    service: InventorySyncService, capsys: pytest.CaptureFixture[str]
) -> None:
    assert main_module.main(["schedule", "azure-migrate"]) == 0

    out = capsys.readouterr().out
    assert "azure-migrate: disabled, every 60 minutes" in out
    assert "next sync: never" in out
    assert service.get_schedule(AZURE_SOURCE).enabled is False


def test_schedule_command_rejects_invalid_interval(
    service: InventorySyncService, capsys: pytest.CaptureFixture[str]
) -> None:
    assert main_module.main(["schedule", "azure-migrate", "--enable", "--interval", "45"]) == 2

    assert "Invalid interval 45" in capsys.readouterr().err
    assert service.get_schedule(AZURE_SOURCE).enabled is False


def test_health_command_probes_sources(
    service: InventorySyncService, capsys: pytest.CaptureFixture[str]
) -> None:
    assert main_module.main(["health", "--check"]) == 0

    out = capsys.readouterr().out
    assert "azure-migrate: healthy" in out
    assert "drmigrate: healthy" in out
    assert all(summary.check_count == 1 for summary in service.get_all_health())


def test_stats_and_match_commands(
    service: InventorySyncService, capsys: pytest.CaptureFixture[str]
) -> None:
    main_module.main(["sync", "azure-migrate"])
    main_module.main(["sync", "drmigrate"])
    capsys.readouterr()

    assert main_module.main(["stats"]) == 0
    out = capsys.readouterr().out
    assert "Matched:" in out
    assert "1 (100.0%)" in out

    assert main_module.main(["match", "a1", "--clear"]) == 2
    assert main_module.main(["match", "a1", "--legacy-id", "1"]) == 0
    assert "a1 -> 1 (manual)" in capsys.readouterr().out
    assert service.get_matching_stats().manual_matched == 1


def test_missing_configuration_exits_with_error(
    monkeypatch: pytest.MonkeyPatch, capsys: pytest.CaptureFixture[str]
) -> None:
    def fail() -> InventorySyncService:
        raise MissingConfigurationError(["DATABASE_URI"])

    monkeypatch.setattr(main_module, "build_service", fail)
    monkeypatch.setattr(main_module, "load_dotenv", lambda: False)

    assert main_module.main(["stats"]) == 1
    assert "DATABASE_URI" in capsys.readouterr().err


def test_unknown_source_is_rejected_by_parser(service: InventorySyncService) -> None:
    del service
    with pytest.raises(SystemExit) as excinfo:
        main_module.main(["sync", "vmware"])

    assert excinfo.value.code == 2
