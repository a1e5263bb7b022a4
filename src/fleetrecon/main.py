#!/usr/bin/env python3

# ruff: noqa: T201

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import sys
from signal import SIGINT, SIGTERM, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from fleetrecon.app import build_service
from fleetrecon.config import VALID_INTERVALS, ConfigurationError, configure_logging
from fleetrecon.domain.errors import FleetReconError, ValidationError
from fleetrecon.domain.model import SourceType

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from types import FrameType

    from fleetrecon.app import InventorySyncService
    from fleetrecon.domain.model import SyncSchedule

SOURCE_CHOICES = [source.value for source in SourceType]


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="fleetrecon",
        description="Synchronise and reconcile Azure Migrate and DrMigrate inventories",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("run", help="Run the sync scheduler until interrupted")

    sync_parser = commands.add_parser("sync", help="Run one sync cycle for a source")
    sync_parser.add_argument("source", choices=SOURCE_CHOICES)

    schedule_parser = commands.add_parser("schedule", help="Show or change a sync schedule")
    schedule_parser.add_argument("source", choices=SOURCE_CHOICES)
    toggle = schedule_parser.add_mutually_exclusive_group()
    toggle.add_argument("--enable", dest="enabled", action="store_true", default=None)
    toggle.add_argument("--disable", dest="enabled", action="store_false")
    schedule_parser.add_argument(
        "--interval",
        type=int,
        help=f"Minutes between syncs, one of {', '.join(map(str, VALID_INTERVALS))}",
    )

    health_parser = commands.add_parser("health", help="Show source connection health")
    health_parser.add_argument(
        "--check", action="store_true", help="Probe every source before printing"
    )

    commands.add_parser("stats", help="Print matching statistics")

    match_parser = commands.add_parser("match", help="Set or clear a manual mapping")
    match_parser.add_argument("azure_id", help="Azure Migrate machine id")
    target = match_parser.add_mutually_exclusive_group(required=True)
    target.add_argument("--legacy-id", help="DrMigrate server id to link")
    target.add_argument("--clear", action="store_true", help="Remove the manual mapping")

    return parser.parse_args(list(argv))


def _format_time(value: datetime | None) -> str:
    return value.isoformat(timespec="seconds") if value else "never"


def _print_schedule(schedule: SyncSchedule) -> None:
    state = "enabled" if schedule.enabled else "disabled"
    print(f"{schedule.source_type}: {state}, every {schedule.interval_minutes} minutes")
    status = schedule.last_sync_status or "-"
    print(f"  last sync: {_format_time(schedule.last_sync_at)} ({status})")
    if schedule.last_sync_error:
        print(f"  last error: {schedule.last_sync_error}")
    if schedule.last_sync_count is not None:
        print(f"  last count: {schedule.last_sync_count} in {schedule.last_sync_duration}ms")
    print(f"  next sync: {_format_time(schedule.next_sync_at)}")


async def _run_daemon(service: InventorySyncService) -> int:
    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (SIGINT, SIGTERM):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, stop.set)

    active = await service.start()
    print(f"Scheduler running with {active} active schedule(s); press Ctrl+C to stop")
    try:
        await stop.wait()
    finally:
        await service.stop()
    print("Scheduler stopped")
    return 0


async def _sync(service: InventorySyncService, source: SourceType) -> int:
    result = await service.trigger_sync(source)
    print(f"{result.source}: {result.status} ({result.count} records, {result.duration_ms}ms)")
    if result.error:
        print(f"  error: {result.error}")
    return 0 if result.succeeded else 1


async def _schedule(service: InventorySyncService, args: argparse.Namespace) -> int:
    source = SourceType(args.source)
    if args.enabled is None and args.interval is None:
        _print_schedule(service.get_schedule(source))
        return 0
    enabled = args.enabled if args.enabled is not None else service.get_schedule(source).enabled
    schedule = await service.update_schedule(
        source, enabled=enabled, interval_minutes=args.interval
    )
    _print_schedule(schedule)
    return 0


async def _health(service: InventorySyncService, *, check: bool) -> int:
    if check:
        await service.check_all_health()
    for summary in service.get_all_health():
        response = (
            f"{summary.response_time_ms}ms" if summary.response_time_ms is not None else "-"
        )
        print(
            f"{summary.source_type}: {summary.status} "
            f"(response {response}, uptime {summary.uptime}%, machines {summary.machine_count})"
        )
        print(f"  last check: {_format_time(summary.last_check_at)}")
        if summary.error:
            print(f"  error: {summary.error}")
    return 0


def _stats(service: InventorySyncService) -> int:
    overview = service.get_overview_stats()
    matching = service.get_matching_stats()
    breakdown = service.get_machine_breakdown()
    distribution = matching.confidence_distribution

    print(f"Azure Migrate machines: {overview.azure_total}")
    print(f"DrMigrate servers:      {overview.legacy_total}")
    print(f"Matched:                {overview.matched_count} ({overview.match_percentage}%)")
    print(f"  auto / manual:        {overview.auto_matched} / {overview.manual_matched}")
    print(f"Unmatched azure:        {overview.unmatched_azure}")
    print(f"Unmatched legacy:       {overview.unmatched_legacy}")
    print(
        f"Confidence:             high {distribution.high}, medium {distribution.medium}, "
        f"low {distribution.low}"
    )
    print(f"Last azure sync:        {_format_time(overview.last_azure_sync)}")
    print(f"Last legacy sync:       {_format_time(overview.last_legacy_sync)}")
    for title, counts in (
        ("Operating systems", breakdown.by_operating_system),
        ("Waves", breakdown.by_wave),
        ("Environments", breakdown.by_environment),
    ):
        print(f"{title}:")
        for label, count in counts.items():
            print(f"  {label}: {count}")
    return 0


def _match(service: InventorySyncService, args: argparse.Namespace) -> int:
    if args.clear:
        mapping = service.clear_manual_mapping(args.azure_id)
        state = mapping.match_type if mapping else "removed"
        print(f"Manual mapping cleared for {args.azure_id}; now {state}")
        return 0
    mapping = service.set_manual_mapping(args.azure_id, args.legacy_id)
    print(f"{mapping.azure_record_id} -> {mapping.legacy_record_id} (manual)")
    return 0


async def _dispatch(service: InventorySyncService, args: argparse.Namespace) -> int:
    match args.command:
        case "run":
            return await _run_daemon(service)
        case "sync":
            return await _sync(service, SourceType(args.source))
        case "schedule":
            return await _schedule(service, args)
        case "health":
            return await _health(service, check=args.check)
        case "stats":
            return _stats(service)
        case "match":
            return _match(service, args)
        case _:
            raise ValueError(f"Unknown command: {args.command}")


async def _execute(service: InventorySyncService, args: argparse.Namespace) -> int:
    if args.command == "run":
        return await _dispatch(service, args)
    try:
        return await _dispatch(service, args)
    finally:
        await service.stop()


def main(argv: Sequence[str] | None = None) -> int:
    """Main application entry point."""

    load_dotenv()
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    configure_logging(level=logging.DEBUG if args.verbose else logging.INFO)

    try:
        service = build_service()
    except (ConfigurationError, FleetReconError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    try:
        return asyncio.run(_execute(service, args))
    except ValidationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    except FleetReconError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """Handle SIGINT (Ctrl+C) gracefully."""
    print("\nClosed by user (Ctrl+C)")
    sys.exit(0)


if __name__ == "__main__":
    signal(SIGINT, sigint_handler)
    sys.exit(main())
