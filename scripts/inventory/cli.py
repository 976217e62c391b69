"""CLI entry point: scan, scheduler, status, types."""

from __future__ import annotations

import argparse
import dataclasses
import json
import logging
import os
import sys
from contextlib import contextmanager
from typing import Generator, Optional, Sequence

from scripts.inventory.aws_clients import AwsClientFactory
from scripts.inventory.config import InventoryConfig, load_config
from scripts.inventory.db import Database
from scripts.inventory.errors import ScanCancelled, ScanError
from scripts.inventory.logging_config import configure_logging
from scripts.inventory.scanner import SUPPLIER_REGISTRY, ScanResult, Scanner
from scripts.inventory.state_reader import HttpStateReader

logger = logging.getLogger("inventory.cli")


def _with_parallelism(config: InventoryConfig, parallelism: Optional[int]) -> InventoryConfig:
    if parallelism is None:
        return config
    if parallelism < 1:
        raise ValueError(f"--parallelism must be >= 1, got {parallelism}")
    return dataclasses.replace(
        config, scan=dataclasses.replace(config.scan, parallelism=parallelism)
    )


@contextmanager
def open_scanner(
    config: InventoryConfig,
    resource_types: Optional[Sequence[str]] = None,
) -> Generator[tuple[Scanner, Optional[Database]], None, None]:
    """Build a scanner (and the database, when configured) and close them after."""
    reader = HttpStateReader(config.state_reader)
    db = Database(config.database) if config.database else None
    try:
        scanner = Scanner(
            config,
            reader=reader,
            factory=AwsClientFactory(config.aws),
            resource_types=resource_types,
        )
        yield scanner, db
    finally:
        reader.close()
        if db is not None:
            db.close()


def print_summary(result: ScanResult, out=None) -> None:
    out = out or sys.stdout
    fmt = "{:<40}  {:>9}"
    print(fmt.format("RESOURCE TYPE", "RESOURCES"), file=out)
    print("-" * 51, file=out)
    for typ in sorted(result.resources):
        print(fmt.format(typ, len(result.resources[typ])), file=out)
    print("-" * 51, file=out)
    print(fmt.format("TOTAL", result.count()), file=out)

    # One line per ignored type, not per missing resource
    for typ in result.ignored_types():
        notice = next(a for a in result.alerts[typ] if a.should_ignore_resource)
        print(f"WARNING: {notice.message}", file=out)
    skipped = sum(
        1 for alerts in result.alerts.values()
        for a in alerts if not a.should_ignore_resource
    )
    if skipped:
        print(f"WARNING: {skipped} resource(s) could not be read and were skipped", file=out)


def cmd_scan(args: argparse.Namespace) -> None:
    """Run one scan and print (or write) the inventory."""
    config = _with_parallelism(load_config(), args.parallelism)

    with open_scanner(config, args.type) as (scanner, db):
        try:
            result = scanner.scan_with_tracking(db)
        except ScanCancelled:
            logger.warning("Scan cancelled")
            sys.exit(130)
        except ScanError as exc:
            logger.error("Scan failed: %s", exc, extra={"resource_type": exc.resource_type})
            sys.exit(1)

    print_summary(result)
    if args.output:
        with open(args.output, "w", encoding="utf-8") as fh:
            json.dump(result.to_dict(), fh, indent=2, default=str)
        logger.info("Inventory written to %s", args.output)


def cmd_scheduler(args: argparse.Namespace) -> None:
    """Start the APScheduler-based scanning loop."""
    from scripts.inventory.scheduler import start_scheduler

    start_scheduler(load_config())


def cmd_status(args: argparse.Namespace) -> None:
    """Show recent scans."""
    config = load_config()
    if config.database is None:
        print("No database configured (set DATABASE_URL).")
        return
    db = Database(config.database)

    try:
        runs = db.get_recent_scans(limit=args.limit)
        if not runs:
            print("No scans found.")
            return

        fmt = "{:<36}  {:<14}  {:<9}  {:<20}  {:<20}  {:>9}  {}"
        print(fmt.format(
            "SCAN ID", "REGION", "STATUS", "STARTED", "FINISHED", "RESOURCES", "ERROR",
        ))
        print("-" * 140)
        for r in runs:
            started = str(r["started_at"])[:19] if r["started_at"] else ""
            finished = str(r["finished_at"])[:19] if r["finished_at"] else ""
            error = (r.get("error_message") or "")[:40]
            print(fmt.format(
                str(r["id"])[:36],
                r["region"],
                r["status"],
                started,
                finished,
                r.get("resources_found") or 0,
                error,
            ))
    finally:
        db.close()


def cmd_types(args: argparse.Namespace) -> None:
    """List supported resource types."""
    for typ in sorted(SUPPLIER_REGISTRY):
        print(typ)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="inventory",
        description="Concurrent AWS resource inventory for drift detection",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # scan command
    scan_parser = subparsers.add_parser("scan", help="Run one scan")
    scan_parser.add_argument(
        "--type", "-t",
        action="append",
        choices=sorted(SUPPLIER_REGISTRY),
        help="Resource type to scan (repeatable, default: all)",
    )
    scan_parser.add_argument(
        "--output", "-o",
        help="Write the inventory as JSON to this file",
    )
    scan_parser.add_argument(
        "--parallelism", "-j",
        type=int,
        default=None,
        help="Maximum concurrent state reads (default: SCAN_PARALLELISM)",
    )
    scan_parser.set_defaults(func=cmd_scan)

    # scheduler command
    sched_parser = subparsers.add_parser("scheduler", help="Start scheduled scan loop")
    sched_parser.set_defaults(func=cmd_scheduler)

    # status command
    status_parser = subparsers.add_parser("status", help="Show recent scans")
    status_parser.add_argument(
        "--limit", "-l",
        type=int,
        default=10,
        help="Number of scans to show (default: 10)",
    )
    status_parser.set_defaults(func=cmd_status)

    # types command
    types_parser = subparsers.add_parser("types", help="List supported resource types")
    types_parser.set_defaults(func=cmd_types)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> None:
    """Main CLI entry point."""
    configure_logging(
        os.environ.get("LOG_LEVEL", "INFO"),
        os.environ.get("LOG_FORMAT", "json"),
    )

    args = build_parser().parse_args(argv)
    args.func(args)


if __name__ == "__main__":
    main()
