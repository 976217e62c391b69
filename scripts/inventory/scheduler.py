"""APScheduler-based interval scheduling for inventory scans."""

from __future__ import annotations

import logging
import time

from apscheduler.events import EVENT_JOB_ERROR
from apscheduler.schedulers.blocking import BlockingScheduler

from scripts.inventory.config import InventoryConfig
from scripts.inventory.errors import ScanCancelled

logger = logging.getLogger("inventory.scheduler")

BACKOFF_BASE_S = 30


def run_scan(config: InventoryConfig) -> None:
    """Run a single scan with retry logic."""
    from scripts.inventory.cli import open_scanner

    max_retries = config.scheduler.max_retries

    for attempt in range(max_retries + 1):
        try:
            with open_scanner(config) as (scanner, db):
                scanner.scan_with_tracking(db)
            return
        except ScanCancelled:
            logger.warning("Scheduled scan cancelled")
            return
        except Exception as exc:
            if attempt < max_retries:
                delay = BACKOFF_BASE_S * (2 ** attempt)
                logger.warning(
                    "Scan failed (attempt %d/%d), retrying in %ds: %s",
                    attempt + 1, max_retries, delay, exc,
                )
                time.sleep(delay)
            else:
                logger.error("Scan failed after %d retries: %s", max_retries, exc)


def _on_job_error(event) -> None:
    """Log job execution errors."""
    logger.error(
        "Job %s raised an exception: %s",
        event.job_id,
        event.exception,
    )


def build_scheduler(config: InventoryConfig) -> BlockingScheduler:
    scheduler = BlockingScheduler()
    scheduler.add_listener(_on_job_error, EVENT_JOB_ERROR)
    sched = config.scheduler

    scheduler.add_job(
        run_scan,
        "interval",
        minutes=sched.scan_interval_min,
        args=[config],
        id="inventory_scan",
        max_instances=1,
        misfire_grace_time=sched.misfire_grace_time,
    )
    return scheduler


def start_scheduler(config: InventoryConfig) -> None:
    """Start the blocking scheduler with the periodic scan job."""
    scheduler = build_scheduler(config)
    logger.info("Starting scheduler with jobs: %s",
                [j.id for j in scheduler.get_jobs()])
    scheduler.start()
