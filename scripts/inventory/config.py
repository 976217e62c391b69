"""Configuration via environment variables with cloud-native secret support.

Supports:
  - Environment variables (local dev)
  - .env files
  - AWS Secrets Manager references (aws-secret://name#key)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

from scripts.inventory.secrets import resolve_database_url, resolve_secret


@dataclass(frozen=True)
class DatabaseConfig:
    url: str
    min_connections: int = 1
    max_connections: int = 5


@dataclass(frozen=True)
class AwsConfig:
    region: str = "us-east-1"
    profile: Optional[str] = None  # None = default credential chain / IAM role
    max_attempts: int = 5


@dataclass(frozen=True)
class StateReaderConfig:
    url: str
    token: Optional[str] = None
    timeout_s: float = 30.0
    max_retries: int = 3


@dataclass(frozen=True)
class ScanConfig:
    parallelism: int = 10
    supplier_concurrency: int = 4
    resource_types: tuple[str, ...] = ()  # empty = every supported type


@dataclass(frozen=True)
class SchedulerConfig:
    scan_interval_min: int = 60
    misfire_grace_time: int = 300
    max_retries: int = 3


@dataclass(frozen=True)
class InventoryConfig:
    state_reader: StateReaderConfig
    aws: AwsConfig = field(default_factory=AwsConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    database: Optional[DatabaseConfig] = None


def _int_env(name: str, default: int, minimum: int = 0) -> int:
    raw = os.environ.get(name, "")
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _csv_env(name: str) -> tuple[str, ...]:
    raw = os.environ.get(name, "")
    return tuple(s.strip() for s in raw.split(",") if s.strip())


def load_config() -> InventoryConfig:
    """Load configuration from environment variables.

    Persistence is enabled only when DATABASE_URL (or PG_HOST) is set.
    """
    load_dotenv()

    reader_url = os.environ.get("STATE_READER_URL", "")
    if not reader_url:
        raise ValueError("STATE_READER_URL environment variable is required")

    token_raw = os.environ.get("STATE_READER_TOKEN", "")
    state_reader = StateReaderConfig(
        url=reader_url,
        token=resolve_secret(token_raw) if token_raw else None,
        timeout_s=float(_int_env("STATE_READER_TIMEOUT", 30, minimum=1)),
        max_retries=_int_env("STATE_READER_MAX_RETRIES", 3),
    )

    aws = AwsConfig(
        region=os.environ.get("AWS_REGION", "us-east-1"),
        profile=os.environ.get("AWS_PROFILE") or None,
        max_attempts=_int_env("AWS_MAX_ATTEMPTS", 5, minimum=1),
    )

    resource_types = _csv_env("SCAN_RESOURCE_TYPES")
    if resource_types:
        # Imported lazily: the registry pulls in every supplier module
        from scripts.inventory.scanner import SUPPLIER_REGISTRY

        unknown = sorted(set(resource_types) - set(SUPPLIER_REGISTRY))
        if unknown:
            raise ValueError(f"Unknown resource types in SCAN_RESOURCE_TYPES: {', '.join(unknown)}")

    scan = ScanConfig(
        parallelism=_int_env("SCAN_PARALLELISM", 10, minimum=1),
        supplier_concurrency=_int_env("SCAN_SUPPLIER_CONCURRENCY", 4, minimum=1),
        resource_types=resource_types,
    )

    scheduler = SchedulerConfig(
        scan_interval_min=_int_env("SCAN_INTERVAL_MIN", 60, minimum=1),
        misfire_grace_time=_int_env("SCHEDULER_MISFIRE_GRACE", 300),
        max_retries=_int_env("SCHEDULER_MAX_RETRIES", 3),
    )

    database = None
    db_url = resolve_database_url()
    if db_url:
        database = DatabaseConfig(
            url=db_url,
            min_connections=_int_env("DB_MIN_CONNECTIONS", 1, minimum=1),
            max_connections=_int_env("DB_MAX_CONNECTIONS", 5, minimum=1),
        )

    return InventoryConfig(
        state_reader=state_reader,
        aws=aws,
        scan=scan,
        scheduler=scheduler,
        database=database,
    )
