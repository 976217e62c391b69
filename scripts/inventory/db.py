"""Database helpers: connection pool, scan run tracking, inventory storage."""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from typing import Any, Generator, Optional, Sequence

import psycopg2
import psycopg2.extras
import psycopg2.pool

from scripts.inventory.config import DatabaseConfig

logger = logging.getLogger("inventory.db")


class Database:
    """Thin wrapper around a ThreadedConnectionPool with scan helpers."""

    def __init__(self, config: DatabaseConfig) -> None:
        self._pool = psycopg2.pool.ThreadedConnectionPool(
            minconn=config.min_connections,
            maxconn=config.max_connections,
            dsn=config.url,
        )

    def close(self) -> None:
        self._pool.closeall()

    @contextmanager
    def connection(self) -> Generator:
        conn = self._pool.getconn()
        try:
            yield conn
        finally:
            self._pool.putconn(conn)

    @contextmanager
    def transaction(self) -> Generator:
        """Yield a cursor inside an auto-commit/rollback transaction."""
        with self.connection() as conn:
            try:
                with conn.cursor() as cur:
                    yield cur
                conn.commit()
            except Exception:
                conn.rollback()
                raise

    # ------------------------------------------------------------------
    # Scan run tracking
    # ------------------------------------------------------------------

    def record_scan_start(
        self,
        region: str,
        resource_types: Sequence[str],
    ) -> str:
        """Insert a new scan_runs row with status RUNNING. Returns the scan id."""
        scan_id = str(uuid.uuid4())
        with self.transaction() as cur:
            cur.execute(
                """INSERT INTO scan_runs (id, region, resource_types, status)
                   VALUES (%s, %s, %s, 'RUNNING')""",
                (scan_id, region, list(resource_types)),
            )
        return scan_id

    def record_scan_end(
        self,
        scan_id: str,
        status: str,
        resources_found: int = 0,
        alerts: Optional[dict] = None,
        error_message: Optional[str] = None,
        error_detail: Optional[dict] = None,
    ) -> None:
        """Finalise a scan_runs row."""
        with self.transaction() as cur:
            cur.execute(
                """UPDATE scan_runs
                   SET status = %s,
                       finished_at = NOW(),
                       resources_found = %s,
                       alerts = %s,
                       error_message = %s,
                       error_detail = %s
                   WHERE id = %s""",
                (
                    status,
                    resources_found,
                    psycopg2.extras.Json(alerts or {}),
                    error_message,
                    psycopg2.extras.Json(error_detail) if error_detail else None,
                    scan_id,
                ),
            )

    def insert_resources(self, cur, scan_id: str, rows: Sequence[dict[str, Any]]) -> int:
        """Bulk insert resource dicts (``Resource.to_dict()``) for a scan.

        Returns the number of rows written.
        """
        if not rows:
            return 0
        values = [
            (scan_id, row["type"], row["id"], psycopg2.extras.Json(row))
            for row in rows
        ]
        sql = (
            "INSERT INTO inventory_resources (scan_id, resource_type, resource_id, attributes) "
            "VALUES %s ON CONFLICT (scan_id, resource_type, resource_id) "
            "DO UPDATE SET attributes = EXCLUDED.attributes"
        )
        psycopg2.extras.execute_values(cur, sql, values, page_size=500)
        return cur.rowcount

    def get_recent_scans(self, limit: int = 10) -> list[dict[str, Any]]:
        """Fetch recent scan runs for status display."""
        with self.transaction() as cur:
            cur.execute(
                """SELECT id, region, status, started_at, finished_at,
                          resources_found, alerts, error_message
                   FROM scan_runs
                   ORDER BY started_at DESC LIMIT %s""",
                (limit,),
            )
            cols = [d[0] for d in cur.description]
            return [dict(zip(cols, row)) for row in cur.fetchall()]
