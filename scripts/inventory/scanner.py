"""Scan orchestration: runs every registered supplier and gathers the inventory."""

from __future__ import annotations

import logging
import threading
import time
import traceback
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Iterable, Optional

from scripts.inventory.alerter import Alerter, Alerts
from scripts.inventory.aws_clients import AwsClientFactory
from scripts.inventory.config import InventoryConfig
from scripts.inventory.db import Database
from scripts.inventory.errors import ScanCancelled, ScanError
from scripts.inventory.parallel import ParallelPool
from scripts.inventory.resources import Resource
from scripts.inventory.state_reader import StateReader
from scripts.inventory.suppliers.base import ResourceSupplier
from scripts.inventory.suppliers.compute import (
    DbInstanceSupplier,
    DbSubnetGroupSupplier,
    EbsVolumeSupplier,
    LambdaFunctionSupplier,
)
from scripts.inventory.suppliers.ec2 import (
    AmiSupplier,
    EbsSnapshotSupplier,
    EipAssociationSupplier,
    EipSupplier,
    InstanceSupplier,
    InternetGatewaySupplier,
    NatGatewaySupplier,
    RouteSupplier,
    RouteTableSupplier,
)
from scripts.inventory.suppliers.iam import (
    IamPolicySupplier,
    IamUserPolicyAttachmentSupplier,
    IamUserPolicySupplier,
    IamUserSupplier,
)
from scripts.inventory.suppliers.route53 import Route53RecordSupplier, Route53ZoneSupplier
from scripts.inventory.suppliers.s3 import (
    S3BucketAnalyticSupplier,
    S3BucketInventorySupplier,
    S3BucketMetricSupplier,
    S3BucketNotificationSupplier,
    S3BucketPolicySupplier,
    S3BucketSupplier,
)

logger = logging.getLogger("inventory.scanner")

SUPPLIER_REGISTRY: dict[str, type[ResourceSupplier]] = {
    cls.RESOURCE_TYPE: cls
    for cls in (
        IamUserSupplier,
        IamUserPolicySupplier,
        IamUserPolicyAttachmentSupplier,
        IamPolicySupplier,
        LambdaFunctionSupplier,
        DbInstanceSupplier,
        DbSubnetGroupSupplier,
        EbsVolumeSupplier,
        InstanceSupplier,
        AmiSupplier,
        EbsSnapshotSupplier,
        EipSupplier,
        EipAssociationSupplier,
        InternetGatewaySupplier,
        NatGatewaySupplier,
        RouteTableSupplier,
        RouteSupplier,
        Route53ZoneSupplier,
        Route53RecordSupplier,
        S3BucketSupplier,
        S3BucketPolicySupplier,
        S3BucketNotificationSupplier,
        S3BucketAnalyticSupplier,
        S3BucketInventorySupplier,
        S3BucketMetricSupplier,
    )
}


def resolve_types(resource_types: Iterable[str] = ()) -> list[str]:
    """Validate the requested types. Empty means every supported type."""
    requested = list(dict.fromkeys(resource_types))
    if not requested:
        return list(SUPPLIER_REGISTRY)
    unknown = [t for t in requested if t not in SUPPLIER_REGISTRY]
    if unknown:
        raise ValueError(f"Unsupported resource types: {', '.join(unknown)}")
    return requested


def build_suppliers(
    resource_types: Iterable[str],
    reader: StateReader,
    pool: ParallelPool,
    alerter: Alerter,
    factory: AwsClientFactory,
) -> list[ResourceSupplier]:
    return [
        SUPPLIER_REGISTRY[typ](reader, pool, alerter, factory)
        for typ in resolve_types(resource_types)
    ]


@dataclass
class ScanResult:
    resources: dict[str, list[Resource]] = field(default_factory=dict)
    alerts: Alerts = field(default_factory=dict)

    def count(self) -> int:
        return sum(len(res) for res in self.resources.values())

    def ignored_types(self) -> list[str]:
        return sorted(
            typ for typ, alerts in self.alerts.items()
            if any(a.should_ignore_resource for a in alerts)
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "resources": {
                typ: [r.to_dict() for r in res]
                for typ, res in sorted(self.resources.items())
            },
            "alerts": {
                typ: [a.to_dict() for a in alerts]
                for typ, alerts in sorted(self.alerts.items())
            },
        }


class Scanner:
    """Runs the suppliers of the selected types concurrently.

    All suppliers share one read pool of ``parallelism`` slots. The first
    hard supplier failure cancels the rest of the scan.
    """

    def __init__(
        self,
        config: InventoryConfig,
        reader: StateReader,
        factory: AwsClientFactory,
        resource_types: Optional[Iterable[str]] = None,
    ) -> None:
        self.config = config
        self.reader = reader
        self.factory = factory
        self.resource_types = resolve_types(resource_types or config.scan.resource_types)
        self._cancel_event = threading.Event()

    def cancel(self) -> None:
        """Stop the running scan, or the next one if none is running."""
        self._cancel_event.set()

    def scan(self) -> ScanResult:
        try:
            return self._scan()
        finally:
            self._cancel_event.clear()

    def _scan(self) -> ScanResult:
        if self._cancel_event.is_set():
            raise ScanCancelled("scan cancelled before it started")
        alerter = Alerter()
        result = ScanResult()
        started = time.monotonic()

        with ParallelPool(self.config.scan.parallelism, self._cancel_event) as pool:
            suppliers = build_suppliers(
                self.resource_types, self.reader, pool, alerter, self.factory
            )
            with ThreadPoolExecutor(
                max_workers=self.config.scan.supplier_concurrency,
                thread_name_prefix="inventory-supplier",
            ) as executor:
                futures = {executor.submit(s.resources): s.RESOURCE_TYPE for s in suppliers}
                try:
                    for future in as_completed(futures):
                        typ = futures[future]
                        try:
                            result.resources[typ] = future.result()
                        except ScanCancelled:
                            raise
                        except Exception as exc:
                            logger.error(
                                "Enumeration of %s failed: %s", typ, exc,
                                extra={"resource_type": typ},
                            )
                            raise ScanError(typ, exc) from exc
                except KeyboardInterrupt:
                    self._abort(pool, futures)
                    raise ScanCancelled("scan interrupted") from None
                except BaseException:
                    self._abort(pool, futures)
                    raise

            if pool.cancelled:
                raise ScanCancelled("scan cancelled")

        result.alerts = alerter.retrieve()
        logger.info(
            "Scan complete: %d resources across %d types", result.count(), len(result.resources),
            extra={
                "records": result.count(),
                "alerts": sum(len(a) for a in result.alerts.values()),
                "duration_s": round(time.monotonic() - started, 3),
            },
        )
        return result

    @staticmethod
    def _abort(pool: ParallelPool, futures: dict) -> None:
        pool.cancel()
        for future in futures:
            future.cancel()

    def scan_with_tracking(self, db: Optional[Database]) -> ScanResult:
        """Wrap scan() with scan_runs tracking and inventory persistence."""
        if db is None:
            return self.scan()

        scan_id = db.record_scan_start(
            region=self.factory.region,
            resource_types=self.resource_types,
        )
        try:
            result = self.scan()
            with db.transaction() as cur:
                for resources in result.resources.values():
                    db.insert_resources(cur, scan_id, [r.to_dict() for r in resources])
            db.record_scan_end(
                scan_id=scan_id,
                status="SUCCESS",
                resources_found=result.count(),
                alerts=result.to_dict()["alerts"],
            )
            logger.info(
                "Scan stored",
                extra={"scan_id": scan_id, "records": result.count()},
            )
            return result
        except Exception as exc:
            try:
                db.record_scan_end(
                    scan_id=scan_id,
                    status="CANCELLED" if isinstance(exc, ScanCancelled) else "FAILED",
                    error_message=str(exc)[:1000],
                    error_detail={"traceback": traceback.format_exc()},
                )
            except Exception:
                logger.exception(
                    "Could not record failure of scan %s", scan_id, extra={"scan_id": scan_id},
                )
            logger.error("Scan failed: %s", exc, extra={"scan_id": scan_id})
            raise
