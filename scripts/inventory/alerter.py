"""Per-resource-type degradation notices collected during a scan."""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict, dataclass

logger = logging.getLogger("inventory.alerter")


@dataclass(frozen=True)
class Alert:
    message: str
    should_ignore_resource: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


Alerts = dict[str, list[Alert]]


class Alerter:
    """Append-only, thread-safe alert sink. One instance per scan."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._alerts: Alerts = {}

    def send_alert(self, resource_type: str, alert: Alert) -> None:
        with self._lock:
            self._alerts.setdefault(resource_type, []).append(alert)
        logger.debug("%s", alert.message, extra={"resource_type": resource_type})

    def retrieve(self) -> Alerts:
        """Snapshot of the alerts sent so far, keyed by resource type."""
        with self._lock:
            return {typ: list(alerts) for typ, alerts in self._alerts.items()}

    def is_ignored(self, resource_type: str) -> bool:
        with self._lock:
            return any(
                a.should_ignore_resource for a in self._alerts.get(resource_type, [])
            )
