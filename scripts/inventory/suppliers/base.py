"""Abstract base class for all resource suppliers.

A supplier enumerates one resource type in three steps:

  1. ``list_items()``: the primary listing (users, zones, buckets, ...).
     When it is denied, the whole type is ignored and ``FORBIDDEN_TYPE``
     (if set) is named as the operation that was refused.
  2. ``read_tasks(items)``: turns the items into one ``ReadTask`` per
     resource, running any nested listing they need. A denied nested
     listing ignores the whole type.
  3. The tasks are fanned out on a runner of the shared pool, the values
     collected and deserialized, then ``post_filter`` applies.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional

from scripts.inventory.alerter import Alert, Alerter
from scripts.inventory.aws_clients import AwsClientFactory
from scripts.inventory.deserializer import Deserializer, deserializer_for
from scripts.inventory.errors import is_forbidden
from scripts.inventory.parallel import ParallelPool
from scripts.inventory.resources import Resource
from scripts.inventory.state_reader import StateReader
from scripts.inventory.value import Value

logger = logging.getLogger("inventory.supplier")


def handle_list_aws_error(
    exc: BaseException,
    resource_type: str,
    alerter: Alerter,
    forbidden_type: str = "",
) -> bool:
    """Alert and return True when ``exc`` is an authorization denial."""
    if not is_forbidden(exc):
        return False
    message = f"Ignoring {resource_type} from drift calculation: Listing {resource_type} is forbidden."
    if forbidden_type:
        message = (
            f"Ignoring {resource_type} from drift calculation. "
            f"Listing {forbidden_type} is forbidden."
        )
    alerter.send_alert(resource_type, Alert(message=message, should_ignore_resource=True))
    return True


@dataclass(frozen=True)
class ReadTask:
    """Reads one resource. Built before submission, never mutated.

    With an ``alerter``, a denied read drops the item (returns None) and
    records a per-item alert instead of failing the runner.
    """

    reader: StateReader
    resource_type: str
    resource_id: str
    attributes: Mapping[str, str] = field(default_factory=dict)
    alerter: Optional[Alerter] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    def __call__(self) -> Optional[Value]:
        try:
            return self.reader.read_resource(
                self.resource_type, self.resource_id, self.attributes
            )
        except Exception as exc:
            if self.alerter is None or not is_forbidden(exc):
                logger.warning(
                    "Error reading %s[%s]: %s", self.resource_id, self.resource_type, exc,
                    extra={"resource_type": self.resource_type},
                )
                raise
            self.alerter.send_alert(
                self.resource_type,
                Alert(
                    message=(
                        f"Ignoring {self.resource_type} {self.resource_id} from drift "
                        f"calculation: Reading it is forbidden."
                    ),
                    should_ignore_resource=False,
                ),
            )
            return None


class ResourceSupplier(ABC):
    """Each supplier declares RESOURCE_TYPE and implements the listing steps."""

    RESOURCE_TYPE: str = ""
    SERVICE: str = ""
    # Prerequisite type whose listing gates this one (users for user policies)
    FORBIDDEN_TYPE: str = ""
    # False when the provider can deny reads per resource instance
    READ_FORBIDDEN_IS_TYPE_WIDE: bool = True

    def __init__(
        self,
        reader: StateReader,
        pool: ParallelPool,
        alerter: Alerter,
        factory: AwsClientFactory,
        deserializer: Optional[Deserializer] = None,
    ) -> None:
        self.reader = reader
        self.pool = pool
        self.alerter = alerter
        self.factory = factory
        self.client = factory.client(self.SERVICE)
        self.deserializer = deserializer or deserializer_for(self.RESOURCE_TYPE)

    @abstractmethod
    def list_items(self) -> list[Any]:
        """Run the primary listing. Returns raw summaries."""

    @abstractmethod
    def read_tasks(self, items: list[Any]) -> list[ReadTask]:
        """Build one read task per resource to fetch."""

    def post_filter(self, resources: list[Resource]) -> list[Resource]:
        return resources

    def resources(self) -> list[Resource]:
        """Return the typed inventory of this resource type.

        Authorization denials are turned into alerts and yield an empty
        list; every other failure is raised.
        """
        started = time.monotonic()

        try:
            items = self.list_items()
        except Exception as exc:
            if handle_list_aws_error(exc, self.RESOURCE_TYPE, self.alerter, self.FORBIDDEN_TYPE):
                return []
            raise

        try:
            tasks = self.read_tasks(items)
        except Exception as exc:
            if handle_list_aws_error(exc, self.RESOURCE_TYPE, self.alerter):
                return []
            raise

        runner = self.pool.runner()
        for task in tasks:
            runner.run(task)
        try:
            values = runner.wait()
        except Exception as exc:
            if not is_forbidden(exc):
                raise
            self.alerter.send_alert(
                self.RESOURCE_TYPE,
                Alert(
                    message=(
                        f"Ignoring {self.RESOURCE_TYPE} from drift calculation: "
                        f"Reading {self.RESOURCE_TYPE} is forbidden."
                    ),
                    should_ignore_resource=True,
                ),
            )
            return []

        results = self.post_filter(self.deserializer.deserialize(values))
        logger.info(
            "Enumerated %d %s", len(results), self.RESOURCE_TYPE,
            extra={
                "resource_type": self.RESOURCE_TYPE,
                "records": len(results),
                "duration_s": round(time.monotonic() - started, 3),
            },
        )
        return results

    def _task(self, resource_id: str, **attributes: str) -> ReadTask:
        return ReadTask(
            reader=self.reader,
            resource_type=self.RESOURCE_TYPE,
            resource_id=resource_id,
            attributes=attributes,
            alerter=None if self.READ_FORBIDDEN_IS_TYPE_WIDE else self.alerter,
        )
