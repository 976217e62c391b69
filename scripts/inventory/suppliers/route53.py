"""Route53 suppliers: hosted zones and their record sets."""

from __future__ import annotations

from scripts.inventory.pagination import paginate
from scripts.inventory.resources import AWS_ROUTE53_RECORD, AWS_ROUTE53_ZONE
from scripts.inventory.suppliers.base import ReadTask, ResourceSupplier

_ZONE_PREFIX = "/hostedzone/"


def zone_id(hosted_zone: dict) -> str:
    return hosted_zone["Id"].removeprefix(_ZONE_PREFIX)


def record_id(zone: str, record_set: dict) -> str:
    """Composite record key: zoneId_name_type[_setIdentifier].

    The name is lowercased and loses its trailing dot, as in the
    identifiers accepted by the state reader.
    """
    parts = [
        zone,
        record_set["Name"].rstrip(".").lower(),
        record_set["Type"],
    ]
    if record_set.get("SetIdentifier") is not None:
        parts.append(record_set["SetIdentifier"])
    return "_".join(parts)


def list_hosted_zones(client) -> list[dict]:
    return paginate(client, "list_hosted_zones", "HostedZones")


class Route53ZoneSupplier(ResourceSupplier):
    RESOURCE_TYPE = AWS_ROUTE53_ZONE
    SERVICE = "route53"

    def list_items(self) -> list[dict]:
        return list_hosted_zones(self.client)

    def read_tasks(self, items: list[dict]) -> list[ReadTask]:
        return [self._task(zone_id(zone)) for zone in items]


class Route53RecordSupplier(ResourceSupplier):
    RESOURCE_TYPE = AWS_ROUTE53_RECORD
    SERVICE = "route53"
    FORBIDDEN_TYPE = AWS_ROUTE53_ZONE

    def list_items(self) -> list[dict]:
        return list_hosted_zones(self.client)

    def read_tasks(self, items: list[dict]) -> list[ReadTask]:
        tasks = []
        for zone in items:
            zid = zone_id(zone)
            record_sets = paginate(
                self.client, "list_resource_record_sets", "ResourceRecordSets",
                HostedZoneId=zid,
            )
            tasks.extend(self._task(record_id(zid, rs)) for rs in record_sets)
        return tasks
