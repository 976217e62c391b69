"""EC2 instance, image, address and VPC routing suppliers.

All of them list through the ec2 API of the scan region. A 403 while
reading any item ignores the whole type: EC2 read permissions are granted
account-wide, not per resource.
"""

from __future__ import annotations

import zlib
from typing import Optional

from scripts.inventory.pagination import paginate
from scripts.inventory.resources import (
    AWS_AMI,
    AWS_EBS_SNAPSHOT,
    AWS_EIP,
    AWS_EIP_ASSOCIATION,
    AWS_INSTANCE,
    AWS_INTERNET_GATEWAY,
    AWS_NAT_GATEWAY,
    AWS_ROUTE,
    AWS_ROUTE_TABLE,
)
from scripts.inventory.suppliers.base import ReadTask, ResourceSupplier

# Routes every table is created with; they cannot be managed separately
DEFAULT_ROUTE_ORIGIN = "CreateRouteTable"

ROUTE_DESTINATION_KEYS = (
    ("DestinationCidrBlock", "destination_cidr_block"),
    ("DestinationIpv6CidrBlock", "destination_ipv6_cidr_block"),
    ("DestinationPrefixListId", "destination_prefix_list_id"),
)


def route_id(route_table_id: str, destination: str) -> str:
    """Terraform's id for a route: table id followed by the CRC32 of the destination."""
    return f"r-{route_table_id}{zlib.crc32(destination.encode())}"


def route_destination(route: dict) -> Optional[tuple[str, str]]:
    """Return (attribute name, destination) of the first destination set."""
    for key, name in ROUTE_DESTINATION_KEYS:
        if route.get(key):
            return name, route[key]
    return None


class InstanceSupplier(ResourceSupplier):
    RESOURCE_TYPE = AWS_INSTANCE
    SERVICE = "ec2"

    def list_items(self) -> list[dict]:
        reservations = paginate(self.client, "describe_instances", "Reservations")
        return [
            instance
            for reservation in reservations
            for instance in reservation.get("Instances", [])
        ]

    def read_tasks(self, items: list[dict]) -> list[ReadTask]:
        return [self._task(instance["InstanceId"]) for instance in items]


class AmiSupplier(ResourceSupplier):
    RESOURCE_TYPE = AWS_AMI
    SERVICE = "ec2"

    def list_items(self) -> list[dict]:
        return paginate(self.client, "describe_images", "Images", Owners=["self"])

    def read_tasks(self, items: list[dict]) -> list[ReadTask]:
        return [self._task(image["ImageId"]) for image in items]


class EbsSnapshotSupplier(ResourceSupplier):
    RESOURCE_TYPE = AWS_EBS_SNAPSHOT
    SERVICE = "ec2"

    def list_items(self) -> list[dict]:
        return paginate(self.client, "describe_snapshots", "Snapshots", OwnerIds=["self"])

    def read_tasks(self, items: list[dict]) -> list[ReadTask]:
        return [self._task(snapshot["SnapshotId"]) for snapshot in items]


class EipSupplier(ResourceSupplier):
    RESOURCE_TYPE = AWS_EIP
    SERVICE = "ec2"

    def list_items(self) -> list[dict]:
        # DescribeAddresses is not paginated
        return self.client.describe_addresses().get("Addresses", [])

    def read_tasks(self, items: list[dict]) -> list[ReadTask]:
        return [
            self._task(address["AllocationId"])
            for address in items
            if address.get("AllocationId")
        ]


class EipAssociationSupplier(EipSupplier):
    RESOURCE_TYPE = AWS_EIP_ASSOCIATION

    def read_tasks(self, items: list[dict]) -> list[ReadTask]:
        return [
            self._task(address["AssociationId"])
            for address in items
            if address.get("AssociationId")
        ]


class InternetGatewaySupplier(ResourceSupplier):
    RESOURCE_TYPE = AWS_INTERNET_GATEWAY
    SERVICE = "ec2"

    def list_items(self) -> list[dict]:
        return paginate(self.client, "describe_internet_gateways", "InternetGateways")

    def read_tasks(self, items: list[dict]) -> list[ReadTask]:
        return [self._task(gateway["InternetGatewayId"]) for gateway in items]


class NatGatewaySupplier(ResourceSupplier):
    RESOURCE_TYPE = AWS_NAT_GATEWAY
    SERVICE = "ec2"

    def list_items(self) -> list[dict]:
        return paginate(self.client, "describe_nat_gateways", "NatGateways")

    def read_tasks(self, items: list[dict]) -> list[ReadTask]:
        return [self._task(gateway["NatGatewayId"]) for gateway in items]


class RouteTableSupplier(ResourceSupplier):
    RESOURCE_TYPE = AWS_ROUTE_TABLE
    SERVICE = "ec2"

    def list_items(self) -> list[dict]:
        return [
            table
            for table in paginate(self.client, "describe_route_tables", "RouteTables")
            if table.get("RouteTableId")
        ]

    def read_tasks(self, items: list[dict]) -> list[ReadTask]:
        tasks = []
        for table in items:
            attributes = {"vpc_id": table["VpcId"]} if table.get("VpcId") else {}
            tasks.append(self._task(table["RouteTableId"], **attributes))
        return tasks


class RouteSupplier(RouteTableSupplier):
    """One read per non-default route of every route table."""

    RESOURCE_TYPE = AWS_ROUTE
    FORBIDDEN_TYPE = AWS_ROUTE_TABLE

    def read_tasks(self, items: list[dict]) -> list[ReadTask]:
        tasks = []
        for table in items:
            table_id = table["RouteTableId"]
            for route in table.get("Routes", []):
                if route.get("Origin") == DEFAULT_ROUTE_ORIGIN:
                    continue
                destination = route_destination(route)
                if destination is None:
                    continue
                name, value = destination
                tasks.append(self._task(
                    route_id(table_id, value),
                    route_table_id=table_id,
                    **{name: value},
                ))
        return tasks
