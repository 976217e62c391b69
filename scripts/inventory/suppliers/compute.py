"""Lambda, RDS and EBS suppliers: one paginated listing, one read per item."""

from __future__ import annotations

from scripts.inventory.pagination import paginate
from scripts.inventory.resources import (
    AWS_DB_INSTANCE,
    AWS_DB_SUBNET_GROUP,
    AWS_EBS_VOLUME,
    AWS_LAMBDA_FUNCTION,
)
from scripts.inventory.suppliers.base import ReadTask, ResourceSupplier


class LambdaFunctionSupplier(ResourceSupplier):
    RESOURCE_TYPE = AWS_LAMBDA_FUNCTION
    SERVICE = "lambda"

    def list_items(self) -> list[dict]:
        return paginate(self.client, "list_functions", "Functions")

    def read_tasks(self, items: list[dict]) -> list[ReadTask]:
        return [
            self._task(fn["FunctionName"], function_name=fn["FunctionName"])
            for fn in items
        ]


class DbInstanceSupplier(ResourceSupplier):
    RESOURCE_TYPE = AWS_DB_INSTANCE
    SERVICE = "rds"

    def list_items(self) -> list[dict]:
        return paginate(self.client, "describe_db_instances", "DBInstances")

    def read_tasks(self, items: list[dict]) -> list[ReadTask]:
        return [self._task(db["DBInstanceIdentifier"]) for db in items]


class DbSubnetGroupSupplier(ResourceSupplier):
    RESOURCE_TYPE = AWS_DB_SUBNET_GROUP
    SERVICE = "rds"

    def list_items(self) -> list[dict]:
        return paginate(self.client, "describe_db_subnet_groups", "DBSubnetGroups")

    def read_tasks(self, items: list[dict]) -> list[ReadTask]:
        return [self._task(group["DBSubnetGroupName"]) for group in items]


class EbsVolumeSupplier(ResourceSupplier):
    RESOURCE_TYPE = AWS_EBS_VOLUME
    SERVICE = "ec2"

    def list_items(self) -> list[dict]:
        return paginate(self.client, "describe_volumes", "Volumes")

    def read_tasks(self, items: list[dict]) -> list[ReadTask]:
        return [self._task(volume["VolumeId"]) for volume in items]
