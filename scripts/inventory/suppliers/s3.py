"""S3 suppliers: buckets and their per-bucket configurations.

Bucket policies can deny access to a single bucket, so a denied read only
drops that item. Denials on ListBuckets or on a configuration listing
still ignore the whole type.
"""

from __future__ import annotations

import logging

from botocore.exceptions import ClientError

from scripts.inventory.pagination import s3_configuration_pages, walk_pages
from scripts.inventory.resources import (
    AWS_S3_BUCKET,
    AWS_S3_BUCKET_ANALYTICS_CONFIGURATION,
    AWS_S3_BUCKET_INVENTORY,
    AWS_S3_BUCKET_METRIC,
    AWS_S3_BUCKET_NOTIFICATION,
    AWS_S3_BUCKET_POLICY,
    Resource,
    S3BucketNotification,
)
from scripts.inventory.suppliers.base import ReadTask, ResourceSupplier

logger = logging.getLogger("inventory.s3")


def read_bucket_region(client, name: str) -> str:
    """Return the bucket's region, or "" when the bucket no longer exists."""
    try:
        resp = client.get_bucket_location(Bucket=name)
    except ClientError as exc:
        if exc.response.get("Error", {}).get("Code") == "NoSuchBucket":
            logger.debug("Bucket %s disappeared during listing, skipping", name)
            return ""
        raise
    location = resp.get("LocationConstraint") or "us-east-1"
    # Legacy constraint returned for buckets created in Ireland
    if location == "EU":
        return "eu-west-1"
    return location


class _BucketSupplier(ResourceSupplier):
    SERVICE = "s3"
    FORBIDDEN_TYPE = AWS_S3_BUCKET
    READ_FORBIDDEN_IS_TYPE_WIDE = False

    def list_items(self) -> list[dict]:
        return self.client.list_buckets().get("Buckets", [])

    def bucket_regions(self, buckets: list[dict]) -> list[tuple[str, str]]:
        located = []
        for bucket in buckets:
            region = read_bucket_region(self.client, bucket["Name"])
            if region:
                located.append((bucket["Name"], region))
        return located

    def read_tasks(self, items: list[dict]) -> list[ReadTask]:
        return [
            self._task(name, aws_region=region)
            for name, region in self.bucket_regions(items)
        ]


class S3BucketSupplier(_BucketSupplier):
    RESOURCE_TYPE = AWS_S3_BUCKET
    FORBIDDEN_TYPE = ""


class S3BucketPolicySupplier(_BucketSupplier):
    RESOURCE_TYPE = AWS_S3_BUCKET_POLICY


class S3BucketNotificationSupplier(_BucketSupplier):
    RESOURCE_TYPE = AWS_S3_BUCKET_NOTIFICATION

    def post_filter(self, resources: list[Resource]) -> list[Resource]:
        # A notification without any target is the same as no notification
        return [
            res for res in resources
            if isinstance(res, S3BucketNotification) and not res.is_empty()
        ]


class _BucketConfigurationSupplier(_BucketSupplier):
    """Suppliers of the configurations listed per bucket (analytics, ...)."""

    LIST_METHOD: str = ""
    LIST_KEY: str = ""

    def read_tasks(self, items: list[dict]) -> list[ReadTask]:
        tasks = []
        for name, region in self.bucket_regions(items):
            client = self.factory.client("s3", region)
            configurations = walk_pages(
                s3_configuration_pages(client, self.LIST_METHOD, self.LIST_KEY, name)
            )
            for configuration in configurations:
                tasks.append(self._task(f"{name}:{configuration['Id']}", aws_region=region))
        return tasks


class S3BucketAnalyticSupplier(_BucketConfigurationSupplier):
    RESOURCE_TYPE = AWS_S3_BUCKET_ANALYTICS_CONFIGURATION
    LIST_METHOD = "list_bucket_analytics_configurations"
    LIST_KEY = "AnalyticsConfigurationList"


class S3BucketInventorySupplier(_BucketConfigurationSupplier):
    RESOURCE_TYPE = AWS_S3_BUCKET_INVENTORY
    LIST_METHOD = "list_bucket_inventory_configurations"
    LIST_KEY = "InventoryConfigurationList"


class S3BucketMetricSupplier(_BucketConfigurationSupplier):
    RESOURCE_TYPE = AWS_S3_BUCKET_METRIC
    LIST_METHOD = "list_bucket_metrics_configurations"
    LIST_KEY = "MetricsConfigurationList"
