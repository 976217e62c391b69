"""boto3 client construction shared by all suppliers."""

from __future__ import annotations

import logging
import threading
from typing import Optional

import boto3
from botocore.config import Config

from scripts.inventory.config import AwsConfig

logger = logging.getLogger("inventory.aws")


class AwsClientFactory:
    """Caches one boto3 client per (service, region).

    boto3 clients are thread-safe; sessions are not, so clients are created
    under a lock and then shared.
    """

    def __init__(self, config: AwsConfig, session: Optional[boto3.Session] = None) -> None:
        self.region = config.region
        self._session = session or boto3.Session(
            profile_name=config.profile,
            region_name=config.region,
        )
        self._client_config = Config(
            retries={"max_attempts": config.max_attempts, "mode": "standard"},
        )
        self._clients: dict[tuple[str, str], object] = {}
        self._lock = threading.Lock()

    def client(self, service: str, region: Optional[str] = None):
        region = region or self.region
        key = (service, region)
        with self._lock:
            if key not in self._clients:
                logger.debug("Creating %s client for %s", service, region)
                self._clients[key] = self._session.client(
                    service, region_name=region, config=self._client_config
                )
            return self._clients[key]
