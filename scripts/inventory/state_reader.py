"""State reader: resolves one resource's full normalized state."""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Mapping, Optional

import requests

from scripts.inventory.config import StateReaderConfig
from scripts.inventory.errors import RequestFailure, StateReadError
from scripts.inventory.value import Value

logger = logging.getLogger("inventory.state_reader")

RETRYABLE_STATUSES = frozenset({429, 503})


class StateReader(ABC):
    @abstractmethod
    def read_resource(
        self,
        resource_type: str,
        resource_id: str,
        attributes: Optional[Mapping[str, str]] = None,
    ) -> Value:
        """Return the normalized state of one resource (NULL if it is gone).

        Authorization denial must surface as ``RequestFailure(403)``.
        """


class HttpStateReader(StateReader):
    """Client for a state-reading service exposing POST /v1/resources/read."""

    def __init__(self, config: StateReaderConfig, session: Optional[requests.Session] = None) -> None:
        self._url = config.url.rstrip("/") + "/v1/resources/read"
        self._timeout = config.timeout_s
        self._max_retries = config.max_retries
        self._session = session or requests.Session()
        self._session.headers.update({"Accept": "application/json"})
        if config.token:
            self._session.headers["Authorization"] = f"Bearer {config.token}"

    def close(self) -> None:
        self._session.close()

    def read_resource(
        self,
        resource_type: str,
        resource_id: str,
        attributes: Optional[Mapping[str, str]] = None,
    ) -> Value:
        payload = {
            "type": resource_type,
            "id": resource_id,
            "attributes": dict(attributes or {}),
        }
        attempt = 0
        while True:
            try:
                resp = self._session.post(self._url, json=payload, timeout=self._timeout)
            except requests.RequestException as exc:
                raise StateReadError(
                    f"reading {resource_type} {resource_id}: {exc}"
                ) from exc

            if resp.status_code in RETRYABLE_STATUSES and attempt < self._max_retries:
                self._rate_limit_sleep(attempt)
                attempt += 1
                continue
            if not resp.ok:
                raise RequestFailure(
                    resp.status_code, f"reading {resource_type} {resource_id}: {resp.text[:200]}"
                )
            try:
                body = resp.json()
            except ValueError as exc:
                raise StateReadError(
                    f"reading {resource_type} {resource_id}: invalid JSON response"
                ) from exc
            if not isinstance(body, dict) or "state" not in body:
                raise StateReadError(
                    f"reading {resource_type} {resource_id}: response has no 'state'"
                )
            try:
                return Value.from_python(body["state"])
            except TypeError as exc:
                raise StateReadError(f"reading {resource_type} {resource_id}: {exc}") from exc

    @staticmethod
    def _rate_limit_sleep(attempt: int, base_seconds: float = 1.0) -> None:
        """Exponential backoff sleep for rate limiting."""
        delay = base_seconds * (2 ** attempt)
        delay = min(delay, 60.0)  # cap at 60s
        logger.warning("State reader throttled, sleeping %.1fs (attempt %d)", delay, attempt)
        time.sleep(delay)
