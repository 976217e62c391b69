"""Shared fixtures: boto3 client doubles, a replaying state reader, the read pool."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Callable, Mapping, Optional, Union
from unittest.mock import MagicMock

import pytest
from botocore.exceptions import ClientError

from scripts.inventory.alerter import Alerter
from scripts.inventory.config import InventoryConfig, ScanConfig, StateReaderConfig
from scripts.inventory.parallel import ParallelPool
from scripts.inventory.state_reader import StateReader
from scripts.inventory.value import Value

TESTDATA = Path(__file__).parent / "testdata"


def client_error(status: int = 403, code: str = "AccessDenied", operation: str = "List") -> ClientError:
    return ClientError(
        {
            "Error": {"Code": code, "Message": f"{code} error"},
            "ResponseMetadata": {"HTTPStatusCode": status},
        },
        operation,
    )


PagesSource = Union[list, Exception, Callable[[dict], Any]]


def make_paginator(source: PagesSource) -> MagicMock:
    """A paginator whose paginate(**kwargs) replays pages.

    ``source`` is a list of pages, an exception to raise, or a callable
    receiving the paginate kwargs and returning either.
    """
    paginator = MagicMock()

    def paginate(**kwargs):
        result = source(kwargs) if callable(source) else source
        if isinstance(result, Exception):
            raise result
        return iter(result)

    paginator.paginate.side_effect = paginate
    return paginator


def paginated_client(**methods: PagesSource) -> MagicMock:
    client = MagicMock()
    paginators = {name: make_paginator(source) for name, source in methods.items()}
    client.get_paginator.side_effect = lambda name: paginators[name]
    return client


class FakeFactory:
    """Stand-in for AwsClientFactory handing out pre-built clients."""

    def __init__(self, clients: Optional[dict] = None, region: str = "us-east-1") -> None:
        self.region = region
        self.clients = clients or {}
        self.requested: list[tuple[str, Optional[str]]] = []

    def client(self, service: str, region: Optional[str] = None):
        self.requested.append((service, region))
        if (service, region) in self.clients:
            return self.clients[(service, region)]
        return self.clients.setdefault(service, MagicMock())


class FakeStateReader(StateReader):
    """Replays states keyed by resource type then id.

    ``errors`` maps (type, id) to an exception raised instead of a value.
    Every call is recorded in ``calls``.
    """

    def __init__(
        self,
        states: Optional[Mapping[str, Mapping[str, Any]]] = None,
        errors: Optional[Mapping[tuple[str, str], Exception]] = None,
    ) -> None:
        self.states = {typ: dict(by_id) for typ, by_id in (states or {}).items()}
        self.errors = dict(errors or {})
        self.calls: list[tuple[str, str, dict]] = []
        self._lock = threading.Lock()

    @classmethod
    def from_testdata(cls, name: str, **kwargs) -> "FakeStateReader":
        return cls(load_testdata(name)["states"], **kwargs)

    def read_resource(self, resource_type, resource_id, attributes=None) -> Value:
        with self._lock:
            self.calls.append((resource_type, resource_id, dict(attributes or {})))
        error = self.errors.get((resource_type, resource_id))
        if error is not None:
            raise error
        try:
            state = self.states[resource_type][resource_id]
        except KeyError:
            raise AssertionError(f"unexpected read of {resource_type} {resource_id}") from None
        return Value.from_python(state)


def load_testdata(name: str) -> dict:
    with open(TESTDATA / f"{name}.json", encoding="utf-8") as fh:
        return json.load(fh)


def assert_golden(resources, name: str) -> None:
    """Compare resources (order-insensitive) with the ``expected`` list of a fixture."""
    expected = load_testdata(name)["expected"]
    got = sorted((r.to_dict() for r in resources), key=lambda d: d["id"])
    assert got == sorted(expected, key=lambda d: d["id"])


@pytest.fixture
def alerter():
    return Alerter()


@pytest.fixture
def pool():
    read_pool = ParallelPool(4)
    yield read_pool
    read_pool.close()


@pytest.fixture
def inventory_config():
    return InventoryConfig(
        state_reader=StateReaderConfig(url="http://state-reader.local"),
        scan=ScanConfig(parallelism=4, supplier_concurrency=2),
    )
