"""Normalized values -> typed resources."""

from __future__ import annotations

import logging
from typing import Iterable

from scripts.inventory.errors import DeserializationError
from scripts.inventory.resources import RESOURCE_TYPES, Resource
from scripts.inventory.value import Kind, Value

logger = logging.getLogger("inventory.deserializer")


class Deserializer:
    """Turns the state of one resource type into ``resource_cls`` instances.

    Pure and idempotent. NULL values are skipped: they stand for resources
    that disappeared between listing and reading.
    """

    def __init__(self, resource_cls: type[Resource]) -> None:
        self.resource_cls = resource_cls
        self._attributes = resource_cls.attributes()

    @property
    def resource_type(self) -> str:
        return self.resource_cls.TYPE

    def deserialize(self, values: Iterable[Value]) -> list[Resource]:
        resources: list[Resource] = []
        for index, value in enumerate(values):
            if value.is_null():
                logger.debug(
                    "Skipping null state at position %d", index,
                    extra={"resource_type": self.resource_type},
                )
                continue
            resources.append(self._deserialize_one(index, value))
        return resources

    def _deserialize_one(self, index: int, value: Value) -> Resource:
        if value.kind is not Kind.MAP:
            raise DeserializationError(
                f"{self.resource_type}[{index}]: expected a map, got {value.kind.value}"
            )
        res_id = value.get("id")
        if res_id.kind is not Kind.STRING or not res_id.as_str():
            raise DeserializationError(
                f"{self.resource_type}[{index}]: missing or invalid string attribute 'id'"
            )

        kwargs = {"id": res_id.as_str()}
        for field_name, (key, kind) in self._attributes.items():
            attr = value.get(key)
            if attr.is_null():
                continue
            if attr.kind is not kind:
                raise DeserializationError(
                    f"{self.resource_type} {res_id.as_str()}: attribute '{key}' "
                    f"should be {kind.value}, got {attr.kind.value}"
                )
            kwargs[field_name] = attr.to_python()
        return self.resource_cls(**kwargs)


def deserializer_for(resource_type: str) -> Deserializer:
    try:
        return Deserializer(RESOURCE_TYPES[resource_type])
    except KeyError:
        raise ValueError(f"No schema for resource type {resource_type}") from None
