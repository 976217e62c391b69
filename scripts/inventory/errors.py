"""Exception hierarchy and authorization-failure classification."""

from __future__ import annotations

from typing import Optional

from botocore.exceptions import ClientError

FORBIDDEN_STATUS = 403


class InventoryError(Exception):
    """Base class for all inventory scan errors."""


class RequestFailure(InventoryError):
    """A remote request completed with a non-success HTTP status."""

    def __init__(self, status_code: int, message: str = "") -> None:
        self.status_code = status_code
        self.message = message
        text = f"request failed with status {status_code}"
        if message:
            text = f"{text}: {message}"
        super().__init__(text)


class StateReadError(InventoryError):
    """The state reader could not be reached or returned garbage."""


class PaginationError(InventoryError):
    """A paginated listing returned an inconsistent page sequence."""


class DeserializationError(InventoryError):
    """A normalized value does not match its resource schema."""


class ScanCancelled(InventoryError):
    """The scan was aborted by request."""


class ScanError(InventoryError):
    """A supplier failed hard; the inventory for its type is unusable."""

    def __init__(self, resource_type: str, cause: BaseException) -> None:
        self.resource_type = resource_type
        self.cause = cause
        super().__init__(f"listing {resource_type} failed: {cause}")


def status_code_of(exc: BaseException) -> Optional[int]:
    """Return the HTTP status carried by a remote error, if any."""
    if isinstance(exc, RequestFailure):
        return exc.status_code
    if isinstance(exc, ClientError):
        return exc.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return None


def is_forbidden(exc: BaseException) -> bool:
    return status_code_of(exc) == FORBIDDEN_STATUS
