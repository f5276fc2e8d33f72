"""
Error taxonomy of the chart registry.

Every error carries a stable ``reason`` string and an HTTP ``status_code`` so
the API layer can render it without inspecting the message. Messages name the
offending resource and field.
"""

from __future__ import annotations

from typing import Any, Dict, Optional


class RegistryError(Exception):
    """Base exception for all registry failures."""

    reason = "InternalError"
    status_code = 500

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        return {"reason": self.reason, "message": self.message, "details": self.details}


class NotFoundError(RegistryError):
    """A space, package, version or content does not exist."""

    reason = "NotFound"
    status_code = 404

    def __init__(self, resource: str, name: str):
        super().__init__(f"{resource} {name} not found", {"resource": resource, "name": name})
        self.resource = resource
        self.name = name


class InvalidAddressError(RegistryError):
    """A request addressing field is missing or malformed."""

    reason = "InvalidAddress"
    status_code = 400

    def __init__(self, field: str, value: Any):
        super().__init__(f"invalid {field}: {value!r}", {"field": field, "value": value})
        self.field = field
        self.value = value


class ParamValueError(RegistryError):
    """A well-formed parameter was rejected, e.g. an identity mismatch."""

    reason = "ParamValueError"
    status_code = 400

    def __init__(self, field: str, expected: Any, actual: Any):
        super().__init__(
            f"parameter {field} should be {expected} but got {actual}",
            {"field": field, "expected": expected, "actual": actual},
        )
        self.field = field
        self.expected = expected
        self.actual = actual


class ParamTypeError(RegistryError):
    """A request payload could not be parsed into the expected type."""

    reason = "ParamTypeError"
    status_code = 400

    def __init__(self, field: str, expected: str, actual: str):
        super().__init__(
            f"parameter {field} should be of type {expected} but got {actual}",
            {"field": field, "expected": expected, "actual": actual},
        )
        self.field = field
        self.expected = expected
        self.actual = actual


class InternalTypeError(RegistryError):
    """Stored content is not a valid archive for the version it is stored under."""

    reason = "InternalTypeError"
    status_code = 500

    def __init__(self, resource: str, expected: str, actual: str):
        super().__init__(
            f"content of {resource} should be {expected} but got {actual}",
            {"resource": resource, "expected": expected, "actual": actual},
        )
        self.resource = resource


class ContentConflictError(RegistryError):
    """The stored content changed between read and write of an update."""

    reason = "ContentConflict"
    status_code = 409

    def __init__(self, resource: str):
        super().__init__(f"content of {resource} changed during update", {"resource": resource})
        self.resource = resource


class RequestCancelledError(RegistryError):
    """The caller cancelled the request while a storage call was in flight."""

    reason = "RequestCancelled"
    status_code = 499

    def __init__(self, operation: str):
        super().__init__(f"request cancelled during {operation}", {"operation": operation})
        self.operation = operation


class DeadlineExceededError(RegistryError):
    """The request deadline passed while a storage call was in flight."""

    reason = "DeadlineExceeded"
    status_code = 504

    def __init__(self, operation: str):
        super().__init__(f"deadline exceeded during {operation}", {"operation": operation})
        self.operation = operation


class StorageError(RegistryError):
    """Opaque failure of the storage backend."""

    reason = "StorageError"
    status_code = 500
