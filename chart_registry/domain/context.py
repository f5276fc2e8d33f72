"""
Request-scoped context shared by resolution and mutation.

The HTTP layer builds one ``RequestContext`` per inbound request. It carries
the raw addressing, paging and body fields plus the cancellation controls,
and exposes uniform accessors so the registry operations never look at the
transport directly.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from dataclasses import dataclass, field
from typing import Awaitable, Optional, Tuple, TypeVar, Union

from pydantic import ValidationError

from chart_registry.domain.errors import (
    DeadlineExceededError,
    InvalidAddressError,
    ParamTypeError,
    RequestCancelledError,
)
from chart_registry.domain.models import Metadata

logger = logging.getLogger(__name__)

T = TypeVar("T")

NAME_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._-]*$")
VERSION_PATTERN = re.compile(r"^[A-Za-z0-9][A-Za-z0-9.+_-]*$")
MAX_NAME_LENGTH = 253
MAX_VERSION_LENGTH = 128


@dataclass
class RequestContext:
    space: Optional[str] = None
    package: Optional[str] = None
    version: Optional[str] = None
    start: Optional[Union[str, int]] = None
    limit: Optional[Union[str, int]] = None
    body: bytes = b""
    deadline: Optional[float] = None
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)

    @classmethod
    def with_timeout(cls, timeout_seconds: Optional[float], **fields) -> "RequestContext":
        """Build a context whose deadline is ``timeout_seconds`` from now."""
        deadline = time.monotonic() + timeout_seconds if timeout_seconds else None
        return cls(deadline=deadline, **fields)

    # ------------------------------------------------------------------
    # Addressing
    # ------------------------------------------------------------------

    def space_name(self) -> str:
        return _validate_address("space", self.space, NAME_PATTERN, MAX_NAME_LENGTH)

    def package_name(self) -> str:
        return _validate_address("package", self.package, NAME_PATTERN, MAX_NAME_LENGTH)

    def version_number(self) -> str:
        return _validate_address("version", self.version, VERSION_PATTERN, MAX_VERSION_LENGTH)

    # ------------------------------------------------------------------
    # Paging and payloads
    # ------------------------------------------------------------------

    def paging(self) -> Tuple[Optional[int], Optional[int]]:
        return _parse_int("start", self.start), _parse_int("limit", self.limit)

    def metadata_payload(self) -> Metadata:
        try:
            raw = json.loads(self.body or b"null")
        except ValueError:
            raise ParamTypeError("metadata", "json", "unknown")
        if not isinstance(raw, dict):
            raise ParamTypeError("metadata", "object", type(raw).__name__)
        try:
            return Metadata.model_validate(raw)
        except ValidationError as e:
            logger.debug(f"Rejected metadata payload: {e}")
            raise ParamTypeError("metadata", "json", "unknown")

    def values_payload(self) -> bytes:
        if not self.body or not self.body.strip():
            raise ParamTypeError("values", "json", "empty")
        return self.body

    # ------------------------------------------------------------------
    # Cancellation
    # ------------------------------------------------------------------

    def cancel(self) -> None:
        self.cancel_event.set()

    def remaining(self) -> Optional[float]:
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    async def guard(self, awaitable: Awaitable[T], operation: str) -> T:
        """
        Await a storage call under this context's deadline and cancel event.

        Raises RequestCancelledError or DeadlineExceededError instead of
        returning when either fires first; the storage call is cancelled and
        has finished unwinding by the time the error is raised.
        """
        task = asyncio.ensure_future(awaitable)
        if self.cancel_event.is_set():
            await _discard(task)
            raise RequestCancelledError(operation)
        timeout = self.remaining()
        if timeout is not None and timeout <= 0:
            await _discard(task)
            raise DeadlineExceededError(operation)

        cancelled = asyncio.ensure_future(self.cancel_event.wait())
        try:
            done, _ = await asyncio.wait(
                {task, cancelled}, timeout=timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            cancelled.cancel()

        if task in done:
            return task.result()
        await _discard(task)
        if cancelled in done:
            logger.info(f"Request cancelled during {operation}")
            raise RequestCancelledError(operation)
        logger.warning(f"Deadline exceeded during {operation}")
        raise DeadlineExceededError(operation)


async def _discard(task: asyncio.Future) -> None:
    """Cancel a task and wait until it has stopped, dropping its outcome."""
    task.cancel()
    await asyncio.wait({task})
    if not task.cancelled():
        # Finished before the cancellation landed; mark the exception retrieved.
        task.exception()


def _validate_address(field_name: str, value: Optional[str], pattern: re.Pattern, max_length: int) -> str:
    if not value or len(value) > max_length or not pattern.match(value):
        raise InvalidAddressError(field_name, value)
    return value


def _parse_int(field_name: str, value: Optional[Union[str, int]]) -> Optional[int]:
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise ParamTypeError(field_name, "integer", "boolean")
    if isinstance(value, int):
        return value
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ParamTypeError(field_name, "integer", "string")
