"""
Identity checks between chart metadata records.

A chart is identified by its (name, version) pair. Updates may change any
descriptive field but never the identity, so every mutation path compares
identities explicitly and acts on the returned mismatch.
"""

from __future__ import annotations

from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict

from chart_registry.domain.errors import ParamValueError
from chart_registry.domain.models import Metadata


class IdentityMismatch(BaseModel):
    """First identity field that differs, with the expected and actual values."""

    model_config = ConfigDict(frozen=True)

    field: str
    expected: str
    actual: str

    def to_error(self) -> ParamValueError:
        return ParamValueError(self.field, self.expected, self.actual)


def compare_identity(expected: Tuple[str, str], actual: Tuple[str, str]) -> Optional[IdentityMismatch]:
    """
    Compare two (name, version) pairs.

    Returns None when they match, otherwise the mismatch of the first
    differing field (name is checked before version).
    """
    for field, want, got in zip(("name", "version"), expected, actual):
        if want != got:
            return IdentityMismatch(field=field, expected=want, actual=got)
    return None


def check_identity(current: Metadata, candidate: Metadata) -> Optional[IdentityMismatch]:
    """Check that ``candidate`` keeps the identity of ``current``."""
    return compare_identity(current.identity(), candidate.identity())
