"""
Pydantic models for the chart registry.

This module defines the data models used throughout the application, including:
- Registry configuration
- Chart metadata as carried inside an archive and returned by the API
- The decoded in-memory form of a chart archive
- Listing results

All models use Pydantic for validation, serialization, and type safety.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ---------------------------------------------------------------------------
# Registry Configuration Models
# ---------------------------------------------------------------------------


class RegistryConfig(BaseModel):
    """
    Top-level configuration for the chart registry.

    Persisted at: <DATA_DIR>/registry.json
    """

    display_name: str = Field(
        default="Python chart registry",
        description="Human-friendly name displayed in the OpenAPI docs.",
    )
    description: str = Field(
        default="File-backed chart registry implemented with FastAPI.",
        description="Longer description used in documentation.",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        description="Deadline applied to the storage calls of a single request.",
    )
    log_level: str = Field(
        default="INFO",
        description="Root logging level (DEBUG, INFO, WARNING, ERROR).",
    )
    created_at: datetime = Field(
        default_factory=datetime.utcnow,
        description="Timestamp when this registry configuration was first created.",
    )


# ---------------------------------------------------------------------------
# Chart Metadata Models
# ---------------------------------------------------------------------------


class Maintainer(BaseModel):
    """A single maintainer entry of a chart."""

    name: str = Field(description="Maintainer name.")
    email: Optional[str] = Field(default=None, description="Maintainer e-mail address.")
    url: Optional[str] = Field(default=None, description="Maintainer homepage.")


class Metadata(BaseModel):
    """
    Descriptive metadata of one chart version.

    ``name`` and ``version`` identify the chart; every other field is opaque
    description that callers may replace freely. Serialized keys follow the
    chart manifest (``apiVersion``, ``appVersion``); Python code uses snake_case.

    Manifest keys without a field here (``type``, ``dependencies``,
    ``kubeVersion``, ...) are kept as extra attributes and written back as read.
    """

    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True, extra="allow")

    name: str = Field(description="Chart name. Must match the package it is stored under.")
    version: str = Field(description="Chart version string. Must match the stored version.")
    description: Optional[str] = Field(default=None, description="One-line description.")
    home: Optional[str] = Field(default=None, description="URL of the project homepage.")
    sources: List[str] = Field(default_factory=list, description="Source code URLs.")
    keywords: List[str] = Field(default_factory=list, description="Search keywords.")
    maintainers: List[Maintainer] = Field(default_factory=list, description="Chart maintainers.")
    icon: Optional[str] = Field(default=None, description="URL of an icon.")
    api_version: Optional[str] = Field(default=None, alias="apiVersion", description="Chart API version.")
    app_version: Optional[str] = Field(default=None, alias="appVersion", description="Version of the packaged app.")
    deprecated: bool = Field(default=False, description="Whether this chart is deprecated.")
    annotations: Dict[str, str] = Field(default_factory=dict, description="Free-form annotations.")

    @field_validator("name", "version")
    @classmethod
    def _not_blank(cls, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("must not be empty")
        return value

    def identity(self) -> Tuple[str, str]:
        return self.name, self.version

    def to_manifest(self) -> dict:
        """
        Dictionary in manifest form: camelCase keys, only the fields that were
        read or assigned, extra keys included.
        """
        return self.model_dump(mode="json", by_alias=True, exclude_none=True, exclude_unset=True)


# ---------------------------------------------------------------------------
# Archive Models
# ---------------------------------------------------------------------------


class ArchiveFile(BaseModel):
    """
    A payload file inside a chart archive. Immutable.

    Symbolic links carry their target in ``link_target`` and no content.
    """

    model_config = ConfigDict(frozen=True)

    path: str = Field(description="Path relative to the chart directory, '/'-separated.")
    content: bytes = Field(default=b"", description="Raw file content.")
    mode: int = Field(default=0o644, ge=0, le=0o7777, description="Permission bits of the entry.")
    link_target: Optional[str] = Field(default=None, description="Target of a symbolic link entry.")


class DecodedArchive(BaseModel):
    """
    In-memory representation of a chart archive.

    ``metadata`` and ``values`` may be reassigned by a mutation; ``files`` is
    the untouched payload and is carried through re-encoding as is.
    """

    model_config = ConfigDict(validate_assignment=True)

    metadata: Metadata
    values: str = Field(default="", description="Raw YAML text of the configuration values.")
    files: Tuple[ArchiveFile, ...] = Field(default_factory=tuple)


# ---------------------------------------------------------------------------
# Listing Models
# ---------------------------------------------------------------------------


class MetadataPage(BaseModel):
    """
    One page of a metadata listing.

    ``total`` counts every entry of the listing, ``items`` only the window
    selected by ``start`` / ``limit``.
    """

    total: int = Field(ge=0)
    start: int = Field(ge=0)
    limit: int = Field(ge=0, description="Requested limit after normalization; 0 means unlimited.")
    items: List[Metadata] = Field(default_factory=list)

    def to_response(self) -> dict:
        return {
            "metadata": {"total": self.total, "start": self.start, "limit": self.limit},
            "items": [m.to_manifest() for m in self.items],
        }
