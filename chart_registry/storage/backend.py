from abc import ABC, abstractmethod
from typing import List, Optional

from chart_registry.domain.models import Metadata


class Version(ABC):
    """
    Handle on one stored chart version.
    """

    @property
    @abstractmethod
    def number(self) -> str:
        """Version identifier, unique within its package."""

    @abstractmethod
    async def get_content(self) -> bytes:
        """Return the raw archive bytes of this version."""

    @abstractmethod
    async def put_content(self, data: bytes, expected_digest: Optional[str] = None) -> None:
        """
        Replace the archive bytes of this version atomically.

        When ``expected_digest`` is given, the write only happens if the
        SHA-256 hex digest of the current content still equals it; otherwise
        ContentConflictError is raised and nothing is written.
        """

    @abstractmethod
    async def metadata(self) -> Metadata:
        """Metadata of the archive currently stored."""

    @abstractmethod
    async def values(self) -> bytes:
        """Raw YAML values of the archive currently stored."""


class Package(ABC):
    """
    Handle on one stored chart package (all versions of one chart).
    """

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def list(self) -> List[str]:
        """Version identifiers in ascending order."""

    @abstractmethod
    async def version(self, number: str) -> Version:
        """Get a version handle. Raises NotFoundError if absent."""

    @abstractmethod
    async def version_metadata(self) -> List[Metadata]:
        """Metadata of every version, in the order of list()."""


class Space(ABC):
    """
    Handle on one namespace of packages.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @abstractmethod
    async def list(self) -> List[str]:
        """Package names in ascending order."""

    @abstractmethod
    async def version_metadata(self) -> List[Metadata]:
        """Metadata of every version of every package in the space."""


class StorageBackend(ABC):
    """
    Abstract base class for chart storage.
    """

    @abstractmethod
    async def get_space(self, name: str) -> Space:
        """Get a space handle. Raises NotFoundError if absent."""

    @abstractmethod
    async def get_package(self, space: str, name: str) -> Package:
        """Get a package handle. Raises NotFoundError if the space or package is absent."""
