"""
File-system storage backend.

Layout under the data directory::

    spaces/<space>/<package>/<version>/chart.tgz

Writes go to a temporary file in the version directory followed by
``os.replace``, so a reader sees either the previous or the new archive.
Writers to the same version are serialized with an asyncio lock, and the
optional digest check of ``put_content`` happens inside that lock.
"""
from __future__ import annotations

import asyncio
import hashlib
import logging
import os
import uuid
import weakref
from pathlib import Path
from typing import List, Optional, Tuple

import aiofiles

from chart_registry.domain.errors import (
    ContentConflictError,
    InternalTypeError,
    NotFoundError,
    StorageError,
)
from chart_registry.domain.models import DecodedArchive, Metadata
from chart_registry.domain.projection import project
from chart_registry.services.archive_codec import ArchiveCodec, ArchiveDecodeError
from chart_registry.storage.backend import Package, Space, StorageBackend, Version

logger = logging.getLogger(__name__)

SPACES_DIR = "spaces"
CONTENT_FILE = "chart.tgz"


def content_digest(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _part_key(part: str) -> Tuple[int, int, str]:
    return (0, int(part), "") if part.isdigit() else (1, 0, part)


def version_sort_key(number: str) -> tuple:
    """
    Ordering key for version directory names.

    Dot-separated numeric components compare numerically, a "-prerelease"
    suffix sorts before the plain release, and "+build" only breaks ties.
    """
    core, _, build = number.partition("+")
    release, sep, prerelease = core.partition("-")
    return (
        tuple(_part_key(p) for p in release.split(".")),
        0 if sep else 1,
        tuple(_part_key(p) for p in prerelease.split(".")) if sep else (),
        build,
    )


def _is_safe_name(name: str) -> bool:
    return bool(name) and name not in (".", "..") and "/" not in name and "\\" not in name


class FileVersion(Version):
    def __init__(self, backend: "FileStorageBackend", space: str, package: str, number: str, path: Path):
        self._backend = backend
        self._space = space
        self._package = package
        self._number = number
        self._dir = path

    @property
    def number(self) -> str:
        return self._number

    @property
    def resource(self) -> str:
        return f"{self._space}/{self._package}/{self._number}"

    @property
    def content_path(self) -> Path:
        return self._dir / CONTENT_FILE

    async def get_content(self) -> bytes:
        path = self.content_path
        if not path.is_file():
            raise NotFoundError("content", self.resource)
        try:
            async with aiofiles.open(path, "rb") as f:
                return await f.read()
        except OSError as e:
            raise StorageError(f"cannot read content of {self.resource}: {e}") from e

    async def put_content(self, data: bytes, expected_digest: Optional[str] = None) -> None:
        async with self._backend.lock_for(self._dir):
            if expected_digest is not None:
                current = await self.get_content()
                if content_digest(current) != expected_digest:
                    logger.warning(f"Content of {self.resource} changed since it was read")
                    raise ContentConflictError(self.resource)
            await _write_atomic(self.content_path, data)
        logger.debug(f"Wrote {len(data)} bytes to {self.resource}")

    async def metadata(self) -> Metadata:
        return project(await self._decode())

    async def values(self) -> bytes:
        archive = await self._decode()
        return archive.values.encode("utf-8")

    async def _decode(self) -> DecodedArchive:
        data = await self.get_content()
        try:
            return self._backend.codec.decode(data)
        except ArchiveDecodeError as e:
            logger.warning(f"Stored content of {self.resource} is not a chart: {e}")
            raise InternalTypeError(f"{self._package}/{self._number}", "chart", "unknown") from e


class FilePackage(Package):
    def __init__(self, backend: "FileStorageBackend", space: str, name: str, path: Path):
        self._backend = backend
        self._space = space
        self._name = name
        self._dir = path

    @property
    def name(self) -> str:
        return self._name

    async def list(self) -> List[str]:
        numbers = [
            d.name
            for d in self._dir.iterdir()
            if d.is_dir() and (d / CONTENT_FILE).is_file()
        ]
        return sorted(numbers, key=version_sort_key)

    async def version(self, number: str) -> FileVersion:
        version_dir = self._dir / number
        if not _is_safe_name(number) or not version_dir.is_dir():
            raise NotFoundError("version", f"{self._space}/{self._name}/{number}")
        return FileVersion(self._backend, self._space, self._name, number, version_dir)

    async def version_metadata(self) -> List[Metadata]:
        result: List[Metadata] = []
        for number in await self.list():
            version = await self.version(number)
            result.append(await version.metadata())
        return result


class FileSpace(Space):
    def __init__(self, backend: "FileStorageBackend", name: str, path: Path):
        self._backend = backend
        self._name = name
        self._dir = path

    @property
    def name(self) -> str:
        return self._name

    async def list(self) -> List[str]:
        return sorted(d.name for d in self._dir.iterdir() if d.is_dir())

    async def package(self, name: str) -> FilePackage:
        package_dir = self._dir / name
        if not _is_safe_name(name) or not package_dir.is_dir():
            raise NotFoundError("package", f"{self._name}/{name}")
        return FilePackage(self._backend, self._name, name, package_dir)

    async def version_metadata(self) -> List[Metadata]:
        result: List[Metadata] = []
        for name in await self.list():
            package = await self.package(name)
            result.extend(await package.version_metadata())
        return result


class FileStorageBackend(StorageBackend):
    def __init__(self, data_dir: Path, codec: ArchiveCodec):
        self._root = data_dir / SPACES_DIR
        self.codec = codec
        # Entries disappear once no writer holds or waits on the lock.
        self._locks: "weakref.WeakValueDictionary[Path, asyncio.Lock]" = weakref.WeakValueDictionary()

        # Ensure the spaces directory exists
        if not self._root.exists():
            self._root.mkdir(parents=True, exist_ok=True)

    def lock_for(self, path: Path) -> asyncio.Lock:
        lock = self._locks.get(path)
        if lock is None:
            lock = self._locks[path] = asyncio.Lock()
        return lock

    async def get_space(self, name: str) -> FileSpace:
        space_dir = self._root / name
        if not _is_safe_name(name) or not space_dir.is_dir():
            raise NotFoundError("space", name)
        return FileSpace(self, name, space_dir)

    async def get_package(self, space: str, name: str) -> FilePackage:
        space_handle = await self.get_space(space)
        return await space_handle.package(name)

    # ------------------------------------------------------------------
    # Lifecycle helpers (spaces and versions are created here, never by the core)
    # ------------------------------------------------------------------

    async def create_space(self, name: str) -> FileSpace:
        if not _is_safe_name(name):
            raise StorageError(f"invalid space name {name!r}")
        (self._root / name).mkdir(parents=True, exist_ok=True)
        return await self.get_space(name)

    async def create_version(self, space: str, package: str, number: str, content: bytes) -> FileVersion:
        for value in (space, package, number):
            if not _is_safe_name(value):
                raise StorageError(f"invalid storage name {value!r}")
        version_dir = self._root / space / package / number
        version_dir.mkdir(parents=True, exist_ok=True)
        await _write_atomic(version_dir / CONTENT_FILE, content)
        logger.info(f"Created version {space}/{package}/{number}")
        return FileVersion(self, space, package, number, version_dir)


async def _write_atomic(path: Path, data: bytes) -> None:
    tmp_path = path.with_name(f".{path.name}.{uuid.uuid4().hex}.tmp")
    try:
        async with aiofiles.open(tmp_path, "wb") as f:
            await f.write(data)
        os.replace(tmp_path, path)
    except OSError as e:
        raise StorageError(f"cannot write {path.name}: {e}") from e
    finally:
        tmp_path.unlink(missing_ok=True)
