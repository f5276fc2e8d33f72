"""Shared fixtures: a file-backed registry seeded with chart archives."""

from __future__ import annotations

import asyncio

import pytest

from chart_registry.services.archive_codec import TarArchiveCodec
from chart_registry.services.metadata_service import MetadataService
from chart_registry.storage.file_backend import FileStorageBackend
from tests.chart_fixtures import build_chart


@pytest.fixture
def codec() -> TarArchiveCodec:
    return TarArchiveCodec()


@pytest.fixture
def backend(tmp_path, codec) -> FileStorageBackend:
    return FileStorageBackend(tmp_path, codec)


@pytest.fixture
def seeded_backend(backend) -> FileStorageBackend:
    """Space s1 with p1 (1.0.0, 2.0.0) and p2 (0.1.0); empty space s2."""

    async def seed() -> None:
        await backend.create_space("s1")
        await backend.create_space("s2")
        await backend.create_version("s1", "p1", "1.0.0", build_chart("p1", "1.0.0"))
        await backend.create_version("s1", "p1", "2.0.0", build_chart("p1", "2.0.0"))
        await backend.create_version("s1", "p2", "0.1.0", build_chart("p2", "0.1.0"))

    asyncio.run(seed())
    return backend


@pytest.fixture
def service(seeded_backend, codec) -> MetadataService:
    return MetadataService(seeded_backend, codec)
