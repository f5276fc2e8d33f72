"""Unit tests for archive mutation transactions."""

from __future__ import annotations

import asyncio
from typing import Optional

import pytest

from chart_registry.domain.context import RequestContext
from chart_registry.domain.errors import (
    ContentConflictError,
    DeadlineExceededError,
    InternalTypeError,
    ParamValueError,
)
from chart_registry.domain.models import DecodedArchive, Metadata
from chart_registry.domain.transaction import (
    ArchiveMutationTransaction,
    replace_metadata,
    replace_values,
)
from tests.chart_fixtures import build_chart


def _run_mutation(backend, codec, mutation, ctx: Optional[RequestContext] = None) -> DecodedArchive:
    async def run() -> DecodedArchive:
        package = await backend.get_package("s1", "p1")
        version = await package.version("1.0.0")
        transaction = ArchiveMutationTransaction(codec, ctx or RequestContext())
        return await transaction.run(package, version, mutation)

    return asyncio.run(run())


def _stored_content(backend, number: str = "1.0.0") -> bytes:
    async def run() -> bytes:
        package = await backend.get_package("s1", "p1")
        version = await package.version(number)
        return await version.get_content()

    return asyncio.run(run())


def test_replace_metadata_persists_descriptive_fields(seeded_backend, codec) -> None:
    """Matching identity should replace every other metadata field."""
    candidate = Metadata(name="p1", version="1.0.0", description="updated", keywords=["web"])

    archive = _run_mutation(seeded_backend, codec, replace_metadata(candidate))

    stored = codec.decode(_stored_content(seeded_backend))
    assert archive.metadata == candidate
    assert stored.metadata.description == "updated"
    assert stored.metadata.keywords == ["web"]
    assert stored.values == "replicas: 1\n"
    assert [f.path for f in stored.files] == ["templates/deployment.yaml"]


@pytest.mark.parametrize(
    ("name", "version", "field"),
    [("other", "1.0.0", "name"), ("p1", "9.9.9", "version")],
)
def test_replace_metadata_rejects_identity_change(seeded_backend, codec, name, version, field) -> None:
    """Renaming or re-versioning should fail and leave content byte-for-byte unchanged."""
    before = _stored_content(seeded_backend)
    candidate = Metadata(name=name, version=version, description="hijack")

    with pytest.raises(ParamValueError) as exc_info:
        _run_mutation(seeded_backend, codec, replace_metadata(candidate))

    assert exc_info.value.field == field
    assert _stored_content(seeded_backend) == before


def test_replace_values_rewrites_only_values(seeded_backend, codec) -> None:
    """Values mutation should keep metadata and payload."""
    archive = _run_mutation(seeded_backend, codec, replace_values("replicas: 3\n"))

    stored = codec.decode(_stored_content(seeded_backend))
    assert archive.values == "replicas: 3\n"
    assert stored.values == "replicas: 3\n"
    assert stored.metadata.identity() == ("p1", "1.0.0")


def test_mutation_renaming_archive_is_rejected(seeded_backend, codec) -> None:
    """Identity is re-checked after any mutation."""
    before = _stored_content(seeded_backend)

    def rename(archive: DecodedArchive) -> None:
        archive.metadata = Metadata(name="renamed", version="1.0.0")

    with pytest.raises(ParamValueError):
        _run_mutation(seeded_backend, codec, rename)

    assert _stored_content(seeded_backend) == before


def test_corrupt_content_is_internal_type_error(seeded_backend, codec) -> None:
    """Content that does not decode should be reported and left as is."""
    asyncio.run(seeded_backend.create_version("s1", "p1", "1.0.0", b"garbage"))

    with pytest.raises(InternalTypeError) as exc_info:
        _run_mutation(seeded_backend, codec, replace_values("a: 1\n"))

    assert exc_info.value.resource == "p1/1.0.0"
    assert _stored_content(seeded_backend) == b"garbage"


def test_content_of_another_chart_is_internal_type_error(seeded_backend, codec) -> None:
    """A stored archive must carry the identity of the version it is stored under."""
    foreign = build_chart("p2", "1.0.0")
    asyncio.run(seeded_backend.create_version("s1", "p1", "1.0.0", foreign))

    with pytest.raises(InternalTypeError):
        _run_mutation(seeded_backend, codec, replace_values("a: 1\n"))

    assert _stored_content(seeded_backend) == foreign


def test_concurrent_write_is_detected(seeded_backend, codec, tmp_path) -> None:
    """A write landing between read and write should make the update fail."""
    concurrent = build_chart("p1", "1.0.0", description="written concurrently")
    content_path = tmp_path / "spaces" / "s1" / "p1" / "1.0.0" / "chart.tgz"

    def interleave(archive: DecodedArchive) -> None:
        content_path.write_bytes(concurrent)
        archive.values = "replicas: 5\n"

    with pytest.raises(ContentConflictError):
        _run_mutation(seeded_backend, codec, interleave)

    assert _stored_content(seeded_backend) == concurrent


def test_expired_deadline_aborts_before_reading(seeded_backend, codec) -> None:
    """A transaction past its deadline should not touch storage."""
    before = _stored_content(seeded_backend)
    ctx = RequestContext(deadline=0.0)

    with pytest.raises(DeadlineExceededError):
        _run_mutation(seeded_backend, codec, replace_values("a: 1\n"), ctx)

    assert _stored_content(seeded_backend) == before
