"""
Read-modify-write of a chart version's archive.

A transaction fetches the stored archive, decodes it, applies one mutation,
re-checks the chart identity, re-encodes and writes it back. Nothing is
written unless every step before the write succeeded, and the write is
conditional on the content digest read at the start, so a concurrent writer
turns into a ContentConflictError rather than a lost update.
"""
from __future__ import annotations

import hashlib
import logging
from typing import Callable

from chart_registry.domain.context import RequestContext
from chart_registry.domain.errors import InternalTypeError, RegistryError
from chart_registry.domain.identity import check_identity, compare_identity
from chart_registry.domain.models import DecodedArchive, Metadata
from chart_registry.services.archive_codec import ArchiveCodec, ArchiveDecodeError, ArchiveEncodeError
from chart_registry.storage.backend import Package, Version

logger = logging.getLogger(__name__)

Mutation = Callable[[DecodedArchive], None]


def replace_metadata(candidate: Metadata) -> Mutation:
    """Mutation replacing the whole metadata, provided the identity is kept."""

    def apply(archive: DecodedArchive) -> None:
        mismatch = check_identity(archive.metadata, candidate)
        if mismatch is not None:
            logger.warning(
                f"Rejected metadata update of {archive.metadata.name}: "
                f"{mismatch.field} {mismatch.actual!r} != {mismatch.expected!r}"
            )
            raise mismatch.to_error()
        archive.metadata = candidate.model_copy(deep=True)

    return apply


def replace_values(values_yaml: str) -> Mutation:
    """Mutation replacing the raw values text."""

    def apply(archive: DecodedArchive) -> None:
        archive.values = values_yaml

    return apply


class ArchiveMutationTransaction:
    def __init__(self, codec: ArchiveCodec, ctx: RequestContext):
        self.codec = codec
        self.ctx = ctx

    async def run(self, package: Package, version: Version, mutation: Mutation) -> DecodedArchive:
        resource = f"{package.name}/{version.number}"
        identity = (package.name, version.number)

        data = await self.ctx.guard(version.get_content(), "get content")
        digest = hashlib.sha256(data).hexdigest()

        try:
            archive = self.codec.decode(data)
        except ArchiveDecodeError as e:
            logger.warning(f"Cannot decode stored content of {resource}: {e}")
            raise InternalTypeError(resource, "chart", "unknown") from e

        stored = compare_identity(identity, archive.metadata.identity())
        if stored is not None:
            logger.warning(f"Stored chart of {resource} has {stored.field} {stored.actual!r}")
            raise InternalTypeError(resource, "chart", f"chart with {stored.field} {stored.actual}")

        mutation(archive)

        mutated = compare_identity(identity, archive.metadata.identity())
        if mutated is not None:
            raise mutated.to_error()

        try:
            new_data = self.codec.encode(archive)
        except ArchiveEncodeError as e:
            raise RegistryError(f"cannot encode chart {resource}: {e}") from e

        await self.ctx.guard(version.put_content(new_data, expected_digest=digest), "put content")
        logger.info(f"Rewrote chart {resource} ({len(data)} -> {len(new_data)} bytes)")
        return archive
