"""
Registry operations on chart metadata and values.

Each operation takes a RequestContext, resolves the addressed resources and
either lists metadata (paginated) or runs an archive mutation transaction.
Errors are propagated untouched; no operation returns a partial result.
"""
from __future__ import annotations

import logging
from typing import List

from chart_registry.domain.context import RequestContext
from chart_registry.domain.errors import ParamTypeError
from chart_registry.domain.models import Metadata, MetadataPage
from chart_registry.domain.ordering import latest_version
from chart_registry.domain.paging import compute_window
from chart_registry.domain.projection import project
from chart_registry.domain.resolver import ResourceResolver
from chart_registry.domain.transaction import (
    ArchiveMutationTransaction,
    replace_metadata,
    replace_values,
)
from chart_registry.services.archive_codec import ArchiveCodec
from chart_registry.services.values_converter import ValuesConversionError, json_to_yaml
from chart_registry.storage.backend import Package, StorageBackend

logger = logging.getLogger(__name__)


class MetadataService:
    def __init__(self, backend: StorageBackend, codec: ArchiveCodec):
        self.backend = backend
        self.codec = codec
        self.resolver = ResourceResolver(backend)

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    async def list_metadata_in_space(self, ctx: RequestContext) -> MetadataPage:
        """Metadata of every version of every package in a space."""
        start, limit = ctx.paging()
        space = await self.resolver.space(ctx)
        metadata = await ctx.guard(space.version_metadata(), "list space metadata")
        return _page(metadata, start, limit)

    async def list_latest_metadata_in_space(self, ctx: RequestContext) -> MetadataPage:
        """Metadata of the latest version of each package in a space."""
        start, limit = ctx.paging()
        space = await self.resolver.space(ctx)
        package_names = await ctx.guard(space.list(), "list packages")
        metadata: List[Metadata] = []
        for package_name in package_names:
            package = await ctx.guard(self.backend.get_package(space.name, package_name), "get package")
            metadata.append(await self._latest_metadata(ctx, space.name, package))
        return _page(metadata, start, limit)

    async def list_metadata_in_package(self, ctx: RequestContext) -> MetadataPage:
        """Metadata of every version of a package."""
        start, limit = ctx.paging()
        _, package = await self.resolver.package(ctx)
        metadata = await ctx.guard(package.version_metadata(), "list package metadata")
        return _page(metadata, start, limit)

    async def get_latest_metadata_in_package(self, ctx: RequestContext) -> Metadata:
        space, package = await self.resolver.package(ctx)
        return await self._latest_metadata(ctx, space.name, package)

    # ------------------------------------------------------------------
    # Single version
    # ------------------------------------------------------------------

    async def fetch_metadata(self, ctx: RequestContext) -> Metadata:
        _, _, version = await self.resolver.version(ctx)
        return await ctx.guard(version.metadata(), "get metadata")

    async def update_metadata(self, ctx: RequestContext) -> Metadata:
        """
        Replace the metadata of a version.

        The candidate must keep the chart's name and version; otherwise
        ParamValueError is raised and the stored archive is left untouched.
        """
        _, package, version = await self.resolver.version(ctx)
        candidate = ctx.metadata_payload()
        transaction = ArchiveMutationTransaction(self.codec, ctx)
        archive = await transaction.run(package, version, replace_metadata(candidate))
        return project(archive)

    async def fetch_values(self, ctx: RequestContext) -> bytes:
        _, _, version = await self.resolver.version(ctx)
        return await ctx.guard(version.values(), "get values")

    async def update_values(self, ctx: RequestContext) -> bytes:
        """
        Replace the values of a version with a JSON document, stored as YAML.

        Returns the YAML bytes written.
        """
        _, package, version = await self.resolver.version(ctx)
        try:
            values_yaml = json_to_yaml(ctx.values_payload())
        except ValuesConversionError as e:
            logger.info(f"Rejected values for {package.name}/{version.number}: {e}")
            raise ParamTypeError("values", "json", "unknown") from e
        transaction = ArchiveMutationTransaction(self.codec, ctx)
        archive = await transaction.run(package, version, replace_values(values_yaml))
        return archive.values.encode("utf-8")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _latest_metadata(self, ctx: RequestContext, space_name: str, package: Package) -> Metadata:
        numbers = await ctx.guard(package.list(), "list versions")
        number = latest_version(numbers, f"{space_name}/{package.name}")
        version = await ctx.guard(package.version(number), "get version")
        return await ctx.guard(version.metadata(), "get metadata")


def _page(metadata: List[Metadata], start, limit) -> MetadataPage:
    total = len(metadata)
    begin, end = compute_window(total, start, limit)
    return MetadataPage(
        total=total,
        start=begin,
        limit=max(limit or 0, 0),
        items=metadata[begin:end],
    )
