"""
Resolution of request addressing into storage handles.

Levels are resolved strictly in order (space, package, version); the first
level that is malformed or missing stops resolution with InvalidAddressError
or NotFoundError respectively.
"""
from __future__ import annotations

import logging
from typing import Tuple

from chart_registry.domain.context import RequestContext
from chart_registry.storage.backend import Package, Space, StorageBackend, Version

logger = logging.getLogger(__name__)


class ResourceResolver:
    def __init__(self, backend: StorageBackend):
        self.backend = backend

    async def space(self, ctx: RequestContext) -> Space:
        name = ctx.space_name()
        logger.debug(f"Resolving space {name}")
        return await ctx.guard(self.backend.get_space(name), "get space")

    async def package(self, ctx: RequestContext) -> Tuple[Space, Package]:
        space = await self.space(ctx)
        name = ctx.package_name()
        logger.debug(f"Resolving package {space.name}/{name}")
        package = await ctx.guard(self.backend.get_package(space.name, name), "get package")
        return space, package

    async def version(self, ctx: RequestContext) -> Tuple[Space, Package, Version]:
        space, package = await self.package(ctx)
        number = ctx.version_number()
        logger.debug(f"Resolving version {space.name}/{package.name}/{number}")
        version = await ctx.guard(package.version(number), "get version")
        return space, package, version
