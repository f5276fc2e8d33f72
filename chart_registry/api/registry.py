"""
HTTP endpoints of the chart registry (v1).

Handlers only translate between HTTP and RequestContext; every decision is
made by MetadataService. Registry errors are rendered by
``registry_error_handler``, registered on the application in main.py.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends, Request, Response
from fastapi.responses import JSONResponse

from chart_registry.core.dependencies import get_config, get_service
from chart_registry.domain.context import RequestContext
from chart_registry.domain.errors import RegistryError
from chart_registry.domain.models import RegistryConfig
from chart_registry.services.metadata_service import MetadataService

logger = logging.getLogger(__name__)
router = APIRouter()

YAML_MEDIA_TYPE = "application/x-yaml"
DISCONNECT_POLL_SECONDS = 0.25


async def watch_disconnect(request: Request, ctx: RequestContext, interval: float = DISCONNECT_POLL_SECONDS) -> None:
    """Cancel ``ctx`` as soon as the client goes away."""
    while not ctx.cancel_event.is_set():
        if await request.is_disconnected():
            logger.info(f"Client disconnected from {request.method} {request.url.path}")
            ctx.cancel()
            return
        await asyncio.sleep(interval)


async def build_context(
    request: Request, config: RegistryConfig = Depends(get_config)
) -> AsyncIterator[RequestContext]:
    """
    Collect addressing, paging and body fields of a request into a RequestContext.

    The context is cancelled if the client disconnects while it is in use.
    """
    body = await request.body() if request.method in ("PUT", "POST") else b""
    ctx = RequestContext.with_timeout(
        config.request_timeout_seconds,
        space=request.path_params.get("space"),
        package=request.path_params.get("package"),
        version=request.path_params.get("version"),
        start=request.query_params.get("start"),
        limit=request.query_params.get("limit"),
        body=body,
    )
    watcher = asyncio.ensure_future(watch_disconnect(request, ctx))
    try:
        yield ctx
    finally:
        watcher.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await watcher


async def registry_error_handler(request: Request, exc: RegistryError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    else:
        logger.info(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


# ---------------------------------------------------------------------------
# Space listings
# ---------------------------------------------------------------------------

@router.get("/spaces/{space}/metadata")
async def list_metadata_in_space(
    ctx: RequestContext = Depends(build_context),
    service: MetadataService = Depends(get_service),
) -> dict:
    page = await service.list_metadata_in_space(ctx)
    return page.to_response()


@router.get("/spaces/{space}/latest")
async def list_latest_metadata_in_space(
    ctx: RequestContext = Depends(build_context),
    service: MetadataService = Depends(get_service),
) -> dict:
    page = await service.list_latest_metadata_in_space(ctx)
    return page.to_response()


# ---------------------------------------------------------------------------
# Package listings
# ---------------------------------------------------------------------------

@router.get("/spaces/{space}/packages/{package}/metadata")
async def list_metadata_in_package(
    ctx: RequestContext = Depends(build_context),
    service: MetadataService = Depends(get_service),
) -> dict:
    page = await service.list_metadata_in_package(ctx)
    return page.to_response()


@router.get("/spaces/{space}/packages/{package}/latest")
async def get_latest_metadata_in_package(
    ctx: RequestContext = Depends(build_context),
    service: MetadataService = Depends(get_service),
) -> dict:
    metadata = await service.get_latest_metadata_in_package(ctx)
    return metadata.to_manifest()


# ---------------------------------------------------------------------------
# Single version: metadata and values
# ---------------------------------------------------------------------------

@router.get("/spaces/{space}/packages/{package}/versions/{version}/metadata")
async def fetch_metadata(
    ctx: RequestContext = Depends(build_context),
    service: MetadataService = Depends(get_service),
) -> dict:
    metadata = await service.fetch_metadata(ctx)
    return metadata.to_manifest()


@router.put("/spaces/{space}/packages/{package}/versions/{version}/metadata")
async def update_metadata(
    ctx: RequestContext = Depends(build_context),
    service: MetadataService = Depends(get_service),
) -> dict:
    """
    Replace the descriptive metadata of a version. The body must keep the
    chart's name and version.
    """
    metadata = await service.update_metadata(ctx)
    return metadata.to_manifest()


@router.get("/spaces/{space}/packages/{package}/versions/{version}/values")
async def fetch_values(
    ctx: RequestContext = Depends(build_context),
    service: MetadataService = Depends(get_service),
) -> Response:
    values = await service.fetch_values(ctx)
    return Response(content=values, media_type=YAML_MEDIA_TYPE)


@router.put("/spaces/{space}/packages/{package}/versions/{version}/values")
async def update_values(
    ctx: RequestContext = Depends(build_context),
    service: MetadataService = Depends(get_service),
) -> Response:
    """
    Replace the values of a version with a JSON object; responds with the
    YAML that was stored.
    """
    values = await service.update_values(ctx)
    return Response(content=values, media_type=YAML_MEDIA_TYPE)
