"""
Client resolution protocol endpoints (Stremio add-on routes).
"""
from fastapi import APIRouter, Depends, Request
from typing import Optional
from urllib.parse import parse_qs

from hdhr_gateway.config import Settings, get_settings
from hdhr_gateway.models.metadata import CatalogDescriptor, Manifest
from hdhr_gateway.rate_limit import ADDON_RATE_LIMIT, limiter
from hdhr_gateway.services.resolution import (
    AddonContext,
    build_context,
    resolve_catalog,
    resolve_meta,
    resolve_streams,
)

import logging
logger = logging.getLogger(__name__)

router = APIRouter(tags=["addon"])


def get_addon_context() -> AddonContext:
    """Dependency hook; tests override this with fakes."""
    return build_context()


def build_manifest(settings: Settings) -> Manifest:
    return Manifest(
        id=settings.addon_id,
        version=settings.app_version,
        name=settings.app_name,
        description=f"OTA via {settings.hdhomerun_ip}",
        types=[settings.item_type],
        catalogs=[
            CatalogDescriptor(
                type=settings.item_type,
                id=settings.catalog_id,
                name="HDHomerun",
                extra=[{"name": "search", "isRequired": False}],
            )
        ],
        id_prefixes=[settings.id_prefix],
        logo=f"{settings.public_base_url.rstrip('/')}/static/placeholder.png",
    )


def parse_extra(extra: Optional[str]) -> dict[str, str]:
    """Parse the `search=...&skip=...` path segment of a catalog request."""
    if not extra:
        return {}
    return {k: v[0] for k, v in parse_qs(extra).items() if v}


@router.get("/manifest.json")
async def get_manifest(settings: Settings = Depends(get_settings)):
    """Add-on manifest."""
    return build_manifest(settings).to_wire()


@router.get("/catalog/{item_type}/{catalog_id}.json")
@limiter.limit(ADDON_RATE_LIMIT)
async def get_catalog(
    request: Request,
    item_type: str,
    catalog_id: str,
    ctx: AddonContext = Depends(get_addon_context),
):
    """List all channels in the tuner lineup."""
    metas = await resolve_catalog(ctx, item_type, catalog_id)
    return {"metas": [m.to_wire() for m in metas]}


@router.get("/catalog/{item_type}/{catalog_id}/{extra}.json")
@limiter.limit(ADDON_RATE_LIMIT)
async def get_catalog_with_extra(
    request: Request,
    item_type: str,
    catalog_id: str,
    extra: str,
    ctx: AddonContext = Depends(get_addon_context),
):
    """
    List channels with catalog extras.
    Only `search` is supported; other extras are ignored.
    """
    search = parse_extra(extra).get("search")
    metas = await resolve_catalog(ctx, item_type, catalog_id, search=search)
    return {"metas": [m.to_wire() for m in metas]}


@router.get("/meta/{item_type}/{item_id}.json")
@limiter.limit(ADDON_RATE_LIMIT)
async def get_meta(
    request: Request,
    item_type: str,
    item_id: str,
    ctx: AddonContext = Depends(get_addon_context),
):
    """Channel details with now-playing description."""
    meta = await resolve_meta(ctx, item_type, item_id)
    return {"meta": meta.to_wire() if meta else None}


@router.get("/stream/{item_type}/{item_id}.json")
@limiter.limit(ADDON_RATE_LIMIT)
async def get_streams(
    request: Request,
    item_type: str,
    item_id: str,
    ctx: AddonContext = Depends(get_addon_context),
):
    """Playable streams for a channel."""
    streams = await resolve_streams(ctx, item_type, item_id)
    logger.debug(f"Resolved {len(streams)} streams for {item_id}")
    return {"streams": [s.to_wire() for s in streams]}
