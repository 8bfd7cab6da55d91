"""
Catalog, meta and stream resolution.

Each handler is a plain async function of its request inputs and an
AddonContext holding the read-only collaborators. None of them raise on
upstream trouble: a dead tuner gives an empty catalog, a synthetic channel
name, or a "tuner unreachable" info entry.
"""
import asyncio
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote, urlencode

from hdhr_gateway.config import Settings, get_settings
from hdhr_gateway.models.channel import Channel, TunerDevice
from hdhr_gateway.models.metadata import (
    Meta,
    MetaBehaviorHints,
    MetaPreview,
    Stream,
    StreamBehaviorHints,
)
from hdhr_gateway.services.errors import UpstreamUnavailable
from hdhr_gateway.services.identifiers import IdentifierMapper, get_identifier_mapper
from hdhr_gateway.services.lineup_client import LineupClient, get_lineup_client
from hdhr_gateway.services.now_playing import NowPlayingResolver, get_now_playing_resolver

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AddonContext:
    """Collaborators and URL bases shared by the handlers."""
    lineup: LineupClient
    now_playing: NowPlayingResolver
    identifiers: IdentifierMapper
    public_base_url: str
    proxy_base_url: str
    proxy_secret: str
    catalog_id: str

    def artwork_url(self, display_name: str) -> str:
        return f"{self.public_base_url.rstrip('/')}/assets/{quote(display_name, safe='')}.png"

    def proxied_url(self, target_url: str) -> str:
        query = urlencode({"d": target_url, "api_password": self.proxy_secret})
        return f"{self.proxy_base_url.rstrip('/')}/proxy/stream?{query}"


def build_context(settings: Optional[Settings] = None) -> AddonContext:
    settings = settings or get_settings()
    return AddonContext(
        lineup=get_lineup_client(),
        now_playing=get_now_playing_resolver(),
        identifiers=get_identifier_mapper(),
        public_base_url=settings.public_base_url,
        proxy_base_url=settings.mediaflow_url,
        proxy_secret=settings.mediaflow_pass,
        catalog_id=settings.catalog_id,
    )


def _matches(channel: Channel, search: str) -> bool:
    needle = search.strip().lower()
    return needle in channel.name.lower() or needle == channel.guide_number


async def resolve_catalog(
    ctx: AddonContext,
    item_type: str,
    catalog_id: str,
    search: Optional[str] = None,
) -> list[MetaPreview]:
    """List every lineup channel as a catalog preview; empty on any failure."""
    if not ctx.identifiers.accepts_type(item_type) or catalog_id != ctx.catalog_id:
        return []

    try:
        channels = await ctx.lineup.fetch_lineup()
    except UpstreamUnavailable as e:
        logger.error(f"HDHomerun unreachable: {e}")
        return []

    # Only list channels whose ids meta/stream will accept back
    listable = []
    for channel in channels:
        if ctx.identifiers.is_valid_guide_number(channel.guide_number):
            listable.append(channel)
        else:
            logger.warning(f"Skipping channel with unsupported guide number {channel.guide_number!r}")
    channels = listable

    if search:
        channels = [c for c in channels if _matches(c, search)]

    return [
        MetaPreview(
            id=ctx.identifiers.to_external_id(channel.guide_number),
            type=ctx.identifiers.canonical_type,
            name=channel.name,
            poster=ctx.artwork_url(channel.name),
            logo=ctx.artwork_url(channel.name),
            description=f"Live OTA channel {channel.guide_number}",
        )
        for channel in channels
    ]


async def resolve_meta(ctx: AddonContext, item_type: str, item_id: str) -> Optional[Meta]:
    """Full metadata for one channel, or None for ids this gateway doesn't own."""
    guide_number = ctx.identifiers.from_external_id(item_id, item_type)
    if guide_number is None:
        return None

    name = f"Channel {guide_number}"
    try:
        channel = await ctx.lineup.find_channel(guide_number)
        if channel is not None:
            name = channel.name
    except UpstreamUnavailable as e:
        logger.warning(f"Lineup unavailable for meta {item_id}: {e}")

    title = await ctx.now_playing.resolve(guide_number)
    if title:
        description = f"Now playing: {title}"
    else:
        description = f"Live OTA broadcast of {name} on channel {guide_number}"

    artwork = ctx.artwork_url(name)
    return Meta(
        id=item_id,
        type=ctx.identifiers.canonical_type,
        name=name,
        poster=artwork,
        logo=artwork,
        background=artwork,
        description=description,
        genres=["Live TV"],
        release_info="LIVE",
        behavior_hints=MetaBehaviorHints(default_video_id=item_id),
    )


def _tuner_info_stream(
    ctx: AddonContext,
    device: TunerDevice,
    channel: Optional[Channel],
    now_playing_title: Optional[str],
) -> Stream:
    lines = [" ".join(p for p in (device.friendly_name, device.model_number) if p)]
    if device.firmware_version:
        lines[0] += f" (firmware {device.firmware_version})"

    if channel is None:
        lines.append("Channel not in current lineup")
    else:
        if channel.signal_strength is not None or channel.signal_quality is not None:
            strength = f"{channel.signal_strength}%" if channel.signal_strength is not None else "n/a"
            quality = f"{channel.signal_quality}%" if channel.signal_quality is not None else "n/a"
            lines.append(f"Signal: {strength} strength, {quality} quality")
        else:
            lines.append("Signal: n/a")
        codecs = " / ".join(c for c in (channel.video_codec, channel.audio_codec) if c) or "unknown"
        lines.append(f"Codec: {codecs}{' (HD)' if channel.hd else ''}")

    lines.append(f"Now playing: {ctx.now_playing.entitlement_status(device)}")
    if now_playing_title:
        lines.append(f"On air: {now_playing_title}")

    return Stream(
        name="HDHomeRun",
        title="ℹ️ Tuner Info",
        description="\n".join(lines),
        external_url=device.base_url or ctx.lineup.base_url,
    )


def _tuner_unreachable_stream(ctx: AddonContext) -> Stream:
    return Stream(
        name="HDHomeRun",
        title="⚠️ Tuner unreachable",
        description=f"Could not reach HDHomeRun at {ctx.lineup.host}",
        external_url=f"{ctx.public_base_url.rstrip('/')}/health",
    )


async def resolve_streams(ctx: AddonContext, item_type: str, item_id: str) -> list[Stream]:
    """Proxied and direct playable entries, plus one tuner info entry."""
    guide_number = ctx.identifiers.from_external_id(item_id, item_type)
    if guide_number is None:
        return []

    raw_url = ctx.lineup.stream_url(guide_number)

    device, lineup = await asyncio.gather(
        ctx.lineup.fetch_device_info(),
        ctx.lineup.fetch_lineup(),
        return_exceptions=True,
    )
    for result in (device, lineup):
        if isinstance(result, BaseException) and not isinstance(result, UpstreamUnavailable):
            raise result

    # Reuse the discover.json we just fetched; no device means no guide lookup
    title = None
    if not isinstance(device, UpstreamUnavailable):
        title = await ctx.now_playing.resolve(guide_number, device=device)

    streams = [
        Stream(
            title="🌀 Mediaflow Proxy",
            description=title,
            url=ctx.proxied_url(raw_url),
            behavior_hints=StreamBehaviorHints(binge_group="hdhr-proxy"),
        ),
        Stream(
            title="📡 Direct HDHomerun",
            description=title,
            url=raw_url,
            behavior_hints=StreamBehaviorHints(not_web_ready=True, binge_group="hdhr-direct"),
        ),
    ]

    if isinstance(device, UpstreamUnavailable) or isinstance(lineup, UpstreamUnavailable):
        failure = device if isinstance(device, UpstreamUnavailable) else lineup
        logger.warning(f"Tuner info unavailable for {item_id}: {failure}")
        streams.append(_tuner_unreachable_stream(ctx))
    else:
        channel = next((c for c in lineup if c.guide_number == guide_number), None)
        streams.append(_tuner_info_stream(ctx, device, channel, title))

    return streams
