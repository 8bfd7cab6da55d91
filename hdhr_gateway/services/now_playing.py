"""
Now-playing lookup against the HDHomeRun cloud guide.

The guide is gated behind the device auth token and a paid guide
subscription. A 401/403 from the guide API means the subscription is
missing; that does not fix itself, so the first one disables guide
lookups for the life of the GuideApiState (in practice, the process).
"""
import httpx
import logging
import threading
import time
from typing import Callable, Optional

from hdhr_gateway.config import get_settings
from hdhr_gateway.models.channel import TunerDevice
from hdhr_gateway.models.epg import GuideEntry
from hdhr_gateway.services.errors import AccessDenied, UpstreamUnavailable
from hdhr_gateway.services.lineup_client import LineupClient, get_lineup_client

logger = logging.getLogger(__name__)


class GuideApiState:
    """One-way circuit breaker: enabled until the first access-denied, then never again."""

    def __init__(self):
        self._enabled = True
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self._enabled

    def disable(self) -> bool:
        """Trip the breaker. Returns True only for the call that tripped it."""
        with self._lock:
            if not self._enabled:
                return False
            self._enabled = False
            return True


class NowPlayingResolver:
    """Resolves the title currently airing on a channel, or None."""

    DENIED_STATUSES = (401, 403)

    def __init__(
        self,
        lineup: LineupClient,
        state: GuideApiState,
        guide_api_base: str = "https://api.hdhomerun.com",
        timeout: float = 2.0,
        clock: Callable[[], float] = time.time,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.lineup = lineup
        self.state = state
        self.guide_url = f"{guide_api_base.rstrip('/')}/api/guide"
        self.timeout = timeout
        self.clock = clock
        self._transport = transport

    async def resolve(
        self,
        guide_number: str,
        now: Optional[float] = None,
        device: Optional[TunerDevice] = None,
    ) -> Optional[str]:
        """
        Get the current program title for a channel. Never raises.

        Pass `device` when the caller already fetched discover.json.
        """
        if not self.state.enabled:
            return None

        if device is None:
            try:
                device = await self.lineup.fetch_device_info()
            except UpstreamUnavailable as e:
                logger.debug(f"No device info for guide lookup: {e}")
                return None
        if not device.has_auth:
            return None

        try:
            guide = await self.fetch_guide(device.device_auth)
        except AccessDenied:
            if self.state.disable():
                logger.warning("Guide API denied access (no guide subscription?); now-playing disabled until restart")
            return None
        except UpstreamUnavailable as e:
            logger.debug(f"Guide lookup failed: {e}")
            return None

        return self.current_title(guide, guide_number, self.clock() if now is None else now)

    async def fetch_guide(self, device_auth: str) -> list[GuideEntry]:
        """
        Fetch the guide window for all channels.

        Raises:
            AccessDenied: on 401/403
            UpstreamUnavailable: on any other failure
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.get(self.guide_url, params={"DeviceAuth": device_auth})
                if response.status_code in self.DENIED_STATUSES:
                    raise AccessDenied(f"Guide API returned {response.status_code}")
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            raise UpstreamUnavailable("Guide API timed out") from e
        except httpx.HTTPStatusError as e:
            raise UpstreamUnavailable(f"Guide API returned {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Guide API unreachable: {type(e).__name__}") from e
        except ValueError as e:
            raise UpstreamUnavailable("Malformed guide response") from e

        if not isinstance(data, list):
            raise UpstreamUnavailable("Guide response is not a list")
        # A bad entry for one channel must not hide the others
        guide = []
        for entry in data:
            try:
                guide.append(GuideEntry.model_validate(entry))
            except ValueError as e:
                number = entry.get("GuideNumber") if isinstance(entry, dict) else None
                logger.debug(f"Skipping guide entry {number}: {e}")
        return guide

    @staticmethod
    def current_title(guide: list[GuideEntry], guide_number: str, now: float) -> Optional[str]:
        for entry in guide:
            if entry.guide_number == guide_number:
                airing = entry.current(now)
                return airing.title if airing else None
        return None

    def entitlement_status(self, device: Optional[TunerDevice]) -> str:
        """Human-readable state of the now-playing feature."""
        if not self.state.enabled:
            return "disabled (no guide subscription)"
        if device is None or not device.has_auth:
            return "unavailable (no device auth)"
        return "enabled"


# Singleton
_now_playing: Optional[NowPlayingResolver] = None


def get_now_playing_resolver() -> NowPlayingResolver:
    """Get or create the process-wide resolver (and its breaker)."""
    global _now_playing
    if _now_playing is None:
        settings = get_settings()
        _now_playing = NowPlayingResolver(
            get_lineup_client(),
            GuideApiState(),
            guide_api_base=settings.guide_api_base,
            timeout=settings.guide_timeout_seconds,
        )
    return _now_playing
