"""
HDHomeRun local API client.
Fetches the channel lineup and device discovery documents from the tuner.
"""
import httpx
import logging
from typing import Optional

from hdhr_gateway.config import get_settings
from hdhr_gateway.models.channel import Channel, TunerDevice
from hdhr_gateway.services.errors import UpstreamUnavailable

logger = logging.getLogger(__name__)


class LineupClient:
    """Read-only client for a single tuner device."""

    STREAM_PORT = 5004

    def __init__(
        self,
        host: str,
        timeout: float = 3.0,
        health_timeout: float = 1.5,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.host = host
        self.base_url = f"http://{host}"
        self.timeout = timeout
        self.health_timeout = health_timeout
        # Tests inject an httpx.MockTransport here
        self._transport = transport

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    async def _get_json(self, path: str, timeout: float):
        url = f"{self.base_url}{path}"
        try:
            async with self._client(timeout) as client:
                response = await client.get(url)
                response.raise_for_status()
                return response.json()
        except httpx.TimeoutException as e:
            raise UpstreamUnavailable(f"Tuner timed out on {path}") from e
        except httpx.HTTPStatusError as e:
            raise UpstreamUnavailable(f"Tuner returned {e.response.status_code} on {path}") from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Tuner unreachable on {path}: {e}") from e
        except ValueError as e:
            raise UpstreamUnavailable(f"Malformed JSON from {path}") from e

    async def fetch_lineup(self) -> list[Channel]:
        """
        Fetch the channel lineup.

        Raises:
            UpstreamUnavailable: on any transport or parse failure
        """
        data = await self._get_json("/lineup.json", self.timeout)
        if not isinstance(data, list):
            raise UpstreamUnavailable("lineup.json is not a list")

        channels = []
        for entry in data:
            if not isinstance(entry, dict) or entry.get("GuideNumber") in (None, ""):
                continue
            try:
                channels.append(Channel.model_validate(entry))
            except ValueError as e:
                logger.debug(f"Skipping lineup entry {entry.get('GuideNumber')}: {e}")

        logger.debug(f"Fetched {len(channels)} channels from {self.host}")
        return channels

    async def fetch_device_info(self) -> TunerDevice:
        """
        Fetch device identity and auth token.

        Raises:
            UpstreamUnavailable: on any transport or parse failure
        """
        data = await self._get_json("/discover.json", self.timeout)
        if not isinstance(data, dict):
            raise UpstreamUnavailable("discover.json is not an object")
        try:
            return TunerDevice.model_validate(data)
        except ValueError as e:
            raise UpstreamUnavailable("Malformed discover.json") from e

    async def find_channel(self, guide_number: str) -> Optional[Channel]:
        """Look up one channel in a fresh lineup."""
        for channel in await self.fetch_lineup():
            if channel.guide_number == guide_number:
                return channel
        return None

    def stream_url(self, guide_number: str) -> str:
        """Direct MPEG-TS URL for a channel on the tuner."""
        return f"http://{self.host}:{self.STREAM_PORT}/auto/v{guide_number}"

    async def is_reachable(self) -> bool:
        """Check whether discover.json answers within the health timeout."""
        try:
            await self._get_json("/discover.json", self.health_timeout)
            return True
        except UpstreamUnavailable as e:
            logger.warning(f"Health check failed: {e}")
            return False


# Singleton
_lineup_client: Optional[LineupClient] = None


def get_lineup_client() -> LineupClient:
    """Get or create lineup client singleton."""
    global _lineup_client
    if _lineup_client is None:
        settings = get_settings()
        _lineup_client = LineupClient(
            settings.hdhomerun_ip,
            timeout=settings.tuner_timeout_seconds,
            health_timeout=settings.health_timeout_seconds,
        )
    return _lineup_client
