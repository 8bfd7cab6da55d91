"""
Channel artwork resolution.

Tries an ordered list of candidate sources, verifying each one exists
before committing to it:

1. tv-logo community repository, keyed by the normalized station name
2. generated avatar service, keyed by the raw display name
3. bundled placeholder PNG
"""
import httpx
import logging
import re
from pathlib import Path
from typing import Awaitable, Callable, NamedTuple, Optional
from urllib.parse import urlencode

from hdhr_gateway.config import get_settings

logger = logging.getLogger(__name__)

PLACEHOLDER_PATH = Path(__file__).parent.parent / "static" / "placeholder.png"

# Trailing broadcast suffixes: "WCCO-DT", "KARE HD", "K15LD-LD2"
SUFFIX_PATTERN = re.compile(r"[-\s]+(?:DT|HD|LD)\d*$", re.IGNORECASE)


def normalize_name(display_name: str) -> str:
    """Strip broadcast suffixes and all whitespace from a station name."""
    name = display_name.strip()
    while True:
        stripped = SUFFIX_PATTERN.sub("", name)
        if stripped == name:
            break
        name = stripped
    name = re.sub(r"\s+", "", name)
    # Never normalize a name away entirely ("HD" alone, for instance)
    return name or re.sub(r"\s+", "", display_name)


class ArtworkChoice(NamedTuple):
    source: str
    url: str
    path: Optional[Path] = None  # Set when the choice is a local file


class ArtworkCandidate(NamedTuple):
    source: str
    produce: Callable[[str], ArtworkChoice]
    verify: Callable[[ArtworkChoice], Awaitable[bool]]


class ArtworkResolver:
    """Resolves a display name to an artwork URL. Never fails."""

    USER_AGENT = "hdhr-gateway/1.0"

    def __init__(
        self,
        logo_repo_base: str,
        avatar_service_base: str,
        placeholder_url: str,
        check_timeout: float = 1.5,
        placeholder_path: Path = PLACEHOLDER_PATH,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.logo_repo_base = logo_repo_base.rstrip("/")
        self.avatar_service_base = avatar_service_base
        self.placeholder_url = placeholder_url
        self.placeholder_path = placeholder_path
        self.check_timeout = check_timeout
        self._transport = transport

        self.candidates = [
            ArtworkCandidate("logo_repo", self._logo_repo_choice, self._check),
            ArtworkCandidate("avatar", self._avatar_choice, self._check),
            ArtworkCandidate("placeholder", self._placeholder_choice, self._file_exists),
        ]

    def _logo_repo_choice(self, display_name: str) -> ArtworkChoice:
        key = normalize_name(display_name).lower()
        return ArtworkChoice("logo_repo", f"{self.logo_repo_base}/{key}-us.png")

    def _avatar_choice(self, display_name: str) -> ArtworkChoice:
        query = urlencode({"name": display_name, "size": 256, "background": "random", "format": "png"})
        return ArtworkChoice("avatar", f"{self.avatar_service_base}?{query}")

    def _placeholder_choice(self, display_name: str) -> ArtworkChoice:
        return ArtworkChoice("placeholder", self.placeholder_url, self.placeholder_path)

    async def _check(self, choice: ArtworkChoice) -> bool:
        """HEAD the candidate URL; some servers reject HEAD, so fall back to a 1-byte GET."""
        headers = {"User-Agent": self.USER_AGENT}
        try:
            async with httpx.AsyncClient(
                timeout=self.check_timeout,
                follow_redirects=True,
                transport=self._transport,
            ) as client:
                response = await client.head(choice.url, headers=headers)
                if response.status_code == 405:
                    response = await client.get(choice.url, headers={**headers, "Range": "bytes=0-0"})
                return response.status_code in (200, 206)
        except httpx.HTTPError as e:
            logger.debug(f"Artwork check failed for {choice.source}: {type(e).__name__}")
            return False

    async def _file_exists(self, choice: ArtworkChoice) -> bool:
        return choice.path is not None and choice.path.is_file()

    async def resolve(self, display_name: str) -> ArtworkChoice:
        """Evaluate candidates in order; the first verified one wins."""
        for candidate in self.candidates:
            choice = candidate.produce(display_name)
            if await candidate.verify(choice):
                logger.debug(f"Artwork for {display_name!r} from {choice.source}")
                return choice
        # Placeholder is bundled with the package; only a broken install gets here
        logger.error(f"Placeholder artwork missing at {self.placeholder_path}")
        return self._placeholder_choice(display_name)


def get_artwork_resolver() -> ArtworkResolver:
    """Build a resolver from current settings (stateless, no cache)."""
    settings = get_settings()
    return ArtworkResolver(
        settings.logo_repo_base,
        settings.avatar_service_base,
        placeholder_url=f"{settings.public_base_url.rstrip('/')}/static/placeholder.png",
        check_timeout=settings.artwork_check_timeout_seconds,
    )
