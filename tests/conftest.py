"""
Pytest configuration and fixtures for gateway tests.
"""
import httpx
import pytest

from hdhr_gateway.services.identifiers import IdentifierMapper
from hdhr_gateway.services.lineup_client import LineupClient
from hdhr_gateway.services.now_playing import GuideApiState, NowPlayingResolver
from hdhr_gateway.services.resolution import AddonContext

TUNER_HOST = "10.0.0.5"
PROXY_BASE = "http://mf:8888"
PUBLIC_BASE = "http://gateway.local:7000"


class FakeUpstream:
    """
    Minimal stand-in for the tuner or guide HTTP API.

    Routes map a path to a JSON body, an int status code, or an exception
    to raise. Every request is recorded.
    """

    def __init__(self, routes: dict):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def calls(self, path: str) -> int:
        return sum(1 for r in self.requests if r.url.path == path)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404)
        if isinstance(route, Exception):
            raise route
        if isinstance(route, int):
            return httpx.Response(route)
        if isinstance(route, str):
            return httpx.Response(200, text=route)
        return httpx.Response(200, json=route)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def timeout_error(path: str) -> httpx.ConnectTimeout:
    return httpx.ConnectTimeout("timed out", request=httpx.Request("GET", f"http://{TUNER_HOST}{path}"))


@pytest.fixture
def sample_lineup():
    """Lineup as returned by a tuner's /lineup.json."""
    return [
        {
            "GuideNumber": "7.1",
            "GuideName": "WCCO-DT",
            "VideoCodec": "MPEG2",
            "AudioCodec": "AC3",
            "HD": 1,
            "SignalStrength": 88,
            "SignalQuality": 95,
            "URL": f"http://{TUNER_HOST}:5004/auto/v7.1",
        },
        {
            "GuideNumber": "11.1",
            "GuideName": "KARE HD",
            "VideoCodec": "MPEG2",
            "AudioCodec": "AC3",
            "URL": f"http://{TUNER_HOST}:5004/auto/v11.1",
        },
    ]


@pytest.fixture
def sample_discover():
    """Device info as returned by /discover.json."""
    return {
        "FriendlyName": "HDHomeRun FLEX 4K",
        "ModelNumber": "HDFX-4K",
        "FirmwareName": "hdhomerun_dvr_atsc3",
        "FirmwareVersion": "20231214",
        "DeviceID": "1080ABCD",
        "DeviceAuth": "secret-auth-token",
        "BaseURL": f"http://{TUNER_HOST}:80",
        "LineupURL": f"http://{TUNER_HOST}:80/lineup.json",
        "TunerCount": 4,
    }


@pytest.fixture
def sample_guide():
    """Guide response from /api/guide."""
    return [
        {
            "GuideNumber": "7.1",
            "GuideName": "WCCO",
            "Guide": [
                {"StartTime": 100, "EndTime": 200, "Title": "Morning News"},
                {"StartTime": 200, "EndTime": 300, "Title": "Weather Update", "EpisodeTitle": "Storm Watch"},
            ],
        },
        {
            "GuideNumber": "11.1",
            "GuideName": "KARE",
            "Guide": [],
        },
    ]


@pytest.fixture
def tuner(sample_lineup, sample_discover):
    """Healthy tuner."""
    return FakeUpstream({"/lineup.json": sample_lineup, "/discover.json": sample_discover})


@pytest.fixture
def guide_api(sample_guide):
    """Healthy guide API."""
    return FakeUpstream({"/api/guide": sample_guide})


def make_context(tuner: FakeUpstream, guide_api: FakeUpstream, state: GuideApiState = None, now: float = 150):
    """Wire handlers to fake upstreams."""
    lineup = LineupClient(TUNER_HOST, timeout=1.0, transport=tuner.transport)
    now_playing = NowPlayingResolver(
        lineup,
        state or GuideApiState(),
        guide_api_base="https://guide.test",
        clock=lambda: now,
        transport=guide_api.transport,
    )
    return AddonContext(
        lineup=lineup,
        now_playing=now_playing,
        identifiers=IdentifierMapper("hdhr_", "tv", ["channel"]),
        public_base_url=PUBLIC_BASE,
        proxy_base_url=PROXY_BASE,
        proxy_secret="s3cret",
        catalog_id="hdhr_ota",
    )


@pytest.fixture
def context(tuner, guide_api):
    return make_context(tuner, guide_api)
