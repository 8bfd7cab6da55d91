"""
Route tests for the add-on, artwork and health endpoints.
"""
import pytest
from httpx import URL, AsyncClient, ASGITransport

from hdhr_gateway.config import get_settings
from hdhr_gateway.main import app
from hdhr_gateway.rate_limit import limiter
from hdhr_gateway.routers.addon import get_addon_context, parse_extra
from hdhr_gateway.services.artwork import ArtworkResolver, get_artwork_resolver
from hdhr_gateway.services.lineup_client import LineupClient, get_lineup_client

from conftest import TUNER_HOST, FakeUpstream, make_context, timeout_error


@pytest.fixture
def client_factory():
    """Yield a factory for ASGI clients; clears overrides and rate-limit counters afterwards."""
    limiter.reset()

    def make():
        transport = ASGITransport(app=app)
        return AsyncClient(transport=transport, base_url="http://test")
    yield make
    app.dependency_overrides.clear()
    limiter.reset()


@pytest.fixture
def with_context(tuner, guide_api):
    context = make_context(tuner, guide_api)
    app.dependency_overrides[get_addon_context] = lambda: context
    return context


@pytest.mark.asyncio
async def test_manifest(client_factory):
    async with client_factory() as ac:
        response = await ac.get("/manifest.json")
    assert response.status_code == 200
    manifest = response.json()
    assert manifest["id"] == "org.titleos.hdhomerun"
    assert manifest["resources"] == ["catalog", "meta", "stream"]
    assert manifest["types"] == ["tv"]
    assert manifest["idPrefixes"] == ["hdhr_"]
    assert manifest["catalogs"][0]["id"] == "hdhr_ota"
    assert manifest["catalogs"][0]["extra"] == [{"name": "search", "isRequired": False}]


@pytest.mark.asyncio
async def test_manifest_cors(client_factory):
    async with client_factory() as ac:
        response = await ac.get("/manifest.json", headers={"Origin": "https://web.stremio.com"})
    assert response.headers.get("access-control-allow-origin") in ("*", "https://web.stremio.com")


class TestAddonRoutes:

    @pytest.mark.asyncio
    async def test_catalog(self, client_factory, with_context):
        async with client_factory() as ac:
            response = await ac.get("/catalog/tv/hdhr_ota.json")
        assert response.status_code == 200
        metas = response.json()["metas"]
        assert [m["id"] for m in metas] == ["hdhr_7.1", "hdhr_11.1"]

    @pytest.mark.asyncio
    async def test_catalog_search_extra(self, client_factory, with_context):
        async with client_factory() as ac:
            response = await ac.get("/catalog/tv/hdhr_ota/search=wcco.json")
        assert [m["id"] for m in response.json()["metas"]] == ["hdhr_7.1"]

    @pytest.mark.asyncio
    async def test_catalog_tuner_down(self, client_factory, guide_api):
        tuner = FakeUpstream({"/lineup.json": timeout_error("/lineup.json")})
        context = make_context(tuner, guide_api)
        app.dependency_overrides[get_addon_context] = lambda: context
        async with client_factory() as ac:
            response = await ac.get("/catalog/tv/hdhr_ota.json")
        assert response.status_code == 200
        assert response.json() == {"metas": []}

    @pytest.mark.asyncio
    async def test_meta(self, client_factory, with_context):
        async with client_factory() as ac:
            response = await ac.get("/meta/tv/hdhr_7.1.json")
        meta = response.json()["meta"]
        assert meta["id"] == "hdhr_7.1"
        assert meta["behaviorHints"]["defaultVideoId"] == "hdhr_7.1"

    @pytest.mark.asyncio
    async def test_meta_foreign_id(self, client_factory, with_context):
        async with client_factory() as ac:
            response = await ac.get("/meta/movie/tt0111161.json")
        assert response.status_code == 200
        assert response.json() == {"meta": None}

    @pytest.mark.asyncio
    async def test_streams(self, client_factory, with_context):
        async with client_factory() as ac:
            response = await ac.get("/stream/tv/hdhr_7.1.json")
        streams = response.json()["streams"]
        assert len(streams) == 3
        assert streams[1] == {
            "title": "📡 Direct HDHomerun",
            "description": "Morning News",
            "url": "http://10.0.0.5:5004/auto/v7.1",
            "behaviorHints": {"notWebReady": True, "bingeGroup": "hdhr-direct"},
        }
        assert "externalUrl" in streams[2]
        assert "url" not in streams[2]

    @pytest.mark.asyncio
    async def test_streams_foreign_id(self, client_factory, with_context):
        async with client_factory() as ac:
            response = await ac.get("/stream/tv/other_1.json")
        assert response.json() == {"streams": []}

    @pytest.mark.asyncio
    async def test_catalog_rate_limited(self, client_factory, with_context):
        limit = get_settings().rate_limit_per_minute
        async with client_factory() as ac:
            for _ in range(limit):
                assert (await ac.get("/catalog/tv/hdhr_ota.json")).status_code == 200
            response = await ac.get("/catalog/tv/hdhr_ota.json")
        assert response.status_code == 429


class TestArtworkRoute:

    def _override(self, upstream):
        resolver = ArtworkResolver(
            "https://logos.test/us",
            "https://avatars.test/api/",
            placeholder_url="http://test/static/placeholder.png",
            transport=upstream.transport,
        )
        app.dependency_overrides[get_artwork_resolver] = lambda: resolver

    @pytest.mark.asyncio
    async def test_redirects_to_logo(self, client_factory):
        self._override(FakeUpstream({"/us/wcco-us.png": 200}))
        async with client_factory() as ac:
            response = await ac.get("/assets/WCCO-DT.png")
        assert response.status_code == 302
        assert response.headers["location"] == "https://logos.test/us/wcco-us.png"

    @pytest.mark.asyncio
    async def test_redirects_to_avatar_with_raw_name(self, client_factory):
        upstream = FakeUpstream({"/api/": 200})
        self._override(upstream)
        async with client_factory() as ac:
            response = await ac.get("/assets/KARE%20HD.png")
        assert response.status_code == 302
        assert "name=KARE+HD" in response.headers["location"]
        assert upstream.calls("/us/kare-us.png") == 1

    @pytest.mark.asyncio
    async def test_serves_placeholder_bytes(self, client_factory):
        self._override(FakeUpstream({}))
        async with client_factory() as ac:
            response = await ac.get("/assets/Unknown.png")
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.content.startswith(b"\x89PNG")

    @pytest.mark.asyncio
    async def test_catalog_artwork_link_for_name_with_slash(self, client_factory, guide_api, sample_lineup):
        sample_lineup.append({"GuideNumber": "41.3", "GuideName": "ION/Qubo"})
        context = make_context(FakeUpstream({"/lineup.json": sample_lineup}), guide_api)
        app.dependency_overrides[get_addon_context] = lambda: context
        upstream = FakeUpstream({"/api/": 200})
        self._override(upstream)
        async with client_factory() as ac:
            metas = (await ac.get("/catalog/tv/hdhr_ota.json")).json()["metas"]
            poster = next(m["poster"] for m in metas if m["id"] == "hdhr_41.3")
            response = await ac.get(URL(poster).raw_path.decode())
        assert response.status_code == 302
        assert "name=ION%2FQubo" in response.headers["location"]

    @pytest.mark.asyncio
    async def test_not_rate_limited(self, client_factory):
        self._override(FakeUpstream({}))
        async with client_factory() as ac:
            for _ in range(get_settings().rate_limit_per_minute + 5):
                response = await ac.get("/assets/Unknown.png")
                assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_static_placeholder(self, client_factory):
        async with client_factory() as ac:
            response = await ac.get("/static/placeholder.png")
        assert response.status_code == 200


class TestHealth:

    def _override(self, upstream):
        client = LineupClient(TUNER_HOST, health_timeout=0.5, transport=upstream.transport)
        app.dependency_overrides[get_lineup_client] = lambda: client

    @pytest.mark.asyncio
    async def test_healthy(self, client_factory, tuner):
        self._override(tuner)
        async with client_factory() as ac:
            response = await ac.get("/health")
        assert response.status_code == 200
        assert response.text == "OK"

    @pytest.mark.asyncio
    async def test_unreachable(self, client_factory):
        self._override(FakeUpstream({"/discover.json": timeout_error("/discover.json")}))
        async with client_factory() as ac:
            response = await ac.get("/health")
        assert response.status_code == 503
        assert response.text == "HDHomerun Unreachable"


def test_parse_extra():
    assert parse_extra("search=kare%20hd&skip=0") == {"search": "kare hd", "skip": "0"}
    assert parse_extra("") == {}
    assert parse_extra(None) == {}
