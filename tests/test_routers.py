"""
Tests for the HTTP endpoints.
"""
import pytest
from fastapi.testclient import TestClient

from epg_guide.config import settings
from epg_guide.dependencies import get_guide_store, get_refresh_coordinator, reset_services
from epg_guide.main import app
from epg_guide.services.embedded_parser_service import PLACEHOLDER_TITLE
from epg_guide.services.guide_store import GuideStore
from epg_guide.services.refresh_coordinator import RefreshCoordinator

EXTERNAL_GUIDE_PLAYLIST = '#EXTM3U\n#EXTINF:-1 tvg-id="ext.tv" tvg-url="http://guides.example.com/ext.xml",Ext\nhttp://s/ext\n'


@pytest.fixture
def client():
    store = GuideStore()
    coordinator = RefreshCoordinator()
    app.dependency_overrides[get_guide_store] = lambda: store
    app.dependency_overrides[get_refresh_coordinator] = lambda: coordinator
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "ok"
        assert body["refresh_in_progress"] is False
        assert body["cache"]["entries"] == 0


class TestGuideLoad:

    def test_load_and_query(self, client, sample_xmltv):
        response = client.post("/guide/load", json={
            "content": sample_xmltv,
            "playlist_channels": [{"name": "La 1 HD", "attrs": {"tvg-id": "la1.es"}}],
        })

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert body["format"] == "xmltv"
        assert body["mapping"] == {"la1.es": "la1.es"}
        assert body["coverage"] == 100
        assert body["channels_cached"] == 1

        epg = client.post("/epg", json={
            "channels": [{"channel_id": "la1.es"}],
            "from_date": "2023-12-25T13:00:00Z",
            "to_date": "2023-12-25T14:00:00Z",
        })

        assert epg.status_code == 200
        programs = epg.json()["epg"]["la1.es"]
        assert [p["title"] for p in programs] == ["Noticias"]
        assert programs[0]["start_time"] == "2023-12-25T13:00:00+00:00"

    def test_playlist_from_m3u(self, client, sample_xmltv):
        response = client.post("/guide/load", json={
            "content": sample_xmltv,
            "playlist_m3u": '#EXTM3U\n#EXTINF:-1 tvg-country="GB",BBC One\nhttp://s/bbc\n#EXTINF:-1,Unknown\nhttp://s/u\n',
        })

        assert response.status_code == 200
        assert response.json()["mapping"] == {"BBC One": "bbc-one.uk"}
        assert response.json()["coverage"] == 50

    def test_unrecognized_content(self, client):
        response = client.post("/guide/load", json={"content": "just some words"})

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "PARSE_ERROR"

    def test_missing_file(self, client, tmp_path):
        response = client.post("/guide/load", json={"source_path": str(tmp_path / "missing.xml")})

        assert response.status_code == 404
        assert response.json()["detail"]["code"] == "SOURCE_NOT_FOUND"

    def test_unreadable_path(self, client, tmp_path):
        response = client.post("/guide/load", json={"source_path": str(tmp_path)})

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "SOURCE_UNREADABLE"

    @pytest.mark.parametrize("payload", [
        {},
        {"content": "<tv/>", "source_url": "http://guides.example.com/guide.xml"},
        {"source_url": "ftp://guides.example.com/guide.xml"},
        {"content": "<tv/>", "playlist_channels": [], "playlist_m3u": "#EXTM3U"},
    ])
    def test_invalid_requests(self, client, payload):
        assert client.post("/guide/load", json=payload).status_code == 422


class TestEPG:

    def test_uncached_channel(self, client):
        response = client.post("/epg", json={
            "channels": [{"channel_id": "nothing"}],
            "from_date": "2023-12-25T13:00:00Z",
            "to_date": "2023-12-25T14:00:00Z",
        })

        assert response.status_code == 200
        assert response.json()["channels_found"] == 0
        assert response.json()["epg"] == {"nothing": []}

    def test_reversed_range_rejected(self, client):
        response = client.post("/epg", json={
            "channels": [{"channel_id": "la1.es"}],
            "from_date": "2023-12-25T14:00:00Z",
            "to_date": "2023-12-25T13:00:00Z",
        })

        assert response.status_code == 422


class TestCurrentProgram:

    def test_placeholder_is_current(self, client):
        assert client.post("/guide/load", json={"content": EXTERNAL_GUIDE_PLAYLIST}).status_code == 200

        response = client.get("/guide/ext.tv/now")

        assert response.status_code == 200
        assert response.json()["title"] == PLACEHOLDER_TITLE

    def test_invalid_timezone(self, client):
        client.post("/guide/load", json={"content": EXTERNAL_GUIDE_PLAYLIST})

        assert client.get("/guide/ext.tv/now", params={"timezone": "Mars/Base"}).status_code == 422

    def test_nothing_cached(self, client):
        assert client.get("/guide/unknown/now").status_code == 404


class TestLifespan:

    def test_memory_backend_startup_and_shutdown(self, monkeypatch):
        monkeypatch.setattr(settings, "cache_backend", "memory")
        reset_services()

        with TestClient(app) as client:
            assert client.get("/health").json()["status"] == "ok"

        reset_services()
