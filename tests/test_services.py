"""Tests for the upstream HTTP clients, served by httpx.MockTransport."""

from __future__ import annotations

import httpx
import pytest

from plexmate.errors import ConfigurationMissing, UpstreamUnavailable
from plexmate.services import (
    ArrClient,
    QBittorrentClient,
    SabnzbdClient,
    TautulliClient,
    create_download_client,
)
from plexmate.services.arr import parse_queue_record
from plexmate.services.tautulli import parse_session


def mock_http(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestTautulli:
    def test_parse_episode_session(self) -> None:
        session = parse_session(
            {
                "session_id": "xyz",
                "friendly_name": "bob",
                "media_type": "episode",
                "grandparent_title": "The Office",
                "parent_media_index": "2",
                "media_index": "3",
                "duration": "1320000",
                "view_offset": "660000",
                "video_resolution": "1080",
                "transcode_decision": "transcode",
            }
        )

        assert session.title == "The Office - S2E3"
        assert session.progress == 50
        assert session.duration == 1320
        assert session.quality == "1080p"
        assert session.is_transcoding

    def test_parse_movie_session(self) -> None:
        session = parse_session(
            {
                "session_key": "12",
                "user": "carol",
                "media_type": "movie",
                "title": "Dune",
                "year": "2021",
                "progress_percent": "75",
                "video_full_resolution": "4k",
                "transcode_decision": "direct play",
            }
        )

        assert session.session_id == "12"
        assert session.title == "Dune (2021)"
        assert session.progress == 75
        assert session.quality == "4k"
        assert not session.is_transcoding

    @pytest.mark.asyncio
    async def test_get_active_sessions(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v2"
            assert request.url.params["cmd"] == "get_activity"
            assert request.url.params["apikey"] == "key"
            return httpx.Response(
                200,
                json={
                    "response": {
                        "result": "success",
                        "data": {"sessions": [{"session_id": "a", "title": "Dune"}]},
                    }
                },
            )

        client = TautulliClient("http://tautulli:8181/", "key", http=mock_http(handler))
        sessions = await client.get_active_sessions()
        await client.close()

        assert [s.session_id for s in sessions] == ["a"]

    @pytest.mark.asyncio
    async def test_api_error_result(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json={"response": {"result": "error", "message": "Invalid apikey"}}
            )

        client = TautulliClient("http://tautulli", "bad", http=mock_http(handler))
        with pytest.raises(UpstreamUnavailable) as exc_info:
            await client.get_active_sessions()

        assert exc_info.value.reason == "Invalid apikey"

    @pytest.mark.asyncio
    async def test_http_error_maps_to_unavailable(self) -> None:
        client = TautulliClient(
            "http://tautulli", "key", http=mock_http(lambda r: httpx.Response(500))
        )

        with pytest.raises(UpstreamUnavailable) as exc_info:
            await client.get_active_sessions()

        assert exc_info.value.source == "Tautulli"
        assert exc_info.value.reason == "HTTP 500"

    @pytest.mark.asyncio
    async def test_transport_error_maps_to_unavailable(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = TautulliClient("http://tautulli", "key", http=mock_http(handler))
        with pytest.raises(UpstreamUnavailable):
            await client.get_active_sessions()

    @pytest.mark.asyncio
    async def test_unconfigured_client(self) -> None:
        client = TautulliClient("", "", http=mock_http(lambda r: httpx.Response(200)))

        assert not client.is_configured
        with pytest.raises(ConfigurationMissing):
            await client.get_active_sessions()


class TestArr:
    def test_parse_queue_record_progress(self) -> None:
        item = parse_queue_record(
            {
                "id": 9,
                "title": "Dune.2021.2160p",
                "size": 1000,
                "sizeleft": 250,
                "status": "downloading",
                "timeleft": "00:10:00",
                "quality": {"quality": {"name": "Bluray-2160p"}},
            },
            "movie",
        )

        assert item.progress == 75.0
        assert item.quality == "Bluray-2160p"
        assert item.time_left == "00:10:00"
        assert item.media_type == "movie"

    def test_parse_queue_record_keeps_missing_title_empty(self) -> None:
        item = parse_queue_record({"id": 3, "size": 0}, "episode")

        assert item.title == ""
        assert item.progress == 0.0

    @pytest.mark.asyncio
    async def test_get_queue_sends_api_key_header(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/api/v3/queue"
            assert request.headers["X-Api-Key"] == "secret"
            return httpx.Response(200, json={"records": [{"id": 1, "title": "Show S01E01"}]})

        client = ArrClient("sonarr", "http://sonarr:8989", "secret", http=mock_http(handler))
        items = await client.get_queue()

        assert client.name == "Sonarr"
        assert items[0].title == "Show S01E01"
        assert items[0].media_type == "episode"
        assert items[0].progress == 0.0


class TestSabnzbd:
    @pytest.mark.asyncio
    async def test_active_downloads(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.params["mode"] == "queue"
            return httpx.Response(
                200,
                json={
                    "queue": {
                        "speed": "1.2 M",
                        "slots": [
                            {
                                "filename": "Dune.nzb",
                                "percentage": "42",
                                "timeleft": "0:05:00",
                                "status": "Downloading",
                            },
                            {"filename": "Other.nzb", "percentage": "0", "status": "Queued"},
                        ],
                    }
                },
            )

        client = SabnzbdClient("http://sab", "key", http=mock_http(handler))
        items = await client.get_active_downloads()

        assert items[0].progress == 42.0
        assert items[0].speed == "1.2 MB/s"
        assert items[1].speed is None

    @pytest.mark.asyncio
    async def test_error_payload(self) -> None:
        client = SabnzbdClient(
            "http://sab",
            "key",
            http=mock_http(lambda r: httpx.Response(200, json={"status": False, "error": "API Key Incorrect"})),
        )

        with pytest.raises(UpstreamUnavailable) as exc_info:
            await client.get_active_downloads()

        assert exc_info.value.reason == "API Key Incorrect"


class TestQBittorrent:
    @pytest.mark.asyncio
    async def test_relogs_in_after_forbidden(self) -> None:
        calls = {"login": 0, "info": 0}

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path == "/api/v2/auth/login":
                calls["login"] += 1
                return httpx.Response(200, text="Ok.")
            calls["info"] += 1
            if calls["info"] == 1:
                return httpx.Response(403)
            return httpx.Response(
                200,
                json=[{"name": "ubuntu.iso", "progress": 0.5, "dlspeed": 2048, "eta": 8640000}],
            )

        client = QBittorrentClient("http://qbit", "admin", "pw", http=mock_http(handler))
        client._logged_in = True
        items = await client.get_active_downloads()

        assert calls == {"login": 1, "info": 2}
        assert items[0].progress == 50.0
        assert items[0].speed == "2 KB/s"
        assert items[0].eta == "Unknown"

    @pytest.mark.asyncio
    async def test_rejected_login(self) -> None:
        client = QBittorrentClient(
            "http://qbit", "admin", "wrong", http=mock_http(lambda r: httpx.Response(200, text="Fails."))
        )

        with pytest.raises(UpstreamUnavailable):
            await client.get_active_downloads()


class TestFactory:
    def test_builds_configured_kind(self) -> None:
        assert isinstance(create_download_client("sabnzbd", sabnzbd_url="http://sab"), SabnzbdClient)
        assert isinstance(create_download_client("QBittorrent"), QBittorrentClient)

    def test_unknown_or_empty_kind_is_none(self) -> None:
        assert create_download_client("") is None
        assert create_download_client("transmission") is None
