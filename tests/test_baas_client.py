"""
Backend Client and Repository Tests
Request shaping and error mapping over a mocked transport
"""

import time

import httpx
import pytest

from radio.database.client import AuthStore, BaaSClient, BaaSError
from radio.database.repositories import ConflictError, RepositoryError, RoomRepository, TrackRepository

from fakes import RecordingBackend, jwt


def make_client(backend, token=None):
    http = httpx.AsyncClient(base_url="http://baas.test", transport=httpx.MockTransport(backend))
    return BaaSClient(http, token)


def page(items, page=1, per_page=30, total=None):
    total = len(items) if total is None else total
    return httpx.Response(200, json={
        "page": page,
        "perPage": per_page,
        "totalItems": total,
        "totalPages": 1,
        "items": items,
    })


@pytest.mark.unit
class TestFilterBinding:

    def test_literals_are_escaped(self):
        expr = BaaSClient.filter("title = {:title} && user = {:user}", title="it's \\ here", user=None)
        assert expr == "title = 'it\\'s \\\\ here' && user = null"

    def test_non_string_literals(self):
        assert BaaSClient.filter("a = {:a} && b = {:b}", a=True, b=3) == "a = true && b = 3"


@pytest.mark.unit
class TestAuthStore:

    def test_token_expiry(self):
        assert AuthStore(jwt(time.time() + 3600)).is_valid
        assert not AuthStore(jwt(time.time() - 10)).is_valid
        assert not AuthStore(None).is_valid
        # Opaque tokens carry no expiry
        assert AuthStore("opaque-token").is_valid


@pytest.mark.unit
class TestClientRequests:

    @pytest.mark.asyncio
    async def test_list_query_and_auth_header(self):
        backend = RecordingBackend(page([{"id": "a"}]))
        client = make_client(backend, token="tok-123")

        await client.collection("radio_music_tracks").get_list(2, 10, sort="-created", filter="deleted != true")

        [request] = backend.requests
        assert request.method == "GET"
        assert request.url.path == "/api/collections/radio_music_tracks/records"
        assert request.url.params["page"] == "2"
        assert request.url.params["perPage"] == "10"
        assert request.url.params["sort"] == "-created"
        assert request.url.params["filter"] == "deleted != true"
        assert "expand" not in request.url.params
        assert request.headers["Authorization"] == "tok-123"

    @pytest.mark.asyncio
    async def test_no_auth_header_without_token(self):
        backend = RecordingBackend()
        await make_client(backend).send("GET", "/api/health")

        assert "Authorization" not in backend.requests[0].headers

    @pytest.mark.asyncio
    async def test_full_list_pages_until_short_page(self):
        backend = RecordingBackend(
            page([{"id": "a"}, {"id": "b"}], per_page=2),
            page([{"id": "c"}], page=2, per_page=2),
        )

        items = await make_client(backend).collection("tracks").get_full_list(batch=2)

        assert [item["id"] for item in items] == ["a", "b", "c"]
        assert [r.url.params["page"] for r in backend.requests] == ["1", "2"]

    @pytest.mark.asyncio
    async def test_error_response(self):
        backend = RecordingBackend(httpx.Response(403, json={"message": "Only admins can perform this action."}))

        with pytest.raises(BaaSError) as exc_info:
            await make_client(backend).collection("tracks").get_one("abc")

        assert exc_info.value.status == 403
        assert exc_info.value.is_auth_error
        assert exc_info.value.message == "Only admins can perform this action."

    @pytest.mark.asyncio
    async def test_transport_failure(self):
        backend = RecordingBackend(httpx.ConnectError("connection refused"))

        with pytest.raises(BaaSError) as exc_info:
            await make_client(backend).send("GET", "/api/health")

        assert exc_info.value.status == 0

    @pytest.mark.asyncio
    async def test_multipart_when_files_attached(self):
        backend = RecordingBackend(httpx.Response(200, json={"id": "t1"}))

        await make_client(backend).collection("tracks").create(
            {"title": "Song", "deleted": False, "duration": 12.5},
            files={"audio_file": ("song.mp3", b"ID3", "audio/mpeg")},
        )

        request = backend.requests[0]
        assert request.headers["content-type"].startswith("multipart/form-data")
        body = request.read()
        assert b'name="deleted"' in body and b"false" in body
        assert b'filename="song.mp3"' in body

    @pytest.mark.asyncio
    async def test_auth_refresh_replaces_token(self):
        fresh = jwt(time.time() + 3600)
        backend = RecordingBackend(httpx.Response(200, json={"token": fresh, "record": {"id": "u1"}}))
        client = make_client(backend, token="old")

        await client.collection("users").auth_refresh()

        assert backend.requests[0].url.path == "/api/collections/users/auth-refresh"
        assert client.auth_store.token == fresh
        assert client.auth_store.record == {"id": "u1"}


@pytest.mark.unit
class TestRepositoryErrors:

    @pytest.mark.asyncio
    async def test_missing_record_is_none(self):
        backend = RecordingBackend(httpx.Response(404, json={"message": "Not found."}))
        assert await TrackRepository(make_client(backend)).get("missing") is None

    @pytest.mark.asyncio
    async def test_unique_violation_is_conflict(self):
        backend = RecordingBackend(httpx.Response(400, json={
            "message": "Failed to create record.",
            "data": {"track_id": {"code": "validation_not_unique", "message": "Value must be unique."}},
        }))

        with pytest.raises(ConflictError):
            await TrackRepository(make_client(backend)).create({"track_id": "dup"})

    @pytest.mark.asyncio
    async def test_other_failures_are_repository_errors(self):
        backend = RecordingBackend(httpx.Response(500, json={"message": "boom"}))

        with pytest.raises(RepositoryError) as exc_info:
            await TrackRepository(make_client(backend)).list_active()

        assert not isinstance(exc_info.value, ConflictError)

    @pytest.mark.asyncio
    async def test_first_match_uses_bound_filter(self):
        backend = RecordingBackend(page([]))

        assert await TrackRepository(make_client(backend)).get_by_track_id("o'brien") is None

        assert backend.requests[0].url.params["filter"] == "track_id = 'o\\'brien'"

    @pytest.mark.asyncio
    async def test_upsert_recovers_from_duplicate_create(self):
        backend = RecordingBackend(
            page([]),
            httpx.Response(400, json={"data": {"track_id": {"code": "validation_not_unique"}}}),
            page([{"id": "t1", "track_id": "ext-1"}]),
            httpx.Response(200, json={"id": "t1", "track_id": "ext-1", "title": "Won"}),
        )

        track, created = await TrackRepository(make_client(backend)).upsert_by_track_id(
            {"track_id": "ext-1", "title": "Won"}
        )

        assert not created
        assert track.title == "Won"
        assert backend.requests[-1].method == "PATCH"

    @pytest.mark.asyncio
    async def test_room_compare_and_update(self):
        current = {"id": "room1", "next_track": "t1", "active_request": ""}
        backend = RecordingBackend(
            httpx.Response(200, json=current),
            httpx.Response(200, json={**current, "active_request": "req-1"}),
            httpx.Response(200, json=current),
        )
        rooms = RoomRepository(make_client(backend))

        room = await rooms.compare_and_update("room1", {"next_track": "t1", "active_request": None},
                                              {"active_request": "req-1"})
        assert room.active_request == "req-1"

        with pytest.raises(ConflictError):
            await rooms.compare_and_update("room1", {"next_track": "t2"}, {"next_track": ""})

        assert [r.method for r in backend.requests] == ["GET", "PATCH", "GET"]
