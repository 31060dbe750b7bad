"""
Room Service Tests
Advance, on-demand generation and manual play against in-memory repositories
"""

from datetime import datetime, timezone

import pytest

from radio.core.errors import ConflictError, NotFoundError, RadioError, RoomError, ValidationError

from fakes import accepted, rejected, unreachable


@pytest.fixture
def catalog(tracks):
    """Three lofi tracks and one untagged track"""
    return [
        tracks.add({"track_id": "ext-a", "title": "A", "tags": "lofi"}),
        tracks.add({"track_id": "ext-b", "title": "B", "tags": "Lofi, chill"}),
        tracks.add({"track_id": "ext-c", "title": "C", "tags": "lofi"}),
        tracks.add({"track_id": "ext-d", "title": "D", "tags": "rock"}),
    ]


@pytest.mark.unit
class TestAdvance:

    @pytest.mark.asyncio
    async def test_promotes_next_track_and_starts_generation(self, room_service, rooms, provider, catalog):
        queued = catalog[0]
        room = rooms.add({"next_track": queued.id, "prompt": "lofi beats about snow"})
        provider.results.append(accepted("task-room"))
        before = datetime.now(timezone.utc)

        assert await room_service.advance() == {"success": True}

        updated = rooms.records[room.id]
        assert updated.current_track == queued.id
        assert updated.next_track is None
        assert datetime.fromisoformat(updated.current_start) >= before
        assert updated.active_request is not None
        assert provider.payloads[0]["prompt"] == "lofi beats about snow"
        assert provider.payloads[0]["customMode"] is False

    @pytest.mark.asyncio
    async def test_generation_disabled_picks_from_catalog(self, room_service, rooms, provider, catalog):
        room = rooms.add({"disable_generate": True})

        await room_service.advance()

        updated = rooms.records[room.id]
        assert updated.next_track in {track.id for track in catalog}
        assert updated.active_request is None
        assert provider.payloads == []

    @pytest.mark.asyncio
    async def test_failed_generation_falls_back_to_catalog(self, room_service, rooms, provider, catalog):
        room = rooms.add({"prompt": "anything"})
        provider.results.append(rejected(429))

        await room_service.advance()

        updated = rooms.records[room.id]
        assert updated.next_track in {track.id for track in catalog}
        assert updated.active_request is None

    @pytest.mark.asyncio
    async def test_missing_prompt_falls_back_to_catalog(self, room_service, rooms, provider, catalog):
        room = rooms.add({})

        await room_service.advance()

        assert rooms.records[room.id].next_track in {track.id for track in catalog}
        assert provider.payloads == []

    @pytest.mark.asyncio
    async def test_unreachable_api_with_empty_catalog(self, room_service, rooms, provider):
        rooms.add({"prompt": "anything"})
        provider.results.append(unreachable())

        with pytest.raises(RoomError) as exc_info:
            await room_service.advance()

        assert exc_info.value.detail == "Failed to generate song and no tracks available"

    @pytest.mark.asyncio
    async def test_generation_disabled_with_empty_catalog(self, room_service, rooms):
        rooms.add({"disable_generate": True})

        with pytest.raises(RoomError) as exc_info:
            await room_service.advance()

        assert exc_info.value.detail == "No tracks available"

    @pytest.mark.asyncio
    async def test_in_flight_generation_only_promotes(self, room_service, rooms, provider, catalog):
        room = rooms.add({"next_track": catalog[1].id, "active_request": "req-1"})

        await room_service.advance()

        updated = rooms.records[room.id]
        assert updated.current_track == catalog[1].id
        assert updated.next_track is None
        assert updated.active_request == "req-1"
        assert provider.payloads == []

    @pytest.mark.asyncio
    async def test_concurrent_change_is_a_conflict(self, room_service, rooms, catalog):
        room = rooms.add({"next_track": catalog[0].id, "active_request": "req-1"})
        rooms.interleaved_change = {"next_track": catalog[2].id}

        with pytest.raises(ConflictError) as exc_info:
            await room_service.advance()

        assert exc_info.value.status_code == 409
        assert rooms.records[room.id].next_track == catalog[2].id

    @pytest.mark.asyncio
    async def test_no_room(self, room_service):
        with pytest.raises(NotFoundError):
            await room_service.advance()


@pytest.mark.unit
class TestGenerate:

    @pytest.mark.asyncio
    async def test_marks_room_with_request_id(self, room_service, rooms, provider, requests_repo):
        room = rooms.add({"prompt": "room prompt", "instrumental": True})
        provider.results.append(accepted("task-room"))

        result = await room_service.generate("  override prompt  ")

        assert result["success"] is True
        assert result["data"]["data"] == {"taskId": "task-room"}
        [request] = requests_repo.records.values()
        assert rooms.records[room.id].active_request == request.id
        assert request.user is None
        assert provider.payloads[0]["prompt"] == "override prompt"
        assert provider.payloads[0]["instrumental"] is True

    @pytest.mark.asyncio
    async def test_in_flight_generation_is_rejected(self, room_service, rooms, provider):
        rooms.add({"prompt": "room prompt", "active_request": "req-1"})

        with pytest.raises(ConflictError) as exc_info:
            await room_service.generate()

        assert exc_info.value.detail == "Generation already in progress"
        assert provider.payloads == []

    @pytest.mark.asyncio
    async def test_prompt_required(self, room_service, rooms):
        rooms.add({})

        with pytest.raises(ValidationError) as exc_info:
            await room_service.generate("   ")

        assert exc_info.value.detail == "No prompt available for generation"

    @pytest.mark.asyncio
    async def test_api_key_required(self, room_service, rooms, provider):
        rooms.add({"prompt": "room prompt"})
        provider.api_key = ""

        with pytest.raises(RadioError) as exc_info:
            await room_service.generate()

        assert exc_info.value.status_code == 500
        assert exc_info.value.detail == "API key is not configured"

    @pytest.mark.asyncio
    async def test_upstream_status_is_forwarded(self, room_service, rooms, provider):
        room = rooms.add({"prompt": "room prompt"})
        provider.results.append(rejected(429, "Insufficient credits"))

        with pytest.raises(RadioError) as exc_info:
            await room_service.generate()

        assert exc_info.value.status_code == 429
        assert exc_info.value.detail == "Insufficient credits"
        assert rooms.records[room.id].active_request is None


@pytest.mark.unit
class TestPlay:

    @pytest.mark.asyncio
    async def test_sets_current_and_queues_tagged_track(self, room_service, rooms, catalog):
        room = rooms.add({"current_track": catalog[3].id})

        assert await room_service.play(catalog[0].id) == {"success": True}

        updated = rooms.records[room.id]
        assert updated.current_track == catalog[0].id
        assert updated.next_track in {catalog[1].id, catalog[2].id}
        assert updated.current_start is not None

    @pytest.mark.asyncio
    async def test_no_tagged_candidates_leaves_next_empty(self, room_service, rooms, tracks):
        only = tracks.add({"track_id": "ext-only", "tags": "lofi"})
        room = rooms.add({"next_track": only.id})

        await room_service.play(only.id)

        assert rooms.records[room.id].next_track is None

    @pytest.mark.asyncio
    async def test_validation(self, room_service, rooms):
        with pytest.raises(ValidationError):
            await room_service.play(None)

        with pytest.raises(NotFoundError) as exc_info:
            await room_service.play("trk-missing")
        assert exc_info.value.detail == "No room available"

        rooms.add({})
        with pytest.raises(NotFoundError) as exc_info:
            await room_service.play("trk-missing")
        assert exc_info.value.detail == "Track not found"


@pytest.mark.unit
class TestState:

    @pytest.mark.asyncio
    async def test_resolves_track_summaries(self, room_service, rooms, catalog):
        rooms.add({"current_track": catalog[0].id, "next_track": "trk-gone", "current_start": "2025-01-01T00:00:00+00:00"})

        state = await room_service.get_state()

        assert state.current_track.title == "A"
        assert state.next_track is None
        assert state.active_request is False

    @pytest.mark.asyncio
    async def test_no_room(self, room_service):
        assert await room_service.get_state() is None
