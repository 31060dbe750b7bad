"""
Generation Service Tests
Submission lifecycle and webhook finalization against in-memory repositories
"""

import asyncio

import pytest

from radio.core.errors import PersistenceError, UpstreamError, ValidationError, WebhookProcessingError
from radio.database.repositories import RepositoryError
from radio.services.generation_service import GenerationService

from fakes import FakeMediaService, accepted, rejected, unreachable


async def submit_accepted(generation, provider, params, task_id="task-1", user_id="user-1", key=None):
    provider.results.append(accepted(task_id))
    return await generation.submit(params, user_id, key)


@pytest.mark.unit
class TestSubmission:
    """pending -> submitted | failed"""

    @pytest.mark.asyncio
    async def test_accepted_submission_is_marked_submitted(self, generation, provider, requests_repo, simple_params):
        result = await submit_accepted(generation, provider, simple_params)

        assert result.accepted
        assert result.status_code == 200
        assert result.task_id == "task-1"
        assert result.response_body()["recordId"] == result.record_id
        assert result.response_body()["data"] == {"taskId": "task-1"}

        record = requests_repo.records[result.record_id]
        assert record.status == "submitted"
        assert record.taskId == "task-1"
        assert record.user == "user-1"

    @pytest.mark.asyncio
    async def test_payload_carries_callback_url_and_drops_unknown_fields(self, generation, provider, simple_params):
        await submit_accepted(generation, provider, {**simple_params, "surprise": "field"})

        payload = provider.payloads[0]
        assert payload["callBackUrl"] == "https://radio.test/api/music/callback"
        assert "surprise" not in payload
        assert payload["prompt"] == simple_params["prompt"]

    @pytest.mark.asyncio
    async def test_invalid_params_never_reach_storage(self, generation, provider, requests_repo):
        with pytest.raises(ValidationError):
            await generation.submit({"customMode": False, "instrumental": False, "model": "V5"}, "user-1")

        assert requests_repo.records == {}
        assert provider.payloads == []

    @pytest.mark.asyncio
    async def test_upstream_rejection_is_forwarded_and_marked_failed(
        self, generation, provider, requests_repo, simple_params
    ):
        provider.results.append(rejected(429, "Insufficient credits"))

        result = await generation.submit(simple_params, "user-1")

        assert not result.accepted
        assert result.status_code == 429
        assert result.body["msg"] == "Insufficient credits"
        record = requests_repo.records[result.record_id]
        assert record.status == "failed"
        assert record.error == "Insufficient credits"

    @pytest.mark.asyncio
    async def test_network_error_raises_502_and_marks_failed(
        self, generation, provider, requests_repo, simple_params
    ):
        provider.results.append(unreachable())

        with pytest.raises(UpstreamError) as exc_info:
            await generation.submit(simple_params, "user-1")

        assert exc_info.value.status_code == 502
        [record] = requests_repo.records.values()
        assert record.status == "failed"

    @pytest.mark.asyncio
    async def test_persistence_failure_skips_upstream_call(self, generation, provider, requests_repo, simple_params):
        requests_repo.fail_on.add("create")

        with pytest.raises(PersistenceError) as exc_info:
            await generation.submit(simple_params, "user-1")

        assert exc_info.value.status_code == 500
        assert provider.payloads == []

    @pytest.mark.asyncio
    async def test_status_update_failure_does_not_fail_submission(
        self, generation, provider, requests_repo, simple_params
    ):
        requests_repo.fail_on.add("update")

        result = await submit_accepted(generation, provider, simple_params)

        assert result.accepted
        assert requests_repo.records[result.record_id].status == "pending"

    @pytest.mark.asyncio
    async def test_idempotency_key_replays_submitted_request(
        self, generation, provider, requests_repo, simple_params
    ):
        first = await submit_accepted(generation, provider, simple_params, key="key-1")
        second = await generation.submit(simple_params, "user-1", "key-1")

        assert second.replayed
        assert second.record_id == first.record_id
        assert second.task_id == "task-1"
        assert len(provider.payloads) == 1
        assert len(requests_repo.records) == 1

    @pytest.mark.asyncio
    async def test_idempotency_key_retries_failed_request(self, generation, provider, simple_params):
        provider.results.append(rejected(500, "Server busy"))
        await generation.submit(simple_params, "user-1", "key-1")

        retry = await submit_accepted(generation, provider, simple_params, key="key-1")

        assert not retry.replayed
        assert retry.accepted
        assert len(provider.payloads) == 2


@pytest.mark.unit
class TestCallback:
    """Webhook handling is idempotent and finalizes the request"""

    @pytest.mark.asyncio
    async def test_complete_callback_saves_track_with_request_context(
        self, generation, provider, tracks, callbacks, make_callback, simple_params
    ):
        await submit_accepted(generation, provider, simple_params)

        ack = await generation.handle_callback(make_callback())

        assert ack.status == "received"
        assert ack.taskId == "task-1"
        [track] = tracks.records.values()
        assert track.track_id == "ext-track-1"
        assert track.task_id == "task-1"
        assert track.title == "Rooftop Snow"
        assert track.duration == 182.4
        assert track.user == "user-1"
        assert track.generation_prompt == simple_params["prompt"]
        assert len(callbacks.records) == 1

    @pytest.mark.asyncio
    async def test_repeated_callback_does_not_duplicate(self, generation, tracks, callbacks, make_callback):
        await generation.handle_callback(make_callback(callback_type="first"))
        await generation.handle_callback(make_callback(callback_type="complete"))
        await generation.handle_callback(make_callback(callback_type="complete"))

        assert len(tracks.records) == 1
        assert len(callbacks.records) == 1
        [callback] = callbacks.records.values()
        assert callback.callbackType == "complete"

    @pytest.mark.asyncio
    async def test_existing_attribution_is_not_overwritten(
        self, generation, provider, tracks, make_callback, simple_params
    ):
        tracks.add({"track_id": "ext-track-1", "user": "original-owner", "generation_prompt": "first prompt"})
        await submit_accepted(generation, provider, simple_params, user_id="someone-else")

        await generation.handle_callback(make_callback())

        [track] = tracks.records.values()
        assert track.user == "original-owner"
        assert track.generation_prompt == "first prompt"

    @pytest.mark.asyncio
    async def test_one_failing_track_does_not_block_the_rest(
        self, generation, tracks, make_callback, sample_track_payload
    ):
        second = {**sample_track_payload, "id": "ext-track-2", "title": "Second"}
        original_create = tracks.create
        calls = []

        async def flaky_create(data, files=None):
            calls.append(data["track_id"])
            if len(calls) == 1:
                raise RepositoryError("write rejected")
            return await original_create(data, files)

        tracks.create = flaky_create

        await generation.handle_callback(make_callback(tracks=[sample_track_payload, second]))

        assert [track.track_id for track in tracks.records.values()] == ["ext-track-2"]

    @pytest.mark.asyncio
    async def test_first_stage_links_track_to_owning_room(
        self, generation, provider, rooms, tracks, make_callback, simple_params
    ):
        result = await submit_accepted(generation, provider, simple_params)
        room = rooms.add({"active_request": result.record_id})

        await generation.handle_callback(make_callback(callback_type="first"))

        [track] = tracks.records.values()
        updated = rooms.records[room.id]
        assert updated.next_track == track.id
        assert updated.active_request is None

    @pytest.mark.asyncio
    async def test_text_stage_leaves_room_alone(
        self, generation, provider, rooms, make_callback, simple_params
    ):
        result = await submit_accepted(generation, provider, simple_params)
        room = rooms.add({"active_request": result.record_id})

        await generation.handle_callback(make_callback(callback_type="text"))

        assert rooms.records[room.id].active_request == result.record_id
        assert rooms.writes == []

    @pytest.mark.asyncio
    async def test_queued_next_track_is_kept(self, generation, provider, rooms, tracks, make_callback, simple_params):
        queued = tracks.add({"track_id": "queued", "title": "Queued"})
        result = await submit_accepted(generation, provider, simple_params)
        room = rooms.add({"active_request": result.record_id, "next_track": queued.id})

        await generation.handle_callback(make_callback())

        updated = rooms.records[room.id]
        assert updated.next_track == queued.id
        assert updated.active_request is None

    @pytest.mark.asyncio
    async def test_other_requests_room_is_not_touched(self, generation, rooms, make_callback):
        room = rooms.add({"active_request": "req-someone-else"})

        await generation.handle_callback(make_callback(task_id="unknown-task"))

        assert rooms.records[room.id].active_request == "req-someone-else"
        assert rooms.records[room.id].next_track is None

    @pytest.mark.asyncio
    async def test_legacy_flag_is_released_by_success(self, generation, provider, rooms, make_callback, simple_params):
        await submit_accepted(generation, provider, simple_params)
        room = rooms.add({"active_request": True})

        await generation.handle_callback(make_callback())

        assert rooms.records[room.id].active_request is None
        assert rooms.records[room.id].next_track is not None

    @pytest.mark.asyncio
    async def test_media_is_attached_after_save(
        self, requests_repo, callbacks, tracks, rooms, provider, make_callback
    ):
        media = FakeMediaService(files={"audio_file": ("ext-track-1.mp3", b"ID3", "audio/mpeg")})
        generation = GenerationService(requests_repo, callbacks, tracks, rooms, provider, media)

        await generation.handle_callback(make_callback())
        await generation.handle_callback(make_callback())

        [track] = tracks.records.values()
        assert track.audio_file == "ext-track-1.mp3"
        assert len(tracks.created_files) == 1
        assert media.requested == ["ext-track-1", "ext-track-1"]

    @pytest.mark.asyncio
    async def test_room_is_released_before_slow_media_downloads(
        self, requests_repo, callbacks, tracks, rooms, provider, make_callback, simple_params
    ):
        media = FakeMediaService(files={"audio_file": ("a.mp3", b"ID3", "audio/mpeg")}, delay=0.5)
        generation = GenerationService(requests_repo, callbacks, tracks, rooms, provider, media)
        result = await submit_accepted(generation, provider, simple_params)
        room = rooms.add({"active_request": result.record_id})

        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(generation.handle_callback(make_callback()), timeout=0.1)

        [track] = tracks.records.values()
        updated = rooms.records[room.id]
        assert updated.active_request is None
        assert updated.next_track == track.id

    @pytest.mark.asyncio
    async def test_failure_code_releases_room_and_fails_request(
        self, generation, provider, rooms, tracks, requests_repo, make_callback, simple_params
    ):
        result = await submit_accepted(generation, provider, simple_params)
        room = rooms.add({"active_request": result.record_id})

        ack = await generation.handle_callback(make_callback(code=501, callback_type="error", tracks=[],
                                                             msg="Generation failed"))

        assert ack.status == "received"
        assert tracks.records == {}
        assert rooms.records[room.id].active_request is None
        assert rooms.records[room.id].next_track is None
        record = requests_repo.records[result.record_id]
        assert record.status == "failed"
        assert record.error == "Generation failed"

    @pytest.mark.asyncio
    async def test_room_write_conflict_is_swallowed(
        self, generation, provider, rooms, make_callback, simple_params
    ):
        result = await submit_accepted(generation, provider, simple_params)
        room = rooms.add({"active_request": result.record_id})
        rooms.interleaved_change = {"next_track": "trk-from-elsewhere"}

        ack = await generation.handle_callback(make_callback())

        assert ack.status == "received"
        assert rooms.records[room.id].next_track == "trk-from-elsewhere"
        assert rooms.records[room.id].active_request == result.record_id

    @pytest.mark.asyncio
    async def test_malformed_payload_raises(self, generation):
        with pytest.raises(WebhookProcessingError):
            await generation.handle_callback({"msg": "no code or data"})
