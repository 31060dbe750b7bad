"""
Radio Generation Service
Submits generation jobs to the music API and finalizes them from webhook callbacks
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as SchemaError

from ..core.config import get_settings
from ..core.errors import PersistenceError, UpstreamError, ValidationError, WebhookProcessingError
from ..core.generation_validation import GenerationParamsValidator
from ..core.logging import generation_logger
from ..database.client import BaaSClient
from ..database.repositories import (
    GenerationCallbackRepository,
    GenerationRequestRepository,
    RepositoryError,
    RoomRepository,
    TrackRepository
)
from ..database.repositories.room_repository import room_write_lock
from ..database.schemas import (
    CallbackAck,
    CallbackPayload,
    GenerationParams,
    GenerationRequestRecord,
    MusicTrackPayload,
    TrackRecord
)
from .media_service import MediaService
from .music_provider import MusicProvider

LINKING_STAGES = ("first", "complete")


@dataclass
class SubmissionResult:
    """Outcome of one submission, forwarded to the caller as-is"""
    record_id: str
    task_id: Optional[str]
    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)
    replayed: bool = False

    @property
    def accepted(self) -> bool:
        return 200 <= self.status_code < 300 and bool(self.task_id)

    def response_body(self) -> Dict[str, Any]:
        return {**self.body, "recordId": self.record_id}


class GenerationService:
    """Coordinates generation requests: pending -> submitted | failed, finalized by callback"""

    def __init__(
        self,
        requests: GenerationRequestRepository,
        callbacks: GenerationCallbackRepository,
        tracks: TrackRepository,
        rooms: RoomRepository,
        provider: MusicProvider,
        media: Optional[MediaService] = None,
    ):
        settings = get_settings()
        self.requests = requests
        self.callbacks = callbacks
        self.tracks = tracks
        self.rooms = rooms
        self.provider = provider
        self.media = media or MediaService(enabled=False)
        self.callback_url = settings.callback_url
        self.room_id = settings.ROOM_ID

    @classmethod
    def for_client(cls, client: BaaSClient, provider: MusicProvider,
                   media: Optional[MediaService] = None) -> "GenerationService":
        return cls(
            GenerationRequestRepository(client),
            GenerationCallbackRepository(client),
            TrackRepository(client),
            RoomRepository(client),
            provider,
            media,
        )

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(
        self,
        params: Dict[str, Any],
        user_id: Optional[str],
        idempotency_key: Optional[str] = None,
    ) -> SubmissionResult:
        """Validate, persist as pending, call the generation API, record the outcome"""

        GenerationParamsValidator.validate(params)

        known = {key: value for key, value in params.items() if key in GenerationParams.model_fields}
        known["callBackUrl"] = self.callback_url
        try:
            payload = GenerationParams.model_validate(known).to_payload()
        except SchemaError as e:
            first = e.errors()[0]
            field = ".".join(str(part) for part in first["loc"])
            raise ValidationError(f"{field}: {first['msg']}") from e

        if idempotency_key:
            previous = await self._find_previous(idempotency_key, user_id)
            if previous is not None:
                return previous

        try:
            record = await self.requests.create_request(payload, user_id, idempotency_key)
        except RepositoryError as e:
            generation_logger.log_processing_error("save_request", str(e), user_id=user_id)
            raise PersistenceError("Failed to save generation request") from e

        generation_logger.log_submission(record.id, payload["model"], payload["customMode"], user_id)

        result = await self.provider.submit(payload)

        if result.status_code is None:
            generation_logger.log_upstream_error(record.id, result.error or "")
            await self._record_outcome(record.id, False, None, result.error)
            raise UpstreamError(result.error or "Generation API unreachable", status_code=502)

        body = result.data if isinstance(result.data, dict) else {"error": result.error}
        task_id = self.provider.task_id(body)
        generation_logger.log_upstream_response(record.id, result.status_code, task_id)

        submission = SubmissionResult(
            record_id=record.id,
            task_id=task_id,
            status_code=result.status_code,
            body=body,
        )
        await self._record_outcome(
            record.id,
            result.is_ok() and submission.accepted,
            task_id,
            result.error or (None if task_id else "No task id returned"),
        )
        return submission

    async def _find_previous(self, key: str, user_id: Optional[str]) -> Optional[SubmissionResult]:
        try:
            previous = await self.requests.get_by_idempotency_key(key, user_id)
        except RepositoryError as e:
            raise PersistenceError("Failed to look up generation request") from e

        if previous is None or previous.status != "submitted":
            return None

        return SubmissionResult(
            record_id=previous.id,
            task_id=previous.taskId,
            status_code=200,
            body={"code": 200, "msg": "success", "data": {"taskId": previous.taskId}},
            replayed=True,
        )

    async def _record_outcome(self, record_id: str, submitted: bool,
                              task_id: Optional[str], error: Optional[str]) -> None:
        """Update the request status; failures here are logged and ignored"""
        try:
            if submitted:
                await self.requests.mark_submitted(record_id, task_id)
            else:
                await self.requests.mark_failed(record_id, error, task_id)
        except RepositoryError as e:
            generation_logger.log_processing_error("update_request", str(e), record_id=record_id)

    # ------------------------------------------------------------------
    # Webhook
    # ------------------------------------------------------------------

    async def handle_callback(self, raw: Dict[str, Any]) -> CallbackAck:
        """Process one webhook delivery; safe to repeat for the same payload"""

        try:
            payload = CallbackPayload.model_validate(raw)
        except SchemaError as e:
            raise WebhookProcessingError(f"Malformed callback payload: {e.error_count()} error(s)") from e

        data = payload.data
        task_id = data.task_id
        generation_logger.log_callback_received(task_id, data.callbackType, payload.code, payload.msg)

        await self._save_callback(payload, raw)
        request = await self._find_request(task_id)

        if payload.code == 200:
            saved: List[TrackRecord] = []
            for music in data.data or []:
                track = await self._save_track(music, task_id, request)
                if track is None:
                    continue
                if not saved and data.callbackType in LINKING_STAGES:
                    await self._link_to_room(request, track)
                saved.append(track)
            # Room is linked before any media download
            await self._attach_media(saved)
        else:
            generation_logger.log_callback_failure(task_id, payload.code, payload.msg, data.callbackType)
            await self._link_to_room(request, None)
            if request is not None:
                await self._record_outcome(request.id, False, task_id, payload.msg)

        return CallbackAck(status="received", taskId=task_id)

    async def _save_callback(self, payload: CallbackPayload, raw: Dict[str, Any]) -> None:
        raw_data = raw.get("data") if isinstance(raw.get("data"), dict) else {}
        record = {
            "code": payload.code,
            "msg": payload.msg,
            "task_id": payload.data.task_id,
            "callbackType": payload.data.callbackType,
            "data": raw_data.get("data"),
        }
        try:
            await self.callbacks.upsert_for_task(payload.data.task_id, record)
        except RepositoryError as e:
            generation_logger.log_processing_error("save_callback", str(e), task_id=payload.data.task_id)

    async def _find_request(self, task_id: Optional[str]) -> Optional[GenerationRequestRecord]:
        if not task_id:
            return None
        try:
            return await self.requests.get_by_task_id(task_id)
        except RepositoryError as e:
            generation_logger.log_processing_error("find_request", str(e), task_id=task_id)
            return None

    async def _save_track(
        self,
        music: MusicTrackPayload,
        task_id: Optional[str],
        request: Optional[GenerationRequestRecord],
    ) -> Optional[TrackRecord]:
        """Upsert one callback track; a failure skips the track, not the callback"""
        fields = music.to_track_fields()
        if task_id:
            fields["task_id"] = task_id

        try:
            existing = await self.tracks.get_by_track_id(music.id)
            if request is not None:
                if request.generation_prompt and not (existing and existing.generation_prompt):
                    fields["generation_prompt"] = request.generation_prompt
                if request.user and not (existing and existing.user):
                    fields["user"] = request.user

            track, created = await self.tracks.upsert_by_track_id(fields)
        except RepositoryError as e:
            generation_logger.log_processing_error("save_track", str(e), track_id=music.id)
            return None

        generation_logger.log_track_saved(music.id, created, music.title, music.duration)
        return track

    async def _attach_media(self, tracks: List[TrackRecord]) -> None:
        """Store audio and cover files for saved tracks that do not hold them yet"""
        for track in tracks:
            files = await self.media.collect_files(track, {})
            if not files:
                continue
            try:
                await self.tracks.update(track.id, {}, files=files)
            except RepositoryError as e:
                generation_logger.log_processing_error("attach_media", str(e), track_id=track.track_id)

    async def _link_to_room(self, request: Optional[GenerationRequestRecord],
                            track: Optional[TrackRecord]) -> None:
        """Release the room's in-flight marker when it belongs to this request.

        With a track, the track also becomes the room's next track if the
        queue is empty. Without one (a failed job) only the marker is cleared.
        """
        async with room_write_lock:
            try:
                room = await self.rooms.get_room(self.room_id)
                if room is None or not room.active_request:
                    return

                if request is not None:
                    owned = room.active_request in ("legacy", request.id)
                else:
                    # Unknown request: only a failure may release the room
                    owned = track is None
                if not owned:
                    return

                changes: Dict[str, Any] = {"active_request": ""}
                if track is not None and not room.next_track:
                    changes["next_track"] = track.id

                await self.rooms.compare_and_update(
                    room.id,
                    {"active_request": room.active_request, "next_track": room.next_track},
                    changes,
                )
            except RepositoryError as e:
                generation_logger.log_processing_error("link_room", str(e))
