"""
Radio Room Service
Shared now-playing state: auto-advance, on-demand generation and manual play
"""

import random
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from ..core.config import get_settings
from ..core.errors import ConflictError, NotFoundError, RadioError, RoomError, ValidationError
from ..core.logging import room_logger
from ..database.client import BaaSClient
from ..database.repositories import ConflictError as RecordConflictError
from ..database.repositories import RepositoryError, RoomRepository, TrackRepository
from ..database.repositories.room_repository import room_write_lock
from ..database.schemas import RoomRecord, RoomState, TrackRecord
from .generation_service import GenerationService, SubmissionResult


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


class RoomService:
    """Room advancer; every write is serialised and checked against the state it was based on"""

    def __init__(self, rooms: RoomRepository, tracks: TrackRepository, generation: GenerationService):
        settings = get_settings()
        self.rooms = rooms
        self.tracks = tracks
        self.generation = generation
        self.room_id = settings.ROOM_ID
        self.model = settings.DEFAULT_MODEL
        self.next_track_tag = settings.ROOM_NEXT_TRACK_TAG
        self._warned_legacy_lookup = False

    @classmethod
    def for_client(cls, client: BaaSClient, generation: GenerationService) -> "RoomService":
        return cls(RoomRepository(client), TrackRepository(client), generation)

    async def _load_room(self) -> Optional[RoomRecord]:
        if not self.room_id and not self._warned_legacy_lookup:
            room_logger.logger.warning("ROOM_ID not set, using the most recently created room")
            self._warned_legacy_lookup = True
        try:
            return await self.rooms.get_room(self.room_id)
        except RepositoryError as e:
            room_logger.log_error("load_room", str(e), self.room_id)
            raise RoomError("Failed to load room") from e

    async def _require_room(self) -> RoomRecord:
        room = await self._load_room()
        if room is None:
            raise NotFoundError("No room available")
        return room

    async def _write(self, room: RoomRecord, changes: Dict[str, Any]) -> None:
        """Persist changes if next_track and active_request are still what we read"""
        try:
            await self.rooms.compare_and_update(
                room.id,
                {"next_track": room.next_track, "active_request": room.active_request},
                changes,
            )
        except RecordConflictError as e:
            raise ConflictError("Room was updated concurrently, try again") from e
        except RepositoryError as e:
            room_logger.log_error("update_room", str(e), room.id)
            raise RoomError("Failed to update room") from e

    async def _summary(self, track_id: Optional[str]):
        if not track_id:
            return None
        try:
            track = await self.tracks.get(track_id)
        except RepositoryError as e:
            room_logger.log_error("fetch_track", str(e), self.room_id)
            return None
        return track.summary() if track else None

    async def _random_track(self, room: RoomRecord, reason: str, empty_message: str) -> TrackRecord:
        try:
            catalog = await self.tracks.list_all_active()
        except RepositoryError as e:
            room_logger.log_error("random_pick", str(e), room.id)
            raise RoomError("Failed to select random track") from e

        if not catalog:
            raise RoomError(empty_message)

        track = random.choice(catalog)
        room_logger.log_random_pick(room.id, track.id, reason)
        return track

    async def _submit_for_room(self, room: RoomRecord, prompt: Optional[str]) -> SubmissionResult:
        params = {
            "customMode": False,
            "instrumental": room.instrumental,
            "model": self.model,
            "prompt": (prompt or "").strip(),
        }
        return await self.generation.submit(params, None)

    async def get_state(self) -> Optional[RoomState]:
        """Room with current/next tracks resolved to summaries, or None when no room exists"""
        room = await self._load_room()
        if room is None:
            return None

        return RoomState(
            id=room.id,
            current_track=await self._summary(room.current_track),
            current_start=room.current_start,
            next_track=await self._summary(room.next_track),
            prompt=room.prompt,
            active_request=room.active_request or False,
            created=room.created,
            updated=room.updated,
        )

    async def advance(self) -> Dict[str, Any]:
        """Promote next_track, then queue a new one by generating or shuffling"""

        async with room_write_lock:
            room = await self._require_room()
            changes: Dict[str, Any] = {}

            if room.next_track:
                try:
                    next_track = await self.tracks.get(room.next_track)
                except RepositoryError as e:
                    raise RoomError("Failed to advance room") from e
                if next_track is not None:
                    changes["current_track"] = next_track.id
                    changes["current_start"] = _utc_now()
                changes["next_track"] = ""

            if not room.active_request:
                if room.disable_generate:
                    track = await self._random_track(room, "generation disabled", "No tracks available")
                    changes["next_track"] = track.id
                else:
                    request_id = await self._try_generate(room)
                    if request_id:
                        changes["active_request"] = request_id
                    else:
                        track = await self._random_track(
                            room, "generation failed", "Failed to generate song and no tracks available"
                        )
                        changes["next_track"] = track.id

            if changes:
                await self._write(room, changes)
                room_logger.log_advance(room.id, changes)

        return {"success": True}

    async def _try_generate(self, room: RoomRecord) -> Optional[str]:
        """Submit a room generation; returns the request id, or None on any failure"""
        try:
            result = await self._submit_for_room(room, room.prompt)
        except RadioError as e:
            room_logger.log_error("generate", e.detail, room.id)
            return None

        if not result.accepted:
            room_logger.log_error("generate", f"Generation API returned {result.status_code}", room.id)
            return None
        return result.record_id

    async def generate(self, prompt: Optional[str] = None) -> Dict[str, Any]:
        """Start a room generation unless one is already in flight"""

        async with room_write_lock:
            room = await self._require_room()

            if room.active_request:
                raise ConflictError("Generation already in progress")

            prompt = (prompt or room.prompt or "").strip()
            if not prompt:
                raise ValidationError("No prompt available for generation")

            if not self.generation.provider.is_configured:
                raise RadioError("API key is not configured", status_code=500)

            result = await self._submit_for_room(room, prompt)
            if not result.accepted:
                message = result.body.get("error") or result.body.get("msg") or "Failed to generate song"
                raise RadioError(str(message), status_code=result.status_code if result.status_code >= 400 else 502)

            await self._write(room, {"active_request": result.record_id})

        return {"success": True, "data": result.body}

    async def play(self, track_id: Optional[str]) -> Dict[str, Any]:
        """Manual override: play a track now and queue a random same-tag track after it"""

        if not track_id:
            raise ValidationError("Track ID is required")

        async with room_write_lock:
            room = await self._require_room()

            try:
                track = await self.tracks.get(track_id)
            except RepositoryError as e:
                raise RoomError("Failed to set track") from e
            if track is None:
                raise NotFoundError("Track not found")

            next_track_id = None
            try:
                candidates = await self.tracks.list_tagged(self.next_track_tag, exclude_id=track.id)
                if candidates:
                    next_track_id = random.choice(candidates).id
            except RepositoryError as e:
                # Continue even if we can't set a next track
                room_logger.log_error("select_next_track", str(e), room.id)

            try:
                await self.rooms.update(room.id, {
                    "current_track": track.id,
                    "next_track": next_track_id or "",
                    "current_start": _utc_now(),
                })
            except RepositoryError as e:
                room_logger.log_error("play", str(e), room.id)
                raise RoomError("Failed to set track") from e

        return {"success": True}
