"""
Playlist Service
User playlists, their entries, and the virtual Liked Songs playlist
"""

import logging
from typing import Any, Dict, List, Optional

from ..core.errors import NotFoundError, PersistenceError
from ..database.client import BaaSClient
from ..database.repositories import ConflictError as RecordConflictError
from ..database.repositories import (
    PlaylistEntryRepository,
    PlaylistRepository,
    ReactionRepository,
    RepositoryError,
    TrackRepository
)
from ..database.schemas import PlaylistRecord
from .catalog_service import track_dict
from .reaction_service import ReactionService

logger = logging.getLogger(__name__)

LIKED_PLAYLIST = {
    "id": "liked",
    "name": "Liked Songs",
    "description": "Your collection of liked tracks",
    "cover": None,
    "isVirtual": True,
}


def _is_deleted(entry) -> bool:
    track = entry.expanded_track
    return track is not None and track.deleted


class PlaylistService:
    """Playlist CRUD and set-membership of tracks"""

    def __init__(
        self,
        playlists: PlaylistRepository,
        entries: PlaylistEntryRepository,
        tracks: TrackRepository,
        reactions: ReactionRepository,
    ):
        self.playlists = playlists
        self.entries = entries
        self.tracks = tracks
        self.reactions = reactions
        self.reaction_service = ReactionService(reactions)

    @classmethod
    def for_client(cls, client: BaaSClient) -> "PlaylistService":
        return cls(
            PlaylistRepository(client),
            PlaylistEntryRepository(client),
            TrackRepository(client),
            ReactionRepository(client),
        )

    async def list_with_stats(self, user_id: str) -> List[Dict[str, Any]]:
        """User playlists with count, total duration and track ids.

        A failed entry fetch degrades to zero counts; a failed playlist fetch
        yields an empty list.
        """
        try:
            playlists = (await self.playlists.list_for_user(user_id)).items
        except RepositoryError as e:
            logger.error(f"Error fetching playlists: {e}")
            return []

        try:
            entries = await self.entries.list_for_owner(user_id)
        except RepositoryError as e:
            logger.warning(f"Error fetching playlist tracks: {e}")
            entries = []

        result = []
        for playlist in playlists:
            owned = [entry for entry in entries if entry.playlist == playlist.id and not _is_deleted(entry)]
            duration = 0.0
            for entry in owned:
                track = entry.expanded_track
                duration += (track.duration or 0) if track else 0
            data = playlist.model_dump()
            data.update({
                "count": len(owned),
                "duration": duration,
                "trackIds": [entry.track for entry in owned],
            })
            result.append(data)
        return result

    async def get_owned(self, playlist_id: str, user_id: str) -> PlaylistRecord:
        try:
            playlist = await self.playlists.get(playlist_id)
        except RepositoryError as e:
            raise PersistenceError("Failed to load playlist") from e
        if playlist is None or playlist.user != user_id:
            raise NotFoundError("Playlist not found")
        return playlist

    async def create(self, user_id: str, name: str, description: Optional[str] = None) -> Dict[str, Any]:
        try:
            playlist = await self.playlists.create({
                "user": user_id,
                "name": name.strip(),
                "description": description or "",
            })
        except RepositoryError as e:
            logger.error(f"Error creating playlist: {e}")
            raise PersistenceError("Failed to create playlist") from e

        data = playlist.model_dump()
        data.update({"count": 0, "duration": 0.0, "trackIds": []})
        return data

    async def delete(self, playlist_id: str, user_id: str) -> Dict[str, Any]:
        playlist = await self.get_owned(playlist_id, user_id)
        try:
            for entry in await self.entries.list_for_playlist(playlist.id):
                await self.entries.delete(entry.id)
            await self.playlists.delete(playlist.id)
        except RepositoryError as e:
            logger.error(f"Error deleting playlist: {e}")
            raise PersistenceError("Failed to delete playlist") from e
        return {"success": True}

    async def detail(self, playlist_id: str, user_id: str) -> Dict[str, Any]:
        """Playlist with its songs (entry id attached for removal) and the user's reactions"""
        playlist = await self.get_owned(playlist_id, user_id)
        try:
            entries = await self.entries.list_for_playlist(playlist.id)
        except RepositoryError as e:
            logger.error(f"Error fetching playlist: {e}")
            raise PersistenceError("Failed to load playlist") from e

        songs = []
        for entry in entries:
            track = entry.expanded_track
            if track is None or track.deleted:
                continue
            song = track_dict(track)
            song["playlist_track_id"] = entry.id
            songs.append(song)

        track_ids = [song["id"] for song in songs]
        reactions = await self.reaction_service.reaction_map(user_id, track_ids) if track_ids else {}
        return {"playlist": playlist.model_dump(), "songs": songs, "userReactions": reactions}

    async def liked(self, user_id: str) -> Dict[str, Any]:
        """Virtual playlist of non-deleted liked tracks"""
        songs: List[Dict[str, Any]] = []
        try:
            liked = await self.reactions.list_for_user(user_id, reaction="like", expand="track")
            for reaction in liked:
                track = reaction.expanded_track
                if track is not None and not track.deleted:
                    songs.append(track_dict(track))
        except RepositoryError as e:
            logger.error(f"Error fetching liked songs: {e}")

        reactions = await self.reaction_service.reaction_map(user_id)
        return {"playlist": dict(LIKED_PLAYLIST), "songs": songs, "userReactions": reactions}

    async def add_track(self, playlist_id: str, track_id: str, user_id: str) -> Dict[str, Any]:
        """Add a track; an existing entry is reported, not treated as an error"""
        playlist = await self.get_owned(playlist_id, user_id)
        try:
            existing = await self.entries.get_entry(playlist.id, track_id)
            if existing is not None:
                return {"status": "exists", "id": existing.id}

            if not await self.tracks.exists(track_id):
                raise NotFoundError("Track not found")

            entry = await self.entries.create({"playlist": playlist.id, "track": track_id, "added_by": user_id})
        except RecordConflictError:
            return {"status": "exists"}
        except RepositoryError as e:
            logger.error(f"Error adding to playlist: {e}")
            raise PersistenceError("Failed to add to playlist") from e

        return {"status": "created", "id": entry.id}

    async def remove_entry(self, playlist_id: str, entry_id: str, user_id: str) -> Dict[str, Any]:
        playlist = await self.get_owned(playlist_id, user_id)
        try:
            entry = await self.entries.get(entry_id)
            if entry is None or entry.playlist != playlist.id:
                raise NotFoundError("Playlist entry not found")
            await self.entries.delete(entry.id)
        except RepositoryError as e:
            logger.error(f"Error removing from playlist: {e}")
            raise PersistenceError("Failed to remove from playlist") from e
        return {"success": True}
