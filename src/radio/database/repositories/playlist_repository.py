"""
Playlist Repository
User playlists and their (playlist, track) entries
"""

from typing import List, Optional

from ..schemas import PlaylistEntryRecord, PlaylistRecord, RecordPage
from .base import BaseRepository


class PlaylistRepository(BaseRepository[PlaylistRecord]):
    """Repository for playlist records"""

    model = PlaylistRecord
    collection_setting = "PLAYLISTS_COLLECTION"

    async def list_for_user(self, user_id: str, page: int = 1, per_page: int = 50) -> RecordPage[PlaylistRecord]:
        return await self.get_multi(page, per_page, filter=self.filter("user = {:user}", user=user_id))


class PlaylistEntryRepository(BaseRepository[PlaylistEntryRecord]):
    """Repository for playlist membership rows"""

    model = PlaylistEntryRecord
    collection_setting = "PLAYLIST_TRACKS_COLLECTION"

    async def get_entry(self, playlist_id: str, track_id: str) -> Optional[PlaylistEntryRecord]:
        return await self.get_first(
            self.filter("playlist = {:playlist} && track = {:track}", playlist=playlist_id, track=track_id)
        )

    async def list_for_playlist(self, playlist_id: str, limit: int = 200) -> List[PlaylistEntryRecord]:
        page = await self.get_multi(
            1, limit, filter=self.filter("playlist = {:playlist}", playlist=playlist_id), expand="track"
        )
        return page.items

    async def list_for_owner(self, user_id: str) -> List[PlaylistEntryRecord]:
        """Get every entry of every playlist the user owns, with tracks expanded"""
        return await self.get_all(
            filter=self.filter("playlist.user = {:user}", user=user_id), sort=None, expand="track"
        )
