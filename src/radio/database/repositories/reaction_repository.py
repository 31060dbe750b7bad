"""
Reaction Repository
Per-user like/dislike records
"""

from typing import List, Optional, Sequence

from ..schemas import ReactionRecord
from .base import BaseRepository


class ReactionRepository(BaseRepository[ReactionRecord]):
    """Repository for (user, track) reactions"""

    model = ReactionRecord
    collection_setting = "REACTIONS_COLLECTION"

    async def get_for(self, user_id: str, track_id: str) -> Optional[ReactionRecord]:
        return await self.get_first(
            self.filter("user = {:user} && track = {:track}", user=user_id, track=track_id)
        )

    async def list_for_user(
        self,
        user_id: str,
        reaction: Optional[str] = None,
        expand: Optional[str] = None,
    ) -> List[ReactionRecord]:
        expr = self.filter("user = {:user}", user=user_id)
        if reaction:
            expr += " && " + self.filter("reaction = {:reaction}", reaction=reaction)
        return await self.get_all(filter=expr, expand=expand)

    async def list_for_tracks(self, user_id: str, track_ids: Sequence[str]) -> List[ReactionRecord]:
        if not track_ids:
            return []
        tracks = " || ".join(self.filter("track = {:id}", id=track_id) for track_id in track_ids)
        return await self.get_all(filter=self.filter("user = {:user}", user=user_id) + f" && ({tracks})")
