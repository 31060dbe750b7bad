"""
Reaction Service
Like/dislike toggling per (user, track)
"""

import logging
from typing import Dict, List, Sequence

from ..core.errors import PersistenceError
from ..database.client import BaaSClient
from ..database.repositories import ReactionRepository, RepositoryError

logger = logging.getLogger(__name__)


class ReactionService:

    def __init__(self, reactions: ReactionRepository):
        self.reactions = reactions

    @classmethod
    def for_client(cls, client: BaaSClient) -> "ReactionService":
        return cls(ReactionRepository(client))

    async def toggle(self, user_id: str, track_id: str, reaction: str) -> Dict[str, str]:
        """None -> created, same reaction -> removed, opposite reaction -> updated"""
        try:
            existing = await self.reactions.get_for(user_id, track_id)

            if existing is None:
                await self.reactions.create({"user": user_id, "track": track_id, "reaction": reaction})
                return {"status": "created", "reaction": reaction}

            if existing.reaction == reaction:
                await self.reactions.delete(existing.id)
                return {"status": "removed"}

            await self.reactions.update(existing.id, {"reaction": reaction})
            return {"status": "updated", "reaction": reaction}

        except RepositoryError as e:
            logger.error(f"Error handling reaction: {e}")
            raise PersistenceError("Failed to process reaction") from e

    async def liked_track_ids(self, user_id: str) -> List[str]:
        try:
            liked = await self.reactions.list_for_user(user_id, reaction="like")
        except RepositoryError as e:
            logger.warning(f"Error fetching liked tracks: {e}")
            return []
        return [reaction.track for reaction in liked]

    async def reaction_map(self, user_id: str, track_ids: Sequence[str] = ()) -> Dict[str, str]:
        """Map track id -> reaction for the given tracks, or all of the user's reactions"""
        try:
            if track_ids:
                reactions = await self.reactions.list_for_tracks(user_id, track_ids)
            else:
                reactions = await self.reactions.list_for_user(user_id)
        except RepositoryError as e:
            logger.warning(f"Error fetching reactions: {e}")
            return {}
        return {reaction.track: reaction.reaction for reaction in reactions}
