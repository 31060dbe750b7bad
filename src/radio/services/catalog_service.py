"""
Catalog Service
Read access to the track catalog plus owner soft-delete
"""

import logging
from typing import Any, Dict, List, Optional

from ..core.config import get_settings
from ..core.errors import AuthError, NotFoundError, PersistenceError
from ..database.client import BaaSClient
from ..database.repositories import (
    GenerationRequestRepository,
    ReactionRepository,
    RepositoryError,
    TrackRepository
)
from ..database.schemas import TrackListResponse, TrackRecord, TrackSummary

logger = logging.getLogger(__name__)

MAX_PER_PAGE = 200
DEFAULT_PER_PAGE = 50


def clamp_paging(page: Optional[int], per_page: Optional[int]) -> tuple:
    page = max(page or 1, 1)
    per_page = min(max(per_page or DEFAULT_PER_PAGE, 1), MAX_PER_PAGE)
    return page, per_page


def track_dict(track: TrackRecord) -> Dict[str, Any]:
    """Full record for page data, with the title fallback applied"""
    data = track.model_dump()
    data["title"] = track.title or "Untitled"
    return data


class CatalogService:
    """Track listing, detail and deletion"""

    def __init__(
        self,
        tracks: TrackRepository,
        requests: GenerationRequestRepository,
        reactions: ReactionRepository,
    ):
        self.tracks = tracks
        self.requests = requests
        self.reactions = reactions
        self.home_feed_keywords = get_settings().HOME_FEED_KEYWORDS

    @classmethod
    def for_client(cls, client: BaaSClient) -> "CatalogService":
        return cls(TrackRepository(client), GenerationRequestRepository(client), ReactionRepository(client))

    async def latest(self) -> Optional[TrackSummary]:
        try:
            track = await self.tracks.get_latest()
        except RepositoryError as e:
            logger.error(f"Error loading latest track: {e}")
            raise PersistenceError("Failed to load track") from e
        return track.summary() if track else None

    async def list_tracks(self, page: Optional[int] = None, per_page: Optional[int] = None) -> TrackListResponse:
        page, per_page = clamp_paging(page, per_page)
        try:
            result = await self.tracks.list_active(page, per_page)
        except RepositoryError as e:
            logger.error(f"Error loading tracks: {e}")
            raise PersistenceError("Failed to load tracks") from e

        return TrackListResponse(
            tracks=[track.summary() for track in result.items],
            page=result.page,
            perPage=result.perPage,
            totalItems=result.totalItems,
            totalPages=result.totalPages,
        )

    async def user_tracks(self, user_id: str, page: Optional[int] = None,
                          per_page: Optional[int] = None) -> Dict[str, Any]:
        """Tracks produced by the user's generation requests, newest first"""
        page, per_page = clamp_paging(page, per_page)
        try:
            requests = await self.requests.list_by_user(user_id, page, per_page)
            task_ids = [request.taskId for request in requests.items if request.taskId]
            tracks = await self.tracks.list_by_task_ids(task_ids) if task_ids else []
        except RepositoryError as e:
            logger.error(f"Error loading user tracks: {e}")
            raise PersistenceError("Failed to load tracks") from e

        tracks.sort(key=lambda track: track.created or "", reverse=True)
        return {
            "tracks": [track_dict(track) for track in tracks],
            "page": requests.page,
            "perPage": requests.perPage,
            "totalItems": len(tracks),
            "totalPages": -(-len(tracks) // per_page),
        }

    async def owned_tracks(self, user_id: str) -> List[Dict[str, Any]]:
        """Tracks attributed to the user; empty on failure"""
        try:
            page = await self.tracks.list_by_user(user_id)
        except RepositoryError as e:
            logger.error(f"Error fetching user data: {e}")
            return []
        return [track_dict(track) for track in page.items]

    async def home_feed(self) -> List[Dict[str, Any]]:
        """Tracks whose generation prompt matches every home feed keyword; empty on failure"""
        try:
            tracks = await self.tracks.list_matching_prompt(self.home_feed_keywords)
        except RepositoryError as e:
            logger.error(f"Error fetching radio tracks: {e}")
            return []
        return [track_dict(track) for track in tracks]

    async def track_detail(self, track_id: str, user_id: Optional[str] = None) -> Dict[str, Any]:
        try:
            track = await self.tracks.get(track_id, expand="user")
        except RepositoryError as e:
            logger.error(f"Error fetching track: {e}")
            track = None
        if track is None or track.deleted:
            raise NotFoundError("Track not found")

        user_reactions: Dict[str, str] = {}
        if user_id:
            try:
                reaction = await self.reactions.get_for(user_id, track.id)
            except RepositoryError as e:
                logger.warning(f"Error fetching reaction: {e}")
                reaction = None
            if reaction:
                user_reactions[track.id] = reaction.reaction

        return {"track": track_dict(track), "userReactions": user_reactions}

    async def delete_track(self, track_id: str, user_id: str) -> Dict[str, Any]:
        """Soft delete a track the user owns"""
        try:
            track = await self.tracks.get(track_id)
            if track is None or track.deleted:
                raise NotFoundError("Track not found")
            if track.user != user_id:
                raise AuthError("You can only delete your own tracks", status_code=403)
            await self.tracks.soft_delete(track.id)
        except RepositoryError as e:
            logger.error(f"Error deleting track: {e}")
            raise PersistenceError("Failed to delete track") from e

        logger.info(f"Track {track_id} soft deleted by {user_id}")
        return {"success": True}
