"""
Track Repository
Catalog queries and upserts for music tracks
"""

from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..schemas import RecordPage, TrackRecord
from .base import BaseRepository, ConflictError

NOT_DELETED = "deleted != true"


class TrackRepository(BaseRepository[TrackRecord]):
    """Repository for track records"""

    model = TrackRecord
    collection_setting = "TRACKS_COLLECTION"

    async def get_by_track_id(self, track_id: str) -> Optional[TrackRecord]:
        """Get track by external generation API id"""
        return await self.get_first(self.filter("track_id = {:track_id}", track_id=track_id))

    async def get_latest(self) -> Optional[TrackRecord]:
        page = await self.get_multi(1, 1, filter=NOT_DELETED)
        return page.items[0] if page.items else None

    async def list_active(self, page: int = 1, per_page: int = 50) -> RecordPage[TrackRecord]:
        return await self.get_multi(page, per_page, filter=NOT_DELETED)

    async def list_all_active(self) -> List[TrackRecord]:
        return await self.get_all(filter=NOT_DELETED)

    async def list_by_user(self, user_id: str, page: int = 1, per_page: int = 50) -> RecordPage[TrackRecord]:
        return await self.get_multi(
            page,
            per_page,
            filter=self.filter("user = {:user} && " + NOT_DELETED, user=user_id),
        )

    async def list_by_task_ids(self, task_ids: Sequence[str], batch_size: int = 50) -> List[TrackRecord]:
        """Get tracks for many generation tasks, batching to keep filters short"""
        tracks: List[TrackRecord] = []
        for start in range(0, len(task_ids), batch_size):
            batch = task_ids[start:start + batch_size]
            clause = " || ".join(self.filter("task_id = {:id}", id=task_id) for task_id in batch)
            page = await self.get_multi(1, batch_size * 2, filter=f"({clause}) && {NOT_DELETED}")
            tracks.extend(page.items)
        return tracks

    async def list_matching_prompt(self, keywords: Sequence[str]) -> List[TrackRecord]:
        """Get tracks whose generation prompt contains every keyword"""
        clauses = [self.filter("generation_prompt ~ {:kw}", kw=keyword) for keyword in keywords]
        clauses.append(NOT_DELETED)
        return await self.get_all(filter=" && ".join(clauses))

    async def list_tagged(self, tag: str, exclude_id: Optional[str] = None) -> List[TrackRecord]:
        expr = self.filter("tags ~ {:tag} && " + NOT_DELETED, tag=tag)
        if exclude_id:
            expr += " && " + self.filter("id != {:id}", id=exclude_id)
        return await self.get_all(filter=expr)

    async def upsert_by_track_id(
        self,
        fields: Dict[str, Any],
        files: Optional[Dict[str, Any]] = None,
    ) -> Tuple[TrackRecord, bool]:
        """Create or update the track keyed by its external id; returns (track, created)"""
        existing = await self.get_by_track_id(fields["track_id"])
        if existing:
            return await self.update(existing.id, fields, files=files), False
        try:
            return await self.create(fields, files=files), True
        except ConflictError:
            # Lost a race against a duplicate delivery; the unique index kept one row
            existing = await self.get_by_track_id(fields["track_id"])
            if existing is None:
                raise
            return await self.update(existing.id, fields, files=files), False

    async def soft_delete(self, id: str) -> TrackRecord:
        return await self.update(id, {"deleted": True})
