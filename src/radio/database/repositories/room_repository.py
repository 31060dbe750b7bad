"""
Room Repository
Singleton room lookup and conditional updates
"""

import asyncio
from typing import Any, Dict, Optional

from ...core.logging import room_logger
from ..schemas import RoomRecord
from .base import BaseRepository, ConflictError

# Serialises read-modify-write of the room within this process
room_write_lock = asyncio.Lock()


class RoomRepository(BaseRepository[RoomRecord]):
    """Repository for the shared room record"""

    model = RoomRecord
    collection_setting = "ROOMS_COLLECTION"

    async def get_room(self, room_id: Optional[str] = None) -> Optional[RoomRecord]:
        """Get the configured room, or the most recently created one when no id is set"""
        if room_id:
            return await self.get(room_id)

        page = await self.get_multi(1, 1, sort="-created")
        return page.items[0] if page.items else None

    async def compare_and_update(
        self,
        room_id: str,
        expected: Dict[str, Any],
        changes: Dict[str, Any],
    ) -> RoomRecord:
        """Apply changes only if the room still holds the expected field values"""
        current = await self.get_or_404(room_id)

        for field, value in expected.items():
            if getattr(current, field) != value:
                room_logger.log_conflict(room_id, field)
                raise ConflictError(f"Room field {field} changed concurrently")

        return await self.update(room_id, changes)
