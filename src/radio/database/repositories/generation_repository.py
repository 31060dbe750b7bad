"""
Generation Repository
Database operations for generation requests and provider callbacks
"""

from typing import Any, Dict, Optional, Tuple

from ..schemas import GenerationCallbackRecord, GenerationRequestRecord, RecordPage
from .base import BaseRepository


class GenerationRequestRepository(BaseRepository[GenerationRequestRecord]):
    """Repository for generation request records"""

    model = GenerationRequestRecord
    collection_setting = "REQUESTS_COLLECTION"

    async def create_request(self, params: Dict[str, Any], user_id: Optional[str],
                             idempotency_key: Optional[str] = None) -> GenerationRequestRecord:
        """Persist a pending generation request"""
        data = dict(params)
        data.update({"user": user_id, "status": "pending"})
        if idempotency_key:
            data["idempotency_key"] = idempotency_key
        return await self.create(data)

    async def mark_submitted(self, request_id: str, task_id: Optional[str]) -> GenerationRequestRecord:
        return await self.update(request_id, {"status": "submitted", "taskId": task_id})

    async def mark_failed(self, request_id: str, error: Optional[str] = None,
                          task_id: Optional[str] = None) -> GenerationRequestRecord:
        data: Dict[str, Any] = {"status": "failed", "error": error or ""}
        if task_id:
            data["taskId"] = task_id
        return await self.update(request_id, data)

    async def get_by_task_id(self, task_id: str) -> Optional[GenerationRequestRecord]:
        return await self.get_first(self.filter("taskId = {:task_id}", task_id=task_id))

    async def get_by_idempotency_key(self, key: str, user_id: Optional[str]) -> Optional[GenerationRequestRecord]:
        return await self.get_first(
            self.filter("idempotency_key = {:key} && user = {:user}", key=key, user=user_id),
            sort="-created",
        )

    async def list_by_user(self, user_id: str, page: int = 1, per_page: int = 50) -> RecordPage[GenerationRequestRecord]:
        return await self.get_multi(page, per_page, filter=self.filter("user = {:user}", user=user_id))


class GenerationCallbackRepository(BaseRepository[GenerationCallbackRecord]):
    """Repository for raw webhook deliveries, one record per task"""

    model = GenerationCallbackRecord
    collection_setting = "CALLBACKS_COLLECTION"

    async def upsert_for_task(self, task_id: Optional[str], data: Dict[str, Any]) -> Tuple[GenerationCallbackRecord, bool]:
        existing = None
        if task_id:
            existing = await self.get_first(self.filter("task_id = {:task_id}", task_id=task_id))

        if existing:
            return await self.update(existing.id, data), False
        return await self.create(data), True
