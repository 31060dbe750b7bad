"""
Base Repository
Common CRUD operations for all backend collections
"""

from typing import Any, Dict, Generic, List, Optional, Type, TypeVar

from ...core.config import get_settings
from ..client import BaaSClient, BaaSError, RecordService
from ..schemas import RecordBase, RecordPage

# Type variable for generic repository
ModelType = TypeVar("ModelType", bound=RecordBase)


class RepositoryError(Exception):
    """Base repository error"""
    pass


class NotFoundError(RepositoryError):
    """Entity not found error"""
    pass


class ConflictError(RepositoryError):
    """Data conflict error"""
    pass


def _is_unique_violation(error: BaaSError) -> bool:
    if error.status != 400 or not isinstance(error.data, dict):
        return False
    return any(
        isinstance(detail, dict) and "unique" in str(detail.get("code", ""))
        for detail in error.data.values()
    )


class BaseRepository(Generic[ModelType]):
    """Base repository with common CRUD operations over one collection"""

    model: Type[ModelType]
    collection_setting: str

    def __init__(self, client: BaaSClient, collection: Optional[str] = None):
        self.client = client
        self.collection = collection or getattr(get_settings(), self.collection_setting)

    @property
    def records(self) -> RecordService:
        return self.client.collection(self.collection)

    def _parse(self, data: Dict[str, Any]) -> ModelType:
        return self.model.model_validate(data)

    async def create(self, data: Dict[str, Any], files: Optional[Dict[str, Any]] = None) -> ModelType:
        """Create a new entity"""
        try:
            return self._parse(await self.records.create(data, files=files))
        except BaaSError as e:
            if _is_unique_violation(e):
                raise ConflictError(f"Data conflict: {e.message}") from e
            raise RepositoryError(f"Error creating {self.collection} record: {e.message}") from e

    async def get(self, id: str, expand: Optional[str] = None) -> Optional[ModelType]:
        """Get entity by ID"""
        if not id:
            return None
        try:
            return self._parse(await self.records.get_one(id, expand=expand))
        except BaaSError as e:
            if e.is_not_found:
                return None
            raise RepositoryError(f"Error getting {self.collection} record: {e.message}") from e

    async def get_or_404(self, id: str, expand: Optional[str] = None) -> ModelType:
        """Get entity by ID or raise NotFoundError"""
        obj = await self.get(id, expand=expand)
        if obj is None:
            raise NotFoundError(f"{self.collection} record {id} not found")
        return obj

    async def get_multi(
        self,
        page: int = 1,
        per_page: int = 50,
        sort: Optional[str] = "-created",
        filter: Optional[str] = None,
        expand: Optional[str] = None,
    ) -> RecordPage[ModelType]:
        """Get one page of entities with sorting and filtering"""
        try:
            result = await self.records.get_list(page, per_page, sort=sort, filter=filter, expand=expand)
        except BaaSError as e:
            raise RepositoryError(f"Error listing {self.collection} records: {e.message}") from e

        return RecordPage[self.model](
            page=result.get("page", page),
            perPage=result.get("perPage", per_page),
            totalItems=result.get("totalItems", 0),
            totalPages=result.get("totalPages", 0),
            items=[self._parse(item) for item in result.get("items", [])],
        )

    async def get_all(
        self,
        filter: Optional[str] = None,
        sort: Optional[str] = "-created",
        expand: Optional[str] = None,
        fields: Optional[str] = None,
    ) -> List[ModelType]:
        """Get every entity matching filter"""
        try:
            items = await self.records.get_full_list(sort=sort, filter=filter, expand=expand, fields=fields)
        except BaaSError as e:
            raise RepositoryError(f"Error listing {self.collection} records: {e.message}") from e
        return [self._parse(item) for item in items]

    async def get_first(
        self,
        filter: str,
        sort: Optional[str] = None,
        expand: Optional[str] = None,
    ) -> Optional[ModelType]:
        """Get the first entity matching filter, or None"""
        try:
            return self._parse(await self.records.get_first_list_item(filter, sort=sort, expand=expand))
        except BaaSError as e:
            if e.is_not_found:
                return None
            raise RepositoryError(f"Error querying {self.collection} records: {e.message}") from e

    async def update(
        self,
        id: str,
        data: Dict[str, Any],
        files: Optional[Dict[str, Any]] = None,
    ) -> ModelType:
        """Update entity by ID"""
        try:
            return self._parse(await self.records.update(id, data, files=files))
        except BaaSError as e:
            if e.is_not_found:
                raise NotFoundError(f"{self.collection} record {id} not found") from e
            if _is_unique_violation(e):
                raise ConflictError(f"Data conflict: {e.message}") from e
            raise RepositoryError(f"Error updating {self.collection} record: {e.message}") from e

    async def delete(self, id: str) -> bool:
        """Delete entity by ID"""
        try:
            return await self.records.delete(id)
        except BaaSError as e:
            if e.is_not_found:
                raise NotFoundError(f"{self.collection} record {id} not found") from e
            raise RepositoryError(f"Error deleting {self.collection} record: {e.message}") from e

    async def exists(self, id: str) -> bool:
        return await self.get(id) is not None

    def filter(self, expr: str, **params: Any) -> str:
        return self.client.filter(expr, **params)
