"""
Result Pattern Implementation
Outcome of calls to external HTTP services, carrying the upstream status
"""

from typing import Any, Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar('T')


class Result(BaseModel, Generic[T]):
    """Result type for type-safe error handling"""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    status_code: Optional[int] = None

    @classmethod
    def ok(cls, data: T, status_code: int = 200) -> 'Result[T]':
        """Create a successful result"""
        return cls(success=True, data=data, status_code=status_code)

    @classmethod
    def err(cls, error: str, status_code: Optional[int] = None, data: Any = None) -> 'Result[T]':
        """Create an error result, optionally keeping the upstream body"""
        return cls(success=False, error=error, status_code=status_code, data=data)

    def is_ok(self) -> bool:
        return self.success

    def is_err(self) -> bool:
        return not self.success
