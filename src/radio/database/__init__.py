"""
Radio Database Module
Exports the backend client, connection manager and record schemas
"""

from .client import AuthStore, BaaSClient, BaaSError, RecordService
from .connection import BaaSManager, baas_manager
from .schemas import (
    GenerationCallbackRecord,
    GenerationRequestRecord,
    PlaylistEntryRecord,
    PlaylistRecord,
    ReactionRecord,
    RoomRecord,
    TrackRecord,
    UserRecord
)

__all__ = [
    "AuthStore",
    "BaaSClient",
    "BaaSError",
    "RecordService",
    "BaaSManager",
    "baas_manager",
    "GenerationCallbackRecord",
    "GenerationRequestRecord",
    "PlaylistEntryRecord",
    "PlaylistRecord",
    "ReactionRecord",
    "RoomRecord",
    "TrackRecord",
    "UserRecord"
]
