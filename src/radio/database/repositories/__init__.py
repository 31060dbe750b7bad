"""
Radio Repository Layer
Data access layer over the backend collection API
"""

from .base import BaseRepository, ConflictError, NotFoundError, RepositoryError
from .generation_repository import GenerationCallbackRepository, GenerationRequestRepository
from .playlist_repository import PlaylistEntryRepository, PlaylistRepository
from .reaction_repository import ReactionRepository
from .room_repository import RoomRepository
from .track_repository import TrackRepository

__all__ = [
    "BaseRepository",
    "RepositoryError",
    "NotFoundError",
    "ConflictError",
    "GenerationRequestRepository",
    "GenerationCallbackRepository",
    "PlaylistRepository",
    "PlaylistEntryRepository",
    "ReactionRepository",
    "RoomRepository",
    "TrackRepository"
]
