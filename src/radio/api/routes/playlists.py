"""
Radio Playlist API Routes
REST endpoints for user playlists and their tracks
"""

from fastapi import APIRouter, Depends

from ...database.schemas import PlaylistCreate, PlaylistTrackAdd
from ...services.playlist_service import PlaylistService
from ...services.reaction_service import ReactionService
from ...services.session_service import SessionValidation
from ..dependencies import get_playlist_service, get_reaction_service, require_user

router = APIRouter()


@router.get("")
async def list_playlists(
    session: SessionValidation = Depends(require_user),
    playlists: PlaylistService = Depends(get_playlist_service),
):
    """List the caller's playlists with track count, duration and track ids"""
    return {"playlists": await playlists.list_with_stats(session.user_id)}


@router.post("", status_code=201)
async def create_playlist(
    request: PlaylistCreate,
    session: SessionValidation = Depends(require_user),
    playlists: PlaylistService = Depends(get_playlist_service),
):
    return await playlists.create(session.user_id, request.name, request.description)


@router.get("/liked")
async def liked_playlist(
    session: SessionValidation = Depends(require_user),
    playlists: PlaylistService = Depends(get_playlist_service),
    reactions: ReactionService = Depends(get_reaction_service),
):
    """Virtual Liked Songs playlist plus the liked track ids"""
    data = await playlists.liked(session.user_id)
    data["likedTrackIds"] = await reactions.liked_track_ids(session.user_id)
    return data


@router.get("/{playlist_id}")
async def get_playlist(
    playlist_id: str,
    session: SessionValidation = Depends(require_user),
    playlists: PlaylistService = Depends(get_playlist_service),
):
    return await playlists.detail(playlist_id, session.user_id)


@router.delete("/{playlist_id}")
async def delete_playlist(
    playlist_id: str,
    session: SessionValidation = Depends(require_user),
    playlists: PlaylistService = Depends(get_playlist_service),
):
    return await playlists.delete(playlist_id, session.user_id)


@router.post("/{playlist_id}/tracks")
async def add_playlist_track(
    playlist_id: str,
    request: PlaylistTrackAdd,
    session: SessionValidation = Depends(require_user),
    playlists: PlaylistService = Depends(get_playlist_service),
):
    """Add a track; an already present track reports status "exists" """
    return await playlists.add_track(playlist_id, request.trackId, session.user_id)


@router.delete("/{playlist_id}/tracks/{entry_id}")
async def remove_playlist_track(
    playlist_id: str,
    entry_id: str,
    session: SessionValidation = Depends(require_user),
    playlists: PlaylistService = Depends(get_playlist_service),
):
    return await playlists.remove_entry(playlist_id, entry_id, session.user_id)
