"""
Radio Page Routes
Data behind each page, served as JSON; the session gate lives in SessionMiddleware
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse

from ...core.config import get_settings
from ...core.errors import RadioError
from ...database.client import BaaSError
from ...database.connection import BaaSManager
from ...database.schemas import UserRecord
from ...services.catalog_service import CatalogService
from ...services.playlist_service import PlaylistService
from ...services.reaction_service import ReactionService
from ..dependencies import (
    clear_session_cookie,
    get_baas_manager,
    get_catalog_service,
    get_page_playlist_service,
    get_page_reaction_service,
    set_session_cookie
)

logger = logging.getLogger(__name__)

router = APIRouter()


def current_user(request: Request) -> Optional[UserRecord]:
    return getattr(request.state, "user", None)


def user_data(user: Optional[UserRecord]) -> Optional[dict]:
    return user.model_dump() if user else None


def login_redirect() -> RedirectResponse:
    return RedirectResponse("/login", status_code=302)


@router.get("/")
async def home_page(
    user: Optional[UserRecord] = Depends(current_user),
    catalog: CatalogService = Depends(get_catalog_service),
):
    return {"user": user_data(user), "tracks": await catalog.home_feed()}


@router.get("/layout")
async def layout_data(
    user: Optional[UserRecord] = Depends(current_user),
    playlists: PlaylistService = Depends(get_page_playlist_service),
    reactions: ReactionService = Depends(get_page_reaction_service),
):
    """User, their playlists with stats and liked track ids"""
    if user is None:
        return {"user": None, "playlists": [], "likedTrackIds": []}
    return {
        "user": user_data(user),
        "playlists": await playlists.list_with_stats(user.id),
        "likedTrackIds": await reactions.liked_track_ids(user.id),
    }


@router.get("/login")
async def login_page():
    response = JSONResponse({})
    clear_session_cookie(response)
    return response


@router.get("/auth/callback")
async def oauth_callback(
    request: Request,
    code: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    manager: BaaSManager = Depends(get_baas_manager),
):
    """Complete the OAuth2 code exchange and start a session"""
    failed = RedirectResponse("/login?error=oauth_failed", status_code=302)
    if not code or not state:
        return failed

    settings = get_settings()
    client = manager.client()
    redirect_url = str(request.base_url).rstrip("/") + "/auth/callback"
    try:
        await client.collection(settings.USERS_COLLECTION).auth_with_oauth2_code(
            settings.OAUTH_PROVIDER, code, state, redirect_url
        )
    except BaaSError as e:
        logger.error(f"OAuth callback error: {e.message}")
        return failed

    token = client.auth_store.token
    if not token:
        return failed

    response = RedirectResponse("/", status_code=302)
    set_session_cookie(response, request, token)
    return response


@router.get("/me")
async def me_page(
    user: Optional[UserRecord] = Depends(current_user),
    catalog: CatalogService = Depends(get_catalog_service),
    playlists: PlaylistService = Depends(get_page_playlist_service),
):
    if user is None:
        return login_redirect()
    return {
        "user": user_data(user),
        "tracks": await catalog.owned_tracks(user.id),
        "playlists": await playlists.list_with_stats(user.id),
    }


@router.get("/me/playlist/liked")
async def liked_page(
    user: Optional[UserRecord] = Depends(current_user),
    playlists: PlaylistService = Depends(get_page_playlist_service),
):
    if user is None:
        return login_redirect()
    return await playlists.liked(user.id)


@router.get("/me/playlist/{playlist_id}")
async def playlist_page(
    playlist_id: str,
    user: Optional[UserRecord] = Depends(current_user),
    playlists: PlaylistService = Depends(get_page_playlist_service),
):
    if user is None:
        return login_redirect()
    try:
        return await playlists.detail(playlist_id, user.id)
    except RadioError as e:
        logger.error(f"Error fetching playlist: {e.detail}")
        return RedirectResponse("/me", status_code=302)


@router.get("/create")
async def create_page(
    user: Optional[UserRecord] = Depends(current_user),
    catalog: CatalogService = Depends(get_catalog_service),
):
    if user is None:
        return login_redirect()
    tracks = []
    for track in await catalog.owned_tracks(user.id):
        summary = {key: track.get(key) for key in (
            "id", "title", "audio_url", "stream_audio_url", "image_url",
            "duration", "tags", "prompt", "model_name", "create_time",
        )}
        summary["track_id"] = track.get("track_id") or track["id"]
        summary["status"] = track.get("status") or "complete"
        tracks.append(summary)
    return {"user": user_data(user), "tracks": tracks}


@router.get("/live")
async def live_page(user: Optional[UserRecord] = Depends(current_user)):
    return {"user": user_data(user)}


@router.get("/track/{track_id}")
async def track_page(
    track_id: str,
    user: Optional[UserRecord] = Depends(current_user),
    catalog: CatalogService = Depends(get_catalog_service),
):
    data = await catalog.track_detail(track_id, user.id if user else None)
    data["user"] = user_data(user)
    return data
