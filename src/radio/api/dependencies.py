"""
Radio API Dependencies
Session resolution, service construction and session cookie helpers
"""

from typing import Optional

from fastapi import Depends, Request, Response

from ..core.config import get_settings
from ..core.errors import AuthError
from ..database.client import BaaSClient
from ..database.connection import BaaSManager, baas_manager
from ..services.catalog_service import CatalogService
from ..services.enhance_service import EnhanceService, enhance_service
from ..services.generation_service import GenerationService
from ..services.media_service import MediaService, media_service
from ..services.music_provider import MusicProvider, music_provider
from ..services.playlist_service import PlaylistService
from ..services.reaction_service import ReactionService
from ..services.room_service import RoomService
from ..services.session_service import SessionValidation, SessionValidator


def get_baas_manager() -> BaaSManager:
    return baas_manager


def get_music_provider() -> MusicProvider:
    return music_provider


def get_enhance_service() -> EnhanceService:
    return enhance_service


def get_media_service() -> MediaService:
    return media_service


def get_service_client(manager: BaaSManager = Depends(get_baas_manager)) -> BaaSClient:
    """Backend handle for server-side work not tied to the caller's session"""
    return manager.service_client()


def session_token(request: Request) -> Optional[str]:
    return request.cookies.get(get_settings().SESSION_COOKIE_NAME)


async def get_session(
    request: Request,
    manager: BaaSManager = Depends(get_baas_manager),
) -> SessionValidation:
    """Validate the session cookie, reusing the middleware's result when present"""
    cached = getattr(request.state, "session", None)
    if isinstance(cached, SessionValidation):
        return cached
    return await SessionValidator(manager).validate(session_token(request))


async def require_generation_session(session: SessionValidation = Depends(get_session)) -> SessionValidation:
    """Missing cookie -> 401, invalid or unverified session -> 403"""
    if session.client is None:
        raise AuthError("missing auth", status_code=401)
    if not session.valid:
        raise AuthError("unauthorised user", status_code=403)
    return session


async def require_user(session: SessionValidation = Depends(get_session)) -> SessionValidation:
    if not session.valid:
        raise AuthError("Unauthorized", status_code=401)
    return session


def get_generation_service(
    client: BaaSClient = Depends(get_service_client),
    provider: MusicProvider = Depends(get_music_provider),
    media: MediaService = Depends(get_media_service),
) -> GenerationService:
    return GenerationService.for_client(client, provider, media)


def get_room_service(
    client: BaaSClient = Depends(get_service_client),
    generation: GenerationService = Depends(get_generation_service),
) -> RoomService:
    return RoomService.for_client(client, generation)


def get_catalog_service(client: BaaSClient = Depends(get_service_client)) -> CatalogService:
    return CatalogService.for_client(client)


def get_reaction_service(session: SessionValidation = Depends(require_user)) -> ReactionService:
    return ReactionService.for_client(session.client)


def get_playlist_service(session: SessionValidation = Depends(require_user)) -> PlaylistService:
    return PlaylistService.for_client(session.client)


def get_page_playlist_service(client: BaaSClient = Depends(get_service_client)) -> PlaylistService:
    """Playlist reads for page data, where a missing session is not an error"""
    return PlaylistService.for_client(client)


def get_page_reaction_service(client: BaaSClient = Depends(get_service_client)) -> ReactionService:
    return ReactionService.for_client(client)


def cookie_is_secure(request: Request) -> bool:
    forwarded = request.headers.get("x-forwarded-proto", "")
    return get_settings().COOKIE_SECURE or request.url.scheme == "https" or forwarded == "https"


def set_session_cookie(response: Response, request: Request, token: str) -> None:
    settings = get_settings()
    response.set_cookie(
        settings.SESSION_COOKIE_NAME,
        token,
        max_age=settings.SESSION_MAX_AGE_SECONDS,
        path="/",
        httponly=True,
        samesite="lax",
        secure=cookie_is_secure(request),
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(get_settings().SESSION_COOKIE_NAME, path="/")
