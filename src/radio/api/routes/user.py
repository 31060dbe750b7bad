"""
Radio User API Routes
"""

from fastapi import APIRouter, Depends, Query

from ...services.catalog_service import CatalogService
from ...services.session_service import SessionValidation
from ..dependencies import get_catalog_service, require_user

router = APIRouter()


@router.get("/tracks")
async def user_tracks(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, alias="perPage", ge=1),
    session: SessionValidation = Depends(require_user),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """Tracks produced by the caller's own generation requests"""
    return await catalog.user_tracks(session.user_id, page, per_page)
