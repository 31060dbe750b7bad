"""
Radio Music API Routes
Generation, webhook callback, prompt enhancement, catalog and reactions
"""

import asyncio
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Header, Query, Request
from fastapi.responses import JSONResponse

from ...core.config import get_settings
from ...core.errors import ValidationError
from ...core.logging import generation_logger
from ...database.schemas import EnhanceRequest, ReactionRequest, TrackListResponse
from ...services.catalog_service import CatalogService
from ...services.enhance_service import EnhanceService
from ...services.generation_service import GenerationService
from ...services.reaction_service import ReactionService
from ...services.session_service import SessionValidation
from ..dependencies import (
    get_catalog_service,
    get_enhance_service,
    get_generation_service,
    get_reaction_service,
    require_generation_session,
    require_user
)

logger = logging.getLogger(__name__)

router = APIRouter()


async def read_json_object(request: Request) -> Dict[str, Any]:
    try:
        body = await request.json()
    except ValueError:
        raise ValidationError("Invalid JSON in request body")
    if not isinstance(body, dict):
        raise ValidationError("Invalid request body")
    return body


@router.post("/generate")
async def generate_music(
    request: Request,
    session: SessionValidation = Depends(require_generation_session),
    generation: GenerationService = Depends(get_generation_service),
    enhancer: EnhanceService = Depends(get_enhance_service),
    idempotency_key: Optional[str] = Header(None, alias="Idempotency-Key"),
):
    """
    Submit a generation job to the music API

    Responds with the upstream status and body plus the internal recordId.
    With "enhance": true the prompt is first expanded into custom-mode
    title, style and lyrics.
    """
    body = await read_json_object(request)

    enhanced = None
    if body.pop("enhance", False):
        enhanced = await enhancer.enhance(body.get("prompt"))
        body.update({
            "customMode": True,
            "title": enhanced.title,
            "style": enhanced.style,
            "prompt": enhanced.prompt,
        })
        if enhanced.vocalGender:
            body["vocalGender"] = enhanced.vocalGender

    result = await generation.submit(body, session.user_id, idempotency_key)

    content = result.response_body()
    if enhanced is not None:
        content["enhanced"] = {"title": enhanced.title, "style": enhanced.style, "prompt": enhanced.prompt}
    return JSONResponse(content=content, status_code=result.status_code)


@router.get("/callback")
async def callback_probe():
    return "hello"


@router.post("/callback")
async def music_callback(
    request: Request,
    generation: GenerationService = Depends(get_generation_service),
):
    """
    Webhook from the generation API

    Always answers 200 within the provider's window so the provider does not
    retry; processing failures are logged only.
    """
    budget = get_settings().CALLBACK_PROCESSING_BUDGET_SECONDS
    try:
        payload = await request.json()
        ack = await asyncio.wait_for(generation.handle_callback(payload), timeout=budget)
        return ack.model_dump()

    except asyncio.TimeoutError:
        generation_logger.log_processing_error("callback", f"Processing exceeded {budget}s")
        return {"status": "error", "message": "Callback processing timed out"}

    except Exception as e:
        generation_logger.log_processing_error("callback", str(e))
        return {"status": "error", "message": str(e) or "Unknown error"}


@router.post("/enhance")
async def enhance_prompt(
    request: EnhanceRequest,
    enhancer: EnhanceService = Depends(get_enhance_service),
):
    enhanced = await enhancer.enhance(request.prompt)
    return enhanced.model_dump(exclude_none=True)


@router.get("/latest")
async def latest_track(catalog: CatalogService = Depends(get_catalog_service)):
    track = await catalog.latest()
    if track is None:
        return {"track": None, "error": "No tracks available yet"}
    return {"track": track.model_dump()}


@router.get("/tracks", response_model=TrackListResponse)
async def list_tracks(
    page: int = Query(1, ge=1),
    per_page: int = Query(50, alias="perPage", ge=1),
    catalog: CatalogService = Depends(get_catalog_service),
):
    """List non-deleted tracks, newest first (perPage capped at 200)"""
    return await catalog.list_tracks(page, per_page)


@router.delete("/tracks/{track_id}")
async def delete_track(
    track_id: str,
    session: SessionValidation = Depends(require_user),
    catalog: CatalogService = Depends(get_catalog_service),
):
    return await catalog.delete_track(track_id, session.user_id)


@router.post("/reaction")
async def react_to_track(
    request: ReactionRequest,
    session: SessionValidation = Depends(require_user),
    reactions: ReactionService = Depends(get_reaction_service),
):
    """Toggle a like/dislike: created, removed or updated"""
    return await reactions.toggle(session.user_id, request.trackId, request.reaction)
