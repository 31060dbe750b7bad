"""
Radio Room API Routes
Shared now-playing state and its advance/generate/play operations
"""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends

from ...core.errors import RadioError
from ...core.logging import room_logger
from ...database.schemas import PlayRequest, RoomGenerateRequest
from ...services.room_service import RoomService
from ..dependencies import get_room_service

router = APIRouter()


async def generate_in_background(rooms: RoomService, prompt: Optional[str] = None) -> None:
    """Best-effort room generation scheduled after a state read"""
    try:
        await rooms.generate(prompt)
    except RadioError as e:
        room_logger.log_error("background_generate", e.detail)


@router.get("")
async def get_room(background_tasks: BackgroundTasks, rooms: RoomService = Depends(get_room_service)):
    """Current room state; queues a generation when nothing is up next"""
    state = await rooms.get_state()
    if state is None:
        return {"room": None, "error": "No room available yet"}

    if state.next_track is None and not state.active_request:
        background_tasks.add_task(generate_in_background, rooms, state.prompt)

    return {"room": state.model_dump()}


@router.post("/advance")
async def advance_room(rooms: RoomService = Depends(get_room_service)):
    return await rooms.advance()


@router.post("/generate")
async def generate_for_room(
    request: Optional[RoomGenerateRequest] = None,
    rooms: RoomService = Depends(get_room_service),
):
    return await rooms.generate(request.prompt if request else None)


@router.post("/play")
async def play_track(request: PlayRequest, rooms: RoomService = Depends(get_room_service)):
    """Manually set the current track"""
    return await rooms.play(request.trackId)
