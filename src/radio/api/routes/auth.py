"""
Radio Auth API Routes
Session cookie lifecycle
"""

import re
from typing import Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from ...core.config import get_settings
from ...core.errors import ValidationError
from ...database.schemas import SetCookieRequest
from ..dependencies import clear_session_cookie, set_session_cookie

router = APIRouter()


def extract_token(cookie: str, name: str) -> Optional[str]:
    """Pull the session token out of a "name=value; path=/; ..." cookie string"""
    match = re.search(r"(?:^|;)\s*" + re.escape(name) + r"=([^;]+)", cookie)
    if match:
        return match.group(1).strip()
    if "=" not in cookie and ";" not in cookie:
        return cookie.strip() or None
    return None


@router.post("/set-cookie")
async def set_cookie(payload: SetCookieRequest, request: Request):
    if not payload.cookie:
        raise ValidationError("Cookie data required")

    token = extract_token(payload.cookie, get_settings().SESSION_COOKIE_NAME)
    if not token:
        raise ValidationError("No session token found in cookie data")

    response = JSONResponse({"success": True})
    set_session_cookie(response, request, token)
    return response


@router.api_route("/logout", methods=["GET", "POST"])
async def logout():
    response = JSONResponse({"success": True})
    clear_session_cookie(response)
    return response
