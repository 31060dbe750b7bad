"""
Radio HTTP Middleware
Session gate for page routes and permissive CORS for the JSON API
"""

import logging
from typing import Optional

from fastapi import Request
from fastapi.responses import RedirectResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from ..core.config import get_settings
from ..database.connection import BaaSManager, baas_manager
from ..services.session_service import SessionValidator
from .dependencies import clear_session_cookie

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, PUT, PATCH, DELETE, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
}

# Reachable without a session and never redirected
EXEMPT_PATHS = ("/login", "/auth/callback", "/health")
EXEMPT_PREFIXES = ("/api", "/docs", "/redoc", "/openapi.json")


def is_api_path(path: str) -> bool:
    return path == "/api" or path.startswith("/api/")


def is_exempt(path: str) -> bool:
    return path in EXEMPT_PATHS or any(path.startswith(prefix) for prefix in EXEMPT_PREFIXES)


def is_public(path: str) -> bool:
    """Public pages render without a session but still lose an invalid cookie"""
    return path == "/" or path.startswith("/track")


class SessionMiddleware(BaseHTTPMiddleware):
    """Validates the session cookie for page routes and stores the user on request.state"""

    def __init__(self, app, manager: Optional[BaaSManager] = None):
        super().__init__(app)
        self.manager = manager or baas_manager

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        path = request.url.path
        request.state.user = None

        if request.method == "OPTIONS" and is_api_path(path):
            return Response(status_code=204, headers=CORS_HEADERS)

        if is_exempt(path):
            response = await call_next(request)
            if is_api_path(path):
                for key, value in CORS_HEADERS.items():
                    response.headers.setdefault(key, value)
            return response

        token = request.cookies.get(get_settings().SESSION_COOKIE_NAME)
        session = await SessionValidator(self.manager).validate(token)
        request.state.session = session

        if session.valid:
            request.state.user = session.user
            return await call_next(request)

        if not is_public(path):
            response = RedirectResponse("/login", status_code=302)
            clear_session_cookie(response)
            return response

        response = await call_next(request)
        if token:
            clear_session_cookie(response)
        return response
