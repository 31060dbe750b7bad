"""
Radio Proxy Route
Optional pass-through to an external API under /api/proxy
"""

import logging

import httpx
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response

from ...core.config import get_settings

logger = logging.getLogger(__name__)

router = APIRouter()

FORWARDED_HEADERS = ("authorization", "content-type")


@router.api_route("/{path:path}", methods=["GET", "POST", "PUT", "PATCH", "DELETE"])
async def proxy(path: str, request: Request):
    """Forward the request, passing only the authorization and content-type headers"""
    settings = get_settings()
    if not settings.PROXY_BASE_URL:
        return JSONResponse({"error": "Proxy is not configured"}, status_code=503)

    target = f"{settings.PROXY_BASE_URL.rstrip('/')}/{path}"
    headers = {name: request.headers[name] for name in FORWARDED_HEADERS if name in request.headers}
    body = await request.body() if request.method != "GET" else None

    try:
        async with httpx.AsyncClient(timeout=settings.PROXY_TIMEOUT_SECONDS) as client:
            upstream = await client.request(
                request.method,
                target,
                params=request.query_params,
                headers=headers,
                content=body or None,
            )
    except httpx.HTTPError as e:
        logger.error(f"Proxy error: {e}")
        return JSONResponse({"error": "Failed to fetch from external API"}, status_code=500)

    if "application/json" in upstream.headers.get("content-type", ""):
        try:
            return JSONResponse(upstream.json(), status_code=upstream.status_code)
        except ValueError:
            pass
    return Response(content=upstream.text, status_code=upstream.status_code)
