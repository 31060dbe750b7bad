"""
Music Generation Provider
API client for the hosted music generation service (Suno-compatible)
"""

from typing import Any, Dict, Optional

import httpx

from ..core.config import get_settings
from ..core.logging import generation_logger
from ..core.result import Result


class MusicProvider:
    """Submits generation jobs; completion arrives later through the webhook"""

    def __init__(self, api_url: Optional[str] = None, api_key: Optional[str] = None,
                 timeout: Optional[float] = None):
        settings = get_settings()
        self.api_url = api_url or settings.MUSIC_API_URL
        self.api_key = api_key if api_key is not None else settings.MUSIC_API_KEY
        self.timeout = timeout or settings.MUSIC_API_TIMEOUT_SECONDS
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def initialize(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        """Open the HTTP client used for submissions"""
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            transport=transport,
        )

    async def cleanup(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def submit(self, payload: Dict[str, Any]) -> Result[Dict[str, Any]]:
        """Submit one generation job.

        The result carries the upstream HTTP status and body in both the ok and
        err cases so callers can forward them. A transport failure yields an
        err result with no status code.
        """

        if self._client is None:
            await self.initialize()

        try:
            response = await self._client.post(self.api_url, json=payload)
        except httpx.HTTPError as e:
            generation_logger.log_upstream_error(None, str(e))
            return Result.err(f"Generation API unreachable: {e}")

        try:
            body = response.json()
        except ValueError:
            body = {"msg": response.text}
        if not isinstance(body, dict):
            body = {"data": body}

        if not response.is_success:
            message = body.get("msg") or body.get("error") or f"Generation API error: {response.status_code}"
            return Result.err(str(message), status_code=response.status_code, data=body)

        # The provider also reports some failures as HTTP 200 with an error code in the body
        code = body.get("code")
        if code is not None and code != 200:
            return Result.err(str(body.get("msg") or f"Generation API error code {code}"),
                              status_code=response.status_code, data=body)

        return Result.ok(body, status_code=response.status_code)

    @staticmethod
    def task_id(body: Optional[Dict[str, Any]]) -> Optional[str]:
        data = (body or {}).get("data")
        if isinstance(data, dict):
            return data.get("taskId")
        return None


# Global music provider instance
music_provider = MusicProvider()
