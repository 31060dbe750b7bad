"""
Radio Backend Connection Manager
Shared HTTP connection pool to the backend-as-a-service and client handle factory
"""

from typing import Optional

import httpx

from ..core.config import get_settings
from ..core.logging import baas_logger
from .client import BaaSClient


class BaaSManager:
    """Manages the backend connection pool and hands out client handles"""

    def __init__(self):
        self._http: Optional[httpx.AsyncClient] = None

    async def initialize(self, transport: Optional[httpx.AsyncBaseTransport] = None) -> None:
        """Open the connection pool"""
        settings = get_settings()

        self._http = httpx.AsyncClient(
            base_url=settings.BAAS_URL.rstrip("/"),
            timeout=httpx.Timeout(settings.BAAS_TIMEOUT_SECONDS),
            headers={"User-Agent": f"{settings.APP_NAME}/{settings.APP_VERSION}"},
            transport=transport,
        )

    async def close(self) -> None:
        if self._http:
            await self._http.aclose()
            self._http = None

    @property
    def is_initialized(self) -> bool:
        return self._http is not None

    def client(self, token: Optional[str] = None) -> BaaSClient:
        """Get a fresh client handle, optionally pre-loaded with an auth token"""
        if not self._http:
            raise RuntimeError("Backend connection not initialized")
        return BaaSClient(self._http, token)

    def service_client(self) -> BaaSClient:
        """Client handle for server-side operations not tied to a user session"""
        return self.client(get_settings().BAAS_ADMIN_TOKEN)

    async def check_health(self) -> bool:
        """Check backend health"""
        if not self.is_initialized:
            baas_logger.log_health(False, "Backend connection not initialized")
            return False
        return await self.client().health()


# Global backend manager instance
baas_manager = BaaSManager()
