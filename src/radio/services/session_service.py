"""
Session Validation Service
Checks session tokens against the backend's auth-refresh endpoint
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..core.config import get_settings
from ..database.client import BaaSClient, BaaSError
from ..database.connection import BaaSManager
from ..database.schemas import UserRecord

logger = logging.getLogger(__name__)


@dataclass
class SessionValidation:
    """Outcome of validating a session token"""
    client: Optional[BaaSClient]
    valid: bool
    user: Optional[UserRecord] = None
    error: Optional[str] = None

    @property
    def user_id(self) -> Optional[str]:
        return self.user.id if self.user else None


class SessionValidator:
    """Validates session tokens; never mutates backend state"""

    def __init__(self, manager: BaaSManager, require_verified: Optional[bool] = None):
        settings = get_settings()
        self.manager = manager
        self.users_collection = settings.USERS_COLLECTION
        self.require_verified = (
            settings.REQUIRE_VERIFIED_USERS if require_verified is None else require_verified
        )

    async def validate(self, token: Optional[str]) -> SessionValidation:
        """Refresh the token; any failure yields valid=False"""
        if not token:
            return SessionValidation(client=None, valid=False)

        client = self.manager.client(token)
        try:
            result = await client.collection(self.users_collection).auth_refresh()
        except BaaSError as e:
            if e.is_auth_error:
                # Rejected token; the handle falls back to anonymous access
                client.auth_store.clear()
                logger.info(f"Session refresh rejected: {e.message}")
            else:
                logger.warning(f"Session refresh failed: {e.message}")
            return SessionValidation(client=client, valid=False, error=e.message)

        record = result.get("record")
        if not client.auth_store.is_valid or not isinstance(record, dict):
            return SessionValidation(client=client, valid=False, error="No user record")

        user = UserRecord.model_validate(record)
        if self.require_verified and not user.verified:
            return SessionValidation(client=client, valid=False, user=user, error="User not verified")

        return SessionValidation(client=client, valid=True, user=user)
