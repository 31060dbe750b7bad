"""
Radio Error Taxonomy
Exceptions raised by services and translated to HTTP responses in radio.main
"""

from typing import Any, Optional


class RadioError(Exception):
    """Base application error carrying an HTTP status"""

    status_code: int = 500

    def __init__(self, detail: str, status_code: Optional[int] = None):
        super().__init__(detail)
        self.detail = detail
        if status_code is not None:
            self.status_code = status_code


class ValidationError(RadioError):
    """Malformed client input; the message names the offending field"""
    status_code = 400


class AuthError(RadioError):
    """Missing (401) or invalid/expired (403) session"""
    status_code = 401


class NotFoundError(RadioError):
    status_code = 404


class ConflictError(RadioError):
    status_code = 409


class UpstreamError(RadioError):
    """External API returned non-2xx or could not be reached"""
    status_code = 502

    def __init__(self, detail: str, status_code: Optional[int] = None, payload: Any = None):
        super().__init__(detail, status_code)
        self.payload = payload


class PersistenceError(RadioError):
    """Backend read/write failure"""
    status_code = 500


class RoomError(RadioError):
    status_code = 500


class WebhookProcessingError(RadioError):
    """Raised inside callback processing; never surfaced to the webhook caller"""
    status_code = 200
