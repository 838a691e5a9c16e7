"""Invintus Sync - Error Taxonomy.

Every error the ingestion core can raise carries a stable ``code`` and a
human-readable message. The HTTP layer renders them as
``{"code": ..., "message": ..., "status": ...}``.
"""

from typing import Any, Dict, Optional


class SyncError(Exception):
    """Base class for terminal ingestion errors."""

    code = "invintus_error"
    # None -> use the authorization-required status (401 anonymous, 403 authenticated)
    status_code: Optional[int] = None

    def __init__(self, message: str, code: Optional[str] = None):
        self.message = message
        if code:
            self.code = code
        super().__init__(message)

    def to_dict(self, status: int) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "status": status}


class MalformedPayload(SyncError):
    """Raised when the payload is missing or cannot be parsed."""

    code = "invintus_malformed_payload"
    status_code = 400


class InvalidMethod(SyncError):
    """Raised when ``action.method`` is not ``events``."""

    code = "invintus_invalid_method"


class InvalidAction(SyncError):
    """Raised when ``action.type`` is outside the supported vocabulary."""

    code = "invintus_invalid_action"


class Forbidden(SyncError):
    """Raised when the caller lacks the capability for an operation."""

    code = "invintus_forbidden"


class NotFound(SyncError):
    """Raised when a delete targets an event with no local record."""

    code = "invintus_no_event"


class UpstreamValidationError(SyncError):
    """Raised when the sender flagged the payload as erroneous (``errors.hasError``)."""

    code = "invintus_upstream_error"
