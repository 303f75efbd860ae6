"""Sync-specific exceptions for error handling.

Every error carries an HTTP status, a machine-readable code and a
human-readable message. ``to_dict()`` renders the REST error body.
"""
from __future__ import annotations
from typing import Optional


class BridgeError(Exception):
    """Base exception for all bridge operations.

    Attributes:
        status: HTTP status code
        code: Machine-readable error code
        message: Human-readable description
    """

    status = 500
    code = "internal_error"

    def __init__(self, message: str, code: Optional[str] = None, status: Optional[int] = None):
        self.message = message
        if code is not None:
            self.code = code
        if status is not None:
            self.status = status
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert to REST error response format."""
        return {
            "code": self.code,
            "message": self.message,
            "data": {"status": self.status},
        }


class AuthorizationError(BridgeError):
    """Transport, secret or token check failed."""
    status = 403
    code = "rest_forbidden"


class ValidationError(BridgeError):
    """Missing or malformed request fields, or wrong content type."""
    status = 400
    code = "rest_invalid_param"


class NotFoundError(BridgeError):
    """Referenced record does not exist."""
    status = 404
    code = "rest_ba_user_not_found"


class PreconditionError(BridgeError):
    """Record exists but is not eligible for the operation."""
    status = 422
    code = "rest_ba_no_account"


class StoreError(BridgeError):
    """Underlying store unavailable."""
    status = 503
    code = "store_unavailable"


class AccountCreationError(StoreError):
    """The account directory rejected an insert."""
    status = 500
    code = "account_creation_failed"


class NotificationError(BridgeError):
    """Password-setup email could not be delivered."""
    status = 502
    code = "notification_failed"
