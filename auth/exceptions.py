"""
Error taxonomy for the auth API.

Every error knows its HTTP status and renders the JSON error envelope
``{"status": "error", "message": ..., "details"?: ..., "errors"?: {...}}``.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

INVALID_DATA_MESSAGE = "The given data was invalid."
INVALID_CREDENTIALS_MESSAGE = (
    "The provided credentials are incorrect or the account does not exist."
)


class AuthError(Exception):
    """Base class for errors returned to the client."""

    status_code: int = 500

    def __init__(self, message: str, *, details: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self, debug: bool = False) -> Dict[str, Any]:
        body: Dict[str, Any] = {"status": "error", "message": self.message}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(AuthError):
    """Request failed its rule set; carries a field → messages mapping."""

    status_code = 422

    def __init__(
        self, errors: Dict[str, List[str]], message: str = INVALID_DATA_MESSAGE
    ) -> None:
        super().__init__(message)
        self.errors = errors

    def to_dict(self, debug: bool = False) -> Dict[str, Any]:
        body = super().to_dict(debug)
        body["errors"] = self.errors
        return body


class InvalidCredentialsError(ValidationError):
    """Same answer for unknown email and wrong password."""

    def __init__(self) -> None:
        super().__init__({"email": [INVALID_CREDENTIALS_MESSAGE]})


class UnauthorizedError(AuthError):
    status_code = 401

    def __init__(self, message: str = "Unauthenticated.") -> None:
        super().__init__(message)


class RevocationError(AuthError):
    status_code = 400

    def __init__(self) -> None:
        super().__init__("Logout failed.", details="Could not revoke current token.")


class InternalError(AuthError):
    """Unexpected failure; the cause is only shown to clients in debug mode."""

    status_code = 500

    def __init__(self, message: str, cause: Optional[BaseException] = None) -> None:
        super().__init__(message)
        self.cause = cause

    def to_dict(self, debug: bool = False) -> Dict[str, Any]:
        body = super().to_dict(debug)
        if debug and self.cause is not None:
            body["details"] = str(self.cause)
        return body
