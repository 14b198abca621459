"""
Request rule sets and response envelopes for the auth routes.

The request models are the declarative rule sets: they are evaluated before
any write happens, and ``format_validation_errors`` turns pydantic's error
list into the ``field -> [messages]`` map returned with a 422.
"""

from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional

from email_validator import EmailNotValidError, validate_email
from pydantic import BaseModel, Field, ValidationInfo, field_validator

from auth.password import MAX_PASSWORD_BYTES
from auth.tokens import TOKEN_TYPE


def _normalise_email(value: str) -> str:
    try:
        validate_email(value, check_deliverability=False)
    except EmailNotValidError:
        raise ValueError("The email field must be a valid email address.") from None
    return value.lower()


def _strip(value: Any) -> Any:
    return value.strip() if isinstance(value, str) else value


# ── Request rule sets ──────────────────────────────────────────────────


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., min_length=1, max_length=255)
    # Declared before ``password`` so the password rule can compare against it.
    password_confirmation: Optional[str] = None
    password: str = Field(..., min_length=8)

    @field_validator("name", "email", mode="before")
    @classmethod
    def strip_whitespace(cls, value: Any) -> Any:
        return _strip(value)

    @field_validator("email")
    @classmethod
    def email_is_valid(cls, value: str) -> str:
        return _normalise_email(value)

    @field_validator("password")
    @classmethod
    def password_is_confirmed(cls, value: str, info: ValidationInfo) -> str:
        if len(value.encode()) > MAX_PASSWORD_BYTES:
            raise ValueError(
                f"The password field must not be greater than {MAX_PASSWORD_BYTES} bytes."
            )
        if info.data.get("password_confirmation") != value:
            raise ValueError("The password field confirmation does not match.")
        return value


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1)

    @field_validator("email", mode="before")
    @classmethod
    def strip_whitespace(cls, value: Any) -> Any:
        return _strip(value)

    @field_validator("email")
    @classmethod
    def email_is_valid(cls, value: str) -> str:
        return _normalise_email(value)


# ── Response envelopes ─────────────────────────────────────────────────


class UserPublic(BaseModel):
    id: str
    name: str
    email: str


class UserDetail(UserPublic):
    created_at: str


class AuthResponse(BaseModel):
    status: str = "success"
    message: Optional[str] = None
    user: UserPublic
    access_token: str
    token_type: str = TOKEN_TYPE


class CurrentUserResponse(BaseModel):
    status: str = "success"
    user: UserDetail


class MessageResponse(BaseModel):
    status: str = "success"
    message: str


class ErrorResponse(BaseModel):
    status: str = "error"
    message: str
    details: Optional[str] = None
    errors: Optional[Dict[str, List[str]]] = None


# ── Validation error formatting ────────────────────────────────────────


def _message_for(field: str, error: Dict[str, Any]) -> str:
    label = field.replace("_", " ")
    kind = error.get("type", "")
    ctx = error.get("ctx") or {}
    value = error.get("input")

    if kind == "missing" or (isinstance(value, str) and not value.strip()):
        return f"The {label} field is required."
    if kind == "string_type":
        return f"The {label} field must be a string."
    if kind == "string_too_short":
        return f"The {label} field must be at least {ctx.get('min_length')} characters."
    if kind == "string_too_long":
        return f"The {label} field must not be greater than {ctx.get('max_length')} characters."
    if kind == "value_error" and "error" in ctx:
        return str(ctx["error"])
    return error.get("msg", "The given data was invalid.")


def format_validation_errors(errors: Iterable[Dict[str, Any]]) -> Dict[str, List[str]]:
    """
    Collapse pydantic / FastAPI errors into ``{field: [message, ...]}``.

    The leading ``"body"`` location that FastAPI adds is dropped; errors with
    no field (malformed JSON, wrong body type) are filed under ``"body"``.
    """
    result: Dict[str, List[str]] = {}
    for error in errors:
        loc = [part for part in error.get("loc", ()) if part != "body"]
        field = str(loc[0]) if loc and isinstance(loc[0], str) else "body"
        message = _message_for(field, error)
        messages = result.setdefault(field, [])
        if message not in messages:
            messages.append(message)
    return result
