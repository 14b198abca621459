"""
Opaque bearer-token helpers.

A plaintext token has the form ``<token_id>|<secret>``.  Only the SHA-256
digest of the secret is stored; the id prefix lets the gate fetch the row
directly and compare digests in constant time.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
from typing import Optional, Tuple

from config.settings import config

TOKEN_TYPE = "Bearer"
_SEPARATOR = "|"


def generate_secret() -> str:
    """Random URL-safe secret with ``config.token_bytes`` bytes of entropy."""
    return secrets.token_urlsafe(config.token_bytes)


def hash_secret(secret: str) -> str:
    return hashlib.sha256(secret.encode()).hexdigest()


def format_token(token_id: int, secret: str) -> str:
    return f"{token_id}{_SEPARATOR}{secret}"


def parse_token(value: str) -> Optional[Tuple[int, str]]:
    """
    Split a presented token into ``(token_id, secret)``.

    Returns ``None`` for anything malformed.
    """
    token_id, sep, secret = (value or "").strip().partition(_SEPARATOR)
    if not sep or not secret or not token_id.isdigit():
        return None
    return int(token_id), secret


def secret_matches(secret: str, token_hash: str) -> bool:
    return hmac.compare_digest(hash_secret(secret), token_hash)
