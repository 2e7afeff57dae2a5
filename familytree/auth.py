"""Administrator authentication.

There is a single administrator identified by a shared key:

- ``ADMIN_KEY``: the key in plain text, or
- ``ADMIN_KEY_HASH``: a bcrypt hash of it (see ``python -m familytree.admin hash-key``)

When neither is configured every mutation is refused. A successful login is
turned into a JWT session cookie so the key is not resent with every request.
A credential is either the raw key or such a session token.
"""

from __future__ import annotations

import logging
import os
import secrets
import time
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from fastapi import Response
from passlib.context import CryptContext

log = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Admin key
# ---------------------------------------------------------------------------

_pwd_ctx = CryptContext(schemes=["bcrypt"], deprecated="auto")

_ADMIN_KEY_ENV = "ADMIN_KEY"
_ADMIN_KEY_HASH_ENV = "ADMIN_KEY_HASH"


def hash_key(plain: str) -> str:
    return _pwd_ctx.hash(plain)


def admin_key_configured() -> bool:
    return bool(os.environ.get(_ADMIN_KEY_HASH_ENV) or os.environ.get(_ADMIN_KEY_ENV))


def verify_admin_key(candidate: str | None) -> bool:
    """Check ``candidate`` against the configured admin key."""
    if not candidate:
        return False

    hashed = os.environ.get(_ADMIN_KEY_HASH_ENV, "")
    if hashed:
        try:
            return _pwd_ctx.verify(candidate, hashed)
        except ValueError:
            log.error("%s is not a valid bcrypt hash", _ADMIN_KEY_HASH_ENV)
            return False

    expected = os.environ.get(_ADMIN_KEY_ENV, "")
    if not expected:
        log.warning("No admin key configured; rejecting admin credential")
        return False
    return secrets.compare_digest(candidate.encode("utf-8"), expected.encode("utf-8"))


# ---------------------------------------------------------------------------
# Session tokens
# ---------------------------------------------------------------------------

_JWT_COOKIE_NAME = "familytree_session"
_SESSION_ALGORITHM = "HS256"
_SESSION_TTL = timedelta(hours=24)

# Used when JWT_SECRET is unset: sessions then die with the process.
_ephemeral_secret = secrets.token_urlsafe(48)


def _session_secret() -> str:
    return os.environ.get("JWT_SECRET") or _ephemeral_secret


def create_jwt(subject: str = "admin") -> str:
    """Issue an admin session token valid for 24 hours."""
    issued = datetime.now(timezone.utc)
    claims = {
        "sub": subject,
        "role": "admin",
        "iat": int(issued.timestamp()),
        "exp": int((issued + _SESSION_TTL).timestamp()),
    }
    return jwt.encode(claims, _session_secret(), algorithm=_SESSION_ALGORITHM)


def decode_jwt(token: str) -> dict[str, Any]:
    """Verify ``token`` and return its claims. Raises ``jwt.PyJWTError``."""
    return jwt.decode(token, _session_secret(), algorithms=[_SESSION_ALGORITHM])


def set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=_JWT_COOKIE_NAME,
        value=token,
        max_age=int(_SESSION_TTL.total_seconds()),
        httponly=True,
        samesite="lax",
        path="/",
    )


def clear_session_cookie(response: Response) -> None:
    response.delete_cookie(key=_JWT_COOKIE_NAME, path="/")


def _should_refresh(claims: dict[str, Any]) -> bool:
    """True once less than half of the token's lifetime remains."""
    try:
        issued, expires = int(claims["iat"]), int(claims["exp"])
    except (KeyError, TypeError, ValueError):
        return False
    if expires <= issued:
        return False
    return expires - time.time() < (expires - issued) / 2


def verify_credential(credential: str | None) -> bool:
    """The boolean gate for every mutation: a valid admin key or admin session token."""
    if not credential:
        return False
    try:
        claims = decode_jwt(credential)
    except jwt.PyJWTError:
        return verify_admin_key(credential)
    return claims.get("role") == "admin"
