"""Request-level admin credential extraction.

Reading the tree is public, so nothing is rejected here. The middleware only
populates:
  - ``request.state.credential``: the ``X-Admin-Key`` header, else the session token
  - ``request.state.is_admin``: whether that credential currently verifies

Route handlers pass the credential on to ``TreeService``, which makes the
actual decision. Cookie-authenticated state-changing requests must also carry
a double-submit CSRF token.
"""

from __future__ import annotations

import secrets

import jwt as pyjwt
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from .auth import (
    _JWT_COOKIE_NAME,
    _should_refresh,
    create_jwt,
    decode_jwt,
    set_session_cookie,
    verify_admin_key,
)

ADMIN_KEY_HEADER = "x-admin-key"

# CSRF settings.
_CSRF_COOKIE_NAME = "familytree_csrf"
_CSRF_HEADER_NAME = "x-csrf-token"
_CSRF_TOKEN_LENGTH = 32
_CSRF_SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})
# Login authenticates with the key itself, not the session cookie.
_CSRF_EXEMPT_PATHS = frozenset({"/auth/login"})


def _ensure_csrf_cookie(request: Request, response: Response) -> None:
    """Set the CSRF cookie if not already present so JS can read it."""
    if request.cookies.get(_CSRF_COOKIE_NAME):
        return
    token = secrets.token_hex(_CSRF_TOKEN_LENGTH)
    response.set_cookie(
        key=_CSRF_COOKIE_NAME,
        value=token,
        httponly=False,  # JS must be able to read it.
        samesite="lax",
        path="/",
    )


class AdminMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        request.state.credential = None
        request.state.is_admin = False
        claims = None

        header_key = request.headers.get(ADMIN_KEY_HEADER, "")
        token = request.cookies.get(_JWT_COOKIE_NAME)

        if header_key:
            request.state.credential = header_key
            request.state.is_admin = verify_admin_key(header_key)
        elif token:
            try:
                claims = decode_jwt(token)
            except pyjwt.PyJWTError:
                claims = None
            if claims is not None:
                # CSRF check for state-changing methods.
                if request.method not in _CSRF_SAFE_METHODS and request.url.path not in _CSRF_EXEMPT_PATHS:
                    csrf_cookie = request.cookies.get(_CSRF_COOKIE_NAME, "")
                    csrf_header = request.headers.get(_CSRF_HEADER_NAME, "")
                    if not csrf_cookie or not secrets.compare_digest(csrf_cookie.encode(), csrf_header.encode()):
                        return JSONResponse({"detail": "CSRF token mismatch"}, status_code=403)
                request.state.credential = token
                request.state.is_admin = claims.get("role") == "admin"

        response = await call_next(request)
        _ensure_csrf_cookie(request, response)

        # Sliding window refresh: issue a new token when >50% of lifetime is gone.
        if claims is not None and _should_refresh(claims):
            set_session_cookie(response, create_jwt(claims.get("sub", "admin")))

        return response
