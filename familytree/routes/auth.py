"""Auth routes: admin login, logout, current session info."""

from __future__ import annotations

import time
from collections import defaultdict, deque
from typing import Any

from fastapi import APIRouter, HTTPException, Request, Response
from pydantic import BaseModel

from ..auth import clear_session_cookie, create_jwt, set_session_cookie, verify_admin_key

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginThrottle:
    """Failed-login counter per client address over a sliding window (in-memory)."""

    def __init__(self, max_failures: int = 5, window_secs: float = 300) -> None:
        self.max_failures = max_failures
        self.window_secs = window_secs
        self._failures: dict[str, deque[float]] = defaultdict(deque)

    def check(self, client: str) -> None:
        failures = self._failures[client]
        cutoff = time.monotonic() - self.window_secs
        while failures and failures[0] <= cutoff:
            failures.popleft()
        if len(failures) >= self.max_failures:
            raise HTTPException(
                status_code=429,
                detail=f"Too many login attempts. Try again in {int(self.window_secs) // 60} minutes.",
            )

    def fail(self, client: str) -> None:
        self._failures[client].append(time.monotonic())

    def reset(self, client: str) -> None:
        self._failures.pop(client, None)

    def clear(self) -> None:
        self._failures.clear()


_login_attempts = LoginThrottle()


class LoginRequest(BaseModel):
    password: str


@router.post("/login")
def login(body: LoginRequest, request: Request, response: Response) -> dict[str, Any]:
    """Exchange the admin key for a session cookie."""
    client = request.client.host if request.client else "unknown"
    _login_attempts.check(client)

    if not verify_admin_key(body.password):
        _login_attempts.fail(client)
        raise HTTPException(status_code=401, detail="Invalid admin key")

    set_session_cookie(response, create_jwt())
    _login_attempts.reset(client)
    return {"ok": True, "admin": True}


@router.get("/logout")
def logout(response: Response) -> dict[str, bool]:
    clear_session_cookie(response)
    return {"ok": True}


@router.get("/me")
def me(request: Request) -> dict[str, Any]:
    return {"admin": bool(getattr(request.state, "is_admin", False))}
