"""Shared helpers for route handlers."""

from __future__ import annotations

from fastapi import HTTPException, Request

from .errors import (
    FamilyTreeError,
    InvalidRelationship,
    MalformedInput,
    PersonNotFound,
    StoreFailure,
    Unauthorized,
)
from .service import TreeService


def get_tree(request: Request) -> TreeService:
    return request.app.state.tree


def get_credential(request: Request) -> str | None:
    return getattr(request.state, "credential", None)


def http_error(exc: FamilyTreeError) -> HTTPException:
    if isinstance(exc, PersonNotFound):
        return HTTPException(status_code=404, detail=str(exc))
    if isinstance(exc, Unauthorized):
        return HTTPException(status_code=401, detail="Unauthorized")
    if isinstance(exc, (MalformedInput, InvalidRelationship)):
        return HTTPException(status_code=400, detail=str(exc))
    if isinstance(exc, StoreFailure):
        return HTTPException(status_code=502, detail=f"Failed to save data: {exc}")
    return HTTPException(status_code=500, detail=str(exc))
