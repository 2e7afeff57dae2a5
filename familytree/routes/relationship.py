from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Query, Request

from ..deps import get_tree, http_error
from ..errors import PersonNotFound

router = APIRouter(tags=["relationship"])


@router.get("/relationship")
def relationship(
    request: Request,
    a: str = Query(min_length=1, max_length=64),
    b: str = Query(min_length=1, max_length=64),
) -> dict[str, Any]:
    """What person ``a`` is to person ``b``."""
    tree = get_tree(request)
    try:
        rel = tree.resolve(a, b)
        sentence = tree.describe(a, b)
    except PersonNotFound as e:
        raise http_error(e) from e
    return {"a": a, "b": b, "relationship": rel.to_dict(), "description": sentence}


@router.get("/relationship/path")
def relationship_path(
    request: Request,
    from_id: str = Query(min_length=1, max_length=64),
    to_id: str = Query(min_length=1, max_length=64),
    max_hops: int = Query(default=12, ge=1, le=50),
) -> dict[str, Any]:
    tree = get_tree(request)
    try:
        path_ids = tree.path(from_id, to_id, max_hops=max_hops)
    except PersonNotFound as e:
        raise http_error(e) from e

    graph = tree.graph
    return {
        "from": from_id,
        "to": to_id,
        "path": [{"id": pid, "name": graph.require(pid).display_name} for pid in path_ids],
        "hops": max(0, len(path_ids) - 1),
    }
