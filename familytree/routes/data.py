"""Whole-document import/export.

Endpoints:
  GET  /data       export the graph as ``{"people": {...}}``
  POST /data       replace the graph with an imported document (admin)
  POST /data/save  persist the in-memory graph again, e.g. after a failed save (admin)
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Request

from ..deps import get_credential, get_tree, http_error
from ..errors import FamilyTreeError

router = APIRouter(tags=["data"])


@router.get("/data")
def export_data(request: Request) -> dict[str, Any]:
    return get_tree(request).export_document()


@router.post("/data")
def import_data(request: Request, doc: Any = Body(...)) -> dict[str, Any]:
    tree = get_tree(request)
    try:
        graph = tree.import_document(get_credential(request), doc)
    except FamilyTreeError as e:
        raise http_error(e) from e
    return {"ok": True, "people": len(graph)}


@router.post("/data/save")
def save_data(request: Request) -> dict[str, Any]:
    tree = get_tree(request)
    try:
        tree.save(get_credential(request))
    except FamilyTreeError as e:
        raise http_error(e) from e
    return {"ok": True, "people": len(tree.graph)}
