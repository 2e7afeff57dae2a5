"""Family tree record keeping and kinship inference."""

from __future__ import annotations

from .models import FamilyGraph, Person, graph_from_document, graph_to_document
from .normalize import normalize
from .relationship import Relationship, RelationKind, describe, resolve

__all__ = [
    "FamilyGraph",
    "Person",
    "RelationKind",
    "Relationship",
    "describe",
    "graph_from_document",
    "graph_to_document",
    "normalize",
    "resolve",
]
