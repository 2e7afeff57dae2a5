from __future__ import annotations

from typing import Any, Literal, Optional, Union

from fastapi import APIRouter, HTTPException, Query, Request
from pydantic import BaseModel, ConfigDict, Field

from .. import mutations
from ..deps import get_credential, get_tree, http_error
from ..errors import FamilyTreeError
from ..serialize import person_detail, person_summary

router = APIRouter(tags=["people"])

_Text = Optional[Union[str, int]]


class PersonFields(BaseModel):
    """Editable person attributes, using the document's camelCase keys."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    name: _Text = None
    year: _Text = None
    birth_year: _Text = Field(default=None, alias="birthYear")
    death_year: _Text = Field(default=None, alias="deathYear")
    bio: Optional[str] = None
    gender: Optional[Literal["male", "female", "other", ""]] = None
    married_city: Optional[str] = Field(default=None, alias="marriedCity")
    photo: Optional[str] = None
    deceased: Optional[bool] = None
    parents: Optional[list[str]] = None
    spouses: Optional[list[str]] = None

    def as_fields(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, by_alias=True)


class PersonCreate(PersonFields):
    id: Optional[str] = Field(default=None, max_length=64)


def _edit(request: Request, edit) -> Any:
    tree = get_tree(request)
    try:
        person = tree.mutate(get_credential(request), edit)
    except FamilyTreeError as e:
        raise http_error(e) from e
    return person_detail(tree.graph, tree.graph.require(person.id))


@router.get("/people")
def list_people(
    request: Request,
    limit: int = Query(default=5000, ge=1, le=50_000),
    offset: int = Query(default=0, ge=0),
    roots_only: bool = False,
) -> dict[str, Any]:
    """List people in insertion order, optionally only those without parents."""
    graph = get_tree(request).graph
    people = mutations.roots(graph) if roots_only else list(graph)
    return {
        "total": len(people),
        "results": [person_summary(p) for p in people[offset : offset + limit]],
    }


@router.get("/people/search")
def search_people(request: Request, q: str = Query(default="", max_length=200)) -> dict[str, Any]:
    matches = get_tree(request).search(q)
    return {"query": q, "results": [person_summary(p) for p in matches]}


@router.get("/people/{person_id}")
def get_person(request: Request, person_id: str) -> dict[str, Any]:
    graph = get_tree(request).graph
    person = graph.get(person_id)
    if person is None:
        raise HTTPException(status_code=404, detail=f"person not found: {person_id}")
    return person_detail(graph, person)


@router.post("/people", status_code=201)
def create_person(request: Request, body: PersonCreate) -> dict[str, Any]:
    fields = body.as_fields()
    person_id = fields.pop("id", None)
    return _edit(request, lambda g: mutations.add_person(g, fields, person_id=person_id))


@router.patch("/people/{person_id}")
def update_person(request: Request, person_id: str, body: PersonFields) -> dict[str, Any]:
    fields = body.as_fields()
    return _edit(request, lambda g: mutations.update_person(g, person_id, fields))


@router.delete("/people/{person_id}")
def delete_person(request: Request, person_id: str) -> dict[str, Any]:
    tree = get_tree(request)
    try:
        tree.mutate(get_credential(request), lambda g: mutations.delete_person(g, person_id))
    except FamilyTreeError as e:
        raise http_error(e) from e
    return {"ok": True, "deleted": person_id}


@router.post("/people/{person_id}/parents/{parent_id}")
def add_parent(request: Request, person_id: str, parent_id: str) -> dict[str, Any]:
    return _edit(request, lambda g: mutations.add_parent(g, person_id, parent_id))


@router.delete("/people/{person_id}/parents/{parent_id}")
def remove_parent(request: Request, person_id: str, parent_id: str) -> dict[str, Any]:
    return _edit(request, lambda g: mutations.remove_parent(g, person_id, parent_id))


@router.post("/people/{person_id}/spouses/{spouse_id}")
def add_spouse(request: Request, person_id: str, spouse_id: str) -> dict[str, Any]:
    return _edit(request, lambda g: mutations.add_spouse(g, person_id, spouse_id))


@router.delete("/people/{person_id}/spouses/{spouse_id}")
def remove_spouse(request: Request, person_id: str, spouse_id: str) -> dict[str, Any]:
    return _edit(request, lambda g: mutations.remove_spouse(g, person_id, spouse_id))
