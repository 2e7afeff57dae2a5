"""Administrator edits to a family graph.

Every function here mutates the graph it is given and re-normalizes it before
returning. ``children`` is never written directly. Edits that would make a
person their own parent, ancestor or spouse are refused with
``InvalidRelationship``; imported data containing such loops is tolerated
(see ``familytree.normalize``).
"""

from __future__ import annotations

import uuid
from typing import Any, Mapping

from .errors import InvalidRelationship, MalformedInput
from .models import _TEXT_FIELDS, FamilyGraph, Person, _flag, _gender, _id_list, _text
from .normalize import normalize

# Accept both the document's camelCase keys and the attribute names.
_FIELD_ALIASES: dict[str, str] = {**_TEXT_FIELDS, **{attr: attr for attr in _TEXT_FIELDS.values()}}


def new_person_id() -> str:
    return uuid.uuid4().hex[:12]


def _ancestors(graph: FamilyGraph, person_id: str) -> set[str]:
    """Every id reachable upward through ``parents``. Terminates on cycles."""

    seen: set[str] = set()
    stack = [person_id]
    while stack:
        person = graph.get(stack.pop())
        if person is None:
            continue
        for pid in person.parents:
            if pid not in seen:
                seen.add(pid)
                stack.append(pid)
    return seen


def _check_parent_edge(graph: FamilyGraph, child_id: str, parent_id: str) -> None:
    if child_id == parent_id:
        raise InvalidRelationship("a person cannot be their own parent")
    if child_id in _ancestors(graph, parent_id):
        raise InvalidRelationship("that parent link would make a person their own ancestor")


def _check_spouse_edge(person_id: str, spouse_id: str) -> None:
    if person_id == spouse_id:
        raise InvalidRelationship("a person cannot be their own spouse")


def _apply_fields(graph: FamilyGraph, person: Person, fields: Mapping[str, Any]) -> None:
    # Validate relationship edits before touching anything.
    parents = spouses = None
    if "parents" in fields:
        parents = _id_list(fields["parents"])
        for pid in parents:
            graph.require(pid)
            _check_parent_edge(graph, person.id, pid)
    if "spouses" in fields:
        spouses = _id_list(fields["spouses"])
        for sid in spouses:
            graph.require(sid)
            _check_spouse_edge(person.id, sid)

    for key, value in fields.items():
        if key in _FIELD_ALIASES:
            setattr(person, _FIELD_ALIASES[key], _text(value))
        elif key == "gender":
            person.gender = _gender(value)
        elif key == "deceased":
            person.deceased = _flag(value)

    if parents is not None:
        person.parents = parents
    if spouses is not None:
        # Dropped spouses must lose the back-link too, or normalize() restores it.
        for sid in set(person.spouses) - set(spouses):
            other = graph.get(sid)
            if other is not None and person.id in other.spouses:
                other.spouses.remove(person.id)
        person.spouses = spouses


def add_person(graph: FamilyGraph, fields: Mapping[str, Any], *, person_id: str | None = None) -> Person:
    """Create a person from document-style ``fields``; ``name`` is required."""

    if not _text(fields.get("name")):
        raise MalformedInput("name is required")
    pid = _text(person_id) or new_person_id()
    if pid in graph:
        raise MalformedInput(f"person id already exists: {pid}")

    person = Person(id=pid)
    _apply_fields(graph, person, fields)
    graph.people[pid] = person
    normalize(graph)
    return person


def update_person(graph: FamilyGraph, person_id: str, fields: Mapping[str, Any]) -> Person:
    """Edit attributes and/or ``parents``/``spouses``. ``id`` and ``children`` are ignored."""

    person = graph.require(person_id)
    if "name" in fields and not _text(fields.get("name")):
        raise MalformedInput("name is required")
    _apply_fields(graph, person, fields)
    normalize(graph)
    return person


def delete_person(graph: FamilyGraph, person_id: str) -> Person:
    """Remove a person and every reference to them."""

    person = graph.require(person_id)
    del graph.people[person_id]
    for other in graph:
        other.parents = [pid for pid in other.parents if pid != person_id]
        other.spouses = [sid for sid in other.spouses if sid != person_id]
        other.children = [cid for cid in other.children if cid != person_id]
    normalize(graph)
    return person


def add_parent(graph: FamilyGraph, child_id: str, parent_id: str) -> Person:
    child = graph.require(child_id)
    graph.require(parent_id)
    _check_parent_edge(graph, child_id, parent_id)
    if parent_id not in child.parents:
        child.parents.append(parent_id)
    normalize(graph)
    return child


def remove_parent(graph: FamilyGraph, child_id: str, parent_id: str) -> Person:
    child = graph.require(child_id)
    child.parents = [pid for pid in child.parents if pid != parent_id]
    normalize(graph)
    return child


def add_spouse(graph: FamilyGraph, person_id: str, spouse_id: str) -> Person:
    person = graph.require(person_id)
    graph.require(spouse_id)
    _check_spouse_edge(person_id, spouse_id)
    if spouse_id not in person.spouses:
        person.spouses.append(spouse_id)
    normalize(graph)
    return person


def remove_spouse(graph: FamilyGraph, person_id: str, spouse_id: str) -> Person:
    person = graph.require(person_id)
    person.spouses = [sid for sid in person.spouses if sid != spouse_id]
    other = graph.get(spouse_id)
    if other is not None:
        other.spouses = [sid for sid in other.spouses if sid != person_id]
    normalize(graph)
    return person


def search_people(graph: FamilyGraph, query: str) -> list[Person]:
    """Case-insensitive substring match on name and bio; needs 2+ characters."""

    q = (query or "").strip().lower()
    if len(q) < 2:
        return []
    return [p for p in graph if q in p.name.lower() or q in p.bio.lower()]


def roots(graph: FamilyGraph) -> list[Person]:
    return [p for p in graph if p.is_root()]
