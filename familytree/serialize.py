from __future__ import annotations

from typing import Any

from .models import FamilyGraph, Person


def _compact(value: Any) -> Any:
    """Drop None, blank strings and empty containers, recursively. False and 0 stay."""
    if isinstance(value, str):
        value = value.strip()
    elif isinstance(value, list):
        value = [v for v in map(_compact, value) if v is not None]
    elif isinstance(value, dict):
        value = {k: c for k, c in ((k, _compact(v)) for k, v in value.items()) if c is not None}
    if value is None or value in ("", [], {}):
        return None
    return value


def _person_ref(graph: FamilyGraph, person_id: str) -> dict[str, Any]:
    other = graph.get(person_id)
    return {"id": person_id, "name": other.display_name if other else None}


def person_summary(person: Person) -> dict[str, Any]:
    return {
        "id": person.id,
        "type": "person",
        "name": person.display_name,
        "gender": person.gender or None,
        "lifespan": person.lifespan or None,
        "deceased": person.deceased,
        "root": person.is_root(),
    }


def person_detail(graph: FamilyGraph, person: Person) -> dict[str, Any]:
    """Full public payload for one person, with names resolved for related people.

    Empty text fields and empty relationship lists are omitted.
    """

    payload = {
        **person_summary(person),
        "birthYear": person.birth_year,
        "deathYear": person.death_year,
        "year": person.year,
        "bio": person.bio,
        "marriedCity": person.married_city,
        "photo": person.photo,
        "parents": [_person_ref(graph, pid) for pid in person.parents],
        "spouses": [_person_ref(graph, sid) for sid in person.spouses],
        "children": [_person_ref(graph, cid) for cid in person.children],
    }
    return _compact(payload) or {}
