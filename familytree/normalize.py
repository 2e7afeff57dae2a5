"""Restore the structural invariants of a family graph after any edit.

After ``normalize()``:

- every id in ``parents``/``spouses``/``children`` exists in the graph
- ``children`` of p is exactly the set of people listing p as a parent
- spouse links are symmetric
- no relationship list contains the same id twice

Normalization never raises and runs in a single pass. It does not reject
self-parenting or ancestry cycles; those are refused at write time by
``familytree.mutations`` and bounded by depth caps in the resolver.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from .errors import MalformedInput
from .models import FamilyGraph, Person

log = logging.getLogger(__name__)


def _dedupe(ids: Iterable[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for i in ids:
        if i in seen:
            continue
        seen.add(i)
        out.append(i)
    return out


def normalize(graph: FamilyGraph) -> FamilyGraph:
    """Normalize ``graph`` in place and return it. Idempotent."""

    if graph.people is None:
        graph.people = {}
    people = graph.people

    # Drop dangling references, then duplicates.
    dropped = 0
    for person in people.values():
        parents = [pid for pid in person.parents if pid in people]
        spouses = [sid for sid in person.spouses if sid in people]
        dropped += (len(person.parents) - len(parents)) + (len(person.spouses) - len(spouses))
        person.parents = _dedupe(parents)
        person.spouses = _dedupe(spouses)

    # Rebuild children as the inverse of parents.
    for person in people.values():
        person.children = []
    for person in people.values():
        for pid in person.parents:
            people[pid].children.append(person.id)
    for person in people.values():
        person.children = _dedupe(person.children)

    # Propagate spouse links one way; a second pass finds nothing to add.
    added = 0
    for person in people.values():
        for sid in person.spouses:
            other = people[sid]
            if person.id not in other.spouses:
                other.spouses.append(person.id)
                added += 1

    if dropped or added:
        log.debug("normalize: dropped %d dangling references, added %d spouse back-links", dropped, added)
    return graph


def normalize_document(doc: Any) -> FamilyGraph:
    """Build and normalize a graph from a fetched document, healing its shape.

    Unlike an explicit import, a fetched document that is missing its
    ``people`` collection (or has unusable person records) is healed rather
    than rejected.
    """

    people_raw = doc.get("people") if isinstance(doc, Mapping) else None
    if not isinstance(people_raw, Mapping):
        log.warning("stored document has no 'people' collection; starting from an empty graph")
        return FamilyGraph()

    graph = FamilyGraph()
    for key, raw in people_raw.items():
        if not isinstance(raw, Mapping):
            log.warning("skipping malformed person record %r", key)
            continue
        try:
            person = Person.from_dict(raw, person_id=str(key))
        except MalformedInput:
            log.warning("skipping person record %r without an id", key)
            continue
        person.id = str(key)
        graph.people[person.id] = person
    return normalize(graph)


def check_invariants(graph: FamilyGraph) -> list[str]:
    """Return a list of invariant violations; empty for a normalized graph."""

    problems: list[str] = []
    people = graph.people or {}

    expected_children: dict[str, set[str]] = {pid: set() for pid in people}
    for person in people.values():
        for field_name in ("parents", "spouses", "children"):
            ids = getattr(person, field_name)
            if len(ids) != len(set(ids)):
                problems.append(f"{person.id}: duplicate ids in {field_name}")
            for ref in ids:
                if ref not in people:
                    problems.append(f"{person.id}: {field_name} references missing person {ref}")
        for pid in person.parents:
            if pid in expected_children:
                expected_children[pid].add(person.id)

    for pid, person in people.items():
        if set(person.children) != expected_children[pid]:
            problems.append(f"{pid}: children out of sync with parents")
        for sid in person.spouses:
            other = people.get(sid)
            if other is not None and pid not in other.spouses:
                problems.append(f"{pid}: spouse link to {sid} is not symmetric")

    return problems
