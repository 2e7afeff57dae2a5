from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping

from .errors import MalformedInput, PersonNotFound

GENDERS = ("male", "female", "other", "")

# Document key -> dataclass attribute, for the free-form text attributes.
_TEXT_FIELDS = {
    "name": "name",
    "year": "year",
    "birthYear": "birth_year",
    "deathYear": "death_year",
    "bio": "bio",
    "marriedCity": "married_city",
    "photo": "photo",
}

_KNOWN_KEYS = frozenset(_TEXT_FIELDS) | {"id", "gender", "deceased", "parents", "spouses", "children"}


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _id_list(value: Any) -> list[str]:
    """Coerce a relationship field into a list of string ids (order preserved)."""

    if not isinstance(value, (list, tuple)):
        return []
    out: list[str] = []
    for item in value:
        if item is None:
            continue
        s = str(item).strip()
        if s:
            out.append(s)
    return out


def _flag(value: Any) -> bool:
    """Booleans pass through; strings count as true only for "true", "1" or "yes"."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    if isinstance(value, (int, float)):
        return value != 0
    return False


def _gender(value: Any) -> str:
    g = _text(value).lower()
    if g in ("m", "man"):
        return "male"
    if g in ("f", "woman"):
        return "female"
    return g if g in GENDERS else ""


@dataclass
class Person:
    id: str
    name: str = ""
    year: str = ""
    birth_year: str = ""
    death_year: str = ""
    bio: str = ""
    gender: str = ""
    married_city: str = ""
    photo: str = ""
    deceased: bool = False
    parents: list[str] = field(default_factory=list)
    spouses: list[str] = field(default_factory=list)
    # Derived from every other person's ``parents``; rebuilt by normalize().
    children: list[str] = field(default_factory=list)
    # Keys we do not model are carried through export untouched.
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any], *, person_id: str | None = None) -> "Person":
        pid = _text(raw.get("id")) or _text(person_id)
        if not pid:
            raise MalformedInput("person record has no id")

        kwargs: dict[str, Any] = {attr: _text(raw.get(key)) for key, attr in _TEXT_FIELDS.items()}
        return cls(
            id=pid,
            gender=_gender(raw.get("gender")),
            deceased=_flag(raw.get("deceased")),
            parents=_id_list(raw.get("parents")),
            spouses=_id_list(raw.get("spouses")),
            children=_id_list(raw.get("children")),
            extra={k: v for k, v in raw.items() if k not in _KNOWN_KEYS},
            **kwargs,
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = dict(self.extra)
        out["id"] = self.id
        for key, attr in _TEXT_FIELDS.items():
            out[key] = getattr(self, attr)
        out["gender"] = self.gender
        out["deceased"] = self.deceased
        out["parents"] = list(self.parents)
        out["spouses"] = list(self.spouses)
        out["children"] = list(self.children)
        return out

    @property
    def display_name(self) -> str:
        return self.name or self.id

    @property
    def lifespan(self) -> str:
        if self.birth_year or self.death_year:
            return f"{self.birth_year}–{self.death_year}" if self.death_year else self.birth_year
        return self.year

    def is_root(self) -> bool:
        return not self.parents


@dataclass
class FamilyGraph:
    """The whole person table.

    One instance is owned by whoever currently holds the data and is passed by
    reference to the normalizer, the resolver and the mutation helpers.
    """

    people: dict[str, Person] = field(default_factory=dict)

    def __contains__(self, person_id: object) -> bool:
        return person_id in self.people

    def __iter__(self) -> Iterator[Person]:
        return iter(self.people.values())

    def __len__(self) -> int:
        return len(self.people)

    def get(self, person_id: str) -> Person | None:
        return self.people.get(person_id)

    def require(self, person_id: str) -> Person:
        person = self.people.get(person_id)
        if person is None:
            raise PersonNotFound(person_id)
        return person

    def copy(self) -> "FamilyGraph":
        return copy.deepcopy(self)


def graph_from_document(doc: Any) -> FamilyGraph:
    """Build a graph from an import document shaped ``{"people": {id: person}}``.

    Raises ``MalformedInput`` if the top-level shape is wrong. Relationship
    contents are not validated here; run ``normalize()`` on the result.
    """

    if not isinstance(doc, Mapping):
        raise MalformedInput("expected a JSON object with a 'people' property")
    people_raw = doc.get("people")
    if not isinstance(people_raw, Mapping):
        raise MalformedInput("expected a JSON object with a 'people' property")

    people: dict[str, Person] = {}
    for key, raw in people_raw.items():
        if not isinstance(raw, Mapping):
            raise MalformedInput(f"person {key!r} is not an object")
        person = Person.from_dict(raw, person_id=str(key))
        # The mapping key is authoritative for identity.
        person.id = str(key)
        people[person.id] = person
    return FamilyGraph(people=people)


def graph_to_document(graph: FamilyGraph) -> dict[str, Any]:
    return {"people": {pid: p.to_dict() for pid, p in graph.people.items()}}
