from __future__ import annotations

from typing import Any, Callable

import pytest

from familytree.models import FamilyGraph, graph_from_document
from familytree.normalize import normalize


def _build(people: dict[str, dict[str, Any]]) -> FamilyGraph:
    doc = {"people": {pid: {"id": pid, **fields} for pid, fields in people.items()}}
    return normalize(graph_from_document(doc))


@pytest.fixture()
def make_graph() -> Callable[[dict[str, dict[str, Any]]], FamilyGraph]:
    return _build


@pytest.fixture()
def family() -> FamilyGraph:
    # Four generations below George, plus an unrelated Xavier:
    #
    #   George
    #   ├── Harold = Iris
    #   │   ├── Dad = Mum
    #   │   │   ├── Carol ── Daisy
    #   │   │   ├── Charlie
    #   │   │   └── Sam (no gender)
    #   │   └── Alice
    #   │       └── Colin ── Dylan
    #   └── Jane
    #       └── Ken
    return _build(
        {
            "gg": {"name": "George", "gender": "male"},
            "g1": {"name": "Harold", "gender": "male", "parents": ["gg"], "spouses": ["g1w"]},
            "g1w": {"name": "Iris", "gender": "female"},
            "g2": {"name": "Jane", "gender": "female", "parents": ["gg"]},
            "p1": {"name": "Dad", "gender": "male", "parents": ["g1", "g1w"]},
            "p1s": {"name": "Mum", "gender": "female", "spouses": ["p1"]},
            "p2": {"name": "Alice", "gender": "female", "parents": ["g1", "g1w"]},
            "c1": {"name": "Carol", "gender": "female", "parents": ["p1", "p1s"]},
            "c2": {"name": "Charlie", "gender": "male", "parents": ["p1", "p1s"]},
            "n1": {"name": "Sam", "gender": "", "parents": ["p1", "p1s"]},
            "c3": {"name": "Colin", "gender": "male", "parents": ["p2"]},
            "k2": {"name": "Ken", "gender": "male", "parents": ["g2"]},
            "d1": {"name": "Daisy", "gender": "female", "parents": ["c1"]},
            "d3": {"name": "Dylan", "gender": "male", "parents": ["c3"]},
            "x": {"name": "Xavier", "gender": "male"},
        }
    )
