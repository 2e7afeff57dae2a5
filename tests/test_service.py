from __future__ import annotations

import pytest

from familytree import mutations
from familytree.errors import GraphNotFound, MalformedInput, StoreFailure, Unauthorized
from familytree.models import FamilyGraph, graph_to_document
from familytree.relationship import RelationKind
from familytree.service import TreeService


class _MemoryStore:
    name = "memory"

    def __init__(self, doc: FamilyGraph | None = None) -> None:
        self.saved = doc
        self.fail = False
        self.unreadable = False
        self.saves = 0

    def fetch_graph(self) -> FamilyGraph:
        if self.unreadable:
            raise StoreFailure("stored document is not valid JSON")
        if self.saved is None:
            raise GraphNotFound("memory")
        return self.saved.copy()

    def persist_graph(self, graph: FamilyGraph) -> None:
        if self.fail:
            raise StoreFailure("blob store unavailable")
        self.saves += 1
        self.saved = graph.copy()


def _verify(credential: str | None) -> bool:
    return credential == "sesame"


def test_load_without_stored_graph_starts_empty() -> None:
    tree = TreeService(_MemoryStore(), verify=_verify)
    assert len(tree.load()) == 0


def test_load_uses_stored_graph(family) -> None:
    tree = TreeService(_MemoryStore(family), verify=_verify)
    tree.load()
    assert tree.resolve("p2", "c1").label == "aunt"
    assert tree.describe("c1", "c3") == "Carol is Colin's first cousin."
    assert [p.id for p in tree.search("dad")] == ["p1"]


def test_mutation_requires_credential(family) -> None:
    store = _MemoryStore(family)
    tree = TreeService(store, verify=_verify)
    tree.load()
    with pytest.raises(Unauthorized):
        tree.mutate("wrong", lambda g: mutations.delete_person(g, "p1"))
    assert "p1" in tree.graph
    assert store.saves == 0


def test_mutation_is_normalized_and_persisted(family) -> None:
    store = _MemoryStore(family)
    tree = TreeService(store, verify=_verify)
    tree.load()

    person = tree.mutate("sesame", lambda g: mutations.add_person(g, {"name": "Eve", "parents": ["c1"]}))

    assert store.saves == 1
    assert person.id in store.saved.require("c1").children
    assert tree.unsaved_changes is False


def test_failed_edit_leaves_graph_untouched(family) -> None:
    tree = TreeService(_MemoryStore(family), verify=_verify)
    tree.load()
    before = graph_to_document(tree.graph)

    with pytest.raises(MalformedInput):
        tree.mutate("sesame", lambda g: mutations.update_person(g, "c1", {"name": ""}))
    assert graph_to_document(tree.graph) == before


def test_failed_save_keeps_memory_ahead(family) -> None:
    store = _MemoryStore(family)
    tree = TreeService(store, verify=_verify)
    tree.load()
    store.fail = True

    with pytest.raises(StoreFailure):
        tree.mutate("sesame", lambda g: mutations.delete_person(g, "x"))
    assert "x" not in tree.graph
    assert "x" in store.saved
    assert tree.unsaved_changes is True

    store.fail = False
    tree.save("sesame")
    assert "x" not in store.saved
    assert tree.unsaved_changes is False


def test_import_replaces_graph(family) -> None:
    store = _MemoryStore(family)
    tree = TreeService(store, verify=_verify)
    tree.load()

    doc = {"people": {"a": {"name": "A"}, "b": {"name": "B", "parents": ["a", "ghost"], "gender": "female"}}}
    tree.import_document("sesame", doc)

    assert sorted(tree.graph.people) == ["a", "b"]
    assert tree.graph.require("b").parents == ["a"]
    assert tree.resolve("b", "a").kind is RelationKind.DESCENDANT
    assert tree.resolve("b", "a").label == "daughter"
    assert sorted(store.saved.people) == ["a", "b"]


def test_malformed_import_keeps_prior_state(family) -> None:
    tree = TreeService(_MemoryStore(family), verify=_verify)
    tree.load()
    with pytest.raises(MalformedInput):
        tree.import_document("sesame", {"persons": {}})
    assert len(tree.graph) == len(family)


def test_import_requires_credential(family) -> None:
    tree = TreeService(_MemoryStore(family), verify=_verify)
    tree.load()
    with pytest.raises(Unauthorized):
        tree.import_document(None, {"people": {}})
    assert len(tree.graph) == len(family)


def test_export_round_trips(family) -> None:
    tree = TreeService(_MemoryStore(), verify=_verify, graph=family)
    assert tree.export_document() == graph_to_document(family)


def test_unreadable_store_is_not_overwritten(family) -> None:
    store = _MemoryStore(family)
    store.unreadable = True
    tree = TreeService(store, verify=_verify)

    with pytest.raises(StoreFailure):
        tree.load()
    assert tree.load_failed is True

    with pytest.raises(StoreFailure):
        tree.mutate("sesame", lambda g: mutations.add_person(g, {"name": "Eve"}))
    with pytest.raises(StoreFailure):
        tree.save("sesame")
    assert store.saves == 0
    assert len(store.saved) == len(family)

    store.unreadable = False
    tree.load()
    assert tree.load_failed is False
    tree.mutate("sesame", lambda g: mutations.add_person(g, {"name": "Eve"}))
    assert store.saves == 1


def test_import_after_unreadable_load_replaces_store(family) -> None:
    store = _MemoryStore(family)
    store.unreadable = True
    tree = TreeService(store, verify=_verify)
    with pytest.raises(StoreFailure):
        tree.load()

    tree.import_document("sesame", {"people": {"a": {"name": "A"}}})
    assert tree.load_failed is False
    assert sorted(store.saved.people) == ["a"]
