"""Owns the in-memory graph and sequences load -> normalize -> mutate -> persist.

Mutations are gated on a credential check and applied to a copy of the graph,
so a rejected or failing edit leaves the current graph untouched. Persistence
happens after the new graph is swapped in: a failed save surfaces as
``StoreFailure`` while memory stays ahead of the store until the next
successful ``save()``.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, TypeVar

from .auth import verify_credential
from .errors import GraphNotFound, StoreFailure, Unauthorized
from .models import FamilyGraph, Person, graph_from_document, graph_to_document
from .mutations import search_people
from .normalize import normalize
from .relationship import Relationship, describe, relationship_path, resolve
from .store import GraphStore

log = logging.getLogger(__name__)

T = TypeVar("T")


class TreeService:
    def __init__(
        self,
        store: GraphStore,
        *,
        verify: Callable[[str | None], bool] = verify_credential,
        graph: FamilyGraph | None = None,
    ) -> None:
        self.store = store
        self._verify = verify
        self._graph = normalize(graph) if graph is not None else FamilyGraph()
        self._lock = threading.Lock()
        self.unsaved_changes = False
        # True after the stored graph failed to read; persisting is refused
        # until a load or an import succeeds.
        self.load_failed = False

    @property
    def graph(self) -> FamilyGraph:
        return self._graph

    # -- store ---------------------------------------------------------------

    def load(self) -> FamilyGraph:
        """Replace the in-memory graph with the stored one (empty if none yet)."""
        try:
            graph = self.store.fetch_graph()
        except GraphNotFound:
            log.info("No stored family graph yet; starting empty")
            graph = FamilyGraph()
        except StoreFailure:
            self.load_failed = True
            raise
        normalize(graph)
        with self._lock:
            self._graph = graph
            self.unsaved_changes = False
            self.load_failed = False
        log.info("Loaded %d people from %s store", len(graph), self.store.name)
        return graph

    def _persist(self) -> None:
        if self.load_failed:
            raise StoreFailure("stored graph could not be loaded; refusing to overwrite it")
        try:
            self.store.persist_graph(self._graph)
        except StoreFailure:
            self.unsaved_changes = True
            log.warning("Saving the family graph failed; changes are kept in memory", exc_info=True)
            raise
        self.unsaved_changes = False

    def _authorize(self, credential: str | None) -> None:
        if not self._verify(credential):
            raise Unauthorized("admin credential required")

    def save(self, credential: str | None) -> None:
        """Persist the current graph, e.g. to retry after a failed save."""
        self._authorize(credential)
        with self._lock:
            self._persist()

    # -- mutation ------------------------------------------------------------

    def mutate(self, credential: str | None, edit: Callable[[FamilyGraph], T]) -> T:
        """Apply ``edit`` to a copy of the graph, normalize, swap in and persist."""
        self._authorize(credential)
        with self._lock:
            working = self._graph.copy()
            result = edit(working)
            self._graph = normalize(working)
            self.unsaved_changes = True
            self._persist()
        return result

    def import_document(self, credential: str | None, doc: Any) -> FamilyGraph:
        """Replace the whole graph. ``MalformedInput`` leaves the current graph in place."""
        self._authorize(credential)
        graph = normalize(graph_from_document(doc))
        with self._lock:
            self._graph = graph
            self.unsaved_changes = True
            self.load_failed = False
            log.info("Imported %d people", len(graph))
            self._persist()
        return graph

    def export_document(self) -> dict[str, Any]:
        return graph_to_document(self._graph)

    # -- queries -------------------------------------------------------------

    def resolve(self, id_a: str, id_b: str) -> Relationship:
        return resolve(self._graph, id_a, id_b)

    def describe(self, id_a: str, id_b: str) -> str:
        return describe(self._graph, id_a, id_b)

    def path(self, id_a: str, id_b: str, *, max_hops: int) -> list[str]:
        return relationship_path(self._graph, id_a, id_b, max_hops=max_hops)

    def search(self, query: str) -> list[Person]:
        return search_people(self._graph, query)
