"""Relationship inference over a normalized family graph.

``resolve(graph, a, b)`` names what person A is to person B ("mother",
"second cousin 1× removed", ...). Nothing about kinship is stored: every
answer is derived from ``parents``/``spouses`` on each call.

Rules run in a fixed order and the first match wins, so specific relations
(spouse, parent, sibling, ...) are always reported before the generic path
search. Every upward walk and the path search are bounded by a depth cap and
a visited set, so cyclic input (someone listed as their own ancestor) can only
cause a rule to miss, never to loop.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Optional

from .labels import avuncular_label, cousin_label, gendered, lineal_label
from .models import FamilyGraph, Person

# Upward walk cap for the direct ancestor/descendant rules.
MAX_LINEAL_DEPTH = 12
# Generations collected per person for the common-ancestor (cousin) search.
MAX_COUSIN_DEPTH = 8
# Bounds for the fallback undirected path search.
MAX_PATH_HOPS = 24
MAX_PATH_NODES = 10_000


class RelationKind(str, Enum):
    SELF = "self"
    SPOUSE = "spouse"
    ANCESTOR = "ancestor"
    DESCENDANT = "descendant"
    SIBLING = "sibling"
    AVUNCULAR = "avuncular"
    COUSIN = "cousin"
    RELATED = "related"
    UNRELATED = "unrelated"


@dataclass(frozen=True)
class Relationship:
    """What person A is to person B.

    ``degree`` is the generation count for ancestor/descendant and the cousin
    degree for cousins. ``elder`` is set for avuncular results: True when A is
    the aunt/uncle, False when A is the niece/nephew. ``path`` holds the ids
    from A to B for ``related`` results.
    """

    kind: RelationKind
    label: str
    degree: int = 0
    removal: int = 0
    elder: Optional[bool] = None
    path: tuple[str, ...] = ()
    path_names: tuple[str, ...] = ()
    rule: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "label": self.label,
            "degree": self.degree,
            "removal": self.removal,
            "elder": self.elder,
            "path": list(self.path),
            "path_names": list(self.path_names),
            "rule": self.rule,
        }


Rule = Callable[[FamilyGraph, Person, Person], Optional[Relationship]]


# ---------------------------------------------------------------------------
# Graph walks
# ---------------------------------------------------------------------------


def _lineal_distance(graph: FamilyGraph, start: str, target: str, *, max_depth: int) -> int | None:
    """Number of parent edges from ``start`` up to ``target``, or None.

    Breadth-first, so the shortest line wins when pedigree collapse gives
    several routes.
    """

    seen: set[str] = {start}
    frontier = [start]
    for depth in range(1, max_depth + 1):
        next_frontier: list[str] = []
        for node in frontier:
            person = graph.get(node)
            if person is None:
                continue
            for pid in person.parents:
                if pid == target:
                    return depth
                if pid in seen:
                    continue
                seen.add(pid)
                next_frontier.append(pid)
        frontier = next_frontier
        if not frontier:
            break
    return None


def _ancestor_generations(graph: FamilyGraph, start: str, *, max_depth: int) -> dict[str, int]:
    """Return ancestor_id -> generations above ``start`` (1 = parent).

    The start person is not included.
    """

    generations: dict[str, int] = {}
    seen: set[str] = {start}
    frontier = [start]
    for depth in range(1, max_depth + 1):
        next_frontier: list[str] = []
        for node in frontier:
            person = graph.get(node)
            if person is None:
                continue
            for pid in person.parents:
                if pid in seen:
                    continue
                seen.add(pid)
                generations[pid] = depth
                next_frontier.append(pid)
        frontier = next_frontier
        if not frontier:
            break
    return generations


def _neighbor_index(graph: FamilyGraph) -> dict[str, list[str]]:
    """Undirected adjacency: parents, children, spouses and their inverses."""

    # dict keys double as an insertion-ordered set so the search is deterministic.
    index: dict[str, dict[str, None]] = {pid: {} for pid in graph.people}

    def link(src: str, dst: str) -> None:
        if src in index and dst in index and src != dst:
            index[src][dst] = None

    for person in graph:
        for pid in person.parents:
            link(person.id, pid)
            link(pid, person.id)
        for cid in person.children:
            link(person.id, cid)
            link(cid, person.id)
        for sid in person.spouses:
            link(person.id, sid)
            link(sid, person.id)

    return {pid: list(nbrs) for pid, nbrs in index.items()}


def _bfs_path(
    neighbors: dict[str, list[str]],
    start: str,
    goal: str,
    *,
    max_hops: int,
    max_nodes: int,
) -> list[str]:
    if start == goal:
        return [start]

    parents: dict[str, str | None] = {start: None}
    depth: dict[str, int] = {start: 0}
    frontier = [start]

    while frontier:
        if len(parents) > max_nodes:
            break

        next_frontier: list[str] = []
        for node in frontier:
            node_depth = depth[node]
            if node_depth >= max_hops:
                continue

            for nb in neighbors.get(node, []):
                if nb in parents:
                    continue
                parents[nb] = node
                depth[nb] = node_depth + 1

                if nb == goal:
                    path = [goal]
                    cur: str | None = node
                    while cur is not None:
                        path.append(cur)
                        cur = parents[cur]
                    path.reverse()
                    return path

                next_frontier.append(nb)

        frontier = next_frontier

    return []


def relationship_path(
    graph: FamilyGraph,
    id_a: str,
    id_b: str,
    *,
    max_hops: int = MAX_PATH_HOPS,
    max_nodes: int = MAX_PATH_NODES,
) -> list[str]:
    """Shortest chain of ids linking A to B through any family edge, or []."""

    graph.require(id_a)
    graph.require(id_b)
    return _bfs_path(_neighbor_index(graph), id_a, id_b, max_hops=max_hops, max_nodes=max_nodes)


# ---------------------------------------------------------------------------
# Rules, in evaluation order
# ---------------------------------------------------------------------------


def _rule_self(graph: FamilyGraph, a: Person, b: Person) -> Relationship | None:
    if a.id == b.id:
        return Relationship(RelationKind.SELF, "self")
    return None


def _rule_spouse(graph: FamilyGraph, a: Person, b: Person) -> Relationship | None:
    if b.id in a.spouses:
        return Relationship(RelationKind.SPOUSE, gendered("spouse", a.gender))
    return None


def _rule_parent(graph: FamilyGraph, a: Person, b: Person) -> Relationship | None:
    if a.id in b.parents:
        return Relationship(RelationKind.ANCESTOR, lineal_label(1, ascending=True, gender=a.gender), degree=1)
    return None


def _rule_child(graph: FamilyGraph, a: Person, b: Person) -> Relationship | None:
    if b.id in a.parents:
        return Relationship(RelationKind.DESCENDANT, lineal_label(1, ascending=False, gender=a.gender), degree=1)
    return None


def _rule_ancestor(graph: FamilyGraph, a: Person, b: Person) -> Relationship | None:
    degree = _lineal_distance(graph, b.id, a.id, max_depth=MAX_LINEAL_DEPTH)
    if degree is None:
        return None
    return Relationship(
        RelationKind.ANCESTOR,
        lineal_label(degree, ascending=True, gender=a.gender),
        degree=degree,
    )


def _rule_descendant(graph: FamilyGraph, a: Person, b: Person) -> Relationship | None:
    degree = _lineal_distance(graph, a.id, b.id, max_depth=MAX_LINEAL_DEPTH)
    if degree is None:
        return None
    return Relationship(
        RelationKind.DESCENDANT,
        lineal_label(degree, ascending=False, gender=a.gender),
        degree=degree,
    )


def _rule_sibling(graph: FamilyGraph, a: Person, b: Person) -> Relationship | None:
    if set(a.parents) & set(b.parents):
        return Relationship(RelationKind.SIBLING, gendered("sibling", a.gender))
    return None


def _is_sibling_of(graph: FamilyGraph, person: Person, other_id: str) -> bool:
    other = graph.get(other_id)
    if other is None or other.id == person.id:
        return False
    return bool(set(person.parents) & set(other.parents))


def _rule_avuncular(graph: FamilyGraph, a: Person, b: Person) -> Relationship | None:
    # A is a sibling of one of B's parents.
    if any(_is_sibling_of(graph, a, pid) for pid in b.parents):
        return Relationship(
            RelationKind.AVUNCULAR,
            avuncular_label(elder=True, gender=a.gender),
            elder=True,
        )
    # B is a sibling of one of A's parents.
    if any(_is_sibling_of(graph, b, pid) for pid in a.parents):
        return Relationship(
            RelationKind.AVUNCULAR,
            avuncular_label(elder=False, gender=a.gender),
            elder=False,
        )
    return None


def closest_common_ancestor(graph: FamilyGraph, id_a: str, id_b: str) -> tuple[str, int, int] | None:
    """Common ancestor minimizing genA + genB, as ``(id, genA, genB)``.

    On a tie, an ancestor at least two generations above both people wins
    over one that is a parent of either (pedigree collapse can produce both at
    the same distance), then the lowest id, so the answer does not depend on
    iteration order.
    """

    gens_a = _ancestor_generations(graph, id_a, max_depth=MAX_COUSIN_DEPTH)
    gens_b = _ancestor_generations(graph, id_b, max_depth=MAX_COUSIN_DEPTH)
    common = gens_a.keys() & gens_b.keys()
    if not common:
        return None
    best = min(
        common,
        key=lambda cid: (gens_a[cid] + gens_b[cid], min(gens_a[cid], gens_b[cid]) < 2, cid),
    )
    return best, gens_a[best], gens_b[best]


def _rule_cousin(graph: FamilyGraph, a: Person, b: Person) -> Relationship | None:
    found = closest_common_ancestor(graph, a.id, b.id)
    if found is None:
        return None
    _, gen_a, gen_b = found
    degree = min(gen_a, gen_b) - 1
    if degree < 1:
        # Sibling, avuncular or lineal: earlier rules own those.
        return None
    removal = abs(gen_a - gen_b)
    return Relationship(RelationKind.COUSIN, cousin_label(degree, removal), degree=degree, removal=removal)


def _rule_path(graph: FamilyGraph, a: Person, b: Person) -> Relationship | None:
    path = _bfs_path(_neighbor_index(graph), a.id, b.id, max_hops=MAX_PATH_HOPS, max_nodes=MAX_PATH_NODES)
    if len(path) < 2:
        return None
    names = tuple(graph.require(pid).display_name for pid in path)
    return Relationship(
        RelationKind.RELATED,
        "related via " + " → ".join(names),
        path=tuple(path),
        path_names=names,
    )


RULES: tuple[tuple[str, Rule], ...] = (
    ("self", _rule_self),
    ("spouse", _rule_spouse),
    ("parent", _rule_parent),
    ("child", _rule_child),
    ("ancestor", _rule_ancestor),
    ("descendant", _rule_descendant),
    ("sibling", _rule_sibling),
    ("avuncular", _rule_avuncular),
    ("cousin", _rule_cousin),
    ("path", _rule_path),
)

_UNRELATED = Relationship(RelationKind.UNRELATED, "unrelated", rule="unrelated")


def resolve(graph: FamilyGraph, id_a: str, id_b: str) -> Relationship:
    """Return what A is to B. Raises ``PersonNotFound`` for unknown ids.

    The graph must already be normalized; it is never modified.
    """

    a = graph.require(id_a)
    b = graph.require(id_b)
    for name, rule in RULES:
        result = rule(graph, a, b)
        if result is not None:
            return replace(result, rule=name)
    return _UNRELATED


def describe(graph: FamilyGraph, id_a: str, id_b: str) -> str:
    """Sentence form of ``resolve()``, e.g. "Alice is Bob's mother."."""

    rel = resolve(graph, id_a, id_b)
    name_a = graph.require(id_a).display_name
    name_b = graph.require(id_b).display_name

    if rel.kind is RelationKind.SELF:
        return f"{name_a} and {name_b} are the same person."
    if rel.kind is RelationKind.UNRELATED:
        return f"{name_a} and {name_b} are not related."
    if rel.kind is RelationKind.RELATED:
        between = rel.path_names[1:-1]
        if not between:
            return f"{name_a} is related to {name_b}."
        return f"{name_a} is related to {name_b} through {' → '.join(between)}."
    return f"{name_a} is {name_b}'s {rel.label}."
