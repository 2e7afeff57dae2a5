"""Error taxonomy for the family tree core.

None of these are fatal: the in-memory graph stays normalized and queryable
whichever of them is raised.
"""

from __future__ import annotations


class FamilyTreeError(Exception):
    """Base class for every error raised by the core."""


class GraphNotFound(FamilyTreeError):
    """No graph has been persisted yet. Callers treat this as an empty graph."""


class Unauthorized(FamilyTreeError):
    """A mutation was attempted without a valid admin credential."""


class MalformedInput(FamilyTreeError):
    """Input does not have the required shape (e.g. import without ``people``)."""


class PersonNotFound(FamilyTreeError, KeyError):
    def __init__(self, person_id: str) -> None:
        super().__init__(person_id)
        self.person_id = person_id

    def __str__(self) -> str:
        return f"person not found: {self.person_id}"


class InvalidRelationship(FamilyTreeError):
    """An edit would create a self-reference or an ancestry cycle."""


class StoreFailure(FamilyTreeError):
    """Persisting the graph failed. In-memory state is kept so the caller may retry."""
