"""Persistence for the family graph document.

The whole graph is stored as one JSON document shaped
``{"people": {id: person}}``. Two backends are provided:

- ``FileGraphStore``: a JSON file on local disk
- ``PostgresGraphStore``: one JSONB row per document key

Both raise ``GraphNotFound`` when nothing has been saved yet and
``StoreFailure`` when the backend itself fails.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Callable, ContextManager, Protocol

import psycopg
from psycopg.types.json import Jsonb

from .db import db_conn
from .errors import GraphNotFound, StoreFailure
from .models import FamilyGraph, graph_to_document
from .normalize import normalize_document

log = logging.getLogger(__name__)

DEFAULT_DATA_FILE = "family-data.json"
DEFAULT_DOCUMENT_KEY = "family/family-data.json"


class GraphStore(Protocol):
    name: str

    def fetch_graph(self) -> FamilyGraph: ...

    def persist_graph(self, graph: FamilyGraph) -> None: ...


class FileGraphStore:
    name = "file"

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def fetch_graph(self) -> FamilyGraph:
        if not self.path.exists():
            raise GraphNotFound(str(self.path))
        try:
            with self.path.open("r", encoding="utf-8") as f:
                doc = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise StoreFailure(f"could not read {self.path}: {e}") from e
        return normalize_document(doc)

    def persist_graph(self, graph: FamilyGraph) -> None:
        payload = json.dumps(graph_to_document(graph), indent=2, ensure_ascii=False)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Write next to the target, then swap it in.
            fd, tmp_name = tempfile.mkstemp(prefix=".family-", suffix=".json", dir=self.path.parent)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    f.write(payload)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            raise StoreFailure(f"could not write {self.path}: {e}") from e
        log.info("Saved %d people to %s", len(graph), self.path)


_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS family_document (
    key        text PRIMARY KEY,
    document   jsonb NOT NULL,
    updated_at timestamptz NOT NULL DEFAULT now()
)
""".strip()


class PostgresGraphStore:
    name = "postgres"

    def __init__(
        self,
        database_url: str | None = None,
        *,
        key: str = DEFAULT_DOCUMENT_KEY,
        connect: Callable[[str | None], ContextManager[Any]] = db_conn,
    ) -> None:
        self.database_url = database_url
        self.key = key
        self._connect = connect

    def fetch_graph(self) -> FamilyGraph:
        try:
            with self._connect(self.database_url) as conn:
                conn.execute(_CREATE_TABLE_SQL)
                row = conn.execute(
                    "SELECT document FROM family_document WHERE key = %s",
                    (self.key,),
                ).fetchone()
        except psycopg.Error as e:
            raise StoreFailure(f"could not load document {self.key!r}: {e}") from e

        if not row:
            raise GraphNotFound(self.key)
        doc = row[0]
        if isinstance(doc, (str, bytes)):
            doc = json.loads(doc)
        return normalize_document(doc)

    def persist_graph(self, graph: FamilyGraph) -> None:
        try:
            with self._connect(self.database_url) as conn:
                conn.execute(_CREATE_TABLE_SQL)
                conn.execute(
                    """
                    INSERT INTO family_document (key, document)
                    VALUES (%s, %s)
                    ON CONFLICT (key) DO UPDATE
                      SET document = EXCLUDED.document,
                          updated_at = now()
                    """.strip(),
                    (self.key, Jsonb(graph_to_document(graph))),
                )
                conn.commit()
        except psycopg.Error as e:
            raise StoreFailure(f"could not save document {self.key!r}: {e}") from e
        log.info("Saved %d people to document %r", len(graph), self.key)


def store_from_env() -> GraphStore:
    """Postgres when ``DATABASE_URL`` is set, otherwise a local JSON file."""

    url = os.environ.get("DATABASE_URL")
    if url:
        key = os.environ.get("FAMILYTREE_DOCUMENT_KEY") or DEFAULT_DOCUMENT_KEY
        return PostgresGraphStore(url, key=key)
    return FileGraphStore(os.environ.get("FAMILYTREE_DATA_FILE") or DEFAULT_DATA_FILE)
