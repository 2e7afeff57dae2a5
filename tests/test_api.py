from __future__ import annotations

import json
from pathlib import Path
from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from familytree.main import create_app
from familytree.routes import auth as auth_routes
from familytree.service import TreeService
from familytree.store import FileGraphStore

ADMIN = {"X-Admin-Key": "open-sesame"}


@pytest.fixture()
def data_file(tmp_path: Path) -> Path:
    return tmp_path / "family.json"


@pytest.fixture()
def client(monkeypatch: pytest.MonkeyPatch, family, data_file: Path) -> Iterator[TestClient]:
    monkeypatch.setenv("ADMIN_KEY", "open-sesame")
    monkeypatch.setenv("ADMIN_KEY_HASH", "")
    monkeypatch.setenv("JWT_SECRET", "api-test-secret-0123456789abcdef")
    auth_routes._login_attempts.clear()
    tree = TreeService(FileGraphStore(data_file), graph=family)
    with TestClient(create_app(tree)) as c:
        yield c


def test_health(client: TestClient) -> None:
    assert client.get("/health").json() == {"ok": True}


def test_config_status(client: TestClient) -> None:
    body = client.get("/config/status").json()
    assert body["adminKeyPresent"] is True
    assert body["storeBackend"] == "file"
    assert body["people"] == 15


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


def test_relationship(client: TestClient) -> None:
    r = client.get("/relationship", params={"a": "p2", "b": "c1"})
    assert r.status_code == 200
    body = r.json()
    assert body["relationship"]["kind"] == "avuncular"
    assert body["relationship"]["label"] == "aunt"
    assert body["relationship"]["elder"] is True
    assert body["description"] == "Alice is Carol's aunt."


def test_relationship_cousin_payload(client: TestClient) -> None:
    rel = client.get("/relationship", params={"a": "d1", "b": "c3"}).json()["relationship"]
    assert rel["kind"] == "cousin"
    assert (rel["degree"], rel["removal"]) == (1, 1)
    assert rel["rule"] == "cousin"


def test_relationship_unknown_person(client: TestClient) -> None:
    r = client.get("/relationship", params={"a": "c1", "b": "nobody"})
    assert r.status_code == 404


def test_relationship_path(client: TestClient) -> None:
    body = client.get("/relationship/path", params={"from_id": "p1s", "to_id": "g1"}).json()
    assert [step["name"] for step in body["path"]] == ["Mum", "Dad", "Harold"]
    assert body["hops"] == 2


def test_people_list_and_search(client: TestClient) -> None:
    body = client.get("/people", params={"roots_only": True}).json()
    assert [p["id"] for p in body["results"]] == ["gg", "g1w", "p1s", "x"]

    found = client.get("/people/search", params={"q": "car"}).json()
    assert [p["name"] for p in found["results"]] == ["Carol"]
    assert client.get("/people/search", params={"q": "c"}).json()["results"] == []


def test_get_person(client: TestClient) -> None:
    body = client.get("/people/c1").json()
    assert body["name"] == "Carol"
    assert body["parents"] == [{"id": "p1", "name": "Dad"}, {"id": "p1s", "name": "Mum"}]
    assert body["children"] == [{"id": "d1", "name": "Daisy"}]
    assert "spouses" not in body
    assert body["deceased"] is False
    assert client.get("/people/nobody").status_code == 404


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


def test_create_person_requires_admin(client: TestClient, data_file: Path) -> None:
    r = client.post("/people", json={"name": "Eve"})
    assert r.status_code == 401
    assert not data_file.exists()


def test_create_person_persists(client: TestClient, data_file: Path) -> None:
    r = client.post(
        "/people",
        json={"id": "eve", "name": "Eve", "gender": "female", "birthYear": 2001, "parents": ["c1"]},
        headers=ADMIN,
    )
    assert r.status_code == 201
    assert r.json()["parents"] == [{"id": "c1", "name": "Carol"}]

    saved = json.loads(data_file.read_text(encoding="utf-8"))
    assert saved["people"]["eve"]["birthYear"] == "2001"
    assert "eve" in saved["people"]["c1"]["children"]

    rel = client.get("/relationship", params={"a": "eve", "b": "p1"}).json()
    assert rel["relationship"]["label"] == "granddaughter"


def test_create_person_validation(client: TestClient) -> None:
    assert client.post("/people", json={"name": ""}, headers=ADMIN).status_code == 400
    assert client.post("/people", json={"name": "A", "parents": ["nobody"]}, headers=ADMIN).status_code == 404


def test_update_person(client: TestClient) -> None:
    r = client.patch("/people/x", json={"marriedCity": "Utrecht", "spouses": ["g2"]}, headers=ADMIN)
    assert r.status_code == 200
    assert r.json()["marriedCity"] == "Utrecht"
    rel = client.get("/relationship", params={"a": "g2", "b": "x"}).json()["relationship"]
    assert rel["label"] == "wife"


def test_cycle_rejected(client: TestClient) -> None:
    assert client.post("/people/gg/parents/d1", headers=ADMIN).status_code == 400
    assert client.post("/people/c1/parents/c1", headers=ADMIN).status_code == 400
    assert client.post("/people/x/spouses/x", headers=ADMIN).status_code == 400


def test_parent_and_spouse_edges(client: TestClient) -> None:
    assert client.post("/people/x/parents/k2", headers=ADMIN).status_code == 200
    rel = client.get("/relationship", params={"a": "k2", "b": "x"}).json()["relationship"]
    assert rel["label"] == "father"

    assert client.delete("/people/x/parents/k2", headers=ADMIN).status_code == 200
    rel = client.get("/relationship", params={"a": "k2", "b": "x"}).json()["relationship"]
    assert rel["kind"] == "unrelated"

    assert client.post("/people/x/spouses/g2", headers=ADMIN).status_code == 200
    assert client.delete("/people/g2/spouses/x", headers=ADMIN).status_code == 200
    assert "spouses" not in client.get("/people/x").json()


def test_delete_person(client: TestClient) -> None:
    r = client.delete("/people/p1", headers=ADMIN)
    assert r.status_code == 200
    assert client.get("/relationship", params={"a": "p1", "b": "c1"}).status_code == 404
    assert [p["id"] for p in client.get("/people/c1").json()["parents"]] == ["p1s"]


def test_failed_save_reports_error_and_keeps_edit(monkeypatch: pytest.MonkeyPatch, family, tmp_path: Path) -> None:
    monkeypatch.setenv("ADMIN_KEY", "open-sesame")
    monkeypatch.setenv("ADMIN_KEY_HASH", "")
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    tree = TreeService(FileGraphStore(blocker / "family.json"), graph=family)

    with TestClient(create_app(tree)) as c:
        r = c.delete("/people/x", headers=ADMIN)
        assert r.status_code == 502
        assert c.get("/people/x").status_code == 404
        assert c.get("/config/status").json()["unsavedChanges"] is True


def test_unreadable_data_file_is_not_overwritten(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    corrupt = tmp_path / "family.json"
    corrupt.write_text("{\"people\": {", encoding="utf-8")
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.setenv("FAMILYTREE_DATA_FILE", str(corrupt))
    monkeypatch.setenv("ADMIN_KEY", "open-sesame")
    monkeypatch.setenv("ADMIN_KEY_HASH", "")

    with TestClient(create_app()) as c:
        assert c.get("/config/status").json()["loadFailed"] is True
        assert c.post("/people", json={"name": "Eve"}, headers=ADMIN).status_code == 502
    assert corrupt.read_text(encoding="utf-8") == "{\"people\": {"


# ---------------------------------------------------------------------------
# Import / export
# ---------------------------------------------------------------------------


def test_export(client: TestClient) -> None:
    doc = client.get("/data").json()
    assert set(doc) == {"people"}
    assert doc["people"]["p1"]["spouses"] == ["p1s"]


def test_import(client: TestClient, data_file: Path) -> None:
    doc = {"people": {"a": {"name": "A", "gender": "male"}, "b": {"name": "B", "parents": ["a"], "children": ["zz"]}}}
    r = client.post("/data", json=doc, headers=ADMIN)
    assert r.status_code == 200
    assert r.json() == {"ok": True, "people": 2}

    exported = client.get("/data").json()
    assert exported["people"]["a"]["children"] == ["b"]
    assert exported["people"]["b"]["children"] == []
    assert json.loads(data_file.read_text(encoding="utf-8")) == exported


def test_import_malformed_keeps_state(client: TestClient) -> None:
    r = client.post("/data", json={"persons": {}}, headers=ADMIN)
    assert r.status_code == 400
    assert len(client.get("/data").json()["people"]) == 15


def test_import_requires_admin(client: TestClient) -> None:
    assert client.post("/data", json={"people": {}}).status_code == 401


def test_save_retry(client: TestClient, data_file: Path) -> None:
    assert client.post("/data/save").status_code == 401
    assert client.post("/data/save", headers=ADMIN).status_code == 200
    assert len(json.loads(data_file.read_text(encoding="utf-8"))["people"]) == 15


# ---------------------------------------------------------------------------
# Session login
# ---------------------------------------------------------------------------


def test_login_session_and_csrf(client: TestClient) -> None:
    assert client.get("/auth/me").json() == {"admin": False}
    assert client.post("/auth/login", json={"password": "wrong"}).status_code == 401

    r = client.post("/auth/login", json={"password": "open-sesame"})
    assert r.status_code == 200
    assert client.get("/auth/me").json() == {"admin": True}

    # Cookie sessions need the double-submit CSRF token on writes.
    assert client.post("/people", json={"name": "Eve"}).status_code == 403
    csrf = client.cookies.get("familytree_csrf")
    r = client.post("/people", json={"name": "Eve"}, headers={"X-CSRF-Token": csrf})
    assert r.status_code == 201

    # A second login with a live session cookie needs no CSRF header.
    assert client.post("/auth/login", json={"password": "open-sesame"}).status_code == 200

    client.get("/auth/logout")
    assert client.get("/auth/me").json() == {"admin": False}


def test_login_rate_limited(client: TestClient) -> None:
    for _ in range(5):
        assert client.post("/auth/login", json={"password": "wrong"}).status_code == 401
    assert client.post("/auth/login", json={"password": "open-sesame"}).status_code == 429
