"""Tests for the FastAPI session endpoint."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from wt.analysis.config import PipelineConfig
from wt.server import create_app


@pytest.fixture()
def client() -> TestClient:
    return TestClient(create_app(PipelineConfig.walking()))


@pytest.fixture()
def session(client: TestClient) -> str:
    r = client.post("/api/session")
    assert r.status_code == 201, r.text
    return r.json()["session_id"]


def test_status_ok(client: TestClient) -> None:
    r = client.get("/api/status")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


@pytest.mark.parametrize(
    ("method", "url", "body"),
    [
        ("get", "/api/session", None),
        ("get", "/api/path", None),
        ("get", "/api/stats", None),
        ("post", "/api/fix", {"ts": 0, "lat": 0.0, "lon": 0.0, "accuracy": 5.0}),
        ("post", "/api/steps", {"steps": 10}),
    ],
)
def test_requires_a_session(client: TestClient, method: str, url: str, body: dict | None) -> None:
    r = client.request(method.upper(), url, json=body)
    assert r.status_code == 409


def test_start_session_returns_config(client: TestClient) -> None:
    r = client.post("/api/session")
    assert r.status_code == 201
    data = r.json()
    assert data["config"]["max_accuracy_m"] == 50.0
    assert len(data["session_id"]) == 36


def test_fix_outcomes(client: TestClient, session: str) -> None:
    r = client.post("/api/fix", json={"ts": 0, "lat": 0.0, "lon": 0.0, "accuracy": 10.0})
    assert r.status_code == 200
    assert r.json()["outcome"] == "accepted"
    assert r.json()["point"]["lat"] == 0.0

    r = client.post("/api/fix", json={"ts": 1000, "lat": 0.001, "lon": 0.0, "accuracy": 10.0})
    assert r.json()["outcome"] == "rejected_implausible_speed"
    assert r.json()["implied_speed"] == pytest.approx(111.2, abs=0.1)

    r = client.post("/api/fix", json={"ts": 2000, "lat": 0.0, "lon": 0.0, "accuracy": 80.0})
    assert r.json()["outcome"] == "rejected_low_accuracy"
    assert r.json()["accuracy"] == 80.0

    r = client.post("/api/fix", json={"ts": 10_000, "lat": 0.001, "lon": 0.0, "accuracy": 10.0})
    assert r.json()["outcome"] == "accepted"

    snap = client.get("/api/session").json()
    assert snap["session_id"] == session
    assert snap["accepted"] == 2
    assert snap["rejected_low_accuracy"] == 1
    assert snap["rejected_implausible_speed"] == 1
    assert snap["total_meters"] == pytest.approx(111.0, abs=2.0)
    assert snap["last_outcome"] == "accepted"


def test_invalid_fix_is_422(client: TestClient, session: str) -> None:
    r = client.post("/api/fix", json={"ts": 0, "lat": 95.0, "lon": 0.0, "accuracy": 10.0})
    assert r.status_code == 422


def test_steps_and_path(client: TestClient, session: str) -> None:
    assert client.post("/api/steps", json={"steps": 100}).json() == {"total_steps": 0}
    client.post("/api/fix", json={"ts": 0, "lat": 37.5665, "lon": 126.978, "accuracy": 5.0})
    client.post("/api/fix", json={"ts": 1000, "lat": 37.566513, "lon": 126.978, "accuracy": 5.0})
    assert client.post("/api/steps", json={"steps": 102, "ts": 1500}).json() == {"total_steps": 2}

    path = client.get("/api/path").json()
    assert path[0] == {"ts": 0, "lat": 37.5665, "lon": 126.978, "velocity": 0.0}

    stats = client.get("/api/stats").json()
    assert stats["accepted"] == 2
    assert stats["path_points"] == 2


def test_new_session_discards_old_state(client: TestClient, session: str) -> None:
    client.post("/api/fix", json={"ts": 0, "lat": 37.5665, "lon": 126.978, "accuracy": 5.0})
    new_id = client.post("/api/session").json()["session_id"]
    snap = client.get("/api/session").json()
    assert new_id != session
    assert snap["accepted"] == 0
    assert snap["path"] == []
