"""
Tests for the questionnaire web API (/api/*).

Uses Flask test client with the built-in catalog; no catalog service needed.
"""

import sys
from pathlib import Path
from unittest.mock import patch

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

import app as web_app
from app import app
from estimate_flow.catalog import default_catalog
from estimate_flow.errors import CatalogError


@pytest.fixture
def client():
    app.config["TESTING"] = True
    # Clear sessions between tests
    with web_app.sessions_lock:
        web_app.sessions.clear()
    web_app.catalog = default_catalog()
    with app.test_client() as client:
        yield client
    web_app.catalog = None


def _start(client, **payload):
    resp = client.post("/api/start", json=payload)
    assert resp.status_code == 200
    return resp.get_json()


def _answer(client, session_id, question_id, values):
    return client.post("/api/answer", json={
        "session_id": session_id,
        "question_id": question_id,
        "values": values,
    })


def _question(client, session_id):
    resp = client.get(f"/api/question?session_id={session_id}")
    assert resp.status_code == 200
    return resp.get_json()


class TestIndex:
    def test_serves_page(self, client):
        resp = client.get("/")
        assert resp.status_code == 200
        assert b"Describe your project" in resp.data


class TestCategories:
    def test_lists_keywords(self, client):
        resp = client.get("/api/categories")
        assert resp.status_code == 200
        categories = resp.get_json()["categories"]
        assert categories["Roofing"] == ["roof", "shingle", "gutter", "leak"]

    def test_catalog_unavailable(self, client):
        web_app.catalog = None
        with patch("app.load_catalog", side_effect=CatalogError("service down")):
            resp = client.get("/api/categories")
        assert resp.status_code == 503


class TestStart:
    def test_matches_description(self, client):
        data = _start(client, description="I want to paint my walls")
        assert data["session_id"]
        assert data["matched"] == ["Interior Painting"]
        assert data["session_id"] in web_app.sessions

    def test_no_match_lists_categories(self, client):
        data = _start(client, description="hello")
        assert data["session_id"] is None
        assert data["matched"] == []
        assert data["suggestion"] is None
        assert "Roofing" in data["categories"]
        assert web_app.sessions == {}

    def test_explicit_category_uses_default_questions(self, client):
        data = _start(client, category="Mold Remediation")
        question = _question(client, data["session_id"])
        assert question["id"] == "M1"
        assert question["type"] == "multiple_choice"

    def test_unknown_category(self, client):
        resp = client.post("/api/start", json={"category": "Pool Cleaning"})
        assert resp.status_code == 400

    def test_catalog_unavailable(self, client):
        web_app.catalog = None
        with patch("app.load_catalog", side_effect=CatalogError("service down")):
            resp = client.post("/api/start", json={"description": "paint"})
        assert resp.status_code == 503


class TestQuestionFlow:
    def test_painting_flow_completes(self, client):
        session_id = _start(client, description="I want to paint my walls")["session_id"]

        question = _question(client, session_id)
        assert question["id"] == "P1"
        assert question["category"] == "Interior Painting"
        assert question["stage"] == 1
        assert question["total_stages"] == 1
        assert question["progress"] == 0

        resp = _answer(client, session_id, "P1", ["few"])
        assert resp.get_json()["accepted"]
        assert _question(client, session_id)["id"] == "P2"

        data = _answer(client, session_id, "P2", ["no"]).get_json()
        assert data["complete"]
        assert data["state"] == "complete"
        assert data["progress"] == 100

        final = _question(client, session_id)
        assert final["complete"]
        assert final["answers"]["Interior Painting"]["P1"]["answers"] == ["few"]
        assert "P3" not in final["answers"]["Interior Painting"]

        # Served answers release the session
        assert session_id not in web_app.sessions
        assert client.get(f"/api/question?session_id={session_id}").status_code == 400

    def test_roof_branches(self, client):
        session_id = _start(client, description="roof leak")["session_id"]

        data = _answer(client, session_id, "R1", ["leak", "replace"]).get_json()
        assert data["accepted"]
        assert not data["complete"]
        assert data["question_id"] == "R1"

        data = client.post("/api/confirm", json={"session_id": session_id}).get_json()
        assert data["question_id"] == "R2"

        data = _answer(client, session_id, "R2", ["attic"]).get_json()
        assert data["question_id"] == "R3"
        assert "branch_transition" in data["transitions"]

        data = _answer(client, session_id, "R3", ["metal"]).get_json()
        assert data["complete"]

    def test_bad_value_not_accepted(self, client):
        session_id = _start(client, description="paint")["session_id"]
        resp = _answer(client, session_id, "P1", ["purple"])
        assert resp.status_code == 200
        data = resp.get_json()
        assert not data["accepted"]
        assert data["reason"]
        assert _question(client, session_id)["id"] == "P1"

    def test_values_must_be_list(self, client):
        session_id = _start(client, description="paint")["session_id"]
        resp = client.post("/api/answer", json={
            "session_id": session_id, "question_id": "P1", "values": "few",
        })
        assert resp.status_code == 400

    def test_confirm_on_single_choice(self, client):
        session_id = _start(client, description="paint")["session_id"]
        data = client.post("/api/confirm", json={"session_id": session_id}).get_json()
        assert not data["accepted"]


class TestInvalidSession:
    def test_question(self, client):
        assert client.get("/api/question?session_id=nope").status_code == 400

    def test_answer(self, client):
        resp = client.post("/api/answer", json={"session_id": "nope", "values": []})
        assert resp.status_code == 400

    def test_confirm(self, client):
        assert client.post("/api/confirm", json={}).status_code == 400


class TestEnd:
    def test_end_removes_session(self, client):
        session_id = _start(client, description="paint")["session_id"]
        _answer(client, session_id, "P1", ["one"])

        resp = client.post("/api/end", json={"session_id": session_id})
        assert resp.status_code == 200
        data = resp.get_json()
        assert not data["complete"]
        assert data["answers"]["Interior Painting"]["P1"]["answers"] == ["one"]

        resp = client.post("/api/end", json={"session_id": session_id})
        assert resp.status_code == 400
