"""Tests for the HTTP sidecar's request routing."""

import sys, os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest

from contract_guard import SqliteSessionStore
from contract_guard import server
from contract_guard.errors import UnknownRiskError, UnknownSessionError

TEXT = "TechCorp pays $5,000 fee."


@pytest.fixture(autouse=True)
def fresh_state(tmp_path, monkeypatch):
    store = SqliteSessionStore(db_path=tmp_path / "sessions.db")
    monkeypatch.setattr(server, "_store", store)
    monkeypatch.setattr(server, "_reviews", {})
    yield store
    store.close()


def masked():
    status, data = server.handle_post("/mask", {
        "text": TEXT,
        "rules": [{"target": "TechCorp", "placeholder": "[PARTY_A]"}],
        "detectors": ["money"],
    })
    assert status == 200
    return data


def open_review():
    masking = masked()
    status, state = server.handle_post("/review/open", {
        "text": TEXT,
        "name": "nda.txt",
        "masking": masking,
        "review_id": "rev-1",
        "risks": [{
            "originalText": "[AMOUNT_1] fee",
            "riskDescription": "Fee too low",
            "reason": "Below cost",
            "level": "HIGH",
            "suggestedText": "[AMOUNT_1] monthly fee",
        }],
    })
    assert status == 200
    return state


def test_mask_and_unmask():
    data = masked()
    assert data["masked_text"] == "[PARTY_A] pays [AMOUNT_1] fee."
    assert data["total_replacements"] == 2
    status, out = server.handle_post("/unmask", {
        "text": "[PARTY_A] pays [AMOUNT_1] monthly.",
        "placeholder_map": data["placeholder_map"],
    })
    assert status == 200
    assert out["text"] == "TechCorp pays $5,000 monthly."


def test_open_review_focuses_first_risk():
    state = open_review()
    assert state["review_id"] == "rev-1"
    assert state["working_text"] == "[PARTY_A] pays [AMOUNT_1] fee."
    risk_id = state["selected_id"]
    assert risk_id.startswith("risk-chat-0-")
    assert state["focus"] == {"position": 1, "count": 1}
    highlighted = [s for s in state["segments"] if s["risk_id"]]
    assert highlighted == [{
        "text": "[AMOUNT_1] fee", "risk_id": risk_id, "level": "HIGH", "is_animating": False,
    }]


def test_accept_export_and_undo():
    risk_id = open_review()["selected_id"]
    status, state = server.handle_post("/review/accept", {
        "review_id": "rev-1", "risk_id": risk_id, "animate": False,
    })
    assert status == 200
    assert state["working_text"] == "[PARTY_A] pays [AMOUNT_1] monthly fee."
    assert state["summary"]["addressed"] == 1
    assert state["can_undo"]

    _, out = server.handle_post("/review/export", {"review_id": "rev-1"})
    assert out["text"] == "TechCorp pays $5,000 monthly fee."

    _, state = server.handle_post("/review/undo", {"review_id": "rev-1"})
    assert state["working_text"] == "[PARTY_A] pays [AMOUNT_1] fee."
    assert state["summary"]["addressed"] == 0


def test_original_segments():
    open_review()
    _, state = server.handle_post("/review/state", {"review_id": "rev-1", "original": True})
    assert "".join(s["text"] for s in state["segments"]) == TEXT


def test_saved_review_reopens_from_store():
    risk_id = open_review()["selected_id"]
    server.handle_post("/review/ignore", {"review_id": "rev-1", "risk_id": risk_id})
    server.handle_post("/review/save", {"review_id": "rev-1"})
    _, closed = server.handle_post("/review/close", {"review_id": "rev-1"})
    assert closed["status"] == "closed"
    assert server._reviews == {}

    _, state = server.handle_post("/review/state", {"review_id": "rev-1"})
    assert state["summary"]["addressed"] == 1
    assert state["summary"]["active"] == 0


def test_unknown_ids():
    open_review()
    with pytest.raises(UnknownSessionError):
        server.handle_post("/review/state", {"review_id": "missing"})
    with pytest.raises(UnknownSessionError):
        server.handle_post("/review/state", {})
    with pytest.raises(UnknownRiskError):
        server.handle_post("/review/accept", {"review_id": "rev-1", "risk_id": "nope"})


def test_unknown_path():
    open_review()
    assert server.handle_post("/review/explode", {"review_id": "rev-1"}) == (404, {"error": "not found"})


def test_open_reviews_are_capped(monkeypatch, fresh_state):
    monkeypatch.setattr(server, "MAX_OPEN_REVIEWS", 2)
    risk_id = open_review()["selected_id"]
    server.handle_post("/review/ignore", {"review_id": "rev-1", "risk_id": risk_id})
    for review_id in ("rev-2", "rev-3"):
        server.handle_post("/review/open", {"text": "plain", "review_id": review_id})
    assert list(server._reviews) == ["rev-2", "rev-3"]

    # the evicted review was saved on the way out
    assert fresh_state.get_session("rev-1").risks[0].is_addressed
    _, state = server.handle_post("/review/state", {"review_id": "rev-1"})
    assert state["summary"]["addressed"] == 1
    assert list(server._reviews) == ["rev-3", "rev-1"]
