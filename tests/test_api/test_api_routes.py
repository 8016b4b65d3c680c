"""Tests for the scoring and memory HTTP API."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from src.api.app import create_app
from src.memory.exceptions import MemoryPersistError
from src.memory.service import AdaptiveMemory
from src.server_api.exceptions import EasyMemeApiError


@pytest.fixture
def backend():
    client = MagicMock()
    client.submit_analysis = AsyncMock(return_value={"ok": True, "id": 7})
    return client


@pytest.fixture
def api(memory, backend):
    with TestClient(create_app(memory, backend)) as client:
        yield client


def _analysis(**overrides) -> dict:
    data = {
        "riskScore": 50,
        "riskLevel": "WARNING",
        "isGoldenDog": True,
        "riskFactors": {"honeypotRisk": "LOW", "taxRisk": "HIGH", "ownerRisk": "LOW", "concentrationRisk": "LOW"},
        "reasoning": "r",
        "recommendation": "b",
    }
    data.update(overrides)
    return data


def test_health(api):
    resp = api.get("/api/v1/health")
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert body["memory_ok"] is True
    assert body["backend_configured"] is True
    assert resp.headers["X-Content-Type-Options"] == "nosniff"


def test_health_degraded_when_memory_unusable(api, memory_path):
    memory_path.parent.mkdir(parents=True)
    memory_path.write_text("{ truncated", encoding="utf-8")
    body = api.get("/api/v1/health").json()
    assert body["status"] == "degraded"
    assert body["memory_ok"] is False
    assert "unparsable" in body["memory_error"]


def test_classify(api, make_token):
    resp = api.post("/api/v1/analysis/classify", json=make_token())
    assert resp.status_code == 200
    body = resp.json()
    assert body["riskLevel"] == "SAFE"
    assert body["isGoldenDog"] is True
    assert body["goldenDogScore"] == 92


def test_score(api):
    resp = api.post(
        "/api/v1/analysis/score",
        json={"riskScore": 50, "isGoldenDog": False, "riskFactors": {"taxRisk": "HIGH"}},
    )
    assert resp.status_code == 200
    assert resp.json() == {"goldenDogScore": 29}


def test_score_rejects_out_of_range(api):
    assert api.post("/api/v1/analysis/score", json={"riskScore": 150, "isGoldenDog": True}).status_code == 422


def test_submit_fills_score_and_forwards(api, backend):
    resp = api.post("/api/v1/analysis/0xabc/submit", json=_analysis())
    assert resp.status_code == 200
    body = resp.json()
    assert body["analysis"]["goldenDogScore"] == 47
    assert body["result"] == {"ok": True, "id": 7}
    address, analysis = backend.submit_analysis.await_args.args
    assert address == "0xabc"
    assert analysis.golden_dog_score == 47


def test_submit_missing_key(api):
    data = _analysis()
    del data["reasoning"]
    resp = api.post("/api/v1/analysis/0xabc/submit", json=data)
    assert resp.status_code == 422
    assert resp.json()["detail"] == "analysis.reasoning is required"


def test_submit_bad_enum(api):
    resp = api.post("/api/v1/analysis/0xabc/submit", json=_analysis(riskLevel="MAYBE"))
    assert resp.status_code == 422


def test_submit_backend_error(api, backend):
    backend.submit_analysis.side_effect = EasyMemeApiError(500, "Internal Server Error", "boom")
    resp = api.post("/api/v1/analysis/0xabc/submit", json=_analysis())
    assert resp.status_code == 502
    assert resp.json()["upstreamStatus"] == 500


def test_submit_without_backend(memory):
    with TestClient(create_app(memory)) as client:
        resp = client.post("/api/v1/analysis/0xabc/submit", json=_analysis())
    assert resp.status_code == 503


def test_weights_default(api):
    resp = api.get("/api/v1/memory/weights")
    assert resp.json() == {
        "baseMultiplier": 1.0,
        "goldenDogBias": 12.0,
        "highPenalty": 15.0,
        "mediumPenalty": 6.0,
    }


def test_record_outcome(api):
    resp = api.post(
        "/api/v1/memory/outcomes",
        json={"tokenAddress": "0x1", "outcome": "MOON", "isGoldenDog": True, "maxGain": 3.5},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["weights"]["goldenDogBias"] == 13
    assert body["rulePerformance"][0]["ruleId"] == "golden_dog_decision"
    assert api.get("/api/v1/memory/weights").json()["highPenalty"] == 14.5


def test_record_outcome_rejects_unknown_outcome(api):
    resp = api.post("/api/v1/memory/outcomes", json={"tokenAddress": "0x1", "outcome": "LAMBO"})
    assert resp.status_code == 422


def test_record_feedback(api):
    resp = api.post(
        "/api/v1/memory/feedback",
        json={"tokenAddress": "0x1", "feedbackType": "REPORT_RUG", "userId": "u1", "userReputation": 100},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["feedback"]["channel"] == "OPENCLAW_DIALOG"
    assert body["feedback"]["feedbackWeight"] == pytest.approx(1)
    assert body["weights"]["goldenDogBias"] == pytest.approx(10)


def test_record_feedback_validation(api):
    resp = api.post(
        "/api/v1/memory/feedback",
        json={"tokenAddress": "0x1", "feedbackType": "LIKE", "userId": "u1"},
    )
    assert resp.status_code == 422


def test_performance(api):
    api.post("/api/v1/memory/outcomes", json={"tokenAddress": "0x1", "outcome": "RUG", "isGoldenDog": False})
    resp = api.get("/api/v1/memory/performance")
    windows = resp.json()["windows"]
    assert [w["window"] for w in windows] == ["7d", "30d", "all"]
    assert windows[2]["byRule"][0] == {
        "ruleId": "golden_dog_decision",
        "correct": 1.0,
        "total": 1.0,
        "accuracy": 1.0,
        "updatedAt": windows[2]["byRule"][0]["updatedAt"],
    }


def test_persist_error_is_500():
    memory = MagicMock(spec=AdaptiveMemory)
    memory.record_outcome = AsyncMock(
        side_effect=MemoryPersistError("record-outcome", OSError("disk full"))
    )
    with TestClient(create_app(memory)) as client:
        resp = client.post("/api/v1/memory/outcomes", json={"tokenAddress": "0x1", "outcome": "RUG"})
    assert resp.status_code == 500
    assert resp.json() == {"detail": "record-outcome failed: could not persist memory: disk full"}
