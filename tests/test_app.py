"""
Tests for the FastAPI service adapter.
"""

import json

import httpx
import pytest

pytest.importorskip("fastapi")

from fastapi.testclient import TestClient

from app.backend.main import app, get_critique_client
from lfa_core.config import CritiqueConfig
from lfa_core.critique import UNAVAILABLE_MESSAGE, CritiqueClient

CLEAN_GRAPH = {
    "nodes": [
        {"id": "i", "type": "intervention", "label": "Training"},
        {"id": "s", "type": "stakeholder", "label": "Teacher"},
    ],
    "edges": [{"id": "e1", "source": "i", "target": "s", "indicators": ["% Attendance"]}],
}

CAREER_GRAPH = {
    "nodes": [
        {"id": "g", "type": "customNode", "data": {"type": "sustainable_income", "label": "Income"}},
        {"id": "b", "type": "customNode", "data": {"type": "job_fair", "label": "Job Fair", "budget": 1000}},
    ],
    "edges": [{"id": "e1", "source": "b", "target": "g", "indicators": ["Offers"]}],
}


def stub_client(payload=None, status=200, api_key="test-key"):
    def handler(request):
        if payload is None:
            return httpx.Response(status)
        return httpx.Response(
            status, json={"choices": [{"message": {"content": json.dumps(payload)}}]}
        )

    return CritiqueClient(CritiqueConfig(api_key=api_key), transport=httpx.MockTransport(handler))


class TestService:
    def setup_method(self):
        self.client = TestClient(app)

    def teardown_method(self):
        app.dependency_overrides.clear()

    def use_critique(self, critique_client):
        app.dependency_overrides[get_critique_client] = lambda: critique_client

    def test_root(self):
        response = self.client.get("/")

        assert response.status_code == 200
        assert response.json()["domains"] == ["fln", "career"]

    def test_toolbox(self):
        response = self.client.get("/toolbox/career")

        assert response.status_code == 200
        ids = [t["id"] for t in response.json()["tools"]]
        assert "job_fair" in ids

    def test_indicator_library(self):
        everything = self.client.get("/toolbox/fln/indicators").json()["indicators"]
        for_edge = self.client.get(
            "/toolbox/fln/indicators", params={"source": "teacher_govt", "target": "pedagogy_shift"}
        ).json()["indicators"]

        assert {i["theme"] for i in everything} == {"general", "fln"}
        assert for_edge
        assert {i["type"] for i in for_edge} == {"outcome"}

    def test_unknown_domain_is_404(self):
        assert self.client.get("/toolbox/health").status_code == 404
        assert self.client.post("/compile/health", json=CLEAN_GRAPH).status_code == 404

    def test_invalid_body_is_422(self):
        response = self.client.post("/validate", json={"nodes": "not-a-list"})
        assert response.status_code == 422

    def test_validate(self):
        body = {
            "nodes": [{"id": "o", "type": "outcome"}, {"id": "i", "type": "intervention"}],
            "edges": [{"id": "e1", "source": "o", "target": "i"}],
        }

        response = self.client.post("/validate", json=body)

        assert response.status_code == 200
        errors = response.json()["errors"]
        assert [e["id"] for e in errors] == ["inv-edge-e1"]
        assert errors[0]["severity"] == "critical"
        assert errors[0]["edgeId"] == "e1"

    def test_simulate_fln(self):
        self.use_critique(stub_client(api_key=None))

        response = self.client.post("/simulate/fln", json=CLEAN_GRAPH)

        assert response.json() == {"status": "success", "score": 100, "errors": []}

    def test_simulate_career_uses_critique(self):
        self.use_critique(stub_client({"shortcomings": ["a", "b", "c", "d", "e"], "suggestions": []}))

        data = self.client.post("/simulate/career", json=CAREER_GRAPH).json()

        assert data["score"] == 50
        assert data["status"] == "failure"
        assert len(data["errors"]) == 5

    def test_simulate_career_without_key_is_rule_based(self):
        self.use_critique(stub_client(api_key=None))

        data = self.client.post("/simulate/career", json=CAREER_GRAPH).json()

        assert data == {"status": "success", "score": 100, "errors": []}

    def test_compile(self):
        data = self.client.post("/compile/career", json=CAREER_GRAPH).json()

        assert data["goal"]["narrative"] == "Income"
        assert data["outputs"][0]["narrative"] == "Job Fair"
        assert data["activities"][0]["indicators"] == ["Budget: INR 1000"]

    def test_analyze(self):
        self.use_critique(stub_client(api_key=None))

        data = self.client.post("/analyze/fln", json=CLEAN_GRAPH).json()

        assert data["domain"] == "fln"
        assert data["simulation"]["score"] == 100
        assert data["document"]["goal"]["narrative"] == "Goal not defined"

    def test_analyze_logic(self):
        self.use_critique(stub_client({"shortcomings": [], "suggestions": [], "overallAssessment": "Sound"}))

        data = self.client.post("/analyze-logic", json=CLEAN_GRAPH).json()

        assert data == {"shortcomings": [], "suggestions": [], "overallAssessment": "Sound"}

    def test_analyze_logic_fallback(self):
        self.use_critique(stub_client(status=500))

        data = self.client.post("/analyze-logic", json={**CLEAN_GRAPH, "lfa": {"goal": None}}).json()

        assert data["shortcomings"] == [UNAVAILABLE_MESSAGE]

    def test_ai_audit(self):
        self.use_critique(stub_client({"score": 70, "summary": "OK", "critical_gaps": ["x"]}))

        response = self.client.post(
            "/ai-audit",
            json={"graphData": CLEAN_GRAPH, "projectContext": {"mode": "FLN", "problemStatement": "Low ORF"}},
        )

        assert response.status_code == 200
        assert response.json()["score"] == 70
        assert response.json()["critical_gaps"] == ["x"]

    def test_ai_audit_unavailable(self):
        self.use_critique(stub_client(status=502))

        response = self.client.post("/ai-audit", json={"graphData": CLEAN_GRAPH})

        assert response.status_code == 502
