"""
Tests for the AI critique client and response decoding.

The outbound HTTP call is exercised against httpx.MockTransport so no network
access is needed.
"""

import json

import httpx

from lfa_core.compiler import LFADocument, compile_graph
from lfa_core.config import CritiqueConfig
from lfa_core.critique import (
    UNAVAILABLE_MESSAGE,
    AuditReport,
    Critique,
    CritiqueClient,
    audit_graph,
    review_document,
)
from lfa_core.enums import Category, Domain
from lfa_core.graph import Edge, Graph, Node
from lfa_core.prompts import build_audit_prompts, build_review_prompts, graph_story


def completion(content):
    return httpx.Response(200, json={"choices": [{"message": {"content": content}}]})


def make_client(handler, api_key="test-key"):
    config = CritiqueConfig(api_key=api_key, url="https://critique.test/v1/chat/completions")
    return CritiqueClient(config, transport=httpx.MockTransport(handler))


def sample_graph():
    return Graph(
        [
            Node("t", "stakeholder", label="Primary Teacher", category=Category.STAKEHOLDER),
            Node("k", "intervention", label="Library kits", category=Category.INTERVENTION),
            Node("o", "outcome", label="Reading habit", category=Category.BRIDGE),
        ],
        [Edge("e1", "k", "t", interaction_type="delivers"), Edge("e2", "t", "o")],
    )


class TestGenerateJson:
    def test_request_shape(self):
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["Authorization"]
            seen["url"] = str(request.url)
            seen["body"] = json.loads(request.content)
            return completion('{"ok": true}')

        result = make_client(handler).generate_json("Be strict.", "Review this.")

        assert result == {"ok": True}
        assert seen["auth"] == "Bearer test-key"
        assert seen["url"] == "https://critique.test/v1/chat/completions"
        body = seen["body"]
        assert body["response_format"] == {"type": "json_object"}
        assert body["messages"][0] == {"role": "system", "content": "Be strict. Return ONLY valid JSON."}
        assert body["messages"][1] == {"role": "user", "content": "Review this."}
        assert body["temperature"] == 0.2

    def test_missing_api_key_skips_call(self):
        calls = []

        def handler(request):
            calls.append(request)
            return completion("{}")

        client = make_client(handler, api_key=None)

        assert client.enabled is False
        assert client.generate_json("s", "u") is None
        assert calls == []

    def test_http_error_status(self):
        client = make_client(lambda request: httpx.Response(500, text="upstream down"))
        assert client.generate_json("s", "u") is None

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("unreachable", request=request)

        assert make_client(handler).generate_json("s", "u") is None

    def test_unparsable_content(self):
        assert make_client(lambda request: completion("not json")).generate_json("s", "u") is None

    def test_non_object_content(self):
        assert make_client(lambda request: completion("[1, 2]")).generate_json("s", "u") is None

    def test_empty_content(self):
        assert make_client(lambda request: completion(None)).generate_json("s", "u") is None

    def test_missing_choices(self):
        client = make_client(lambda request: httpx.Response(200, json={"error": "quota"}))
        assert client.generate_json("s", "u") is None

    def test_non_text_content(self):
        def handler(request):
            return httpx.Response(
                200, json={"choices": [{"message": {"content": {"shortcomings": []}}}]}
            )

        client = make_client(handler)

        assert client.generate_json("s", "u") is None
        assert review_document(client, LFADocument(), Graph()).shortcomings == [UNAVAILABLE_MESSAGE]
        assert make_client(lambda request: completion(42)).generate_json("s", "u") is None

    def test_invalid_url(self):
        calls = []

        def handler(request):
            calls.append(request)
            return completion("{}")

        config = CritiqueConfig(api_key="test-key", url="https://critique.test/v1/\x01")
        client = CritiqueClient(config, transport=httpx.MockTransport(handler))

        assert client.generate_json("s", "u") is None
        assert audit_graph(client, Graph()) is None
        assert calls == []


class TestCritiqueConfig:
    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("GROQ_API_KEY", "k")
        monkeypatch.setenv("LFA_CRITIQUE_MODEL", "small-model")
        monkeypatch.setenv("LFA_CRITIQUE_TIMEOUT", "5")

        config = CritiqueConfig.from_env()

        assert config.api_key == "k"
        assert config.model == "small-model"
        assert config.timeout == 5.0

    def test_invalid_timeout_keeps_default(self, monkeypatch):
        monkeypatch.delenv("GROQ_API_KEY", raising=False)
        monkeypatch.setenv("LFA_CRITIQUE_TIMEOUT", "soon")

        config = CritiqueConfig.from_env()

        assert config.timeout == 30.0
        assert config.api_key is None


class TestPayloadDecoding:
    def test_critique_defaults(self):
        critique = Critique.from_payload({"shortcomings": "Only one", "suggestions": 3})

        assert critique.shortcomings == ["Only one"]
        assert critique.suggestions == []
        assert critique.overall_assessment == ""
        assert critique.to_dict()["overallAssessment"] == ""

    def test_audit_report(self):
        report = AuditReport.from_payload(
            {
                "score": 150,
                "summary": "Weak.",
                "critical_gaps": ["No teacher training"],
                "warnings": None,
                "missing_nodes": ["Add 'TLM Distribution' node", ""],
            }
        )

        assert report.score == 100
        assert report.summary == "Weak."
        assert report.critical_gaps == ["No teacher training"]
        assert report.warnings == []
        assert report.missing_nodes == ["Add 'TLM Distribution' node"]
        assert report.to_dict()["regional_insights"] == []

    def test_audit_score_must_be_numeric(self):
        assert AuditReport.from_payload({"score": "high"}).score is None
        assert AuditReport.from_payload({"score": True}).score is None
        assert AuditReport.from_payload({"score": 42.7}).score == 42


class TestReviewAndAudit:
    def test_review_document(self):
        payload = {"shortcomings": ["No goal"], "suggestions": ["Add a goal"], "overallAssessment": "Weak"}
        client = make_client(lambda request: completion(json.dumps(payload)))
        graph = sample_graph()

        critique = review_document(client, compile_graph(graph, "fln"), graph, Domain.FLN)

        assert critique.shortcomings == ["No goal"]
        assert critique.suggestions == ["Add a goal"]
        assert critique.overall_assessment == "Weak"

    def test_review_fallback(self):
        client = make_client(lambda request: httpx.Response(503))

        critique = review_document(client, LFADocument(), Graph())

        assert critique.shortcomings == [UNAVAILABLE_MESSAGE]
        assert critique.suggestions == []

    def test_audit_graph(self):
        seen = {}

        def handler(request):
            seen["body"] = json.loads(request.content)
            return completion(json.dumps({"score": 55, "summary": "Gaps", "suggestions": ["More"]}))

        report = audit_graph(make_client(handler), sample_graph(), "FLN", "Bihar", "Low reading levels")

        assert report.score == 55
        assert report.suggestions == ["More"]
        assert "Low reading levels" in seen["body"]["messages"][0]["content"]
        assert "Library kits" in seen["body"]["messages"][1]["content"]

    def test_audit_unavailable(self):
        client = make_client(lambda request: completion("oops"))
        assert audit_graph(client, sample_graph()) is None


class TestPrompts:
    def test_graph_story(self):
        story = graph_story(sample_graph(), Domain.FLN)

        assert "Project Theme: FLN" in story
        assert "Stakeholders Involved: Primary Teacher" in story
        assert "Interventions Planned: Library kits" in story
        assert "Intended Outcomes: Reading habit" in story
        assert "Library kits interacts with Primary Teacher (Method: delivers)" in story
        assert "Primary Teacher interacts with Reading habit (Method: Unknown)" in story

    def test_review_prompts_carry_theme(self):
        graph = sample_graph()
        system, user = build_review_prompts(compile_graph(graph, "career"), graph, Domain.CAREER)

        assert "School-to-Work" in system
        assert "Canvas has 3 nodes and 2 connections." in user

    def test_audit_prompts(self):
        system, user = build_audit_prompts(Graph(), mode="Career", region="Jharkhand")

        assert "Mode: Career" in system
        assert "Region: Jharkhand" in system
        assert '"nodes": []' in user
