"""
Client for the external AI critique service.

The service is a single request/response JSON call to an OpenAI-compatible
chat completion endpoint. Every failure mode (missing key, transport error,
timeout, non-2xx status, empty or unparsable content) is caught here, logged,
and surfaced as `None` so callers can substitute a fixed fallback result.

Response payloads are decoded leniently: missing or mistyped fields default to
empty lists/strings.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

import httpx

from .compiler import LFADocument
from .config import CritiqueConfig
from .enums import Domain
from .graph import Graph
from .prompts import build_audit_prompts, build_review_prompts

logger = logging.getLogger(__name__)

UNAVAILABLE_MESSAGE = (
    "AI analysis service temporarily unavailable. Please verify your logic manually."
)


class CritiqueClient:
    """
    Synchronous client for the critique service.

    Args:
        config: Endpoint and model settings (defaults to CritiqueConfig.from_env())
        transport: Optional httpx transport, e.g. httpx.MockTransport in tests
    """

    def __init__(
        self,
        config: Optional[CritiqueConfig] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        self.config = config or CritiqueConfig.from_env()
        self._transport = transport

    @property
    def enabled(self) -> bool:
        """True when an API key is configured."""
        return bool(self.config.api_key)

    def _payload(self, system_prompt: str, user_prompt: str) -> Dict[str, Any]:
        return {
            "model": self.config.model,
            "messages": [
                {"role": "system", "content": system_prompt + " Return ONLY valid JSON."},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self.config.temperature,
            "max_tokens": self.config.max_tokens,
            "response_format": {"type": "json_object"},
        }

    def generate_json(self, system_prompt: str, user_prompt: str) -> Optional[Dict[str, Any]]:
        """
        Request a structured JSON answer.

        Args:
            system_prompt: Persona and output contract
            user_prompt: The graph or LFA document to critique

        Returns:
            Parsed JSON object, or None if the call failed in any way
        """
        if not self.enabled:
            logger.warning("Critique service not configured (GROQ_API_KEY is not set)")
            return None

        headers = {"Authorization": f"Bearer {self.config.api_key}"}
        try:
            with httpx.Client(timeout=self.config.timeout, transport=self._transport) as client:
                response = client.post(
                    self.config.url,
                    json=self._payload(system_prompt, user_prompt),
                    headers=headers,
                )
                response.raise_for_status()
                content = response.json()["choices"][0]["message"]["content"]
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.error("Critique request failed: %s", e)
            return None
        except (ValueError, KeyError, IndexError, TypeError) as e:
            logger.error("Critique response malformed: %s", e)
            return None

        if not content:
            logger.error("Critique response had no content")
            return None
        if not isinstance(content, str):
            logger.error("Critique content is not text: %s", type(content).__name__)
            return None
        try:
            parsed = json.loads(content)
        except ValueError as e:
            logger.error("Critique content is not valid JSON: %s", e)
            return None
        if not isinstance(parsed, dict):
            logger.error("Critique content is not a JSON object")
            return None
        return parsed


def _str_list(value: Any) -> List[str]:
    if isinstance(value, str):
        return [value] if value.strip() else []
    if not isinstance(value, (list, tuple)):
        return []
    return [str(v) for v in value if v is not None and str(v).strip()]


def _str(value: Any) -> str:
    return value if isinstance(value, str) else ""


@dataclass(frozen=True)
class Critique:
    """Narrative review of a compiled LFA document."""

    shortcomings: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)
    overall_assessment: str = ""

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Critique":
        return cls(
            shortcomings=_str_list(payload.get("shortcomings")),
            suggestions=_str_list(payload.get("suggestions")),
            overall_assessment=_str(payload.get("overallAssessment")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "shortcomings": list(self.shortcomings),
            "suggestions": list(self.suggestions),
            "overallAssessment": self.overall_assessment,
        }


@dataclass(frozen=True)
class AuditReport:
    """Deep logic audit of a design graph."""

    score: Optional[int] = None
    summary: str = ""
    critical_gaps: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    missing_nodes: List[str] = field(default_factory=list)
    needs_detailing: List[str] = field(default_factory=list)
    regional_insights: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "AuditReport":
        raw_score = payload.get("score")
        score = None
        if isinstance(raw_score, (int, float)) and not isinstance(raw_score, bool):
            score = max(0, min(100, int(raw_score)))
        return cls(
            score=score,
            summary=_str(payload.get("summary")),
            critical_gaps=_str_list(payload.get("critical_gaps")),
            warnings=_str_list(payload.get("warnings")),
            missing_nodes=_str_list(payload.get("missing_nodes")),
            needs_detailing=_str_list(payload.get("needs_detailing")),
            regional_insights=_str_list(payload.get("regional_insights")),
            suggestions=_str_list(payload.get("suggestions")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self.score,
            "summary": self.summary,
            "critical_gaps": list(self.critical_gaps),
            "warnings": list(self.warnings),
            "missing_nodes": list(self.missing_nodes),
            "needs_detailing": list(self.needs_detailing),
            "regional_insights": list(self.regional_insights),
            "suggestions": list(self.suggestions),
        }


def request_review(
    client: CritiqueClient, document: LFADocument, graph: Graph, domain: Domain = Domain.FLN
) -> Optional[Critique]:
    """Ask the service to review a compiled document; None when unavailable."""
    system, user = build_review_prompts(document, graph, domain)
    payload = client.generate_json(system, user)
    if payload is None:
        return None
    return Critique.from_payload(payload)


def review_document(
    client: CritiqueClient, document: LFADocument, graph: Graph, domain: Domain = Domain.FLN
) -> Critique:
    """
    Review a compiled document, substituting a fallback critique on failure.

    Returns:
        Critique: The service's review, or a single "service unavailable" shortcoming
    """
    critique = request_review(client, document, graph, domain)
    if critique is None:
        return Critique(
            shortcomings=[UNAVAILABLE_MESSAGE],
            overall_assessment="Unable to complete AI analysis",
        )
    return critique


def audit_graph(
    client: CritiqueClient,
    graph: Graph,
    mode: str = "FLN",
    region: str = "Bihar",
    problem_statement: str = "",
) -> Optional[AuditReport]:
    """Run a deep logic audit of the graph; None when the service is unavailable."""
    system, user = build_audit_prompts(graph, mode, region, problem_statement)
    payload = client.generate_json(system, user)
    if payload is None:
        return None
    return AuditReport.from_payload(payload)
