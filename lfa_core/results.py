"""
Result types shared by the structural validator and the simulators.

Structural and semantic issues are reported through one `LogicError` shape so
the authoring UI can render a single, unified issue list.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .enums import Severity, SimulationStatus


@dataclass(frozen=True)
class LogicError:
    """
    A structural or semantic issue found in a design graph.

    Attributes:
        id: Stable identifier per violation (e.g. 'orphan-n3')
        title: Short headline
        message: Explanation shown to the designer
        severity: CRITICAL or WARNING
        fix_suggestion: What the designer can do about it
        node_id: Offending node, when the issue is node-scoped
        edge_id: Offending edge, when the issue is edge-scoped
    """

    id: str
    title: str
    message: str
    severity: Severity
    fix_suggestion: str
    node_id: Optional[str] = None
    edge_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "id": self.id,
            "title": self.title,
            "message": self.message,
            "severity": self.severity.value,
            "fixSuggestion": self.fix_suggestion,
        }
        if self.node_id is not None:
            d["nodeId"] = self.node_id
        if self.edge_id is not None:
            d["edgeId"] = self.edge_id
        return d


@dataclass(frozen=True)
class SimulationResult:
    """Logic-health outcome: status, 0-100 score and the issues behind it."""

    status: SimulationStatus
    score: int
    errors: List[LogicError] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "score": self.score,
            "errors": [e.to_dict() for e in self.errors],
        }


def classify_score(score: int) -> SimulationStatus:
    """
    Map a logic-health score to a status.

    100 is success, anything above 60 is a warning, 60 and below is failure.
    """
    if score == 100:
        return SimulationStatus.SUCCESS
    if score > 60:
        return SimulationStatus.WARNING
    return SimulationStatus.FAILURE


def clamp_score(score: int) -> int:
    return max(0, min(100, int(score)))
