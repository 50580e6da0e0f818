"""
End-to-end analysis of one design-graph snapshot.

validate structure -> simulate logic health -> compile the LFA document.
Compilation is skipped while the graph has critical structural errors
(cycles, backward flow): an LFA built from contradictory logic is not useful.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .compiler import LFADocument, compile_graph
from .config import SimulatorConfig
from .critique import CritiqueClient
from .enums import Domain, Severity
from .graph import Graph
from .results import LogicError, SimulationResult
from .simulator import simulator_for
from .toolbox import get_toolbox
from .validator import validate_structure

logger = logging.getLogger(__name__)


@dataclass
class AnalysisResult:
    """Everything the authoring UI shows after a check."""

    domain: Domain
    structural_errors: List[LogicError] = field(default_factory=list)
    simulation: Optional[SimulationResult] = None
    document: Optional[LFADocument] = None

    @property
    def errors(self) -> List[LogicError]:
        """Structural issues followed by simulation issues."""
        simulated = self.simulation.errors if self.simulation is not None else []
        return list(self.structural_errors) + list(simulated)

    @property
    def has_critical(self) -> bool:
        return any(e.severity == Severity.CRITICAL for e in self.errors)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domain": self.domain.value,
            "structuralErrors": [e.to_dict() for e in self.structural_errors],
            "simulation": self.simulation.to_dict() if self.simulation is not None else None,
            "document": self.document.to_dict() if self.document is not None else None,
            "errors": [e.to_dict() for e in self.errors],
        }


def analyze(
    graph: Graph,
    domain: Domain | str = Domain.FLN,
    config: Optional[SimulatorConfig] = None,
    critique_client: Optional[CritiqueClient] = None,
) -> AnalysisResult:
    """
    Validate, simulate and compile a snapshot.

    Args:
        graph: Snapshot to analyze
        domain: Program domain (selects toolbox, simulator and compiler)
        config: Simulator configuration overrides
        critique_client: Enables the AI critique simulator for Career

    Returns:
        AnalysisResult: Structural issues, simulation result and the LFA
        document (None when a critical structural error was found)

    Raises:
        TypeError: If `graph` is not a Graph
        UnknownDomainError: If the domain has no toolbox
    """
    if not isinstance(graph, Graph):
        raise TypeError(f"expected Graph, got {type(graph).__name__}")
    toolbox = get_toolbox(domain)

    structural = validate_structure(graph, toolbox=toolbox)
    simulation = simulator_for(toolbox.domain, critique_client, config).simulate(graph)

    document = None
    if any(e.severity == Severity.CRITICAL for e in structural):
        logger.info("Skipping compilation: %d structural issue(s)", len(structural))
    else:
        document = compile_graph(graph, toolbox.domain)

    return AnalysisResult(
        domain=toolbox.domain,
        structural_errors=structural,
        simulation=simulation,
        document=document,
    )
