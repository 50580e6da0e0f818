"""
Logic-health simulation.

Two strategies share the `{status, score, errors}` contract:
- RuleBasedSimulation: starts at 100 and subtracts the penalties of the rule
  catalog in `rules.py`; penalties are additive, so evaluation order never
  changes the score.
- CritiqueSimulation: compiles the graph and delegates judgement to the AI
  critique service, deducting a fixed penalty per reported shortcoming.

`simulator_for` picks the strategy for a domain.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from .compiler import compile_graph
from .config import SimulatorConfig
from .critique import CritiqueClient, request_review
from .enums import Domain, Severity, SimulationStatus
from .graph import Graph
from .results import LogicError, SimulationResult, clamp_score, classify_score
from .rules import DEFAULT_RULES, RuleContext, SimulationRule
from .toolbox import Toolbox, get_toolbox

logger = logging.getLogger(__name__)


def _check_graph(graph: Graph) -> None:
    if not isinstance(graph, Graph):
        raise TypeError(f"expected Graph, got {type(graph).__name__}")


class SimulationStrategy:
    """Interface for anything that scores a design graph."""

    def simulate(self, graph: Graph) -> SimulationResult:
        raise NotImplementedError


class RuleBasedSimulation(SimulationStrategy):
    """
    Local rule engine.

    Args:
        config: Penalties, ceilings and role vocabularies
        rules: Rule catalog (defaults to DEFAULT_RULES)
        toolbox: Domain toolbox, for goal-marker awareness
    """

    def __init__(
        self,
        config: Optional[SimulatorConfig] = None,
        rules: Optional[List[SimulationRule]] = None,
        toolbox: Optional[Toolbox] = None,
    ):
        self.config = config or SimulatorConfig()
        self.rules: List[SimulationRule] = list(DEFAULT_RULES if rules is None else rules)
        self.toolbox = toolbox

    def add_rule(self, rule: SimulationRule) -> None:
        """
        Register an extra rule.

        Raises:
            ValueError: If a rule with the same id is already registered
        """
        if any(r.id == rule.id for r in self.rules):
            raise ValueError(f"Rule {rule.id} already registered")
        self.rules.append(rule)

    def simulate(self, graph: Graph) -> SimulationResult:
        """
        Score a snapshot.

        Args:
            graph: Snapshot to score

        Returns:
            SimulationResult: Status, clamped score and every issue found

        Raises:
            TypeError: If `graph` is not a Graph
        """
        _check_graph(graph)
        ctx = RuleContext(graph=graph, config=self.config, toolbox=self.toolbox)

        score = self.config.baseline_score
        errors: List[LogicError] = []
        for rule in self.rules:
            issues = rule.check(ctx)
            penalty = rule.penalty(issues, self.config)
            if issues:
                logger.debug("Rule %s: %d issue(s), -%d", rule.id, len(issues), penalty)
            score -= penalty
            errors.extend(issues)

        score = clamp_score(score)
        return SimulationResult(status=classify_score(score), score=score, errors=errors)


UNAVAILABLE_ERROR = LogicError(
    id="critique-unavailable",
    title="AI Analysis Unavailable",
    message="The AI critique service could not be reached or returned an unusable answer.",
    severity=Severity.CRITICAL,
    fix_suggestion="Retry later, or run the rule-based simulation and verify your logic manually.",
)


class CritiqueSimulation(SimulationStrategy):
    """
    Score by AI critique of the compiled LFA document.

    score = max(0, baseline - shortcoming_penalty * len(shortcomings)); every
    shortcoming becomes a warning paired with the suggestion at the same
    position. Any failure of the service yields a failure result with score 0.
    """

    def __init__(
        self,
        client: CritiqueClient,
        domain: Domain = Domain.CAREER,
        config: Optional[SimulatorConfig] = None,
    ):
        self.client = client
        self.domain = Domain(domain)
        self.config = config or SimulatorConfig()

    def _unavailable(self) -> SimulationResult:
        return SimulationResult(status=SimulationStatus.FAILURE, score=0, errors=[UNAVAILABLE_ERROR])

    def simulate(self, graph: Graph) -> SimulationResult:
        _check_graph(graph)
        document = compile_graph(graph, self.domain)
        try:
            critique = request_review(self.client, document, graph, self.domain)
        except Exception:
            # The contract forbids a different error shape leaking to callers
            logger.exception("Critique simulation failed")
            return self._unavailable()
        if critique is None:
            return self._unavailable()

        errors = []
        for i, shortcoming in enumerate(critique.shortcomings):
            suggestion = critique.suggestions[i] if i < len(critique.suggestions) else ""
            errors.append(
                LogicError(
                    id=f"critique-{i}",
                    title="AI Critique",
                    message=shortcoming,
                    severity=Severity.WARNING,
                    fix_suggestion=suggestion,
                )
            )

        score = clamp_score(
            self.config.baseline_score - self.config.shortcoming_penalty * len(errors)
        )
        return SimulationResult(status=classify_score(score), score=score, errors=errors)


def simulator_for(
    domain: Domain | str = Domain.FLN,
    critique_client: Optional[CritiqueClient] = None,
    config: Optional[SimulatorConfig] = None,
) -> SimulationStrategy:
    """
    Pick the simulation strategy for a domain.

    Career uses the AI critique when a client is supplied; every other
    combination uses the local rule engine.

    Raises:
        UnknownDomainError: If the domain has no toolbox
    """
    toolbox = get_toolbox(domain)
    if toolbox.domain == Domain.CAREER and critique_client is not None:
        return CritiqueSimulation(critique_client, domain=toolbox.domain, config=config)
    return RuleBasedSimulation(config=config, toolbox=toolbox)


def simulate(
    graph: Graph,
    domain: Domain | str = Domain.FLN,
    config: Optional[SimulatorConfig] = None,
    critique_client: Optional[CritiqueClient] = None,
) -> SimulationResult:
    """Convenience wrapper: `simulator_for(domain, ...).simulate(graph)`."""
    return simulator_for(domain, critique_client=critique_client, config=config).simulate(graph)
