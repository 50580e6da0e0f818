"""
Graph to Logical Framework (LFA) compiler.

This module compiles a design-graph snapshot into a four-tier LFA document:

goal        - the impact the program serves (at most one cell)
outcomes    - practice/behavior changes
outputs     - deliverables
activities  - the same interventions viewed as process and inputs

Every tier is a list of cells carrying a narrative, indicators (OVI), means of
verification (MoV) and assumptions/risks.

Two strategies share this output contract and are selected by domain:
- FLN: narratives come from the toolbox's per-type templates; indicators
  attached to incoming edges are flattened into goal/outcome/output cells;
  activity risks are gathered from upstream risk nodes.
- Career: a fixed-shape variant where each tier is populated only from its
  marker node types and cells are read straight from node attributes.

Compilation is a pure function of the snapshot and never fails for missing
pieces: a missing goal becomes a placeholder cell carrying a warning.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional

from .enums import Category, Domain
from .graph import Graph, Node
from .toolbox import Toolbox, get_toolbox

GOAL_PLACEHOLDER_NARRATIVE = "Goal not defined"
GOAL_MISSING_WARNING = (
    "Warning: no goal node found. Add a Vision/Goal node, or leave exactly one "
    "Outcome with no outgoing connections."
)

_PLACEHOLDER = re.compile(r"\{(\w+)(?:\|([^{}]*))?\}")


@dataclass
class LFACell:
    """One row of the logical framework."""

    narrative: str
    indicators: List[str] = field(default_factory=list)
    means_of_verification: List[str] = field(default_factory=list)
    assumptions_risks: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "narrative": self.narrative,
            "indicators": list(self.indicators),
            "meansOfVerification": list(self.means_of_verification),
            "assumptionsRisks": list(self.assumptions_risks),
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "LFACell":
        return cls(
            narrative=str(d.get("narrative", "")),
            indicators=_as_list(d.get("indicators")),
            means_of_verification=_as_list(
                d.get("meansOfVerification", d.get("means_of_verification"))
            ),
            assumptions_risks=_as_list(d.get("assumptionsRisks", d.get("assumptions_risks"))),
        )


@dataclass
class LFADocument:
    """Goal -> Outcomes -> Outputs -> Activities."""

    goal: Optional[LFACell] = None
    outcomes: List[LFACell] = field(default_factory=list)
    outputs: List[LFACell] = field(default_factory=list)
    activities: List[LFACell] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "goal": self.goal.to_dict() if self.goal is not None else None,
            "outcomes": [c.to_dict() for c in self.outcomes],
            "outputs": [c.to_dict() for c in self.outputs],
            "activities": [c.to_dict() for c in self.activities],
        }

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> "LFADocument":
        goal = d.get("goal")
        return cls(
            goal=LFACell.from_dict(goal) if isinstance(goal, Mapping) else None,
            outcomes=[LFACell.from_dict(c) for c in d.get("outcomes") or [] if isinstance(c, Mapping)],
            outputs=[LFACell.from_dict(c) for c in d.get("outputs") or [] if isinstance(c, Mapping)],
            activities=[
                LFACell.from_dict(c) for c in d.get("activities") or [] if isinstance(c, Mapping)
            ],
        )


# --- helpers -----------------------------------------------------------------
def _as_list(value: Any) -> List[str]:
    if value is None or value == "":
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value if v is not None and v != ""]
    return [str(value)]


def _dedupe(items: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            result.append(item)
    return result


def _format_value(value: Any) -> str:
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def render_template(template: str, values: Mapping[str, Any]) -> str:
    """
    Substitute `{field}` and `{field|default}` placeholders.

    Missing, None or empty values fall back to the default (or to an empty
    string when no default is declared).
    """

    def _sub(match: "re.Match[str]") -> str:
        value = values.get(match.group(1))
        if value is None or value == "":
            return match.group(2) or ""
        return _format_value(value)

    return _PLACEHOLDER.sub(_sub, template)


def _template_values(node: Node) -> Dict[str, Any]:
    values: Dict[str, Any] = dict(node.attributes)
    values["label"] = node.label
    unit_cost = node.attributes.get("unit_cost")
    if isinstance(unit_cost, (int, float)) and not isinstance(unit_cost, bool):
        values["budget_estimate"] = unit_cost * 1000
    return values


def _render_all(templates: Any, values: Mapping[str, Any]) -> List[str]:
    return [render_template(str(t), values) for t in _as_list(templates)]


def edge_indicators(graph: Graph, node_id: str) -> List[str]:
    """Flatten indicator labels attached to a node's incoming edges."""
    labels = []
    for edge in graph.incoming(node_id):
        labels.extend(i.label for i in edge.indicators)
    return labels


def _template_cell(
    graph: Graph, node: Node, toolbox: Toolbox, tier: str, with_edge_indicators: bool = True
) -> LFACell:
    template = toolbox.template_for(node.type, tier)
    values = _template_values(node)
    indicators = _render_all(template.get("indicators"), values)
    if with_edge_indicators:
        indicators.extend(edge_indicators(graph, node.id))
    return LFACell(
        narrative=render_template(str(template.get("narrative", "{label}")), values),
        indicators=_dedupe(indicators),
        means_of_verification=_dedupe(_render_all(template.get("means_of_verification"), values)),
        assumptions_risks=_dedupe(_render_all(template.get("assumptions"), values)),
    )


def placeholder_goal(warning: str = GOAL_MISSING_WARNING) -> LFACell:
    return LFACell(narrative=GOAL_PLACEHOLDER_NARRATIVE, indicators=[warning])


def _check_graph(graph: Graph) -> None:
    if not isinstance(graph, Graph):
        raise TypeError(f"expected Graph, got {type(graph).__name__}")


# --- FLN / generic strategy -------------------------------------------------
def find_goal_node(graph: Graph, toolbox: Toolbox) -> Optional[Node]:
    """
    Locate the node that anchors the Goal tier.

    The first node typed as one of the domain's goal markers wins; otherwise
    the node of the fallback goal type (coarse 'outcome') with no outgoing
    edges, but only when exactly one such sink exists.
    """
    markers = toolbox.goal_markers
    for node in graph.nodes:
        if node.type in markers:
            return node
    fallback_type = toolbox.setting("fallback_goal_type", "outcome")
    sinks = [n for n in graph.nodes if n.type == fallback_type and not graph.outgoing(n.id)]
    if len(sinks) == 1:
        return sinks[0]
    return None


def _risk_assumptions(graph: Graph, node: Node, toolbox: Toolbox) -> List[str]:
    fallback = toolbox.setting("risk_fallback", "External risk managed")
    assumptions = []
    for parent in graph.parents_of(node.id):
        if parent.category != Category.RISK:
            continue
        plan = parent.attributes.get("mitigation_plan")
        if plan:
            assumptions.append(f"Mitigation: {plan}")
        elif parent.attributes.get("assumption"):
            assumptions.append(str(parent.attributes["assumption"]))
        else:
            assumptions.append(fallback)
    return assumptions


def compile_fln(graph: Graph, toolbox: Optional[Toolbox] = None) -> LFADocument:
    """
    Compile a snapshot with the template-driven FLN strategy.

    Also serves generic graphs drawn with coarse node types (goal, outcome,
    output, intervention, risk).

    Args:
        graph: Snapshot to compile
        toolbox: Toolbox with templates (defaults to the bundled FLN catalog)

    Returns:
        LFADocument: The compiled framework
    """
    _check_graph(graph)
    toolbox = toolbox or get_toolbox(Domain.FLN)
    doc = LFADocument()

    goal_node = find_goal_node(graph, toolbox)
    goal_id = goal_node.id if goal_node is not None else None
    doc.goal = (
        _template_cell(graph, goal_node, toolbox, "goal") if goal_node is not None else placeholder_goal()
    )

    for node in graph.nodes:
        if node.id == goal_id:
            continue
        if node.category == Category.BRIDGE:
            doc.outcomes.append(_template_cell(graph, node, toolbox, "outcome"))

    for node in graph.nodes:
        if node.id == goal_id:
            continue
        if node.category == Category.INTERVENTION or node.type == "output":
            doc.outputs.append(_template_cell(graph, node, toolbox, "output"))
        if node.category == Category.INTERVENTION:
            activity = _template_cell(graph, node, toolbox, "activity", with_edge_indicators=False)
            activity.assumptions_risks = _dedupe(
                _risk_assumptions(graph, node, toolbox) + activity.assumptions_risks
            )
            doc.activities.append(activity)

    return doc


# --- Career strategy ---------------------------------------------------------
def _attribute_cell(node: Node) -> LFACell:
    attrs = node.attributes
    return LFACell(
        narrative=node.label,
        indicators=_as_list(attrs.get("indicators")),
        means_of_verification=_as_list(attrs.get("mov")),
        assumptions_risks=_as_list(attrs.get("assumptions")),
    )


def _activity_cell(node: Node) -> LFACell:
    attrs = node.attributes
    budget = attrs.get("budget")
    return LFACell(
        narrative=str(attrs.get("activity_description") or node.label),
        indicators=[f"Budget: INR {_format_value(budget)}"] if budget not in (None, "") else [],
        means_of_verification=_as_list(attrs.get("activity_mov")),
        assumptions_risks=_as_list(attrs.get("activity_risks")),
    )


def compile_career(graph: Graph, toolbox: Optional[Toolbox] = None) -> LFADocument:
    """
    Compile a snapshot with the structured Career strategy.

    The goal comes from a 'sustainable income' or 'self employment' marker;
    each other tier is filled only from its configured marker types, so
    missing sections are simply empty.

    Args:
        graph: Snapshot to compile
        toolbox: Toolbox naming the tier marker types (defaults to Career)

    Returns:
        LFADocument: The compiled framework
    """
    _check_graph(graph)
    toolbox = toolbox or get_toolbox(Domain.CAREER)
    doc = LFADocument()

    goal_types = set(toolbox.goal_markers)
    outcome_types = set(toolbox.setting("outcome_types", ()))
    output_types = set(toolbox.setting("output_types", ()))

    goal_node = next((n for n in graph.nodes if n.type in goal_types), None)
    if goal_node is not None:
        doc.goal = _attribute_cell(goal_node)
    else:
        doc.goal = placeholder_goal(toolbox.setting("missing_goal_warning", GOAL_MISSING_WARNING))

    doc.outcomes = [_attribute_cell(n) for n in graph.nodes if n.type in outcome_types]
    output_nodes = [n for n in graph.nodes if n.type in output_types]
    doc.outputs = [_attribute_cell(n) for n in output_nodes]
    doc.activities = [_activity_cell(n) for n in output_nodes]
    return doc


Compiler = Callable[[Graph, Optional[Toolbox]], LFADocument]

COMPILERS: Dict[Domain, Compiler] = {
    Domain.FLN: compile_fln,
    Domain.CAREER: compile_career,
}


def compile_graph(graph: Graph, domain: Domain | str = Domain.FLN) -> LFADocument:
    """
    Compile a snapshot with the strategy registered for `domain`.

    Raises:
        UnknownDomainError: If the domain has no toolbox/strategy
    """
    toolbox = get_toolbox(domain)
    return COMPILERS[toolbox.domain](graph, toolbox)
