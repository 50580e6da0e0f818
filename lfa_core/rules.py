"""
Declarative rule catalog for the rule-based simulator.

Each rule is a pure check over a graph snapshot that returns the issues it
found. The simulator turns issues into penalties (per issue, or once for flat
rules) using `SimulatorConfig.penalties`, so rules never touch scoring and
the order in which rules run cannot change the final score.

Role detection (teacher, block authority) matches toolbox type ids first and
falls back to a lenient label match for stakeholder nodes the designer
created with free-text labels.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional

from .config import SimulatorConfig
from .enums import Category, Severity
from .graph import Graph, Node
from .results import LogicError
from .toolbox import Toolbox


@dataclass(frozen=True)
class RuleContext:
    """Everything a rule may look at."""

    graph: Graph
    config: SimulatorConfig
    toolbox: Optional[Toolbox] = None


RuleCheck = Callable[[RuleContext], List[LogicError]]


@dataclass(frozen=True)
class SimulationRule:
    """
    A named check with its penalty policy.

    Attributes:
        id: Rule id, also the key into SimulatorConfig.penalties
        check: Function returning the issues found
        flat: If True the penalty applies once when any issue is found,
            otherwise once per issue
    """

    id: str
    check: RuleCheck
    flat: bool = False

    def penalty(self, issues: List[LogicError], config: SimulatorConfig) -> int:
        if not issues:
            return 0
        per_issue = config.penalty_for(self.id)
        return per_issue if self.flat else per_issue * len(issues)


def is_intervention(node: Node) -> bool:
    return node.type == "intervention" or node.category == Category.INTERVENTION


def is_outcome(node: Node) -> bool:
    return node.type == "outcome"


def _label_fallback_allowed(node: Node) -> bool:
    # Free-text labels only identify actors, never interventions named after them
    return node.category in (None, Category.STAKEHOLDER)


def is_teacher_role(node: Node, config: SimulatorConfig) -> bool:
    if node.type in config.teacher_types:
        return True
    return _label_fallback_allowed(node) and config.teacher_label_token.lower() in node.label.lower()


def is_authority_role(node: Node, config: SimulatorConfig) -> bool:
    if node.type in config.authority_types:
        return True
    if not _label_fallback_allowed(node):
        return False
    for token in config.authority_label_tokens:
        # Acronyms match case-sensitively, phrases case-insensitively
        if token.isupper():
            if token in node.label:
                return True
        elif token.lower() in node.label.lower():
            return True
    return False


# --- checks ------------------------------------------------------------------
def check_orphans(ctx: RuleContext) -> List[LogicError]:
    """Every actor must play a role: nodes touching zero edges."""
    errors = []
    for node in ctx.graph.nodes:
        if ctx.graph.edges_touching(node.id):
            continue
        errors.append(
            LogicError(
                id=f"orphan-{node.id}",
                node_id=node.id,
                title="Orphan Entity Detected",
                message=f'The node "{node.label}" is disconnected from the system.',
                severity=Severity.CRITICAL,
                fix_suggestion="Connect this node to an Intervention or Output.",
            )
        )
    return errors


def check_miracle_jumps(ctx: RuleContext) -> List[LogicError]:
    """Activities wired straight to outcomes with no practice change between."""
    errors = []
    for edge in ctx.graph.edges:
        source = ctx.graph.node(edge.source)
        target = ctx.graph.node(edge.target)
        if source is None or target is None:
            continue
        if is_intervention(source) and is_outcome(target):
            errors.append(
                LogicError(
                    id=f"logic-jump-{edge.id}",
                    edge_id=edge.id,
                    title='Logic Break: The "Miracle Jump"',
                    message=(
                        "You connected an Activity directly to an Outcome. "
                        "Training alone doesn't change grades; changes in behavior do."
                    ),
                    severity=Severity.CRITICAL,
                    fix_suggestion='Insert a "Practice Change" or "Output" node in between.',
                )
            )
    return errors


def check_stakeholder_overload(ctx: RuleContext) -> List[LogicError]:
    """Teachers are busy: too many incoming tasks on a teacher-role node."""
    ceiling = ctx.config.teacher_ceiling
    for node in ctx.graph.nodes:
        if not is_teacher_role(node, ctx.config):
            continue
        task_count = len(ctx.graph.incoming(node.id))
        if task_count > ceiling:
            return [
                LogicError(
                    id="burden-teacher",
                    node_id=node.id,
                    title="System Stress: Teacher Burnout",
                    message=(
                        f"You have assigned {task_count} distinct interventions to the Teacher. "
                        "This exceeds realistic bandwidth."
                    ),
                    severity=Severity.CRITICAL,
                    fix_suggestion='Remove low-priority interventions or add "Volunteer" support.',
                )
            ]
    return []


def check_missing_authority(ctx: RuleContext) -> List[LogicError]:
    """Programs at scale need a block-level authority in the design."""
    cfg = ctx.config
    scale = cfg.project_scale if cfg.project_scale is not None else len(ctx.graph)
    if scale <= cfg.authority_scale_threshold:
        return []
    if any(is_authority_role(n, cfg) for n in ctx.graph.nodes):
        return []
    return [
        LogicError(
            id="missing-authority",
            title="Missing Authority Node",
            message=(
                f"Your program covers {scale} units, more than {cfg.authority_scale_threshold}, "
                "but lacks Block Level approval (BEO)."
            ),
            severity=Severity.WARNING,
            fix_suggestion='Drag a "BEO" node from the Stakeholder panel to ensure compliance.',
        )
    ]


def check_undefined_measurement(ctx: RuleContext) -> List[LogicError]:
    """If you can't measure it, you can't manage it: action edges without indicators."""
    errors = []
    for edge in ctx.graph.edges:
        source = ctx.graph.node(edge.source)
        if source is None or not is_intervention(source) or edge.indicators:
            continue
        errors.append(
            LogicError(
                id=f"missing-indicator-{edge.id}",
                edge_id=edge.id,
                title="Undefined Measurement",
                message="This intervention has no success indicators.",
                severity=Severity.WARNING,
                fix_suggestion='Click the link and select an Indicator (e.g., "% Attendance").',
            )
        )
    return errors


DEFAULT_RULES: List[SimulationRule] = [
    SimulationRule("orphan", check_orphans),
    SimulationRule("miracle_jump", check_miracle_jumps),
    SimulationRule("stakeholder_overload", check_stakeholder_overload, flat=True),
    SimulationRule("missing_authority", check_missing_authority, flat=True),
    SimulationRule("undefined_measurement", check_undefined_measurement),
]
