"""
Structural validation of design graphs.

Pure graph-theory checks that run before any domain heuristics:
- Cycle detection: causal chains must be acyclic ("A causes B causes A")
- Fragmentation: every node should belong to one connected logic model
- Edge grammar: pairwise legality of edge direction by node type/category

Findings are reported as `LogicError` values; nothing here raises for user
data and no score is computed.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple, Union

from .enums import Severity
from .graph import Graph, Node
from .results import LogicError
from .toolbox import Toolbox

WILDCARD = "*"


@dataclass(frozen=True)
class GrammarRule:
    """
    A pairwise edge-direction rule.

    `source` and `target` are matched against a node's type, its category, or
    the 'goal' marker tag; '*' matches any node. A tuple of tokens matches a
    node carrying any of them.
    """

    source: Union[str, Tuple[str, ...]]
    target: Union[str, Tuple[str, ...]]
    severity: Severity
    title: str
    message: str
    fix_suggestion: str
    id_prefix: str = "inv-edge"


EDGE_GRAMMAR: List[GrammarRule] = [
    GrammarRule(
        source=("outcome", "bridge"),
        target="intervention",
        severity=Severity.CRITICAL,
        title="Backward Logic Flow",
        message="An Outcome cannot lead to an Activity. Outcomes are results.",
        fix_suggestion="Reverse the direction of the arrow.",
    ),
    GrammarRule(
        source="goal",
        target=WILDCARD,
        severity=Severity.WARNING,
        title="Goal has Outgoing Connection",
        message="The Goal is the final destination. It should not lead to other nodes.",
        fix_suggestion="Remove the arrow pointing away from the Goal.",
        id_prefix="inv-edge-goal",
    ),
]


def has_cycle(graph: Graph) -> bool:
    """
    Detect whether the directed graph contains a cycle.

    Depth-first search from every unvisited node, tracking the nodes on the
    current path; reaching a node already on the path closes a cycle.

    Args:
        graph: Snapshot to inspect

    Returns:
        True if at least one directed cycle exists
    """
    visited: Set[str] = set()
    on_stack: Set[str] = set()

    for start in graph.nodes:
        if start.id in visited:
            continue
        visited.add(start.id)
        on_stack.add(start.id)
        stack = [(start.id, iter(graph.children_of(start.id)))]
        while stack:
            node_id, children = stack[-1]
            advanced = False
            for child in children:
                if child.id in on_stack:
                    return True
                if child.id not in visited:
                    visited.add(child.id)
                    on_stack.add(child.id)
                    stack.append((child.id, iter(graph.children_of(child.id))))
                    advanced = True
                    break
            if not advanced:
                on_stack.discard(node_id)
                stack.pop()
    return False


def connected_components(graph: Graph) -> List[List[str]]:
    """
    Find all connected components, ignoring edge direction.

    Returns:
        List of components, each a list of node ids in discovery order
    """
    adjacency: Dict[str, List[str]] = {n.id: [] for n in graph.nodes}
    for e in graph.edges:
        adjacency[e.source].append(e.target)
        adjacency[e.target].append(e.source)

    visited: Set[str] = set()
    components: List[List[str]] = []
    for n in graph.nodes:
        if n.id in visited:
            continue
        component = []
        queue = deque([n.id])
        visited.add(n.id)
        while queue:
            current = queue.popleft()
            component.append(current)
            for neighbor in adjacency[current]:
                if neighbor not in visited:
                    visited.add(neighbor)
                    queue.append(neighbor)
        components.append(component)
    return components


def is_fragmented(graph: Graph) -> bool:
    """
    Check whether the graph splits into disconnected islands.

    Breadth-first search over the undirected view from the first node; the
    graph is fragmented when some node is never reached. Graphs with zero or
    one node are never fragmented.
    """
    if len(graph) <= 1:
        return False
    return len(connected_components(graph)[0]) < len(graph)


def _tags(node: Node, goal_markers: Iterable[str]) -> Set[str]:
    tags = {node.type}
    if node.category is not None:
        tags.add(node.category.value)
    if node.type in goal_markers:
        tags.add("goal")
    return tags


def _matches(token: Union[str, Tuple[str, ...]], tags: Set[str]) -> bool:
    if isinstance(token, tuple):
        return any(_matches(t, tags) for t in token)
    return token == WILDCARD or token in tags


def check_edge_grammar(
    graph: Graph,
    grammar: Optional[Sequence[GrammarRule]] = None,
    toolbox: Optional[Toolbox] = None,
) -> List[LogicError]:
    """
    Apply pairwise edge-direction rules to every edge.

    Args:
        graph: Snapshot to inspect
        grammar: Rule table (defaults to EDGE_GRAMMAR)
        toolbox: Optional domain toolbox whose goal markers count as 'goal'

    Returns:
        One LogicError per (edge, violated rule), in edge then rule order
    """
    rules = EDGE_GRAMMAR if grammar is None else grammar
    goal_markers = toolbox.goal_markers if toolbox is not None else ()
    errors: List[LogicError] = []

    for edge in graph.edges:
        source = graph.node(edge.source)
        target = graph.node(edge.target)
        if source is None or target is None:
            continue
        source_tags = _tags(source, goal_markers)
        target_tags = _tags(target, goal_markers)
        for rule in rules:
            if _matches(rule.source, source_tags) and _matches(rule.target, target_tags):
                errors.append(
                    LogicError(
                        id=f"{rule.id_prefix}-{edge.id}",
                        edge_id=edge.id,
                        title=rule.title,
                        message=rule.message,
                        severity=rule.severity,
                        fix_suggestion=rule.fix_suggestion,
                    )
                )
    return errors


def validate_structure(
    graph: Graph,
    grammar: Optional[Sequence[GrammarRule]] = None,
    toolbox: Optional[Toolbox] = None,
) -> List[LogicError]:
    """
    Run all structural checks on a snapshot.

    Args:
        graph: Snapshot to validate
        grammar: Optional replacement edge-grammar table
        toolbox: Optional domain toolbox (goal-marker awareness)

    Returns:
        Cycle, fragmentation and grammar issues, in that order

    Raises:
        TypeError: If `graph` is not a Graph
    """
    if not isinstance(graph, Graph):
        raise TypeError(f"expected Graph, got {type(graph).__name__}")

    errors: List[LogicError] = []

    if has_cycle(graph):
        errors.append(
            LogicError(
                id="structure-cycle",
                title="Infinite Loop Detected",
                message=(
                    "Your logic flows in a circle (A leads to B, which leads back to A). "
                    "Impact logic must flow forward from Activity to Goal."
                ),
                severity=Severity.CRITICAL,
                fix_suggestion="Trace your arrows and remove the backward connection.",
            )
        )

    if is_fragmented(graph):
        errors.append(
            LogicError(
                id="structure-fragment",
                title="Disconnected Logic Islands",
                message="You have clusters of nodes that are completely separate from each other.",
                severity=Severity.WARNING,
                fix_suggestion="Ensure all parts of your project connect to the main Goal or Outcome.",
            )
        )

    errors.extend(check_edge_grammar(graph, grammar=grammar, toolbox=toolbox))
    return errors
