"""
Graph data structures for the LFA design engine.

This module defines the canonical snapshot every other component operates on:
- Indicator: A measurable signal attached to a connection
- Node: A stakeholder, intervention, practice change, risk or goal on the canvas
- Edge: A directed "upstream cause -> downstream effect" relation
- Graph: Immutable container for nodes and edges with read-only query helpers

Snapshots are produced by the authoring UI; the core never creates or destroys
nodes or edges. Inconsistencies that are normal while a user is still drawing
(dangling edges, duplicate ids, malformed indicators) are skipped at ingestion
instead of raised.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

import yaml

from .enums import Category
from .toolbox import AttributeIssue, Toolbox

try:
    import networkx as nx

    HAS_NETWORKX = True
except ImportError:
    HAS_NETWORKX = False

logger = logging.getLogger(__name__)

# Coarse canvas node types and the category they belong to
COARSE_CATEGORIES: Dict[str, Category] = {
    "goal": Category.FOUNDATION,
    "foundation": Category.FOUNDATION,
    "stakeholder": Category.STAKEHOLDER,
    "intervention": Category.INTERVENTION,
    "outcome": Category.BRIDGE,
    "bridge": Category.BRIDGE,
    "risk": Category.RISK,
}

# Keys of a ReactFlow `data` payload that are not free-form attributes
_RESERVED_DATA_KEYS = {"label", "type", "category"}


@dataclass(frozen=True)
class Indicator:
    """
    An Objectively Verifiable Indicator attached to an edge.

    Attributes:
        label: What is measured (e.g. "% Attendance")
        unit: Unit of measurement (e.g. "%", "Count")
    """

    label: str
    unit: str = ""


@dataclass(frozen=True)
class Node:
    """
    A vertex in the design graph.

    Attributes:
        id: Unique identifier within the snapshot
        type: Coarse category tag ('intervention', 'outcome', ...) or a
            fine-grained toolbox id ('tlm_kit', 'crcc', ...)
        label: Human-readable display text
        category: Toolbox grouping used for rule dispatch, if resolvable
        position: Canvas coordinate (layout only)
        attributes: Domain-specific field values, read-only
    """

    id: str
    """Unique identifier for this node in the snapshot."""

    type: str
    """Effective node type (coarse tag or toolbox id)."""

    label: str = ""
    """Display text entered by the designer."""

    category: Optional[Category] = None
    """Toolbox category, or None when it cannot be resolved."""

    position: Tuple[float, float] = (0.0, 0.0)
    """Canvas coordinate; irrelevant to validation and compilation."""

    attributes: Mapping[str, Any] = field(default_factory=dict)
    """Open key/value map of schema-defined fields."""

    def __post_init__(self):
        object.__setattr__(self, "attributes", MappingProxyType(dict(self.attributes)))

    def matches(self, token: str) -> bool:
        """True when `token` names this node's type or category."""
        if token == self.type:
            return True
        return self.category is not None and token == self.category.value

    def is_category(self, category: Category) -> bool:
        return self.category == category


@dataclass(frozen=True)
class Edge:
    """
    A directed relation between two nodes.

    Attributes:
        id: Unique identifier within the snapshot
        source: Upstream node id (cause)
        target: Downstream node id (effect)
        interaction_type: Free-form label such as "delivers" or "monitors"
        indicators: How this connection's effect is measured
    """

    id: str
    source: str
    target: str
    interaction_type: str = ""
    indicators: Tuple[Indicator, ...] = ()


class Graph:
    """
    Immutable snapshot of a design graph.

    The Graph keeps nodes and edges in snapshot order and maintains forward
    (outgoing) and backward (incoming) edge indexes for traversal. All
    validation and compilation runs against one snapshot; there are no
    mutation methods.

    Attributes:
        nodes: Nodes in snapshot order
        edges: Edges in snapshot order (only those resolving to known nodes)
        dropped_edges: Edges skipped at construction (dangling or duplicate ids)
        attribute_issues: Attribute decoding problems found at ingestion
    """

    def __init__(
        self,
        nodes: Iterable[Node] = (),
        edges: Iterable[Edge] = (),
        attribute_issues: Iterable[AttributeIssue] = (),
    ):
        self._nodes: Dict[str, Node] = {}
        for n in nodes:
            if n.id in self._nodes:
                logger.warning("Duplicate node id %r ignored", n.id)
                continue
            self._nodes[n.id] = n

        self._edges: Dict[str, Edge] = {}
        dropped: List[Edge] = []
        self._out_edges: Dict[str, List[Edge]] = {nid: [] for nid in self._nodes}
        self._in_edges: Dict[str, List[Edge]] = {nid: [] for nid in self._nodes}
        for e in edges:
            if e.id in self._edges:
                logger.warning("Duplicate edge id %r ignored", e.id)
                dropped.append(e)
                continue
            if e.source not in self._nodes or e.target not in self._nodes:
                logger.debug("Dangling edge %r (%s -> %s) skipped", e.id, e.source, e.target)
                dropped.append(e)
                continue
            self._edges[e.id] = e
            self._out_edges[e.source].append(e)
            self._in_edges[e.target].append(e)

        self.dropped_edges: Tuple[Edge, ...] = tuple(dropped)
        self.attribute_issues: Tuple[AttributeIssue, ...] = tuple(attribute_issues)

    # --- collection access ---------------------------------------------------
    @property
    def nodes(self) -> Tuple[Node, ...]:
        return tuple(self._nodes.values())

    @property
    def edges(self) -> Tuple[Edge, ...]:
        return tuple(self._edges.values())

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._nodes

    def node(self, node_id: str) -> Optional[Node]:
        """Return the node with `node_id`, or None when absent."""
        return self._nodes.get(node_id)

    def edge(self, edge_id: str) -> Optional[Edge]:
        return self._edges.get(edge_id)

    # --- traversal -----------------------------------------------------------
    def incoming(self, node_id: str) -> List[Edge]:
        """Edges terminating at `node_id` (empty for unknown ids)."""
        return list(self._in_edges.get(node_id, []))

    def outgoing(self, node_id: str) -> List[Edge]:
        """Edges originating at `node_id` (empty for unknown ids)."""
        return list(self._out_edges.get(node_id, []))

    def parents_of(self, node_id: str) -> List[Node]:
        """
        Get upstream nodes connected into `node_id`.

        Args:
            node_id: ID of the downstream node

        Returns:
            Source nodes of incoming edges, in edge order
        """
        return [self._nodes[e.source] for e in self._in_edges.get(node_id, [])]

    def children_of(self, node_id: str) -> List[Node]:
        """
        Get downstream nodes that `node_id` leads to.

        Args:
            node_id: ID of the upstream node

        Returns:
            Target nodes of outgoing edges, in edge order
        """
        return [self._nodes[e.target] for e in self._out_edges.get(node_id, [])]

    def edges_touching(self, node_id: str) -> List[Edge]:
        """All edges where `node_id` is the source or the target, in snapshot order."""
        return [e for e in self._edges.values() if e.source == node_id or e.target == node_id]

    def nodes_in_category(self, category: Category) -> List[Node]:
        return [n for n in self._nodes.values() if n.category == category]

    # --- construction --------------------------------------------------------
    @classmethod
    def from_dict(
        cls, snapshot: Mapping[str, Any], toolbox: Optional[Toolbox] = None
    ) -> "Graph":
        """
        Build a snapshot from the authoring UI's `{nodes, edges}` payload.

        Accepts flat nodes (`{id, type, category, label, attributes}`) and
        ReactFlow-shaped nodes (`{id, type, position, data: {...}}`). When a
        toolbox is given, categories are looked up from it and attributes are
        decoded against the type's field schema.

        Args:
            snapshot: Mapping with 'nodes' and 'edges' lists
            toolbox: Optional domain toolbox for category lookup and decoding

        Returns:
            Graph: The immutable snapshot

        Raises:
            TypeError: If `snapshot` is not a mapping
        """
        if not isinstance(snapshot, Mapping):
            raise TypeError(f"graph snapshot must be a mapping, got {type(snapshot).__name__}")

        nodes: List[Node] = []
        issues: List[AttributeIssue] = []
        for raw in _entries(snapshot, "nodes"):
            parsed = _node_from_dict(raw, toolbox)
            if parsed is None:
                continue
            node, node_issues = parsed
            nodes.append(node)
            issues.extend(node_issues)

        edges: List[Edge] = []
        for i, raw in enumerate(_entries(snapshot, "edges")):
            edge = _edge_from_dict(raw, i)
            if edge is not None:
                edges.append(edge)

        return cls(nodes, edges, attribute_issues=issues)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to the flat `{nodes, edges}` shape."""
        return {
            "nodes": [
                {
                    "id": n.id,
                    "type": n.type,
                    "category": n.category.value if n.category else None,
                    "label": n.label,
                    "position": {"x": n.position[0], "y": n.position[1]},
                    "attributes": dict(n.attributes),
                }
                for n in self._nodes.values()
            ],
            "edges": [
                {
                    "id": e.id,
                    "source": e.source,
                    "target": e.target,
                    "interactionType": e.interaction_type,
                    "indicators": [{"label": i.label, "unit": i.unit} for i in e.indicators],
                }
                for e in self._edges.values()
            ],
        }

    # --- export --------------------------------------------------------------
    def to_networkx(self) -> "nx.DiGraph":
        """
        Convert the snapshot to a NetworkX DiGraph for export/visualization.

        Returns:
            NetworkX DiGraph with node and edge attributes

        Raises:
            ImportError: If NetworkX is not available
        """
        if not HAS_NETWORKX:
            raise ImportError(
                "NetworkX is required for graph conversion. Install with: pip install networkx"
            )

        G = nx.DiGraph()
        for n in self._nodes.values():
            node_attrs = {
                "type": n.type,
                "label": n.label,
                "category": n.category.value if n.category else "",
            }
            # GraphML only stores scalar attribute values
            for k, v in n.attributes.items():
                if isinstance(v, (str, int, float, bool)):
                    node_attrs[f"attr_{k}"] = v
            G.add_node(n.id, **node_attrs)

        for e in self._edges.values():
            G.add_edge(
                e.source,
                e.target,
                id=e.id,
                interaction_type=e.interaction_type,
                indicators="; ".join(i.label for i in e.indicators),
            )
        return G

    def export_graphml(self, filepath: str) -> None:
        """
        Export the snapshot to GraphML format.

        Args:
            filepath: Path where to save the GraphML file

        Raises:
            ImportError: If NetworkX is not available
        """
        nx_graph = self.to_networkx()
        nx.write_graphml(nx_graph, filepath)


def resolve_category(
    node_type: str, explicit: Any = None, toolbox: Optional[Toolbox] = None
) -> Optional[Category]:
    """
    Resolve a node's category.

    Order: explicit value, toolbox lookup of the type, coarse-type mapping.
    """
    if explicit:
        try:
            return Category(str(explicit).lower())
        except ValueError:
            logger.debug("Unknown category %r for type %r", explicit, node_type)
    if toolbox is not None:
        found = toolbox.category_of(node_type)
        if found is not None:
            return found
    return COARSE_CATEGORIES.get(node_type)


def _entries(snapshot: Mapping[str, Any], key: str) -> List[Any]:
    raw = snapshot.get(key)
    if isinstance(raw, (list, tuple)):
        return list(raw)
    if raw:
        logger.debug("Snapshot %r is not a list, ignored", key)
    return []


def _position(raw: Any) -> Tuple[float, float]:
    try:
        if isinstance(raw, Mapping):
            return float(raw.get("x", 0.0)), float(raw.get("y", 0.0))
        if isinstance(raw, (list, tuple)) and len(raw) == 2:
            return float(raw[0]), float(raw[1])
    except (TypeError, ValueError):
        logger.debug("Malformed position %r ignored", raw)
    return 0.0, 0.0


def _node_from_dict(
    raw: Any, toolbox: Optional[Toolbox]
) -> Optional[Tuple[Node, List[AttributeIssue]]]:
    if not isinstance(raw, Mapping) or not raw.get("id"):
        logger.debug("Node without id skipped: %r", raw)
        return None

    data = raw.get("data")
    if isinstance(data, Mapping):
        # ReactFlow custom nodes keep the real type inside `data`
        node_type = str(data.get("type") or raw.get("type") or "")
        label = data.get("label", raw.get("label", ""))
        explicit_category = data.get("category") or raw.get("category")
        attributes = {k: v for k, v in data.items() if k not in _RESERVED_DATA_KEYS}
        if isinstance(raw.get("attributes"), Mapping):
            attributes.update(raw["attributes"])
    else:
        node_type = str(raw.get("type") or "")
        label = raw.get("label", "")
        explicit_category = raw.get("category")
        raw_attributes = raw.get("attributes")
        attributes = {}
        if isinstance(raw_attributes, Mapping):
            attributes = dict(raw_attributes)
        elif raw_attributes:
            logger.debug("Malformed attributes on node %r ignored", raw.get("id"))

    issues: List[AttributeIssue] = []
    if toolbox is not None:
        attributes, issues = toolbox.decode_attributes(node_type, attributes)

    node = Node(
        id=str(raw["id"]),
        type=node_type,
        label="" if label is None else str(label),
        category=resolve_category(node_type, explicit_category, toolbox),
        position=_position(raw.get("position")),
        attributes=attributes,
    )
    return node, issues


def _indicators(raw: Any) -> Tuple[Indicator, ...]:
    if not isinstance(raw, (list, tuple)):
        return ()
    found = []
    for item in raw:
        if isinstance(item, Mapping) and item.get("label"):
            found.append(Indicator(str(item["label"]), str(item.get("unit") or "")))
        elif isinstance(item, str) and item.strip():
            found.append(Indicator(item.strip()))
        else:
            logger.debug("Malformed indicator %r ignored", item)
    return tuple(found)


def _edge_from_dict(raw: Any, position: int) -> Optional[Edge]:
    if not isinstance(raw, Mapping) or not raw.get("source") or not raw.get("target"):
        logger.debug("Edge without endpoints skipped: %r", raw)
        return None

    data = raw.get("data") if isinstance(raw.get("data"), Mapping) else {}
    interaction = raw.get("interactionType", data.get("interactionType", "")) or ""
    indicators = raw["indicators"] if "indicators" in raw else data.get("indicators")
    source, target = str(raw["source"]), str(raw["target"])
    return Edge(
        id=str(raw.get("id") or f"e{position}-{source}-{target}"),
        source=source,
        target=target,
        interaction_type=str(interaction),
        indicators=_indicators(indicators),
    )


def load_snapshot(path: str, toolbox: Optional[Toolbox] = None) -> Graph:
    """Load a `{nodes, edges}` snapshot from a YAML or JSON file path."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return Graph.from_dict(data, toolbox=toolbox)
