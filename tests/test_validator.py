"""
Unit tests for structural validation.

Covers cycle detection, fragmentation, the declarative edge grammar and the
combined `validate_structure` entry point.
"""

import pytest

from lfa_core.enums import Severity
from lfa_core.graph import Edge, Graph, Node
from lfa_core.toolbox import get_toolbox
from lfa_core.validator import (
    WILDCARD,
    GrammarRule,
    check_edge_grammar,
    connected_components,
    has_cycle,
    is_fragmented,
    validate_structure,
)


def make_graph(node_types, edges):
    """Build a graph from {id: type} and [(source, target)] pairs."""
    nodes = [Node(nid, ntype, label=nid.upper()) for nid, ntype in node_types.items()]
    return Graph(nodes, [Edge(f"e{i}", s, t) for i, (s, t) in enumerate(edges, 1)])


class TestCycleDetection:
    def test_triangle_has_cycle(self):
        g = make_graph({"a": "x", "b": "x", "c": "x"}, [("a", "b"), ("b", "c"), ("c", "a")])
        assert has_cycle(g) is True

    def test_chain_has_no_cycle(self):
        g = make_graph({"a": "x", "b": "x", "c": "x"}, [("a", "b"), ("b", "c")])
        assert has_cycle(g) is False

    def test_self_loop_is_a_cycle(self):
        g = make_graph({"a": "x"}, [("a", "a")])
        assert has_cycle(g) is True

    def test_diamond_is_acyclic(self):
        g = make_graph(
            {"a": "x", "b": "x", "c": "x", "d": "x"},
            [("a", "b"), ("a", "c"), ("b", "d"), ("c", "d")],
        )
        assert has_cycle(g) is False

    def test_cycle_not_reachable_from_first_node(self):
        g = make_graph(
            {"a": "x", "b": "x", "c": "x", "d": "x"},
            [("a", "b"), ("c", "d"), ("d", "c")],
        )
        assert has_cycle(g) is True

    def test_long_chain_does_not_recurse(self):
        n = 5000
        nodes = {f"n{i}": "x" for i in range(n)}
        g = make_graph(nodes, [(f"n{i}", f"n{i + 1}") for i in range(n - 1)])
        assert has_cycle(g) is False

    def test_empty_graph(self):
        assert has_cycle(Graph()) is False


class TestFragmentation:
    def test_two_islands(self):
        g = make_graph({"a": "x", "b": "x", "c": "x", "d": "x"}, [("a", "b"), ("c", "d")])
        assert is_fragmented(g) is True

    def test_bridged_islands(self):
        g = make_graph(
            {"a": "x", "b": "x", "c": "x", "d": "x"},
            [("a", "b"), ("c", "d"), ("b", "c")],
        )
        assert is_fragmented(g) is False

    def test_direction_is_ignored(self):
        g = make_graph({"a": "x", "b": "x", "c": "x"}, [("a", "b"), ("c", "b")])
        assert is_fragmented(g) is False

    def test_zero_or_one_node_never_fragmented(self):
        assert is_fragmented(Graph()) is False
        assert is_fragmented(make_graph({"a": "x"}, [])) is False

    def test_components(self):
        g = make_graph({"a": "x", "b": "x", "c": "x"}, [("a", "b")])
        assert connected_components(g) == [["a", "b"], ["c"]]


class TestEdgeGrammar:
    def test_backward_flow_is_critical(self):
        g = make_graph({"o": "outcome", "i": "intervention"}, [("o", "i")])

        errors = check_edge_grammar(g)

        assert [e.id for e in errors] == ["inv-edge-e1"]
        assert errors[0].severity == Severity.CRITICAL
        assert errors[0].edge_id == "e1"
        assert errors[0].title == "Backward Logic Flow"

    def test_practice_change_into_activity_is_backward(self):
        g = Graph.from_dict(
            {
                "nodes": [
                    {"id": "p", "type": "pedagogy_shift"},
                    {"id": "k", "type": "tlm_kit"},
                    {"id": "o", "type": "outcome"},
                ],
                "edges": [
                    {"id": "e1", "source": "p", "target": "k"},
                    {"id": "e2", "source": "o", "target": "k"},
                ],
            },
            toolbox=get_toolbox("fln"),
        )

        errors = check_edge_grammar(g)

        # A coarse outcome is also a bridge; it is still reported once
        assert [e.id for e in errors] == ["inv-edge-e1", "inv-edge-e2"]
        assert {e.severity for e in errors} == {Severity.CRITICAL}

    def test_goal_outgoing_is_warning(self):
        g = make_graph({"g": "goal", "o": "outcome"}, [("g", "o")])

        errors = check_edge_grammar(g)

        assert [e.id for e in errors] == ["inv-edge-goal-e1"]
        assert errors[0].severity == Severity.WARNING

    def test_toolbox_goal_marker_counts_as_goal(self):
        g = make_graph({"g": "nipun_lakshya", "o": "outcome"}, [("g", "o")])

        assert check_edge_grammar(g) == []
        errors = check_edge_grammar(g, toolbox=get_toolbox("fln"))
        assert [e.id for e in errors] == ["inv-edge-goal-e1"]

    def test_forward_flow_is_clean(self):
        g = make_graph(
            {"i": "intervention", "o": "outcome", "g": "goal"}, [("i", "o"), ("o", "g")]
        )
        assert check_edge_grammar(g) == []

    def test_custom_rule_table(self):
        rule = GrammarRule(
            source="risk",
            target=WILDCARD,
            severity=Severity.WARNING,
            title="Risk drives",
            message="m",
            fix_suggestion="f",
            id_prefix="risk-edge",
        )
        g = make_graph({"r": "risk", "i": "intervention"}, [("r", "i")])

        errors = check_edge_grammar(g, grammar=[rule])

        assert [e.id for e in errors] == ["risk-edge-e1"]


class TestValidateStructure:
    def test_order_cycle_fragment_grammar(self):
        g = make_graph(
            {"o": "outcome", "i": "intervention", "x": "stakeholder"},
            [("o", "i"), ("i", "o")],
        )

        ids = [e.id for e in validate_structure(g)]

        assert ids == ["structure-cycle", "structure-fragment", "inv-edge-e1"]

    def test_clean_graph(self):
        g = make_graph({"i": "intervention", "o": "outcome"}, [("i", "o")])
        assert validate_structure(g) == []

    def test_empty_graph(self):
        assert validate_structure(Graph()) == []

    def test_rejects_non_graph(self):
        with pytest.raises(TypeError):
            validate_structure(None)
        with pytest.raises(TypeError):
            validate_structure({"nodes": [], "edges": []})

    def test_deterministic(self):
        g = make_graph(
            {"o": "outcome", "i": "intervention", "g": "goal"},
            [("o", "i"), ("g", "o"), ("i", "g")],
        )
        assert validate_structure(g) == validate_structure(g)
