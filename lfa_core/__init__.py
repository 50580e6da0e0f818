"""
LFA Core Package.

This package contains the program-design engine behind the visual logic-model
canvas, including:

- Core data structures (Graph, Node, Edge, Indicator)
- Domain toolbox registry (FLN and Career catalogs with field schemas)
- Structural validation (cycles, fragmentation, edge grammar)
- Logic-health simulation (rule-based or AI critique)
- Compilation of a graph into a Logical Framework (LFA) document

A design graph flows validate -> simulate -> compile; `analyze` runs all three.
"""

# LFA Core Package

__version__ = "0.1.0"

from .enums import Category, Severity, SimulationStatus, FieldType, IndicatorType, Domain
from .config import SimulatorConfig, CritiqueConfig
from .graph import Graph, Node, Edge, Indicator, load_snapshot
from .results import LogicError, SimulationResult
from .toolbox import (
    Toolbox,
    ToolNode,
    FieldSpec,
    AttributeIssue,
    IndicatorOption,
    UnknownDomainError,
    get_toolbox,
    available_domains,
)
from .validator import validate_structure, has_cycle, is_fragmented
from .simulator import (
    SimulationStrategy,
    RuleBasedSimulation,
    CritiqueSimulation,
    simulator_for,
    simulate,
)
from .compiler import LFACell, LFADocument, compile_graph, compile_fln, compile_career
from .critique import CritiqueClient, Critique, AuditReport, review_document, audit_graph
from .pipeline import AnalysisResult, analyze
