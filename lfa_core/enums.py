"""
Core enumerations for the LFA design engine.

This module defines the fixed vocabularies shared by the graph model, the
validators, the simulator and the compiler: node categories, issue severities,
simulation outcomes, toolbox form-field types and the supported program
domains.
"""

from enum import Enum


class Category(str, Enum):
    """
    Toolbox grouping of a design-graph node.

    Categories drive rule dispatch and LFA tier assignment:
    - FOUNDATION: Problem statements and vision/goal markers
    - STAKEHOLDER: Actors in the system (teachers, officials, youth)
    - INTERVENTION: Things the program does or delivers
    - BRIDGE: Intermediate practice/behavior changes
    - RISK: External conditions that threaten an intervention
    """

    FOUNDATION = "foundation"
    """Problem statement or vision/goal marker."""

    STAKEHOLDER = "stakeholder"
    """An actor who receives or delivers interventions."""

    INTERVENTION = "intervention"
    """A program activity or deliverable."""

    BRIDGE = "bridge"
    """A practice change between an intervention and its outcome."""

    RISK = "risk"
    """An external risk or assumption moderating an intervention."""


class Severity(str, Enum):
    """Severity of a reported logic issue."""

    CRITICAL = "critical"
    WARNING = "warning"


class SimulationStatus(str, Enum):
    """Classification of a logic-health score."""

    SUCCESS = "success"
    WARNING = "warning"
    FAILURE = "failure"


class FieldType(str, Enum):
    """Form-field types used by toolbox node schemas."""

    TEXT = "text"
    NUMBER = "number"
    SELECT = "select"
    BOOLEAN = "boolean"
    DATE = "date"
    TEXTAREA = "textarea"


class IndicatorType(str, Enum):
    """Kind of signal an indicator measures along the results chain."""

    PROCESS = "process"
    OUTPUT = "output"
    OUTCOME = "outcome"


class Domain(str, Enum):
    """
    Program domains with their own toolbox, rules and compilation strategy.

    - FLN: Foundational Literacy & Numeracy (rule-based simulation, template compiler)
    - CAREER: Career Readiness / school-to-work (AI-critique simulation, structured compiler)
    """

    FLN = "fln"
    CAREER = "career"
