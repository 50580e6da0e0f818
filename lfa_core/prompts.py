"""
Prompt builders for the AI critique service.

The critique service only ever sees text: a persona, some domain context and
a readable rendering of the graph or of the compiled LFA document.
"""

from __future__ import annotations

import json
from typing import Tuple

from .compiler import LFADocument
from .enums import Category, Domain
from .graph import Graph

CRITIC_PERSONA = """You are a strict, analytical 'Impact Evaluator' for a major grant funder.
You are reviewing a program design submission. Your job is to find FLAWS in the logic.
You do not care about good intentions; you care about feasibility, bandwidth, and causal links.

Core Rules to Enforce:
1. "The Miracle Jump": Activities (Training) do not cause Outcomes (Better Grades) directly. There must be a 'Practice Change' in between.
2. "Bandwidth": A single teacher cannot handle more than 3 distinct new interventions.
3. "Hierarchy": You cannot scale to 50+ schools without involving Block/District officials (BEO/DEO)."""

THEME_CONTEXT = {
    Domain.FLN: """Context: Foundational Literacy and Numeracy (FLN).
Key Indicators: NIPUN Bharat goals, oral reading fluency, simple subtraction.
Key Interventions: Library kits, structured pedagogy, remedial classes.
Key Stakeholders: Anganwadi Worker, Primary Teacher, CRC.""",
    Domain.CAREER: """Context: School-to-Work Transition / Career Readiness.
Key Indicators: Student agency, exposure to careers, vocational skills, apprenticeship linkage.
Key Interventions: Career melas, role model interactions, industry visits.
Key Stakeholders: Headmaster (for permissions), Vocational Trainer, Local Business Owners.""",
}

REVIEW_SYSTEM_PROMPT = """You are an expert in Logical Framework Analysis (LFA) for education programs in India.
You will be given an LFA document structure generated from a visual logic model.
Analyze it for logical consistency, completeness, and adherence to best practices.

Your response MUST be a valid JSON object with this structure:
{
  "shortcomings": ["Description of issue 1", "Description of issue 2"],
  "suggestions": ["Suggestion 1", "Suggestion 2"],
  "overallAssessment": "A brief 1-2 sentence summary of the logic model quality"
}

If the logic flow is sound and complete, return empty arrays for shortcomings and suggestions.
Focus on practical issues like:
- Missing goal or vision
- No practice changes (outcomes) defined
- Interventions not connected to practice changes
- Missing indicators
- Logical gaps in the theory of change
- Unrealistic assumptions"""


def _labels(graph: Graph, category: Category) -> str:
    return ", ".join(n.label for n in graph.nodes if n.category == category) or "None"


def graph_story(graph: Graph, domain: Domain = Domain.FLN) -> str:
    """Render a snapshot as a short narrative the reviewer can critique."""
    lines = [
        f"Project Theme: {domain.value.upper()}",
        "",
        "The System Design:",
        f"- Stakeholders Involved: {_labels(graph, Category.STAKEHOLDER)}",
        f"- Interventions Planned: {_labels(graph, Category.INTERVENTION)}",
        f"- Intended Outcomes: {_labels(graph, Category.BRIDGE)}",
        "",
        "Connections:",
    ]
    for edge in graph.edges:
        source = graph.node(edge.source)
        target = graph.node(edge.target)
        method = edge.interaction_type or "Unknown"
        lines.append(f"- {source.label} interacts with {target.label} (Method: {method})")
    return "\n".join(lines)


def build_review_prompts(
    document: LFADocument, graph: Graph, domain: Domain = Domain.FLN
) -> Tuple[str, str]:
    """
    Build the (system, user) prompts for an LFA document review.

    Returns:
        Tuple of system prompt and user prompt
    """
    system = f"{REVIEW_SYSTEM_PROMPT}\n\n{CRITIC_PERSONA}\n\n{THEME_CONTEXT[domain]}"
    user = (
        "Analyze this LFA document:\n\n"
        f"LFA Document:\n{json.dumps(document.to_dict(), indent=2, default=str)}\n\n"
        f"Canvas has {len(graph)} nodes and {len(graph.edges)} connections.\n\n"
        f"{graph_story(graph, domain)}\n\n"
        "Provide your analysis as a JSON object."
    )
    return system, user


def build_audit_prompts(
    graph: Graph, mode: str = "FLN", region: str = "Bihar", problem_statement: str = ""
) -> Tuple[str, str]:
    """
    Build the (system, user) prompts for a deep logic audit of the graph.

    Args:
        graph: Snapshot to audit
        mode: 'FLN' or 'Career'
        region: Program region, used for regional insights
        problem_statement: The designer's stated problem

    Returns:
        Tuple of system prompt and user prompt
    """
    system = f"""You are a Senior Monitoring & Evaluation "Program Architect". Your job is to perform a deep logic audit of a program design graph (Logic Model).
Your goal is to be CRITICAL and CONSTRUCTIVE. You must identify what is MISSING just as much as what is wrong.

CONTEXT:
- Mode: {mode} (FLN = Foundational Literacy & Numeracy; Career = School-to-Work/Vocational)
- Region: {region}
- Problem Statement: "{problem_statement}"

DEEP AUDIT RULES:
1. PROBLEM ALIGNMENT CHECK: Does the graph actually solve the stated problem? If not, flag a Critical Gap.
2. MISSING NODE DETECTION (Domain Specific):
   - If Mode is 'FLN': Look for 'Teacher Training', 'TLM Distribution', 'Community Engagement', 'Pedagogy Shift' nodes.
   - If Mode is 'Career': Look for 'Industry Partnership', 'Skill Gap Analysis', 'Job Fair/Placement' nodes.
3. DETAILING CHECK: Identify nodes that are too generic (e.g., "Activity 1", "Training", "Meeting") or disconnected.
4. LOGIC CHAIN: Flag "Magical Jumps" (Input -> Impact without Outcomes).

OUTPUT FORMAT (Strict JSON):
{{
  "score": number,
  "summary": "2-sentence summary",
  "critical_gaps": ["string"],
  "warnings": ["string"],
  "missing_nodes": ["string"],
  "needs_detailing": ["string"],
  "regional_insights": ["string"],
  "suggestions": ["string"]
}}"""
    user = (
        "Audit this Logic Model Graph:\n\n"
        f"Graph Data:\n{json.dumps(graph.to_dict(), indent=2, default=str)}\n\n"
        "Provide your analysis as a strict JSON object."
    )
    return system, user
