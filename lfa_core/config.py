"""
Configuration objects for the LFA design engine.

Exposes tunable penalties, ceilings and thresholds for the rule-based
simulator, and endpoint settings for the external AI critique service,
enabling experiments without editing core logic.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass
class SimulatorConfig:
    """
    Configuration for `RuleBasedSimulation` scoring.

    Penalties are keyed by rule id. Defaults reproduce the scoring used by the
    program designers' pre-mortem checklist.
    """

    penalties: Dict[str, int] = field(
        default_factory=lambda: {
            "orphan": 10,
            "miracle_jump": 15,
            "stakeholder_overload": 20,
            "missing_authority": 10,
            "undefined_measurement": 5,
        }
    )

    # Maximum incoming edges a teacher-role node can absorb
    teacher_ceiling: int = 3

    # Scale above which a block-level authority node is mandatory
    authority_scale_threshold: int = 10

    # Number of schools/units the program covers. When None, the number of
    # nodes in the snapshot is used as the scale.
    project_scale: Optional[int] = None

    # Toolbox type ids recognised as teacher roles / block authorities
    teacher_types: Tuple[str, ...] = ("teacher", "teacher_govt", "nodal_teacher", "sh_teacher")
    authority_types: Tuple[str, ...] = ("beo", "sh_beo", "block_officer")

    # Lenient label fallbacks for custom nodes
    teacher_label_token: str = "teacher"
    authority_label_tokens: Tuple[str, ...] = ("BEO", "Block Officer")

    # Score baseline and per-shortcoming penalty for the critique strategy
    baseline_score: int = 100
    shortcoming_penalty: int = 10

    def penalty_for(self, rule_id: str) -> int:
        return int(self.penalties.get(rule_id, 0))


DEFAULT_CRITIQUE_URL = "https://api.groq.com/openai/v1/chat/completions"
DEFAULT_CRITIQUE_MODEL = "llama-3.3-70b-versatile"


@dataclass
class CritiqueConfig:
    """
    Settings for the outbound AI critique call.

    The service speaks the OpenAI-compatible chat completion protocol and is
    asked for a JSON object response.
    """

    api_key: Optional[str] = None
    url: str = DEFAULT_CRITIQUE_URL
    model: str = DEFAULT_CRITIQUE_MODEL

    # Low temperature for consistent logic review
    temperature: float = 0.2
    max_tokens: int = 1024
    timeout: float = 30.0

    @classmethod
    def from_env(cls) -> "CritiqueConfig":
        """Build a config from GROQ_API_KEY and LFA_CRITIQUE_* variables."""
        cfg = cls(api_key=os.environ.get("GROQ_API_KEY") or None)
        if os.environ.get("LFA_CRITIQUE_URL"):
            cfg.url = os.environ["LFA_CRITIQUE_URL"]
        if os.environ.get("LFA_CRITIQUE_MODEL"):
            cfg.model = os.environ["LFA_CRITIQUE_MODEL"]
        if os.environ.get("LFA_CRITIQUE_TIMEOUT"):
            try:
                cfg.timeout = float(os.environ["LFA_CRITIQUE_TIMEOUT"])
            except ValueError:
                logger.warning(
                    "Ignoring invalid LFA_CRITIQUE_TIMEOUT %r, using %ss",
                    os.environ["LFA_CRITIQUE_TIMEOUT"],
                    cfg.timeout,
                )
        return cfg
