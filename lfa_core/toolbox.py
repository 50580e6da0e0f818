"""
Domain toolbox registry.

Each program domain ships a static, read-only catalog of the node types a
designer can drag onto the canvas: their labels, categories and the form
schema of their attributes. The catalogs live as YAML files under
``lfa_core/domains`` together with the per-type compilation templates, so a
catalog and the narratives it compiles to are always versioned together.

YAML schema (abridged):

domain: fln
version: "1.2.0"
compile:
  goal_markers: [nipun_lakshya]
defaults:
  output: {narrative: "{label} implemented", indicators: [...], means_of_verification: [...]}
tools:
  - id: tlm_kit
    label: TLM Kit
    category: intervention
    fields:
      - {name: unit_cost, label: Unit Cost, type: number, required: true}
    templates:
      output: {narrative: "Learning Kits distributed to {distribution_level|schools}"}
  - id: beo
    label: BEO
    category: stakeholder
    level: block
    bandwidth: 2
    required_for_scale: 10
indicators:
  - {id: fln_outcome_nipun, label: "% achieving NIPUN targets", type: outcome, theme: fln, unit: "%"}

The registry is consulted by the authoring UI (form rendering), the simulator
(type-based role matching) and the compiler (narrative templates).
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from .enums import Category, Domain, FieldType, IndicatorType

DOMAINS_DIR = Path(__file__).resolve().parent / "domains"

_TRUE_STRINGS = {"true", "yes", "y", "1"}
_FALSE_STRINGS = {"false", "no", "n", "0"}


class UnknownDomainError(KeyError):
    """Raised when a domain has no toolbox catalog."""


@dataclass(frozen=True)
class FieldSpec:
    """Form-field descriptor for one node attribute."""

    name: str
    label: str
    type: FieldType
    required: bool = False
    options: Tuple[str, ...] = ()
    default: Any = None
    placeholder: Optional[str] = None
    read_only: bool = False

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "name": self.name,
            "label": self.label,
            "type": self.type.value,
            "required": self.required,
        }
        if self.options:
            d["options"] = list(self.options)
        if self.default is not None:
            d["defaultValue"] = self.default
        if self.placeholder:
            d["placeholder"] = self.placeholder
        if self.read_only:
            d["readOnly"] = True
        return d


@dataclass(frozen=True)
class ToolNode:
    """A draggable node type in a domain toolbox."""

    id: str
    label: str
    category: Category
    fields: Tuple[FieldSpec, ...] = ()
    description: Optional[str] = None
    templates: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)

    # Stakeholder hierarchy data; None for other categories
    level: Optional[str] = None
    bandwidth: Optional[int] = None
    influence: Optional[int] = None
    required_for_scale: Optional[int] = None

    def field_named(self, name: str) -> Optional[FieldSpec]:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def to_dict(self) -> Dict[str, Any]:
        d: Dict[str, Any] = {
            "id": self.id,
            "label": self.label,
            "category": self.category.value,
            "fields": [f.to_dict() for f in self.fields],
        }
        if self.description:
            d["description"] = self.description
        if self.level:
            d["level"] = self.level
        if self.bandwidth is not None:
            d["bandwidth"] = self.bandwidth
        if self.influence is not None:
            d["influence"] = self.influence
        if self.required_for_scale is not None:
            d["requiredForScale"] = self.required_for_scale
        return d


@dataclass(frozen=True)
class AttributeIssue:
    """A node attribute that failed to decode against its field schema."""

    node_type: str
    field: str
    reason: str


@dataclass(frozen=True)
class IndicatorOption:
    """
    An entry of the domain's indicator library.

    Attributes:
        id: Stable library id
        label: What is measured
        type: Process, output or outcome signal
        theme: 'general' or the domain the indicator belongs to
        unit: Unit of measurement ('%', 'Count', ...)
    """

    id: str
    label: str
    type: IndicatorType
    theme: str = "general"
    unit: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "type": self.type.value,
            "theme": self.theme,
            "unit": self.unit,
        }


class Toolbox:
    """
    Read-only catalog of node types for one domain.

    Attributes:
        domain: Domain this catalog belongs to
        version: Catalog/template version string
        label: Human-readable domain name
        tools: Ordered tuple of ToolNode entries
        indicators: Indicator library offered for measuring connections
    """

    def __init__(
        self,
        domain: Domain,
        version: str,
        tools: List[ToolNode],
        label: str = "",
        compile_settings: Optional[Mapping[str, Any]] = None,
        defaults: Optional[Mapping[str, Mapping[str, Any]]] = None,
        indicators: Optional[List[IndicatorOption]] = None,
    ):
        self.domain = domain
        self.version = version
        self.label = label or domain.value
        self.tools: Tuple[ToolNode, ...] = tuple(tools)
        self.compile_settings: Mapping[str, Any] = dict(compile_settings or {})
        self.defaults: Mapping[str, Mapping[str, Any]] = dict(defaults or {})
        self.indicators: Tuple[IndicatorOption, ...] = tuple(indicators or ())
        self._by_id: Dict[str, ToolNode] = {t.id: t for t in self.tools}

    def __contains__(self, type_id: str) -> bool:
        return type_id in self._by_id

    def __len__(self) -> int:
        return len(self.tools)

    def get(self, type_id: str) -> Optional[ToolNode]:
        return self._by_id.get(type_id)

    def by_category(self, category: Category) -> List[ToolNode]:
        return [t for t in self.tools if t.category == category]

    def category_of(self, type_id: str) -> Optional[Category]:
        tool = self._by_id.get(type_id)
        return tool.category if tool else None

    def setting(self, key: str, default: Any = None) -> Any:
        return self.compile_settings.get(key, default)

    @property
    def goal_markers(self) -> Tuple[str, ...]:
        return tuple(self.compile_settings.get("goal_markers", ()))

    def template_for(self, type_id: str, tier: str) -> Dict[str, Any]:
        """
        Resolve the compilation template of a node type for an LFA tier.

        Domain-level defaults for the tier are overlaid with the tool's own
        template keys, so a tool only declares what it changes.

        Args:
            type_id: Toolbox type id (unknown ids get the defaults only)
            tier: One of 'goal', 'outcome', 'output', 'activity'

        Returns:
            Template mapping with narrative/indicators/means_of_verification/assumptions
        """
        merged: Dict[str, Any] = dict(self.defaults.get(tier, {}))
        tool = self._by_id.get(type_id)
        if tool is not None:
            merged.update(tool.templates.get(tier, {}))
        return merged

    def indicators_for_theme(self, theme: Optional[str] = None) -> List[IndicatorOption]:
        """General indicators plus those of `theme` (defaults to this domain)."""
        wanted = (theme or self.domain.value).lower()
        return [i for i in self.indicators if i.theme in ("general", wanted)]

    def _measures_result(self, type_id: str) -> bool:
        if type_id in ("outcome", "bridge", "goal") or type_id in self.goal_markers:
            return True
        return self.category_of(type_id) == Category.BRIDGE

    def indicators_for_edge(self, source_type: str, target_type: str) -> List[IndicatorOption]:
        """
        Indicators suited to measuring one connection.

        Edges into a practice change or goal measure a result and get outcome
        indicators; edges out of an intervention measure the action and get
        process and output indicators. Anything else gets the whole library.

        Args:
            source_type: Coarse type or toolbox id of the upstream node
            target_type: Coarse type or toolbox id of the downstream node

        Returns:
            Matching library entries in catalog order
        """
        if self._measures_result(target_type):
            wanted = {IndicatorType.OUTCOME}
        elif source_type == "intervention" or self.category_of(source_type) == Category.INTERVENTION:
            wanted = {IndicatorType.PROCESS, IndicatorType.OUTPUT}
        else:
            return list(self.indicators)
        return [i for i in self.indicators if i.type in wanted]

    def decode_attributes(
        self, type_id: str, raw: Optional[Mapping[str, Any]]
    ) -> Tuple[Dict[str, Any], List[AttributeIssue]]:
        """
        Decode a node's open attribute map against its field schema.

        Known fields are coerced to their declared type; values that cannot be
        coerced are omitted and reported. Unknown keys pass through untouched.
        Missing fields with a declared default receive it.

        Args:
            type_id: Toolbox type id of the node
            raw: Attribute map as produced by the authoring UI

        Returns:
            Tuple of (decoded attributes, list of AttributeIssue)
        """
        raw = dict(raw or {})
        tool = self._by_id.get(type_id)
        if tool is None:
            return raw, []

        decoded: Dict[str, Any] = {}
        issues: List[AttributeIssue] = []
        for key, value in raw.items():
            spec = tool.field_named(key)
            if spec is None:
                decoded[key] = value
                continue
            if value is None or value == "":
                continue
            try:
                decoded[key] = _coerce(spec, value)
            except ValueError as e:
                issues.append(AttributeIssue(type_id, key, str(e)))

        for spec in tool.fields:
            if spec.name in decoded:
                continue
            if spec.default is not None:
                decoded[spec.name] = spec.default
            elif spec.required and not any(i.field == spec.name for i in issues):
                issues.append(AttributeIssue(type_id, spec.name, "missing required field"))

        return decoded, issues

    def as_dict(self) -> Dict[str, Any]:
        """Serialize the catalog for the authoring UI palette."""
        return {
            "domain": self.domain.value,
            "version": self.version,
            "label": self.label,
            "tools": [t.to_dict() for t in self.tools],
        }


def _coerce(spec: FieldSpec, value: Any) -> Any:
    if spec.type == FieldType.NUMBER:
        if isinstance(value, bool):
            raise ValueError(f"expected a number, got {value!r}")
        if isinstance(value, (int, float)):
            return value
        text = str(value).strip()
        try:
            return int(text)
        except ValueError:
            try:
                return float(text)
            except ValueError:
                raise ValueError(f"expected a number, got {value!r}") from None

    if spec.type == FieldType.BOOLEAN:
        if isinstance(value, bool):
            return value
        text = str(value).strip().lower()
        if text in _TRUE_STRINGS:
            return True
        if text in _FALSE_STRINGS:
            return False
        raise ValueError(f"expected a boolean, got {value!r}")

    if spec.type == FieldType.SELECT:
        text = str(value).strip()
        for option in spec.options:
            if option.lower() == text.lower():
                return option
        raise ValueError(f"{value!r} is not one of {list(spec.options)}")

    if spec.type == FieldType.DATE:
        if isinstance(value, datetime.date):
            return value.isoformat()
        try:
            return datetime.date.fromisoformat(str(value).strip()).isoformat()
        except ValueError:
            raise ValueError(f"expected an ISO date, got {value!r}") from None

    return str(value).strip()


def _field_from_dict(d: Mapping[str, Any]) -> FieldSpec:
    return FieldSpec(
        name=d["name"],
        label=d.get("label", d["name"]),
        type=FieldType(d.get("type", "text")),
        required=bool(d.get("required", False)),
        options=tuple(str(o) for o in d.get("options", []) or []),
        default=d.get("default"),
        placeholder=d.get("placeholder"),
        read_only=bool(d.get("read_only", False)),
    )


def toolbox_from_dict(spec: Mapping[str, Any]) -> Toolbox:
    """
    Build a `Toolbox` from a YAML-parsed dictionary.

    Args:
        spec: Parsed catalog dictionary

    Returns:
        Toolbox: The read-only catalog
    """
    tools = []
    for entry in spec.get("tools", []) or []:
        tools.append(
            ToolNode(
                id=entry["id"],
                label=entry.get("label", entry["id"]),
                category=Category(entry["category"]),
                fields=tuple(_field_from_dict(f) for f in entry.get("fields", []) or []),
                description=entry.get("description"),
                templates=entry.get("templates", {}) or {},
                level=entry.get("level"),
                bandwidth=entry.get("bandwidth"),
                influence=entry.get("influence"),
                required_for_scale=entry.get("required_for_scale"),
            )
        )
    indicators = [
        IndicatorOption(
            id=entry["id"],
            label=entry.get("label", entry["id"]),
            type=IndicatorType(entry.get("type", "process")),
            theme=str(entry.get("theme", "general")).lower(),
            unit=str(entry.get("unit", "")),
        )
        for entry in spec.get("indicators", []) or []
    ]
    return Toolbox(
        domain=Domain(spec["domain"]),
        version=str(spec.get("version", "0")),
        tools=tools,
        label=spec.get("label", ""),
        compile_settings=spec.get("compile", {}) or {},
        defaults=spec.get("defaults", {}) or {},
        indicators=indicators,
    )


def load_toolbox(path: str | Path) -> Toolbox:
    """Load a toolbox catalog from a YAML file path."""
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    return toolbox_from_dict(data)


def _coerce_domain(domain: Domain | str) -> Domain:
    if isinstance(domain, Domain):
        return domain
    try:
        return Domain(str(domain).lower())
    except ValueError:
        raise UnknownDomainError(domain) from None


@lru_cache(maxsize=None)
def _cached_toolbox(domain: Domain) -> Toolbox:
    path = DOMAINS_DIR / f"{domain.value}.yaml"
    if not path.exists():
        raise UnknownDomainError(domain.value)
    return load_toolbox(path)


def get_toolbox(domain: Domain | str) -> Toolbox:
    """
    Return the bundled toolbox for a domain.

    Raises:
        UnknownDomainError: If the domain has no bundled catalog
    """
    return _cached_toolbox(_coerce_domain(domain))


def available_domains() -> List[Domain]:
    """Domains with a bundled toolbox catalog, in enum order."""
    return [d for d in Domain if (DOMAINS_DIR / f"{d.value}.yaml").exists()]
