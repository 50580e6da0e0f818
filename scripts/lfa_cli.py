#!/usr/bin/env python3
"""
LFA CLI

Usage modes:
- Default run: validate, simulate and compile a snapshot, print the combined result
- Validation: structural checks only (exit 1 on critical issues)
- Simulation: logic-health score and issues
- Compile: LFA document only
- Export: write GraphML for external tools
- Utility: list sample snapshots, show version
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from glob import glob
from pathlib import Path
from typing import Any, Dict, List

from lfa_core import __version__ as lfa_version
from lfa_core.compiler import compile_graph
from lfa_core.config import CritiqueConfig, SimulatorConfig
from lfa_core.critique import CritiqueClient
from lfa_core.enums import Severity
from lfa_core.graph import load_snapshot
from lfa_core.pipeline import analyze
from lfa_core.simulator import simulator_for
from lfa_core.toolbox import UnknownDomainError, available_domains, get_toolbox
from lfa_core.validator import validate_structure


def parse_args(argv: List[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(
        description="Validate, score and compile an LFA design graph snapshot",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
    )

    # Utilities / meta
    p.add_argument("--version", action="store_true", help="Print version and exit")
    p.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v, -vv)")
    p.add_argument("--list-samples", action="store_true", help="List bundled sample snapshots and exit")

    # Primary input
    p.add_argument("snapshot", nargs="?", help="Path to a YAML/JSON snapshot (e.g., scripts/fln_sample.yaml)")
    p.add_argument(
        "--domain",
        choices=[d.value for d in available_domains()],
        default="fln",
        help="Program domain (toolbox, simulator and compiler)",
    )
    p.add_argument("--out", type=str, default="", help="Optional output JSON file path")

    # Modes
    p.add_argument("--validate", action="store_true", help="Run structural validation only")
    p.add_argument("--simulate", action="store_true", help="Run the logic-health simulation only")
    p.add_argument("--compile", action="store_true", help="Compile the LFA document only")
    p.add_argument("--critique", action="store_true", help="Use the AI critique simulator where the domain supports it")

    # Simulator config overrides
    p.add_argument("--project-scale", type=int, default=None, help="Number of units the program covers")
    p.add_argument("--teacher-ceiling", type=int, default=None, help="Max interventions per teacher node")

    # Export
    p.add_argument("--export-graphml", type=str, default="", help="Export the snapshot to GraphML at given path")

    return p.parse_args(argv)


def build_config(args: argparse.Namespace) -> SimulatorConfig:
    cfg = SimulatorConfig()
    if args.project_scale is not None:
        cfg.project_scale = int(args.project_scale)
    if args.teacher_ceiling is not None:
        cfg.teacher_ceiling = int(args.teacher_ceiling)
    return cfg


def setup_logging(verbosity: int) -> None:
    levels = [logging.WARNING, logging.INFO, logging.DEBUG]
    level = levels[min(verbosity, len(levels) - 1)]
    logging.basicConfig(level=level, format="[%(levelname)s] %(name)s: %(message)s")


def find_sample_snapshots() -> List[str]:
    """Bundled sample snapshots, which sit next to this script."""
    return sorted(glob(str(Path(__file__).resolve().parent / "*_sample.yaml")))


def emit(payload: Dict[str, Any], out: str) -> None:
    if out:
        with open(out, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, default=str)
    else:
        print(json.dumps(payload, indent=2, default=str))


def main(argv: List[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)

    if args.version:
        print(lfa_version)
        return 0

    if args.list_samples:
        print(json.dumps(find_sample_snapshots(), indent=2))
        return 0

    if not args.snapshot:
        print("error: missing snapshot path (try --list-samples)", file=sys.stderr)
        return 2

    try:
        toolbox = get_toolbox(args.domain)
    except UnknownDomainError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2

    cfg = build_config(args)
    client = CritiqueClient(CritiqueConfig.from_env()) if args.critique else None

    logging.info("Loading snapshot from %s", args.snapshot)
    g = load_snapshot(args.snapshot, toolbox=toolbox)
    logging.info("Snapshot: %d nodes, %d edges (%d dropped)", len(g), len(g.edges), len(g.dropped_edges))
    for issue in g.attribute_issues:
        logging.warning("%s.%s: %s", issue.node_type, issue.field, issue.reason)

    if args.export_graphml:
        logging.info("Exporting GraphML to %s", args.export_graphml)
        g.export_graphml(args.export_graphml)

    if args.validate:
        errors = validate_structure(g, toolbox=toolbox)
        critical = sum(1 for e in errors if e.severity == Severity.CRITICAL)
        logging.info("Structural issues: %d (critical=%d)", len(errors), critical)
        emit({"errors": [e.to_dict() for e in errors]}, args.out)
        # Non-zero exit on critical issues
        return 1 if critical > 0 else 0

    if args.simulate:
        result = simulator_for(toolbox.domain, critique_client=client, config=cfg).simulate(g)
        logging.info("Logic health: %s (%d)", result.status.value, result.score)
        emit(result.to_dict(), args.out)
        return 0

    if args.compile:
        emit(compile_graph(g, toolbox.domain).to_dict(), args.out)
        return 0

    result = analyze(g, toolbox.domain, config=cfg, critique_client=client)
    emit(result.to_dict(), args.out)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
