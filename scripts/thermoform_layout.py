#!/usr/bin/env python3
"""Compute a thermoform cavity layout from a DXF drawing or part dimensions."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from drawing_entities import PartFootprint
from layout_engine import InvalidSpacingRequest, SpacingPolicy
from layout_report import index_lengths
from orientation import ORIENTATIONS
from pipeline import PipelineConfig, run_pipeline_from_drawing, run_pipeline_from_footprint
from thermoform_config import ThermoformConfig

POLICIES = ("gap", "edge", "ctc")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Pack identical cavities onto a thermoforming web"
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--drawing", help="Path to a DXF part or mold drawing")
    source.add_argument(
        "--part", nargs=2, type=float, metavar=("WIDTH", "LENGTH"),
        help="Part cut size in inches",
    )
    parser.add_argument("--name", default=None, help="Design/run name")
    parser.add_argument("--runs-dir", default="runs", help="Runs output root")
    parser.add_argument(
        "--draw-depth", type=float, default=1.0,
        help="Draw depth (Z-height) in inches; sets the minimum spacing",
    )
    parser.add_argument("--web-width", type=float, default=None, help="Web (mold) width in inches")
    parser.add_argument("--max-index", type=float, default=None, help="Maximum index length in inches")
    parser.add_argument(
        "--policy", choices=POLICIES, default="gap",
        help="Index spacing: gap-locked, edge-locked or fixed center-to-center",
    )
    parser.add_argument("--ctc", type=float, default=None, help="Center-to-center pitch for --policy ctc")
    parser.add_argument("--quantity", type=int, default=None, help="Cap the cavity count")
    parser.add_argument("--orientation", choices=ORIENTATIONS, default="best")
    parser.add_argument(
        "--round-index", type=float, default=None,
        help="Trim the index to a multiple of this increment (e.g. 1.0)",
    )
    parser.add_argument("--no-dxf", action="store_true", help="Skip the DXF mold drawing")
    parser.add_argument("--no-svg", action="store_true", help="Skip the SVG preview")
    parser.add_argument("--no-sweep", action="store_true", help="Skip the web width sweep")
    parser.add_argument(
        "--sweep-index", nargs=3, type=float, default=None, metavar=("START", "STOP", "STEP"),
        help="Also sweep index lengths from START to STOP inclusive",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logs"
    )
    return parser


def build_policy(args: argparse.Namespace) -> SpacingPolicy:
    if args.policy == "edge":
        return SpacingPolicy.edge_locked()
    if args.policy == "ctc":
        if args.ctc is None:
            raise InvalidSpacingRequest("--policy ctc needs --ctc")
        return SpacingPolicy.center_to_center(args.ctc)
    return SpacingPolicy.gap_locked()


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    logger = logging.getLogger("thermoform_layout")

    try:
        config = PipelineConfig(
            runs_dir=args.runs_dir,
            draw_depth=args.draw_depth,
            web_width=args.web_width,
            max_index=args.max_index,
            quantity_cap=args.quantity,
            policy=build_policy(args),
            orientation=args.orientation,
            export_dxf=not args.no_dxf,
            export_svg=not args.no_svg,
            sweep_web_widths=not args.no_sweep,
            sweep_index_lengths=index_lengths(*args.sweep_index) if args.sweep_index else None,
            machine=ThermoformConfig(round_index_to=args.round_index),
        )
        if args.drawing:
            result = run_pipeline_from_drawing(args.drawing, args.name, config)
        else:
            footprint = PartFootprint(width=args.part[0], length=args.part[1])
            result = run_pipeline_from_footprint(footprint, args.name or "part", config)
    except InvalidSpacingRequest as exc:
        logger.error("Invalid spacing: %s", exc)
        return 2
    except (FileNotFoundError, ValueError) as exc:
        logger.error("%s", exc)
        return 2

    if result.status == "failed":
        logger.error("No geometry extracted: %s", result.extraction.error)
        return 1

    layout = result.layout
    orientation = result.choice.best if args.orientation == "best" else args.orientation
    print(f"Run: {result.run_id}")
    print(f"Cavities: {layout.cavity_count} ({layout.across} x {layout.down}), "
          f"orientation {orientation}")
    print(f"Utilization: {result.summary.utilization_pct:.1f}%")
    for violation in result.violations:
        print(f"Check {violation.severity}: {violation.message}")
    print(f"Summary: {result.summary_path}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
