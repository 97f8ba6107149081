"""Drawing -> footprint -> best layout -> run artifacts."""

from __future__ import annotations

import logging
import os
import time
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Optional, Sequence

from drawing_entities import PartFootprint
from dxf_exporter import DXFExportConfig, layout_to_dxf
from geometry_extractor import ExtractionResult, extract_from_file
from layout_engine import LayoutResult, LayoutViolation, SpacingPolicy, check_layout
from layout_report import (
    LayoutSummary,
    SweepRow,
    choice_to_dict,
    summarize_layout,
    summary_markdown,
    sweep,
)
from orientation import BEST, OrientationChoice, select_orientation
from run_protocol import (
    RunPaths,
    attach_run_log,
    copy_input_file,
    detach_run_log,
    prepare_run_dir,
    update_latest_pointer,
    write_json,
    write_text,
)
from svg_exporter import SVGExportConfig, layout_to_svg
from thermoform_config import ThermoformConfig

logger = logging.getLogger(__name__)


@dataclass
class PipelineConfig:
    runs_dir: str = "runs"
    draw_depth: float = 1.0
    web_width: Optional[float] = None
    max_index: Optional[float] = None
    quantity_cap: Optional[int] = None
    policy: SpacingPolicy = field(default_factory=SpacingPolicy.gap_locked)
    orientation: str = BEST
    export_dxf: bool = True
    export_svg: bool = True
    sweep_web_widths: bool = True
    sweep_index_lengths: Optional[Sequence[float]] = None  # None sweeps the max index only
    machine: ThermoformConfig = field(default_factory=ThermoformConfig)


@dataclass
class PipelineResult:
    run_id: str
    run_dir: str
    status: str
    manifest_path: str
    extraction: Optional[ExtractionResult] = None
    choice: Optional[OrientationChoice] = None
    layout: Optional[LayoutResult] = None
    summary: Optional[LayoutSummary] = None
    sweep_rows: List[SweepRow] = field(default_factory=list)
    violations: List[LayoutViolation] = field(default_factory=list)
    layout_json_path: Optional[str] = None
    summary_path: Optional[str] = None
    dxf_path: Optional[str] = None
    svg_path: Optional[str] = None
    drawing_input_path: Optional[str] = None


def run_pipeline_from_drawing(
    drawing_path: str,
    design_name: Optional[str] = None,
    config: Optional[PipelineConfig] = None,
) -> PipelineResult:
    """Extract the part from a DXF drawing and lay it out."""
    if not os.path.isfile(drawing_path):
        raise FileNotFoundError(f"Drawing not found: {drawing_path}")
    if config is None:
        config = PipelineConfig()
    design_name = design_name or os.path.splitext(os.path.basename(drawing_path))[0]

    paths = prepare_run_dir(config.runs_dir, design_name)
    handler = attach_run_log(paths)
    try:
        copied = copy_input_file(drawing_path, paths.input_dir)
        extraction = extract_from_file(copied)
        if not extraction.ok:
            logger.error("%s: %s", copied.name, extraction.error)
            manifest = _manifest(paths, design_name, "failed", config, extraction=extraction)
            manifest["input_drawing"] = str(copied)
            write_json(paths.manifest_path, manifest)
            update_latest_pointer(config.runs_dir, paths.run_dir)
            return PipelineResult(
                run_id=paths.run_id,
                run_dir=str(paths.run_dir),
                status="failed",
                manifest_path=str(paths.manifest_path),
                extraction=extraction,
                drawing_input_path=str(copied),
            )
        result = _layout_run(paths, design_name, extraction.footprint, config, extraction)
        result.drawing_input_path = str(copied)
        return result
    finally:
        detach_run_log(handler)


def run_pipeline_from_footprint(
    footprint: PartFootprint,
    design_name: str = "part",
    config: Optional[PipelineConfig] = None,
) -> PipelineResult:
    """Lay out a part given by its dimensions."""
    if config is None:
        config = PipelineConfig()
    paths = prepare_run_dir(config.runs_dir, design_name)
    handler = attach_run_log(paths)
    try:
        return _layout_run(paths, design_name, footprint, config, extraction=None)
    finally:
        detach_run_log(handler)


def _layout_run(
    paths: RunPaths,
    design_name: str,
    footprint: PartFootprint,
    config: PipelineConfig,
    extraction: Optional[ExtractionResult],
) -> PipelineResult:
    started = time.perf_counter()
    machine = config.machine
    request = machine.layout_request(
        footprint.width,
        footprint.length,
        config.draw_depth,
        web_width=config.web_width,
        max_index=config.max_index,
        quantity_cap=config.quantity_cap,
        policy=config.policy,
    )

    logger.info("Laying out %.4f x %.4f part, spacing %.3f, policy %s",
                footprint.width, footprint.length, request.min_spacing, request.policy.label)
    choice = select_orientation(request)
    layout = choice.layout(config.orientation)
    summary = summarize_layout(layout, machine)
    violations = check_layout(layout, machine.fit_tolerance)
    for violation in violations:
        logger.warning("%s %s: %s", violation.severity, violation.rule_name, violation.message)
    rows = (
        sweep(request, machine.web_widths_inch, config.sweep_index_lengths)
        if config.sweep_web_widths else []
    )

    payload = choice_to_dict(choice, machine)
    payload["orientation"] = config.orientation
    payload["sweep"] = [asdict(r) for r in rows]
    payload["violations"] = [asdict(v) for v in violations]
    write_json(paths.layout_path, payload)

    text = summary_markdown(
        choice, summary, title=f"Layout {paths.run_id}", rows=rows, violations=violations,
    )
    write_text(paths.summary_path, text)

    dxf_path = None
    if config.export_dxf:
        dxf_path = layout_to_dxf(
            layout,
            str(paths.artifact(f"{design_name}_layout.dxf")),
            corner_radius=footprint.corner_radius,
            config=DXFExportConfig(chain_width=machine.chain_width_each_inch),
        )

    svg_path = None
    if config.export_svg:
        svg_path = layout_to_svg(
            layout,
            str(paths.artifact(f"{design_name}_layout.svg")),
            config=SVGExportConfig(
                chain_width=machine.chain_width_each_inch,
                corner_radius=footprint.corner_radius,
            ),
        )

    status = "ok" if layout.fits else "no_fit"
    manifest = _manifest(paths, design_name, status, config, extraction=extraction)
    manifest["elapsed_s"] = round(time.perf_counter() - started, 3)
    manifest["footprint"] = asdict(footprint)
    manifest["violations"] = [asdict(v) for v in violations]
    manifest["artifacts"] = {
        "layout_json": str(paths.layout_path),
        "summary": str(paths.summary_path),
        "dxf": dxf_path,
        "svg": svg_path,
        "log": str(paths.log_path),
    }
    write_json(paths.manifest_path, manifest)
    update_latest_pointer(config.runs_dir, paths.run_dir)
    logger.info("%s: %d cavities (%s)", paths.run_id, layout.cavity_count, choice.best)

    return PipelineResult(
        run_id=paths.run_id,
        run_dir=str(paths.run_dir),
        status=status,
        manifest_path=str(paths.manifest_path),
        extraction=extraction,
        choice=choice,
        layout=layout,
        summary=summary,
        sweep_rows=rows,
        violations=violations,
        layout_json_path=str(paths.layout_path),
        summary_path=str(paths.summary_path),
        dxf_path=dxf_path,
        svg_path=svg_path,
    )


def _manifest(
    paths: RunPaths,
    design_name: str,
    status: str,
    config: PipelineConfig,
    extraction: Optional[ExtractionResult] = None,
) -> Dict[str, object]:
    manifest: Dict[str, object] = {
        "run_id": paths.run_id,
        "design_name": design_name,
        "status": status,
        "created_utc": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
        "config": {
            "draw_depth": config.draw_depth,
            "web_width": config.web_width,
            "max_index": config.max_index,
            "quantity_cap": config.quantity_cap,
            "policy": config.policy.label,
            "orientation": config.orientation,
            "sweep_index_lengths": (
                list(config.sweep_index_lengths) if config.sweep_index_lengths else None
            ),
            "machine": asdict(config.machine),
        },
    }
    if extraction is not None:
        manifest["extraction"] = _extraction_payload(extraction)
    return manifest


def _extraction_payload(extraction: ExtractionResult) -> Dict[str, object]:
    payload: Dict[str, object] = {
        "source": extraction.source_name,
        "ok": extraction.ok,
        "error": extraction.error,
        "layer_strategy": extraction.layer_strategy,
        "layers": list(extraction.layers),
        "entity_count": extraction.entity_count,
        "total_entities": extraction.total_entities,
        "arc_count": extraction.arc_count,
        "normalized_from_mm": extraction.normalized_from_mm,
        "from_pattern": extraction.from_pattern,
    }
    if extraction.pattern is not None:
        pattern = extraction.pattern
        payload["pattern"] = {
            "across": pattern.across,
            "down": pattern.down,
            "cavities": pattern.cavity_count,
            "ctc_horizontal": pattern.ctc_horizontal,
            "ctc_vertical": pattern.ctc_vertical,
        }
    return payload
