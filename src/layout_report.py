"""
Area figures and comparison tables for computed layouts.
"""
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from layout_engine import LayoutRequest, LayoutResult, LayoutViolation
from orientation import OrientationChoice, select_orientation
from thermoform_config import ThermoformConfig


@dataclass(frozen=True)
class LayoutSummary:
    """Per-index figures for one layout (square inches)."""
    across: int
    down: int
    cavity_count: int
    web_width: float
    used_index_length: float
    sheet_width: float
    forming_area: float
    sheet_area: float
    parts_area: float
    scrap_area: float
    utilization_pct: float
    mold_plate_width: float
    mold_plate_length: float


@dataclass(frozen=True)
class SweepRow:
    """Best orientation for one web width / index length combination."""
    web_width: float
    max_index_length: float
    orientation: str
    across: int
    down: int
    cavity_count: int
    used_index_length: float
    utilization_pct: float


def summarize_layout(layout: LayoutResult, config: Optional[ThermoformConfig] = None) -> LayoutSummary:
    if config is None:
        config = ThermoformConfig()
    sheet_width = config.sheet_width(layout.web_width)
    return LayoutSummary(
        across=layout.across,
        down=layout.down,
        cavity_count=layout.cavity_count,
        web_width=layout.web_width,
        used_index_length=layout.used_index_length,
        sheet_width=sheet_width,
        forming_area=layout.forming_area,
        sheet_area=sheet_width * layout.used_index_length,
        parts_area=layout.parts_area,
        scrap_area=layout.scrap_area,
        utilization_pct=layout.utilization * 100,
        mold_plate_width=layout.mold_plate_width,
        mold_plate_length=layout.mold_plate_length,
    )


def layout_to_dict(layout: LayoutResult) -> Dict[str, Any]:
    """JSON-ready view of a layout."""
    payload = asdict(layout)
    payload["policy"] = layout.policy.label
    payload["positions"] = [
        {"row": p.row, "col": p.col, "center_x": p.center_x, "center_y": p.center_y}
        for p in layout.positions
    ]
    payload["utilization"] = layout.utilization
    payload["scrap_area"] = layout.scrap_area
    return payload


def choice_to_dict(choice: OrientationChoice, config: Optional[ThermoformConfig] = None) -> Dict[str, Any]:
    return {
        "best": choice.best,
        "normal": layout_to_dict(choice.normal),
        "rotated": layout_to_dict(choice.rotated),
        "summary": asdict(summarize_layout(choice.selected, config)),
    }


def sweep(
    request: LayoutRequest,
    web_widths: Sequence[float],
    index_lengths: Optional[Sequence[float]] = None,
) -> List[SweepRow]:
    """Best orientation for every web width (and index length) combination.

    Rows come back in input order, web width outermost.
    """
    if index_lengths is None:
        index_lengths = [request.max_index_length]
    rows: List[SweepRow] = []
    for web in web_widths:
        for index_length in index_lengths:
            choice = select_orientation(
                replace(request, web_width=float(web), max_index_length=float(index_length))
            )
            layout = choice.selected
            rows.append(SweepRow(
                web_width=float(web),
                max_index_length=float(index_length),
                orientation=choice.best,
                across=layout.across,
                down=layout.down,
                cavity_count=layout.cavity_count,
                used_index_length=layout.used_index_length,
                utilization_pct=layout.utilization * 100,
            ))
    return rows


def index_lengths(start: float, stop: float, step: float) -> List[float]:
    """Evenly spaced index lengths from *start* to *stop* inclusive."""
    if step <= 0:
        raise ValueError(f"step must be positive, got {step}")
    values = np.arange(start, stop + step / 2, step)
    return [round(float(v), 6) for v in values]


def summary_markdown(
    choice: OrientationChoice,
    summary: LayoutSummary,
    title: str = "Layout",
    rows: Sequence[SweepRow] = (),
    violations: Sequence[LayoutViolation] = (),
) -> str:
    layout = choice.selected
    lines = [
        f"# {title}",
        "",
        f"- Orientation: **{choice.best}** "
        f"(as drawn {choice.normal.cavity_count}, rotated {choice.rotated.cavity_count})",
        f"- Part: {layout.part_width:.4f}\" x {layout.part_length:.4f}\"",
        f"- Cavities: {summary.cavity_count} ({summary.across} x {summary.down})",
        f"- Policy: {layout.policy.label}",
        f"- Spacing: {layout.spacing_horizontal:.3f}\" across, {layout.spacing_vertical:.3f}\" down",
        f"- Margins: {layout.margin_left:.3f}\" sides, "
        f"{layout.margin_top:.3f}\" / {layout.margin_bottom:.3f}\" ends",
        f"- Web: {summary.web_width:g}\" (sheet {summary.sheet_width:g}\" with chains)",
        f"- Index: {summary.used_index_length:.3f}\" / {layout.max_index_length:g}\" max",
        f"- Min mold plate: {summary.mold_plate_width:.3f}\" x {summary.mold_plate_length:.3f}\"",
        f"- Forming area: {summary.forming_area:.2f} sq in",
        f"- Parts area: {summary.parts_area:.2f} sq in",
        f"- Scrap area: {summary.scrap_area:.2f} sq in",
        f"- Utilization: {summary.utilization_pct:.1f}%",
        "",
    ]
    if violations:
        lines += ["## Checks", ""]
        lines += [f"- {v.severity} `{v.rule_name}`: {v.message}" for v in violations]
        lines.append("")
    if rows:
        lines += [
            "## Web width / index sweep",
            "",
            "| Web | Max index | Used index | Orientation | Grid | Cavities | Util % |",
            "|---|---|---|---|---|---|---|",
        ]
        lines += [
            f"| {r.web_width:g} | {r.max_index_length:g} | {r.used_index_length:g} | {r.orientation} | "
            f"{r.across}x{r.down} | {r.cavity_count} | {r.utilization_pct:.1f} |"
            for r in rows
        ]
        lines.append("")
    return "\n".join(lines)
