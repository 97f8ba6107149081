"""
SVG preview of a thermoform cavity layout.

Draws the sheet with its chain strips, the web, every cavity and the side
margin and part spacing callouts. One SVG user unit is one inch.
"""
import logging
from dataclasses import dataclass
from typing import Optional

import svgwrite

from layout_engine import LayoutResult

logger = logging.getLogger(__name__)

STYLE = """
    .sheet { stroke: #475569; stroke-width: 0.03; stroke-dasharray: 0.2,0.15; fill: #1a2744; }
    .chain { stroke: #3b4c6b; stroke-width: 0.02; fill: #334155; fill-opacity: 0.35; }
    .web { stroke: #64748b; stroke-width: 0.05; fill: none; }
    .cavity { stroke: #4EA8DE; stroke-width: 0.05; fill: #4EA8DE; fill-opacity: 0.22; }
    .dim { stroke: #f59e0b; stroke-width: 0.02; }
    .label { font-size: 0.45px; font-family: monospace; fill: #cbd5e1; }
"""


@dataclass
class SVGExportConfig:
    chain_width: float = 0.75
    padding: float = 2.0
    corner_radius: float = 0.0
    add_labels: bool = True


def layout_to_svg(
    layout: LayoutResult,
    filepath: str,
    config: Optional[SVGExportConfig] = None,
) -> str:
    """
    Export a layout preview to SVG.

    Args:
        layout: Computed layout
        filepath: Output SVG file path
        config: Drawing settings

    Returns:
        Path to created SVG file
    """
    if config is None:
        config = SVGExportConfig()

    chain = config.chain_width
    pad = config.padding
    sheet_w = layout.web_width + 2 * chain
    sheet_l = max(layout.used_index_length, 1.0)
    canvas_w = sheet_w + 2 * pad
    canvas_h = sheet_l + 2 * pad

    dwg = svgwrite.Drawing(
        filepath,
        size=(f"{canvas_w}in", f"{canvas_h}in"),
        viewBox=f"0 0 {canvas_w} {canvas_h}",
    )
    dwg.defs.add(dwg.style(STYLE))

    dwg.add(dwg.rect(insert=(pad, pad), size=(sheet_w, sheet_l), class_="sheet"))
    dwg.add(dwg.rect(insert=(pad, pad), size=(chain, sheet_l), class_="chain"))
    dwg.add(dwg.rect(insert=(pad + chain + layout.web_width, pad), size=(chain, sheet_l), class_="chain"))
    dwg.add(dwg.rect(insert=(pad + chain, pad), size=(layout.web_width, sheet_l), class_="web"))

    origin_x = pad + chain
    for p in layout.positions:
        dwg.add(dwg.rect(
            insert=(origin_x + p.center_x - layout.part_width / 2,
                    pad + p.center_y - layout.part_length / 2),
            size=(layout.part_width, layout.part_length),
            rx=config.corner_radius,
            ry=config.corner_radius,
            class_="cavity",
        ))

    if config.add_labels:
        _add_callouts(dwg, layout, origin_x, pad, sheet_l)

    dwg.save()
    logger.info("Exported SVG: %s", filepath)
    return filepath


def _add_callouts(dwg, layout: LayoutResult, origin_x: float, top: float, sheet_l: float) -> None:
    """Side margin, part spacing and overall size labels."""
    if not layout.positions:
        dwg.add(dwg.text(
            "Part does not fit this configuration.",
            insert=(origin_x + layout.web_width / 2, top + sheet_l / 2),
            class_="label",
            text_anchor="middle",
        ))
        return

    first = layout.positions[0]
    mid_y = top + first.center_y
    if layout.margin_left > 0:
        dwg.add(dwg.line(start=(origin_x, mid_y), end=(origin_x + layout.margin_left, mid_y), class_="dim"))
        dwg.add(dwg.text(
            f'{layout.margin_left:.2f}"',
            insert=(origin_x + layout.margin_left / 2, mid_y - 0.15),
            class_="label",
            text_anchor="middle",
        ))

    if layout.across >= 2 and layout.spacing_horizontal > 0:
        gap_x = origin_x + first.center_x + layout.part_width / 2
        dwg.add(dwg.line(start=(gap_x, mid_y), end=(gap_x + layout.spacing_horizontal, mid_y), class_="dim"))
        dwg.add(dwg.text(
            f'{layout.spacing_horizontal:.2f}"',
            insert=(gap_x + layout.spacing_horizontal / 2, mid_y - 0.15),
            class_="label",
            text_anchor="middle",
        ))

    dwg.add(dwg.text(
        f'{layout.web_width:g}" web / {layout.used_index_length:g}" index / '
        f"{layout.cavity_count} cav ({layout.across}x{layout.down})",
        insert=(origin_x + layout.web_width / 2, top + sheet_l + 0.8),
        class_="label",
        text_anchor="middle",
    ))
