"""
DXF export for thermoform mold layouts.

Uses ezdxf to produce DXF files with layers:
  - DIE_CUT (red, ACI 1): cavity outlines, rounded corners as ARC entities
  - PLATE (white, ACI 7): forming area (web width x used index)
  - CHAIN (grey, ACI 8): chain strips outside the web
  - NOTES (blue, ACI 5): labels

Units: inches. Format: R2010. x runs across the web from its left edge,
y along the index.
"""
import logging
import os
from dataclasses import dataclass
from typing import Optional

import ezdxf
from ezdxf.enums import TextEntityAlignment

from drawing_entities import PartFootprint
from layout_engine import LayoutResult

logger = logging.getLogger(__name__)


@dataclass
class DXFExportConfig:
    """Configuration for DXF export."""
    cut_layer: str = "DIE_CUT"
    plate_layer: str = "PLATE"
    chain_layer: str = "CHAIN"
    notes_layer: str = "NOTES"
    cut_color: int = 1       # ACI red
    plate_color: int = 7     # ACI white/black
    chain_color: int = 8     # ACI grey
    notes_color: int = 5     # ACI blue
    chain_width: float = 0.75
    add_labels: bool = True
    label_height: float = 0.25


def layout_to_dxf(
    layout: LayoutResult,
    filepath: str,
    corner_radius: float = 0.0,
    config: Optional[DXFExportConfig] = None,
) -> str:
    """Export a cavity layout as a mold drawing.

    Args:
        layout: Computed layout.
        filepath: Output DXF file path.
        corner_radius: Cavity corner radius.
        config: DXF export settings.

    Returns:
        Path to created DXF file.
    """
    if config is None:
        config = DXFExportConfig()

    doc = ezdxf.new("R2010")
    doc.units = ezdxf.units.IN
    msp = doc.modelspace()
    _setup_layers(doc, config)

    length = layout.used_index_length or layout.max_index_length
    _add_rectangle(msp, 0.0, 0.0, layout.web_width, length, config.plate_layer)
    if config.chain_width > 0:
        _add_rectangle(msp, -config.chain_width, 0.0, 0.0, length, config.chain_layer)
        _add_rectangle(msp, layout.web_width, 0.0,
                       layout.web_width + config.chain_width, length, config.chain_layer)

    for position in layout.positions:
        add_rounded_rectangle(
            msp,
            position.center_x,
            position.center_y,
            layout.part_width,
            layout.part_length,
            corner_radius,
            config.cut_layer,
        )

    if config.add_labels:
        msp.add_text(
            f"{layout.cavity_count} CAV {layout.across}x{layout.down} "
            f"{layout.web_width:g} WEB {length:g} INDEX",
            height=config.label_height,
            dxfattribs={"layer": config.notes_layer},
        ).set_placement(
            (layout.web_width / 2, -config.label_height * 2),
            align=TextEntityAlignment.MIDDLE_CENTER,
        )

    os.makedirs(os.path.dirname(filepath) or ".", exist_ok=True)
    doc.saveas(filepath)
    logger.info("Exported DXF: %s", filepath)
    return filepath


def footprint_to_dxf(
    footprint: PartFootprint,
    filepath: str,
    config: Optional[DXFExportConfig] = None,
) -> str:
    """Export a single part outline centered on the origin."""
    if config is None:
        config = DXFExportConfig()

    doc = ezdxf.new("R2010")
    doc.units = ezdxf.units.IN
    msp = doc.modelspace()
    _setup_layers(doc, config)
    add_rounded_rectangle(
        msp, 0.0, 0.0, footprint.width, footprint.length,
        footprint.corner_radius, config.cut_layer,
    )

    os.makedirs(os.path.dirname(filepath) or ".", exist_ok=True)
    doc.saveas(filepath)
    logger.info("Exported DXF: %s", filepath)
    return filepath


def add_rounded_rectangle(
    msp,
    cx: float,
    cy: float,
    width: float,
    length: float,
    radius: float,
    layer: str,
) -> None:
    """Add a rounded rectangle as four corner arcs followed by its straight edges.

    The arcs of one rectangle are written consecutively. A zero radius gives a
    closed LWPolyline instead.
    """
    radius = max(0.0, min(radius, width / 2, length / 2))
    half_w, half_l = width / 2, length / 2
    attribs = {"layer": layer}

    if radius <= 0:
        _add_rectangle(msp, cx - half_w, cy - half_l, cx + half_w, cy + half_l, layer)
        return

    inner_w, inner_l = half_w - radius, half_l - radius
    corners = (
        (cx + inner_w, cy + inner_l, 0, 90),
        (cx - inner_w, cy + inner_l, 90, 180),
        (cx - inner_w, cy - inner_l, 180, 270),
        (cx + inner_w, cy - inner_l, 270, 360),
    )
    for x, y, start, end in corners:
        msp.add_arc((x, y), radius, start, end, dxfattribs=attribs)

    edges = (
        ((cx - inner_w, cy + half_l), (cx + inner_w, cy + half_l)),
        ((cx - inner_w, cy - half_l), (cx + inner_w, cy - half_l)),
        ((cx - half_w, cy - inner_l), (cx - half_w, cy + inner_l)),
        ((cx + half_w, cy - inner_l), (cx + half_w, cy + inner_l)),
    )
    for start, end in edges:
        if start != end:
            msp.add_line(start, end, dxfattribs=attribs)


# ─── Internal helpers ────────────────────────────────────────────────────────

def _setup_layers(doc, config: DXFExportConfig) -> None:
    doc.layers.add(config.cut_layer, color=config.cut_color)
    doc.layers.add(config.plate_layer, color=config.plate_color)
    doc.layers.add(config.chain_layer, color=config.chain_color)
    doc.layers.add(config.notes_layer, color=config.notes_color)


def _add_rectangle(msp, x0: float, y0: float, x1: float, y1: float, layer: str) -> None:
    """Add an axis-aligned rectangle as a closed LWPolyline."""
    msp.add_lwpolyline(
        [(x0, y0), (x1, y0), (x1, y1), (x0, y1)],
        close=True,
        dxfattribs={"layer": layer},
    )
