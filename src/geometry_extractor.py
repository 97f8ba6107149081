"""
Resolve a part footprint from a DXF drawing.

Decoded entities are narrowed to the part geometry by layer, then either a
repeating cavity pattern is detected or the overall extent of the selection is
used as the footprint. Failure to find any geometry is reported in the
returned ExtractionResult rather than raised.
"""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

import numpy as np

from cavity_detector import RADIUS_ROUND_PLACES, CavityPattern, defined_arcs, detect_cavity_pattern
from drawing_entities import (
    BoundingBox,
    EntityKind,
    GeometryEntity,
    PartFootprint,
    unit_scale_for,
)
from dxf_decoder import decode_entities, has_entities_section
from layer_selector import layer_names, select_part_entities

logger = logging.getLogger(__name__)

NO_SECTION_ERROR = "No ENTITIES section found in drawing"
NO_GEOMETRY_ERROR = "No geometry found in drawing"


@dataclass(frozen=True)
class ExtractionResult:
    """Outcome of reading a drawing. footprint is None when extraction failed."""
    footprint: Optional[PartFootprint]
    pattern: Optional[CavityPattern] = None
    bounding_box: Optional[BoundingBox] = None
    layer_strategy: str = ""
    layers: tuple = ()
    entity_count: int = 0
    total_entities: int = 0
    arc_count: int = 0
    normalized_from_mm: bool = False
    error: Optional[str] = None
    source_name: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.footprint is not None

    @property
    def from_pattern(self) -> bool:
        return self.pattern is not None


def entity_extent(entities: Sequence[GeometryEntity]) -> Optional[BoundingBox]:
    """Combined extent of *entities*, or None if nothing has a coordinate."""
    xs: List[float] = []
    ys: List[float] = []
    for entity in entities:
        if entity.kind is EntityKind.LINE:
            points = (entity.start, entity.end)
        elif entity.kind is EntityKind.LWPOLYLINE:
            points = entity.points
        else:
            cx, cy = entity.center
            r = entity.radius
            if r is None:
                continue
            if cx is not None:
                xs.extend((cx - r, cx + r))
            if cy is not None:
                ys.extend((cy - r, cy + r))
            continue
        for x, y in points:
            if x is not None:
                xs.append(x)
            if y is not None:
                ys.append(y)

    if not xs or not ys:
        return None
    x_arr = np.asarray(xs, dtype=float)
    y_arr = np.asarray(ys, dtype=float)
    return BoundingBox(
        min_x=float(x_arr.min()),
        max_x=float(x_arr.max()),
        min_y=float(y_arr.min()),
        max_y=float(y_arr.max()),
    )


def min_arc_radius(entities: Sequence[GeometryEntity]) -> float:
    radii = {round(a.radius, RADIUS_ROUND_PLACES) for a in defined_arcs(entities)}
    return min(radii) if radii else 0.0


def footprint_from_extent(
    bbox: BoundingBox,
    corner_radius: float = 0.0,
) -> Optional[PartFootprint]:
    """Footprint for a whole-drawing extent, converted to inches when needed."""
    if bbox.width <= 0 or bbox.height <= 0:
        return None
    footprint = PartFootprint(width=bbox.width, length=bbox.height, corner_radius=corner_radius)
    scale = unit_scale_for(bbox.width, bbox.height)
    if scale != 1.0:
        logger.info("Extent %.3f x %.3f looks like millimeters, converting to inches",
                    bbox.width, bbox.height)
        footprint = footprint.scaled(scale, units="in")
    return footprint


def extract_from_entities(
    entities: Sequence[GeometryEntity],
    source_name: Optional[str] = None,
) -> ExtractionResult:
    """Footprint from already decoded entities."""
    selection = select_part_entities(entities)
    selected = selection.entities
    common = dict(
        layer_strategy=selection.strategy,
        layers=tuple(layer_names(selected)),
        entity_count=selection.count,
        total_entities=len(entities),
        arc_count=len(defined_arcs(selected)),
        source_name=source_name,
    )

    pattern = detect_cavity_pattern(selected)
    if pattern is not None:
        logger.info(
            "Detected %dx%d cavity pattern, cavity %.4f x %.4f",
            pattern.across, pattern.down, pattern.footprint.width, pattern.footprint.length,
        )
        return ExtractionResult(
            footprint=pattern.footprint,
            pattern=pattern,
            normalized_from_mm=pattern.normalized_from_mm,
            **common,
        )

    bbox = entity_extent(selected)
    footprint = footprint_from_extent(bbox, min_arc_radius(selected)) if bbox else None
    if footprint is None:
        logger.warning("%s (%d entities decoded)", NO_GEOMETRY_ERROR, len(entities))
        return ExtractionResult(footprint=None, bounding_box=bbox, error=NO_GEOMETRY_ERROR, **common)

    logger.info("Using overall extent %.4f x %.4f", footprint.width, footprint.length)
    return ExtractionResult(
        footprint=footprint,
        bounding_box=bbox,
        normalized_from_mm=unit_scale_for(bbox.width, bbox.height) != 1.0,
        **common,
    )


def extract_part_footprint(text: str, source_name: Optional[str] = None) -> ExtractionResult:
    """Footprint from DXF text."""
    if not has_entities_section(text):
        logger.warning(NO_SECTION_ERROR)
        return ExtractionResult(footprint=None, error=NO_SECTION_ERROR, source_name=source_name)
    return extract_from_entities(decode_entities(text), source_name=source_name)


def extract_from_file(path: Union[str, Path]) -> ExtractionResult:
    """Footprint from a DXF file on disk."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundError(f"Drawing not found: {path}")
    text = path.read_text(encoding="utf-8", errors="replace")
    return extract_part_footprint(text, source_name=path.name)
