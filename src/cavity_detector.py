"""
Detect a multi-cavity mold layout from repeated rounded-rectangle corners.

A mold drawing shows several copies of the same rounded-rectangle cavity.
Each cavity contributes four corner arcs sharing one radius, so the most
common arc radius is taken as the corner radius and the matching arcs are
read in drawing order, four at a time, as one cavity each. Distinct cavity
centers give the grid size and the center-to-center spacing that is already
drawn into the mold.

This is best effort: it relies on each cavity's four corners being written
consecutively. When the matching arc count is not a multiple of four nothing
is reported and the caller falls back to the overall extent.
"""
import logging
from collections import Counter
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from drawing_entities import (
    ArcEntity,
    CavityBox,
    EntityKind,
    GeometryEntity,
    PartFootprint,
    unit_scale_for,
)

logger = logging.getLogger(__name__)

CORNERS_PER_CAVITY = 4
RADIUS_ROUND_PLACES = 4
RADIUS_TOLERANCE = 0.001
CENTER_QUANTUM = 0.1


@dataclass(frozen=True)
class CavityPattern:
    """A repeating cavity grid found in a mold drawing (inches)."""
    footprint: PartFootprint
    across: int
    down: int
    ctc_horizontal: Optional[float]
    ctc_vertical: Optional[float]
    cavities: Tuple[CavityBox, ...]
    normalized_from_mm: bool = False

    @property
    def cavity_count(self) -> int:
        return len(self.cavities)


def defined_arcs(entities: Sequence[GeometryEntity]) -> List[ArcEntity]:
    """Arcs with a usable radius and center."""
    return [
        e for e in entities
        if e.kind is EntityKind.ARC
        and e.radius is not None and e.radius > 0
        and e.center[0] is not None and e.center[1] is not None
    ]


def dominant_radius(arcs: Sequence[ArcEntity]) -> Optional[float]:
    """Most frequent arc radius, rounded. Ties go to the radius seen first."""
    histogram = Counter(round(a.radius, RADIUS_ROUND_PLACES) for a in arcs)
    if not histogram:
        return None
    radius, _ = histogram.most_common(1)[0]
    return radius


def group_corner_arcs(
    arcs: Sequence[ArcEntity],
    size: int = CORNERS_PER_CAVITY,
) -> List[Tuple[ArcEntity, ...]]:
    """Split *arcs* into consecutive fixed-size groups."""
    return [tuple(arcs[k:k + size]) for k in range(0, len(arcs), size)]


def cavity_from_corners(corners: Sequence[ArcEntity], radius: float) -> CavityBox:
    xs = [a.center[0] for a in corners]
    ys = [a.center[1] for a in corners]
    min_x, max_x = min(xs) - radius, max(xs) + radius
    min_y, max_y = min(ys) - radius, max(ys) + radius
    return CavityBox(
        center_x=(min_x + max_x) / 2,
        center_y=(min_y + max_y) / 2,
        width=max_x - min_x,
        height=max_y - min_y,
    )


def distinct_positions(values: Sequence[float], quantum: float = CENTER_QUANTUM) -> np.ndarray:
    """Sorted distinct coordinates after snapping to *quantum*."""
    snapped = np.round(np.asarray(values, dtype=float) / quantum) * quantum
    return np.unique(np.round(snapped, 6))


def _first_pitch(positions: np.ndarray) -> Optional[float]:
    if len(positions) < 2:
        return None
    return float(positions[1] - positions[0])


def detect_cavity_pattern(entities: Sequence[GeometryEntity]) -> Optional[CavityPattern]:
    """Find a repeated cavity grid among *entities*, or None."""
    arcs = defined_arcs(entities)
    if len(arcs) < CORNERS_PER_CAVITY:
        return None

    radius = dominant_radius(arcs)
    corners = [a for a in arcs if abs(a.radius - radius) <= RADIUS_TOLERANCE]
    if not corners or len(corners) % CORNERS_PER_CAVITY != 0:
        logger.debug(
            "%d arcs of radius %.4f is not a multiple of %d, no cavity pattern",
            len(corners), radius, CORNERS_PER_CAVITY,
        )
        return None

    cavities = [cavity_from_corners(group, radius) for group in group_corner_arcs(corners)]
    xs = distinct_positions([c.center_x for c in cavities])
    ys = distinct_positions([c.center_y for c in cavities])
    ctc_h = _first_pitch(xs)
    ctc_v = _first_pitch(ys)

    first = cavities[0]
    scale = unit_scale_for(first.width, first.height)
    if scale != 1.0:
        logger.info("Cavity %.3f x %.3f looks like millimeters, converting to inches",
                    first.width, first.height)
        cavities = [
            CavityBox(
                center_x=c.center_x * scale,
                center_y=c.center_y * scale,
                width=c.width * scale,
                height=c.height * scale,
            )
            for c in cavities
        ]
        first = cavities[0]
        radius *= scale
        ctc_h = ctc_h * scale if ctc_h is not None else None
        ctc_v = ctc_v * scale if ctc_v is not None else None

    pattern = CavityPattern(
        footprint=PartFootprint(width=first.width, length=first.height, corner_radius=radius),
        across=len(xs),
        down=len(ys),
        ctc_horizontal=ctc_h,
        ctc_vertical=ctc_v,
        cavities=tuple(cavities),
        normalized_from_mm=scale != 1.0,
    )
    logger.debug("Detected %dx%d cavity pattern (%d cavities)",
                 pattern.across, pattern.down, pattern.cavity_count)
    return pattern
