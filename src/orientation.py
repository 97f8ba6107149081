"""
Choose between the part as drawn and the part turned 90 degrees.

Both orientations are packed with the same spacing and quantity settings.
The one with more cavities wins; equal counts go to the better material
utilization, and a full tie keeps the part as drawn.
"""
import logging
from dataclasses import dataclass

from layout_engine import InvalidSpacingRequest, LayoutRequest, LayoutResult, no_fit_layout

logger = logging.getLogger(__name__)

NORMAL = "normal"
ROTATED = "rotated"
BEST = "best"
ORIENTATIONS = (BEST, NORMAL, ROTATED)


@dataclass(frozen=True)
class OrientationChoice:
    """Both candidate layouts and which one was picked automatically."""
    normal: LayoutResult
    rotated: LayoutResult
    best: str

    def layout(self, orientation: str = BEST) -> LayoutResult:
        """Layout for *orientation*: best, normal or rotated."""
        if orientation == BEST:
            orientation = self.best
        if orientation == NORMAL:
            return self.normal
        if orientation == ROTATED:
            return self.rotated
        raise ValueError(f"Unknown orientation {orientation!r}, expected one of {ORIENTATIONS}")

    @property
    def selected(self) -> LayoutResult:
        return self.layout(BEST)


def better_orientation(normal: LayoutResult, rotated: LayoutResult) -> str:
    if rotated.cavity_count != normal.cavity_count:
        return ROTATED if rotated.cavity_count > normal.cavity_count else NORMAL
    if rotated.utilization > normal.utilization:
        return ROTATED
    return NORMAL


def select_orientation(request: LayoutRequest) -> OrientationChoice:
    """Pack *request* as drawn and rotated, and pick the better one.

    A center-to-center pitch that only suits one orientation leaves the other
    as an empty layout; if it suits neither the InvalidSpacingRequest is
    raised.
    """
    normal, normal_error = _try_pack(request)
    rotated, rotated_error = _try_pack(request.rotated())
    if normal_error and rotated_error:
        raise normal_error
    if normal_error:
        logger.warning("As drawn: %s", normal_error)
        normal = _empty_for(request)
    if rotated_error:
        logger.warning("Rotated: %s", rotated_error)
        rotated = _empty_for(request.rotated())

    best = better_orientation(normal, rotated)
    logger.debug("Orientation %s: normal=%d rotated=%d cavities",
                 best, normal.cavity_count, rotated.cavity_count)
    return OrientationChoice(normal=normal, rotated=rotated, best=best)


def _try_pack(request: LayoutRequest):
    try:
        return request.run(), None
    except InvalidSpacingRequest as exc:
        return None, exc


def _empty_for(request: LayoutRequest) -> LayoutResult:
    return no_fit_layout(
        part_width=request.part_width,
        part_length=request.part_length,
        web_width=request.web_width,
        max_index_length=request.max_index_length,
        min_spacing=request.min_spacing,
        policy=request.policy,
    )
