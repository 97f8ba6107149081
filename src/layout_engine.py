"""
Cavity grid layout on a thermoforming web.

Parts are placed as an axis-aligned grid of identical rectangles. Across the
web the block always keeps the minimum spacing between parts and is centered
between the web edges. Along the index a SpacingPolicy decides where the
leftover length goes:

  GAP_LOCKED        margins stay at the minimum spacing, rows spread apart
  EDGE_LOCKED       rows stay at the minimum spacing, margins grow
  CENTER_TO_CENTER  rows sit at a fixed pitch, margins take the rest

The number of rows is always found at the minimum gap first; the policy only
redistributes what is left. A part that does not fit yields an empty layout,
not an error.
"""
import logging
import math
from dataclasses import dataclass, replace
from enum import Enum
from typing import List, Optional, Tuple

from shapely.geometry import Polygon, box
from shapely.ops import unary_union

logger = logging.getLogger(__name__)

FIT_TOLERANCE = 0.001


class InvalidSpacingRequest(ValueError):
    """A fixed center-to-center pitch that cannot hold the part."""


class PolicyKind(Enum):
    GAP_LOCKED = "gap_locked"
    EDGE_LOCKED = "edge_locked"
    CENTER_TO_CENTER = "center_to_center"


@dataclass(frozen=True)
class SpacingPolicy:
    """How leftover index length is split between row gaps and end margins."""
    kind: PolicyKind = PolicyKind.GAP_LOCKED
    pitch: Optional[float] = None  # center-to-center, CENTER_TO_CENTER only

    @classmethod
    def gap_locked(cls) -> "SpacingPolicy":
        return cls(PolicyKind.GAP_LOCKED)

    @classmethod
    def edge_locked(cls) -> "SpacingPolicy":
        return cls(PolicyKind.EDGE_LOCKED)

    @classmethod
    def center_to_center(cls, pitch: float) -> "SpacingPolicy":
        if pitch is None or not math.isfinite(pitch) or pitch <= 0:
            raise InvalidSpacingRequest(f"Center-to-center pitch must be positive, got {pitch}")
        return cls(PolicyKind.CENTER_TO_CENTER, float(pitch))

    def validate_for(self, part_length: float) -> None:
        """Reject a pitch that leaves no gap between rows of *part_length*."""
        if self.kind is not PolicyKind.CENTER_TO_CENTER:
            return
        if self.pitch is None or self.pitch <= part_length:
            raise InvalidSpacingRequest(
                f"Center-to-center {self.pitch} must exceed part length {part_length}"
            )

    @property
    def label(self) -> str:
        if self.kind is PolicyKind.CENTER_TO_CENTER:
            return f"{self.kind.value}({self.pitch:g})"
        return self.kind.value


@dataclass(frozen=True)
class CavityPosition:
    row: int
    col: int
    center_x: float
    center_y: float


@dataclass(frozen=True)
class LayoutResult:
    """A computed cavity grid. x runs across the web, y along the index."""
    part_width: float
    part_length: float
    web_width: float
    max_index_length: float
    min_spacing: float
    policy: SpacingPolicy
    across: int
    down: int
    cavity_count: int
    max_cavity_count: int
    used_index_length: float
    spacing_horizontal: float
    spacing_vertical: float
    margin_left: float
    margin_right: float
    margin_top: float
    margin_bottom: float
    mold_plate_width: float = 0.0
    mold_plate_length: float = 0.0
    positions: Tuple[CavityPosition, ...] = ()

    @property
    def fits(self) -> bool:
        return self.cavity_count > 0

    @property
    def part_area(self) -> float:
        return self.part_width * self.part_length

    @property
    def parts_area(self) -> float:
        return self.cavity_count * self.part_area

    @property
    def forming_area(self) -> float:
        return self.web_width * self.used_index_length

    @property
    def scrap_area(self) -> float:
        return self.forming_area - self.parts_area

    @property
    def utilization(self) -> float:
        """Parts area over forming area, 0..1."""
        if self.forming_area <= 0:
            return 0.0
        return self.parts_area / self.forming_area

    @property
    def block_width(self) -> float:
        if self.across == 0:
            return 0.0
        return self.across * self.part_width + (self.across - 1) * self.spacing_horizontal

    @property
    def block_length(self) -> float:
        if self.down == 0:
            return 0.0
        return self.down * self.part_length + (self.down - 1) * self.spacing_vertical

    def cavity_boxes(self) -> List[Polygon]:
        """Cavity rectangles as Shapely polygons, in position order."""
        half_w = self.part_width / 2
        half_l = self.part_length / 2
        return [
            box(p.center_x - half_w, p.center_y - half_l, p.center_x + half_w, p.center_y + half_l)
            for p in self.positions
        ]

    def forming_region(self) -> Polygon:
        return box(0.0, 0.0, self.web_width, self.used_index_length)


@dataclass(frozen=True)
class LayoutRequest:
    """Everything pack() needs, as one immutable value."""
    part_width: float
    part_length: float
    min_spacing: float
    web_width: float
    max_index_length: float
    quantity_cap: Optional[int] = None
    policy: SpacingPolicy = SpacingPolicy()
    round_index_to: Optional[float] = None
    tolerance: float = FIT_TOLERANCE

    def rotated(self) -> "LayoutRequest":
        """The same request with the part turned 90 degrees."""
        return replace(self, part_width=self.part_length, part_length=self.part_width)

    def run(self) -> LayoutResult:
        return pack(
            self.part_width,
            self.part_length,
            self.min_spacing,
            self.web_width,
            self.max_index_length,
            quantity_cap=self.quantity_cap,
            policy=self.policy,
            round_index_to=self.round_index_to,
            tolerance=self.tolerance,
        )


def fit_count(available: float, size: float, gap: float, tolerance: float = FIT_TOLERANCE) -> int:
    """Largest n with n*size + (n-1)*gap <= available."""
    if available < size - tolerance:
        return 0
    n = int(math.floor((available + gap + tolerance) / (size + gap)))
    while n > 0 and n * size + (n - 1) * gap > available + tolerance:
        n -= 1
    return max(n, 0)


def pack(
    part_width: float,
    part_length: float,
    min_spacing: float,
    web_width: float,
    max_index_length: float,
    quantity_cap: Optional[int] = None,
    policy: Optional[SpacingPolicy] = None,
    round_index_to: Optional[float] = None,
    tolerance: float = FIT_TOLERANCE,
) -> LayoutResult:
    """Lay out as many cavities as fit, or *quantity_cap* if that is fewer.

    Args:
        part_width: Part size across the web.
        part_length: Part size along the index.
        min_spacing: Minimum gap between parts and to each edge.
        web_width: Usable web width.
        max_index_length: Longest allowed index.
        quantity_cap: Optional cavity count to stop at. The last row is
            left-packed with the remainder.
        policy: Vertical spacing policy, GAP_LOCKED by default.
        round_index_to: When set, shorten the index to the smallest multiple
            of this increment that holds the minimum mold plate.
        tolerance: Slack allowed when testing whether a row or column fits.

    Returns:
        LayoutResult; cavity_count is 0 when the part does not fit.

    Raises:
        InvalidSpacingRequest: center-to-center pitch not above part_length.
        ValueError: non-positive sizes or negative spacing.
    """
    _check_positive(part_width=part_width, part_length=part_length,
                    web_width=web_width, max_index_length=max_index_length)
    if not math.isfinite(min_spacing) or min_spacing < 0:
        raise ValueError(f"min_spacing must be non-negative, got {min_spacing}")
    if round_index_to is not None:
        _check_positive(round_index_to=round_index_to)
    if policy is None:
        policy = SpacingPolicy.gap_locked()
    policy.validate_for(part_length)

    base = dict(
        part_width=part_width,
        part_length=part_length,
        web_width=web_width,
        max_index_length=max_index_length,
        min_spacing=min_spacing,
        policy=policy,
    )

    across = fit_count(web_width - 2 * min_spacing, part_width, min_spacing, tolerance)
    down = fit_count(max_index_length - 2 * min_spacing, part_length, min_spacing, tolerance)
    if across == 0 or down == 0:
        logger.debug("No fit: %.4f x %.4f on %.4f x %.4f (across=%d, down=%d)",
                     part_width, part_length, web_width, max_index_length, across, down)
        return no_fit_layout(**base)

    row_gap = min_spacing
    if policy.kind is PolicyKind.CENTER_TO_CENTER:
        row_gap = policy.pitch - part_length
        if row_gap > min_spacing:
            down = min(down, fit_count(max_index_length - 2 * min_spacing,
                                       part_length, row_gap, tolerance))

    capacity = across * down
    cavity_count = capacity
    if quantity_cap is not None and 0 < quantity_cap < capacity:
        cavity_count = int(quantity_cap)
        down = -(-cavity_count // across)

    block_width = across * part_width + (across - 1) * min_spacing
    margin_side = (web_width - block_width) / 2
    min_block_length = down * part_length + (down - 1) * row_gap
    plate_length = min_block_length + 2 * min_spacing

    used_index = max_index_length
    if round_index_to:
        steps = math.ceil(plate_length / round_index_to - 1e-9)
        used_index = min(max_index_length, steps * round_index_to)

    gap_v, margin_top, margin_bottom = _distribute_index(
        policy, used_index, part_length, down, min_spacing, row_gap,
    )

    positions = tuple(
        CavityPosition(
            row=idx // across,
            col=idx % across,
            center_x=margin_side + (idx % across) * (part_width + min_spacing) + part_width / 2,
            center_y=margin_top + (idx // across) * (part_length + gap_v) + part_length / 2,
        )
        for idx in range(cavity_count)
    )

    return LayoutResult(
        across=across,
        down=down,
        cavity_count=cavity_count,
        max_cavity_count=capacity,
        used_index_length=used_index,
        spacing_horizontal=min_spacing,
        spacing_vertical=gap_v,
        margin_left=margin_side,
        margin_right=margin_side,
        margin_top=margin_top,
        margin_bottom=margin_bottom,
        mold_plate_width=block_width + 2 * min_spacing,
        mold_plate_length=plate_length,
        positions=positions,
        **base,
    )


# ─── Layout checks ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class LayoutViolation:
    """A single layout rule violation."""
    rule_name: str
    severity: str  # "error" or "warning"
    message: str
    value: float = 0.0
    limit: float = 0.0


def check_layout(layout: LayoutResult, tolerance: float = FIT_TOLERANCE) -> List[LayoutViolation]:
    """Run the geometric checks on a computed layout.

    Args:
        layout: Layout to check.
        tolerance: Slack allowed on every distance.

    Returns:
        List of violations (empty = passes all checks).
    """
    if not layout.positions:
        return []
    boxes = layout.cavity_boxes()

    violations: List[LayoutViolation] = []
    violations.extend(_check_containment(layout, boxes, tolerance))
    violations.extend(_check_overlap(boxes, tolerance))
    violations.extend(_check_edge_clearance(layout, boxes, tolerance))
    violations.extend(_check_part_spacing(layout, boxes, tolerance))
    return violations


def _check_containment(
    layout: LayoutResult,
    boxes: List[Polygon],
    tolerance: float,
) -> List[LayoutViolation]:
    region = layout.forming_region().buffer(tolerance, join_style="mitre")
    outside = sum(1 for b in boxes if not region.covers(b))
    if not outside:
        return []
    return [LayoutViolation(
        rule_name="forming_area",
        severity="error",
        message=f"{outside} cavities extend past the {layout.web_width:g} x "
                f"{layout.used_index_length:g} forming area",
        value=float(outside),
    )]


def _check_overlap(boxes: List[Polygon], tolerance: float) -> List[LayoutViolation]:
    overlap = sum(b.area for b in boxes) - unary_union(boxes).area
    if overlap <= tolerance:
        return []
    return [LayoutViolation(
        rule_name="cavity_overlap",
        severity="error",
        message=f"Cavities overlap by {overlap:.4f} sq in",
        value=overlap,
    )]


def _check_edge_clearance(
    layout: LayoutResult,
    boxes: List[Polygon],
    tolerance: float,
) -> List[LayoutViolation]:
    """Every cavity keeps the minimum spacing to the forming area edge."""
    boundary = layout.forming_region().exterior
    clearance = min(boundary.distance(b) for b in boxes)
    if clearance >= layout.min_spacing - tolerance:
        return []
    return [LayoutViolation(
        rule_name="edge_clearance",
        severity="error",
        message=f"Edge clearance {clearance:.3f} is below the {layout.min_spacing:.3f} minimum",
        value=clearance,
        limit=layout.min_spacing,
    )]


def _check_part_spacing(
    layout: LayoutResult,
    boxes: List[Polygon],
    tolerance: float,
) -> List[LayoutViolation]:
    """Gap to the next cavity in the row and in the column."""
    gaps = []
    for idx, b in enumerate(boxes):
        if layout.positions[idx].col + 1 < layout.across and idx + 1 < len(boxes):
            gaps.append(b.distance(boxes[idx + 1]))
        if idx + layout.across < len(boxes):
            gaps.append(b.distance(boxes[idx + layout.across]))
    if not gaps:
        return []
    smallest = min(gaps)
    if smallest >= layout.min_spacing - tolerance:
        return []
    return [LayoutViolation(
        rule_name="part_spacing",
        severity="warning",
        message=f"Part spacing {smallest:.3f} is below the {layout.min_spacing:.3f} minimum",
        value=smallest,
        limit=layout.min_spacing,
    )]


# ─── Internal helpers ────────────────────────────────────────────────────────

def _check_positive(**values: float) -> None:
    for name, value in values.items():
        if value is None or not math.isfinite(value) or value <= 0:
            raise ValueError(f"{name} must be positive, got {value}")


def _distribute_index(
    policy: SpacingPolicy,
    index_length: float,
    part_length: float,
    down: int,
    min_spacing: float,
    row_gap: float,
) -> Tuple[float, float, float]:
    """Row gap and top/bottom margins for *down* rows in *index_length*."""
    if policy.kind is PolicyKind.GAP_LOCKED and down > 1:
        free = index_length - 2 * min_spacing - down * part_length
        gap = max(min_spacing, free / (down - 1))
        return gap, min_spacing, min_spacing

    # A single gap-locked row has no gap to widen and is centered instead.
    block = down * part_length + (down - 1) * row_gap
    margin = (index_length - block) / 2
    return row_gap, margin, margin


def no_fit_layout(**base) -> LayoutResult:
    """Empty layout for a part that does not fit; derived fields are zero."""
    return LayoutResult(
        across=0,
        down=0,
        cavity_count=0,
        max_cavity_count=0,
        used_index_length=0.0,
        spacing_horizontal=0.0,
        spacing_vertical=0.0,
        margin_left=0.0,
        margin_right=0.0,
        margin_top=0.0,
        margin_bottom=0.0,
        **base,
    )
