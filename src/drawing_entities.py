"""
Typed geometry decoded from vector drawings.

Every entity carries the layer it was drawn on. Coordinates that could not be
read from the drawing are stored as None rather than 0 so that they never
contribute to an extent calculation.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, Union

INCH_TO_MM = 25.4
MM_TO_INCH = 1.0 / INCH_TO_MM

# Above this size a dimension is assumed to be in millimeters.
MM_DETECTION_THRESHOLD = 100.0

MaybeFloat = Optional[float]
Point2D = Tuple[MaybeFloat, MaybeFloat]


class EntityKind(Enum):
    """Entity blocks understood by the decoder."""
    LINE = "LINE"
    ARC = "ARC"
    CIRCLE = "CIRCLE"
    LWPOLYLINE = "LWPOLYLINE"


@dataclass(frozen=True)
class LineEntity:
    layer: str
    start: Point2D
    end: Point2D
    kind: EntityKind = EntityKind.LINE


@dataclass(frozen=True)
class ArcEntity:
    layer: str
    center: Point2D
    radius: MaybeFloat
    start_angle: MaybeFloat = None
    end_angle: MaybeFloat = None
    kind: EntityKind = EntityKind.ARC


@dataclass(frozen=True)
class CircleEntity:
    layer: str
    center: Point2D
    radius: MaybeFloat
    kind: EntityKind = EntityKind.CIRCLE


@dataclass(frozen=True)
class PolylineEntity:
    layer: str
    points: Tuple[Point2D, ...]
    closed: bool = False
    kind: EntityKind = EntityKind.LWPOLYLINE


GeometryEntity = Union[LineEntity, ArcEntity, CircleEntity, PolylineEntity]


@dataclass(frozen=True)
class BoundingBox:
    """Axis-aligned extent of a set of entities."""
    min_x: float
    max_x: float
    min_y: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y


@dataclass(frozen=True)
class CavityBox:
    """One cavity footprint inferred from four corner arcs."""
    center_x: float
    center_y: float
    width: float
    height: float


@dataclass(frozen=True)
class PartFootprint:
    """Resolved part size fed to the layout engine."""
    width: float
    length: float
    corner_radius: float = 0.0
    units: str = "in"

    def __post_init__(self):
        if not (self.width > 0 and self.length > 0):
            raise ValueError(
                f"Part footprint must be positive, got {self.width} x {self.length}"
            )

    @property
    def area(self) -> float:
        return self.width * self.length

    def rotated(self) -> "PartFootprint":
        """Same part turned 90 degrees."""
        return PartFootprint(
            width=self.length,
            length=self.width,
            corner_radius=self.corner_radius,
            units=self.units,
        )

    def scaled(self, factor: float, units: str) -> "PartFootprint":
        return PartFootprint(
            width=self.width * factor,
            length=self.length * factor,
            corner_radius=self.corner_radius * factor,
            units=units,
        )


def unit_scale_for(width: float, height: float) -> float:
    """Factor that brings a drawing dimension into inches.

    Anything wider or taller than MM_DETECTION_THRESHOLD is taken to be drawn
    in millimeters.
    """
    if width > MM_DETECTION_THRESHOLD or height > MM_DETECTION_THRESHOLD:
        return MM_TO_INCH
    return 1.0
