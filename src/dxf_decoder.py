"""
Tolerant reader for the ENTITIES section of ASCII DXF drawings.

DXF text is a sequence of (group code, value) line pairs. Only LINE, ARC,
CIRCLE and LWPOLYLINE blocks are decoded; everything else is skipped. Malformed
group codes are stepped over one line at a time so a damaged file still yields
whatever geometry can be read.

Group codes interpreted:
  8        layer name
  10 / 20  first point (line start, arc/circle center, polyline vertex)
  11 / 21  line end point
  40       radius
  50 / 51  start / end angle (degrees)
  70       polyline flags (bit 1 = closed)
"""
import logging
import math
from typing import Dict, List, Optional, Tuple

from drawing_entities import (
    ArcEntity,
    CircleEntity,
    EntityKind,
    GeometryEntity,
    LineEntity,
    PolylineEntity,
)

logger = logging.getLogger(__name__)

SECTION_NAME_CODE = 2
ENTITY_TYPE_CODE = 0
ENTITIES_MARKER = "ENTITIES"
END_SECTION_MARKER = "ENDSEC"
SECTION_MARKER = "SECTION"

_KINDS = {kind.value: kind for kind in EntityKind}
_NUMERIC_CODES = {10, 20, 11, 21, 40, 50, 51}


def decode_entities(text: str) -> List[GeometryEntity]:
    """Decode all supported entities from DXF text.

    Returns an empty list when the drawing has no ENTITIES section.
    """
    lines = text.splitlines()
    i = _find_entities_section(lines)
    if i is None:
        logger.debug("No %s section found", ENTITIES_MARKER)
        return []

    entities: List[GeometryEntity] = []
    n = len(lines)
    while i < n:
        code = _parse_code(lines[i])
        if code is None:
            logger.debug("Skipping malformed group code %r at line %d", lines[i], i + 1)
            i += 1
            continue
        value = lines[i + 1].strip() if i + 1 < n else ""
        if code == ENTITY_TYPE_CODE:
            if value == END_SECTION_MARKER:
                break
            kind = _KINDS.get(value)
            if kind is not None:
                entity, i = _read_entity(lines, i + 2, kind)
                entities.append(entity)
                continue
        i += 2

    logger.debug("Decoded %d entities", len(entities))
    return entities


def has_entities_section(text: str) -> bool:
    return _find_entities_section(text.splitlines()) is not None


# ─── Internal helpers ────────────────────────────────────────────────────────

def _find_entities_section(lines: List[str]) -> Optional[int]:
    """Index of the first line after the `0 SECTION / 2 ENTITIES` header.

    A table or block entry that happens to be named ENTITIES is not a header.
    """
    for idx in range(3, len(lines)):
        if lines[idx].strip() != ENTITIES_MARKER:
            continue
        if (
            _parse_code(lines[idx - 1]) == SECTION_NAME_CODE
            and lines[idx - 2].strip() == SECTION_MARKER
            and _parse_code(lines[idx - 3]) == ENTITY_TYPE_CODE
        ):
            return idx + 1
    return None


def _parse_code(line: str) -> Optional[int]:
    try:
        return int(line.strip())
    except ValueError:
        return None


def _parse_float(value: str) -> Optional[float]:
    try:
        number = float(value)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


def _read_entity(
    lines: List[str],
    i: int,
    kind: EntityKind,
) -> Tuple[GeometryEntity, int]:
    """Read one entity body starting at line *i*.

    Returns the entity and the index of the group code that ended it.
    """
    layer = ""
    fields: Dict[int, Optional[float]] = {}
    vertices: List[List[Optional[float]]] = []
    flags = 0
    n = len(lines)

    while i < n:
        code = _parse_code(lines[i])
        if code is None:
            i += 1
            continue
        if code == ENTITY_TYPE_CODE:
            break
        value = lines[i + 1].strip() if i + 1 < n else ""

        if code == 8:
            layer = value
        elif kind is EntityKind.LWPOLYLINE and code in (10, 20):
            if code == 10 or not vertices:
                vertices.append([None, None])
            vertices[-1][0 if code == 10 else 1] = _parse_float(value)
        elif kind is EntityKind.LWPOLYLINE and code == 70:
            flag_value = _parse_code(value)
            flags = flag_value if flag_value is not None else 0
        elif code in _NUMERIC_CODES:
            fields[code] = _parse_float(value)
        i += 2

    return _build_entity(kind, layer, fields, vertices, flags), i


def _build_entity(
    kind: EntityKind,
    layer: str,
    fields: Dict[int, Optional[float]],
    vertices: List[List[Optional[float]]],
    flags: int,
) -> GeometryEntity:
    first = (fields.get(10), fields.get(20))
    if kind is EntityKind.LINE:
        return LineEntity(layer=layer, start=first, end=(fields.get(11), fields.get(21)))
    if kind is EntityKind.ARC:
        return ArcEntity(
            layer=layer,
            center=first,
            radius=fields.get(40),
            start_angle=fields.get(50),
            end_angle=fields.get(51),
        )
    if kind is EntityKind.CIRCLE:
        return CircleEntity(layer=layer, center=first, radius=fields.get(40))
    return PolylineEntity(
        layer=layer,
        points=tuple((x, y) for x, y in vertices),
        closed=bool(flags & 1),
    )
