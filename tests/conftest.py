"""
Shared test fixtures for drawing extraction and layout tests.
"""
import sys
from pathlib import Path

import pytest

# Add src/ to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from layout_engine import LayoutRequest, SpacingPolicy
from thermoform_config import ThermoformConfig


class DXFBuilder:
    """Writes a minimal ASCII DXF with a single ENTITIES section."""

    def __init__(self):
        self.pairs = []

    def raw(self, *lines):
        self.pairs.extend(str(line) for line in lines)
        return self

    def line(self, x1, y1, x2, y2, layer="0"):
        return self.raw(0, "LINE", 8, layer, 10, x1, 20, y1, 11, x2, 21, y2)

    def arc(self, cx, cy, r, start=0, end=90, layer="0"):
        return self.raw(0, "ARC", 8, layer, 10, cx, 20, cy, 40, r, 50, start, 51, end)

    def circle(self, cx, cy, r, layer="0"):
        return self.raw(0, "CIRCLE", 8, layer, 10, cx, 20, cy, 40, r)

    def lwpolyline(self, points, closed=True, layer="0"):
        self.raw(0, "LWPOLYLINE", 8, layer, 90, len(points), 70, 1 if closed else 0)
        for x, y in points:
            self.raw(10, x, 20, y)
        return self

    def rectangle(self, x0, y0, x1, y1, layer="0"):
        self.line(x0, y0, x1, y0, layer)
        self.line(x1, y0, x1, y1, layer)
        self.line(x1, y1, x0, y1, layer)
        return self.line(x0, y1, x0, y0, layer)

    def rounded_rect(self, cx, cy, width, length, r, layer="0"):
        """Four corner arcs first, then the straight edges."""
        iw, il = width / 2 - r, length / 2 - r
        self.arc(cx + iw, cy + il, r, 0, 90, layer)
        self.arc(cx - iw, cy + il, r, 90, 180, layer)
        self.arc(cx - iw, cy - il, r, 180, 270, layer)
        self.arc(cx + iw, cy - il, r, 270, 360, layer)
        self.line(cx - iw, cy + length / 2, cx + iw, cy + length / 2, layer)
        self.line(cx - iw, cy - length / 2, cx + iw, cy - length / 2, layer)
        self.line(cx - width / 2, cy - il, cx - width / 2, cy + il, layer)
        return self.line(cx + width / 2, cy - il, cx + width / 2, cy + il, layer)

    def text(self):
        header = ["0", "SECTION", "2", "HEADER", "0", "ENDSEC", "0", "SECTION", "2", "ENTITIES"]
        footer = ["0", "ENDSEC", "0", "EOF"]
        return "\n".join(header + self.pairs + footer) + "\n"


@pytest.fixture
def dxf():
    return DXFBuilder()


@pytest.fixture
def mold_2x2_text():
    """Two rows of two 3 x 4 cavities, r=0.25 corners, 1" apart, on a plate."""
    builder = DXFBuilder()
    builder.rectangle(0, 0, 9, 11, layer="Plate")
    for cy in (3.0, 8.0):
        for cx in (2.5, 6.5):
            builder.rounded_rect(cx, cy, 3.0, 4.0, 0.25, layer="DIE-CUT")
    return builder.text()


@pytest.fixture
def single_part_text():
    """A 5 x 3 rectangular part on a cut layer next to a plate border."""
    builder = DXFBuilder()
    builder.rectangle(-10, -10, 20, 20, layer="Plate")
    builder.rectangle(0, 0, 5, 3, layer="CUT")
    return builder.text()


@pytest.fixture
def machine():
    return ThermoformConfig()


@pytest.fixture
def request_3x4():
    """3 x 4 part, 1" spacing, 24" web, 36" index."""
    return LayoutRequest(
        part_width=3.0,
        part_length=4.0,
        min_spacing=1.0,
        web_width=24.0,
        max_index_length=36.0,
        policy=SpacingPolicy.gap_locked(),
    )
