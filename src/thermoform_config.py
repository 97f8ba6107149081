"""
Thermoforming machine and mold defaults.

Dimensions are in inches. The web is the usable sheet width between the two
chain strips that carry the sheet through the former.
"""
from dataclasses import dataclass
from typing import Optional, Tuple

from layout_engine import FIT_TOLERANCE, LayoutRequest, SpacingPolicy

MOLD_WIDTHS_INCH = (18, 20, 22, 24, 26, 28, 30)


@dataclass
class ThermoformConfig:
    """Forming machine limits and spacing rules."""

    web_widths_inch: Tuple[float, ...] = MOLD_WIDTHS_INCH
    default_web_width_inch: float = 24.0
    max_index_inch: float = 36.0
    chain_width_each_inch: float = 0.75  # one strip per side
    spacing_per_draw_depth: float = 1.0  # part spacing = draw depth x this
    fit_tolerance: float = FIT_TOLERANCE
    round_index_to: Optional[float] = None  # e.g. 1.0 to trim the index to whole inches

    @property
    def chain_width_total_inch(self) -> float:
        return 2 * self.chain_width_each_inch

    def sheet_width(self, web_width: float) -> float:
        """Full sheet width including both chain strips."""
        return web_width + self.chain_width_total_inch

    def min_spacing_for(self, draw_depth: float) -> float:
        """Minimum part-to-part and part-to-edge spacing for a draw depth."""
        if draw_depth < 0:
            raise ValueError(f"Draw depth must be non-negative, got {draw_depth}")
        return draw_depth * self.spacing_per_draw_depth

    def layout_request(
        self,
        part_width: float,
        part_length: float,
        draw_depth: float,
        web_width: Optional[float] = None,
        max_index: Optional[float] = None,
        quantity_cap: Optional[int] = None,
        policy: Optional[SpacingPolicy] = None,
    ) -> LayoutRequest:
        """Build a LayoutRequest using this machine's defaults."""
        return LayoutRequest(
            part_width=part_width,
            part_length=part_length,
            min_spacing=self.min_spacing_for(draw_depth),
            web_width=self.default_web_width_inch if web_width is None else web_width,
            max_index_length=self.max_index_inch if max_index is None else max_index,
            quantity_cap=quantity_cap,
            policy=policy or SpacingPolicy.gap_locked(),
            round_index_to=self.round_index_to,
            tolerance=self.fit_tolerance,
        )
