"""Tests for layout_engine module."""
import math
from dataclasses import replace

import pytest
from shapely.ops import unary_union

from layout_engine import (
    InvalidSpacingRequest,
    LayoutRequest,
    PolicyKind,
    SpacingPolicy,
    check_layout,
    fit_count,
    pack,
)

POLICIES = [
    SpacingPolicy.gap_locked(),
    SpacingPolicy.edge_locked(),
    SpacingPolicy.center_to_center(6.0),
]


def _assert_valid(layout, tol=1e-6):
    """Geometric invariants every fitting layout must hold."""
    boxes = layout.cavity_boxes()
    assert len(boxes) == layout.cavity_count
    region = layout.forming_region().buffer(tol)
    for b in boxes:
        assert region.contains(b)
    union = unary_union(boxes)
    assert union.area == pytest.approx(sum(b.area for b in boxes))
    assert layout.parts_area + layout.scrap_area == pytest.approx(layout.forming_area)
    assert 0.0 <= layout.utilization <= 1.0


class TestFitCount:

    def test_basic(self):
        assert fit_count(22.0, 3.0, 1.0) == 5
        assert fit_count(34.0, 4.0, 1.0) == 7

    def test_single_exact(self):
        assert fit_count(10.0, 10.0, 0.0) == 1

    def test_within_tolerance(self):
        assert fit_count(9.9995, 10.0, 0.0) == 1
        assert fit_count(9.99, 10.0, 0.0) == 0

    def test_zero_gap(self):
        assert fit_count(12.0, 3.0, 0.0) == 4

    def test_nothing_available(self):
        assert fit_count(-2.0, 3.0, 1.0) == 0


class TestSpacingPolicy:

    def test_labels(self):
        assert SpacingPolicy.gap_locked().label == "gap_locked"
        assert SpacingPolicy.edge_locked().label == "edge_locked"
        assert SpacingPolicy.center_to_center(5.5).label == "center_to_center(5.5)"

    @pytest.mark.parametrize("pitch", [0.0, -1.0, float("nan"), float("inf")])
    def test_rejects_bad_pitch(self, pitch):
        with pytest.raises(InvalidSpacingRequest):
            SpacingPolicy.center_to_center(pitch)

    def test_pitch_must_exceed_part_length(self):
        with pytest.raises(InvalidSpacingRequest):
            pack(3.0, 4.0, 1.0, 24.0, 36.0, policy=SpacingPolicy.center_to_center(4.0))
        with pytest.raises(InvalidSpacingRequest):
            pack(3.0, 4.0, 1.0, 24.0, 36.0, policy=SpacingPolicy.center_to_center(3.0))

    def test_invalid_spacing_is_value_error(self):
        assert issubclass(InvalidSpacingRequest, ValueError)


class TestPackReference:
    """3 x 4 part, 1" spacing, 24" web, 36" index."""

    def test_gap_locked(self):
        layout = pack(3.0, 4.0, 1.0, 24.0, 36.0)
        assert layout.policy.kind is PolicyKind.GAP_LOCKED
        assert (layout.across, layout.down) == (5, 7)
        assert layout.cavity_count == 35
        assert layout.max_cavity_count == 35
        assert layout.used_index_length == 36.0
        assert layout.spacing_horizontal == pytest.approx(1.0)
        assert layout.spacing_vertical == pytest.approx(1.0)
        assert layout.margin_left == pytest.approx(2.5)
        assert layout.margin_right == pytest.approx(2.5)
        assert layout.margin_top == pytest.approx(1.0)
        assert layout.margin_bottom == pytest.approx(1.0)
        assert layout.mold_plate_width == pytest.approx(21.0)
        assert layout.mold_plate_length == pytest.approx(36.0)

    def test_positions_row_major(self):
        layout = pack(3.0, 4.0, 1.0, 24.0, 36.0)
        first, last = layout.positions[0], layout.positions[-1]
        assert (first.row, first.col) == (0, 0)
        assert (first.center_x, first.center_y) == pytest.approx((4.0, 3.0))
        assert (last.row, last.col) == (6, 4)
        assert (last.center_x, last.center_y) == pytest.approx((20.0, 33.0))
        assert layout.positions[5].row == 1 and layout.positions[5].col == 0

    def test_areas(self):
        layout = pack(3.0, 4.0, 1.0, 24.0, 36.0)
        assert layout.forming_area == pytest.approx(864.0)
        assert layout.parts_area == pytest.approx(420.0)
        assert layout.scrap_area == pytest.approx(444.0)
        _assert_valid(layout)

    def test_zero_spacing(self):
        layout = pack(3.0, 4.0, 0.0, 24.0, 36.0)
        assert (layout.across, layout.down) == (8, 9)
        assert layout.margin_left == pytest.approx(0.0)
        assert layout.utilization == pytest.approx(1.0)
        _assert_valid(layout)


class TestPolicies:
    """Same part on a 38" index, which leaves 4" of slack at the minimum gap."""

    def test_gap_locked_spreads_rows(self):
        layout = pack(3.0, 4.0, 1.0, 24.0, 38.0, policy=SpacingPolicy.gap_locked())
        assert layout.down == 7
        assert layout.spacing_vertical == pytest.approx(8.0 / 6.0)
        assert layout.margin_top == pytest.approx(1.0)
        assert layout.margin_bottom == pytest.approx(1.0)
        _assert_valid(layout)

    def test_edge_locked_grows_margins(self):
        layout = pack(3.0, 4.0, 1.0, 24.0, 38.0, policy=SpacingPolicy.edge_locked())
        assert layout.down == 7
        assert layout.spacing_vertical == pytest.approx(1.0)
        assert layout.margin_top == pytest.approx(2.0)
        assert layout.margin_bottom == pytest.approx(2.0)
        _assert_valid(layout)

    def test_center_to_center_reduces_rows(self):
        layout = pack(3.0, 4.0, 1.0, 24.0, 38.0, policy=SpacingPolicy.center_to_center(6.0))
        assert layout.down == 6
        assert layout.cavity_count == 30
        assert layout.max_cavity_count == 30
        assert layout.spacing_vertical == pytest.approx(2.0)
        assert layout.margin_top == pytest.approx(2.0)
        ys = sorted({round(p.center_y, 6) for p in layout.positions})
        assert all(b - a == pytest.approx(6.0) for a, b in zip(ys, ys[1:]))
        _assert_valid(layout)

    def test_center_to_center_tighter_than_min_gap(self):
        layout = pack(3.0, 4.0, 1.0, 24.0, 38.0, policy=SpacingPolicy.center_to_center(4.5))
        assert layout.down == 7
        assert layout.spacing_vertical == pytest.approx(0.5)
        assert layout.margin_top == pytest.approx(3.5)

    def test_single_gap_locked_row_is_centered(self):
        layout = pack(3.0, 4.0, 1.0, 24.0, 10.0)
        assert layout.down == 1
        assert layout.margin_top == pytest.approx(3.0)
        assert layout.margin_bottom == pytest.approx(3.0)

    @pytest.mark.parametrize("policy", POLICIES, ids=lambda p: p.label)
    def test_across_the_web_is_policy_independent(self, policy):
        base = pack(3.0, 4.0, 1.0, 24.0, 36.0)
        layout = pack(3.0, 4.0, 1.0, 24.0, 36.0, policy=policy)
        assert layout.across == base.across
        assert layout.margin_left == pytest.approx(base.margin_left)
        assert layout.spacing_horizontal == pytest.approx(base.spacing_horizontal)

    @pytest.mark.parametrize("policy", POLICIES, ids=lambda p: p.label)
    def test_index_adds_up(self, policy):
        layout = pack(2.5, 3.5, 0.75, 26.0, 33.0, policy=policy)
        total = (layout.margin_top + layout.block_length + layout.margin_bottom)
        assert total == pytest.approx(layout.used_index_length)
        width = layout.margin_left + layout.block_width + layout.margin_right
        assert width == pytest.approx(layout.web_width)
        _assert_valid(layout)


class TestNoFit:

    def test_wider_than_web(self):
        layout = pack(25.0, 4.0, 1.0, 24.0, 36.0)
        assert not layout.fits
        assert layout.across == 0
        assert layout.cavity_count == 0
        assert layout.positions == ()
        assert layout.used_index_length == 0.0
        assert layout.utilization == 0.0

    def test_fits_only_without_margins(self):
        assert pack(23.0, 4.0, 1.0, 24.0, 36.0).cavity_count == 0

    def test_longer_than_index(self):
        layout = pack(3.0, 40.0, 1.0, 24.0, 36.0)
        assert layout.down == 0
        assert not layout.fits

    def test_no_fit_keeps_request_fields(self):
        layout = pack(25.0, 4.0, 1.0, 24.0, 36.0)
        assert layout.part_width == 25.0
        assert layout.web_width == 24.0
        assert layout.min_spacing == 1.0


class TestQuantityCap:

    def test_partial_last_row(self):
        layout = pack(3.0, 4.0, 1.0, 24.0, 36.0, quantity_cap=12)
        assert layout.cavity_count == 12
        assert layout.max_cavity_count == 35
        assert (layout.across, layout.down) == (5, 3)
        last = layout.positions[-1]
        assert (last.row, last.col) == (2, 1)
        _assert_valid(layout)

    def test_full_rows(self):
        layout = pack(3.0, 4.0, 1.0, 24.0, 36.0, quantity_cap=10)
        assert layout.down == 2
        assert layout.cavity_count == 10

    @pytest.mark.parametrize("cap", [0, 35, 100])
    def test_ignored_when_not_limiting(self, cap):
        layout = pack(3.0, 4.0, 1.0, 24.0, 36.0, quantity_cap=cap)
        assert layout.cavity_count == 35
        assert layout.down == 7


class TestRoundIndex:

    def test_whole_inches(self):
        layout = pack(3.0, 4.0, 1.0, 24.0, 36.0, quantity_cap=10, round_index_to=1.0)
        assert layout.mold_plate_length == pytest.approx(11.0)
        assert layout.used_index_length == pytest.approx(11.0)
        assert layout.spacing_vertical == pytest.approx(1.0)
        assert layout.forming_area == pytest.approx(264.0)
        _assert_valid(layout)

    def test_rounds_up(self):
        layout = pack(3.0, 4.3, 1.0, 24.0, 36.0, round_index_to=1.0)
        assert layout.down == 6
        assert layout.mold_plate_length == pytest.approx(32.8)
        assert layout.used_index_length == pytest.approx(33.0)
        assert layout.spacing_vertical == pytest.approx(1.04)
        _assert_valid(layout)

    def test_never_exceeds_max_index(self):
        layout = pack(3.0, 4.0, 1.0, 24.0, 36.0, round_index_to=5.0)
        assert layout.used_index_length == 36.0


class TestValidation:

    @pytest.mark.parametrize("args", [
        (0.0, 4.0, 1.0, 24.0, 36.0),
        (3.0, -4.0, 1.0, 24.0, 36.0),
        (3.0, 4.0, -1.0, 24.0, 36.0),
        (3.0, 4.0, 1.0, 0.0, 36.0),
        (3.0, 4.0, 1.0, 24.0, math.inf),
    ])
    def test_rejects_bad_inputs(self, args):
        with pytest.raises(ValueError):
            pack(*args)

    def test_rejects_bad_round_increment(self):
        with pytest.raises(ValueError):
            pack(3.0, 4.0, 1.0, 24.0, 36.0, round_index_to=0.0)


class TestLayoutRequest:

    def test_run_matches_pack(self, request_3x4):
        assert request_3x4.run() == pack(3.0, 4.0, 1.0, 24.0, 36.0)

    def test_idempotent(self, request_3x4):
        assert request_3x4.run() == request_3x4.run()

    def test_rotated_swaps_dimensions(self, request_3x4):
        rotated = request_3x4.rotated()
        assert (rotated.part_width, rotated.part_length) == (4.0, 3.0)
        assert rotated.rotated() == request_3x4

    @pytest.mark.parametrize("web", [18.0, 22.0, 30.0])
    @pytest.mark.parametrize("spacing", [0.5, 1.0, 1.5])
    def test_invariants_over_machine_sizes(self, web, spacing):
        request = LayoutRequest(2.75, 3.25, spacing, web, 36.0)
        layout = request.run()
        assert layout.fits
        assert layout.cavity_count == layout.across * layout.down
        _assert_valid(layout)
        assert check_layout(layout) == []


def _shift(layout, index, dx=0.0, dy=0.0):
    positions = list(layout.positions)
    p = positions[index]
    positions[index] = replace(p, center_x=p.center_x + dx, center_y=p.center_y + dy)
    return replace(layout, positions=tuple(positions))


class TestCheckLayout:

    @pytest.mark.parametrize("policy", POLICIES, ids=lambda p: p.label)
    def test_packed_layouts_pass(self, policy):
        assert check_layout(pack(3.0, 4.0, 1.0, 24.0, 38.0, policy=policy)) == []

    def test_touching_parts_pass(self):
        assert check_layout(pack(3.0, 4.0, 0.0, 24.0, 36.0)) == []

    def test_no_fit_has_nothing_to_check(self):
        assert check_layout(pack(25.0, 4.0, 1.0, 24.0, 36.0)) == []

    def test_tight_pitch_is_a_spacing_warning(self):
        layout = pack(3.0, 4.0, 1.0, 24.0, 38.0, policy=SpacingPolicy.center_to_center(4.5))
        violations = check_layout(layout)
        assert len(violations) == 1
        assert violations[0].rule_name == "part_spacing"
        assert violations[0].severity == "warning"
        assert violations[0].value == pytest.approx(0.5)
        assert violations[0].limit == 1.0

    def test_overlapping_cavities(self):
        layout = _shift(pack(3.0, 4.0, 1.0, 24.0, 36.0), 0, dx=2.0)
        violations = {v.rule_name: v for v in check_layout(layout)}
        assert set(violations) == {"cavity_overlap", "part_spacing"}
        assert violations["cavity_overlap"].severity == "error"
        assert violations["cavity_overlap"].value == pytest.approx(4.0)

    def test_cavity_past_the_index(self):
        layout = _shift(pack(3.0, 4.0, 1.0, 24.0, 36.0), 34, dy=2.0)
        violations = {v.rule_name: v for v in check_layout(layout)}
        assert set(violations) == {"forming_area", "edge_clearance"}
        assert violations["forming_area"].value == 1.0
        assert violations["edge_clearance"].value == pytest.approx(0.0)
