"""
Tests for loop entry and exit moves.
"""

import math

import pytest

from primcam.slicing.entry_exit import (
    arc_lead_out,
    direct_lap,
    ramp_into_loop,
    ramp_lead_out,
)

SQUARE = [(0.0, 0.0), (10.0, 0.0), (10.0, 10.0), (0.0, 10.0)]
UNIT_SQUARE = [(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 1.0)]


def _angle_for_run(drop, run):
    return math.degrees(math.atan(drop / run))


class TestDirectLap:
    """Tests for the plain lap."""

    def test_lap_returns_to_start(self):
        """Test the lap visits every vertex and closes on the entry point."""
        lap = direct_lap(SQUARE, -2.0)
        assert lap == [(10.0, 0.0, -2.0), (10.0, 10.0, -2.0), (0.0, 10.0, -2.0), (0.0, 0.0, -2.0)]


class TestRampIntoLoop:
    """Tests for ramping along the loop."""

    def test_short_ramp(self):
        """Test a ramp ending on the first edge."""
        ramp, lap = ramp_into_loop(SQUARE, 0.0, -1.0, 45.0)
        assert len(ramp) == 1
        assert ramp[0] == pytest.approx((1.0, 0.0, -1.0))
        assert lap[:4] == [(10.0, 0.0, -1.0), (10.0, 10.0, -1.0), (0.0, 10.0, -1.0), (0.0, 0.0, -1.0)]
        assert lap[-1] == pytest.approx((1.0, 0.0, -1.0))

    def test_ramp_over_several_edges(self):
        """Test the ramp descends linearly across vertices."""
        ramp, lap = ramp_into_loop(SQUARE, 0.0, -1.0, _angle_for_run(1.0, 25.0))
        assert len(ramp) == 3
        assert ramp[0] == pytest.approx((10.0, 0.0, -0.4))
        assert ramp[1] == pytest.approx((10.0, 10.0, -0.8))
        assert ramp[2] == pytest.approx((5.0, 10.0, -1.0))
        # Lap resumes after the edge where the ramp ended.
        assert lap[0] == (0.0, 10.0, -1.0)
        assert lap[-1] == pytest.approx((5.0, 10.0, -1.0))
        assert len(lap) == len(SQUARE) + 1

    def test_ramp_wraps_small_loop(self):
        """Test short loops are circled until depth is reached."""
        ramp, lap = ramp_into_loop(UNIT_SQUARE, 0.0, -1.0, _angle_for_run(1.0, 5.5))
        assert len(ramp) == 6
        assert ramp[-1] == pytest.approx((1.0, 0.5, -1.0))
        depths = [p[2] for p in ramp]
        assert depths == sorted(depths, reverse=True)
        assert all(p[2] == -1.0 for p in lap)

    def test_no_drop_is_direct(self):
        """Test a ramp with nothing to descend falls back to a plain lap."""
        ramp, lap = ramp_into_loop(SQUARE, -1.0, -1.0, 10.0)
        assert ramp == []
        assert lap == direct_lap(SQUARE, -1.0)

    def test_vertical_angle_is_direct(self):
        """Test a 90 degree ramp is a plunge."""
        ramp, lap = ramp_into_loop(SQUARE, 0.0, -1.0, 90.0)
        assert ramp == []
        assert lap == direct_lap(SQUARE, -1.0)

    def test_zero_perimeter_plunges(self):
        """Test a loop with no length ends in a straight plunge."""
        loop = [(3.0, 3.0), (3.0, 3.0)]
        ramp, lap = ramp_into_loop(loop, 0.0, -1.0, 10.0)
        assert ramp == [(3.0, 3.0, -1.0)]
        assert lap == direct_lap(loop, -1.0)


class TestLeadOut:
    """Tests for exit moves."""

    PATH = [(0.0, 0.0, -1.0), (10.0, 0.0, -1.0)]

    def test_ramp_lead_out(self):
        """Test the lead-out continues forward and rises."""
        lead = ramp_lead_out(self.PATH, lead_length=2.0, ramp_angle=45.0)
        assert len(lead) == 1
        assert lead[0] == pytest.approx((12.0, 0.0, 1.0))

    def test_ramp_lead_out_degenerate(self):
        """Test no lead-out without a direction or length."""
        assert ramp_lead_out(self.PATH, lead_length=0.0) == []
        assert ramp_lead_out([(1.0, 1.0, 0.0), (1.0, 1.0, 0.0)]) == []
        assert ramp_lead_out([(1.0, 1.0, 0.0)]) == []

    def test_arc_left(self):
        """Test a left turn ends a quarter circle to the left."""
        arc = arc_lead_out(self.PATH, radius=2.0, turn_left=True)
        assert len(arc) == 6
        assert arc[-1] == pytest.approx((12.0, 2.0, -1.0))
        for x, y, z in arc:
            assert math.hypot(x - 10.0, y - 2.0) == pytest.approx(2.0)
            assert z == -1.0

    def test_arc_right(self):
        """Test a right turn ends a quarter circle to the right."""
        arc = arc_lead_out(self.PATH, radius=2.0, turn_left=False, segments=4)
        assert len(arc) == 4
        assert arc[-1] == pytest.approx((12.0, -2.0, -1.0))

    def test_arc_degenerate(self):
        """Test no arc for a zero radius."""
        assert arc_lead_out(self.PATH, radius=0.0) == []
