"""
Tests for toolpath data structures and statistics.
"""

import pytest

from primcam.slicing.toolpath import (
    RAPID_FEED_RATE,
    MoveType,
    ToolpathPoint,
    compute_statistics,
    linear,
    rapid,
)


class TestToolpathPoint:
    """Tests for ToolpathPoint."""

    def test_helpers(self):
        """Test rapid and linear constructors."""
        assert rapid(1, 2, 3).is_rapid
        p = linear(1, 2, 3, 500.0)
        assert p.move == MoveType.LINEAR
        assert p.feed_rate == 500.0
        assert not p.is_rapid

    def test_distance(self):
        """Test Euclidean distance between points."""
        assert rapid(0, 0, 0).distance_to(linear(3, 4, 12)) == pytest.approx(13.0)

    def test_to_dict(self):
        """Test serialisation omits an unset feed."""
        assert linear(1, 2, 3).to_dict() == {"x": 1, "y": 2, "z": 3, "type": "linear"}
        assert rapid(1, 2, 3).to_dict()["type"] == "rapid"
        assert linear(0, 0, 0, 250.0).to_dict()["feedRate"] == 250.0

    def test_frozen(self):
        """Test points are immutable."""
        p = linear(0, 0, 0)
        with pytest.raises(AttributeError):
            p.x = 5.0


class TestComputeStatistics:
    """Tests for toolpath statistics."""

    def test_empty(self):
        """Test an empty toolpath has zeroed statistics."""
        stats = compute_statistics([], 1000.0)
        assert stats.point_count == 0
        assert stats.total_distance == 0.0
        assert stats.estimated_time == 0.0
        assert stats.bounds["maxZ"] == 0.0

    def test_single_point(self):
        """Test a single point has bounds but no distance."""
        stats = compute_statistics([rapid(1, 2, 3)], 1000.0)
        assert stats.point_count == 1
        assert stats.total_distance == 0.0
        assert stats.bounds == {"minX": 1, "maxX": 1, "minY": 2, "maxY": 2, "minZ": 3, "maxZ": 3}

    def test_distances_and_time(self):
        """Test moves are split by type and timed by their feed."""
        points = [
            rapid(0, 0, 10),
            linear(0, 0, 0, 100.0),
            linear(10, 0, 0),
            rapid(10, 0, 10),
        ]
        stats = compute_statistics(points, 1000.0)
        assert stats.total_distance == pytest.approx(30.0)
        assert stats.rapid_distance == pytest.approx(10.0)
        assert stats.cutting_distance == pytest.approx(20.0)
        expected = 10.0 / 100.0 + 10.0 / 1000.0 + 10.0 / RAPID_FEED_RATE
        assert stats.estimated_time == pytest.approx(expected)

    def test_rapid_rate_override(self):
        """Test the rapid traverse rate is configurable."""
        stats = compute_statistics([rapid(0, 0, 0), rapid(100, 0, 0)], 1000.0, rapid_feed_rate=100.0)
        assert stats.estimated_time == pytest.approx(1.0)

    def test_to_dict(self):
        """Test camelCase serialisation."""
        data = compute_statistics([rapid(0, 0, 0), linear(0, 0, -5)], 500.0).to_dict()
        assert data["pointCount"] == 2
        assert data["cuttingDistance"] == pytest.approx(5.0)
        assert data["bounds"]["minZ"] == -5.0
        assert set(data) == {
            "totalDistance", "rapidDistance", "cuttingDistance",
            "estimatedTime", "pointCount", "bounds",
        }
