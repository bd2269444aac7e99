# tests/test_heatmap.py
"""Unit tests for heatmap aggregation."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import datetime, timezone

from portaria.schemas.heatmap import HeatmapFilters, Region
from portaria.schemas.tracking import LocationStep
from portaria.services.heatmap import HeatmapAggregator, has_position, speed_weight

NOW = datetime(2024, 3, 10, 15, 30, tzinfo=timezone.utc)
PLAZA = (-16.6869, -49.2648)
GATE = (-16.7001, -49.2801)


def make_step(step_id, position=PLAZA, speed=0.0, token_ref="tokens/T1", user_id="u1"):
    lat, lng = position
    return LocationStep(id=step_id, token_ref=token_ref, latitude=lat, longitude=lng, speed=speed, user_id=user_id)


class TestWeights:
    @pytest.mark.parametrize("speed,weight", [(0, 3), (0.99, 3), (1, 2), (4.9, 2), (5, 1), (60, 1)])
    def test_speed_weight(self, speed, weight):
        assert speed_weight(speed) == weight

    @pytest.mark.parametrize("lat,lng,ok", [
        (-16.68, -49.26, True),
        (0.0, -49.26, False),
        (-16.68, 0.0, False),
        (91.0, 10.0, False),
        (10.0, -181.0, False),
        (float("nan"), 10.0, False),
    ])
    def test_has_position(self, lat, lng, ok):
        assert has_position(LocationStep(id="s", latitude=lat, longitude=lng)) is ok


class TestAggregate:
    def test_hotspot_needs_more_than_three_points(self):
        steps = [
            make_step("a", speed=0),
            make_step("b", speed=0),
            make_step("c", speed=2),
            make_step("d", speed=10),
            make_step("e", position=GATE),
            make_step("f", position=GATE),
        ]

        result = HeatmapAggregator().aggregate(steps, window_days=7, now=NOW)

        assert result.total_points == 6
        assert [p.weight for p in result.points] == [3, 3, 2, 1, 3, 3]
        assert len(result.hotspots) == 1
        hotspot = result.hotspots[0]
        assert hotspot.count == 4
        assert hotspot.intensity == pytest.approx((3 + 3 + 2 + 1) / 4)
        assert (hotspot.latitude, hotspot.longitude) == PLAZA
        assert result.degraded is False

    def test_hotspots_ranked_by_count_and_capped(self):
        steps = [make_step(f"g{i}", position=GATE) for i in range(6)]
        steps += [make_step(f"p{i}", position=PLAZA) for i in range(4)]

        result = HeatmapAggregator(hotspot_limit=1).aggregate(steps, now=NOW)

        assert [h.count for h in result.hotspots] == [6]

    def test_date_range_covers_whole_days(self):
        result = HeatmapAggregator().aggregate([], window_days=7, now=NOW)
        assert result.date_range.start == datetime(2024, 3, 3, tzinfo=timezone.utc)
        assert result.date_range.end == datetime(2024, 3, 10, 23, 59, 59, 999999, tzinfo=timezone.utc)
        assert result.points == []
        assert result.hotspots == []

    def test_invalid_coordinates_skipped(self):
        steps = [make_step("ok"), make_step("zero", position=(0.0, 0.0)), make_step("far", position=(95.0, 10.0))]

        result = HeatmapAggregator().aggregate(steps, now=NOW)

        assert result.total_points == 1

    def test_max_records_caps_accepted_points(self):
        steps = [make_step("bad", position=(0.0, 0.0))] + [make_step(f"s{i}") for i in range(10)]

        result = HeatmapAggregator().aggregate(steps, max_records=3, now=NOW)

        assert result.total_points == 3

    def test_token_and_speed_filters(self):
        steps = [
            make_step("a", token_ref="/tokens/T1", speed=0),
            make_step("b", token_ref="tokens/T2", speed=0),
            make_step("c", token_ref="tokens/T1", speed=30),
        ]
        filters = HeatmapFilters(token_ids=["T1"], max_speed=10)

        result = HeatmapAggregator().aggregate(steps, filters=filters, now=NOW)

        assert [p.token_id for p in result.points] == ["T1"]
        assert result.points[0].speed == 0

    def test_region_filter(self):
        region = Region(lat_min=-16.69, lat_max=-16.68, lng_min=-49.27, lng_max=-49.26)
        steps = [make_step("in"), make_step("out", position=GATE)]

        result = HeatmapAggregator().aggregate(steps, filters=HeatmapFilters(region=region), now=NOW)

        assert result.total_points == 1

    def test_missing_speed_counts_as_stationary(self):
        result = HeatmapAggregator().aggregate([make_step("a", speed=None)], now=NOW)
        assert result.points[0].weight == 3

    def test_empty_is_degraded(self):
        result = HeatmapAggregator.empty(NOW)
        assert result.degraded is True
        assert result.total_points == 0
        assert result.date_range.start == result.date_range.end == NOW
