# portaria/services/heatmap.py
"""
Heatmap aggregation over location steps.

Single pass over the steps in the order given:
  - drop steps without a usable lat/lng pair
  - apply token allow-list, speed range and bounding-box filters
  - weight by speed: < 1 → 3, < 5 → 2, else 1 (standing still means dwell time)
  - bucket into a fixed grid; cells with more than HEATMAP_HOTSPOT_MIN_COUNT
    points become hotspots, ranked by point count
Stops once max_records points have been accepted.
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Optional

from portaria.config import settings
from portaria.schemas.heatmap import DateRange, HeatmapFilters, HeatmapPoint, HeatmapResult, Hotspot
from portaria.schemas.tracking import LocationStep
from portaria.services.token_resolver import token_id_from_text
from portaria.utils.timeutils import day_window, to_utc


def speed_weight(speed: float) -> int:
    if speed < 1:
        return 3
    if speed < 5:
        return 2
    return 1


def has_position(step: LocationStep) -> bool:
    lat, lng = step.latitude, step.longitude
    if not lat or not lng:
        return False
    if not (math.isfinite(lat) and math.isfinite(lng)):
        return False
    return -90 <= lat <= 90 and -180 <= lng <= 180


def passes_filters(step: LocationStep, token_id: str, speed: float, filters: Optional[HeatmapFilters]) -> bool:
    if filters is None:
        return True
    if filters.token_ids and token_id not in filters.token_ids:
        return False
    if filters.min_speed is not None and speed < filters.min_speed:
        return False
    if filters.max_speed is not None and speed > filters.max_speed:
        return False
    if filters.region is not None and not filters.region.contains(step.latitude, step.longitude):
        return False
    return True


@dataclass
class _Cell:
    latitude: float     # first point seen in the cell
    longitude: float
    count: int = 0
    weight_sum: int = 0


class HeatmapAggregator:
    def __init__(
        self,
        cell_size: Optional[float] = None,
        hotspot_min_count: Optional[int] = None,
        hotspot_limit: Optional[int] = None,
    ):
        self.cell_size = cell_size or settings.HEATMAP_CELL_SIZE
        self.hotspot_min_count = settings.HEATMAP_HOTSPOT_MIN_COUNT if hotspot_min_count is None else hotspot_min_count
        self.hotspot_limit = hotspot_limit or settings.HEATMAP_HOTSPOT_LIMIT

    def cell_key(self, lat: float, lng: float) -> tuple[int, int]:
        return math.floor(lat / self.cell_size), math.floor(lng / self.cell_size)

    @staticmethod
    def empty(now: Optional[datetime] = None) -> HeatmapResult:
        """Well-formed empty result with a zero-width date range."""
        now = to_utc(now or datetime.now(timezone.utc))
        return HeatmapResult(
            points=[], total_points=0, hotspots=[],
            date_range=DateRange(start=now, end=now), degraded=True,
        )

    def aggregate(
        self,
        steps: Iterable[LocationStep],
        window_days: Optional[int] = None,
        max_records: Optional[int] = None,
        filters: Optional[HeatmapFilters] = None,
        now: Optional[datetime] = None,
    ) -> HeatmapResult:
        window_days = settings.HEATMAP_DEFAULT_DAYS if window_days is None else window_days
        max_records = max_records or settings.HEATMAP_MAX_RECORDS
        start, end = day_window(window_days, now)

        points: list[HeatmapPoint] = []
        cells: dict[tuple[int, int], _Cell] = {}

        for step in steps:
            if len(points) >= max_records:
                break
            if not has_position(step):
                continue

            token_id = token_id_from_text(step.token_ref) if step.token_ref else ""
            speed = step.speed or 0.0
            if not passes_filters(step, token_id, speed, filters):
                continue

            weight = speed_weight(speed)
            points.append(HeatmapPoint(
                latitude=step.latitude,
                longitude=step.longitude,
                weight=weight,
                timestamp=step.timestamp,
                token_id=token_id,
                user_id=step.user_id or "",
                speed=speed,
            ))

            key = self.cell_key(step.latitude, step.longitude)
            cell = cells.get(key)
            if cell is None:
                cell = cells[key] = _Cell(step.latitude, step.longitude)
            cell.count += 1
            cell.weight_sum += weight

        hotspots = sorted(
            (
                Hotspot(latitude=c.latitude, longitude=c.longitude, intensity=c.weight_sum / c.count, count=c.count)
                for c in cells.values()
                if c.count > self.hotspot_min_count
            ),
            key=lambda h: h.count,
            reverse=True,
        )[: self.hotspot_limit]

        return HeatmapResult(
            points=points,
            total_points=len(points),
            hotspots=hotspots,
            date_range=DateRange(start=start, end=end),
        )
