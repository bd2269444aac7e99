# portaria/schemas/heatmap.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional

from portaria.config import settings


class Region(BaseModel):
    lat_min: float
    lat_max: float
    lng_min: float
    lng_max: float

    def contains(self, lat: float, lng: float) -> bool:
        return self.lat_min <= lat <= self.lat_max and self.lng_min <= lng <= self.lng_max


class HeatmapFilters(BaseModel):
    token_ids: list[str] = Field(default_factory=list)
    min_speed: Optional[float] = None
    max_speed: Optional[float] = None
    region: Optional[Region] = None


class HeatmapIn(BaseModel):
    window_days: int = Field(settings.HEATMAP_DEFAULT_DAYS, ge=0, le=365)
    max_records: int = Field(settings.HEATMAP_MAX_RECORDS, ge=1)
    filters: Optional[HeatmapFilters] = None


class HeatmapPoint(BaseModel):
    latitude: float
    longitude: float
    weight: int
    timestamp: Optional[datetime] = None
    token_id: str = ""
    user_id: str = ""
    speed: float = 0.0


class Hotspot(BaseModel):
    latitude: float
    longitude: float
    intensity: float
    count: int


class DateRange(BaseModel):
    start: datetime
    end: datetime


class HeatmapResult(BaseModel):
    points: list[HeatmapPoint]
    total_points: int
    hotspots: list[Hotspot]
    date_range: DateRange
    degraded: bool = False   # True when the step read failed and the result is empty by substitution
