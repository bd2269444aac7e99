# portaria/schemas/tracking.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Literal, Optional

ResolvedVia = Literal["direct", "fallback_scan", "none"]


class VisitorUser(BaseModel):
    uid: str
    display_name: str
    email: Optional[str] = None
    phone_number: Optional[str] = None
    photo_url: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        extra = "ignore"


class LocationStep(BaseModel):
    id: str
    token_ref: str = ""              # stored reference, flattened to its path/string form
    timestamp: Optional[datetime] = None
    latitude: float
    longitude: float
    accuracy: Optional[float] = None
    address: Optional[str] = None
    speed: Optional[float] = None    # km/h
    user_id: Optional[str] = None


class TrackingToken(BaseModel):
    id: str
    name: str = ""
    description: Optional[str] = None
    active: bool = False
    created_at: Optional[datetime] = None
    token_ref: str = ""
    users_assigned: list[str] = Field(default_factory=list)
    steps: list[LocationStep] = Field(default_factory=list)
    resolved_via: ResolvedVia = "none"


class ResolvedSteps(BaseModel):
    token_id: str
    steps: list[LocationStep]
    resolved_via: ResolvedVia


class TrackingResult(BaseModel):
    visitor: Optional[VisitorUser]
    tokens: list[TrackingToken]
    total_tokens: int
    steps_count: int
