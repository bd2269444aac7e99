# portaria/routers/tracking.py
"""Visitor tracking endpoints: per-visitor history, per-token steps, heatmap."""

from fastapi import APIRouter, Depends, Query

from portaria.schemas.heatmap import HeatmapIn, HeatmapResult
from portaria.schemas.tracking import ResolvedSteps, TrackingResult
from portaria.services.tracking_service import TrackingService
from portaria.services_registry import get_tracking_service

router = APIRouter(prefix="/tracking")


@router.get("/visitor", response_model=TrackingResult, summary="Tokens and steps of a visitor")
async def track_visitor(name: str = Query(..., min_length=1), service: TrackingService = Depends(get_tracking_service)):
    return await service.track_visitor(name)


@router.get("/visitors", response_model=list[TrackingResult], summary="Tracking for several visitors")
async def track_visitors(
    name: list[str] = Query(...),
    service: TrackingService = Depends(get_tracking_service),
):
    return await service.track_visitors(name)


@router.get("/tokens/{token_ref:path}", response_model=ResolvedSteps, summary="Steps of one token")
async def token_steps(token_ref: str, service: TrackingService = Depends(get_tracking_service)):
    """Accepts a bare id, tokens/ID or /tokens/ID."""
    return await service.token_steps(token_ref)


@router.post("/heatmap", response_model=HeatmapResult, summary="Location heatmap and hotspots")
async def heatmap(body: HeatmapIn, service: TrackingService = Depends(get_tracking_service)):
    return await service.heatmap(body.window_days, body.max_records, body.filters)
