# portaria/routers/health.py
"""
System health check endpoint.
Returns status of backend + Qdrant collection + tracking store configuration.
"""

from fastapi import APIRouter, Depends, Request
from datetime import datetime, timezone

from portaria.config import settings
from portaria.errors import PortariaError
from portaria.services.search_service import SearchService
from portaria.services_registry import get_search_service

router = APIRouter()


@router.get("/health", summary="System health check")
async def health_check(request: Request, service: SearchService = Depends(get_search_service)):
    """
    Returns:
    - Backend status
    - Qdrant connectivity and collection presence
    - Collection stats when reachable
    - Whether the Firestore tracking store is configured
    """
    result = {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "backend": "ok",
        "qdrant": "unknown",
        "collection": settings.QDRANT_COLLECTION_NAME,
        "collection_exists": False,
        "tracking": "enabled" if getattr(request.app.state, "tracking_service", None) else "disabled",
    }

    if not await service.store.ping():
        result["qdrant"] = "unreachable"
        result["status"] = "degraded"
        return result
    result["qdrant"] = "ok"

    result["collection_exists"] = await service.store.collection_exists()
    if not result["collection_exists"]:
        result["status"] = "degraded"
        return result

    try:
        result["stats"] = (await service.check_connection()).model_dump()
    except PortariaError as e:
        result["stats"] = f"error: {e}"
        result["status"] = "degraded"

    return result
