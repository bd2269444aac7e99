# portaria/services_registry.py
"""
Backend client construction and FastAPI dependencies.
Clients are built once on startup, kept on app.state, and closed on shutdown.
Tracking is optional: without FIRESTORE_PROJECT_ID its endpoints answer 503.
"""

from fastapi import FastAPI, Request

from portaria.config import settings
from portaria.errors import BackendUnavailable
from portaria.services.embeddings import EmbeddingProvider
from portaria.services.firestore_store import FirestoreStore
from portaria.services.search_service import SearchService
from portaria.services.tracking_service import TrackingService
from portaria.services.vector_store import VectorStore
from portaria.utils.logger import get_logger

logger = get_logger(__name__)


def create_services(app: FastAPI):
    app.state.search_service = SearchService(VectorStore(), EmbeddingProvider())

    app.state.tracking_service = None
    if settings.FIRESTORE_PROJECT_ID:
        app.state.tracking_service = TrackingService(FirestoreStore())
    else:
        logger.warning("FIRESTORE_PROJECT_ID not set — tracking endpoints disabled")


async def close_services(app: FastAPI):
    search = getattr(app.state, "search_service", None)
    if search is not None:
        await search.store.close()
        await search.embedder.close()

    tracking = getattr(app.state, "tracking_service", None)
    if tracking is not None:
        await tracking.store.close()


def get_search_service(request: Request) -> SearchService:
    """FastAPI dependency — the shared SearchService."""
    return request.app.state.search_service


def get_tracking_service(request: Request) -> TrackingService:
    """FastAPI dependency — the shared TrackingService, if Firestore is configured."""
    service = getattr(request.app.state, "tracking_service", None)
    if service is None:
        raise BackendUnavailable("Tracking store not configured — set FIRESTORE_PROJECT_ID")
    return service
