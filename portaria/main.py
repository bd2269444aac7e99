# portaria/main.py
"""
FastAPI application entry point.
Includes API key middleware, error handlers, backend client lifecycle and all routers.
"""

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from portaria.routers import health, search, tracking
from portaria.services_registry import close_services, create_services
from portaria.config import settings
from portaria.errors import PortariaError
from portaria.utils.logger import configure_logging, get_logger, shutdown_logging
import time

logger = get_logger(__name__)

app = FastAPI(
    title="Portaria Access Query API",
    description="Semantic search over the condominium access log and visitor location tracking.",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)

# ── CORS (the gatehouse dashboard calls the API from the browser) ────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ── API Key Middleware ───────────────────────────────────────────────────────
class APIKeyMiddleware(BaseHTTPMiddleware):
    """
    Optional API key auth. Health and docs stay open.
    Set API_KEY in .env. Leave empty to disable auth.
    """
    open_paths = {"/api/v1/health", "/docs", "/redoc", "/openapi.json"}

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.open_paths or not settings.API_KEY:
            return await call_next(request)

        api_key = request.headers.get("X-API-Key") or request.query_params.get("api_key")
        if api_key != settings.API_KEY:
            return JSONResponse(
                status_code=status.HTTP_401_UNAUTHORIZED,
                content={"detail": "Invalid or missing API key"},
            )
        return await call_next(request)


if settings.API_KEY:
    app.add_middleware(APIKeyMiddleware)


# ── Request Timing Middleware ────────────────────────────────────────────────
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.time()
    response = await call_next(request)
    duration = round((time.time() - start) * 1000, 2)
    logger.debug(f"{request.method} {request.url.path} → {response.status_code} ({duration}ms)")
    return response


# ── Exception Handlers ───────────────────────────────────────────────────────
@app.exception_handler(PortariaError)
async def portaria_exception_handler(request: Request, exc: PortariaError):
    logger.warning(f"{type(exc).__name__} on {request.url.path}: {exc}")
    return JSONResponse(status_code=exc.status_code, content={"detail": str(exc)})


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


# ── Routers ──────────────────────────────────────────────────────────────────
app.include_router(search.router,   prefix="/api/v1", tags=["🔎 Access Search"])
app.include_router(tracking.router, prefix="/api/v1", tags=["📍 Visitor Tracking"])
app.include_router(health.router,   prefix="/api/v1", tags=["💚 Health"])


# ── Startup ───────────────────────────────────────────────────────────────────
@app.on_event("startup")
async def startup():
    configure_logging()
    logger.info("🚀 Portaria backend starting up...")
    create_services(app)
    logger.info(f"✅ Qdrant collection: {settings.QDRANT_COLLECTION_NAME} @ {settings.QDRANT_URL}")
    logger.info(f"🧠 Embedding model: {settings.OPENAI_EMBEDDING_MODEL}")
    logger.info(f"🌐 Listening on http://{settings.BACKEND_HOST}:{settings.BACKEND_PORT}")
    logger.info("📖 API docs at /docs")


@app.on_event("shutdown")
async def shutdown():
    logger.info("🛑 Portaria backend shutting down...")
    await close_services(app)
    shutdown_logging()
