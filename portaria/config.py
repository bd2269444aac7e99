# portaria/config.py
"""
Application configuration using Pydantic-Settings.
All settings can be overridden via environment variables or .env file.
"""

from pydantic_settings import BaseSettings
from typing import Optional


class Settings(BaseSettings):
    # ── Qdrant (access log collection) ────────────────────────────────────
    QDRANT_URL: str = "http://localhost:6333"
    QDRANT_API_KEY: Optional[str] = None
    QDRANT_COLLECTION_NAME: str = "condominio_access"

    # ── Embeddings ────────────────────────────────────────────────────────
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_EMBEDDING_MODEL: str = "text-embedding-3-small"
    EMBEDDING_MAX_CHARS: int = 8000              # ~2000 tokens

    # ── Firestore (tracking tokens) ───────────────────────────────────────
    FIRESTORE_PROJECT_ID: Optional[str] = None   # None disables tracking endpoints
    FIRESTORE_DATABASE: Optional[str] = None

    # ── Network ───────────────────────────────────────────────────────────
    BACKEND_HOST: str = "0.0.0.0"
    BACKEND_PORT: int = 8080

    # ── Security ──────────────────────────────────────────────────────────
    API_KEY: Optional[str] = None   # Set in .env to enable auth on API endpoints

    # ── Search ────────────────────────────────────────────────────────────
    DEFAULT_SCORE_THRESHOLD: float = 0.55
    PERSON_NAME_SCORE_THRESHOLD: float = 0.5    # relaxed: the name filter already narrows
    SHORT_QUERY_LENGTH: int = 50                # shorter queries get context tokens

    # ── Person-name heuristic ─────────────────────────────────────────────
    RESIDENT_KEYWORDS: list[str] = ["MORADOR", "RESIDENTE", "PROPRIETARIO", "APARTAMENTO", "QUADRA"]
    NAME_PARTICLES: list[str] = ["DE", "DA", "DO", "DOS", "DAS", "E"]
    MIN_NAME_TOKENS: int = 2

    # ── Heatmap ───────────────────────────────────────────────────────────
    HEATMAP_CELL_SIZE: float = 0.0001           # ~10 meters
    HEATMAP_HOTSPOT_MIN_COUNT: int = 3          # cells need more than this many points
    HEATMAP_HOTSPOT_LIMIT: int = 10
    HEATMAP_DEFAULT_DAYS: int = 7
    HEATMAP_MAX_RECORDS: int = 10000

    # ── Logging ───────────────────────────────────────────────────────────
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    class Config:
        env_file = ".env"
        extra = "ignore"


settings = Settings()
