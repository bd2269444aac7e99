# portaria/services/search_service.py
"""
Hybrid search over the access log.

Free-text path:
  1. Classify the query. A person name first tries a vector search restricted
     to records whose visitor name (or a related name) matches, at a relaxed
     score threshold. Any hit is returned as-is.
  2. Otherwise, or when that yields nothing, run a plain vector search on the
     normalized text with the caller's threshold.

Structured path (SearchQuery):
  - with free text  → vector search AND-ed with the compiled filter
  - without         → filter-only scroll, paginated by point id

Every payload is validated into AccessRecord; one bad payload fails the call.
"""

import logging
from datetime import date
from typing import Optional, Sequence

from pydantic import ValidationError

from portaria.config import settings
from portaria.errors import PayloadValidationError
from portaria.schemas.access_record import AccessRecord
from portaria.schemas.search import ConnectionInfo, SearchQuery, SearchResult
from portaria.services.embeddings import EmbeddingProvider
from portaria.services.filter_compiler import compile_filter, person_name_filter
from portaria.services.query_classifier import looks_like_person_name
from portaria.services.text_normalizer import normalize, strip_accents
from portaria.services.vector_store import VectorStore
from portaria.utils.logger import get_logger


def validate_records(points: Sequence) -> list[AccessRecord]:
    records = []
    for point in points:
        try:
            records.append(AccessRecord.model_validate(point.payload))
        except ValidationError as exc:
            raise PayloadValidationError(f"Point {point.id} does not match AccessRecord: {exc}") from exc
    return records


def _result(points: Sequence, limit: int, strategy: str) -> SearchResult:
    records = validate_records(points)
    # Top-k queries report no remaining count, so a full page is the best hint
    return SearchResult(records=records, total=len(records), has_more=len(records) == limit, strategy=strategy)


class SearchService:
    def __init__(
        self,
        store: VectorStore,
        embedder: EmbeddingProvider,
        logger: Optional[logging.Logger] = None,
    ):
        self.store = store
        self.embedder = embedder
        self.logger = logger or get_logger(__name__)

    async def search(
        self,
        query: str,
        limit: int = 10,
        offset: int = 0,
        score_threshold: Optional[float] = None,
    ) -> SearchResult:
        threshold = settings.DEFAULT_SCORE_THRESHOLD if score_threshold is None else score_threshold
        prepared = normalize(query)
        vector = await self.embedder.embed(prepared)

        if looks_like_person_name(query):
            relaxed = min(settings.PERSON_NAME_SCORE_THRESHOLD, threshold)
            name = strip_accents(query)
            points = await self.store.search(
                vector, person_name_filter(name), limit=limit, offset=offset, score_threshold=relaxed,
            )
            if points:
                self.logger.info(f"[SEARCH] '{name}' matched {len(points)} record(s) by name filter")
                return _result(points, limit, "hybrid")
            self.logger.info(f"[SEARCH] '{name}' had no name-filtered hits — falling back to vector search")

        points = await self.store.search(vector, limit=limit, offset=offset, score_threshold=threshold)
        self.logger.info(f"[SEARCH] vector search '{query}' → {len(points)} record(s) (threshold={threshold})")
        return _result(points, limit, "vector")

    async def search_filtered(self, params: SearchQuery) -> SearchResult:
        predicate = compile_filter(params)

        if params.query:
            vector = await self.embedder.embed(params.query)
            points = await self.store.search(vector, predicate, limit=params.limit, offset=params.offset)
            strategy = "filtered_vector" if predicate else "vector"
        else:
            points = await self.store.scroll(predicate, limit=params.limit, offset=params.offset)
            strategy = "scroll"

        self.logger.info(f"[SEARCH] {strategy} → {len(points)} record(s)")
        return _result(points, params.limit, strategy)

    # ── Shortcuts over search_filtered ────────────────────────────────────

    async def people_inside(self, limit: int = 10) -> SearchResult:
        return await self.search_filtered(SearchQuery(ainda_dentro=True, limit=limit))

    async def person_history(
        self, documento: str, data_inicio: Optional[date] = None, data_fim: Optional[date] = None, limit: int = 20,
    ) -> SearchResult:
        return await self.search_filtered(SearchQuery(
            pessoa_documento=documento, data_inicio=data_inicio, data_fim=data_fim, limit=limit,
        ))

    async def resident_visits(
        self, morador_nome: str, data_inicio: Optional[date] = None, data_fim: Optional[date] = None, limit: int = 20,
    ) -> SearchResult:
        return await self.search_filtered(SearchQuery(
            morador_nome=morador_nome, data_inicio=data_inicio, data_fim=data_fim, limit=limit,
        ))

    async def by_vehicle(self, placa: str, limit: int = 10) -> SearchResult:
        return await self.search_filtered(SearchQuery(veiculo_placa=placa, limit=limit))

    # ── Connectivity ──────────────────────────────────────────────────────

    async def check_connection(self) -> ConnectionInfo:
        return await self.store.connection_info()
