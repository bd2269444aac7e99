# portaria/services/vector_store.py
"""
Qdrant access for the access-log collection.

Only this module knows Qdrant's filter model: predicate trees built by
filter_compiler are translated here. Transport failures surface as
BackendUnavailable, other Qdrant errors as SearchError; the original
exception is always chained.
"""

from typing import Optional, Sequence

import httpx
from qdrant_client import AsyncQdrantClient, models
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse

from portaria.config import settings
from portaria.errors import BackendUnavailable, SearchError
from portaria.schemas.search import ConnectionInfo
from portaria.services.filter_compiler import AllOf, AnyOf, MatchCondition, Predicate, RangeCondition
from portaria.utils.logger import get_logger

logger = get_logger(__name__)


def _to_condition(predicate: Predicate):
    if isinstance(predicate, MatchCondition):
        if predicate.mode == "text":
            match = models.MatchText(text=predicate.value)
        else:
            match = models.MatchValue(value=predicate.value)
        return models.FieldCondition(key=predicate.key, match=match)
    if isinstance(predicate, RangeCondition):
        return models.FieldCondition(
            key=predicate.key,
            range=models.DatetimeRange(gte=predicate.gte, lte=predicate.lte),
        )
    return to_qdrant_filter(predicate)


def to_qdrant_filter(predicate: Optional[Predicate]) -> Optional[models.Filter]:
    if predicate is None:
        return None
    if isinstance(predicate, AllOf):
        return models.Filter(must=[_to_condition(c) for c in predicate.conditions])
    if isinstance(predicate, AnyOf):
        return models.Filter(should=[_to_condition(c) for c in predicate.conditions])
    return models.Filter(must=[_to_condition(predicate)])


class VectorStore:
    def __init__(self, client: Optional[AsyncQdrantClient] = None, collection_name: Optional[str] = None):
        self.collection_name = collection_name or settings.QDRANT_COLLECTION_NAME
        self.client = client or AsyncQdrantClient(url=settings.QDRANT_URL, api_key=settings.QDRANT_API_KEY)

    def _wrap(self, action: str, exc: Exception) -> Exception:
        logger.error(f"[QDRANT] {action} on '{self.collection_name}' failed: {exc}")
        if isinstance(exc, UnexpectedResponse) and exc.status_code == 404:
            return BackendUnavailable(f"Collection '{self.collection_name}' not found")
        if isinstance(exc, (ResponseHandlingException, httpx.TransportError)):
            return BackendUnavailable(f"Qdrant unreachable during {action}: {exc}")
        return SearchError(f"Qdrant {action} failed: {exc}")

    async def search(
        self,
        vector: Sequence[float],
        predicate: Optional[Predicate] = None,
        limit: int = 10,
        offset: int = 0,
        score_threshold: Optional[float] = None,
    ) -> list[models.ScoredPoint]:
        query_filter = to_qdrant_filter(predicate)
        try:
            response = await self.client.query_points(
                collection_name=self.collection_name,
                query=list(vector),
                query_filter=query_filter,
                limit=limit,
                offset=offset,
                score_threshold=score_threshold,
                with_payload=True,
                with_vectors=False,
            )
        except Exception as exc:
            raise self._wrap("search", exc) from exc
        return response.points

    async def scroll(
        self,
        predicate: Optional[Predicate] = None,
        limit: int = 10,
        offset: int = 0,
    ) -> list[models.Record]:
        """Filter-only read. Scroll pages by point id, so an integer offset is applied by slicing."""
        scroll_filter = to_qdrant_filter(predicate)
        try:
            points, _next = await self.client.scroll(
                collection_name=self.collection_name,
                scroll_filter=scroll_filter,
                limit=offset + limit,
                with_payload=True,
                with_vectors=False,
            )
        except Exception as exc:
            raise self._wrap("scroll", exc) from exc
        return points[offset:offset + limit]

    async def ping(self) -> bool:
        try:
            await self.client.get_collections()
            return True
        except Exception as exc:
            logger.warning(f"[QDRANT] Connection check failed: {exc}")
            return False

    async def collection_exists(self) -> bool:
        try:
            return await self.client.collection_exists(self.collection_name)
        except Exception as exc:
            logger.warning(f"[QDRANT] Collection '{self.collection_name}' check failed: {exc}")
            return False

    async def connection_info(self) -> ConnectionInfo:
        try:
            info = await self.client.get_collection(self.collection_name)
            counted = await self.client.count(self.collection_name, exact=True)
        except Exception as exc:
            raise self._wrap("collection info", exc) from exc

        vectors = info.config.params.vectors
        dimension, distance = 0, "unknown"
        if isinstance(vectors, models.VectorParams):
            dimension, distance = vectors.size, str(vectors.distance.value)
        return ConnectionInfo(
            status="connected",
            collection_name=self.collection_name,
            points=counted.count,
            vectors_count=getattr(info, "vectors_count", None),
            dimension=dimension,
            distance=distance,
        )

    async def close(self):
        await self.client.close()
