# portaria/services/embeddings.py
"""
OpenAI embedding provider.
Input is cut to EMBEDDING_MAX_CHARS before the call to stay under the model's token limit.
"""

from typing import Optional

from openai import AsyncOpenAI, OpenAIError

from portaria.config import settings
from portaria.errors import EmbeddingError
from portaria.utils.logger import get_logger

logger = get_logger(__name__)


class EmbeddingProvider:
    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        max_chars: Optional[int] = None,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.model = model or settings.OPENAI_EMBEDDING_MODEL
        self.max_chars = max_chars or settings.EMBEDDING_MAX_CHARS
        api_key = api_key or settings.OPENAI_API_KEY
        if client is None and api_key:
            client = AsyncOpenAI(api_key=api_key)
        self._client = client

    async def embed(self, text: str) -> list[float]:
        if self._client is None:
            raise EmbeddingError("OpenAI client not configured — set OPENAI_API_KEY")

        truncated = text[: self.max_chars]
        try:
            response = await self._client.embeddings.create(
                model=self.model,
                input=truncated,
                encoding_format="float",
            )
        except OpenAIError as exc:
            logger.error(f"[EMBED] {self.model} request failed: {exc}")
            raise EmbeddingError(f"Embedding request failed: {exc}") from exc

        if not response.data:
            raise EmbeddingError("Embedding response carried no data")
        return response.data[0].embedding

    async def close(self):
        if self._client is not None:
            await self._client.close()
