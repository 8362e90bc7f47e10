"""Text embeddings through the Gemini embedding endpoint."""

import logging
from typing import Optional

from google.genai import types

from core.config import settings
from core.errors import ModelOutputError
from core.utils.timeouts import with_timeout

logger = logging.getLogger(__name__)


class EmbeddingClient:
    """Embeds one text per call; the indexer decides how calls are batched."""

    def __init__(
        self,
        model: Optional[str] = None,
        dimensions: Optional[int] = None,
        client=None,
    ):
        self.model = model or settings.embedding_model
        self.dimensions = dimensions or settings.embedding_dimensions
        self._client = client

    def _get_client(self):
        if self._client is None:
            from google import genai

            self._client = genai.Client(api_key=settings.google_api_key)
        return self._client

    async def embed(self, text: str, task_type: str = "RETRIEVAL_DOCUMENT") -> list[float]:
        """
        Embed a single text.

        Args:
            text: Text to embed; newlines are flattened to spaces
            task_type: ``RETRIEVAL_DOCUMENT`` for chunks, ``RETRIEVAL_QUERY`` for queries

        Returns:
            Embedding vector of ``dimensions`` floats
        """
        client = self._get_client()
        response = await with_timeout(
            client.aio.models.embed_content(
                model=self.model,
                contents=text.replace("\n", " "),
                config=types.EmbedContentConfig(
                    task_type=task_type,
                    output_dimensionality=self.dimensions,
                ),
            ),
            "embedding",
        )
        if not response.embeddings or not response.embeddings[0].values:
            raise ModelOutputError("Embedding service returned no vector")
        values = list(response.embeddings[0].values)
        if len(values) != self.dimensions:
            raise ModelOutputError(
                f"Expected {self.dimensions}-dimensional embedding, got {len(values)}"
            )
        return values

    async def embed_query(self, text: str) -> list[float]:
        return await self.embed(text, task_type="RETRIEVAL_QUERY")
