"""Embedding service.

Генерирует векторные представления текстов через OpenAI-совместимый
endpoint `{base_url}/embeddings` провайдера, настроенного для чат-бота.

Ответ проверяется схемой EmbeddingResponse; всё, что не похоже на
`data[0].embedding`, превращается в EmbeddingError.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from pydantic import ValidationError

from edurag.config import get_config
from edurag.exceptions import EmbeddingError, MalformedResponseError
from edurag.models import ModelConfig
from edurag.schemas import EmbeddingResponse
from edurag.services.http_client import ResilientClient

logger = logging.getLogger(__name__)


class EmbeddingService:
    """Text embeddings through the provider's embeddings endpoint.

    Attributes:
        client: Shared resilient HTTP client
        model_name: Embedding model id
        dimension: Expected vector length, or None to skip the check
    """

    def __init__(
        self,
        client: ResilientClient,
        model_name: Optional[str] = None,
        dimension: Optional[int] = None,
    ) -> None:
        config = get_config()
        self.client = client
        self.model_name = model_name or config.embedding_model
        self.dimension = dimension if dimension is not None else config.embedding_dimension

    async def embed(self, text: str, config: ModelConfig) -> List[float]:
        """Create an embedding for one text.

        Args:
            text: Source text
            config: Chatbot model settings (base url and key)

        Returns:
            Embedding vector

        Raises:
            ConfigError: If the API key is missing (no request is sent)
            EmbeddingError: If the response is not JSON or carries no usable vector
        """
        config.require_credentials()

        try:
            data = await self.client.post_json(
                f"{config.base_url}/embeddings",
                {"model": self.model_name, "input": text},
                config.api_key,
            )
        except MalformedResponseError as e:
            raise EmbeddingError(f"Embeddings response is not JSON: {e}", text_length=len(text)) from e

        try:
            vector = EmbeddingResponse.model_validate(data).first_vector
        except ValidationError as e:
            logger.error(f"Invalid embeddings response: {e.error_count()} errors")
            raise EmbeddingError(
                f"Embeddings response has no data[0].embedding: {e}", text_length=len(text)
            ) from e

        if self.dimension is not None and len(vector) != self.dimension:
            raise EmbeddingError(
                f"Expected embedding dimension {self.dimension}, got {len(vector)}",
                text_length=len(text),
            )

        logger.debug(f"Embedded {len(text)} chars into {len(vector)}-dim vector")
        return vector
