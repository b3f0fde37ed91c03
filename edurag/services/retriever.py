"""Retriever service for semantic search.

Сервис семантического поиска по базе знаний одного чат-бота.

Основной флоу:
1. Пустой запрос или коллекция без embeddings: сразу пустой результат
2. Генерируем embedding запроса (EmbeddingService)
3. Ищем похожие чанки (DocumentStore)
4. Фильтруем по порогу, сортируем, обрезаем до top_k

Retrieval is best effort: any failure is logged and yields no context, so a
chat turn never fails because of the knowledge base.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from edurag.config import get_config
from edurag.models import ModelConfig, RetrievedChunk
from edurag.services.embeddings import EmbeddingService
from edurag.services.vector_store import DocumentStore

logger = logging.getLogger(__name__)


class Retriever:
    """Semantic search over a collection's embedded chunks.

    Attributes:
        embedding_service: Embeddings client
        store: Document / vector store
    """

    def __init__(self, embedding_service: EmbeddingService, store: DocumentStore) -> None:
        self.embedding_service = embedding_service
        self.store = store

    async def retrieve(
        self,
        collection_id: str,
        query_text: str,
        config: ModelConfig,
        top_k: Optional[int] = None,
        min_similarity: Optional[float] = None,
    ) -> List[RetrievedChunk]:
        """Find the chunks most similar to a query.

        Args:
            collection_id: Chatbot / collection to search
            query_text: User question
            config: Chatbot model settings used for the query embedding
            top_k: Maximum number of results (default from config, 3)
            min_similarity: Similarity floor (default from config, 0.7)

        Returns:
            Chunks with similarity >= min_similarity, highest first. Empty
            list on blank query, empty collection or any failure.
        """
        engine_config = get_config()
        top_k = top_k if top_k is not None else engine_config.top_k
        threshold = min_similarity if min_similarity is not None else engine_config.min_similarity

        if not query_text or not query_text.strip():
            logger.debug("Empty query provided")
            return []

        try:
            if not await self.store.has_embedded_chunks(collection_id):
                logger.debug(f"Collection {collection_id} has no embedded chunks")
                return []

            query_vector = await self.embedding_service.embed(query_text, config)
            matches = await self.store.match_chunks(collection_id, query_vector, threshold, top_k)
        except Exception as e:
            logger.error(f"Error during retrieval for {collection_id}: {e}")
            return []

        results = [match for match in matches if match.similarity >= threshold]
        results.sort(key=lambda match: match.similarity, reverse=True)
        results = results[:top_k]

        logger.info(
            f"Found {len(results)} chunks above threshold {threshold:.2f} in {collection_id}"
        )
        return results
