"""Document ingestion pipeline.

Turns a document into embedded chunks in the document store:

1. Register (or refresh) the document
2. Delete chunks left from an earlier ingestion
3. Chunk the text
4. Embed chunks sequentially, in small batches with pauses between them
5. Record chunk counts in the document metadata

Провайдеры embeddings быстро упираются в rate limit, поэтому чанки
отправляются строго по одному, с паузой после каждого и более длинной
паузой между батчами. Ошибка одного чанка не останавливает документ.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional, Union

from edurag.config import get_config
from edurag.exceptions import EduRAGException, FileProcessingError
from edurag.file_processing import FileConverter
from edurag.models import Document, DocumentChunk, ModelConfig, utcnow
from edurag.services.chunker import Chunker
from edurag.services.embeddings import EmbeddingService
from edurag.services.vector_store import DocumentStore

logger = logging.getLogger(__name__)


class IngestionPipeline:
    """Chunk, embed and store documents.

    Attributes:
        store: Document / vector store
        embedding_service: Embeddings client
        chunker: Sentence-aligned chunker
        batch_size: Chunks per batch
        chunk_delay: Pause after each embedded chunk (seconds)
        batch_delay: Pause between batches (seconds)
    """

    def __init__(
        self,
        store: DocumentStore,
        embedding_service: EmbeddingService,
        chunker: Optional[Chunker] = None,
        file_converter: Optional[FileConverter] = None,
        batch_size: Optional[int] = None,
        chunk_delay: Optional[float] = None,
        batch_delay: Optional[float] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ) -> None:
        config = get_config()
        self.store = store
        self.embedding_service = embedding_service
        self.chunker = chunker or Chunker()
        self.file_converter = file_converter or FileConverter()
        self.batch_size = batch_size or config.embedding_batch_size
        self.chunk_delay = config.chunk_delay if chunk_delay is None else chunk_delay
        self.batch_delay = config.batch_delay if batch_delay is None else batch_delay
        self._sleep = sleep or asyncio.sleep

    async def ingest(self, document: Document, config: ModelConfig) -> int:
        """Ingest one document, replacing any chunks it already has.

        Args:
            document: Document with extracted text
            config: Chatbot model settings used for embeddings

        Returns:
            Number of chunks produced by the chunker

        Raises:
            ConfigError: If the API key is missing (nothing is written)
            VectorStoreError: If the document cannot be registered or cleaned
        """
        config.require_credentials()

        logger.info(f"Ingesting document {document.id} ({len(document.content)} chars)")

        # 1. Регистрируем документ
        await self.store.upsert_document(document)

        # 2. Удаляем старые чанки (повторная загрузка идемпотентна)
        removed = await self.store.delete_chunks(document.id)
        if removed:
            logger.info(f"Removed {removed} existing chunks of {document.id}")

        # 3. Разбиваем на чанки
        chunks = self.chunker.chunk(document.content).to_list()

        # 4. Embeddings батчами
        embedded = 0
        for start in range(0, len(chunks), self.batch_size):
            batch = chunks[start:start + self.batch_size]
            for offset, text in enumerate(batch):
                position = start + offset
                if await self._embed_and_store(document, text, position, config):
                    embedded += 1
                await self._sleep(self.chunk_delay)

            if start + self.batch_size < len(chunks):
                await self._sleep(self.batch_delay)

        # 5. Метаданные
        await self.store.update_document_metadata(
            document.id,
            {
                "chunk_count": len(chunks),
                "embedded_chunk_count": embedded,
                "ingested_at": utcnow().isoformat(),
            },
        )

        if embedded < len(chunks):
            logger.warning(
                f"Document {document.id}: {len(chunks) - embedded} of {len(chunks)} "
                f"chunks failed to embed"
            )
        logger.info(f"✓ Document {document.id} ingested: {embedded}/{len(chunks)} chunks embedded")
        return len(chunks)

    async def ingest_file(
        self,
        path: Union[str, Path],
        document_id: str,
        collection_id: str,
        config: ModelConfig,
        title: Optional[str] = None,
    ) -> int:
        """Extract text from a file and ingest it.

        Raises:
            FileProcessingError: If the file has no extractable text
        """
        path = Path(path)
        text = await asyncio.to_thread(self.file_converter.convert, path)
        if not text.strip():
            raise FileProcessingError(f"No text extracted from {path.name}", file_path=str(path))

        document = Document(
            id=document_id,
            collection_id=collection_id,
            content=text,
            title=title or path.name,
            metadata={"file_name": path.name, "file_type": path.suffix.lower().lstrip(".")},
        )
        return await self.ingest(document, config)

    async def _embed_and_store(
        self, document: Document, text: str, position: int, config: ModelConfig
    ) -> bool:
        try:
            vector = await self.embedding_service.embed(text, config)
            await self.store.insert_chunk(
                DocumentChunk(
                    document_id=document.id,
                    collection_id=document.collection_id,
                    content=text,
                    position=position,
                    embedding=vector,
                )
            )
            return True
        except EduRAGException as e:
            logger.error(f"Error processing chunk {position} of {document.id}: {e.message}")
            return False
