"""EduChatEngine - main interface of the engine.

Главный оркестратор: объединяет все сервисы в один объект.
- ResilientClient (HTTP с retry)
- IngestionPipeline (chunking + embeddings)
- Retriever (семантический поиск)
- ChatOrchestrator + OutputValidator (ответы)
- LearningProgressEngine (прогресс обучения)

Model settings come from the SettingsStore on every call, so a chatbot's
key or model can change between turns.

Quick Start:
    >>> engine = EduChatEngine(StaticSettingsStore(model_config))
    >>> await engine.ingest(Document(id="d1", collection_id="bot", content=text))
    >>> result = await engine.respond([], "What is photosynthesis?", collection_id="bot")
    >>> await engine.aclose()
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Sequence, Union

import httpx

from edurag.config import get_config
from edurag.models import ChatMessage, ChatResult, Document, LearningProgress, RetrievedChunk
from edurag.services.chat import ChatOrchestrator
from edurag.services.chunker import Chunker
from edurag.services.collaborators import LoggingUsageLog, SettingsStore, UsageLog
from edurag.services.embeddings import EmbeddingService
from edurag.services.http_client import ResilientClient
from edurag.services.ingestion import IngestionPipeline
from edurag.services.learning_progress import (
    InMemorySessionStore,
    JsonSessionStore,
    LearningProgressEngine,
    SessionStore,
)
from edurag.services.output_validator import OutputValidator
from edurag.services.retriever import Retriever
from edurag.services.vector_store import DocumentStore, InMemoryDocumentStore

logger = logging.getLogger(__name__)


class EduChatEngine:
    """Facade over the whole pipeline.

    Attributes:
        settings: Source of the chatbot's ModelConfig
        store: Document / vector store
        client: Shared resilient HTTP client
        ingestion: Ingestion pipeline
        retriever: Retriever
        progress: Learning-progress engine
        chat: Chat orchestrator
    """

    def __init__(
        self,
        settings: SettingsStore,
        store: Optional[DocumentStore] = None,
        session_store: Optional[SessionStore] = None,
        usage_log: Optional[UsageLog] = None,
        client: Optional[ResilientClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """Wire the services together.

        Args:
            settings: Settings collaborator
            store: Document store (in-memory by default)
            session_store: Session store (JSON files if session_dir is
                configured, in-memory otherwise)
            usage_log: Usage sink (logging by default)
            client: Pre-built HTTP client
            transport: httpx transport for a client built here (tests)
        """
        config = get_config()
        self.settings = settings
        self.store = store if store is not None else InMemoryDocumentStore()
        self.client = client or ResilientClient(transport=transport)

        if session_store is None:
            session_store = (
                JsonSessionStore(config.session_dir) if config.session_dir else InMemorySessionStore()
            )

        embeddings = EmbeddingService(self.client)
        self.ingestion = IngestionPipeline(self.store, embeddings, Chunker())
        self.retriever = Retriever(embeddings, self.store)
        self.progress = LearningProgressEngine(session_store, client=self.client)
        self.chat = ChatOrchestrator(
            self.client,
            self.retriever,
            OutputValidator(self.client),
            progress=self.progress,
            usage_log=usage_log if usage_log is not None else LoggingUsageLog(),
        )
        logger.info("✓ EduChatEngine initialized")

    async def __aenter__(self) -> "EduChatEngine":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()

    # ---------- Knowledge base ----------

    async def ingest(self, document: Document) -> int:
        """Chunk, embed and store a document. Returns the chunk count."""
        config = await self.settings.get_config()
        return await self.ingestion.ingest(document, config)

    async def ingest_file(
        self,
        path: Union[str, Path],
        document_id: str,
        collection_id: str,
        title: Optional[str] = None,
    ) -> int:
        """Extract text from a file and ingest it. Returns the chunk count."""
        config = await self.settings.get_config()
        return await self.ingestion.ingest_file(path, document_id, collection_id, config, title)

    async def retrieve(
        self,
        collection_id: str,
        query_text: str,
        top_k: Optional[int] = None,
        min_similarity: Optional[float] = None,
    ) -> List[RetrievedChunk]:
        config = await self.settings.get_config()
        return await self.retriever.retrieve(collection_id, query_text, config, top_k, min_similarity)

    # ---------- Chat ----------

    async def respond(
        self,
        history: Sequence[ChatMessage],
        new_user_text: str,
        collection_id: Optional[str] = None,
        *,
        session_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> ChatResult:
        """Answer one user turn. See ChatOrchestrator.respond."""
        config = await self.settings.get_config()
        return await self.chat.respond(
            history,
            new_user_text,
            config,
            collection_id,
            session_id=session_id,
            user_id=user_id,
        )

    # ---------- Learning progress ----------

    def init_session(self, chatbot_id: str, session_id: str) -> LearningProgress:
        return self.progress.init_session(chatbot_id, session_id)

    def update(self, session_id: str, objective_id: str, **changes) -> bool:
        return self.progress.update(session_id, objective_id, **changes)

    async def evaluate(self, session_id: str, transcript: List[ChatMessage]) -> bool:
        config = await self.settings.get_config()
        return await self.progress.evaluate(session_id, transcript, config)

    def get_progress(self, session_id: str) -> Optional[LearningProgress]:
        return self.progress.get_progress(session_id)

    def clear_session(self, session_id: str) -> None:
        self.progress.clear_session(session_id)

    # ---------- Lifecycle ----------

    async def aclose(self) -> None:
        """Wait for pending usage records and close the HTTP client."""
        await self.chat.drain()
        await self.client.aclose()
        logger.info("EduChatEngine closed")
