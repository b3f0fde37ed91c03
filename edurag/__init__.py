"""EduRAG - retrieval-augmented chat engine for educational chatbots.

Key Components:
    - Chunker / EmbeddingService / IngestionPipeline: Build a knowledge base
    - Retriever: Semantic search in the knowledge base
    - ChatOrchestrator + OutputValidator: Grounded, reviewed answers
    - LearningProgressEngine: Per-session mastery of learning objectives
    - EduChatEngine: Wires all of them together

Quick Start:
    from edurag import EduChatEngine, ModelConfig
    from edurag.services import StaticSettingsStore

    engine = EduChatEngine(StaticSettingsStore(ModelConfig(
        provider="openai", model="gpt-4o-mini",
        api_key="sk-...", base_url="https://api.openai.com/v1",
    )))
    await engine.ingest_file("lecture.pdf", document_id="doc_1", collection_id="bio101")
    result = await engine.respond([], "What is osmosis?", collection_id="bio101")

Version: 1.0.0
"""

__version__ = "1.0.0"

from edurag.config import EngineConfig, get_config, reset_config, set_config
from edurag.exceptions import EduRAGException
from edurag.models import (
    ChatMessage,
    ChatResult,
    Document,
    DocumentChunk,
    LearningObjective,
    LearningProgress,
    ModelConfig,
    ObjectiveStatus,
    RetrievedChunk,
)
from edurag.services.manager import EduChatEngine

__all__ = [
    "EngineConfig",
    "get_config",
    "set_config",
    "reset_config",
    "EduRAGException",
    "ChatMessage",
    "ChatResult",
    "Document",
    "DocumentChunk",
    "LearningObjective",
    "LearningProgress",
    "ModelConfig",
    "ObjectiveStatus",
    "RetrievedChunk",
    "EduChatEngine",
]
