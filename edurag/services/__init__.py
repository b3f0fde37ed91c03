"""Engine services.

Core services of the pipeline:
  - http_client: Resilient HTTP client (timeouts, retries, rate limits)
  - chunker: Split documents into sentence-aligned chunks
  - embeddings: Provider embeddings
  - ingestion: Chunk + embed + store documents
  - retriever: Semantic search
  - chat / output_validator: Grounded answers and their review
  - learning_progress: Per-session learning objectives
  - manager: Main interface (USE THIS!)
"""

from edurag.services.chat import REFUSAL_MESSAGE, ChatOrchestrator
from edurag.services.chunker import Chunker, ChunkStream, chunk_text
from edurag.services.collaborators import LoggingUsageLog, SettingsStore, StaticSettingsStore, UsageLog
from edurag.services.embeddings import EmbeddingService
from edurag.services.http_client import ResilientClient
from edurag.services.ingestion import IngestionPipeline
from edurag.services.learning_progress import (
    InMemorySessionStore,
    JsonSessionStore,
    LearningProgressEngine,
    SessionStore,
)
from edurag.services.manager import EduChatEngine
from edurag.services.output_validator import OutputValidator
from edurag.services.retriever import Retriever
from edurag.services.vector_store import DocumentStore, InMemoryDocumentStore


# chromadb is heavy to import, load it only when asked for
def __getattr__(name):
    if name == "ChromaDocumentStore":
        from edurag.services.chroma_store import ChromaDocumentStore

        return ChromaDocumentStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    # Main interface (USE THIS)
    "EduChatEngine",
    # Individual services
    "ResilientClient",
    "Chunker",
    "ChunkStream",
    "chunk_text",
    "EmbeddingService",
    "IngestionPipeline",
    "Retriever",
    "ChatOrchestrator",
    "REFUSAL_MESSAGE",
    "OutputValidator",
    "LearningProgressEngine",
    "SessionStore",
    "InMemorySessionStore",
    "JsonSessionStore",
    # Collaborators
    "DocumentStore",
    "InMemoryDocumentStore",
    "ChromaDocumentStore",
    "SettingsStore",
    "StaticSettingsStore",
    "UsageLog",
    "LoggingUsageLog",
]
