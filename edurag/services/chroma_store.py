"""Persistent document store on top of ChromaDB.

Chunks live in one chromadb collection (cosine space) with document_id,
collection_id and position in their metadata. Documents are kept in a JSON
registry next to the chromadb data. chromadb is synchronous, so every call
runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import chromadb
from chromadb.config import Settings as ChromaSettings

from edurag.exceptions import DocumentNotFoundError, VectorStoreError
from edurag.models import Document, DocumentChunk, RetrievedChunk

logger = logging.getLogger(__name__)


class ChromaDocumentStore:
    """Persistent store on top of ChromaDB.

    Chunks live in one chromadb collection (cosine space) with document_id,
    collection_id and position in their metadata. Documents are kept in a
    JSON registry file inside the persist directory.

    Attributes:
        persist_directory: ChromaDB data directory
        collection_name: ChromaDB collection holding the chunks
    """

    DEFAULT_COLLECTION_NAME = "edurag_chunks"
    REGISTRY_FILENAME = "documents_registry.json"

    def __init__(
        self,
        persist_directory: Path,
        collection_name: Optional[str] = None,
    ) -> None:
        """Initialize the store.

        Args:
            persist_directory: Directory for chromadb data and the registry
            collection_name: Chunk collection name

        Raises:
            VectorStoreError: If chromadb cannot be initialized
        """
        self.persist_directory = Path(persist_directory)
        self.collection_name = collection_name or self.DEFAULT_COLLECTION_NAME
        self.registry_path = self.persist_directory / self.REGISTRY_FILENAME
        self.persist_directory.mkdir(parents=True, exist_ok=True)

        logger.info(f"Initializing ChromaDB at {self.persist_directory}")
        try:
            self.client = chromadb.PersistentClient(
                path=str(self.persist_directory),
                settings=ChromaSettings(anonymized_telemetry=False, allow_reset=True),
            )
            self.collection = self.client.get_or_create_collection(
                name=self.collection_name,
                metadata={"hnsw:space": "cosine"},
            )
            logger.info(f"✓ ChromaDB collection '{self.collection_name}' ready")
        except Exception as e:
            logger.error(f"Failed to initialize ChromaDB: {e}")
            raise VectorStoreError(f"Cannot initialize ChromaDB: {e}", operation="init") from e

        self._registry: Dict[str, Document] = {}
        self._load_or_create_registry()

    # ---------- Documents ----------

    async def upsert_document(self, document: Document) -> None:
        self._registry[document.id] = document
        await asyncio.to_thread(self._save_registry)

    async def get_document(self, document_id: str) -> Optional[Document]:
        return self._registry.get(document_id)

    async def update_document_metadata(self, document_id: str, metadata: Dict[str, Any]) -> None:
        document = self._registry.get(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found", doc_id=document_id)
        document.metadata.update(metadata)
        await asyncio.to_thread(self._save_registry)

    # ---------- Chunks ----------

    async def delete_chunks(self, document_id: str) -> int:
        return await asyncio.to_thread(self._delete_chunks_sync, document_id)

    async def insert_chunk(self, chunk: DocumentChunk) -> None:
        if not chunk.is_embedded:
            raise VectorStoreError(f"Chunk {chunk.id} has no embedding", operation="insert")
        await asyncio.to_thread(self._insert_chunk_sync, chunk)

    async def has_embedded_chunks(self, collection_id: str) -> bool:
        return await asyncio.to_thread(self._has_chunks_sync, collection_id)

    async def match_chunks(
        self,
        collection_id: str,
        query_vector: List[float],
        threshold: float,
        limit: int,
    ) -> List[RetrievedChunk]:
        return await asyncio.to_thread(
            self._match_chunks_sync, collection_id, query_vector, threshold, limit
        )

    async def count_chunks(self, document_id: str) -> int:
        return await asyncio.to_thread(self._count_chunks_sync, document_id)

    # ---------- Sync chromadb calls ----------

    def _delete_chunks_sync(self, document_id: str) -> int:
        try:
            existing = self.collection.get(where={"document_id": document_id})
            ids = existing["ids"] if existing else []
            if ids:
                self.collection.delete(ids=ids)
            logger.info(f"Deleted {len(ids)} chunks for document {document_id}")
            return len(ids)
        except Exception as e:
            logger.error(f"Error deleting chunks: {e}")
            raise VectorStoreError(f"Failed to delete chunks: {e}", operation="delete") from e

    def _insert_chunk_sync(self, chunk: DocumentChunk) -> None:
        try:
            self.collection.upsert(
                ids=[chunk.id],
                embeddings=[chunk.embedding],
                documents=[chunk.content],
                metadatas=[
                    {
                        "document_id": chunk.document_id,
                        "collection_id": chunk.collection_id,
                        "position": chunk.position,
                    }
                ],
            )
        except Exception as e:
            logger.error(f"Error inserting chunk {chunk.id}: {e}")
            raise VectorStoreError(f"Failed to insert chunk: {e}", operation="insert") from e

    def _has_chunks_sync(self, collection_id: str) -> bool:
        try:
            found = self.collection.get(where={"collection_id": collection_id}, limit=1)
        except Exception as e:
            raise VectorStoreError(f"Failed to check chunks: {e}", operation="exists") from e
        return bool(found and found["ids"])

    def _match_chunks_sync(
        self,
        collection_id: str,
        query_vector: List[float],
        threshold: float,
        limit: int,
    ) -> List[RetrievedChunk]:
        total = self.collection.count()
        if total == 0:
            return []

        try:
            results = self.collection.query(
                query_embeddings=[query_vector],
                n_results=min(limit, total),
                where={"collection_id": collection_id},
                include=["documents", "metadatas", "distances"],
            )
        except Exception as e:
            logger.error(f"Error searching: {e}")
            raise VectorStoreError(f"Search failed: {e}", operation="query") from e

        matches = []
        if results and results["ids"] and results["ids"][0]:
            for text, metadata, distance in zip(
                results["documents"][0], results["metadatas"][0], results["distances"][0]
            ):
                # cosine space: distance = 1 - cosine similarity
                similarity = min(1.0, max(0.0, 1.0 - float(distance)))
                if similarity < threshold:
                    continue
                matches.append(
                    RetrievedChunk(
                        content=text,
                        similarity=similarity,
                        document_id=metadata.get("document_id"),
                    )
                )
        matches.sort(key=lambda m: m.similarity, reverse=True)
        return matches

    def _count_chunks_sync(self, document_id: str) -> int:
        found = self.collection.get(where={"document_id": document_id})
        return len(found["ids"]) if found else 0

    # ---------- Registry ----------

    def _load_or_create_registry(self) -> None:
        """Load the document registry from disk or start an empty one."""
        if self.registry_path.exists():
            try:
                with open(self.registry_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                self._registry = {
                    doc_id: Document(
                        id=doc_id,
                        collection_id=doc["collection_id"],
                        content=doc.get("content", ""),
                        title=doc.get("title", ""),
                        metadata=doc.get("metadata", {}),
                        created_at=datetime.fromisoformat(doc["created_at"]),
                    )
                    for doc_id, doc in data.items()
                }
                logger.info(f"Loaded {len(self._registry)} documents from registry")
            except (OSError, ValueError, KeyError) as e:
                logger.warning(f"Failed to load registry: {e}. Creating new one.")
                self._registry = {}
        else:
            self._registry = {}
            logger.info("Created new documents registry")

    def _save_registry(self) -> None:
        try:
            data = {
                doc_id: {**doc.to_dict(), "content": doc.content}
                for doc_id, doc in self._registry.items()
            }
            with open(self.registry_path, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2, default=str)
        except OSError as e:
            logger.error(f"Failed to save registry: {e}")
            raise VectorStoreError(f"Cannot save registry: {e}", operation="registry") from e
