"""Document and vector store.

Хранилище документов и их чанков с embeddings. Ядро работает только
через протокол DocumentStore; сама база остаётся внешним коллаборатором.

Implementations:
- InMemoryDocumentStore (here): dict storage, cosine similarity with numpy
- ChromaDocumentStore (chroma_store.py): chromadb persistent collection
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

import numpy as np

from edurag.exceptions import DocumentNotFoundError
from edurag.models import Document, DocumentChunk, RetrievedChunk

logger = logging.getLogger(__name__)


@runtime_checkable
class DocumentStore(Protocol):
    """Storage contract used by ingestion and retrieval."""

    async def upsert_document(self, document: Document) -> None: ...

    async def get_document(self, document_id: str) -> Optional[Document]: ...

    async def update_document_metadata(self, document_id: str, metadata: Dict[str, Any]) -> None: ...

    async def delete_chunks(self, document_id: str) -> int: ...

    async def insert_chunk(self, chunk: DocumentChunk) -> None: ...

    async def has_embedded_chunks(self, collection_id: str) -> bool: ...

    async def match_chunks(
        self,
        collection_id: str,
        query_vector: List[float],
        threshold: float,
        limit: int,
    ) -> List[RetrievedChunk]: ...

    async def count_chunks(self, document_id: str) -> int: ...


def cosine_similarity(query: np.ndarray, matrix: np.ndarray) -> np.ndarray:
    """Cosine similarity of one vector against each row, clamped to [0, 1]."""
    norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
    dots = matrix @ query
    scores = np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)
    return np.clip(scores, 0.0, 1.0)


class InMemoryDocumentStore:
    """Process-local store. Used by tests and single-process deployments."""

    def __init__(self) -> None:
        self._documents: Dict[str, Document] = {}
        self._chunks: Dict[str, DocumentChunk] = {}

    async def upsert_document(self, document: Document) -> None:
        self._documents[document.id] = document

    async def get_document(self, document_id: str) -> Optional[Document]:
        return self._documents.get(document_id)

    async def update_document_metadata(self, document_id: str, metadata: Dict[str, Any]) -> None:
        document = self._documents.get(document_id)
        if document is None:
            raise DocumentNotFoundError(f"Document {document_id} not found", doc_id=document_id)
        document.metadata.update(metadata)

    async def delete_chunks(self, document_id: str) -> int:
        ids = [cid for cid, chunk in self._chunks.items() if chunk.document_id == document_id]
        for chunk_id in ids:
            del self._chunks[chunk_id]
        logger.debug(f"Deleted {len(ids)} chunks for document {document_id}")
        return len(ids)

    async def insert_chunk(self, chunk: DocumentChunk) -> None:
        self._chunks[chunk.id] = chunk

    async def has_embedded_chunks(self, collection_id: str) -> bool:
        return any(
            chunk.collection_id == collection_id and chunk.is_embedded
            for chunk in self._chunks.values()
        )

    async def match_chunks(
        self,
        collection_id: str,
        query_vector: List[float],
        threshold: float,
        limit: int,
    ) -> List[RetrievedChunk]:
        candidates = [
            chunk
            for chunk in self._chunks.values()
            if chunk.collection_id == collection_id
            and chunk.is_embedded
            and len(chunk.embedding) == len(query_vector)
        ]
        if not candidates:
            return []

        matrix = np.array([chunk.embedding for chunk in candidates], dtype=np.float64)
        scores = cosine_similarity(np.array(query_vector, dtype=np.float64), matrix)

        order = np.argsort(-scores, kind="stable")
        results = []
        for idx in order:
            score = float(scores[idx])
            if score < threshold:
                break
            chunk = candidates[idx]
            results.append(
                RetrievedChunk(content=chunk.content, similarity=score, document_id=chunk.document_id)
            )
            if len(results) >= limit:
                break
        return results

    async def count_chunks(self, document_id: str) -> int:
        return sum(1 for chunk in self._chunks.values() if chunk.document_id == document_id)
