"""Chunking service.

Splits a document's text into sentence-aligned chunks bounded by a maximum
character length, ready for the embedding pipeline.

Algorithm:
1. Split the text into sentences (runs ending in ., ! or ?, terminator kept,
   plus a trailing unterminated run).
2. Drop sentences that are empty after trimming.
3. Greedily join sentences with single spaces while the chunk fits.

A sentence longer than the limit is never split; it becomes its own chunk.
"""

from __future__ import annotations

import logging
import re
from typing import Iterator, List, Optional

from edurag.config import get_config
from edurag.exceptions import ChunkingError

logger = logging.getLogger(__name__)

_SENTENCE_RE = re.compile(r"[^.!?]+[.!?]+|[^.!?]+$|[.!?]+")


def split_sentences(text: str) -> List[str]:
    """Split text into trimmed sentences, terminators kept."""
    sentences = []
    for match in _SENTENCE_RE.finditer(text or ""):
        sentence = match.group(0).strip()
        if sentence:
            sentences.append(sentence)
    return sentences


class ChunkStream:
    """Lazy, finite sequence of chunks. Can be iterated more than once."""

    def __init__(self, text: str, max_length: int) -> None:
        self.text = text
        self.max_length = max_length

    def __iter__(self) -> Iterator[str]:
        buffer = ""
        for sentence in split_sentences(self.text):
            if not buffer:
                buffer = sentence
            elif len(buffer) + 1 + len(sentence) <= self.max_length:
                buffer = f"{buffer} {sentence}"
            else:
                yield buffer
                buffer = sentence

            if len(buffer) > self.max_length:
                logger.debug(
                    f"Sentence of {len(buffer)} chars exceeds max_length "
                    f"{self.max_length}, emitted as a single chunk"
                )
                yield buffer
                buffer = ""

        if buffer:
            yield buffer

    def to_list(self) -> List[str]:
        return list(self)


class Chunker:
    """Sentence-aligned text chunker.

    Attributes:
        max_length: Default maximum characters per chunk (from config)
    """

    def __init__(self, max_length: Optional[int] = None) -> None:
        self.max_length = max_length if max_length is not None else get_config().chunk_max_length
        if self.max_length <= 0:
            raise ChunkingError(f"max_length must be > 0, got {self.max_length}")

    def chunk(self, text: str, max_length: Optional[int] = None) -> ChunkStream:
        """Split text into chunks.

        Args:
            text: Source text
            max_length: Override of the default limit

        Returns:
            ChunkStream of non-empty chunk strings

        Raises:
            ChunkingError: If max_length <= 0
        """
        limit = self.max_length if max_length is None else max_length
        if limit <= 0:
            raise ChunkingError(f"max_length must be > 0, got {limit}")
        return ChunkStream(text, limit)


def chunk_text(text: str, max_length: int = 1000) -> List[str]:
    """Convenience wrapper returning the chunks as a list."""
    return Chunker(max_length).chunk(text).to_list()
