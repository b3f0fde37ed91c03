"""Splitting long answers into Telegram-sized messages."""

import logging

logger = logging.getLogger(__name__)

TG_MAX_MESSAGE_LENGTH = 4096
IDEAL_CHUNK_SIZE = 3900  # Slightly less to be safe


def _split_words(text: str, max_length: int) -> list[str]:
    parts: list[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if len(candidate) <= max_length:
            current = candidate
            continue
        if current:
            parts.append(current)
        # a single word longer than the limit is cut hard
        while len(word) > max_length:
            parts.append(word[:max_length])
            word = word[max_length:]
        current = word
    if current:
        parts.append(current)
    return parts


def split_message(text: str, max_length: int = IDEAL_CHUNK_SIZE) -> list[str]:
    """Split text on paragraph boundaries, falling back to words.

    Example:
        >>> parts = split_message(long_answer)
        >>> len(parts[0]) <= IDEAL_CHUNK_SIZE
        True
    """
    if len(text) <= max_length:
        return [text]

    parts: list[str] = []
    current = ""
    for paragraph in (p.strip() for p in text.split("\n\n")):
        if not paragraph:
            continue
        candidate = f"{current}\n\n{paragraph}" if current else paragraph
        if len(candidate) <= max_length:
            current = candidate
            continue
        if current:
            parts.append(current)
        if len(paragraph) > max_length:
            words = _split_words(paragraph, max_length)
            parts.extend(words[:-1])
            current = words[-1]
        else:
            current = paragraph
    if current:
        parts.append(current)

    logger.debug(f"Split {len(text)} chars into {len(parts)} messages")
    return parts
