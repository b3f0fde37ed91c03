"""Normalization of extracted document text before chunking."""

import logging
import re

logger = logging.getLogger(__name__)

_REPLACEMENT_CHARS = re.compile("[�￾￿]")
_SPACES = re.compile(r"[^\S\n]+")
_SPACE_AROUND_NEWLINE = re.compile(r" *\n *")
_MANY_NEWLINES = re.compile(r"\n{3,}")


class TextCleaner:
    """Clean and normalize extracted text.

    Handles:
    - Removal of control and replacement characters
    - Unified line endings
    - Collapsed runs of spaces and blank lines
    """

    @staticmethod
    def _remove_control_chars(text: str) -> str:
        return "".join(
            char
            for char in text
            if not (ord(char) < 32 and char not in "\t\n\r") and not (127 <= ord(char) < 160)
        )

    @classmethod
    def clean(cls, text: str) -> str:
        """Return cleaned text ("" for empty input)."""
        if not text:
            return ""

        original_len = len(text)
        text = text.replace("\r\n", "\n").replace("\r", "\n")
        text = cls._remove_control_chars(text)
        text = _REPLACEMENT_CHARS.sub("", text)
        text = _SPACES.sub(" ", text)
        text = _SPACE_AROUND_NEWLINE.sub("\n", text)
        text = _MANY_NEWLINES.sub("\n\n", text)
        text = text.strip()

        logger.debug(f"Text cleaned: {original_len} → {len(text)} chars")
        return text

    @staticmethod
    def is_text_usable(text: str, min_length: int = 1) -> bool:
        """Check that text has at least min_length chars and some letters."""
        if not text or len(text.strip()) < min_length:
            return False
        return any(char.isalpha() for char in text)
