"""Shared EduChatEngine instance for the bot handlers."""

import logging
from pathlib import Path
from typing import Optional

from app.config import EnvSettingsStore, get_settings
from edurag.services import EduChatEngine
from edurag.services.chroma_store import ChromaDocumentStore

logger = logging.getLogger(__name__)

_engine: Optional[EduChatEngine] = None


def get_engine() -> EduChatEngine:
    """Get or initialize the engine (ChromaDB-backed knowledge base)."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = EduChatEngine(
            EnvSettingsStore(),
            store=ChromaDocumentStore(Path(settings.VECTOR_DB_PATH)),
        )
        logger.info(f"Engine initialized with knowledge base at {settings.VECTOR_DB_PATH}")
    return _engine


async def close_engine() -> None:
    global _engine
    if _engine is not None:
        await _engine.aclose()
        _engine = None
