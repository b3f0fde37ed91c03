"""Хендлеры загрузки документов в базу знаний курса.

Downloads the file to a per-user temp directory, ingests it through the
engine and reports how many chunks were embedded.
"""

import asyncio
import logging
import uuid
from pathlib import Path

from aiogram import F, Router
from aiogram.exceptions import TelegramNetworkError
from aiogram.filters import StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import Message

from app.config import get_settings
from app.services.engine import get_engine
from app.states.chat import ChatStates
from app.utils.cleanup import CleanupManager
from edurag.exceptions import EduRAGException
from edurag.file_processing import SUPPORTED_FORMATS

logger = logging.getLogger(__name__)
router = Router()


@router.message(ChatStates.ingesting)
async def handle_busy(message: Message) -> None:
    await message.answer("⏳ Документ ещё обрабатывается, подождите немного.")


@router.message(StateFilter(None, ChatStates.chatting), F.document)
async def handle_document(message: Message, state: FSMContext) -> None:
    """Добавить документ в базу знаний."""
    settings = get_settings()
    document = message.document
    user_id = message.from_user.id
    file_name = document.file_name or "document"
    suffix = Path(file_name).suffix.lower()

    if suffix not in SUPPORTED_FORMATS:
        await message.answer(
            f"⚠️ Формат {suffix or file_name} не поддерживается.\n"
            f"Поддерживаются: {', '.join(sorted(SUPPORTED_FORMATS))}"
        )
        return

    if (document.file_size or 0) > settings.MAX_FILE_SIZE:
        await message.answer(
            f"⚠️ Файл слишком большой: {document.file_size / (1024 * 1024):.1f} MB\n"
            f"Максимум: {settings.MAX_FILE_SIZE / (1024 * 1024):.1f} MB"
        )
        return

    previous_state = await state.get_state()
    await state.set_state(ChatStates.ingesting)
    status_msg = await message.answer("🔍 Загружаю документ в базу знаний...")
    temp_dir = CleanupManager.create_temp_directory(Path(settings.TEMP_DIR), user_id)

    try:
        temp_path = temp_dir / f"{uuid.uuid4()}{suffix}"
        file = await asyncio.wait_for(message.bot.get_file(document.file_id), timeout=10.0)
        await asyncio.wait_for(message.bot.download_file(file.file_path, temp_path), timeout=30.0)
        logger.info(f"Downloaded {file_name} ({document.file_size} bytes) for user {user_id}")

        chunk_count = await get_engine().ingest_file(
            temp_path,
            document_id=document.file_unique_id,
            collection_id=settings.COLLECTION_ID,
            title=file_name,
        )
        await status_msg.edit_text(
            f"✅ {file_name} добавлен в базу знаний ({chunk_count} фрагментов)."
        )
    except (asyncio.TimeoutError, TelegramNetworkError) as e:
        logger.error(f"Download of {file_name} failed: {type(e).__name__}: {e}")
        await status_msg.edit_text("⚠️ Не удалось скачать файл. Попробуйте снова.")
    except EduRAGException as e:
        logger.error(f"Ingestion of {file_name} failed: {e!r}")
        await status_msg.edit_text(f"⚠️ {e.user_message}")
    finally:
        await state.set_state(previous_state or ChatStates.chatting)
        await CleanupManager.cleanup_directory_async(temp_dir)
