"""Общие хендлеры: start, help, cancel.

/start and /reset open a fresh learning session; the chat history and the
session id live in FSM data.
"""

import logging
import uuid

from aiogram import Router
from aiogram.filters import Command
from aiogram.fsm.context import FSMContext
from aiogram.types import Message

from app.config import get_settings
from app.services.engine import get_engine
from app.states.chat import ChatStates

logger = logging.getLogger(__name__)
router = Router()


async def start_session(message: Message, state: FSMContext) -> str:
    """Clear FSM data and open a new learning session for the chat."""
    data = await state.get_data()
    old_session = data.get("session_id")
    if old_session:
        get_engine().clear_session(old_session)

    await state.clear()
    session_id = f"tg_{message.chat.id}_{uuid.uuid4().hex[:8]}"
    get_engine().init_session(get_settings().COLLECTION_ID, session_id)
    await state.set_state(ChatStates.chatting)
    await state.update_data(session_id=session_id, history=[])
    logger.debug(f"User {message.from_user.id}: new session {session_id}")
    return session_id


@router.message(Command("start"))
async def cmd_start(message: Message, state: FSMContext) -> None:
    """Приветствие и новая учебная сессия."""
    await start_session(message, state)

    await message.answer(
        "👋 *Добро пожаловать!*\n\n"
        "Я учебный ассистент курса. Задавайте вопросы по материалам, "
        "а я буду отвечать и отслеживать ваш прогресс.\n\n"
        "📤 Отправьте PDF, DOCX или TXT, чтобы добавить материал в базу знаний.\n"
        "📈 /progress - ваш прогресс\n"
        "🔄 /reset - начать заново",
        parse_mode="Markdown",
    )
    logger.info(f"User {message.from_user.id} started bot")


@router.message(Command("reset"))
async def cmd_reset(message: Message, state: FSMContext) -> None:
    await start_session(message, state)
    await message.answer("🔄 Диалог и прогресс сброшены. Можно начинать заново!")
    logger.info(f"User {message.from_user.id} reset the session")


@router.message(Command("help"))
async def cmd_help(message: Message) -> None:
    await message.answer(
        "❓ *Справка*\n\n"
        "💬 Просто пишите вопросы - ответы строятся по материалам курса.\n"
        "📤 Отправьте документ (PDF, DOCX, TXT, MD) - он попадёт в базу знаний.\n"
        "📈 */progress* - прогресс по учебным целям\n"
        "🔄 */reset* - новый диалог\n"
        "❌ */cancel* - отменить текущее действие",
        parse_mode="Markdown",
    )


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, state: FSMContext) -> None:
    """Вернуться в режим диалога, сохранив историю."""
    current_state = await state.get_state()
    logger.info(f"User {message.from_user.id} /cancel (previous state: {current_state})")
    await state.set_state(ChatStates.chatting)
    await message.answer("❌ Отменено. Возвращаемся к диалогу.")
