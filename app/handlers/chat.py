"""Chat mode handlers.

Every text message is one chat turn through the engine: grounded in the
course knowledge base, reviewed by the output validator and followed by a
learning-progress evaluation. Turns are serialized per chat with a lock.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Dict

from aiogram import F, Router
from aiogram.filters import Command, StateFilter
from aiogram.fsm.context import FSMContext
from aiogram.types import Message

from app.config import get_settings
from app.handlers.common import start_session
from app.services.engine import get_engine
from app.states.chat import ChatStates
from app.utils.text_splitter import split_message
from edurag.exceptions import EduRAGException
from edurag.models import ChatMessage, LearningProgress, ObjectiveStatus

logger = logging.getLogger(__name__)
router = Router()

MAX_HISTORY_MESSAGES = 20

# chat_id -> lock held for the whole turn
_chat_locks: Dict[int, asyncio.Lock] = defaultdict(asyncio.Lock)

STATUS_ICONS = {
    ObjectiveStatus.NOT_STARTED: "⚪",
    ObjectiveStatus.IN_PROGRESS: "🟡",
    ObjectiveStatus.COMPLETED: "🟢",
}


def format_progress(progress: LearningProgress) -> str:
    lines = ["📈 *Прогресс обучения*\n"]
    for objective in progress.objectives:
        filled = int(round(objective.confidence))
        bar = "█" * filled + "░" * (5 - filled)
        lines.append(
            f"{STATUS_ICONS[objective.status]} {objective.title}\n"
            f"`{bar}` {objective.confidence:.1f}/5"
        )
    return "\n".join(lines)


@router.message(Command("progress"))
async def cmd_progress(message: Message, state: FSMContext) -> None:
    data = await state.get_data()
    session_id = data.get("session_id")
    progress = get_engine().get_progress(session_id) if session_id else None
    if progress is None:
        await message.answer("Сессия ещё не начата. Отправьте /start.")
        return
    await message.answer(format_progress(progress), parse_mode="Markdown")


@router.message(StateFilter(None, ChatStates.chatting), F.text)
async def handle_chat_message(message: Message, state: FSMContext) -> None:
    """Answer one user message.

    Turns of one chat run one after another: the next message waits for the
    previous answer so that it sees the updated history.
    """
    user_text = message.text.strip()
    if not user_text or user_text.startswith("/"):
        return

    async with _chat_locks[message.chat.id]:
        await _answer(message, state, user_text)


async def _answer(message: Message, state: FSMContext, user_text: str) -> None:
    data = await state.get_data()
    session_id = data.get("session_id")
    if not session_id:
        session_id = await start_session(message, state)
        data = await state.get_data()

    settings = get_settings()
    stored = data.get("history", [])
    history = [ChatMessage.system(settings.SYSTEM_PROMPT)] + [
        ChatMessage(role=item["role"], content=item["content"]) for item in stored
    ]

    await message.bot.send_chat_action(message.chat.id, "typing")

    try:
        result = await get_engine().respond(
            history,
            user_text,
            collection_id=settings.COLLECTION_ID,
            session_id=session_id,
            user_id=str(message.from_user.id),
        )
    except EduRAGException as e:
        logger.error(f"Chat error for user {message.from_user.id}: {e!r}")
        await message.answer(f"⚠️ {e.user_message}")
        return

    stored = stored + [
        {"role": "user", "content": user_text},
        {"role": "assistant", "content": result.text},
    ]
    await state.update_data(history=stored[-MAX_HISTORY_MESSAGES:])

    for part in split_message(result.text):
        await message.answer(part)

    logger.info(
        f"Chat response to {message.from_user.id}: {len(result.text)} chars, "
        f"{result.tokens_used} tokens, grounded={result.grounded}, allowed={result.allowed}"
    )
