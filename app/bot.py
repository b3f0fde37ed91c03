"""Bot core module.

Creates the Aiogram bot and dispatcher and registers the command menu.
"""

import logging

from aiogram import Bot, Dispatcher
from aiogram.fsm.storage.memory import MemoryStorage
from aiogram.types import BotCommand

logger = logging.getLogger(__name__)

BOT_COMMANDS = [
    BotCommand(command="start", description="👋 Запустить бота"),
    BotCommand(command="progress", description="📈 Мой прогресс"),
    BotCommand(command="reset", description="🔄 Начать диалог заново"),
    BotCommand(command="help", description="❓ Справка"),
]


async def setup_bot_commands(bot: Bot) -> None:
    await bot.set_my_commands(BOT_COMMANDS)
    logger.info("Bot commands configured")


def create_bot(token: str) -> Bot:
    """Create and return bot instance.

    Args:
        token: Telegram bot token

    Returns:
        Bot: Initialized bot instance
    """
    bot = Bot(token=token)
    logger.info("Bot instance created")
    return bot


def create_dispatcher() -> Dispatcher:
    """Create dispatcher with memory storage for FSM state."""
    dispatcher = Dispatcher(storage=MemoryStorage())
    logger.info("Dispatcher created with memory storage")
    return dispatcher
