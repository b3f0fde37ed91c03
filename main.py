"""Main entry point for the EduRAG Telegram bot.

Initializes logging, bot, dispatcher, registers handlers and starts polling.
"""

import asyncio
import logging
import sys
from pathlib import Path

from app.bot import create_bot, create_dispatcher, setup_bot_commands
from app.config import get_settings
from app.handlers import chat, common, documents
from app.services.engine import close_engine, get_engine
from edurag.utils.logger import configure_logging

logger = logging.getLogger(__name__)


async def main() -> None:
    """Main function to start the bot."""
    settings = get_settings()
    settings.validate_llm_config()
    if not settings.TG_BOT_TOKEN:
        raise ValueError("TG_BOT_TOKEN must be configured")

    logger.info("Starting EduRAG bot...")
    get_engine()

    bot = create_bot(settings.TG_BOT_TOKEN)
    dp = create_dispatcher()

    # commands and documents go before the catch-all chat text handler
    dp.include_router(common.router)
    dp.include_router(documents.router)
    dp.include_router(chat.router)

    await setup_bot_commands(bot)

    temp_dir = Path(settings.TEMP_DIR)
    temp_dir.mkdir(parents=True, exist_ok=True)
    logger.info(f"Temp directory: {temp_dir.absolute()}")

    logger.info("Bot started. Press Ctrl+C to stop.")
    try:
        await dp.start_polling(
            bot,
            allowed_updates=dp.resolve_used_update_types(),
            drop_pending_updates=True,
        )
    finally:
        await close_engine()
        await bot.session.close()
        logger.info("Bot stopped")


if __name__ == "__main__":
    settings = get_settings()
    configure_logging(
        level=settings.LOG_LEVEL,
        log_dir=Path(settings.LOG_DIR) if settings.LOG_DIR else None,
        names=("edurag", "app", "__main__"),
    )
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")
    except Exception as e:
        logger.critical(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)
