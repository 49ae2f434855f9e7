"""Main application entry point."""
import logging
from typing import Optional
from warnings import filterwarnings

from telegram.warnings import PTBUserWarning

# Suppress the warning about CallbackQueryHandler and per_message
filterwarnings(action="ignore", message=r".*CallbackQueryHandler", category=PTBUserWarning)

from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ConversationHandler,
    MessageHandler,
    filters,
)

from lexcelerate.config import settings
from lexcelerate.models.base import init_db
from lexcelerate.monitoring import start_monitoring
from lexcelerate.services.storage_service import SqlKeyValueStore
from lexcelerate.services.pronunciation_service import PronunciationService
from lexcelerate.bot import (
    SessionRegistry,
    handle_add_word,
    handle_callback,
    handle_login,
    handle_logout,
    handle_start,
    handle_submission,
    MAIN_MENU,
    ADDING_WORDS,
    PRACTICING,
)


def build_conversation_handler() -> ConversationHandler:
    """Wire the bot's handlers into one conversation."""
    text = filters.TEXT & ~filters.COMMAND
    return ConversationHandler(
        entry_points=[
            CommandHandler("start", handle_start),
            CommandHandler("login", handle_login),
        ],
        states={
            MAIN_MENU: [
                CallbackQueryHandler(handle_callback),
            ],
            ADDING_WORDS: [
                MessageHandler(text, handle_add_word),
                CallbackQueryHandler(handle_callback),
            ],
            PRACTICING: [
                MessageHandler(text, handle_submission),
                CallbackQueryHandler(handle_callback),
            ],
        },
        fallbacks=[
            CommandHandler("start", handle_start),
            CommandHandler("login", handle_login),
            CommandHandler("logout", handle_logout),
        ],
        per_message=False,
    )


class LexBot:
    """Main application class."""

    def __init__(self):
        """Initialize the application."""
        self.application: Optional[Application] = None
        self.running = False
        self.logger = logging.getLogger(__name__)

    async def start(self) -> None:
        """Start the application."""
        if self.running:
            return

        try:
            settings.validate()

            # Initialize database
            init_db()
            self.logger.info("Database initialized")

            if settings.monitoring.metrics_port:
                start_monitoring(settings.monitoring.metrics_port)
                self.logger.info(f"Metrics exported on port {settings.monitoring.metrics_port}")

            # Create application
            self.application = Application.builder().token(settings.bot.token).build()
            self.application.bot_data["store"] = SqlKeyValueStore()
            self.application.bot_data["sessions"] = SessionRegistry()
            self.application.bot_data["pronunciation"] = PronunciationService()
            self.logger.info("Application created")

            self.application.add_handler(build_conversation_handler())
            self.logger.info("Handlers added")

            # Start application
            await self.application.initialize()
            await self.application.start()
            await self.application.updater.start_polling()
            self.logger.info("Application started")

            self.running = True

        except Exception as e:
            self.logger.error("Failed to start application: %s", str(e))
            await self.stop()
            raise

    async def stop(self) -> None:
        """Stop the application."""
        if not self.application:
            return

        try:
            if self.running:
                await self.application.updater.stop()
                await self.application.stop()
            await self.application.shutdown()
            self.logger.info("Application stopped")
        finally:
            self.application = None
            self.running = False
