"""Main entry point for the SnapCal Telegram bot."""

import logging
import sys

from telegram.ext import Application

from .config import config, Config
from .bot.handlers import register_handlers
from .utils.logging_config import setup_logging
from .utils.error_handlers import error_handler

logger = logging.getLogger(__name__)


def main() -> None:
    """Initialize and run the bot."""
    # Configure logging from LOG_LEVEL / LOG_TO_FILE
    setup_logging()

    # Validate configuration
    missing = Config.validate()
    if missing:
        logger.error(f"Missing required configuration: {', '.join(missing)}")
        logger.error("Please check your .env file")
        sys.exit(1)

    logger.info(f"Event times without an offset are read as {config.TIMEZONE}")

    # Create the Application
    logger.info("Starting bot...")
    application = Application.builder().token(config.TELEGRAM_TOKEN).build()

    # Register handlers
    register_handlers(application)

    # Register global error handler
    application.add_error_handler(error_handler)

    # Run the bot until Ctrl+C
    logger.info("Bot is running. Press Ctrl+C to stop.")
    application.run_polling()


if __name__ == "__main__":
    main()
