"""Error handling utilities for SnapCal."""

import logging
from functools import wraps
from typing import Callable

from telegram import Update
from telegram.ext import ContextTypes
from telegram.error import TelegramError, NetworkError, TimedOut

logger = logging.getLogger(__name__)


# Default error messages
ERROR_MESSAGES = {
    "general": "Sorry, something went wrong. Please try again.",
    "network": "Network error. Please check your connection and try again.",
    "timeout": "Request timed out. Please try again.",
    "api": "Failed to reach the AI service. Please try again later.",
    "image_parse": "Failed to process the image. Please ensure it contains a visible calendar and try again.",
    "unsupported_file": "Please send an image file.",
    "encode": "Couldn't build the calendar file from these events.",
    "busy": "Still working on your last image. Please wait.",
}


class SnapCalError(Exception):
    """Base exception for errors shown to the user."""

    def __init__(self, message: str, user_message: str = None):
        super().__init__(message)
        self.user_message = user_message or ERROR_MESSAGES["general"]


class ImageParseError(SnapCalError):
    """The model reply could not be turned into events or a calendar."""

    def __init__(self, message: str = "Failed to parse image"):
        super().__init__(message, ERROR_MESSAGES["image_parse"])


class APIError(SnapCalError):
    """External API error."""

    def __init__(self, message: str = "API request failed"):
        super().__init__(message, ERROR_MESSAGES["api"])


class UnsupportedFileError(SnapCalError):
    """The uploaded file is not an image."""

    def __init__(self, mime_type: str = None):
        super().__init__(f"Unsupported file type: {mime_type}", ERROR_MESSAGES["unsupported_file"])


class EncodeError(SnapCalError):
    """ICS generation failed for the whole document."""

    def __init__(self, cause: Exception):
        super().__init__(str(cause), f"{ERROR_MESSAGES['encode']}\n{cause}")
        self.cause = cause


def handler_error_wrapper(func: Callable) -> Callable:
    """
    Decorator to wrap handler functions with error handling.

    Usage:
        @handler_error_wrapper
        async def my_handler(update: Update, context: ContextTypes.DEFAULT_TYPE):
            ...
    """
    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE, *args, **kwargs):
        message = update.effective_message if update else None
        try:
            return await func(update, context, *args, **kwargs)
        except SnapCalError as e:
            logger.error(f"SnapCal error in {func.__name__}: {e}")
            if message:
                await message.reply_text(e.user_message)
        except TimedOut as e:
            logger.error(f"Timeout in {func.__name__}: {e}")
            if message:
                await message.reply_text(ERROR_MESSAGES["timeout"])
        except NetworkError as e:
            logger.error(f"Network error in {func.__name__}: {e}")
            if message:
                await message.reply_text(ERROR_MESSAGES["network"])
        except TelegramError as e:
            logger.error(f"Telegram error in {func.__name__}: {e}")
            if message:
                await message.reply_text(ERROR_MESSAGES["general"])

    return wrapper


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE) -> None:
    """
    Global error handler for the application.

    Register with: application.add_error_handler(error_handler)
    """
    logger.error(f"Exception while handling an update: {context.error}")

    if update and isinstance(update, Update) and update.effective_message:
        try:
            await update.effective_message.reply_text(ERROR_MESSAGES["general"])
        except TelegramError as e:
            logger.error(f"Failed to send error message: {e}")
