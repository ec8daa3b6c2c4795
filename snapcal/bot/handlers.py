"""Telegram bot command handlers."""

import logging

from telegram import Update
from telegram.ext import Application, CommandHandler, MessageHandler, ContextTypes, filters, CallbackQueryHandler

from .keyboards import CB_CANCEL, CB_DOWNLOAD, CB_RAW, get_events_keyboard
from ..ai.course_recommender import StudentProfile, format_recommendations, recommend_courses
from ..ai.image_parser import generate_ics_from_image, is_supported_image, parse_calendar_image
from ..export import export_calendar_text, export_events, format_event_preview
from ..ics.sink import MemorySink
from ..utils.error_handlers import ERROR_MESSAGES, UnsupportedFileError, handler_error_wrapper

logger = logging.getLogger(__name__)

# Per-chat keys in context.user_data
EVENTS_KEY = "events"
IMAGE_KEY = "image"
BUSY_KEY = "busy"

HELP_TEXT = """
📸 *SnapCal*

Send me a photo of a calendar page, schedule or whiteboard and I'll turn it into a calendar file you can import.

1. Send a photo (or an image file)
2. Check the events I found
3. Tap *Download .ics* and open the file in your calendar app

Other commands:
/courses - course recommendations from your profile, e.g.
```
/courses major: Computer Science
year: 2
interests: AI, databases
```
/help - show this message
"""


async def start_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /start command - welcome message."""
    user = update.effective_user
    name = user.first_name if user else "there"
    await update.message.reply_text(
        f"Hi {name}! 👋\n\n"
        "Send me a photo of a calendar and I'll convert it to an .ics file.\n"
        "Use /help to see everything I can do."
    )


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /help command - show available commands."""
    await update.message.reply_text(HELP_TEXT.strip(), parse_mode="Markdown")


async def _process_image(update: Update, context: ContextTypes.DEFAULT_TYPE,
                         image_bytes: bytes, mime_type: str) -> None:
    """Send an image to the model and show the events found."""
    if context.user_data.get(BUSY_KEY):
        await update.message.reply_text(ERROR_MESSAGES["busy"])
        return

    context.user_data[BUSY_KEY] = True
    try:
        await update.message.reply_text("Analyzing image... Please wait.")
        events = await parse_calendar_image(image_bytes, mime_type)
    finally:
        context.user_data[BUSY_KEY] = False

    context.user_data[EVENTS_KEY] = events
    context.user_data[IMAGE_KEY] = (image_bytes, mime_type)
    logger.info(f"Chat {update.effective_chat.id}: {len(events)} events extracted")

    await update.message.reply_text(
        format_event_preview(events),
        reply_markup=get_events_keyboard(has_events=bool(events))
    )


@handler_error_wrapper
async def handle_photo_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle incoming photo messages."""
    # Get the largest photo
    photo = update.message.photo[-1]
    file = await photo.get_file()
    image_bytes = await file.download_as_bytearray()

    await _process_image(update, context, bytes(image_bytes), "image/jpeg")


@handler_error_wrapper
async def handle_document_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle images sent as files (uncompressed)."""
    document = update.message.document
    if not is_supported_image(document.mime_type):
        raise UnsupportedFileError(document.mime_type)

    file = await document.get_file()
    image_bytes = await file.download_as_bytearray()

    await _process_image(update, context, bytes(image_bytes), document.mime_type)


async def _send_download(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    events = context.user_data.get(EVENTS_KEY)
    if not events:
        await query.message.reply_text("Nothing to download. Send me a calendar photo first.")
        return

    sink = MemorySink()
    result, sink_result = export_events(events, sink)
    if not sink_result.ok:
        await query.message.reply_text(ERROR_MESSAGES["general"])
        return

    caption = f"✅ {result.event_count} event{'s' if result.event_count != 1 else ''} ready to import"
    if result.skipped:
        caption += f"\n⚠️ Skipped {len(result.skipped)} with unreadable times"
    await query.message.reply_document(sink.as_upload(), caption=caption)


async def _send_raw_calendar(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    query = update.callback_query
    image = context.user_data.get(IMAGE_KEY)
    if not image:
        await query.message.reply_text("Send me a calendar photo first.")
        return
    if context.user_data.get(BUSY_KEY):
        await query.message.reply_text(ERROR_MESSAGES["busy"])
        return

    context.user_data[BUSY_KEY] = True
    try:
        await query.message.reply_text("Generating ICS... Please wait.")
        calendar = await generate_ics_from_image(*image)
    finally:
        context.user_data[BUSY_KEY] = False

    sink = MemorySink()
    sink_result = export_calendar_text(calendar, sink)
    if not sink_result.ok:
        await query.message.reply_text(ERROR_MESSAGES["general"])
        return
    await query.message.reply_document(sink.as_upload(), caption="ICS generated successfully!")


@handler_error_wrapper
async def callback_query_handler(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle inline keyboard button callbacks."""
    query = update.callback_query
    await query.answer()

    data = query.data
    if data == CB_DOWNLOAD:
        await _send_download(update, context)
    elif data == CB_RAW:
        await _send_raw_calendar(update, context)
    elif data == CB_CANCEL:
        context.user_data.pop(EVENTS_KEY, None)
        context.user_data.pop(IMAGE_KEY, None)
        await query.edit_message_text("Cancelled. Send another photo whenever you're ready.")
    else:
        logger.warning(f"Unknown callback data: {data}")


@handler_error_wrapper
async def courses_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Handle /courses command - recommend courses from a profile."""
    parts = (update.message.text or "").split(maxsplit=1)
    profile = StudentProfile.from_text(parts[1] if len(parts) > 1 else "")

    if profile.is_empty():
        await update.message.reply_text(
            "Tell me about yourself after the command, e.g.\n\n"
            "/courses major: Computer Science\nyear: 2\ninterests: AI, databases"
        )
        return

    if context.user_data.get(BUSY_KEY):
        await update.message.reply_text(ERROR_MESSAGES["busy"])
        return

    context.user_data[BUSY_KEY] = True
    try:
        await update.message.reply_text("Finding courses for you... Please wait.")
        recommendations = await recommend_courses(profile)
    finally:
        context.user_data[BUSY_KEY] = False

    await update.message.reply_text(format_recommendations(recommendations))


async def handle_text_message(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Plain text is not processed - point the user at photos."""
    await update.message.reply_text(
        "Send me a photo of a calendar, schedule or whiteboard to get an .ics file.\n"
        "Use /help for all commands."
    )


def register_handlers(application: Application) -> None:
    """Register all command handlers with the application."""
    # Command handlers
    application.add_handler(CommandHandler("start", start_command))
    application.add_handler(CommandHandler("help", help_command))
    application.add_handler(CommandHandler("courses", courses_command))

    # Callback query handler for inline keyboards
    application.add_handler(CallbackQueryHandler(callback_query_handler))

    # Message handlers (lower priority than commands)
    application.add_handler(MessageHandler(filters.PHOTO, handle_photo_message))
    application.add_handler(MessageHandler(filters.Document.ALL, handle_document_message))
    application.add_handler(MessageHandler(
        filters.TEXT & ~filters.COMMAND,
        handle_text_message
    ))
