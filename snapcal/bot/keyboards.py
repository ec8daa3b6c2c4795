"""Telegram inline keyboard layouts for interactive UI."""

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

CB_DOWNLOAD = "ics_download"
CB_RAW = "ics_raw"
CB_CANCEL = "ics_cancel"


def get_events_keyboard(has_events: bool = True) -> InlineKeyboardMarkup:
    """Actions offered under an event preview."""
    keyboard = []
    if has_events:
        keyboard.append([
            InlineKeyboardButton("📥 Download .ics", callback_data=CB_DOWNLOAD),
        ])
    keyboard.append([
        InlineKeyboardButton("🤖 Let AI write the ICS", callback_data=CB_RAW),
    ])
    keyboard.append([
        InlineKeyboardButton("❌ Cancel", callback_data=CB_CANCEL),
    ])
    return InlineKeyboardMarkup(keyboard)
