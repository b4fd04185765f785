"""
Inline keyboards for the Daily Polyglot bot
"""

from telegram import InlineKeyboardButton, InlineKeyboardMarkup

from ...config import SUPPORTED_LANGUAGES, SUPPORTED_LEVELS
from ...models import ProgressSettings, ReviewSession
from ...utils import LANGUAGE_FLAGS, LANGUAGE_TITLES, create_inline_keyboard_data


def reveal_keyboard(remaining: int) -> InlineKeyboardMarkup:
    """Button for the next word, or for review once the day is done"""
    if remaining > 0:
        button = InlineKeyboardButton(
            f"🔓 Открыть слово ({remaining})",
            callback_data=create_inline_keyboard_data("reveal"),
        )
    else:
        button = InlineKeyboardButton(
            "🧠 Повторить слова",
            callback_data=create_inline_keyboard_data("next_review"),
        )
    return InlineKeyboardMarkup([[button]])


def retry_reveal_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        [[InlineKeyboardButton("🔄 Попробовать снова", callback_data=create_inline_keyboard_data("reveal"))]]
    )


def review_options_keyboard(session: ReviewSession) -> InlineKeyboardMarkup:
    """Answer buttons laid out two per row"""
    buttons = [
        InlineKeyboardButton(
            option,
            callback_data=create_inline_keyboard_data(
                "answer", option_index=index, session_id=session.session_id
            ),
        )
        for index, option in enumerate(session.options)
    ]
    return InlineKeyboardMarkup([buttons[i : i + 2] for i in range(0, len(buttons), 2)])


def next_review_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        [[InlineKeyboardButton("➡️ Следующий вопрос", callback_data=create_inline_keyboard_data("next_review"))]]
    )


def settings_keyboard(settings: ProgressSettings) -> InlineKeyboardMarkup:
    """Language and level pickers with the current choice marked"""
    language_row = [
        InlineKeyboardButton(
            f"{'✅ ' if code == settings.target_language else ''}"
            f"{LANGUAGE_FLAGS[code]} {LANGUAGE_TITLES[code]}",
            callback_data=create_inline_keyboard_data("set_language", language=code),
        )
        for code in SUPPORTED_LANGUAGES
    ]
    level_row = [
        InlineKeyboardButton(
            f"{'✅' if level == settings.level else ''}{level}",
            callback_data=create_inline_keyboard_data("set_level", level=level),
        )
        for level in SUPPORTED_LEVELS
    ]
    return InlineKeyboardMarkup([language_row, level_row])


def reset_confirmation_keyboard() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        [[
            InlineKeyboardButton("🗑 Да, удалить", callback_data=create_inline_keyboard_data("reset_confirm")),
            InlineKeyboardButton("Отмена", callback_data=create_inline_keyboard_data("reset_cancel")),
        ]]
    )
