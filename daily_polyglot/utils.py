"""
Utility functions for the Daily Polyglot bot
"""

import asyncio
import html
import json
import logging
import time
from datetime import date
from functools import wraps
from typing import Any

from .clock import DateKey
from .models import (
    DAILY_WORD_COUNT,
    REVIEW_POINTS,
    ProgressSnapshot,
    ReviewSession,
    WordEntry,
)
from .town import TownStatus

logger = logging.getLogger(__name__)

LANGUAGE_FLAGS = {"de": "🇩🇪", "en": "🇬🇧", "es": "🇪🇸"}
LANGUAGE_TITLES = {"de": "Немецкий", "en": "Английский", "es": "Испанский"}

MONTHS_GENITIVE = (
    "января", "февраля", "марта", "апреля", "мая", "июня",
    "июля", "августа", "сентября", "октября", "ноября", "декабря",
)


def format_word_card(word: WordEntry) -> str:
    """Format a revealed word as an HTML card for Telegram"""
    flag = LANGUAGE_FLAGS.get(word.language or "", "🌍")
    lines = [f"{flag} <b>{html.escape(word.display_word)}</b>"]

    if word.plural:
        lines.append(f"🔢 мн. ч.: {html.escape(word.plural)}")
    if word.pronunciation:
        lines.append(f"🗣 [{html.escape(word.pronunciation)}]")

    lines.append(f"🇷🇺 {html.escape(word.translation)}")

    if word.example:
        lines.append("")
        lines.append(f"📝 <i>{html.escape(word.example)}</i>")
        if word.example_translation:
            lines.append(f"   {html.escape(word.example_translation)}")

    if word.category:
        lines.append(f"🏷️ {html.escape(word.category)}")

    return "\n".join(lines)


def format_daily_progress(revealed: int, streak: int, level: str) -> str:
    """Format today's reveal counter with streak and level"""
    return (
        f"🔥 Ударный режим: <b>{streak} дн.</b>\n"
        f"📈 Уровень: <b>{level}</b>\n"
        f"📅 Сегодня: <b>{revealed}/{DAILY_WORD_COUNT}</b>"
    )


def format_review_question(session: ReviewSession) -> str:
    """Format a review question prompt"""
    return (
        "🧠 <b>Повторение</b>\n\n"
        f"Как переводится <b>{html.escape(session.target.display_word)}</b>?"
    )


def format_review_result(session: ReviewSession) -> str:
    """Format the answer feedback for a finished review question"""
    correct = html.escape(session.options[session.correct_index])
    word = html.escape(session.target.display_word)

    if session.is_correct:
        return f"✅ Верно! <b>{word}</b> — {correct}\n\n+{REVIEW_POINTS} очков"
    return f"❌ Неверно. <b>{word}</b> — {correct}"


def format_history_date(date_key: DateKey | None, today: DateKey) -> str:
    """Format a history group heading"""
    if date_key is None:
        return "Ранее"
    if date_key == today:
        return "Сегодня"

    try:
        parsed = date.fromisoformat(date_key)
    except ValueError:
        return date_key
    return f"{parsed.day} {MONTHS_GENITIVE[parsed.month - 1]} {parsed.year}"


def format_history(
    groups: list[tuple[DateKey | None, list[WordEntry]]],
    streak: int,
    today: DateKey,
    max_groups: int = 7,
) -> str:
    """Format learned words grouped by date, newest first"""
    total = sum(len(words) for _, words in groups)
    if total == 0:
        return "📖 Ваш словарь пока пуст.\n\nОткройте свое первое слово сегодня: /reveal"

    lines = [
        f"📚 Слов выучено: <b>{total}</b>",
        f"🔥 Дней ударно: <b>{streak}</b>",
    ]

    for date_key, words in groups[:max_groups]:
        lines.append("")
        lines.append(f"<b>{format_history_date(date_key, today)}</b>")
        for word in words:
            lines.append(
                f"• {html.escape(word.display_word)} — {html.escape(word.translation)}"
            )

    hidden = len(groups) - max_groups
    if hidden > 0:
        lines.append("")
        lines.append(f"… и еще {hidden} дн. в архиве (/export)")

    return "\n".join(lines)


def format_town(status: TownStatus) -> str:
    """Format the town view"""
    lines = [
        "🏘 <b>Deutsch Dorf</b>",
        f"Очки: <b>{status.score}</b> · Уровень: <b>{status.level}</b>",
        "",
    ]

    if status.unlocked:
        lines.append(" ".join(milestone.icon for milestone in status.unlocked))
    else:
        lines.append("🏗️ Здесь будет ваш город. Учите слова, чтобы начать строительство!")

    if status.next_milestone:
        filled = int(status.progress_percent // 10)
        bar = "▓" * filled + "░" * (10 - filled)
        lines.append("")
        lines.append(
            f"До: {status.next_milestone.label} {status.next_milestone.icon}\n"
            f"{bar} {status.score}/{status.next_milestone.threshold}"
        )
    else:
        lines.append("")
        lines.append("🎉 Город полностью построен!")

    return "\n".join(lines)


def format_progress_stats(snapshot: ProgressSnapshot, remaining_today: int) -> str:
    """Format user progress statistics"""
    reviews = sum(entry.review_count or 0 for entry in snapshot.history)
    language = snapshot.settings.target_language

    result = "📊 Ваша статистика:\n\n"
    result += f"📚 Всего слов: {len(snapshot.history)}\n"
    result += f"🔄 Успешных повторений: {reviews}\n"
    result += f"🔥 Ударный режим: {snapshot.streak} дн.\n"
    result += f"⭐ Очки: {snapshot.score}\n"
    result += f"🆕 Осталось сегодня: {remaining_today}\n"
    result += (
        f"{LANGUAGE_FLAGS.get(language, '🌍')} "
        f"{LANGUAGE_TITLES.get(language, language)}, {snapshot.settings.level}\n"
    )

    return result


def extract_json_safely(json_str: str) -> dict[str, Any]:
    """Safely extract JSON from string"""
    if not json_str:
        return {}

    try:
        data = json.loads(json_str)
    except (json.JSONDecodeError, TypeError):
        logger.warning(f"Failed to parse JSON: {json_str}")
        return {}
    return data if isinstance(data, dict) else {}


def format_json_safely(data: Any) -> str:
    """Safely format data as JSON string"""
    try:
        return json.dumps(data, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError):
        logger.warning(f"Failed to serialize to JSON: {data}")
        return "{}"


_KEY_MAPPINGS = {
    "option_index": "o",
    "language": "l",
    "level": "v",
    "session_id": "s",
}


def create_inline_keyboard_data(action: str, **kwargs) -> str:
    """Create callback data for inline keyboard with compact format"""
    # Telegram limits callback data to 64 bytes
    compact_data = {"a": action}
    for key, value in kwargs.items():
        compact_data[_KEY_MAPPINGS.get(key, key)] = value
    return format_json_safely(compact_data)


def parse_inline_keyboard_data(callback_data: str) -> dict[str, Any]:
    """Parse callback data from inline keyboard with compact format support"""
    raw_data = extract_json_safely(callback_data)
    reverse_mappings = {"a": "action", **{v: k for k, v in _KEY_MAPPINGS.items()}}
    return {reverse_mappings.get(key, key): value for key, value in raw_data.items()}


def retry_on_exception(
    max_retries: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: tuple[type[Exception], ...] = (Exception,),
):
    """Decorator for retrying coroutine functions on exception"""

    def decorator(func):
        @wraps(func)
        async def async_wrapper(*args, **kwargs):
            last_exception = None

            for attempt in range(max_retries):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    last_exception = e
                    if attempt < max_retries - 1:
                        wait_time = delay * (backoff**attempt)
                        logger.warning(
                            f"Attempt {attempt + 1} failed: {e}. Retrying in {wait_time}s..."
                        )
                        await asyncio.sleep(wait_time)
                    else:
                        logger.error(
                            f"All {max_retries} attempts failed for {func.__name__}"
                        )

            raise last_exception

        return async_wrapper

    return decorator


class Timer:
    """Simple timer for measuring duration"""

    def __init__(self):
        self.start_time = None
        self.end_time = None

    def start(self):
        """Start the timer"""
        self.start_time = time.time()
        self.end_time = None

    def stop(self):
        """Stop the timer"""
        if self.start_time is not None:
            self.end_time = time.time()

    def elapsed(self) -> float | None:
        """Get elapsed time in seconds"""
        if self.start_time is None:
            return None

        end = self.end_time or time.time()
        return end - self.start_time


def log_execution_time(func):
    """Decorator to log coroutine execution time"""

    @wraps(func)
    async def async_wrapper(*args, **kwargs):
        timer = Timer()
        timer.start()
        try:
            result = await func(*args, **kwargs)
            timer.stop()
            logger.debug(f"{func.__name__} executed in {timer.elapsed():.3f}s")
            return result
        except Exception as e:
            timer.stop()
            logger.error(f"{func.__name__} failed after {timer.elapsed():.3f}s: {e}")
            raise

    return async_wrapper
