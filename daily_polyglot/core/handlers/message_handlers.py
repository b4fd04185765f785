"""
Message, document and callback query handlers for the Daily Polyglot bot
"""

import html
import logging

from telegram import Update
from telegram.ext import ContextTypes

from ...exceptions import ImportRejected
from ...utils import (
    format_review_question,
    format_review_result,
    parse_inline_keyboard_data,
)
from ..locks.user_lock_manager import UserLockManager
from ..session.companion_registry import CompanionRegistry
from ..state.user_state_manager import UserStateManager
from .keyboards import next_review_keyboard, settings_keyboard

logger = logging.getLogger(__name__)

MAX_IMPORT_BYTES = 5 * 1024 * 1024
BUSY_TEXT = "⏳ Дождитесь завершения текущей операции и попробуйте снова."


class MessageHandlers:
    """Handles text messages, uploaded documents and callback queries"""

    def __init__(
        self,
        registry: CompanionRegistry,
        lock_manager: UserLockManager,
        state_manager: UserStateManager,
        safe_reply_callback,
        safe_edit_callback,
        reveal_callback,
        review_callback,
    ):
        self.registry = registry
        self.lock_manager = lock_manager
        self.state_manager = state_manager
        self._safe_reply = safe_reply_callback
        self._safe_edit = safe_edit_callback
        self._reveal_for_user = reveal_callback
        self._send_review_question = review_callback

    async def handle_message(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle plain text messages"""
        if not update.message or not update.effective_user:
            return

        if self.state_manager.is_waiting_for_import(update.effective_user.id):
            await self._safe_reply(update, "📎 Жду JSON-файл резервной копии (или /help для отмены).")
            return

        await self._safe_reply(
            update,
            "📝 Я выдаю по 3 новых слова в день.\n\n"
            "/reveal - Открыть слово дня\n"
            "/review - Повторение\n"
            "/help - Справка",
        )

    async def handle_document(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle uploaded backup documents"""
        if not update.message or not update.effective_user or not update.message.document:
            return

        telegram_id = update.effective_user.id
        if not self.state_manager.is_waiting_for_import(telegram_id):
            await self._safe_reply(update, "📥 Чтобы восстановить прогресс, сначала используйте /import")
            return

        self.state_manager.clear_state(telegram_id)
        document = update.message.document

        if document.file_size and document.file_size > MAX_IMPORT_BYTES:
            await self._safe_reply(update, "❌ Файл слишком большой.")
            return

        file = await document.get_file()
        content = await file.download_as_bytearray()

        async with self.lock_manager.hold(telegram_id, "import") as acquired:
            if not acquired:
                await self._safe_reply(update, BUSY_TEXT)
                return

            try:
                text = bytes(content).decode("utf-8")
                snapshot = self.registry.get(telegram_id).import_document(text)
            except (UnicodeDecodeError, ImportRejected) as e:
                logger.warning(f"Import rejected for user {telegram_id}: {e}")
                await self._safe_reply(
                    update,
                    "❌ Ошибка при импорте. Файл поврежден или имеет неверный формат.",
                )
                return

        await self._safe_reply(
            update,
            f"✅ Прогресс успешно импортирован!\n\n"
            f"📚 Слов: {len(snapshot.history)}\n"
            f"🔥 Ударный режим: {snapshot.streak} дн.\n"
            f"⭐ Очки: {snapshot.score}",
        )

    async def handle_callback_query(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ):
        """Handle callback queries from inline keyboards"""
        if not update.callback_query or not update.effective_user:
            return

        query = update.callback_query
        await query.answer()

        data = parse_inline_keyboard_data(query.data or "")
        action = data.get("action")
        user_id = update.effective_user.id

        if action == "reveal":
            await self._reveal_for_user(query, user_id)
        elif action == "answer":
            await self._handle_answer(query, user_id, data)
        elif action == "next_review":
            await self._send_review_question(query, user_id)
        elif action == "set_language":
            await self._handle_settings_change(query, user_id, target_language=data.get("language"))
        elif action == "set_level":
            await self._handle_settings_change(query, user_id, level=data.get("level"))
        elif action == "reset_confirm":
            await self._handle_reset(query, user_id)
        elif action == "reset_cancel":
            await self._safe_edit(query, "👌 Удаление отменено.")
        else:
            logger.warning(f"Unhandled callback query: {query.data}")

    async def _handle_reset(self, query, user_id: int):
        async with self.lock_manager.hold(user_id, "reset") as acquired:
            if not acquired:
                await self._safe_edit(query, BUSY_TEXT)
                return
            self.registry.get(user_id).reset()

        await self._safe_edit(query, "🗑 Прогресс удален. Начните заново: /reveal")

    async def _handle_answer(self, query, user_id: int, data: dict):
        """Grade a review answer"""
        try:
            index = int(data.get("option_index"))
        except (TypeError, ValueError):
            logger.error(f"Missing option index in callback data: {data}")
            return

        async with self.lock_manager.hold(user_id, "review_answer") as acquired:
            if not acquired:
                return

            companion = self.registry.get(user_id)
            try:
                result = companion.select_option(index, session_id=data.get("session_id"))
            except IndexError as e:
                logger.warning(f"Invalid review answer from user {user_id}: {e}")
                return

        if result is None:
            await self._safe_edit(query, "❌ Сессия истекла. Начните новую с /review")
            return
        if not result.applied:
            return

        session = result.session
        option_lines = []
        for index, option in enumerate(session.options):
            if index == session.correct_index:
                mark = "✅"
            elif index == session.selected_index:
                mark = "❌"
            else:
                mark = "▫️"
            option_lines.append(f"{mark} {html.escape(option)}")

        text = (
            f"{format_review_question(session)}\n\n"
            + "\n".join(option_lines)
            + f"\n\n{format_review_result(session)}"
        )
        await self._safe_edit(query, text, parse_mode="HTML", reply_markup=next_review_keyboard())

    async def _handle_settings_change(
        self,
        query,
        user_id: int,
        target_language: str | None = None,
        level: str | None = None,
    ):
        async with self.lock_manager.hold(user_id, "settings") as acquired:
            if not acquired:
                await self._safe_edit(query, BUSY_TEXT)
                return

            companion = self.registry.get(user_id)
            try:
                snapshot = companion.update_settings(target_language=target_language, level=level)
            except ValueError as e:
                logger.warning(f"Rejected settings change from user {user_id}: {e}")
                return

        await self._safe_edit(
            query,
            "⚙️ <b>Настройки сохранены</b>\n\n"
            "Изменения вступят в силу со следующего набора слов.",
            parse_mode="HTML",
            reply_markup=settings_keyboard(snapshot.settings),
        )
