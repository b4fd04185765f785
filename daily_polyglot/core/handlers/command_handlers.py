"""
Command handlers for the Daily Polyglot bot
"""

import html
import io
import logging

from telegram import ReplyKeyboardRemove, Update
from telegram.error import TelegramError
from telegram.ext import ContextTypes

from ...daily_cycle import DailyState
from ...exceptions import DailyQuotaComplete, ReviewUnavailable, ServiceError
from ...utils import (
    LANGUAGE_FLAGS,
    LANGUAGE_TITLES,
    format_daily_progress,
    format_history,
    format_progress_stats,
    format_review_question,
    format_town,
    format_word_card,
)
from ..locks.user_lock_manager import UserLockManager
from ..session.companion_registry import CompanionRegistry
from ..state.user_state_manager import UserState, UserStateManager
from .keyboards import (
    reset_confirmation_keyboard,
    retry_reveal_keyboard,
    reveal_keyboard,
    review_options_keyboard,
    settings_keyboard,
)

logger = logging.getLogger(__name__)


class CommandHandlers:
    """Handles all bot commands"""

    def __init__(
        self,
        registry: CompanionRegistry,
        lock_manager: UserLockManager,
        state_manager: UserStateManager,
        safe_reply_callback,
    ):
        self.registry = registry
        self.lock_manager = lock_manager
        self.state_manager = state_manager
        self._safe_reply = safe_reply_callback

    async def start_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /start command"""
        if not update.effective_user:
            return

        user = update.effective_user
        companion = self.registry.get(user.id)
        settings = companion.snapshot().settings

        welcome_message = f"""🎉 Привет, {html.escape(user.first_name or "")}!

Добро пожаловать в Daily Polyglot! 🌍

Каждый день я дарю вам <b>3 новых слова</b>. Открывайте их по одному, держите ударный режим и стройте свой город.

{LANGUAGE_FLAGS.get(settings.target_language, "🌍")} Язык: <b>{LANGUAGE_TITLES.get(settings.target_language, settings.target_language)}</b>, уровень <b>{settings.level}</b>

🔤 <b>Как начать:</b>
/reveal - Открыть слово дня
/review - Повторить выученные слова
/help - Подробная справка"""

        await self._safe_reply(
            update,
            welcome_message,
            parse_mode="HTML",
            reply_markup=reveal_keyboard(companion.remaining_today()),
        )

    async def help_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /help command"""
        if not update.effective_user:
            return
        help_message = """📖 Справка по командам Daily Polyglot

🔤 <b>Слова дня:</b>
/reveal - Открыть следующее слово (3 в день)
/today - Слова, открытые сегодня

🧠 <b>Повторение:</b>
/review - Тест: выберите правильный перевод
За каждый верный ответ +10 очков

📊 <b>Прогресс:</b>
/history - Словарь по дням
/town - Ваш город растет вместе со словарем
/stats - Статистика

⚙️ <b>Настройки:</b>
/settings - Язык и уровень
/export - Скачать резервную копию
/import - Восстановить из резервной копии
/reset - Удалить весь прогресс

🔥 <b>Ударный режим:</b> открывайте хотя бы одно слово каждый день!"""

        await self._safe_reply(
            update, help_message, parse_mode="HTML", reply_markup=ReplyKeyboardRemove()
        )

    async def reveal_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /reveal command"""
        if not update.effective_user:
            return
        await self.reveal_for_user(update, update.effective_user.id)

    async def reveal_for_user(self, target, user_id: int):
        """Reveal the learner's next word and reply with its card"""
        async with self.lock_manager.hold(user_id, "reveal") as acquired:
            if not acquired:
                await self._safe_reply(target, "⏳ Слово уже загружается, подождите немного...")
                return

            companion = self.registry.get(user_id)
            if companion.daily_state() == DailyState.EMPTY:
                await self._safe_reply(target, "⏳ Подбираю слова на сегодня...")

            try:
                result = await companion.reveal()
            except DailyQuotaComplete:
                await self._safe_reply(
                    target,
                    "✅ Все слова на сегодня открыты! Возвращайтесь завтра.\n\n"
                    "А пока можно повторить выученное.",
                    reply_markup=reveal_keyboard(0),
                )
                return
            except ServiceError as e:
                logger.error(f"Reveal failed for user {user_id}: {e}")
                await self._safe_reply(
                    target,
                    "❌ Ошибка сети при получении новых слов.",
                    reply_markup=retry_reveal_keyboard(),
                )
                return

        snapshot = result.snapshot
        text = (
            f"{format_word_card(result.entry)}\n\n"
            f"{format_daily_progress(snapshot.daily_state.reveal_count, snapshot.streak, snapshot.settings.level)}"
        )
        await self._safe_reply(
            target, text, parse_mode="HTML", reply_markup=reveal_keyboard(result.remaining)
        )

    async def today_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /today command"""
        if not update.effective_user:
            return

        companion = self.registry.get(update.effective_user.id)
        snapshot = companion.snapshot()
        revealed = companion.revealed_today()

        parts = [format_daily_progress(len(revealed), snapshot.streak, snapshot.settings.level)]
        parts.extend(format_word_card(word) for word in revealed)

        await self._safe_reply(
            update,
            "\n\n".join(parts),
            parse_mode="HTML",
            reply_markup=reveal_keyboard(companion.remaining_today()),
        )

    async def review_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /review command"""
        if not update.effective_user:
            return
        await self.send_review_question(update, update.effective_user.id)

    async def send_review_question(self, target, user_id: int):
        """Start a fresh review question for the learner"""
        companion = self.registry.get(user_id)
        try:
            session = companion.start_review()
        except ReviewUnavailable:
            await self._safe_reply(
                target,
                "📖 Повторять пока нечего. Откройте первое слово: /reveal",
            )
            return

        await self._safe_reply(
            target,
            format_review_question(session),
            parse_mode="HTML",
            reply_markup=review_options_keyboard(session),
        )

    async def history_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /history command"""
        if not update.effective_user:
            return

        companion = self.registry.get(update.effective_user.id)
        text = format_history(
            companion.history_by_date(),
            companion.snapshot().streak,
            companion.clock.today(),
        )
        await self._safe_reply(update, text, parse_mode="HTML")

    async def town_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /town command"""
        if not update.effective_user:
            return

        companion = self.registry.get(update.effective_user.id)
        await self._safe_reply(update, format_town(companion.town()), parse_mode="HTML")

    async def stats_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /stats command"""
        if not update.effective_user:
            return

        companion = self.registry.get(update.effective_user.id)
        await self._safe_reply(
            update, format_progress_stats(companion.snapshot(), companion.remaining_today())
        )

    async def settings_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /settings command"""
        if not update.effective_user:
            return

        companion = self.registry.get(update.effective_user.id)
        await self._safe_reply(
            update,
            "⚙️ <b>Настройки</b>\n\nВыберите язык и уровень.\n"
            "Изменения вступят в силу со следующего набора слов.",
            parse_mode="HTML",
            reply_markup=settings_keyboard(companion.snapshot().settings),
        )

    async def export_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /export command"""
        if not update.effective_user or not update.message:
            return

        companion = self.registry.get(update.effective_user.id)
        document = companion.export_document().encode("utf-8")
        filename = f"polyglot-daily-backup-{companion.clock.today()}.json"

        try:
            await update.message.reply_document(
                document=io.BytesIO(document),
                filename=filename,
                caption="💾 Резервная копия вашего прогресса",
            )
            logger.info(f"Exported progress for user {update.effective_user.id}")
        except TelegramError as e:
            logger.error(f"Error sending export document: {e}")
            await self._safe_reply(update, "❌ Не удалось отправить файл. Попробуйте позже.")

    async def import_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /import command"""
        if not update.effective_user:
            return

        self.state_manager.set_state(update.effective_user.id, UserState.WAITING_FOR_IMPORT_FILE)
        await self._safe_reply(
            update,
            "📥 Отправьте JSON-файл резервной копии.\n\n"
            "⚠️ Текущий прогресс будет заменен.",
        )

    async def reset_command(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Handle /reset command"""
        if not update.effective_user:
            return

        await self._safe_reply(
            update,
            "⚠️ Вы уверены? Весь прогресс и история будут удалены безвозвратно.",
            reply_markup=reset_confirmation_keyboard(),
        )
