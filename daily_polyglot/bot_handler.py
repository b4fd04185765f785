"""
Telegram bot handler wiring the learning companions to the chat surface
"""

import logging
from functools import wraps

from telegram import BotCommand, Update
from telegram.error import TelegramError
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    MessageHandler,
    filters,
)

from .clock import Clock
from .config import get_settings
from .core.handlers.command_handlers import CommandHandlers
from .core.handlers.message_handlers import MessageHandlers
from .core.locks.user_lock_manager import UserLockManager
from .core.scheduler.reminder_scheduler import ReminderScheduler
from .core.session.companion_registry import CompanionRegistry
from .core.state.user_state_manager import UserStateManager
from .core.storage.kv_store import get_kv_store
from .models import ProgressSettings
from .pronunciation import PronunciationService
from .word_supply import get_word_supply

logger = logging.getLogger(__name__)

COMMANDS = [
    ("reveal", "🔤 Открыть слово дня"),
    ("today", "📅 Слова, открытые сегодня"),
    ("review", "🧠 Повторение"),
    ("history", "📚 Словарь по дням"),
    ("town", "🏙 Мой город"),
    ("stats", "📊 Статистика"),
    ("settings", "⚙️ Язык и уровень"),
    ("export", "💾 Резервная копия"),
    ("import", "📥 Восстановить прогресс"),
    ("reset", "🗑 Удалить прогресс"),
    ("help", "❓ Справка по командам"),
]


class BotHandler:
    """Main Telegram bot handler"""

    def __init__(self, settings=None, store=None, word_supply=None, clock=None):
        self.settings = settings or get_settings()
        self.store = store or get_kv_store()
        self.word_supply = word_supply or get_word_supply()
        self.clock = clock or Clock(self.settings.timezone)
        self.pronunciation = PronunciationService() if self.settings.tts_enabled else None
        self.lock_manager = UserLockManager(lock_timeout_minutes=5)
        self.state_manager = UserStateManager(state_timeout_minutes=10)
        self.reminder_scheduler = ReminderScheduler(
            self._send_daily_reminders,
            reminder_time=self.settings.default_reminder_time,
            timezone=self.settings.timezone,
        )

        self.application = None

        self.registry = CompanionRegistry(
            store=self.store,
            word_supply=self.word_supply,
            clock=self.clock,
            default_settings=ProgressSettings(
                target_language=self.settings.default_target_language,
                level=self.settings.default_level,
            ),
            speaker_factory=self._make_speaker if self.pronunciation else None,
        )

        self.command_handlers = CommandHandlers(
            registry=self.registry,
            lock_manager=self.lock_manager,
            state_manager=self.state_manager,
            safe_reply_callback=self._safe_reply,
        )

        self.message_handlers = MessageHandlers(
            registry=self.registry,
            lock_manager=self.lock_manager,
            state_manager=self.state_manager,
            safe_reply_callback=self._safe_reply,
            safe_edit_callback=self._safe_edit,
            reveal_callback=self.command_handlers.reveal_for_user,
            review_callback=self.command_handlers.send_review_question,
        )

    def _is_user_authorized(self, user_id: int) -> bool:
        """Check if user is authorized to use the bot"""
        if not self.settings.allowed_users_list:
            return False
        return user_id in self.settings.allowed_users_list

    async def _check_authorization(
        self, update: Update, context: ContextTypes.DEFAULT_TYPE
    ) -> bool:
        """Check if user is authorized and send unauthorized message if not"""
        user_id = update.effective_user.id

        if not self._is_user_authorized(user_id):
            await self._safe_reply(
                update,
                "❌ У вас нет доступа к этому боту. Обратитесь к администратору.",
            )
            logger.warning(f"Unauthorized access attempt from user {user_id}")
            return False

        return True

    def require_authorization(self, func):
        """Decorator to require authorization for handler functions"""

        @wraps(func)
        async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE):
            if not await self._check_authorization(update, context):
                return
            return await func(update, context)

        return wrapper

    def _make_speaker(self, user_id: int):
        """Build a speaker that sends pronunciation audio as a voice message"""

        async def speak(text: str, language: str) -> None:
            audio = await self.pronunciation.speak(text, language)
            if audio is None or self.application is None:
                return
            await self.application.bot.send_voice(chat_id=user_id, voice=audio)

        return speak

    def run(self):
        """Run the bot until interrupted"""
        logger.info("Starting Daily Polyglot bot...")

        self.store.init_database()

        self.application = (
            Application.builder()
            .token(self.settings.telegram_bot_token)
            .read_timeout(30)
            .write_timeout(30)
            .connect_timeout(30)
            .pool_timeout(30)
            .post_init(self._post_init)
            .post_shutdown(self._post_shutdown)
            .build()
        )

        self._add_handlers()

        logger.info("Bot started successfully!")
        self.application.run_polling(
            poll_interval=self.settings.polling_interval,
            timeout=10,
            bootstrap_retries=3,
        )

    async def _post_init(self, application):
        await self.setup_bot_menu(application)
        if self.settings.reminder_enabled:
            await self.reminder_scheduler.start()

    async def _post_shutdown(self, application):
        await self.reminder_scheduler.stop()

    def _add_handlers(self):
        """Add command and message handlers"""
        app = self.application

        command_map = {
            "start": self.command_handlers.start_command,
            "help": self.command_handlers.help_command,
            "reveal": self.command_handlers.reveal_command,
            "today": self.command_handlers.today_command,
            "review": self.command_handlers.review_command,
            "history": self.command_handlers.history_command,
            "town": self.command_handlers.town_command,
            "stats": self.command_handlers.stats_command,
            "settings": self.command_handlers.settings_command,
            "export": self.command_handlers.export_command,
            "import": self.command_handlers.import_command,
            "reset": self.command_handlers.reset_command,
        }
        for name, callback in command_map.items():
            app.add_handler(CommandHandler(name, self.require_authorization(callback)))

        app.add_handler(
            MessageHandler(
                filters.Document.ALL,
                self.require_authorization(self.message_handlers.handle_document),
            )
        )
        app.add_handler(
            MessageHandler(
                filters.TEXT & ~filters.COMMAND,
                self.require_authorization(self.message_handlers.handle_message),
            )
        )
        app.add_handler(
            CallbackQueryHandler(
                self.require_authorization(self.message_handlers.handle_callback_query)
            )
        )

        app.add_error_handler(self.error_handler)

    async def setup_bot_menu(self, application):
        """Setup bot menu with commands"""
        commands = [BotCommand(name, description) for name, description in COMMANDS]

        try:
            await application.bot.set_my_commands(commands)
            logger.info("Bot menu commands set successfully")
        except TelegramError as e:
            logger.error(f"Failed to set bot menu commands: {e}")

    async def _safe_reply(self, update_or_query, text: str, **kwargs):
        """Safely send a reply to an Update, CallbackQuery or Message"""
        try:
            if getattr(update_or_query, "message", None) is not None:
                return await update_or_query.message.reply_text(text, **kwargs)
            return await update_or_query.reply_text(text, **kwargs)
        except TelegramError as e:
            logger.error(f"Error sending reply: {e}")
            logger.debug(f"Failed text: {text[:100]}...")
            return None

    async def _safe_edit(self, query, text: str, **kwargs):
        """Safely edit a message"""
        try:
            return await query.edit_message_text(text, **kwargs)
        except TelegramError as e:
            logger.error(f"Error editing message: {e}")
            return None

    async def _send_daily_reminders(self):
        """Remind every learner who still has words to reveal today"""
        if self.application is None:
            return

        learners = self.registry.known_learners()
        if not learners:
            logger.info("No learners found for daily reminders")
            return

        successful_sends = 0
        failed_sends = 0

        for user_id in learners:
            remaining = self.registry.get(user_id).remaining_today()
            if remaining <= 0:
                continue
            try:
                await self.application.bot.send_message(
                    chat_id=user_id,
                    text=(
                        f"🌍 <b>Новые слова ждут!</b>\n\n"
                        f"Сегодня осталось открыть: <b>{remaining}</b>\n"
                        f"Не прерывайте ударный режим: /reveal"
                    ),
                    parse_mode="HTML",
                )
                successful_sends += 1
            except TelegramError as e:
                failed_sends += 1
                logger.error(f"Failed to send reminder to user {user_id}: {e}")

        logger.info(
            f"Daily reminders sent: {successful_sends} successful, "
            f"{failed_sends} failed out of {len(learners)} learners"
        )

    async def error_handler(self, update: object, context: ContextTypes.DEFAULT_TYPE):
        """Handle errors"""
        logger.error(f"Update {update} caused error {context.error}")
