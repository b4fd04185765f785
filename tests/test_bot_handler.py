"""
Tests for bot wiring, authorization and reminders
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from telegram import Update, User
from telegram.error import TelegramError

from conftest import StubWordSupply
from daily_polyglot.bot_handler import BotHandler
from daily_polyglot.config import Settings


def make_settings(**overrides) -> Settings:
    values = {
        "telegram_bot_token": "test_token",
        "openai_api_key": "test_key",
        "allowed_users": "321",
        "tts_enabled": False,
    }
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def handler(temp_store, clock):
    return BotHandler(
        make_settings(), store=temp_store, word_supply=StubWordSupply(), clock=clock
    )


class TestUserAuthorization:
    """Test user authorization functionality"""

    def test_empty_allow_list_denies_everyone(self, temp_store, clock):
        handler = BotHandler(
            make_settings(allowed_users=""), store=temp_store,
            word_supply=StubWordSupply(), clock=clock,
        )

        assert not handler._is_user_authorized(321)

    def test_allow_list(self, handler):
        assert handler._is_user_authorized(321)
        assert not handler._is_user_authorized(111)

    @pytest.mark.asyncio
    async def test_require_authorization_blocks_unknown_user(self, handler):
        inner = AsyncMock()
        wrapped = handler.require_authorization(inner)
        update = MagicMock(spec=Update)
        update.effective_user = User(id=111, is_bot=False, first_name="Eve")
        update.message = MagicMock()
        update.message.reply_text = AsyncMock()

        await wrapped(update, MagicMock())

        inner.assert_not_awaited()
        assert "нет доступа" in update.message.reply_text.call_args.args[0]

    @pytest.mark.asyncio
    async def test_require_authorization_passes_allowed_user(self, handler):
        inner = AsyncMock()
        wrapped = handler.require_authorization(inner)
        update = MagicMock(spec=Update)
        update.effective_user = User(id=321, is_bot=False, first_name="Test")

        await wrapped(update, MagicMock())

        inner.assert_awaited_once()


class TestBotWiring:
    """Test defaults flowing from settings into companions"""

    def test_default_learning_settings(self, temp_store, clock):
        handler = BotHandler(
            make_settings(default_target_language="es", default_level="B1"),
            store=temp_store, word_supply=StubWordSupply(), clock=clock,
        )

        settings = handler.registry.get(1).snapshot().settings
        assert (settings.target_language, settings.level) == ("es", "B1")

    def test_speaker_only_when_tts_enabled(self, handler, temp_store, clock):
        assert handler.registry.get(1).controller.speaker is None

        with patch("daily_polyglot.pronunciation.AsyncOpenAI"):
            voiced = BotHandler(
                make_settings(tts_enabled=True), store=temp_store,
                word_supply=StubWordSupply(), clock=clock,
            )
        assert voiced.registry.get(1).controller.speaker is not None

    @pytest.mark.asyncio
    async def test_speaker_sends_voice(self, temp_store, clock):
        with patch("daily_polyglot.pronunciation.AsyncOpenAI"):
            handler = BotHandler(
                make_settings(tts_enabled=True), store=temp_store,
                word_supply=StubWordSupply(), clock=clock,
            )
        handler.pronunciation.speak = AsyncMock(return_value=b"audio")
        handler.application = MagicMock()
        handler.application.bot.send_voice = AsyncMock()

        await handler._make_speaker(321)("Haus", "de")

        handler.application.bot.send_voice.assert_awaited_once_with(chat_id=321, voice=b"audio")


class TestSafeMessaging:
    """Test reply and edit helpers"""

    @pytest.mark.asyncio
    async def test_safe_reply_swallows_telegram_errors(self, handler):
        update = MagicMock()
        update.message.reply_text = AsyncMock(side_effect=TelegramError("blocked"))

        assert await handler._safe_reply(update, "hi") is None

    @pytest.mark.asyncio
    async def test_safe_edit(self, handler):
        query = MagicMock()
        query.edit_message_text = AsyncMock(return_value="edited")

        assert await handler._safe_edit(query, "text") == "edited"

        query.edit_message_text.side_effect = TelegramError("too old")
        assert await handler._safe_edit(query, "text") is None


class TestDailyReminders:
    """Test reminder fan-out"""

    @pytest.mark.asyncio
    async def test_reminds_only_learners_with_words_left(self, handler):
        await handler.registry.get(1).reveal()
        for _ in range(3):
            await handler.registry.get(2).reveal()

        handler.application = MagicMock()
        handler.application.bot.send_message = AsyncMock()

        await handler._send_daily_reminders()

        handler.application.bot.send_message.assert_awaited_once()
        kwargs = handler.application.bot.send_message.call_args.kwargs
        assert kwargs["chat_id"] == 1
        assert "<b>2</b>" in kwargs["text"]

    @pytest.mark.asyncio
    async def test_failed_send_does_not_stop_others(self, handler):
        await handler.registry.get(1).reveal()
        await handler.registry.get(2).reveal()

        handler.application = MagicMock()
        handler.application.bot.send_message = AsyncMock(
            side_effect=[TelegramError("blocked"), None]
        )

        await handler._send_daily_reminders()

        assert handler.application.bot.send_message.await_count == 2

    @pytest.mark.asyncio
    async def test_no_application_no_reminders(self, handler):
        await handler._send_daily_reminders()
