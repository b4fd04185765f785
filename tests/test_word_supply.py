"""
Unit tests for the word supply
"""

import json
import random
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from daily_polyglot.exceptions import ServiceError
from daily_polyglot.word_supply import (
    MockWordSupply,
    WordSupplyService,
    _optional_text,
    get_word_supply,
)


def word_item(word: str, translation: str, **overrides) -> dict:
    item = {
        "word": word,
        "translation": translation,
        "article": "das",
        "plural": "null",
        "example": f"Das {word} ist gut.",
        "example_translation": f"{translation} хороший.",
        "pronunciation": f"[{word.lower()}]",
        "category": "Home",
    }
    item.update(overrides)
    return item


def openai_response(content):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    response.choices[0].finish_reason = "stop"
    return response


class TestWordSupplyService:
    """Test WordSupplyService with a mocked OpenAI client"""

    @pytest.fixture
    def mock_openai_client(self):
        return AsyncMock()

    @pytest.fixture
    def supply(self, mock_openai_client):
        with patch("daily_polyglot.word_supply.AsyncOpenAI", return_value=mock_openai_client):
            supply = WordSupplyService(api_key="test_key")
        supply.client = mock_openai_client
        return supply

    @pytest.fixture(autouse=True)
    def no_retry_delay(self):
        with patch("daily_polyglot.utils.asyncio.sleep", new=AsyncMock()) as sleep:
            yield sleep

    @pytest.mark.asyncio
    async def test_fetch_words_success(self, supply, mock_openai_client):
        content = json.dumps(
            {
                "words": [
                    word_item("Haus", "дом"),
                    word_item("Buch", "книга", plural="Bücher"),
                    word_item("laufen", "бегать", article=None, category="Sport"),
                ]
            }
        )
        mock_openai_client.chat.completions.create.return_value = openai_response(content)

        words = await supply.fetch_words("de", "A1")

        assert [w.word for w in words] == ["Haus", "Buch", "laufen"]
        assert words[0].translation == "дом"
        assert words[0].plural is None
        assert words[1].plural == "Bücher"
        assert words[2].article is None
        assert all(w.language == "de" for w in words)
        assert all(w.date_learned is None and w.review_count is None for w in words)
        assert len({w.id for w in words}) == 3

        kwargs = mock_openai_client.chat.completions.create.call_args.kwargs
        assert kwargs["response_format"] == {"type": "json_object"}
        assert "A1" in kwargs["messages"][1]["content"]
        assert "German" in kwargs["messages"][1]["content"]

    @pytest.mark.asyncio
    async def test_accepts_bare_list(self, supply, mock_openai_client):
        content = json.dumps([word_item(w, "x") for w in ("a", "b", "c")])
        mock_openai_client.chat.completions.create.return_value = openai_response(content)

        assert len(await supply.fetch_words("en", "B1")) == 3

    @pytest.mark.asyncio
    async def test_wrong_word_count(self, supply, mock_openai_client):
        content = json.dumps({"words": [word_item("Haus", "дом")]})
        mock_openai_client.chat.completions.create.return_value = openai_response(content)

        with pytest.raises(ServiceError):
            await supply.fetch_words("de", "A1")

    @pytest.mark.asyncio
    async def test_missing_fields(self, supply, mock_openai_client):
        content = json.dumps(
            {"words": [word_item("a", "x"), word_item("b", "y"), word_item("c", "")]}
        )
        mock_openai_client.chat.completions.create.return_value = openai_response(content)

        with pytest.raises(ServiceError):
            await supply.fetch_words("de", "A1")

    @pytest.mark.asyncio
    async def test_invalid_json(self, supply, mock_openai_client):
        mock_openai_client.chat.completions.create.return_value = openai_response("not json")

        with pytest.raises(ServiceError):
            await supply.fetch_words("de", "A1")

    @pytest.mark.asyncio
    async def test_api_error_is_retried_then_wrapped(self, supply, mock_openai_client, no_retry_delay):
        mock_openai_client.chat.completions.create.side_effect = RuntimeError("API down")

        with pytest.raises(ServiceError):
            await supply.fetch_words("de", "A1")

        assert mock_openai_client.chat.completions.create.await_count == 3
        assert no_retry_delay.await_count == 2

    @pytest.mark.asyncio
    async def test_recovers_after_transient_error(self, supply, mock_openai_client):
        content = json.dumps({"words": [word_item(w, "x") for w in ("a", "b", "c")]})
        mock_openai_client.chat.completions.create.side_effect = [
            RuntimeError("timeout"),
            openai_response(content),
        ]

        words = await supply.fetch_words("es", "A2")

        assert len(words) == 3
        assert words[0].language == "es"

    @pytest.mark.asyncio
    async def test_empty_content(self, supply, mock_openai_client):
        mock_openai_client.chat.completions.create.return_value = openai_response("")

        with pytest.raises(ServiceError):
            await supply.fetch_words("de", "A1")

    @pytest.mark.asyncio
    async def test_unsupported_language(self, supply, mock_openai_client):
        with pytest.raises(ServiceError):
            await supply.fetch_words("fr", "A1")

        mock_openai_client.chat.completions.create.assert_not_called()


class TestMockWordSupply:
    """Test the offline word supply"""

    @pytest.mark.asyncio
    async def test_returns_three_distinct_words(self):
        supply = MockWordSupply(rng=random.Random(1))

        words = await supply.fetch_words("de", "A1")

        assert len(words) == 3
        assert len({w.word for w in words}) == 3
        assert supply.request_count == 1

    @pytest.mark.asyncio
    async def test_unsupported_language(self):
        with pytest.raises(ServiceError):
            await MockWordSupply().fetch_words("fr", "A1")

    def test_get_word_supply_mock(self):
        assert isinstance(get_word_supply(use_mock=True), MockWordSupply)


class TestOptionalText:
    def test_values(self):
        assert _optional_text(None) is None
        assert _optional_text("  ") is None
        assert _optional_text("None") is None
        assert _optional_text(" die ") == "die"
