"""
Daily word batches generated with the OpenAI API
"""

import json
import logging
import random
import uuid
from typing import Any

from openai import AsyncOpenAI

from .config import LANGUAGE_NAMES, get_settings
from .exceptions import ServiceError
from .models import DAILY_WORD_COUNT, WordEntry
from .utils import log_execution_time, retry_on_exception

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = ("word", "translation", "example", "example_translation", "pronunciation", "category")


class WordSupplyService:
    """Fetches batches of new words for a target language and level"""

    def __init__(self, api_key: str | None = None):
        settings = get_settings()
        self.client = AsyncOpenAI(
            api_key=api_key or settings.openai_api_key, timeout=settings.api_timeout
        )
        self.model = settings.openai_model
        self.max_tokens = settings.openai_max_tokens
        self.temperature = settings.openai_temperature

    async def fetch_words(self, target_language: str, level: str) -> list[WordEntry]:
        """
        Fetch exactly three new words

        Args:
            target_language: Language code of the words (de, en, es)
            level: CEFR level (A1 ... C1)

        Returns:
            List of WordEntry without date_learned or review_count

        Raises:
            ServiceError: if the request fails or the batch is malformed
        """
        if target_language not in LANGUAGE_NAMES:
            raise ServiceError(f"Unsupported target language: {target_language}")

        logger.info(f"Fetching {DAILY_WORD_COUNT} words: language={target_language}, level={level}")

        try:
            content = await self._request_batch(target_language, level)
        except ServiceError:
            raise
        except Exception as e:
            logger.error(f"Word supply request failed: {e}")
            raise ServiceError(f"Word supply request failed: {e}") from e

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse OpenAI response as JSON: {e}")
            logger.debug(f"Response content: {content}")
            raise ServiceError("Word supply returned invalid JSON") from e

        return self._parse_batch(data, target_language)

    @retry_on_exception(max_retries=3, delay=1.0, backoff=2.0)
    @log_execution_time
    async def _request_batch(self, target_language: str, level: str) -> str:
        """Request a batch from OpenAI and return the raw JSON text"""
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": self._get_system_prompt()},
                {"role": "user", "content": self._create_batch_prompt(target_language, level)},
            ],
            max_completion_tokens=self.max_tokens,
            temperature=self.temperature,
            response_format={"type": "json_object"},
        )

        if not response.choices:
            logger.error("No response choices from OpenAI")
            raise ServiceError("Empty response from word supply")

        content = response.choices[0].message.content
        if not content:
            logger.error("Empty response content from OpenAI")
            logger.debug(f"Finish reason: {response.choices[0].finish_reason}")
            raise ServiceError("Empty response from word supply")

        return content

    def _get_system_prompt(self) -> str:
        """Get system prompt for OpenAI"""
        return """You are a language teacher assistant for Russian-speaking learners. You pick useful vocabulary and describe it precisely.

Always respond with a JSON object of the form {"words": [...]} where each item has these exact keys:
- "word": the word in the target language, without article
- "translation": Russian translation
- "article": for German and Spanish nouns the definite article, for English the word type (noun, verb, ...); null otherwise
- "plural": plural form if applicable, otherwise null
- "example": a simple example sentence in the target language
- "example_translation": Russian translation of the example
- "pronunciation": pronunciation hint (transcription)
- "category": a short topic such as "Food", "Work", "Nature"
"""

    def _create_batch_prompt(self, target_language: str, level: str) -> str:
        """Create the user prompt for one daily batch"""
        language_name = LANGUAGE_NAMES[target_language]
        return (
            f"Generate {DAILY_WORD_COUNT} random {language_name} words for a daily learning app.\n"
            f"Target level: {level}.\n"
            "Focus on high-frequency words for this level. "
            "Use three different words from different categories."
        )

    def _parse_batch(self, data: Any, target_language: str) -> list[WordEntry]:
        """Validate a parsed response and convert it to word entries"""
        items = data.get("words") if isinstance(data, dict) else data
        if not isinstance(items, list):
            raise ServiceError("Word supply response has no word list")

        if len(items) != DAILY_WORD_COUNT:
            logger.error(f"Word supply returned {len(items)} words, expected {DAILY_WORD_COUNT}")
            raise ServiceError(
                f"Expected {DAILY_WORD_COUNT} words, got {len(items)}"
            )

        return [self._parse_item(item, target_language) for item in items]

    def _parse_item(self, item: Any, target_language: str) -> WordEntry:
        if not isinstance(item, dict):
            raise ServiceError("Word supply item is not an object")

        missing = [
            key for key in REQUIRED_FIELDS
            if not isinstance(item.get(key), str) or not item[key].strip()
        ]
        if missing:
            logger.error(f"Word supply item is missing fields {missing}: {item}")
            raise ServiceError(f"Word supply item is missing fields: {', '.join(missing)}")

        return WordEntry(
            id=uuid.uuid4().hex,
            word=item["word"].strip(),
            translation=item["translation"].strip(),
            article=_optional_text(item.get("article")),
            plural=_optional_text(item.get("plural")),
            example=item["example"].strip(),
            example_translation=item["example_translation"].strip(),
            pronunciation=item["pronunciation"].strip(),
            category=item["category"].strip(),
            language=target_language,
        )


def _optional_text(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not value or value.lower() in ("none", "null"):
        return None
    return value


_MOCK_WORDS = {
    "de": [
        ("Haus", "дом", "das", "Häuser", "Das Haus ist groß.", "Дом большой.", "[haʊs]", "Home"),
        ("Apfel", "яблоко", "der", "Äpfel", "Der Apfel ist rot.", "Яблоко красное.", "[ˈapfl̩]", "Food"),
        ("Arbeit", "работа", "die", "Arbeiten", "Die Arbeit macht Spaß.", "Работа приносит удовольствие.", "[ˈaʁbaɪ̯t]", "Work"),
        ("Baum", "дерево", "der", "Bäume", "Der Baum ist alt.", "Дерево старое.", "[baʊ̯m]", "Nature"),
        ("Zeit", "время", "die", None, "Ich habe keine Zeit.", "У меня нет времени.", "[tsaɪ̯t]", "Time"),
        ("Buch", "книга", "das", "Bücher", "Das Buch ist spannend.", "Книга захватывающая.", "[buːx]", "Leisure"),
    ],
    "en": [
        ("house", "дом", "noun", "houses", "The house is big.", "Дом большой.", "[haʊs]", "Home"),
        ("apple", "яблоко", "noun", "apples", "The apple is red.", "Яблоко красное.", "[ˈæp.əl]", "Food"),
        ("work", "работать", "verb", None, "I work every day.", "Я работаю каждый день.", "[wɜːk]", "Work"),
        ("tree", "дерево", "noun", "trees", "The tree is old.", "Дерево старое.", "[triː]", "Nature"),
        ("time", "время", "noun", "times", "I have no time.", "У меня нет времени.", "[taɪm]", "Time"),
        ("book", "книга", "noun", "books", "The book is exciting.", "Книга захватывающая.", "[bʊk]", "Leisure"),
    ],
    "es": [
        ("casa", "дом", "la", "casas", "La casa es grande.", "Дом большой.", "[ˈka.sa]", "Home"),
        ("manzana", "яблоко", "la", "manzanas", "La manzana es roja.", "Яблоко красное.", "[manˈθa.na]", "Food"),
        ("trabajo", "работа", "el", "trabajos", "El trabajo es divertido.", "Работа веселая.", "[tɾaˈβa.xo]", "Work"),
        ("árbol", "дерево", "el", "árboles", "El árbol es viejo.", "Дерево старое.", "[ˈaɾ.βol]", "Nature"),
        ("tiempo", "время", "el", None, "No tengo tiempo.", "У меня нет времени.", "[ˈtjem.po]", "Time"),
        ("libro", "книга", "el", "libros", "El libro es emocionante.", "Книга захватывающая.", "[ˈli.βɾo]", "Leisure"),
    ],
}


class MockWordSupply:
    """Offline word supply for development and tests"""

    def __init__(self, rng: random.Random | None = None):
        self.rng = rng or random.Random()
        self.request_count = 0

    async def fetch_words(self, target_language: str, level: str) -> list[WordEntry]:
        """Return three words from a small built-in bank"""
        bank = _MOCK_WORDS.get(target_language)
        if not bank:
            raise ServiceError(f"Unsupported target language: {target_language}")

        self.request_count += 1
        picks = self.rng.sample(bank, DAILY_WORD_COUNT)
        return [
            WordEntry(
                id=uuid.uuid4().hex,
                word=word,
                translation=translation,
                article=article,
                plural=plural,
                example=example,
                example_translation=example_translation,
                pronunciation=pronunciation,
                category=category,
                language=target_language,
            )
            for (
                word, translation, article, plural,
                example, example_translation, pronunciation, category,
            ) in picks
        ]


def get_word_supply(use_mock: bool = False) -> WordSupplyService | MockWordSupply:
    """Get word supply instance"""
    if use_mock:
        return MockWordSupply()
    return WordSupplyService()
