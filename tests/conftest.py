"""
Shared fixtures for the Daily Polyglot test suite
"""

import os
import random
import tempfile

import pytest

os.environ.setdefault("TELEGRAM_BOT_TOKEN", "test_token")
os.environ.setdefault("OPENAI_API_KEY", "test_key")

from daily_polyglot.clock import FixedClock  # noqa: E402
from daily_polyglot.core.storage.kv_store import KeyValueStore  # noqa: E402
from daily_polyglot.models import WordEntry  # noqa: E402


def make_word(word_id: str, word: str = None, translation: str = None, **kwargs) -> WordEntry:
    """Build a word entry with readable defaults"""
    return WordEntry(
        id=word_id,
        word=word or f"Wort-{word_id}",
        translation=translation or f"перевод-{word_id}",
        **kwargs,
    )


class StubWordSupply:
    """Word supply returning queued batches and recording calls"""

    def __init__(self, batches=None, error: Exception | None = None):
        self.batches = list(batches or [])
        self.error = error
        self.calls = []

    async def fetch_words(self, target_language: str, level: str):
        self.calls.append((target_language, level))
        if self.error is not None:
            raise self.error
        if self.batches:
            return self.batches.pop(0)
        n = len(self.calls)
        return [make_word(f"w{n}-{i}") for i in range(3)]


@pytest.fixture
def clock():
    return FixedClock("2025-07-10")


@pytest.fixture
def rng():
    return random.Random(42)


@pytest.fixture
def temp_store():
    """Key-value store on a temporary SQLite file"""
    temp_dir = tempfile.TemporaryDirectory()
    store = KeyValueStore(os.path.join(temp_dir.name, "test.db"))
    store.init_database()

    yield store

    temp_dir.cleanup()
