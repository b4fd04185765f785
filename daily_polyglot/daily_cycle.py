"""
Daily reveal cycle: three words per calendar day, one reveal at a time
"""

import asyncio
import logging
import uuid
from collections.abc import Awaitable, Callable
from dataclasses import replace
from enum import Enum
from typing import Protocol

from .clock import Clock, DateKey
from .exceptions import DailyQuotaComplete, ServiceError
from .models import (
    DAILY_WORD_COUNT,
    DailySet,
    ProgressSnapshot,
    RevealResult,
    WordEntry,
)
from .streak import advance_streak

logger = logging.getLogger(__name__)

Speaker = Callable[[str, str], Awaitable[None]]


class WordSupply(Protocol):
    async def fetch_words(self, target_language: str, level: str) -> list[WordEntry]: ...


class DailyState(Enum):
    """Reveal state for the current calendar date"""

    EMPTY = "empty"
    PENDING = "pending"
    COMPLETE = "complete"


def current_daily_set(snapshot: ProgressSnapshot, today: DateKey) -> DailySet | None:
    """Today's daily set, or None if there is none or it belongs to another date"""
    daily = snapshot.daily_state
    if daily is None or daily.date != today:
        return None
    return daily


def remaining_today(snapshot: ProgressSnapshot, today: DateKey) -> int:
    """Number of words still to reveal today"""
    daily = current_daily_set(snapshot, today)
    revealed = daily.reveal_count if daily else 0
    return max(DAILY_WORD_COUNT - revealed, 0)


class DailyCycleController:
    """Drives the per-day reveal state machine over progress snapshots"""

    def __init__(
        self,
        word_supply: WordSupply,
        clock: Clock,
        speaker: Speaker | None = None,
    ):
        self.word_supply = word_supply
        self.clock = clock
        self.speaker = speaker
        self._background_tasks: set[asyncio.Task] = set()

    def state(self, snapshot: ProgressSnapshot) -> DailyState:
        daily = current_daily_set(snapshot, self.clock.today())
        if daily is None:
            return DailyState.EMPTY
        if daily.is_complete:
            return DailyState.COMPLETE
        return DailyState.PENDING

    async def reveal(self, snapshot: ProgressSnapshot) -> RevealResult:
        """
        Reveal the next word of the day

        Args:
            snapshot: Progress before the reveal

        Returns:
            RevealResult with the new snapshot, the revealed entry and
            the number of words still owed today

        Raises:
            DailyQuotaComplete: all of today's words are already revealed
            ServiceError: the word supply failed; snapshot is unchanged
        """
        today = self.clock.today()
        daily = current_daily_set(snapshot, today)

        if daily is not None and daily.is_complete:
            raise DailyQuotaComplete(f"All {DAILY_WORD_COUNT} words for {today} are revealed")

        if daily is None:
            daily = await self._start_day(snapshot, today)

        entry = daily.words[daily.reveal_count]
        if entry.date_learned is None:
            entry = replace(entry, date_learned=today)

        words = list(daily.words)
        words[daily.reveal_count] = entry
        new_daily = replace(daily, words=tuple(words), reveal_count=daily.reveal_count + 1)

        new_snapshot = replace(
            snapshot.with_history_entry(entry),
            streak=advance_streak(snapshot.last_active_date, today, snapshot.streak),
            last_active_date=today,
            daily_state=new_daily,
        )

        remaining = max(DAILY_WORD_COUNT - new_daily.reveal_count, 0)
        logger.info(
            f"Revealed '{entry.word}' ({new_daily.reveal_count}/{DAILY_WORD_COUNT}), "
            f"streak={new_snapshot.streak}, score={new_snapshot.score}"
        )

        return RevealResult(snapshot=new_snapshot, entry=entry, remaining=remaining)

    async def _start_day(self, snapshot: ProgressSnapshot, today: DateKey) -> DailySet:
        """Fetch a fresh batch and build today's set; nothing is mutated on failure"""
        settings = snapshot.settings
        try:
            words = await self.word_supply.fetch_words(settings.target_language, settings.level)
        except ServiceError:
            raise
        except Exception as e:
            logger.error(f"Word supply failed: {e}")
            raise ServiceError(f"Word supply failed: {e}") from e

        if len(words) != DAILY_WORD_COUNT:
            raise ServiceError(f"Expected {DAILY_WORD_COUNT} words, got {len(words)}")

        known_ids = {entry.id for entry in snapshot.history}
        stamped = []
        for word in words:
            if word.id in known_ids:
                logger.warning(f"Word id {word.id} already in history, assigning a new id")
                word = replace(word, id=uuid.uuid4().hex)
            known_ids.add(word.id)
            stamped.append(replace(word, date_learned=today))

        logger.info(f"Started daily set for {today}: {[w.word for w in stamped]}")
        return DailySet(date=today, words=tuple(stamped), reveal_count=0)

    def dispatch_pronunciation(self, entry: WordEntry, language: str) -> None:
        """Play the word in the background; failures are only logged"""
        if self.speaker is None:
            return
        task = asyncio.create_task(self._speak(entry.word, entry.language or language))
        self._background_tasks.add(task)
        task.add_done_callback(self._background_tasks.discard)

    async def _speak(self, text: str, language: str) -> None:
        try:
            await self.speaker(text, language)
        except Exception as e:
            logger.warning(f"Pronunciation playback failed for '{text}': {e}")

    async def wait_for_pronunciations(self) -> None:
        """Wait for in-flight pronunciation tasks to finish"""
        if self._background_tasks:
            await asyncio.gather(*self._background_tasks, return_exceptions=True)
