"""
Per-learner companion registry for the bot
"""

import logging
import random
from collections.abc import Callable

from ...clock import Clock
from ...companion import LearningCompanion
from ...daily_cycle import DailyCycleController, Speaker, WordSupply
from ...ledger import SLOT_PREFIX, ProgressLedger, slot_key
from ...models import ProgressSettings
from ...review_quiz import ReviewQuizGenerator
from ..storage.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

SpeakerFactory = Callable[[int], Speaker]


class CompanionRegistry:
    """Creates and caches one LearningCompanion per Telegram user"""

    def __init__(
        self,
        store: KeyValueStore,
        word_supply: WordSupply,
        clock: Clock,
        default_settings: ProgressSettings | None = None,
        speaker_factory: SpeakerFactory | None = None,
        rng: random.Random | None = None,
    ):
        self.store = store
        self.word_supply = word_supply
        self.clock = clock
        self.default_settings = default_settings or ProgressSettings()
        self.speaker_factory = speaker_factory
        self.rng = rng
        self._companions: dict[int, LearningCompanion] = {}

    def get(self, user_id: int) -> LearningCompanion:
        """Get the learner's companion, creating it on first use"""
        companion = self._companions.get(user_id)
        if companion is None:
            companion = self._create(user_id)
            self._companions[user_id] = companion
        return companion

    def _create(self, user_id: int) -> LearningCompanion:
        ledger = ProgressLedger(
            store=self.store,
            key=slot_key(user_id),
            clock=self.clock,
            default_settings=self.default_settings,
            badge_listener=lambda remaining: logger.debug(
                f"Pending words for user {user_id}: {remaining}"
            ),
        )
        speaker = self.speaker_factory(user_id) if self.speaker_factory else None
        controller = DailyCycleController(self.word_supply, self.clock, speaker=speaker)
        quiz = ReviewQuizGenerator(self.clock, rng=self.rng)
        logger.info(f"Created learning companion for user {user_id}")
        return LearningCompanion(ledger, controller, quiz, self.clock)

    def known_learners(self) -> list[int]:
        """Telegram ids of every learner with stored progress"""
        learners = []
        for key in self.store.keys(SLOT_PREFIX):
            try:
                learners.append(int(key[len(SLOT_PREFIX):]))
            except ValueError:
                logger.warning(f"Skipping unexpected progress key '{key}'")
        return learners
