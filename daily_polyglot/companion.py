"""
Per-learner facade over the daily cycle, review quiz and ledger
"""

import logging

from .clock import Clock, DateKey
from .daily_cycle import DailyCycleController, DailyState
from .ledger import ProgressLedger
from .models import AnswerResult, ProgressSnapshot, RevealResult, ReviewSession, WordEntry
from .review_quiz import ReviewQuizGenerator
from .town import TownStatus, town_status

logger = logging.getLogger(__name__)


class LearningCompanion:
    """
    One learner's progress with every mutation persisted

    Calls must be serialized by the caller; the companion holds no locks.
    """

    def __init__(
        self,
        ledger: ProgressLedger,
        controller: DailyCycleController,
        quiz: ReviewQuizGenerator,
        clock: Clock,
    ):
        self.ledger = ledger
        self.controller = controller
        self.quiz = quiz
        self.clock = clock
        self._snapshot: ProgressSnapshot | None = None
        self.review_session: ReviewSession | None = None

    def snapshot(self) -> ProgressSnapshot:
        """Current snapshot, loaded from storage on first use"""
        if self._snapshot is None:
            self._snapshot = self.ledger.load()
        return self._snapshot

    def _commit(self, snapshot: ProgressSnapshot) -> int:
        remaining = self.ledger.save(snapshot)
        self._snapshot = snapshot
        return remaining

    def daily_state(self) -> DailyState:
        return self.controller.state(self.snapshot())

    def remaining_today(self) -> int:
        return self.ledger.remaining_today(self.snapshot())

    def revealed_today(self) -> tuple[WordEntry, ...]:
        daily = self.snapshot().daily_state
        if daily is None or daily.date != self.clock.today():
            return ()
        return daily.revealed_words

    async def reveal(self) -> RevealResult:
        """Reveal the next word of the day and persist the result"""
        result = await self.controller.reveal(self.snapshot())
        self._commit(result.snapshot)
        self.controller.dispatch_pronunciation(
            result.entry, result.snapshot.settings.target_language
        )
        return result

    def start_review(self) -> ReviewSession:
        """Begin a new review question, replacing any current one"""
        self.review_session = self.quiz.generate(self.snapshot())
        return self.review_session

    def select_option(self, index: int, session_id: str | None = None) -> AnswerResult | None:
        """
        Answer the current review question

        Returns None when there is no session, or when ``session_id`` names
        a question that has since been replaced.
        """
        if self.review_session is None:
            return None
        if session_id is not None and session_id != self.review_session.session_id:
            logger.debug(f"Stale review answer for session {session_id}, ignoring")
            return None

        result = self.quiz.select_option(self.review_session, self.snapshot(), index)
        self.review_session = result.session
        if result.applied and result.snapshot is not self._snapshot:
            self._commit(result.snapshot)
        return result

    def next_review(self) -> ReviewSession:
        self.review_session = self.quiz.next_review(self.snapshot())
        return self.review_session

    def history_by_date(self) -> list[tuple[DateKey | None, list[WordEntry]]]:
        """History grouped by learn date, newest date first, undated last"""
        groups: dict[DateKey | None, list[WordEntry]] = {}
        for entry in self.snapshot().history:
            groups.setdefault(entry.date_learned, []).append(entry)

        dated = sorted((key for key in groups if key is not None), reverse=True)
        ordered = [(key, groups[key]) for key in dated]
        if None in groups:
            ordered.append((None, groups[None]))
        return ordered

    def town(self) -> TownStatus:
        return town_status(self.snapshot().score)

    def update_settings(
        self, target_language: str | None = None, level: str | None = None
    ) -> ProgressSnapshot:
        snapshot = self.ledger.update_settings(self.snapshot(), target_language, level)
        self._commit(snapshot)
        logger.info(
            f"Settings updated: language={snapshot.settings.target_language}, "
            f"level={snapshot.settings.level}"
        )
        return snapshot

    def export_document(self) -> str:
        return self.ledger.export_document(self.snapshot())

    def import_document(self, text: str) -> ProgressSnapshot:
        """Replace progress with an imported document (ImportRejected on failure)"""
        snapshot = self.ledger.import_document(text)
        self._snapshot = snapshot
        self.review_session = None
        return snapshot

    def reset(self) -> ProgressSnapshot:
        self.ledger.reset()
        self.review_session = None
        self._snapshot = self.ledger.initial_snapshot()
        return self._snapshot
