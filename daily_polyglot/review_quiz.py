"""
Multiple-choice review questions over previously learned words
"""

import logging
import random
from dataclasses import replace

from .clock import Clock
from .exceptions import ReviewUnavailable
from .models import (
    PLACEHOLDER_OPTION,
    REVIEW_OPTION_COUNT,
    AnswerResult,
    ProgressSnapshot,
    ReviewSession,
    WordEntry,
)

logger = logging.getLogger(__name__)


class ReviewQuizGenerator:
    """Builds review sessions and grades answers"""

    def __init__(self, clock: Clock, rng: random.Random | None = None):
        self.clock = clock
        self.rng = rng or random.Random()

    def generate(self, snapshot: ProgressSnapshot) -> ReviewSession:
        """
        Build a new question from the learner's history

        Older words (not learned today) are preferred as targets. Options
        hold the target translation once plus up to three distractor
        translations, padded with placeholders, in shuffled order.

        Raises:
            ReviewUnavailable: history is empty
        """
        history = snapshot.history
        if not history:
            raise ReviewUnavailable("No learned words to review yet")

        target = self._pick_target(history)
        distractors = self._pick_distractors(history, target)

        options = [target.translation, *distractors]
        while len(options) < REVIEW_OPTION_COUNT:
            options.append(PLACEHOLDER_OPTION)
        self.rng.shuffle(options)

        logger.debug(f"Review question for '{target.word}' with options {options}")
        return ReviewSession(
            target=target,
            options=tuple(options),
            session_id=f"{self.rng.getrandbits(48):012x}",
        )

    def _pick_target(self, history: tuple[WordEntry, ...]) -> WordEntry:
        today = self.clock.today()
        older = [entry for entry in history if entry.date_learned != today]
        return self.rng.choice(older or list(history))

    def _pick_distractors(
        self, history: tuple[WordEntry, ...], target: WordEntry
    ) -> list[str]:
        # One candidate per distinct translation so options never repeat
        candidates: dict[str, WordEntry] = {}
        for entry in history:
            if entry.id == target.id or entry.translation == target.translation:
                continue
            candidates.setdefault(entry.translation, entry)

        count = min(REVIEW_OPTION_COUNT - 1, len(candidates))
        picked = self.rng.sample(list(candidates.values()), count)
        return [entry.translation for entry in picked]

    def select_option(
        self, session: ReviewSession, snapshot: ProgressSnapshot, index: int
    ) -> AnswerResult:
        """
        Grade the learner's choice

        A session accepts exactly one answer; later calls return the
        session and snapshot unchanged with ``applied=False``. A correct
        answer increments the target's review counter and adds review
        points.
        """
        if session.is_answered:
            logger.debug("Review session already answered, ignoring selection")
            return AnswerResult(session=session, snapshot=snapshot, applied=False)

        if not 0 <= index < len(session.options):
            raise IndexError(f"Option index {index} out of range")

        is_correct = session.options[index] == session.target.translation
        answered = replace(session, selected_index=index, is_correct=is_correct)

        if is_correct and snapshot.has_word(session.target.id):
            snapshot = snapshot.with_review_credit(session.target.id)
            logger.info(
                f"Correct review of '{session.target.word}', score={snapshot.score}"
            )
        elif is_correct:
            logger.warning(
                f"Reviewed word {session.target.id} is no longer in history, no credit"
            )
        else:
            logger.info(f"Incorrect review of '{session.target.word}'")

        return AnswerResult(session=answered, snapshot=snapshot, applied=True)

    def next_review(self, snapshot: ProgressSnapshot) -> ReviewSession:
        """Discard the current question and build a fresh one"""
        return self.generate(snapshot)
