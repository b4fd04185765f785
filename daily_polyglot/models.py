"""
Data models for daily words, learner progress and review sessions
"""

from dataclasses import dataclass, field, replace
from typing import Any

from .clock import DateKey

SNAPSHOT_VERSION = 1

DAILY_WORD_COUNT = 3
REVEAL_POINTS = 5
REVIEW_POINTS = 10
REVIEW_OPTION_COUNT = 4

# Fills option slots when history has too few distinct translations
PLACEHOLDER_OPTION = "—"


@dataclass(frozen=True)
class WordEntry:
    """One vocabulary item in the learner's target language"""

    id: str
    word: str
    translation: str
    article: str | None = None
    plural: str | None = None
    example: str = ""
    example_translation: str = ""
    pronunciation: str = ""
    category: str = ""
    date_learned: DateKey | None = None
    review_count: int | None = None
    language: str | None = None

    @property
    def display_word(self) -> str:
        """Word prefixed with its article, when it has one"""
        if self.article and self.article.strip():
            return f"{self.article} {self.word}"
        return self.word

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "word": self.word,
            "translation": self.translation,
            "article": self.article,
            "plural": self.plural,
            "example": self.example,
            "example_translation": self.example_translation,
            "pronunciation": self.pronunciation,
            "category": self.category,
            "date_learned": self.date_learned,
            "review_count": self.review_count,
            "language": self.language,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WordEntry":
        if not isinstance(data, dict):
            raise ValueError(f"Word entry must be an object, got {type(data).__name__}")
        for key in ("id", "word", "translation"):
            if not isinstance(data.get(key), str) or not data[key].strip():
                raise ValueError(f"Word entry is missing '{key}'")

        review_count = data.get("review_count")
        if review_count is not None and not _is_count(review_count):
            raise ValueError(f"Invalid review_count: {review_count!r}")

        return cls(
            id=data["id"],
            word=data["word"],
            translation=data["translation"],
            article=data.get("article") or None,
            plural=data.get("plural") or None,
            example=data.get("example") or "",
            example_translation=data.get("example_translation") or "",
            pronunciation=data.get("pronunciation") or "",
            category=data.get("category") or "",
            date_learned=data.get("date_learned"),
            review_count=review_count,
            language=data.get("language"),
        )


@dataclass(frozen=True)
class DailySet:
    """The day's words in fixed order plus how many are revealed"""

    date: DateKey
    words: tuple[WordEntry, ...]
    reveal_count: int = 0

    @property
    def is_complete(self) -> bool:
        return self.reveal_count >= len(self.words)

    @property
    def revealed_words(self) -> tuple[WordEntry, ...]:
        return self.words[: self.reveal_count]

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "words": [word.to_dict() for word in self.words],
            "reveal_count": self.reveal_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DailySet":
        if not isinstance(data, dict):
            raise ValueError("Daily state must be an object")
        words = data.get("words")
        if not isinstance(words, list) or len(words) != DAILY_WORD_COUNT:
            raise ValueError(f"Daily state must hold exactly {DAILY_WORD_COUNT} words")
        reveal_count = data.get("reveal_count", 0)
        if not _is_count(reveal_count) or reveal_count > DAILY_WORD_COUNT:
            raise ValueError(f"Invalid reveal_count: {reveal_count!r}")
        return cls(
            date=str(data["date"]),
            words=tuple(WordEntry.from_dict(word) for word in words),
            reveal_count=reveal_count,
        )


@dataclass(frozen=True)
class ProgressSettings:
    """Learner's target language and proficiency level"""

    target_language: str = "de"
    level: str = "A1"

    def to_dict(self) -> dict[str, Any]:
        return {"target_language": self.target_language, "level": self.level}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProgressSettings":
        if not isinstance(data, dict):
            raise ValueError("Settings must be an object")
        defaults = cls()
        return cls(
            target_language=data.get("target_language") or defaults.target_language,
            level=data.get("level") or defaults.level,
        )


def _is_count(value) -> bool:
    """Non-negative int that is not a bool"""
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


def expected_score(history: tuple[WordEntry, ...]) -> int:
    """Score implied by history: reveals plus successful reviews"""
    reviews = sum(entry.review_count or 0 for entry in history)
    return REVEAL_POINTS * len(history) + REVIEW_POINTS * reviews


@dataclass(frozen=True)
class ProgressSnapshot:
    """Durable aggregate of a learner's progress"""

    history: tuple[WordEntry, ...] = ()
    streak: int = 0
    last_active_date: DateKey | None = None
    score: int = 0
    daily_state: DailySet | None = None
    settings: ProgressSettings = field(default_factory=ProgressSettings)

    def has_word(self, word_id: str) -> bool:
        return any(entry.id == word_id for entry in self.history)

    def with_history_entry(self, entry: WordEntry) -> "ProgressSnapshot":
        """Append a newly revealed entry and award reveal points"""
        if self.has_word(entry.id):
            raise ValueError(f"Word {entry.id} is already in history")
        return replace(
            self,
            history=self.history + (entry,),
            score=self.score + REVEAL_POINTS,
        )

    def with_review_credit(self, word_id: str) -> "ProgressSnapshot":
        """Increment one entry's review counter and award review points"""
        if not self.has_word(word_id):
            raise ValueError(f"Word {word_id} is not in history")
        history = tuple(
            replace(entry, review_count=(entry.review_count or 0) + 1)
            if entry.id == word_id
            else entry
            for entry in self.history
        )
        return replace(self, history=history, score=self.score + REVIEW_POINTS)

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": SNAPSHOT_VERSION,
            "history": [entry.to_dict() for entry in self.history],
            "streak": self.streak,
            "last_active_date": self.last_active_date,
            "score": self.score,
            "daily_state": self.daily_state.to_dict() if self.daily_state else None,
            "settings": self.settings.to_dict(),
        }

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        default_settings: ProgressSettings | None = None,
    ) -> "ProgressSnapshot":
        """
        Build a snapshot from its document form

        Missing settings fall back to ``default_settings``. Raises
        ValueError when the document shape is invalid.
        """
        if not isinstance(data, dict):
            raise ValueError("Snapshot must be an object")
        raw_history = data.get("history")
        if not isinstance(raw_history, list):
            raise ValueError("Snapshot has no history list")

        history: list[WordEntry] = []
        seen_ids: set[str] = set()
        for raw_entry in raw_history:
            entry = WordEntry.from_dict(raw_entry)
            if entry.id in seen_ids:
                raise ValueError(f"Duplicate word id in history: {entry.id}")
            seen_ids.add(entry.id)
            history.append(entry)

        streak = data.get("streak", 0)
        score = data.get("score", 0)
        if streak is None:
            streak = 0
        if score is None:
            score = 0
        if not _is_count(streak):
            raise ValueError(f"Invalid streak: {streak!r}")
        if not _is_count(score):
            raise ValueError(f"Invalid score: {score!r}")

        raw_settings = data.get("settings")
        if raw_settings:
            settings = ProgressSettings.from_dict(raw_settings)
        else:
            settings = default_settings or ProgressSettings()

        raw_daily = data.get("daily_state")
        return cls(
            history=tuple(history),
            streak=streak,
            last_active_date=data.get("last_active_date"),
            score=score,
            daily_state=DailySet.from_dict(raw_daily) if raw_daily else None,
            settings=settings,
        )


@dataclass(frozen=True)
class ReviewSession:
    """One multiple-choice question over a previously learned word"""

    target: WordEntry
    options: tuple[str, ...]
    selected_index: int | None = None
    is_correct: bool | None = None
    session_id: str = ""

    @property
    def correct_index(self) -> int:
        return self.options.index(self.target.translation)

    @property
    def is_answered(self) -> bool:
        return self.selected_index is not None


@dataclass(frozen=True)
class RevealResult:
    """Outcome of revealing one of today's words"""

    snapshot: ProgressSnapshot
    entry: WordEntry
    remaining: int


@dataclass(frozen=True)
class AnswerResult:
    """Outcome of selecting an option in a review session"""

    session: ReviewSession
    snapshot: ProgressSnapshot
    applied: bool
