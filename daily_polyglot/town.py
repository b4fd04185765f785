"""
Town milestones unlocked by the learner's score
"""

from dataclasses import dataclass

from .models import REVEAL_POINTS


@dataclass(frozen=True)
class Milestone:
    """A town object that appears once enough words are learned"""

    words: int
    icon: str
    label: str

    @property
    def threshold(self) -> int:
        """Score needed to unlock this milestone"""
        return self.words * REVEAL_POINTS


MILESTONES = (
    Milestone(1, "🌱", "Трава"),
    Milestone(3, "🌳", "Дерево"),
    Milestone(5, "🏠", "Первый дом"),
    Milestone(8, "🚶", "Житель"),
    Milestone(12, "🌻", "Цветы"),
    Milestone(15, "🏡", "Второй дом"),
    Milestone(20, "🐕", "Пёсик"),
    Milestone(25, "🏪", "Лавка"),
    Milestone(30, "⛲", "Фонтан"),
    Milestone(40, "🏫", "Школа"),
    Milestone(50, "🏰", "Ратуша"),
    Milestone(60, "💃", "Танцовщица"),
)


@dataclass(frozen=True)
class TownStatus:
    """Current town level and distance to the next milestone"""

    score: int
    level: int
    unlocked: tuple[Milestone, ...]
    next_milestone: Milestone | None
    progress_percent: float


def town_status(score: int, milestones: tuple[Milestone, ...] = MILESTONES) -> TownStatus:
    """Map a score onto the milestone table"""
    unlocked = tuple(m for m in milestones if score >= m.threshold)
    next_milestone = next((m for m in milestones if score < m.threshold), None)

    if next_milestone is None:
        progress = 100.0
    else:
        floor = unlocked[-1].threshold if unlocked else 0
        progress = (score - floor) / (next_milestone.threshold - floor) * 100

    return TownStatus(
        score=score,
        level=len(unlocked),
        unlocked=unlocked,
        next_milestone=next_milestone,
        progress_percent=round(progress, 1),
    )
