"""
Streak calculation across calendar days
"""

from .clock import DateKey, previous_day


def advance_streak(
    last_active_date: DateKey | None, today: DateKey, current_streak: int
) -> int:
    """
    Compute the streak after a reveal on ``today``

    Args:
        last_active_date: Date of the last reveal before this one, if any
        today: Date of the reveal being recorded
        current_streak: Streak stored before this reveal

    Returns:
        Updated streak count
    """
    if last_active_date == today:
        return current_streak
    if last_active_date == previous_day(today):
        return current_streak + 1
    return 1
