"""
Consecutive-day sleep streaks.

A streak is a run of calendar days, ending today, on which the user logged at
least `min_minutes`. Only `rules.days` prior days are ever inspected, so the
longest countable run is days + 1.
"""
from datetime import date, timedelta
from typing import Dict, Iterable, Optional, Tuple

from services.rules import StreakRules
from services.sleep_service import SleepEntry

STREAK_COMPLETED = "{days}-day Streak!"
STREAK_CONTINUED = "Streak Continued"

History = Dict[Tuple[str, date], int]


def history_window(day: date, rules: StreakRules) -> Tuple[date, date]:
    """Inclusive (start, end) range of prior days needed to score `day`."""
    return day - timedelta(days=rules.days), day - timedelta(days=1)


def index_history(entries: Iterable[SleepEntry]) -> History:
    return {(e.user_id, e.date): e.sleep_minutes for e in entries}


def count_streak(user_id: str, day: date, today_minutes: int, history: History, rules: StreakRules) -> int:
    if today_minutes < rules.min_minutes:
        return 0

    count = 1
    for back in range(1, rules.days + 1):
        minutes = history.get((user_id, day - timedelta(days=back)))
        # a missing or short day ends the run
        if minutes is None or minutes < rules.min_minutes:
            break
        count += 1
    return count


def streak_bonus(count: int, rules: StreakRules) -> Optional[Tuple[int, str]]:
    if count == rules.days:
        return rules.completed_bonus, STREAK_COMPLETED.format(days=rules.days)
    if count > rules.days:
        return rules.continued_bonus, STREAK_CONTINUED
    return None
