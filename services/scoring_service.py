import logging
from dataclasses import dataclass, field
from datetime import date
from typing import List

from services.db import get_cursor
from services.dates import normalize_day
from services.rules import RANK, RankRules, ThresholdRules
from services.config_service import get_active_config
from services.group_service import list_members
from services.sleep_service import SleepEntry, find_submissions
from services.event_service import ScoreEvent, delete_auto_events, insert_events
from services.streak_service import History, count_streak, history_window, index_history, streak_bonus

logger = logging.getLogger(__name__)

SCORED = "SCORED"
NO_CONFIG = "NO_CONFIG"

NON_SUBMISSION = "Non-submission Penalty"
WINNER_BONUS = "Winner Bonus"


@dataclass
class RecalcResult:
    status: str
    events: List[ScoreEvent] = field(default_factory=list)

    @property
    def scored(self) -> bool:
        return self.status == SCORED


def _valid(entries: List[SleepEntry]) -> List[SleepEntry]:
    return [e for e in entries if e.sleep_minutes > 0]


# --- THRESHOLD MODE ---

def score_buckets(rules: ThresholdRules, group_id: str, day: date, members: List[str], entries: List[SleepEntry]) -> List[ScoreEvent]:
    """One event per member: bucket points, or the non-submission penalty."""
    by_user = {e.user_id: e for e in entries}
    events = []

    for user_id in members:
        entry = by_user.get(user_id)
        if entry is None:
            events.append(ScoreEvent(group_id, user_id, day, rules.non_submit_points, NON_SUBMISSION,
                                     {"sleepMinutes": 0, "bucketPoints": rules.non_submit_points}))
            continue

        hours = entry.hours
        bucket = rules.find_bucket(hours)
        if bucket is not None:
            points, reason = bucket.points, f"Sleep Duration ({hours:.1f}h)"
        else:
            # misauthored rules must not sink the whole day
            points, reason = 0, f"No bucket match ({hours:.1f}h)"
        events.append(ScoreEvent(group_id, user_id, day, points, reason,
                                 {"sleepMinutes": entry.sleep_minutes, "bucketPoints": points}))
    return events


def apply_winner_bonus(events: List[ScoreEvent], rules: ThresholdRules, entries: List[SleepEntry]):
    """
    Longest valid sleep of the day earns thumbs_up_bonus. Needs at least two
    valid entries; every tie at the top gets it. A zero bonus tags nobody.
    """
    valid = _valid(entries)
    if rules.thumbs_up_bonus == 0 or len(valid) < 2:
        return

    best = max(e.sleep_minutes for e in valid)
    winners = {e.user_id for e in valid if e.sleep_minutes == best}
    for event in events:
        if event.user_id in winners:
            event.points += rules.thumbs_up_bonus
            event.reason += f" + {WINNER_BONUS}"
            event.metadata["winner"] = True


def apply_streak_bonus(events: List[ScoreEvent], rules: ThresholdRules, day: date, entries: List[SleepEntry], history: History):
    by_user = {e.user_id: e for e in entries}
    for event in events:
        entry = by_user.get(event.user_id)
        if entry is None:
            continue
        count = count_streak(event.user_id, day, entry.sleep_minutes, history, rules.streak)
        bonus = streak_bonus(count, rules.streak)
        if bonus is None:
            continue
        points, label = bonus
        event.points += points
        event.reason += f" + {label}"
        event.metadata["streakDays"] = count


# --- RANK MODE ---

def score_ranks(rules: RankRules, group_id: str, day: date, entries: List[SleepEntry]) -> List[ScoreEvent]:
    """
    Valid submitters only. Position i of N earns N - i; equal minutes are
    ordered by user id.
    """
    ranked = sorted(_valid(entries), key=lambda e: (-e.sleep_minutes, e.user_id))
    n = len(ranked)
    return [
        ScoreEvent(group_id, entry.user_id, day, n - i, f"Rank {i + 1} / {n}",
                   {"sleepMinutes": entry.sleep_minutes, "rank": i + 1})
        for i, entry in enumerate(ranked)
    ]


# --- ORCHESTRATION ---

def calculate_daily_scores(group_id: str, target_date) -> RecalcResult:
    """
    The Judge.
    Reads entries -> Applies the rules active that day -> Replaces the day's events.
    Runs as one IMMEDIATE transaction, so the delete and the insert land together
    or not at all, and concurrent recalculations queue on the write lock.
    """
    day = normalize_day(target_date)

    with get_cursor(commit=True, immediate=True) as c:
        # 1. Fetch The Law (Active Config)
        config = get_active_config(group_id, day, cursor=c)
        if config is None:
            logger.warning("No active scoring config for group %s on %s", group_id, day)
            return RecalcResult(NO_CONFIG)
        rules = config.rules

        # 2. Fetch Raw Truth (Members & Entries)
        members = list_members(group_id, cursor=c)
        entries = find_submissions(group_id, day, day, cursor=c)

        # 3. Clear the previous verdict (manual adjustments survive)
        deleted = delete_auto_events(group_id, day, cursor=c)

        # 4. Score
        if not entries:
            events = []
        elif config.mode == RANK:
            events = score_ranks(rules, group_id, day, entries)
        else:
            start, end = history_window(day, rules.streak)
            history = index_history(find_submissions(group_id, start, end, cursor=c))
            events = score_buckets(rules, group_id, day, members, entries)
            apply_winner_bonus(events, rules, entries)
            apply_streak_bonus(events, rules, day, entries, history)

        # 5. Write to Scoreboard
        insert_events(events, cursor=c)

    logger.info("Scored group %s on %s with config %s (%s): replaced %s events with %s",
                group_id, day, config.id, config.mode, deleted, len(events))
    return RecalcResult(SCORED, events)
