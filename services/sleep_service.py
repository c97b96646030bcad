import sqlite3
import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from services.db import get_cursor, use_cursor
from services.dates import normalize_day

logger = logging.getLogger(__name__)

SOURCES = ('Oura', 'Apple', 'Garmin', 'Manual')
CONFIDENCE_LEVELS = ('MEASURED', 'ESTIMATED')


@dataclass(frozen=True)
class SleepEntry:
    group_id: str
    user_id: str
    date: date
    sleep_minutes: int
    source: str = 'Manual'
    confidence: str = 'MEASURED'
    note: Optional[str] = None

    @property
    def hours(self) -> float:
        return self.sleep_minutes / 60


def _row_to_entry(row) -> SleepEntry:
    return SleepEntry(
        group_id=row['group_id'],
        user_id=row['user_id'],
        date=date.fromisoformat(row['date']),
        sleep_minutes=row['sleep_minutes'],
        source=row['source'],
        confidence=row['confidence'],
        note=row['note'],
    )


def submit_sleep(group_id: str, user_id: str, target_date, sleep_minutes: int,
                 source: str = 'Manual', confidence: str = 'MEASURED', note: str = None) -> SleepEntry:
    """
    Creates or replaces the user's entry for that calendar day.
    Scoring is not triggered here; callers recalculate the day afterwards.
    """
    day = normalize_day(target_date)
    date_iso = day.isoformat()

    with get_cursor(commit=True) as c:
        try:
            c.execute("""
                INSERT INTO sleep_entries (group_id, user_id, date, sleep_minutes, source, confidence, note)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT (group_id, user_id, date) DO UPDATE SET
                    sleep_minutes = excluded.sleep_minutes,
                    source = excluded.source,
                    confidence = excluded.confidence,
                    note = excluded.note,
                    updated_at = strftime('%s', 'now')
            """, (group_id, user_id, date_iso, sleep_minutes, source, confidence, note))
        except sqlite3.IntegrityError as e:
            if "CHECK" in str(e):
                raise ValueError(f"Data verification failed (Constraint Error): {e}")
            if "FOREIGN KEY" in str(e):
                raise ValueError(f"User {user_id} is not a member of group {group_id}.")
            raise e

    logger.info("Sleep logged: group=%s user=%s date=%s minutes=%s", group_id, user_id, date_iso, sleep_minutes)
    return SleepEntry(group_id, user_id, day, sleep_minutes, source, confidence, note)


def find_submissions(group_id: str, start, end, cursor=None) -> List[SleepEntry]:
    """Entries with start <= date <= end, both bounds whole calendar days."""
    start_iso = normalize_day(start).isoformat()
    end_iso = normalize_day(end).isoformat()
    with use_cursor(cursor) as c:
        c.execute("""
            SELECT * FROM sleep_entries
            WHERE group_id = ? AND date BETWEEN ? AND ?
            ORDER BY date, user_id
        """, (group_id, start_iso, end_iso))
        return [_row_to_entry(r) for r in c.fetchall()]


def get_entry(group_id: str, user_id: str, target_date) -> Optional[SleepEntry]:
    date_iso = normalize_day(target_date).isoformat()
    with get_cursor() as c:
        c.execute("SELECT * FROM sleep_entries WHERE group_id = ? AND user_id = ? AND date = ?", (group_id, user_id, date_iso))
        row = c.fetchone()
        return _row_to_entry(row) if row else None
