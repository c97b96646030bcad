import json
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List

import pandas as pd

from services.db import get_connection, get_cursor, use_cursor
from services.dates import normalize_day

MANUAL_ADJUSTMENT = "MANUAL_ADJUSTMENT"


@dataclass
class ScoreEvent:
    group_id: str
    user_id: str
    date: date
    points: int
    reason: str
    metadata: dict = field(default_factory=dict)

    def metadata_json(self) -> str:
        return json.dumps(self.metadata, sort_keys=True)


def _row_to_event(row) -> ScoreEvent:
    return ScoreEvent(
        group_id=row['group_id'],
        user_id=row['user_id'],
        date=date.fromisoformat(row['date']),
        points=row['points'],
        reason=row['reason'],
        metadata=json.loads(row['metadata']),
    )


def delete_auto_events(group_id: str, target_date, cursor=None) -> int:
    """Removes every event of the day except manual adjustments."""
    date_iso = normalize_day(target_date).isoformat()
    with use_cursor(cursor, commit=True) as c:
        c.execute("DELETE FROM score_events WHERE group_id = ? AND date = ? AND reason != ?", (group_id, date_iso, MANUAL_ADJUSTMENT))
        return c.rowcount


def insert_events(events: List[ScoreEvent], cursor=None):
    if not events:
        return
    with use_cursor(cursor, commit=True) as c:
        c.executemany("""
            INSERT INTO score_events (group_id, user_id, date, points, reason, metadata)
            VALUES (?, ?, ?, ?, ?, ?)
        """, [(e.group_id, e.user_id, e.date.isoformat(), e.points, e.reason, e.metadata_json()) for e in events])


def add_manual_adjustment(group_id: str, user_id: str, target_date, points: int, note: str = None) -> ScoreEvent:
    """Owner correction. Recalculation never deletes these."""
    event = ScoreEvent(group_id, user_id, normalize_day(target_date), points, MANUAL_ADJUSTMENT, {"note": note} if note else {})
    insert_events([event])
    return event


def list_events(group_id: str, target_date, include_manual: bool = True) -> List[ScoreEvent]:
    date_iso = normalize_day(target_date).isoformat()
    with get_cursor() as c:
        c.execute("SELECT * FROM score_events WHERE group_id = ? AND date = ? ORDER BY user_id, id", (group_id, date_iso))
        events = [_row_to_event(r) for r in c.fetchall()]
    if not include_manual:
        events = [e for e in events if e.reason != MANUAL_ADJUSTMENT]
    return events


def load_events_frame(group_id: str, start=None, end=None) -> pd.DataFrame:
    query = "SELECT user_id, date, points, reason, metadata FROM score_events WHERE group_id = ?"
    params = [group_id]
    if start is not None:
        query += " AND date >= ?"
        params.append(normalize_day(start).isoformat())
    if end is not None:
        query += " AND date <= ?"
        params.append(normalize_day(end).isoformat())
    query += " ORDER BY date, user_id"

    conn = get_connection()
    try:
        return pd.read_sql(query, conn, params=params)
    finally:
        conn.close()


def total_points(group_id: str, start=None, end=None) -> Dict[str, int]:
    """Per-user point sums over an optional inclusive day range."""
    df = load_events_frame(group_id, start, end)
    if df.empty:
        return {}
    totals = df.groupby("user_id")["points"].sum()
    return {user_id: int(points) for user_id, points in totals.items()}
