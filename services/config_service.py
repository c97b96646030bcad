import json
import logging
from dataclasses import dataclass
from datetime import date
from typing import List, Optional

from services.db import get_cursor, use_cursor
from services.rules import Rules, parse_rules, rules_from_row, load_payload
from services.dates import normalize_day

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScoringConfig:
    id: int
    group_id: str
    mode: str
    active_from_date: date
    rules: Rules
    note: Optional[str] = None


def _row_to_config(row) -> ScoringConfig:
    return ScoringConfig(
        id=row['id'],
        group_id=row['group_id'],
        mode=row['mode'],
        active_from_date=date.fromisoformat(row['active_from_date']),
        rules=rules_from_row(row['mode'], row['rules']),
        note=row['change_log_note'],
    )


def set_rules(group_id: str, mode: str, payload, active_from=None, note: str = None) -> ScoringConfig:
    """
    Stores a new rule set for the group. Old rows are never touched, so past
    days keep scoring against the rules that were active then.
    """
    rules = parse_rules(mode, payload)
    effective = normalize_day(active_from or date.today())
    rules_json = json.dumps(load_payload(payload), sort_keys=True)

    with get_cursor(commit=True) as c:
        c.execute("""
            INSERT INTO scoring_config (group_id, mode, active_from_date, rules, change_log_note)
            VALUES (?, ?, ?, ?, ?)
        """, (group_id, mode, effective.isoformat(), rules_json, note))
        config_id = c.lastrowid

    logger.info("Stored %s rules %s for group %s active from %s", mode, config_id, group_id, effective)
    return ScoringConfig(config_id, group_id, mode, effective, rules, note)


def get_active_config(group_id: str, target_date, cursor=None) -> Optional[ScoringConfig]:
    """
    The rule set in force on target_date: greatest active_from_date not after
    it, newest row first on equal dates. None when the group has no rules yet.
    """
    day_iso = normalize_day(target_date).isoformat()
    with use_cursor(cursor) as c:
        c.execute("""
            SELECT * FROM scoring_config
            WHERE group_id = ? AND active_from_date <= ?
            ORDER BY active_from_date DESC, id DESC
            LIMIT 1
        """, (group_id, day_iso))
        row = c.fetchone()
    return _row_to_config(row) if row else None


def list_configs(group_id: str) -> List[ScoringConfig]:
    with get_cursor() as c:
        c.execute("""
            SELECT * FROM scoring_config WHERE group_id = ?
            ORDER BY active_from_date DESC, id DESC
        """, (group_id,))
        return [_row_to_config(r) for r in c.fetchall()]
