import logging
from datetime import date, timedelta
from typing import Dict

from services.dates import iter_days, normalize_day
from services.scoring_service import calculate_daily_scores

logger = logging.getLogger(__name__)

def recalculate_range(group_id: str, start, end) -> Dict[date, str]:
    """Backfill: rescore every day in [start, end], oldest first."""
    statuses = {}
    for day in iter_days(start, end):
        statuses[day] = calculate_daily_scores(group_id, day).status
    if (normalize_day(end) - normalize_day(start)).days > 30:
        logger.warning("Recalculated %s days for group %s in one call", len(statuses), group_id)
    return statuses

def recalculate_recent(group_id: str, today=None, days: int = 2) -> Dict[date, str]:
    """Manual trigger: today and the days just before it (yesterday by default)."""
    if days < 1:
        raise ValueError(f"days must be at least 1, got {days}")
    today = normalize_day(today or date.today())
    return recalculate_range(group_id, today - timedelta(days=days - 1), today)
