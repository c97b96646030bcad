"""
Tests for multi-day recalculation.
"""

from datetime import date, timedelta

import pytest
from conftest import DAY
from services.sleep_service import submit_sleep
from services.event_service import total_points
from services.scoring_service import NO_CONFIG, SCORED
from services.day_service import recalculate_range, recalculate_recent


class TestRecalculateRange:

    def test_backfill_reports_each_day(self, make_group):
        group_id = make_group(["u1", "u2"], active_from=DAY - timedelta(days=1))
        for back in range(0, 3):
            submit_sleep(group_id, "u1", DAY - timedelta(days=back), 480)

        statuses = recalculate_range(group_id, DAY - timedelta(days=2), DAY)

        assert statuses == {
            date(2023, 1, 6): NO_CONFIG,
            date(2023, 1, 7): SCORED,
            date(2023, 1, 8): SCORED,
        }
        # u1: 3 + 3 (lone submitter, no winner); u2: -1 -1
        assert total_points(group_id) == {"u1": 6, "u2": -2}

    def test_backfill_is_repeatable(self, make_group):
        group_id = make_group(["u1", "u2"])
        submit_sleep(group_id, "u1", DAY, 480)
        submit_sleep(group_id, "u2", DAY, 420)

        recalculate_range(group_id, DAY - timedelta(days=3), DAY)
        first = total_points(group_id)
        recalculate_range(group_id, DAY - timedelta(days=3), DAY)

        assert total_points(group_id) == first == {"u1": 4, "u2": 2}


def test_recalculate_recent_covers_today_and_yesterday(make_group):
    group_id = make_group(["u1"])
    assert list(recalculate_recent(group_id, today=DAY)) == [DAY - timedelta(days=1), DAY]


@pytest.mark.parametrize("days", [0, -3])
def test_recalculate_recent_needs_at_least_one_day(make_group, days):
    group_id = make_group(["u1"])
    with pytest.raises(ValueError, match="at least 1"):
        recalculate_recent(group_id, today=DAY, days=days)
