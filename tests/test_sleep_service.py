"""
Tests for sleep submissions: upsert per calendar day and day-range queries.
"""

from datetime import date, datetime, timedelta

import pytest
from conftest import DAY
from services.sleep_service import find_submissions, get_entry, submit_sleep


class TestSubmitSleep:

    def test_upsert_replaces_same_day(self, make_group):
        group_id = make_group(["u1"])
        submit_sleep(group_id, "u1", DAY, 400, source="Oura")
        submit_sleep(group_id, "u1", datetime(2023, 1, 8, 22, 15), 450, source="Garmin", note="nap included")

        entries = find_submissions(group_id, DAY, DAY)

        assert len(entries) == 1
        assert entries[0].sleep_minutes == 450
        assert entries[0].source == "Garmin"
        assert entries[0].note == "nap included"

    def test_non_member_rejected(self, make_group):
        group_id = make_group(["u1"])
        with pytest.raises(ValueError, match="not a member"):
            submit_sleep(group_id, "stranger", DAY, 400)

    @pytest.mark.parametrize("kwargs", [
        {"sleep_minutes": -1},
        {"sleep_minutes": 1441},
        {"sleep_minutes": 400, "source": "Fitbit"},
        {"sleep_minutes": 400, "confidence": "GUESS"},
    ])
    def test_constraint_errors(self, make_group, kwargs):
        group_id = make_group(["u1"])
        with pytest.raises(ValueError, match="Constraint Error"):
            submit_sleep(group_id, "u1", DAY, **kwargs)
        assert get_entry(group_id, "u1", DAY) is None

    def test_hours(self, make_group):
        group_id = make_group(["u1"])
        assert submit_sleep(group_id, "u1", DAY, 390).hours == 6.5


class TestFindSubmissions:

    def test_inclusive_day_bounds(self, make_group):
        group_id = make_group(["u1", "u2"])
        for back in range(0, 5):
            submit_sleep(group_id, "u1", DAY - timedelta(days=back), 400 + back)
        submit_sleep(group_id, "u2", DAY, 300)

        entries = find_submissions(group_id, DAY - timedelta(days=3), DAY - timedelta(days=1))

        assert [e.date for e in entries] == [date(2023, 1, 5), date(2023, 1, 6), date(2023, 1, 7)]
        assert all(e.user_id == "u1" for e in entries)

    def test_single_day(self, make_group):
        group_id = make_group(["u1", "u2"])
        submit_sleep(group_id, "u1", DAY, 400)
        submit_sleep(group_id, "u2", DAY, 300)
        submit_sleep(group_id, "u2", DAY + timedelta(days=1), 300)

        assert [e.user_id for e in find_submissions(group_id, DAY, DAY)] == ["u1", "u2"]
