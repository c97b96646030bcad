"""
Tests for rule storage and active-config resolution.
"""

import sqlite3
from datetime import date

import pytest
from conftest import DAY, PAYLOAD
from services.db import get_cursor
from services.rules import RANK, THRESHOLD, RankRules, RuleValidationError, ThresholdRules
from services.config_service import get_active_config, list_configs, set_rules


class TestGetActiveConfig:

    def test_no_rules_yet(self, make_group):
        group_id = make_group(["u1"], payload=None)
        assert get_active_config(group_id, DAY) is None

    def test_latest_active_from_not_after_day(self, make_group):
        group_id = make_group(["u1"], active_from=date(2023, 1, 1))
        set_rules(group_id, RANK, {}, active_from=date(2023, 1, 5))
        set_rules(group_id, THRESHOLD, PAYLOAD, active_from=date(2023, 1, 20))

        assert get_active_config(group_id, date(2022, 12, 31)) is None
        assert get_active_config(group_id, date(2023, 1, 4)).mode == THRESHOLD
        assert get_active_config(group_id, date(2023, 1, 5)).mode == RANK
        assert isinstance(get_active_config(group_id, DAY).rules, RankRules)
        assert get_active_config(group_id, date(2023, 2, 1)).active_from_date == date(2023, 1, 20)

    def test_same_day_newest_wins(self, make_group):
        group_id = make_group(["u1"], active_from=DAY)
        newer = set_rules(group_id, RANK, {}, active_from=DAY, note="switch to rank")

        active = get_active_config(group_id, DAY)

        assert active.id == newer.id
        assert active.note == "switch to rank"

    def test_groups_are_separate(self, make_group):
        first = make_group(["u1"])
        second = make_group(["u2"], payload=None)
        assert get_active_config(first, DAY) is not None
        assert get_active_config(second, DAY) is None


class TestSetRules:

    def test_stored_rules_are_typed(self, make_group):
        group_id = make_group(["u1"], payload=None)
        config = set_rules(group_id, THRESHOLD, PAYLOAD, active_from=DAY)

        assert isinstance(config.rules, ThresholdRules)
        assert get_active_config(group_id, DAY) == config

    def test_invalid_rules_rejected_before_write(self, make_group):
        group_id = make_group(["u1"], payload=None)
        with pytest.raises(RuleValidationError):
            set_rules(group_id, THRESHOLD, {"buckets": []}, active_from=DAY)
        assert list_configs(group_id) == []

    def test_non_finite_bound_rejected_before_write(self, make_group):
        """NaN is valid to json.loads but never reaches the json_valid CHECK."""
        group_id = make_group(["u1"], payload=None)
        with pytest.raises(RuleValidationError, match="finite number"):
            set_rules(group_id, THRESHOLD, '{"buckets": [{"min": NaN, "points": 1}]}', active_from=DAY)
        assert list_configs(group_id) == []

    def test_history_newest_first(self, make_group):
        group_id = make_group(["u1"], active_from=date(2023, 1, 1))
        set_rules(group_id, RANK, {}, active_from=date(2023, 2, 1))
        assert [c.active_from_date for c in list_configs(group_id)] == [date(2023, 2, 1), date(2023, 1, 1)]

    def test_rows_are_immutable(self, make_group):
        group_id = make_group(["u1"])
        with pytest.raises(sqlite3.IntegrityError, match="IMMUTABILITY VIOLATION"):
            with get_cursor(commit=True) as c:
                c.execute("UPDATE scoring_config SET mode = 'RANK' WHERE group_id = ?", (group_id,))
        with pytest.raises(sqlite3.IntegrityError, match="IMMUTABILITY VIOLATION"):
            with get_cursor(commit=True) as c:
                c.execute("DELETE FROM scoring_config WHERE group_id = ?", (group_id,))
