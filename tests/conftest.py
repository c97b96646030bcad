from datetime import date

import pytest

from init_db import initialize_db
from services.config_service import set_rules
from services.group_service import create_group, add_member
from services.rules import THRESHOLD

DAY = date(2023, 1, 8)

PAYLOAD = {
    "buckets": [
        {"max": 4.5, "points": -1},
        {"min": 4.5, "max": 5.5, "points": 0},
        {"min": 5.5, "max": 6.5, "points": 1},
        {"min": 6.5, "max": 7.5, "points": 2},
        {"min": 7.5, "points": 3},
    ],
    "nonSubmitPoints": -1,
    "thumbsUpBonus": 1,
}


@pytest.fixture
def db(tmp_path, monkeypatch):
    """Fresh schema in a temp file; every service connection points at it."""
    path = str(tmp_path / "test_league.db")
    monkeypatch.setenv("SLEEP_LEAGUE_DB", path)
    initialize_db(path)
    return path


@pytest.fixture
def make_group(db):
    def _make(members, mode=THRESHOLD, payload=PAYLOAD, active_from=date(2022, 12, 1)):
        group_id = create_group("Test Group", owner_id=members[0])
        for user_id in members[1:]:
            add_member(group_id, user_id)
        if payload is not None:
            set_rules(group_id, mode, payload, active_from=active_from)
        return group_id
    return _make
