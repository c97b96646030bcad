import random
from datetime import date, timedelta

from init_db import initialize_db
from services.config_service import set_rules
from services.group_service import create_group, add_member
from services.rules import THRESHOLD, default_threshold_payload
from services.sleep_service import SOURCES, submit_sleep
from services.scoring_service import calculate_daily_scores

USERS = ["alice", "bob", "charlie", "david"]
BASE_HOURS = {"bob": 8, "david": 5}

def boot_system(days: int = 14):
    initialize_db()

    group_id = create_group("The Dream Team", owner_id=USERS[0], join_code="DREAM1")
    for user_id in USERS[1:]:
        add_member(group_id, user_id)
    print(f"Created Group: {group_id}")

    config = set_rules(group_id, THRESHOLD, default_threshold_payload(),
                       active_from=date.today() - timedelta(days=30), note="Initial Boot")
    print(f"Created Config ID: {config.id} (active from {config.active_from_date})")

    today = date.today()
    for i in range(days, -1, -1):
        day = today - timedelta(days=i)
        for user_id in USERS:
            # ~10% of days go unlogged
            if random.random() > 0.9:
                continue
            minutes = BASE_HOURS.get(user_id, 7) * 60 + random.randint(-30, 29)
            submit_sleep(group_id, user_id, day, minutes, source=random.choice(SOURCES))

        result = calculate_daily_scores(group_id, day)
        print(f"Scored {day}: {result.status} ({len(result.events)} events)")

if __name__ == "__main__":
    boot_system()
