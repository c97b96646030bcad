import sqlite3
import os
import sys

from services.db import get_db_name

def check_json_support():
    try:
        conn = sqlite3.connect(":memory:")
        conn.execute('SELECT json_valid("{}")')
        conn.close()
        return True
    except sqlite3.OperationalError:
        return False

def initialize_db(db_name: str = None, reset: bool = True):
    db_name = db_name or get_db_name()

    if not check_json_support():
        print("❌ CRITICAL: SQLite JSON1 extension missing.")
        sys.exit(1)

    if reset and os.path.exists(db_name):
        os.remove(db_name)
        print(f"⚠️  Removed existing {db_name} (Clean Slate)")

    conn = sqlite3.connect(db_name)
    c = conn.cursor()
    c.execute("PRAGMA foreign_keys = ON;")
    c.execute("PRAGMA journal_mode = WAL;")

    # --- TABLES ---

    # 1. GROUPS
    c.execute("""
    CREATE TABLE groups (
        id TEXT PRIMARY KEY,
        name TEXT NOT NULL,
        join_code TEXT NOT NULL UNIQUE,
        owner_id TEXT NOT NULL,
        created_at INTEGER DEFAULT (strftime('%s', 'now'))
    );
    """)

    # 2. MEMBERSHIP
    c.execute("""
    CREATE TABLE group_members (
        group_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        role TEXT NOT NULL DEFAULT 'MEMBER' CHECK(role IN ('OWNER', 'MEMBER')),
        joined_at INTEGER DEFAULT (strftime('%s', 'now')),
        PRIMARY KEY (group_id, user_id),
        FOREIGN KEY (group_id) REFERENCES groups(id) ON DELETE RESTRICT
    );
    """)

    # 3. SCORING CONFIG (versioned by active_from_date)
    c.execute("""
    CREATE TABLE scoring_config (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        group_id TEXT NOT NULL,
        mode TEXT NOT NULL CHECK(mode IN ('THRESHOLD', 'RANK')),
        active_from_date DATE NOT NULL,
        rules JSON NOT NULL CHECK(json_valid(rules)),
        change_log_note TEXT,
        created_at INTEGER DEFAULT (strftime('%s', 'now')),
        FOREIGN KEY (group_id) REFERENCES groups(id) ON DELETE RESTRICT
    );
    """)

    # 4. SLEEP ENTRIES (one per group, user and calendar day)
    c.execute("""
    CREATE TABLE sleep_entries (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        group_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        date DATE NOT NULL,
        sleep_minutes INTEGER NOT NULL CHECK(sleep_minutes BETWEEN 0 AND 1440),
        source TEXT NOT NULL CHECK(source IN ('Oura', 'Apple', 'Garmin', 'Manual')),
        confidence TEXT NOT NULL CHECK(confidence IN ('MEASURED', 'ESTIMATED')),
        note TEXT,
        created_at INTEGER DEFAULT (strftime('%s', 'now')),
        updated_at INTEGER DEFAULT (strftime('%s', 'now')),
        UNIQUE (group_id, user_id, date),
        FOREIGN KEY (group_id, user_id) REFERENCES group_members(group_id, user_id) ON DELETE RESTRICT
    );
    """)

    # 5. SCORE EVENTS (derived, regenerated per day)
    c.execute("""
    CREATE TABLE score_events (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        group_id TEXT NOT NULL,
        user_id TEXT NOT NULL,
        date DATE NOT NULL,
        points INTEGER NOT NULL,
        reason TEXT NOT NULL,
        metadata JSON NOT NULL DEFAULT '{}' CHECK(json_valid(metadata)),
        computed_at INTEGER DEFAULT (strftime('%s', 'now')),
        FOREIGN KEY (group_id) REFERENCES groups(id) ON DELETE RESTRICT
    );
    """)

    # --- TRIGGERS ---
    c.execute("CREATE TRIGGER block_update_scoring_config BEFORE UPDATE ON scoring_config BEGIN SELECT RAISE(ABORT, 'IMMUTABILITY VIOLATION: scoring_config is insert-only.'); END;")
    c.execute("CREATE TRIGGER block_delete_scoring_config BEFORE DELETE ON scoring_config BEGIN SELECT RAISE(ABORT, 'IMMUTABILITY VIOLATION: scoring_config deletion forbidden.'); END;")

    c.execute("CREATE INDEX idx_config_lookup ON scoring_config(group_id, active_from_date, id);")
    c.execute("CREATE INDEX idx_entries_day ON sleep_entries(group_id, date);")
    c.execute("CREATE INDEX idx_events_day ON score_events(group_id, date, reason);")

    conn.commit()
    conn.close()
    print(f"✅ System Initialized: {db_name} created.")

if __name__ == "__main__":
    initialize_db()
