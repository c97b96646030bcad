import sqlite3
import secrets
import uuid
from typing import List

from services.db import get_cursor, use_cursor

def create_group(name: str, owner_id: str, join_code: str = None, group_id: str = None) -> str:
    """Creates a group with its owner as first member and returns the group id."""
    group_id = group_id or uuid.uuid4().hex
    join_code = join_code or secrets.token_hex(3).upper()
    with get_cursor(commit=True) as c:
        try:
            c.execute("INSERT INTO groups (id, name, join_code, owner_id) VALUES (?, ?, ?, ?)", (group_id, name, join_code, owner_id))
            c.execute("INSERT INTO group_members (group_id, user_id, role) VALUES (?, ?, 'OWNER')", (group_id, owner_id))
        except sqlite3.IntegrityError as e:
            if "UNIQUE" in str(e): raise ValueError(f"Group id or join code already taken: {e}")
            raise e
    return group_id

def add_member(group_id: str, user_id: str, role: str = 'MEMBER'):
    with get_cursor(commit=True) as c:
        try:
            c.execute("INSERT OR IGNORE INTO group_members (group_id, user_id, role) VALUES (?, ?, ?)", (group_id, user_id, role))
        except sqlite3.IntegrityError as e:
            if "FOREIGN KEY" in str(e): raise ValueError(f"Group {group_id} does not exist.")
            raise e

def list_members(group_id: str, cursor=None) -> List[str]:
    with use_cursor(cursor) as c:
        c.execute("SELECT user_id FROM group_members WHERE group_id = ? ORDER BY user_id", (group_id,))
        return [r['user_id'] for r in c.fetchall()]

def list_groups():
    with get_cursor() as c:
        c.execute("SELECT id, name, join_code FROM groups ORDER BY created_at, name")
        return c.fetchall()
