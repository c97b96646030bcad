import os
import sqlite3
import contextlib
from dotenv import load_dotenv

load_dotenv()

DB_NAME = "sleep_league.db"

def get_db_name() -> str:
    return os.getenv("SLEEP_LEAGUE_DB", DB_NAME)

def get_connection():
    conn = sqlite3.connect(get_db_name())
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON;")
    conn.execute("PRAGMA journal_mode = WAL;")
    conn.execute("PRAGMA busy_timeout = 5000;")
    return conn

@contextlib.contextmanager
def get_cursor(commit=False, immediate=False):
    """
    Yields a cursor on a fresh connection.
    immediate=True takes the database write lock up front (BEGIN IMMEDIATE),
    so everything done through the cursor is one serialized unit of work.
    """
    conn = get_connection()
    try:
        c = conn.cursor()
        if immediate:
            c.execute("BEGIN IMMEDIATE")
        yield c
        if commit:
            conn.commit()
    except Exception as e:
        conn.rollback()
        raise e
    finally:
        conn.close()

@contextlib.contextmanager
def use_cursor(cursor=None, commit=False):
    """Reuses the caller's cursor (and its transaction) when one is given."""
    if cursor is not None:
        yield cursor
        return
    with get_cursor(commit=commit) as c:
        yield c
