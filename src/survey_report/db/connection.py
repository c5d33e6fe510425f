from __future__ import annotations

import sqlite3


def connect(db_path: str) -> sqlite3.Connection:
    # Readers run concurrently when handlers are parallelised; a generous busy timeout avoids lock errors.
    conn = sqlite3.connect(db_path, timeout=60.0, check_same_thread=False)
    if db_path != ":memory:":
        conn.execute("PRAGMA journal_mode=WAL;")
        conn.execute("PRAGMA synchronous=NORMAL;")
    conn.execute("PRAGMA foreign_keys = ON;")
    conn.row_factory = sqlite3.Row
    return conn
