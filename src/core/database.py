"""
SQLite storage for vacation request records.
"""

import sqlite3
import uuid
from datetime import datetime, timezone
from pathlib import Path

from core.config import BATCH_SIZE, DB_PATH

REQUEST_COLUMNS = [
    "id",
    "user_name",
    "user_email",
    "company",
    "start_date",
    "end_date",
    "type",
    "status",
    "is_half_day",
    "half_day_type",
    "duration_days",
    "reason",
    "calendar_event_id",
    "calendar_synced_at",
    "calendar_sync_error",
    "calendar_synced_start",
    "calendar_synced_end",
    "calendar_synced_window",
    "reviewed_by",
    "reviewer_email",
    "reviewed_at",
    "admin_comment",
    "last_reminded_at",
    "created_at",
]
IMMUTABLE_COLUMNS = {"id", "created_at"}

# Linkage fields cleared whenever an event is removed or found stale
CALENDAR_LINK_CLEARED = {
    "calendar_event_id": None,
    "calendar_synced_start": None,
    "calendar_synced_end": None,
    "calendar_synced_window": None,
}


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def get_connection(db_path: Path | str = DB_PATH) -> sqlite3.Connection:
    """Get a database connection returning rows by column name."""
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def init_schema(conn: sqlite3.Connection):
    """Create tables and indexes if they don't exist."""
    cursor = conn.cursor()

    cursor.execute("""
        CREATE TABLE IF NOT EXISTS vacation_requests (
            id TEXT PRIMARY KEY,
            user_name TEXT,
            user_email TEXT,
            company TEXT,
            start_date TEXT NOT NULL,
            end_date TEXT NOT NULL,
            type TEXT NOT NULL DEFAULT 'Other',
            status TEXT NOT NULL DEFAULT 'Pending',
            is_half_day INTEGER NOT NULL DEFAULT 0,
            half_day_type TEXT CHECK(half_day_type IN ('morning', 'afternoon')),
            duration_days REAL,
            reason TEXT,
            calendar_event_id TEXT,
            calendar_synced_at TEXT,
            calendar_sync_error TEXT,
            calendar_synced_start TEXT,
            calendar_synced_end TEXT,
            calendar_synced_window TEXT,
            reviewed_by TEXT,
            reviewer_email TEXT,
            reviewed_at TEXT,
            admin_comment TEXT,
            last_reminded_at TEXT,
            created_at TEXT NOT NULL
        )
    """)

    # Databases created before the event window was tracked
    existing = {row[1] for row in cursor.execute("PRAGMA table_info(vacation_requests)")}
    if "calendar_synced_window" not in existing:
        cursor.execute("ALTER TABLE vacation_requests ADD COLUMN calendar_synced_window TEXT")

    # API request logging
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS api_requests (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            request_id TEXT UNIQUE NOT NULL,
            timestamp TEXT NOT NULL,
            endpoint TEXT NOT NULL,
            method TEXT NOT NULL,
            client_ip TEXT,
            vacation_request_id TEXT,
            status_code INTEGER NOT NULL,
            error_code TEXT,
            error_message TEXT,
            processing_time_ms INTEGER NOT NULL
        )
    """)
    cursor.execute("""
        CREATE TABLE IF NOT EXISTS api_request_details (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            request_id TEXT NOT NULL,
            detail_type TEXT NOT NULL CHECK(detail_type IN ('validation_error', 'calendar_sync', 'warning')),
            message TEXT NOT NULL,
            FOREIGN KEY (request_id) REFERENCES api_requests(request_id)
        )
    """)

    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_vacation_requests_status ON vacation_requests(status)"
    )
    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_vacation_requests_dates ON vacation_requests(start_date, end_date)"
    )
    cursor.execute(
        "CREATE INDEX IF NOT EXISTS idx_api_requests_timestamp ON api_requests(timestamp)"
    )

    conn.commit()


def row_to_request(row: sqlite3.Row) -> dict:
    request = dict(row)
    request["is_half_day"] = bool(request.get("is_half_day"))
    return request


def _check_columns(fields: dict):
    unknown = set(fields) - set(REQUEST_COLUMNS)
    if unknown:
        raise ValueError(f"Unknown vacation request fields: {', '.join(sorted(unknown))}")


def insert_request(conn: sqlite3.Connection, fields: dict) -> dict:
    """Insert a new request, assigning id and created_at. Returns the stored record."""
    _check_columns(fields)
    record = {**fields}
    record["id"] = record.get("id") or uuid.uuid4().hex
    record["created_at"] = record.get("created_at") or utc_now_iso()
    record["is_half_day"] = 1 if record.get("is_half_day") else 0

    columns = list(record.keys())
    placeholders = ", ".join("?" for _ in columns)
    conn.execute(
        f"INSERT INTO vacation_requests ({', '.join(columns)}) VALUES ({placeholders})",
        [record[c] for c in columns],
    )
    conn.commit()
    return get_request(conn, record["id"])


def get_request(conn: sqlite3.Connection, request_id: str) -> dict | None:
    row = conn.execute(
        "SELECT * FROM vacation_requests WHERE id = ?", (request_id,)
    ).fetchone()
    return row_to_request(row) if row else None


def list_requests(conn: sqlite3.Connection) -> list[dict]:
    """All requests in insertion order."""
    rows = conn.execute("SELECT * FROM vacation_requests ORDER BY rowid").fetchall()
    return [row_to_request(row) for row in rows]


def list_requests_by_status(conn: sqlite3.Connection, statuses: list[str]) -> list[dict]:
    """Requests whose stored status is one of statuses (case-insensitive)."""
    if not statuses:
        return []
    placeholders = ", ".join("?" for _ in statuses)
    rows = conn.execute(
        f"SELECT * FROM vacation_requests WHERE lower(status) IN ({placeholders}) ORDER BY rowid",
        [s.lower() for s in statuses],
    ).fetchall()
    return [row_to_request(row) for row in rows]


def list_requests_in_range(conn: sqlite3.Connection, start_date: str, end_date: str) -> list[dict]:
    """Requests whose date range touches [start_date, end_date] (ISO string compare)."""
    rows = conn.execute(
        """
        SELECT * FROM vacation_requests
        WHERE start_date <= ? AND end_date >= ?
        ORDER BY rowid
        """,
        (end_date, start_date),
    ).fetchall()
    return [row_to_request(row) for row in rows]


def _update_statement(fields: dict) -> tuple[str, list]:
    _check_columns(fields)
    immutable = IMMUTABLE_COLUMNS & set(fields)
    if immutable:
        raise ValueError(f"Fields cannot be changed: {', '.join(sorted(immutable))}")

    values = dict(fields)
    if "is_half_day" in values:
        values["is_half_day"] = 1 if values["is_half_day"] else 0

    assignments = ", ".join(f"{column} = ?" for column in values)
    return f"UPDATE vacation_requests SET {assignments} WHERE id = ?", list(values.values())


def update_request_fields(conn: sqlite3.Connection, request_id: str, fields: dict) -> bool:
    """Partial update. Returns False if the request does not exist."""
    if not fields:
        return get_request(conn, request_id) is not None

    sql, values = _update_statement(fields)
    cursor = conn.execute(sql, [*values, request_id])
    conn.commit()
    return cursor.rowcount > 0


def delete_request(conn: sqlite3.Connection, request_id: str) -> bool:
    cursor = conn.execute("DELETE FROM vacation_requests WHERE id = ?", (request_id,))
    conn.commit()
    return cursor.rowcount > 0


def chunked(items: list, size: int = BATCH_SIZE):
    for i in range(0, len(items), size):
        yield items[i:i + size]


def batch_update(
    conn: sqlite3.Connection, updates: list[tuple[str, dict]], batch_size: int = BATCH_SIZE
) -> int:
    """
    Apply (request_id, fields) updates in chunks, committing each chunk.

    Chunks are not rolled back together: a failure leaves earlier chunks committed.
    """
    written = 0
    for chunk in chunked(updates, batch_size):
        for request_id, fields in chunk:
            sql, values = _update_statement(fields)
            conn.execute(sql, [*values, request_id])
        conn.commit()
        written += len(chunk)
    return written


def batch_delete(
    conn: sqlite3.Connection, request_ids: list[str], batch_size: int = BATCH_SIZE
) -> int:
    """Delete requests in committed chunks. Returns the number of rows removed."""
    deleted = 0
    for chunk in chunked(request_ids, batch_size):
        placeholders = ", ".join("?" for _ in chunk)
        cursor = conn.execute(
            f"DELETE FROM vacation_requests WHERE id IN ({placeholders})", chunk
        )
        conn.commit()
        deleted += cursor.rowcount
    return deleted
