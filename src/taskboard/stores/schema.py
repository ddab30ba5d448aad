from __future__ import annotations

import logging
import sqlite3

from ..models import TASK_STATUSES

logger = logging.getLogger(__name__)


_STATUS_CHECK = ", ".join(f"'{status}'" for status in TASK_STATUSES)

_TASKS_TABLE = f"""
CREATE TABLE IF NOT EXISTS {{name}} (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    title TEXT NOT NULL,
    body TEXT,
    author TEXT,
    status TEXT NOT NULL DEFAULT 'backlog' CHECK(status IN ({_STATUS_CHECK})),
    parent_id INTEGER DEFAULT NULL REFERENCES tasks(id) ON DELETE SET NULL,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL
);
"""

_SCHEMA = (
    _TASKS_TABLE.format(name="tasks")
    + """
CREATE TABLE IF NOT EXISTS task_blocks (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    blocker_task_id INTEGER NOT NULL,
    blocked_task_id INTEGER NOT NULL,
    created_at INTEGER NOT NULL,
    FOREIGN KEY(blocker_task_id) REFERENCES tasks(id) ON DELETE CASCADE,
    FOREIGN KEY(blocked_task_id) REFERENCES tasks(id) ON DELETE CASCADE,
    UNIQUE(blocker_task_id, blocked_task_id),
    CHECK(blocker_task_id != blocked_task_id)
);
CREATE TABLE IF NOT EXISTS tags (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    name TEXT NOT NULL UNIQUE,
    created_at INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS task_tags (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    task_id INTEGER NOT NULL,
    tag_id INTEGER NOT NULL,
    created_at INTEGER NOT NULL,
    FOREIGN KEY(task_id) REFERENCES tasks(id) ON DELETE CASCADE,
    FOREIGN KEY(tag_id) REFERENCES tags(id) ON DELETE CASCADE,
    UNIQUE(task_id, tag_id)
);
CREATE TABLE IF NOT EXISTS task_metadata (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    task_id INTEGER NOT NULL,
    key TEXT NOT NULL,
    value TEXT NOT NULL,
    created_at INTEGER NOT NULL,
    updated_at INTEGER NOT NULL,
    FOREIGN KEY(task_id) REFERENCES tasks(id) ON DELETE CASCADE,
    UNIQUE(task_id, key)
);
CREATE INDEX IF NOT EXISTS idx_task_blocks_blocker ON task_blocks(blocker_task_id);
CREATE INDEX IF NOT EXISTS idx_task_blocks_blocked ON task_blocks(blocked_task_id);
CREATE INDEX IF NOT EXISTS idx_task_tags_task_id ON task_tags(task_id);
CREATE INDEX IF NOT EXISTS idx_task_tags_tag_id ON task_tags(tag_id);
CREATE INDEX IF NOT EXISTS idx_task_metadata_task_id ON task_metadata(task_id);
"""
)

_TASK_INDEXES = """
CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks(status);
CREATE INDEX IF NOT EXISTS idx_tasks_author ON tasks(author);
CREATE INDEX IF NOT EXISTS idx_tasks_parent_id ON tasks(parent_id);
"""

_TASK_COLUMNS = (
    "id",
    "title",
    "body",
    "author",
    "status",
    "parent_id",
    "created_at",
    "updated_at",
)

TABLES = ("tasks", "task_blocks", "tags", "task_tags", "task_metadata")


def table_columns(conn: sqlite3.Connection, table: str) -> set[str]:
    return {
        str(row[1]) for row in conn.execute(f"PRAGMA table_info({table})").fetchall()
    }


def _table_sql(conn: sqlite3.Connection, table: str) -> str:
    row = conn.execute(
        "SELECT sql FROM sqlite_master WHERE type='table' AND name=?",
        (table,),
    ).fetchone()
    return str(row[0]) if row is not None and row[0] is not None else ""


def apply_schema(conn: sqlite3.Connection) -> None:
    """Create missing tables and bring an older database up to date.

    Expects a connection in autocommit mode (``isolation_level=None``);
    the tasks rebuild has to toggle ``foreign_keys``, which SQLite ignores
    inside a transaction.
    """
    conn.executescript(_SCHEMA)
    _migrate_schema(conn)
    conn.executescript(_TASK_INDEXES)


def _migrate_schema(conn: sqlite3.Connection) -> None:
    task_columns = table_columns(conn, "tasks")
    if "parent_id" not in task_columns:
        conn.execute(
            "ALTER TABLE tasks ADD COLUMN parent_id INTEGER DEFAULT NULL "
            "REFERENCES tasks(id) ON DELETE SET NULL"
        )
        logger.info("schema migration: added column tasks.parent_id")

    missing = [
        status
        for status in TASK_STATUSES
        if f"'{status}'" not in _table_sql(conn, "tasks")
    ]
    if missing:
        _rebuild_tasks_table(conn)
        logger.info(
            "schema migration: rebuilt tasks table for statuses %s",
            ", ".join(missing),
        )


def _rebuild_tasks_table(conn: sqlite3.Connection) -> None:
    # Dropping the old table with foreign keys enabled would cascade into
    # task_blocks, task_tags and task_metadata.
    columns = ", ".join(_TASK_COLUMNS)
    conn.execute("PRAGMA foreign_keys=OFF")
    try:
        conn.execute("BEGIN IMMEDIATE")
        try:
            conn.execute("DROP TABLE IF EXISTS tasks_new")
            conn.execute(_TASKS_TABLE.format(name="tasks_new").strip().rstrip(";"))
            conn.execute(
                f"INSERT INTO tasks_new ({columns}) SELECT {columns} FROM tasks"
            )
            conn.execute("DROP TABLE tasks")
            conn.execute("ALTER TABLE tasks_new RENAME TO tasks")
            conn.execute("COMMIT")
        except BaseException:
            conn.execute("ROLLBACK")
            raise
    finally:
        conn.execute("PRAGMA foreign_keys=ON")
