from __future__ import annotations

import logging
import sqlite3

from ..errors import NotFoundError, ValidationError
from ..models import META_KEY_MAX, META_VALUE_MAX, Metadata, now_ms
from .db import Store
from .task import TaskRepository

logger = logging.getLogger(__name__)

_METADATA_SELECT = """
    SELECT id, task_id, key, value, created_at, updated_at
    FROM task_metadata
"""


def _validate_key(key: object) -> str:
    if not isinstance(key, str) or not key.strip():
        raise ValidationError("key", "Key is required")
    if len(key) > META_KEY_MAX:
        raise ValidationError("key", f"Key must not exceed {META_KEY_MAX} characters")
    return key


def _validate_value(value: object) -> str:
    if not isinstance(value, str):
        raise ValidationError("value", "Value must be a string")
    if len(value) > META_VALUE_MAX:
        raise ValidationError(
            "value", f"Value must not exceed {META_VALUE_MAX} characters"
        )
    return value


def _row_to_metadata(row: sqlite3.Row) -> Metadata:
    return Metadata(
        id=int(row["id"]),
        task_id=int(row["task_id"]),
        key=str(row["key"]),
        value=str(row["value"]),
        created_at=int(row["created_at"]),
        updated_at=int(row["updated_at"]),
    )


class MetadataManager:
    """Key/value pairs attached to a task, unique per ``(task_id, key)``."""

    def __init__(self, store: Store, tasks: TaskRepository) -> None:
        self.store = store
        self.tasks = tasks

    def set(self, task_id: int, key: str, value: str) -> Metadata:
        """Insert or overwrite *key* on *task_id*.

        An overwrite keeps the row's id and ``created_at`` and bumps
        ``updated_at``.
        """
        meta_key = _validate_key(key)
        meta_value = _validate_value(value)

        now = now_ms()
        with self.store.transaction() as conn:
            if not self.tasks.exists(task_id):
                raise NotFoundError("task", task_id)
            conn.execute(
                """
                INSERT INTO task_metadata(task_id, key, value, created_at, updated_at)
                VALUES(?, ?, ?, ?, ?)
                ON CONFLICT(task_id, key) DO UPDATE SET
                    value = excluded.value,
                    updated_at = excluded.updated_at
                """,
                (task_id, meta_key, meta_value, now, now),
            )

        logger.debug("metadata set task=%s key=%s", task_id, meta_key)
        meta = self.get(task_id, meta_key)
        if meta is None:
            raise RuntimeError("metadata could not be loaded after write")
        return meta

    def get(self, task_id: int, key: str) -> Metadata | None:
        row = self.store.fetchone(
            _METADATA_SELECT + " WHERE task_id = ? AND key = ?", (task_id, key)
        )
        return _row_to_metadata(row) if row is not None else None

    def list(self, task_id: int) -> list[Metadata]:
        rows = self.store.fetchall(
            _METADATA_SELECT + " WHERE task_id = ? ORDER BY created_at DESC, id DESC",
            (task_id,),
        )
        return [_row_to_metadata(row) for row in rows]

    def delete(self, task_id: int, key: str) -> bool:
        with self.store.transaction() as conn:
            cur = conn.execute(
                "DELETE FROM task_metadata WHERE task_id = ? AND key = ?",
                (task_id, key),
            )
            return cur.rowcount > 0

    def delete_all(self, task_id: int) -> int:
        with self.store.transaction() as conn:
            cur = conn.execute(
                "DELETE FROM task_metadata WHERE task_id = ?", (task_id,)
            )
            removed = max(cur.rowcount, 0)
        if removed:
            logger.debug("metadata cleared task=%s count=%s", task_id, removed)
        return removed

    def all_by_task(self) -> dict[int, list[Metadata]]:
        rows = self.store.fetchall(
            _METADATA_SELECT + " ORDER BY task_id ASC, created_at DESC, id DESC"
        )
        grouped: dict[int, list[Metadata]] = {}
        for row in rows:
            meta = _row_to_metadata(row)
            grouped.setdefault(meta.task_id, []).append(meta)
        return grouped
