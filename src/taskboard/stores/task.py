from __future__ import annotations

import logging
import sqlite3
from typing import Any

from ..cycles import would_create_parent_cycle
from ..errors import CycleError, NotFoundError, ValidationError
from ..models import (
    AUTHOR_MAX,
    BODY_MAX,
    DEFAULT_STATUS,
    TASK_STATUSES,
    TERMINAL_STATUSES,
    TITLE_MAX,
    UNSET,
    Task,
    now_ms,
)
from .db import Store

logger = logging.getLogger(__name__)

_TASK_SELECT = """
    SELECT id, title, body, author, status, parent_id, created_at, updated_at
    FROM tasks
"""


def _validate_title(title: object) -> None:
    if not isinstance(title, str) or not title.strip():
        raise ValidationError("title", "Title is required")
    if len(title) > TITLE_MAX:
        raise ValidationError(
            "title", f"Title must not exceed {TITLE_MAX} characters"
        )


def _validate_optional_text(field: str, value: object, limit: int) -> None:
    if value is None:
        return
    if not isinstance(value, str):
        raise ValidationError(field, f"{field.capitalize()} must be a string")
    if len(value) > limit:
        raise ValidationError(
            field, f"{field.capitalize()} must not exceed {limit} characters"
        )


def _validate_status(status: object) -> str:
    if not isinstance(status, str) or status not in TASK_STATUSES:
        raise ValidationError(
            "status",
            f"invalid status: {status} (expected one of: {', '.join(TASK_STATUSES)})",
        )
    return status


def _validate_parent_id(parent_id: object) -> int | None:
    if parent_id is None:
        return None
    if isinstance(parent_id, bool) or not isinstance(parent_id, int):
        raise ValidationError("parent_id", "Parent id must be an integer")
    return parent_id


def _row_to_task(row: sqlite3.Row) -> Task:
    parent_id = row["parent_id"]
    return Task(
        id=int(row["id"]),
        title=str(row["title"]),
        body=row["body"],
        author=row["author"],
        status=str(row["status"]),
        parent_id=int(parent_id) if parent_id is not None else None,
        created_at=int(row["created_at"]),
        updated_at=int(row["updated_at"]),
    )


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class TaskRepository:
    """CRUD for tasks; owns field validation and the status set."""

    def __init__(self, store: Store) -> None:
        self.store = store

    def exists(self, task_id: int) -> bool:
        row = self.store.fetchone("SELECT 1 FROM tasks WHERE id = ?", (task_id,))
        return row is not None

    def parent_id_of(self, task_id: int) -> int | None:
        row = self.store.fetchone(
            "SELECT parent_id FROM tasks WHERE id = ?", (task_id,)
        )
        if row is None or row["parent_id"] is None:
            return None
        return int(row["parent_id"])

    def _check_parent(self, task_id: int | None, parent_id: int | None) -> None:
        if parent_id is None:
            return
        if task_id is not None and parent_id == task_id:
            raise CycleError(f"task {task_id} cannot be its own parent")
        if not self.exists(parent_id):
            raise NotFoundError("parent task", parent_id)
        if task_id is not None and would_create_parent_cycle(
            task_id, parent_id, self.parent_id_of
        ):
            raise CycleError(
                f"cannot set parent of task {task_id} to {parent_id}: "
                "would create circular reference"
            )

    def create(
        self,
        title: str,
        *,
        body: str | None = None,
        author: str | None = None,
        status: str = DEFAULT_STATUS,
        parent_id: int | None = None,
    ) -> Task:
        _validate_title(title)
        _validate_optional_text("body", body, BODY_MAX)
        _validate_optional_text("author", author, AUTHOR_MAX)
        task_status = _validate_status(status)
        parent_key = _validate_parent_id(parent_id)

        now = now_ms()
        with self.store.transaction() as conn:
            self._check_parent(None, parent_key)
            cur = conn.execute(
                """
                INSERT INTO tasks(title, body, author, status, parent_id, created_at, updated_at)
                VALUES(?, ?, ?, ?, ?, ?, ?)
                """,
                (title, body or None, author or None, task_status, parent_key, now, now),
            )
            task_id = int(cur.lastrowid)

        logger.debug("task created id=%s status=%s parent=%s", task_id, task_status, parent_key)
        task = self.get(task_id)
        if task is None:
            raise RuntimeError("created task could not be loaded")
        return task

    def get(self, task_id: int) -> Task | None:
        row = self.store.fetchone(_TASK_SELECT + " WHERE id = ?", (task_id,))
        if row is None:
            return None
        return _row_to_task(row)

    def list(
        self,
        *,
        status: str | None = None,
        author: str | None = None,
        tag_ids: list[int] | None = None,
    ) -> list[Task]:
        where: list[str] = []
        params: list[Any] = []

        if status:
            where.append("t.status = ?")
            params.append(_validate_status(status))

        if author:
            where.append("t.author = ?")
            params.append(author)

        if tag_ids:
            placeholders = ", ".join("?" for _ in tag_ids)
            where.append(
                "EXISTS (SELECT 1 FROM task_tags tt "
                f"WHERE tt.task_id = t.id AND tt.tag_id IN ({placeholders}))"
            )
            params.extend(int(tag_id) for tag_id in tag_ids)

        query = """
            SELECT t.id, t.title, t.body, t.author, t.status, t.parent_id,
                   t.created_at, t.updated_at
            FROM tasks t
        """
        if where:
            query += " WHERE " + " AND ".join(where)
        query += " ORDER BY t.created_at DESC, t.id DESC"

        return [_row_to_task(row) for row in self.store.fetchall(query, params)]

    def update(
        self,
        task_id: int,
        *,
        title: Any = UNSET,
        body: Any = UNSET,
        author: Any = UNSET,
        status: Any = UNSET,
        parent_id: Any = UNSET,
    ) -> Task | None:
        """Apply a partial update; fields left as ``UNSET`` are unchanged.

        ``None`` clears ``body``, ``author`` and ``parent_id``. Returns None
        when the task does not exist.
        """
        with self.store.transaction() as conn:
            if not self.exists(task_id):
                return None

            set_parts: list[str] = []
            params: list[Any] = []

            if title is not UNSET:
                _validate_title(title)
                set_parts.append("title = ?")
                params.append(title)

            if body is not UNSET:
                _validate_optional_text("body", body, BODY_MAX)
                set_parts.append("body = ?")
                params.append(body)

            if author is not UNSET:
                _validate_optional_text("author", author, AUTHOR_MAX)
                set_parts.append("author = ?")
                params.append(author)

            if status is not UNSET:
                set_parts.append("status = ?")
                params.append(_validate_status(status))

            if parent_id is not UNSET:
                parent_key = _validate_parent_id(parent_id)
                self._check_parent(task_id, parent_key)
                set_parts.append("parent_id = ?")
                params.append(parent_key)

            set_parts.append("updated_at = ?")
            params.extend((now_ms(), task_id))
            conn.execute(
                f"UPDATE tasks SET {', '.join(set_parts)} WHERE id = ?",
                tuple(params),
            )

        logger.debug("task updated id=%s columns=%s", task_id, len(set_parts) - 1)
        return self.get(task_id)

    def delete(self, task_id: int) -> bool:
        # Children are orphaned by ON DELETE SET NULL; edges, tag links and
        # metadata go through ON DELETE CASCADE.
        with self.store.transaction() as conn:
            cur = conn.execute("DELETE FROM tasks WHERE id = ?", (task_id,))
            deleted = cur.rowcount > 0
        if deleted:
            logger.debug("task deleted id=%s", task_id)
        return deleted

    def count_by_status(self) -> dict[str, int]:
        counts = {status: 0 for status in TASK_STATUSES}
        rows = self.store.fetchall(
            "SELECT status, COUNT(*) AS count FROM tasks GROUP BY status"
        )
        for row in rows:
            status = str(row["status"])
            if status in counts:
                counts[status] = int(row["count"])
            else:
                logger.warning("ignoring %s task(s) with unknown status %r", row["count"], status)
        return counts

    def search(self, keyword: str, *, include_terminal: bool = False) -> list[Task]:
        like = f"%{_escape_like(keyword)}%"
        query = _TASK_SELECT + " WHERE (title LIKE ? ESCAPE '\\' OR body LIKE ? ESCAPE '\\')"
        params: list[Any] = [like, like]
        if not include_terminal:
            terminal = sorted(TERMINAL_STATUSES)
            query += f" AND status NOT IN ({', '.join('?' for _ in terminal)})"
            params.extend(terminal)
        query += " ORDER BY created_at DESC, id DESC"
        return [_row_to_task(row) for row in self.store.fetchall(query, params)]

    def children_of(self, task_id: int) -> list[Task]:
        rows = self.store.fetchall(
            _TASK_SELECT + " WHERE parent_id = ? ORDER BY created_at ASC, id ASC",
            (task_id,),
        )
        return [_row_to_task(row) for row in rows]
