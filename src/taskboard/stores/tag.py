from __future__ import annotations

import logging
import sqlite3

from ..errors import ConflictError, NotFoundError, ValidationError
from ..models import TAG_NAME_MAX, Tag, Task, TaskTag, now_ms
from .db import Store
from .task import TaskRepository, _row_to_task

logger = logging.getLogger(__name__)


def _validate_name(name: object) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("name", "Name is required")
    if len(name) > TAG_NAME_MAX:
        raise ValidationError(
            "name", f"Name must not exceed {TAG_NAME_MAX} characters"
        )
    if name.strip().isdigit():
        raise ValidationError("name", "Tag name cannot be purely numeric")
    return name


def _row_to_tag(row: sqlite3.Row) -> Tag:
    return Tag(
        id=int(row["id"]),
        name=str(row["name"]),
        created_at=int(row["created_at"]),
    )


class TagManager:
    def __init__(self, store: Store) -> None:
        self.store = store

    def create(self, name: str) -> Tag:
        tag_name = _validate_name(name)
        with self.store.transaction() as conn:
            if self.get_by_name(tag_name) is not None:
                raise ConflictError(f'Tag with name "{tag_name}" already exists')
            try:
                cur = conn.execute(
                    "INSERT INTO tags(name, created_at) VALUES(?, ?)",
                    (tag_name, now_ms()),
                )
            except sqlite3.IntegrityError as exc:
                raise ConflictError(
                    f'Tag with name "{tag_name}" already exists'
                ) from exc
            tag_id = int(cur.lastrowid)

        logger.debug("tag created id=%s name=%s", tag_id, tag_name)
        tag = self.get(tag_id)
        if tag is None:
            raise RuntimeError("created tag could not be loaded")
        return tag

    def get(self, tag_id: int) -> Tag | None:
        row = self.store.fetchone(
            "SELECT id, name, created_at FROM tags WHERE id = ?", (tag_id,)
        )
        return _row_to_tag(row) if row is not None else None

    def get_by_name(self, name: str) -> Tag | None:
        row = self.store.fetchone(
            "SELECT id, name, created_at FROM tags WHERE name = ?", (name,)
        )
        return _row_to_tag(row) if row is not None else None

    def list(self) -> list[Tag]:
        rows = self.store.fetchall(
            "SELECT id, name, created_at FROM tags ORDER BY created_at DESC, id DESC"
        )
        return [_row_to_tag(row) for row in rows]

    def rename(self, tag_id: int, name: str) -> Tag | None:
        with self.store.transaction() as conn:
            existing = self.get(tag_id)
            if existing is None:
                return None
            tag_name = _validate_name(name)
            if tag_name == existing.name:
                return existing
            if self.get_by_name(tag_name) is not None:
                raise ConflictError(f'Tag with name "{tag_name}" already exists')
            conn.execute("UPDATE tags SET name = ? WHERE id = ?", (tag_name, tag_id))
        return self.get(tag_id)

    def delete(self, tag_id: int) -> bool:
        # task_tags rows go with the tag through ON DELETE CASCADE.
        with self.store.transaction() as conn:
            cur = conn.execute("DELETE FROM tags WHERE id = ?", (tag_id,))
            deleted = cur.rowcount > 0
        if deleted:
            logger.debug("tag deleted id=%s", tag_id)
        return deleted


class TaskTagManager:
    """Many-to-many links between tasks and tags."""

    def __init__(self, store: Store, tasks: TaskRepository, tags: TagManager) -> None:
        self.store = store
        self.tasks = tasks
        self.tags = tags

    def attach(self, task_id: int, tag_id: int) -> TaskTag:
        with self.store.transaction() as conn:
            if not self.tasks.exists(task_id):
                raise NotFoundError("task", task_id)
            if self.tags.get(tag_id) is None:
                raise NotFoundError("tag", tag_id)
            if self.has_tag(task_id, tag_id):
                raise ConflictError(f"Task {task_id} already has tag {tag_id}")
            try:
                cur = conn.execute(
                    "INSERT INTO task_tags(task_id, tag_id, created_at) VALUES(?, ?, ?)",
                    (task_id, tag_id, now_ms()),
                )
            except sqlite3.IntegrityError as exc:
                raise ConflictError(
                    f"Task {task_id} already has tag {tag_id}"
                ) from exc
            link_id = int(cur.lastrowid)

        row = self.store.fetchone(
            "SELECT id, task_id, tag_id, created_at FROM task_tags WHERE id = ?",
            (link_id,),
        )
        if row is None:
            raise RuntimeError("created task tag could not be loaded")
        return TaskTag(
            id=int(row["id"]),
            task_id=int(row["task_id"]),
            tag_id=int(row["tag_id"]),
            created_at=int(row["created_at"]),
        )

    def detach(self, task_id: int, tag_id: int) -> bool:
        with self.store.transaction() as conn:
            cur = conn.execute(
                "DELETE FROM task_tags WHERE task_id = ? AND tag_id = ?",
                (task_id, tag_id),
            )
            return cur.rowcount > 0

    def has_tag(self, task_id: int, tag_id: int) -> bool:
        row = self.store.fetchone(
            "SELECT 1 FROM task_tags WHERE task_id = ? AND tag_id = ?",
            (task_id, tag_id),
        )
        return row is not None

    def tags_for_task(self, task_id: int) -> list[Tag]:
        rows = self.store.fetchall(
            """
            SELECT t.id, t.name, t.created_at
            FROM tags t
            JOIN task_tags tt ON tt.tag_id = t.id
            WHERE tt.task_id = ?
            ORDER BY tt.created_at ASC, tt.id ASC
            """,
            (task_id,),
        )
        return [_row_to_tag(row) for row in rows]

    def tasks_for_tag(self, tag_id: int) -> list[Task]:
        rows = self.store.fetchall(
            """
            SELECT t.id, t.title, t.body, t.author, t.status, t.parent_id,
                   t.created_at, t.updated_at
            FROM tasks t
            JOIN task_tags tt ON tt.task_id = t.id
            WHERE tt.tag_id = ?
            ORDER BY tt.created_at ASC, tt.id ASC
            """,
            (tag_id,),
        )
        return [_row_to_task(row) for row in rows]

    def tags_by_task(self, task_ids: list[int] | None = None) -> dict[int, list[Tag]]:
        query = """
            SELECT tt.task_id, t.id, t.name, t.created_at
            FROM tags t
            JOIN task_tags tt ON tt.tag_id = t.id
        """
        params: list[int] = []
        if task_ids is not None:
            if not task_ids:
                return {}
            placeholders = ", ".join("?" for _ in task_ids)
            query += f" WHERE tt.task_id IN ({placeholders})"
            params.extend(task_ids)
        query += " ORDER BY tt.task_id ASC, tt.created_at ASC, tt.id ASC"

        tags: dict[int, list[Tag]] = {task_id: [] for task_id in task_ids or []}
        for row in self.store.fetchall(query, params):
            tags.setdefault(int(row["task_id"]), []).append(_row_to_tag(row))
        return tags
