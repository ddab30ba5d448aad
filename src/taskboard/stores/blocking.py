from __future__ import annotations

import logging
import sqlite3

from ..cycles import would_create_block_cycle
from ..errors import ConflictError, CycleError, NotFoundError
from ..models import BlockingEdge, now_ms
from .db import Store
from .task import TaskRepository

logger = logging.getLogger(__name__)

_EDGE_SELECT = """
    SELECT id, blocker_task_id, blocked_task_id, created_at
    FROM task_blocks
"""


def _row_to_edge(row: sqlite3.Row) -> BlockingEdge:
    return BlockingEdge(
        id=int(row["id"]),
        blocker_task_id=int(row["blocker_task_id"]),
        blocked_task_id=int(row["blocked_task_id"]),
        created_at=int(row["created_at"]),
    )


class BlockingGraphManager:
    """Blocker -> blocked edges, kept acyclic.

    The graph is independent of the parent tree: a task may block its own
    parent or child.
    """

    def __init__(self, store: Store, tasks: TaskRepository) -> None:
        self.store = store
        self.tasks = tasks

    def add_edge(self, blocker_id: int, blocked_id: int) -> BlockingEdge:
        if blocker_id == blocked_id:
            raise CycleError(f"task {blocker_id} cannot block itself")

        with self.store.transaction() as conn:
            if not self.tasks.exists(blocker_id):
                raise NotFoundError("blocker task", blocker_id)
            if not self.tasks.exists(blocked_id):
                raise NotFoundError("blocked task", blocked_id)
            if would_create_block_cycle(blocker_id, blocked_id, self.get_blocked):
                raise CycleError(
                    "cannot create block relationship: would create circular "
                    f"dependency between tasks {blocker_id} and {blocked_id}"
                )
            if self.get_edge(blocker_id, blocked_id) is not None:
                raise ConflictError(
                    f"task {blocker_id} already blocks task {blocked_id}"
                )
            try:
                cur = conn.execute(
                    """
                    INSERT INTO task_blocks(blocker_task_id, blocked_task_id, created_at)
                    VALUES(?, ?, ?)
                    """,
                    (blocker_id, blocked_id, now_ms()),
                )
            except sqlite3.IntegrityError as exc:
                raise ConflictError(
                    f"task {blocker_id} already blocks task {blocked_id}"
                ) from exc
            edge_id = int(cur.lastrowid)

        logger.debug("block added %s -> %s", blocker_id, blocked_id)
        row = self.store.fetchone(_EDGE_SELECT + " WHERE id = ?", (edge_id,))
        if row is None:
            raise RuntimeError("created block could not be loaded")
        return _row_to_edge(row)

    def remove_edge(self, blocker_id: int, blocked_id: int) -> bool:
        with self.store.transaction() as conn:
            cur = conn.execute(
                "DELETE FROM task_blocks WHERE blocker_task_id = ? AND blocked_task_id = ?",
                (blocker_id, blocked_id),
            )
            removed = cur.rowcount > 0
        if removed:
            logger.debug("block removed %s -> %s", blocker_id, blocked_id)
        return removed

    def get_edge(self, blocker_id: int, blocked_id: int) -> BlockingEdge | None:
        row = self.store.fetchone(
            _EDGE_SELECT + " WHERE blocker_task_id = ? AND blocked_task_id = ?",
            (blocker_id, blocked_id),
        )
        return _row_to_edge(row) if row is not None else None

    def list_edges(self) -> list[BlockingEdge]:
        rows = self.store.fetchall(_EDGE_SELECT + " ORDER BY id ASC")
        return [_row_to_edge(row) for row in rows]

    def get_blockers(self, task_id: int) -> list[int]:
        """Ids of the tasks blocking *task_id*."""
        rows = self.store.fetchall(
            "SELECT blocker_task_id FROM task_blocks WHERE blocked_task_id = ? ORDER BY id ASC",
            (task_id,),
        )
        return [int(row["blocker_task_id"]) for row in rows]

    def get_blocked(self, task_id: int) -> list[int]:
        """Ids of the tasks *task_id* blocks."""
        rows = self.store.fetchall(
            "SELECT blocked_task_id FROM task_blocks WHERE blocker_task_id = ? ORDER BY id ASC",
            (task_id,),
        )
        return [int(row["blocked_task_id"]) for row in rows]
