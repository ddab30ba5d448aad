from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Any

from ..errors import CycleError, NotFoundError
from ..models import Task
from .db import Store
from .task import TaskRepository

logger = logging.getLogger(__name__)


@dataclass
class TreeNode:
    task: Task
    children: list["TreeNode"] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        payload = self.task.to_dict()
        payload["children"] = [child.to_dict() for child in self.children]
        return payload


class HierarchyManager:
    """Parent/child assignment and tree queries over ``tasks.parent_id``."""

    def __init__(self, store: Store, tasks: TaskRepository) -> None:
        self.store = store
        self.tasks = tasks

    def set_parent(self, task_id: int, parent_id: int | None) -> Task:
        if parent_id is not None and parent_id == task_id:
            raise CycleError(f"task {task_id} cannot be its own parent")

        with self.store.transaction():
            if not self.tasks.exists(task_id):
                raise NotFoundError("task", task_id)
            # update() re-checks parent existence and cycles in the same
            # transaction, in that order.
            task = self.tasks.update(task_id, parent_id=parent_id)

        if task is None:
            raise NotFoundError("task", task_id)
        logger.debug("parent set task=%s parent=%s", task_id, parent_id)
        return task

    def get_parent(self, task_id: int) -> Task | None:
        parent_id = self.tasks.parent_id_of(task_id)
        if parent_id is None:
            return None
        return self.tasks.get(parent_id)

    def get_children(self, task_id: int) -> list[Task]:
        return self.tasks.children_of(task_id)

    def get_descendants(self, task_id: int) -> list[Task]:
        descendants: list[Task] = []
        visited: set[int] = set()
        queue: deque[int] = deque([task_id])
        while queue:
            current = queue.popleft()
            if current in visited:
                continue
            visited.add(current)
            for child in self.get_children(current):
                if child.id in visited:
                    logger.warning(
                        "parent cycle detected below task %s at task %s",
                        task_id,
                        child.id,
                    )
                    continue
                descendants.append(child)
                queue.append(child.id)
        return descendants

    def get_root(self, task_id: int) -> Task | None:
        current = self.tasks.get(task_id)
        if current is None:
            return None

        visited = {current.id}
        while current.parent_id is not None:
            if current.parent_id in visited:
                logger.warning(
                    "parent cycle detected above task %s at task %s",
                    task_id,
                    current.parent_id,
                )
                break
            parent = self.tasks.get(current.parent_id)
            if parent is None:
                break
            visited.add(parent.id)
            current = parent
        return current

    def get_tree(self, task_id: int | None = None) -> list[TreeNode]:
        """Return nested nodes rooted at *task_id*, or at every parentless task."""
        if task_id is not None:
            task = self.tasks.get(task_id)
            if task is None:
                raise NotFoundError("task", task_id)
            roots = [task]
        else:
            roots = [task for task in self.tasks.list() if task.parent_id is None]
            roots.reverse()

        visited: set[int] = set()

        def build(task: Task) -> TreeNode:
            visited.add(task.id)
            node = TreeNode(task)
            for child in self.get_children(task.id):
                if child.id in visited:
                    continue
                node.children.append(build(child))
            return node

        return [build(root) for root in roots]

    def tree_from(self, tasks: list[Task]) -> list[TreeNode]:
        """Nest an already filtered *tasks* list by parent.

        A task whose parent is not in the list becomes a root, so filtering
        never hides a matching task.
        """
        ordered = sorted(tasks, key=lambda task: (task.created_at, task.id))
        nodes = {task.id: TreeNode(task) for task in ordered}
        roots: list[TreeNode] = []
        for task in ordered:
            parent = nodes.get(task.parent_id) if task.parent_id is not None else None
            if parent is None:
                roots.append(nodes[task.id])
            else:
                parent.children.append(nodes[task.id])

        placed = 0
        pending = list(roots)
        while pending:
            node = pending.pop()
            placed += 1
            pending.extend(node.children)
        if placed < len(nodes):
            logger.warning(
                "parent cycle among listed tasks; %s task(s) left out of the tree",
                len(nodes) - placed,
            )
        return roots
