from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from .config import resolve_config
from .stores import (
    BlockingGraphManager,
    HierarchyManager,
    MetadataManager,
    Store,
    TagManager,
    TaskRepository,
    TaskTagManager,
)


@dataclass
class Board:
    """Every manager wired around one open :class:`Store`."""

    store: Store
    tasks: TaskRepository = field(init=False)
    hierarchy: HierarchyManager = field(init=False)
    blocks: BlockingGraphManager = field(init=False)
    tags: TagManager = field(init=False)
    task_tags: TaskTagManager = field(init=False)
    metadata: MetadataManager = field(init=False)

    def __post_init__(self) -> None:
        self.tasks = TaskRepository(self.store)
        self.hierarchy = HierarchyManager(self.store, self.tasks)
        self.blocks = BlockingGraphManager(self.store, self.tasks)
        self.tags = TagManager(self.store)
        self.task_tags = TaskTagManager(self.store, self.tasks, self.tags)
        self.metadata = MetadataManager(self.store, self.tasks)

    @classmethod
    def open(cls, path: str | Path) -> "Board":
        return cls(Store.open(path))

    @classmethod
    def from_workdir(cls, cwd: Path | None = None) -> "Board":
        return cls.open(resolve_config(cwd).db_path)

    def close(self) -> None:
        self.store.close()

    def __enter__(self) -> "Board":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def show(self, task_id: int) -> dict[str, Any] | None:
        task = self.tasks.get(task_id)
        if task is None:
            return None

        parent = self.hierarchy.get_parent(task_id)
        payload = task.to_dict()
        payload["parent"] = parent.to_dict() if parent is not None else None
        payload["children"] = [
            child.to_dict() for child in self.hierarchy.get_children(task_id)
        ]
        payload["blocked_by"] = self.blocks.get_blockers(task_id)
        payload["blocks"] = self.blocks.get_blocked(task_id)
        payload["tags"] = [tag.to_dict() for tag in self.task_tags.tags_for_task(task_id)]
        payload["metadata"] = [meta.to_dict() for meta in self.metadata.list(task_id)]
        return payload
