from __future__ import annotations

import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any


TASK_STATUSES = (
    "backlog",
    "ready",
    "in_progress",
    "review",
    "done",
    "closed",
)
DEFAULT_STATUS = "backlog"
TERMINAL_STATUSES = {"done", "closed"}

TITLE_MAX = 200
BODY_MAX = 10_000
AUTHOR_MAX = 100
TAG_NAME_MAX = 50
META_KEY_MAX = 50
META_VALUE_MAX = 500


class _Unset:
    _instance: "_Unset | None" = None

    def __new__(cls) -> "_Unset":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "UNSET"

    def __bool__(self) -> bool:
        return False


UNSET: Any = _Unset()


def now_ms() -> int:
    return int(time.time() * 1000)


def iso_from_ms(value: int | None) -> str | None:
    if value is None:
        return None
    try:
        dt = datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None
    return dt.strftime("%Y-%m-%dT%H:%M:%SZ")


class _Record:
    def to_dict(self) -> dict[str, Any]:
        payload = asdict(self)  # type: ignore[call-overload]
        for key in list(payload):
            if key.endswith("_at"):
                payload[f"{key}_iso"] = iso_from_ms(payload[key])
        return payload


@dataclass(frozen=True)
class Task(_Record):
    id: int
    title: str
    body: str | None
    author: str | None
    status: str
    parent_id: int | None
    created_at: int
    updated_at: int

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES


@dataclass(frozen=True)
class BlockingEdge(_Record):
    id: int
    blocker_task_id: int
    blocked_task_id: int
    created_at: int


@dataclass(frozen=True)
class Tag(_Record):
    id: int
    name: str
    created_at: int


@dataclass(frozen=True)
class TaskTag(_Record):
    id: int
    task_id: int
    tag_id: int
    created_at: int


@dataclass(frozen=True)
class Metadata(_Record):
    id: int
    task_id: int
    key: str
    value: str
    created_at: int
    updated_at: int
