from __future__ import annotations


class TaskboardError(ValueError):
    """Base class for errors a caller can act on."""


class ValidationError(TaskboardError):
    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.message = message


class NotFoundError(TaskboardError):
    def __init__(self, kind: str, item_id: object) -> None:
        super().__init__(f"{kind} not found: {item_id}")
        self.kind = kind
        self.id = item_id


class ConflictError(TaskboardError):
    pass


class CycleError(TaskboardError):
    pass


class StoreClosedError(RuntimeError):
    def __init__(self) -> None:
        super().__init__("store is closed")
