from __future__ import annotations

from .board import Board
from .errors import (
    ConflictError,
    CycleError,
    NotFoundError,
    StoreClosedError,
    TaskboardError,
    ValidationError,
)

__version__ = "0.1.0"

__all__ = [
    "Board",
    "ConflictError",
    "CycleError",
    "NotFoundError",
    "StoreClosedError",
    "TaskboardError",
    "ValidationError",
    "__version__",
]
