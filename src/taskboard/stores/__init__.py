from .blocking import BlockingGraphManager
from .db import Store
from .hierarchy import HierarchyManager, TreeNode
from .metadata import MetadataManager
from .tag import TagManager, TaskTagManager
from .task import TaskRepository

__all__ = [
    "BlockingGraphManager",
    "HierarchyManager",
    "MetadataManager",
    "Store",
    "TagManager",
    "TaskRepository",
    "TaskTagManager",
    "TreeNode",
]
