"""Cycle checks for the parent tree and the blocking graph.

Both functions are pure: the caller supplies a lookup callback and the
existing edges are discovered lazily through it. Each walk tracks the nodes
it has seen, so a graph that is already cyclic (corrupted data) still
terminates.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterable


def would_create_parent_cycle(
    task_id: int,
    proposed_parent_id: int | None,
    get_parent_id: Callable[[int], int | None],
) -> bool:
    """Return True if making *proposed_parent_id* the parent of *task_id* closes a cycle.

    Walks upward from the proposed parent. Reaching *task_id*, or revisiting
    any node on the way up, counts as a cycle.
    """
    if proposed_parent_id is None:
        return False
    if task_id == proposed_parent_id:
        return True

    current: int | None = proposed_parent_id
    visited: set[int] = set()
    while current is not None:
        if current == task_id or current in visited:
            return True
        visited.add(current)
        current = get_parent_id(current)
    return False


def would_create_block_cycle(
    blocker_id: int,
    blocked_id: int,
    get_blocked_ids: Callable[[int], Iterable[int]],
) -> bool:
    """Return True if adding ``blocker_id -> blocked_id`` closes a cycle.

    Breadth-first search from *blocked_id* along existing outgoing edges;
    the edge closes a cycle exactly when *blocker_id* is reachable.
    """
    queue: deque[int] = deque([blocked_id])
    visited: set[int] = set()
    while queue:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)
        if current == blocker_id:
            return True
        for next_id in get_blocked_ids(current):
            if next_id not in visited:
                queue.append(next_id)
    return False
