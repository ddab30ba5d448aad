from __future__ import annotations

import pytest

from taskboard.board import Board
from taskboard.errors import ConflictError, CycleError, NotFoundError


def _tasks(board: Board, count: int) -> list[int]:
    return [board.tasks.create(f"task {n}").id for n in range(1, count + 1)]


def test_self_edge_rejected_regardless_of_existence(board: Board) -> None:
    with pytest.raises(CycleError):
        board.blocks.add_edge(5, 5)

    (task_id,) = _tasks(board, 1)
    with pytest.raises(CycleError):
        board.blocks.add_edge(task_id, task_id)


def test_missing_endpoints(board: Board) -> None:
    (task_id,) = _tasks(board, 1)

    with pytest.raises(NotFoundError):
        board.blocks.add_edge(999, task_id)
    with pytest.raises(NotFoundError):
        board.blocks.add_edge(task_id, 999)


def test_chain_cycle_rejected_until_edge_removed(board: Board) -> None:
    t1, t2, t3 = _tasks(board, 3)
    board.blocks.add_edge(t1, t2)
    board.blocks.add_edge(t2, t3)

    with pytest.raises(CycleError):
        board.blocks.add_edge(t3, t1)

    assert board.blocks.remove_edge(t2, t3) is True
    edge = board.blocks.add_edge(t3, t1)
    assert (edge.blocker_task_id, edge.blocked_task_id) == (t3, t1)


def test_diamond_scenario(board: Board) -> None:
    t1, t2, t3, t4, t5 = _tasks(board, 5)
    for blocker, blocked in ((t1, t2), (t1, t3), (t2, t4), (t3, t5)):
        board.blocks.add_edge(blocker, blocked)

    with pytest.raises(CycleError):
        board.blocks.add_edge(t4, t1)

    board.blocks.remove_edge(t1, t2)
    board.blocks.add_edge(t2, t1)

    assert board.blocks.get_blockers(t1) == [t2]


def test_duplicate_edge_conflicts(board: Board) -> None:
    t1, t2 = _tasks(board, 2)
    board.blocks.add_edge(t1, t2)

    with pytest.raises(ConflictError):
        board.blocks.add_edge(t1, t2)
    assert len(board.blocks.list_edges()) == 1


def test_blockers_and_blocked(board: Board) -> None:
    t1, t2, t3 = _tasks(board, 3)
    board.blocks.add_edge(t1, t3)
    board.blocks.add_edge(t2, t3)

    assert board.blocks.get_blockers(t3) == [t1, t2]
    assert board.blocks.get_blocked(t1) == [t3]
    assert board.blocks.get_blocked(t3) == []
    assert board.blocks.get_edge(t1, t3) is not None
    assert board.blocks.get_edge(t3, t1) is None


def test_remove_missing_edge(board: Board) -> None:
    t1, t2 = _tasks(board, 2)
    assert board.blocks.remove_edge(t1, t2) is False


def test_blocking_independent_of_hierarchy(board: Board) -> None:
    parent, child = _tasks(board, 2)
    board.hierarchy.set_parent(child, parent)

    board.blocks.add_edge(child, parent)

    assert board.blocks.get_blocked(child) == [parent]


def test_delete_removes_only_incident_edges(board: Board) -> None:
    t1, t2, t3, t4 = _tasks(board, 4)
    board.blocks.add_edge(t1, t2)
    board.blocks.add_edge(t2, t3)
    board.blocks.add_edge(t3, t4)

    board.tasks.delete(t2)

    edges = [(e.blocker_task_id, e.blocked_task_id) for e in board.blocks.list_edges()]
    assert edges == [(t3, t4)]
