from __future__ import annotations

import logging

import pytest

from taskboard.board import Board
from taskboard.errors import CycleError, NotFoundError


def test_direct_two_cycle_rejected(board: Board) -> None:
    a = board.tasks.create("A")
    b = board.tasks.create("B")

    board.hierarchy.set_parent(a.id, b.id)
    with pytest.raises(CycleError):
        board.hierarchy.set_parent(b.id, a.id)

    assert board.tasks.get(b.id).parent_id is None


def test_chain_cycle_rejected_until_broken(board: Board) -> None:
    a = board.tasks.create("A")
    b = board.tasks.create("B")
    c = board.tasks.create("C")
    # A -> B -> C in parent pointers
    board.hierarchy.set_parent(a.id, b.id)
    board.hierarchy.set_parent(b.id, c.id)

    with pytest.raises(CycleError):
        board.hierarchy.set_parent(c.id, a.id)

    board.hierarchy.set_parent(b.id, None)
    moved = board.hierarchy.set_parent(c.id, a.id)
    assert moved.parent_id == a.id


def test_set_parent_self_fails_even_for_missing_task(board: Board) -> None:
    with pytest.raises(CycleError):
        board.hierarchy.set_parent(42, 42)


def test_set_parent_missing_task_and_parent(board: Board) -> None:
    task = board.tasks.create("T")

    with pytest.raises(NotFoundError):
        board.hierarchy.set_parent(999, task.id)
    with pytest.raises(NotFoundError):
        board.hierarchy.set_parent(task.id, 999)


def test_parent_and_children(board: Board) -> None:
    parent = board.tasks.create("Parent")
    first = board.tasks.create("First", parent_id=parent.id)
    second = board.tasks.create("Second", parent_id=parent.id)

    assert board.hierarchy.get_parent(first.id) == parent
    assert board.hierarchy.get_parent(parent.id) is None
    assert [t.id for t in board.hierarchy.get_children(parent.id)] == [
        first.id,
        second.id,
    ]
    assert board.hierarchy.get_children(first.id) == []


def test_descendants_and_root(board: Board) -> None:
    root = board.tasks.create("Root")
    mid = board.tasks.create("Mid", parent_id=root.id)
    leaf_a = board.tasks.create("Leaf A", parent_id=mid.id)
    leaf_b = board.tasks.create("Leaf B", parent_id=root.id)

    descendants = [t.id for t in board.hierarchy.get_descendants(root.id)]

    assert sorted(descendants) == sorted([mid.id, leaf_a.id, leaf_b.id])
    assert board.hierarchy.get_root(leaf_a.id) == root
    assert board.hierarchy.get_root(root.id) == root
    assert board.hierarchy.get_root(999) is None


def test_walks_terminate_on_corrupted_cycle(
    board: Board, caplog: pytest.LogCaptureFixture
) -> None:
    a = board.tasks.create("A")
    b = board.tasks.create("B")
    # Write a 2-cycle directly, bypassing the managers.
    board.store.execute("UPDATE tasks SET parent_id = ? WHERE id = ?", (b.id, a.id))
    board.store.execute("UPDATE tasks SET parent_id = ? WHERE id = ?", (a.id, b.id))

    with caplog.at_level(logging.WARNING, logger="taskboard"):
        root = board.hierarchy.get_root(a.id)
        descendants = board.hierarchy.get_descendants(a.id)

    assert root is not None
    assert [t.id for t in descendants] == [b.id]
    assert any("cycle" in record.getMessage() for record in caplog.records)


def test_tree_nests_children(board: Board) -> None:
    root = board.tasks.create("Root")
    child = board.tasks.create("Child", parent_id=root.id)
    grandchild = board.tasks.create("Grandchild", parent_id=child.id)
    other = board.tasks.create("Other root")

    forest = board.hierarchy.get_tree()

    assert [node.task.id for node in forest] == [root.id, other.id]
    assert forest[0].children[0].task.id == child.id
    assert forest[0].children[0].children[0].task.id == grandchild.id

    subtree = board.hierarchy.get_tree(child.id)
    payload = subtree[0].to_dict()
    assert payload["id"] == child.id
    assert payload["children"][0]["id"] == grandchild.id

    with pytest.raises(NotFoundError):
        board.hierarchy.get_tree(999)


def test_tree_from_nests_only_the_given_tasks(board: Board) -> None:
    root = board.tasks.create("Root")
    child = board.tasks.create("Child", parent_id=root.id, status="ready")
    grandchild = board.tasks.create("Grandchild", parent_id=child.id)

    forest = board.hierarchy.tree_from([grandchild, root])
    assert [node.task.id for node in forest] == [root.id, grandchild.id]
    assert forest[0].children == []

    full = board.hierarchy.tree_from(board.tasks.list())
    assert [node.task.id for node in full] == [root.id]
    assert full[0].children[0].children[0].task.id == grandchild.id


def test_tree_from_warns_on_cyclic_rows(
    board: Board, caplog: pytest.LogCaptureFixture
) -> None:
    a = board.tasks.create("A")
    b = board.tasks.create("B", parent_id=a.id)
    board.store.execute("UPDATE tasks SET parent_id = ? WHERE id = ?", (b.id, a.id))

    with caplog.at_level(logging.WARNING, logger="taskboard"):
        forest = board.hierarchy.tree_from(board.tasks.list())

    assert forest == []
    assert any("cycle" in record.getMessage() for record in caplog.records)
