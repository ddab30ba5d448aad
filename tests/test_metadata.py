from __future__ import annotations

import pytest

from taskboard.board import Board
from taskboard.errors import NotFoundError, ValidationError


def test_upsert_keeps_single_row(board: Board) -> None:
    task = board.tasks.create("task")

    first = board.metadata.set(task.id, "priority", "high")
    second = board.metadata.set(task.id, "priority", "low")

    rows = board.store.fetchall(
        "SELECT value FROM task_metadata WHERE task_id = ? AND key = ?",
        (task.id, "priority"),
    )
    assert [row["value"] for row in rows] == ["low"]
    assert second.id == first.id
    assert second.created_at == first.created_at
    assert board.metadata.get(task.id, "priority").value == "low"


def test_set_validation(board: Board) -> None:
    task = board.tasks.create("task")

    with pytest.raises(ValidationError) as exc_info:
        board.metadata.set(task.id, "", "v")
    assert exc_info.value.field == "key"

    with pytest.raises(ValidationError) as exc_info:
        board.metadata.set(task.id, "k" * 51, "v")
    assert exc_info.value.field == "key"

    with pytest.raises(ValidationError) as exc_info:
        board.metadata.set(task.id, "k", "v" * 501)
    assert exc_info.value.field == "value"

    assert board.metadata.list(task.id) == []


def test_set_on_missing_task(board: Board) -> None:
    with pytest.raises(NotFoundError):
        board.metadata.set(999, "k", "v")


def test_empty_value_allowed(board: Board) -> None:
    task = board.tasks.create("task")
    assert board.metadata.set(task.id, "note", "").value == ""


def test_list_delete_and_delete_all(board: Board) -> None:
    task = board.tasks.create("task")
    board.metadata.set(task.id, "a", "1")
    board.metadata.set(task.id, "b", "2")
    board.metadata.set(task.id, "c", "3")

    assert [m.key for m in board.metadata.list(task.id)] == ["c", "b", "a"]

    assert board.metadata.delete(task.id, "b") is True
    assert board.metadata.delete(task.id, "b") is False
    assert board.metadata.get(task.id, "b") is None

    assert board.metadata.delete_all(task.id) == 2
    assert board.metadata.list(task.id) == []
    assert board.metadata.delete_all(task.id) == 0


def test_all_by_task_and_cascade(board: Board) -> None:
    first = board.tasks.create("first")
    second = board.tasks.create("second")
    board.metadata.set(first.id, "sprint", "12")
    board.metadata.set(second.id, "sprint", "13")

    grouped = board.metadata.all_by_task()
    assert [m.value for m in grouped[first.id]] == ["12"]
    assert [m.value for m in grouped[second.id]] == ["13"]

    board.tasks.delete(first.id)

    grouped = board.metadata.all_by_task()
    assert first.id not in grouped
    assert second.id in grouped
