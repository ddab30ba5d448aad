from __future__ import annotations

import pytest

from taskboard.errors import CycleError, NotFoundError, ValidationError
from taskboard.models import TASK_STATUSES
from taskboard.stores import Store, TaskRepository


@pytest.fixture
def tasks(store: Store) -> TaskRepository:
    return TaskRepository(store)


def test_create_then_get_round_trips_all_fields(tasks: TaskRepository) -> None:
    parent = tasks.create("Parent")
    created = tasks.create(
        "Write docs",
        body="Cover the CLI",
        author="sam",
        status="ready",
        parent_id=parent.id,
    )

    loaded = tasks.get(created.id)

    assert loaded == created
    assert loaded.title == "Write docs"
    assert loaded.body == "Cover the CLI"
    assert loaded.author == "sam"
    assert loaded.status == "ready"
    assert loaded.parent_id == parent.id
    assert loaded.created_at > 0
    assert loaded.updated_at == loaded.created_at


def test_create_defaults(tasks: TaskRepository) -> None:
    task = tasks.create("Plain")

    assert task.status == "backlog"
    assert task.body is None
    assert task.author is None
    assert task.parent_id is None


def test_title_length_limit(tasks: TaskRepository) -> None:
    with pytest.raises(ValidationError) as exc_info:
        tasks.create("a" * 201)
    assert exc_info.value.field == "title"

    assert tasks.create("a" * 200).title == "a" * 200


def test_body_length_limit(tasks: TaskRepository) -> None:
    with pytest.raises(ValidationError) as exc_info:
        tasks.create("ok", body="b" * 10001)
    assert exc_info.value.field == "body"


def test_author_length_limit(tasks: TaskRepository) -> None:
    with pytest.raises(ValidationError) as exc_info:
        tasks.create("ok", author="x" * 101)
    assert exc_info.value.field == "author"


@pytest.mark.parametrize("title", ["", "   "])
def test_blank_title_rejected(tasks: TaskRepository, title: str) -> None:
    with pytest.raises(ValidationError) as exc_info:
        tasks.create(title)
    assert exc_info.value.field == "title"


def test_invalid_status_rejected(tasks: TaskRepository) -> None:
    with pytest.raises(ValidationError) as exc_info:
        tasks.create("x", status="paused")
    assert exc_info.value.field == "status"


def test_create_with_missing_parent(tasks: TaskRepository) -> None:
    with pytest.raises(NotFoundError):
        tasks.create("orphan", parent_id=999)
    assert tasks.list() == []


def test_failed_create_writes_nothing(tasks: TaskRepository) -> None:
    with pytest.raises(ValidationError):
        tasks.create("x", body="b" * 10001)
    assert tasks.count_by_status()["backlog"] == 0


def test_get_missing_returns_none(tasks: TaskRepository) -> None:
    assert tasks.get(12345) is None


def test_update_changes_only_given_fields(tasks: TaskRepository) -> None:
    task = tasks.create("Old", body="keep", author="ann")

    updated = tasks.update(task.id, title="New", status="in_progress")

    assert updated is not None
    assert updated.title == "New"
    assert updated.status == "in_progress"
    assert updated.body == "keep"
    assert updated.author == "ann"
    assert updated.updated_at >= task.updated_at
    assert updated.created_at == task.created_at


def test_update_none_clears_optional_fields(tasks: TaskRepository) -> None:
    parent = tasks.create("Parent")
    task = tasks.create("Child", body="text", author="ann", parent_id=parent.id)

    updated = tasks.update(task.id, body=None, author=None, parent_id=None)

    assert updated is not None
    assert updated.body is None
    assert updated.author is None
    assert updated.parent_id is None


def test_update_missing_task_returns_none(tasks: TaskRepository) -> None:
    assert tasks.update(999, title="x") is None


def test_update_validation_leaves_row_untouched(tasks: TaskRepository) -> None:
    task = tasks.create("Stable")

    with pytest.raises(ValidationError):
        tasks.update(task.id, title="fine", body="b" * 10001)

    assert tasks.get(task.id) == task


def test_update_parent_to_self_is_cycle(tasks: TaskRepository) -> None:
    task = tasks.create("Self")
    with pytest.raises(CycleError):
        tasks.update(task.id, parent_id=task.id)


def test_update_parent_must_be_integer(tasks: TaskRepository) -> None:
    task = tasks.create("Typed")
    with pytest.raises(ValidationError) as exc_info:
        tasks.update(task.id, parent_id="1")
    assert exc_info.value.field == "parent_id"


def test_list_filters_and_order(tasks: TaskRepository) -> None:
    first = tasks.create("first", author="ann", status="ready")
    second = tasks.create("second", author="bob", status="ready")
    third = tasks.create("third", author="ann", status="done")

    assert [t.id for t in tasks.list()] == [third.id, second.id, first.id]
    assert [t.id for t in tasks.list(status="ready")] == [second.id, first.id]
    assert [t.id for t in tasks.list(author="ann")] == [third.id, first.id]
    assert [t.id for t in tasks.list(status="ready", author="ann")] == [first.id]


def test_list_rejects_unknown_status(tasks: TaskRepository) -> None:
    with pytest.raises(ValidationError):
        tasks.list(status="nope")


def test_delete(tasks: TaskRepository) -> None:
    task = tasks.create("gone")

    assert tasks.delete(task.id) is True
    assert tasks.get(task.id) is None
    assert tasks.delete(task.id) is False


def test_delete_orphans_children(tasks: TaskRepository) -> None:
    parent = tasks.create("Parent")
    child_a = tasks.create("A", parent_id=parent.id)
    child_b = tasks.create("B", parent_id=parent.id)

    tasks.delete(parent.id)

    for child in (child_a, child_b):
        loaded = tasks.get(child.id)
        assert loaded is not None
        assert loaded.parent_id is None
        assert loaded.title == child.title


def test_delete_orphans_only_direct_children(tasks: TaskRepository) -> None:
    a = tasks.create("A")
    b = tasks.create("B", parent_id=a.id)
    c = tasks.create("C", parent_id=b.id)

    tasks.delete(a.id)

    assert tasks.get(b.id).parent_id is None
    assert tasks.get(c.id).parent_id == b.id


def test_count_by_status_includes_every_status(tasks: TaskRepository) -> None:
    tasks.create("a")
    tasks.create("b", status="review")
    tasks.create("c", status="review")

    counts = tasks.count_by_status()

    assert set(counts) == set(TASK_STATUSES)
    assert counts["backlog"] == 1
    assert counts["review"] == 2
    assert counts["closed"] == 0


def test_search_matches_title_or_body(tasks: TaskRepository) -> None:
    in_title = tasks.create("Fix login bug")
    in_body = tasks.create("Session work", body="the LOGIN form times out")
    tasks.create("Unrelated")

    ids = {t.id for t in tasks.search("login")}

    assert ids == {in_title.id, in_body.id}


def test_search_skips_terminal_unless_requested(tasks: TaskRepository) -> None:
    open_task = tasks.create("deploy api")
    done_task = tasks.create("deploy web", status="done")
    closed_task = tasks.create("deploy db", status="closed")

    assert done_task.is_terminal and closed_task.is_terminal
    assert not open_task.is_terminal
    assert [t.id for t in tasks.search("deploy")] == [open_task.id]
    assert {t.id for t in tasks.search("deploy", include_terminal=True)} == {
        open_task.id,
        done_task.id,
        closed_task.id,
    }


def test_search_treats_wildcards_literally(tasks: TaskRepository) -> None:
    literal = tasks.create("100% done")
    tasks.create("100 items")

    assert [t.id for t in tasks.search("100%")] == [literal.id]
    assert tasks.search("_") == []
