from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from rich.markup import escape
from rich.text import Text
from rich.tree import Tree

from . import __version__
from .board import Board
from .errors import NotFoundError
from .guide import AGENT_GUIDE, AGENT_GUIDE_TITLE
from .logging_setup import setup_logging
from .models import TASK_STATUSES, Task, iso_from_ms
from .stores import TreeNode
from .ui import (
    add_output_mode_argument,
    make_console,
    print_plain_table,
    render_markdown,
    render_panel,
    render_table,
    render_tree,
    resolve_output_mode,
)

logger = logging.getLogger(__name__)

_TASK_HEADERS = ("ID", "STATUS", "PARENT", "UPDATED", "TITLE", "TAGS")
_TAG_HEADERS = ("ID", "NAME", "CREATED")
_META_HEADERS = ("KEY", "VALUE", "UPDATED")


def _emit_json(payload: Any) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _format_time(value: int | None) -> str:
    return iso_from_ms(value) or "-"


def _truncate(value: object, limit: int) -> str:
    text = str(value or "").strip()
    if len(text) <= limit:
        return text
    if limit <= 3:
        return text[:limit]
    return text[: limit - 3] + "..."


def _parent_arg(raw: str) -> int | None:
    if raw.strip().lower() == "none":
        return None
    try:
        return int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(
            f"expected a task id or 'none', got {raw!r}"
        ) from None


def _id_list(raw: str) -> list[int]:
    parts = [part.strip() for part in raw.split(",") if part.strip()]
    try:
        ids = [int(part) for part in parts]
    except ValueError:
        ids = []
    if not ids:
        raise argparse.ArgumentTypeError(
            f"expected comma-separated task ids, got {raw!r}"
        )
    return ids


def _read_body_file(path: str) -> str:
    if ".." in path:
        raise ValueError(f"unsafe file path: {path}")
    try:
        return Path(path).expanduser().read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ValueError(f"file not found: {path}") from None
    except (OSError, UnicodeDecodeError) as exc:
        raise ValueError(f"cannot read {path}: {exc}") from None


def _resolve_add_body(args: argparse.Namespace) -> str | None:
    given = [
        value for value in (args.body, args.body_opt, args.file) if value is not None
    ]
    if len(given) > 1:
        raise ValueError("pass the body once: positional, --body or --file")
    if args.file is not None:
        return _read_body_file(args.file)
    return args.body if args.body is not None else args.body_opt


def _resolve_tag_filter(board: Board, values: list[str]) -> list[int]:
    tag_ids: list[int] = []
    for value in values:
        parts = [part.strip() for part in value.split(",") if part.strip()]
        if not parts:
            raise ValueError("invalid tag filter; pass tag ids or names")
        for part in parts:
            if part.isdigit():
                tag_ids.append(int(part))
                continue
            tag = board.tags.get_by_name(part)
            if tag is None:
                raise NotFoundError("tag", part)
            tag_ids.append(tag.id)
    return tag_ids


def _task_columns(task: Task, tags: list[str]) -> tuple[str, str, str, str, str, str]:
    return (
        str(task.id),
        task.status,
        str(task.parent_id) if task.parent_id is not None else "-",
        _format_time(task.updated_at),
        _truncate(task.title, 56),
        _truncate(",".join(tags), 28),
    )


def _print_task(task: Task) -> None:
    row = _task_columns(task, [])
    print(f"{row[0]}  {row[1]:<11}  {row[2]:<6}  {row[3]}  {row[4]}")


def _print_tasks(
    board: Board,
    tasks: list[Task],
    *,
    output_mode: str,
    title: str,
    empty: str,
) -> None:
    if not tasks:
        if output_mode == "rich":
            render_panel(make_console("rich"), empty, title=title)
        else:
            print(empty)
        return

    tags = board.task_tags.tags_by_task([task.id for task in tasks])
    rows = [
        _task_columns(task, [tag.name for tag in tags.get(task.id, [])])
        for task in tasks
    ]
    if output_mode == "rich":
        render_table(
            make_console("rich"),
            title=title,
            headers=_TASK_HEADERS,
            no_wrap_columns=(0, 1, 2, 3),
            status_column=1,
            rows=rows,
        )
    else:
        print_plain_table(_TASK_HEADERS, rows)


def _node_label(task: Task) -> str:
    return f"{task.id} [{task.status}] {task.title}"


def _print_tree(nodes: list[TreeNode], *, output_mode: str) -> None:
    if not nodes:
        print("(no tasks)")
        return

    if output_mode == "rich":
        root = Tree("Tasks")

        def attach_rich(branch: Tree, node: TreeNode) -> None:
            child_branch = branch.add(Text(_node_label(node.task)))
            for child in node.children:
                attach_rich(child_branch, child)

        for node in nodes:
            attach_rich(root, node)
        render_tree(make_console("rich"), root)
        return

    def walk(node: TreeNode, depth: int) -> None:
        print(f"{'  ' * depth}{_node_label(node.task)}")
        for child in node.children:
            walk(child, depth + 1)

    for node in nodes:
        walk(node, 0)


def _print_task_details(detail: dict[str, Any]) -> None:
    parent = detail.get("parent")
    print(f"{detail['id']}  {detail['status']}  {detail['title']}")
    print(f"author:  {detail.get('author') or '-'}")
    print(f"parent:  {parent['id'] if parent else '-'}")
    print(f"created: {_format_time(detail.get('created_at'))}")
    print(f"updated: {_format_time(detail.get('updated_at'))}")

    body = str(detail.get("body") or "").strip()
    if body:
        print()
        print(body)

    print()
    children = detail.get("children") or []
    print("children: " + (", ".join(str(c["id"]) for c in children) or "(none)"))
    print("blocked by: " + (", ".join(str(i) for i in detail["blocked_by"]) or "(none)"))
    print("blocks: " + (", ".join(str(i) for i in detail["blocks"]) or "(none)"))
    print("tags: " + (", ".join(t["name"] for t in detail["tags"]) or "(none)"))

    metadata = detail.get("metadata") or []
    print("metadata:")
    if not metadata:
        print("  (none)")
    for meta in metadata:
        print(f"  {meta['key']}={meta['value']}")


def _print_task_details_rich(detail: dict[str, Any]) -> None:
    console = make_console("rich")
    parent = detail.get("parent")
    header = "\n".join(
        [
            f"[bold]{escape(detail['title'])}[/bold]",
            f"status: {detail['status']}",
            f"author: {escape(detail.get('author') or '-')}",
            f"parent: {parent['id'] if parent else '-'}",
            f"created: {_format_time(detail.get('created_at'))}",
            f"updated: {_format_time(detail.get('updated_at'))}",
        ]
    )
    render_panel(console, header, title=f"Task {detail['id']}")

    body = str(detail.get("body") or "").strip()
    if body:
        render_panel(console, escape(body), title="Body")

    relations = [
        ("children", ", ".join(str(c["id"]) for c in detail["children"])),
        ("blocked by", ", ".join(str(i) for i in detail["blocked_by"])),
        ("blocks", ", ".join(str(i) for i in detail["blocks"])),
        ("tags", ", ".join(t["name"] for t in detail["tags"])),
    ]
    render_table(
        console,
        title="Relations",
        headers=("RELATION", "TASKS"),
        rows=[(name, value or "(none)") for name, value in relations],
        no_wrap_columns=(0,),
    )

    metadata = detail.get("metadata") or []
    if metadata:
        render_table(
            console,
            title="Metadata",
            headers=_META_HEADERS,
            rows=[
                (m["key"], m["value"], _format_time(m["updated_at"])) for m in metadata
            ],
            no_wrap_columns=(0, 2),
        )


def _print_rows(
    headers: tuple[str, ...],
    rows: list[tuple[str, ...]],
    *,
    output_mode: str,
    title: str,
    empty: str,
) -> None:
    if not rows:
        if output_mode == "rich":
            render_panel(make_console("rich"), empty, title=title)
        else:
            print(empty)
        return
    if output_mode == "rich":
        render_table(
            make_console("rich"),
            title=title,
            headers=headers,
            rows=rows,
            no_wrap_columns=(0,),
        )
    else:
        print_plain_table(headers, rows)


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="taskboard",
        description="Track tasks with parent/child and blocking relationships.",
    )
    p.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--db", help="Database file (overrides config resolution)")
    p.add_argument(
        "-v", "--verbose", action="store_true", help="Log debug output to stderr"
    )
    sub = p.add_subparsers(dest="command", required=True, metavar="command")

    # task
    task = sub.add_parser("task", help="Task operations")
    task_sub = task.add_subparsers(dest="task_cmd", required=True, metavar="task_cmd")

    add = task_sub.add_parser("add", help="Create a task")
    add.add_argument("title", help="Task title")
    add.add_argument("body", nargs="?", help="Task body")
    add_body = add.add_mutually_exclusive_group()
    add_body.add_argument("-b", "--body", dest="body_opt", help="Task body")
    add_body.add_argument("-f", "--file", help="Read the body from a file")
    add.add_argument("-a", "--author", help="Author label")
    add.add_argument(
        "-s",
        "--status",
        default="backlog",
        choices=TASK_STATUSES,
        help=f"Initial status ({', '.join(TASK_STATUSES)})",
    )
    add.add_argument("-p", "--parent", type=int, help="Parent task id")
    add.add_argument(
        "--blocked-by",
        type=_id_list,
        default=[],
        metavar="IDS",
        help="Comma-separated ids of tasks that block the new task",
    )
    add.add_argument(
        "--blocks",
        type=_id_list,
        default=[],
        metavar="IDS",
        help="Comma-separated ids of tasks the new task blocks",
    )
    add.add_argument("--json", action="store_true", help="Output JSON")

    get = task_sub.add_parser("get", help="Show one task with its relations")
    get.add_argument("id", type=int, help="Task id")
    get.add_argument("--json", action="store_true", help="Output JSON")
    add_output_mode_argument(get)

    ls = task_sub.add_parser("list", help="List tasks")
    ls.add_argument("--status", choices=TASK_STATUSES, help="Filter by status")
    ls.add_argument("--author", help="Filter by author")
    ls.add_argument(
        "--tag",
        action="append",
        default=[],
        help="Filter by tag ids or names, comma-separated (matches any)",
    )
    ls.add_argument(
        "--all", action="store_true", help="Include done and closed tasks"
    )
    ls.add_argument("--tree", action="store_true", help="Show the parent/child tree")
    ls.add_argument("--root-only", action="store_true", help="Only parentless tasks")
    ls.add_argument("--json", action="store_true", help="Output JSON")
    add_output_mode_argument(ls)

    update = task_sub.add_parser("update", help="Edit task fields")
    update.add_argument("id", type=int, help="Task id")
    update.add_argument("--title", help="New title")
    body_group = update.add_mutually_exclusive_group()
    body_group.add_argument("-b", "--body", help="New body")
    body_group.add_argument("-f", "--file", help="Read the new body from a file")
    body_group.add_argument("--clear-body", action="store_true", help="Remove the body")
    author_group = update.add_mutually_exclusive_group()
    author_group.add_argument("-a", "--author", help="New author")
    author_group.add_argument(
        "--clear-author", action="store_true", help="Remove the author"
    )
    update.add_argument("-s", "--status", choices=TASK_STATUSES, help="New status")
    update.add_argument("--json", action="store_true", help="Output JSON")

    parent = task_sub.add_parser("parent", help="Set or clear a task's parent")
    parent.add_argument("id", type=int, help="Task id")
    parent.add_argument("parent", type=_parent_arg, help="Parent task id or 'none'")
    parent.add_argument("--json", action="store_true", help="Output JSON")

    children = task_sub.add_parser("children", help="List direct children")
    children.add_argument("id", type=int, help="Task id")
    children.add_argument("--json", action="store_true", help="Output JSON")
    add_output_mode_argument(children)

    delete = task_sub.add_parser("delete", help="Delete a task")
    delete.add_argument("id", type=int, help="Task id")
    delete.add_argument("--json", action="store_true", help="Output JSON")

    count = task_sub.add_parser("count", help="Count tasks by status")
    count.add_argument("--json", action="store_true", help="Output JSON")
    add_output_mode_argument(count)

    find = task_sub.add_parser("find", help="Search title and body")
    find.add_argument("keyword", help="Substring to search for")
    find.add_argument(
        "--all", action="store_true", help="Include done and closed tasks"
    )
    find.add_argument("--json", action="store_true", help="Output JSON")
    add_output_mode_argument(find)

    # block
    block = sub.add_parser("block", help="Blocking relationships")
    block_sub = block.add_subparsers(
        dest="block_cmd", required=True, metavar="block_cmd"
    )
    for name, help_text in (
        ("add", "Record that <blocker> blocks <blocked>"),
        ("remove", "Remove a blocking relationship"),
    ):
        cmd = block_sub.add_parser(name, help=help_text)
        cmd.add_argument("blocker", type=int, help="Blocker task id")
        cmd.add_argument("blocked", type=int, help="Blocked task id")
        cmd.add_argument("--json", action="store_true", help="Output JSON")
    block_ls = block_sub.add_parser("list", help="Show what blocks a task and what it blocks")
    block_ls.add_argument("id", type=int, help="Task id")
    block_ls.add_argument("--json", action="store_true", help="Output JSON")

    # tag
    tag = sub.add_parser("tag", help="Tag operations")
    tag_sub = tag.add_subparsers(dest="tag_cmd", required=True, metavar="tag_cmd")

    tag_add = tag_sub.add_parser("add", help="Create a tag")
    tag_add.add_argument("name", help="Tag name")
    tag_add.add_argument("--json", action="store_true", help="Output JSON")

    tag_ls = tag_sub.add_parser("list", help="List tags")
    tag_ls.add_argument("--json", action="store_true", help="Output JSON")
    add_output_mode_argument(tag_ls)

    tag_rename = tag_sub.add_parser("rename", help="Rename a tag")
    tag_rename.add_argument("id", type=int, help="Tag id")
    tag_rename.add_argument("name", help="New name")
    tag_rename.add_argument("--json", action="store_true", help="Output JSON")

    tag_delete = tag_sub.add_parser("delete", help="Delete a tag")
    tag_delete.add_argument("id", type=int, help="Tag id")
    tag_delete.add_argument("--json", action="store_true", help="Output JSON")

    for name, help_text in (
        ("attach", "Attach a tag to a task"),
        ("detach", "Detach a tag from a task"),
    ):
        cmd = tag_sub.add_parser(name, help=help_text)
        cmd.add_argument("task_id", type=int, help="Task id")
        cmd.add_argument("tag_id", type=int, help="Tag id")
        cmd.add_argument("--json", action="store_true", help="Output JSON")

    tag_show = tag_sub.add_parser("show", help="List a task's tags")
    tag_show.add_argument("task_id", type=int, help="Task id")
    tag_show.add_argument("--json", action="store_true", help="Output JSON")
    add_output_mode_argument(tag_show)

    # meta
    meta = sub.add_parser("meta", help="Task metadata")
    meta_sub = meta.add_subparsers(dest="meta_cmd", required=True, metavar="meta_cmd")

    meta_set = meta_sub.add_parser("set", help="Set a key on a task")
    meta_set.add_argument("task_id", type=int, help="Task id")
    meta_set.add_argument("key", help="Metadata key")
    meta_set.add_argument("value", help="Metadata value")
    meta_set.add_argument("--json", action="store_true", help="Output JSON")

    for name, help_text in (
        ("get", "Print one key's value"),
        ("delete", "Delete one key"),
    ):
        cmd = meta_sub.add_parser(name, help=help_text)
        cmd.add_argument("task_id", type=int, help="Task id")
        cmd.add_argument("key", help="Metadata key")
        cmd.add_argument("--json", action="store_true", help="Output JSON")

    meta_ls = meta_sub.add_parser("list", help="List a task's metadata")
    meta_ls.add_argument("task_id", type=int, help="Task id")
    meta_ls.add_argument("--json", action="store_true", help="Output JSON")
    add_output_mode_argument(meta_ls)

    guide = sub.add_parser(
        "agent-guide", help="Print a command reference for automated agents"
    )
    guide.add_argument("--json", action="store_true", help="Output JSON")
    add_output_mode_argument(guide)

    return p


def _run_task(board: Board, args: argparse.Namespace, output_mode: str) -> None:
    cmd = args.task_cmd

    if cmd == "add":
        body = _resolve_add_body(args)
        # A refused block also discards the new task.
        with board.store.transaction():
            task = board.tasks.create(
                args.title,
                body=body,
                author=args.author,
                status=args.status,
                parent_id=args.parent,
            )
            for blocker_id in args.blocked_by:
                board.blocks.add_edge(blocker_id, task.id)
            for blocked_id in args.blocks:
                board.blocks.add_edge(task.id, blocked_id)
        if args.json:
            payload = task.to_dict()
            payload["blocked_by"] = list(args.blocked_by)
            payload["blocks"] = list(args.blocks)
            _emit_json(payload)
        else:
            print(task.id)
        return

    if cmd == "get":
        detail = board.show(args.id)
        if detail is None:
            raise NotFoundError("task", args.id)
        if args.json:
            _emit_json(detail)
        elif output_mode == "rich":
            _print_task_details_rich(detail)
        else:
            _print_task_details(detail)
        return

    if cmd == "list":
        tasks = board.tasks.list(
            status=args.status,
            author=args.author,
            tag_ids=_resolve_tag_filter(board, args.tag),
        )
        if not args.status and not args.all:
            tasks = [task for task in tasks if not task.is_terminal]
        if args.root_only:
            tasks = [task for task in tasks if task.parent_id is None]

        if args.tree:
            nodes = board.hierarchy.tree_from(tasks)
            if args.json:
                _emit_json([node.to_dict() for node in nodes])
            else:
                _print_tree(nodes, output_mode=output_mode)
            return

        if args.json:
            _emit_json([task.to_dict() for task in tasks])
            return
        filtered = bool(args.status or args.author or args.tag or args.root_only)
        _print_tasks(
            board,
            tasks,
            output_mode=output_mode,
            title="Tasks",
            empty="(no matching tasks)" if filtered else "(no tasks)",
        )
        return

    if cmd == "update":
        fields: dict[str, Any] = {}
        if args.title is not None:
            fields["title"] = args.title
        if args.clear_body:
            fields["body"] = None
        elif args.file is not None:
            fields["body"] = _read_body_file(args.file)
        elif args.body is not None:
            fields["body"] = args.body
        if args.clear_author:
            fields["author"] = None
        elif args.author is not None:
            fields["author"] = args.author
        if args.status is not None:
            fields["status"] = args.status
        if not fields:
            raise ValueError("nothing to update; pass at least one field option")

        task = board.tasks.update(args.id, **fields)
        if task is None:
            raise NotFoundError("task", args.id)
        if args.json:
            _emit_json(task.to_dict())
        else:
            _print_task(task)
        return

    if cmd == "parent":
        task = board.hierarchy.set_parent(args.id, args.parent)
        if args.json:
            _emit_json(task.to_dict())
        else:
            _print_task(task)
        return

    if cmd == "children":
        if not board.tasks.exists(args.id):
            raise NotFoundError("task", args.id)
        tasks = board.hierarchy.get_children(args.id)
        if args.json:
            _emit_json([task.to_dict() for task in tasks])
        else:
            _print_tasks(
                board,
                tasks,
                output_mode=output_mode,
                title=f"Children of {args.id}",
                empty="(no children)",
            )
        return

    if cmd == "delete":
        if not board.tasks.delete(args.id):
            raise NotFoundError("task", args.id)
        if args.json:
            _emit_json({"id": args.id, "deleted": True})
        else:
            print(f"deleted: {args.id}")
        return

    if cmd == "count":
        counts = board.tasks.count_by_status()
        if args.json:
            _emit_json(counts)
            return
        rows = [(status, str(n)) for status, n in counts.items()]
        rows.append(("total", str(sum(counts.values()))))
        _print_rows(
            ("STATUS", "COUNT"),
            rows,
            output_mode=output_mode,
            title="Tasks by status",
            empty="(no tasks)",
        )
        return

    if cmd == "find":
        tasks = board.tasks.search(args.keyword, include_terminal=args.all)
        if args.json:
            _emit_json([task.to_dict() for task in tasks])
        else:
            _print_tasks(
                board,
                tasks,
                output_mode=output_mode,
                title=f"Tasks matching {escape(repr(args.keyword))}",
                empty="(no matching tasks)",
            )
        return


def _run_block(board: Board, args: argparse.Namespace) -> None:
    cmd = args.block_cmd

    if cmd == "add":
        edge = board.blocks.add_edge(args.blocker, args.blocked)
        if args.json:
            _emit_json(edge.to_dict())
        else:
            print(f"{edge.blocker_task_id} blocks {edge.blocked_task_id}")
        return

    if cmd == "remove":
        if not board.blocks.remove_edge(args.blocker, args.blocked):
            raise NotFoundError("block", f"{args.blocker} -> {args.blocked}")
        if args.json:
            _emit_json(
                {"blocker_task_id": args.blocker, "blocked_task_id": args.blocked, "removed": True}
            )
        else:
            print(f"removed: {args.blocker} blocks {args.blocked}")
        return

    if cmd == "list":
        if not board.tasks.exists(args.id):
            raise NotFoundError("task", args.id)
        payload = {
            "id": args.id,
            "blocked_by": board.blocks.get_blockers(args.id),
            "blocks": board.blocks.get_blocked(args.id),
        }
        if args.json:
            _emit_json(payload)
        else:
            print("blocked by: " + (", ".join(map(str, payload["blocked_by"])) or "(none)"))
            print("blocks: " + (", ".join(map(str, payload["blocks"])) or "(none)"))
        return


def _run_tag(board: Board, args: argparse.Namespace, output_mode: str) -> None:
    cmd = args.tag_cmd

    if cmd == "add":
        tag = board.tags.create(args.name)
        if args.json:
            _emit_json(tag.to_dict())
        else:
            print(tag.id)
        return

    if cmd == "list":
        tags = board.tags.list()
        if args.json:
            _emit_json([tag.to_dict() for tag in tags])
        else:
            _print_rows(
                _TAG_HEADERS,
                [(str(t.id), t.name, _format_time(t.created_at)) for t in tags],
                output_mode=output_mode,
                title="Tags",
                empty="(no tags)",
            )
        return

    if cmd == "rename":
        tag = board.tags.rename(args.id, args.name)
        if tag is None:
            raise NotFoundError("tag", args.id)
        if args.json:
            _emit_json(tag.to_dict())
        else:
            print(f"{tag.id}  {tag.name}")
        return

    if cmd == "delete":
        if not board.tags.delete(args.id):
            raise NotFoundError("tag", args.id)
        if args.json:
            _emit_json({"id": args.id, "deleted": True})
        else:
            print(f"deleted: {args.id}")
        return

    if cmd == "attach":
        link = board.task_tags.attach(args.task_id, args.tag_id)
        if args.json:
            _emit_json(link.to_dict())
        else:
            print(f"tagged: task {link.task_id} with tag {link.tag_id}")
        return

    if cmd == "detach":
        if not board.task_tags.detach(args.task_id, args.tag_id):
            raise NotFoundError("task tag", f"{args.task_id}/{args.tag_id}")
        if args.json:
            _emit_json({"task_id": args.task_id, "tag_id": args.tag_id, "removed": True})
        else:
            print(f"untagged: task {args.task_id} from tag {args.tag_id}")
        return

    if cmd == "show":
        if not board.tasks.exists(args.task_id):
            raise NotFoundError("task", args.task_id)
        tags = board.task_tags.tags_for_task(args.task_id)
        if args.json:
            _emit_json([tag.to_dict() for tag in tags])
        else:
            _print_rows(
                _TAG_HEADERS,
                [(str(t.id), t.name, _format_time(t.created_at)) for t in tags],
                output_mode=output_mode,
                title=f"Tags on task {args.task_id}",
                empty="(no tags)",
            )
        return


def _run_meta(board: Board, args: argparse.Namespace, output_mode: str) -> None:
    cmd = args.meta_cmd

    if cmd == "set":
        meta = board.metadata.set(args.task_id, args.key, args.value)
        if args.json:
            _emit_json(meta.to_dict())
        else:
            print(f"{meta.key}={meta.value}")
        return

    if cmd == "get":
        meta = board.metadata.get(args.task_id, args.key)
        if meta is None:
            raise NotFoundError("metadata key", args.key)
        if args.json:
            _emit_json(meta.to_dict())
        else:
            print(meta.value)
        return

    if cmd == "delete":
        if not board.metadata.delete(args.task_id, args.key):
            raise NotFoundError("metadata key", args.key)
        if args.json:
            _emit_json({"task_id": args.task_id, "key": args.key, "deleted": True})
        else:
            print(f"deleted: {args.key}")
        return

    if cmd == "list":
        if not board.tasks.exists(args.task_id):
            raise NotFoundError("task", args.task_id)
        rows = board.metadata.list(args.task_id)
        if args.json:
            _emit_json([meta.to_dict() for meta in rows])
        else:
            _print_rows(
                _META_HEADERS,
                [(m.key, m.value, _format_time(m.updated_at)) for m in rows],
                output_mode=output_mode,
                title=f"Metadata on task {args.task_id}",
                empty="(no metadata)",
            )
        return


def _run_agent_guide(args: argparse.Namespace, output_mode: str) -> None:
    if args.json:
        _emit_json({"title": AGENT_GUIDE_TITLE, "markdown": AGENT_GUIDE})
    elif output_mode == "rich":
        render_markdown(make_console("rich"), AGENT_GUIDE)
    else:
        print(AGENT_GUIDE, end="")


def _open_board(db: str | None) -> Board:
    if db:
        return Board.open(Path(db).expanduser())
    return Board.from_workdir(Path.cwd())


def main(argv: list[str] | None = None) -> None:
    raw_argv = list(argv) if argv is not None else sys.argv[1:]
    args = _build_parser().parse_args(raw_argv)

    setup_logging(level=logging.DEBUG if args.verbose else logging.WARNING)

    output_mode = "plain"
    if hasattr(args, "output"):
        try:
            output_mode = resolve_output_mode(getattr(args, "output", None))
        except ValueError as exc:
            print(f"error: {exc}", file=sys.stderr)
            raise SystemExit(2)

    if args.command == "agent-guide":
        _run_agent_guide(args, output_mode)
        return

    board = _open_board(args.db)
    try:
        if args.command == "task":
            _run_task(board, args, output_mode)
        elif args.command == "block":
            _run_block(board, args)
        elif args.command == "tag":
            _run_tag(board, args, output_mode)
        elif args.command == "meta":
            _run_meta(board, args, output_mode)
    except ValueError as exc:
        logger.debug("command failed: %s", exc)
        print(f"error: {exc}", file=sys.stderr)
        raise SystemExit(1)
    finally:
        board.close()


if __name__ == "__main__":
    main()
