from __future__ import annotations

AGENT_GUIDE_TITLE = "taskboard agent guide"

AGENT_GUIDE = """\
# taskboard agent guide

`taskboard` keeps tasks in one SQLite file. Every command accepts `--json`;
prefer it when another program reads the output. Errors go to stderr as
`error: <message>` with exit code 1 (2 for usage errors).

Statuses: `backlog` -> `ready` -> `in_progress` -> `review` -> `done` -> `closed`.
`done` and `closed` are terminal and hidden from `task list` and `task find`
unless `--all` (or an explicit `--status`) is given.

## Tasks

```bash
taskboard task add "Title" "Body"
taskboard task add "Title" -s ready -a agent
taskboard task add "Subtask" -p 1
taskboard task add "Title" -f ./notes.md          # body from a file
taskboard task add "Deploy" --blocked-by 3,4 --blocks 7

taskboard task list                     # open tasks, newest first
taskboard task list --all               # include done and closed
taskboard task list -s in_progress
taskboard task list --tag bug,2         # tag names or ids, any match
taskboard task list --tree              # nest the listed tasks by parent
taskboard task list --root-only

taskboard task get <id>                 # relations, tags and metadata
taskboard task find "keyword" [--all]
taskboard task count
taskboard task update <id> -s review --title "New title"
taskboard task update <id> -f ./notes.md
taskboard task parent <id> <parent-id>
taskboard task parent <id> none         # detach from its parent
taskboard task children <id>
taskboard task delete <id>              # children keep living as roots
```

## Blocking

`block add A B` records that A blocks B. A block that would close a loop
is refused.

```bash
taskboard block add <blocker-id> <blocked-id>
taskboard block remove <blocker-id> <blocked-id>
taskboard block list <id>
```

## Tags

```bash
taskboard tag add frontend
taskboard tag list
taskboard tag rename <tag-id> <name>
taskboard tag delete <tag-id>
taskboard tag attach <task-id> <tag-id>
taskboard tag detach <task-id> <tag-id>
taskboard tag show <task-id>
```

## Metadata

One value per key and task; `meta set` overwrites.

```bash
taskboard meta set <task-id> priority high
taskboard meta get <task-id> priority
taskboard meta list <task-id>
taskboard meta delete <task-id> priority
```

## Database location

`--db PATH` wins, then `TASKBOARD_DB_PATH`, then `path:` in
`.taskboard.yml`, then `.taskboard/data.db` under the working directory.
With `TASKBOARD_ENV=test` the file names become `.taskboard-test.yml` and
`.taskboard-test/`.
"""
