from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DB_PATH_ENV = "TASKBOARD_DB_PATH"
MODE_ENV = "TASKBOARD_ENV"
OUTPUT_ENV = "TASKBOARD_OUTPUT"

CONFIG_FILE = ".taskboard.yml"
TEST_CONFIG_FILE = ".taskboard-test.yml"
DATA_DIR = ".taskboard"
TEST_DATA_DIR = ".taskboard-test"
DB_FILENAME = "data.db"


@dataclass(frozen=True)
class TaskboardConfig:
    db_path: Path
    source: str  # "env", "file" or "default"


def is_test_mode(environ: Mapping[str, str] | None = None) -> bool:
    env = os.environ if environ is None else environ
    return env.get(MODE_ENV, "").strip().lower() == "test"


def _load_config_file(path: Path) -> dict[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.warning("cannot read %s (%s); using default database path", path, exc)
        return {}

    try:
        data = yaml.safe_load(raw) or {}
    except yaml.YAMLError as exc:
        logger.warning("invalid YAML in %s (%s); using default database path", path, exc)
        return {}

    if not isinstance(data, dict):
        logger.warning("%s must contain a mapping; using default database path", path)
        return {}
    return data


def resolve_config(
    cwd: Path | None = None,
    *,
    environ: Mapping[str, str] | None = None,
) -> TaskboardConfig:
    """Return the database location for *cwd*.

    Resolution order:
    1. TASKBOARD_DB_PATH
    2. ``path`` in .taskboard.yml (.taskboard-test.yml in test mode)
    3. .taskboard/data.db (.taskboard-test/data.db in test mode)

    Relative paths are resolved against *cwd*.
    """
    env = os.environ if environ is None else environ
    base = (cwd or Path.cwd()).resolve()
    test_mode = is_test_mode(env)

    config = _resolve(base, env, test_mode)
    if test_mode and _looks_like_production(config.db_path):
        logger.warning(
            "test mode is using a production database path: %s", config.db_path
        )
    return config


def _resolve(base: Path, env: Mapping[str, str], test_mode: bool) -> TaskboardConfig:
    raw = str(env.get(DB_PATH_ENV, "") or "").strip()
    if raw:
        return TaskboardConfig(db_path=_absolute(base, raw), source="env")

    config_file = base / (TEST_CONFIG_FILE if test_mode else CONFIG_FILE)
    if config_file.is_file():
        value = _load_config_file(config_file).get("path")
        if isinstance(value, str) and value.strip():
            return TaskboardConfig(db_path=_absolute(base, value.strip()), source="file")
        if value is not None:
            logger.warning("%s: 'path' must be a non-empty string", config_file)

    data_dir = TEST_DATA_DIR if test_mode else DATA_DIR
    return TaskboardConfig(db_path=base / data_dir / DB_FILENAME, source="default")


def _absolute(base: Path, raw: str) -> Path:
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = base / path
    return path


def _looks_like_production(path: Path) -> bool:
    return DATA_DIR in path.parts and TEST_DATA_DIR not in path.parts


def output_mode_from_env(environ: Mapping[str, str] | None = None) -> str | None:
    env = os.environ if environ is None else environ
    raw = env.get(OUTPUT_ENV, "").strip()
    return raw or None
