# src/focus_todo/tasks/task_persistence.py

from __future__ import annotations

import contextlib
import json
import logging
import os
from collections.abc import Sequence
from pathlib import Path

from .task_models import Task

logger = logging.getLogger(__name__)


class TaskDocumentError(ValueError):
    """The persisted task document exists but cannot be decoded."""


def encode_tasks(tasks: Sequence[Task]) -> str:
    return json.dumps([t.to_dict() for t in tasks], ensure_ascii=False, indent=2)


def decode_tasks(raw: str) -> list[Task]:
    """
    Decode a task document.

    All-or-nothing: any malformed record fails the whole document, so callers
    never see a partially populated list.
    """
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise TaskDocumentError(f"not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise TaskDocumentError("task document must be a JSON array")

    out: list[Task] = []
    seen: set[str] = set()
    for i, item in enumerate(data):
        if not isinstance(item, dict):
            raise TaskDocumentError(f"record {i} is not an object")
        try:
            task = Task.from_dict(item)
        except ValueError as e:
            raise TaskDocumentError(f"record {i}: {e}") from e
        if task.id in seen:
            raise TaskDocumentError(f"record {i}: duplicate task id {task.id}")
        seen.add(task.id)
        out.append(task)
    return out


class JsonTaskFile:
    """
    JSON file persistence for the ordered task list.

    - missing file -> empty list
    - malformed file -> TaskDocumentError (the store treats it as empty)
    - writes go to a temp file first, then os.replace()
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> list[Task]:
        if not self._path.exists():
            logger.info("No task file at %s; starting empty.", self._path)
            return []
        tasks = decode_tasks(self._path.read_text("utf-8"))
        logger.info("Loaded %d tasks from %s", len(tasks), self._path)
        return tasks

    def save(self, tasks: Sequence[Task]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        try:
            tmp.write_text(encode_tasks(tasks), "utf-8")
            os.replace(tmp, self._path)
        except Exception:
            with contextlib.suppress(OSError):
                tmp.unlink()
            raise
        with contextlib.suppress(Exception):
            os.chmod(self._path, 0o600)
        logger.debug("Saved %d tasks to %s", len(tasks), self._path)
