from __future__ import annotations

from dataclasses import replace
from typing import Iterable, Mapping, Optional

from taskmap.core.model import Task, TaskStatus


def derive_status(task: Task, tasks_by_id: Mapping[str, Task]) -> TaskStatus:
    """Displayed status of a task.

    in_progress/completed are authoritative. Otherwise a task is ready only when
    every dependency resolves to a task whose own status is completed; unknown
    ids count as unsatisfied. No fixpoint is needed, so cycles just stay blocked.
    """
    if task.status in ("in_progress", "completed"):
        return task.status
    for dep in task.dependencies:
        other = tasks_by_id.get(dep)
        if other is None or other.status != "completed":
            return "blocked"
    return "ready"


def derive_statuses(tasks: list[Task]) -> list[Task]:
    tasks_by_id = index_tasks(tasks)
    out: list[Task] = []
    for t in tasks:
        status = derive_status(t, tasks_by_id)
        out.append(t if status == t.status else replace(t, status=status))
    return out


def branch_status(statuses: Iterable[TaskStatus]) -> TaskStatus:
    values = list(statuses)
    if not values:
        return "ready"
    if all(s == "completed" for s in values):
        return "completed"
    if any(s == "in_progress" for s in values):
        return "in_progress"
    if any(s == "blocked" for s in values):
        return "blocked"
    return "ready"


def first_ready_task(tasks: list[Task]) -> Optional[Task]:
    """First task, in list order, whose derived status is ready."""
    tasks_by_id = index_tasks(tasks)
    for t in tasks:
        if derive_status(t, tasks_by_id) == "ready":
            return t
    return None


def index_tasks(tasks: Iterable[Task]) -> dict[str, Task]:
    # First occurrence wins for duplicate ids; the linter reports them.
    out: dict[str, Task] = {}
    for t in tasks:
        out.setdefault(t.id, t)
    return out
