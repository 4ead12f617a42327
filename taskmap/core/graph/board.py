from __future__ import annotations

from dataclasses import dataclass

from taskmap.core.graph.status import derive_statuses
from taskmap.core.model import Task, TaskStatus


@dataclass(frozen=True)
class BoardColumn:
    id: TaskStatus
    title: str
    tasks: list[Task]


COLUMN_TITLES: dict[TaskStatus, str] = {
    "ready": "Ready to Start",
    "blocked": "Waiting for Dependencies",
    "in_progress": "In Progress",
    "completed": "Completed",
}


def board_columns(tasks: list[Task]) -> list[BoardColumn]:
    """Kanban columns in fixed order, each holding tasks in derived status."""
    derived = derive_statuses(tasks)
    return [
        BoardColumn(id=status, title=title, tasks=[t for t in derived if t.status == status])
        for status, title in COLUMN_TITLES.items()
    ]
