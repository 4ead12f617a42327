from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Optional

from taskmap.core.errors import DispatchError
from taskmap.core.execute.editor_client import EditorClient, ExecutionResult
from taskmap.core.graph.status import derive_status, index_tasks
from taskmap.core.model import Task


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchOutcome:
    tasks: list[Task]
    dispatched: bool
    result: Optional[ExecutionResult] = None
    error: Optional[DispatchError] = None


def dispatch_task(tasks: list[Task], task_id: str, client: EditorClient) -> DispatchOutcome:
    """Send one ready task to the editor automation and fold the answer back in.

    The task is marked in_progress (progress 0) before the call. completed and
    in_progress answers are authoritative; a failed answer or a DispatchError
    restores the task's pre-dispatch status and progress.
    """
    by_id = index_tasks(tasks)
    task = by_id.get(task_id)
    if task is None:
        logger.warning("dispatch ignored: unknown task %s", task_id)
        return DispatchOutcome(tasks=list(tasks), dispatched=False)
    if derive_status(task, by_id) != "ready":
        logger.warning("dispatch ignored: task %s is %s", task_id, derive_status(task, by_id))
        return DispatchOutcome(tasks=list(tasks), dispatched=False)

    started = _update(tasks, task_id, status="in_progress", progress=0)
    running = index_tasks(started)[task_id]

    try:
        result = client.request_execution(running)
    except DispatchError as e:
        logger.warning("dispatch of %s failed, reverting: %s", task_id, e)
        return DispatchOutcome(
            tasks=_update(started, task_id, status=task.status, progress=task.progress),
            dispatched=False,
            error=e,
        )

    if result.status == "completed":
        return DispatchOutcome(
            tasks=_update(started, task_id, status="completed", progress=100), dispatched=True, result=result
        )
    if result.status == "in_progress":
        return DispatchOutcome(tasks=started, dispatched=True, result=result)

    logger.warning("editor reported failure for %s, reverting", task_id)
    return DispatchOutcome(
        tasks=_update(started, task_id, status=task.status, progress=task.progress),
        dispatched=False,
        result=result,
    )


def apply_progress(tasks: list[Task], task_id: str, progress: float) -> list[Task]:
    """Record progress for an in_progress task; reaching 100 completes it.

    Non-finite progress (NaN, infinity) is ignored.
    """
    task = index_tasks(tasks).get(task_id)
    if task is None or task.status != "in_progress" or not math.isfinite(progress):
        return list(tasks)
    value = max(0, min(100, int(progress)))
    if value >= 100:
        return _update(tasks, task_id, status="completed", progress=100)
    return _update(tasks, task_id, status="in_progress", progress=value)


def _update(tasks: list[Task], task_id: str, **changes) -> list[Task]:
    return [replace(t, **changes) if t.id == task_id else t for t in tasks]
