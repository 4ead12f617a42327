from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Optional, Protocol

from taskmap.core.ai.contracts import InvalidGeneration, parse_generation
from taskmap.core.errors import GenerationError, ValidationError
from taskmap.core.expand.templates import TaskTemplate, template_stubs
from taskmap.core.graph.status import derive_statuses
from taskmap.core.io.store import apply_project_update
from taskmap.core.model import Project, Task
from taskmap.core.normalize.normalize_tasks import DEFAULT_ESTIMATED_TIME, new_task_id, normalize_tasks


logger = logging.getLogger(__name__)

MIN_INPUT_LENGTH = 3
OPTIMISTIC_TITLE_LIMIT = 80


class TaskGenerator(Protocol):
    def generate(self, text: str) -> Any: ...


@dataclass(frozen=True)
class GenerationOutcome:
    project: Project
    tasks: list[Task]
    used_fallback: bool
    reasons: list[str]


def generate_tasks(
    text: str,
    *,
    project: Project,
    generator: Optional[TaskGenerator] = None,
    existing_tasks: list[Task] | None = None,
    templates: dict[str, TaskTemplate] | None = None,
    fallback_estimated_time: str = DEFAULT_ESTIMATED_TIME,
    id_factory: Callable[[], str] = new_task_id,
) -> GenerationOutcome:
    """Turn free text into a status-derived task list.

    - Ask the generator (if any) and validate its output.
    - Any generator failure or invalid output falls back to the template catalog;
      the reasons are logged and returned, never raised.
    - An AI-assigned project name is applied when it passes project validation.
    """
    if not isinstance(text, str) or len(text.strip()) < MIN_INPUT_LENGTH:
        raise ValidationError(
            code="E_INPUT_TOO_SHORT",
            message=f"input must be at least {MIN_INPUT_LENGTH} characters long",
            path="input",
        )
    text = text.strip()

    existing_ids = [t.id for t in existing_tasks or []]
    reasons: list[str] = []
    tasks: list[Task] | None = None
    project_name: Optional[str] = None

    if generator is None:
        reasons.append("no generator configured")
    else:
        try:
            parsed = parse_generation(generator.generate(text))
        except Exception as e:
            parsed = InvalidGeneration(reason=f"generator failed: {e}")

        if isinstance(parsed, InvalidGeneration):
            reasons.append(parsed.reason)
        else:
            try:
                tasks = normalize_tasks(
                    parsed.stubs,
                    project_id=project.id,
                    existing_ids=existing_ids,
                    fallback_estimated_time=fallback_estimated_time,
                    id_factory=id_factory,
                )
                project_name = parsed.project_name
            except GenerationError as e:
                reasons.append(str(e))

    used_fallback = tasks is None
    if tasks is None:
        logger.warning("using template tasks for %r: %s", text[:40], "; ".join(reasons))
        tasks = normalize_tasks(
            template_stubs(text, templates),
            project_id=project.id,
            existing_ids=existing_ids,
            fallback_estimated_time=fallback_estimated_time,
            id_factory=id_factory,
        )

    if project_name:
        try:
            project = apply_project_update(project, {"name": project_name})
        except ValidationError as e:
            logger.warning("ignoring generated project name: %s", e)

    return GenerationOutcome(
        project=project,
        tasks=derive_statuses(tasks),
        used_fallback=used_fallback,
        reasons=reasons,
    )


def optimistic_task(text: str, *, project_id: Optional[str] = None, now: Optional[datetime] = None) -> Task:
    """Placeholder card shown while generation is in flight."""
    stamp = now or datetime.now()
    text = text.strip()
    title = text if len(text) <= OPTIMISTIC_TITLE_LIMIT else text[:OPTIMISTIC_TITLE_LIMIT] + "…"
    return Task(
        id=f"user-input-{int(stamp.timestamp() * 1000)}",
        title=title,
        description=text,
        status="ready",
        priority="medium",
        dependencies=[],
        estimated_time=DEFAULT_ESTIMATED_TIME,
        project_id=project_id,
    )
