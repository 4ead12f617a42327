from __future__ import annotations

import logging
from dataclasses import replace
from pathlib import Path
from typing import Any, Optional, Protocol

import yaml

from taskmap.core.errors import TaskLoadError, ValidationError
from taskmap.core.io.task_file import dump_task_file, load_task_file, project_from_doc, tasks_from_rows
from taskmap.core.model import PROJECT_STATUSES, Project, Task


logger = logging.getLogger(__name__)

MAX_PROJECT_NAME = 100


class TaskStore(Protocol):
    def load_tasks(self, project_id: str) -> list[Task]: ...

    def save_tasks(self, tasks: list[Task]) -> list[Task]: ...

    def update_project(self, project_id: str, fields: dict[str, Any]) -> Project: ...


class FileTaskStore:
    """TaskStore backed by one YAML/JSON project file."""

    def __init__(self, path: str | Path, *, project: Optional[Project] = None) -> None:
        self._path = Path(path)
        self._default_project = project

    @property
    def path(self) -> Path:
        return self._path

    def project(self) -> Project:
        if not self._path.exists():
            if self._default_project is None:
                raise TaskLoadError(code="E_FILE_NOT_FOUND", message="file does not exist", file=str(self._path))
            return self._default_project
        return project_from_doc(load_task_file(str(self._path)))

    def load_tasks(self, project_id: str) -> list[Task]:
        if not self._path.exists():
            return []
        doc = load_task_file(str(self._path))
        project = project_from_doc(doc)
        if project.id != project_id:
            return []
        return tasks_from_rows(doc["tasks"], project.id)

    def save_tasks(self, tasks: list[Task]) -> list[Task]:
        project = self.project()
        current = self.load_tasks(project.id)
        merged = reconcile_saved(current, tasks)
        self._write(project, merged)
        return self.load_tasks(project.id)

    def update_project(self, project_id: str, fields: dict[str, Any]) -> Project:
        project = self.project()
        if project.id != project_id:
            raise TaskLoadError(
                code="E_PROJECT_NOT_FOUND",
                message=f"project not found: {project_id}",
                file=str(self._path),
            )
        updated = apply_project_update(project, fields)
        self._write(updated, self.load_tasks(project.id))
        return updated

    def _write(self, project: Project, tasks: list[Task]) -> None:
        try:
            dump_task_file(project, tasks, str(self._path))
        except (OSError, yaml.YAMLError) as e:
            raise TaskLoadError(code="E_FILE_WRITE", message=str(e), file=str(self._path)) from e


def save_tasks_or_keep(store: TaskStore, tasks: list[Task]) -> tuple[list[Task], bool]:
    """Persist tasks; on store failure keep the unsaved list so the caller can retry.

    Returns (tasks, saved).
    """
    try:
        saved = store.save_tasks(tasks)
    except TaskLoadError as e:
        logger.warning("saving %d tasks failed, keeping unsaved list: %s", len(tasks), e)
        return list(tasks), False
    return reconcile_saved(tasks, saved), True


def reconcile_saved(local: list[Task], saved: list[Task]) -> list[Task]:
    """Merge persisted rows into a local list by id, never by position.

    Local order is kept; persisted rows replace local rows with the same id and
    rows unknown locally are appended in persisted order.
    """
    saved_by_id = {t.id: t for t in saved}
    out: list[Task] = []
    seen: set[str] = set()
    for t in local:
        out.append(saved_by_id.get(t.id, t))
        seen.add(t.id)
    for t in saved:
        if t.id not in seen:
            out.append(t)
            seen.add(t.id)
    return out


def apply_project_update(project: Project, fields: dict[str, Any]) -> Project:
    """Validate an update the way the projects endpoint does and apply it."""
    allowed = {"name", "description", "tech_stack", "status"}
    unknown = sorted(set(fields) - allowed)
    if unknown:
        raise ValidationError(code="E_UNKNOWN_FIELD", message=f"unknown fields: {', '.join(unknown)}", path="project")
    if not fields:
        raise ValidationError(code="E_NO_FIELDS", message="no fields to update provided", path="project")

    changes: dict[str, Any] = {}
    if "name" in fields:
        name = fields["name"]
        if not isinstance(name, str) or not name.strip():
            raise ValidationError(code="E_INVALID_NAME", message="project name cannot be empty", path="project.name")
        if len(name.strip()) > MAX_PROJECT_NAME:
            raise ValidationError(
                code="E_INVALID_NAME",
                message=f"project name must be less than {MAX_PROJECT_NAME} characters",
                path="project.name",
            )
        changes["name"] = name.strip()
    if "description" in fields:
        description = fields["description"]
        changes["description"] = description.strip() if isinstance(description, str) else ""
    if "tech_stack" in fields:
        stack = fields["tech_stack"]
        if not isinstance(stack, list) or not all(isinstance(x, str) for x in stack):
            raise ValidationError(
                code="E_INVALID_TYPE", message="tech_stack must be an array of strings", path="project.tech_stack"
            )
        changes["tech_stack"] = list(stack)
    if "status" in fields:
        if fields["status"] not in PROJECT_STATUSES:
            raise ValidationError(
                code="E_INVALID_ENUM",
                message=f"status must be one of {list(PROJECT_STATUSES)}",
                path="project.status",
            )
        changes["status"] = fields["status"]

    return replace(project, **changes)
