from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, cast

import yaml

from taskmap.core.errors import TaskLoadError
from taskmap.core.model import PROJECT_STATUSES, TASK_STATUSES, Project, ProjectStatus, Task, TaskStatus
from taskmap.core.normalize.normalize_tasks import coerce_estimated_time, coerce_priority


logger = logging.getLogger(__name__)


def load_task_file(path: str) -> dict[str, Any]:
    """Load a YAML/JSON project file.

    Returns a dict with keys: project, tasks. Does not coerce rows; use
    project_from_doc/tasks_from_rows for that.
    """

    p = Path(path)
    if not p.exists():
        raise TaskLoadError(
            code="E_FILE_NOT_FOUND",
            message="file does not exist",
            file=str(p),
        )

    suffix = p.suffix.lower()
    try:
        raw_text = p.read_text(encoding="utf-8")
    except OSError as e:  # pragma: no cover
        raise TaskLoadError(code="E_FILE_READ", message=str(e), file=str(p)) from e

    try:
        if suffix in {".yaml", ".yml"}:
            data = yaml.safe_load(raw_text)
        elif suffix == ".json":
            data = json.loads(raw_text)
        else:
            raise TaskLoadError(
                code="E_UNSUPPORTED_FORMAT",
                message="supported formats are .yaml/.yml and .json",
                file=str(p),
            )
    except TaskLoadError:
        raise
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        code = "E_YAML_PARSE" if suffix in {".yaml", ".yml"} else "E_JSON_PARSE"
        raise TaskLoadError(code=code, message=str(e), file=str(p)) from e

    if not isinstance(data, dict):
        raise TaskLoadError(
            code="E_INVALID_TOP_LEVEL",
            message="top-level document must be a mapping/object",
            file=str(p),
        )

    tasks = data.get("tasks")
    if tasks is None:
        tasks = []
    if not isinstance(tasks, list):
        raise TaskLoadError(
            code="E_INVALID_TYPE",
            message="tasks must be an array",
            file=str(p),
            path="tasks",
        )

    return {"project": data.get("project"), "tasks": tasks, "__file__": str(p)}


def project_from_doc(doc: dict[str, Any]) -> Project:
    raw = doc.get("project")
    if not isinstance(raw, dict):
        raw = {}
    file = doc.get("__file__")
    default_id = Path(file).stem if isinstance(file, str) else "project"

    pid = raw.get("id")
    name = raw.get("name")
    description = raw.get("description")
    tech_stack = raw.get("tech_stack")
    status = raw.get("status")

    return Project(
        id=pid if isinstance(pid, str) and pid.strip() else default_id,
        name=name.strip() if isinstance(name, str) and name.strip() else "Untitled Project",
        description=description if isinstance(description, str) else "",
        tech_stack=[x for x in tech_stack if isinstance(x, str)] if isinstance(tech_stack, list) else [],
        status=cast(ProjectStatus, status) if status in PROJECT_STATUSES else "active",
    )


def tasks_from_rows(rows: list[Any], project_id: Optional[str] = None) -> list[Task]:
    """Coerce stored rows into Task values, skipping rows without an id."""
    out: list[Task] = []
    for i, row in enumerate(rows):
        if not isinstance(row, dict) or not isinstance(row.get("id"), str) or not row["id"].strip():
            logger.warning("skipping task row %d without an id", i)
            continue

        status = row.get("status")
        if status == "pending":
            status = "ready"
        if status not in TASK_STATUSES:
            status = "ready"

        deps = row.get("dependencies")
        title = row.get("title")
        description = row.get("description")
        progress = row.get("progress")
        row_project = row.get("project_id")

        out.append(
            Task(
                id=row["id"].strip(),
                title=title if isinstance(title, str) else "",
                description=description if isinstance(description, str) else "",
                status=cast(TaskStatus, status),
                priority=coerce_priority(row.get("priority")),
                dependencies=[d for d in deps if isinstance(d, str)] if isinstance(deps, list) else [],
                estimated_time=coerce_estimated_time(row.get("estimated_time")),
                project_id=row_project if isinstance(row_project, str) else project_id,
                progress=_clamp_progress(progress),
            )
        )
    return out


def task_to_row(task: Task) -> dict[str, Any]:
    row: dict[str, Any] = {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "status": task.status,
        "priority": task.priority,
        "dependencies": list(task.dependencies),
        "estimated_time": task.estimated_time,
    }
    if task.project_id is not None:
        row["project_id"] = task.project_id
    if task.progress is not None:
        row["progress"] = task.progress
    return row


def project_to_row(project: Project) -> dict[str, Any]:
    return {
        "id": project.id,
        "name": project.name,
        "description": project.description,
        "tech_stack": list(project.tech_stack),
        "status": project.status,
    }


def dump_task_file(project: Project, tasks: list[Task], path: str) -> None:
    p = Path(path)
    if str(p.parent) not in (".", ""):
        p.parent.mkdir(parents=True, exist_ok=True)
    doc = {"project": project_to_row(project), "tasks": [task_to_row(t) for t in tasks]}
    if p.suffix.lower() == ".json":
        p.write_text(json.dumps(doc, indent=2) + "\n", encoding="utf-8")
        return
    with open(p, "w", encoding="utf-8") as f:
        yaml.safe_dump(doc, f, sort_keys=False, default_flow_style=False, allow_unicode=True)


def _clamp_progress(value: Any) -> Optional[int]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return max(0, min(100, int(value)))
