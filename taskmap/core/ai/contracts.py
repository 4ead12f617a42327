from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional, Union


@dataclass(frozen=True)
class RawTaskStub:
    """A generator-proposed task whose fields have only been shape-checked.

    Values other than title stay untrusted; the normalizer owns coercion.
    """

    title: str
    description: str = ""
    priority: Any = None
    dependencies: list[Any] = field(default_factory=list)
    estimated_time: Any = None
    id: Optional[str] = None


@dataclass(frozen=True)
class ValidGeneration:
    stubs: list[RawTaskStub]
    project_name: Optional[str] = None


@dataclass(frozen=True)
class InvalidGeneration:
    reason: str


Generation = Union[ValidGeneration, InvalidGeneration]


def parse_generation(obj: Any) -> Generation:
    """Validate raw generator output.

    Accepts either {"project_name"?: str, "tasks": [...]} or a bare list of task
    objects. Never raises: problems come back as InvalidGeneration.
    """
    project_name: Optional[str] = None
    if isinstance(obj, dict):
        name = obj.get("project_name", obj.get("projectName"))
        if isinstance(name, str) and name.strip():
            project_name = name.strip()
        tasks_raw = obj.get("tasks")
    else:
        tasks_raw = obj

    if not isinstance(tasks_raw, list):
        return InvalidGeneration(reason="tasks must be a list")
    if not tasks_raw:
        return InvalidGeneration(reason="tasks must not be empty")

    stubs: list[RawTaskStub] = []
    for i, item in enumerate(tasks_raw):
        if not isinstance(item, dict):
            return InvalidGeneration(reason=f"tasks[{i}] must be an object")
        title = item.get("title")
        if not isinstance(title, str) or not title.strip():
            return InvalidGeneration(reason=f"tasks[{i}].title must be a non-empty string")

        description = item.get("description")
        deps = item.get("dependencies", item.get("depends_on"))
        if deps is None:
            deps = []
        if not isinstance(deps, list):
            return InvalidGeneration(reason=f"tasks[{i}].dependencies must be a list")

        stub_id = item.get("id")
        stubs.append(
            RawTaskStub(
                title=title.strip(),
                description=description.strip() if isinstance(description, str) else "",
                priority=item.get("priority"),
                dependencies=list(deps),
                estimated_time=item.get("estimated_time", item.get("estimatedTime")),
                id=stub_id.strip() if isinstance(stub_id, str) and stub_id.strip() else None,
            )
        )

    return ValidGeneration(stubs=stubs, project_name=project_name)
