from __future__ import annotations

import logging
import math
import re
import uuid
from typing import Any, Callable, Iterable, Optional, cast

from taskmap.core.ai.contracts import InvalidGeneration, RawTaskStub, parse_generation
from taskmap.core.errors import GenerationError
from taskmap.core.model import PRIORITIES, Priority, Task


logger = logging.getLogger(__name__)

DEFAULT_ESTIMATED_TIME = "1 hour"

_NUMERIC_RE = re.compile(r"^\d+(\.\d+)?$")


def new_task_id() -> str:
    return f"task-{uuid.uuid4().hex[:12]}"


def normalize_tasks(
    stubs: Any,
    *,
    project_id: Optional[str] = None,
    existing_ids: Iterable[str] = (),
    fallback_estimated_time: str = DEFAULT_ESTIMATED_TIME,
    id_factory: Callable[[], str] = new_task_id,
) -> list[Task]:
    """Turn validated generator stubs into well-formed Task values.

    Dependency policy:
      - int entries are batch-relative indices and map to that stub's id
      - out-of-range indices and self references are dropped
      - str entries are kept only when they name a task of the batch or of
        existing_ids; anything else is dropped
      - duplicates are removed, first occurrence wins

    Raises GenerationError when stubs is not a non-empty list; callers are
    expected to fall back to the template catalog.
    """
    if not isinstance(stubs, list):
        raise GenerationError(code="E_GENERATION_NOT_A_LIST", message="task stubs must be a list")
    if not stubs:
        raise GenerationError(code="E_GENERATION_EMPTY", message="task stubs must not be empty")

    batch = _as_stubs(stubs)
    existing = set(existing_ids)

    taken = set(existing)
    ids: list[str] = []
    for stub in batch:
        proposed = stub.id if stub.id else id_factory()
        tid = allocate_unique_id(taken, proposed)
        taken.add(tid)
        ids.append(tid)

    known = existing | set(ids)
    fallback = fallback_estimated_time.strip() or DEFAULT_ESTIMATED_TIME

    out: list[Task] = []
    for i, stub in enumerate(batch):
        out.append(
            Task(
                id=ids[i],
                title=stub.title,
                description=stub.description,
                status="ready",
                priority=coerce_priority(stub.priority),
                dependencies=_resolve_dependencies(stub.dependencies, i, ids, known),
                estimated_time=coerce_estimated_time(stub.estimated_time, fallback),
                project_id=project_id,
            )
        )
    return out


def coerce_priority(value: Any) -> Priority:
    if isinstance(value, str) and value.strip().lower() in PRIORITIES:
        return cast(Priority, value.strip().lower())
    return "medium"


def coerce_estimated_time(value: Any, fallback: str = DEFAULT_ESTIMATED_TIME) -> str:
    if isinstance(value, bool):
        return fallback
    if isinstance(value, (int, float)):
        return _hours_label(value) if _positive_finite(value) else fallback
    if isinstance(value, str) and value.strip():
        text = value.strip()
        if _NUMERIC_RE.match(text):
            hours = float(text)
            return _hours_label(hours) if _positive_finite(hours) else fallback
        return text
    return fallback


def allocate_unique_id(existing: set[str], proposed: str) -> str:
    if proposed not in existing:
        return proposed
    for suf in _suffixes():
        candidate = f"{proposed}-{suf}"
        if candidate not in existing:
            return candidate
    raise RuntimeError(f"Unable to allocate unique id for {proposed}")


def _suffixes():
    letters = [chr(c) for c in range(ord("A"), ord("Z") + 1)]
    for a in letters:
        yield a
    for a in letters:
        for b in letters:
            yield a + b


def _as_stubs(items: list[Any]) -> list[RawTaskStub]:
    if all(isinstance(x, RawTaskStub) for x in items):
        return list(items)
    # Plain dicts have not been through the validation boundary yet.
    parsed = parse_generation([x if not isinstance(x, RawTaskStub) else _stub_to_dict(x) for x in items])
    if isinstance(parsed, InvalidGeneration):
        raise GenerationError(code="E_GENERATION_INVALID", message=parsed.reason)
    return parsed.stubs


def _stub_to_dict(stub: RawTaskStub) -> dict[str, Any]:
    return {
        "id": stub.id,
        "title": stub.title,
        "description": stub.description,
        "priority": stub.priority,
        "dependencies": stub.dependencies,
        "estimated_time": stub.estimated_time,
    }


def _resolve_dependencies(raw: list[Any], position: int, ids: list[str], known: set[str]) -> list[str]:
    out: list[str] = []
    seen: set[str] = set()
    own_id = ids[position]

    for dep in raw:
        if isinstance(dep, bool):
            resolved = None
        elif isinstance(dep, int):
            if dep == position:
                logger.debug("dropping self dependency of %s", own_id)
                resolved = None
            elif 0 <= dep < len(ids):
                resolved = ids[dep]
            else:
                logger.warning("dropping out-of-range dependency index %s of %s", dep, own_id)
                resolved = None
        elif isinstance(dep, str) and dep.strip():
            resolved = dep.strip() if dep.strip() in known else None
            if resolved is None:
                logger.warning("dropping unknown dependency id %r of %s", dep, own_id)
        else:
            resolved = None

        if resolved is None or resolved == own_id or resolved in seen:
            continue
        seen.add(resolved)
        out.append(resolved)

    return out


def _positive_finite(value: float) -> bool:
    try:
        return math.isfinite(value) and value > 0
    except OverflowError:
        return False


def _hours_label(value: float) -> str:
    n = int(value) if float(value).is_integer() else round(float(value), 2)
    return "1 hour" if n == 1 else f"{n} hours"
