from __future__ import annotations

from collections import Counter
from typing import Any, Iterator, Optional

from taskmap.core.errors import TaskMapError, sort_errors


# Task file lint rules:
# - L_DUPLICATE_ID: duplicate task IDs
# - L_EMPTY_TITLE: tasks must have a non-empty title
# - L_SELF_DEPENDENCY: task lists itself as a dependency
# - L_DANGLING_DEPENDENCY: dependency references an id that is not in the file
# - L_CYCLE_DETECTED: dependency cycle exists (members can never become ready)


def lint_tasks(doc: dict[str, Any]) -> list[TaskMapError]:
    """Lint a loaded task document.

    Works on the raw rows (best effort) so it can report problems that the
    row coercion in the loader would otherwise paper over.
    """

    file = _cast_optional_str(doc.get("__file__"))

    rows = doc.get("tasks")
    if not isinstance(rows, list):
        return []

    id_to_index: dict[str, int] = {}
    id_to_deps: dict[str, list[str]] = {}
    ids: list[str] = []

    errors: list[TaskMapError] = []

    for i, raw in enumerate(rows):
        if not isinstance(raw, dict):
            continue
        tid = raw.get("id")
        if not isinstance(tid, str):
            continue
        ids.append(tid)
        id_to_index.setdefault(tid, i)

        title = raw.get("title")
        if not isinstance(title, str) or not title.strip():
            errors.append(
                TaskMapError(
                    code="L_EMPTY_TITLE",
                    message="task must have a non-empty title",
                    file=file,
                    path=f"tasks[{i}].title",
                )
            )

        deps_raw = raw.get("dependencies")
        deps = [d for d in deps_raw if isinstance(d, str)] if isinstance(deps_raw, list) else []
        id_to_deps.setdefault(tid, deps)

    # Rule: duplicate IDs
    counts = Counter(ids)
    dupes = {k: v for k, v in counts.items() if v > 1}
    if dupes:
        seen: set[str] = set()
        for i, raw in enumerate(rows):
            if not isinstance(raw, dict):
                continue
            tid = raw.get("id")
            if not isinstance(tid, str) or tid not in dupes:
                continue
            if tid not in seen:
                seen.add(tid)
                continue
            errors.append(
                TaskMapError(
                    code="L_DUPLICATE_ID",
                    message=f"duplicate task id: {tid} (count={dupes[tid]})",
                    file=file,
                    path=f"tasks[{i}].id",
                )
            )

    # Rule: self and dangling dependencies
    for tid, deps in id_to_deps.items():
        for di, dep in enumerate(deps):
            path = f"tasks[{id_to_index.get(tid, 0)}].dependencies[{di}]"
            if dep == tid:
                errors.append(
                    TaskMapError(
                        code="L_SELF_DEPENDENCY",
                        message=f"task depends on itself: {tid}",
                        file=file,
                        path=path,
                    )
                )
            elif dep not in id_to_deps:
                errors.append(
                    TaskMapError(
                        code="L_DANGLING_DEPENDENCY",
                        message=f"dependency references unknown id: {dep} (task stays blocked)",
                        file=file,
                        path=path,
                    )
                )

    # Rule: cycle detection (self loops are reported above)
    for tid, msg in detect_cycles(id_to_deps):
        errors.append(
            TaskMapError(
                code="L_CYCLE_DETECTED",
                message=msg,
                file=file,
                path=f"tasks[{id_to_index.get(tid, 0)}].dependencies",
            )
        )

    return sort_errors(errors)


def detect_cycles(id_to_deps: dict[str, list[str]]) -> list[tuple[str, str]]:
    WHITE, GRAY, BLACK = 0, 1, 2
    state: dict[str, int] = {tid: WHITE for tid in id_to_deps.keys()}
    path: list[str] = []
    emitted: set[str] = set()
    out: list[tuple[str, str]] = []

    # Explicit stack so long dependency chains do not hit the recursion limit.
    for start in list(state.keys()):
        if state[start] != WHITE:
            continue
        state[start] = GRAY
        path.append(start)
        frames: list[tuple[str, Iterator[str]]] = [(start, iter(id_to_deps.get(start, [])))]
        while frames:
            u, deps = frames[-1]
            v = next(deps, None)
            if v is None:
                frames.pop()
                path.pop()
                state[u] = BLACK
                continue
            if v not in state or v == u:
                continue
            if state[v] == GRAY:
                # cycle: v ... u -> v
                cycle = path[path.index(v) :] + [v]
                key = "->".join(cycle)
                if key not in emitted:
                    emitted.add(key)
                    out.append((u, "dependency cycle detected: " + " -> ".join(cycle)))
            elif state[v] == WHITE:
                state[v] = GRAY
                path.append(v)
                frames.append((v, iter(id_to_deps.get(v, []))))

    return out


def _cast_optional_str(v: Any) -> Optional[str]:
    return v if isinstance(v, str) else None
