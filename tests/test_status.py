from taskmap.core.graph.board import board_columns
from taskmap.core.graph.status import branch_status, derive_status, derive_statuses, first_ready_task, index_tasks
from taskmap.core.model import Task


def _task(tid, status="ready", deps=()):
    return Task(
        id=tid,
        title=tid.upper(),
        description="",
        status=status,
        priority="medium",
        dependencies=list(deps),
        estimated_time="1 hour",
    )


def test_chain_only_first_is_ready():
    tasks = [_task("a"), _task("b", deps=["a"]), _task("c", deps=["b"])]
    assert [t.status for t in derive_statuses(tasks)] == ["ready", "blocked", "blocked"]


def test_completing_dependency_unblocks_next():
    tasks = [_task("a", "completed"), _task("b", deps=["a"]), _task("c", deps=["b"])]
    assert [t.status for t in derive_statuses(tasks)] == ["completed", "ready", "blocked"]


def test_derived_ready_dependency_does_not_satisfy():
    # b is derived ready but not completed, so c stays blocked
    tasks = [_task("a", "completed"), _task("b", "blocked", deps=["a"]), _task("c", deps=["b"])]
    assert derive_statuses(tasks)[2].status == "blocked"


def test_unknown_dependency_blocks():
    tasks = [_task("a", deps=["ghost"])]
    assert derive_statuses(tasks)[0].status == "blocked"


def test_authoritative_statuses_are_kept():
    tasks = [_task("a", "in_progress", deps=["ghost"]), _task("b", "completed", deps=["ghost"])]
    assert [t.status for t in derive_statuses(tasks)] == ["in_progress", "completed"]


def test_cycle_stays_blocked():
    tasks = [_task("a", deps=["b"]), _task("b", deps=["a"])]
    assert [t.status for t in derive_statuses(tasks)] == ["blocked", "blocked"]


def test_duplicate_ids_first_occurrence_wins():
    first = _task("a", "completed")
    tasks = [first, _task("a", "ready"), _task("b", deps=["a"])]
    assert index_tasks(tasks)["a"] is first
    assert derive_status(tasks[2], index_tasks(tasks)) == "ready"


def test_derive_statuses_keeps_unchanged_objects():
    a = _task("a")
    assert derive_statuses([a])[0] is a


def test_branch_status_rules():
    assert branch_status([]) == "ready"
    assert branch_status(["completed", "completed"]) == "completed"
    assert branch_status(["completed", "in_progress", "blocked"]) == "in_progress"
    assert branch_status(["ready", "blocked"]) == "blocked"
    assert branch_status(["ready", "completed"]) == "ready"


def test_first_ready_task_uses_list_order():
    tasks = [_task("a", "completed"), _task("b", deps=["ghost"]), _task("c", deps=["a"]), _task("d")]
    assert first_ready_task(tasks).id == "c"
    assert first_ready_task([_task("x", deps=["y"])]) is None


def test_board_columns_in_fixed_order():
    tasks = [_task("a", "completed"), _task("b", deps=["a"]), _task("c", deps=["b"]), _task("d", "in_progress")]
    columns = board_columns(tasks)
    assert [c.id for c in columns] == ["ready", "blocked", "in_progress", "completed"]
    assert [c.title for c in columns][0] == "Ready to Start"
    assert {c.id: [t.id for t in c.tasks] for c in columns} == {
        "ready": ["b"],
        "blocked": ["c"],
        "in_progress": ["d"],
        "completed": ["a"],
    }
