from __future__ import annotations

from taskmap.core.graph.status import branch_status, derive_statuses
from taskmap.core.mindmap.group import group_by_category
from taskmap.core.model import Card, Connection, MindMapData, Position, Size, Task
from taskmap.core.normalize.normalize_tasks import allocate_unique_id


ROOT_ID = "root"
ROOT_SIZE = Size(300, 200)
BRANCH_SIZE = Size(200, 120)
TASK_SIZE = Size(180, 100)

_ORIGIN = Position(0, 0)


def tasks_to_mindmap(tasks: list[Task], project_name: str) -> MindMapData:
    """Project -> category branches -> tasks, with derived statuses and no positions yet.

    Branches start visible and tasks hidden. Dependency connections are only
    drawn to tasks that exist in the list. Root and branch ids get a suffix
    when a task already uses them.
    """
    derived = derive_statuses(tasks)
    known = {t.id for t in derived}
    taken = set(known)
    root_id = allocate_unique_id(taken, ROOT_ID)
    taken.add(root_id)

    cards: dict[str, Card] = {}
    connections: list[Connection] = []
    branch_ids: list[str] = []
    task_cards: list[Card] = []
    dependency_connections: list[Connection] = []

    groups = group_by_category(derived)
    branches: list[Card] = []
    placed: set[str] = set()
    for index, (category, group) in enumerate(groups.items()):
        branch_id = allocate_unique_id(taken, f"branch-{index}")
        taken.add(branch_id)
        branch_ids.append(branch_id)
        connections.append(Connection(source=root_id, target=branch_id, type="hierarchy"))

        child_ids: list[str] = []
        for t in group:
            if t.id in placed:
                continue
            placed.add(t.id)
            child_ids.append(t.id)
            connections.append(Connection(source=branch_id, target=t.id, type="hierarchy"))
            task_cards.append(
                Card(
                    id=t.id,
                    type="task",
                    title=t.title,
                    description=t.description,
                    position=_ORIGIN,
                    size=TASK_SIZE,
                    status=t.status,
                    visible=False,
                    children=[],
                    parent_id=branch_id,
                    priority=t.priority,
                    estimated_time=t.estimated_time,
                    progress=t.progress,
                    dependencies=list(t.dependencies),
                )
            )
            for dep in t.dependencies:
                if dep in known and dep != t.id:
                    dependency_connections.append(Connection(source=dep, target=t.id, type="dependency"))

        branches.append(
            Card(
                id=branch_id,
                type="branch",
                title=category,
                description=f"{len(child_ids)} tasks in this phase",
                position=_ORIGIN,
                size=BRANCH_SIZE,
                status=branch_status(t.status for t in group),
                visible=True,
                children=child_ids,
                parent_id=root_id,
            )
        )

    cards[root_id] = Card(
        id=root_id,
        type="root",
        title=project_name,
        description=f"Main project with {len(derived)} tasks organized in phases",
        position=_ORIGIN,
        size=ROOT_SIZE,
        status=branch_status(t.status for t in derived),
        visible=True,
        children=branch_ids,
    )
    for card in branches:
        cards[card.id] = card
    for card in task_cards:
        cards[card.id] = card

    return MindMapData(
        cards=cards,
        connections=connections + dependency_connections,
        root_id=root_id,
        project_name=project_name,
        task_order=list(dict.fromkeys(t.id for t in derived if t.id in placed)),
    )


def branch_stats(data: MindMapData, branch_id: str) -> tuple[int, int]:
    """(task_count, completed_tasks) for a branch card; (0, 0) when unknown."""
    branch = data.cards.get(branch_id)
    if branch is None:
        return 0, 0
    children = [data.cards[c] for c in branch.children if c in data.cards]
    return len(children), sum(1 for c in children if c.status == "completed")
