from __future__ import annotations

import math
from dataclasses import replace
from typing import Literal, Optional

from taskmap.core.model import Card, MindMapData, Position, Size


LayoutKind = Literal["tree", "radial"]

MARGIN = 40.0
BASE_HEIGHT = 400.0
PER_CHILD_HEIGHT = 140.0

# Radial layout
BRANCH_RADIUS_FACTOR = 0.3
MIN_TASK_RADIUS = 150.0
RADIAL_TASK_GAP = 20.0

# Vertical tree layout
LEVEL_GAP = 80.0
MIN_BRANCH_SPACING = 220.0
MAX_BRANCH_SPACING = 420.0
TASK_GAP_X = 20.0
TASK_GAP_Y = 30.0
MAX_TASK_COLUMNS = 3


def layout(data: MindMapData, canvas: Optional[Size] = None, kind: LayoutKind = "tree") -> MindMapData:
    """Assign card centers. Pure: the same hierarchy and canvas give the same positions.

    The returned data carries the canvas actually used, which may be larger
    than requested when branches have many tasks.
    """
    requested = canvas or data.canvas
    root = data.cards.get(data.root_id)
    if root is None:
        return replace(data, canvas=requested)

    branches = [data.cards[b] for b in root.children if b in data.cards]
    children = {b.id: [data.cards[c] for c in b.children if c in data.cards] for b in branches}

    size = adaptive_canvas(requested, max((len(v) for v in children.values()), default=0))
    if kind == "radial":
        positions, size = _radial(root, branches, children, size)
    else:
        size = Size(max(size.width, 2 * MARGIN + len(branches) * MIN_BRANCH_SPACING), size.height)
        positions = _tree(root, branches, children, size)
        bottom = max(positions[cid].y + data.cards[cid].size.height / 2 for cid in positions)
        size = Size(size.width, max(size.height, bottom + MARGIN))

    cards = {cid: replace(card, position=positions[cid]) if cid in positions else card for cid, card in data.cards.items()}
    return replace(data, cards=cards, canvas=size)


def adaptive_canvas(canvas: Size, max_children: int) -> Size:
    return Size(canvas.width, max(canvas.height, BASE_HEIGHT + max_children * PER_CHILD_HEIGHT))


def _radial(
    root: Card, branches: list[Card], children: dict[str, list[Card]], canvas: Size
) -> tuple[dict[str, Position], Size]:
    n = len(branches)
    root_reach = _reach(root)
    rings = {b.id: _task_radius(b, children[b.id]) for b in branches}
    extents = {b.id: _cluster_extent(b, children[b.id], rings[b.id]) for b in branches}
    extent = max(extents.values(), default=0.0)

    # Each branch cluster must clear the root and its neighbours.
    radius = min(canvas.width, canvas.height) * BRANCH_RADIUS_FACTOR
    radius = max(radius, root_reach + extent + RADIAL_TASK_GAP)
    if n >= 2:
        radius = max(radius, (2 * extent + RADIAL_TASK_GAP) / (2 * math.sin(math.pi / n)))
    if n == 0:
        radius = 0.0

    half = max(root_reach, radius + extent) + MARGIN
    size = Size(max(canvas.width, 2 * half), max(canvas.height, 2 * half))
    cx = size.width / 2
    cy = size.height / 2
    out: dict[str, Position] = {root.id: Position(cx, cy)}

    for i, branch in enumerate(branches):
        angle = 2 * math.pi * i / n - math.pi / 2
        bx = cx + math.cos(angle) * radius
        by = cy + math.sin(angle) * radius
        out[branch.id] = Position(bx, by)

        tasks = children[branch.id]
        task_radius = rings[branch.id]
        for j, task in enumerate(tasks):
            # The first task points away from the root.
            task_angle = angle + 2 * math.pi * j / len(tasks)
            out[task.id] = Position(
                bx + math.cos(task_angle) * task_radius,
                by + math.sin(task_angle) * task_radius,
            )
    return out, size


def _reach(card: Card) -> float:
    return math.hypot(card.size.width, card.size.height) / 2


def _task_radius(branch: Card, tasks: list[Card]) -> float:
    # Centers at least one card diagonal apart cannot overlap.
    if not tasks:
        return 0.0
    task_reach = max(_reach(t) for t in tasks)
    needed = max(MIN_TASK_RADIUS, _reach(branch) + task_reach + RADIAL_TASK_GAP)
    m = len(tasks)
    if m >= 2:
        needed = max(needed, (2 * task_reach + RADIAL_TASK_GAP) / (2 * math.sin(math.pi / m)))
    return needed


def _cluster_extent(branch: Card, tasks: list[Card], task_radius: float) -> float:
    if not tasks:
        return _reach(branch)
    return max(_reach(branch), task_radius + max(_reach(t) for t in tasks))


def _tree(
    root: Card, branches: list[Card], children: dict[str, list[Card]], canvas: Size
) -> dict[str, Position]:
    cx = canvas.width / 2
    root_y = MARGIN + root.size.height / 2
    out: dict[str, Position] = {root.id: Position(cx, root_y)}

    n = len(branches)
    if n == 0:
        return out

    available = canvas.width - 2 * MARGIN
    spacing = min(MAX_BRANCH_SPACING, max(MIN_BRANCH_SPACING, available / n))
    branch_height = max(b.size.height for b in branches)
    branch_y = root_y + root.size.height / 2 + LEVEL_GAP + branch_height / 2

    for i, branch in enumerate(branches):
        bx = cx + (i - (n - 1) / 2) * spacing
        out[branch.id] = Position(bx, branch_y)

        tasks = children[branch.id]
        if not tasks:
            continue
        cell_w = max(t.size.width for t in tasks) + TASK_GAP_X
        cell_h = max(t.size.height for t in tasks) + TASK_GAP_Y
        columns = max(1, min(len(tasks), MAX_TASK_COLUMNS, int(spacing // cell_w)))
        first_y = branch_y + branch.size.height / 2 + LEVEL_GAP / 2 + cell_h / 2

        for j, task in enumerate(tasks):
            row, col = divmod(j, columns)
            in_row = min(columns, len(tasks) - row * columns)
            out[task.id] = Position(
                bx + (col - (in_row - 1) / 2) * cell_w,
                first_y + row * cell_h,
            )
    return out
