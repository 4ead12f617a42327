from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Callable, Literal, Optional

from taskmap.core.mindmap.scheduler import Handle, Scheduler
from taskmap.core.mindmap.visibility import collapse_all_tasks, expand_children
from taskmap.core.model import Connection, MindMapData


logger = logging.getLogger(__name__)

SequencePhase = Literal[
    "idle",
    "collapsing",
    "animating_branch_edge",
    "branch_glow",
    "animating_task_edge",
    "task_glow",
]

_NEXT_PHASE: dict[str, SequencePhase] = {
    "idle": "collapsing",
    "collapsing": "animating_branch_edge",
    "animating_branch_edge": "branch_glow",
    "branch_glow": "animating_task_edge",
    "animating_task_edge": "task_glow",
    "task_glow": "idle",
}


@dataclass(frozen=True)
class MindMapState:
    """Snapshot read by the renderer: positioned cards plus animation transients."""

    data: MindMapData
    phase: SequencePhase = "idle"
    animated_connection_ids: frozenset[str] = frozenset()
    processing_connection_ids: frozenset[str] = frozenset()
    processing_card_ids: frozenset[str] = frozenset()
    target_task_id: Optional[str] = None


@dataclass(frozen=True)
class ExecutionPath:
    branch_edge: Connection  # root -> branch
    task_edge: Connection  # branch -> task

    @property
    def branch_id(self) -> str:
        return self.branch_edge.target

    @property
    def task_id(self) -> str:
        return self.task_edge.target


@dataclass(frozen=True)
class SequencerTimings:
    particle_duration: float = 3.0
    glow_duration: float = 2.0
    handoff_delay: float = 0.5

    def scaled(self, speed: float) -> "SequencerTimings":
        factor = 1.0 / speed if speed > 0 else 1.0
        return SequencerTimings(
            particle_duration=self.particle_duration * factor,
            glow_duration=self.glow_duration * factor,
            handoff_delay=self.handoff_delay * factor,
        )


def pick_target(data: MindMapData) -> Optional[str]:
    """First task in original task order whose derived status is ready."""
    for tid in data.task_order:
        card = data.cards.get(tid)
        if card is not None and card.type == "task" and card.status == "ready":
            return tid
    return None


def execution_path(data: MindMapData, task_id: str) -> Optional[ExecutionPath]:
    task = data.cards.get(task_id)
    if task is None or task.type != "task" or task.parent_id is None:
        return None
    branch_edge = task_edge = None
    for c in data.connections:
        if c.type != "hierarchy":
            continue
        if c.source == data.root_id and c.target == task.parent_id:
            branch_edge = c
        elif c.source == task.parent_id and c.target == task_id:
            task_edge = c
    if branch_edge is None or task_edge is None:
        return None
    return ExecutionPath(branch_edge=branch_edge, task_edge=task_edge)


def advance_sequencer(state: MindMapState, path: ExecutionPath) -> MindMapState:
    """Move the state one phase along root -> branch -> task. Pure."""
    nxt = _NEXT_PHASE[state.phase]
    e1 = path.branch_edge.id
    e2 = path.task_edge.id

    if nxt == "collapsing":
        return replace(
            clear_transients(state),
            data=collapse_all_tasks(state.data),
            phase=nxt,
            target_task_id=path.task_id,
        )
    if nxt == "animating_branch_edge":
        return replace(state, phase=nxt, animated_connection_ids=state.animated_connection_ids | {e1})
    if nxt == "branch_glow":
        return replace(
            state,
            data=expand_children(state.data, path.branch_id),
            phase=nxt,
            animated_connection_ids=state.animated_connection_ids - {e1},
            processing_connection_ids=state.processing_connection_ids | {e1},
            processing_card_ids=state.processing_card_ids | {path.branch_id},
        )
    if nxt == "animating_task_edge":
        return replace(state, phase=nxt, animated_connection_ids=state.animated_connection_ids | {e2})
    if nxt == "task_glow":
        return replace(
            state,
            phase=nxt,
            animated_connection_ids=state.animated_connection_ids - {e2},
            processing_connection_ids=state.processing_connection_ids | {e2},
            processing_card_ids=state.processing_card_ids | {path.task_id},
        )
    return clear_transients(state)


def clear_transients(state: MindMapState) -> MindMapState:
    return replace(
        state,
        phase="idle",
        animated_connection_ids=frozenset(),
        processing_connection_ids=frozenset(),
        processing_card_ids=frozenset(),
        target_task_id=None,
    )


Listener = Callable[[MindMapState], None]


@dataclass
class ExecutionSequencer:
    """Timed walk root -> branch -> first ready task.

    Every scheduled step captures the epoch at start and does nothing if a
    reset happened in between. start() while a sequence runs is ignored.
    """

    state: MindMapState
    scheduler: Scheduler
    timings: SequencerTimings = SequencerTimings()

    _epoch: int = field(default=0, init=False)
    _handles: list[Handle] = field(default_factory=list, init=False)
    _listeners: list[Listener] = field(default_factory=list, init=False)

    @property
    def running(self) -> bool:
        return self.state.phase != "idle"

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def start(self) -> bool:
        """Begin a sequence. Returns False when ignored (busy) or when no task is ready."""
        if self.running:
            logger.debug("start ignored: sequence already in phase %s", self.state.phase)
            return False

        target = pick_target(self.state.data)
        path = execution_path(self.state.data, target) if target else None
        if path is None:
            logger.debug("start ignored: no ready task")
            return False

        self._epoch += 1
        epoch = self._epoch
        self._handles = []

        # collapse, then the first edge starts moving immediately
        self._step(path)
        self._step(path)

        t = self.timings
        branch_done = t.particle_duration
        task_start = branch_done + t.handoff_delay
        for delay in (
            branch_done,
            task_start,
            task_start + t.particle_duration,
            task_start + t.particle_duration + t.glow_duration,
        ):
            self._handles.append(self.scheduler.call_later(delay, self._guarded(epoch, path)))
        return True

    def reset(self) -> None:
        """Stop any sequence now; pending steps become no-ops."""
        self._epoch += 1
        for handle in self._handles:
            handle.cancel()
        self._handles = []
        self._set(clear_transients(self.state))

    def replace_data(self, data: MindMapData) -> None:
        """Swap in a freshly built snapshot (e.g. after a task status change)."""
        self._set(replace(self.state, data=data))

    def _guarded(self, epoch: int, path: ExecutionPath) -> Callable[[], None]:
        def run() -> None:
            if epoch != self._epoch or not self.running:
                return
            self._step(path)

        return run

    def _step(self, path: ExecutionPath) -> None:
        self._set(advance_sequencer(self.state, path))
        logger.debug("sequence phase -> %s", self.state.phase)

    def _set(self, state: MindMapState) -> None:
        self.state = state
        for listener in list(self._listeners):
            listener(state)
