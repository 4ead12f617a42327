from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional


TaskStatus = Literal["ready", "blocked", "in_progress", "completed"]
Priority = Literal["low", "medium", "high"]
ProjectStatus = Literal["active", "completed", "archived"]
CardType = Literal["root", "branch", "task"]
ConnectionType = Literal["hierarchy", "dependency"]

TASK_STATUSES: tuple[str, ...] = ("ready", "blocked", "in_progress", "completed")
PRIORITIES: tuple[str, ...] = ("low", "medium", "high")
PROJECT_STATUSES: tuple[str, ...] = ("active", "completed", "archived")


@dataclass(frozen=True)
class Task:
    id: str
    title: str
    description: str
    status: TaskStatus
    priority: Priority
    dependencies: list[str]
    estimated_time: str

    project_id: Optional[str] = None
    progress: Optional[int] = None


@dataclass(frozen=True)
class Project:
    id: str
    name: str
    description: str = ""
    tech_stack: list[str] = field(default_factory=list)
    status: ProjectStatus = "active"


@dataclass(frozen=True)
class Position:
    x: float
    y: float


@dataclass(frozen=True)
class Size:
    width: float
    height: float


@dataclass(frozen=True)
class Card:
    id: str
    type: CardType
    title: str
    description: str
    position: Position
    size: Size
    status: TaskStatus
    visible: bool
    children: list[str]

    parent_id: Optional[str] = None
    priority: Optional[Priority] = None
    estimated_time: Optional[str] = None
    progress: Optional[int] = None
    dependencies: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class Connection:
    source: str
    target: str
    type: ConnectionType

    @property
    def id(self) -> str:
        return f"{self.source}->{self.target}"


@dataclass(frozen=True)
class MindMapData:
    cards: dict[str, Card]
    connections: list[Connection]
    root_id: str
    project_name: str
    task_order: list[str]  # task ids in original input order
    canvas: Size = Size(1200, 800)
