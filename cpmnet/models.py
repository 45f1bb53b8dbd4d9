from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

PHASE_SEPARATOR = "::"


@dataclass(frozen=True)
class Task:
    """A normalized task record with a run-unique identifier."""

    id: str
    name: str
    duration: float
    phase_path: Tuple[str, ...] = ()
    assignees: Tuple[str, ...] = ()
    depends_on: Tuple[str, ...] = ()  # Raw predecessor names as declared

    @property
    def phase(self) -> str:
        return PHASE_SEPARATOR.join(self.phase_path)

    def __str__(self) -> str:
        return f"{self.name} [{self.phase}]" if self.phase_path else self.name


@dataclass(frozen=True)
class Catalog:
    """Project header plus the flat, ordered task list."""

    project_name: str
    project_manager: str
    tasks: Tuple[Task, ...]
    start_date: Optional[str] = None
    remarks: Optional[str] = None

    def task_ids(self) -> List[str]:
        return [task.id for task in self.tasks]


@dataclass(frozen=True)
class Dependency:
    """Directed precedence relation between two resolved tasks."""

    predecessor_id: str
    successor_id: str

    def __str__(self) -> str:
        return f"{self.predecessor_id} -> {self.successor_id}"


@dataclass(frozen=True)
class ResolutionWarning:
    """A predecessor name that did not map to exactly one task."""

    kind: str  # unresolved, ambiguous
    task_id: str
    reference: str
    candidates: Tuple[str, ...] = ()

    def __str__(self) -> str:
        if self.kind == "ambiguous":
            return (
                f"'{self.task_id}': predecessor '{self.reference}' matches "
                f"{len(self.candidates)} tasks, using '{self.candidates[0]}'"
            )
        return f"'{self.task_id}': predecessor '{self.reference}' not found, dependency ignored"


@dataclass
class DependencyGraph:
    """Adjacency lists keyed by task id, built once by the resolver."""

    predecessors: Dict[str, List[str]] = field(default_factory=dict)
    successors: Dict[str, List[str]] = field(default_factory=dict)
    edges: List[Dependency] = field(default_factory=list)
    warnings: List[ResolutionWarning] = field(default_factory=list)


@dataclass(frozen=True)
class ForwardTimes:
    es: float  # Early Start
    ef: float  # Early Finish


@dataclass(frozen=True)
class BackwardTimes:
    ls: float  # Late Start
    lf: float  # Late Finish


@dataclass(frozen=True)
class Reserve:
    total: float  # Total reserve (TR)
    free: float   # Free reserve (FR)


@dataclass(frozen=True)
class TaskSchedule:
    """Per-task output row consumed by renderers and reports."""

    id: str
    name: str
    phase_path: Tuple[str, ...]
    duration: float
    assignees: Tuple[str, ...]
    es: float
    ef: float
    ls: float
    lf: float
    total_reserve: float
    free_reserve: float
    is_critical: bool
    level: int = 0

    @property
    def phase(self) -> str:
        return PHASE_SEPARATOR.join(self.phase_path)
