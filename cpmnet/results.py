from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import networkx as nx
import pandas as pd

from .errors import ScheduleError
from .models import Dependency, ResolutionWarning, TaskSchedule


@dataclass(frozen=True)
class ScheduleResult:
    """
    Read-only schedule produced by one analysis run.

    This is the only structure diagram renderers and report generators
    should depend on.
    """

    project_name: str
    project_manager: str
    tasks: Tuple[TaskSchedule, ...]
    dependencies: Tuple[Dependency, ...]
    project_finish: float
    project_duration: float
    critical_path: Tuple[TaskSchedule, ...]
    critical_chains: Tuple[Tuple[str, ...], ...] = ()
    critical_chains_truncated: bool = False
    warnings: Tuple[ResolutionWarning, ...] = ()
    calculation_log: Tuple[str, ...] = ()
    start_date: Optional[str] = None
    remarks: Optional[str] = None

    def task(self, task_id: str) -> TaskSchedule:
        """Look up a task by identifier; raises KeyError if unknown."""
        for row in self.tasks:
            if row.id == task_id:
                return row
        raise KeyError(task_id)

    def find(self, name: str) -> List[TaskSchedule]:
        """All tasks with the given display name, in catalog order."""
        return [row for row in self.tasks if row.name == name]

    @property
    def critical_ids(self) -> List[str]:
        return [row.id for row in self.critical_path]

    def network_levels(self) -> Dict[int, List[str]]:
        """Task ids grouped by network layer, for left-to-right layouts."""
        levels: Dict[int, List[str]] = {}
        for row in self.tasks:
            levels.setdefault(row.level, []).append(row.id)
        return dict(sorted(levels.items()))

    def to_dataframe(self) -> pd.DataFrame:
        """Get calculation results as a pandas DataFrame."""
        data = []
        for row in self.tasks:
            data.append(
                {
                    "ID": row.id,
                    "Name": row.name,
                    "Phase": row.phase,
                    "Duration": row.duration,
                    "Assignees": ", ".join(row.assignees),
                    "ES": row.es,
                    "EF": row.ef,
                    "LS": row.ls,
                    "LF": row.lf,
                    "TR": row.total_reserve,
                    "FR": row.free_reserve,
                    "Critical": "Yes" if row.is_critical else "No",
                }
            )
        columns = ["ID", "Name", "Phase", "Duration", "Assignees", "ES", "EF", "LS", "LF", "TR", "FR", "Critical"]
        return pd.DataFrame(data, columns=columns)

    def to_digraph(self) -> nx.DiGraph:
        """
        Build a networkx graph of the schedule.

        Nodes carry the schedule fields as attributes; an edge is flagged
        critical when it joins two critical tasks.
        """
        G = nx.DiGraph(
            project_name=self.project_name,
            project_duration=self.project_duration,
        )
        critical = set(self.critical_ids)

        for row in self.tasks:
            G.add_node(
                row.id,
                name=row.name,
                phase=row.phase,
                duration=row.duration,
                es=row.es,
                ef=row.ef,
                ls=row.ls,
                lf=row.lf,
                total_reserve=row.total_reserve,
                free_reserve=row.free_reserve,
                critical=row.is_critical,
                level=row.level,
            )

        for dep in self.dependencies:
            G.add_edge(
                dep.predecessor_id,
                dep.successor_id,
                critical=dep.predecessor_id in critical and dep.successor_id in critical,
            )

        return G

    def to_dict(self) -> Dict[str, Any]:
        """Plain, JSON-serializable representation of the schedule."""
        return {
            "project_name": self.project_name,
            "project_manager": self.project_manager,
            "start_date": self.start_date,
            "remarks": self.remarks,
            "project_duration": self.project_duration,
            "project_finish": self.project_finish,
            "critical_path": self.critical_ids,
            "critical_chains": [list(chain) for chain in self.critical_chains],
            "critical_chains_truncated": self.critical_chains_truncated,
            "tasks": [
                {
                    "id": row.id,
                    "name": row.name,
                    "phase_path": list(row.phase_path),
                    "duration": row.duration,
                    "assignees": list(row.assignees),
                    "es": row.es,
                    "ef": row.ef,
                    "ls": row.ls,
                    "lf": row.lf,
                    "total_reserve": row.total_reserve,
                    "free_reserve": row.free_reserve,
                    "is_critical": row.is_critical,
                    "level": row.level,
                }
                for row in self.tasks
            ],
            "dependencies": [
                {"predecessor": dep.predecessor_id, "successor": dep.successor_id}
                for dep in self.dependencies
            ],
            "warnings": [str(w) for w in self.warnings],
        }


@dataclass(frozen=True)
class AnalysisOutcome:
    """Tagged result of a full analysis: a schedule or a single error."""

    result: Optional[ScheduleResult] = None
    error: Optional[ScheduleError] = None
    warnings: Tuple[ResolutionWarning, ...] = ()
    log: Tuple[str, ...] = field(default=())

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def error_kind(self) -> Optional[str]:
        return self.error.kind if self.error is not None else None

    def unwrap(self) -> ScheduleResult:
        """Return the schedule, or raise the error that prevented it."""
        if self.error is not None:
            raise self.error
        if self.result is None:
            raise ScheduleError("Outcome carries neither a schedule nor an error.")
        return self.result
