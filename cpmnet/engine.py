from __future__ import annotations

from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from .analyzer import ReserveAnalysis, analyze_reserves, network_levels
from .catalog import build_catalog
from .config import EngineConfig
from .errors import PrecedenceViolationError, ScheduleError
from .models import BackwardTimes, Catalog, ForwardTimes, TaskSchedule
from .passes import backward_pass, fmt, forward_pass
from .resolver import resolve_dependencies
from .results import AnalysisOutcome, ScheduleResult
from .sequencer import sequence


class Stage(Enum):
    BUILT = 1
    SEQUENCED = 2
    FORWARD_COMPUTED = 3
    BACKWARD_COMPUTED = 4
    ANALYZED = 5


class ScheduleEngine:
    """
    Critical Path Method scheduler for one project snapshot.

    Stages run strictly in order:
    Built -> Sequenced -> ForwardComputed -> BackwardComputed -> Analyzed.
    Each stage returns its own output; calling a stage before its
    prerequisite (or twice) raises PrecedenceViolationError. A new engine is
    needed to analyse a changed project.
    """

    def __init__(self, catalog: Catalog, config: Optional[EngineConfig] = None):
        self.catalog = catalog
        self.config = config or EngineConfig()
        self.calculation_log: List[str] = []

        self._log("=" * 70)
        self._log("CPM CALCULATION")
        if catalog.project_name:
            self._log(f"Project: {catalog.project_name}")
        self._log("=" * 70)
        self._log("")

        self.graph = resolve_dependencies(
            catalog.tasks, strict=self.config.strict_references, log=self._log
        )
        self.stage = Stage.BUILT

        self._order: List[str] = []
        self._forward: Dict[str, ForwardTimes] = {}
        self._backward: Dict[str, BackwardTimes] = {}
        self._result: Optional[ScheduleResult] = None

    @classmethod
    def from_project(cls, project: Mapping[str, Any], config: Optional[EngineConfig] = None) -> "ScheduleEngine":
        """
        Build the catalog and dependency graph for a raw project definition.

        Raises:
            MalformedInputError: if the definition cannot be normalized
            UnresolvedDependencyError: in strict mode, for unknown names
        """
        catalog, error = build_catalog(project)
        if error is not None:
            raise error
        return cls(catalog, config)

    def _log(self, message: str) -> None:
        self.calculation_log.append(message)

    def _require(self, expected: Stage, operation: str) -> None:
        if self.stage is not expected:
            raise PrecedenceViolationError(
                f"{operation}() requires stage {expected.name}, engine is at {self.stage.name}."
            )

    def sequence(self) -> List[str]:
        """Topologically order the tasks; raises CyclicDependencyError."""
        self._require(Stage.BUILT, "sequence")
        try:
            self._order = sequence(self.catalog.tasks, self.graph)
        except ScheduleError as exc:
            self._log(f"ERROR: {exc}")
            raise
        self._log(f"Topological order: {', '.join(self._order) or '(empty)'}")
        self._log("")
        self.stage = Stage.SEQUENCED
        return list(self._order)

    def forward_pass(self) -> Dict[str, ForwardTimes]:
        self._require(Stage.SEQUENCED, "forward_pass")
        self._forward = forward_pass(
            self.catalog.tasks,
            self.graph,
            self._order,
            project_start=self.config.project_start,
            log=self._log,
        )
        self.stage = Stage.FORWARD_COMPUTED
        return dict(self._forward)

    def backward_pass(self) -> Dict[str, BackwardTimes]:
        self._require(Stage.FORWARD_COMPUTED, "backward_pass")
        self._backward = backward_pass(
            self.catalog.tasks, self.graph, self._order, self._forward, log=self._log
        )
        self.stage = Stage.BACKWARD_COMPUTED
        return dict(self._backward)

    def analyze(self) -> ScheduleResult:
        """Derive reserves and the critical path and assemble the result."""
        self._require(Stage.BACKWARD_COMPUTED, "analyze")
        analysis = analyze_reserves(
            self.catalog.tasks,
            self.graph,
            self._forward,
            self._backward,
            project_start=self.config.project_start,
            tolerance=self.config.critical_tolerance,
            max_chains=self.config.max_critical_chains,
            log=self._log,
        )

        self._log("")
        self._log("=" * 70)
        self._log("CALCULATION COMPLETE")
        self._log(f"Project Duration: {fmt(analysis.project_duration)}")
        self._log("=" * 70)

        self._result = self._build_result(analysis)
        self.stage = Stage.ANALYZED
        return self._result

    def run(self) -> ScheduleResult:
        """Run every remaining stage and return the schedule."""
        if self.stage is Stage.ANALYZED:
            raise PrecedenceViolationError("Analysis already completed; build a new engine.")
        if self.stage is Stage.BUILT:
            self.sequence()
        if self.stage is Stage.SEQUENCED:
            self.forward_pass()
        if self.stage is Stage.FORWARD_COMPUTED:
            self.backward_pass()
        return self.analyze()

    def _build_result(self, analysis: ReserveAnalysis) -> ScheduleResult:
        levels = network_levels(self._order, self.graph)
        critical = set(analysis.critical_ids)

        rows = []
        for task in self.catalog.tasks:
            fwd = self._forward[task.id]
            bwd = self._backward[task.id]
            reserve = analysis.reserves[task.id]
            rows.append(
                TaskSchedule(
                    id=task.id,
                    name=task.name,
                    phase_path=task.phase_path,
                    duration=task.duration,
                    assignees=task.assignees,
                    es=fwd.es,
                    ef=fwd.ef,
                    ls=bwd.ls,
                    lf=bwd.lf,
                    total_reserve=reserve.total,
                    free_reserve=reserve.free,
                    is_critical=task.id in critical,
                    level=levels[task.id],
                )
            )

        return ScheduleResult(
            project_name=self.catalog.project_name,
            project_manager=self.catalog.project_manager,
            tasks=tuple(rows),
            dependencies=tuple(self.graph.edges),
            project_finish=analysis.project_finish,
            project_duration=analysis.project_duration,
            critical_path=tuple(row for row in rows if row.is_critical),
            critical_chains=tuple(tuple(chain) for chain in analysis.critical_chains),
            critical_chains_truncated=analysis.chains_truncated,
            warnings=tuple(self.graph.warnings),
            calculation_log=tuple(self.calculation_log),
            start_date=self.catalog.start_date,
            remarks=self.catalog.remarks,
        )


def analyze(project: Mapping[str, Any], config: Optional[EngineConfig] = None) -> AnalysisOutcome:
    """
    Perform full CPM analysis of a project definition.

    Data errors (malformed input, strict-mode unresolved names, cycles) are
    returned as a failed outcome with no partial schedule.
    """
    catalog, error = build_catalog(project)
    if error is not None:
        return AnalysisOutcome(error=error, log=(f"ERROR: {error}",))

    engine: Optional[ScheduleEngine] = None
    try:
        engine = ScheduleEngine(catalog, config)
        result = engine.run()
    except PrecedenceViolationError:
        raise
    except ScheduleError as exc:
        log = tuple(engine.calculation_log) if engine is not None else (f"ERROR: {exc}",)
        warnings = tuple(engine.graph.warnings) if engine is not None else ()
        return AnalysisOutcome(error=exc, warnings=warnings, log=log)

    return AnalysisOutcome(result=result, warnings=result.warnings, log=result.calculation_log)
