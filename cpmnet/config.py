from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class EngineConfig:
    """
    Settings for one analysis run.

    Attributes:
        project_start: Early Start assigned to tasks without predecessors
        strict_references: Treat unknown predecessor names as a fatal error
            instead of a warning
        critical_tolerance: Absolute total reserve below which a task is
            considered critical (absorbs rounding from fractional durations)
        max_critical_chains: Upper bound on the sequential critical chains
            kept in the result; parallel critical branches multiply them
    """

    project_start: float = 0.0
    strict_references: bool = False
    critical_tolerance: float = 1e-9
    max_critical_chains: int = 100

    def __post_init__(self) -> None:
        if not math.isfinite(self.project_start):
            raise ValueError("project_start must be a finite number.")
        if self.critical_tolerance < 0 or not math.isfinite(self.critical_tolerance):
            raise ValueError("critical_tolerance must be a finite, non-negative number.")
        if self.max_critical_chains < 0:
            raise ValueError("max_critical_chains must be non-negative.")
