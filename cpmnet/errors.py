from __future__ import annotations

from typing import List, Optional


class ScheduleError(Exception):
    """Base class for errors raised while analysing a project network."""

    kind = "ScheduleError"


class MalformedInputError(ScheduleError):
    """The project definition cannot be turned into a task catalog."""

    kind = "MalformedInput"

    def __init__(self, message: str, location: Optional[str] = None):
        self.location = location
        if location:
            message = f"{location}: {message}"
        super().__init__(message)


class UnresolvedDependencyError(ScheduleError):
    """A predecessor name does not match any task (strict mode only)."""

    kind = "UnresolvedDependency"

    def __init__(self, task_id: str, reference: str):
        self.task_id = task_id
        self.reference = reference
        super().__init__(
            f"Task '{task_id}' references undefined predecessor '{reference}'."
        )


class CyclicDependencyError(ScheduleError):
    """The dependency network contains a cycle."""

    kind = "CyclicDependency"

    def __init__(self, cycle: List[str]):
        self.cycle = list(cycle)
        super().__init__(f"Circular dependency detected: {' -> '.join(self.cycle)}")


class PrecedenceViolationError(ScheduleError):
    """A pipeline stage was invoked before its prerequisite stage completed."""

    kind = "PrecedenceViolation"
