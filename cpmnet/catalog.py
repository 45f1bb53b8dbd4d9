from __future__ import annotations

import math
from typing import Any, List, Mapping, Optional, Sequence, Set, Tuple

from .errors import MalformedInputError
from .models import PHASE_SEPARATOR, Catalog, Task

TASK_NAME_KEYS = ("task_name", "name")
ASSIGNEE_KEYS = ("assigned_to", "assignees")
PREDECESSOR_KEYS = ("depends_on", "predecessors")


def build_catalog(project: Mapping[str, Any]) -> Tuple[Optional[Catalog], Optional[MalformedInputError]]:
    """
    Flatten a phase/subphase project definition into an ordered task catalog.

    Phase tasks come before the tasks of that phase's subphases; phases keep
    their declared order.

    Returns:
        Tuple of (catalog, error); exactly one of them is None
    """
    try:
        return _build(project), None
    except MalformedInputError as exc:
        return None, exc


def _build(project: Mapping[str, Any]) -> Catalog:
    if not isinstance(project, Mapping):
        raise MalformedInputError("Project definition must be a mapping.")

    phases = _get_phases(project)
    tasks: List[Task] = []
    used_ids: Set[str] = set()

    for p_idx, phase in enumerate(phases, start=1):
        where = f"phase #{p_idx}"
        phase_name = _require_label(phase, "phase_name", where)
        where = f"phase '{phase_name}'"

        has_tasks = "tasks" in phase
        has_subphases = "subphases" in phase
        if not has_tasks and not has_subphases:
            raise MalformedInputError("Phase must define 'tasks' or 'subphases'.", where)

        if has_tasks:
            for record in _require_list(phase["tasks"], "tasks", where):
                tasks.append(_make_task(record, (phase_name,), used_ids))

        if has_subphases:
            for s_idx, subphase in enumerate(_require_list(phase["subphases"], "subphases", where), start=1):
                sub_where = f"{where}, subphase #{s_idx}"
                subphase_name = _require_label(subphase, "subphase_name", sub_where)
                sub_where = f"{where}, subphase '{subphase_name}'"
                sub_tasks = subphase.get("tasks", [])
                for record in _require_list(sub_tasks, "tasks", sub_where):
                    tasks.append(_make_task(record, (phase_name, subphase_name), used_ids))

    return Catalog(
        project_name=_optional_text(project.get("project_name")),
        project_manager=_optional_text(project.get("project_manager")),
        tasks=tuple(tasks),
        start_date=project.get("start_date"),
        remarks=project.get("remarks"),
    )


def _get_phases(project: Mapping[str, Any]) -> Sequence[Any]:
    structure = project.get("project_structure")
    if structure is not None:
        if not isinstance(structure, Mapping):
            raise MalformedInputError("'project_structure' must be a mapping.")
        phases = structure.get("phases")
    else:
        phases = project.get("phases")
    if phases is None:
        raise MalformedInputError("Project definition has no phases.")
    return _require_list(phases, "phases", "project")


def _make_task(record: Any, phase_path: Tuple[str, ...], used_ids: Set[str]) -> Task:
    where = f"phase '{PHASE_SEPARATOR.join(phase_path)}'"
    if not isinstance(record, Mapping):
        raise MalformedInputError("Task record must be a mapping.", where)

    name = _first_present(record, TASK_NAME_KEYS)
    if not isinstance(name, str) or not name.strip():
        raise MalformedInputError("Task name cannot be empty.", where)
    name = name.strip()
    where = f"{where}, task '{name}'"

    duration = parse_duration(record.get("duration"), where)
    assignees = _string_list(_first_present(record, ASSIGNEE_KEYS), "assignees", where)
    depends_on = _string_list(_first_present(record, PREDECESSOR_KEYS), "predecessors", where)

    return Task(
        id=_unique_id(phase_path, name, used_ids),
        name=name,
        duration=duration,
        phase_path=phase_path,
        assignees=tuple(assignees),
        depends_on=tuple(dep.strip() for dep in depends_on if dep.strip()),
    )


def parse_duration(value: Any, where: str = "task") -> float:
    """Convert a raw duration into a finite, non-negative float."""
    if value is None:
        raise MalformedInputError("Duration is missing.", where)
    if isinstance(value, bool):
        raise MalformedInputError(f"Duration must be a number, got {value!r}.", where)
    if isinstance(value, str):
        value = value.strip()
    try:
        duration = float(value)
    except (TypeError, ValueError):
        raise MalformedInputError(f"Duration must be a number, got {value!r}.", where) from None
    if not math.isfinite(duration):
        raise MalformedInputError("Duration must be finite.", where)
    if duration < 0:
        raise MalformedInputError("Duration must be non-negative.", where)
    return duration


def _unique_id(phase_path: Tuple[str, ...], name: str, used_ids: Set[str]) -> str:
    base = PHASE_SEPARATOR.join(phase_path + (name,))
    task_id = base
    count = 1
    while task_id in used_ids:
        count += 1
        task_id = f"{base}#{count}"
    used_ids.add(task_id)
    return task_id


def _require_label(container: Any, key: str, where: str) -> str:
    if not isinstance(container, Mapping):
        raise MalformedInputError("Expected a mapping.", where)
    label = container.get(key)
    if not isinstance(label, str) or not label.strip():
        raise MalformedInputError(f"'{key}' cannot be empty.", where)
    return label.strip()


def _require_list(value: Any, key: str, where: str) -> Sequence[Any]:
    if not isinstance(value, (list, tuple)):
        raise MalformedInputError(f"'{key}' must be a list.", where)
    return value


def _string_list(value: Any, key: str, where: str) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
        raise MalformedInputError(f"'{key}' must be a list of strings.", where)
    return list(value)


def _first_present(record: Mapping[str, Any], keys: Sequence[str]) -> Any:
    for key in keys:
        if key in record:
            return record[key]
    return None


def _optional_text(value: Any) -> str:
    return str(value).strip() if value is not None else ""
