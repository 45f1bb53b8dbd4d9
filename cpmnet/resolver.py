from __future__ import annotations

from collections import defaultdict
from typing import Callable, Dict, List, Optional, Sequence

from .errors import UnresolvedDependencyError
from .models import Dependency, DependencyGraph, ResolutionWarning, Task


def resolve_dependencies(
    tasks: Sequence[Task],
    strict: bool = False,
    log: Optional[Callable[[str], None]] = None,
) -> DependencyGraph:
    """
    Turn predecessor names into id-based adjacency lists.

    Names are matched against every task in the catalog, not only the
    referencing task's phase. When a name is shared by several tasks the
    first one in catalog order, other than the referencing task itself, is
    used and an "ambiguous" warning is recorded. Unknown names produce an
    "unresolved" warning and no edge, or raise UnresolvedDependencyError
    when ``strict`` is set.
    """
    log = log or (lambda _message: None)

    ids_by_name: Dict[str, List[str]] = defaultdict(list)
    for task in tasks:
        ids_by_name[task.name].append(task.id)

    graph = DependencyGraph(
        predecessors={task.id: [] for task in tasks},
        successors={task.id: [] for task in tasks},
    )

    for task in tasks:
        for reference in task.depends_on:
            candidates = ids_by_name.get(reference)
            if not candidates:
                if strict:
                    raise UnresolvedDependencyError(task.id, reference)
                warning = ResolutionWarning("unresolved", task.id, reference)
                graph.warnings.append(warning)
                log(f"WARNING: {warning}")
                continue

            # A shared name points at another task; only a name the task
            # holds alone resolves to itself (and is then a cycle)
            candidates = [c for c in candidates if c != task.id] or candidates
            if len(candidates) > 1:
                warning = ResolutionWarning("ambiguous", task.id, reference, tuple(candidates))
                graph.warnings.append(warning)
                log(f"WARNING: {warning}")

            pred_id = candidates[0]
            if pred_id in graph.predecessors[task.id]:
                continue
            graph.predecessors[task.id].append(pred_id)
            graph.successors[pred_id].append(task.id)
            graph.edges.append(Dependency(pred_id, task.id))

    log(f"Resolved {len(graph.edges)} dependencies between {len(tasks)} tasks.")
    return graph
