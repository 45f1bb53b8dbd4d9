from __future__ import annotations

from dataclasses import dataclass, field
from itertools import islice
from typing import Callable, Dict, Iterator, List, Mapping, Optional, Sequence

from .models import BackwardTimes, DependencyGraph, ForwardTimes, Reserve, Task
from .passes import fmt


@dataclass
class ReserveAnalysis:
    """Reserves, critical set and project totals derived from both passes."""

    reserves: Dict[str, Reserve] = field(default_factory=dict)
    critical_ids: List[str] = field(default_factory=list)
    critical_chains: List[List[str]] = field(default_factory=list)
    chains_truncated: bool = False
    project_finish: float = 0.0
    project_duration: float = 0.0


def analyze_reserves(
    tasks: Sequence[Task],
    graph: DependencyGraph,
    forward: Mapping[str, ForwardTimes],
    backward: Mapping[str, BackwardTimes],
    project_start: float = 0.0,
    tolerance: float = 0.0,
    max_chains: int = 100,
    log: Optional[Callable[[str], None]] = None,
) -> ReserveAnalysis:
    """
    Calculate total and free reserve for every task and collect the
    critical path.

    The critical path is the union of all tasks with zero total reserve, in
    catalog order; parallel zero-reserve branches are all included. At most
    ``max_chains`` sequential critical chains are kept.
    """
    log = log or (lambda _message: None)
    log("\n\nRESERVE CALCULATIONS")
    log("-" * 50)

    analysis = ReserveAnalysis(project_finish=project_start)
    if not tasks:
        return analysis

    analysis.project_finish = max(forward[task.id].ef for task in tasks)
    analysis.project_duration = analysis.project_finish - project_start

    for task in tasks:
        fwd = forward[task.id]
        bwd = backward[task.id]
        total = bwd.lf - fwd.ef
        log(f"\n{task.id}:")
        log(f"  Total Reserve (TR) = LF - EF = {fmt(bwd.lf)} - {fmt(fwd.ef)} = {fmt(total)}")

        succs = graph.successors.get(task.id, [])
        if succs:
            min_es = min(forward[succ_id].es for succ_id in succs)
            free = min_es - fwd.ef
            log(f"  Free Reserve (FR) = min(ES of successors) - EF = {fmt(min_es)} - {fmt(fwd.ef)} = {fmt(free)}")
        else:
            free = total
            log(f"  Free Reserve (FR) = TR = {fmt(free)} (no successors)")

        analysis.reserves[task.id] = Reserve(total=total, free=free)
        if abs(total) <= tolerance:
            analysis.critical_ids.append(task.id)
            log("  -> CRITICAL")

    chains = critical_chains(
        tasks, graph, forward, analysis.critical_ids, tolerance, limit=max_chains + 1
    )
    analysis.chains_truncated = len(chains) > max_chains
    analysis.critical_chains = chains[:max_chains]

    log("")
    log(f"Project Duration: {fmt(analysis.project_duration)}")
    log(f"Critical Tasks: {', '.join(analysis.critical_ids) or '(none)'}")
    if analysis.chains_truncated:
        log(f"Critical Chains: first {max_chains} kept, more exist")
    else:
        log(f"Critical Chains: {len(analysis.critical_chains)}")

    return analysis


def iter_critical_chains(
    tasks: Sequence[Task],
    graph: DependencyGraph,
    forward: Mapping[str, ForwardTimes],
    critical_ids: Sequence[str],
    tolerance: float = 0.0,
) -> Iterator[List[str]]:
    """
    Yield sequential representations of the critical paths one at a time.

    Consecutive tasks in a chain are joined by a driving link
    (ES of the successor equals EF of the predecessor). Parallel critical
    branches multiply the number of chains, so callers should stop early
    rather than materialize them all.
    """
    if not critical_ids:
        return

    critical_set = set(critical_ids)
    position = {task.id: idx for idx, task in enumerate(tasks)}

    def sort_key(task_id: str):
        return (forward[task_id].es, position[task_id])

    successors: Dict[str, List[str]] = {}
    incoming: Dict[str, int] = {task_id: 0 for task_id in critical_ids}

    for pred_id in critical_ids:
        linked = [
            succ_id
            for succ_id in graph.successors.get(pred_id, [])
            if succ_id in critical_set
            and abs(forward[succ_id].es - forward[pred_id].ef) <= tolerance
        ]
        successors[pred_id] = sorted(linked, key=sort_key)
        for succ_id in linked:
            incoming[succ_id] += 1

    start_nodes = sorted((tid for tid in critical_ids if incoming[tid] == 0), key=sort_key)

    for start in start_nodes:
        if not successors[start]:
            yield [start]
            continue
        path = [start]
        stack: List[Iterator[str]] = [iter(successors[start])]
        while stack:
            succ = next(stack[-1], None)
            if succ is None:
                stack.pop()
                path.pop()
                continue
            path.append(succ)
            if successors[succ]:
                stack.append(iter(successors[succ]))
            else:
                yield list(path)
                path.pop()


def critical_chains(
    tasks: Sequence[Task],
    graph: DependencyGraph,
    forward: Mapping[str, ForwardTimes],
    critical_ids: Sequence[str],
    tolerance: float = 0.0,
    limit: Optional[int] = None,
) -> List[List[str]]:
    """Collect at most ``limit`` critical chains (all of them when None)."""
    return list(islice(iter_critical_chains(tasks, graph, forward, critical_ids, tolerance), limit))


def network_levels(order: Sequence[str], graph: DependencyGraph) -> Dict[str, int]:
    """
    Layer index of each task for diagram layout: 0 for tasks without
    predecessors, otherwise one more than the deepest predecessor.
    """
    levels: Dict[str, int] = {}
    for task_id in order:
        preds = graph.predecessors.get(task_id, [])
        levels[task_id] = 1 + max(levels[p] for p in preds) if preds else 0
    return levels
