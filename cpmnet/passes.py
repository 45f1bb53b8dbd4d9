from __future__ import annotations

from typing import Callable, Dict, List, Mapping, Optional, Sequence

from .models import BackwardTimes, DependencyGraph, ForwardTimes, Task


def fmt(value: float) -> str:
    """Render a time value without a trailing '.0'."""
    return f"{value:g}"


def forward_pass(
    tasks: Sequence[Task],
    graph: DependencyGraph,
    order: Sequence[str],
    project_start: float = 0.0,
    log: Optional[Callable[[str], None]] = None,
) -> Dict[str, ForwardTimes]:
    """
    Forward pass calculation to determine Early Start (ES) and Early Finish (EF).

    ``order`` must be topological: every predecessor's EF is final by the
    time its dependents are visited.
    """
    log = log or (lambda _message: None)
    log("FORWARD PASS (Calculating ES and EF)")
    log("-" * 50)

    by_id = {task.id: task for task in tasks}
    times: Dict[str, ForwardTimes] = {}

    for task_id in order:
        task = by_id[task_id]
        preds = graph.predecessors.get(task_id, [])

        if not preds:
            es = project_start
            log(f"\n{task_id} (no predecessors):")
            log(f"  ES = Project Start = {fmt(es)}")
        else:
            es = max(times[pred_id].ef for pred_id in preds)
            log(f"\n{task_id} (predecessors: {', '.join(preds)}):")
            log(
                "  ES = max(EF) = max("
                + ", ".join(fmt(times[pred_id].ef) for pred_id in preds)
                + f") = {fmt(es)}"
            )

        ef = es + task.duration
        times[task_id] = ForwardTimes(es=es, ef=ef)
        log(f"  EF = ES + Duration = {fmt(es)} + {fmt(task.duration)} = {fmt(ef)}")

    return times


def backward_pass(
    tasks: Sequence[Task],
    graph: DependencyGraph,
    order: Sequence[str],
    forward: Mapping[str, ForwardTimes],
    log: Optional[Callable[[str], None]] = None,
) -> Dict[str, BackwardTimes]:
    """
    Backward pass calculation to determine Late Start (LS) and Late Finish (LF).

    Tasks whose EF equals the project finish are seeded with LF = project
    finish. Every other task takes the minimum LS of its successors; a task
    without successors that does not finish last (a dead end left by an
    ignored reference, or a disconnected branch) is also anchored to the
    project finish.
    """
    log = log or (lambda _message: None)
    log("\n\nBACKWARD PASS (Calculating LS and LF)")
    log("-" * 50)

    by_id = {task.id: task for task in tasks}
    times: Dict[str, BackwardTimes] = {}
    if not order:
        return times

    project_finish = max(forward[task_id].ef for task_id in order)
    log(f"Project Finish = max(all EF values) = {fmt(project_finish)}")

    for task_id in reversed(order):
        task = by_id[task_id]
        succs = graph.successors.get(task_id, [])
        is_sink = forward[task_id].ef == project_finish

        candidates: List[float] = [times[succ_id].ls for succ_id in succs]
        if is_sink or not succs:
            candidates.append(project_finish)
        lf = min(candidates)

        if not succs:
            reason = "finishes last" if is_sink else "implicit sink"
            log(f"\n{task_id} (no successors, {reason}):")
            log(f"  LF = Project Finish = {fmt(lf)}")
        else:
            log(f"\n{task_id} (successors: {', '.join(succs)}):")
            log(
                "  LF = min(LS) = min("
                + ", ".join(fmt(c) for c in candidates)
                + f") = {fmt(lf)}"
            )

        ls = lf - task.duration
        times[task_id] = BackwardTimes(ls=ls, lf=lf)
        log(f"  LS = LF - Duration = {fmt(lf)} - {fmt(task.duration)} = {fmt(ls)}")

    return times
