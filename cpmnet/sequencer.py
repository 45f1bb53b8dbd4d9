from __future__ import annotations

from typing import Dict, Iterator, List, Sequence, Tuple

from .errors import CyclicDependencyError
from .models import DependencyGraph, Task

WHITE, GRAY, BLACK = 0, 1, 2


def sequence(tasks: Sequence[Task], graph: DependencyGraph) -> List[str]:
    """
    Order tasks so that every predecessor comes before its dependents.

    Depth-first over predecessor links; a task is emitted once all of its
    predecessors have been emitted. Reaching a task that is still on the
    traversal stack means the network is cyclic. The walk keeps an explicit
    stack, so long chains are not limited by the interpreter's recursion
    depth.

    Raises:
        CyclicDependencyError: with the ids forming the cycle
    """
    color: Dict[str, int] = {task.id: WHITE for task in tasks}
    order: List[str] = []

    for task in tasks:
        if color[task.id] != WHITE:
            continue

        # Each entry is followed on the stack by one of its predecessors
        stack: List[Tuple[str, Iterator[str]]] = [(task.id, iter(graph.predecessors.get(task.id, [])))]
        depth: Dict[str, int] = {task.id: 0}
        color[task.id] = GRAY

        while stack:
            node, preds = stack[-1]
            descended = False
            for pred_id in preds:
                if color[pred_id] == GRAY:
                    path = [entry[0] for entry in stack[depth[pred_id]:]]
                    raise CyclicDependencyError(path[::-1] + [node])
                if color[pred_id] == WHITE:
                    color[pred_id] = GRAY
                    depth[pred_id] = len(stack)
                    stack.append((pred_id, iter(graph.predecessors.get(pred_id, []))))
                    descended = True
                    break
            if not descended:
                stack.pop()
                del depth[node]
                color[node] = BLACK
                order.append(node)

    return order
