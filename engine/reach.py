from collections import deque
from typing import Dict, List, Set
from .grid import Grid, cell_key, neighbors4
from .model import Cell


def reachable(origin: Cell, budget: int, occupied: Set[str], grid: Grid) -> Dict[str, int]:
    """Cells reachable from origin in at most `budget` orthogonal steps.

    Breadth-first, layer by layer. Occupied cells are neither entered nor
    crossed; the caller removes the mover's own cell from `occupied`. The
    result maps cell key -> step distance and iterates in the order cells were
    dequeued, which callers use for tie-breaking. The origin is never included.
    """
    out: Dict[str, int] = {}
    seen = {cell_key(origin)}
    frontier = deque([(origin, 0)])
    while frontier:
        cur, d = frontier.popleft()
        if d > 0:
            out[cell_key(cur)] = d
        if d >= budget:
            continue
        for n in neighbors4(cur):
            nk = cell_key(n)
            if not grid.in_bounds(n) or nk in seen or nk in occupied:
                continue
            seen.add(nk)
            frontier.append((n, d + 1))
    return out


def step_path(origin: Cell, dest: Cell, occupied: Set[str], grid: Grid) -> List[Cell]:
    """Shortest orthogonal path origin -> dest around occupied cells.

    Returns the cells stepped onto, excluding the origin and ending at dest.
    Empty when dest is unreachable or equals the origin.
    """
    if origin == dest:
        return []
    parents: Dict[Cell, Cell] = {}
    seen = {cell_key(origin)}
    frontier = deque([origin])
    while frontier:
        cur = frontier.popleft()
        if cur == dest:
            break
        for n in neighbors4(cur):
            nk = cell_key(n)
            if not grid.in_bounds(n) or nk in seen or nk in occupied:
                continue
            seen.add(nk)
            parents[n] = cur
            frontier.append(n)
    if dest not in parents:
        return []
    path = [dest]
    while path[-1] in parents and parents[path[-1]] != origin:
        path.append(parents[path[-1]])
    path.reverse()
    return path
