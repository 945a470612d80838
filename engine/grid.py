from typing import Iterable, List, Optional, Set
from .model import Cell, Unit


def cell_key(cell: Cell) -> str:
    """Identity key for a cell, e.g. (3, 4) -> "3,4"."""
    return f"{cell[0]},{cell[1]}"


def parse_key(key: str) -> Cell:
    x, y = key.split(",")
    return (int(x), int(y))


def manhattan(a: Cell, b: Cell) -> int:
    return abs(a[0] - b[0]) + abs(a[1] - b[1])


def neighbors4(cell: Cell) -> List[Cell]:
    """Orthogonal neighbours in the fixed order +x, -x, +y, -y."""
    x, y = cell
    return [(x + 1, y), (x - 1, y), (x, y + 1), (x, y - 1)]


class Grid:
    """Bounded board. A pure view: occupancy is derived from the units on every call."""

    def __init__(self, cols: int, rows: int):
        self.cols = cols
        self.rows = rows

    def in_bounds(self, cell: Cell) -> bool:
        x, y = cell
        return 0 <= x < self.cols and 0 <= y < self.rows

    def occupied_cells(self, units: Iterable[Unit], exclude: Optional[str] = None) -> Set[str]:
        """Keys of cells held by living units, optionally leaving one unit out."""
        return {cell_key(u.pos) for u in units if u.alive and u.id != exclude}
