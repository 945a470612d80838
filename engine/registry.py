import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Tuple
from .errors import UnknownUnit
from .model import Cell, Side, Unit

logger = logging.getLogger(__name__)


class UnitRegistry:
    """Sole owner and writer of unit state.

    Iteration order is insertion order; the opponent policy and target
    tie-breaks rely on it.
    """

    def __init__(self, units: Iterable[Unit], death_teardown_ms: int = 800):
        self._units: Dict[str, Unit] = {}
        for u in units:
            if u.id in self._units:
                raise ValueError(f"duplicate unit id {u.id!r}")
            self._units[u.id] = u
        self.death_teardown_ms = death_teardown_ms

    def get(self, unit_id: str) -> Unit:
        u = self._units.get(unit_id)
        if u is None:
            raise UnknownUnit(f"no unit {unit_id!r}")
        return u

    def __contains__(self, unit_id: str) -> bool:
        return unit_id in self._units

    def all(self) -> List[Unit]:
        return list(self._units.values())

    def living(self, side: Optional[Side] = None) -> List[Unit]:
        return [u for u in self._units.values() if u.alive and (side is None or u.side == side)]

    def snapshot(self) -> List[Unit]:
        """Copies of every record, safe to hand to callers."""
        return [replace(u) for u in self._units.values()]

    def snapshot_of(self, unit_id: str) -> Unit:
        return replace(self.get(unit_id))

    # --- writes (called by the action resolver and turn controller) ---

    def move_to(self, unit: Unit, cell: Cell) -> None:
        unit.pos = cell

    def mark_acted(self, unit: Unit) -> None:
        unit.has_acted = True

    def mark_moved(self, unit: Unit) -> None:
        unit.has_moved = True

    def apply_damage(self, unit: Unit, damage: int) -> int:
        """Lower hp, floored at 0. Returns the new hp."""
        unit.hp = max(0, unit.hp - damage)
        return unit.hp

    def apply_heal(self, unit: Unit, amount: int) -> int:
        """Raise hp, capped at max_hp. Returns the amount actually applied."""
        before = unit.hp
        unit.hp = min(unit.max_hp, unit.hp + amount)
        return unit.hp - before

    def begin_dying(self, unit: Unit, now_ms: int, direction: Tuple[float, float]) -> None:
        if unit.dying:
            return
        unit.hp = 0
        unit.dying = True
        unit.death_started_ms = now_ms
        unit.death_dir = direction
        logger.info("Unit %s is down at %s", unit.id, unit.pos)

    def reset_actions(self, side: Side) -> None:
        for u in self.living(side):
            u.has_acted = False
            u.has_moved = False

    def reap(self, now_ms: int) -> List[Unit]:
        """Drop dying units whose teardown window has elapsed."""
        gone = [
            u for u in self._units.values()
            if u.dying and now_ms - (u.death_started_ms or 0) >= self.death_teardown_ms
        ]
        for u in gone:
            del self._units[u.id]
            logger.debug("Removed %s from the registry", u.id)
        return gone
