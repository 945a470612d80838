import logging
from typing import Optional
from .actions import ActionResolver
from .grid import manhattan, parse_key
from .model import ENEMY, PLAYER, Decision, Unit
from .registry import UnitRegistry

logger = logging.getLogger(__name__)


class OpponentPolicy:
    """Enemy-side decision procedure, one unit at a time in registry order.

    A unit attacks the nearest player unit already in range; otherwise it
    walks to the reachable cell closest to the nearest player unit and stops
    there. It never moves and attacks in the same round.
    """

    def __init__(self, registry: UnitRegistry, resolver: ActionResolver):
        self.registry = registry
        self.resolver = resolver

    def next_actor(self) -> Optional[Unit]:
        for u in self.registry.living(ENEMY):
            if not u.has_acted:
                return u
        return None

    def decide(self, unit: Unit) -> Decision:
        targets = self.registry.living(PLAYER)
        if not targets:
            return Decision("pass", unit.id)

        in_range = [t for t in targets if manhattan(unit.pos, t.pos) <= unit.attack_range]
        if in_range:
            victim = min(in_range, key=lambda t: manhattan(unit.pos, t.pos))
            return Decision("attack", unit.id, target_id=victim.id)

        # ties go to the last unit in registry order
        nearest = min(reversed(targets), key=lambda t: manhattan(unit.pos, t.pos))
        best = unit.pos
        best_d = manhattan(unit.pos, nearest.pos)
        for key in self.resolver.reachable_for(unit):
            cell = parse_key(key)
            d = manhattan(cell, nearest.pos)
            if d < best_d:
                best, best_d = cell, d
        if best == unit.pos:
            return Decision("pass", unit.id, target_id=nearest.id)
        return Decision("move", unit.id, target_id=nearest.id, cell=best)

    def act(self, unit: Unit) -> Decision:
        """Decide for `unit` and resolve the decision through the action resolver."""
        decision = self.decide(unit)
        logger.debug("AI %s: %s", unit.id, decision)
        if decision.kind == "attack":
            self.resolver.attack(unit.id, decision.target_id)
        elif decision.kind == "move":
            self.resolver.move(unit.id, decision.cell)
        else:
            self.resolver.wait(unit.id)
        return decision
