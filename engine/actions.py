import logging
import math
from typing import Callable, Dict, List, Optional, Tuple
from .effects import EffectLog
from .errors import (ActionAlreadyUsed, IllegalMove, InvalidActor,
                     InvalidTarget, OutOfRange)
from .grid import Grid, cell_key, manhattan, parse_key
from .model import ATTACK, DEATH, HEAL, MOVE_STEP, WAIT, Cell, Unit
from .reach import reachable, step_path
from .registry import UnitRegistry
from .rng import DRNG
from .turns import TurnController

logger = logging.getLogger(__name__)


def normalize_2d(frm: Cell, to: Cell) -> Tuple[float, float]:
    """Unit vector pointing from one cell to another."""
    dx = to[0] - frm[0]
    dy = to[1] - frm[1]
    mag = max(1e-6, math.hypot(dx, dy))
    return (dx / mag, dy / mag)


class ActionResolver:
    """Validates and applies unit commands.

    Every check runs before the first write, so a rejected command leaves
    the registry and the effect log untouched.
    """

    def __init__(self, registry: UnitRegistry, grid: Grid, rng: DRNG, effects: EffectLog,
                 turns: TurnController, now: Callable[[], int], healer_role: str = "mage"):
        self.registry = registry
        self.grid = grid
        self.rng = rng
        self.effects = effects
        self.turns = turns
        self.now = now
        self.healer_role = healer_role

    def reachable_for(self, unit: Unit) -> Dict[str, int]:
        occupied = self.grid.occupied_cells(self.registry.all(), exclude=unit.id)
        return reachable(unit.pos, unit.move, occupied, self.grid)

    def _ready_actor(self, actor_id: str) -> Unit:
        u = self.registry.get(actor_id)
        self.turns.require_active(u.side)
        if not u.alive:
            raise InvalidActor(f"{u.id} is down")
        if u.has_acted:
            raise ActionAlreadyUsed(f"{u.id} has already acted this round")
        return u

    def _hostile_target(self, actor: Unit, target_id: str) -> Unit:
        t = self.registry.get(target_id)
        if not t.alive or t.side == actor.side:
            raise InvalidTarget(f"{actor.id} cannot attack {t.id}")
        return t

    # --- move ---

    def move(self, actor_id: str, dest: Cell, then_attack: bool = False) -> List[Cell]:
        """Walk to a reachable cell.

        The action is spent on the last step unless `then_attack` is set, in
        which case the unit keeps its action for one attack (or a wait).
        """
        u = self._ready_actor(actor_id)
        if u.has_moved:
            raise ActionAlreadyUsed(f"{u.id} has already moved this round")
        dest = (int(dest[0]), int(dest[1]))
        if not self.grid.in_bounds(dest):
            raise IllegalMove(f"{dest} is off the grid")
        if cell_key(dest) not in self.reachable_for(u):
            raise IllegalMove(f"{u.id} cannot reach {dest}")
        return self._walk(u, dest, consume=not then_attack)

    def _walk(self, u: Unit, dest: Cell, consume: bool) -> List[Cell]:
        origin = u.pos
        occupied = self.grid.occupied_cells(self.registry.all(), exclude=u.id)
        path = step_path(u.pos, dest, occupied, self.grid)
        for i, cell in enumerate(path):
            frm = u.pos
            self.registry.move_to(u, cell)
            if i == len(path) - 1:
                if consume:
                    self.registry.mark_acted(u)
                else:
                    self.registry.mark_moved(u)
            self.effects.append(MOVE_STEP, self.now(), u.id,
                                data={"from": list(frm), "to": list(cell),
                                      "step": i + 1, "steps": len(path)})
        logger.debug("%s moved %s -> %s in %d steps", u.id, origin, dest, len(path))
        return path

    # --- attack ---

    def attack(self, actor_id: str, target_id: str) -> int:
        u = self._ready_actor(actor_id)
        t = self._hostile_target(u, target_id)
        if manhattan(u.pos, t.pos) > u.attack_range:
            raise OutOfRange(f"{t.id} is beyond range {u.attack_range} of {u.id}")
        return self._strike(u, t)

    def move_and_attack(self, actor_id: str, target_id: str) -> int:
        """Melee convenience: step next to the target, then strike with the same action."""
        u = self._ready_actor(actor_id)
        t = self._hostile_target(u, target_id)
        if manhattan(u.pos, t.pos) <= u.attack_range:
            return self._strike(u, t)
        if u.has_moved:
            raise ActionAlreadyUsed(f"{u.id} has already moved this round")
        if u.archetype != "melee":
            raise OutOfRange(f"{t.id} is beyond range {u.attack_range} of {u.id}")
        best: Optional[Tuple[Tuple[int, int], Cell]] = None
        for key in self.reachable_for(u):
            cell = parse_key(key)
            if manhattan(cell, t.pos) > u.attack_range:
                continue
            score = (manhattan(cell, u.pos), manhattan(cell, t.pos))
            if best is None or score < best[0]:
                best = (score, cell)
        if best is None:
            raise OutOfRange(f"{u.id} cannot get within range of {t.id} this round")
        self._walk(u, best[1], consume=False)
        return self._strike(u, t)

    def _strike(self, u: Unit, t: Unit) -> int:
        damage = self.rng.randint(0, u.atk)
        facing = normalize_2d(u.pos, t.pos)
        hp = self.registry.apply_damage(t, damage)
        self.registry.mark_acted(u)
        self.effects.append(ATTACK, self.now(), u.id, t.id, damage,
                            data={"dir": list(facing), "hp": hp})
        logger.debug("%s hits %s for %d (hp %d)", u.id, t.id, damage, hp)
        if hp <= 0:
            self.registry.begin_dying(t, self.now(), facing)
            self.effects.append(DEATH, self.now(), t.id, data={"dir": list(facing), "killer": u.id})
        self.turns.check_outcome()
        return damage

    # --- heal / wait ---

    def heal(self, healer_id: str, target_id: str) -> int:
        h = self._ready_actor(healer_id)
        if h.role != self.healer_role:
            raise InvalidActor(f"only the {self.healer_role} can heal")
        if h.has_moved:
            raise ActionAlreadyUsed(f"{h.id} moved to attack and cannot heal this round")
        t = self.registry.get(target_id)
        if t.id == h.id or t.side != h.side or not t.alive:
            raise InvalidTarget(f"{h.id} cannot heal {t.id}")
        if h.heal_range is not None and manhattan(h.pos, t.pos) > h.heal_range:
            raise OutOfRange(f"{t.id} is beyond heal range {h.heal_range} of {h.id}")
        rolled = self.rng.randint(0, h.effective_heal_power)
        applied = self.registry.apply_heal(t, rolled)
        self.registry.mark_acted(h)
        self.effects.append(HEAL, self.now(), h.id, t.id, applied,
                            data={"rolled": rolled, "hp": t.hp})
        logger.debug("%s heals %s for %d (rolled %d)", h.id, t.id, applied, rolled)
        return applied

    def wait(self, actor_id: str) -> None:
        u = self._ready_actor(actor_id)
        self.registry.mark_acted(u)
        self.effects.append(WAIT, self.now(), u.id)
