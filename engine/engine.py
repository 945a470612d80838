from typing import Dict, List, Optional
from .actions import ActionResolver
from .ai import OpponentPolicy
from .config import EngineConfig, Settings
from .effects import EffectLog
from .grid import Grid
from .model import ENEMY, REMOVED, Cell, Decision, Side, State, Unit
from .registry import UnitRegistry
from .rng import DRNG
from .roster import build_units
from .turns import TurnController


class Engine:
    """Deterministic rules engine: the command/query surface over one battle.

    All commands are synchronous and apply completely or not at all. Time is
    a logical millisecond clock that only moves through `advance`; outcomes
    never depend on it, only corpse removal does.
    """

    def __init__(self, seed: int, units: List[Unit], config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.seed = seed
        self.ts_ms = 0
        self._rng = DRNG(seed)
        self.grid = Grid(self.config.cols, self.config.rows)
        self.effects = EffectLog()
        self.registry = UnitRegistry(units, death_teardown_ms=self.config.death_teardown_ms)
        self.turns = TurnController(self.registry, self.effects, self._now)
        self.resolver = ActionResolver(self.registry, self.grid, self._rng, self.effects,
                                       self.turns, self._now, healer_role=self.config.healer_role)
        self.policy = OpponentPolicy(self.registry, self.resolver)

    @classmethod
    def from_settings(cls, settings: Settings, seed: Optional[int] = None) -> "Engine":
        units = build_units(settings.engine, settings.units)
        return cls(settings.engine.seed if seed is None else seed, units, settings.engine)

    def _now(self) -> int:
        return self.ts_ms

    # --- queries ---

    def get_units(self) -> List[Unit]:
        return self.registry.snapshot()

    def get_unit(self, unit_id: str) -> Unit:
        return self.registry.snapshot_of(unit_id)

    def get_active_side(self) -> Side:
        return self.turns.active

    def get_reachable_cells(self, actor_id: str) -> Dict[str, int]:
        """Cells the actor could move to right now; empty if it cannot move."""
        u = self.registry.get(actor_id)
        if not u.alive or u.has_acted or u.has_moved or u.side != self.turns.active or self.turns.over:
            return {}
        return self.resolver.reachable_for(u)

    def is_round_complete(self, side: Side) -> bool:
        return self.turns.is_round_complete(side)

    def is_busy(self, unit_id: str) -> bool:
        """True while effects of this unit are still waiting for playback."""
        return self.effects.has_pending_for(unit_id)

    @property
    def loser(self) -> Optional[Side]:
        return self.turns.loser

    @property
    def winner(self) -> Optional[Side]:
        return self.turns.winner

    def snapshot(self) -> State:
        """Return a copy of the current state."""
        return State(ts_ms=self.ts_ms, active=self.turns.active, round_num=self.turns.round_num,
                     units=self.registry.snapshot(), loser=self.loser, winner=self.winner)

    # --- commands ---

    def move(self, actor_id: str, cell: Cell, then_attack: bool = False) -> List[Cell]:
        return self.resolver.move(actor_id, cell, then_attack)

    def attack(self, actor_id: str, target_id: str) -> int:
        return self.resolver.attack(actor_id, target_id)

    def move_and_attack(self, actor_id: str, target_id: str) -> int:
        return self.resolver.move_and_attack(actor_id, target_id)

    def heal(self, healer_id: str, target_id: str) -> int:
        return self.resolver.heal(healer_id, target_id)

    def wait(self, actor_id: str) -> None:
        self.resolver.wait(actor_id)

    def end_turn(self) -> Side:
        return self.turns.end_turn()

    def opponent_pending(self) -> bool:
        return not self.turns.over and self.turns.active == ENEMY

    def opponent_step(self) -> Optional[Decision]:
        """Decide and resolve the next enemy unit.

        Once every enemy has acted, the following call hands the turn back and
        returns None, so the caller can let the last unit's effects play first.
        """
        if not self.opponent_pending():
            return None
        unit = self.policy.next_actor()
        if unit is None:
            self.turns.finish_opponent_round()
            return None
        return self.policy.act(unit)

    def play_opponent_round(self) -> List[Decision]:
        """Run the whole enemy round synchronously."""
        decisions: List[Decision] = []
        while self.opponent_pending():
            decision = self.opponent_step()
            if decision is not None:
                decisions.append(decision)
        return decisions

    def advance(self, dt_ms: int) -> List[str]:
        """Advance the logical clock and remove corpses whose teardown has elapsed."""
        self.ts_ms += max(0, int(dt_ms))
        removed = self.registry.reap(self.ts_ms)
        for u in removed:
            self.effects.append(REMOVED, self.ts_ms, u.id)
        return [u.id for u in removed]
