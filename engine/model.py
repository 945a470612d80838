from dataclasses import dataclass, field
from typing import Dict, List, Literal, Optional, Tuple

Side = Literal["player", "enemy"]
Archetype = Literal["melee", "ranged"]
Cell = Tuple[int, int]  # (x, y) grid coordinate

PLAYER: Side = "player"
ENEMY: Side = "enemy"

# Effect kinds
MOVE_STEP = "move_step"
ATTACK = "attack"
HEAL = "heal"
DEATH = "death"
WAIT = "wait"
REMOVED = "removed"
TURN = "turn"
OUTCOME = "outcome"


def opposing(side: Side) -> Side:
    """Return the other side."""
    return ENEMY if side == PLAYER else PLAYER


@dataclass
class Unit:
    id: str
    side: Side
    archetype: Archetype
    role: str
    pos: Cell
    hp: int
    max_hp: int
    atk: int
    move: int
    attack_range: int = 1
    heal_power: Optional[int] = None  # falls back to atk
    heal_range: Optional[int] = None  # None = anywhere on the grid
    has_acted: bool = False
    has_moved: bool = False  # moved without spending the action; may still attack
    dying: bool = False
    death_started_ms: Optional[int] = None
    death_dir: Optional[Tuple[float, float]] = None

    @property
    def alive(self) -> bool:
        """Alive units can act, be targeted and block cells."""
        return self.hp > 0 and not self.dying

    @property
    def effective_heal_power(self) -> int:
        return self.atk if self.heal_power is None else self.heal_power


@dataclass(frozen=True)
class Effect:
    """One ordered, immutable record of a decided state change."""
    seq: int
    kind: str
    ts_ms: int
    unit_id: str
    target_id: Optional[str] = None
    amount: Optional[int] = None
    data: Dict = field(default_factory=dict)

    @property
    def miss(self) -> bool:
        return self.kind in (ATTACK, HEAL) and self.amount == 0

    def to_dict(self) -> Dict:
        return {
            "seq": self.seq,
            "kind": self.kind,
            "ts_ms": self.ts_ms,
            "unit_id": self.unit_id,
            "target_id": self.target_id,
            "amount": "miss" if self.miss else self.amount,
            "data": self.data,
        }


@dataclass
class State:
    ts_ms: int
    active: Side
    round_num: int
    units: List[Unit] = field(default_factory=list)
    loser: Optional[Side] = None
    winner: Optional[Side] = None
    battle_id: str = "local"


@dataclass(frozen=True)
class Decision:
    """What the opponent policy chose for one unit."""
    kind: Literal["attack", "move", "pass"]
    unit_id: str
    target_id: Optional[str] = None
    cell: Optional[Cell] = None
