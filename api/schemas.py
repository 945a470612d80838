from typing import Literal, Optional, Tuple
from pydantic import BaseModel, Field

class StartRequest(BaseModel):
    """Battle start request schema."""
    seed: Optional[int] = None
    time_compression: float = Field(default=1.0, gt=0)

class MoveIn(BaseModel):
    unit_id: str
    to: Tuple[int, int]  # (x, y) cell
    then_attack: bool = False  # keep the action for an attack from the new cell

class TargetIn(BaseModel):
    """Attack and heal request schema."""
    unit_id: str
    target_id: str
    step_in: bool = False  # melee only: walk next to the target first

class UnitIn(BaseModel):
    unit_id: str

class UnitOut(BaseModel):
    id: str
    side: Literal["player", "enemy"]
    archetype: str
    role: str
    pos: Tuple[int, int]
    hp: int
    max_hp: int
    atk: int
    move: int
    attack_range: int
    has_acted: bool
    dying: bool

class StateResponse(BaseModel):
    ts_ms: int
    active: Literal["player", "enemy"]
    round: int
    winner: Optional[str] = None
    units: dict[str, UnitOut]

class EffectsResponse(BaseModel):
    """Effects response schema."""
    next_offset: int
    effects: list[dict]
