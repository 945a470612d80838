from typing import List, Optional
from .config import EngineConfig, UnitSpec
from .model import Unit

# Default squads: five player units on the west edge, four enemies on the east edge.
# Enemy x positions are offsets from the east edge.
PLAYER_SQUAD = [
    UnitSpec(id="hero", side="player", archetype="melee", role="hero",
             pos=(0, 4), hp=20, atk=10, move=1),
    UnitSpec(id="knight", side="player", archetype="melee", role="knight",
             pos=(1, 5), hp=10, atk=4, move=3),
    UnitSpec(id="rider", side="player", archetype="melee", role="rider",
             pos=(1, 3), hp=10, atk=4, move=8),
    UnitSpec(id="mage", side="player", archetype="ranged", role="mage",
             pos=(0, 2), hp=10, atk=4, move=2, attack_range=8),
    UnitSpec(id="archer", side="player", archetype="ranged", role="archer",
             pos=(0, 6), hp=10, atk=3, move=3, attack_range=3),
]

ENEMY_SQUAD = [
    UnitSpec(id="e0", side="enemy", archetype="melee", role="dark_king",
             pos=(1, 3), hp=20, atk=10, move=1),
    UnitSpec(id="e1", side="enemy", archetype="melee", role="assassin",
             pos=(2, 2), hp=4, atk=3, move=3),
    UnitSpec(id="e2", side="enemy", archetype="melee", role="devil",
             pos=(2, 4), hp=15, atk=10, move=1),
    UnitSpec(id="e3", side="enemy", archetype="ranged", role="skull",
             pos=(1, 5), hp=15, atk=3, move=1, attack_range=4),
]


def unit_from_spec(spec: UnitSpec) -> Unit:
    return Unit(
        id=spec.id,
        side=spec.side,
        archetype=spec.archetype,
        role=spec.role,
        pos=(spec.pos[0], spec.pos[1]),
        hp=spec.hp,
        max_hp=spec.max_hp if spec.max_hp is not None else spec.hp,
        atk=spec.atk,
        move=spec.move,
        attack_range=spec.attack_range,
        heal_power=spec.heal_power,
        heal_range=spec.heal_range,
    )


def default_squads(config: EngineConfig) -> List[UnitSpec]:
    """The stock line-up, with enemies mirrored against the east edge."""
    enemies = [
        spec.model_copy(update={"pos": (config.cols - spec.pos[0], spec.pos[1])})
        for spec in ENEMY_SQUAD
    ]
    return [*PLAYER_SQUAD, *enemies]


def build_units(config: EngineConfig, specs: Optional[List[UnitSpec]] = None) -> List[Unit]:
    """Instantiate units, validating bounds and that no two share a cell."""
    specs = specs if specs is not None else default_squads(config)
    units = [unit_from_spec(s) for s in specs]
    seen = set()
    for u in units:
        x, y = u.pos
        if not (0 <= x < config.cols and 0 <= y < config.rows):
            raise ValueError(f"unit {u.id} starts off the grid at {u.pos}")
        if u.pos in seen:
            raise ValueError(f"unit {u.id} starts on an occupied cell {u.pos}")
        seen.add(u.pos)
    return units
