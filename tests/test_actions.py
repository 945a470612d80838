"""Test move, attack and heal resolution."""
from collections import Counter
import pytest
from engine.config import EngineConfig
from engine.engine import Engine
from engine.errors import (ActionAlreadyUsed, IllegalMove, InvalidActor,
                           InvalidTarget, OutOfRange, UnknownUnit, WrongTurn)
from engine.model import ATTACK, DEATH, HEAL, MOVE_STEP, REMOVED, Unit


def make_unit(uid: str, side: str, pos, **kw) -> Unit:
    hp = kw.pop("hp", 10)
    return Unit(id=uid, side=side, archetype=kw.pop("archetype", "melee"), role=kw.pop("role", uid),
                pos=pos, hp=hp, max_hp=kw.pop("max_hp", hp), atk=kw.pop("atk", 4),
                move=kw.pop("move", 3), **kw)


def make_engine(*units: Unit, seed: int = 42) -> Engine:
    return Engine(seed, list(units), EngineConfig(cols=10, rows=8))


def state_of(eng: Engine):
    return [(u.id, u.pos, u.hp, u.has_acted, u.has_moved, u.dying) for u in eng.get_units()]


# --- move ---

def test_move_steps_one_cell_at_a_time_and_spends_the_action():
    eng = make_engine(make_unit("a", "player", (0, 0)), make_unit("z", "enemy", (9, 7)))
    path = eng.move("a", (2, 1))
    assert path[-1] == (2, 1)
    a = eng.get_unit("a")
    assert a.pos == (2, 1)
    assert a.has_acted

    steps = [e for e in eng.effects.pending if e.kind == MOVE_STEP]
    assert len(steps) == 3
    assert [e.seq for e in steps] == sorted(e.seq for e in steps)
    assert steps[0].data["from"] == [0, 0]
    assert steps[-1].data["to"] == [2, 1]
    assert all(e.unit_id == "a" for e in steps)


def test_move_rejections():
    eng = make_engine(
        make_unit("a", "player", (0, 0), move=2),
        make_unit("b", "player", (1, 0)),
        make_unit("z", "enemy", (9, 7)),
    )
    with pytest.raises(IllegalMove):
        eng.move("a", (1, 0))  # occupied
    with pytest.raises(IllegalMove):
        eng.move("a", (-1, 0))  # off grid
    with pytest.raises(IllegalMove):
        eng.move("a", (0, 3))  # beyond budget
    with pytest.raises(UnknownUnit):
        eng.move("nobody", (0, 1))
    with pytest.raises(WrongTurn):
        eng.move("z", (8, 7))


def test_rejected_command_is_idempotent():
    eng = make_engine(make_unit("a", "player", (0, 0), move=1), make_unit("z", "enemy", (9, 7)))
    before = state_of(eng)
    for _ in range(2):
        with pytest.raises(IllegalMove):
            eng.move("a", (5, 5))
        assert state_of(eng) == before
        assert len(eng.effects) == 0


def test_cannot_move_twice():
    eng = make_engine(make_unit("a", "player", (0, 0)), make_unit("z", "enemy", (9, 7)))
    eng.move("a", (1, 0))
    with pytest.raises(ActionAlreadyUsed):
        eng.move("a", (2, 0))
    assert eng.get_reachable_cells("a") == {}


def test_reachable_query_excludes_own_cell_and_others():
    eng = make_engine(
        make_unit("a", "player", (0, 0), move=1),
        make_unit("b", "player", (1, 0)),
        make_unit("z", "enemy", (9, 7)),
    )
    assert set(eng.get_reachable_cells("a")) == {"0,1"}


# --- attack ---

def test_attack_out_of_range_then_move_and_attack():
    """Range 1 at (0,0) against (2,0): rejected, then accepted after stepping to (1,0)."""
    eng = make_engine(make_unit("a", "player", (0, 0)), make_unit("t", "enemy", (2, 0), hp=50))
    with pytest.raises(OutOfRange):
        eng.attack("a", "t")
    eng.move("a", (1, 0), then_attack=True)
    assert not eng.get_unit("a").has_acted
    with pytest.raises(ActionAlreadyUsed):
        eng.move("a", (1, 1))
    dmg = eng.attack("a", "t")
    assert 0 <= dmg <= 4
    assert eng.get_unit("a").has_acted


def test_plain_move_spends_the_action_before_attack():
    eng = make_engine(make_unit("a", "player", (0, 0)), make_unit("t", "enemy", (2, 0), hp=50))
    eng.move("a", (1, 0))
    with pytest.raises(ActionAlreadyUsed):
        eng.attack("a", "t")


def test_attack_target_validation():
    eng = make_engine(
        make_unit("a", "player", (0, 0)),
        make_unit("b", "player", (0, 1)),
        make_unit("t", "enemy", (1, 0)),
    )
    with pytest.raises(InvalidTarget):
        eng.attack("a", "b")
    with pytest.raises(UnknownUnit):
        eng.attack("a", "ghost")
    eng.attack("a", "t")
    with pytest.raises(ActionAlreadyUsed):
        eng.attack("a", "t")


def test_damage_is_uniform_over_zero_to_attack_power():
    """atk 10 against hp 4: every value 0..10 shows up and >= 4 always kills."""
    eng = make_engine(
        make_unit("a", "player", (0, 0), atk=10),
        make_unit("t", "enemy", (1, 0), hp=4),
        make_unit("spare", "enemy", (9, 7)),
        seed=7,
    )
    a = eng.registry.get("a")
    t = eng.registry.get("t")
    counts = Counter()
    for _ in range(1000):
        a.has_acted = False
        t.hp, t.dying, t.death_started_ms = 4, False, None
        dmg = eng.attack("a", "t")
        counts[dmg] += 1
        assert 0 <= dmg <= 10
        assert 0 <= t.hp <= 4
        assert t.dying == (dmg >= 4)
    assert set(counts) == set(range(11))
    assert all(40 <= n <= 150 for n in counts.values())


def test_kill_marks_dying_and_teardown_removes_after_window():
    eng = make_engine(
        make_unit("a", "player", (0, 0), atk=10),
        make_unit("b", "player", (2, 1)),
        make_unit("t", "enemy", (1, 0), hp=1),
        make_unit("spare", "enemy", (9, 7)),
        seed=3,
    )
    while eng.get_unit("t").hp > 0:
        eng.registry.get("a").has_acted = False
        eng.attack("a", "t")

    t = eng.get_unit("t")
    assert t.dying and t.hp == 0
    assert t.death_dir == (1.0, 0.0)
    kinds = [e.kind for e in eng.effects.pending]
    assert kinds[-2:] == [ATTACK, DEATH]

    # corpse blocks nothing and cannot be targeted
    assert "1,0" in eng.get_reachable_cells("b")
    eng.registry.get("a").has_acted = False
    with pytest.raises(InvalidTarget):
        eng.attack("a", "t")

    assert eng.advance(799) == []
    assert "t" in eng.registry
    assert eng.advance(1) == ["t"]
    assert "t" not in eng.registry
    assert eng.effects.pending[-1].kind == REMOVED
    with pytest.raises(UnknownUnit):
        eng.attack("a", "t")


def test_attack_effect_carries_direction_and_miss():
    eng = make_engine(make_unit("a", "player", (2, 2), atk=0), make_unit("t", "enemy", (2, 3)))
    eng.attack("a", "t")
    effect = eng.effects.pending[-1]
    assert effect.kind == ATTACK
    assert effect.data["dir"] == [0.0, 1.0]
    assert effect.miss
    assert effect.to_dict()["amount"] == "miss"


def test_step_in_attack_for_melee():
    eng = make_engine(make_unit("a", "player", (0, 0), move=3), make_unit("t", "enemy", (3, 0), hp=50))
    eng.move_and_attack("a", "t")
    a = eng.get_unit("a")
    assert a.pos == (2, 0)
    assert a.has_acted
    kinds = [e.kind for e in eng.effects.pending]
    assert kinds == [MOVE_STEP, MOVE_STEP, ATTACK]


def test_step_in_attack_rejected_for_ranged_or_unreachable():
    eng = make_engine(
        make_unit("r", "player", (0, 0), archetype="ranged", attack_range=2),
        make_unit("m", "player", (0, 7), move=1),
        make_unit("t", "enemy", (5, 0)),
    )
    with pytest.raises(OutOfRange):
        eng.move_and_attack("r", "t")
    with pytest.raises(OutOfRange):
        eng.move_and_attack("m", "t")
    assert len(eng.effects) == 0


# --- heal ---

def test_heal_clamps_to_max_hp():
    eng = make_engine(
        make_unit("mage", "player", (0, 0), atk=4),
        make_unit("k", "player", (0, 1), hp=10),
        make_unit("z", "enemy", (9, 7)),
        seed=11,
    )
    mage = eng.registry.get("mage")
    k = eng.registry.get("k")
    seen = set()
    for _ in range(300):
        mage.has_acted = False
        k.hp = 8
        healed = eng.heal("mage", "k")
        seen.add(eng.effects.pending[-1].data["rolled"])
        assert 0 <= healed <= 2
        assert 8 <= k.hp <= 10
    assert seen == set(range(5))
    assert eng.effects.pending[-1].kind == HEAL


def test_heal_power_overrides_attack():
    eng = make_engine(
        make_unit("mage", "player", (0, 0), atk=1, heal_power=6),
        make_unit("k", "player", (0, 1), hp=1, max_hp=20),
        make_unit("z", "enemy", (9, 7)),
    )
    healed = eng.heal("mage", "k")
    assert 0 <= healed <= 6
    assert eng.get_unit("k").hp == 1 + healed


def test_heal_rejections():
    eng = make_engine(
        make_unit("mage", "player", (0, 0), heal_range=2),
        make_unit("k", "player", (0, 1)),
        make_unit("far", "player", (7, 7)),
        make_unit("z", "enemy", (9, 7)),
    )
    with pytest.raises(InvalidActor):
        eng.heal("k", "mage")
    with pytest.raises(InvalidTarget):
        eng.heal("mage", "mage")
    with pytest.raises(InvalidTarget):
        eng.heal("mage", "z")
    with pytest.raises(OutOfRange):
        eng.heal("mage", "far")
    assert len(eng.effects) == 0
    eng.heal("mage", "k")
    with pytest.raises(ActionAlreadyUsed):
        eng.heal("mage", "k")


def test_step_in_after_a_chained_move_is_refused():
    eng = make_engine(make_unit("a", "player", (0, 0), move=1), make_unit("t", "enemy", (5, 0)))
    eng.move("a", (1, 0), then_attack=True)
    before = state_of(eng)
    count = len(eng.effects)
    with pytest.raises(ActionAlreadyUsed):
        eng.move_and_attack("a", "t")
    assert state_of(eng) == before
    assert len(eng.effects) == count


def test_rejected_attack_and_heal_are_idempotent():
    eng = make_engine(
        make_unit("mage", "player", (0, 0), role="mage", heal_range=1),
        make_unit("k", "player", (0, 1), hp=5, max_hp=10),
        make_unit("far", "player", (0, 7), hp=5, max_hp=10),
        make_unit("t", "enemy", (5, 5)),
    )
    before = state_of(eng)
    rejected = [
        (OutOfRange, lambda: eng.attack("mage", "t")),
        (InvalidTarget, lambda: eng.attack("mage", "k")),
        (InvalidTarget, lambda: eng.heal("mage", "t")),
        (OutOfRange, lambda: eng.heal("mage", "far")),
        (InvalidActor, lambda: eng.heal("k", "far")),
    ]
    for error, command in rejected:
        for _ in range(2):
            with pytest.raises(error):
                command()
            assert state_of(eng) == before
            assert len(eng.effects) == 0


def test_dying_actor_cannot_act():
    eng = make_engine(
        make_unit("a", "player", (0, 0)),
        make_unit("b", "player", (3, 3)),
        make_unit("t", "enemy", (1, 0)),
    )
    eng.registry.begin_dying(eng.registry.get("a"), 0, (-1.0, 0.0))
    before = state_of(eng)
    for command in (lambda: eng.attack("a", "t"), lambda: eng.move("a", (0, 1)), lambda: eng.wait("a")):
        with pytest.raises(InvalidActor):
            command()
    assert state_of(eng) == before
    assert len(eng.effects) == 0
    assert eng.get_reachable_cells("a") == {}
