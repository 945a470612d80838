import logging
from fastapi import FastAPI, HTTPException
from engine.config import load_settings
from engine.engine import Engine
from engine.errors import ActorBusy, CommandError, MatchOver, UnknownUnit, WrongTurn
from engine.model import PLAYER
from runtime.sequencer import Sequencer
from .schemas import (EffectsResponse, MoveIn, StartRequest, StateResponse,
                      TargetIn, UnitIn, UnitOut)

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Grid Skirmish API")
settings = load_settings()
runner: Sequencer | None = None

CONFLICT = (ActorBusy, WrongTurn, MatchOver)


def _http_error(exc: CommandError) -> HTTPException:
    if isinstance(exc, UnknownUnit):
        status = 404
    elif isinstance(exc, CONFLICT):
        status = 409
    else:
        status = 400
    return HTTPException(status, {"error": exc.code, "message": str(exc)})


def _runner() -> Sequencer:
    if not runner:
        raise HTTPException(400, "Battle not started")
    return runner


async def _player_command(name: str, *args):
    """Run a command on behalf of the human side."""
    r = _runner()
    try:
        if r.engine.get_active_side() != PLAYER:
            raise WrongTurn("the enemy is acting")
        return await r.submit(name, *args)
    except CommandError as exc:
        logger.warning("Rejected %s%s: %s (%s)", name, args, exc.code, exc)
        raise _http_error(exc)


async def _new_battle(seed: int | None, time_compression: float):
    global runner
    eng = Engine.from_settings(settings, seed=seed)
    runner = Sequencer(eng, settings.playback, time_compression=time_compression)
    await runner.start()
    logger.info("Battle started (seed %s, %d units)", eng.seed, len(eng.get_units()))


@app.get("/")
async def root():
    """API root endpoint."""
    return {
        "message": "Grid Skirmish API",
        "docs": "/docs",
        "version": "1.0"
    }

@app.on_event("startup")
async def startup():
    """Start a battle with the configured seed."""
    await _new_battle(None, 1.0)

@app.on_event("shutdown")
async def shutdown():
    """Stop playback on app shutdown."""
    global runner
    if runner:
        await runner.stop()
        runner = None

@app.post("/battle/start")
async def start_battle(req: StartRequest):
    """Start a new battle with specified seed."""
    await shutdown()
    await _new_battle(req.seed, req.time_compression)
    return {"battle_id": "local"}

@app.get("/battle/local/state", response_model=StateResponse)
async def get_state():
    """Get current battle state snapshot."""
    s = await _runner().snapshot()
    return StateResponse(
        ts_ms=s.ts_ms,
        active=s.active,
        round=s.round_num,
        winner=s.winner,
        units={
            u.id: UnitOut(
                id=u.id, side=u.side, archetype=u.archetype, role=u.role, pos=u.pos,
                hp=u.hp, max_hp=u.max_hp, atk=u.atk, move=u.move,
                attack_range=u.attack_range, has_acted=u.has_acted, dying=u.dying,
            ) for u in s.units
        },
    )

@app.get("/battle/local/units/{unit_id}/reachable")
async def get_reachable(unit_id: str):
    """Cells the unit may move to this action."""
    r = _runner()
    try:
        cells = await r.submit("get_reachable_cells", unit_id)
    except CommandError as exc:
        raise _http_error(exc)
    return {"unit_id": unit_id, "cells": list(cells)}

@app.get("/battle/local/round-complete")
async def round_complete(side: str = PLAYER):
    """Whether every living unit of `side` has acted."""
    if side not in ("player", "enemy"):
        raise HTTPException(400, f"unknown side {side!r}")
    complete = await _runner().submit("is_round_complete", side)
    return {"side": side, "complete": complete}

@app.post("/battle/local/move")
async def move(req: MoveIn):
    """Move a unit to a reachable cell."""
    path = await _player_command("move", req.unit_id, tuple(req.to), req.then_attack)
    return {"unit_id": req.unit_id, "path": [list(c) for c in path]}

@app.post("/battle/local/attack")
async def attack(req: TargetIn):
    """Attack an enemy unit, optionally stepping into melee range first."""
    name = "move_and_attack" if req.step_in else "attack"
    damage = await _player_command(name, req.unit_id, req.target_id)
    return {"unit_id": req.unit_id, "target_id": req.target_id,
            "damage": damage, "miss": damage == 0}

@app.post("/battle/local/heal")
async def heal(req: TargetIn):
    """Heal an ally."""
    healed = await _player_command("heal", req.unit_id, req.target_id)
    return {"unit_id": req.unit_id, "target_id": req.target_id, "healed": healed}

@app.post("/battle/local/wait")
async def wait(req: UnitIn):
    """Spend a unit's action without doing anything."""
    await _player_command("wait", req.unit_id)
    return {"unit_id": req.unit_id, "has_acted": True}

@app.post("/battle/local/end-turn")
async def end_turn():
    """Hand control to the enemy once every player unit has acted."""
    active = await _player_command("end_turn")
    return {"active": active}

@app.get("/battle/local/effects")
async def get_effects(since: int = 0, limit: int = 500):
    """Get effects since offset."""
    effects, next_offset = _runner().engine.effects.since(since, limit)
    return EffectsResponse(
        next_offset=next_offset,
        effects=[e.to_dict() for e in effects]
    )

@app.post("/battle/local/time-control")
async def set_time_control(time_compression: float):
    """Set playback time compression (1.0 = real-time, higher = faster)."""
    r = _runner()
    r.set_time_compression(time_compression)
    return {"time_compression": r.time_compression}

@app.get("/battle/local/time-control")
async def get_time_control():
    """Get current time compression setting."""
    return {"time_compression": _runner().time_compression}
