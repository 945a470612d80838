import asyncio
import logging
from typing import Any, Optional
from engine.config import PlaybackTimings
from engine.engine import Engine
from engine.errors import ActorBusy
from engine.model import Effect, State

logger = logging.getLogger(__name__)

UNIT_COMMANDS = ("move", "attack", "move_and_attack", "heal", "wait")


class Sequencer:
    """Async driver that replays effects at presentation pace and runs the enemy round.

    Effects are played strictly FIFO. Each one holds the queue for its
    duration, then the engine clock advances by the same amount, so corpses
    disappear in step with their death animation. Enemy units are run one at
    a time, and only once everything the previous unit did has played out.
    """

    def __init__(self, engine: Engine, timings: Optional[PlaybackTimings] = None,
                 time_compression: float = 1.0):
        self.engine = engine
        self.timings = timings or PlaybackTimings()
        self.time_compression = 1.0
        self.set_time_compression(time_compression)
        self._task: asyncio.Task | None = None
        self._lock = asyncio.Lock()
        self._settle_ms = 0

    async def start(self):
        """Start the playback loop."""
        if self._task:
            return
        self._task = asyncio.create_task(self._loop())

    async def stop(self):
        """Stop the playback loop gracefully."""
        if not self._task:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def _sleep_s(self, ms: int) -> float:
        return (ms / 1000.0) / self.time_compression

    async def _loop(self):
        """Main loop - play pending effects, then let the next enemy unit act."""
        while True:
            async with self._lock:
                effect = self.engine.effects.next_pending()
            if effect is not None:
                await self._play(effect)
                continue

            if self._settle_ms:
                pause, self._settle_ms = self._settle_ms, 0
                await self._idle(pause)
                continue

            async with self._lock:
                decision = self.engine.opponent_step()
            if decision is not None:
                logger.debug("Enemy %s chose %s", decision.unit_id, decision.kind)
                self._settle_ms = self.timings.ai_unit_delay_ms
                continue

            await self._idle(self.timings.idle_poll_ms)

    async def _play(self, effect: Effect):
        duration = self.timings.duration_for(effect.kind)
        await asyncio.sleep(self._sleep_s(duration))
        async with self._lock:
            self.engine.effects.mark_played(effect.seq)
            self.engine.advance(duration)

    async def _idle(self, ms: int):
        await asyncio.sleep(self._sleep_s(ms))
        async with self._lock:
            self.engine.advance(ms)

    async def submit(self, command: str, *args: Any) -> Any:
        """Apply one engine command; unit commands are refused while the actor is still animating."""
        async with self._lock:
            if command in UNIT_COMMANDS and self.engine.is_busy(args[0]):
                raise ActorBusy(f"{args[0]} is still resolving its last action")
            result = getattr(self.engine, command)(*args)
        logger.debug("Applied %s%s", command, args)
        return result

    async def is_busy(self, unit_id: str) -> bool:
        async with self._lock:
            return self.engine.is_busy(unit_id)

    async def wait_idle(self, poll_s: float = 0.001):
        """Wait until every effect has played and no enemy unit is left to act."""
        while True:
            async with self._lock:
                idle = (self.engine.effects.next_pending() is None
                        and not self.engine.opponent_pending()
                        and not self._settle_ms)
            if idle:
                return
            await asyncio.sleep(poll_s)

    async def snapshot(self) -> State:
        """Get current state (lock-guarded)."""
        async with self._lock:
            return self.engine.snapshot()

    def set_time_compression(self, time_compression: float):
        """Update time compression factor (1.0 = real-time, higher = faster)."""
        self.time_compression = max(0.1, min(1000.0, time_compression))
        logger.info("Time compression set to %sx", self.time_compression)
