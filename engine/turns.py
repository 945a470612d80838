import logging
from typing import Callable, Optional
from .effects import EffectLog
from .errors import MatchOver, RoundIncomplete, WrongTurn
from .model import ENEMY, OUTCOME, PLAYER, TURN, Side, opposing
from .registry import UnitRegistry

logger = logging.getLogger(__name__)


class TurnController:
    """Two-state machine: the player side acts, then the enemy side, and so on.

    Each flip resets has_acted for the living units of the side that becomes
    active. The match ends when a side has no living unit left.
    """

    def __init__(self, registry: UnitRegistry, effects: EffectLog, now: Callable[[], int]):
        self.registry = registry
        self.effects = effects
        self.now = now
        self.active: Side = PLAYER
        self.round_num = 1
        self.loser: Optional[Side] = None

    @property
    def over(self) -> bool:
        return self.loser is not None

    @property
    def winner(self) -> Optional[Side]:
        return opposing(self.loser) if self.loser else None

    def require_active(self, side: Side) -> None:
        if self.over:
            raise MatchOver(f"match is over, {self.winner} won")
        if side != self.active:
            raise WrongTurn(f"it is the {self.active} turn, not {side}")

    def is_round_complete(self, side: Side) -> bool:
        return all(u.has_acted for u in self.registry.living(side))

    def end_turn(self) -> Side:
        """Hand control from the player to the enemy once every player unit has acted."""
        self.require_active(PLAYER)
        if not self.is_round_complete(PLAYER):
            waiting = [u.id for u in self.registry.living(PLAYER) if not u.has_acted]
            raise RoundIncomplete(f"units still to act: {', '.join(waiting)}")
        self._flip(ENEMY)
        return self.active

    def finish_opponent_round(self) -> Side:
        """Hand control back to the player after the enemy has decided for every unit."""
        self.require_active(ENEMY)
        self.round_num += 1
        self._flip(PLAYER)
        return self.active

    def _flip(self, side: Side) -> None:
        self.active = side
        self.registry.reset_actions(side)
        self.effects.append(TURN, self.now(), unit_id="", data={"side": side, "round": self.round_num})
        logger.info("Round %d: %s to act", self.round_num, side)

    def check_outcome(self) -> Optional[Side]:
        """Decide the match once a side is wiped out. The player side is evaluated first."""
        if self.over:
            return self.loser
        for side in (PLAYER, ENEMY):
            if not self.registry.living(side):
                self.loser = side
                self.effects.append(OUTCOME, self.now(), unit_id="",
                                    data={"loser": side, "winner": opposing(side)})
                logger.info("Match over: %s defeated", side)
                break
        return self.loser
