class CommandError(Exception):
    """A rejected command. Nothing was mutated and no effect was emitted."""

    code = "command_error"


class IllegalMove(CommandError):
    code = "illegal_move"


class OutOfRange(CommandError):
    code = "out_of_range"


class InvalidTarget(CommandError):
    code = "invalid_target"


class InvalidActor(CommandError):
    """Actor is dying or lacks the capability the command needs."""
    code = "invalid_actor"


class ActionAlreadyUsed(CommandError):
    code = "action_already_used"


class WrongTurn(CommandError):
    code = "wrong_turn"


class UnknownUnit(CommandError):
    code = "unknown_unit"


class RoundIncomplete(CommandError):
    """end_turn() while some living unit of the active side has not acted."""
    code = "round_incomplete"


class MatchOver(CommandError):
    code = "match_over"


class ActorBusy(CommandError):
    """The actor still has effects waiting for playback."""
    code = "actor_busy"
