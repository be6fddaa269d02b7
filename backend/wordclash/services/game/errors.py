"""Rejections raised by the game services.

Every error carries a reason ``code`` and the client ``event`` it is
reported on. The dispatcher turns a raised error into one event addressed
to the originating connection; nothing is mutated and nothing is
broadcast.
"""


class GameError(Exception):
    code = 'GameError'
    event = 'action_blocked'
    message = 'Action not allowed'
    # Events from work already done before the rejection (e.g. stale evictions)
    prior_events: tuple | list = ()

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)
        if message:
            self.message = message

    def to_dict(self) -> dict:
        return {'code': self.code, 'message': self.message}


class InputError(GameError):
    """Malformed input, rejected before any state is consulted."""


class PreconditionError(GameError):
    """The room or player is not in a state that allows the action."""


# ---- identity ----

class NameTooShort(InputError):
    code = 'NameTooShort'
    event = 'username_error'
    message = 'Username is too short'


class NameTooLong(InputError):
    code = 'NameTooLong'
    event = 'username_error'
    message = 'Username is too long'


class NameTaken(PreconditionError):
    code = 'NameTaken'
    event = 'username_error'
    message = 'Username already taken'


class AlreadyIdentified(PreconditionError):
    code = 'AlreadyIdentified'
    event = 'username_error'
    message = 'This connection already has a username'


class GameInProgress(PreconditionError):
    code = 'GameInProgress'
    message = 'A game is currently in progress. Please wait for the next round.'


class NoIdentity(PreconditionError):
    code = 'NoIdentity'
    message = 'Choose a username first'


# ---- rooms ----

class RoomNotFound(PreconditionError):
    code = 'RoomNotFound'
    message = 'Room not found'


class RoomInProgress(PreconditionError):
    code = 'RoomInProgress'
    message = 'This room already has a game in progress'


class RoomFull(PreconditionError):
    code = 'RoomFull'
    message = 'This room is full'


class DuplicateNameInRoom(PreconditionError):
    code = 'DuplicateNameInRoom'
    message = 'Someone in this room already uses that name'


class NotInRoom(PreconditionError):
    code = 'NotInRoom'
    message = 'You are not in a room'


# ---- turns ----

class EmptyGuess(InputError):
    code = 'EmptyGuess'
    message = 'Type a word before submitting'


class GameNotInProgress(PreconditionError):
    code = 'GameNotInProgress'
    message = 'No game is in progress'


class NotYourTurn(PreconditionError):
    code = 'NotYourTurn'
    message = "It's not your turn!"


class NoLivesRemaining(PreconditionError):
    code = 'NoLivesRemaining'
    message = 'You have no lives left'


class GuessPending(PreconditionError):
    code = 'GuessPending'
    message = 'Your previous guess is still being checked'


class SkipAlreadyUsed(PreconditionError):
    code = 'SkipAlreadyUsed'
    message = 'You already used your skip this game'


class ResetRequired(PreconditionError):
    code = 'ResetRequired'
    message = 'The last game has ended; reset before starting another'
