from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class Command:
    connection_id: str


@dataclass(frozen=True)
class ClaimIdentity(Command):
    name: str = ''
    room_code: Optional[str] = None
    external_user_id: Optional[int] = None


@dataclass(frozen=True)
class CreateRoom(Command):
    pass


@dataclass(frozen=True)
class JoinRoom(Command):
    room_code: str = ''


@dataclass(frozen=True)
class LeaveRoom(Command):
    pass


@dataclass(frozen=True)
class SetReady(Command):
    ready: bool = True


@dataclass(frozen=True)
class SubmitGuess(Command):
    word: str = ''


@dataclass(frozen=True)
class SubmitSkip(Command):
    pass


@dataclass(frozen=True)
class RequestReset(Command):
    pass


@dataclass(frozen=True)
class RelayTyping(Command):
    text: str = ''


@dataclass(frozen=True)
class Disconnect(Command):
    pass
