"""Game domain services: rooms, sessions, turns and timers.

This package contains pure(ish) domain logic that is driven by the Socket.IO
handlers and HTTP routes, keeping transport concerns separated from core
game mechanics. Nothing in here touches the database.
"""

from .commands import (
    ClaimIdentity,
    CreateRoom,
    Disconnect,
    JoinRoom,
    LeaveRoom,
    RelayTyping,
    RequestReset,
    SetReady,
    SubmitGuess,
    SubmitSkip,
)
from .engine import TurnEngine
from .errors import GameError
from .events import Event, Membership
from .registry import RoomRegistry
from .service import GameService
from .sessions import SessionManager
from .state import Authenticated, GameSettings, Guest, Player, Room, RoomPhase
from .timer import TimerHandle, TurnTimer
from .validator import WordValidator

__all__ = [
    "ClaimIdentity",
    "CreateRoom",
    "Disconnect",
    "JoinRoom",
    "LeaveRoom",
    "RelayTyping",
    "RequestReset",
    "SetReady",
    "SubmitGuess",
    "SubmitSkip",
    "TurnEngine",
    "GameError",
    "Event",
    "Membership",
    "RoomRegistry",
    "GameService",
    "SessionManager",
    "Authenticated",
    "GameSettings",
    "Guest",
    "Player",
    "Room",
    "RoomPhase",
    "TimerHandle",
    "TurnTimer",
    "WordValidator",
]
