"""In-memory room and player records.

Nothing here is persisted: rooms live as long as the process (or until their
last player leaves) and are owned by the ``RoomRegistry``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class RoomPhase(Enum):
    WAITING_FOR_PLAYERS = 'waiting_for_players'
    ALL_READY = 'all_ready'  # transient, immediately followed by IN_PROGRESS
    IN_PROGRESS = 'in_progress'
    ROUND_RESOLVING = 'round_resolving'  # a guess is out for dictionary lookup
    PLAYER_WON = 'player_won'
    ALL_ELIMINATED = 'all_eliminated'


ACTIVE_PHASES = frozenset({RoomPhase.IN_PROGRESS, RoomPhase.ROUND_RESOLVING})
TERMINAL_PHASES = frozenset({RoomPhase.PLAYER_WON, RoomPhase.ALL_ELIMINATED})


@dataclass(frozen=True)
class Guest:
    name: str


@dataclass(frozen=True)
class Authenticated:
    name: str
    external_user_id: int


Identity = Guest | Authenticated


@dataclass
class GameSettings:
    starting_lives: int = 3
    turn_duration: int = 10
    min_players: int = 2
    max_players: int = 8
    min_name_length: int = 3
    max_name_length: int = 20
    room_code_length: int = 4
    shared_room_code: str = 'MAIN'
    typing_max_length: int = 40

    @classmethod
    def from_config(cls, config) -> GameSettings:
        return cls(
            starting_lives=int(config.get('STARTING_LIVES', 3)),
            turn_duration=int(config.get('TURN_DURATION_SEC', 10)),
            min_players=max(2, int(config.get('MIN_PLAYERS', 2))),
            max_players=int(config.get('MAX_PLAYERS', 8)),
            min_name_length=int(config.get('MIN_NAME_LENGTH', 3)),
            max_name_length=int(config.get('MAX_NAME_LENGTH', 20)),
            room_code_length=int(config.get('ROOM_CODE_LENGTH', 4)),
            shared_room_code=str(config.get('SHARED_ROOM_CODE', 'MAIN')).upper(),
            typing_max_length=int(config.get('TYPING_MAX_LENGTH', 40)),
        )


@dataclass
class Player:
    connection_id: str
    identity: Identity
    lives: int = 3
    score: int = 0
    is_ready: bool = False
    skip_used: bool = False

    @property
    def name(self) -> str:
        return self.identity.name

    @property
    def is_alive(self) -> bool:
        return self.lives > 0

    def to_dict(self) -> dict:
        return {
            'name': self.name,
            'lives': self.lives,
            'score': self.score,
            'ready': self.is_ready,
            'skip_used': self.skip_used,
            'authenticated': isinstance(self.identity, Authenticated),
        }


@dataclass
class Room:
    """
    One lobby.

    ``players`` keeps insertion order; turn rotation walks it in that order.
    ``turn_id`` changes every time the turn is handed out or taken away, so
    a handler that suspended (dictionary lookup, timer thread) can tell
    whether the turn it was working on is still the live one.
    """
    code: str
    letters: str = ''
    players: dict[str, Player] = field(default_factory=dict)
    current_turn: str | None = None
    phase: RoomPhase = RoomPhase.WAITING_FOR_PLAYERS
    turn_id: int = 0
    winner: str | None = None

    @property
    def in_progress(self) -> bool:
        return self.phase in ACTIVE_PHASES

    def alive_players(self) -> list[Player]:
        return [p for p in self.players.values() if p.is_alive]

    def find_by_name(self, name: str) -> Player | None:
        wanted = name.casefold()
        for player in self.players.values():
            if player.name.casefold() == wanted:
                return player
        return None

    def turn_holder(self) -> Player | None:
        if self.current_turn is None:
            return None
        return self.players.get(self.current_turn)

    def to_dict(self) -> dict:
        holder = self.turn_holder()
        return {
            'room_code': self.code,
            'letters': self.letters,
            'phase': self.phase.value,
            'in_progress': self.in_progress,
            'current_turn': holder.name if holder else None,
            'players': [p.to_dict() for p in self.players.values()],
            'player_count': len(self.players),
        }

    def turn_is_consistent(self) -> bool:
        """While a round runs, the turn must belong to a seated player with lives left."""
        if not self.in_progress:
            return True
        holder = self.turn_holder()
        return holder is not None and holder.is_alive
