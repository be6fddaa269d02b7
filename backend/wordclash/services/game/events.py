"""Outbound notifications and the payload builders shared by the services."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .state import Player, Room


@dataclass(frozen=True)
class Event:
    """A message for one connection (``connection_id``) or a whole room (``room``)."""
    name: str
    payload: Any = None
    room: str | None = None
    connection_id: str | None = None


@dataclass(frozen=True)
class Membership:
    """Add a connection to (or drop it from) a room's broadcast channel."""
    connection_id: str
    room_code: str
    joined: bool = True


def to_room(room: Room, name: str, payload: Any = None) -> Event:
    return Event(name, payload, room=room.code)


def to_connection(connection_id: str, name: str, payload: Any = None) -> Event:
    return Event(name, payload, connection_id=connection_id)


def roster_payload(room: Room) -> list[dict]:
    return [{'name': p.name, 'ready': p.is_ready} for p in room.players.values()]


def game_payload(room: Room) -> dict:
    return {
        'room_code': room.code,
        'letters': room.letters,
        'scores': {p.name: p.score for p in room.players.values()},
        'lives': {p.name: p.lives for p in room.players.values()},
        'in_progress': room.in_progress,
        'phase': room.phase.value,
    }


def turn_payload(room: Room, player: Player | None, duration: int = 0) -> dict:
    return {
        'room_code': room.code,
        'name': player.name if player else None,
        'duration': duration,
    }


def roster_update(room: Room) -> Event:
    return to_room(room, 'player_status_update', roster_payload(room))


def game_update(room: Room) -> Event:
    return to_room(room, 'game_update', game_payload(room))
