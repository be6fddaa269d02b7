"""
Room Registry - owns every lobby and the connection -> room lookup.

Storage is injectable (``rooms``) so each test, or each app instance, gets
an isolated registry. All mutations of rooms and players happen under
``lock``; the guess handler is the only code path that releases it in the
middle of an operation (around the dictionary lookup).
"""

from __future__ import annotations

import logging
import random
import string
import threading
from typing import Callable

from .errors import DuplicateNameInRoom, RoomFull, RoomInProgress, RoomNotFound
from .events import Membership, game_update, roster_update, to_connection
from .letters import generate_letters
from .state import GameSettings, Identity, Player, Room

CODE_ALPHABET = string.ascii_uppercase + string.digits

DepartureHandler = Callable[[Room, Player, list], list]


def normalize_code(code: str | None) -> str:
    return (code or '').strip().upper()


class RoomRegistry:

    def __init__(self, settings: GameSettings | None = None, rooms: dict[str, Room] | None = None,
                 rng: random.Random | None = None, logger: logging.Logger | None = None):
        self.settings = settings or GameSettings()
        self.rooms: dict[str, Room] = rooms if rooms is not None else {}
        self.memberships: dict[str, str] = {}
        self.rng = rng or random.Random()
        self.logger = logger or logging.getLogger(__name__)
        self.lock = threading.RLock()
        # Wired by the TurnEngine: a departing player may hold the turn, and
        # an emptied room may still have a countdown running.
        self.departure_handler: DepartureHandler | None = None
        self.close_handler: Callable[[Room], None] | None = None

    def generate_room_code(self) -> str:
        """Generate a unique, short room code."""
        length = self.settings.room_code_length
        while True:
            code = ''.join(self.rng.choices(CODE_ALPHABET, k=length))
            if code not in self.rooms and code != self.settings.shared_room_code:
                return code

    def create_room(self, code: str | None = None) -> Room:
        with self.lock:
            code = normalize_code(code) or self.generate_room_code()
            room = Room(code=code, letters=generate_letters(self.rng))
            self.rooms[code] = room
            self.logger.info(f"[room-created] room={code}")
            return room

    def get_room(self, code: str | None) -> Room | None:
        return self.rooms.get(normalize_code(code))

    def shared_room(self) -> Room:
        with self.lock:
            room = self.get_room(self.settings.shared_room_code)
            if room is None:
                room = self.create_room(self.settings.shared_room_code)
            return room

    def room_for(self, connection_id: str) -> Room | None:
        code = self.memberships.get(connection_id)
        return self.rooms.get(code) if code else None

    def player_for(self, connection_id: str) -> Player | None:
        room = self.room_for(connection_id)
        return room.players.get(connection_id) if room else None

    def check_can_join(self, room: Room, name: str) -> None:
        if room.in_progress:
            raise RoomInProgress()
        if len(room.players) >= self.settings.max_players:
            raise RoomFull()
        if room.find_by_name(name) is not None:
            raise DuplicateNameInRoom()

    def join_room(self, connection_id: str, code: str, identity: Identity) -> tuple[Room, Player, list]:
        """Place ``connection_id`` in room ``code``.

        Raises RoomNotFound, RoomInProgress, RoomFull or DuplicateNameInRoom.
        The caller moves the connection out of any previous room first.
        """
        with self.lock:
            room = self.get_room(code)
            if room is None:
                raise RoomNotFound()
            self.check_can_join(room, identity.name)
            player = Player(connection_id, identity, lives=self.settings.starting_lives)
            room.players[connection_id] = player
            self.memberships[connection_id] = room.code
            self.logger.info(f"[room-join] room={room.code} player={player.name} sid={connection_id}")
            events = [
                Membership(connection_id, room.code, joined=True),
                to_connection(connection_id, 'room_joined', {'room_code': room.code, 'name': player.name}),
                roster_update(room),
                game_update(room),
            ]
            return room, player, events

    def leave_room(self, connection_id: str) -> list:
        """Remove the connection from its room; no-op when it is in none."""
        with self.lock:
            code = self.memberships.pop(connection_id, None)
            if code is None:
                return []
            events = [
                Membership(connection_id, code, joined=False),
                to_connection(connection_id, 'room_left', {'room_code': code}),
            ]
            room = self.rooms.get(code)
            if room is None:
                self.logger.warning(f"[room-leave] sid={connection_id} mapped to missing room={code}")
                return events
            roster_before = list(room.players)
            player = room.players.pop(connection_id, None)
            if player is None:
                self.logger.warning(f"[room-leave] sid={connection_id} not in roster of room={code}")
                return events
            self.logger.info(f"[room-leave] room={code} player={player.name} sid={connection_id}")

            if not room.players:
                self.close_room(room)
                return events

            events.append(roster_update(room))
            if self.departure_handler is not None:
                events.extend(self.departure_handler(room, player, roster_before))
            return events

    def close_room(self, room: Room) -> None:
        with self.lock:
            if self.close_handler is not None:
                self.close_handler(room)
            for connection_id in list(room.players):
                self.memberships.pop(connection_id, None)
            room.players.clear()
            self.rooms.pop(room.code, None)
            self.logger.info(f"[room-closed] room={room.code}")

    def list_rooms(self) -> list[Room]:
        with self.lock:
            return list(self.rooms.values())
