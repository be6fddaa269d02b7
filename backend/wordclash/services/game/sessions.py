"""
Player Session Manager - maps a transport connection to a player identity.

A connection claims a display name once; the claim places it in a room (the
shared room unless a lobby code is given). Disconnect notifications are not
always delivered before the same person reconnects, so every claim or join
first evicts roster entries whose transport is no longer live.
"""

from __future__ import annotations

import logging
from typing import Callable

from .errors import (
    AlreadyIdentified,
    GameError,
    GameInProgress,
    NameTaken,
    NameTooLong,
    NameTooShort,
    NoIdentity,
    NotInRoom,
    RoomNotFound,
)
from .events import to_connection
from .registry import RoomRegistry, normalize_code
from .state import Authenticated, GameSettings, Guest, Identity, Player, Room


class SessionManager:

    def __init__(self, registry: RoomRegistry, settings: GameSettings | None = None,
                 is_live: Callable[[str], bool] | None = None, logger: logging.Logger | None = None):
        self.registry = registry
        self.settings = settings or registry.settings
        self.is_live = is_live or (lambda connection_id: True)
        self.logger = logger or logging.getLogger(__name__)
        self.identities: dict[str, Identity] = {}

    def identity_for(self, connection_id: str) -> Identity | None:
        return self.identities.get(connection_id)

    def require_identity(self, connection_id: str) -> Identity:
        identity = self.identities.get(connection_id)
        if identity is None:
            raise NoIdentity()
        return identity

    def validate_name(self, name: str | None) -> str:
        name = (name or '').strip()
        if len(name) < self.settings.min_name_length:
            raise NameTooShort(f"Username must be at least {self.settings.min_name_length} characters")
        if len(name) > self.settings.max_name_length:
            raise NameTooLong(f"Username must be at most {self.settings.max_name_length} characters")
        return name

    def claim_identity(self, connection_id: str, name: str | None, room_code: str | None = None,
                       external_user_id: int | None = None) -> tuple[Player, list]:
        with self.registry.lock:
            if connection_id in self.identities:
                raise AlreadyIdentified()
            name = self.validate_name(name)
            code = normalize_code(room_code) or self.settings.shared_room_code
            room = self.registry.get_room(code)
            if room is None and code != self.settings.shared_room_code:
                raise RoomNotFound()

            events = self.sweep_stale(room) if room is not None else []
            try:
                room = self._scope_room(code)
                if room.in_progress:
                    raise GameInProgress()
                if room.find_by_name(name) is not None:
                    raise NameTaken()
                self.registry.check_can_join(room, name)
            except GameError as exc:
                exc.prior_events = events
                raise

            if external_user_id is not None:
                identity: Identity = Authenticated(name, external_user_id)
            else:
                identity = Guest(name)
            room, player, join_events = self.registry.join_room(connection_id, room.code, identity)
            self.identities[connection_id] = identity
            events.append(to_connection(connection_id, 'identity_claimed', {
                'name': name,
                'room_code': room.code,
                'authenticated': isinstance(identity, Authenticated),
            }))
            events.extend(join_events)
            return player, events

    def move_to_room(self, connection_id: str, room_code: str | None = None) -> tuple[Room, list]:
        """Move an identified connection into ``room_code``, or into a new room when None."""
        with self.registry.lock:
            identity = self.require_identity(connection_id)
            current = self.registry.room_for(connection_id)
            events: list = []
            if room_code is None:
                events.extend(self.registry.leave_room(connection_id))
                room = self.registry.create_room()
                events.append(to_connection(connection_id, 'room_created', {'room_code': room.code}))
            else:
                room = self.registry.get_room(room_code)
                if room is None:
                    raise RoomNotFound()
                if room is current:
                    return room, [to_connection(connection_id, 'room_joined', {
                        'room_code': room.code, 'name': identity.name,
                    })]
                events.extend(self.sweep_stale(room))
                try:
                    room = self.registry.get_room(room_code)
                    if room is None:
                        raise RoomNotFound()
                    self.registry.check_can_join(room, identity.name)
                except GameError as exc:
                    exc.prior_events = events
                    raise
                events.extend(self.registry.leave_room(connection_id))
            room, _, join_events = self.registry.join_room(connection_id, room.code, identity)
            events.extend(join_events)
            return room, events

    def leave(self, connection_id: str) -> list:
        """Explicit leave: drop the room seat and the claimed name."""
        with self.registry.lock:
            if self.registry.room_for(connection_id) is None:
                raise NotInRoom()
            return self.disconnect(connection_id)

    def disconnect(self, connection_id: str) -> list:
        with self.registry.lock:
            events = self.registry.leave_room(connection_id)
            identity = self.identities.pop(connection_id, None)
            if identity is not None:
                self.logger.info(f"[session-end] sid={connection_id} name={identity.name}")
            return events

    def sweep_stale(self, room: Room | None, name: str | None = None) -> list:
        """Evict roster entries of ``room`` whose connection is gone.

        With ``name`` only entries bearing that name are considered.
        """
        if room is None:
            return []
        events: list = []
        with self.registry.lock:
            for connection_id, player in list(room.players.items()):
                if name is not None and player.name.casefold() != name.casefold():
                    continue
                if self.is_live(connection_id):
                    continue
                self.logger.warning(f"[stale-evict] room={room.code} player={player.name} sid={connection_id}")
                events.extend(self.disconnect(connection_id))
        return events

    def _scope_room(self, code: str) -> Room:
        room = self.registry.get_room(code)
        if room is not None:
            return room
        if code == self.settings.shared_room_code:
            return self.registry.shared_room()
        raise RoomNotFound()
