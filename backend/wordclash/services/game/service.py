"""
GameService - the single entry point for inbound commands.

``dispatch(command)`` routes a typed command to the session manager,
registry or turn engine, converts a rejection into a notice for the
originating connection, publishes the resulting events and returns them.
"""

from __future__ import annotations

import logging
import random
from typing import Callable

from .commands import (
    ClaimIdentity,
    Command,
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
from .errors import GameError, NotInRoom
from .events import to_connection, to_room
from .registry import RoomRegistry
from .sessions import SessionManager
from .state import GameSettings
from .timer import TurnTimer


class NullBroadcaster:
    def publish(self, events) -> None:
        pass


class GameService:

    def __init__(self, validator: Callable[[str], bool], timer: TurnTimer | None = None,
                 settings: GameSettings | None = None, broadcaster=None,
                 is_live: Callable[[str], bool] | None = None,
                 on_win: Callable | None = None, rng: random.Random | None = None,
                 logger: logging.Logger | None = None):
        self.settings = settings or GameSettings()
        self.logger = logger or logging.getLogger(__name__)
        self.broadcaster = broadcaster or NullBroadcaster()
        rng = rng or random.Random()
        self.registry = RoomRegistry(self.settings, rng=rng, logger=self.logger)
        self.sessions = SessionManager(self.registry, self.settings, is_live=is_live, logger=self.logger)
        self.timer = timer or TurnTimer(logger=self.logger)
        self.engine = TurnEngine(
            self.registry,
            self.timer,
            validator,
            settings=self.settings,
            rng=rng,
            publish=self.broadcaster.publish,
            on_win=on_win,
            logger=self.logger,
        )
        self._handlers = {
            ClaimIdentity: self._claim_identity,
            CreateRoom: self._create_room,
            JoinRoom: self._join_room,
            LeaveRoom: self._leave_room,
            SetReady: self._set_ready,
            SubmitGuess: self._submit_guess,
            SubmitSkip: self._submit_skip,
            RequestReset: self._request_reset,
            RelayTyping: self._relay_typing,
            Disconnect: self._disconnect,
        }

    def dispatch(self, command: Command) -> list:
        handler = self._handlers.get(type(command))
        if handler is None:
            raise TypeError(f"Unsupported command {type(command).__name__}")
        try:
            events = handler(command)
        except GameError as exc:
            self.logger.info(
                f"[blocked] {type(command).__name__} sid={command.connection_id} code={exc.code}"
            )
            events = list(exc.prior_events)
            events.append(to_connection(command.connection_id, exc.event, exc.to_dict()))
        self.broadcaster.publish(events)
        return events

    # ---- handlers ----

    def _claim_identity(self, command: ClaimIdentity) -> list:
        _, events = self.sessions.claim_identity(
            command.connection_id,
            command.name,
            room_code=command.room_code,
            external_user_id=command.external_user_id,
        )
        return events

    def _create_room(self, command: CreateRoom) -> list:
        _, events = self.sessions.move_to_room(command.connection_id, None)
        return events

    def _join_room(self, command: JoinRoom) -> list:
        _, events = self.sessions.move_to_room(command.connection_id, command.room_code)
        return events

    def _leave_room(self, command: LeaveRoom) -> list:
        return self.sessions.leave(command.connection_id)

    def _disconnect(self, command: Disconnect) -> list:
        return self.sessions.disconnect(command.connection_id)

    def _set_ready(self, command: SetReady) -> list:
        return self.engine.set_ready(command.connection_id, command.ready)

    def _submit_guess(self, command: SubmitGuess) -> list:
        return self.engine.submit_guess(command.connection_id, command.word)

    def _submit_skip(self, command: SubmitSkip) -> list:
        return self.engine.submit_skip(command.connection_id)

    def _request_reset(self, command: RequestReset) -> list:
        return self.engine.request_reset(command.connection_id)

    def _relay_typing(self, command: RelayTyping) -> list:
        with self.registry.lock:
            room = self.registry.room_for(command.connection_id)
            player = room.players.get(command.connection_id) if room else None
            if player is None:
                raise NotInRoom()
            text = (command.text or '').strip()[:self.settings.typing_max_length]
            if not text:
                return [to_room(room, 'typing_cleared')]
            return [to_room(room, 'player_typing', {'name': player.name, 'text': text})]

    # ---- inspection ----

    def room_snapshot(self, code: str) -> dict | None:
        with self.registry.lock:
            room = self.registry.get_room(code)
            return room.to_dict() if room else None

    def list_rooms(self) -> list[dict]:
        with self.registry.lock:
            return [
                {
                    'room_code': room.code,
                    'player_count': len(room.players),
                    'phase': room.phase.value,
                    'in_progress': room.in_progress,
                }
                for room in self.registry.list_rooms()
            ]

    def shutdown(self) -> None:
        self.timer.cancel_all()
        close = getattr(self.engine.validator, 'shutdown', None)
        if close is not None:
            close()
