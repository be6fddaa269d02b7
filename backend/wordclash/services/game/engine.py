"""
Turn Engine - the per-room state machine.

    WAITING_FOR_PLAYERS -> ALL_READY -> IN_PROGRESS <-> ROUND_RESOLVING
        -> PLAYER_WON | ALL_ELIMINATED -> (reset) -> WAITING_FOR_PLAYERS

The engine is the only component that starts or cancels turn timers.
Every handler runs under the registry lock. Submitting a guess is the one
operation that releases the lock mid-way (around the dictionary lookup);
before releasing it the timer is cancelled and the room is moved to
ROUND_RESOLVING, and after reacquiring it the result is applied only if the
room still exists and ``turn_id`` is unchanged. Timer callbacks are gated
the same way, so a guess, a timeout and a departure can never all advance
the same turn.

Win condition: last player standing (lives). Score is informational.
"""

from __future__ import annotations

import logging
import random
from typing import Callable

from .errors import (
    EmptyGuess,
    GameInProgress,
    GameNotInProgress,
    GuessPending,
    NoLivesRemaining,
    NotInRoom,
    NotYourTurn,
    ResetRequired,
    SkipAlreadyUsed,
)
from .events import Event, game_update, roster_update, to_connection, to_room, turn_payload
from .letters import contains_letters, generate_letters
from .registry import RoomRegistry
from .state import TERMINAL_PHASES, Authenticated, GameSettings, Player, Room, RoomPhase
from .timer import TimerHandle, TurnTimer
from .validator import WordValidator


class TurnEngine:

    def __init__(self, registry: RoomRegistry, timer: TurnTimer, validator: Callable[[str], bool],
                 settings: GameSettings | None = None, rng: random.Random | None = None,
                 publish: Callable[[list], None] | None = None,
                 on_win: Callable[[Player], None] | None = None,
                 logger: logging.Logger | None = None):
        self.registry = registry
        self.timer = timer
        self.validator = validator
        self.settings = settings or registry.settings
        self.rng = rng or random.Random()
        self.publish = publish or (lambda events: None)
        self.on_win = on_win
        self.logger = logger or logging.getLogger(__name__)

        timer.on_tick = self._on_tick
        timer.on_expire = self._on_expire
        registry.departure_handler = self.handle_departure
        registry.close_handler = self.close_room

    # ---- readiness ----

    def set_ready(self, connection_id: str, ready: bool = True) -> list:
        with self.registry.lock:
            room, player = self._seat(connection_id)
            if room.in_progress:
                raise GameInProgress()
            if room.phase in TERMINAL_PHASES:
                raise ResetRequired()
            player.is_ready = bool(ready)
            self.logger.info(f"[ready] room={room.code} player={player.name} ready={player.is_ready}")
            events = [roster_update(room)]
            events.extend(self._maybe_start(room))
            return events

    def _maybe_start(self, room: Room) -> list:
        if len(room.players) < self.settings.min_players:
            return []
        if not all(p.is_ready for p in room.players.values()):
            return []
        room.phase = RoomPhase.ALL_READY
        return self._start_round(room)

    def _start_round(self, room: Room) -> list:
        room.letters = generate_letters(self.rng)
        room.winner = None
        for player in room.players.values():
            player.is_ready = False
            player.lives = self.settings.starting_lives
            player.score = 0
            player.skip_used = False
        first = self.rng.choice(list(room.players))
        self.logger.info(
            f"[round-start] room={room.code} players={len(room.players)} letters={room.letters}"
        )
        turn = self._begin_turn(room, first)
        return [roster_update(room), game_update(room), turn]

    # ---- turn actions ----

    def submit_guess(self, connection_id: str, word: str) -> list:
        word = (word or '').strip()
        with self.registry.lock:
            if not word:
                raise EmptyGuess()
            room, player = self._seat(connection_id)
            self._check_turn(room, player)
            # Cancel first: the countdown must not fire while this guess is out.
            self.timer.cancel(room.code)
            room.phase = RoomPhase.ROUND_RESOLVING
            token = room.turn_id
            letters = room.letters
            events = [to_room(room, 'typing_cleared')]

        is_word = self._lookup(word)

        with self.registry.lock:
            if not self._still_resolving(room, connection_id, token):
                self.logger.warning(
                    f"[guess-discard] room={room.code} sid={connection_id} word={word!r} turn={token}"
                )
                return events
            if is_word and contains_letters(word, letters):
                player.score += 1
                room.letters = generate_letters(self.rng)
                self.logger.info(f"[guess] room={room.code} player={player.name} word={word!r} correct=True")
                events.append(to_room(room, 'guess_result', {
                    'name': player.name, 'word': word, 'correct': True,
                }))
            else:
                reason = 'missing_letters' if is_word else 'not_a_word'
                self.logger.info(
                    f"[guess] room={room.code} player={player.name} word={word!r} correct=False reason={reason}"
                )
                events.append(to_room(room, 'guess_result', {
                    'name': player.name, 'word': word, 'correct': False, 'reason': reason,
                }))
                if reason == 'not_a_word':
                    message = f"'{word}' is not in the dictionary"
                else:
                    message = f"'{word}' must contain both {letters[0]} and {letters[1]}"
                events.append(to_connection(connection_id, 'invalid_word', message))
                events.extend(self._lose_life(room, player))
            events.extend(self._advance(room, connection_id))
            self._audit(room)
            return events

    def submit_skip(self, connection_id: str) -> list:
        with self.registry.lock:
            room, player = self._seat(connection_id)
            self._check_turn(room, player)
            if player.skip_used:
                raise SkipAlreadyUsed()
            self.timer.cancel(room.code)
            player.skip_used = True
            room.letters = generate_letters(self.rng)
            self.logger.info(f"[skip] room={room.code} player={player.name} letters={room.letters}")
            events = [
                to_room(room, 'turn_skipped', {'name': player.name}),
                to_room(room, 'typing_cleared'),
            ]
            events.extend(self._advance(room, connection_id))
            self._audit(room)
            return events

    def request_reset(self, connection_id: str) -> list:
        with self.registry.lock:
            room, _ = self._seat(connection_id)
            if room.in_progress:
                raise GameInProgress()
            if room.phase in TERMINAL_PHASES:
                return self._reset(room)
            return [to_connection(connection_id, 'game_reset', {'room_code': room.code})]

    # ---- timer callbacks ----

    def handle_timeout(self, handle: TimerHandle) -> list:
        """Expiry counts as a wrong answer for the turn holder, minus the lookup."""
        with self.registry.lock:
            room = self._live_turn(handle)
            if room is None:
                self.logger.info(
                    f"[timer-abort] room={handle.room_code} sid={handle.connection_id} turn={handle.token} stale"
                )
                return []
            player = room.players[handle.connection_id]
            self.logger.info(f"[timeout] room={room.code} player={player.name}")
            events = [
                to_room(room, 'turn_expired', {'name': player.name}),
                to_room(room, 'typing_cleared'),
            ]
            events.extend(self._lose_life(room, player))
            events.extend(self._advance(room, player.connection_id))
            self._audit(room)
            return events

    def _on_expire(self, handle: TimerHandle) -> None:
        events = self.handle_timeout(handle)
        if events:
            self.publish(events)

    def _on_tick(self, handle: TimerHandle, remaining: int) -> None:
        with self.registry.lock:
            room = self._live_turn(handle)
            if room is None:
                return
            holder = room.players[handle.connection_id]
            event = to_room(room, 'countdown', {'name': holder.name, 'remaining': remaining})
        self.publish([event])

    # ---- roster changes ----

    def handle_departure(self, room: Room, player: Player, roster_before: list) -> list:
        """Called by the registry after ``player`` left a non-empty ``room``."""
        if not room.in_progress:
            return [game_update(room)]
        held_turn = room.current_turn == player.connection_id
        if held_turn:
            self.timer.cancel(room.code)
            room.current_turn = None
            room.turn_id += 1
            self.logger.info(f"[turn-holder-left] room={room.code} player={player.name}")
        if held_turn or len(room.alive_players()) <= 1:
            events = self._advance(room, player.connection_id, roster_before)
        else:
            events = [game_update(room)]
        self._audit(room)
        return events

    def close_room(self, room: Room) -> None:
        self.timer.cancel(room.code)
        room.current_turn = None
        room.turn_id += 1

    # ---- transitions ----

    def _begin_turn(self, room: Room, connection_id: str) -> Event:
        player = room.players[connection_id]
        room.current_turn = connection_id
        room.turn_id += 1
        room.phase = RoomPhase.IN_PROGRESS
        self.timer.start(room.code, connection_id, self.settings.turn_duration, token=room.turn_id)
        self.logger.info(f"[turn] room={room.code} player={player.name} turn={room.turn_id}")
        return to_room(room, 'turn_update', turn_payload(room, player, self.settings.turn_duration))

    def _advance(self, room: Room, after: str, roster: list | None = None) -> list:
        alive = room.alive_players()
        if len(alive) == 1:
            return self._declare_winner(room, alive[0])
        if not alive:
            return self._all_eliminated(room)
        next_id = self._next_turn(room, after, roster)
        turn = self._begin_turn(room, next_id)
        return [game_update(room), turn]

    def _next_turn(self, room: Room, after: str, roster: list | None = None) -> str:
        """The first living player after ``after`` in roster order, wrapping."""
        order = roster if roster is not None else list(room.players)
        start = order.index(after) if after in order else -1
        for step in range(1, len(order) + 1):
            candidate = room.players.get(order[(start + step) % len(order)])
            if candidate is not None and candidate.is_alive:
                return candidate.connection_id
        return room.alive_players()[0].connection_id

    def _lose_life(self, room: Room, player: Player) -> list:
        player.lives = max(0, player.lives - 1)
        if player.lives:
            return []
        self.logger.info(f"[eliminated] room={room.code} player={player.name}")
        return [to_connection(player.connection_id, 'game_over', {'reason': 'eliminated'})]

    def _declare_winner(self, room: Room, winner: Player) -> list:
        self.timer.cancel(room.code)
        room.phase = RoomPhase.PLAYER_WON
        room.current_turn = None
        room.winner = winner.connection_id
        room.turn_id += 1
        self.logger.info(f"[winner] room={room.code} player={winner.name} score={winner.score}")
        events = [
            game_update(room),
            to_room(room, 'game_won', {'name': winner.name, 'score': winner.score}),
        ]
        self._record_win(winner)
        events.extend(self._reset(room))
        return events

    def _all_eliminated(self, room: Room) -> list:
        self.timer.cancel(room.code)
        room.phase = RoomPhase.ALL_ELIMINATED
        room.current_turn = None
        room.turn_id += 1
        self.logger.info(f"[all-eliminated] room={room.code}")
        return [game_update(room), to_room(room, 'game_over', {'reason': 'all_eliminated'})]

    def _reset(self, room: Room) -> list:
        self.timer.cancel(room.code)
        for player in room.players.values():
            player.lives = self.settings.starting_lives
            player.score = 0
            player.is_ready = False
            player.skip_used = False
        room.letters = generate_letters(self.rng)
        room.current_turn = None
        room.winner = None
        room.turn_id += 1
        room.phase = RoomPhase.WAITING_FOR_PLAYERS
        self.logger.info(f"[reset] room={room.code}")
        return [
            to_room(room, 'game_reset', {'room_code': room.code}),
            roster_update(room),
            game_update(room),
        ]

    def _record_win(self, winner: Player) -> None:
        if self.on_win is None or not isinstance(winner.identity, Authenticated):
            return
        try:
            self.on_win(winner)
        except Exception:
            self.logger.exception(f"[leaderboard] could not record win for {winner.name}")

    # ---- guards ----

    def _seat(self, connection_id: str) -> tuple[Room, Player]:
        room = self.registry.room_for(connection_id)
        if room is None:
            raise NotInRoom()
        player = room.players.get(connection_id)
        if player is None:
            self.logger.warning(f"[seat-missing] room={room.code} sid={connection_id}")
            raise NotInRoom()
        return room, player

    def _check_turn(self, room: Room, player: Player) -> None:
        if room.phase is RoomPhase.ROUND_RESOLVING:
            if room.current_turn == player.connection_id:
                raise GuessPending()
            raise NotYourTurn()
        if not room.in_progress:
            raise GameNotInProgress()
        if room.current_turn != player.connection_id:
            raise NotYourTurn()
        if not player.is_alive:
            raise NoLivesRemaining()

    def _still_resolving(self, room: Room, connection_id: str, token: int) -> bool:
        return (
            self.registry.get_room(room.code) is room
            and room.phase is RoomPhase.ROUND_RESOLVING
            and room.turn_id == token
            and room.current_turn == connection_id
            and connection_id in room.players
        )

    def _live_turn(self, handle: TimerHandle) -> Room | None:
        room = self.registry.get_room(handle.room_code)
        if (
            room is None
            or room.phase is not RoomPhase.IN_PROGRESS
            or room.turn_id != handle.token
            or room.current_turn != handle.connection_id
            or handle.connection_id not in room.players
        ):
            return None
        return room

    def _lookup(self, word: str) -> bool:
        try:
            return bool(self.validator(word))
        except Exception:
            self.logger.exception(f"[dictionary-fallback] lookup raised for {word!r}")
            return WordValidator.fallback(word)

    def _audit(self, room: Room) -> None:
        if not room.turn_is_consistent():
            self.logger.warning(
                f"[invariant] room={room.code} phase={room.phase.value} turn={room.current_turn} inconsistent"
            )
