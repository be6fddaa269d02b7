import itertools
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional


@dataclass(frozen=True)
class TimerHandle:
    room_code: str
    connection_id: str
    duration: int
    token: int = 0
    serial: int = field(default=0, compare=False)


class TurnTimer:
    """One countdown per room.

    - ``start`` replaces (cancels) whatever countdown the room already had
    - the worker ticks once per second through ``on_tick(handle, remaining)``,
      starting one second in (the turn announcement carries the full duration)
    - at zero it drops its own handle and calls ``on_expire(handle)`` once
    - a worker whose handle is no longer current exits without firing

    ``spawn``/``sleep`` default to plain threads; the app passes
    ``socketio.start_background_task``/``socketio.sleep``. With
    ``enabled=False`` handles are tracked but no worker is launched.
    """

    def __init__(self, spawn: Optional[Callable] = None, sleep: Optional[Callable] = None,
                 enabled: bool = True, heartbeat: int = 0, logger: Optional[logging.Logger] = None):
        self.on_tick: Optional[Callable[[TimerHandle, int], None]] = None
        self.on_expire: Optional[Callable[[TimerHandle], None]] = None
        self._spawn = spawn or _spawn_thread
        self._sleep = sleep or time.sleep
        self.enabled = enabled
        self.heartbeat = heartbeat
        self.logger = logger or logging.getLogger(__name__)
        self._handles: Dict[str, TimerHandle] = {}
        self._serials = itertools.count(1)
        self._lock = threading.Lock()

    def start(self, room_code: str, connection_id: str, duration: int, token: int = 0) -> TimerHandle:
        handle = TimerHandle(room_code, connection_id, int(duration), token, next(self._serials))
        with self._lock:
            previous = self._handles.get(room_code)
            self._handles[room_code] = handle
        if previous is not None:
            self.logger.info(
                f"[timer-replace] room={room_code} previous={previous.connection_id} serial={previous.serial}"
            )
        self.logger.info(
            f"[timer-set] room={room_code} player={connection_id} duration={handle.duration}s serial={handle.serial}"
        )
        if self.enabled:
            self._spawn(self._run, handle)
        return handle

    def cancel(self, room_code: str) -> bool:
        with self._lock:
            handle = self._handles.pop(room_code, None)
        if handle is not None:
            self.logger.info(f"[timer-cancel] room={room_code} player={handle.connection_id} serial={handle.serial}")
        return handle is not None

    def cancel_all(self) -> None:
        with self._lock:
            codes = list(self._handles)
        for code in codes:
            self.cancel(code)

    def is_current(self, handle: TimerHandle) -> bool:
        with self._lock:
            return self._handles.get(handle.room_code) is handle

    def active(self, room_code: str) -> Optional[TimerHandle]:
        with self._lock:
            return self._handles.get(room_code)

    @property
    def active_count(self) -> int:
        with self._lock:
            return len(self._handles)

    def _run(self, handle: TimerHandle) -> None:
        if not self.is_current(handle):
            return
        remaining = handle.duration
        while remaining > 0:
            self._sleep(1)
            if not self.is_current(handle):
                return
            remaining -= 1
            if self.heartbeat and remaining and remaining % self.heartbeat == 0:
                self.logger.info(
                    f"[timer-heartbeat] room={handle.room_code} player={handle.connection_id} remaining={remaining}s"
                )
            if remaining:
                self._notify_tick(handle, remaining)

        with self._lock:
            if self._handles.get(handle.room_code) is not handle:
                return
            del self._handles[handle.room_code]
        self.logger.info(f"[timer-fire] room={handle.room_code} player={handle.connection_id} serial={handle.serial}")
        if self.on_expire is not None:
            self.on_expire(handle)

    def _notify_tick(self, handle: TimerHandle, remaining: int) -> None:
        if self.on_tick is not None:
            self.on_tick(handle, remaining)


def _spawn_thread(target, *args):
    thread = threading.Thread(target=target, args=args, daemon=True)
    thread.start()
    return thread
