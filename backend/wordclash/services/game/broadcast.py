import logging

from .events import Event, Membership

NAMESPACE = '/ws'


def room_channel(room_code: str) -> str:
    return f"room:{room_code}"


class SocketBroadcaster:
    """Delivers engine events over Flask-SocketIO.

    Safe to call from background tasks: it only uses ``socketio.emit`` and
    the underlying server's room bookkeeping, neither of which needs a
    request context.
    """

    def __init__(self, socketio, namespace: str = NAMESPACE, logger=None):
        self.socketio = socketio
        self.namespace = namespace
        self.logger = logger or logging.getLogger(__name__)

    def publish(self, events) -> None:
        for event in events:
            if isinstance(event, Membership):
                self._apply_membership(event)
            elif isinstance(event, Event):
                self._emit(event)
            else:
                self.logger.warning(f"[broadcast] dropping unknown item {event!r}")

    def _emit(self, event: Event) -> None:
        if event.connection_id is not None:
            target = event.connection_id
        elif event.room is not None:
            target = room_channel(event.room)
        else:
            self.logger.warning(f"[broadcast] event {event.name} has no target")
            return
        self.socketio.emit(event.name, event.payload, to=target, namespace=self.namespace)

    def _apply_membership(self, membership: Membership) -> None:
        server = self.socketio.server
        channel = room_channel(membership.room_code)
        if membership.joined:
            server.enter_room(membership.connection_id, channel, namespace=self.namespace)
        else:
            server.leave_room(membership.connection_id, channel, namespace=self.namespace)
