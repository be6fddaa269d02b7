from flask import current_app, request
from flask_login import current_user
from flask_socketio import emit

from wordclash import socketio
from wordclash.services.game import (
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
from wordclash.services.game.broadcast import NAMESPACE


def _service():
    return current_app.extensions['wordclash']


def _get_sid() -> str:
    # request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _field(data, key, default=None):
    # Older clients send bare strings (e.g. the username) instead of objects
    if isinstance(data, dict):
        return data.get(key, default)
    if isinstance(data, str):
        return data
    return default


def _dispatch(command):
    _service().dispatch(command)


def handle_connect(auth=None):
    emit('connected', {'message': 'Connected to /ws', 'connection_id': _get_sid()})


def handle_disconnect(reason=None):
    _dispatch(Disconnect(_get_sid()))


def handle_claim_identity(data):
    external_user_id = current_user.id if current_user.is_authenticated else None
    _dispatch(ClaimIdentity(
        _get_sid(),
        name=_field(data, 'name') or '',
        room_code=data.get('room_code') if isinstance(data, dict) else None,
        external_user_id=external_user_id,
    ))


def handle_create_room(data=None):
    _dispatch(CreateRoom(_get_sid()))


def handle_join_room(data=None):
    _dispatch(JoinRoom(_get_sid(), room_code=_field(data, 'room_code') or ''))


def handle_leave_room(data=None):
    _dispatch(LeaveRoom(_get_sid()))


def handle_player_ready(data=None):
    _dispatch(SetReady(_get_sid(), ready=True))


def handle_player_unready(data=None):
    _dispatch(SetReady(_get_sid(), ready=False))


def handle_guess(data):
    _dispatch(SubmitGuess(_get_sid(), word=_field(data, 'word') or ''))


def handle_skip(data=None):
    _dispatch(SubmitSkip(_get_sid()))


def handle_reset_request(data=None):
    _dispatch(RequestReset(_get_sid()))


def handle_typing(data):
    _dispatch(RelayTyping(_get_sid(), text=_field(data, 'text') or ''))


def handle_clear_typing(data=None):
    _dispatch(RelayTyping(_get_sid(), text=''))


def handle_ping(data):
    emit('pong', data or {})


def register_socketio_handlers() -> None:
    """Register Socket.IO event handlers on namespace '/ws'."""
    socketio.on_event('connect', handle_connect, namespace=NAMESPACE)
    socketio.on_event('disconnect', handle_disconnect, namespace=NAMESPACE)
    socketio.on_event('claim_identity', handle_claim_identity, namespace=NAMESPACE)
    socketio.on_event('create_room', handle_create_room, namespace=NAMESPACE)
    socketio.on_event('join_room', handle_join_room, namespace=NAMESPACE)
    socketio.on_event('leave_room', handle_leave_room, namespace=NAMESPACE)
    socketio.on_event('player_ready', handle_player_ready, namespace=NAMESPACE)
    socketio.on_event('player_unready', handle_player_unready, namespace=NAMESPACE)
    socketio.on_event('guess', handle_guess, namespace=NAMESPACE)
    socketio.on_event('skip', handle_skip, namespace=NAMESPACE)
    socketio.on_event('reset_game_request', handle_reset_request, namespace=NAMESPACE)
    socketio.on_event('typing', handle_typing, namespace=NAMESPACE)
    socketio.on_event('clear_typing', handle_clear_typing, namespace=NAMESPACE)
    socketio.on_event('ping', handle_ping, namespace=NAMESPACE)
