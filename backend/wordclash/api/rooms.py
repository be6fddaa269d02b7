from flask import Blueprint, current_app, jsonify

rooms = Blueprint('rooms', __name__)


def _service():
    return current_app.extensions['wordclash']


@rooms.route('', methods=['GET'])
def list_rooms():
    return jsonify(_service().list_rooms())


@rooms.route('/<string:room_code>/state', methods=['GET'])
def get_room_state(room_code):
    snapshot = _service().room_snapshot(room_code)
    if snapshot is None:
        return jsonify({'error': 'Room not found'}), 404
    # Include the turn length so clients can show countdowns
    snapshot['turn_duration'] = int(current_app.config.get('TURN_DURATION_SEC', 10))
    return jsonify(snapshot)
