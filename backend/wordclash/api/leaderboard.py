from flask import Blueprint, current_app, jsonify, request

from wordclash.services.leaderboard import top_players, wins_for

leaderboard = Blueprint('leaderboard', __name__)


@leaderboard.route('', methods=['GET'])
def get_leaderboard():
    default_limit = int(current_app.config.get('LEADERBOARD_LIMIT', 10))
    try:
        limit = int(request.args.get('limit', default_limit))
    except ValueError:
        return jsonify({'error': 'limit must be an integer'}), 400
    limit = max(1, min(limit, 100))
    return jsonify(top_players(limit))


@leaderboard.route('/<string:username>', methods=['GET'])
def get_player_wins(username):
    entry = wins_for(username)
    if entry is None:
        return jsonify({'error': 'Player not found'}), 404
    return jsonify(entry)
