from datetime import datetime, timedelta, timezone

from wordclash import db
from wordclash.models import User


def _make_user(username, wins=0, last_win_at=None):
    user = User(username=username, wins=wins, last_win_at=last_win_at)
    user.set_password('secret123')
    db.session.add(user)
    db.session.commit()
    return user


def test_index(client):
    res = client.get('/')
    assert res.status_code == 200
    assert 'message' in res.get_json()


def test_register_login_and_logout(client):
    res = client.post('/register', json={'username': 'alice', 'password': 'secret123'})
    assert res.status_code == 201
    assert res.get_json()['user']['username'] == 'alice'

    res = client.get('/check_login')
    assert res.status_code == 200
    assert res.get_json()['user']['wins'] == 0

    assert client.post('/logout').status_code == 200
    assert client.get('/check_login').status_code == 401

    res = client.post('/login', json={'username': 'alice', 'password': 'secret123'})
    assert res.status_code == 200
    assert res.get_json()['success'] is True


def test_register_rejects_duplicates_and_missing_fields(client):
    assert client.post('/register', json={'username': 'alice'}).status_code == 400
    client.post('/register', json={'username': 'alice', 'password': 'secret123'})
    res = client.post('/register', json={'username': 'alice', 'password': 'other'})
    assert res.status_code == 400
    assert res.get_json()['success'] is False


def test_login_with_wrong_password(client):
    _make_user('alice')
    res = client.post('/login', json={'username': 'alice', 'password': 'nope'})
    assert res.status_code == 401


def test_leaderboard_orders_by_wins_then_earliest(client):
    now = datetime.now(timezone.utc)
    _make_user('carol', wins=2, last_win_at=now)
    _make_user('bob', wins=2, last_win_at=now - timedelta(hours=1))
    _make_user('alice', wins=5, last_win_at=now)
    _make_user('dave')

    board = client.get('/api/leaderboard').get_json()
    assert [row['username'] for row in board] == ['alice', 'bob', 'carol']

    limited = client.get('/api/leaderboard?limit=1').get_json()
    assert [row['username'] for row in limited] == ['alice']


def test_leaderboard_rejects_bad_limit(client):
    assert client.get('/api/leaderboard?limit=lots').status_code == 400


def test_player_wins_lookup(client):
    _make_user('alice', wins=3)
    res = client.get('/api/leaderboard/alice')
    assert res.status_code == 200
    assert res.get_json()['wins'] == 3
    assert client.get('/api/leaderboard/nobody').status_code == 404


def test_room_state(flask_app, client):
    assert client.get('/api/rooms/MAIN/state').status_code == 404

    flask_app.extensions['wordclash'].sessions.claim_identity('sid-1', 'Alice')

    res = client.get('/api/rooms/main/state')
    assert res.status_code == 200
    state = res.get_json()
    assert state['room_code'] == 'MAIN'
    assert state['phase'] == 'waiting_for_players'
    assert state['turn_duration'] == 10
    assert [p['name'] for p in state['players']] == ['Alice']


def test_list_rooms(flask_app, client):
    assert client.get('/api/rooms').get_json() == []
    flask_app.extensions['wordclash'].sessions.claim_identity('sid-1', 'Alice')

    rooms = client.get('/api/rooms').get_json()
    assert rooms == [{'room_code': 'MAIN', 'player_count': 1, 'phase': 'waiting_for_players', 'in_progress': False}]
