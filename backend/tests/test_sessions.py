from wordclash.services.game.events import Event
from wordclash.services.game import Authenticated, ClaimIdentity, Disconnect, Guest, LeaveRoom, SetReady


def _blocked(events, sid):
    return [e for e in events if isinstance(e, Event) and e.connection_id == sid and e.name in ('username_error', 'action_blocked')]


def test_claim_places_player_in_shared_room(service, seat):
    (alice,) = seat('Alice')

    room = service.registry.room_for(alice)
    assert room.code == 'MAIN'
    player = room.players[alice]
    assert player.lives == 3
    assert player.score == 0
    assert player.is_ready is False
    assert player.identity == Guest('Alice')


def test_name_length_is_enforced(service, live):
    live.update({'sid-1', 'sid-2'})

    short = service.dispatch(ClaimIdentity('sid-1', name='Al'))
    long = service.dispatch(ClaimIdentity('sid-2', name='x' * 21))

    assert [e.payload['code'] for e in short] == ['NameTooShort']
    assert [e.payload['code'] for e in long] == ['NameTooLong']
    assert all(e.name == 'username_error' for e in short + long)
    assert service.registry.rooms == {}
    assert service.sessions.identities == {}


def test_name_is_trimmed_before_length_check(service, live):
    live.add('sid-1')
    service.dispatch(ClaimIdentity('sid-1', name='  Bob  '))
    assert service.registry.player_for('sid-1').name == 'Bob'


def test_live_duplicate_name_is_rejected_to_originator_only(service, seat, live):
    seat('Alice')
    live.add('sid-other')

    events = service.dispatch(ClaimIdentity('sid-other', name='alice'))

    assert [(e.name, e.connection_id, e.payload['code']) for e in events] == [
        ('username_error', 'sid-other', 'NameTaken'),
    ]
    assert service.registry.room_for('sid-other') is None


def test_stale_holder_of_a_name_is_evicted_on_rejoin(service, seat, live):
    (old_alice, bob) = seat('Alice', 'Bob')
    # Transport closed without a disconnect notification
    live.discard(old_alice)
    live.add('sid-new')

    events = service.dispatch(ClaimIdentity('sid-new', name='Alice'))

    assert _blocked(events, 'sid-new') == []
    room = service.registry.room_for('sid-new')
    assert list(room.players) == [bob, 'sid-new']
    assert service.sessions.identity_for(old_alice) is None
    assert service.registry.room_for(old_alice) is None


def test_claim_rejected_while_game_in_progress(service, started, live):
    started('Alice', 'Bob')
    live.add('sid-late')

    events = service.dispatch(ClaimIdentity('sid-late', name='Carol'))

    assert [e.payload['code'] for e in events] == ['GameInProgress']
    assert service.sessions.identity_for('sid-late') is None


def test_claim_into_unknown_lobby(service, live):
    live.add('sid-1')
    events = service.dispatch(ClaimIdentity('sid-1', name='Alice', room_code='ZZZZ'))
    assert [e.payload['code'] for e in events] == ['RoomNotFound']


def test_claim_twice_from_one_connection(service, seat):
    (alice,) = seat('Alice')
    events = service.dispatch(ClaimIdentity(alice, name='Alicia'))
    assert [e.payload['code'] for e in events] == ['AlreadyIdentified']
    assert service.registry.player_for(alice).name == 'Alice'


def test_signed_in_user_gets_authenticated_identity(service, seat):
    (alice,) = seat('Alice', external_user_id=42)
    assert service.sessions.identity_for(alice) == Authenticated('Alice', 42)
    assert service.registry.player_for(alice).to_dict()['authenticated'] is True


def test_disconnect_forgets_identity_and_seat(service, seat, broadcaster):
    alice, bob = seat('Alice', 'Bob')
    broadcaster.clear()

    service.dispatch(Disconnect(alice))

    assert service.sessions.identity_for(alice) is None
    room = service.registry.room_for(bob)
    assert list(room.players) == [bob]
    roster = broadcaster.named('player_status_update')[-1]
    assert roster.room == room.code
    assert roster.payload == [{'name': 'Bob', 'ready': False}]


def test_leave_requires_a_room(service, live):
    live.add('sid-1')
    events = service.dispatch(LeaveRoom('sid-1'))
    assert [e.payload['code'] for e in events] == ['NotInRoom']


def test_leave_lets_the_name_be_claimed_again(service, seat, live):
    (alice,) = seat('Alice')
    service.dispatch(LeaveRoom(alice))
    # The room emptied and is gone
    assert service.registry.rooms == {}

    events = service.dispatch(ClaimIdentity(alice, name='Alice'))
    assert service.registry.player_for(alice) is not None
    assert any(e.name == 'identity_claimed' for e in events)


def test_readiness_requires_identity(service, live):
    live.add('sid-1')
    events = service.dispatch(SetReady('sid-1'))
    assert [e.payload['code'] for e in events] == ['NotInRoom']
