import os
import random
import sys

import pytest

# Ensure the backend root (containing the `wordclash` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from wordclash import create_app, db, socketio
from wordclash.services.game import ClaimIdentity, GameService, GameSettings, SetReady, TurnTimer


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    DICTIONARY_API_URL = 'http://dictionary.invalid/{word}'
    DICTIONARY_TIMEOUT_SEC = 0.1


WORDS = ['cat', 'act', 'taco', 'coat', 'apple', 'banana', 'dog', 'good', 'zebra', 'quiz']


class FakeDictionary:
    """Stands in for the HTTP dictionary; ``before_answer`` runs while the lookup is "in flight"."""

    def __init__(self, words=WORDS):
        self.words = {w.lower() for w in words}
        self.calls = []
        self.before_answer = None

    def __call__(self, word):
        self.calls.append(word)
        hook, self.before_answer = self.before_answer, None
        if hook is not None:
            hook(word)
        return word.lower() in self.words


class RecordingBroadcaster:
    def __init__(self):
        self.events = []

    def publish(self, events):
        self.events.extend(events)

    def named(self, name):
        return [e for e in self.events if getattr(e, 'name', None) == name]

    def clear(self):
        self.events.clear()


class ManualScheduler:
    """Collects timer workers instead of running them; ``run_pending`` plays them out instantly."""

    def __init__(self):
        self.tasks = []

    def spawn(self, fn, *args):
        self.tasks.append((fn, args))

    def sleep(self, seconds):
        pass

    def run_pending(self):
        tasks, self.tasks = self.tasks, []
        for fn, args in tasks:
            fn(*args)


@pytest.fixture()
def dictionary():
    return FakeDictionary()


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture()
def live():
    """Connection ids whose transport is still open."""
    return set()


@pytest.fixture()
def wins():
    return []


@pytest.fixture()
def service(dictionary, scheduler, broadcaster, live, wins):
    timer = TurnTimer(spawn=scheduler.spawn, sleep=scheduler.sleep)
    return GameService(
        dictionary,
        timer=timer,
        settings=GameSettings(turn_duration=3),
        broadcaster=broadcaster,
        is_live=lambda sid: sid in live,
        on_win=wins.append,
        rng=random.Random(7),
    )


@pytest.fixture()
def seat(service, live):
    """seat('Alice', 'Bob') -> ['sid-Alice', 'sid-Bob'], each claimed into the shared room."""
    def _seat(*names, room_code=None, external_user_id=None):
        sids = []
        for name in names:
            sid = f"sid-{name}"
            live.add(sid)
            service.dispatch(ClaimIdentity(sid, name=name, room_code=room_code,
                                           external_user_id=external_user_id))
            sids.append(sid)
        return sids
    return _seat


@pytest.fixture()
def started(service, seat):
    """Seat the given players, ready them all and return the running room."""
    def _start(*names):
        sids = seat(*names)
        for sid in sids:
            service.dispatch(SetReady(sid))
        return service.registry.room_for(sids[0])
    return _start


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import wordclash.models  # noqa: F401
        db.create_all()
        yield application
        application.extensions['wordclash'].shutdown()
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def fake_dictionary(flask_app):
    dictionary = FakeDictionary()
    flask_app.extensions['wordclash'].engine.validator = dictionary
    return dictionary


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
        namespace='/ws'
    )
    yield test_client
    try:
        test_client.disconnect(namespace='/ws')
    except Exception:
        pass
