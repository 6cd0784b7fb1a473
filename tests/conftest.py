import os
import random
import sys
import pytest

# Ensure the project root (containing the `gallery` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from gallery import create_app, socketio
from gallery import messages
from gallery.models import NetworkedEntity, ServerGameState, Target
from gallery.room import ShootingGalleryRoom
from gallery.sink import Sink


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    MIN_REQ_PLAYERS = 2
    NUMBER_OF_TARGET_ROWS = 4
    MAX_CLIENTS = 4
    TICK_INTERVAL_MS = 50
    AUTO_DISPOSE_EMPTY_ROOMS = True
    EMPTY_ROOM_GRACE_SEC = 30
    CORS_ORIGINS = ['http://localhost:5173']


class RecordingSink(Sink):
    """Keeps everything a room sends so tests can assert on it."""

    def __init__(self):
        self.events = []
        self.sent = []

    def broadcast(self, kind, payload):
        self.events.append((kind, payload))

    def send(self, session_id, kind, payload):
        self.sent.append((session_id, kind, payload))

    def of_kind(self, kind):
        return [payload for k, payload in self.events if k == kind]

    def clear(self):
        self.events.clear()
        self.sent.clear()


def make_target(uid, value, row=1):
    return Target(uid=uid, id=0, name=f'Target {uid}', value=value, row=row)


def fixed_lineup(*targets):
    """Lineup factory handing out fresh copies of ``targets`` each round."""
    def factory(count, rows):
        return [make_target(t.uid, t.value, t.row) for t in targets]
    return factory


def add_player(room, name):
    """Join user ``name`` (session ``s<name>``) and give them entity ``ent<name>``."""
    user = room.on_join(f's{name}', name)
    room.state.add_entity(NetworkedEntity(entity_id=f'ent{name}', owner_id=user.user_id))
    return user


def ready_up(room, *names):
    for name in names or list(room.state.users):
        room.set_attribute(f's{name}', name, {messages.CLIENT_READY_STATE: messages.READY})


def tick_until(room, state, delta_ms=100, limit=1000):
    for _ in range(limit):
        if room.current_state == state:
            return
        room.tick(delta_ms)
    raise AssertionError(f'room never reached {state}, stuck in {room.current_state}')


def start_round(room, *names):
    """Drive a freshly initialised room with joined players into SimulateRound."""
    ready_up(room, *names)
    room.tick(100)
    assert room.current_state == ServerGameState.SEND_TARGETS
    room.tick(100)
    assert room.current_state == ServerGameState.WAITING
    ready_up(room, *names)
    room.tick(100)
    assert room.current_state == ServerGameState.BEGIN_ROUND
    tick_until(room, ServerGameState.SIMULATE_ROUND)


@pytest.fixture()
def sink():
    return RecordingSink()


@pytest.fixture()
def make_room(sink):
    def _make(lineup=None, options=None, max_clients=4, seed=1234):
        room = ShootingGalleryRoom(
            'ROOM01',
            sink,
            max_clients=max_clients,
            rng=random.Random(seed),
            lineup_factory=lineup,
        )
        room.initialize(options or {'minReqPlayers': 2})
        return room
    return _make


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


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
