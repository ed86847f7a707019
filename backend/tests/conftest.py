import os
import sys
from collections import defaultdict
import pytest

# Ensure the backend root (containing the `quizhub` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from quizhub import create_app, db, socketio
from quizhub.services.live import LiveQuizService
from quizhub.services.live.snapshots import (
    FILL_IN_THE_BLANK,
    MULTIPLE_CHOICE,
    SINGLE_CHOICE,
    OptionSnapshot,
    QuestionSnapshot,
    QuizSnapshot,
)
from quizhub.services.live.timers import TimerHandle


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    WTF_CSRF_ENABLED = False
    BCRYPT_LOG_ROUNDS = 4
    QUESTION_DURATION_SEC = 20
    REVEAL_DURATION_SEC = 0
    ROOM_CODE_LENGTH = 4


# ---- In-memory collaborators for the live engine ----

class RecordingBroadcaster:
    def __init__(self):
        self.room_events = []
        self.connection_events = []
        self.groups = defaultdict(set)
        self.closed = []

    def send_to_room(self, room_code, event, payload):
        self.room_events.append((room_code, event, payload))

    def send_to_connection(self, connection_id, event, payload):
        self.connection_events.append((connection_id, event, payload))

    def add_to_room(self, connection_id, room_code):
        self.groups[room_code].add(connection_id)

    def remove_from_room(self, connection_id, room_code):
        self.groups[room_code].discard(connection_id)

    def close_room(self, room_code):
        self.closed.append(room_code)
        self.groups.pop(room_code, None)

    def payloads(self, event):
        return [payload for _, name, payload in self.room_events if name == event]


class ManualTimers:
    """Records scheduled jobs; tests fire them explicitly."""

    def __init__(self):
        self.scheduled = []
        self.slept = []
        self.on_sleep = None

    def schedule(self, delay, callback, *args, key=''):
        handle = TimerHandle(key, delay)
        self.scheduled.append((handle, callback, args))
        return handle

    def sleep(self, seconds):
        self.slept.append(seconds)
        if self.on_sleep:
            self.on_sleep()

    def pending(self):
        return [entry for entry in self.scheduled if not entry[0].cancelled and not entry[0].fired]

    def fire_next(self):
        handle, callback, args = self.pending()[0]
        handle.fired = True
        callback(*args)


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class InMemoryCatalog:
    def __init__(self, *quizzes):
        self.quizzes = {q.id: q for q in quizzes}
        self.recorded = []

    def fetch_quiz_with_questions(self, quiz_id):
        return self.quizzes.get(quiz_id)

    def record_results(self, quiz_id, results):
        self.recorded.append((quiz_id, list(results)))


def make_quiz(quiz_id=1):
    return QuizSnapshot(
        id=quiz_id,
        title='Science Night',
        questions=(
            QuestionSnapshot(
                id=11, text='Red planet?', type=SINGLE_CHOICE, points=10,
                options=(
                    OptionSnapshot(1, 'Venus'),
                    OptionSnapshot(2, 'Mars', True),
                    OptionSnapshot(3, 'Jupiter'),
                    OptionSnapshot(4, 'Mercury'),
                ),
            ),
            QuestionSnapshot(
                id=12, text='Primes?', type=MULTIPLE_CHOICE, points=20,
                options=(
                    OptionSnapshot(5, '2', True),
                    OptionSnapshot(6, '4'),
                    OptionSnapshot(7, '7', True),
                    OptionSnapshot(8, '9'),
                ),
            ),
            QuestionSnapshot(
                id=13, text='Symbol for gold is ___', type=FILL_IN_THE_BLANK, points=15,
                options=(OptionSnapshot(9, 'Au', True),),
            ),
        ),
    )


@pytest.fixture()
def broadcaster():
    return RecordingBroadcaster()


@pytest.fixture()
def timers():
    return ManualTimers()


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def catalog():
    return InMemoryCatalog(make_quiz(1), QuizSnapshot(id=2, title='Empty', questions=()))


@pytest.fixture()
def live_service(catalog, broadcaster, timers, clock):
    return LiveQuizService(
        catalog=catalog,
        broadcaster=broadcaster,
        timers=timers,
        question_duration_sec=20,
        reveal_duration_sec=5,
        clock=clock,
    )


@pytest.fixture()
def room_code(live_service):
    return live_service.create_room(1, requester_is_host=True, connection_id='host-sid')


# ---- Flask app, HTTP and Socket.IO clients ----

@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import quizhub.models  # noqa: F401
        from quizhub.seed import seed_demo_data
        db.create_all()
        seed_demo_data()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def demo_quiz(flask_app):
    from quizhub.models import Quiz
    return Quiz.query.filter_by(title='General Knowledge').first()


def login(http_client, username, password='password'):
    return http_client.post('/login', json={'username': username, 'password': password})


@pytest.fixture()
def sio_for(flask_app):
    """Factory: a Socket.IO client on /ws logged in as ``username``."""
    clients = []

    def _connect(username):
        http_client = flask_app.test_client()
        assert login(http_client, username).status_code == 200
        sio = socketio.test_client(flask_app, flask_test_client=http_client, namespace='/ws')
        clients.append(sio)
        return sio

    yield _connect
    for sio in clients:
        try:
            if sio.is_connected('/ws'):
                sio.disconnect(namespace='/ws')
        except Exception:
            pass


def events_named(received, name):
    return [pkt['args'][0] if pkt['args'] else None for pkt in received if pkt['name'] == name]
