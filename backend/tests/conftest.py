import os
import sys
import pytest

# Ensure the backend root (containing the `tabletimer` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from tabletimer import create_app, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = '*'
    SESSION_TTL_HOURS = 24
    SWEEP_INTERVAL_SEC = 3600
    # Broadcast synchronously so tests can read events right after emitting
    BROADCAST_DELAY_MS = 0
    MIN_PLAYERS = 2
    MAX_PLAYERS = 10
    JOIN_CODE_LENGTH = 6
    PORT = 3001


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application
        application.extensions['session_store'].close()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def store(flask_app):
    return flask_app.extensions['session_store']


@pytest.fixture()
def sio_client(flask_app):
    test_client = socketio.test_client(
        flask_app,
        flask_test_client=flask_app.test_client(),
    )
    yield test_client
    try:
        test_client.disconnect()
    except Exception:
        pass


@pytest.fixture()
def make_sio(flask_app):
    """Factory for extra socket clients, disconnected at teardown."""
    clients = []

    def _make():
        c = socketio.test_client(flask_app, flask_test_client=flask_app.test_client())
        clients.append(c)
        return c

    yield _make
    for c in clients:
        try:
            if c.is_connected():
                c.disconnect()
        except Exception:
            pass


def create_session(client, mode='sequential', display_mode='shared', names=None, num_players=None):
    names = names if names is not None else ['P1', 'P2', 'P3', 'P4']
    res = client.post('/api/sessions', json={
        'mode': mode,
        'displayMode': display_mode,
        'playerNames': names,
        'numPlayers': num_players if num_players is not None else len(names),
    })
    assert res.status_code == 201, res.get_json()
    return res.get_json()


def states(sio):
    return [pkt['args'][0] for pkt in sio.get_received() if pkt['name'] == 'session-state']
