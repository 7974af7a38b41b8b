from conftest import create_session

from tabletimer import socketio
from tabletimer.services.sessions.store import SECONDS_PER_HOUR
from tabletimer.services.sessions.sweeper import schedule_sweeper, sweep_once


def test_sweep_once_evicts_idle_sessions(flask_app, client, store):
    old = create_session(client)['sessionId']
    new = create_session(client)['sessionId']
    now = store.get_by_id(new).last_update
    store.get_by_id(old).last_update = now - 25 * SECONDS_PER_HOUR

    assert sweep_once(flask_app, now) == 1
    assert client.get(f'/api/sessions/{old}').status_code == 404
    assert client.get(f'/api/sessions/{new}').status_code == 200


def test_sweeper_not_scheduled_in_tests(flask_app):
    assert schedule_sweeper(flask_app) is False


def test_sweeper_loop_runs_until_store_closes(flask_app, client, store, monkeypatch):
    stale = create_session(client)['sessionId']
    store.get_by_id(stale).last_update = 0
    tasks = []
    sleeps = []

    def fake_sleep(seconds):
        sleeps.append(seconds)
        if len(sleeps) > 1:
            store.closed = True

    monkeypatch.setattr(socketio, 'start_background_task', lambda target, *args: tasks.append((target, args)))
    monkeypatch.setattr(socketio, 'sleep', fake_sleep)
    flask_app.config['ENABLE_SWEEPER_IN_TESTS'] = True

    assert schedule_sweeper(flask_app) is True
    target, args = tasks[0]
    target(*args)

    assert sleeps == [3600, 3600]
    assert len(store) == 0
