import time

from tabletimer import socketio


def sweep_once(app, now=None) -> int:
    """Evict expired sessions from the app's store. Returns the eviction count."""
    store = app.extensions['session_store']
    evicted = store.sweep_expired(now)
    for session_id in evicted:
        try:
            app.logger.info(f"[sweep-evict] session={session_id} idle>{store.ttl_seconds / 3600:g}h")
        except Exception:
            pass
    return len(evicted)


def schedule_sweeper(app) -> bool:
    """Start the hourly expiry sweep as a Socket.IO background task.

    - No-ops in TESTING mode unless ENABLE_SWEEPER_IN_TESTS is set
    - No-ops when SWEEP_INTERVAL_SEC is 0
    - Stops once the store is closed
    """
    if app.config.get('TESTING') and not app.config.get('ENABLE_SWEEPER_IN_TESTS'):
        return False
    try:
        interval = int(app.config.get('SWEEP_INTERVAL_SEC', 3600))
    except Exception:
        interval = 3600
    if interval <= 0:
        return False

    store = app.extensions['session_store']

    def _worker(delay: int):
        while not store.closed:
            socketio.sleep(delay)
            if store.closed:
                return
            count = sweep_once(app, time.time())
            try:
                app.logger.info(f"[sweep] evicted={count} live={len(store)}")
            except Exception:
                pass

    socketio.start_background_task(_worker, interval)
    app.logger.info(f"[sweep-set] interval={interval}s ttl={store.ttl_seconds}s")
    return True
