import atexit
import weakref

import click
from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
from config import Config

socketio = SocketIO(async_mode=None)

# Stores of every app built in this process; closed once at interpreter exit
_open_stores = weakref.WeakSet()


def _close_stores():
    for store in list(_open_stores):
        store.close()


atexit.register(_close_stores)


def _allowed_origins(raw):
    if not raw or raw == '*':
        return '*'
    return [o.strip() for o in raw.split(',') if o.strip()]


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = _allowed_origins(flask_app.config.get('CORS_ORIGINS', '*'))
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One session store per app; it lives as long as the process
    from tabletimer.services.sessions.store import SessionStore
    from tabletimer.services.sessions.lobby import LobbyCoordinator
    from tabletimer.services.sessions.broadcast import BroadcastPolicy
    store = SessionStore(
        min_players=flask_app.config.get('MIN_PLAYERS', 2),
        max_players=flask_app.config.get('MAX_PLAYERS', 10),
        code_length=flask_app.config.get('JOIN_CODE_LENGTH', 6),
        ttl_hours=flask_app.config.get('SESSION_TTL_HOURS', 24),
    )
    flask_app.extensions['session_store'] = store
    flask_app.extensions['session_lobby'] = LobbyCoordinator()
    flask_app.extensions['session_broadcast'] = BroadcastPolicy(
        socketio,
        store,
        delay_ms=flask_app.config.get('BROADCAST_DELAY_MS', 100),
        logger=flask_app.logger,
    )
    _open_stores.add(store)

    # Import and register blueprints here
    from tabletimer.routes import main
    flask_app.register_blueprint(main)

    from tabletimer.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/api')

    # Register Socket.IO event handlers
    from tabletimer.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    from tabletimer.services.sessions.sweeper import schedule_sweeper
    schedule_sweeper(flask_app)

    @click.command('serve')
    @click.option('--host', default='0.0.0.0', show_default=True)
    @click.option('--port', default=None, type=int, help='Defaults to the PORT setting.')
    @click.option('--debug/--no-debug', default=False)
    def serve_command(host, port, debug):
        """Runs the HTTP and Socket.IO server."""
        port = port or flask_app.config.get('PORT', 3001)
        flask_app.logger.info(f"[serve] host={host} port={port}")
        socketio.run(flask_app, host=host, port=port, debug=debug)

    flask_app.cli.add_command(serve_command)

    return flask_app
