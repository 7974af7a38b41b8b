from flask import Blueprint, current_app, jsonify, request

from tabletimer.services.sessions import stats
from tabletimer.services.sessions.errors import InvalidConfig, SessionNotFound

sessions = Blueprint('sessions', __name__)


def _store():
    return current_app.extensions['session_store']


@sessions.errorhandler(SessionNotFound)
def _session_not_found(exc):
    return jsonify(exc.to_dict()), 404


@sessions.errorhandler(InvalidConfig)
def _invalid_config(exc):
    return jsonify(exc.to_dict()), 400


@sessions.route('/sessions', methods=['POST'])
def create_session():
    """
    Creates a session and returns its id, snapshot and join code.
    """
    data = request.get_json(silent=True) or {}
    store = _store()
    session = store.create(
        data.get('mode'),
        data.get('displayMode'),
        player_names=data.get('playerNames'),
        num_players=data.get('numPlayers'),
    )
    join_code = store.join_code(session)
    current_app.logger.info(
        f"[create] session={session.id} code={join_code} mode={session.mode.value} "
        f"display={session.display_mode.value} players={len(session.players)}"
    )
    return jsonify({
        'sessionId': session.id,
        'session': session.to_dict(),
        'joinCode': join_code,
    }), 201


@sessions.route('/sessions', methods=['GET'])
def list_sessions():
    store = _store()
    summaries = [stats.session_summary(s, store.join_code(s)) for s in store.all()]
    return jsonify({
        'totalSessions': len(summaries),
        'sessions': summaries,
    })


@sessions.route('/sessions/<string:session_id>', methods=['GET'])
def get_session(session_id):
    return jsonify(_store().snapshot(session_id))


@sessions.route('/sessions/join/<string:join_code>', methods=['GET'])
def join_by_code(join_code):
    """
    Resolves a join code to its session.
    """
    session = _store().get_by_short_code(join_code)
    return jsonify({
        'sessionId': session.id,
        'session': _store().snapshot(session.id),
    })


@sessions.route('/stream/<string:session_id>', methods=['GET'])
def stream_view(session_id):
    """
    Display-only projection for streaming overlays. No side effects.
    """
    with _store().locked(session_id) as session:
        return jsonify(stats.stream_view(session))


@sessions.route('/party/<string:session_id>/stats', methods=['GET'])
def party_stats(session_id):
    store = _store()
    with store.locked(session_id) as session:
        return jsonify(stats.party_stats(session, store.join_code(session)))


@sessions.route('/party/<string:session_id>/player/<int:player_id>', methods=['GET'])
def player_stats(session_id, player_id):
    with _store().locked(session_id) as session:
        payload = stats.player_stats(session, player_id)
    if payload is None:
        return jsonify({'error': 'PlayerNotFound', 'message': f'Player {player_id} not found'}), 404
    return jsonify(payload)
