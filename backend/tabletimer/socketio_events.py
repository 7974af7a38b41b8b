from flask import current_app, request
from flask_socketio import emit, join_room

from tabletimer import socketio
from tabletimer.services.sessions import lobby as lobby_rules
from tabletimer.services.sessions import reconcile, turns
from tabletimer.services.sessions.broadcast import SESSION_STATE_EVENT, room_for
from tabletimer.services.sessions.errors import SessionError, SessionNotFound, Unauthorized

# Broadcast modes
IMMEDIATE = 'immediate'
COALESCED = 'coalesced'
SILENT = None


def _store():
    return current_app.extensions['session_store']


def _lobby():
    return current_app.extensions['session_lobby']


def _broadcast():
    return current_app.extensions['session_broadcast']


def _get_sid() -> str:
    return request.sid  # type: ignore


def _session_id(data):
    if isinstance(data, str):
        return data
    if isinstance(data, dict):
        return data.get('sessionId')
    return None


def _requester(data, session_id):
    """The slot this socket claimed, else requesterId from the payload."""
    claimed = _lobby().player_for(_get_sid(), session_id)
    if claimed is not None:
        return claimed
    if isinstance(data, dict):
        return data.get('requesterId')
    return None


def _field(data, key):
    return data.get(key) if isinstance(data, dict) else None


def _apply(action: str, data, mutation, broadcast=IMMEDIATE) -> bool:
    """Run one mutation under the session lock, then broadcast per policy.

    Unknown sessions are dropped silently, denied privileged actions are
    logged no-ops, other domain errors go back to the requester only.
    """
    session_id = _session_id(data)
    try:
        with _store().locked(session_id) as session:
            changed = mutation(session)
    except SessionNotFound:
        current_app.logger.debug(f"[{action}-drop] session={session_id} not found")
        return False
    except Unauthorized as exc:
        current_app.logger.info(f"[{action}-denied] session={session_id} {exc.message}")
        return False
    except SessionError as exc:
        current_app.logger.info(f"[{action}-rejected] session={session_id} {exc.code}: {exc.message}")
        payload = exc.to_dict()
        payload['event'] = action
        emit('error', payload)
        return False

    if changed:
        if broadcast == IMMEDIATE:
            _broadcast().immediate(session_id)
        elif broadcast == COALESCED:
            _broadcast().coalesced(session_id)
    return changed


def handle_connect(auth=None):
    current_app.logger.info(f"[connect] sid={_get_sid()}")


def handle_disconnect(reason=None):
    sid = _get_sid()
    claim = _lobby().claim_of(sid)
    current_app.logger.info(f"[disconnect] sid={sid} claim={claim}")
    if not claim:
        return
    session_id = claim[0]
    try:
        with _store().locked(session_id) as session:
            changed = _lobby().release(session, sid)
    except SessionNotFound:
        _lobby().forget(sid)
        return
    if changed:
        _broadcast().immediate(session_id)


def handle_join_session(data):
    session_id = _session_id(data)
    if not session_id:
        emit('error', {'error': 'InvalidRequest', 'message': 'sessionId is required', 'event': 'join-session'})
        return
    join_room(room_for(session_id))
    current_app.logger.info(f"[join-session] sid={_get_sid()} session={session_id}")
    try:
        snapshot = _store().snapshot(session_id)
    except SessionNotFound:
        return
    emit(SESSION_STATE_EVENT, snapshot)


def handle_join_as_player(data):
    session_id = _session_id(data)
    player_id = _field(data, 'playerId')
    sid = _get_sid()
    previous = _lobby().claim_of(sid)

    def mutation(session):
        return _lobby().claim(session, sid, player_id)

    if session_id:
        join_room(room_for(session_id))
    if not _apply('join-as-player', data, mutation, IMMEDIATE):
        return
    current_app.logger.info(f"[join-as-player] session={session_id} player={player_id} sid={sid}")

    # Claiming in another session gives up the seat held in the previous one
    if previous and previous[0] != session_id:
        _apply('leave-slot', previous[0], lambda s: _lobby().drop_unheld(s, previous[1]), IMMEDIATE)


def handle_start_game(data):
    session_id = _session_id(data)
    requester = _requester(data, session_id)
    if _apply('start-game', data, lambda s: lobby_rules.start_game(s, requester), IMMEDIATE):
        current_app.logger.info(f"[start-game] session={session_id} requester={requester}")


def handle_toggle_player(data):
    session_id = _session_id(data)
    player_id = _field(data, 'playerId')
    if _apply('toggle', data, lambda s: turns.toggle(s, player_id), COALESCED):
        current_app.logger.info(f"[toggle] session={session_id} player={player_id}")


def handle_skip_player(data):
    session_id = _session_id(data)
    requester = _requester(data, session_id)
    if _apply('skip', data, lambda s: turns.skip(s, requester), COALESCED):
        current_app.logger.info(f"[skip] session={session_id} requester={requester}")


def handle_pause_all(data):
    session_id = _session_id(data)
    requester = _requester(data, session_id)
    if _apply('pause-all', data, lambda s: turns.pause_all(s, requester), COALESCED):
        current_app.logger.info(f"[pause-all] session={session_id} requester={requester}")


def handle_update_time(data):
    player_id = _field(data, 'playerId')
    incoming = _field(data, 'time')
    _apply('update-time', data, lambda s: reconcile.merge_player_time(s, player_id, incoming), SILENT)


def handle_update_global_time(data):
    incoming = _field(data, 'globalTime')
    _apply('update-global-time', data, lambda s: reconcile.merge_global_time(s, incoming), SILENT)


def handle_reset_session(data):
    session_id = _session_id(data)
    requester = _requester(data, session_id)
    if _apply('reset', data, lambda s: turns.reset(s, requester), IMMEDIATE):
        current_app.logger.info(f"[reset] session={session_id} requester={requester}")


def handle_update_player_name(data):
    player_id = _field(data, 'playerId')
    name = _field(data, 'name')
    _apply('rename', data, lambda s: turns.rename_player(s, player_id, name), IMMEDIATE)


def register_socketio_handlers(namespace: str = '/') -> None:
    """Register Socket.IO event handlers on the given namespace."""
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('join-session', handle_join_session, namespace=namespace)
    socketio.on_event('join-as-player', handle_join_as_player, namespace=namespace)
    socketio.on_event('start-game', handle_start_game, namespace=namespace)
    socketio.on_event('toggle-player', handle_toggle_player, namespace=namespace)
    socketio.on_event('skip-player', handle_skip_player, namespace=namespace)
    socketio.on_event('pause-all', handle_pause_all, namespace=namespace)
    socketio.on_event('update-time', handle_update_time, namespace=namespace)
    socketio.on_event('update-global-time', handle_update_global_time, namespace=namespace)
    socketio.on_event('reset-session', handle_reset_session, namespace=namespace)
    socketio.on_event('update-player-name', handle_update_player_name, namespace=namespace)
