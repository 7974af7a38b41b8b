"""Turn state machine.

Pure transitions over a Session. Each function returns True when the
session actually changed (and bumps last_update), False for a no-op.
Privileged operations raise Unauthorized before touching any state.
Callers are expected to hold the session lock.
"""

from typing import Optional

from tabletimer.models import CREATOR_ID, DisplayMode, Session, SessionMode, SessionStatus
from .errors import Unauthorized


def is_creator(session: Session, requester_id) -> bool:
    # A shared-display session is driven from the creator's single device
    if requester_id is None:
        return session.display_mode == DisplayMode.SHARED
    try:
        return int(requester_id) == CREATOR_ID
    except (TypeError, ValueError):
        return False


def require_creator(session: Session, requester_id, action: str) -> None:
    if not is_creator(session, requester_id):
        raise Unauthorized(f'{action} is reserved to the session creator, not {requester_id}')


def turns_active(session: Session) -> bool:
    return session.display_mode == DisplayMode.SHARED or session.status == SessionStatus.STARTED


def _advance_turn(session: Session) -> None:
    current = session.current_player
    if current is not None:
        current.is_running = False
    session.current_player_index = (session.current_player_index + 1) % len(session.players)
    session.players[session.current_player_index].is_running = True


def toggle(session: Session, player_id) -> bool:
    if not turns_active(session):
        return False
    player = session.get_player(player_id)
    if player is None:
        return False

    if session.mode == SessionMode.SEQUENTIAL:
        if player.id != session.current_player_index:
            return False
        if player.is_running:
            # Handoff happens in one step: the next player starts as this one stops
            _advance_turn(session)
        else:
            player.is_running = True
    else:
        player.is_running = not player.is_running

    session.touch()
    return True


def skip(session: Session, requester_id) -> bool:
    if session.mode != SessionMode.SEQUENTIAL or not turns_active(session):
        return False
    require_creator(session, requester_id, 'skip')
    _advance_turn(session)
    session.touch()
    return True


def pause_all(session: Session, requester_id) -> bool:
    if not turns_active(session):
        return False
    require_creator(session, requester_id, 'pause-all')
    for p in session.players:
        p.is_running = False
    session.touch()
    return True


def reset(session: Session, requester_id: Optional[int] = None) -> bool:
    if session.display_mode == DisplayMode.DISTRIBUTED:
        require_creator(session, requester_id, 'reset')
    for p in session.players:
        p.time = 0
        p.is_running = False
    session.current_player_index = 0
    session.reported_global_time = 0
    session.touch()
    return True


def rename_player(session: Session, player_id, name) -> bool:
    player = session.get_player(player_id)
    if player is None or not isinstance(name, str):
        return False
    player.name = name
    session.touch()
    return True
