import threading
from typing import Dict, Optional, Tuple

from tabletimer.models import DisplayMode, Session, SessionStatus
from .errors import LobbyClosed, SlotTaken
from .turns import require_creator


class LobbyCoordinator:
    """Tracks which socket holds which player slot in distributed sessions.

    session.connected_players is the public view; the sid mapping here is
    what lets a claim be released on disconnect and lets handlers resolve
    the requester of an event from the socket alone.
    """

    def __init__(self):
        self._claims: Dict[str, Tuple[str, int]] = {}  # sid -> (session_id, player_id)
        self._lock = threading.Lock()

    def claim_of(self, sid: str) -> Optional[Tuple[str, int]]:
        return self._claims.get(sid)

    def player_for(self, sid: str, session_id: str) -> Optional[int]:
        claim = self._claims.get(sid)
        if claim and claim[0] == session_id:
            return claim[1]
        return None

    def claim(self, session: Session, sid: str, player_id) -> bool:
        """Claim a slot for a socket. Caller holds the session lock.

        Claims open in the lobby of a distributed session. After start, a
        slot with no holder can still be re-claimed so a reconnecting
        device gets its seat back. Returns True when connected_players
        changed.
        """
        if session.display_mode != DisplayMode.DISTRIBUTED:
            raise LobbyClosed('Slots can only be claimed in a distributed session')
        player = session.get_player(player_id)
        if player is None:
            return False
        with self._lock:
            holder = self._holder(session.id, player.id)
            if holder is not None and holder != sid:
                raise SlotTaken(f'Player {player.id} is already connected')
            if holder == sid:
                return False
            previous = self._claims.get(sid)
            if previous and previous[0] == session.id:
                session.connected_players.discard(previous[1])
            self._claims[sid] = (session.id, player.id)
        session.connected_players.add(player.id)
        session.touch()
        return True

    def drop_unheld(self, session: Session, player_id: int) -> bool:
        """Drop player_id from connected_players if no socket holds it.

        Used on the session a socket left when it claimed a slot elsewhere.
        Caller holds the session lock.
        """
        with self._lock:
            if self._holder(session.id, player_id) is not None:
                return False
        if player_id in session.connected_players:
            session.connected_players.discard(player_id)
            session.touch()
            return True
        return False

    def release(self, session: Session, sid: str) -> bool:
        """Drop the socket's claim on this session. Caller holds the session lock."""
        with self._lock:
            claim = self._claims.get(sid)
            if not claim or claim[0] != session.id:
                return False
            self._claims.pop(sid, None)
        if claim[1] in session.connected_players:
            session.connected_players.discard(claim[1])
            session.touch()
            return True
        return False

    def forget(self, sid: str) -> Optional[Tuple[str, int]]:
        with self._lock:
            return self._claims.pop(sid, None)

    def _holder(self, session_id: str, player_id: int) -> Optional[str]:
        for sid, (sess, pid) in self._claims.items():
            if sess == session_id and pid == player_id:
                return sid
        return None


def start_game(session: Session, requester_id) -> bool:
    if session.display_mode != DisplayMode.DISTRIBUTED or session.status != SessionStatus.LOBBY:
        return False
    require_creator(session, requester_id, 'start-game')
    session.status = SessionStatus.STARTED
    session.touch()
    return True
