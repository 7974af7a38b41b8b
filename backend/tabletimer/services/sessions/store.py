import threading
import time
import uuid
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Sequence

from tabletimer.models import DisplayMode, Player, Session, SessionMode, SessionStatus
from .errors import InvalidConfig, SessionNotFound

SECONDS_PER_HOUR = 3600


class SessionStore:
    """Process-scoped container for all live sessions.

    Sessions are only reachable through this object. Each session gets its
    own lock so mutations on one session id are serialized while different
    sessions proceed in parallel. The dict itself is guarded by a separate
    store lock that is never held while a session lock is being waited on.
    """

    def __init__(self, min_players: int = 2, max_players: int = 10,
                 code_length: int = 6, ttl_hours: float = 24):
        self.min_players = min_players
        self.max_players = max_players
        self.code_length = code_length
        self.ttl_seconds = ttl_hours * SECONDS_PER_HOUR
        self._sessions: Dict[str, Session] = {}
        self._locks: Dict[str, threading.RLock] = {}
        self._lock = threading.Lock()
        self.closed = False

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self, mode, display_mode, player_names: Optional[Sequence[str]] = None,
               num_players: Optional[int] = None) -> Session:
        try:
            mode = SessionMode(mode)
            display_mode = DisplayMode(display_mode)
        except ValueError as exc:
            raise InvalidConfig(str(exc))

        if player_names is None:
            names = []
        elif isinstance(player_names, (list, tuple)):
            names = list(player_names)
        else:
            raise InvalidConfig(f'playerNames must be a list, got {type(player_names).__name__}')
        if num_players is None:
            num_players = len(names)
        try:
            num_players = int(num_players)
        except (TypeError, ValueError):
            raise InvalidConfig(f'numPlayers must be an integer, got {num_players!r}')
        if not self.min_players <= num_players <= self.max_players:
            raise InvalidConfig(
                f'numPlayers must be between {self.min_players} and {self.max_players}, got {num_players}'
            )

        players = []
        for i in range(num_players):
            name = names[i] if i < len(names) else None
            if not isinstance(name, str) or not name.strip():
                name = f'Player {i + 1}'
            players.append(Player(id=i, name=name))

        status = SessionStatus.LOBBY if display_mode == DisplayMode.DISTRIBUTED else SessionStatus.STARTED
        with self._lock:
            session_id = self._new_id()
            session = Session(
                id=session_id,
                mode=mode,
                display_mode=display_mode,
                players=players,
                status=status,
            )
            self._sessions[session_id] = session
            self._locks[session_id] = threading.RLock()
        return session

    def _new_id(self) -> str:
        # Join codes are a prefix of the id; re-roll on a prefix clash with a live session
        while True:
            candidate = str(uuid.uuid4())
            code = candidate[:self.code_length].upper()
            if not any(s.short_code(self.code_length) == code for s in self._sessions.values()):
                return candidate

    def get_by_id(self, session_id) -> Session:
        session = self._sessions.get(session_id) if isinstance(session_id, str) else None
        if session is None:
            raise SessionNotFound(f'Session {session_id} not found')
        return session

    def get_by_short_code(self, code) -> Session:
        if isinstance(code, str) and code:
            wanted = code.upper()
            for session in list(self._sessions.values()):
                if session.short_code(self.code_length) == wanted:
                    return session
        raise SessionNotFound(f'No session for join code {code}')

    def join_code(self, session: Session) -> str:
        return session.short_code(self.code_length)

    def all(self) -> List[Session]:
        return list(self._sessions.values())

    @contextmanager
    def locked(self, session_id) -> Iterator[Session]:
        """Yield the session while holding its lock.

        Raises SessionNotFound when the id is unknown or the session was
        evicted while waiting for the lock.
        """
        lock = self._locks.get(session_id) if isinstance(session_id, str) else None
        if lock is None:
            raise SessionNotFound(f'Session {session_id} not found')
        with lock:
            session = self._sessions.get(session_id)
            if session is None:
                raise SessionNotFound(f'Session {session_id} not found')
            yield session

    def snapshot(self, session_id) -> Dict:
        with self.locked(session_id) as session:
            return session.to_dict()

    def sweep_expired(self, now: Optional[float] = None) -> List[str]:
        """Remove sessions idle for longer than the TTL. Returns evicted ids."""
        now = time.time() if now is None else now
        evicted = []
        with self._lock:
            for session_id, session in list(self._sessions.items()):
                # Timestamp re-read at eviction time; no session lock is taken
                if now - session.last_update > self.ttl_seconds:
                    self._sessions.pop(session_id, None)
                    self._locks.pop(session_id, None)
                    evicted.append(session_id)
        return evicted

    def clear(self) -> None:
        with self._lock:
            self._sessions.clear()
            self._locks.clear()

    def close(self) -> None:
        self.closed = True
        self.clear()
