import threading
from typing import Set

from .errors import SessionNotFound

SESSION_STATE_EVENT = 'session-state'


def room_for(session_id: str) -> str:
    return f"session:{session_id}"


class BroadcastPolicy:
    """Pushes session snapshots to a session's room.

    immediate() sends now. coalesced() waits delay_ms first so that
    causally related client messages already in flight (a time push sent
    just before a toggle) are applied before the canonical snapshot goes
    out. Pending coalesced broadcasts for one session collapse into one,
    which carries the state at send time.
    """

    def __init__(self, socketio, store, delay_ms: int = 100, namespace: str = '/', logger=None):
        self.socketio = socketio
        self.store = store
        self.delay_ms = max(0, int(delay_ms))
        self.namespace = namespace
        self.logger = logger
        self._pending: Set[str] = set()
        self._lock = threading.Lock()

    def immediate(self, session_id: str) -> bool:
        try:
            payload = self.store.snapshot(session_id)
        except SessionNotFound:
            return False
        self.socketio.emit(SESSION_STATE_EVENT, payload, to=room_for(session_id), namespace=self.namespace)
        return True

    def coalesced(self, session_id: str) -> None:
        if self.delay_ms <= 0:
            self.immediate(session_id)
            return
        with self._lock:
            if session_id in self._pending:
                return
            self._pending.add(session_id)
        self.socketio.start_background_task(self._flush, session_id)

    def pending(self, session_id: str) -> bool:
        return session_id in self._pending

    def _flush(self, session_id: str) -> None:
        self.socketio.sleep(self.delay_ms / 1000.0)
        with self._lock:
            self._pending.discard(session_id)
        sent = self.immediate(session_id)
        if not sent and self.logger is not None:
            self.logger.info(f"[broadcast-drop] session={session_id} evicted before flush")
