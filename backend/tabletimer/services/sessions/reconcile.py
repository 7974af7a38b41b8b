"""Time reconciliation.

The server keeps the authoritative value and only ever max-merges incoming
times into it. Clients run a SessionReplica: an optimistic copy that ticks
running players locally and folds server snapshots back in without ever
showing a time regression on the device doing the counting.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Set

from tabletimer.models import Player, Session


def _as_seconds(value) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def merge_player_time(session: Session, player_id, incoming) -> bool:
    """Apply an update-time push. Returns True if the stored time moved."""
    player = session.get_player(player_id)
    seconds = _as_seconds(incoming)
    if player is None or seconds is None:
        return False
    session.touch()
    if seconds > player.time:
        player.time = seconds
        return True
    return False


def merge_global_time(session: Session, incoming) -> bool:
    """Apply an update-global-time push to the reported total cache."""
    seconds = _as_seconds(incoming)
    if seconds is None:
        return False
    session.touch()
    if seconds > session.reported_global_time:
        session.reported_global_time = seconds
        return True
    return False


@dataclass(frozen=True)
class TimePush:
    player_id: int
    time: int

    def to_payload(self, session_id: str) -> Dict[str, Any]:
        return {'sessionId': session_id, 'playerId': self.player_id, 'time': self.time}


class SessionReplica:
    """Client-side optimistic copy of a session.

    owned_player_ids lists the players this device counts for. None means a
    shared device that advances every running player.
    """

    def __init__(self, snapshot: Dict[str, Any], owned_player_ids: Optional[Iterable[int]] = None,
                 push_interval: int = 3):
        self.session_id = snapshot.get('id')
        self.mode = snapshot.get('mode')
        self.current_player_index = int(snapshot.get('currentPlayerIndex') or 0)
        self.players: List[Player] = [Player.from_dict(p) for p in snapshot.get('players', [])]
        self.owned: Optional[Set[int]] = set(owned_player_ids) if owned_player_ids is not None else None
        self.push_interval = max(1, int(push_interval))
        self._accumulated: Dict[int, int] = {}

    @property
    def global_time(self) -> int:
        return sum(p.time for p in self.players)

    def counts_for(self, player_id: int) -> bool:
        return self.owned is None or player_id in self.owned

    def apply_snapshot(self, snapshot: Dict[str, Any]) -> None:
        local = {p.id: p for p in self.players}
        merged = []
        for data in snapshot.get('players', []):
            server = Player.from_dict(data)
            mine = local.get(server.id)
            if mine is not None and mine.is_running and server.is_running:
                server.time = max(mine.time, server.time)
            merged.append(server)
        self.players = merged
        self.current_player_index = int(snapshot.get('currentPlayerIndex') or 0)
        self.mode = snapshot.get('mode', self.mode)

    def tick(self, seconds: int = 1) -> List[TimePush]:
        """Advance every running player this device counts for.

        Returns the pushes that came due, one per player whose accumulated
        local seconds crossed a multiple of push_interval.
        """
        due = []
        for p in self.players:
            if not p.is_running or not self.counts_for(p.id):
                continue
            for _ in range(seconds):
                p.time += 1
                acc = self._accumulated.get(p.id, 0) + 1
                self._accumulated[p.id] = acc
                if acc % self.push_interval == 0:
                    due.append(TimePush(p.id, p.time))
        # Keep only the latest push per player
        latest = {}
        for push in due:
            latest[push.player_id] = push
        return list(latest.values())

    def flush(self, player_id: int) -> List[TimePush]:
        """Pushes to send right before a toggle so the server sees the exact time."""
        player = next((p for p in self.players if p.id == player_id), None)
        if player is None or not player.is_running:
            return []
        self._accumulated[player_id] = 0
        return [TimePush(player.id, player.time)]
