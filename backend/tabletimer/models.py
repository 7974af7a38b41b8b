from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Set
import time

CREATOR_ID = 0


class SessionMode(str, Enum):
    SEQUENTIAL = 'sequential'
    INDEPENDENT = 'independent'


class DisplayMode(str, Enum):
    SHARED = 'shared'
    DISTRIBUTED = 'distributed'


class SessionStatus(str, Enum):
    LOBBY = 'lobby'
    STARTED = 'started'


def _isoformat(ts: float) -> str:
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


@dataclass
class Player:
    id: int
    name: str
    time: int = 0
    is_running: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'time': self.time,
            'isRunning': self.is_running,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Player':
        return cls(
            id=int(data['id']),
            name=data.get('name') or '',
            time=int(data.get('time') or 0),
            is_running=bool(data.get('isRunning')),
        )


@dataclass
class Session:
    id: str
    mode: SessionMode
    display_mode: DisplayMode
    players: List[Player]
    status: SessionStatus = SessionStatus.STARTED
    current_player_index: int = 0
    connected_players: Set[int] = field(default_factory=set)
    # Last value pushed by update-global-time; the authoritative total is global_time
    reported_global_time: int = 0
    created_at: float = field(default_factory=time.time)
    last_update: float = field(default_factory=time.time)

    @property
    def global_time(self) -> int:
        return sum(p.time for p in self.players)

    @property
    def current_player(self) -> Optional[Player]:
        if 0 <= self.current_player_index < len(self.players):
            return self.players[self.current_player_index]
        return None

    def short_code(self, length: int = 6) -> str:
        return self.id[:length].upper()

    def get_player(self, player_id) -> Optional[Player]:
        try:
            idx = int(player_id)
        except (TypeError, ValueError):
            return None
        if 0 <= idx < len(self.players):
            return self.players[idx]
        return None

    def touch(self, now: Optional[float] = None) -> None:
        self.last_update = time.time() if now is None else now

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'mode': self.mode.value,
            'displayMode': self.display_mode.value,
            'status': self.status.value,
            'players': [p.to_dict() for p in self.players],
            'currentPlayerIndex': self.current_player_index,
            'globalTime': self.global_time,
            'connectedPlayers': sorted(self.connected_players),
            'createdAt': _isoformat(self.created_at),
            'lastUpdate': _isoformat(self.last_update),
        }
