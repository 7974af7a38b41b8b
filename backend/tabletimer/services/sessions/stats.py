"""Read-only projections of a session: stream overlay, party and player stats."""

import time
from typing import Any, Dict, List, Optional

from tabletimer.models import Session, SessionMode


def format_time(seconds: int) -> str:
    """Render seconds as H:MM:SS, or M:SS under an hour."""
    seconds = max(0, int(seconds))
    hrs, rem = divmod(seconds, 3600)
    mins, secs = divmod(rem, 60)
    if hrs > 0:
        return f"{hrs}:{mins:02d}:{secs:02d}"
    return f"{mins}:{secs:02d}"


def percentage_of_total(part: int, total: int) -> int:
    if total <= 0:
        return 0
    return int(part * 100.0 / total + 0.5)


def ranking(session: Session) -> List[int]:
    """Player ids ordered by time, longest first. Ties keep creation order."""
    return [p.id for p in sorted(session.players, key=lambda p: -p.time)]


def _current_player_name(session: Session):
    player = session.current_player
    return player.name if player else None


def stream_view(session: Session) -> Dict[str, Any]:
    total = session.global_time
    return {
        'mode': session.mode.value,
        'globalTime': total,
        'globalTimeFormatted': format_time(total),
        'players': [
            {
                'name': p.name,
                'time': p.time,
                'timeFormatted': format_time(p.time),
                'isActive': p.is_running,
                'percentageOfTotal': percentage_of_total(p.time, total),
            }
            for p in session.players
        ],
        'currentPlayer': _current_player_name(session) if session.mode == SessionMode.SEQUENTIAL else None,
    }


def session_summary(session: Session, join_code: str) -> Dict[str, Any]:
    data = session.to_dict()
    return {
        'sessionId': session.id,
        'joinCode': join_code,
        'mode': data['mode'],
        'displayMode': data['displayMode'],
        'status': data['status'],
        'playerCount': len(session.players),
        'connectedPlayers': len(session.connected_players),
        'globalTime': session.global_time,
        'createdAt': data['createdAt'],
        'lastUpdate': data['lastUpdate'],
    }


def party_stats(session: Session, join_code: str, now: float = None) -> Dict[str, Any]:
    now = time.time() if now is None else now
    total = session.global_time
    with_time = [p for p in session.players if p.time > 0]
    average = int(total / len(with_time) + 0.5) if with_time else 0
    order = ranking(session)
    rank_of = {pid: i + 1 for i, pid in enumerate(order)}
    by_id = {p.id: p for p in session.players}
    summary = session_summary(session, join_code)

    return {
        'sessionId': session.id,
        'joinCode': join_code,
        'mode': summary['mode'],
        'displayMode': summary['displayMode'],
        'status': summary['status'],
        'globalTime': total,
        'globalTimeFormatted': format_time(total),
        'reportedGlobalTime': session.reported_global_time,
        'averageTime': average,
        'averageTimeFormatted': format_time(average),
        'createdAt': summary['createdAt'],
        'lastUpdate': summary['lastUpdate'],
        'duration': int(now - session.created_at),
        'totalPlayers': len(session.players),
        'connectedPlayers': len(session.connected_players),
        'activePlayers': sum(1 for p in session.players if p.is_running),
        'players': [
            {
                'id': p.id,
                'name': p.name,
                'time': p.time,
                'timeFormatted': format_time(p.time),
                'isRunning': p.is_running,
                'isConnected': p.id in session.connected_players,
                'percentageOfTotal': percentage_of_total(p.time, total),
                'rank': rank_of[p.id],
            }
            for p in session.players
        ],
        'ranking': [
            {
                'rank': i + 1,
                'name': by_id[pid].name,
                'time': by_id[pid].time,
                'timeFormatted': format_time(by_id[pid].time),
                'percentageOfTotal': percentage_of_total(by_id[pid].time, total),
            }
            for i, pid in enumerate(order)
        ],
        'currentPlayerIndex': session.current_player_index,
        'currentPlayerName': _current_player_name(session),
    }


def player_stats(session: Session, player_id: int) -> Optional[Dict[str, Any]]:
    player = session.get_player(player_id)
    if player is None:
        return None
    total = session.global_time
    return {
        'playerId': player.id,
        'name': player.name,
        'time': player.time,
        'timeFormatted': format_time(player.time),
        'isRunning': player.is_running,
        'isConnected': player.id in session.connected_players,
        'percentageOfTotal': percentage_of_total(player.time, total),
        'rank': ranking(session).index(player.id) + 1,
        'totalPlayers': len(session.players),
        'isCurrent': session.mode == SessionMode.SEQUENTIAL and session.current_player_index == player.id,
    }
