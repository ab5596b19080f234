"""
Aggregate statistics derived from the team and match collections.

All functions are pure. List filters keep the stored order of the input,
so display order is the store's append order.
"""

from typing import Iterable, List, Optional

from . import config
from .models import Match, MatchStatus, Team, TeamTotals


def aggregate(teams: Iterable[Team]) -> TeamTotals:
    """Sum every team counter independently"""
    totals = {'players': 0, 'matches': 0, 'wins': 0, 'losses': 0, 'draws': 0}
    for team in teams:
        totals['players'] += team.players
        totals['matches'] += team.matches
        totals['wins'] += team.wins
        totals['losses'] += team.losses
        totals['draws'] += team.draws
    return TeamTotals(**totals)


def round_half_up_percent(part: int, whole: int) -> int:
    """round(100 * part / whole) with halves rounded up, using integer arithmetic"""
    return (200 * part + whole) // (2 * whole)


def win_rate(totals: TeamTotals) -> int:
    decided = totals.wins + totals.losses + totals.draws
    if decided <= 0:
        return 0
    return round_half_up_percent(totals.wins, decided)


def _with_status(matches: Iterable[Match], status: MatchStatus, limit: Optional[int]) -> List[Match]:
    selected = [m for m in matches if m.status == status]
    if limit is not None:
        selected = selected[:limit]
    return selected


def upcoming(matches: Iterable[Match], limit: int = config.UPCOMING_MATCHES_LIMIT) -> List[Match]:
    return _with_status(matches, MatchStatus.SCHEDULED, limit)


def recent(matches: Iterable[Match], limit: int = config.RECENT_MATCHES_LIMIT) -> List[Match]:
    return _with_status(matches, MatchStatus.COMPLETED, limit)


def live(matches: Iterable[Match]) -> List[Match]:
    return _with_status(matches, MatchStatus.LIVE, None)


def match_outcome(home_score: int, away_score: int) -> str:
    """'home', 'away' or 'draw'"""
    if home_score > away_score:
        return 'home'
    if away_score > home_score:
        return 'away'
    return 'draw'


def team_form(matches: Iterable[Match], team_id: str, last: int = 5) -> List[str]:
    """W/D/L letters for the team's last completed matches, oldest first"""
    form = []
    for match in matches:
        if match.status != MatchStatus.COMPLETED:
            continue
        if team_id not in (match.home_team_id, match.away_team_id):
            continue
        outcome = match_outcome(match.home_score, match.away_score)
        if outcome == 'draw':
            form.append('D')
        elif (outcome == 'home') == (match.home_team_id == team_id):
            form.append('W')
        else:
            form.append('L')
    return form[-last:] if last > 0 else []
