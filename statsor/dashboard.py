"""
Dashboard controller: the single writer of one identity's team and match
collections during a session.

Commands validate, ask the subscription policy, mutate the in-memory working
copy, then persist. A failed write restores the pre-command snapshot so the
working copy never runs ahead of the store. Aggregates are recomputed on
every read.
"""

import hashlib
import logging
from enum import Enum
from typing import Any, Dict, List, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as ModelValidationError

from . import stats
from .errors import NotFoundError, QuotaExceededError, StoreUnavailableError, ValidationError
from .models import Identity, Match, MatchStatus, Team
from .storage import Store
from .subscriptions import SubscriptionPolicy

logger = logging.getLogger(__name__)

RESOURCE_KINDS = ('teams', 'players', 'matches')

# Match outcome -> (home team result, away team result)
RESULTS_BY_OUTCOME = {
    'home': ('wins', 'losses'),
    'away': ('losses', 'wins'),
    'draw': ('draws', 'draws'),
}

ModelT = TypeVar('ModelT', bound=BaseModel)


class DashboardState(str, Enum):
    LOADING = "loading"
    READY = "ready"
    CREATING = "creating"


def identity_key(identity: Identity) -> str:
    """Key-safe token for an identity id, which may be an email or any other string"""
    return hashlib.sha256(identity.id.encode("utf-8")).hexdigest()


def teams_key(identity: Identity) -> str:
    return f"teams.{identity_key(identity)}"


def matches_key(identity: Identity) -> str:
    return f"matches.{identity_key(identity)}"


def _parse_all(model: Type[ModelT], records: List[Any], key: str) -> List[ModelT]:
    parsed = []
    for record in records:
        try:
            parsed.append(model(**record))
        except (ModelValidationError, TypeError) as e:
            # Skip invalid records
            logger.warning(f"Skipping invalid record in '{key}': {e}")
            continue
    return parsed


def load_teams(store: Store, identity: Identity) -> List[Team]:
    key = teams_key(identity)
    return _parse_all(Team, store.load_list(key), key)


def load_matches(store: Store, identity: Identity) -> List[Match]:
    key = matches_key(identity)
    return _parse_all(Match, store.load_list(key), key)


def _dump_all(items: List[BaseModel]) -> List[Dict[str, Any]]:
    return [item.model_dump(mode='json') for item in items]


def register_collection_usage(policy: SubscriptionPolicy, store: Store) -> None:
    """Derive usage counters from the stored collections instead of trusting stored values"""
    policy.register_usage_source(
        policy.counter_for('teams'),
        lambda identity: len(load_teams(store, identity)))
    policy.register_usage_source(
        policy.counter_for('players'),
        lambda identity: stats.aggregate(load_teams(store, identity)).players)
    policy.register_usage_source(
        policy.counter_for('matches'),
        lambda identity: len(load_matches(store, identity)))


class DashboardController:
    def __init__(self, store: Store, policy: SubscriptionPolicy, identity: Identity):
        self.store = store
        self.policy = policy
        self.identity = identity
        self.state = DashboardState.LOADING
        self._teams: List[Team] = []
        self._matches: List[Match] = []
        self._loaded = False

    # Loading
    def load(self) -> 'DashboardController':
        """Read both collections; absent data is an empty dashboard"""
        self.state = DashboardState.LOADING
        self._teams = load_teams(self.store, self.identity)
        self._matches = load_matches(self.store, self.identity)
        self._loaded = True
        self.state = DashboardState.READY
        return self

    def refresh(self) -> 'DashboardController':
        return self.load()

    def _ensure_loaded(self) -> None:
        if not self._loaded:
            self.load()

    # Read-only views
    @property
    def teams(self) -> List[Team]:
        self._ensure_loaded()
        return list(self._teams)

    @property
    def matches(self) -> List[Match]:
        self._ensure_loaded()
        return list(self._matches)

    def totals(self):
        return stats.aggregate(self.teams)

    def win_rate(self) -> int:
        return stats.win_rate(self.totals())

    def upcoming_matches(self) -> List[Match]:
        return stats.upcoming(self.matches)

    def recent_matches(self) -> List[Match]:
        return stats.recent(self.matches)

    def can_create(self, kind: str) -> bool:
        return self.policy.can_create_resource(self.identity, kind)

    def get_team(self, team_id: str) -> Team:
        for team in self.teams:
            if team.id == team_id:
                return team
        raise NotFoundError(f"Team not found: {team_id}")

    def get_match(self, match_id: str) -> Match:
        for match in self.matches:
            if match.id == match_id:
                return match
        raise NotFoundError(f"Match not found: {match_id}")

    def team_form(self, team_id: str, last: int = 5) -> List[str]:
        self.get_team(team_id)
        return stats.team_form(self.matches, team_id, last=last)

    def view(self) -> Dict[str, Any]:
        """View model for the dashboard screen"""
        totals = self.totals()
        matches = self.matches
        return {
            'state': self.state.value,
            'teams': _dump_all(self.teams),
            'totals': totals.model_dump(),
            'win_rate': stats.win_rate(totals),
            'upcoming_matches': _dump_all(stats.upcoming(matches)),
            'recent_matches': _dump_all(stats.recent(matches)),
            'live_matches': _dump_all(stats.live(matches)),
            'can_create': {kind: self.can_create(kind) for kind in RESOURCE_KINDS},
            'subscription': self.policy.get_subscription_summary(self.identity).model_dump(),
        }

    # Commands
    def _check_quota(self, kind: str) -> None:
        if self.policy.can_create_resource(self.identity, kind):
            return
        tier = self.policy.tier_for(self.identity)
        limit = self.policy.get_limit(tier, kind)
        current = self.policy.current_usage(self.identity, kind)
        logger.info(f"Quota denied for {self.identity.id}: {kind} {current}/{limit} on '{tier}'")
        raise QuotaExceededError(kind, limit, current, tier)

    def _record_usage(self, counters: Dict[str, int]) -> None:
        # Counters are re-derived from the collections on read, so a failed
        # write here leaves nothing inconsistent.
        try:
            self.policy.update_usage_stats(self.identity, counters)
        except StoreUnavailableError as e:
            logger.warning(f"Failed to record usage for {self.identity.id}: {e}")

    def _persist(self, teams: bool = False, matches: bool = False) -> None:
        collections = {}
        if teams:
            collections[teams_key(self.identity)] = _dump_all(self._teams)
        if matches:
            collections[matches_key(self.identity)] = _dump_all(self._matches)
        self.store.save_many(collections)

    def _apply(self, mutate, teams: bool = False, matches: bool = False):
        """Run mutate against the working copy; restore the snapshot if the write fails"""
        snapshot = (list(self._teams), list(self._matches))
        try:
            result = mutate()
            self._persist(teams=teams, matches=matches)
        except StoreUnavailableError:
            self._teams, self._matches = snapshot
            logger.error(f"Rolled back dashboard change for {self.identity.id}")
            raise
        return result

    def create_team(self, name: str) -> Team:
        self._ensure_loaded()
        if not isinstance(name, str) or not name.strip():
            raise ValidationError("Please enter a team name")
        self._check_quota('teams')

        self.state = DashboardState.CREATING
        try:
            team = Team(name=name)

            def mutate():
                self._teams.append(team)
                return team

            self._apply(mutate, teams=True)
            self._record_usage({self.policy.counter_for('teams'): len(self._teams)})
            logger.info(f"Created team '{team.name}' ({team.id}) for {self.identity.id}")
            return team
        finally:
            self.state = DashboardState.READY

    def add_player(self, team_id: str) -> Team:
        self._ensure_loaded()
        team = self.get_team(team_id)
        self._check_quota('players')

        self.state = DashboardState.CREATING
        try:
            updated = team.model_copy(update={'players': team.players + 1})

            def mutate():
                self._replace_team(updated)
                return updated

            self._apply(mutate, teams=True)
            self._record_usage({self.policy.counter_for('players'): stats.aggregate(self._teams).players})
            return updated
        finally:
            self.state = DashboardState.READY

    def schedule_match(self, home_team_id: str, away_team_id: str, date: str) -> Match:
        self._ensure_loaded()
        if home_team_id == away_team_id:
            raise ValidationError("A team cannot play against itself")
        home = self.get_team(home_team_id)
        away = self.get_team(away_team_id)
        self._check_quota('matches')

        try:
            match = Match(
                home_team_id=home.id,
                away_team_id=away.id,
                home_team=home.name,
                away_team=away.name,
                date=date,
            )
        except ModelValidationError as e:
            raise ValidationError(f"Invalid match data: {e.errors()[0]['msg']}")

        self.state = DashboardState.CREATING
        try:
            def mutate():
                self._matches.append(match)
                return match

            self._apply(mutate, matches=True)
            self._record_usage({self.policy.counter_for('matches'): len(self._matches)})
            return match
        finally:
            self.state = DashboardState.READY

    def start_match(self, match_id: str) -> Match:
        match = self.get_match(match_id)
        if match.status != MatchStatus.SCHEDULED:
            raise ValidationError(f"Only scheduled matches can start; match is {match.status.value}")
        updated = match.model_copy(update={'status': MatchStatus.LIVE})

        def mutate():
            self._replace_match(updated)
            return updated

        return self._apply(mutate, matches=True)

    def complete_match(self, match_id: str, home_score: int, away_score: int) -> Match:
        """Record the final score and credit the result to both teams"""
        match = self.get_match(match_id)
        if match.status == MatchStatus.COMPLETED:
            raise ValidationError("Match is already completed")
        for score in (home_score, away_score):
            if not isinstance(score, int) or isinstance(score, bool) or score < 0:
                raise ValidationError("Scores must be non-negative integers")

        home = self.get_team(match.home_team_id)
        away = self.get_team(match.away_team_id)
        outcome = stats.match_outcome(home_score, away_score)

        updated_match = match.model_copy(update={
            'home_score': home_score,
            'away_score': away_score,
            'status': MatchStatus.COMPLETED,
        })
        home_result, away_result = RESULTS_BY_OUTCOME[outcome]
        updated_home = _credit_result(home, home_result)
        updated_away = _credit_result(away, away_result)

        def mutate():
            self._replace_match(updated_match)
            self._replace_team(updated_home)
            self._replace_team(updated_away)
            return updated_match

        result = self._apply(mutate, teams=True, matches=True)
        logger.info(f"Completed match {match_id}: {home.name} {home_score} - {away_score} {away.name}")
        return result

    def _replace_team(self, team: Team) -> None:
        self._teams = [team if t.id == team.id else t for t in self._teams]

    def _replace_match(self, match: Match) -> None:
        self._matches = [match if m.id == match.id else m for m in self._matches]


def _credit_result(team: Team, field: str) -> Team:
    return team.model_copy(update={
        'matches': team.matches + 1,
        field: getattr(team, field) + 1,
    })
