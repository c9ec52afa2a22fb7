"""
Rating store interface and the in-memory implementation.

The updater and the batch service receive a store explicitly; nothing in the
engine reaches for a global.  ``update`` is the only way a rating changes and
it is atomic per team: the read, the caller's computation and the write
happen without any other writer touching that team in between.
"""

import threading
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from oddsforge.core.entities import Match, RatingHistoryPoint, Team, utcnow
from oddsforge.core.errors import MissingInput

RatingFn = Callable[[float], float]


class RatingConflict(RuntimeError):
    """A rating write kept losing to concurrent writers."""


class RatingStore(ABC):
    """Persistence contract for teams, ratings, rating history and results."""

    @abstractmethod
    def add_team(self, team: Team) -> Team:
        """Register a team (or replace its record) and return it."""

    @abstractmethod
    def get(self, team_id: str) -> Team:
        """Current team value.  Raises MissingInput for an unknown id."""

    @abstractmethod
    def update(self, team_id: str, fn: RatingFn) -> Tuple[float, float]:
        """Atomically replace the rating with ``fn(current)``.

        Returns ``(old_rating, new_rating)``.
        """

    @abstractmethod
    def append_history(self, point: RatingHistoryPoint) -> None:
        """Append one rating observation.  History is never rewritten."""

    @abstractmethod
    def history(self, team_id: str, limit: Optional[int] = None) -> List[RatingHistoryPoint]:
        """Rating history oldest first; ``limit`` keeps the most recent points."""

    @abstractmethod
    def record_match(self, match: Match) -> None:
        """Store a fixture or result, replacing any earlier version by id."""

    @abstractmethod
    def head_to_head_results(
        self, team_a_id: str, team_b_id: str, limit: int = 10
    ) -> List[Match]:
        """Completed meetings of the two teams, most recent first."""

    def teams(self, team_ids: Sequence[str]) -> Dict[str, Team]:
        return {team_id: self.get(team_id) for team_id in team_ids}


class InMemoryRatingStore(RatingStore):
    """Dict-backed store with one lock per team.

    Suitable for tests, backfills and single-process deployments.
    """

    def __init__(self, teams: Sequence[Team] = ()):
        self._teams: Dict[str, Team] = {}
        self._locks: Dict[str, threading.Lock] = {}
        self._registry_lock = threading.Lock()
        self._history: Dict[str, List[RatingHistoryPoint]] = defaultdict(list)
        self._history_lock = threading.Lock()
        self._matches: Dict[str, Match] = {}
        for team in teams:
            self.add_team(team)

    def _lock_for(self, team_id: str) -> threading.Lock:
        with self._registry_lock:
            if team_id not in self._teams:
                raise MissingInput(f"Unknown team {team_id!r}")
            return self._locks[team_id]

    def add_team(self, team: Team) -> Team:
        with self._registry_lock:
            self._teams[team.id] = team
            self._locks.setdefault(team.id, threading.Lock())
        return team

    def get(self, team_id: str) -> Team:
        try:
            return self._teams[team_id]
        except KeyError:
            raise MissingInput(f"Unknown team {team_id!r}") from None

    def update(self, team_id: str, fn: RatingFn) -> Tuple[float, float]:
        with self._lock_for(team_id):
            team = self._teams[team_id]
            new_rating = fn(team.rating)
            self._teams[team_id] = team.with_rating(new_rating, utcnow())
            return team.rating, new_rating

    def append_history(self, point: RatingHistoryPoint) -> None:
        with self._history_lock:
            self._history[point.team_id].append(point)

    def history(self, team_id: str, limit: Optional[int] = None) -> List[RatingHistoryPoint]:
        with self._history_lock:
            points = sorted(self._history.get(team_id, ()), key=lambda p: p.timestamp)
        if limit is not None:
            points = points[-limit:] if limit > 0 else []
        return points

    def record_match(self, match: Match) -> None:
        with self._history_lock:
            self._matches[match.id] = match

    def head_to_head_results(
        self, team_a_id: str, team_b_id: str, limit: int = 10
    ) -> List[Match]:
        with self._history_lock:
            matches = list(self._matches.values())
        meetings = [
            m for m in matches
            if m.is_completed and m.has_scores
            and m.involves(team_a_id) and m.involves(team_b_id)
        ]
        meetings.sort(key=lambda m: m.scheduled_at, reverse=True)
        return meetings[:limit]
