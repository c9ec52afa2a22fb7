"""Immutable value objects exchanged between the engine and its collaborators.

The engine never stores anything.  Collaborators (rating stores, ingestion,
the API layer) hand it these frozen values and receive new ones back.

* :class:`Team`               — identity, sport, league and current rating.
* :class:`Match`              — fixture or result; ``scheduled → completed``
  is the only status transition and the only trigger for rating updates.
* :class:`RatingHistoryPoint` — one rating observation; append-only.
* :class:`Prediction`         — outcome distribution plus confidence.
* :class:`MarketOdds`         — decimal odds from a bookmaker.
* :class:`Edge`               — derived model-vs-market view, never persisted.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Dict, Mapping, Optional

from oddsforge.core.errors import InvalidMatchResult
from oddsforge.core.odds_math import american_to_decimal
from oddsforge.core.outcomes import Outcome, OutcomeDistribution

STATUS_SCHEDULED = "scheduled"
STATUS_LIVE = "live"
STATUS_COMPLETED = "completed"

#: Older feeds report completed matches as "finished".
_COMPLETED_ALIASES = frozenset({STATUS_COMPLETED, "finished"})

RESULT_WIN = "W"
RESULT_DRAW = "D"
RESULT_LOSS = "L"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class Team:
    id: str
    name: str
    sport: str
    league: str
    rating: float
    updated_at: Optional[datetime] = None
    active: bool = True

    def with_rating(self, rating: float, at: Optional[datetime] = None) -> Team:
        return replace(self, rating=rating, updated_at=at or utcnow())


@dataclass(frozen=True, slots=True)
class Match:
    """A fixture between two teams.

    ``home_score`` and ``away_score`` are ``None`` until the match completes.
    ``neutral`` suppresses the home-advantage offset for both rating updates
    and predictions.
    """

    id: str
    home_team_id: str
    away_team_id: str
    sport: str
    scheduled_at: datetime
    status: str = STATUS_SCHEDULED
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    league: str = ""
    neutral: bool = False

    @property
    def is_completed(self) -> bool:
        return self.status in _COMPLETED_ALIASES

    @property
    def is_scheduled(self) -> bool:
        return self.status == STATUS_SCHEDULED

    @property
    def has_scores(self) -> bool:
        return self.home_score is not None and self.away_score is not None

    @property
    def margin(self) -> Optional[int]:
        """Home score minus away score, ``None`` while unplayed."""
        if not self.has_scores:
            return None
        return self.home_score - self.away_score

    def involves(self, team_id: str) -> bool:
        return team_id in (self.home_team_id, self.away_team_id)

    def opponent_of(self, team_id: str) -> str:
        if team_id == self.home_team_id:
            return self.away_team_id
        if team_id == self.away_team_id:
            return self.home_team_id
        raise KeyError(f"Team {team_id!r} did not play in match {self.id!r}")

    def result_for(self, team_id: str) -> Optional[str]:
        """``"W"``, ``"D"`` or ``"L"`` from ``team_id``'s perspective."""
        margin = self.margin
        if margin is None:
            return None
        if team_id == self.away_team_id:
            margin = -margin
        elif team_id != self.home_team_id:
            raise KeyError(f"Team {team_id!r} did not play in match {self.id!r}")
        if margin > 0:
            return RESULT_WIN
        if margin < 0:
            return RESULT_LOSS
        return RESULT_DRAW

    def complete(self, home_score: int, away_score: int) -> Match:
        """Return the completed copy of a scheduled or live match.

        Raises:
            InvalidMatchResult: If the match is already completed or a score
                is negative.
        """
        if self.is_completed:
            raise InvalidMatchResult(f"Match {self.id!r} is already completed")
        if home_score < 0 or away_score < 0:
            raise InvalidMatchResult(
                f"Match {self.id!r}: scores must be non-negative, got {home_score}-{away_score}"
            )
        return replace(
            self, status=STATUS_COMPLETED, home_score=home_score, away_score=away_score
        )


@dataclass(frozen=True, slots=True)
class RatingHistoryPoint:
    team_id: str
    timestamp: datetime
    rating: float
    match_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class Prediction:
    """Model forecast for one match.

    ``components`` records each signal's home-favour probability and weight
    for auditing; it does not affect the distribution.
    """

    match_id: str
    distribution: OutcomeDistribution
    confidence: float
    model_version: str = "ensemble_v1.0"
    created_at: datetime = field(default_factory=utcnow)
    components: Mapping[str, Mapping[str, float]] = field(default_factory=dict)

    @property
    def home_win_probability(self) -> float:
        return self.distribution.probability(Outcome.HOME)

    @property
    def away_win_probability(self) -> float:
        return self.distribution.probability(Outcome.AWAY)

    @property
    def draw_probability(self) -> Optional[float]:
        if not self.distribution.supports_draw:
            return None
        return self.distribution.probability(Outcome.DRAW)


@dataclass(frozen=True, slots=True)
class MarketOdds:
    """Decimal odds for one match from one bookmaker.

    Validation against a specific prediction happens in the edge detector so
    that a partially populated record can still be stored and displayed.
    """

    match_id: str
    home: float
    away: float
    draw: Optional[float] = None
    bookmaker: str = ""
    fetched_at: Optional[datetime] = None
    is_live: bool = False

    @classmethod
    def from_american(
        cls,
        match_id: str,
        home: int,
        away: int,
        draw: Optional[int] = None,
        **kwargs,
    ) -> MarketOdds:
        """Build from American odds, as returned by US-region bookmakers."""
        return cls(
            match_id=match_id,
            home=american_to_decimal(home),
            away=american_to_decimal(away),
            draw=american_to_decimal(draw) if draw is not None else None,
            **kwargs,
        )

    def price(self, outcome: Outcome) -> Optional[float]:
        return getattr(self, outcome.value)

    @property
    def overround(self) -> float:
        """Sum of raw implied probabilities over the quoted outcomes."""
        prices = [p for p in (self.home, self.draw, self.away) if p is not None]
        return math.fsum(1.0 / p for p in prices if p > 0)


@dataclass(frozen=True, slots=True)
class Edge:
    """Model-versus-market disagreement for one match."""

    match_id: str
    prediction: Prediction
    odds: MarketOdds
    market_probabilities: Dict[Outcome, float]
    edges: Dict[Outcome, float]
    dominant_outcome: Outcome
    dominant_edge: float
    severity: str
    devigged: bool
    kelly_fraction: float = 0.0

    def edge_for(self, outcome: Outcome) -> float:
        return self.edges[outcome]
