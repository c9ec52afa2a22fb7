"""
Pydantic ingestion and output schemas for OddsForge.

Incoming team, match and odds records are validated here before they become
core entities.  Shape errors (types, ranges, unknown sports) surface as
pydantic ``ValidationError``; result consistency is checked when a
:class:`MatchIn` is converted, raising
:class:`~oddsforge.core.errors.InvalidMatchResult`.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationInfo, field_validator

from oddsforge.core.entities import (
    STATUS_COMPLETED,
    STATUS_LIVE,
    STATUS_SCHEDULED,
    Edge,
    MarketOdds,
    Match,
    Prediction,
    Team,
)
from oddsforge.core.errors import InvalidMatchResult, MissingInput
from oddsforge.core.sport_config import SportConfig


def _canonical_sport(v: str) -> str:
    try:
        return SportConfig.for_sport(v).sport_id
    except MissingInput as exc:
        raise ValueError(str(exc)) from None


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------

class TeamIn(BaseModel):
    """Team record from a feed.  A missing rating seeds from the league."""

    id: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1, max_length=120)
    sport: str
    league: str = ""
    rating: Optional[float] = Field(None, description="Omit to use the league seed rating")
    active: bool = True

    @field_validator("sport")
    @classmethod
    def validate_sport(cls, v: str) -> str:
        return _canonical_sport(v)

    @field_validator("rating")
    @classmethod
    def validate_rating(cls, v: Optional[float]) -> Optional[float]:
        if v is not None and not (0 < v < 10_000):
            raise ValueError(f"rating={v} is outside the plausible range (0, 10000)")
        return v

    def to_team(self) -> Team:
        rating = self.rating
        if rating is None:
            rating = SportConfig.for_sport(self.sport).initial_rating(self.league)
        return Team(
            id=self.id,
            name=self.name,
            sport=self.sport,
            league=self.league,
            rating=rating,
            active=self.active,
        )


class MatchIn(BaseModel):
    """Fixture or result from a feed."""

    id: str = Field(..., min_length=1)
    home_team_id: str = Field(..., min_length=1)
    away_team_id: str = Field(..., min_length=1)
    sport: str
    league: str = ""
    scheduled_at: datetime
    status: Literal["scheduled", "live", "completed", "finished"] = STATUS_SCHEDULED
    home_score: Optional[int] = Field(None, ge=0)
    away_score: Optional[int] = Field(None, ge=0)
    neutral: bool = False

    @field_validator("sport")
    @classmethod
    def validate_sport(cls, v: str) -> str:
        return _canonical_sport(v)

    @field_validator("scheduled_at")
    @classmethod
    def assume_utc(cls, v: datetime) -> datetime:
        return v if v.tzinfo is not None else v.replace(tzinfo=timezone.utc)

    def to_match(self) -> Match:
        """
        Core Match value.

        Raises:
            InvalidMatchResult: a team plays itself, a completed match lacks a
                score, a scheduled match carries one, or a level score is
                reported for a sport without draws
        """
        if self.home_team_id == self.away_team_id:
            raise InvalidMatchResult(f"Match {self.id!r}: a team cannot play itself")

        has_scores = self.home_score is not None and self.away_score is not None
        status = STATUS_COMPLETED if self.status == "finished" else self.status
        if status == STATUS_COMPLETED and not has_scores:
            raise InvalidMatchResult(f"Match {self.id!r} is completed without a final score")
        if status == STATUS_SCHEDULED and (
            self.home_score is not None or self.away_score is not None
        ):
            raise InvalidMatchResult(f"Match {self.id!r} is scheduled but has a score")
        if (
            status == STATUS_COMPLETED
            and self.home_score == self.away_score
            and not SportConfig.for_sport(self.sport).supports_draws
        ):
            raise InvalidMatchResult(
                f"Match {self.id!r}: {self.sport} cannot end "
                f"{self.home_score}-{self.away_score}"
            )

        return Match(
            id=self.id,
            home_team_id=self.home_team_id,
            away_team_id=self.away_team_id,
            sport=self.sport,
            scheduled_at=self.scheduled_at,
            status=status,
            home_score=self.home_score if status in (STATUS_COMPLETED, STATUS_LIVE) else None,
            away_score=self.away_score if status in (STATUS_COMPLETED, STATUS_LIVE) else None,
            league=self.league,
            neutral=self.neutral,
        )


class MarketOddsIn(BaseModel):
    """Bookmaker prices for one match, in decimal or American format."""

    match_id: str = Field(..., min_length=1)
    format: Literal["decimal", "american"] = "decimal"
    home: float
    away: float
    draw: Optional[float] = None
    bookmaker: str = ""
    fetched_at: Optional[datetime] = None
    is_live: bool = False

    @field_validator("home", "away", "draw")
    @classmethod
    def validate_price(cls, v: Optional[float], info: ValidationInfo) -> Optional[float]:
        if v is None:
            return v
        if not math.isfinite(v):
            raise ValueError("odds must be finite")
        if info.data.get("format", "decimal") == "decimal" and v <= 1.0:
            raise ValueError(f"decimal odds must be greater than 1.0, got {v}")
        return v

    def to_odds(self) -> MarketOdds:
        """
        Core MarketOdds value with decimal prices.

        Raises:
            InvalidOdds: American odds inside (-100, 100)
        """
        if self.format == "american":
            return MarketOdds.from_american(
                self.match_id,
                int(self.home),
                int(self.away),
                int(self.draw) if self.draw is not None else None,
                bookmaker=self.bookmaker,
                fetched_at=self.fetched_at,
                is_live=self.is_live,
            )
        return MarketOdds(
            match_id=self.match_id,
            home=self.home,
            away=self.away,
            draw=self.draw,
            bookmaker=self.bookmaker,
            fetched_at=self.fetched_at,
            is_live=self.is_live,
        )


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

class PredictionOut(BaseModel):
    """Serializable view of a Prediction."""

    match_id: str
    model_version: str
    home_probability: float
    draw_probability: Optional[float]
    away_probability: float
    confidence: float
    created_at: datetime
    components: dict

    @classmethod
    def from_prediction(cls, prediction: Prediction) -> PredictionOut:
        return cls(
            match_id=prediction.match_id,
            model_version=prediction.model_version,
            home_probability=prediction.home_win_probability,
            draw_probability=prediction.draw_probability,
            away_probability=prediction.away_win_probability,
            confidence=prediction.confidence,
            created_at=prediction.created_at,
            components={k: dict(v) for k, v in prediction.components.items()},
        )


class EdgeOut(BaseModel):
    """Serializable view of an Edge; ``available`` is False when odds were unusable."""

    match_id: str
    available: bool
    dominant_outcome: Optional[str] = None
    dominant_edge: Optional[float] = None
    severity: Optional[str] = None
    devigged: Optional[bool] = None
    kelly_fraction: Optional[float] = None
    edges: dict[str, float] = Field(default_factory=dict)
    market_probabilities: dict[str, float] = Field(default_factory=dict)

    @classmethod
    def from_edge(cls, match_id: str, edge: Optional[Edge]) -> EdgeOut:
        if edge is None:
            return cls(match_id=match_id, available=False)
        return cls(
            match_id=match_id,
            available=True,
            dominant_outcome=edge.dominant_outcome.value,
            dominant_edge=edge.dominant_edge,
            severity=edge.severity,
            devigged=edge.devigged,
            kelly_fraction=edge.kelly_fraction,
            edges={o.value: v for o, v in edge.edges.items()},
            market_probabilities={o.value: p for o, p in edge.market_probabilities.items()},
        )
