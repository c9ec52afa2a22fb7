"""Builders for core entities used across the test suite."""

from datetime import datetime, timedelta, timezone

from oddsforge.core.entities import (
    STATUS_COMPLETED,
    STATUS_SCHEDULED,
    Match,
    Prediction,
    RatingHistoryPoint,
    Team,
)
from oddsforge.core.outcomes import BinaryDistribution, TernaryDistribution

KICKOFF = datetime(2025, 3, 1, 15, 0, tzinfo=timezone.utc)


def make_team(team_id, rating=1500.0, sport="football", league="EPL"):
    return Team(id=team_id, name=team_id.title(), sport=sport, league=league, rating=rating)


def make_match(
    match_id,
    home="arsenal",
    away="chelsea",
    sport="football",
    home_score=None,
    away_score=None,
    days_ago=0,
    neutral=False,
):
    status = STATUS_COMPLETED if home_score is not None else STATUS_SCHEDULED
    return Match(
        id=match_id,
        home_team_id=home,
        away_team_id=away,
        sport=sport,
        scheduled_at=KICKOFF - timedelta(days=days_ago),
        status=status,
        home_score=home_score,
        away_score=away_score,
        neutral=neutral,
    )


def make_trajectory(team_id, ratings):
    """Rating history points one day apart, oldest first."""
    return [
        RatingHistoryPoint(team_id, KICKOFF - timedelta(days=len(ratings) - i), r)
        for i, r in enumerate(ratings)
    ]


def binary_prediction(home, match_id="m1"):
    return Prediction(
        match_id=match_id,
        distribution=BinaryDistribution(home=home, away=1.0 - home),
        confidence=0.7,
    )


def ternary_prediction(home, draw, away, match_id="m1"):
    return Prediction(
        match_id=match_id,
        distribution=TernaryDistribution(home=home, draw=draw, away=away),
        confidence=0.7,
    )
