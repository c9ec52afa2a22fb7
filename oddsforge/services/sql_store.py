"""
SQLAlchemy-backed rating store.

Rating writes are optimistic: the row is read with its ``version``, the new
rating is computed outside any lock, and the write only lands if the version
is unchanged (``UPDATE ... WHERE id = :id AND version = :seen``).  A lost race
re-reads and retries up to ``max_retries`` times before raising
:class:`~oddsforge.services.rating_store.RatingConflict`.

Datetimes are stored as naive UTC and handed back timezone-aware.
"""

import logging
from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy import and_, or_, update
from sqlalchemy.exc import IntegrityError

from oddsforge.core.entities import (
    STATUS_COMPLETED,
    Match,
    Prediction,
    RatingHistoryPoint,
    Team,
)
from oddsforge.core.errors import MissingInput
from oddsforge.core.outcomes import OutcomeDistribution
from oddsforge.models import (
    MatchRow,
    PredictionRow,
    RatingHistoryRow,
    SessionLocal,
    TeamRow,
)
from oddsforge.services.rating_store import RatingConflict, RatingFn, RatingStore

logger = logging.getLogger(__name__)

_COMPLETED_STATUSES = (STATUS_COMPLETED, "finished")


def _to_db(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None or dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def _from_db(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None or dt.tzinfo is not None:
        return dt
    return dt.replace(tzinfo=timezone.utc)


def _team(row: TeamRow) -> Team:
    return Team(
        id=row.id,
        name=row.name,
        sport=row.sport,
        league=row.league or "",
        rating=row.rating,
        updated_at=_from_db(row.updated_at),
        active=bool(row.active),
    )


def _match(row: MatchRow) -> Match:
    return Match(
        id=row.id,
        home_team_id=row.home_team_id,
        away_team_id=row.away_team_id,
        sport=row.sport,
        scheduled_at=_from_db(row.scheduled_at),
        status=row.status,
        home_score=row.home_score,
        away_score=row.away_score,
        league=row.league or "",
        neutral=bool(row.neutral),
    )


class SqlRatingStore(RatingStore):
    """RatingStore over the ORM tables in :mod:`oddsforge.models`."""

    def __init__(self, session_factory=None, max_retries: int = 5):
        self.Session = session_factory or SessionLocal
        self.max_retries = max_retries

    # ------------------------------------------------------------------
    # Teams and ratings
    # ------------------------------------------------------------------

    def add_team(self, team: Team) -> Team:
        with self.Session() as session:
            row = session.get(TeamRow, team.id)
            if row is None:
                row = TeamRow(id=team.id, version=0)
                session.add(row)
            row.name = team.name
            row.sport = team.sport
            row.league = team.league
            row.rating = team.rating
            row.active = team.active
            row.updated_at = _to_db(team.updated_at) or datetime.utcnow()
            session.commit()
        return team

    def get(self, team_id: str) -> Team:
        with self.Session() as session:
            row = session.get(TeamRow, team_id)
            if row is None:
                raise MissingInput(f"Unknown team {team_id!r}")
            return _team(row)

    def update(self, team_id: str, fn: RatingFn) -> Tuple[float, float]:
        for attempt in range(1, self.max_retries + 1):
            with self.Session() as session:
                row = session.get(TeamRow, team_id)
                if row is None:
                    raise MissingInput(f"Unknown team {team_id!r}")
                old, seen = row.rating, row.version
                new = fn(old)
                result = session.execute(
                    update(TeamRow)
                    .where(and_(TeamRow.id == team_id, TeamRow.version == seen))
                    .values(rating=new, version=seen + 1, updated_at=datetime.utcnow())
                )
                session.commit()
                if result.rowcount == 1:
                    return old, new
            logger.warning(
                "Rating write conflict for %s (attempt %d/%d)",
                team_id, attempt, self.max_retries,
            )
        raise RatingConflict(
            f"Could not update {team_id!r} after {self.max_retries} attempts"
        )

    # ------------------------------------------------------------------
    # History and results
    # ------------------------------------------------------------------

    def append_history(self, point: RatingHistoryPoint) -> None:
        with self.Session() as session:
            session.add(
                RatingHistoryRow(
                    team_id=point.team_id,
                    match_id=point.match_id,
                    timestamp=_to_db(point.timestamp),
                    rating=point.rating,
                )
            )
            session.commit()

    def history(self, team_id: str, limit: Optional[int] = None) -> List[RatingHistoryPoint]:
        with self.Session() as session:
            query = (
                session.query(RatingHistoryRow)
                .filter(RatingHistoryRow.team_id == team_id)
                .order_by(RatingHistoryRow.timestamp.desc(), RatingHistoryRow.id.desc())
            )
            if limit is not None:
                query = query.limit(max(limit, 0))
            rows = query.all()
            points = [
                RatingHistoryPoint(
                    team_id=r.team_id,
                    timestamp=_from_db(r.timestamp),
                    rating=r.rating,
                    match_id=r.match_id,
                )
                for r in rows
            ]
        points.reverse()
        return points

    def record_match(self, match: Match) -> None:
        with self.Session() as session:
            session.merge(
                MatchRow(
                    id=match.id,
                    home_team_id=match.home_team_id,
                    away_team_id=match.away_team_id,
                    sport=match.sport,
                    league=match.league,
                    scheduled_at=_to_db(match.scheduled_at),
                    status=match.status,
                    neutral=match.neutral,
                    home_score=match.home_score,
                    away_score=match.away_score,
                )
            )
            session.commit()

    def get_match(self, match_id: str) -> Match:
        with self.Session() as session:
            row = session.get(MatchRow, match_id)
            if row is None:
                raise MissingInput(f"Unknown match {match_id!r}")
            return _match(row)

    def matches_with_status(self, *statuses: str) -> List[Match]:
        """Matches in any of ``statuses``, oldest first."""
        with self.Session() as session:
            rows = (
                session.query(MatchRow)
                .filter(MatchRow.status.in_(statuses))
                .order_by(MatchRow.scheduled_at.asc())
                .all()
            )
            return [_match(r) for r in rows]

    def head_to_head_results(
        self, team_a_id: str, team_b_id: str, limit: int = 10
    ) -> List[Match]:
        with self.Session() as session:
            rows = (
                session.query(MatchRow)
                .filter(
                    MatchRow.status.in_(_COMPLETED_STATUSES),
                    MatchRow.home_score.isnot(None),
                    MatchRow.away_score.isnot(None),
                    or_(
                        and_(MatchRow.home_team_id == team_a_id, MatchRow.away_team_id == team_b_id),
                        and_(MatchRow.home_team_id == team_b_id, MatchRow.away_team_id == team_a_id),
                    ),
                )
                .order_by(MatchRow.scheduled_at.desc())
                .limit(limit)
                .all()
            )
            return [_match(r) for r in rows]

    # ------------------------------------------------------------------
    # Predictions
    # ------------------------------------------------------------------

    def save_prediction(self, prediction: Prediction) -> None:
        """Insert or overwrite the prediction for its match."""
        for attempt in range(2):
            with self.Session() as session:
                row = (
                    session.query(PredictionRow)
                    .filter(PredictionRow.match_id == prediction.match_id)
                    .one_or_none()
                )
                if row is None:
                    row = PredictionRow(match_id=prediction.match_id)
                    session.add(row)
                row.model_version = prediction.model_version
                row.home_probability = prediction.home_win_probability
                row.draw_probability = prediction.draw_probability
                row.away_probability = prediction.away_win_probability
                row.confidence = prediction.confidence
                row.components = {k: dict(v) for k, v in prediction.components.items()}
                row.created_at = _to_db(prediction.created_at)
                try:
                    session.commit()
                    return
                except IntegrityError:
                    # Concurrent insert for the same match; retry as an update.
                    session.rollback()
                    if attempt:
                        raise

    def load_prediction(self, match_id: str) -> Optional[Prediction]:
        with self.Session() as session:
            row = (
                session.query(PredictionRow)
                .filter(PredictionRow.match_id == match_id)
                .one_or_none()
            )
            if row is None:
                return None
            return Prediction(
                match_id=row.match_id,
                distribution=OutcomeDistribution.from_strengths(
                    row.home_probability, row.away_probability, row.draw_probability
                ),
                confidence=row.confidence,
                model_version=row.model_version,
                created_at=_from_db(row.created_at),
                components=row.components or {},
            )
