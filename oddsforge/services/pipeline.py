"""
Batch orchestration: match ingestion, rating updates after results,
prediction runs for upcoming fixtures, and edge reports against market
odds.

Rating updates
--------------
A completed match changes the ratings of its two teams exactly once.  Both
deltas are computed from the pre-match ratings, then each side is applied
through ``RatingStore.update`` independently: if one side fails the other is
still applied, and the failure is logged and returned in the
:class:`RatingUpdateResult`.

Ingestion
---------
``record_matches`` validates raw fixture and result records through
:class:`~oddsforge.schemas.MatchIn` before they reach the store; bad records
are logged and reported, never stored.

Prediction runs
---------------
``generate_predictions`` fans scheduled matches out over a thread pool.  A
match whose inputs are missing or invalid is recorded in
``BatchSummary.errors`` and the rest of the batch carries on.
"""

import logging
import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from pydantic import ValidationError

from oddsforge.core.elo import EloEngine
from oddsforge.core.entities import (
    Edge,
    MarketOdds,
    Match,
    Prediction,
    RatingHistoryPoint,
    Team,
    utcnow,
)
from oddsforge.core.errors import InvalidMatchResult, MissingInput, OddsForgeError
from oddsforge.ensemble_model import EnsemblePredictor, HistoryContext
from oddsforge.schemas import MatchIn
from oddsforge.services.edges import EdgeDetector
from oddsforge.services.rating_store import RatingStore

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Ingestion
# ---------------------------------------------------------------------------

@dataclass
class IngestSummary:
    recorded: List[str] = field(default_factory=list)
    rejected: Dict[str, str] = field(default_factory=dict)


def record_matches(store: RatingStore, records: Iterable[Mapping]) -> IngestSummary:
    """
    Validate raw fixture/result records and store the good ones.

    A record is rejected (logged, kept in ``rejected`` under its id) when it
    fails schema validation, describes an impossible result, or names a team
    the store does not know.
    """
    summary = IngestSummary()
    for index, record in enumerate(records):
        key = str(record.get("id") or f"#{index}")
        try:
            match = MatchIn.model_validate(record).to_match()
            for team_id in (match.home_team_id, match.away_team_id):
                if store.get(team_id).sport != match.sport:
                    raise MissingInput(f"Team {team_id!r} does not play {match.sport}")
        except (ValidationError, OddsForgeError) as exc:
            logger.warning("Skipping match record %s: %s", key, exc)
            summary.rejected[key] = str(exc)
            continue
        store.record_match(match)
        summary.recorded.append(match.id)

    logger.info(
        "Recorded %d matches (%d rejected)", len(summary.recorded), len(summary.rejected)
    )
    return summary


# ---------------------------------------------------------------------------
# Rating updates
# ---------------------------------------------------------------------------

@dataclass
class RatingUpdateResult:
    match_id: str
    home_delta: float
    away_delta: float
    ratings: Dict[str, Tuple[float, float]] = field(default_factory=dict)
    failures: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failures


def apply_completed_match(
    store: RatingStore,
    engine: EloEngine,
    match: Match,
    k_factor: Optional[float] = None,
) -> RatingUpdateResult:
    """
    Apply one completed match to the store.

    Raises:
        InvalidMatchResult: the match is not completed, has no score, or is
            a draw in a sport without draws.  Nothing is written.
        MissingInput: either team is unknown to the store.
    """
    if not match.is_completed or not match.has_scores:
        raise InvalidMatchResult(
            f"Match {match.id!r} is {match.status!r} without a final score; "
            "ratings change only on completion"
        )

    home = store.get(match.home_team_id)
    away = store.get(match.away_team_id)
    home_delta, away_delta = engine.rate_match(
        home.rating,
        away.rating,
        match.home_score,
        match.away_score,
        match.sport,
        neutral=match.neutral,
        k_factor=k_factor,
    )

    result = RatingUpdateResult(match.id, home_delta, away_delta)
    at = utcnow()
    for team_id, delta in ((home.id, home_delta), (away.id, away_delta)):
        try:
            old, new = store.update(team_id, lambda rating, d=delta: rating + d)
            store.append_history(RatingHistoryPoint(team_id, at, new, match.id))
        except Exception as exc:
            logger.error(
                "Rating update failed for %s in match %s: %s",
                team_id, match.id, exc, exc_info=True,
            )
            result.failures[team_id] = str(exc)
            continue
        result.ratings[team_id] = (old, new)

    if result.ratings:
        logger.info(
            "Updated ratings: %s",
            ", ".join(
                "%s (%.1f -> %.1f)" % (team_id, old, new)
                for team_id, (old, new) in result.ratings.items()
            ),
        )
    return result


class RatingUpdater:
    """Applies each completed match to a store at most once."""

    def __init__(self, store: RatingStore, engine: Optional[EloEngine] = None):
        self.store = store
        self.engine = engine or EloEngine()
        self._processed: set = set()
        self._lock = threading.Lock()

    def is_processed(self, match_id: str) -> bool:
        with self._lock:
            return match_id in self._processed

    def process(self, match: Match) -> Optional[RatingUpdateResult]:
        """Update ratings for a completed match; ``None`` if already applied."""
        with self._lock:
            if match.id in self._processed:
                logger.debug("Match %s already applied, skipping", match.id)
                return None
            self._processed.add(match.id)

        try:
            result = apply_completed_match(self.store, self.engine, match)
        except Exception:
            with self._lock:
                self._processed.discard(match.id)
            raise
        if not result.ratings:
            # Neither side was written
            with self._lock:
                self._processed.discard(match.id)
            return result
        self.store.record_match(match)
        return result

    def complete(self, match: Match, home_score: int, away_score: int) -> RatingUpdateResult:
        """Transition a fixture to completed and apply its result."""
        completed = match.complete(home_score, away_score)
        result = self.process(completed)
        if result is None:
            raise InvalidMatchResult(f"Match {match.id!r} was already applied")
        return result

    def process_all(self, matches: Iterable[Match]) -> List[RatingUpdateResult]:
        """Chronological backfill over completed matches; others are ignored."""
        results: List[RatingUpdateResult] = []
        completed = sorted(
            (m for m in matches if m.is_completed), key=lambda m: m.scheduled_at
        )
        for match in completed:
            try:
                result = self.process(match)
            except OddsForgeError as exc:
                logger.error("Skipping match %s: %s", match.id, exc)
                continue
            if result is not None:
                results.append(result)
        return results


# ---------------------------------------------------------------------------
# Prediction runs
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class MatchInputs:
    home_team: Team
    away_team: Team
    history: HistoryContext


ContextLoader = Callable[[Match], MatchInputs]


def store_context_loader(
    store: RatingStore,
    h2h_limit: int = 10,
    history_limit: int = 20,
) -> ContextLoader:
    """Loader that reads teams, meetings and trajectories from a store."""

    def load(match: Match) -> MatchInputs:
        return MatchInputs(
            home_team=store.get(match.home_team_id),
            away_team=store.get(match.away_team_id),
            history=HistoryContext(
                match_id=match.id,
                head_to_head=store.head_to_head_results(
                    match.home_team_id, match.away_team_id, limit=h2h_limit
                ),
                home_trajectory=store.history(match.home_team_id, limit=history_limit),
                away_trajectory=store.history(match.away_team_id, limit=history_limit),
                neutral=match.neutral,
            ),
        )

    return load


@dataclass
class BatchSummary:
    predictions: Dict[str, Prediction] = field(default_factory=dict)
    errors: Dict[str, str] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def matches_predicted(self) -> int:
        return len(self.predictions)


def _predict_one(
    match: Match, load_context: ContextLoader, predictor: EnsemblePredictor
) -> Prediction:
    inputs = load_context(match)
    return predictor.predict(inputs.home_team, inputs.away_team, match.sport, inputs.history)


def generate_predictions(
    matches: Iterable[Match],
    load_context: ContextLoader,
    predictor: Optional[EnsemblePredictor] = None,
    max_workers: Optional[int] = None,
    on_prediction: Optional[Callable[[Prediction], None]] = None,
) -> BatchSummary:
    """
    Predict every scheduled match in ``matches``.

    Args:
        matches: fixtures; anything not scheduled is skipped
        load_context: resolves teams and history for one match
        predictor: ensemble (default configuration if omitted)
        max_workers: thread pool size, ``os.cpu_count()`` when omitted
        on_prediction: called once per successful prediction, e.g. to
            persist it; a failure here is recorded like a prediction error
    """
    predictor = predictor or EnsemblePredictor()
    start = time.perf_counter()
    summary = BatchSummary()

    scheduled: List[Match] = []
    for match in matches:
        if match.is_scheduled:
            scheduled.append(match)
        else:
            summary.skipped.append(match.id)

    logger.info(
        "Generating predictions for %d matches (%d skipped)",
        len(scheduled), len(summary.skipped),
    )

    workers = max_workers or os.cpu_count() or 1
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = {
            executor.submit(_predict_one, match, load_context, predictor): match
            for match in scheduled
        }
        for future in as_completed(futures):
            match = futures[future]
            try:
                prediction = future.result()
                if on_prediction is not None:
                    on_prediction(prediction)
            except OddsForgeError as exc:
                logger.warning("Prediction failed for match %s: %s", match.id, exc)
                summary.errors[match.id] = str(exc)
                continue
            except Exception as exc:
                logger.error(
                    "Prediction failed for match %s: %s", match.id, exc, exc_info=True
                )
                summary.errors[match.id] = str(exc)
                continue
            summary.predictions[match.id] = prediction

    summary.duration_seconds = time.perf_counter() - start
    logger.info(
        "Prediction run complete: %d predicted, %d errors in %.2fs",
        summary.matches_predicted, len(summary.errors), summary.duration_seconds,
    )
    return summary


# ---------------------------------------------------------------------------
# Edge reports
# ---------------------------------------------------------------------------

def compute_edges(
    predictions: Mapping[str, Prediction],
    odds_by_match: Mapping[str, MarketOdds],
    detector: Optional[EdgeDetector] = None,
) -> Dict[str, Optional[Edge]]:
    """Edge per match id; ``None`` marks an edge that is unavailable."""
    detector = detector or EdgeDetector()
    edges = {
        match_id: detector.edge_or_none(prediction, odds_by_match.get(match_id))
        for match_id, prediction in predictions.items()
    }
    flagged = sum(1 for e in edges.values() if e is not None and e.severity != "low")
    logger.info("Edges computed for %d matches (%d medium or high)", len(edges), flagged)
    return edges
