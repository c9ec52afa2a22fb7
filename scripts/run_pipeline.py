#!/usr/bin/env python3
"""
OddsForge batch runner

  python scripts/run_pipeline.py ratings           # apply completed results
  python scripts/run_pipeline.py predict           # predict scheduled matches
  python scripts/run_pipeline.py edges odds.json   # compare stored predictions with odds
"""

import argparse
import json
import logging
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from dotenv import load_dotenv
load_dotenv()

from pydantic import ValidationError

from oddsforge.core.elo import EloEngine
from oddsforge.core.entities import STATUS_COMPLETED, STATUS_SCHEDULED
from oddsforge.core.errors import InvalidOdds
from oddsforge.ensemble_model import EnsemblePredictor
from oddsforge.models import init_db
from oddsforge.schemas import EdgeOut, MarketOddsIn
from oddsforge.services.edges import EdgeDetector
from oddsforge.services.pipeline import (
    RatingUpdater,
    compute_edges,
    generate_predictions,
    store_context_loader,
)
from oddsforge.services.sql_store import SqlRatingStore
from oddsforge.settings import load_engine_config, load_sport_configs

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
)
logger = logging.getLogger(__name__)


def run_ratings(store: SqlRatingStore, engine: EloEngine) -> int:
    """Apply completed matches that have no rating history yet."""
    updater = RatingUpdater(store, engine)
    pending = [
        m for m in store.matches_with_status(STATUS_COMPLETED, "finished")
        if not _already_rated(store, m.id, m.home_team_id)
    ]
    results = updater.process_all(pending)
    failures = sum(1 for r in results if not r.ok)
    logger.info("Applied %d results (%d with partial failures)", len(results), failures)
    return 1 if failures else 0


def _already_rated(store: SqlRatingStore, match_id: str, team_id: str) -> bool:
    return any(p.match_id == match_id for p in store.history(team_id))


def run_predict(store: SqlRatingStore, engine: EloEngine, workers: int) -> int:
    config = load_engine_config()
    predictor = EnsemblePredictor(config, engine)
    summary = generate_predictions(
        store.matches_with_status(STATUS_SCHEDULED),
        store_context_loader(store, h2h_limit=config.h2h_max_results),
        predictor,
        max_workers=workers,
        on_prediction=store.save_prediction,
    )
    for match_id, error in summary.errors.items():
        logger.warning("No prediction for %s: %s", match_id, error)
    return 1 if summary.errors else 0


def run_edges(store: SqlRatingStore, odds_path: str) -> int:
    with open(odds_path) as fh:
        records = json.load(fh)

    odds_by_match = {}
    for record in records:
        try:
            odds = MarketOddsIn.model_validate(record).to_odds()
        except (ValidationError, InvalidOdds) as exc:
            logger.warning("Skipping odds record for %r: %s", record.get("match_id"), exc)
            continue
        odds_by_match[odds.match_id] = odds

    predictions = {}
    for match_id in odds_by_match:
        prediction = store.load_prediction(match_id)
        if prediction is None:
            logger.warning("No stored prediction for %s", match_id)
            continue
        predictions[match_id] = prediction

    edges = compute_edges(predictions, odds_by_match, EdgeDetector(load_engine_config()))
    report = [EdgeOut.from_edge(mid, edge).model_dump() for mid, edge in edges.items()]
    print(json.dumps(report, indent=2))
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="OddsForge batch runner")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("ratings", help="Apply completed match results to ratings")
    predict = sub.add_parser("predict", help="Predict all scheduled matches")
    predict.add_argument("--workers", type=int, default=None, help="Thread pool size")
    edges = sub.add_parser("edges", help="Compare stored predictions with market odds")
    edges.add_argument("odds_json", help="JSON list of odds records")
    args = parser.parse_args(argv)

    init_db()
    store = SqlRatingStore()
    engine = EloEngine(load_sport_configs())

    if args.command == "ratings":
        return run_ratings(store, engine)
    if args.command == "predict":
        return run_predict(store, engine, args.workers)
    return run_edges(store, args.odds_json)


if __name__ == "__main__":
    sys.exit(main())
