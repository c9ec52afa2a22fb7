"""
Tests for the SQLAlchemy rating store (SQLite)
Run with: pytest tests/test_sql_store.py -v
"""

from datetime import timedelta

import pytest
from sqlalchemy import update

from oddsforge.core.entities import Prediction, RatingHistoryPoint
from oddsforge.core.errors import MissingInput
from oddsforge.core.outcomes import BinaryDistribution, TernaryDistribution
from oddsforge.models import PredictionRow, TeamRow, make_session_factory
from oddsforge.services.pipeline import (
    RatingUpdater,
    generate_predictions,
    record_matches,
    store_context_loader,
)
from oddsforge.services.rating_store import RatingConflict
from oddsforge.services.sql_store import SqlRatingStore
from tests.factories import KICKOFF, make_match, make_team


@pytest.fixture
def session_factory(tmp_path):
    return make_session_factory(f"sqlite:///{tmp_path / 'oddsforge_test.db'}")


@pytest.fixture
def store(session_factory):
    store = SqlRatingStore(session_factory)
    store.add_team(make_team("arsenal", 1600.0))
    store.add_team(make_team("chelsea", 1400.0))
    return store


def bump_version(session_factory, team_id):
    """Simulate another writer committing between our read and write."""
    with session_factory() as session:
        session.execute(
            update(TeamRow).where(TeamRow.id == team_id).values(version=TeamRow.version + 1)
        )
        session.commit()


class TestTeams:

    def test_round_trip(self, store):
        team = store.get("arsenal")
        assert team.rating == 1600.0
        assert team.league == "EPL"
        assert team.updated_at.tzinfo is not None

    def test_unknown_team(self, store):
        with pytest.raises(MissingInput):
            store.get("ghost")

    def test_add_team_replaces(self, store):
        store.add_team(make_team("arsenal", 1650.0))
        assert store.get("arsenal").rating == 1650.0


class TestCompareAndSwap:

    def test_update_bumps_version(self, store, session_factory):
        old, new = store.update("arsenal", lambda r: r + 10.0)
        assert (old, new) == (1600.0, 1610.0)
        with session_factory() as session:
            assert session.get(TeamRow, "arsenal").version == 1

    def test_lost_race_is_retried(self, store, session_factory):
        calls = []

        def contested(rating):
            calls.append(rating)
            if len(calls) == 1:
                bump_version(session_factory, "arsenal")
            return rating + 5.0

        old, new = store.update("arsenal", contested)
        assert len(calls) == 2
        assert new == 1605.0
        assert store.get("arsenal").rating == 1605.0

    def test_gives_up_after_max_retries(self, session_factory):
        store = SqlRatingStore(session_factory, max_retries=3)
        store.add_team(make_team("spurs"))

        def always_contested(rating):
            bump_version(session_factory, "spurs")
            return rating + 1.0

        with pytest.raises(RatingConflict):
            store.update("spurs", always_contested)
        assert store.get("spurs").rating == 1500.0


class TestHistoryAndMatches:

    def test_history_oldest_first(self, store):
        for i in range(4):
            store.append_history(
                RatingHistoryPoint("arsenal", KICKOFF + timedelta(days=i), 1600.0 + i, f"m{i}")
            )
        history = store.history("arsenal", limit=3)
        assert [p.rating for p in history] == [1601.0, 1602.0, 1603.0]
        assert history[0].timestamp == KICKOFF + timedelta(days=1)

    def test_head_to_head_filters_and_orders(self, store):
        store.add_team(make_team("spurs"))
        store.record_match(make_match("old", home_score=1, away_score=0, days_ago=60))
        store.record_match(make_match("new", home="chelsea", away="arsenal",
                                      home_score=0, away_score=2, days_ago=3))
        store.record_match(make_match("fixture"))
        store.record_match(make_match("other", home="spurs", home_score=2, away_score=2))

        meetings = store.head_to_head_results("arsenal", "chelsea")
        assert [m.id for m in meetings] == ["new", "old"]
        assert meetings[0].result_for("arsenal") == "W"

    def test_record_match_overwrites(self, store):
        store.record_match(make_match("m1"))
        store.record_match(make_match("m1").complete(1, 1))
        match = store.get_match("m1")
        assert match.is_completed
        assert (match.home_score, match.away_score) == (1, 1)
        assert [m.id for m in store.matches_with_status("scheduled")] == []

    def test_ingested_records_reach_the_matches_table(self, store):
        summary = record_matches(store, [
            {"id": "f1", "home_team_id": "arsenal", "away_team_id": "chelsea",
             "sport": "football", "scheduled_at": "2025-03-08T15:00:00"},
            {"id": "r1", "home_team_id": "chelsea", "away_team_id": "arsenal",
             "sport": "football", "scheduled_at": "2025-02-01T15:00:00",
             "status": "finished", "home_score": 0, "away_score": 3},
            {"id": "bad", "home_team_id": "arsenal", "away_team_id": "arsenal",
             "sport": "football", "scheduled_at": "2025-02-02T15:00:00"},
        ])
        assert summary.recorded == ["f1", "r1"]
        assert list(summary.rejected) == ["bad"]
        assert [m.id for m in store.matches_with_status("scheduled")] == ["f1"]
        assert store.get_match("r1").result_for("arsenal") == "W"


class TestPredictions:

    def test_upsert_overwrites(self, store, session_factory):
        store.record_match(make_match("m1"))
        first = Prediction("m1", TernaryDistribution(0.5, 0.25, 0.25), 0.6,
                           components={"elo": {"probability": 0.64, "weight": 0.5}})
        second = Prediction("m1", TernaryDistribution(0.4, 0.3, 0.3), 0.7)
        store.save_prediction(first)
        store.save_prediction(second)

        with session_factory() as session:
            assert session.query(PredictionRow).count() == 1

        loaded = store.load_prediction("m1")
        assert loaded.home_win_probability == pytest.approx(0.4)
        assert loaded.confidence == 0.7

    def test_binary_round_trip(self, store):
        store.record_match(make_match("m2"))
        store.save_prediction(Prediction("m2", BinaryDistribution(0.7, 0.3), 0.8))
        loaded = store.load_prediction("m2")
        assert isinstance(loaded.distribution, BinaryDistribution)
        assert loaded.draw_probability is None

    def test_missing_prediction(self, store):
        assert store.load_prediction("nope") is None


class TestEndToEnd:

    def test_results_then_predictions(self, store):
        updater = RatingUpdater(store)
        for i in range(3):
            updater.complete(make_match(f"r{i}", days_ago=30 * (3 - i)), 2, 1)

        fixture = make_match("next")
        store.record_match(fixture)
        summary = generate_predictions(
            store.matches_with_status("scheduled"),
            store_context_loader(store),
            on_prediction=store.save_prediction,
        )

        assert summary.errors == {}
        assert store.load_prediction("next") is not None
        assert store.get("arsenal").rating > 1600.0
        assert len(store.history("arsenal")) == 3
