"""
Tests for outcome distributions and config validation
Run with: pytest tests/test_outcomes.py -v
"""

from dataclasses import replace

import pytest

from oddsforge.core.entities import Match, utcnow
from oddsforge.core.errors import InvalidMatchResult, MissingInput, NumericDrift
from oddsforge.core.outcomes import (
    BinaryDistribution,
    Outcome,
    OutcomeDistribution,
    TernaryDistribution,
    normalize,
)
from oddsforge.core.sport_config import EngineConfig, EnsembleWeights, SportConfig
from tests.factories import make_match


class TestNormalize:

    def test_sums_to_one(self):
        assert sum(normalize((3.0, 1.0))) == pytest.approx(1.0)
        assert normalize((3.0, 1.0)) == pytest.approx((0.75, 0.25))

    def test_rejects_negative(self):
        with pytest.raises(ValueError):
            normalize((0.5, -0.1))

    def test_rejects_all_zero(self):
        with pytest.raises(ValueError):
            normalize((0.0, 0.0, 0.0))

    def test_rejects_nan(self):
        with pytest.raises(ValueError):
            normalize((float("nan"), 1.0))


class TestDistributions:

    def test_from_strengths_picks_variant(self):
        assert isinstance(OutcomeDistribution.from_strengths(1, 1), BinaryDistribution)
        assert isinstance(OutcomeDistribution.from_strengths(1, 1, 1), TernaryDistribution)

    def test_binary_has_no_draw(self):
        dist = BinaryDistribution(home=0.6, away=0.4)
        assert not dist.supports_draw
        with pytest.raises(KeyError):
            dist.probability(Outcome.DRAW)

    def test_ternary_as_dict(self):
        dist = TernaryDistribution(home=0.5, draw=0.25, away=0.25)
        assert dist.as_dict() == {"home": 0.5, "draw": 0.25, "away": 0.25}

    def test_bad_sum_rejected(self):
        with pytest.raises(NumericDrift) as exc_info:
            TernaryDistribution(home=0.5, draw=0.5, away=0.5)
        assert exc_info.value.total == pytest.approx(1.5)

    def test_drift_is_a_value_error(self):
        with pytest.raises(ValueError):
            BinaryDistribution(home=0.9, away=0.9)

    def test_frozen(self):
        dist = BinaryDistribution(home=0.6, away=0.4)
        with pytest.raises(AttributeError):
            dist.home = 0.7


class TestSportConfig:

    def test_football_defaults(self):
        cfg = SportConfig.football()
        assert cfg.supports_draws
        assert cfg.base_draw == 0.25
        assert cfg.k_factor == 32.0
        assert cfg.home_advantage == 100.0

    def test_league_seed_ratings(self):
        assert SportConfig.football().initial_rating("Champions League") == 1400.0
        assert SportConfig.football().initial_rating("EPL") == 1300.0
        assert SportConfig.basketball().initial_rating("NBA") == 1200.0
        assert SportConfig.basketball().initial_rating("EuroLeague") == 1200.0

    def test_unknown_sport(self):
        with pytest.raises(MissingInput):
            SportConfig.for_sport("cricket")

    def test_draw_share_requires_draw_sport(self):
        with pytest.raises(ValueError):
            replace(SportConfig.basketball(), base_draw=0.1)

    def test_neutral_site(self):
        assert SportConfig.football().neutral_site().home_advantage == 0.0

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValueError):
            EnsembleWeights(elo=0.5, head_to_head=0.5, form=0.5)

    def test_engine_config_thresholds(self):
        with pytest.raises(ValueError):
            EngineConfig(severity_high=0.05, severity_medium=0.1)


class TestMatchTransitions:

    def test_complete_scheduled_match(self):
        match = make_match("m1")
        done = match.complete(2, 1)
        assert done.is_completed
        assert done.margin == 1
        assert done.result_for("chelsea") == "L"
        assert match.is_scheduled

    def test_cannot_complete_twice(self):
        done = make_match("m1").complete(2, 1)
        with pytest.raises(InvalidMatchResult):
            done.complete(3, 1)

    def test_negative_score_rejected(self):
        with pytest.raises(InvalidMatchResult):
            make_match("m1").complete(-1, 0)

    def test_finished_alias(self):
        match = Match("m1", "a", "b", "football", utcnow(), status="finished",
                      home_score=0, away_score=0)
        assert match.is_completed
        assert match.result_for("a") == "D"

    def test_opponent_lookup(self):
        match = make_match("m1")
        assert match.opponent_of("arsenal") == "chelsea"
        with pytest.raises(KeyError):
            match.opponent_of("spurs")
