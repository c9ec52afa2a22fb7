"""
Tests for edge detection
Run with: pytest tests/test_edges.py -v
"""

import pytest

from oddsforge.core.entities import MarketOdds
from oddsforge.core.errors import InvalidOdds
from oddsforge.core.outcomes import Outcome
from oddsforge.core.sport_config import EngineConfig
from oddsforge.services.edges import EdgeDetector, classify_severity
from tests.factories import binary_prediction, ternary_prediction


@pytest.fixture
def detector():
    return EdgeDetector()


class TestSeverity:

    def test_thresholds(self):
        assert classify_severity(0.20) == "high"
        assert classify_severity(0.10) == "medium"
        assert classify_severity(0.05) == "low"

    def test_boundaries_are_strict(self):
        assert classify_severity(0.08) == "low"
        assert classify_severity(0.0801) == "medium"
        assert classify_severity(0.1501) == "high"

    def test_negative_edges_by_magnitude(self):
        assert classify_severity(-0.20) == "high"
        assert classify_severity(-0.10) == "medium"

    def test_configurable(self):
        assert classify_severity(0.06, high=0.1, medium=0.05) == "medium"
        detector = EdgeDetector(EngineConfig(severity_high=0.05, severity_medium=0.02))
        assert detector.severity(0.06) == "high"


class TestEdge:

    def test_home_edge_example(self, detector):
        # Even-money market, model says 65% home
        edge = detector.edge(binary_prediction(0.65), MarketOdds("m1", home=2.0, away=2.0))
        assert edge.edge_for(Outcome.HOME) == pytest.approx(0.15)
        assert edge.dominant_outcome == Outcome.HOME
        assert edge.severity == "high"

    def test_edges_are_signed(self, detector):
        edge = detector.edge(binary_prediction(0.40), MarketOdds("m1", home=2.0, away=2.0))
        assert edge.edge_for(Outcome.HOME) == pytest.approx(-0.10)
        assert edge.edge_for(Outcome.AWAY) == pytest.approx(0.10)

    def test_dominant_is_largest_magnitude(self, detector):
        pred = ternary_prediction(0.30, 0.25, 0.45)
        odds = MarketOdds("m1", home=2.5, draw=4.0, away=4.0)  # 0.4 / 0.25 / 0.25 + vig
        edge = detector.edge(pred, odds)
        assert edge.dominant_outcome == Outcome.AWAY
        assert edge.dominant_edge > 0

    def test_tie_prefers_home_then_draw(self, detector):
        home_tie = detector.edge(binary_prediction(0.75), MarketOdds("m1", home=2.0, away=2.0))
        assert home_tie.dominant_outcome == Outcome.HOME

        pred = ternary_prediction(0.25, 0.5, 0.25)
        draw_tie = detector.edge(pred, MarketOdds("m1", home=4.0, draw=4.0, away=2.0))
        assert draw_tie.dominant_outcome == Outcome.DRAW

    def test_draw_odds_ignored_for_binary_prediction(self, detector):
        edge = detector.edge(
            binary_prediction(0.5), MarketOdds("m1", home=2.0, away=2.0, draw=3.0)
        )
        assert set(edge.edges) == {Outcome.HOME, Outcome.AWAY}

    def test_recomputation_is_identical(self, detector):
        pred = ternary_prediction(0.5, 0.25, 0.25)
        odds = MarketOdds("m1", home=2.1, draw=3.4, away=3.6)
        assert detector.edge(pred, odds) == detector.edge(pred, odds)


class TestDevig:

    def test_devigged_market_sums_to_one(self, detector):
        pred = ternary_prediction(0.5, 0.25, 0.25)
        edge = detector.edge(pred, MarketOdds("m1", home=1.9, draw=3.3, away=4.2))
        assert edge.devigged is True
        assert sum(edge.market_probabilities.values()) == pytest.approx(1.0)

    def test_raw_inversion_when_disabled(self):
        detector = EdgeDetector(EngineConfig(devig=False))
        edge = detector.edge(binary_prediction(0.5), MarketOdds("m1", home=1.9, away=1.9))
        assert edge.devigged is False
        assert edge.market_probabilities[Outcome.HOME] == pytest.approx(1 / 1.9)
        assert sum(edge.market_probabilities.values()) > 1.0

    def test_vig_lowers_raw_edges(self):
        pred = binary_prediction(0.55)
        odds = MarketOdds("m1", home=1.9, away=1.9)
        raw = EdgeDetector(EngineConfig(devig=False)).edge(pred, odds)
        fair = EdgeDetector().edge(pred, odds)
        assert raw.edge_for(Outcome.HOME) < fair.edge_for(Outcome.HOME)


class TestInvalidOdds:

    def test_missing_draw_for_ternary(self, detector):
        with pytest.raises(InvalidOdds):
            detector.edge(ternary_prediction(0.5, 0.25, 0.25), MarketOdds("m1", home=2.0, away=3.0))

    @pytest.mark.parametrize("bad", [1.0, 0.5, -2.0, float("nan"), float("inf")])
    def test_unusable_prices(self, detector, bad):
        with pytest.raises(InvalidOdds):
            detector.edge(binary_prediction(0.5), MarketOdds("m1", home=bad, away=2.0))

    def test_odds_for_another_match(self, detector):
        with pytest.raises(InvalidOdds):
            detector.edge(binary_prediction(0.5), MarketOdds("other", home=2.0, away=2.0))

    def test_edge_or_none(self, detector):
        pred = binary_prediction(0.5)
        assert detector.edge_or_none(pred, None) is None
        assert detector.edge_or_none(pred, MarketOdds("m1", home=1.0, away=2.0)) is None
        assert detector.edge_or_none(pred, MarketOdds("m1", home=2.0, away=2.0)) is not None


class TestKelly:

    def test_positive_edge_sizes_stake(self, detector):
        edge = detector.edge(binary_prediction(0.6), MarketOdds("m1", home=2.0, away=2.0))
        assert edge.kelly_fraction == pytest.approx(0.2)

    def test_stake_capped(self):
        detector = EdgeDetector(EngineConfig(kelly_cap=0.1))
        edge = detector.edge(binary_prediction(0.8), MarketOdds("m1", home=2.0, away=2.0))
        assert edge.kelly_fraction == pytest.approx(0.1)

    def test_negative_dominant_edge_no_stake(self, detector):
        # Model fancies neither side more than the market on the dominant outcome
        pred = ternary_prediction(0.2, 0.4, 0.4)
        edge = detector.edge(pred, MarketOdds("m1", home=2.0, draw=4.0, away=4.0))
        assert edge.dominant_outcome == Outcome.HOME
        assert edge.dominant_edge < 0
        assert edge.kelly_fraction == 0.0
