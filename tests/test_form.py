"""
Tests for form momentum and volatility
Run with: pytest tests/test_form.py -v
"""

import pytest

from oddsforge.core.form import FormAnalyzer, form_string_adjustment
from tests.factories import make_trajectory


class TestShortWindows:

    def test_empty_trajectory(self):
        form = FormAnalyzer().analyze([])
        assert form.momentum == 0.0
        assert form.volatility is None

    def test_single_point(self):
        form = FormAnalyzer().analyze(make_trajectory("a", [1500.0]))
        assert form.momentum == 0.0
        assert form.volatility is None
        assert form.sample_size == 1


class TestMomentum:

    def test_steady_climb(self):
        form = FormAnalyzer().analyze(make_trajectory("a", [1500, 1510, 1520, 1530, 1540]))
        assert form.momentum == pytest.approx(10.0)
        assert form.volatility == pytest.approx(0.0)

    def test_decline_is_negative(self):
        form = FormAnalyzer().analyze(make_trajectory("a", [1540, 1530, 1520]))
        assert form.momentum == pytest.approx(-10.0)

    def test_hot_streak_capped(self):
        form = FormAnalyzer(cap=50).analyze(make_trajectory("a", [1400, 1500, 1600, 1700]))
        assert form.slope == pytest.approx(100.0)
        assert form.momentum == 50.0

    def test_cold_streak_capped(self):
        form = FormAnalyzer(cap=50).analyze(make_trajectory("a", [1700, 1600, 1500]))
        assert form.momentum == -50.0

    def test_scale_applied_before_cap(self):
        form = FormAnalyzer(scale=0.5).analyze(make_trajectory("a", [1500, 1520, 1540]))
        assert form.momentum == pytest.approx(10.0)

    def test_volatility_reflects_swings(self):
        steady = FormAnalyzer().analyze(make_trajectory("a", [1500, 1505, 1510, 1515]))
        choppy = FormAnalyzer().analyze(make_trajectory("a", [1500, 1540, 1490, 1530]))
        assert choppy.volatility > steady.volatility


class TestWindow:

    def test_uses_most_recent_points_only(self):
        # Long decline followed by five flat points
        ratings = [1700, 1650, 1600, 1550, 1500, 1500, 1500, 1500, 1500, 1500]
        form = FormAnalyzer(lookback=5).analyze(make_trajectory("a", ratings))
        assert form.sample_size == 5
        assert form.momentum == pytest.approx(0.0)

    def test_unordered_input_is_sorted(self):
        points = make_trajectory("a", [1500, 1510, 1520])
        form = FormAnalyzer().analyze(list(reversed(points)))
        assert form.momentum == pytest.approx(10.0)

    def test_lookback_must_allow_a_slope(self):
        with pytest.raises(ValueError):
            FormAnalyzer(lookback=1)


class TestFormString:

    def test_recent_results_weigh_more(self):
        assert form_string_adjustment("LW") > form_string_adjustment("WL")

    def test_bounded(self):
        assert 95.0 < form_string_adjustment("W" * 20) <= 100.0
        assert -100.0 <= form_string_adjustment("L" * 20) < -95.0
        assert form_string_adjustment("") == 0.0
