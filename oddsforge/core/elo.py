"""ELO rating mathematics.

Expected score
--------------
For team A against team B::

    E_A = 1 / (1 + 10^((R_B − R_A) / 400))

The home side's rating is raised by ``SportConfig.home_advantage`` for this
calculation only.  The offset never reaches a stored rating, so deltas are
exactly zero-sum: the loser receives the negation of the winner's delta.

Margin multiplier
-----------------
A decisive result scales K by ``max(1, log2(|margin| + 1))``:

=========  ==========
 margin    multiplier
=========  ==========
 0 or 1       1.00
 2            1.58
 3            2.00
 7            3.00
=========  ==========

Blowouts move ratings more than narrow wins but with diminishing returns, so
a 7-0 is worth three one-goal wins, not seven.

Every method is pure; rating persistence belongs to
:mod:`oddsforge.services.rating_store`.
"""

from __future__ import annotations

import math
from typing import Dict, Final, Iterable, Optional, Tuple

from oddsforge.core.errors import InvalidMatchResult, MissingInput
from oddsforge.core.outcomes import OutcomeDistribution
from oddsforge.core.sport_config import SportConfig

#: ELO logistic scale: a 400-point gap means 10-to-1 expected odds.
ELO_SCALE: Final[float] = 400.0

#: Exponent clamp keeping ``10 ** x`` inside float range for absurd gaps.
_MAX_EXPONENT: Final[float] = 300.0

SportLike = SportConfig | str


def _require_finite(**ratings: Optional[float]) -> None:
    for name, value in ratings.items():
        if value is None or not math.isfinite(value):
            raise MissingInput(f"{name} must be a finite rating, got {value!r}")


class EloEngine:
    """Pure ELO calculator parameterised by per-sport configuration."""

    def __init__(self, sports: Optional[Iterable[SportConfig]] = None):
        configs = list(sports) if sports is not None else [
            SportConfig.football(),
            SportConfig.basketball(),
        ]
        self._sports: Dict[str, SportConfig] = {c.sport_id: c for c in configs}

    def sport_config(self, sport: SportLike) -> SportConfig:
        """Resolve a sport id (or pass a config through unchanged)."""
        if isinstance(sport, SportConfig):
            return sport
        cfg = self._sports.get(sport)
        return cfg if cfg is not None else SportConfig.for_sport(sport)

    # ------------------------------------------------------------------ #
    #  Core formulas                                                       #
    # ------------------------------------------------------------------ #

    @staticmethod
    def expected_score(rating_a: float, rating_b: float) -> float:
        """Expected score of A against B; identical ratings give exactly 0.5."""
        exponent = (rating_b - rating_a) / ELO_SCALE
        exponent = max(-_MAX_EXPONENT, min(_MAX_EXPONENT, exponent))
        return 1.0 / (1.0 + 10.0 ** exponent)

    @staticmethod
    def margin_multiplier(margin: float) -> float:
        """K scaling for a goal/point differential, floored at 1.0."""
        return max(1.0, math.log2(abs(margin) + 1.0))

    def home_offset(self, sport: SportLike, *, neutral: bool = False) -> float:
        """Rating points added to the home side for expectation purposes."""
        return 0.0 if neutral else self.sport_config(sport).home_advantage

    # ------------------------------------------------------------------ #
    #  Rating updates                                                      #
    # ------------------------------------------------------------------ #

    def update(
        self,
        winner_rating: float,
        loser_rating: float,
        sport: SportLike,
        margin: float,
        *,
        winner_is_home: bool = True,
        neutral: bool = False,
        k_factor: Optional[float] = None,
    ) -> Tuple[float, float]:
        """Rating deltas for a decisive result.

        Args:
            winner_rating: Winner's stored rating before the match.
            loser_rating: Loser's stored rating before the match.
            sport: Sport id or :class:`SportConfig`.
            margin: Winning goal/point differential.  The sign is ignored.
            winner_is_home: Whether the winner played at home.
            neutral: Neutral venue; no home advantage for either side.
            k_factor: Override of the sport's K (see :meth:`adaptive_k_factor`).

        Returns:
            ``(winner_delta, loser_delta)`` with ``loser_delta == -winner_delta``.

        Raises:
            InvalidMatchResult: If ``margin`` is 0; a level score is a draw.
            MissingInput: If either rating is absent or not finite.
        """
        _require_finite(winner_rating=winner_rating, loser_rating=loser_rating)
        if margin == 0:
            raise InvalidMatchResult(
                "Decisive result with zero margin; record it as a draw instead"
            )
        cfg = self.sport_config(sport)
        offset = self.home_offset(cfg, neutral=neutral)
        winner_eff = winner_rating + (offset if winner_is_home else 0.0)
        loser_eff = loser_rating + (0.0 if winner_is_home else offset)

        expected = self.expected_score(winner_eff, loser_eff)
        k = cfg.k_factor if k_factor is None else k_factor
        delta = k * self.margin_multiplier(margin) * (1.0 - expected)
        return delta, -delta

    def update_draw(
        self,
        rating_a: float,
        rating_b: float,
        sport: SportLike,
        *,
        a_is_home: bool = True,
        neutral: bool = False,
        k_factor: Optional[float] = None,
    ) -> Tuple[float, float]:
        """Rating deltas for a drawn match.

        The higher effective rating loses points and the lower one gains
        them; equal effective ratings give ``(0.0, 0.0)``.

        Raises:
            InvalidMatchResult: If the sport does not support draws.
            MissingInput: If either rating is absent or not finite.
        """
        _require_finite(rating_a=rating_a, rating_b=rating_b)
        cfg = self.sport_config(sport)
        if not cfg.supports_draws:
            raise InvalidMatchResult(f"{cfg.sport_id} matches cannot end in a draw")
        offset = self.home_offset(cfg, neutral=neutral)
        a_eff = rating_a + (offset if a_is_home else 0.0)
        b_eff = rating_b + (0.0 if a_is_home else offset)

        expected_a = self.expected_score(a_eff, b_eff)
        k = cfg.k_factor if k_factor is None else k_factor
        delta_a = k * (0.5 - expected_a)
        return delta_a, -delta_a

    def rate_match(
        self,
        home_rating: float,
        away_rating: float,
        home_score: int,
        away_score: int,
        sport: SportLike,
        *,
        neutral: bool = False,
        k_factor: Optional[float] = None,
    ) -> Tuple[float, float]:
        """``(home_delta, away_delta)`` for a final score."""
        if home_score is None or away_score is None:
            raise InvalidMatchResult("Cannot rate a match without a final score")
        margin = home_score - away_score
        if margin == 0:
            return self.update_draw(
                home_rating, away_rating, sport,
                a_is_home=True, neutral=neutral, k_factor=k_factor,
            )
        if margin > 0:
            return self.update(
                home_rating, away_rating, sport, margin,
                winner_is_home=True, neutral=neutral, k_factor=k_factor,
            )
        away_delta, home_delta = self.update(
            away_rating, home_rating, sport, margin,
            winner_is_home=False, neutral=neutral, k_factor=k_factor,
        )
        return home_delta, away_delta

    def adaptive_k_factor(
        self, rating: float, sport: SportLike, importance: float = 1.0
    ) -> float:
        """K damped for established teams and scaled by match importance.

        Ratings above 1600 use 0.8·K, above 1400 use 0.9·K.
        """
        base_k = self.sport_config(sport).k_factor
        if rating > 1600.0:
            rating_factor = 0.8
        elif rating > 1400.0:
            rating_factor = 0.9
        else:
            rating_factor = 1.0
        return base_k * rating_factor * importance

    # ------------------------------------------------------------------ #
    #  Pure ELO forecast                                                   #
    # ------------------------------------------------------------------ #

    def win_probability(
        self,
        home_rating: float,
        away_rating: float,
        sport: SportLike,
        *,
        neutral: bool = False,
    ) -> OutcomeDistribution:
        """Outcome distribution from ratings alone.

        Draw sports reserve ``base_draw`` for the draw and split the rest by
        the expected score.
        """
        _require_finite(home_rating=home_rating, away_rating=away_rating)
        cfg = self.sport_config(sport)
        expected_home = self.expected_score(
            home_rating + self.home_offset(cfg, neutral=neutral), away_rating
        )
        if not cfg.supports_draws:
            return OutcomeDistribution.from_strengths(expected_home, 1.0 - expected_home)
        decisive = 1.0 - cfg.base_draw
        return OutcomeDistribution.from_strengths(
            expected_home * decisive,
            (1.0 - expected_home) * decisive,
            cfg.base_draw,
        )
