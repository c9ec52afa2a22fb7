"""
Ensemble match predictor - ensemble_v1.0

Three independent signals, combined with fixed weights:
- ELO: logistic of the rating differential including home advantage and
  recent momentum (0.5)
- Head-to-head: regressed tendency from past meetings (0.3)
- Form: logistic of the momentum differential alone (0.2)

Draw sports reserve a base draw share and split the remainder by the
combined home strength; binary sports normalise home/away only.

Confidence is driven by agreement between the signals and by the size of the
effective rating gap, and is clamped to [0.5, 0.999].
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from oddsforge.core.elo import EloEngine, SportLike
from oddsforge.core.entities import Match, Prediction, RatingHistoryPoint, Team, utcnow
from oddsforge.core.errors import MissingInput, NumericDrift
from oddsforge.core.form import FormAnalyzer
from oddsforge.core.head_to_head import HeadToHeadAnalyzer
from oddsforge.core.outcomes import OutcomeDistribution
from oddsforge.core.signals import (
    EloSignal,
    FormSignal,
    HeadToHeadSignal,
    PredictionContext,
    Signal,
    SignalSource,
)
from oddsforge.core.sport_config import EngineConfig, SportConfig

logger = logging.getLogger(__name__)

# Confidence mapping
_AGREEMENT_SD_SCALE = 0.2       # signal SD at which agreement bottoms out
_RATING_GAP_SCALE = 800.0       # rating points per unit of gap bonus
_MAX_RATING_BONUS = 0.3
_MISSING_DATA_PENALTY = 0.05
_VOLATILITY_SCALE = 20.0        # rating-change SD at which the form penalty is full
CONFIDENCE_FLOOR = 0.5
CONFIDENCE_CEILING = 0.999


@dataclass(frozen=True)
class HistoryContext:
    """Historical inputs for one upcoming match, supplied by the caller.

    head_to_head: completed meetings between the two teams, most recent first
    home_trajectory / away_trajectory: rating history points of each team
    """
    match_id: str = ""
    head_to_head: Sequence[Match] = ()
    home_trajectory: Sequence[RatingHistoryPoint] = ()
    away_trajectory: Sequence[RatingHistoryPoint] = ()
    neutral: bool = False


class EnsemblePredictor:
    """
    Fixed-weight ensemble over typed signal sources.

    Pure: no I/O and no shared mutable state, so one instance can serve many
    threads at once.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        elo: Optional[EloEngine] = None,
    ):
        self.config = config or EngineConfig()
        self.elo = elo or EloEngine()
        self.h2h = HeadToHeadAnalyzer(
            pseudo_count=self.config.h2h_pseudo_count,
            max_results=self.config.h2h_max_results,
        )
        self.form = FormAnalyzer(
            lookback=self.config.form_lookback,
            cap=self.config.form_momentum_cap,
            scale=self.config.form_momentum_scale,
        )
        weights = self.config.weights.as_dict()
        self.sources: List[SignalSource] = [EloSignal(), HeadToHeadSignal(), FormSignal()]
        self.weights: Dict[str, float] = {s.name: weights[s.name] for s in self.sources}

    # ------------------------------------------------------------------
    # Inputs
    # ------------------------------------------------------------------

    def _check_team(self, team: Optional[Team], role: str, sport: SportConfig) -> Team:
        if team is None:
            raise MissingInput(f"{role} team is missing")
        if team.rating is None or not math.isfinite(team.rating):
            raise MissingInput(f"{role} team {team.id!r} has no usable rating ({team.rating!r})")
        if team.sport != sport.sport_id:
            raise MissingInput(
                f"{role} team {team.id!r} plays {team.sport!r}, not {sport.sport_id!r}"
            )
        return team

    def build_context(
        self,
        home_team: Team,
        away_team: Team,
        sport: SportConfig,
        history: HistoryContext,
    ) -> PredictionContext:
        head_to_head = self.h2h.analyze(home_team.id, history.head_to_head, away_team.id)
        return PredictionContext(
            home_team=home_team,
            away_team=away_team,
            sport=sport,
            head_to_head=head_to_head,
            home_form=self.form.analyze(history.home_trajectory),
            away_form=self.form.analyze(history.away_trajectory),
            neutral=history.neutral,
        )

    # ------------------------------------------------------------------
    # Combination
    # ------------------------------------------------------------------

    def combine(self, signals: Sequence[Signal]) -> float:
        """Weighted home strength in (0, 1)."""
        return math.fsum(self.weights[s.name] * s.probability for s in signals)

    def distribute(self, home_strength: float, sport: SportConfig) -> OutcomeDistribution:
        """Turn a home strength into the sport's outcome distribution."""
        strict = self.config.strict_numerics
        away_strength = 1.0 - home_strength
        try:
            if not sport.supports_draws:
                return OutcomeDistribution.from_strengths(
                    home_strength, away_strength, strict=strict
                )
            decisive = 1.0 - sport.base_draw
            return OutcomeDistribution.from_strengths(
                home_strength * decisive,
                away_strength * decisive,
                sport.base_draw,
                strict=strict,
            )
        except NumericDrift:
            logger.error("Probability drift for home strength %.10f", home_strength)
            raise

    def form_penalty(self, context: PredictionContext) -> float:
        """Up to 0.05 for the more erratic side; a missing window costs the full amount."""
        shares = []
        for form in (context.home_form, context.away_form):
            if form.volatility is None:
                shares.append(1.0)
            else:
                shares.append(min(form.volatility / _VOLATILITY_SCALE, 1.0))
        return _MISSING_DATA_PENALTY * max(shares)

    def confidence(self, context: PredictionContext, signals: Sequence[Signal]) -> float:
        """
        Confidence in [0.5, 0.999].

        agreement = 1 - min(sd(signals) / 0.2, 0.5)        in [0.5, 1]
        gap_bonus = min(|effective rating diff| / 800, 0.3)
        raw = 0.5 + 0.7 * (agreement - 0.5) + 0.5 * gap_bonus
        An empty head-to-head record costs 0.05; form volatility costs up to
        0.05 (see form_penalty).
        """
        spread = float(np.std([s.probability for s in signals]))
        agreement = 1.0 - min(spread / _AGREEMENT_SD_SCALE, 0.5)
        gap_bonus = min(abs(context.effective_diff) / _RATING_GAP_SCALE, _MAX_RATING_BONUS)

        raw = 0.5 + 0.7 * (agreement - 0.5) + 0.5 * gap_bonus
        if context.head_to_head.reliability == 0.0:
            raw -= _MISSING_DATA_PENALTY
        raw -= self.form_penalty(context)
        return float(np.clip(raw, CONFIDENCE_FLOOR, CONFIDENCE_CEILING))

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def predict(
        self,
        home_team: Team,
        away_team: Team,
        sport: SportLike,
        history: Optional[HistoryContext] = None,
    ) -> Prediction:
        """
        Forecast one match.

        Args:
            home_team / away_team: current Team values (ratings required)
            sport: sport id or SportConfig
            history: head-to-head meetings and rating trajectories

        Raises:
            MissingInput: a team or rating is absent, or a team plays another sport
            NumericDrift: only with strict_numerics enabled
        """
        history = history or HistoryContext()
        sport_cfg = self.elo.sport_config(sport)
        self._check_team(home_team, "home", sport_cfg)
        self._check_team(away_team, "away", sport_cfg)

        context = self.build_context(home_team, away_team, sport_cfg, history)
        signals = [source.score(context) for source in self.sources]
        home_strength = self.combine(signals)
        distribution = self.distribute(home_strength, sport_cfg)

        components = {
            s.name: {"probability": s.probability, "weight": self.weights[s.name]}
            for s in signals
        }
        components["inputs"] = {
            "effective_diff": context.effective_diff,
            "h2h_tendency": context.head_to_head.tendency,
            "h2h_reliability": context.head_to_head.reliability,
            "home_momentum": context.home_form.momentum,
            "away_momentum": context.away_form.momentum,
        }

        return Prediction(
            match_id=history.match_id,
            distribution=distribution,
            confidence=self.confidence(context, signals),
            model_version=self.config.model_version,
            created_at=utcnow(),
            components=components,
        )

    def predict_match(
        self,
        match: Match,
        teams: Dict[str, Team],
        head_to_head: Sequence[Match] = (),
        trajectories: Optional[Dict[str, Sequence[RatingHistoryPoint]]] = None,
    ) -> Prediction:
        """Convenience wrapper resolving teams and history by id."""
        trajectories = trajectories or {}
        history = HistoryContext(
            match_id=match.id,
            head_to_head=head_to_head,
            home_trajectory=trajectories.get(match.home_team_id, ()),
            away_trajectory=trajectories.get(match.away_team_id, ()),
            neutral=match.neutral,
        )
        return self.predict(
            teams.get(match.home_team_id),
            teams.get(match.away_team_id),
            match.sport,
            history,
        )
