"""
Model-versus-market edge detection.

Public API:
  classify_severity(edge, high, medium)  → "high" | "medium" | "low"
  EdgeDetector.edge(prediction, odds)    → Edge        (raises InvalidOdds)
  EdgeDetector.edge_or_none(...)         → Edge | None (logs, never raises)

Market probabilities
--------------------
The market implied probability of an outcome is ``1 / decimal_odds``.  Once
the odds have been validated every outcome of the prediction is priced, so
with ``devig`` enabled (the default) the raw values are divided by the book's
overround and sum to 1.  With ``devig`` disabled the raw, vig-inclusive
values are used and edges are biased against the bettor by the margin.

Edges
-----
Per outcome: ``model_probability − market_probability`` (signed).  The
dominant edge is the largest absolute value; ties keep the first outcome in
home, draw, away order.  Computation is pure and repeatable: the same
Prediction and MarketOdds always yield an equal Edge.
"""

import logging
import math
from typing import Dict, Optional

from oddsforge.core.entities import Edge, MarketOdds, Prediction
from oddsforge.core.errors import InvalidOdds
from oddsforge.core.kelly import kelly_fraction
from oddsforge.core.odds_math import implied_prob, remove_vig_proportional, validate_decimal
from oddsforge.core.outcomes import Outcome
from oddsforge.core.sport_config import EngineConfig

logger = logging.getLogger(__name__)

SEVERITY_HIGH = "high"
SEVERITY_MEDIUM = "medium"
SEVERITY_LOW = "low"


def classify_severity(edge: float, high: float = 0.15, medium: float = 0.08) -> str:
    """Presentation class of an edge by magnitude (strictly greater than)."""
    magnitude = abs(edge)
    if magnitude > high:
        return SEVERITY_HIGH
    if magnitude > medium:
        return SEVERITY_MEDIUM
    return SEVERITY_LOW


class EdgeDetector:
    """Compares predictions with bookmaker prices."""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()

    def severity(self, edge: float) -> str:
        return classify_severity(
            edge, high=self.config.severity_high, medium=self.config.severity_medium
        )

    def _validated_prices(self, prediction: Prediction, odds: MarketOdds) -> Dict[Outcome, float]:
        if odds.match_id and prediction.match_id and odds.match_id != prediction.match_id:
            raise InvalidOdds(
                f"Odds for match {odds.match_id!r} cannot price prediction "
                f"for {prediction.match_id!r}"
            )
        prices: Dict[Outcome, float] = {}
        for outcome in prediction.distribution.outcomes():
            price = odds.price(outcome)
            if price is None:
                raise InvalidOdds(
                    f"Match {prediction.match_id!r}: missing {outcome.value} odds"
                )
            prices[outcome] = validate_decimal(price)
        return prices

    def market_probabilities(
        self, prediction: Prediction, odds: MarketOdds
    ) -> Dict[Outcome, float]:
        prices = self._validated_prices(prediction, odds)
        if self.config.devig and len(prices) > 1:
            devigged = remove_vig_proportional(list(prices.values()))
            return dict(zip(prices.keys(), devigged))
        return {outcome: implied_prob(price) for outcome, price in prices.items()}

    def edge(self, prediction: Prediction, odds: MarketOdds) -> Edge:
        """
        Per-outcome and dominant edge for one match.

        Raises:
            InvalidOdds: odds ≤ 1.0, non-finite, for another match, or a
                required outcome (draw for a three-way prediction) missing
        """
        market = self.market_probabilities(prediction, odds)
        edges = {
            outcome: prediction.distribution.probability(outcome) - market_p
            for outcome, market_p in market.items()
        }

        dominant = next(iter(edges))
        for outcome, value in edges.items():
            if abs(value) > abs(edges[dominant]):
                dominant = outcome
        dominant_edge = edges[dominant]

        stake = 0.0
        if dominant_edge > 0 and math.isfinite(dominant_edge):
            stake = kelly_fraction(
                prediction.distribution.probability(dominant),
                odds.price(dominant),
                max_fraction=self.config.kelly_cap,
            )

        return Edge(
            match_id=prediction.match_id,
            prediction=prediction,
            odds=odds,
            market_probabilities=market,
            edges=edges,
            dominant_outcome=dominant,
            dominant_edge=dominant_edge,
            severity=self.severity(dominant_edge),
            devigged=self.config.devig and len(market) > 1,
            kelly_fraction=stake,
        )

    def edge_or_none(self, prediction: Prediction, odds: Optional[MarketOdds]) -> Optional[Edge]:
        """Edge, or None (reported as unavailable) when the odds are unusable."""
        if odds is None:
            logger.info("No market odds for match %s, edge unavailable", prediction.match_id)
            return None
        try:
            return self.edge(prediction, odds)
        except InvalidOdds as exc:
            logger.warning("Edge unavailable for match %s: %s", prediction.match_id, exc)
            return None
