"""Short-term form from a team's recent rating trajectory.

Momentum
--------
The least-squares slope of rating against match index over the most recent
``lookback`` history points, in rating points per match, times ``scale``,
clamped to ``±cap``.  It is added to the team's effective rating for
prediction only and is never persisted.  The cap (default 50) stops a single
hot or cold streak from dominating the ensemble.

Volatility
----------
Population standard deviation of successive rating changes inside the
window.  With fewer than two points momentum is 0 and volatility is ``None``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

import numpy as np
from scipy.stats import linregress

from oddsforge.core.entities import RatingHistoryPoint


@dataclass(frozen=True, slots=True)
class Form:
    momentum: float
    volatility: Optional[float]
    sample_size: int
    slope: float = 0.0

    @classmethod
    def flat(cls, sample_size: int = 0) -> Form:
        return cls(momentum=0.0, volatility=None, sample_size=sample_size)


class FormAnalyzer:
    """Momentum adjustment and volatility over a fixed lookback window."""

    def __init__(self, lookback: int = 5, cap: float = 50.0, scale: float = 1.0):
        if lookback < 2:
            raise ValueError(f"lookback must be ≥ 2, got {lookback!r}")
        self.lookback = lookback
        self.cap = cap
        self.scale = scale

    def window(self, trajectory: Sequence[RatingHistoryPoint]) -> list:
        ordered = sorted(trajectory, key=lambda p: p.timestamp)
        return ordered[-self.lookback:]

    def analyze(self, trajectory: Sequence[RatingHistoryPoint]) -> Form:
        points = self.window(trajectory)
        if len(points) < 2:
            return Form.flat(len(points))

        ratings = np.array([p.rating for p in points], dtype=float)
        index = np.arange(len(ratings), dtype=float)
        slope = float(linregress(index, ratings).slope)
        momentum = float(np.clip(slope * self.scale, -self.cap, self.cap))
        volatility = float(np.std(np.diff(ratings)))

        return Form(
            momentum=momentum,
            volatility=volatility,
            sample_size=len(points),
            slope=slope,
        )


def form_string_adjustment(form: str) -> float:
    """Rating adjustment from a results string such as ``"WLWDW"``.

    The string is oldest first.  The most recent result counts fully and each
    earlier one is discounted by 0.8: +20 per win, +10 per draw, −20 per
    loss.  The total is clamped to ±100.
    """
    points = {"W": 20.0, "D": 10.0, "L": -20.0}
    adjustment = 0.0
    weight = 1.0
    for result in reversed(form.upper()):
        adjustment += points.get(result, 0.0) * weight
        weight *= 0.8
    return max(-100.0, min(100.0, adjustment))
