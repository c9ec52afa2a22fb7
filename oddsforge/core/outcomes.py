"""Tagged outcome distributions.

A prediction for a sport without draws is a :class:`BinaryDistribution`; a
prediction for a sport with draws is a :class:`TernaryDistribution`.  The
draw probability only exists on the ternary type, so code that handles a
binary match has nothing draw-related to touch.

Both types are frozen and validate on construction: every probability is
finite and non-negative and the vector sums to 1.0 within
:data:`~oddsforge.core.sport_config.PROBABILITY_TOLERANCE`.  Build them with
:meth:`OutcomeDistribution.from_strengths` when the inputs are unnormalised.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Sequence, Tuple

from oddsforge.core.errors import NumericDrift
from oddsforge.core.sport_config import PROBABILITY_TOLERANCE


class Outcome(str, Enum):
    HOME = "home"
    DRAW = "draw"
    AWAY = "away"


def normalize(
    values: Sequence[float],
    *,
    strict: bool = False,
    tol: float = PROBABILITY_TOLERANCE,
) -> Tuple[float, ...]:
    """Scale ``values`` so they sum to exactly 1.0.

    After the division the sum is re-checked.  In strict mode a residual
    outside ``tol`` raises :class:`NumericDrift`; otherwise the vector is
    divided by its sum a second time.

    Raises:
        ValueError: If any value is negative or not finite, or all are zero.
    """
    for v in values:
        if not math.isfinite(v) or v < 0.0:
            raise ValueError(f"Cannot normalise non-finite or negative value {v!r}")
    total = math.fsum(values)
    if total <= 0.0:
        raise ValueError("Cannot normalise an all-zero probability vector")

    scaled = tuple(v / total for v in values)
    check = math.fsum(scaled)
    if abs(check - 1.0) > tol:
        if strict:
            raise NumericDrift(check, tol)
        scaled = tuple(v / check for v in scaled)
    return scaled


@dataclass(frozen=True, slots=True)
class OutcomeDistribution:
    """Common behaviour of the binary and ternary distributions."""

    def outcomes(self) -> Tuple[Outcome, ...]:
        raise NotImplementedError

    def probability(self, outcome: Outcome) -> float:
        if outcome not in self.outcomes():
            raise KeyError(f"{type(self).__name__} has no {outcome.value!r} outcome")
        return getattr(self, outcome.value)

    @property
    def supports_draw(self) -> bool:
        return Outcome.DRAW in self.outcomes()

    @property
    def total(self) -> float:
        return math.fsum(self.probability(o) for o in self.outcomes())

    def as_dict(self) -> Dict[str, float]:
        return {o.value: self.probability(o) for o in self.outcomes()}

    def _validate(self) -> None:
        for o in self.outcomes():
            p = getattr(self, o.value)
            if not math.isfinite(p) or p < 0.0:
                raise ValueError(f"{o.value} probability must be finite and ≥ 0, got {p!r}")
        total = self.total
        if abs(total - 1.0) > PROBABILITY_TOLERANCE:
            raise NumericDrift(total, PROBABILITY_TOLERANCE)

    @staticmethod
    def from_strengths(
        home: float,
        away: float,
        draw: float | None = None,
        *,
        strict: bool = False,
    ) -> OutcomeDistribution:
        """Normalise raw strengths into the matching distribution type.

        ``draw=None`` selects :class:`BinaryDistribution`; any number selects
        :class:`TernaryDistribution`.
        """
        if draw is None:
            h, a = normalize((home, away), strict=strict)
            return BinaryDistribution(home=h, away=a)
        h, d, a = normalize((home, draw, away), strict=strict)
        return TernaryDistribution(home=h, draw=d, away=a)


@dataclass(frozen=True, slots=True)
class BinaryDistribution(OutcomeDistribution):
    home: float
    away: float

    def __post_init__(self):
        self._validate()

    def outcomes(self) -> Tuple[Outcome, ...]:
        return (Outcome.HOME, Outcome.AWAY)


@dataclass(frozen=True, slots=True)
class TernaryDistribution(OutcomeDistribution):
    home: float
    draw: float
    away: float

    def __post_init__(self):
        self._validate()

    def outcomes(self) -> Tuple[Outcome, ...]:
        return (Outcome.HOME, Outcome.DRAW, Outcome.AWAY)
