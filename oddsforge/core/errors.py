"""Exception taxonomy for the rating and prediction engine.

Every condition derives from :class:`ValueError` so callers that already
guard input validation with ``except ValueError`` keep working.

* :class:`MissingInput`       — a required rating or history value is absent.
  Fails one prediction or update; batch callers record it and move on.
* :class:`InvalidMatchResult` — decisive result with zero margin, a draw in a
  sport without draws, or scores inconsistent with the match status.
* :class:`InvalidOdds`        — odds ≤ 1.0, non-finite, or a required outcome
  missing.  The edge for that match is reported as unavailable.
* :class:`NumericDrift`       — a probability vector failed its unit-sum check
  after normalisation.
"""

from __future__ import annotations


class OddsForgeError(ValueError):
    """Base class for all engine errors."""


class MissingInput(OddsForgeError):
    """A required rating, team or history value is absent or not finite."""


class InvalidMatchResult(OddsForgeError):
    """A match result cannot be used to update ratings."""


class InvalidOdds(OddsForgeError):
    """Market odds are malformed or incomplete for the prediction's outcomes."""


class NumericDrift(OddsForgeError):
    """Probability vector does not sum to 1.0 within tolerance."""

    def __init__(self, total: float, tol: float):
        self.total = total
        self.tol = tol
        super().__init__(
            f"Probabilities sum to {total:.10f}, outside 1.0 ± {tol:g}."
        )
