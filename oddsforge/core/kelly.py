"""Kelly criterion sizing for a single priced outcome.

Pure function, no I/O.  The edge detector attaches the Kelly fraction of the
dominant outcome to each :class:`~oddsforge.core.entities.Edge` so the
presentation layer can show a stake alongside the disagreement.

The closed-form full-Kelly stake for a win/lose bet at decimal odds ``d``
with win probability ``p`` is::

    f*  =  (p · b − q) / b,      b = d − 1,  q = 1 − p

It is clipped to ``[0, max_fraction]``: negative-EV bets size to zero and a
single mis-estimated edge can never stake more than the cap.
"""

from __future__ import annotations

from typing import Final

#: Hard cap on any single Kelly output.
MAX_KELLY_FRACTION: Final[float] = 0.25


def kelly_fraction(
    win_prob: float,
    decimal_odds: float,
    *,
    max_fraction: float = MAX_KELLY_FRACTION,
) -> float:
    """Full-Kelly stake fraction, clipped to ``[0, max_fraction]``.

    Returns 0.0 for degenerate inputs (``decimal_odds <= 1`` or ``win_prob``
    outside ``(0, 1)``) rather than raising; callers only reach this after
    the odds have been validated.

    Examples::

        kelly_fraction(0.55, 2.0) → 0.10
        kelly_fraction(0.45, 2.0) → 0.0
        kelly_fraction(0.90, 2.0) → 0.25   (capped)
    """
    if decimal_odds <= 1.0 or not (0.0 < win_prob < 1.0):
        return 0.0
    profit_per_unit = decimal_odds - 1.0
    full = (win_prob * profit_per_unit - (1.0 - win_prob)) / profit_per_unit
    if full <= 0.0:
        return 0.0
    return min(full, max_fraction)
