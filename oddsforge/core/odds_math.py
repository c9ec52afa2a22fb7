"""Fundamental odds mathematics — the single source of truth.

Every function here is **pure**: no I/O, no logging, no side effects.
Import from this module; never reimplement locally in services or models.

The two pillars exposed are:

1. **Odds conversion** — American ↔ decimal ↔ implied probability.
2. **Vig removal** — proportional normalisation over a complete market.

Design decisions
----------------
* The engine works in **decimal** odds (payout multiple including the stake)
  because the upstream odds feed is requested with ``oddsFormat=decimal``.
  American odds are accepted only through :func:`american_to_decimal`.
* Raw inversion ``1 / odds`` is the baseline implied probability.  Over a
  complete market the raw values sum above 1.0 by the bookmaker's margin
  (the overround).  :func:`remove_vig_proportional` divides each raw value by
  the overround.  It is applied only when every outcome is priced; with a
  partial market there is no overround to remove and raw inversion is used.
  No insider-trading (Shin) or power-method model is attempted for
  three-way markets.

Run tests with::

    pytest tests/test_odds_math.py -v
"""

from __future__ import annotations

import math
from typing import Final, Sequence, Tuple

from oddsforge.core.errors import InvalidOdds

# ---------------------------------------------------------------------------
# Module-level constants
# ---------------------------------------------------------------------------

#: American-odds magnitude floor.  Values below this indicate a data error.
_MIN_AMERICAN_MAGNITUDE: Final[int] = 100

#: Decimal odds returned for a zero or negative probability.
LONGSHOT_ODDS: Final[float] = 1000.0


# ---------------------------------------------------------------------------
# Odds conversion
# ---------------------------------------------------------------------------


def american_to_decimal(american: int | float) -> float:
    """Convert American odds to decimal (European) format.

    Examples::

        american_to_decimal(-110) → 1.9091   (risk 110 to win 100)
        american_to_decimal(+150) → 2.5000   (risk 100 to win 150)

    Raises:
        InvalidOdds: If ``|american| < 100``, which is not a representable
            American odds value.
    """
    if abs(american) < _MIN_AMERICAN_MAGNITUDE:
        raise InvalidOdds(
            f"Invalid American odds {american!r}: magnitude must be ≥ 100. "
            "Check upstream odds parsing for data errors."
        )
    if american > 0:
        return american / 100.0 + 1.0
    return 100.0 / abs(american) + 1.0


def decimal_to_american(decimal_odds: float) -> int:
    """Convert decimal odds to the nearest American integer.

    Use the result for display and logging, not for further arithmetic.

    Raises:
        InvalidOdds: If ``decimal_odds <= 1.0``.
    """
    validate_decimal(decimal_odds)
    if decimal_odds >= 2.0:
        return round((decimal_odds - 1.0) * 100)
    return round(-100.0 / (decimal_odds - 1.0))


def validate_decimal(decimal_odds: float) -> float:
    """Return ``decimal_odds`` unchanged if it is a usable price.

    Raises:
        InvalidOdds: If the value is not finite or not strictly above 1.0
            (a price of 1.0 or less pays nothing and implies certainty).
    """
    if decimal_odds is None or not math.isfinite(decimal_odds) or decimal_odds <= 1.0:
        raise InvalidOdds(f"Decimal odds must be finite and > 1.0, got {decimal_odds!r}")
    return decimal_odds


def implied_prob(decimal_odds: float) -> float:
    """Raw implied probability ``1 / odds`` (vig-inclusive).

    Examples::

        implied_prob(2.00) → 0.5000
        implied_prob(1.91) → 0.5236
    """
    return 1.0 / validate_decimal(decimal_odds)


def probability_to_odds(probability: float) -> float:
    """Fair decimal odds for ``probability``.

    Returns :data:`LONGSHOT_ODDS` for probabilities at or below zero.
    """
    if probability <= 0.0:
        return LONGSHOT_ODDS
    return 1.0 / min(probability, 1.0)


# ---------------------------------------------------------------------------
# Vig removal
# ---------------------------------------------------------------------------


def overround(prices: Sequence[float]) -> float:
    """Sum of raw implied probabilities.  1.05 means a 5% book margin."""
    return math.fsum(implied_prob(p) for p in prices)


def remove_vig_proportional(prices: Sequence[float]) -> Tuple[float, ...]:
    """True (no-vig) probabilities by proportional normalisation.

    Each raw implied probability is divided by the market overround so the
    result sums to 1.0 exactly.  Works for two- and three-way markets.

    Args:
        prices: Decimal odds for **every** outcome of the market.

    Returns:
        Tuple of probabilities in the same order as ``prices``.

    Raises:
        InvalidOdds: If fewer than two prices are given or any is invalid.

    Examples::

        remove_vig_proportional([1.91, 1.91])       → (0.5, 0.5)
        remove_vig_proportional([2.10, 3.40, 3.60]) → (0.455, 0.281, 0.265)
    """
    if len(prices) < 2:
        raise InvalidOdds("Vig removal needs odds for at least two outcomes")
    raw = [implied_prob(p) for p in prices]
    total = math.fsum(raw)
    return tuple(r / total for r in raw)
