"""Head-to-head tendency between two specific teams.

Given past meetings (most recent first) the analyzer reports, from team A's
perspective:

* ``tendency`` in [-1, 1] — positive favours A.
* ``reliability`` in [0, 1) — how much the tendency should be trusted.

Regression toward the mean
--------------------------
With ``n`` scored meetings the raw win-rate differential is::

    raw = (wins − losses) / n

and is pulled toward 0 by the factor ``1 / (1 + n/k)`` for pseudo-count
``k``.  The share that survives, ``n / (n + k)``, doubles as the reliability:
one meeting with ``k = 5`` keeps 1/6 of its signal, ten meetings keep 2/3.
Reliability therefore grows monotonically with ``n`` and never reaches 1.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from oddsforge.core.entities import RESULT_DRAW, RESULT_LOSS, RESULT_WIN, Match


@dataclass(frozen=True, slots=True)
class HeadToHead:
    tendency: float
    reliability: float
    sample_size: int = 0
    wins: int = 0
    draws: int = 0
    losses: int = 0

    @classmethod
    def neutral(cls) -> HeadToHead:
        return cls(tendency=0.0, reliability=0.0)


class HeadToHeadAnalyzer:
    """Regressed head-to-head tendency with a tunable pseudo-count."""

    def __init__(self, pseudo_count: float = 5.0, max_results: int = 10):
        if pseudo_count <= 0:
            raise ValueError(f"pseudo_count must be positive, got {pseudo_count!r}")
        self.pseudo_count = pseudo_count
        self.max_results = max_results

    def shrinkage(self, n: int) -> float:
        """Fraction of the raw tendency removed for ``n`` meetings."""
        return 1.0 / (1.0 + n / self.pseudo_count)

    def analyze(
        self,
        team_a_id: str,
        results: Sequence[Match],
        team_b_id: Optional[str] = None,
    ) -> HeadToHead:
        """Tendency for ``team_a_id`` from its meetings with one opponent.

        Meetings without a final score, or that ``team_a_id`` did not play,
        are skipped; with ``team_b_id`` given, so are games against anyone
        else.  Only the first ``max_results`` usable meetings count.
        """
        wins = draws = losses = 0
        for match in results:
            if not match.has_scores or not match.involves(team_a_id):
                continue
            if team_b_id is not None and not match.involves(team_b_id):
                continue
            outcome = match.result_for(team_a_id)
            if outcome == RESULT_WIN:
                wins += 1
            elif outcome == RESULT_LOSS:
                losses += 1
            elif outcome == RESULT_DRAW:
                draws += 1
            if wins + draws + losses >= self.max_results:
                break

        n = wins + draws + losses
        if n == 0:
            return HeadToHead.neutral()

        raw = (wins - losses) / n
        retained = 1.0 - self.shrinkage(n)
        return HeadToHead(
            tendency=raw * retained,
            reliability=retained,
            sample_size=n,
            wins=wins,
            draws=draws,
            losses=losses,
        )
