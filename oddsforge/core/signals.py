"""Typed signal components consumed by the ensemble.

Each :class:`SignalSource` turns a :class:`PredictionContext` into a
:class:`Signal`: the probability, strictly inside (0, 1), that the home side
is the stronger team in this match.  Sources are stateless and independent,
so each can be unit-tested without the combiner.

=================  ============================================================
Source             Home-favour probability
=================  ============================================================
EloSignal          expected score of (home + home advantage + home momentum)
                   vs (away + away momentum)
HeadToHeadSignal   0.5 + 0.5 · regressed head-to-head tendency
FormSignal         expected score of home momentum vs away momentum
=================  ============================================================
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Final

from oddsforge.core.elo import EloEngine
from oddsforge.core.entities import Team
from oddsforge.core.form import Form
from oddsforge.core.head_to_head import HeadToHead
from oddsforge.core.sport_config import SportConfig

#: Signals are kept this far from 0 and 1 so no single source claims certainty.
SIGNAL_EPSILON: Final[float] = 1e-6


def _bounded(p: float) -> float:
    return min(max(p, SIGNAL_EPSILON), 1.0 - SIGNAL_EPSILON)


@dataclass(frozen=True, slots=True)
class PredictionContext:
    """Everything the signal sources may read for one match."""

    home_team: Team
    away_team: Team
    sport: SportConfig
    head_to_head: HeadToHead
    home_form: Form
    away_form: Form
    neutral: bool = False

    @property
    def home_advantage(self) -> float:
        return 0.0 if self.neutral else self.sport.home_advantage

    @property
    def effective_diff(self) -> float:
        """Home minus away rating including home advantage, excluding form."""
        return self.home_team.rating + self.home_advantage - self.away_team.rating


@dataclass(frozen=True, slots=True)
class Signal:
    name: str
    probability: float


class SignalSource(ABC):
    """Contract of an ensemble component."""

    #: Key under which the source's weight is configured and audited.
    name: str = "signal"

    @abstractmethod
    def score(self, context: PredictionContext) -> Signal:
        """Home-favour probability in (0, 1)."""


class EloSignal(SignalSource):
    name = "elo"

    def score(self, context: PredictionContext) -> Signal:
        p = EloEngine.expected_score(
            context.home_team.rating + context.home_advantage + context.home_form.momentum,
            context.away_team.rating + context.away_form.momentum,
        )
        return Signal(self.name, _bounded(p))


class HeadToHeadSignal(SignalSource):
    name = "head_to_head"

    def score(self, context: PredictionContext) -> Signal:
        return Signal(self.name, _bounded(0.5 + 0.5 * context.head_to_head.tendency))


class FormSignal(SignalSource):
    """Momentum differential alone; ratings and venue are left to EloSignal."""

    name = "form"

    def score(self, context: PredictionContext) -> Signal:
        p = EloEngine.expected_score(context.home_form.momentum, context.away_form.momentum)
        return Signal(self.name, _bounded(p))
