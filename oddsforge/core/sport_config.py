"""Sport-level and engine-level configuration — all tunable constants in one place.

This module is the **registry** for every constant the engine uses.  Nowhere
else in the codebase should K-factors, home-advantage offsets, draw rates,
ensemble weights or edge thresholds be hard-coded.

Architecture
------------
:class:`SportConfig` is a frozen dataclass carrying all per-sport constants.
Named constructors (:meth:`SportConfig.football`, :meth:`SportConfig.basketball`)
return pre-populated instances.  :class:`EngineConfig` carries the
sport-independent knobs of the analyzers, the ensemble and the edge detector.

To add a new sport:

1. Add a ``@classmethod`` constructor here.
2. Register it in :data:`_CONSTRUCTORS`.
3. The ELO engine, the ensemble and the edge detector pick up the injected
   config; none of them branch on sport names.

Typical usage::

    from dataclasses import replace
    from oddsforge.core.sport_config import EngineConfig, SportConfig

    epl = SportConfig.football()
    tuned = replace(epl, k_factor=24.0)

    cfg = EngineConfig()
    no_devig = replace(cfg, devig=False)

Environment overrides are read by :func:`oddsforge.settings.load_engine_config`,
not here, so this module stays free of I/O.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Dict, Final, Mapping

from oddsforge.core.errors import MissingInput

#: Sport identifier strings used in Team / Match records and DB rows.
SPORT_FOOTBALL: Final[str] = "football"
SPORT_BASKETBALL: Final[str] = "basketball"

#: Rating given to a team whose league has no explicit seed value.
DEFAULT_INITIAL_RATING: Final[float] = 1200.0

#: Tolerance used for every unit-sum check in the engine.
PROBABILITY_TOLERANCE: Final[float] = 1e-6


@dataclass(frozen=True)
class SportConfig:
    """Immutable configuration bundle for a single sport.

    Attributes:
        sport_id: Short identifier (``"football"``, ``"basketball"``) matching
            ``Team.sport`` and ``Match.sport``.
        sport_name: Human-readable name for logging.
        supports_draws: True when a match can end level.  Selects the
            ternary outcome distribution and enables ``update_draw``.
        k_factor: Raw ELO K-factor before the margin multiplier.
        home_advantage: Rating points added to the home side when computing
            expected scores.  Never written into a stored rating.
        base_draw: Prior draw probability used by the ensemble for draw
            sports.  Must be 0.0 when ``supports_draws`` is False.
        league_initial_ratings: Seed rating per league for new teams.
    """

    sport_id: str
    sport_name: str
    supports_draws: bool
    k_factor: float = 32.0
    home_advantage: float = 100.0
    base_draw: float = 0.0
    league_initial_ratings: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        if self.k_factor <= 0:
            raise ValueError(f"k_factor must be positive, got {self.k_factor!r}")
        if not self.supports_draws and self.base_draw != 0.0:
            raise ValueError(
                f"{self.sport_id}: base_draw must be 0.0 for a sport without draws"
            )
        if not (0.0 <= self.base_draw < 1.0):
            raise ValueError(f"base_draw must be in [0, 1), got {self.base_draw!r}")

    # ------------------------------------------------------------------ #
    #  Named constructors                                                  #
    # ------------------------------------------------------------------ #

    @classmethod
    def football(cls) -> SportConfig:
        """Association football (EPL, Champions League): three outcomes."""
        return cls(
            sport_id=SPORT_FOOTBALL,
            sport_name="Football",
            supports_draws=True,
            k_factor=32.0,
            home_advantage=100.0,
            base_draw=0.25,
            league_initial_ratings={
                "Champions League": 1400.0,
                "EPL": 1300.0,
                "Premier League": 1300.0,
            },
        )

    @classmethod
    def basketball(cls) -> SportConfig:
        """Basketball (NBA): two outcomes, overtime settles ties."""
        return cls(
            sport_id=SPORT_BASKETBALL,
            sport_name="Basketball",
            supports_draws=False,
            k_factor=32.0,
            home_advantage=100.0,
            base_draw=0.0,
            league_initial_ratings={"NBA": 1200.0},
        )

    @classmethod
    def for_sport(cls, sport_id: str) -> SportConfig:
        """Return the default config for ``sport_id``.

        Raises:
            MissingInput: If the sport is not registered.
        """
        try:
            return _CONSTRUCTORS[sport_id.lower()]()
        except KeyError:
            raise MissingInput(f"No configuration registered for sport {sport_id!r}") from None

    # ------------------------------------------------------------------ #
    #  Convenience accessors                                               #
    # ------------------------------------------------------------------ #

    def initial_rating(self, league: str) -> float:
        """Seed rating for a new team in ``league``."""
        return self.league_initial_ratings.get(league, DEFAULT_INITIAL_RATING)

    def neutral_site(self) -> SportConfig:
        """Return a copy of this config with home advantage zeroed out."""
        return replace(self, home_advantage=0.0)

    def __repr__(self) -> str:
        return (
            f"SportConfig(sport_id={self.sport_id!r}, "
            f"draws={self.supports_draws}, k={self.k_factor}, "
            f"home_adv={self.home_advantage}, base_draw={self.base_draw})"
        )


_CONSTRUCTORS = {
    SPORT_FOOTBALL: SportConfig.football,
    "soccer": SportConfig.football,
    SPORT_BASKETBALL: SportConfig.basketball,
}


@dataclass(frozen=True)
class EnsembleWeights:
    """Fixed weights of the three ensemble signals.  Must sum to 1."""

    elo: float = 0.5
    head_to_head: float = 0.3
    form: float = 0.2

    def __post_init__(self):
        values = (self.elo, self.head_to_head, self.form)
        if any(w < 0 for w in values):
            raise ValueError(f"Ensemble weights must be non-negative, got {values}")
        if abs(sum(values) - 1.0) > PROBABILITY_TOLERANCE:
            raise ValueError(f"Ensemble weights must sum to 1.0, got {sum(values):.6f}")

    def as_dict(self) -> Dict[str, float]:
        return {"elo": self.elo, "head_to_head": self.head_to_head, "form": self.form}


@dataclass(frozen=True)
class EngineConfig:
    """Sport-independent tuning knobs for analyzers, ensemble and edges.

    Attributes:
        weights: Ensemble signal weights (ELO 0.5, head-to-head 0.3, form 0.2).
        h2h_pseudo_count: Pseudo-count ``k`` of the head-to-head regression.
            With ``n`` meetings the raw tendency keeps ``n / (n + k)`` of its
            value.
        h2h_max_results: Most recent meetings considered.
        form_lookback: Most recent rating-history points in the form window.
        form_momentum_cap: Absolute cap on the momentum adjustment, in
            rating points.
        form_momentum_scale: Multiplier from rating slope (points per match)
            to momentum adjustment.
        severity_high: Absolute edge above which severity is ``"high"``.
        severity_medium: Absolute edge above which severity is ``"medium"``.
        devig: Normalise market implied probabilities when every outcome's
            odds are present.
        strict_numerics: Raise :class:`~oddsforge.core.errors.NumericDrift`
            instead of silently renormalising.
        kelly_cap: Upper bound on the suggested Kelly stake fraction.
        model_version: Tag written on every prediction.
    """

    weights: EnsembleWeights = field(default_factory=EnsembleWeights)
    h2h_pseudo_count: float = 5.0
    h2h_max_results: int = 10
    form_lookback: int = 5
    form_momentum_cap: float = 50.0
    form_momentum_scale: float = 1.0
    severity_high: float = 0.15
    severity_medium: float = 0.08
    devig: bool = True
    strict_numerics: bool = False
    kelly_cap: float = 0.25
    model_version: str = "ensemble_v1.0"

    def __post_init__(self):
        if self.h2h_pseudo_count <= 0:
            raise ValueError("h2h_pseudo_count must be positive")
        if self.h2h_max_results < 1 or self.form_lookback < 2:
            raise ValueError("h2h_max_results must be ≥ 1 and form_lookback ≥ 2")
        if self.form_momentum_cap < 0:
            raise ValueError("form_momentum_cap must be non-negative")
        if not (0.0 <= self.severity_medium <= self.severity_high):
            raise ValueError(
                f"Severity thresholds must satisfy 0 ≤ medium ≤ high, got "
                f"medium={self.severity_medium!r} high={self.severity_high!r}"
            )
