"""
Environment-driven configuration.

Every knob has a default in :mod:`oddsforge.core.sport_config`; the
variables below override it.  A ``.env`` file in the working directory is
loaded first.

    ODDSFORGE_K_FACTOR              ELO K for every sport
    ODDSFORGE_HOME_ADVANTAGE        rating points for the home side
    ODDSFORGE_BASE_DRAW             prior draw probability for draw sports
    ODDSFORGE_WEIGHTS               "elo,head_to_head,form", e.g. "0.5,0.3,0.2"
    ODDSFORGE_H2H_PSEUDO_COUNT      head-to-head regression pseudo-count
    ODDSFORGE_H2H_MAX_RESULTS       meetings considered
    ODDSFORGE_FORM_LOOKBACK         rating-history points in the form window
    ODDSFORGE_FORM_CAP              momentum cap in rating points
    ODDSFORGE_FORM_SCALE            slope-to-momentum multiplier
    ODDSFORGE_SEVERITY_HIGH         |edge| above which severity is "high"
    ODDSFORGE_SEVERITY_MEDIUM       |edge| above which severity is "medium"
    ODDSFORGE_DEVIG                 "true" / "false"
    ODDSFORGE_STRICT                raise on probability drift instead of renormalising
    ODDSFORGE_KELLY_CAP             maximum suggested Kelly fraction
"""

import logging
import os
from dataclasses import replace
from typing import Dict, List, Optional

from dotenv import load_dotenv

from oddsforge.core.sport_config import EngineConfig, EnsembleWeights, SportConfig

logger = logging.getLogger(__name__)

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _float(name: str) -> Optional[float]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name}={raw!r} is not a number") from None


def _int(name: str) -> Optional[int]:
    value = _float(name)
    return None if value is None else int(value)


def _bool(name: str) -> Optional[bool]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    lowered = raw.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"{name}={raw!r} is not a boolean")


def _weights(name: str) -> Optional[EnsembleWeights]:
    raw = os.getenv(name)
    if not raw:
        return None
    parts = [p.strip() for p in raw.split(",")]
    if len(parts) != 3:
        raise ValueError(f"{name} needs three comma-separated weights, got {raw!r}")
    elo, h2h, form = (float(p) for p in parts)
    return EnsembleWeights(elo=elo, head_to_head=h2h, form=form)


def load_engine_config(base: Optional[EngineConfig] = None) -> EngineConfig:
    """EngineConfig with any ODDSFORGE_* overrides applied."""
    load_dotenv()
    overrides = {
        "weights": _weights("ODDSFORGE_WEIGHTS"),
        "h2h_pseudo_count": _float("ODDSFORGE_H2H_PSEUDO_COUNT"),
        "h2h_max_results": _int("ODDSFORGE_H2H_MAX_RESULTS"),
        "form_lookback": _int("ODDSFORGE_FORM_LOOKBACK"),
        "form_momentum_cap": _float("ODDSFORGE_FORM_CAP"),
        "form_momentum_scale": _float("ODDSFORGE_FORM_SCALE"),
        "severity_high": _float("ODDSFORGE_SEVERITY_HIGH"),
        "severity_medium": _float("ODDSFORGE_SEVERITY_MEDIUM"),
        "devig": _bool("ODDSFORGE_DEVIG"),
        "strict_numerics": _bool("ODDSFORGE_STRICT"),
        "kelly_cap": _float("ODDSFORGE_KELLY_CAP"),
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if overrides:
        logger.info("Engine config overrides from environment: %s", sorted(overrides))
    return replace(base or EngineConfig(), **overrides)


def load_sport_configs() -> List[SportConfig]:
    """Default sport configs with any ODDSFORGE_* overrides applied."""
    load_dotenv()
    overrides: Dict[str, float] = {
        "k_factor": _float("ODDSFORGE_K_FACTOR"),
        "home_advantage": _float("ODDSFORGE_HOME_ADVANTAGE"),
    }
    overrides = {k: v for k, v in overrides.items() if v is not None}
    base_draw = _float("ODDSFORGE_BASE_DRAW")

    configs = []
    for cfg in (SportConfig.football(), SportConfig.basketball()):
        cfg = replace(cfg, **overrides)
        if base_draw is not None and cfg.supports_draws:
            cfg = replace(cfg, base_draw=base_draw)
        configs.append(cfg)
    return configs
