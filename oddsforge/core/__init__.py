"""Core rating and prediction mathematics for OddsForge.

This package contains pure, storage-agnostic building blocks:

- ``errors``       — exception taxonomy shared by the engine and adapters
- ``sport_config`` — per-sport constants and engine tuning knobs
- ``outcomes``     — tagged binary / ternary outcome distributions
- ``entities``     — immutable Team, Match, Prediction, MarketOdds, Edge values
- ``odds_math``    — decimal odds conversion, implied probability, devigging
- ``kelly``        — Kelly stake sizing for a single outcome
- ``elo``          — ELO expected score and post-match rating deltas
- ``head_to_head`` — regressed head-to-head tendency
- ``form``         — momentum and volatility from a rating trajectory
- ``signals``      — typed signal components consumed by the ensemble

Nothing in this package imports from ``oddsforge.services`` or
``oddsforge.models``.  All modules are side-effect-free and unit-testable in
isolation.
"""
