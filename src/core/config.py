"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PollingConfig:
    """Reconciliation settings for the polling engine."""

    interval_seconds: float = 300.0
    lookback: int = 5
    max_concurrency: int = 1
    call_timeout: float = 30.0


@dataclass(frozen=True)
class StatsConfig:
    """Defaults for stats queries issued from the command surface."""

    default_days: int = 7
