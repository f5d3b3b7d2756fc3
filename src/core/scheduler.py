"""Recurring timer that drives reconciliation cycles.

The next cycle is only scheduled after the previous one returned, so the
timer alone never overlaps cycles.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional

from core.engine import CycleOutcome, ReconciliationEngine

LOGGER = logging.getLogger(__name__)


class PollScheduler:
    """Run ``engine.run_cycle`` every ``interval_seconds`` until stopped."""

    def __init__(
        self,
        engine: ReconciliationEngine,
        interval_seconds: float,
        on_outcome: Optional[Callable[[CycleOutcome], None]] = None,
        run_immediately: bool = True,
    ) -> None:
        self._engine = engine
        self._interval = interval_seconds
        self._on_outcome = on_outcome
        self._run_immediately = run_immediately
        self._stopped = asyncio.Event()

    def stop(self) -> None:
        self._stopped.set()

    async def run_forever(self) -> None:
        LOGGER.info("Polling every %s seconds", self._interval)
        if not self._run_immediately and await self._sleep():
            return

        while not self._stopped.is_set():
            try:
                outcome = await self._engine.run_cycle()
                if self._on_outcome is not None:
                    self._on_outcome(outcome)
            except Exception:
                LOGGER.exception("Unexpected error during polling cycle")
            if await self._sleep():
                return

    async def _sleep(self) -> bool:
        """Wait one interval; return True when stopped meanwhile."""

        try:
            await asyncio.wait_for(self._stopped.wait(), timeout=self._interval)
        except asyncio.TimeoutError:
            return False
        return True
