from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from core.engine import CycleOutcome
from core.scheduler import PollScheduler


class FakeEngine:
    def __init__(self, fail_on: set[int] | None = None) -> None:
        self.calls = 0
        self._fail_on = fail_on or set()

    async def run_cycle(self) -> CycleOutcome:
        self.calls += 1
        if self.calls in self._fail_on:
            raise RuntimeError("boom")
        return CycleOutcome(started_at=datetime.now(timezone.utc))


def test_scheduler_runs_cycles_until_stopped() -> None:
    engine = FakeEngine()
    outcomes: list[CycleOutcome] = []

    async def _run() -> None:
        def _collect(outcome: CycleOutcome) -> None:
            outcomes.append(outcome)
            if len(outcomes) == 3:
                scheduler.stop()

        scheduler = PollScheduler(engine, interval_seconds=0.01, on_outcome=_collect)
        await asyncio.wait_for(scheduler.run_forever(), timeout=2)

    asyncio.run(_run())

    assert engine.calls == 3
    assert len(outcomes) == 3


def test_scheduler_survives_unexpected_cycle_error() -> None:
    engine = FakeEngine(fail_on={1})
    outcomes: list[CycleOutcome] = []

    async def _run() -> None:
        def _collect(outcome: CycleOutcome) -> None:
            outcomes.append(outcome)
            scheduler.stop()

        scheduler = PollScheduler(engine, interval_seconds=0.01, on_outcome=_collect)
        await asyncio.wait_for(scheduler.run_forever(), timeout=2)

    asyncio.run(_run())

    assert engine.calls == 2
    assert len(outcomes) == 1


def test_scheduler_can_wait_before_first_cycle() -> None:
    engine = FakeEngine()

    async def _run() -> None:
        scheduler = PollScheduler(engine, interval_seconds=5, run_immediately=False)
        task = asyncio.create_task(scheduler.run_forever())
        await asyncio.sleep(0.05)
        scheduler.stop()
        await asyncio.wait_for(task, timeout=1)

    asyncio.run(_run())

    assert engine.calls == 0


def test_scheduler_survives_failing_outcome_callback() -> None:
    engine = FakeEngine()
    seen: list[CycleOutcome] = []

    async def _run() -> None:
        def _collect(outcome: CycleOutcome) -> None:
            seen.append(outcome)
            if len(seen) == 1:
                raise RuntimeError("observer broke")
            scheduler.stop()

        scheduler = PollScheduler(engine, interval_seconds=0.01, on_outcome=_collect)
        await asyncio.wait_for(scheduler.run_forever(), timeout=2)

    asyncio.run(_run())

    assert engine.calls == 2
    assert len(seen) == 2
