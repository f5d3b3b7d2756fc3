"""Incremental polling and catch-up reconciliation engine.

Each tracked identity goes through a strict order:
1) Fetch the newest K match ids from the source (newest first)
2) Fast-exit when the newest id equals the stored cursor
3) Collect ids until the cursor is met (or the whole window when it is not)
4) Process the new ids oldest-first: fetch, extract, persist, notify
5) Advance the cursor once, after the whole batch

Failures for one match or one identity are logged and isolated. Only an
unreadable identity list or an unavailable store ends a cycle early.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, List, Optional, Sequence, TypeVar

from core.config import PollingConfig
from core.errors import MatchSourceError, ParticipantNotFound, StoreConflict, StoreUnavailable, TransportError
from core.models import PollState, TrackedIdentity
from core.ports import MatchSourcePort, NotifierPort, StoragePort

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def compute_new_match_ids(fetched_ids: Sequence[str], cursor: Optional[str]) -> List[str]:
    """Return the ids newer than ``cursor`` in oldest-first order.

    ``fetched_ids`` is newest-first. When the cursor is empty or has fallen
    outside the window, every fetched id counts as new; nothing older than the
    window is ever backfilled.
    """

    new_ids: List[str] = []
    for match_id in fetched_ids:
        if cursor is not None and match_id == cursor:
            break
        new_ids.append(match_id)
    new_ids.reverse()
    return new_ids


class IdentityStatus(str, Enum):
    UP_TO_DATE = "up_to_date"
    UPDATED = "updated"
    FAILED = "failed"


@dataclass
class IdentityOutcome:
    """What happened to one identity during a cycle."""

    account_key: str
    riot_id: str
    status: IdentityStatus = IdentityStatus.UP_TO_DATE
    processed: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    notification_failures: int = 0
    cursor: Optional[str] = None
    error: Optional[str] = None


@dataclass
class CycleOutcome:
    """Structured result of one ``run_cycle`` call."""

    started_at: datetime
    finished_at: Optional[datetime] = None
    identities: List[IdentityOutcome] = field(default_factory=list)
    skipped: bool = False
    aborted: bool = False
    error: Optional[str] = None

    def _count(self, status: IdentityStatus) -> int:
        return sum(1 for item in self.identities if item.status is status)

    @property
    def processed(self) -> int:
        return len(self.identities)

    @property
    def up_to_date(self) -> int:
        return self._count(IdentityStatus.UP_TO_DATE)

    @property
    def updated(self) -> int:
        return self._count(IdentityStatus.UPDATED)

    @property
    def failed(self) -> int:
        return self._count(IdentityStatus.FAILED)

    @property
    def matches_processed(self) -> int:
        return sum(len(item.processed) for item in self.identities)

    @property
    def matches_skipped(self) -> int:
        return sum(len(item.skipped) for item in self.identities)

    def summary(self) -> str:
        if self.skipped:
            return "skipped (previous cycle still running)"
        if self.aborted:
            return f"aborted ({self.error})"
        return (
            f"identities={self.processed} updated={self.updated} up_to_date={self.up_to_date} "
            f"failed={self.failed} matches={self.matches_processed} skipped_matches={self.matches_skipped}"
        )


class ReconciliationEngine:
    """Detects, persists, and announces new matches for every tracked identity."""

    def __init__(
        self,
        storage: StoragePort,
        source: MatchSourcePort,
        notifier: NotifierPort,
        config: PollingConfig,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._storage = storage
        self._source = source
        self._notifier = notifier
        self._config = config
        self._clock = clock
        self._lock = asyncio.Lock()

    @property
    def running(self) -> bool:
        return self._lock.locked()

    async def run_cycle(self) -> CycleOutcome:
        """Run one reconciliation pass over all tracked identities.

        Cycles never overlap: if one is already in flight this call returns
        immediately with ``skipped=True``.
        """

        outcome = CycleOutcome(started_at=self._clock())
        if self._lock.locked():
            LOGGER.warning("Previous cycle still running; skipping this one")
            outcome.skipped = True
            outcome.finished_at = self._clock()
            return outcome

        async with self._lock:
            await self._run_locked(outcome)

        outcome.finished_at = self._clock()
        LOGGER.info("Cycle complete: %s", outcome.summary())
        return outcome

    async def _run_locked(self, outcome: CycleOutcome) -> None:
        try:
            identities = self._storage.list_tracked_identities()
        except StoreUnavailable as exc:
            LOGGER.error("Cannot load tracked identities, skipping cycle: %s", exc)
            outcome.aborted = True
            outcome.error = str(exc)
            return

        if not identities:
            LOGGER.debug("No tracked identities")
            return

        semaphore = asyncio.Semaphore(max(1, self._config.max_concurrency))
        store_down = asyncio.Event()

        async def _guarded(identity: TrackedIdentity) -> Optional[IdentityOutcome]:
            async with semaphore:
                # Identities not yet started are left for the next tick.
                if store_down.is_set():
                    return None
                try:
                    return await self.reconcile_identity(identity)
                except StoreUnavailable as exc:
                    store_down.set()
                    outcome.aborted = True
                    outcome.error = str(exc)
                    LOGGER.error("Store unavailable while reconciling %s, ending cycle: %s", identity.riot_id, exc)
                    return IdentityOutcome(
                        account_key=identity.account_key,
                        riot_id=identity.riot_id,
                        status=IdentityStatus.FAILED,
                        cursor=identity.cursor,
                        error=str(exc),
                    )
                except Exception as exc:
                    LOGGER.exception("Unexpected error while reconciling %s", identity.riot_id)
                    return IdentityOutcome(
                        account_key=identity.account_key,
                        riot_id=identity.riot_id,
                        status=IdentityStatus.FAILED,
                        cursor=identity.cursor,
                        error=str(exc),
                    )

        results = await asyncio.gather(*(_guarded(identity) for identity in identities))
        outcome.identities.extend(result for result in results if result is not None)

    async def reconcile_identity(self, identity: TrackedIdentity) -> IdentityOutcome:
        """Catch one identity up with its recent match window."""

        outcome = IdentityOutcome(
            account_key=identity.account_key,
            riot_id=identity.riot_id,
            cursor=identity.cursor,
        )

        try:
            fetched = await self._call(
                self._source.fetch_recent_match_ids,
                identity.account_key,
                self._config.lookback,
            )
        except MatchSourceError as exc:
            LOGGER.warning("Fetching recent matches for %s failed: %s", identity.riot_id, exc)
            outcome.status = IdentityStatus.FAILED
            outcome.error = str(exc)
            return outcome

        newest = fetched[0] if fetched else None
        if identity.poll_state(newest) is not PollState.HAS_NEW_MATCHES:
            return outcome

        new_ids = compute_new_match_ids(fetched, identity.cursor)
        LOGGER.info("%s has %s new match(es)", identity.riot_id, len(new_ids))
        for match_id in new_ids:
            await self._process_match(identity, match_id, outcome)

        # A single advance after the batch: a crash mid-batch replays the
        # window next cycle and the store absorbs the duplicates.
        self._storage.advance_cursor(identity.account_key, newest)
        outcome.cursor = newest
        outcome.status = IdentityStatus.UPDATED
        return outcome

    async def _process_match(self, identity: TrackedIdentity, match_id: str, outcome: IdentityOutcome) -> None:
        try:
            payload = await self._call(self._source.fetch_match_details, match_id)
            record = self._source.extract_participant(payload, identity.account_key)
        except ParticipantNotFound as exc:
            LOGGER.warning("Skipping %s: %s", match_id, exc)
            outcome.skipped.append(match_id)
            return
        except MatchSourceError as exc:
            LOGGER.warning("Skipping %s for %s: %s", match_id, identity.riot_id, exc)
            outcome.skipped.append(match_id)
            return
        except Exception:
            LOGGER.exception("Unexpected error processing %s for %s, skipping", match_id, identity.riot_id)
            outcome.skipped.append(match_id)
            return

        try:
            self._storage.upsert_match_record(record)
        except StoreConflict:
            LOGGER.debug("Match %s already stored for %s", match_id, identity.riot_id)
        outcome.processed.append(match_id)

        try:
            await self._notifier.send(identity, record)
        except Exception:
            outcome.notification_failures += 1
            LOGGER.exception("Notification failed for %s (%s)", match_id, identity.riot_id)
            return
        LOGGER.info("Match %s saved for %s", match_id, identity.riot_id)

    async def _call(self, func: Callable[..., T], *args: Any) -> T:
        """Run a blocking source call in a thread with a hard timeout."""

        timeout = self._config.call_timeout
        try:
            return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=timeout)
        except asyncio.TimeoutError as exc:
            name = getattr(func, "__name__", "source call")
            raise TransportError(f"{name} timed out after {timeout:g}s") from exc
