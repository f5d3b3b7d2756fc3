"""Operator commands: track, untrack, stats, tracked.

These are the operations behind the CLI and Telegram chat commands. They only
rely on ports, so both surfaces share one implementation.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Tuple

from core.config import StatsConfig
from core.errors import NotFound
from core.models import TrackedIdentity
from core.ports import MatchSourcePort, StoragePort
from core.stats import PlayerStats, summarize

LOGGER = logging.getLogger(__name__)


def parse_riot_id(value: str) -> Tuple[str, str]:
    """Split ``Name#TAG`` into its parts.

    Game names may contain spaces; the tag is everything after the last ``#``.
    """

    name, sep, tag = value.strip().rpartition("#")
    name = name.strip()
    tag = tag.strip()
    if not sep or not name or not tag:
        raise ValueError(f"Expected a Riot ID like Name#TAG, got {value!r}")
    return name, tag


class TrackerCommands:
    """Command handlers shared by every operator-facing surface."""

    def __init__(
        self,
        storage: StoragePort,
        source: MatchSourcePort,
        stats_config: StatsConfig,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._storage = storage
        self._source = source
        self._stats_config = stats_config
        self._clock = clock

    def track(self, display_name: str, display_tag: str) -> TrackedIdentity:
        """Start tracking a Riot ID.

        The cursor is seeded with the current newest match so history from
        before tracking is never announced. Re-tracking an identity only
        refreshes its label; the cursor stays owned by the engine.
        """

        account_key = self._source.resolve_identity(display_name, display_tag)
        existing = self._find_by_key(account_key)
        if existing is not None:
            cursor = existing.cursor
        else:
            recent = self._source.fetch_recent_match_ids(account_key, 1)
            cursor = recent[0] if recent else None
        now = self._clock()

        identity = TrackedIdentity(
            account_key=account_key,
            display_name=display_name,
            display_tag=display_tag,
            cursor=cursor,
            created_at=existing.created_at if existing else now,
            updated_at=now,
        )
        self._storage.upsert_tracked_identity(identity)
        LOGGER.info("Tracking %s (cursor=%s)", identity.riot_id, identity.cursor)
        return identity

    def untrack(self, display_name: str, display_tag: str) -> TrackedIdentity:
        identity = self._require_tracked(display_name, display_tag)
        self._storage.remove_tracked_identity(identity.account_key)
        LOGGER.info("Stopped tracking %s", identity.riot_id)
        return identity

    def stats(self, display_name: str, display_tag: str, days: Optional[int] = None) -> PlayerStats:
        if days is None:
            days = self._stats_config.default_days
        if days <= 0:
            raise ValueError("days must be a positive number")
        identity = self._require_tracked(display_name, display_tag)
        records = self._storage.query_match_records(identity.account_key, timedelta(days=days))
        return summarize(records, days)

    def tracked(self) -> List[TrackedIdentity]:
        identities = self._storage.list_tracked_identities()
        return sorted(identities, key=lambda identity: identity.riot_id.lower())

    def _require_tracked(self, display_name: str, display_tag: str) -> TrackedIdentity:
        identity = self._storage.get_tracked_identity(display_name, display_tag)
        if identity is None:
            raise NotFound(f"{display_name}#{display_tag} is not tracked")
        return identity

    def _find_by_key(self, account_key: str) -> Optional[TrackedIdentity]:
        for identity in self._storage.list_tracked_identities():
            if identity.account_key == account_key:
                return identity
        return None
