"""Ports (interfaces) used by the core engine.

Ports define the minimal contracts for the match source, storage, and
notification adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, List, Optional, Protocol

from core.models import MatchRecord, TrackedIdentity


class MatchSourcePort(Protocol):
    """Match-history operations required by the engine and commands.

    Every call may block on network I/O.
    """

    def resolve_identity(self, display_name: str, display_tag: str) -> str:
        ...

    def fetch_recent_match_ids(self, account_key: str, limit: int) -> List[str]:
        ...

    def fetch_match_details(self, match_id: str) -> dict[str, Any]:
        ...

    def extract_participant(self, payload: dict[str, Any], account_key: str) -> MatchRecord:
        ...


class StoragePort(Protocol):
    """Storage operations required by the engine and commands."""

    def list_tracked_identities(self) -> List[TrackedIdentity]:
        ...

    def get_tracked_identity(self, display_name: str, display_tag: str) -> Optional[TrackedIdentity]:
        ...

    def upsert_tracked_identity(self, identity: TrackedIdentity) -> None:
        ...

    def remove_tracked_identity(self, account_key: str) -> bool:
        ...

    def advance_cursor(self, account_key: str, new_cursor: str) -> None:
        ...

    def upsert_match_record(self, record: MatchRecord) -> bool:
        ...

    def query_match_records(self, account_key: str, since: timedelta) -> List[MatchRecord]:
        ...


class NotifierPort(Protocol):
    """Notification operations required by the engine."""

    async def send(self, identity: TrackedIdentity, record: MatchRecord) -> None:
        ...
