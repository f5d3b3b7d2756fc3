"""Exception hierarchy shared by the core and adapters.

Adapters translate library-specific failures (HTTP, JSON, SQLite) into these
types so the engine can decide what is isolated and what aborts a cycle.
"""

from __future__ import annotations

from typing import Optional


class RiftwatchError(Exception):
    """Base class for every error raised on purpose by riftwatch."""


class MatchSourceError(RiftwatchError):
    """Any failure while talking to the match-history API."""


class TransportError(MatchSourceError):
    """Network failure, timeout, or an unexpected HTTP status."""


class RateLimited(TransportError):
    """The API throttled us (HTTP 429). Retried on the next cycle."""

    def __init__(self, message: str, retry_after: Optional[float] = None) -> None:
        super().__init__(message)
        self.retry_after = retry_after


class NotFound(MatchSourceError):
    """The requested Riot ID, account, or tracked identity does not exist."""


class MalformedPayload(MatchSourceError):
    """A response did not match the expected match-v5 shape."""


class ParticipantNotFound(MatchSourceError):
    """A match payload does not contain the tracked account."""

    def __init__(self, match_id: str, account_key: str) -> None:
        super().__init__(f"Account {account_key} is not a participant of {match_id}")
        self.match_id = match_id
        self.account_key = account_key


class StoreError(RiftwatchError):
    """Base class for storage failures."""


class StoreUnavailable(StoreError):
    """The store could not be read or written. Fatal for the current cycle."""


class StoreConflict(StoreError):
    """Duplicate primary key. Callers treat it as success."""
