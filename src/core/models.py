"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any integration-specific types.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional, Tuple


class PollState(str, Enum):
    """Logical polling status of a tracked identity (never persisted)."""

    NEVER_POLLED = "never_polled"
    UP_TO_DATE = "up_to_date"
    HAS_NEW_MATCHES = "has_new_matches"


@dataclass(frozen=True)
class TrackedIdentity:
    """A Riot account watched by the polling engine."""

    account_key: str
    display_name: str
    display_tag: str
    cursor: Optional[str]
    created_at: datetime
    updated_at: datetime

    @property
    def riot_id(self) -> str:
        return f"{self.display_name}#{self.display_tag}"

    def poll_state(self, newest_match_id: Optional[str] = None) -> PollState:
        """Classify the identity against the newest id the source reported."""

        if self.cursor is None and newest_match_id is None:
            return PollState.NEVER_POLLED
        if newest_match_id is None or newest_match_id == self.cursor:
            return PollState.UP_TO_DATE
        return PollState.HAS_NEW_MATCHES


@dataclass(frozen=True)
class MatchRecord:
    """Persisted per-participant facts for one completed match."""

    match_id: str
    account_key: str
    champion: str
    win: bool
    game_mode: str
    game_duration: int
    kills: int
    deaths: int
    assists: int
    creep_score: int
    damage_dealt: int
    damage_taken: int
    vision_score: int
    gold_earned: int
    items: Tuple[int, ...]
    game_creation: datetime
    extracted_at: datetime

    @property
    def kda(self) -> float:
        return (self.kills + self.assists) / max(self.deaths, 1)
