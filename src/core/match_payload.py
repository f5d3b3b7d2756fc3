"""Typed decoder for match-v5 payloads.

The remote API returns loosely shaped JSON. Decoding it once into frozen
dataclasses keeps schema drift visible as ``MalformedPayload`` instead of a
``KeyError`` deep inside the engine, and keeps it separate from the
``ParticipantNotFound`` case.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Tuple

from core.errors import MalformedPayload, ParticipantNotFound
from core.models import MatchRecord

SUPPORTED_DATA_VERSIONS = frozenset({"2"})
ITEM_SLOTS = 7


@dataclass(frozen=True)
class ParticipantPayload:
    puuid: str
    champion_name: str
    win: bool
    kills: int
    deaths: int
    assists: int
    total_minions_killed: int
    neutral_minions_killed: int
    damage_to_champions: int
    damage_taken: int
    vision_score: int
    gold_earned: int
    items: Tuple[int, ...]


@dataclass(frozen=True)
class MatchPayload:
    match_id: str
    data_version: str
    game_mode: str
    game_duration: int
    game_creation: datetime
    participants: Tuple[ParticipantPayload, ...]

    def participant(self, account_key: str) -> Optional[ParticipantPayload]:
        for participant in self.participants:
            if participant.puuid == account_key:
                return participant
        return None


def _require(mapping: Mapping[str, Any], key: str, kind: type, where: str) -> Any:
    if not isinstance(mapping, Mapping):
        raise MalformedPayload(f"{where} is not an object")
    if key not in mapping:
        raise MalformedPayload(f"{where}.{key} is missing")
    value = mapping[key]
    # bool is a subclass of int; reject it where a count is expected.
    if kind is int and isinstance(value, bool):
        raise MalformedPayload(f"{where}.{key} must be int, got bool")
    if not isinstance(value, kind):
        raise MalformedPayload(f"{where}.{key} must be {kind.__name__}, got {type(value).__name__}")
    return value


def _optional_int(mapping: Mapping[str, Any], key: str, where: str) -> int:
    if mapping.get(key) is None:
        return 0
    return _require(mapping, key, int, where)


def _decode_participant(raw: Any, index: int) -> ParticipantPayload:
    where = f"info.participants[{index}]"
    if not isinstance(raw, Mapping):
        raise MalformedPayload(f"{where} is not an object")
    items = tuple(_optional_int(raw, f"item{slot}", where) for slot in range(ITEM_SLOTS))
    return ParticipantPayload(
        puuid=_require(raw, "puuid", str, where),
        champion_name=_require(raw, "championName", str, where),
        win=_require(raw, "win", bool, where),
        kills=_require(raw, "kills", int, where),
        deaths=_require(raw, "deaths", int, where),
        assists=_require(raw, "assists", int, where),
        total_minions_killed=_require(raw, "totalMinionsKilled", int, where),
        neutral_minions_killed=_optional_int(raw, "neutralMinionsKilled", where),
        damage_to_champions=_require(raw, "totalDamageDealtToChampions", int, where),
        damage_taken=_require(raw, "totalDamageTaken", int, where),
        vision_score=_require(raw, "visionScore", int, where),
        gold_earned=_require(raw, "goldEarned", int, where),
        items=items,
    )


def _normalize_duration(info: Mapping[str, Any]) -> int:
    duration = _require(info, "gameDuration", int, "info")
    # Payloads created before patch 11.20 have no gameEndTimestamp and report
    # the duration in milliseconds.
    if "gameEndTimestamp" not in info:
        return duration // 1000
    return duration


def decode_match(raw: Any) -> MatchPayload:
    """Validate a raw match-v5 payload and return its typed form."""

    if not isinstance(raw, dict):
        raise MalformedPayload("match payload is not an object")
    metadata = raw.get("metadata")
    if not isinstance(metadata, dict):
        raise MalformedPayload("match.metadata is missing")
    data_version = _require(metadata, "dataVersion", str, "metadata")
    if data_version not in SUPPORTED_DATA_VERSIONS:
        raise MalformedPayload(f"Unsupported match dataVersion {data_version!r}")
    match_id = _require(metadata, "matchId", str, "metadata")

    info = raw.get("info")
    if not isinstance(info, dict):
        raise MalformedPayload(f"{match_id}: info is missing")
    raw_participants = _require(info, "participants", list, "info")
    participants: List[ParticipantPayload] = [
        _decode_participant(entry, index) for index, entry in enumerate(raw_participants)
    ]

    created_ms = _require(info, "gameCreation", int, "info")
    # Second precision keeps stored timestamps comparable as text.
    try:
        game_creation = datetime.fromtimestamp(created_ms // 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise MalformedPayload(f"{match_id}: info.gameCreation {created_ms} is out of range") from exc

    return MatchPayload(
        match_id=match_id,
        data_version=data_version,
        game_mode=_require(info, "gameMode", str, "info"),
        game_duration=_normalize_duration(info),
        game_creation=game_creation,
        participants=tuple(participants),
    )


def extract_participant(
    payload: MatchPayload,
    account_key: str,
    extracted_at: datetime,
) -> MatchRecord:
    """Build the MatchRecord for ``account_key`` or raise ParticipantNotFound."""

    participant = payload.participant(account_key)
    if participant is None:
        raise ParticipantNotFound(payload.match_id, account_key)

    return MatchRecord(
        match_id=payload.match_id,
        account_key=account_key,
        champion=participant.champion_name,
        win=participant.win,
        game_mode=payload.game_mode,
        game_duration=payload.game_duration,
        kills=participant.kills,
        deaths=participant.deaths,
        assists=participant.assists,
        creep_score=participant.total_minions_killed + participant.neutral_minions_killed,
        damage_dealt=participant.damage_to_champions,
        damage_taken=participant.damage_taken,
        vision_score=participant.vision_score,
        gold_earned=participant.gold_earned,
        items=participant.items,
        game_creation=payload.game_creation,
        extracted_at=extracted_at,
    )
