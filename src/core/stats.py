"""Aggregate read model over stored match records."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable, List, Tuple

from core.models import MatchRecord


@dataclass(frozen=True)
class PlayerStats:
    """Aggregates for one identity over a trailing window of days."""

    days: int
    games: int
    wins: int
    avg_kills: float
    avg_deaths: float
    avg_assists: float
    kda: float
    avg_creep_score: float
    avg_damage_dealt: float
    avg_vision_score: float
    avg_gold_earned: float
    avg_duration: float
    top_champions: Tuple[Tuple[str, int], ...]

    @property
    def losses(self) -> int:
        return self.games - self.wins

    @property
    def win_rate(self) -> float:
        if not self.games:
            return 0.0
        return self.wins / self.games


def _mean(values: List[int]) -> float:
    if not values:
        return 0.0
    return sum(values) / len(values)


def summarize(records: Iterable[MatchRecord], days: int, top_n: int = 3) -> PlayerStats:
    """Aggregate ``records`` into a PlayerStats snapshot.

    KDA is computed over the totals rather than averaged per game, so one
    deathless game does not dominate the figure.
    """

    records = list(records)
    kills = [record.kills for record in records]
    deaths = [record.deaths for record in records]
    assists = [record.assists for record in records]

    champions = Counter(record.champion for record in records)
    top = sorted(champions.items(), key=lambda item: (-item[1], item[0]))[:top_n]

    return PlayerStats(
        days=days,
        games=len(records),
        wins=sum(1 for record in records if record.win),
        avg_kills=_mean(kills),
        avg_deaths=_mean(deaths),
        avg_assists=_mean(assists),
        kda=(sum(kills) + sum(assists)) / max(sum(deaths), 1),
        avg_creep_score=_mean([record.creep_score for record in records]),
        avg_damage_dealt=_mean([record.damage_dealt for record in records]),
        avg_vision_score=_mean([record.vision_score for record in records]),
        avg_gold_earned=_mean([record.gold_earned for record in records]),
        avg_duration=_mean([record.game_duration for record in records]),
        top_champions=tuple(top),
    )
