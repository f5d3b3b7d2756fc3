"""Plain-text replies for chat commands."""

from __future__ import annotations

from typing import Iterable

from adapters.notification_formatting import format_duration
from core.models import TrackedIdentity
from core.stats import PlayerStats


def format_tracked(identities: Iterable[TrackedIdentity]) -> str:
    identities = list(identities)
    if not identities:
        return "No tracked players."
    lines = [f"Tracked players ({len(identities)}):"]
    for identity in identities:
        cursor = identity.cursor or "no matches yet"
        lines.append(f"- {identity.riot_id} (last match: {cursor})")
    return "\n".join(lines)


def format_stats(riot_id: str, stats: PlayerStats) -> str:
    header = f"{riot_id}: last {stats.days} day(s)"
    if not stats.games:
        return f"{header}\nNo games recorded."

    champions = ", ".join(f"{name} ({games})" for name, games in stats.top_champions)
    return "\n".join(
        [
            header,
            f"Games: {stats.games} ({stats.wins}W {stats.losses}L, {stats.win_rate:.0%})",
            f"KDA: {stats.avg_kills:.1f}/{stats.avg_deaths:.1f}/{stats.avg_assists:.1f} ({stats.kda:.2f})",
            f"CS: {stats.avg_creep_score:.0f}  Damage: {stats.avg_damage_dealt:,.0f}",
            f"Vision: {stats.avg_vision_score:.1f}  Gold: {stats.avg_gold_earned:,.0f}",
            f"Avg duration: {format_duration(int(stats.avg_duration))}",
            f"Top champions: {champions}",
        ]
    )
