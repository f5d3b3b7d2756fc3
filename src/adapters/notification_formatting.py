"""Shared notification formatting helpers.

Keeping formatting here prevents drift between adapters and keeps messages
consistent regardless of delivery channel.
"""

from __future__ import annotations

import html

from core.models import MatchRecord, TrackedIdentity

DIVIDER = "──────────────"


def format_game_mode(game_mode: str) -> str:
    """Turn API game modes like ``ULTBOOK`` or ``ONE_FOR_ALL`` into labels."""

    return game_mode.replace("_", " ").title()


def format_duration(seconds: int) -> str:
    minutes, rest = divmod(max(seconds, 0), 60)
    return f"{minutes}:{rest:02d}"


def _summary_fields(record: MatchRecord) -> list[tuple[str, str]]:
    return [
        ("Result", "Win" if record.win else "Loss"),
        ("Champion", record.champion),
        ("KDA", f"{record.kills}/{record.deaths}/{record.assists} ({record.kda:.2f})"),
        ("CS", str(record.creep_score)),
        ("Damage", f"{record.damage_dealt:,}"),
        ("Vision", str(record.vision_score)),
        ("Gold", f"{record.gold_earned:,}"),
        ("Mode", format_game_mode(record.game_mode)),
        ("Duration", format_duration(record.game_duration)),
    ]


def _format_markdown(identity: TrackedIdentity, record: MatchRecord) -> str:
    """Create the Markdown notification body used by Saved Messages."""

    # Telegram Markdown is supported by passing parse_mode="Markdown".
    def escape_md(value: str) -> str:
        for ch in r"*[`":
            value = value.replace(ch, f"\\{ch}")
        return value

    timestamp = record.game_creation.astimezone().strftime("%H:%M:%S %d-%m-%Y").strip()
    lines = [
        f"[{timestamp}]",
        f"**New game:** {escape_md(identity.riot_id)}",
        DIVIDER,
    ]
    lines.extend(f"**{label}:** {escape_md(value)}" for label, value in _summary_fields(record))
    lines.extend([DIVIDER, f"Match ID: {escape_md(record.match_id)}"])
    return "\n".join(lines)


def _format_html(identity: TrackedIdentity, record: MatchRecord) -> str:
    """Create the HTML notification body used by the Bot API adapter."""

    timestamp = html.escape(record.game_creation.astimezone().strftime("%H:%M:%S %d-%m-%Y").strip())
    parts = [
        f"[{timestamp}]",
        f"<b>New game:</b> {html.escape(identity.riot_id)}",
        DIVIDER,
    ]
    parts.extend(f"<b>{label}:</b> {html.escape(value)}" for label, value in _summary_fields(record))
    parts.extend([DIVIDER, f"Match ID: <code>{html.escape(record.match_id)}</code>"])
    return "\n".join(parts)


def format_notification(identity: TrackedIdentity, record: MatchRecord, mode: str) -> str:
    """Return the notification formatted for the requested mode."""

    if mode == "markdown":
        return _format_markdown(identity, record)
    if mode == "html":
        return _format_html(identity, record)
    raise ValueError(f"Unsupported notification format: {mode}")
