"""Telegram chat command adapter.

Parses ``/track``, ``/untrack``, ``/stats``, ``/tracked`` and ``/poll``
messages and routes them to the shared TrackerCommands service. Failures are
answered with a one-line cause instead of being raised into Telethon.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Optional, Sequence, Tuple

from telethon import events

from adapters.command_replies import format_stats, format_tracked
from core.commands import TrackerCommands, parse_riot_id
from core.engine import ReconciliationEngine
from core.errors import NotFound, RateLimited, RiftwatchError

LOGGER = logging.getLogger(__name__)

COMMAND_PATTERN = re.compile(
    r"^/(track|untrack|stats|tracked|poll)(?:@\w+)?(?:\s+(.*))?$",
    re.IGNORECASE | re.DOTALL,
)

USAGE = {
    "track": "/track Name#TAG",
    "untrack": "/untrack Name#TAG",
    "stats": "/stats Name#TAG [days]",
}


def split_stats_args(args: str) -> Tuple[str, Optional[int]]:
    """Split ``Name#TAG [days]``; game names may contain spaces."""

    parts = args.rsplit(None, 1)
    if len(parts) == 2 and parts[1].isdigit() and "#" in parts[0]:
        return parts[0], int(parts[1])
    return args, None


class TelegramCommandHandler:
    """Turns command messages into replies."""

    def __init__(self, commands: TrackerCommands, engine: Optional[ReconciliationEngine] = None) -> None:
        self._commands = commands
        self._engine = engine

    async def handle(self, text: str) -> Optional[str]:
        """Return the reply for ``text``, or None when it is not a command."""

        match = COMMAND_PATTERN.match(text.strip())
        if not match:
            return None
        command = match.group(1).lower()
        args = (match.group(2) or "").strip()

        try:
            return await self._dispatch(command, args)
        except ValueError as exc:
            usage = USAGE.get(command)
            return f"{exc}\nUsage: {usage}" if usage else str(exc)
        except NotFound as exc:
            return f"Not found: {exc}"
        except RateLimited:
            return "Riot API rate limit reached, try again in a moment."
        except RiftwatchError as exc:
            return f"Command failed: {exc}"

    async def _dispatch(self, command: str, args: str) -> str:
        if command == "tracked":
            return format_tracked(await asyncio.to_thread(self._commands.tracked))

        if command == "poll":
            if self._engine is None:
                return "Polling is not running."
            outcome = await self._engine.run_cycle()
            return f"Poll finished: {outcome.summary()}"

        if command == "stats":
            riot_id, days = split_stats_args(args)
            name, tag = parse_riot_id(riot_id)
            stats = await asyncio.to_thread(self._commands.stats, name, tag, days)
            return format_stats(f"{name}#{tag}", stats)

        name, tag = parse_riot_id(args)
        if command == "track":
            identity = await asyncio.to_thread(self._commands.track, name, tag)
            return f"Now tracking {identity.riot_id}."
        identity = await asyncio.to_thread(self._commands.untrack, name, tag)
        return f"Stopped tracking {identity.riot_id}."

    def register(self, client, chats: Optional[Sequence[str]] = None) -> None:
        """Attach a NewMessage handler for command messages to ``client``."""

        @client.on(events.NewMessage(pattern=COMMAND_PATTERN, chats=list(chats) if chats else None))
        async def _on_command(event) -> None:
            try:
                reply = await self.handle(event.raw_text or "")
                if reply:
                    await event.reply(reply)
            except Exception:
                LOGGER.exception("Error while handling command")
