"""Application entry point for the riftwatch match tracker."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from typing import Optional

from art import tprint
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

import settings
from adapters.command_replies import format_stats
from adapters.notification_formatting import format_duration
from adapters.riot_source import RiotMatchSource
from adapters.sqlite_storage import SQLiteStorage
from adapters.telegram_bot_notifier import TelegramBotNotifier
from adapters.telegram_commands import TelegramCommandHandler
from adapters.telegram_notifier import TelegramSavedMessagesNotifier
from core.commands import TrackerCommands, parse_riot_id
from core.config import PollingConfig, StatsConfig
from core.engine import CycleOutcome, ReconciliationEngine
from core.errors import NotFound, RiftwatchError
from core.scheduler import PollScheduler
from log_setup import configure_logging
from telegram_session import build_client, connect

NAME = "RIFTWATCH"
FONT = "tarty-1"

CONSOLE = Console()


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


def _configure_logging() -> None:
    load_dotenv()
    configure_logging(settings.LOGGING, settings.PROJECT_ROOT)


def _polling_config() -> PollingConfig:
    return PollingConfig(
        interval_seconds=settings.POLL_INTERVAL_MINUTES * 60,
        lookback=settings.LOOKBACK,
        max_concurrency=settings.MAX_CONCURRENCY,
        call_timeout=settings.REQUEST_TIMEOUT_SECONDS,
    )


def _build_storage() -> SQLiteStorage:
    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()
    return storage


def _build_source() -> RiotMatchSource:
    load_dotenv()
    api_key = os.getenv("RIOT_API_KEY")
    if not api_key:
        raise RuntimeError("Missing RIOT_API_KEY in environment")
    return RiotMatchSource(
        api_key=api_key,
        routing=settings.RIOT_ROUTING,
        timeout=settings.REQUEST_TIMEOUT_SECONDS,
    )


def _build_notifier(client):
    # Select the notification adapter based on configuration to keep the core
    # engine independent from delivery details.
    if settings.NOTIFICATION_METHOD == "bot":
        bot_token = os.getenv("BOT_API")
        if not bot_token:
            raise RuntimeError("BOT_API is required when notification_method=bot")
        if not settings.BOT_CHAT_ID:
            raise RuntimeError("notifications.bot_chat_id is required for bot notifications")
        return TelegramBotNotifier(bot_token=bot_token, chat_id=str(settings.BOT_CHAT_ID))
    if settings.NOTIFICATION_METHOD == "saved_messages":
        return TelegramSavedMessagesNotifier(client)
    raise RuntimeError("notification_method must be 'saved_messages' or 'bot'")


def _build_commands(storage: SQLiteStorage, source: Optional[RiotMatchSource]) -> TrackerCommands:
    return TrackerCommands(
        storage=storage,
        source=source,
        stats_config=StatsConfig(default_days=settings.STATS_DEFAULT_DAYS),
    )


def _log_outcome(outcome: CycleOutcome) -> None:
    for item in outcome.identities:
        if item.error:
            logging.getLogger(__name__).warning("%s: %s", item.riot_id, item.error)


def _run() -> None:
    _print_banner()
    _configure_logging()
    logger = logging.getLogger(__name__)

    logger.info("Starting riftwatch")

    storage = _build_storage()
    source = _build_source()
    polling = _polling_config()

    client = build_client()
    client.loop.run_until_complete(connect(client))

    notifier = _build_notifier(client)
    logger.info("Selected notification method - %s", settings.NOTIFICATION_METHOD)

    engine = ReconciliationEngine(storage=storage, source=source, notifier=notifier, config=polling)
    scheduler = PollScheduler(engine, polling.interval_seconds, on_outcome=_log_outcome)

    if settings.COMMANDS_ENABLED:
        handler = TelegramCommandHandler(_build_commands(storage, source), engine)
        handler.register(client, settings.COMMAND_CHATS)
        logger.info("Chat commands enabled for %s", ", ".join(settings.COMMAND_CHATS))

    # Explicit lifecycle management makes start/shutdown behavior obvious.
    client.start()
    polling_task = client.loop.create_task(scheduler.run_forever())
    logger.info("Client connected. Polling %s tracked player(s)...", len(storage.list_tracked_identities()))
    try:
        client.run_until_disconnected()
    finally:
        scheduler.stop()
        polling_task.cancel()


def _poll_once() -> None:
    _configure_logging()
    storage = _build_storage()
    source = _build_source()

    client = None
    if settings.NOTIFICATION_METHOD == "saved_messages":
        client = build_client()
        client.loop.run_until_complete(connect(client))
    notifier = _build_notifier(client)
    engine = ReconciliationEngine(storage=storage, source=source, notifier=notifier, config=_polling_config())

    if client is not None:
        outcome = client.loop.run_until_complete(engine.run_cycle())
        client.loop.run_until_complete(client.disconnect())
    else:
        outcome = asyncio.run(engine.run_cycle())
    CONSOLE.print(f"Poll finished: {outcome.summary()}")


def _login() -> None:
    _print_banner()
    client = build_client()

    async def _run_login() -> None:
        await connect(client)
        await client.disconnect()

    client.loop.run_until_complete(_run_login())


def _print_tracked(commands: TrackerCommands) -> None:
    identities = commands.tracked()
    if not identities:
        CONSOLE.print("No tracked players.")
        return
    table = Table(title="Tracked players")
    table.add_column("Riot ID")
    table.add_column("Last match")
    table.add_column("Tracked since")
    for identity in identities:
        table.add_row(
            identity.riot_id,
            identity.cursor or "-",
            identity.created_at.astimezone().strftime("%Y-%m-%d %H:%M"),
        )
    CONSOLE.print(table)


def _print_stats(commands: TrackerCommands, riot_id: str, days: Optional[int]) -> None:
    name, tag = parse_riot_id(riot_id)
    stats = commands.stats(name, tag, days)
    if not stats.games:
        CONSOLE.print(format_stats(f"{name}#{tag}", stats))
        return
    table = Table(title=f"{name}#{tag}: last {stats.days} day(s)", show_header=False)
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Games", f"{stats.games} ({stats.wins}W {stats.losses}L)")
    table.add_row("Win rate", f"{stats.win_rate:.0%}")
    table.add_row("K/D/A", f"{stats.avg_kills:.1f}/{stats.avg_deaths:.1f}/{stats.avg_assists:.1f}")
    table.add_row("KDA", f"{stats.kda:.2f}")
    table.add_row("CS", f"{stats.avg_creep_score:.0f}")
    table.add_row("Damage", f"{stats.avg_damage_dealt:,.0f}")
    table.add_row("Vision", f"{stats.avg_vision_score:.1f}")
    table.add_row("Gold", f"{stats.avg_gold_earned:,.0f}")
    table.add_row("Duration", format_duration(int(stats.avg_duration)))
    table.add_row("Top champions", ", ".join(f"{champ} ({games})" for champ, games in stats.top_champions))
    CONSOLE.print(table)


def _run_command(args: argparse.Namespace) -> int:
    """Run one operator command and report failures as a single line."""

    _configure_logging()
    storage = _build_storage()
    try:
        if args.command == "tracked":
            _print_tracked(_build_commands(storage, None))
            return 0
        if args.command == "untrack":
            name, tag = parse_riot_id(args.riot_id)
            identity = _build_commands(storage, None).untrack(name, tag)
            CONSOLE.print(f"Stopped tracking {identity.riot_id}.")
            return 0
        if args.command == "stats":
            _print_stats(_build_commands(storage, None), args.riot_id, args.days)
            return 0
        name, tag = parse_riot_id(args.riot_id)
        identity = _build_commands(storage, _build_source()).track(name, tag)
        CONSOLE.print(f"Now tracking {identity.riot_id} (last match: {identity.cursor or '-'}).")
        return 0
    except ValueError as exc:
        CONSOLE.print(f"[red]{exc}[/red]")
    except NotFound as exc:
        CONSOLE.print(f"[red]Not found:[/red] {exc}")
    except RiftwatchError as exc:
        CONSOLE.print(f"[red]Command failed:[/red] {exc}")
    return 1


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="riftwatch")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the watcher")
    subparsers.add_parser("poll", help="Run a single reconciliation cycle and exit")
    subparsers.add_parser("login", help="Authorize the Telegram session")
    subparsers.add_parser("tracked", help="List tracked players")

    track = subparsers.add_parser("track", help="Start tracking a Riot ID")
    track.add_argument("riot_id", help="Name#TAG")
    untrack = subparsers.add_parser("untrack", help="Stop tracking a Riot ID")
    untrack.add_argument("riot_id", help="Name#TAG")
    stats = subparsers.add_parser("stats", help="Show stats for a tracked Riot ID")
    stats.add_argument("riot_id", help="Name#TAG")
    stats.add_argument("--days", type=int, default=None, help="Trailing window in days")

    args = parser.parse_args(argv)
    if args.command == "poll":
        _poll_once()
        return
    if args.command == "login":
        _login()
        return
    if args.command in {"track", "untrack", "stats", "tracked"}:
        raise SystemExit(_run_command(args))
    _run()


if __name__ == "__main__":
    main()
