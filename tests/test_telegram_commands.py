from __future__ import annotations

import asyncio
from datetime import timedelta

from adapters.telegram_commands import TelegramCommandHandler, split_stats_args
from core.commands import TrackerCommands
from core.config import PollingConfig, StatsConfig
from core.engine import ReconciliationEngine
from fakes import FakeNotifier, FakeSource, FakeStorage, make_identity, make_record


def _handler(storage: FakeStorage, source: FakeSource, with_engine: bool = False) -> TelegramCommandHandler:
    commands = TrackerCommands(storage=storage, source=source, stats_config=StatsConfig(default_days=7))
    engine = None
    if with_engine:
        engine = ReconciliationEngine(storage, source, FakeNotifier(), PollingConfig())
    return TelegramCommandHandler(commands, engine)


def test_split_stats_args() -> None:
    assert split_stats_args("Foo Bar#NA1 14") == ("Foo Bar#NA1", 14)
    assert split_stats_args("Foo Bar#NA1") == ("Foo Bar#NA1", None)
    assert split_stats_args("Foo 2#NA1") == ("Foo 2#NA1", None)


def test_non_command_text_is_ignored() -> None:
    handler = _handler(FakeStorage(), FakeSource())

    assert asyncio.run(handler.handle("gg wp")) is None
    assert asyncio.run(handler.handle("/trackers Foo#NA1")) is None


def test_track_command() -> None:
    storage = FakeStorage()
    source = FakeSource({"puuid-foo": ["NA1_9"]})
    source.accounts[("Foo", "NA1")] = "puuid-foo"

    reply = asyncio.run(_handler(storage, source).handle("/track Foo#NA1"))

    assert reply == "Now tracking Foo#NA1."
    assert storage.identities["puuid-foo"].cursor == "NA1_9"


def test_track_command_without_riot_id_shows_usage() -> None:
    reply = asyncio.run(_handler(FakeStorage(), FakeSource()).handle("/track"))

    assert reply is not None
    assert "Usage: /track Name#TAG" in reply


def test_untrack_unknown_reports_not_found() -> None:
    reply = asyncio.run(_handler(FakeStorage(), FakeSource()).handle("/untrack Ghost#NA1"))

    assert reply == "Not found: Ghost#NA1 is not tracked"


def test_stats_command_with_days() -> None:
    storage = FakeStorage([make_identity(name="Foo Bar")])
    storage.upsert_match_record(make_record("NA1_1"))

    reply = asyncio.run(_handler(storage, FakeSource()).handle("/stats Foo Bar#NA1 14"))

    assert reply is not None
    assert reply.startswith("Foo Bar#NA1: last 14 day(s)")
    assert "Games: 1 (1W 0L, 100%)" in reply
    assert storage.queries == [("puuid-foo", timedelta(days=14))]


def test_tracked_command_lists_identities() -> None:
    storage = FakeStorage([make_identity(cursor="NA1_5")])

    reply = asyncio.run(_handler(storage, FakeSource()).handle("/tracked"))

    assert reply == "Tracked players (1):\n- Foo#NA1 (last match: NA1_5)"


def test_poll_command_runs_a_cycle() -> None:
    storage = FakeStorage([make_identity(cursor="NA1_1")])
    source = FakeSource({"puuid-foo": ["NA1_2", "NA1_1"]})

    reply = asyncio.run(_handler(storage, source, with_engine=True).handle("/poll"))

    assert reply is not None
    assert reply.startswith("Poll finished: identities=1 updated=1")
    assert storage.identities["puuid-foo"].cursor == "NA1_2"
