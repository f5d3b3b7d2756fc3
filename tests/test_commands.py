from __future__ import annotations

from datetime import timedelta

import pytest

from core.commands import TrackerCommands, parse_riot_id
from core.config import StatsConfig
from core.errors import NotFound
from fakes import NOW, FakeSource, FakeStorage, make_identity, make_record


def _commands(storage: FakeStorage, source: FakeSource) -> TrackerCommands:
    return TrackerCommands(
        storage=storage,
        source=source,
        stats_config=StatsConfig(default_days=7),
        clock=lambda: NOW,
    )


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        ("Foo#NA1", ("Foo", "NA1")),
        ("  Foo Bar #EUW ", ("Foo Bar", "EUW")),
        ("we#ird#KR1", ("we#ird", "KR1")),
    ],
)
def test_parse_riot_id(value: str, expected: tuple[str, str]) -> None:
    assert parse_riot_id(value) == expected


@pytest.mark.parametrize("value", ["Foo", "#NA1", "Foo#", ""])
def test_parse_riot_id_rejects_bad_input(value: str) -> None:
    with pytest.raises(ValueError):
        parse_riot_id(value)


def test_track_seeds_cursor_with_newest_match() -> None:
    storage = FakeStorage()
    source = FakeSource({"puuid-foo": ["NA1_3", "NA1_2"]})
    source.accounts[("Foo", "NA1")] = "puuid-foo"

    identity = _commands(storage, source).track("Foo", "NA1")

    assert identity.cursor == "NA1_3"
    assert storage.identities["puuid-foo"].cursor == "NA1_3"
    assert storage.identities["puuid-foo"].created_at == NOW


def test_track_without_history_leaves_cursor_empty() -> None:
    storage = FakeStorage()
    source = FakeSource()
    source.accounts[("Foo", "NA1")] = "puuid-foo"

    identity = _commands(storage, source).track("Foo", "NA1")

    assert identity.cursor is None


def test_retrack_refreshes_label_but_keeps_cursor() -> None:
    storage = FakeStorage([make_identity(name="Foo", cursor="NA1_2")])
    source = FakeSource({"puuid-foo": ["NA1_3", "NA1_2"]})
    source.accounts[("Foo Renamed", "NA1")] = "puuid-foo"

    identity = _commands(storage, source).track("Foo Renamed", "NA1")

    stored = storage.identities["puuid-foo"]
    assert identity.cursor == "NA1_2"
    assert stored.cursor == "NA1_2"
    assert stored.display_name == "Foo Renamed"


def test_track_unknown_riot_id_raises_not_found() -> None:
    storage = FakeStorage()

    with pytest.raises(NotFound):
        _commands(storage, FakeSource()).track("Ghost", "NA1")

    assert storage.identities == {}


def test_untrack_removes_identity() -> None:
    storage = FakeStorage([make_identity()])

    removed = _commands(storage, FakeSource()).untrack("foo", "na1")

    assert removed.account_key == "puuid-foo"
    assert storage.identities == {}


def test_untrack_unknown_identity_raises_not_found() -> None:
    with pytest.raises(NotFound):
        _commands(FakeStorage(), FakeSource()).untrack("Foo", "NA1")


def test_stats_uses_default_window() -> None:
    storage = FakeStorage([make_identity()])
    storage.upsert_match_record(make_record("NA1_1"))
    storage.upsert_match_record(make_record("NA1_2", win=False, champion="Lux"))

    stats = _commands(storage, FakeSource()).stats("Foo", "NA1")

    assert storage.queries == [("puuid-foo", timedelta(days=7))]
    assert stats.games == 2
    assert stats.wins == 1
    assert stats.days == 7


def test_stats_rejects_non_positive_days() -> None:
    storage = FakeStorage([make_identity()])

    with pytest.raises(ValueError):
        _commands(storage, FakeSource()).stats("Foo", "NA1", days=0)


def test_tracked_is_sorted_by_riot_id() -> None:
    storage = FakeStorage(
        [
            make_identity(account_key="b", name="bravo"),
            make_identity(account_key="a", name="Alpha"),
        ]
    )

    assert [identity.display_name for identity in _commands(storage, FakeSource()).tracked()] == ["Alpha", "bravo"]
