"""SQLite storage adapter.

Implements the core StoragePort using a simple SQLite database.
"""

from __future__ import annotations

import json
import sqlite3
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone
from typing import Iterator, List, Optional

from core.errors import StoreUnavailable
from core.models import MatchRecord, TrackedIdentity


def _to_text(value: datetime) -> str:
    # Second precision in UTC keeps ISO strings sortable and comparable.
    return value.astimezone(timezone.utc).replace(microsecond=0).isoformat()


def _from_text(value: str) -> datetime:
    return datetime.fromisoformat(value)


class SQLiteStorage:
    """Thin SQLite wrapper that satisfies the StoragePort contract."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        """Yield a connection inside a transaction, translating SQLite errors."""

        try:
            conn = sqlite3.connect(self._db_path, timeout=10)
        except sqlite3.Error as exc:
            raise StoreUnavailable(f"Cannot open {self._db_path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise StoreUnavailable(str(exc)) from exc
        finally:
            conn.close()

    def init_db(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - tracked_identities: one row per tracked Riot account plus its cursor
        - match_records: append-only per-participant match history
        """

        with self._connect() as conn:
            # tracked_identities keeps a single cursor per account so we can
            # restart the app without re-announcing old matches.
            # Fields:
            # - account_key: Riot PUUID (PRIMARY KEY)
            # - display_name / display_tag: Riot ID parts, refreshed on re-track
            # - cursor: newest match id processed, NULL until first seen
            # - created_at / updated_at: ISO-8601 UTC timestamps
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS tracked_identities (
                    account_key TEXT PRIMARY KEY,
                    display_name TEXT NOT NULL,
                    display_tag TEXT NOT NULL,
                    cursor TEXT,
                    created_at TIMESTAMP NOT NULL,
                    updated_at TIMESTAMP NOT NULL
                )
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_tracked_riot_id
                ON tracked_identities (display_name COLLATE NOCASE, display_tag COLLATE NOCASE)
                """
            )
            # match_records is append-only. The UNIQUE constraint is what makes
            # replays after a crash harmless.
            # Fields:
            # - match_id / account_key: composite uniqueness key
            # - items: JSON list of the seven item slots
            # - game_creation: in-game start time (UTC)
            # - extracted_at: when riftwatch processed the match
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS match_records (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    match_id TEXT NOT NULL,
                    account_key TEXT NOT NULL,
                    champion TEXT NOT NULL,
                    win INTEGER NOT NULL,
                    game_mode TEXT NOT NULL,
                    game_duration INTEGER NOT NULL,
                    kills INTEGER NOT NULL,
                    deaths INTEGER NOT NULL,
                    assists INTEGER NOT NULL,
                    creep_score INTEGER NOT NULL,
                    damage_dealt INTEGER NOT NULL,
                    damage_taken INTEGER NOT NULL,
                    vision_score INTEGER NOT NULL,
                    gold_earned INTEGER NOT NULL,
                    items TEXT NOT NULL,
                    game_creation TIMESTAMP NOT NULL,
                    extracted_at TIMESTAMP NOT NULL,
                    UNIQUE (match_id, account_key)
                )
                """
            )
            conn.execute(
                """
                CREATE INDEX IF NOT EXISTS idx_match_records_account_created
                ON match_records (account_key, game_creation)
                """
            )

    @staticmethod
    def _identity_from_row(row: sqlite3.Row) -> TrackedIdentity:
        return TrackedIdentity(
            account_key=row["account_key"],
            display_name=row["display_name"],
            display_tag=row["display_tag"],
            cursor=row["cursor"],
            created_at=_from_text(row["created_at"]),
            updated_at=_from_text(row["updated_at"]),
        )

    @staticmethod
    def _record_from_row(row: sqlite3.Row) -> MatchRecord:
        return MatchRecord(
            match_id=row["match_id"],
            account_key=row["account_key"],
            champion=row["champion"],
            win=bool(row["win"]),
            game_mode=row["game_mode"],
            game_duration=row["game_duration"],
            kills=row["kills"],
            deaths=row["deaths"],
            assists=row["assists"],
            creep_score=row["creep_score"],
            damage_dealt=row["damage_dealt"],
            damage_taken=row["damage_taken"],
            vision_score=row["vision_score"],
            gold_earned=row["gold_earned"],
            items=tuple(json.loads(row["items"])),
            game_creation=_from_text(row["game_creation"]),
            extracted_at=_from_text(row["extracted_at"]),
        )

    def list_tracked_identities(self) -> List[TrackedIdentity]:
        """Return every tracked identity."""

        with self._connect() as conn:
            rows = conn.execute("SELECT * FROM tracked_identities ORDER BY created_at").fetchall()
        return [self._identity_from_row(row) for row in rows]

    def get_tracked_identity(self, display_name: str, display_tag: str) -> Optional[TrackedIdentity]:
        """Look up a tracked identity by Riot ID, ignoring case."""

        with self._connect() as conn:
            row = conn.execute(
                """
                SELECT * FROM tracked_identities
                WHERE display_name = ? COLLATE NOCASE AND display_tag = ? COLLATE NOCASE
                """,
                (display_name, display_tag),
            ).fetchone()
        return self._identity_from_row(row) if row else None

    def upsert_tracked_identity(self, identity: TrackedIdentity) -> None:
        """Insert an identity, or refresh the label of an existing one.

        An existing row keeps its created_at and cursor; after the first
        insert the cursor only moves through ``advance_cursor``.
        """

        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO tracked_identities (
                    account_key, display_name, display_tag, cursor, created_at, updated_at
                ) VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(account_key) DO UPDATE SET
                    display_name = excluded.display_name,
                    display_tag = excluded.display_tag,
                    updated_at = excluded.updated_at
                """,
                (
                    identity.account_key,
                    identity.display_name,
                    identity.display_tag,
                    identity.cursor,
                    _to_text(identity.created_at),
                    _to_text(identity.updated_at),
                ),
            )

    def remove_tracked_identity(self, account_key: str) -> bool:
        """Delete an identity; return False when it was not tracked."""

        with self._connect() as conn:
            cur = conn.execute(
                "DELETE FROM tracked_identities WHERE account_key = ?",
                (account_key,),
            )
            return cur.rowcount > 0

    def advance_cursor(self, account_key: str, new_cursor: str) -> None:
        """Move the cursor in a single statement so readers never see a torn row."""

        now = datetime.now(timezone.utc)
        with self._connect() as conn:
            conn.execute(
                "UPDATE tracked_identities SET cursor = ?, updated_at = ? WHERE account_key = ?",
                (new_cursor, _to_text(now), account_key),
            )

    def upsert_match_record(self, record: MatchRecord) -> bool:
        """Insert a match record; return False when it was already stored."""

        with self._connect() as conn:
            cur = conn.execute(
                """
                INSERT INTO match_records (
                    match_id,
                    account_key,
                    champion,
                    win,
                    game_mode,
                    game_duration,
                    kills,
                    deaths,
                    assists,
                    creep_score,
                    damage_dealt,
                    damage_taken,
                    vision_score,
                    gold_earned,
                    items,
                    game_creation,
                    extracted_at
                ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                ON CONFLICT(match_id, account_key) DO NOTHING
                """,
                (
                    record.match_id,
                    record.account_key,
                    record.champion,
                    int(record.win),
                    record.game_mode,
                    record.game_duration,
                    record.kills,
                    record.deaths,
                    record.assists,
                    record.creep_score,
                    record.damage_dealt,
                    record.damage_taken,
                    record.vision_score,
                    record.gold_earned,
                    json.dumps(list(record.items)),
                    _to_text(record.game_creation),
                    _to_text(record.extracted_at),
                ),
            )
            return cur.rowcount > 0

    def query_match_records(self, account_key: str, since: timedelta) -> List[MatchRecord]:
        """Return records created within ``since``, newest game first."""

        cutoff = datetime.now(timezone.utc) - since
        with self._connect() as conn:
            rows = conn.execute(
                """
                SELECT * FROM match_records
                WHERE account_key = ? AND game_creation >= ?
                ORDER BY game_creation DESC
                """,
                (account_key, _to_text(cutoff)),
            ).fetchall()
        return [self._record_from_row(row) for row in rows]
