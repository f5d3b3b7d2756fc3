"""Riot API match-source adapter.

Implements the core MatchSourcePort on top of the account-v1 and match-v5
endpoints using blocking urllib calls with a hard timeout.
"""

from __future__ import annotations

import json
import logging
import socket
import urllib.error
import urllib.parse
import urllib.request
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional

from core.errors import MalformedPayload, NotFound, RateLimited, TransportError
from core.match_payload import decode_match, extract_participant
from core.models import MatchRecord

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0


def _quote(segment: str) -> str:
    # Riot IDs may contain spaces and non-ASCII characters.
    return urllib.parse.quote(segment, safe="")


def _parse_retry_after(value: Optional[str]) -> Optional[float]:
    if not value:
        return None
    try:
        return float(value)
    except ValueError:
        return None


class RiotMatchSource:
    """MatchSourcePort backed by the Riot Games HTTP API."""

    def __init__(
        self,
        api_key: str,
        routing: str = "americas",
        timeout: float = DEFAULT_TIMEOUT,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        if not api_key:
            raise ValueError("A Riot API key is required")
        self._api_key = api_key
        self._base_url = f"https://{routing}.api.riotgames.com"
        self._timeout = timeout
        self._clock = clock

    def _get_json(self, path: str, query: Optional[dict[str, Any]] = None) -> Any:
        url = f"{self._base_url}{path}"
        if query:
            url = f"{url}?{urllib.parse.urlencode(query)}"
        request = urllib.request.Request(url, method="GET")
        request.add_header("X-Riot-Token", self._api_key)
        request.add_header("Accept", "application/json")

        try:
            with urllib.request.urlopen(request, timeout=self._timeout) as response:
                body = response.read()
        except urllib.error.HTTPError as e:
            if e.code == 404:
                raise NotFound(f"Riot API returned 404 for {path}") from e
            if e.code == 429:
                retry_after = _parse_retry_after(e.headers.get("Retry-After") if e.headers else None)
                raise RateLimited(f"Riot API rate limit hit on {path}", retry_after=retry_after) from e
            raise TransportError(f"Riot API error {e.code} on {path}") from e
        except (urllib.error.URLError, socket.timeout, TimeoutError, ConnectionError) as e:
            raise TransportError(f"Riot API request to {path} failed: {e}") from e

        try:
            return json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise MalformedPayload(f"Riot API returned invalid JSON for {path}") from e

    def resolve_identity(self, display_name: str, display_tag: str) -> str:
        """Return the PUUID behind a Riot ID."""

        path = f"/riot/account/v1/accounts/by-riot-id/{_quote(display_name)}/{_quote(display_tag)}"
        account = self._get_json(path)
        puuid = account.get("puuid") if isinstance(account, dict) else None
        if not isinstance(puuid, str) or not puuid:
            raise MalformedPayload(f"Account response for {display_name}#{display_tag} has no puuid")
        return puuid

    def fetch_recent_match_ids(self, account_key: str, limit: int) -> List[str]:
        """Return up to ``limit`` match ids, newest first."""

        path = f"/lol/match/v5/matches/by-puuid/{_quote(account_key)}/ids"
        match_ids = self._get_json(path, {"start": 0, "count": limit})
        if not isinstance(match_ids, list) or not all(isinstance(item, str) for item in match_ids):
            raise MalformedPayload(f"Match id list for {account_key} is not a list of strings")
        return match_ids

    def fetch_match_details(self, match_id: str) -> dict[str, Any]:
        payload = self._get_json(f"/lol/match/v5/matches/{_quote(match_id)}")
        if not isinstance(payload, dict):
            raise MalformedPayload(f"Match {match_id} payload is not an object")
        return payload

    def extract_participant(self, payload: dict[str, Any], account_key: str) -> MatchRecord:
        return extract_participant(decode_match(payload), account_key, self._clock())
