from __future__ import annotations

import io
import json
import socket
import urllib.error
import urllib.request
from datetime import datetime, timezone

import pytest

from adapters.riot_source import RiotMatchSource
from core.errors import MalformedPayload, NotFound, RateLimited, TransportError
from fakes import build_payload


class FakeResponse:
    def __init__(self, body: bytes) -> None:
        self._body = body

    def read(self) -> bytes:
        return self._body

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, *exc) -> None:
        return None


class FakeUrlopen:
    def __init__(self, result) -> None:
        self._result = result
        self.requests: list[urllib.request.Request] = []
        self.timeouts: list[float] = []

    def __call__(self, request, timeout=None):
        self.requests.append(request)
        self.timeouts.append(timeout)
        if isinstance(self._result, BaseException):
            raise self._result
        return FakeResponse(json.dumps(self._result).encode("utf-8"))


def _http_error(code: int, headers: dict | None = None) -> urllib.error.HTTPError:
    return urllib.error.HTTPError("https://example", code, "error", headers or {}, io.BytesIO(b""))


def _source() -> RiotMatchSource:
    return RiotMatchSource(
        api_key="RGAPI-test",
        routing="americas",
        timeout=30,
        clock=lambda: datetime(2024, 6, 1, tzinfo=timezone.utc),
    )


def test_resolve_identity_quotes_riot_id_and_sends_key(monkeypatch) -> None:
    fake = FakeUrlopen({"puuid": "puuid-foo", "gameName": "Foo Bar", "tagLine": "NA1"})
    monkeypatch.setattr(urllib.request, "urlopen", fake)

    assert _source().resolve_identity("Foo Bar", "NA1") == "puuid-foo"

    request = fake.requests[0]
    assert request.full_url == (
        "https://americas.api.riotgames.com/riot/account/v1/accounts/by-riot-id/Foo%20Bar/NA1"
    )
    assert request.get_header("X-riot-token") == "RGAPI-test"
    assert fake.timeouts == [30]


def test_fetch_recent_match_ids(monkeypatch) -> None:
    fake = FakeUrlopen(["NA1_3", "NA1_2"])
    monkeypatch.setattr(urllib.request, "urlopen", fake)

    assert _source().fetch_recent_match_ids("puuid-foo", 5) == ["NA1_3", "NA1_2"]
    assert fake.requests[0].full_url.endswith("/lol/match/v5/matches/by-puuid/puuid-foo/ids?start=0&count=5")


def test_unexpected_id_list_shape_is_malformed(monkeypatch) -> None:
    monkeypatch.setattr(urllib.request, "urlopen", FakeUrlopen({"ids": []}))

    with pytest.raises(MalformedPayload):
        _source().fetch_recent_match_ids("puuid-foo", 5)


def test_not_found_maps_to_not_found(monkeypatch) -> None:
    monkeypatch.setattr(urllib.request, "urlopen", FakeUrlopen(_http_error(404)))

    with pytest.raises(NotFound):
        _source().resolve_identity("Ghost", "NA1")


def test_rate_limit_carries_retry_after(monkeypatch) -> None:
    monkeypatch.setattr(urllib.request, "urlopen", FakeUrlopen(_http_error(429, {"Retry-After": "12"})))

    with pytest.raises(RateLimited) as excinfo:
        _source().fetch_recent_match_ids("puuid-foo", 5)

    assert excinfo.value.retry_after == 12.0
    assert isinstance(excinfo.value, TransportError)


@pytest.mark.parametrize(
    "error",
    [
        _http_error(503),
        urllib.error.URLError("connection refused"),
        socket.timeout("timed out"),
    ],
)
def test_transport_failures_map_to_transport_error(monkeypatch, error) -> None:
    monkeypatch.setattr(urllib.request, "urlopen", FakeUrlopen(error))

    with pytest.raises(TransportError):
        _source().fetch_match_details("NA1_1")


def test_invalid_json_is_malformed(monkeypatch) -> None:
    def _urlopen(request, timeout=None):
        return FakeResponse(b"<html>oops</html>")

    monkeypatch.setattr(urllib.request, "urlopen", _urlopen)

    with pytest.raises(MalformedPayload):
        _source().fetch_match_details("NA1_1")


def test_extract_participant_decodes_payload(monkeypatch) -> None:
    payload = build_payload("NA1_1", ["puuid-foo"])
    monkeypatch.setattr(urllib.request, "urlopen", FakeUrlopen(payload))
    source = _source()

    record = source.extract_participant(source.fetch_match_details("NA1_1"), "puuid-foo")

    assert record.match_id == "NA1_1"
    assert record.extracted_at == datetime(2024, 6, 1, tzinfo=timezone.utc)


def test_api_key_is_required() -> None:
    with pytest.raises(ValueError):
        RiotMatchSource(api_key="")
