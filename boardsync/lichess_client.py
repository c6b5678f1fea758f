# -*- coding: utf-8 -*-
"""Minimal Lichess Board API client.

Endpoints (Board API, NDJSON streams):
  - GET  {base}/api/account
  - GET  {base}/api/stream/event
  - GET  {base}/api/board/game/stream/{gameId}
  - POST {base}/api/board/game/{gameId}/move/{uci}?offeringDraw=false

Notes:
  - Streams are plain generators. They end when the server closes the
    response; reconnecting is the supervisor's job, not this client's.
  - An empty line on a stream is a keep-alive, not a record. A stream that
    stops sending keep-alives times out on read.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, Iterator, Optional

import requests  # type: ignore

log = logging.getLogger(__name__)

DEFAULT_BASE = "https://lichess.org"
# Lichess writes a keep-alive line every few seconds; silence this long means
# the connection is dead.
STREAM_READ_TIMEOUT_S = 30.0


@dataclass(frozen=True)
class MoveResult:
    ok: bool
    status: int = 0
    error: str = ""


def iter_ndjson(lines: Iterable[str], *, source: str = "stream") -> Iterator[Dict[str, Any]]:
    """Decode newline-delimited JSON, skipping heartbeats and bad lines."""
    for line in lines:
        if isinstance(line, bytes):
            line = line.decode("utf-8", errors="replace")
        if not line or not line.strip():
            log.debug("[%s] heartbeat", source)
            continue
        try:
            record = json.loads(line)
        except ValueError as exc:
            log.warning("[%s] unable to parse record %r: %s", source, line[:120], exc)
            continue
        if not isinstance(record, dict):
            log.warning("[%s] ignoring non-object record %r", source, line[:120])
            continue
        yield record


class LichessClient:

    def __init__(self, token: str, base_url: str = DEFAULT_BASE, *, session: Optional[requests.Session] = None):
        if not token:
            raise ValueError("a Lichess API token is required")
        self.base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._headers = {"Authorization": f"Bearer {token}"}

    def _stream_ndjson(
        self,
        url: str,
        *,
        on_open: Optional[Callable[[], None]] = None,
        timeout_s: float = 10.0,
        read_timeout_s: float = STREAM_READ_TIMEOUT_S,
    ) -> Iterator[Dict[str, Any]]:
        """Yield JSON objects from an NDJSON streaming endpoint until it closes.

        HTTP errors raise ``requests.HTTPError`` with the server's ``error``
        detail in the message; transport errors propagate as-is. A stream silent
        for ``read_timeout_s`` fails with ``requests.ConnectionError``.
        """
        with self._session.get(url, headers=self._headers, stream=True, timeout=(timeout_s, read_timeout_s)) as r:
            if r.status_code >= 400:
                raise requests.HTTPError(f"{r.status_code} {_error_detail(r)} for {url}", response=r)
            if on_open is not None:
                on_open()
            yield from iter_ndjson(r.iter_lines(decode_unicode=True), source=url)

    def stream_events(self, *, on_open: Optional[Callable[[], None]] = None) -> Iterator[Dict[str, Any]]:
        return self._stream_ndjson(f"{self.base_url}/api/stream/event", on_open=on_open)

    def stream_game(self, game_id: str, *, on_open: Optional[Callable[[], None]] = None) -> Iterator[Dict[str, Any]]:
        return self._stream_ndjson(f"{self.base_url}/api/board/game/stream/{game_id}", on_open=on_open)

    def get_account(self) -> Dict[str, Any]:
        """Return /api/account JSON (id, username, title, ...)."""
        r = self._session.get(f"{self.base_url}/api/account", headers=self._headers, timeout=10)
        r.raise_for_status()
        return r.json()

    def make_move(self, game_id: str, uci: str, *, offering_draw: bool = False) -> MoveResult:
        url = f"{self.base_url}/api/board/game/{game_id}/move/{uci}"
        params = {"offeringDraw": "true" if offering_draw else "false"}
        try:
            r = self._session.post(url, headers=self._headers, params=params, timeout=10)
        except requests.RequestException as exc:
            return MoveResult(ok=False, error=str(exc))
        if 200 <= r.status_code < 300:
            return MoveResult(ok=True, status=r.status_code)
        return MoveResult(ok=False, status=r.status_code, error=_error_detail(r))


def _error_detail(r: requests.Response) -> str:
    try:
        body = r.json()
    except ValueError:
        return (r.text or "").strip()[:200]
    if isinstance(body, dict) and body.get("error"):
        return str(body["error"])
    return json.dumps(body)[:200]
