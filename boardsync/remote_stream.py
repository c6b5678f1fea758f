# -*- coding: utf-8 -*-
"""Lichess feed readers and the record handlers behind them.

Thread Model:
  - one daemon reader thread per open feed (the main event feed plus one per
    game); a reader only posts FeedOpened / FeedRecord / FeedClosed
  - ``handle(event)`` runs on the controller thread and is the only place the
    registry is written from remote data
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, Iterator, List, Optional, Set

import requests

from .announcer import Announcer
from .events import MAIN_FEED, FeedClosed, FeedOpened, FeedRecord
from .lichess_client import LichessClient
from .lichess_game import parse_game_full, parse_game_state
from .registry import ConnectionStatus, GameEntry, GameRegistry, ProtocolError

log = logging.getLogger(__name__)


class RemoteStreamClient:

    def __init__(
        self,
        client: LichessClient,
        registry: GameRegistry,
        post: Callable[[object], None],
        announcer: Announcer,
        *,
        on_game_full: Optional[Callable[[GameEntry], None]] = None,
    ):
        self.client = client
        self.registry = registry
        self._post = post
        self.announcer = announcer
        self._on_game_full = on_game_full
        self.main_status = ConnectionStatus()
        # Feeds with a live reader, tracked on the controller thread.
        self._open: Set[str] = set()

    # --------------------------- Readers ---------------------------

    def _start_reader(self, feed: str, stream: Callable[..., Iterator[Dict[str, Any]]]) -> None:
        self._open.add(feed)
        t = threading.Thread(target=self._read, args=(feed, stream), name=f"feed-{feed}", daemon=True)
        t.start()

    def _read(self, feed: str, stream: Callable[..., Iterator[Dict[str, Any]]]) -> None:
        reason = None
        try:
            for record in stream(on_open=lambda: self._post(FeedOpened(feed))):
                self._post(FeedRecord(feed, record))
        except requests.RequestException as exc:
            reason = str(exc)
        finally:
            self._post(FeedClosed(feed, reason))

    def is_open(self, feed: str) -> bool:
        return feed in self._open

    def open_main_feed(self) -> None:
        if self.is_open(MAIN_FEED):
            log.debug("[Remote] event feed already open")
            return
        log.info("[Remote] Opening event feed")
        self._start_reader(MAIN_FEED, self.client.stream_events)

    def open_game_feed(self, game_id: str) -> bool:
        if self.is_open(game_id):
            log.debug("[Remote] feed for %s already open", game_id)
            return False
        log.info("[Remote] Opening game feed %s", game_id)
        self._start_reader(game_id, lambda on_open: self.client.stream_game(game_id, on_open=on_open))
        return True

    def reconnect_stale_games(self) -> List[str]:
        """Reopen feeds of started games whose reader has gone away."""
        reopened = []
        for game_id in self.registry.stale_started():
            log.info("[Remote] Started game %s not connected, reconnecting", game_id)
            if self.open_game_feed(game_id):
                reopened.append(game_id)
        return reopened

    # --------------------------- Controller thread ---------------------------

    def handle(self, event: object) -> None:
        if isinstance(event, FeedOpened):
            self._opened(event.feed)
        elif isinstance(event, FeedRecord):
            if event.feed == MAIN_FEED:
                self.main_status.last_event = time.time()
                self.handle_event_record(event.record)
            else:
                self.registry.touch(event.feed)
                self.handle_game_record(event.feed, event.record)
        elif isinstance(event, FeedClosed):
            self._closed(event.feed, event.reason)

    def _opened(self, feed: str) -> None:
        if feed == MAIN_FEED:
            self.main_status.connected = True
            self.main_status.last_event = time.time()
            log.info("[Remote] Connected to event stream")
        else:
            self.registry.mark_connected(feed)
            log.info("[Remote] Connected to game stream %s", feed)

    def _closed(self, feed: str, reason: Optional[str]) -> None:
        self._open.discard(feed)
        suffix = f": {reason}" if reason else ""
        if feed == MAIN_FEED:
            self.main_status.connected = False
            self.main_status.last_event = time.time()
            log.warning("[Remote] Event stream ended%s", suffix)
        else:
            self.registry.mark_disconnected(feed)
            log.warning("[Remote] Game stream %s ended%s", feed, suffix)

    def handle_event_record(self, record: Dict[str, Any]) -> None:
        if "error" in record:
            log.warning("[Remote] event stream error: %s", record["error"])
            return

        kind = record.get("type")
        if kind == "gameStart":
            game = record.get("game") or {}
            game_id = game.get("gameId") or game.get("id")
            if not game_id:
                log.warning("[Remote] gameStart without a game id: %s", record)
                return
            log.info("[Remote] gameStart %s", game_id)
            self.open_game_feed(str(game_id))
        elif kind == "challenge":
            challenge = record.get("challenge") or {}
            log.info("[Remote] Ignoring challenge %s", challenge.get("id", "?"))
        else:
            log.debug("[Remote] Unhandled event type %s", kind)

    def handle_game_record(self, game_id: str, record: Dict[str, Any]) -> None:
        if "error" in record:
            log.warning("[Remote] %s stream error: %s", game_id, record["error"])
            return

        kind = record.get("type")
        if kind == "gameFull":
            try:
                info, state = parse_game_full(record)
            except (KeyError, ValueError, TypeError) as exc:
                log.warning("[Remote] malformed gameFull for %s: %r", game_id, exc)
                return
            entry = self.registry.apply_game_full(info, state)
            self.announcer.game_state(entry.info, entry.state)
            if self._on_game_full is not None:
                self._on_game_full(entry)
        elif kind == "gameState":
            try:
                state = parse_game_state(record)
            except (KeyError, ValueError, TypeError) as exc:
                log.warning("[Remote] malformed gameState for %s: %r", game_id, exc)
                return
            previous = self.registry.get(game_id)
            previous_status = previous.state.status if previous else None
            try:
                appended = self.registry.apply_game_state(game_id, state)
            except ProtocolError as exc:
                log.error("[Remote] %s", exc)
                return
            entry = self.registry.get(game_id)
            # Clock and draw-offer updates carry no news for the operator.
            if appended or entry.state.status != previous_status:
                self.announcer.game_state(entry.info, entry.state)
            else:
                log.debug("[Remote] %s clock update, nothing to announce", game_id)
        elif kind == "chatLine":
            log.info("[Remote] %s chat %s: %s", game_id, record.get("username"), record.get("text"))
        else:
            log.debug("[Remote] Unhandled game record type %s", kind)