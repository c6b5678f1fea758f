# -*- coding: utf-8 -*-
"""
Sync controller: the one thread that owns all state.

Producers (feed readers, relay websocket, console reader) post onto
``inbox``; ``run()`` takes one event at a time, hands it to the component
that owns it, then drains the board events the relay produced. Supervisors
are ticked every ``poll_interval_s``.

While the operator is choosing between games the controller keeps pumping
feed and relay events; a second prompt is never opened from inside the first.
"""

from __future__ import annotations

import logging
import queue
import sys
import threading
import time
from typing import Callable, List, Optional, TextIO

import websocket  # type: ignore

from .announcer import Announcer
from .board_relay import BoardRelayClient
from .config import SyncConfig
from .dispatcher import CommandDispatcher
from .events import (
    MAIN_FEED,
    ConsoleLine,
    FeedClosed,
    FeedOpened,
    FeedRecord,
    RelayClosed,
    RelayFrame,
    RelayOpened,
)
from .lichess_client import LichessClient
from .protocol import CommandType, parse_console_line
from .reconcile import BoardEvent, MoveClass
from .registry import GameEntry, GameRegistry
from .remote_stream import RemoteStreamClient
from .session import CurrentSession, SessionSelector
from .supervisor import EXIT_RELAY, EXIT_REMOTE, FeedSupervisor

log = logging.getLogger(__name__)


class SyncController:

    def __init__(
        self,
        cfg: SyncConfig,
        client: LichessClient,
        me_id: str,
        *,
        say: Callable[[str], None] = print,
        ws_factory: Callable[..., websocket.WebSocketApp] = websocket.WebSocketApp,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.cfg = cfg
        self.inbox: "queue.Queue[object]" = queue.Queue()
        self._clock = clock
        self._next_tick = clock()
        self._choosing = False
        self._stopped = False
        self.exit_code = 0

        self.registry = GameRegistry()
        self.announcer = Announcer(me_id, cfg.announce_all_moves, say)
        self.selector = SessionSelector(self.registry, me_id, self.ask_operator)
        self.selector.on_attach(self._on_attach)
        self.dispatcher = CommandDispatcher(client, self.selector, on_dropped=self.announcer.held_move_dropped)
        self.remote = RemoteStreamClient(
            client, self.registry, self.inbox.put, self.announcer, on_game_full=self._on_game_full,
        )
        self.relay = BoardRelayClient(
            self.registry, self.selector, self.inbox.put, cfg.live_chess_url, ws_factory=ws_factory,
        )

        self.remote_supervisor = FeedSupervisor(
            "lichess event stream",
            self.remote.open_main_feed,
            on_poll=self._poll_remote,
            max_attempts=cfg.max_attempts,
            exit_code=EXIT_REMOTE,
        )
        self.relay_supervisor = FeedSupervisor(
            "LiveChess relay",
            self.relay.connect,
            on_poll=self._poll_relay,
            max_attempts=cfg.max_attempts,
            exit_code=EXIT_RELAY,
        )

    # -------------------- Loop --------------------

    def run(self) -> int:
        """Process events until the operator quits. ReconnectExhausted propagates."""
        while not self._stopped:
            event = self._next_event()
            if event is not None:
                self.dispatch(event)
        log.info("[Controller] Exiting...")
        self.relay.close()
        return self.exit_code

    def stop(self, code: int = 0) -> None:
        self._stopped = True
        self.exit_code = code

    @property
    def stopped(self) -> bool:
        return self._stopped

    def tick(self) -> None:
        self.remote_supervisor.tick()
        self.relay_supervisor.tick()

    def _next_event(self) -> Optional[object]:
        now = self._clock()
        if now >= self._next_tick:
            self.tick()
            self._next_tick = now + self.cfg.poll_interval_s
        timeout = max(0.0, self._next_tick - self._clock())
        try:
            return self.inbox.get(timeout=timeout)
        except queue.Empty:
            return None

    def _poll_remote(self) -> bool:
        self.remote.reconnect_stale_games()
        return False

    def _poll_relay(self) -> bool:
        if self.relay.serialnr is None:
            log.warning("[Controller] No e-board known yet, asking LiveChess again")
            self.relay.request_boards()
            return True
        return False

    # -------------------- Dispatch --------------------

    def dispatch(self, event: object) -> None:
        if isinstance(event, (FeedOpened, FeedRecord, FeedClosed)):
            self.remote.handle(event)
            if event.feed == MAIN_FEED:
                if isinstance(event, FeedOpened):
                    self.remote_supervisor.notify_connected()
                elif isinstance(event, FeedClosed):
                    self.remote_supervisor.notify_disconnected()
        elif isinstance(event, RelayOpened):
            self.relay.handle_opened()
            self.relay_supervisor.notify_connected()
        elif isinstance(event, RelayFrame):
            self.relay.handle_frame(event.text)
        elif isinstance(event, RelayClosed):
            self.relay.handle_closed(event.reason)
            self.relay_supervisor.notify_disconnected()
        elif isinstance(event, ConsoleLine):
            self.handle_console(event.text)
        else:
            log.warning("[Controller] Unknown inbox event %r", event)
        self.drain_board_events()

    def drain_board_events(self) -> None:
        while True:
            try:
                event = self.relay.events.get_nowait()
            except queue.Empty:
                return
            self.handle_board_event(event)

    def handle_board_event(self, event: BoardEvent) -> None:
        if event.type is MoveClass.MOVE:
            self.dispatcher.submit(event.uci, from_board=True)
        elif event.type is MoveClass.ADJUST:
            log.debug("[Controller] Board adjusted with %s", event.san)
        elif event.type is MoveClass.INVALID_MOVE:
            self.announcer.invalid_move(event.color)
        elif event.type is MoveClass.INVALID_ADJUST:
            session = self.selector.current
            entry = self.registry.get(session.game_id) if session else None
            if entry is None:
                log.warning("[Controller] Board move %s ignored, no game attached", event.san)
                return
            self.announcer.invalid_adjust(entry.info, entry.state)

    def handle_console(self, text: str) -> None:
        cmd = parse_console_line(text)
        log.debug("[Controller] Keyboard input: %s", cmd.payload)
        if cmd.type is CommandType.QUIT:
            self.stop(0)
        elif cmd.type is CommandType.EMPTY:
            return
        else:
            # Sent as typed; the server validates.
            self.dispatcher.submit(cmd.payload)

    # -------------------- Session --------------------

    def _on_game_full(self, entry: GameEntry) -> None:
        if self._choosing:
            log.debug("[Controller] %s reloaded while a game is being chosen", entry.game_id)
            return
        self.selector.choose_current_game()

    def _on_attach(self, session: CurrentSession, entry: GameEntry) -> None:
        # Held board moves are on the physical board already: the relay is set
        # up with the ones Lichess accepted.
        board = entry.board.copy()
        self.dispatcher.flush_pending(board)
        self.relay.set_up(board)

    def ask_operator(self, candidates: List[GameEntry]) -> Optional[str]:
        """Show the candidates and wait for the next console line."""
        if self._choosing:
            log.debug("[Controller] Already waiting for a game index")
            return None
        self.announcer.candidates(candidates)
        self._choosing = True
        try:
            while not self._stopped:
                event = self._next_event()
                if event is None:
                    continue
                if isinstance(event, ConsoleLine):
                    cmd = parse_console_line(event.text)
                    log.debug("[Controller] Game index: %s", cmd.payload)
                    if cmd.type is CommandType.QUIT:
                        self.stop(0)
                        return None
                    return cmd.payload
                self.dispatch(event)
        finally:
            self._choosing = False
        return None

    # -------------------- Console --------------------

    def start_console(self, stream: Optional[TextIO] = None) -> threading.Thread:
        t = threading.Thread(target=self._read_console, args=(stream or sys.stdin,), name="console", daemon=True)
        t.start()
        return t

    def _read_console(self, stream: TextIO) -> None:
        for line in stream:
            self.inbox.put(ConsoleLine(line.rstrip("\r\n")))
        log.debug("[Controller] Console input closed")
