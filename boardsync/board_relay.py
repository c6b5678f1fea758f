# -*- coding: utf-8 -*-
"""LiveChess board relay client.

This client:
  - opens the relay websocket and asks for the connected e-boards
  - subscribes to the first board's move feed
  - keeps a local mirror of what the physical board shows
  - classifies each physical move and queues a BoardEvent on ``events``

Thread Model:
  - the websocket runs on its own daemon thread and only posts RelayOpened /
    RelayFrame / RelayClosed onto the controller inbox
  - ``handle_*`` methods run on the controller thread
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Callable, List, Optional

import chess  # type: ignore
import websocket  # type: ignore

from .events import RelayClosed, RelayFrame, RelayOpened
from .protocol import (
    Device,
    RelayKind,
    device_summary,
    eboards_request,
    parse_relay_message,
    setup_request,
    subscribe_request,
)
from .reconcile import BoardEvent, MoveClass, classify_board_move
from .registry import GameRegistry
from .session import BLACK, WHITE, SessionSelector

log = logging.getLogger(__name__)

DEFAULT_URL = "ws://localhost:1982/api/v1.0"


def _last_san(board: chess.Board) -> Optional[str]:
    if not board.move_stack:
        return None
    before = board.copy()
    move = before.pop()
    return before.san(move)


class BoardRelayClient:

    def __init__(
        self,
        registry: GameRegistry,
        selector: SessionSelector,
        post: Callable[[object], None],
        url: str = DEFAULT_URL,
        *,
        ws_factory: Callable[..., websocket.WebSocketApp] = websocket.WebSocketApp,
    ):
        self.registry = registry
        self.selector = selector
        self.url = url
        self._post = post
        self._ws_factory = ws_factory
        self._ws: Optional[websocket.WebSocketApp] = None
        self._thread: Optional[threading.Thread] = None

        self.events: "queue.Queue[BoardEvent]" = queue.Queue()
        self.mirror = chess.Board()
        self.connected = False
        self.serialnr: Optional[str] = None
        self.devices: List[Device] = []

    # --------------------------- Websocket thread ---------------------------

    def connect(self) -> None:
        log.info("[Relay] Connecting to LiveChess at %s", self.url)
        ws = self._ws_factory(
            self.url,
            on_open=lambda _ws: self._post(RelayOpened()),
            on_message=lambda _ws, message: self._post(RelayFrame(message)),
            on_error=lambda _ws, error: log.error("[Relay] Websocket ERROR: %s", error),
        )
        self._ws = ws
        self._thread = threading.Thread(target=self._run, args=(ws,), name="relay", daemon=True)
        self._thread.start()

    def _run(self, ws: websocket.WebSocketApp) -> None:
        reason = None
        try:
            ws.run_forever()
        except websocket.WebSocketException as exc:
            reason = str(exc)
        finally:
            self._post(RelayClosed(reason))

    def close(self) -> None:
        if self._ws is not None:
            self._ws.close()

    def _send(self, text: str) -> bool:
        if self._ws is None:
            return False
        try:
            self._ws.send(text)
        except websocket.WebSocketException as exc:
            log.error("[Relay] send failed: %s", exc)
            return False
        log.debug("[Relay] -> %s", text)
        return True

    # --------------------------- Controller thread ---------------------------

    def handle_opened(self) -> None:
        self.connected = True
        log.info("[Relay] Connection to LiveChess was successful")
        self.request_boards()

    def handle_closed(self, reason: Optional[str] = None) -> None:
        if self.connected:
            log.error("[Relay] Websocket to LiveChess disconnected%s", f": {reason}" if reason else "")
        self.connected = False
        self.serialnr = None

    def request_boards(self) -> bool:
        return self._send(eboards_request())

    def handle_frame(self, text: str) -> Optional[BoardEvent]:
        log.debug("[Relay] <- %s", text)
        try:
            message = parse_relay_message(text)
        except ValueError as exc:
            log.warning("[Relay] unable to parse frame: %s", exc)
            return None
        if message.kind is RelayKind.DEVICES:
            self._handle_devices(list(message.devices))
            return None
        if message.kind is RelayKind.FEED:
            return self._handle_feed(list(message.san))
        return None

    def _handle_devices(self, devices: List[Device]) -> None:
        self.devices = devices
        log.info("[Relay] Boards: %s", device_summary(devices))
        if not devices:
            log.warning("[Relay] LiveChess reports no e-boards")
            self.serialnr = None
            return

        # Only the first board is supported.
        board = devices[0]
        self.serialnr = board.serialnr
        self._send(subscribe_request(board.serialnr))
        if not board.active:
            log.error("[Relay] Board with serial %s is not properly connected (%s). Please fix", board.serialnr, board.state)

        session = self.selector.current
        entry = self.registry.get(session.game_id) if session else None
        if entry is not None:
            log.debug("[Relay] There is a game in progress, calling setup...")
            self.set_up(entry.board)

    def set_up(self, board: chess.Board) -> None:
        """Show ``board`` on the e-board and reset the local mirror to it."""
        fen = board.fen()
        if self.connected:
            self._send(setup_request(fen))
        else:
            log.error("[Relay] WebSocket is not open - cannot send setup command.")
        self.mirror = board.copy()

    def _session_color(self) -> Optional[str]:
        session = self.selector.current
        return session.color if session else None

    def _handle_feed(self, san_list: List[str]) -> Optional[BoardEvent]:
        if not san_list:
            log.debug("[Relay] No real move. This was just the setup.")
            return None

        san = san_list[-1]
        color = WHITE if self.mirror.turn == chess.WHITE else BLACK
        try:
            move = self.mirror.push_san(san)
        except ValueError:
            if san == _last_san(self.mirror):
                log.debug("[Relay] %s repeats the last move on the board", san)
                return None
            # Legal for LiveChess but not for the mirror: positions differ.
            log.error("[Relay] invalidMove - position mismatch between board and mirror. SAN: %s\n%s", san, self.mirror)
            return self._emit(BoardEvent(MoveClass.INVALID_MOVE, san=san, color=self._session_color() or ""))

        session = self.selector.current
        entry = self.registry.get(session.game_id) if session else None
        history = entry.history() if entry else []
        kind = classify_board_move(color, move.uci(), self._session_color(), history)
        if kind is MoveClass.INVALID_ADJUST:
            self.mirror.pop()
            log.error("[Relay] Invalid adjustment was made: %s", san)
        elif kind is MoveClass.ADJUST:
            log.debug("[Relay] Valid adjustment: %s", san)
        else:
            log.debug("[Relay] Valid move played: %s", san)
        return self._emit(BoardEvent(kind, uci=move.uci(), san=san, color=color))

    def _emit(self, event: BoardEvent) -> BoardEvent:
        self.events.put(event)
        return event
