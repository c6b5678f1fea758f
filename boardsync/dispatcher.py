# -*- coding: utf-8 -*-
"""Submit moves for the current session to Lichess."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

import chess

from .lichess_client import LichessClient
from .session import WHITE, SessionSelector

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class HeldMove:
    move: str
    game_id: Optional[str]  # session game when the move was held, if any
    from_board: bool = False


class CommandDispatcher:

    def __init__(
        self,
        client: LichessClient,
        selector: SessionSelector,
        *,
        on_dropped: Optional[Callable[[str], None]] = None,
    ):
        self.client = client
        self.selector = selector
        self.on_dropped = on_dropped
        self._pending: List[HeldMove] = []

    @property
    def pending(self) -> List[str]:
        return [h.move for h in self._pending]

    def send_move(self, game_id: str, move: str) -> bool:
        move = (move or "").strip()
        if len(move) < 2:
            log.debug('[Dispatch] Received move: "%s" will not be sent to lichess', move)
            return False

        log.debug("[Dispatch] POST move %s to %s", move, game_id)
        # Never accept a pending draw offer by moving.
        result = self.client.make_move(game_id, move, offering_draw=False)
        if result.ok:
            log.debug("[Dispatch] Move successfully sent.")
            return True
        log.error("[Dispatch] Failed to send move %s (%s): %s", move, result.status or "no response", result.error)
        return False

    def submit(self, move: str, *, from_board: bool = False) -> bool:
        """Send ``move`` to the current game, reselecting a game first if needed.

        With no playable game the move is held until a session is attached.
        """
        move = (move or "").strip()
        if len(move) < 2:
            log.debug('[Dispatch] Received move: "%s" will not be sent to lichess', move)
            return False
        previous = self.selector.current
        if not self.selector.session_valid():
            self.selector.choose_current_game()
        if not self.selector.session_valid():
            log.warning("[Dispatch] No active game, holding move %s", move)
            self._pending.append(HeldMove(move, previous.game_id if previous else None, from_board))
            return False
        return self.send_move(self.selector.current.game_id, move)

    def flush_pending(self, board: Optional[chess.Board] = None) -> List[str]:
        """Send held moves to the attached game. Returns the moves sent.

        ``board`` is the attached game's position; board moves that are sent
        are pushed onto it so the caller can set the relay up with them. A
        held move made for another game, or for the wrong side, is dropped.
        """
        if not self._pending or not self.selector.session_valid():
            return []
        session = self.selector.current
        if board is None:
            board = self.selector.registry.get(session.game_id).board.copy()
        held, self._pending = self._pending, []

        sent: List[str] = []
        for h in held:
            reason = self._reject_reason(h, session.game_id, session.color, board)
            if reason:
                self._drop(h, reason)
                continue
            if not self.send_move(session.game_id, h.move):
                self._drop(h, "rejected by lichess")
                continue
            if h.from_board:
                board.push_uci(h.move)
            sent.append(h.move)
        return sent

    def _reject_reason(self, h: HeldMove, game_id: str, color: str, board: chess.Board) -> str:
        if h.game_id is not None and h.game_id != game_id:
            return f"it was made for game {h.game_id}"
        if board.turn != (color == WHITE):
            return f"it is not {color}'s turn"
        if h.from_board:
            try:
                move = chess.Move.from_uci(h.move)
            except ValueError:
                return "it is not a move"
            if not board.is_legal(move):
                return "it is illegal in this position"
        return ""

    def _drop(self, h: HeldMove, reason: str) -> None:
        log.warning("[Dispatch] Dropping held move %s for %s: %s", h.move, self.selector.current.game_id, reason)
        if self.on_dropped is not None:
            self.on_dropped(h.move)
