# -*- coding: utf-8 -*-
"""Per-game bookkeeping.

One GameRegistry is created by the controller and handed to every component
that needs game data. All mutation happens on the controller thread, one
feed record at a time, so nothing here takes a lock.

Invariant: an entry's mirrored board history (UCI) always equals the move
tokens of its stored GameState, unless the entry is flagged out of sync
because the server sent a token the rules library rejected. Entries out of
sync are never playable.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import chess  # type: ignore

from .lichess_game import STARTED, GameInfo, GameState, new_tokens

log = logging.getLogger(__name__)


class ProtocolError(Exception):
    """A feed record that contradicts what the registry already knows."""


@dataclass
class ConnectionStatus:
    connected: bool = False
    last_event: float = field(default_factory=time.time)


@dataclass
class GameEntry:
    info: GameInfo
    state: GameState
    board: chess.Board
    in_sync: bool = True

    @property
    def game_id(self) -> str:
        return self.info.game_id

    def history(self) -> List[str]:
        return [m.uci() for m in self.board.move_stack]


def _replay(board: chess.Board, tokens: Tuple[str, ...]) -> bool:
    for uci in tokens:
        try:
            board.push_uci(uci)
        except ValueError as exc:
            log.error("[Registry] rejected move %s: %s", uci, exc)
            return False
    return True


class GameRegistry:

    def __init__(self):
        self._entries: Dict[str, GameEntry] = {}
        self._connections: Dict[str, ConnectionStatus] = {}

    def __contains__(self, game_id: str) -> bool:
        return game_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, game_id: Optional[str]) -> Optional[GameEntry]:
        if game_id is None:
            return None
        return self._entries.get(game_id)

    def entries(self) -> List[GameEntry]:
        return list(self._entries.values())

    # --------------------------- Connection status ---------------------------

    def connection(self, game_id: str) -> ConnectionStatus:
        return self._connections.setdefault(game_id, ConnectionStatus())

    def mark_connected(self, game_id: str) -> None:
        status = self.connection(game_id)
        status.connected = True
        status.last_event = time.time()

    def mark_disconnected(self, game_id: str) -> None:
        status = self.connection(game_id)
        status.connected = False
        status.last_event = time.time()

    def touch(self, game_id: str) -> None:
        self.connection(game_id).last_event = time.time()

    def is_connected(self, game_id: str) -> bool:
        status = self._connections.get(game_id)
        return bool(status and status.connected)

    # --------------------------- Feed records ---------------------------

    def apply_game_full(self, info: GameInfo, state: GameState) -> GameEntry:
        """Store info + state and rebuild the mirrored board from scratch."""
        board = info.new_board()
        in_sync = _replay(board, state.moves)
        if not in_sync:
            log.warning("[Registry] %s out of sync with lichess, not playable until it replays", info.game_id)
        entry = GameEntry(info=info, state=state, board=board, in_sync=in_sync)
        self._entries[info.game_id] = entry
        log.debug("[Registry] %s rebuilt with %d moves\n%s", info.game_id, len(state.moves), board)
        return entry

    def apply_game_state(self, game_id: str, state: GameState) -> Tuple[str, ...]:
        """Apply the newly appended tokens of ``state`` and store it.

        Returns the tokens that were applied to the mirrored board. A state
        that does not extend the stored move list is logged as a protocol
        error and the mirror is rebuilt from the full new list. An entry that
        is out of sync is rebuilt the same way whenever new tokens arrive.
        """
        entry = self._entries.get(game_id)
        if entry is None:
            raise ProtocolError(f"gameState for {game_id} before gameFull")

        appended = new_tokens(entry.state.moves, state.moves)
        if appended is None:
            log.error(
                "[Registry] %s: move list %r does not extend %r, rebuilding",
                game_id, " ".join(state.moves), " ".join(entry.state.moves),
            )
            self._rebuild(entry, state)
            return state.moves

        if appended and not entry.in_sync:
            # A board that once rejected a token is replayed from scratch.
            log.warning("[Registry] %s out of sync, replaying %d moves", game_id, len(state.moves))
            self._rebuild(entry, state)
            return appended

        if appended:
            entry.in_sync = _replay(entry.board, appended)
            if not entry.in_sync:
                log.warning("[Registry] %s out of sync with lichess, not playable until it replays", game_id)
            log.debug("[Registry] %s +%s\n%s", game_id, " ".join(appended), entry.board)
        entry.state = state
        return appended

    def _rebuild(self, entry: GameEntry, state: GameState) -> None:
        entry.board = entry.info.new_board()
        entry.in_sync = _replay(entry.board, state.moves)
        entry.state = state

    # --------------------------- Queries ---------------------------

    def is_playable(self, game_id: Optional[str]) -> bool:
        entry = self.get(game_id)
        return bool(
            entry and entry.in_sync and entry.state.status == STARTED and self.is_connected(entry.game_id)
        )

    def playable(self) -> List[GameEntry]:
        """Started, in-sync games whose feed is connected, in first-seen order."""
        return [e for e in self._entries.values() if self.is_playable(e.game_id)]

    def stale_started(self) -> List[str]:
        """Game ids still started whose feed has dropped."""
        return [
            gid for gid, e in self._entries.items()
            if e.state.status == STARTED and not self.is_connected(gid)
        ]
