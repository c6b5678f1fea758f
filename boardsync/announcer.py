# -*- coding: utf-8 -*-
"""Tell the operator what happened.

Everything the operator must hear goes through ``say`` (print by default; a
text-to-speech hook can be plugged in). The per-game table goes to the log.
"""

from __future__ import annotations

import logging
from typing import Callable, List, Sequence

from .lichess_game import STARTED, GameInfo, GameState, last_move
from .registry import GameEntry

log = logging.getLogger(__name__)


def formatted_timer(ms: int) -> str:
    """Milliseconds to HH:MM:SS."""
    ms = max(int(ms or 0), 0)
    hours, rest = divmod(ms, 3_600_000)
    minutes, rest = divmod(rest, 60_000)
    return f"{hours:02d}:{minutes:02d}:{rest // 1000:02d}"


def _table(rows: Sequence[Sequence[str]]) -> str:
    widths = [max(len(str(row[i])) for row in rows) for i in range(len(rows[0]))]
    return "\n".join("  ".join(str(cell).ljust(w) for cell, w in zip(row, widths)) for row in rows)


def game_table(info: GameInfo, state: GameState) -> str:
    lm = last_move(info, state)
    return _table([
        ("", "white", "black", "game"),
        ("Title", info.white.title or "@", info.black.title or "@", f"Id: {info.game_id}"),
        ("Username", info.white.name, info.black.name, f"Status: {state.status}"),
        ("Rating", info.white.rating or "", info.black.rating or "",
         f"{info.variant_short} {'rated' if info.rated else 'unrated'}"),
        ("Timer", formatted_timer(state.wtime), formatted_timer(state.btime), info.time_control),
        ("Last Move", lm.move if lm.player == "white" else "?", lm.move if lm.player == "black" else "?", lm.player),
    ])


class Announcer:

    def __init__(self, me_id: str = "", announce_all_moves: bool = False, say: Callable[[str], None] = print):
        self.me_id = me_id
        self.announce_all_moves = announce_all_moves
        self.say = say

    def game_state(self, info: GameInfo, state: GameState) -> None:
        log.info("[Game] %s\n%s", info.game_id, game_table(info, state))
        lm = last_move(info, state)
        status = state.status

        if status == STARTED:
            if lm.move == "none":
                return
            if self.me_id != lm.by or self.announce_all_moves:
                self.say(lm.move)
        elif status in ("outoftime", "timeout"):
            self.say(f"{state.winner} wins by timeout")
        elif status == "resign":
            self.say(f"{state.winner} wins by resignation")
        elif status == "mate":
            self.say(f"{lm.player} wins by checkmate")
        elif status in ("draw", "stalemate"):
            self.say("game ends in draw")
        elif status == "aborted":
            self.say("game aborted")
        else:
            log.warning("[Game] Unknown status received: %s", status)

    def invalid_move(self, color: str = "") -> None:
        log.warning("[Board] illegal move on the %s side", color or "unknown")
        self.say("Illegal Move")

    def held_move_dropped(self, move: str) -> None:
        self.say(f"Move {move} was not sent, set up the board again")

    def invalid_adjust(self, info: GameInfo, state: GameState) -> None:
        lm = last_move(info, state)
        self.say(f"Incorrect, move was {lm.move}")

    def candidates(self, entries: List[GameEntry]) -> str:
        rows = [("index", "gameId", "white", "black", "time")]
        for i, entry in enumerate(entries):
            info = entry.info
            rows.append((str(i), info.game_id, info.white.label, info.black.label, info.time_control))
        text = _table(rows)
        self.say(text)
        self.say(f"Please enter the index number of the game you want to play with the Board. [0..{len(entries) - 1}]")
        return text
