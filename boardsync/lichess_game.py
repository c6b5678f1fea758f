# -*- coding: utf-8 -*-
"""Helpers for parsing Lichess Board API stream payloads.

gameFull carries the immutable game info plus an embedded ``state``;
gameState carries only the mutable part. Both are turned into frozen
dataclasses here so the rest of the package never digs through raw dicts.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Type

import chess  # type: ignore
import chess.variant  # type: ignore

log = logging.getLogger(__name__)

STARTPOS = "startpos"
STARTED = "started"

# Variant keys played with standard rules.
PLAIN_VARIANTS = ("", "standard", "chess960", "fromPosition")


def variant_board(key: str) -> Type[chess.Board]:
    """Board class for a Lichess variant key such as "crazyhouse" or "atomic"."""
    if key in PLAIN_VARIANTS:
        return chess.Board
    try:
        return chess.variant.find_variant(key)
    except ValueError:
        log.warning("[Game] Unknown variant %r, using standard rules", key)
        return chess.Board


@dataclass(frozen=True)
class Player:
    id: str
    name: str
    title: Optional[str] = None
    rating: Optional[int] = None
    provisional: bool = False

    @property
    def label(self) -> str:
        return f"{self.title or '@'} {self.name}"


@dataclass(frozen=True)
class Clock:
    initial_ms: int
    increment_ms: int

    def __str__(self) -> str:
        return f"{self.initial_ms // 60000}'+{self.increment_ms // 1000}''"


@dataclass(frozen=True)
class GameInfo:
    game_id: str
    variant: str
    variant_short: str
    rated: bool
    speed: str
    white: Player
    black: Player
    clock: Optional[Clock]
    created_at: int
    initial_fen: str = STARTPOS

    @property
    def time_control(self) -> str:
        return f"{self.speed} {self.clock if self.clock else '∞'}"

    def new_board(self) -> chess.Board:
        board_cls = variant_board(self.variant)
        fen = board_cls.starting_fen if self.initial_fen in ("", STARTPOS) else self.initial_fen
        return board_cls(fen, chess960=self.variant == "chess960")


@dataclass(frozen=True)
class GameState:
    moves: Tuple[str, ...] = ()
    wtime: int = 0
    btime: int = 0
    winc: int = 0
    binc: int = 0
    wdraw: bool = False
    bdraw: bool = False
    status: str = STARTED
    winner: Optional[str] = None


@dataclass(frozen=True)
class LastMove:
    player: str  # "white" | "black" | "none"
    move: str
    by: str = ""


NO_MOVE = LastMove(player="none", move="none")


def split_moves(moves: Optional[str]) -> Tuple[str, ...]:
    return tuple(m for m in (moves or "").split() if m)


def _player(side: Dict[str, Any]) -> Player:
    # AI opponents come through without an id
    if side.get("aiLevel") is not None:
        level = side["aiLevel"]
        return Player(id="", name=f"Stockfish level {level}")
    u = side.get("user") or {}
    pid = side.get("id") or u.get("id")
    if not pid:
        raise KeyError("player id")
    return Player(
        id=str(pid),
        name=str(side.get("name") or u.get("name") or pid),
        title=side.get("title") or u.get("title"),
        rating=side.get("rating"),
        provisional=bool(side.get("provisional", False)),
    )


def parse_game_state(payload: Dict[str, Any]) -> GameState:
    """Build a GameState from a gameState record (or gameFull's ``state``).

    Raises KeyError when ``status`` is missing.
    """
    return GameState(
        moves=split_moves(payload.get("moves")),
        wtime=int(payload.get("wtime") or 0),
        btime=int(payload.get("btime") or 0),
        winc=int(payload.get("winc") or 0),
        binc=int(payload.get("binc") or 0),
        wdraw=bool(payload.get("wdraw", False)),
        bdraw=bool(payload.get("bdraw", False)),
        status=str(payload["status"]),
        winner=payload.get("winner"),
    )


def parse_game_full(payload: Dict[str, Any]) -> Tuple[GameInfo, GameState]:
    """Split a gameFull record into its immutable info and its initial state.

    Raises KeyError/ValueError/TypeError on a malformed record.
    """
    clock = payload.get("clock")
    variant = payload.get("variant") or {}
    info = GameInfo(
        game_id=str(payload["id"]),
        variant=str(variant.get("key", "standard")),
        variant_short=str(variant.get("short", "Std")),
        rated=bool(payload.get("rated", False)),
        speed=str(payload.get("speed", "")),
        white=_player(payload["white"]),
        black=_player(payload["black"]),
        clock=Clock(int(clock["initial"]), int(clock["increment"])) if clock else None,
        created_at=int(payload.get("createdAt") or 0),
        initial_fen=str(payload.get("initialFen") or STARTPOS),
    )
    return info, parse_game_state(payload["state"])


def new_tokens(old: Tuple[str, ...], new: Tuple[str, ...]) -> Optional[Tuple[str, ...]]:
    """Return the tokens appended in ``new``, or None if ``new`` does not extend ``old``."""
    if new[: len(old)] != old:
        return None
    return new[len(old):]


def last_move(info: GameInfo, state: GameState) -> LastMove:
    """Who played the last move and what it was."""
    if not state.moves:
        return NO_MOVE
    white_to_move_first = info.new_board().turn == chess.WHITE
    white_moved_last = (len(state.moves) % 2 == 1) == white_to_move_first
    if white_moved_last:
        return LastMove(player="white", move=state.moves[-1], by=info.white.id)
    return LastMove(player="black", move=state.moves[-1], by=info.black.id)
