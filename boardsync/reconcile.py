# -*- coding: utf-8 -*-
"""Classify a move reported by the physical board.

The board cannot tell "my move" from "the opponent's move being replayed on
the board", so every board move is checked against the session color and the
last move of the remote game:

  1. same color as the session            -> MOVE (submit it)
  2. other color, equals last remote move -> ADJUST (board catching up)
  3. anything else                        -> INVALID_ADJUST (undo, tell operator)

Moves are compared in UCI form, so a promotion to a different piece than the
one played remotely is an INVALID_ADJUST.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence


class MoveClass(str, Enum):
    MOVE = "move"
    ADJUST = "adjust"
    INVALID_ADJUST = "invalidAdjust"
    INVALID_MOVE = "invalidMove"


@dataclass(frozen=True)
class BoardEvent:
    type: MoveClass
    uci: str = ""
    san: str = ""
    color: str = ""


def classify_board_move(
    move_color: str,
    move_uci: str,
    session_color: Optional[str],
    remote_history: Sequence[str],
) -> MoveClass:
    if session_color is not None and move_color == session_color:
        return MoveClass.MOVE
    if remote_history and remote_history[-1] == move_uci:
        return MoveClass.ADJUST
    return MoveClass.INVALID_ADJUST
