# -*- coding: utf-8 -*-
"""Which game is the physical board attached to.

SessionSelector is the only writer of CurrentSession. The relay client and
the dispatcher read it through ``selector.current`` and must call
``session_valid()`` before trusting it: a session whose game ended or whose
feed dropped is not valid.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional

from .lichess_game import Player
from .protocol import parse_index
from .registry import GameEntry, GameRegistry

log = logging.getLogger(__name__)

WHITE = "white"
BLACK = "black"


@dataclass(frozen=True)
class CurrentSession:
    game_id: str
    color: str  # "white" | "black"


def assigned_color(my_id: str, white: Player) -> str:
    return WHITE if (my_id or "").lower() == (white.id or "").lower() else BLACK


class SessionSelector:

    def __init__(
        self,
        registry: GameRegistry,
        my_id: str,
        ask: Callable[[List[GameEntry]], Optional[str]],
    ):
        self.registry = registry
        self.my_id = my_id
        self._ask = ask
        self.current: Optional[CurrentSession] = None
        self._listeners: List[Callable[[CurrentSession, GameEntry], None]] = []

    def on_attach(self, callback: Callable[[CurrentSession, GameEntry], None]) -> None:
        self._listeners.append(callback)

    def session_valid(self) -> bool:
        return self.current is not None and self.registry.is_playable(self.current.game_id)

    def choose_current_game(self) -> Optional[CurrentSession]:
        """Pick the game the board plays, asking the operator when ambiguous.

        Returns the new session, or None when nothing was selected. An invalid
        answer is reported and leaves the current session untouched.
        """
        candidates = self.registry.playable()

        if not candidates:
            log.warning(
                "[Session] No started playable games, challenges or games are disconnected. "
                "Please start a new game or fix connection."
            )
            self.current = None
            return None

        if len(candidates) == 1:
            return self._attach(candidates[0])

        shown = [e.game_id for e in candidates]
        answer = self._ask(candidates)
        idx = parse_index(answer, len(shown))
        if idx is None:
            log.warning("[Session] Invalid index number %r. Will not connect to any game at this time.", answer)
            return None

        # Games may have started, ended or dropped while the operator was choosing.
        chosen = self.registry.get(shown[idx])
        if chosen is None or not self.registry.is_playable(chosen.game_id):
            log.warning("[Session] Game %s is no longer playable. Will not connect to any game at this time.", shown[idx])
            return None
        return self._attach(chosen)

    def _attach(self, entry: GameEntry) -> CurrentSession:
        session = CurrentSession(game_id=entry.game_id, color=assigned_color(self.my_id, entry.info.white))
        self.current = session
        log.info("[Session] Active game updated. currentGameId: %s (%s)", session.game_id, session.color)
        for callback in self._listeners:
            callback(session, entry)
        return session
