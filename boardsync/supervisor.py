# -*- coding: utf-8 -*-
"""Reconnection supervisor for one long-lived connection.

Each feed (remote main feed, board relay) gets its own FeedSupervisor. The
controller calls ``tick()`` every poll interval and reports open/close through
``notify_connected`` / ``notify_disconnected``.

Attempts are counted over the whole process lifetime, the first connect
included. Needing one more than ``max_attempts`` raises ReconnectExhausted.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Optional

log = logging.getLogger(__name__)

MAX_ATTEMPTS = 20

EXIT_REMOTE = 2
EXIT_RELAY = 3


class LinkState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class ReconnectExhausted(Exception):
    def __init__(self, name: str, attempts: int, exit_code: int):
        super().__init__(f"{name}: giving up after {attempts} connection attempts")
        self.name = name
        self.attempts = attempts
        self.exit_code = exit_code


class FeedSupervisor:

    def __init__(
        self,
        name: str,
        connect: Callable[[], None],
        *,
        on_poll: Optional[Callable[[], bool]] = None,
        max_attempts: int = MAX_ATTEMPTS,
        exit_code: int = 1,
    ):
        self.name = name
        self._connect = connect
        self._on_poll = on_poll
        self.max_attempts = max_attempts
        self.exit_code = exit_code
        self.state = LinkState.DISCONNECTED
        self.attempts = 0

    def notify_connected(self) -> None:
        if self.state is not LinkState.CONNECTED:
            log.info("[Supervisor] %s connected", self.name)
        self.state = LinkState.CONNECTED

    def notify_disconnected(self) -> None:
        if self.state is not LinkState.DISCONNECTED:
            log.warning("[Supervisor] %s disconnected", self.name)
        self.state = LinkState.DISCONNECTED

    def _count_attempt(self) -> None:
        if self.attempts >= self.max_attempts:
            raise ReconnectExhausted(self.name, self.attempts, self.exit_code)
        self.attempts += 1

    def tick(self) -> None:
        if self.state is LinkState.DISCONNECTED:
            self._count_attempt()
            log.info("[Supervisor] %s connection attempt %d/%d", self.name, self.attempts, self.max_attempts)
            self.state = LinkState.CONNECTING
            self._connect()
            return

        if self.state is LinkState.CONNECTED and self._on_poll is not None:
            # on_poll returns True when it had to retry something on the link.
            if self._on_poll():
                self._count_attempt()
