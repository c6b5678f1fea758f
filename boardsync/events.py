# -*- coding: utf-8 -*-
"""Messages posted onto the controller inbox.

Reader threads (feeds, relay websocket, console) only ever build one of these
and put it on the queue; the controller thread does all the work.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

MAIN_FEED = "main"


@dataclass(frozen=True)
class FeedOpened:
    feed: str  # MAIN_FEED or a game id


@dataclass(frozen=True)
class FeedRecord:
    feed: str
    record: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class FeedClosed:
    feed: str
    reason: Optional[str] = None


@dataclass(frozen=True)
class RelayOpened:
    pass


@dataclass(frozen=True)
class RelayFrame:
    text: str


@dataclass(frozen=True)
class RelayClosed:
    reason: Optional[str] = None


@dataclass(frozen=True)
class ConsoleLine:
    text: str
