# -*- coding: utf-8 -*-
"""Protocol helpers for the LiveChess relay and the operator console.

Relay messages are JSON objects over a websocket. Outbound calls carry an
``id`` the relay echoes back in its ``response``:
  - 1: eboards (device list)
  - 2: subscribe to the eboardevent feed of one serial number
  - 3: setup a position on the board

Keeping parsing/formatting here prevents stringly-typed logic from spreading
through the relay client and the controller loop.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

EBOARDS_CALL_ID = 1
SUBSCRIBE_CALL_ID = 2
SETUP_CALL_ID = 3
FEED_ID = 1

ACTIVE = "ACTIVE"


# -------------------- Relay (LiveChess) --------------------


@dataclass(frozen=True)
class Device:
    serialnr: str
    state: str = ""
    source: str = ""

    @property
    def active(self) -> bool:
        return self.state == ACTIVE


class RelayKind(str, Enum):
    DEVICES = "devices"
    FEED = "feed"
    OTHER = "other"


@dataclass(frozen=True)
class RelayMessage:
    kind: RelayKind
    devices: Tuple[Device, ...] = ()
    san: Tuple[str, ...] = ()
    raw: Dict[str, Any] = field(default_factory=dict, compare=False)


def eboards_request() -> str:
    return json.dumps({"id": EBOARDS_CALL_ID, "call": "eboards"})


def subscribe_request(serialnr: str) -> str:
    return json.dumps({
        "id": SUBSCRIBE_CALL_ID,
        "call": "subscribe",
        "param": {"feed": "eboardevent", "id": FEED_ID, "param": {"serialnr": serialnr}},
    })


def setup_request(fen: str) -> str:
    return json.dumps({
        "id": SETUP_CALL_ID,
        "call": "call",
        "param": {"id": FEED_ID, "method": "setup", "param": {"fen": fen}},
    })


def parse_relay_message(text: str) -> RelayMessage:
    """Decode one relay frame. Raises ValueError on non-JSON / non-object input."""
    message = json.loads(text)
    if not isinstance(message, dict):
        raise ValueError(f"relay frame is not an object: {text[:80]!r}")

    response = message.get("response")
    if response == "call" and str(message.get("id")) == str(EBOARDS_CALL_ID):
        devices = tuple(
            Device(
                serialnr=str(d.get("serialnr", "")),
                state=str(d.get("state", "")),
                source=str(d.get("source", "")),
            )
            for d in (message.get("param") or [])
            if isinstance(d, dict)
        )
        return RelayMessage(RelayKind.DEVICES, devices=devices, raw=message)

    if response == "feed":
        param = message.get("param") or {}
        san = param.get("san") if isinstance(param, dict) else None
        if isinstance(san, list):
            return RelayMessage(RelayKind.FEED, san=tuple(str(s) for s in san), raw=message)

    return RelayMessage(RelayKind.OTHER, raw=message)


# -------------------- Operator console --------------------


class CommandType(str, Enum):
    QUIT = "quit"
    INDEX = "index"
    MOVE = "move"
    EMPTY = "empty"


@dataclass(frozen=True)
class Command:
    type: CommandType
    payload: str = ""


QUIT_TOKENS = {"end", "exit", "quit"}


def parse_console_line(line: Optional[str]) -> Command:
    text = (line or "").strip()
    if not text:
        return Command(CommandType.EMPTY, "")
    low = text.lower()
    if low in QUIT_TOKENS:
        return Command(CommandType.QUIT, low)
    if low.isdecimal():
        return Command(CommandType.INDEX, low)
    return Command(CommandType.MOVE, text)


def parse_index(answer: Optional[str], count: int) -> Optional[int]:
    """Return a valid 0-based index into a list of ``count`` items, else None."""
    text = (answer or "").strip()
    if not text.isdecimal():
        return None
    idx = int(text)
    if 0 <= idx < count:
        return idx
    return None


def device_summary(devices: List[Device]) -> str:
    return ", ".join(f"{d.serialnr} ({d.state or '?'})" for d in devices) or "none"
