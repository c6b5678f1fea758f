"""
Pytest will auto-discover / import this file called 'conftest.py'.
Fixtures and fakes shared by the unit tests: Lichess payloads, a fake Board
API client and a fake LiveChess websocket. Nothing here touches the network.
"""

import json
import threading
from typing import Any, Callable, Dict, Generator, Iterator, List, Optional

import pytest

from boardsync.lichess_client import MoveResult
from boardsync.lichess_game import parse_game_full
from boardsync.registry import GameEntry, GameRegistry

ME = "godking666"
OPPONENT = "andrescavallin"


# --- LICHESS PAYLOADS ----
def game_full(
    game_id: str = "G1",
    moves: str = "",
    *,
    white: str = ME,
    black: str = OPPONENT,
    status: str = "started",
    initial_fen: str = "startpos",
    variant: str = "standard",
) -> Dict[str, Any]:
    """A gameFull record shaped like the ones Lichess sends."""
    return {
        "id": game_id,
        "variant": {"key": variant, "name": variant.title(), "short": "Std"},
        "clock": {"initial": 900000, "increment": 10000},
        "speed": "rapid",
        "perf": {"name": "Rapid"},
        "rated": False,
        "createdAt": 1586647003562,
        "white": {"id": white, "name": white.title(), "title": None, "rating": 1761},
        "black": {"id": black, "name": black.title(), "title": None, "rating": 1362, "provisional": True},
        "initialFen": initial_fen,
        "type": "gameFull",
        "state": game_state(moves, status=status),
    }


def game_state(moves: str, *, status: str = "started", **extra: Any) -> Dict[str, Any]:
    state = {
        "type": "gameState",
        "moves": moves,
        "wtime": 900000,
        "btime": 900000,
        "winc": 10000,
        "binc": 10000,
        "wdraw": False,
        "bdraw": False,
        "status": status,
    }
    state.update(extra)
    return state


def add_game(registry: GameRegistry, record: Dict[str, Any], *, connected: bool = True) -> GameEntry:
    """Store a gameFull in the registry the way the feed handler does."""
    info, state = parse_game_full(record)
    if connected:
        registry.mark_connected(info.game_id)
    return registry.apply_game_full(info, state)


# --- MOCK DEPENDENCIES ----
class FakeLichessClient:
    """Stands in for LichessClient; records every submitted move."""

    def __init__(self) -> None:
        self.sent: List[tuple] = []
        self.results: List[MoveResult] = []
        self.events: List[Dict[str, Any]] = []
        self.games: Dict[str, List[Dict[str, Any]]] = {}
        self.account: Dict[str, Any] = {"id": ME, "username": "Godking666", "title": None}

    def make_move(self, game_id: str, uci: str, *, offering_draw: bool = False) -> MoveResult:
        self.sent.append((game_id, uci, offering_draw))
        if self.results:
            return self.results.pop(0)
        return MoveResult(ok=True, status=200)

    def stream_events(self, *, on_open: Optional[Callable[[], None]] = None) -> Iterator[Dict[str, Any]]:
        if on_open:
            on_open()
        yield from self.events

    def stream_game(self, game_id: str, *, on_open: Optional[Callable[[], None]] = None) -> Iterator[Dict[str, Any]]:
        if on_open:
            on_open()
        yield from self.games.get(game_id, [])

    def get_account(self) -> Dict[str, Any]:
        return self.account


class FakeWebSocketApp:
    """Mimics websocket.WebSocketApp: run_forever blocks until close()."""

    def __init__(self, url: str, on_open=None, on_message=None, on_error=None, on_close=None) -> None:
        self.url = url
        self.on_open = on_open
        self.on_message = on_message
        self.on_error = on_error
        self.sent: List[Dict[str, Any]] = []
        self._closed = threading.Event()

    def run_forever(self) -> None:
        self._closed.wait(timeout=5)

    def send(self, text: str) -> None:
        self.sent.append(json.loads(text))

    def close(self) -> None:
        self._closed.set()


@pytest.fixture
def registry() -> GameRegistry:
    return GameRegistry()


@pytest.fixture
def fake_client() -> FakeLichessClient:
    return FakeLichessClient()


@pytest.fixture
def inbox() -> List[object]:
    """Collects whatever components post for the controller."""
    return []


@pytest.fixture
def sockets() -> Generator[List[FakeWebSocketApp], None, None]:
    """Every FakeWebSocketApp built through ``sockets_factory``; closed at teardown."""
    created: List[FakeWebSocketApp] = []
    try:
        yield created
    finally:
        for ws in created:
            ws.close()


@pytest.fixture
def ws_factory(sockets: List[FakeWebSocketApp]) -> Callable[..., FakeWebSocketApp]:
    def build(url: str, **callbacks: Any) -> FakeWebSocketApp:
        ws = FakeWebSocketApp(url, **callbacks)
        sockets.append(ws)
        return ws
    return build
