"""Unit tests for boardsync/board_relay.py"""

import json
from typing import Callable, Generator, List, Optional

import chess
import chess.variant
import pytest

from boardsync.board_relay import BoardRelayClient
from boardsync.reconcile import MoveClass
from boardsync.registry import GameRegistry
from boardsync.session import SessionSelector
from conftest import ME, FakeWebSocketApp, add_game, game_full


def _devices(*boards) -> str:
    return json.dumps({
        "response": "call",
        "id": 1,
        "param": [{"serialnr": s, "source": "COM3", "state": st} for s, st in boards],
        "time": 1586647003562,
    })


def _feed(*san: str) -> str:
    return json.dumps({
        "response": "feed",
        "id": 1,
        "param": {"serialnr": "12345", "flipped": False, "board": "", "clock": None, "san": list(san)},
        "time": 1586647003562,
    })


@pytest.fixture
def selector(registry: GameRegistry) -> SessionSelector:
    return SessionSelector(registry, ME, ask=lambda candidates: None)


@pytest.fixture
def relay(
    registry: GameRegistry,
    selector: SessionSelector,
    inbox: List[object],
    ws_factory: Callable[..., FakeWebSocketApp],
    sockets: List[FakeWebSocketApp],
) -> Generator[BoardRelayClient, None, None]:
    client = BoardRelayClient(registry, selector, inbox.append, "ws://relay.test", ws_factory=ws_factory)
    client.connect()
    client.handle_opened()
    try:
        yield client
    finally:
        client.close()


def _sent(sockets: List[FakeWebSocketApp]) -> List[dict]:
    return sockets[-1].sent


def _drain(relay: BoardRelayClient) -> List:
    out = []
    while not relay.events.empty():
        out.append(relay.events.get_nowait())
    return out


def _attach(registry: GameRegistry, selector: SessionSelector, moves: str = "", *, white: str = ME, black: str = "andrescavallin"):
    add_game(registry, game_full("G1", moves, white=white, black=black))
    return selector.choose_current_game()


# --- CONNECTION ----
def test_open_requests_board_list(relay: BoardRelayClient, sockets: List[FakeWebSocketApp]) -> None:
    assert sockets[-1].url == "ws://relay.test"
    assert relay.connected
    assert _sent(sockets) == [{"id": 1, "call": "eboards"}]


def test_device_list_subscribes_first_board(relay: BoardRelayClient, sockets: List[FakeWebSocketApp]) -> None:
    relay.handle_frame(_devices(("12345", "ACTIVE"), ("99999", "ACTIVE")))

    assert relay.serialnr == "12345"
    assert _sent(sockets)[-1] == {
        "id": 2,
        "call": "subscribe",
        "param": {"feed": "eboardevent", "id": 1, "param": {"serialnr": "12345"}},
    }


def test_inactive_board_is_still_subscribed(relay: BoardRelayClient, sockets: List[FakeWebSocketApp], caplog) -> None:
    relay.handle_frame(_devices(("12345", "INACTIVE")))
    assert relay.serialnr == "12345"
    assert "not properly connected" in caplog.text


def test_empty_device_list_leaves_no_serial(relay: BoardRelayClient, sockets: List[FakeWebSocketApp]) -> None:
    relay.handle_frame(_devices())
    assert relay.serialnr is None
    assert _sent(sockets) == [{"id": 1, "call": "eboards"}]


def test_device_list_resends_setup_for_attached_game(
    relay: BoardRelayClient, registry: GameRegistry, selector: SessionSelector, sockets: List[FakeWebSocketApp]
) -> None:
    _attach(registry, selector, "e2e4")

    relay.handle_frame(_devices(("12345", "ACTIVE")))

    setup = _sent(sockets)[-1]
    assert setup["call"] == "call"
    assert setup["param"]["method"] == "setup"
    assert setup["param"]["param"]["fen"] == registry.get("G1").board.fen()


def test_close_clears_serial(relay: BoardRelayClient) -> None:
    relay.handle_frame(_devices(("12345", "ACTIVE")))
    relay.handle_closed("bye")
    assert not relay.connected
    assert relay.serialnr is None


def test_set_up_when_closed_only_resets_mirror(relay: BoardRelayClient, sockets: List[FakeWebSocketApp], caplog) -> None:
    relay.handle_closed()
    board = chess.Board()
    board.push_uci("e2e4")
    sent_before = list(_sent(sockets))

    relay.set_up(board)

    assert _sent(sockets) == sent_before
    assert relay.mirror.fen() == board.fen()
    assert "cannot send setup" in caplog.text


def test_set_up_keeps_variant_rules(relay: BoardRelayClient) -> None:
    board = chess.variant.CrazyhouseBoard()
    for uci in ("e2e4", "d7d5", "e4d5", "d8d5"):
        board.push_uci(uci)

    relay.set_up(board)

    assert isinstance(relay.mirror, chess.variant.CrazyhouseBoard)
    assert relay.mirror.fen() == board.fen()
    relay.mirror.push_uci("b1c3")
    assert board.move_stack[-1].uci() == "d8d5"


def test_garbage_frame_is_ignored(relay: BoardRelayClient) -> None:
    assert relay.handle_frame("not json") is None
    assert relay.handle_frame('{"response":"call","id":7,"param":null}') is None


# --- FEED ----
def test_setup_ack_produces_no_event(relay: BoardRelayClient) -> None:
    assert relay.handle_frame(_feed()) is None
    assert _drain(relay) == []


def test_own_move_is_forwarded(relay: BoardRelayClient, registry: GameRegistry, selector: SessionSelector) -> None:
    _attach(registry, selector)

    event = relay.handle_frame(_feed("e4"))

    assert event.type is MoveClass.MOVE
    assert event.uci == "e2e4"
    assert event.color == "white"
    assert _drain(relay) == [event]
    assert [m.uci() for m in relay.mirror.move_stack] == ["e2e4"]


def test_opponent_move_already_on_lichess_is_adjust(
    relay: BoardRelayClient, registry: GameRegistry, selector: SessionSelector
) -> None:
    """Session white; Lichess has e2e4 e7e5; the board catches up with e7e5."""
    _attach(registry, selector, "e2e4 e7e5")
    board = chess.Board()
    board.push_uci("e2e4")
    relay.set_up(board)

    event = relay.handle_frame(_feed("e4", "e5"))

    assert event.type is MoveClass.ADJUST
    assert event.uci == "e7e5"
    assert len(relay.mirror.move_stack) == 2


def test_wrong_opponent_move_is_undone(relay: BoardRelayClient, registry: GameRegistry, selector: SessionSelector) -> None:
    _attach(registry, selector, "e2e4 e7e5")
    board = chess.Board()
    board.push_uci("e2e4")
    relay.set_up(board)
    before = len(relay.mirror.move_stack)

    event = relay.handle_frame(_feed("e4", "c5"))

    assert event.type is MoveClass.INVALID_ADJUST
    assert event.uci == "c7c5"
    assert len(relay.mirror.move_stack) == before


def test_repeated_report_is_ignored(relay: BoardRelayClient, registry: GameRegistry, selector: SessionSelector) -> None:
    _attach(registry, selector)
    relay.handle_frame(_feed("e4"))
    _drain(relay)

    assert relay.handle_frame(_feed("e4")) is None
    assert _drain(relay) == []


def test_position_mismatch_is_invalid_move(relay: BoardRelayClient, registry: GameRegistry, selector: SessionSelector) -> None:
    _attach(registry, selector)

    event = relay.handle_frame(_feed("Nf6"))

    assert event.type is MoveClass.INVALID_MOVE
    assert event.color == "white"
    assert relay.mirror.move_stack == []


def test_board_move_without_session(relay: BoardRelayClient) -> None:
    event = relay.handle_frame(_feed("e4"))
    assert event.type is MoveClass.INVALID_ADJUST
    assert relay.mirror.move_stack == []


def test_attached_black_session_forwards_black_moves(
    relay: BoardRelayClient, registry: GameRegistry, selector: SessionSelector
) -> None:
    session = _attach(registry, selector, "e2e4", white="andrescavallin", black=ME)
    assert session.color == "black"
    relay.set_up(registry.get("G1").board)

    event = relay.handle_frame(_feed("e4", "c5"))

    assert event.type is MoveClass.MOVE
    assert event.uci == "c7c5"
