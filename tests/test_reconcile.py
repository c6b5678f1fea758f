"""Unit tests for boardsync/reconcile.py"""

import pytest

from boardsync.reconcile import MoveClass, classify_board_move


@pytest.mark.parametrize("color", ["white", "black"])
def test_own_color_is_always_a_move(color: str) -> None:
    assert classify_board_move(color, "e2e4", color, []) is MoveClass.MOVE
    assert classify_board_move(color, "e2e4", color, ["e2e4"]) is MoveClass.MOVE


def test_opponent_move_matching_remote_is_adjust() -> None:
    """Session white, board plays black's e7e5 which Lichess already has."""
    assert classify_board_move("black", "e7e5", "white", ["e2e4", "e7e5"]) is MoveClass.ADJUST


def test_opponent_move_not_matching_remote_is_invalid_adjust() -> None:
    assert classify_board_move("black", "c7c5", "white", ["e2e4", "e7e5"]) is MoveClass.INVALID_ADJUST
    assert classify_board_move("black", "e7e5", "white", []) is MoveClass.INVALID_ADJUST


def test_promotion_piece_mismatch_is_invalid_adjust() -> None:
    assert classify_board_move("white", "d7d8n", "black", ["d7d8q"]) is MoveClass.INVALID_ADJUST


def test_without_session_only_adjust_can_match() -> None:
    assert classify_board_move("white", "e2e4", None, ["e2e4"]) is MoveClass.ADJUST
    assert classify_board_move("white", "d2d4", None, ["e2e4"]) is MoveClass.INVALID_ADJUST
