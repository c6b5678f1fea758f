"""Unit tests for boardsync/supervisor.py"""

from typing import List

import pytest

from boardsync.supervisor import EXIT_RELAY, EXIT_REMOTE, FeedSupervisor, LinkState, ReconnectExhausted


class Link:
    """Counts connect calls; the test decides whether they succeed."""

    def __init__(self) -> None:
        self.calls = 0

    def connect(self) -> None:
        self.calls += 1


def test_first_tick_connects() -> None:
    link = Link()
    sup = FeedSupervisor("main", link.connect)

    sup.tick()

    assert link.calls == 1
    assert sup.attempts == 1
    assert sup.state is LinkState.CONNECTING


def test_no_attempt_while_connecting_or_connected() -> None:
    link = Link()
    sup = FeedSupervisor("main", link.connect)
    sup.tick()
    sup.tick()
    sup.notify_connected()
    sup.tick()

    assert link.calls == 1
    assert sup.state is LinkState.CONNECTED


def test_twenty_failed_attempts_exhaust_main_feed() -> None:
    link = Link()
    sup = FeedSupervisor("lichess event stream", link.connect, exit_code=EXIT_REMOTE)

    for _ in range(20):
        sup.tick()
        sup.notify_disconnected()
    assert link.calls == 20

    with pytest.raises(ReconnectExhausted) as excinfo:
        sup.tick()
    assert link.calls == 20
    assert excinfo.value.exit_code == EXIT_REMOTE
    assert excinfo.value.attempts == 20


def test_attempts_are_not_reset_by_success() -> None:
    link = Link()
    sup = FeedSupervisor("relay", link.connect, max_attempts=3, exit_code=EXIT_RELAY)
    for _ in range(3):
        sup.tick()
        sup.notify_connected()
        sup.notify_disconnected()

    with pytest.raises(ReconnectExhausted) as excinfo:
        sup.tick()
    assert excinfo.value.exit_code == EXIT_RELAY


def test_poll_runs_while_connected_and_counts_retries() -> None:
    polls: List[bool] = [False, True, True]
    sup = FeedSupervisor("relay", Link().connect, on_poll=lambda: polls.pop(0), max_attempts=3)
    sup.tick()
    sup.notify_connected()

    sup.tick()
    assert sup.attempts == 1
    sup.tick()
    sup.tick()
    assert sup.attempts == 3
    assert polls == []


def test_poll_retry_can_exhaust() -> None:
    sup = FeedSupervisor("relay", Link().connect, on_poll=lambda: True, max_attempts=2, exit_code=EXIT_RELAY)
    sup.tick()
    sup.notify_connected()
    sup.tick()

    with pytest.raises(ReconnectExhausted):
        sup.tick()
