"""boardsync: keep a physical electronic chessboard in step with live Lichess games.

The entrypoint is ``boardsync.__main__``. Everything that talks to the network
or the board relay lives in this package so the controller loop stays small:

  - lichess_client / lichess_game: Board API HTTP + payload parsing
  - remote_stream: main and per-game feeds
  - board_relay / protocol: LiveChess websocket relay
  - registry / session / reconcile / dispatcher: game bookkeeping
  - supervisor: bounded reconnects
  - controller / events: the single-threaded inbox loop
  - announcer / config / log: operator output, settings, logging
"""

__version__ = "0.3.0"
