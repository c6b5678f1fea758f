# -*- coding: utf-8 -*-
"""
boardsync entrypoint.

  - load config (file, environment, command line)
  - look up the operator's Lichess account
  - run the sync controller until the operator quits

Exit codes: 0 quit, 1 config/account failure, 2 Lichess feed gave up,
3 LiveChess relay gave up.
"""

from __future__ import annotations

import logging
import sys
from typing import List, Optional

import requests

from .config import ConfigError, load_config
from .controller import SyncController
from .lichess_client import LichessClient
from .log import setup_logging
from .supervisor import ReconnectExhausted

log = logging.getLogger("boardsync")

EXIT_CONFIG = 1


def main(argv: Optional[List[str]] = None) -> int:
    try:
        cfg = load_config(argv)
    except ConfigError as exc:
        setup_logging()
        log.critical("[Main] %s", exc)
        return EXIT_CONFIG

    setup_logging(cfg.verbose)
    log.info("[Main] Lichess.org - DGT Electronic Board Connector")

    client = LichessClient(cfg.token, cfg.base_url)
    try:
        me = client.get_account()
    except (requests.RequestException, ValueError) as exc:
        log.critical("[Main] Could not read the Lichess account: %s", exc)
        return EXIT_CONFIG
    me_id = str(me.get("id") or "")
    if not me_id:
        log.critical("[Main] Lichess account has no id: %s", me)
        return EXIT_CONFIG
    log.info("[Main] Signed in as %s %s", me.get("title") or "@", me.get("username") or me_id)

    controller = SyncController(cfg, client, me_id)
    controller.start_console()
    try:
        return controller.run()
    except ReconnectExhausted as exc:
        log.critical("[Main] %s", exc)
        return exc.exit_code
    except KeyboardInterrupt:
        log.info("[Main] Interrupted")
        return 0


if __name__ == "__main__":
    sys.exit(main())
