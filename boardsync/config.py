# -*- coding: utf-8 -*-
"""Runtime configuration.

Sources, lowest priority first:
  - SyncConfig defaults
  - JSON config file (``config.json`` in the working directory by default)
  - environment (LICHESS_TOKEN, LICHESS_URL, LIVECHESS_URL, BOARDSYNC_VERBOSE,
    BOARDSYNC_ANNOUNCE_ALL)
  - command line
"""

from __future__ import annotations

import argparse
import json
import os
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Mapping, Optional

DEFAULT_BASE_URL = "https://lichess.org"
DEFAULT_LIVE_CHESS_URL = "ws://localhost:1982/api/v1.0"
DEFAULT_CONFIG_PATH = "config.json"


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class SyncConfig:
    token: str = ""
    base_url: str = DEFAULT_BASE_URL
    live_chess_url: str = DEFAULT_LIVE_CHESS_URL
    verbose: bool = False
    announce_all_moves: bool = False
    config_path: str = DEFAULT_CONFIG_PATH
    poll_interval_s: float = 5.0
    max_attempts: int = 20


# config.json key -> SyncConfig field
FILE_KEYS = {
    "personalToken": "token",
    "baseURL": "base_url",
    "liveChessURL": "live_chess_url",
    "verbose": "verbose",
    "announceAllMoves": "announce_all_moves",
}

ENV_KEYS = {
    "LICHESS_TOKEN": "token",
    "LICHESS_URL": "base_url",
    "LIVECHESS_URL": "live_chess_url",
    "BOARDSYNC_VERBOSE": "verbose",
    "BOARDSYNC_ANNOUNCE_ALL": "announce_all_moves",
}

_BOOL_FIELDS = {"verbose", "announce_all_moves"}


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="boardsync",
        description="Play Lichess games on a DGT board through LiveChess.",
    )
    p.add_argument("-c", "--config", dest="config_path", help=f"JSON config file (default: {DEFAULT_CONFIG_PATH})")
    p.add_argument("--token", help="Lichess personal API token")
    p.add_argument("--base-url", dest="base_url", help=f"Lichess server (default: {DEFAULT_BASE_URL})")
    p.add_argument("--livechess-url", dest="live_chess_url", help=f"LiveChess websocket (default: {DEFAULT_LIVE_CHESS_URL})")
    p.add_argument("-v", "--verbose", action="store_true", default=None, help="debug logging")
    p.add_argument("--announce-all-moves", dest="announce_all_moves", action="store_true", default=None,
                   help="also announce your own moves")
    p.add_argument("--poll-interval", dest="poll_interval_s", type=float, help="seconds between connection checks")
    p.add_argument("--max-attempts", dest="max_attempts", type=int, help="connection attempts before giving up")
    return p


def read_config_file(path: str) -> Dict[str, Any]:
    """Known keys of the JSON file mapped to SyncConfig fields. A missing file is empty."""
    if not os.path.exists(path):
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as exc:
        raise ConfigError(f"cannot read {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: expected a JSON object")
    return {field: data[key] for key, field in FILE_KEYS.items() if key in data}


def load_config(argv: Optional[List[str]] = None, environ: Optional[Mapping[str, str]] = None) -> SyncConfig:
    environ = os.environ if environ is None else environ
    args = build_parser().parse_args(argv)

    cli = {k: v for k, v in vars(args).items() if v is not None}
    config_path = cli.pop("config_path", None) or DEFAULT_CONFIG_PATH

    values: Dict[str, Any] = {}
    values.update(read_config_file(config_path))
    values.update({field: environ[key] for key, field in ENV_KEYS.items() if environ.get(key)})
    values.update(cli)

    for field in _BOOL_FIELDS & values.keys():
        values[field] = _as_bool(values[field])
    values["token"] = str(values.get("token") or "").strip()

    cfg = replace(SyncConfig(), config_path=config_path, **values)
    if not cfg.token:
        raise ConfigError("no Lichess token: set personalToken in the config file, LICHESS_TOKEN, or --token")
    if cfg.max_attempts < 1:
        raise ConfigError("max attempts must be at least 1")
    if cfg.poll_interval_s <= 0:
        raise ConfigError("poll interval must be positive")
    return cfg
