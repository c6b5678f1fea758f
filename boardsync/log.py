# -*- coding: utf-8 -*-
"""Console logging for the boardsync process."""

from __future__ import annotations

import logging
import sys
from typing import Optional, TextIO


class ColoredFormatter(logging.Formatter):
    """Colors the level name when writing to a terminal."""

    COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(self, *args, stream: Optional[TextIO] = None, **kwargs):
        super().__init__(*args, **kwargs)
        stream = stream or sys.stdout
        self.use_colors = hasattr(stream, "isatty") and stream.isatty()

    def format(self, record: logging.LogRecord) -> str:
        if not self.use_colors:
            return super().format(record)
        original = record.levelname
        record.levelname = f"{self.COLORS.get(original, '')}{original:>8}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def setup_logging(verbose: bool = False, stream: Optional[TextIO] = None) -> logging.Logger:
    """Install one console handler on the root logger. DEBUG when verbose."""
    stream = stream or sys.stdout
    level = logging.DEBUG if verbose else logging.INFO

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = []

    handler = logging.StreamHandler(stream)
    handler.setLevel(level)
    handler.setFormatter(ColoredFormatter(
        "%(asctime)s.%(msecs)03d %(levelname)s %(message)s",
        "%H:%M:%S",
        stream=stream,
    ))
    root.addHandler(handler)

    # urllib3 logs every request at DEBUG.
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    return root
