"""Logging set-up: everything from DEBUG to a file, chosen levels to stdout."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable
from pathlib import Path

from proxypool.config import get_config
from proxypool.utils import TRACE, parse_level

LOG_FILE_NAME = "all.log"
_TAG = "_proxypool_handler"
_FORMAT = "%(asctime)s %(levelname)-5s %(name)s: %(message)s"


class _LevelSetFilter(logging.Filter):
    """Pass only records whose level is one of a fixed set."""

    def __init__(self, levels: Iterable[int]) -> None:
        super().__init__()
        self._levels = frozenset(levels)

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno in self._levels


class _AnsiFormatter(logging.Formatter):
    """Colour each line by its level."""

    _COLOURS = {
        logging.ERROR: "\x1b[31m",
        logging.WARNING: "\x1b[33m",
        logging.INFO: "\x1b[32m",
        logging.DEBUG: "\x1b[34m",
        TRACE: "\x1b[35m",
    }

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        colour = self._COLOURS.get(record.levelno)
        return f"{colour}{text}\x1b[0m" if colour else text


def init_logging(
    console_levels: Iterable[str] | None = None,
    log_dir: str | Path = "logs",
) -> Path:
    """Install the file and console handlers on the root logger.

    ``console_levels`` are level names; unknown names are ignored. When
    omitted they come from the application configuration. The log file is
    truncated. Handlers installed by an earlier call are replaced. Returns
    the path of the log file.
    """
    if console_levels is None:
        console_levels = get_config().log.console_levels
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)

    allowed = {level for level in map(parse_level, console_levels) if level is not None}

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, _TAG, False):
            root.removeHandler(handler)
            handler.close()

    log_path = directory / LOG_FILE_NAME
    file_handler = logging.FileHandler(log_path, mode="w", encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    file_handler.setFormatter(logging.Formatter(_FORMAT))

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(TRACE)
    console_handler.addFilter(_LevelSetFilter(allowed))
    console_handler.setFormatter(_AnsiFormatter(_FORMAT))

    for handler in (file_handler, console_handler):
        setattr(handler, _TAG, True)
        root.addHandler(handler)

    root.setLevel(min([logging.DEBUG, *allowed]))
    return log_path