from __future__ import annotations

import logging
import sys
from typing import NoReturn, Optional, Union

from .errors import DotconfError

OK = 25
logging.addLevelName(OK, "OK")

LOGGER_NAME = "dotconf"


class Log:
    """Console logging facade: ``debug``, ``info``, ``ok``, ``error``, ``fatal``.

    ``error`` logs and then raises, so callers see a recoverable exception.
    ``fatal`` logs and terminates the process; only the CLI should call it.
    With ``silent=True`` nothing is printed but both still raise/exit.
    """

    def __init__(self, *, silent: bool = False, logger: Optional[logging.Logger] = None):
        self.silent = silent
        self.logger = logger or logging.getLogger(LOGGER_NAME)

    def _emit(self, level: int, msg: object) -> None:
        if not self.silent:
            self.logger.log(level, "%s", msg)

    def debug(self, msg: object) -> None:
        self._emit(logging.DEBUG, msg)

    def info(self, msg: object) -> None:
        self._emit(logging.INFO, msg)

    def ok(self, msg: object) -> None:
        self._emit(OK, msg)

    def error(self, err: Union[str, BaseException]) -> NoReturn:
        self._emit(logging.ERROR, err)
        if isinstance(err, BaseException):
            raise err
        raise DotconfError(str(err))

    def fatal(self, err: Union[str, BaseException], status: int = 1) -> NoReturn:
        self._emit(logging.CRITICAL, err)
        sys.exit(status)


def _console_logger() -> logging.Logger:
    """The ``dotconf`` logger, printing to stderr unless logging is already set up.

    An application (or the CLI, through ``basicConfig``) that configured
    handlers keeps full control; otherwise every level from DEBUG up is shown.
    """
    logger = logging.getLogger(LOGGER_NAME)
    if not logger.hasHandlers():
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)
        if logger.level == logging.NOTSET:
            logger.setLevel(logging.DEBUG)
    return logger


def get_log(silent: bool = False, log=None):
    """Return ``log`` when supplied, otherwise a new console :class:`Log`."""
    if log:
        return log
    return Log(silent=silent, logger=_console_logger())
