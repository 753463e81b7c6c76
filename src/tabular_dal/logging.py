"""Logging helpers.

Every module logs through `logging.getLogger(__name__)` under the
`tabular_dal` namespace and the library installs no handlers on its own.
`enable_stderr_logging` is the opt-in switch for applications and tests.
"""

import logging as py_logging
import sys
from typing import TextIO

LOGGER_NAME = "tabular_dal"
_FORMAT = "[%(levelname)s] %(message)s (%(filename)s:%(lineno)d)"

_installed: py_logging.Handler | None = None


def resolve_level(level: str | int) -> int:
    if isinstance(level, int):
        return level
    normalized = level.strip().upper()
    if normalized == "WARN":
        normalized = "WARNING"
    resolved = py_logging.getLevelNamesMapping().get(normalized)
    if resolved is None:
        msg = f"Unknown log level: {level!r}"
        raise ValueError(msg)
    return resolved


def enable_stderr_logging(
    level: str | int = "DEBUG",
    stream: TextIO | None = None,
) -> py_logging.Handler:
    """Send `tabular_dal` records at `level` or above to `stream` (stderr).

    Calling it again replaces the handler installed by the previous call.
    Returns the handler so callers can detach it with `disable_stderr_logging`.
    """
    global _installed  # noqa: PLW0603
    resolved = resolve_level(level)
    logger = py_logging.getLogger(LOGGER_NAME)
    if _installed is not None:
        logger.removeHandler(_installed)
    handler = py_logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(resolved)
    handler.setFormatter(py_logging.Formatter(_FORMAT))
    logger.addHandler(handler)
    logger.setLevel(resolved)
    _installed = handler
    return handler


def disable_stderr_logging() -> None:
    global _installed  # noqa: PLW0603
    if _installed is None:
        return
    logger = py_logging.getLogger(LOGGER_NAME)
    logger.removeHandler(_installed)
    logger.setLevel(py_logging.NOTSET)
    _installed = None
