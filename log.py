"""Gacc logging system.

Provides structured logging under the ``gacc`` hierarchy.
Compiler statistics, plan building and task progress go through
:func:`get_logger` instead of ``print()``.

Environment variables:
    GACC_LOG_LEVEL  : DEBUG / INFO (default) / WARNING / ERROR
    GACC_LOG_FILE   : optional path; appends plain-text log lines

:func:`configure` overrides both (the CLI passes ``cfg.log_level``).
"""

import logging
import os
import sys

ROOT = "gacc"

_CONFIGURED = False

# ANSI colour codes (used only when stderr is a TTY)
_COLORS = {
    logging.DEBUG: "\033[36m",     # cyan
    logging.INFO: "\033[32m",      # green
    logging.WARNING: "\033[33m",   # yellow
    logging.ERROR: "\033[31m",     # red
    logging.CRITICAL: "\033[35m",  # magenta
}
_RESET = "\033[0m"


class _ColorFormatter(logging.Formatter):
    """Colours the level name on a TTY without touching the shared record."""

    def __init__(self, fmt: str, use_color: bool = True):
        super().__init__(fmt)
        self.use_color = use_color

    def formatMessage(self, record: logging.LogRecord) -> str:
        if not self.use_color:
            return super().formatMessage(record)
        color = _COLORS.get(record.levelno, "")
        plain = record.levelname
        record.levelname = f"{color}{plain}{_RESET}"
        try:
            return super().formatMessage(record)
        finally:
            record.levelname = plain


def _parse_level(level) -> int:
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).upper(), logging.INFO)


def _add_file_handler(root: logging.Logger, path: str) -> None:
    fh = logging.FileHandler(path, mode="a")
    fh.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s: %(message)s"
    ))
    root.addHandler(fh)


def _configure_once() -> None:
    """One-time lazy init of the ``gacc`` root logger."""
    global _CONFIGURED
    if _CONFIGURED:
        return
    _CONFIGURED = True

    root = logging.getLogger(ROOT)
    root.setLevel(_parse_level(os.environ.get("GACC_LOG_LEVEL", "INFO")))

    # Console handler (stderr, so tqdm on stderr is unaffected)
    fmt = "%(levelname)s %(name)s: %(message)s"
    use_color = hasattr(sys.stderr, "isatty") and sys.stderr.isatty()
    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(_ColorFormatter(fmt, use_color=use_color))
    root.addHandler(console)

    log_file = os.environ.get("GACC_LOG_FILE")
    if log_file:
        _add_file_handler(root, log_file)


def configure(level=None, log_file: str = None) -> logging.Logger:
    """Adjusts the ``gacc`` root logger after lazy init.

    Args:
        level: Level name or number. ``None`` keeps the current level.
        log_file: Extra plain-text log file to append to.

    Returns:
        The ``gacc`` root logger.
    """
    _configure_once()
    root = logging.getLogger(ROOT)
    if level is not None:
        root.setLevel(_parse_level(level))
    if log_file:
        _add_file_handler(root, log_file)
    return root


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``gacc`` hierarchy.

    Args:
        name: Typically ``__name__`` of the calling module.

    Returns:
        A :class:`logging.Logger` instance.
    """
    _configure_once()
    return logging.getLogger(f"{ROOT}.{name}")
