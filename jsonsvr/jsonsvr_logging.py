"""
Logging setup for the server process.
"""
import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"
ACCESS_LOGGER = "jsonsvr.access"

_HANDLER_MARK = "_jsonsvr_handler"


def _mark(handler: logging.Handler) -> logging.Handler:
    setattr(handler, _HANDLER_MARK, True)
    return handler


def _reset(logger: logging.Logger):
    # Drop handlers installed by a previous call so reconfiguring is idempotent
    for h in list(logger.handlers):
        if getattr(h, _HANDLER_MARK, False):
            logger.removeHandler(h)
            h.close()


def configure_logging(level: str = "INFO", access_log_file: Optional[str] = None) -> None:
    """Console logging for the `jsonsvr` package, plus an optional access log file."""
    formatter = logging.Formatter(LOG_FORMAT)

    app_logger = logging.getLogger("jsonsvr")
    _reset(app_logger)
    console = _mark(logging.StreamHandler(sys.stderr))
    console.setFormatter(formatter)
    app_logger.addHandler(console)
    app_logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    access_logger = logging.getLogger(ACCESS_LOGGER)
    _reset(access_logger)
    access_logger.setLevel(logging.INFO)
    if access_log_file:
        fh = _mark(logging.FileHandler(access_log_file, encoding="utf-8"))
        fh.setFormatter(formatter)
        access_logger.addHandler(fh)
        access_logger.propagate = False
    else:
        access_logger.propagate = True


def get_access_logger() -> logging.Logger:
    return logging.getLogger(ACCESS_LOGGER)


__all__ = ["LOG_FORMAT", "ACCESS_LOGGER", "configure_logging", "get_access_logger"]
