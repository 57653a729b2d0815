"""
Script-side logging for sdanalysis.

Modules only create loggers under the "sdanalysis" namespace. A driver
script calls :func:`setup_logging` once; console records go through
``tqdm.write`` so they do not tear the progress bar of ``analyse_file``.
"""
import logging
from typing import List, Optional, Union

from tqdm import tqdm

ROOT_LOGGER = "sdanalysis"
_FORMAT = "[%(asctime)s] %(levelname)-7s %(name)s: %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


class TqdmHandler(logging.Handler):
    """Emit records above any active tqdm bar."""

    def emit(self, record):
        try:
            tqdm.write(self.format(record))
            self.flush()
        except Exception:
            self.handleError(record)


def _as_level(level: Union[int, str]) -> int:
    if isinstance(level, str):
        value = logging.getLevelName(level.upper())
        if not isinstance(value, int):
            raise ValueError(f"unknown logging level {level!r}")
        return value
    return int(level)


def _handlers(log_file: Optional[str]) -> List[logging.Handler]:
    handlers: List[logging.Handler] = [TqdmHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file, mode="w", encoding="utf-8"))
    return handlers


def setup_logging(level: Union[int, str] = logging.INFO,
                  log_file: Optional[str] = None) -> logging.Logger:
    """
    (Re)configure the "sdanalysis" logger and return it.

    ``level`` may be a number or a name such as ``"debug"``. Handlers from an
    earlier call are closed and replaced, so calling twice does not duplicate
    output.
    """
    level = _as_level(level)
    logger = logging.getLogger(ROOT_LOGGER)
    for old in list(logger.handlers):
        logger.removeHandler(old)
        old.close()

    formatter = logging.Formatter(_FORMAT, datefmt=_DATEFMT)
    for handler in _handlers(log_file):
        handler.setLevel(level)
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    logger.setLevel(level)

    logger.debug("Logging initialised (level %s).", logging.getLevelName(level))
    return logger
