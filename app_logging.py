"""
Logger setup shared by the whole application.
"""
import logging
import sys

from config import settings

_level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)

logger = logging.getLogger("optometry")
logger.setLevel(_level)
logger.propagate = False

handler = logging.StreamHandler(sys.stdout)
handler.setFormatter(
    logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
)

if not logger.handlers:
    logger.addHandler(handler)

# uvicorn installs its own handlers; only align the levels.
for name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
    logging.getLogger(name).setLevel(_level)


def get_logger(name: str) -> logging.Logger:
    """Child of the application logger, e.g. ``optometry.attempts``."""
    return logger.getChild(name)
