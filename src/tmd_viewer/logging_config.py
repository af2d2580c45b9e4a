"""Configure logging for the application.

Log lines go to stderr so they never mix with rendered feeds on stdout.
The interactive ``browse`` session prints its own status lines, so the
default format is kept short; ``--verbose`` adds timestamps.
"""

import logging
import sys

SHORT_FORMAT = "%(levelname)s %(name)s: %(message)s"
VERBOSE_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

QUIET_LOGGERS = ("httpx", "httpcore")

_handler: logging.Handler | None = None


def setup_logging(debug: bool = False) -> None:
    global _handler

    logger = logging.getLogger("tmd_viewer")
    logger.setLevel(logging.DEBUG if debug else logging.INFO)

    # One handler, bound to whatever stderr is current
    if _handler is not None:
        logger.removeHandler(_handler)
    _handler = logging.StreamHandler(sys.stderr)
    _handler.setFormatter(
        logging.Formatter(
            VERBOSE_FORMAT if debug else SHORT_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"
        )
    )
    logger.addHandler(_handler)

    # httpx logs every request at INFO
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.DEBUG if debug else logging.WARNING)
