from __future__ import annotations

import logging
import sys

_PACKAGE_LOGGER = "taskboard"
_WARNINGS_LOGGER = "py.warnings"


def setup_logging(*, level: int = logging.WARNING) -> logging.Logger:
    """
    Configure the ``taskboard`` logger with a single stderr handler.

    Calling it again replaces the previous handler instead of stacking a
    second one. Records still propagate to the root logger.
    """
    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(fmt)

    logger = logging.getLogger(_PACKAGE_LOGGER)
    logger.setLevel(level)
    for old in list(logger.handlers):
        logger.removeHandler(old)
    logger.addHandler(handler)

    # Route warnings.warn(...) into logging as 'py.warnings'
    logging.captureWarnings(True)
    warnings_logger = logging.getLogger(_WARNINGS_LOGGER)
    for old in list(warnings_logger.handlers):
        warnings_logger.removeHandler(old)
    warnings_logger.addHandler(handler)
    return logger
