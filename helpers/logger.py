"""Logging setup for the command line entry point."""

import logging
import sys

import colorlog


def configure_logging(log_level: str = "WARNING") -> logging.Logger:
    """
    Attach a colorized handler to the root logger.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        The root logger
    """
    logger = logging.getLogger()
    level = getattr(logging, log_level.upper(), logging.WARNING)
    logger.setLevel(level)

    # Avoid adding handlers multiple times
    if any(getattr(handler, "_ado_workflow", False) for handler in logger.handlers):
        return logger

    handler = colorlog.StreamHandler(sys.stderr)
    handler.setFormatter(colorlog.ColoredFormatter(
        "%(log_color)s%(levelname)-8s%(reset)s %(blue)s%(name)s%(reset)s: %(message)s",
        log_colors={
            "DEBUG": "cyan",
            "INFO": "green",
            "WARNING": "yellow",
            "ERROR": "red",
            "CRITICAL": "red,bg_white",
        },
    ))
    handler._ado_workflow = True
    logger.addHandler(handler)
    return logger
