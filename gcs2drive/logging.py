# Copyright (c) 2022-present, FriendliAI Inc. All rights reserved.

"""gcs2drive Logger."""

from __future__ import annotations

import logging
import os


class ColorFormatter(logging.Formatter):
    """Customized formatter with ANSI color."""

    grey = "\x1b[38;20m"
    yellow = "\x1b[33;20m"
    red = "\x1b[31;20m"
    bold_red = "\x1b[31;1m"
    reset = "\x1b[0m"

    default_fmt = "%(asctime)s.%(msecs)03d: %(name)s %(levelname)s: %(message)s"
    default_datefmt = "%Y-%m-%d %H:%M:%S"

    FORMATS = {
        logging.DEBUG: grey + default_fmt + reset,
        logging.INFO: grey + default_fmt + reset,
        logging.WARNING: yellow + default_fmt + reset,
        logging.ERROR: red + default_fmt + reset,
        logging.CRITICAL: bold_red + default_fmt + reset,
    }

    def __init__(self, colored: bool = True):
        """Initialize ColorFormatter."""
        super().__init__(fmt=self.default_fmt, datefmt=self.default_datefmt)

        if colored:
            formats = self.FORMATS
        else:
            # Cloud log viewers do not render ANSI escapes.
            formats = {level: self.default_fmt for level in self.FORMATS}
        self.formatters = {
            level: logging.Formatter(fmt, datefmt=self.default_datefmt)
            for level, fmt in formats.items()
        }

    def format(self, record):
        """Override format method."""
        formatter = self.formatters.get(record.levelno, self.formatters[logging.INFO])
        return formatter.format(record)


def get_logger(name: str) -> logging.Logger:
    """Get a formatted logger."""
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler()
        colored = os.environ.get("GCS2DRIVE_LOG_COLOR", "1") != "0"
        handler.setFormatter(ColorFormatter(colored=colored))
        logger.addHandler(handler)
    logger.setLevel(os.environ.get("GCS2DRIVE_LOG_LEVEL", "INFO"))

    return logger


logger = get_logger("gcs2drive")
