"""Provides a class for creating and configuring loggers."""

import logging
import os

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Logger:
    """
    Class for creating named loggers with standardized configuration.
    """

    @staticmethod
    def get_logger(name: str, level=None) -> logging.Logger:
        """Creates and returns a logger with the given name and logging level."""
        if level is None:
            level = os.getenv("LOG_LEVEL", "DEBUG").upper()

        logger = logging.getLogger(name)
        logger.setLevel(level)

        if not logger.handlers:
            # Handler (console)
            console_handler = logging.StreamHandler()
            console_handler.setLevel(level)

            # Formatter
            formatter = logging.Formatter(LOG_FORMAT)
            console_handler.setFormatter(formatter)

            # Add handler
            logger.addHandler(console_handler)

        return logger
