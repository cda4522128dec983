"""Logging setup for the API process."""

import logging
import os


def configure_logging(level: str = "INFO") -> None:
    """Configure the root logger once and quiet chatty HTTP libraries.

    Tests manage their own logging, so nothing is changed under pytest.
    """
    if os.getenv("PYTEST_CURRENT_TEST"):
        return

    numeric_level = logging.getLevelName(level.upper())
    if not isinstance(numeric_level, int):
        numeric_level = logging.INFO

    if not logging.getLogger().handlers:
        logging.basicConfig(
            level=numeric_level,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
    else:
        logging.getLogger().setLevel(numeric_level)

    for logger_name in ["httpx", "httpcore", "httpcore.http11"]:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
