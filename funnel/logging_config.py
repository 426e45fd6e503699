"""
funnel.logging_config
=====================

One place to set up stdlib logging for the CLI and the API process.
Library modules only ever call ``logging.getLogger(__name__)``.
"""

from __future__ import annotations

import logging

from funnel.settings import LOG_LEVEL

LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def configure_logging(level: str | int | None = None) -> None:
    """Configure the root logger once; later calls only adjust the level."""
    level = level or LOG_LEVEL
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=LOG_FORMAT)
    else:
        root.setLevel(level)
