from __future__ import annotations

import logging


def configure_app_logging(level: str = "INFO") -> None:
    """
    Set the level for the `freight_core` logger tree.

    Uvicorn installs the handlers; child loggers (`freight_core.services.trips`,
    `freight_core.db.filters`, ...) inherit the level set here. Controlled by
    `FREIGHT_LOG_LEVEL`.
    """

    logger = logging.getLogger("freight_core")
    logger.setLevel(level.upper())
    logger.propagate = True
