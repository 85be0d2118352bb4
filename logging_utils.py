from __future__ import annotations

import logging
from typing import Optional

from config import LOGGER_NAME


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """
    Return the engine logger, or a child of it when ``name`` is given.

    The first call installs a console handler at INFO level on the root engine
    logger; later calls reuse it.
    """
    root = logging.getLogger(LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter(
            "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
        )
        handler.setFormatter(formatter)
        root.addHandler(handler)
        root.setLevel(logging.INFO)

    if not name or name == LOGGER_NAME:
        return root
    return root.getChild(name)
