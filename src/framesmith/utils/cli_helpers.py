# SPDX-License-Identifier: Apache-2.0
from __future__ import annotations

import logging

from framesmith.utils.env import env

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "quiet": logging.WARNING,
}

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging_from_env(default: str = "info") -> int:
    """Configure root logging from ``FRAMESMITH_VERBOSITY`` (idempotent).

    Returns the effective level. Repeated calls only adjust the level of the
    already-installed handler.
    """
    verbosity = (env("VERBOSITY", default) or default).strip().lower()
    level = _LEVELS.get(verbosity, logging.INFO)
    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(level=level, format=_FORMAT)
    root.setLevel(level)
    return level
