# SPDX-License-Identifier: Apache-2.0
"""Environment-backed configuration helpers.

All settings live under the ``FRAMESMITH_`` prefix. Callers pass the bare key
(``env("POLL_INTERVAL")`` reads ``FRAMESMITH_POLL_INTERVAL``). Invalid values
fall back to the provided default rather than raising, so a typo in the
environment never prevents the CLI or API from starting.
"""

from __future__ import annotations

import logging
import os
from typing import Any

PREFIX = "FRAMESMITH_"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


def _key(name: str) -> str:
    return name if name.startswith(PREFIX) else f"{PREFIX}{name}"


def env(name: str, default: str | None = None) -> str | None:
    """Return the raw value of ``FRAMESMITH_<name>`` or ``default``."""
    value = os.environ.get(_key(name))
    if value is None or value == "":
        return default
    return value


def env_int(name: str, default: int) -> int:
    raw = env(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        logging.getLogger(__name__).debug(
            "ignoring non-integer %s=%r", _key(name), raw
        )
        return default


def env_float(name: str, default: float) -> float:
    raw = env(name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError:
        logging.getLogger(__name__).debug("ignoring non-float %s=%r", _key(name), raw)
        return default


def env_bool(name: str, default: bool = False) -> bool:
    raw = env(name)
    if raw is None:
        return default
    lowered = raw.strip().lower()
    if lowered in _TRUTHY:
        return True
    if lowered in _FALSY:
        return False
    return default


def env_seconds(name: str, default: float) -> float:
    """Parse a duration in seconds; accepts plain numbers or ``ms``/``s`` suffixes."""
    raw = env(name)
    if raw is None:
        return default
    text = raw.strip().lower()
    try:
        if text.endswith("ms"):
            return float(text[:-2]) / 1000.0
        if text.endswith("s"):
            return float(text[:-1])
        return float(text)
    except ValueError:
        return default


def coalesce(*values: Any) -> Any:
    """Return the first value that is not None or an empty string."""
    for value in values:
        if value is not None and value != "":
            return value
    return None


__all__ = ["env", "env_int", "env_float", "env_bool", "env_seconds", "coalesce"]
