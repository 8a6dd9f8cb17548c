"""Domain normalisation for monitored sites."""

from __future__ import annotations

import re

from src.monitor.errors import InvalidDomainError

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


def _strip_once(value: str) -> str:
    return _SCHEME_RE.sub("", value.strip()).rstrip("/").strip()


def normalize_domain(value: str) -> str:
    """Strip scheme and trailing slashes and lower-case, e.g. ``HTTPS://Example.com/`` -> ``example.com``.

    Repeats until the value stops changing so the result is a fixed point.
    """
    cleaned = value
    while True:
        stripped = _strip_once(cleaned)
        if stripped == cleaned:
            break
        cleaned = stripped

    cleaned = cleaned.lower()
    if not cleaned:
        raise InvalidDomainError("Domain must not be empty")
    return cleaned
