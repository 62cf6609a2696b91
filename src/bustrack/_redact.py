"""Log-safe rendering of location service bodies.

A location response names the bus driver, and an error page from a proxy
can be arbitrarily long.  DEBUG logs go through :func:`redact_for_log`,
which masks personal fields inside the ``bus`` object and shortens long
text such as HTML error pages.
"""

from __future__ import annotations

from typing import Any

_MASK = "<redacted>"

# Compared after lowercasing and dropping underscores, so ``driverName``
# and ``driver_name`` both match.
_PERSONAL_KEYS = frozenset({"drivername", "driverphone", "operatorname", "phone", "authorization", "cookie"})


def _is_personal(key: str) -> bool:
    return key.replace("_", "").lower() in _PERSONAL_KEYS


def _shorten(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return f"{text[:limit]}…<{len(text) - limit} more chars>"


def redact_for_log(body: Any, *, max_string: int = 512) -> Any:
    """Return a copy of a decoded response *body* safe for debug logs.

    Dict and list nesting is preserved; personal values are replaced by
    ``<redacted>`` and strings longer than *max_string* are cut.
    Coordinates, flags and the bus number pass through unchanged.
    """
    if isinstance(body, str):
        return _shorten(body, max_string)
    if isinstance(body, dict):
        return {
            key: _MASK if _is_personal(str(key)) else redact_for_log(value, max_string=max_string)
            for key, value in body.items()
        }
    if isinstance(body, list):
        return [redact_for_log(item, max_string=max_string) for item in body]
    return body
