"""Coercion and clamping helpers for user-supplied generation parameters.

The browser form sends whatever its widgets produce: numbers as strings,
empty seed fields, out-of-range slider values from older builds.  None of
that is worth rejecting, so every parameter is coerced into range here and
the Pydantic models in :mod:`nanobanana.api.models` call these helpers from
their ``mode="before"`` validators.

Only the prompt and the optional input image can fail validation; every
parameter has a default it falls back to.
"""

from __future__ import annotations

import math
import re
from typing import Any

# ---------------------------------------------------------------------------
# Parameter bounds and defaults.
# ---------------------------------------------------------------------------
ASPECT_RATIOS: tuple[str, ...] = ("1:1", "16:9", "9:16")
DEFAULT_ASPECT_RATIO = "1:1"

MIN_BATCH_SIZE = 1
MAX_BATCH_SIZE = 4
DEFAULT_BATCH_SIZE = 1

MIN_SAFETY_THRESHOLD = 0.0
MAX_SAFETY_THRESHOLD = 1.0
DEFAULT_SAFETY_THRESHOLD = 0.5

# Seconds.  The server bounds are authoritative; the form slider is narrower.
MIN_TIMEOUT = 5
MAX_TIMEOUT = 300
DEFAULT_TIMEOUT = 60

_TRUTHY = {"1", "true", "yes", "on"}
_DATA_URL = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[\w=.+-]+)*;base64,", re.IGNORECASE)


def to_number(value: Any) -> float | None:
    """Interpret *value* as a finite number.

    Accepts ints, floats and numeric strings.  Booleans are rejected even
    though ``bool`` subclasses ``int``: a checkbox value is never a count.

    Returns:
        The value as a float, or ``None`` if it is not a finite number.
    """
    if isinstance(value, bool) or value is None:
        return None
    if not isinstance(value, (int, float, str)):
        return None
    try:
        number = float(value.strip() if isinstance(value, str) else value)
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _round_half_up(number: float) -> int:
    # Matches the browser's Math.round, which rounds .5 towards +inf.
    return math.floor(number + 0.5)


def clamp_int(value: Any, lower: int, upper: int, default: int) -> int:
    """Round *value* to an integer and clamp it to ``[lower, upper]``.

    Non-numeric input yields *default*.
    """
    number = to_number(value)
    if number is None:
        return default
    return max(lower, min(upper, _round_half_up(number)))


def clamp_float(value: Any, lower: float, upper: float, default: float) -> float:
    """Clamp *value* to ``[lower, upper]``; non-numeric input yields *default*."""
    number = to_number(value)
    if number is None:
        return default
    return max(lower, min(upper, number))


def normalize_aspect_ratio(value: Any) -> str:
    """Return *value* if it is a supported aspect ratio, else the default."""
    if isinstance(value, str) and value.strip() in ASPECT_RATIOS:
        return value.strip()
    return DEFAULT_ASPECT_RATIO


def parse_seed(value: Any) -> int | None:
    """Return the seed as an integer, or ``None`` when it should be omitted."""
    number = to_number(value)
    if number is None:
        return None
    return int(number)


def parse_flag(value: Any) -> bool:
    """Interpret checkbox-style input as a boolean."""
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in _TRUTHY
    number = to_number(value)
    return bool(number) if number is not None else False


def split_data_url(data: str) -> tuple[str, str | None]:
    """Strip a ``data:<mime>;base64,`` prefix from *data*.

    Returns:
        Tuple of ``(base64_payload, mime_type)``.  ``mime_type`` is ``None``
        when *data* carried no prefix.
    """
    match = _DATA_URL.match(data)
    if not match:
        return data, None
    return data[match.end() :], match.group("mime")
