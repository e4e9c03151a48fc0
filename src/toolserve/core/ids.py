"""Ordering-stable opaque identifiers.

``ascending("part")`` returns IDs that sort in creation order within a
process, e.g. ``prt_0192f3c1a2b4001Xk3...``.
"""

from __future__ import annotations

import secrets
import string
import threading
import time

_PREFIXES: dict[str, str] = {
    "session": "ses",
    "message": "msg",
    "part": "prt",
    "call": "call",
}

_ALPHABET = string.digits + string.ascii_letters
_RANDOM_LENGTH = 14

_lock = threading.Lock()
_last_value = 0


def _random_suffix(length: int) -> str:
    return "".join(secrets.choice(_ALPHABET) for _ in range(length))


def ascending(kind: str) -> str:
    """Return a new ID for *kind* that sorts after every earlier one.

    Raises:
        ValueError: If *kind* is not a known identifier kind.
    """
    global _last_value

    prefix = _PREFIXES.get(kind)
    if prefix is None:
        msg = f"Unknown identifier kind: {kind}"
        raise ValueError(msg)

    with _lock:
        now_ms = time.time_ns() // 1_000_000
        # Monotonic even if the clock steps back or one millisecond
        # sees more than 0x1000 IDs.
        value = max(now_ms * 0x1000, _last_value + 1)
        _last_value = value

    return f"{prefix}_{value:012x}{_random_suffix(_RANDOM_LENGTH)}"
