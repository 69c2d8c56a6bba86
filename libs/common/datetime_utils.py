"""Timezone-aware UTC timestamps and time-ordered reference numbers."""

import random
import string
from datetime import datetime, timezone

_REFERENCE_ALPHABET = string.ascii_uppercase + string.digits


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def reference_number(prefix: str, suffix_length: int = 5) -> str:
    """Human-facing reference like ``ORD-1718000000000-A1B2C``.

    Milliseconds since the epoch keep references roughly sortable; the random
    suffix separates references minted in the same millisecond.
    """
    millis = int(utc_now().timestamp() * 1000)
    suffix = "".join(random.choices(_REFERENCE_ALPHABET, k=suffix_length))
    return f"{prefix}-{millis}-{suffix}"
