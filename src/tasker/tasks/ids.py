"""Time-ordered task identifiers (UUID version 7)."""

import secrets
import time
import uuid

_RAND_A_BITS = 12
_RAND_B_BITS = 62


def new_task_id(timestamp_ms: int | None = None) -> str:
    """Generate a UUIDv7 string.

    The leading 48 bits are the Unix timestamp in milliseconds, so ids sort by
    creation time; the remaining 74 bits are random.
    """
    if timestamp_ms is None:
        timestamp_ms = time.time_ns() // 1_000_000

    rand_a = secrets.randbits(_RAND_A_BITS)
    rand_b = secrets.randbits(_RAND_B_BITS)

    value = (timestamp_ms & 0xFFFF_FFFF_FFFF) << 80
    value |= 0x7 << 76  # version
    value |= rand_a << 64
    value |= 0b10 << 62  # RFC 4122 variant
    value |= rand_b
    return str(uuid.UUID(int=value))
