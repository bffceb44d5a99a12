"""
Primary key generators compared by the benchmark.

Each generator is a zero-argument callable returning a fresh ``uuid.UUID``.
"""

import os
import time
import uuid
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import uuid6

from errors import ConfigurationError

KeyGenerator = Callable[[], uuid.UUID]

_UNIX_TS_MS_MASK = (1 << 48) - 1
_RAND_B_MASK = (1 << 62) - 1
_SUB_MS_STEPS = 4096


def uuid7_submillisecond(timestamp_ns: Optional[int] = None) -> uuid.UUID:
    """
    Build a UUIDv7 whose 12-bit rand_a field carries the sub-millisecond
    fraction of the timestamp (RFC 9562, section 6.2, method 3).

    Keys generated within the same millisecond therefore still sort in
    creation order, which keeps B-tree inserts on the right-most leaf.

    Args:
        timestamp_ns: Unix time in nanoseconds (default: now)
    """
    if timestamp_ns is None:
        timestamp_ns = time.time_ns()

    unix_ms, remainder_ns = divmod(timestamp_ns, 1_000_000)
    sub_ms = remainder_ns * _SUB_MS_STEPS // 1_000_000
    rand_b = int.from_bytes(os.urandom(8), "big") & _RAND_B_MASK

    value = (unix_ms & _UNIX_TS_MS_MASK) << 80
    value |= 0x7 << 76
    value |= sub_ms << 64
    value |= 0b10 << 62
    value |= rand_b
    return uuid.UUID(int=value)


KEY_GENERATORS: Dict[str, KeyGenerator] = {
    "uuid4": uuid.uuid4,
    "uuid7-submillisecond": uuid7_submillisecond,
    "uuid7": uuid6.uuid7,
    "uuid6": uuid6.uuid6,
}

DEFAULT_VARIANTS = ("uuid4", "uuid7-submillisecond", "uuid7")


def resolve_variants(names: Iterable[str]) -> List[Tuple[str, KeyGenerator]]:
    """Map variant names to (name, generator) pairs, preserving order."""
    variants = []
    seen = set()
    for name in names:
        if name not in KEY_GENERATORS:
            known = ", ".join(sorted(KEY_GENERATORS))
            raise ConfigurationError(f"Unknown key generator {name!r} (known: {known})")
        if name in seen:
            raise ConfigurationError(f"Key generator {name!r} listed twice")
        seen.add(name)
        variants.append((name, KEY_GENERATORS[name]))

    if not variants:
        raise ConfigurationError("At least one key generator is required")
    return variants
