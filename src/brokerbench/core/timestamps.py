"""Wall-clock helpers and the embedded emission-timestamp header codec."""

import struct
import time
from datetime import datetime, timezone
from typing import Optional

TIMESTAMP_HEADER = "x-ts-ms"

# 64-bit signed little-endian epoch milliseconds; producer and consumer must agree.
_TIMESTAMP_FORMAT = "<q"
TIMESTAMP_HEADER_SIZE = struct.calcsize(_TIMESTAMP_FORMAT)


def epoch_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return time.time_ns() // 1_000_000


def utc_iso_now() -> str:
    """Current UTC time as an ISO-8601 string."""
    return datetime.now(timezone.utc).isoformat()


def encode_timestamp_header(emitted_ms: int) -> bytes:
    """Encode an epoch-millisecond value as the 8-byte header value."""
    return struct.pack(_TIMESTAMP_FORMAT, emitted_ms)


def decode_timestamp_header(value: Optional[bytes]) -> Optional[int]:
    """Decode an 8-byte header value.

    Returns None when the value is missing or is not exactly 8 bytes long.
    """
    if value is None or len(value) != TIMESTAMP_HEADER_SIZE:
        return None
    return struct.unpack(_TIMESTAMP_FORMAT, bytes(value))[0]
