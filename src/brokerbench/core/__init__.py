"""Core clock and header utilities."""

from .timestamps import (
    TIMESTAMP_HEADER,
    TIMESTAMP_HEADER_SIZE,
    decode_timestamp_header,
    encode_timestamp_header,
    epoch_ms,
    utc_iso_now,
)

__all__ = [
    "TIMESTAMP_HEADER",
    "TIMESTAMP_HEADER_SIZE",
    "decode_timestamp_header",
    "encode_timestamp_header",
    "epoch_ms",
    "utc_iso_now",
]
