"""Minimal protobuf wire format walker.

Only what is needed to pull the ``timestamp`` out of a serialized top-level OSI message without
running the full protobuf parser over every frame of a large trace.
"""

from __future__ import annotations

from osi_trace.config import NANOSECONDS_PER_SECOND

WIRETYPE_VARINT = 0
WIRETYPE_FIXED64 = 1
WIRETYPE_LENGTH_DELIMITED = 2
WIRETYPE_FIXED32 = 5

# Field numbers of the timestamp submessage in top-level messages.
# HostVehicleData is the only kind that keeps it in field 10.
TIMESTAMP_FIELD = 2
HOST_VEHICLE_DATA_TIMESTAMP_FIELD = 10
TIMESTAMP_FIELDS = frozenset({TIMESTAMP_FIELD, HOST_VEHICLE_DATA_TIMESTAMP_FIELD})

_SECONDS_FIELD = 1
_NANOS_FIELD = 2

# Smallest top-level message holding a timestamp: tag, length, then a tag and one varint byte
# for both seconds and nanos.
MIN_TIMESTAMPED_MESSAGE_SIZE = 6

_MAX_VARINT_BYTES = 10


class WireFormatError(ValueError):
    pass


def read_varint(data: bytes | memoryview, pos: int) -> tuple[int, int]:
    """Decode an unsigned base-128 varint starting at ``pos``.

    Returns the value and the position just past it. Raises ``WireFormatError`` when the buffer ends
    before the varint does or the varint is longer than ten bytes.
    """
    result = 0
    shift = 0
    end = len(data)
    for _ in range(_MAX_VARINT_BYTES):
        if pos >= end:
            raise WireFormatError("truncated varint")
        byte = data[pos]
        pos += 1
        result |= (byte & 0x7F) << shift
        if not byte & 0x80:
            return result & 0xFFFFFFFFFFFFFFFF, pos
        shift += 7
    raise WireFormatError("varint exceeds 10 bytes")


def _to_int64(value: int) -> int:
    return value - (1 << 64) if value & (1 << 63) else value


def skip_field(data: bytes | memoryview, pos: int, wire_type: int) -> int:
    """Return the position just past a field value of ``wire_type`` starting at ``pos``."""
    if wire_type == WIRETYPE_VARINT:
        _, pos = read_varint(data, pos)
    elif wire_type == WIRETYPE_FIXED64:
        pos += 8
    elif wire_type == WIRETYPE_LENGTH_DELIMITED:
        length, pos = read_varint(data, pos)
        pos += length
    elif wire_type == WIRETYPE_FIXED32:
        pos += 4
    else:
        raise WireFormatError(f"unsupported wire type {wire_type}")
    if pos > len(data):
        raise WireFormatError("field runs past end of buffer")
    return pos


def parse_timestamp(data: bytes | memoryview) -> int | None:
    """Decode an ``osi3.Timestamp`` payload into nanoseconds.

    Returns ``None`` when neither field is present, ``nanos`` is out of range or ``seconds`` is
    negative.
    """
    seconds: int | None = None
    nanos: int | None = None
    pos = 0
    end = len(data)
    while pos < end:
        tag, pos = read_varint(data, pos)
        field_number, wire_type = tag >> 3, tag & 0x7
        if field_number == _SECONDS_FIELD and wire_type == WIRETYPE_VARINT:
            value, pos = read_varint(data, pos)
            seconds = _to_int64(value)
        elif field_number == _NANOS_FIELD and wire_type == WIRETYPE_VARINT:
            value, pos = read_varint(data, pos)
            nanos = value & 0xFFFFFFFF
        else:
            pos = skip_field(data, pos, wire_type)

    if seconds is None and nanos is None:
        return None
    seconds = seconds or 0
    nanos = nanos or 0
    if nanos >= NANOSECONDS_PER_SECOND or seconds < 0:
        return None
    return seconds * NANOSECONDS_PER_SECOND + nanos


def extract_timestamp_ns(data: bytes | memoryview) -> int | None:
    """Extract the timestamp of a serialized top-level OSI message in nanoseconds.

    Returns ``None`` instead of raising when the buffer is malformed or carries no usable timestamp.
    """
    if len(data) < MIN_TIMESTAMPED_MESSAGE_SIZE:
        return None
    view = memoryview(data)
    pos = 0
    end = len(view)
    try:
        while pos < end:
            tag, pos = read_varint(view, pos)
            field_number, wire_type = tag >> 3, tag & 0x7
            if field_number in TIMESTAMP_FIELDS and wire_type == WIRETYPE_LENGTH_DELIMITED:
                length, pos = read_varint(view, pos)
                if pos + length > end:
                    return None
                try:
                    timestamp = parse_timestamp(view[pos : pos + length])
                except WireFormatError:
                    timestamp = None
                if timestamp is not None:
                    return timestamp
                # a field 2 that is not a timestamp, e.g. HostVehicleData.location_rmse
                pos += length
                continue
            pos = skip_field(view, pos, wire_type)
    except WireFormatError:
        return None
    return None
