from __future__ import annotations

import logging
import struct
from io import BufferedReader
from pathlib import Path

from osi_trace.config import (
    BINARY_LENGTH_PREFIX_SIZE,
    MAX_EXPECTED_MESSAGE_SIZE,
    OSI_EXTENSION,
)
from osi_trace.exceptions import InvalidMessageSizeError, TruncatedMessageError
from osi_trace.message_types import (
    MessageTypeInfo,
    TopLevelMessage,
    get_message_type,
)
from osi_trace.reader.base import (
    ReadResult,
    TraceFileReader,
    check_trace_file,
    resolve_message_type,
)

logger = logging.getLogger(__name__)

LENGTH_PREFIX = struct.Struct("<I")


class SingleChannelBinaryTraceFileReader(TraceFileReader):
    """Reader for ``.osi`` files: ``[u32 little-endian length][payload]`` repeated until EOF."""

    def __init__(self) -> None:
        self._file: BufferedReader | None = None
        self._message_type = TopLevelMessage.UNKNOWN
        self._info: MessageTypeInfo | None = None

    @property
    def message_type(self) -> TopLevelMessage:
        return self._message_type

    def open(
        self,
        path: str | Path,
        message_type: TopLevelMessage = TopLevelMessage.UNKNOWN,
    ) -> bool:
        path = Path(path)
        if self._file is not None:
            logger.error(f"Opening file '{path}', reader has already a file opened.")
            return False
        if not check_trace_file(path, OSI_EXTENSION):
            return False

        resolved = resolve_message_type(path, message_type)
        if resolved == TopLevelMessage.UNKNOWN:
            return False

        try:
            self._file = path.open("rb")
        except OSError as e:
            logger.error(f"Opening file '{path}': {e}")
            return False

        self._message_type = resolved
        self._info = get_message_type(resolved)
        return True

    def has_next(self) -> bool:
        return self._file is not None and self._file.peek(1) != b""

    def read_message(self) -> ReadResult | None:
        if self._file is None or self._info is None:
            logger.error("Unable to read message: trace file is not opened.")
            return None

        prefix = self._file.read(BINARY_LENGTH_PREFIX_SIZE)
        if not prefix:
            logger.error("Unable to read message: no more messages available in trace file.")
            return None
        if len(prefix) < BINARY_LENGTH_PREFIX_SIZE:
            raise TruncatedMessageError("message size", BINARY_LENGTH_PREFIX_SIZE, len(prefix))

        (size,) = LENGTH_PREFIX.unpack(prefix)
        if size == 0 or size > MAX_EXPECTED_MESSAGE_SIZE:
            raise InvalidMessageSizeError(size, MAX_EXPECTED_MESSAGE_SIZE)

        data = self._file.read(size)
        if len(data) != size:
            raise TruncatedMessageError("message", size, len(data))

        return ReadResult(message=self._info.parse(data), message_type=self._message_type)

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
