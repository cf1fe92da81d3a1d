from __future__ import annotations

import logging
import struct
from io import BufferedWriter
from pathlib import Path

from google.protobuf.message import EncodeError, Message

from osi_trace.config import MAX_ENCODABLE_MESSAGE_SIZE, OSI_EXTENSION
from osi_trace.writer.base import TraceFileWriter, check_output_extension, top_level_message_type

logger = logging.getLogger(__name__)

LENGTH_PREFIX = struct.Struct("<I")


class SingleChannelBinaryTraceFileWriter(TraceFileWriter):
    """Writer for ``.osi`` files, each message stored as ``[u32 little-endian length][payload]``."""

    def __init__(self) -> None:
        self._file: BufferedWriter | None = None

    def open(self, path: str | Path) -> bool:
        path = Path(path)
        if not check_output_extension(path, OSI_EXTENSION):
            return False
        if self._file is not None:
            logger.error(f"Opening file '{path}', writer has already a file opened.")
            return False
        try:
            self._file = path.open("wb")
        except OSError as e:
            logger.error(f"Opening file '{path}': {e}")
            return False
        return True

    def write_message(self, message: Message) -> bool:
        if self._file is None:
            logger.error("Cannot write message, file is not open.")
            return False
        if top_level_message_type(message) is None:
            return False

        try:
            data = message.SerializeToString()
        except EncodeError as e:
            logger.error(f"Failed to serialize {message.DESCRIPTOR.full_name}: {e}")
            return False
        if len(data) > MAX_ENCODABLE_MESSAGE_SIZE:
            logger.error(
                f"Cannot write message of {len(data)} bytes, the length prefix is limited to "
                f"{MAX_ENCODABLE_MESSAGE_SIZE} bytes."
            )
            return False

        try:
            self._file.write(LENGTH_PREFIX.pack(len(data)))
            self._file.write(data)
        except OSError as e:
            logger.error(f"Failed to write message: {e}")
            return False
        return True

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
