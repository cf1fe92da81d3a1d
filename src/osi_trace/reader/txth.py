from __future__ import annotations

import logging
from io import BufferedReader
from pathlib import Path

from osi_trace.config import TXTH_EXTENSION
from osi_trace.exceptions import MessageDecodeError
from osi_trace.message_types import MessageTypeInfo, TopLevelMessage, get_message_type
from osi_trace.reader.base import (
    ReadResult,
    TraceFileReader,
    check_trace_file,
    resolve_message_type,
)

logger = logging.getLogger(__name__)


def _strip_newline(line: bytes) -> bytes:
    return line.rstrip(b"\r\n")


class TXTHTraceFileReader(TraceFileReader):
    """Reader for ``.txth`` files holding concatenated protobuf text format messages.

    There is no explicit separator between messages. The first line of the file is taken as the
    marker of a new message, so every message of a trace must start with the same line and no
    message may repeat that line inside its body.
    """

    def __init__(self) -> None:
        self._file: BufferedReader | None = None
        self._message_type = TopLevelMessage.UNKNOWN
        self._info: MessageTypeInfo | None = None
        self._message_start_line = b""

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
        if not check_trace_file(path, TXTH_EXTENSION):
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
        self._message_start_line = _strip_newline(self._file.readline())
        self._file.seek(0)
        return True

    def has_next(self) -> bool:
        return self._file is not None and self._file.peek(1) != b""

    def read_message(self) -> ReadResult | None:
        if not self.has_next() or self._info is None:
            logger.error(
                "Unable to read message: no more messages available in trace file "
                "or file not opened."
            )
            return None

        text = self._read_next_message_text()
        if not text:
            return None
        return ReadResult(message=self._info.parse_text(text), message_type=self._message_type)

    def _read_next_message_text(self) -> str:
        assert self._file is not None
        lines = [_strip_newline(self._file.readline())]
        while True:
            position = self._file.tell()
            line = self._file.readline()
            if not line:
                break
            line = _strip_newline(line)
            if line == self._message_start_line:
                # leave the start of the next message for the next read
                self._file.seek(position)
                break
            lines.append(line)
        try:
            return b"\n".join(lines).decode("utf-8")
        except UnicodeDecodeError as e:
            raise MessageDecodeError(f"invalid UTF-8 in text message: {e}") from e

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
