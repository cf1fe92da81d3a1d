from __future__ import annotations

import logging
from pathlib import Path
from typing import TextIO

from google.protobuf.message import Message

from osi_trace.config import TXTH_EXTENSION
from osi_trace.writer.base import TraceFileWriter, check_output_extension, top_level_message_type

logger = logging.getLogger(__name__)


class TXTHTraceFileWriter(TraceFileWriter):
    """Writer for ``.txth`` files, messages are appended in protobuf text format without separators."""

    def __init__(self) -> None:
        self._file: TextIO | None = None

    def open(self, path: str | Path) -> bool:
        path = Path(path)
        if not check_output_extension(path, TXTH_EXTENSION):
            return False
        if self._file is not None:
            logger.error(f"Opening file '{path}', writer has already a file opened.")
            return False
        try:
            self._file = path.open("w", encoding="utf-8", newline="\n")
        except OSError as e:
            logger.error(f"Opening file '{path}': {e}")
            return False
        return True

    def write_message(self, message: Message) -> bool:
        if self._file is None:
            logger.error("Cannot write message, file is not open.")
            return False
        info = top_level_message_type(message)
        if info is None:
            return False

        try:
            self._file.write(info.print_text(message))
        except OSError as e:
            logger.error(f"Failed to write message: {e}")
            return False
        return True

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
