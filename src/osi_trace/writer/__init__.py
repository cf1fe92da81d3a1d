from __future__ import annotations

from pathlib import Path

from osi_trace.config import MCAP_EXTENSION, OSI_EXTENSION, TXTH_EXTENSION
from osi_trace.exceptions import UnsupportedFormatError
from osi_trace.writer.base import TraceFileWriter
from osi_trace.writer.binary import SingleChannelBinaryTraceFileWriter
from osi_trace.writer.mcap import (
    MCAPTraceFileWriter,
    current_time_as_string,
    prepare_required_file_metadata,
)
from osi_trace.writer.txth import TXTHTraceFileWriter

WRITERS: dict[str, type[TraceFileWriter]] = {
    OSI_EXTENSION: SingleChannelBinaryTraceFileWriter,
    TXTH_EXTENSION: TXTHTraceFileWriter,
    MCAP_EXTENSION: MCAPTraceFileWriter,
}


def create_writer(path: str | Path) -> TraceFileWriter:
    """Return an unopened writer matching the extension of ``path``.

    Raises ``UnsupportedFormatError`` for a missing or unknown extension.
    """
    writer_cls = WRITERS.get(Path(path).suffix)
    if writer_cls is None:
        raise UnsupportedFormatError(path)
    return writer_cls()


__all__ = [
    "WRITERS",
    "MCAPTraceFileWriter",
    "SingleChannelBinaryTraceFileWriter",
    "TXTHTraceFileWriter",
    "TraceFileWriter",
    "create_writer",
    "current_time_as_string",
    "prepare_required_file_metadata",
]
