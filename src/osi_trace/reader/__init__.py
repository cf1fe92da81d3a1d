from __future__ import annotations

from pathlib import Path

from osi_trace.config import MCAP_EXTENSION, OSI_EXTENSION, TXTH_EXTENSION
from osi_trace.exceptions import UnsupportedFormatError
from osi_trace.reader.base import ReadResult, TraceFileReader
from osi_trace.reader.binary import SingleChannelBinaryTraceFileReader
from osi_trace.reader.mcap import MCAPTraceFileReader
from osi_trace.reader.txth import TXTHTraceFileReader

READERS: dict[str, type[TraceFileReader]] = {
    OSI_EXTENSION: SingleChannelBinaryTraceFileReader,
    TXTH_EXTENSION: TXTHTraceFileReader,
    MCAP_EXTENSION: MCAPTraceFileReader,
}


def create_reader(path: str | Path) -> TraceFileReader:
    """Return an unopened reader matching the extension of ``path``.

    Raises ``UnsupportedFormatError`` for a missing or unknown extension.
    """
    reader_cls = READERS.get(Path(path).suffix)
    if reader_cls is None:
        raise UnsupportedFormatError(path)
    return reader_cls()


__all__ = [
    "READERS",
    "MCAPTraceFileReader",
    "ReadResult",
    "SingleChannelBinaryTraceFileReader",
    "TXTHTraceFileReader",
    "TraceFileReader",
    "create_reader",
]
