from __future__ import annotations

import logging
import sys
from collections.abc import Iterable, Iterator
from io import BufferedReader
from pathlib import Path

from small_mcap import (
    MAGIC,
    MAGIC_SIZE,
    Channel,
    McapError,
    Metadata,
    Schema,
    get_header,
    include_topics,
    read_message,
    stream_reader,
)
from small_mcap import Message as McapMessage

from osi_trace.config import MCAP_EXTENSION, OSI_TYPE_PREFIX, PROTOBUF_ENCODING
from osi_trace.exceptions import UnsupportedMessageTypeError
from osi_trace.message_types import get_message_type, message_type_from_type_name
from osi_trace.reader.base import ReadResult, TraceFileReader, check_trace_file

logger = logging.getLogger(__name__)

_McapEntry = tuple[Schema | None, Channel, McapMessage]


def is_osi_schema(schema: Schema | None) -> bool:
    return (
        schema is not None
        and schema.encoding == PROTOBUF_ENCODING
        and schema.name.startswith(OSI_TYPE_PREFIX)
    )


class MCAPTraceFileReader(TraceFileReader):
    """Reader for multi-channel ``.mcap`` trace files.

    Messages are returned in log time order together with the topic they were recorded on.
    Messages that are not OSI protobuf messages either raise ``UnsupportedMessageTypeError`` or are
    skipped silently, see ``set_skip_non_osi_messages``.
    """

    def __init__(self) -> None:
        self._path: Path | None = None
        self._file: BufferedReader | None = None
        self._messages: Iterator[_McapEntry] | None = None
        self._pending: _McapEntry | None = None
        self.skip_non_osi_messages = False

    def set_skip_non_osi_messages(self, skip: bool) -> None:
        self.skip_non_osi_messages = skip

    def open(
        self,
        path: str | Path,
        start_time_ns: int | None = None,
        end_time_ns: int | None = None,
        topics: str | Iterable[str] | None = None,
    ) -> bool:
        """Open an MCAP file for reading.

        Parameters
        ----------
        path
            File to read, must end in ``.mcap``.
        start_time_ns
            Only return messages logged at or after this time.
        end_time_ns
            Only return messages logged before this time.
        topics
            Only return messages of these topics.
        """
        path = Path(path)
        if self._file is not None:
            logger.error(f"Opening file '{path}', reader has already a file opened.")
            return False
        if not check_trace_file(path, MCAP_EXTENSION):
            return False

        try:
            f = path.open("rb")
        except OSError as e:
            logger.error(f"Opening file '{path}': {e}")
            return False

        if f.read(MAGIC_SIZE) != MAGIC:
            f.close()
            logger.error(f"Opening file '{path}': not a valid MCAP file (invalid magic)")
            return False
        try:
            get_header(f)
        except McapError as e:
            f.close()
            logger.error(f"Opening file '{path}': not a valid MCAP file ({e!r})")
            return False
        f.seek(0)

        self._path = path
        self._file = f
        self._messages = iter(
            read_message(
                f,
                should_include=include_topics(topics) if topics is not None else lambda _c, _s: True,
                start_time_ns=start_time_ns if start_time_ns is not None else 0,
                end_time_ns=end_time_ns if end_time_ns is not None else sys.maxsize,
            )
        )
        self._pending = None
        return True

    def _peek(self) -> _McapEntry | None:
        if self._pending is None and self._messages is not None:
            self._pending = next(self._messages, None)
        return self._pending

    def has_next(self) -> bool:
        if self._file is None:
            return False
        entry = self._peek()
        while entry is not None and self.skip_non_osi_messages and not is_osi_schema(entry[0]):
            logger.debug(f"Skipping non-OSI message on topic '{entry[1].topic}'")
            self._pending = None
            entry = self._peek()
        return entry is not None

    def read_message(self) -> ReadResult | None:
        if not self.has_next():
            logger.error(
                "Unable to read message: no more messages available in trace file "
                "or file not opened."
            )
            return None

        entry = self._pending
        assert entry is not None
        self._pending = None
        schema, channel, message = entry

        if not is_osi_schema(schema):
            name = schema.name if schema is not None else "<no schema>"
            encoding = schema.encoding if schema is not None else ""
            raise UnsupportedMessageTypeError(name, encoding)

        assert schema is not None
        kind = message_type_from_type_name(schema.name)
        if kind is None:
            raise UnsupportedMessageTypeError(schema.name, schema.encoding)

        return ReadResult(
            message=get_message_type(kind).parse(bytes(message.data)),
            message_type=kind,
            channel_name=channel.topic,
        )

    def metadata(self) -> dict[str, dict[str, str]]:
        """Return the metadata records of the open file by name."""
        if self._path is None:
            logger.error("Unable to read metadata: trace file is not opened.")
            return {}
        records: dict[str, dict[str, str]] = {}
        with self._path.open("rb") as f:
            for record in stream_reader(f):
                if isinstance(record, Metadata):
                    records[record.name] = dict(record.metadata)
        return records

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
        self._file = None
        self._path = None
        self._messages = None
        self._pending = None
