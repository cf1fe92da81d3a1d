from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from io import BufferedWriter
from pathlib import Path

from google.protobuf import __version__ as protobuf_version
from google.protobuf.descriptor import Descriptor
from google.protobuf.message import Message
from small_mcap import CompressionType, McapWriter

from osi_trace import __version__
from osi_trace.config import (
    CHANNEL_OSI_VERSION_KEY,
    CHANNEL_PROTOBUF_VERSION_KEY,
    DEFAULT_CHUNK_SIZE,
    MCAP_EXTENSION,
    NANOSECONDS_PER_SECOND,
    PROTOBUF_ENCODING,
    REQUIRED_TRACE_METADATA_FIELDS,
    TRACE_FILE_SPEC_VERSION,
    TRACE_METADATA_NAME,
)
from osi_trace.exceptions import ChannelConflictError, MissingTraceMetadataError
from osi_trace.message_types import TopLevelMessage, get_message_type
from osi_trace.schema import OSI_VERSION, build_file_descriptor_set
from osi_trace.writer.base import TraceFileWriter, check_output_extension, top_level_message_type

logger = logging.getLogger(__name__)

DEFAULT_LIBRARY = f"osi-trace {__version__}"


def current_time_as_string() -> str:
    """Current UTC time as ``YYYY-MM-DDTHH:MM:SS.dZ`` with tenths of a second."""
    now = datetime.now(timezone.utc)
    return f"{now:%Y-%m-%dT%H:%M:%S}.{now.microsecond // 100_000}Z"


def prepare_required_file_metadata() -> dict[str, str]:
    """Entries of the ``net.asam.osi.trace`` record every OSI MCAP file has to carry."""
    return {
        "version": TRACE_FILE_SPEC_VERSION,
        "min_osi_version": OSI_VERSION,
        "max_osi_version": OSI_VERSION,
        "min_protobuf_version": protobuf_version,
        "max_protobuf_version": protobuf_version,
    }


def message_log_time(message: Message) -> int:
    """Nanosecond log time of a top-level message taken from its ``timestamp`` field.

    Messages without a ``timestamp`` field are logged at 0.
    """
    if "timestamp" not in message.DESCRIPTOR.fields_by_name:
        return 0
    timestamp = message.timestamp
    return timestamp.seconds * NANOSECONDS_PER_SECOND + timestamp.nanos


class MCAPTraceFileWriter(TraceFileWriter):
    """Writer for multi-channel ``.mcap`` trace files.

    The ``net.asam.osi.trace`` metadata record has to be added once before the first message is
    written, see ``prepare_required_file_metadata``. Each topic is bound to one OSI message type.
    """

    def __init__(self) -> None:
        self._file: BufferedWriter | None = None
        self._writer: McapWriter | None = None
        self._required_metadata_added = False
        self._schema_ids: dict[str, int] = {}
        self._topics: dict[str, tuple[int, str]] = {}

    @staticmethod
    def prepare_required_file_metadata() -> dict[str, str]:
        return prepare_required_file_metadata()

    @staticmethod
    def current_time_as_string() -> str:
        return current_time_as_string()

    def open(
        self,
        path: str | Path,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        compression: CompressionType = CompressionType.ZSTD,
        library: str = DEFAULT_LIBRARY,
    ) -> bool:
        path = Path(path)
        if self._file is not None:
            logger.error(f"Opening file '{path}', writer has already a file opened.")
            return False
        if not check_output_extension(path, MCAP_EXTENSION):
            return False
        try:
            self._file = path.open("wb")
        except OSError as e:
            logger.error(f"Opening file '{path}': {e}")
            return False

        self._writer = McapWriter(self._file, chunk_size=chunk_size, compression=compression)
        self._writer.start(profile="", library=library)
        self._required_metadata_added = False
        self._schema_ids.clear()
        self._topics.clear()
        logger.debug(
            f"Opened '{path}' (chunk size {chunk_size}, compression {compression.name.lower()})"
        )
        return True

    def add_file_metadata(self, name: str, entries: Mapping[str, str]) -> bool:
        """Write a metadata record.

        The ``net.asam.osi.trace`` record is validated for its required keys and may only be added
        once.
        """
        if self._writer is None:
            logger.error(f"Cannot add metadata '{name}', file is not open.")
            return False

        if name == TRACE_METADATA_NAME:
            if self._required_metadata_added:
                logger.error(f"Cannot add {TRACE_METADATA_NAME} metadata record, it was already added.")
                return False
            missing = [key for key in REQUIRED_TRACE_METADATA_FIELDS if key not in entries]
            if missing:
                logger.error(
                    f"Cannot add {TRACE_METADATA_NAME} metadata record without "
                    f"{', '.join(missing)} field(s)."
                )
                return False

        self._writer.add_metadata(name, dict(entries))
        if name == TRACE_METADATA_NAME:
            self._required_metadata_added = True
        return True

    def add_channel(
        self,
        topic: str,
        message_type: TopLevelMessage | Descriptor,
        channel_metadata: Mapping[str, str] | None = None,
    ) -> int:
        """Register ``topic`` for messages of ``message_type`` and return its channel id.

        Registering a topic again with the same type returns the existing id. Registering it with
        another type raises ``ChannelConflictError``.
        """
        if self._writer is None:
            raise RuntimeError(f"Cannot add channel '{topic}', file is not open.")

        descriptor = (
            get_message_type(message_type).descriptor
            if isinstance(message_type, TopLevelMessage)
            else message_type
        )
        type_name = descriptor.full_name

        existing = self._topics.get(topic)
        if existing is not None:
            channel_id, existing_type_name = existing
            if existing_type_name != type_name:
                raise ChannelConflictError(topic, existing_type_name, type_name)
            logger.warning(
                f"Topic '{topic}' already exists with message type {type_name}, "
                f"returning channel id {channel_id}"
            )
            return channel_id

        schema_id = self._schema_ids.get(type_name)
        if schema_id is None:
            schema_id = len(self._schema_ids) + 1
            self._writer.add_schema(
                schema_id=schema_id,
                name=type_name,
                encoding=PROTOBUF_ENCODING,
                data=build_file_descriptor_set(descriptor),
            )
            self._schema_ids[type_name] = schema_id

        metadata = dict(channel_metadata or {})
        metadata.setdefault(CHANNEL_OSI_VERSION_KEY, OSI_VERSION)
        metadata.setdefault(CHANNEL_PROTOBUF_VERSION_KEY, protobuf_version)

        channel_id = len(self._topics) + 1
        self._writer.add_channel(
            channel_id=channel_id,
            topic=topic,
            message_encoding=PROTOBUF_ENCODING,
            schema_id=schema_id,
            metadata=metadata,
        )
        self._topics[topic] = (channel_id, type_name)
        logger.debug(f"Added channel {channel_id} '{topic}' ({type_name})")
        return channel_id

    def write_message(self, message: Message, topic: str) -> bool:
        if not topic:
            logger.error("Cannot write message, topic is empty.")
            return False
        if self._writer is None:
            logger.error("Cannot write message, file is not open.")
            return False
        if not self._required_metadata_added:
            raise MissingTraceMetadataError(TRACE_METADATA_NAME)

        channel = self._topics.get(topic)
        if channel is None:
            logger.error(f"Cannot write message, topic '{topic}' not found.")
            return False
        channel_id, type_name = channel

        info = top_level_message_type(message)
        if info is None:
            return False
        if info.type_name != type_name:
            logger.error(
                f"Cannot write {info.type_name} to topic '{topic}', "
                f"the topic was registered for {type_name}."
            )
            return False

        log_time = message_log_time(message)
        self._writer.add_message(
            channel_id=channel_id,
            log_time=log_time,
            data=message.SerializeToString(),
            publish_time=log_time,
        )
        return True

    def close(self) -> None:
        try:
            if self._writer is not None:
                writer, self._writer = self._writer, None
                writer.finish()
        finally:
            if self._file is not None:
                self._file.close()
                self._file = None
