"""Conversion between trace file formats."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from google.protobuf.message import Message
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from small_mcap import CompressionType

from osi_trace import schema
from osi_trace.config import DEFAULT_CHUNK_SIZE, TRACE_METADATA_NAME
from osi_trace.exceptions import TraceFileError
from osi_trace.message_types import TopLevelMessage, message_type_of
from osi_trace.reader import MCAPTraceFileReader, TraceFileReader, create_reader
from osi_trace.utils import zero_time_from_filename
from osi_trace.writer import (
    MCAPTraceFileWriter,
    SingleChannelBinaryTraceFileWriter,
    TraceFileWriter,
    TXTHTraceFileWriter,
    create_writer,
    current_time_as_string,
    prepare_required_file_metadata,
)

logger = logging.getLogger(__name__)

DEFAULT_TOPIC = "ConvertedTrace"

MessageTransform = Callable[[Message], Message | None]


@dataclass(slots=True)
class ConvertOptions:
    message_type: TopLevelMessage = TopLevelMessage.UNKNOWN
    topic: str = DEFAULT_TOPIC
    chunk_size: int = DEFAULT_CHUNK_SIZE
    compression: CompressionType = CompressionType.ZSTD
    skip_non_osi_messages: bool = True
    show_progress: bool = False


@dataclass(slots=True)
class ConversionStatistics:
    message_count: int = 0
    skipped_message_count: int = 0
    topics: set[str] = field(default_factory=set)


def trace_file_metadata(input_path: str | Path) -> dict[str, str]:
    """``net.asam.osi.trace`` entries for an MCAP file converted from ``input_path``."""
    metadata = prepare_required_file_metadata()
    metadata["description"] = f"Converted from {input_path}"
    metadata["creation_time"] = current_time_as_string()
    zero_time = zero_time_from_filename(input_path)
    if zero_time is not None:
        logger.info(f"Found timestamp for MCAP metadata 'zero_time' from file name: {zero_time}")
        metadata["zero_time"] = zero_time
    return metadata


def ground_truth_to_sensor_view(ground_truth: Message) -> Message | None:
    """Wrap a GroundTruth in a SensorView as its ``global_ground_truth``.

    Returns ``None`` for messages that are not GroundTruth.
    """
    if message_type_of(ground_truth) != TopLevelMessage.GROUND_TRUTH:
        logger.warning(f"{ground_truth.DESCRIPTOR.full_name} is not a GroundTruth, skipping")
        return None
    sensor_view = schema.SensorView()
    if ground_truth.HasField("version"):
        sensor_view.version.CopyFrom(ground_truth.version)
    if ground_truth.HasField("timestamp"):
        sensor_view.timestamp.CopyFrom(ground_truth.timestamp)
    if ground_truth.HasField("host_vehicle_id"):
        sensor_view.host_vehicle_id.CopyFrom(ground_truth.host_vehicle_id)
    sensor_view.global_ground_truth.CopyFrom(ground_truth)
    return sensor_view


def open_reader(
    path: str | Path,
    message_type: TopLevelMessage = TopLevelMessage.UNKNOWN,
    *,
    skip_non_osi_messages: bool = True,
) -> TraceFileReader:
    """Create and open the reader matching ``path``.

    Raises ``UnsupportedFormatError`` for unknown extensions and ``TraceFileError`` when the file
    cannot be opened.
    """
    reader = create_reader(path)
    if isinstance(reader, MCAPTraceFileReader):
        reader.set_skip_non_osi_messages(skip_non_osi_messages)
        opened = reader.open(path)
    else:
        opened = reader.open(path, message_type)  # type: ignore[call-arg]
    if not opened:
        raise TraceFileError(f"Could not open input file '{path}'")
    return reader


class _OutputTrace:
    """Routes messages to the output writer, registering MCAP channels on first use."""

    def __init__(self, writer: TraceFileWriter) -> None:
        self.writer = writer
        self.topics: dict[str, TopLevelMessage] = {}
        self.single_kind: TopLevelMessage | None = None

    def write(self, message: Message, topic: str) -> bool:
        kind = message_type_of(message)
        if kind is None:
            logger.warning(f"Skipping message of unsupported type {message.DESCRIPTOR.full_name}")
            return False

        if isinstance(self.writer, MCAPTraceFileWriter):
            if topic not in self.topics:
                self.writer.add_channel(topic, kind)
                self.topics[topic] = kind
            return self.writer.write_message(message, topic)

        if self.single_kind is None:
            self.single_kind = kind
        elif kind != self.single_kind:
            logger.warning(
                f"Skipping {kind.name} message on '{topic}', output file already holds "
                f"{self.single_kind.name} messages"
            )
            return False
        self.topics.setdefault(topic, kind)
        assert isinstance(self.writer, SingleChannelBinaryTraceFileWriter | TXTHTraceFileWriter)
        return self.writer.write_message(message)


def open_writer(
    output: str | Path, input_path: str | Path, options: ConvertOptions
) -> TraceFileWriter:
    writer = create_writer(output)
    if isinstance(writer, MCAPTraceFileWriter):
        opened = writer.open(output, chunk_size=options.chunk_size, compression=options.compression)
        if opened and not writer.add_file_metadata(
            TRACE_METADATA_NAME, trace_file_metadata(input_path)
        ):
            writer.close()
            raise TraceFileError(f"Failed to add required metadata to '{output}'")
    else:
        opened = writer.open(output)
    if not opened:
        raise TraceFileError(f"Could not open output file '{output}'")
    return writer


def convert_trace(
    input_path: str | Path,
    output_path: str | Path,
    options: ConvertOptions | None = None,
    transform: MessageTransform | None = None,
    console: Console | None = None,
) -> ConversionStatistics:
    """Copy every message of ``input_path`` into ``output_path``.

    Both formats are chosen by file extension. Messages from single-channel inputs are written to
    ``options.topic`` in MCAP outputs, messages from MCAP inputs keep their topic. A single-channel
    output only takes the message type seen first. ``transform`` is applied to every message before
    it is written.
    """
    options = options or ConvertOptions()
    stats = ConversionStatistics()

    reader = open_reader(
        input_path, options.message_type, skip_non_osi_messages=options.skip_non_osi_messages
    )
    try:
        writer = open_writer(output_path, input_path, options)
    except TraceFileError:
        reader.close()
        raise

    logger.info(f"Converting '{input_path}' to '{output_path}'")
    output = _OutputTrace(writer)
    with reader, writer, Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        TextColumn("{task.completed:,} messages"),
        TimeElapsedColumn(),
        console=console,
        disable=not options.show_progress,
    ) as progress:
        task = progress.add_task("[cyan]Converting messages...", total=None)
        for result in reader:
            message = transform(result.message) if transform is not None else result.message
            topic = result.channel_name or options.topic
            if message is not None and output.write(message, topic):
                stats.message_count += 1
            else:
                stats.skipped_message_count += 1
            progress.advance(task)

    stats.topics = set(output.topics)
    logger.info(
        f"Conversion complete: {stats.message_count:,} messages, "
        f"{stats.skipped_message_count:,} skipped"
    )
    return stats
