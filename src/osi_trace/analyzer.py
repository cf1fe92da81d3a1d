"""Pre-scan of ``.osi`` trace files to pick MCAP chunk and compression settings.

MCAP playback is smoothest when every chunk holds roughly one second of data: each chunk read
buffers about a second, compression sees enough data to be effective and readers do not have to
hold huge chunks in memory. The analyzer measures message sizes and the frame rate of a binary
trace and turns them into a chunk size for that target.
"""

from __future__ import annotations

import logging
import math
import struct
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import BinaryIO

from rich.table import Table
from small_mcap import CompressionType

from osi_trace.config import (
    ANALYSIS_SAMPLE_SIZE,
    BINARY_LENGTH_PREFIX_SIZE,
    DEFAULT_ASSUMED_FRAME_RATE_HZ,
    DEFAULT_CHUNK_SIZE,
    MAX_CHUNK_DURATION_SECONDS,
    MAX_CHUNK_SIZE,
    MAX_EXPECTED_FRAME_RATE_HZ,
    MAX_EXPECTED_MESSAGE_SIZE,
    MIN_CHUNK_DURATION_SECONDS,
    MIN_CHUNK_SIZE,
    MIN_EXPECTED_FRAME_RATE_HZ,
    MIN_MESSAGE_SIZE_FOR_COMPRESSION,
    MIN_MESSAGES_FOR_RELIABLE_ANALYSIS,
    NANOSECONDS_PER_SECOND,
    OSI_EXTENSION,
    TARGET_CHUNK_DURATION_SECONDS,
)
from osi_trace.exceptions import AnalysisError
from osi_trace.utils import bytes_to_human
from osi_trace.wire import extract_timestamp_ns

logger = logging.getLogger(__name__)

_LENGTH_PREFIX = struct.Struct("<I")
_MIB = 1024 * 1024


class CompressionLevel(str, Enum):
    FASTEST = "fastest"
    FAST = "fast"
    DEFAULT = "default"


@dataclass(slots=True)
class OsiFileStatistics:
    file_path: Path
    file_size_bytes: int = 0
    message_count: int = 0
    is_sampled: bool = False
    total_message_count_estimate: int = 0
    timestamp_sample_count: int = 0

    min_message_size: int = 0
    max_message_size: int = 0
    avg_message_size: float = 0.0
    total_message_bytes: int = 0

    first_timestamp_ns: int = 0
    last_timestamp_ns: int = 0
    duration_seconds: float = 0.0
    avg_frame_interval_seconds: float = 0.0

    frame_rate_hz: float = 0.0
    bytes_per_second: float = 0.0

    def is_valid(self) -> bool:
        """Whether there is enough data for the statistics to be meaningful."""
        return (
            self.message_count >= MIN_MESSAGES_FOR_RELIABLE_ANALYSIS
            and self.avg_message_size > 0
            and self.frame_rate_hz > 0
        )


@dataclass(slots=True)
class RecommendedMcapOptions:
    """MCAP writer settings suggested for a trace.

    ``chunk_size`` and ``compression`` are applied by ``convert --auto``. ``compression_level`` is
    advisory only: it is shown in the report, but the MCAP writer always compresses at the
    library's default level.
    """

    chunk_size: int = DEFAULT_CHUNK_SIZE
    compression: CompressionType = CompressionType.ZSTD
    compression_level: CompressionLevel = CompressionLevel.DEFAULT
    chunk_size_rationale: str = ""
    compression_rationale: str = ""


def sample_indices(total: int, sample_size: int) -> list[int]:
    """Evenly spaced frame indices, always including the first and the last frame."""
    if sample_size <= 0:
        return []
    if sample_size == 1:
        return [0]
    return [(i * (total - 1)) // (sample_size - 1) for i in range(sample_size)]


class OsiFileAnalyzer:
    """Scan a binary ``.osi`` trace without fully parsing its messages.

    The first pass only follows the length prefixes to collect message sizes. The second pass reads
    an evenly spaced sample of messages and pulls their timestamps with the minimal wire walker to
    estimate duration and frame rate.
    """

    def analyze(
        self, path: str | Path, sample_size: int = ANALYSIS_SAMPLE_SIZE
    ) -> OsiFileStatistics | None:
        """Gather statistics about a binary trace file.

        Parameters
        ----------
        path
            Trace file with ``.osi`` extension.
        sample_size
            Number of messages whose timestamps are read, ``0`` reads all of them.

        Returns ``None`` when the file is missing, has the wrong extension or holds no messages.
        Raises ``AnalysisError`` when the file is corrupted.
        """
        path = Path(path)
        if not path.exists():
            logger.error(f"File does not exist: {path}")
            return None
        if path.suffix != OSI_EXTENSION:
            logger.error(f"File must have {OSI_EXTENSION} extension: {path}")
            return None

        stats = OsiFileStatistics(file_path=path, file_size_bytes=path.stat().st_size)
        with path.open("rb") as f:
            sizes = self._scan_sizes(f, stats.file_size_bytes)
            if not sizes:
                logger.error(f"No messages could be read from {path}")
                return None

            total = len(sizes)
            stats.message_count = total
            stats.total_message_count_estimate = total
            stats.min_message_size = min(sizes)
            stats.max_message_size = max(sizes)
            stats.total_message_bytes = sum(sizes)
            stats.avg_message_size = stats.total_message_bytes / total

            if sample_size <= 0 or sample_size >= total:
                timestamp_sample_size = total
                stats.is_sampled = False
            else:
                timestamp_sample_size = max(sample_size, 2) if total > 1 else sample_size
                stats.is_sampled = True
            stats.timestamp_sample_count = timestamp_sample_size

            wanted = (
                None
                if timestamp_sample_size == total
                else set(sample_indices(total, timestamp_sample_size))
            )
            f.seek(0)
            first, last = self._sample_timestamps(f, sizes, wanted)

        logger.info(
            f"Scanned {total} messages in '{path.name}', "
            f"{timestamp_sample_size} timestamp samples"
        )
        self._derive_rates(stats, first, last)
        return stats

    @staticmethod
    def _scan_sizes(f: BinaryIO, file_size: int) -> list[int]:
        sizes: list[int] = []
        position = 0
        while position < file_size:
            prefix = f.read(BINARY_LENGTH_PREFIX_SIZE)
            if len(prefix) < BINARY_LENGTH_PREFIX_SIZE:
                raise AnalysisError(f"Failed to read size of message {len(sizes)}")
            (size,) = _LENGTH_PREFIX.unpack(prefix)
            if size == 0:
                logger.warning(f"Empty message at index {len(sizes)}, stopping scan")
                break
            if size > MAX_EXPECTED_MESSAGE_SIZE:
                raise AnalysisError(
                    f"Unusually large message size ({size} bytes) at message {len(sizes)}. "
                    "File may be corrupted."
                )
            position += BINARY_LENGTH_PREFIX_SIZE + size
            if position > file_size:
                raise AnalysisError(f"Failed to skip message data at message {len(sizes)}")
            f.seek(position)
            sizes.append(size)
        return sizes

    @staticmethod
    def _sample_timestamps(
        f: BinaryIO, sizes: list[int], wanted: set[int] | None
    ) -> tuple[int | None, int | None]:
        first: int | None = None
        last: int | None = None
        for index, size in enumerate(sizes):
            f.seek(BINARY_LENGTH_PREFIX_SIZE, 1)
            if wanted is not None and index not in wanted:
                f.seek(size, 1)
                continue
            data = f.read(size)
            if len(data) != size:
                raise AnalysisError(f"Failed to read message data at message {index}")
            timestamp = extract_timestamp_ns(data)
            if timestamp is None:
                logger.debug(f"No timestamp found in message {index}")
                continue
            if first is None:
                first = timestamp
            last = timestamp
        return first, last

    @staticmethod
    def _derive_rates(stats: OsiFileStatistics, first: int | None, last: int | None) -> None:
        total = stats.message_count
        if first is not None and last is not None and last >= first and total > 1:
            stats.first_timestamp_ns = first
            stats.last_timestamp_ns = last
            stats.duration_seconds = (last - first) / NANOSECONDS_PER_SECOND
            if stats.duration_seconds > 0:
                stats.avg_frame_interval_seconds = stats.duration_seconds / (total - 1)
                stats.frame_rate_hz = 1.0 / stats.avg_frame_interval_seconds
                stats.bytes_per_second = stats.total_message_bytes / stats.duration_seconds

        if stats.frame_rate_hz <= 0 or not math.isfinite(stats.frame_rate_hz):
            logger.warning(
                "Could not determine frame rate from timestamps (checked fields 2 and 10). "
                f"Using default assumption of {DEFAULT_ASSUMED_FRAME_RATE_HZ} Hz."
            )
            stats.frame_rate_hz = DEFAULT_ASSUMED_FRAME_RATE_HZ
            stats.avg_frame_interval_seconds = 1.0 / stats.frame_rate_hz
            if stats.avg_message_size > 0:
                stats.bytes_per_second = stats.avg_message_size * stats.frame_rate_hz

        if stats.frame_rate_hz < MIN_EXPECTED_FRAME_RATE_HZ:
            logger.warning(
                f"Detected frame rate ({stats.frame_rate_hz} Hz) is unusually low. "
                "Timestamps may be incorrect."
            )
        if stats.frame_rate_hz > MAX_EXPECTED_FRAME_RATE_HZ:
            logger.warning(
                f"Detected frame rate ({stats.frame_rate_hz} Hz) is unusually high. "
                "Timestamps may be incorrect."
            )


def recommend_mcap_options(
    stats: OsiFileStatistics,
    target_chunk_duration_seconds: float = TARGET_CHUNK_DURATION_SECONDS,
) -> RecommendedMcapOptions:
    """Derive chunk size and compression for an MCAP file from trace statistics.

    The chunk size is ``avg_message_size * frame_rate_hz * target_chunk_duration_seconds``, clamped
    to the range MCAP readers handle well.
    """
    options = RecommendedMcapOptions()

    duration = min(
        max(target_chunk_duration_seconds, MIN_CHUNK_DURATION_SECONDS), MAX_CHUNK_DURATION_SECONDS
    )
    messages_per_chunk = stats.frame_rate_hz * duration
    calculated = int(stats.avg_message_size * messages_per_chunk)
    options.chunk_size = min(max(calculated, MIN_CHUNK_SIZE), MAX_CHUNK_SIZE)

    rationale = (
        f"Target {duration:.1f}s per chunk × {stats.frame_rate_hz:.1f} Hz × "
        f"{int(stats.avg_message_size)} B/msg = {calculated / _MIB:.1f} MiB"
    )
    if options.chunk_size != calculated:
        if options.chunk_size == MIN_CHUNK_SIZE:
            rationale += f" (clamped to min {MIN_CHUNK_SIZE // _MIB} MiB)"
        else:
            rationale += f" (clamped to max {MAX_CHUNK_SIZE // _MIB} MiB)"
    options.chunk_size_rationale = rationale

    if stats.avg_message_size < MIN_MESSAGE_SIZE_FOR_COMPRESSION:
        options.compression = CompressionType.NONE
        options.compression_rationale = (
            f"Messages are small (<{MIN_MESSAGE_SIZE_FOR_COMPRESSION} B avg), "
            "compression overhead may outweigh benefits"
        )
    else:
        options.compression = CompressionType.ZSTD
        options.compression_level = CompressionLevel.DEFAULT
        options.compression_rationale = (
            "Zstd provides excellent compression for protobuf data with fast decompression"
        )
    return options


def compression_name(compression: CompressionType) -> str:
    return compression.value or "none"


def format_statistics(stats: OsiFileStatistics) -> Table:
    """Render analysis results as a rich table."""
    table = Table(title=f"OSI File Analysis: {stats.file_path.name}", show_header=False)
    table.add_column("Property", style="bold cyan")
    table.add_column("Value", style="green")

    table.add_row("File size", f"{stats.file_size_bytes / _MIB:.2f} MiB")
    if stats.is_sampled:
        table.add_row(
            "Messages",
            f"{stats.message_count:,} total, {stats.timestamp_sample_count:,} timestamp samples",
        )
    else:
        table.add_row("Messages", f"{stats.message_count:,}")
    table.add_row("Min size", f"{stats.min_message_size:,} bytes (uncompressed)")
    table.add_row("Max size", f"{stats.max_message_size:,} bytes (uncompressed)")
    table.add_row("Avg size", f"{int(stats.avg_message_size):,} bytes (uncompressed)")
    table.add_row("Duration", f"{stats.duration_seconds:.2f} s")
    table.add_row("Frame rate", f"{stats.frame_rate_hz:.2f} Hz")
    table.add_row("Data rate", f"{stats.bytes_per_second / _MIB:.2f} MiB/s")
    if not stats.is_valid():
        table.caption = "[yellow]Analysis may be unreliable (insufficient data or invalid metrics)[/]"
    return table


def format_recommendation(options: RecommendedMcapOptions) -> Table:
    table = Table(title="Recommended MCAP Settings")
    table.add_column("Setting", style="bold cyan")
    table.add_column("Value", style="green")
    table.add_column("Rationale", style="dim")

    table.add_row(
        "Chunk size",
        f"{options.chunk_size:,} bytes ({bytes_to_human(options.chunk_size)})",
        options.chunk_size_rationale,
    )
    compression = compression_name(options.compression)
    if options.compression != CompressionType.NONE:
        compression += f" (level {options.compression_level.value})"
    table.add_row("Compression", compression, options.compression_rationale)
    return table
