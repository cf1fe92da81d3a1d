"""Tests for the trace file analyzer and MCAP option recommendation."""

import logging
import struct
from pathlib import Path

import pytest
from rich.console import Console
from small_mcap import CompressionType

from osi_trace.analyzer import (
    CompressionLevel,
    OsiFileAnalyzer,
    OsiFileStatistics,
    compression_name,
    format_recommendation,
    format_statistics,
    recommend_mcap_options,
    sample_indices,
)
from osi_trace.exceptions import AnalysisError
from osi_trace.message_types import TopLevelMessage
from tests.fixtures.trace_generator import (
    frame_bytes,
    make_ground_truth_frames,
    make_message,
    write_binary_trace,
)


def render(table) -> str:
    console = Console(width=200, record=True)
    console.print(table)
    return console.export_text()


class TestSampleIndices:
    """Test sample index selection."""

    def test_includes_first_and_last(self):
        """Test that the sample spans the whole file."""
        indices = sample_indices(1000, 10)
        assert indices[0] == 0
        assert indices[-1] == 999
        assert len(set(indices)) == 10

    def test_evenly_spaced(self):
        """Test the index formula."""
        assert sample_indices(11, 3) == [0, 5, 10]

    def test_degenerate_sizes(self):
        """Test zero and one sample."""
        assert sample_indices(50, 0) == []
        assert sample_indices(50, 1) == [0]


class TestAnalyze:
    """Test OsiFileAnalyzer.analyze."""

    def test_full_scan(self, gt_osi_file: Path):
        """Test statistics of 20 frames at 10 Hz."""
        stats = OsiFileAnalyzer().analyze(gt_osi_file)
        assert stats is not None

        sizes = [frame.ByteSize() for frame in make_ground_truth_frames(20)]
        assert stats.file_size_bytes == gt_osi_file.stat().st_size
        assert stats.message_count == 20
        assert stats.total_message_count_estimate == 20
        assert not stats.is_sampled
        assert stats.timestamp_sample_count == 20
        assert stats.min_message_size == min(sizes)
        assert stats.max_message_size == max(sizes)
        assert stats.total_message_bytes == sum(sizes)
        assert stats.avg_message_size == pytest.approx(sum(sizes) / 20)
        assert stats.first_timestamp_ns == 100_000_000_000
        assert stats.last_timestamp_ns == 101_900_000_000
        assert stats.duration_seconds == pytest.approx(1.9)
        assert stats.avg_frame_interval_seconds == pytest.approx(0.1)
        assert stats.frame_rate_hz == pytest.approx(10.0)
        assert stats.bytes_per_second == pytest.approx(sum(sizes) / 1.9)
        assert stats.is_valid()

    def test_sampled_scan(self, tmp_path: Path):
        """Test that sampling still spans first to last frame."""
        path = write_binary_trace(tmp_path / "long_gt_.osi", make_ground_truth_frames(1000))
        stats = OsiFileAnalyzer().analyze(path, sample_size=10)
        assert stats is not None
        assert stats.is_sampled
        assert stats.timestamp_sample_count == 10
        assert stats.message_count == 1000
        assert stats.duration_seconds == pytest.approx(99.9)
        assert stats.frame_rate_hz == pytest.approx(10.0)

    def test_sample_size_zero_reads_all(self, tmp_path: Path):
        """Test that a sample size of zero disables sampling."""
        path = write_binary_trace(tmp_path / "long_gt_.osi", make_ground_truth_frames(150))
        stats = OsiFileAnalyzer().analyze(path, sample_size=0)
        assert stats is not None
        assert not stats.is_sampled
        assert stats.timestamp_sample_count == 150

    def test_sampling_is_deterministic(self, tmp_path: Path):
        """Test that repeated analysis gives identical results."""
        path = write_binary_trace(tmp_path / "long_gt_.osi", make_ground_truth_frames(300, padding=2))
        first = OsiFileAnalyzer().analyze(path, sample_size=7)
        second = OsiFileAnalyzer().analyze(path, sample_size=7)
        assert first == second

    def test_host_vehicle_data_timestamps(self, tmp_path: Path):
        """Test frame rate detection for timestamps in field 10."""
        frames = [
            make_message(
                TopLevelMessage.HOST_VEHICLE_DATA, seconds=i // 50, nanos=(i % 50) * 20_000_000
            )
            for i in range(100)
        ]
        path = write_binary_trace(tmp_path / "trace_hvd_.osi", frames)
        stats = OsiFileAnalyzer().analyze(path)
        assert stats is not None
        assert stats.frame_rate_hz == pytest.approx(50.0)

    def test_fallback_frame_rate(self, tmp_path: Path, caplog):
        """Test the default frame rate when timestamps do not advance."""
        frames = [make_message(TopLevelMessage.GROUND_TRUTH, seconds=5) for _ in range(12)]
        path = write_binary_trace(tmp_path / "still_gt_.osi", frames)
        with caplog.at_level(logging.WARNING):
            stats = OsiFileAnalyzer().analyze(path)
        assert stats is not None
        assert stats.frame_rate_hz == 10.0
        assert stats.avg_frame_interval_seconds == pytest.approx(0.1)
        assert stats.bytes_per_second == pytest.approx(stats.avg_message_size * 10.0)
        assert stats.duration_seconds == 0.0
        assert "Using default assumption of 10.0 Hz" in caplog.text

    def test_low_frame_rate_warning(self, tmp_path: Path, caplog):
        """Test the warning for implausibly slow traces."""
        frames = make_ground_truth_frames(12, frame_rate_hz=0.5)
        path = write_binary_trace(tmp_path / "slow_gt_.osi", frames)
        with caplog.at_level(logging.WARNING):
            stats = OsiFileAnalyzer().analyze(path)
        assert stats is not None
        assert stats.frame_rate_hz == pytest.approx(0.5)
        assert "unusually low" in caplog.text

    def test_single_message(self, tmp_path: Path, ground_truth):
        """Test that a single message falls back to the default rate."""
        path = write_binary_trace(tmp_path / "one_gt_.osi", [ground_truth])
        stats = OsiFileAnalyzer().analyze(path)
        assert stats is not None
        assert stats.message_count == 1
        assert stats.frame_rate_hz == 10.0
        assert not stats.is_valid()

    def test_missing_file(self, tmp_path: Path):
        """Test that a missing file gives no statistics."""
        assert OsiFileAnalyzer().analyze(tmp_path / "missing_gt_.osi") is None

    def test_wrong_extension(self, tmp_path: Path):
        """Test that only .osi files are analyzed."""
        path = tmp_path / "trace.mcap"
        path.write_bytes(b"\x00" * 16)
        assert OsiFileAnalyzer().analyze(path) is None

    def test_empty_file(self, tmp_path: Path):
        """Test that an empty file gives no statistics."""
        path = tmp_path / "empty_gt_.osi"
        path.write_bytes(b"")
        assert OsiFileAnalyzer().analyze(path) is None

    def test_oversize_prefix(self, tmp_path: Path, ground_truth):
        """Test that a corrupted length prefix raises."""
        data = frame_bytes([ground_truth.SerializeToString()]) + struct.pack("<I", 0xF0000000)
        path = tmp_path / "corrupt_gt_.osi"
        path.write_bytes(data)
        with pytest.raises(AnalysisError, match="Unusually large"):
            OsiFileAnalyzer().analyze(path)

    def test_truncated_message(self, tmp_path: Path, ground_truth):
        """Test that a message running past the end raises."""
        data = frame_bytes([ground_truth.SerializeToString()] * 2)
        path = tmp_path / "cut_gt_.osi"
        path.write_bytes(data[:-1])
        with pytest.raises(AnalysisError):
            OsiFileAnalyzer().analyze(path)

    def test_truncated_prefix(self, tmp_path: Path, ground_truth):
        """Test that a partial trailing length prefix raises."""
        data = frame_bytes([ground_truth.SerializeToString()]) + b"\x01\x00"
        path = tmp_path / "cut_gt_.osi"
        path.write_bytes(data)
        with pytest.raises(AnalysisError):
            OsiFileAnalyzer().analyze(path)

    def test_zero_size_stops_scan(self, tmp_path: Path, caplog):
        """Test that an empty frame ends the scan with a warning."""
        frames = make_ground_truth_frames(3)
        data = frame_bytes([f.SerializeToString() for f in frames]) + struct.pack("<I", 0)
        path = tmp_path / "zero_gt_.osi"
        path.write_bytes(data)
        with caplog.at_level(logging.WARNING):
            stats = OsiFileAnalyzer().analyze(path)
        assert stats is not None
        assert stats.message_count == 3
        assert "Empty message at index 3" in caplog.text


def make_stats(avg_message_size: float, frame_rate_hz: float) -> OsiFileStatistics:
    return OsiFileStatistics(
        file_path=Path("trace_gt_.osi"),
        message_count=100,
        avg_message_size=avg_message_size,
        frame_rate_hz=frame_rate_hz,
    )


class TestRecommendation:
    """Test recommend_mcap_options."""

    def test_unclamped_chunk_size(self):
        """Test a chunk size inside the allowed range."""
        options = recommend_mcap_options(make_stats(100_000, 50.0))
        assert options.chunk_size == 5_000_000
        assert options.chunk_size_rationale == (
            "Target 1.0s per chunk × 50.0 Hz × 100000 B/msg = 4.8 MiB"
        )

    def test_clamped_to_min(self):
        """Test that small chunks are raised to 1 MiB."""
        options = recommend_mcap_options(make_stats(10_000, 100.0), 1.0)
        assert options.chunk_size == 1024 * 1024
        assert options.chunk_size_rationale.endswith("= 1.0 MiB (clamped to min 1 MiB)")

    def test_clamped_to_max(self):
        """Test that large chunks are limited to 32 MiB."""
        options = recommend_mcap_options(make_stats(1_000_000, 100.0))
        assert options.chunk_size == 32 * 1024 * 1024
        assert options.chunk_size_rationale.endswith("(clamped to max 32 MiB)")

    def test_target_duration_is_clamped(self):
        """Test that the chunk duration stays between 0.1 s and 10 s."""
        long = recommend_mcap_options(make_stats(10_000, 100.0), 100.0)
        assert long.chunk_size == 10_000_000
        assert long.chunk_size_rationale.startswith("Target 10.0s per chunk")
        short = recommend_mcap_options(make_stats(1_000_000, 100.0), 0.01)
        assert short.chunk_size == 10_000_000
        assert short.chunk_size_rationale.startswith("Target 0.1s per chunk")

    def test_small_messages_are_not_compressed(self):
        """Test that small messages skip compression."""
        options = recommend_mcap_options(make_stats(512, 100.0))
        assert options.compression == CompressionType.NONE
        assert "Messages are small (<1024 B avg)" in options.compression_rationale

    def test_large_messages_use_zstd(self):
        """Test that larger messages use zstd at default level."""
        options = recommend_mcap_options(make_stats(1024, 100.0))
        assert options.compression == CompressionType.ZSTD
        assert options.compression_level == CompressionLevel.DEFAULT
        assert options.compression_rationale.startswith("Zstd")

    def test_compression_name(self):
        """Test display names of compression types."""
        assert compression_name(CompressionType.NONE) == "none"
        assert compression_name(CompressionType.ZSTD) == "zstd"
        assert compression_name(CompressionType.LZ4) == "lz4"


class TestFormatting:
    """Test the rich table rendering."""

    def test_format_statistics(self, gt_osi_file: Path):
        """Test the statistics table."""
        stats = OsiFileAnalyzer().analyze(gt_osi_file)
        assert stats is not None
        text = render(format_statistics(stats))
        assert "OSI File Analysis: trace_gt_.osi" in text
        assert "10.00 Hz" in text
        assert "1.90 s" in text
        assert "unreliable" not in text

    def test_format_statistics_sampled(self, tmp_path: Path):
        """Test that sampled statistics show the sample count."""
        path = write_binary_trace(tmp_path / "long_gt_.osi", make_ground_truth_frames(200))
        stats = OsiFileAnalyzer().analyze(path, sample_size=20)
        assert stats is not None
        assert "200 total, 20 timestamp samples" in render(format_statistics(stats))

    def test_format_statistics_unreliable(self):
        """Test the caption for insufficient data."""
        text = render(format_statistics(make_stats(100, 0.0)))
        assert "Analysis may be unreliable" in text

    def test_format_recommendation(self):
        """Test the recommendation table."""
        text = render(format_recommendation(recommend_mcap_options(make_stats(100_000, 50.0))))
        assert "5,000,000 bytes" in text
        assert "zstd (level default)" in text

    def test_format_recommendation_uncompressed(self):
        """Test that no level is shown without compression."""
        text = render(format_recommendation(recommend_mcap_options(make_stats(100, 50.0))))
        assert "none" in text
        assert "level" not in text
