"""Tests for format conversion."""

import logging
import re
from pathlib import Path

import pytest
from small_mcap import CompressionType

from osi_trace import schema
from osi_trace.convert import (
    ConvertOptions,
    convert_trace,
    ground_truth_to_sensor_view,
    open_reader,
    trace_file_metadata,
)
from osi_trace.exceptions import TraceFileError, UnsupportedFormatError
from osi_trace.message_types import TopLevelMessage
from osi_trace.reader import MCAPTraceFileReader, create_reader
from osi_trace.writer import MCAPTraceFileWriter, prepare_required_file_metadata
from tests.fixtures.trace_generator import (
    make_ground_truth_frames,
    make_message,
    write_binary_trace,
)


def read_all(path: Path, message_type: TopLevelMessage = TopLevelMessage.UNKNOWN) -> list:
    with open_reader(path, message_type) as reader:
        return list(reader)


class TestTraceFileMetadata:
    """Test metadata of converted MCAP files."""

    def test_zero_time_from_filename(self):
        """Test that a recording time prefix becomes zero_time."""
        metadata = trace_file_metadata("/data/20240115T093000Z_gt_370_294_1.osi")
        assert metadata["zero_time"] == "2024-01-15T09:30:00Z"
        assert metadata["description"] == "Converted from /data/20240115T093000Z_gt_370_294_1.osi"
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\dZ", metadata["creation_time"])
        for key, value in prepare_required_file_metadata().items():
            assert metadata[key] == value

    def test_no_zero_time(self):
        """Test that file names without prefix have no zero_time."""
        assert "zero_time" not in trace_file_metadata("trace_gt_.osi")


class TestGroundTruthToSensorView:
    """Test wrapping GroundTruth into SensorView."""

    def test_wraps_ground_truth(self, ground_truth):
        """Test that the SensorView takes over envelope fields."""
        view = ground_truth_to_sensor_view(ground_truth)
        assert isinstance(view, schema.SensorView)
        assert view.version == ground_truth.version
        assert view.timestamp == ground_truth.timestamp
        assert view.host_vehicle_id == ground_truth.host_vehicle_id
        assert view.global_ground_truth == ground_truth

    def test_rejects_other_types(self, caplog):
        """Test that non GroundTruth messages are skipped."""
        with caplog.at_level(logging.WARNING):
            assert ground_truth_to_sensor_view(make_message(TopLevelMessage.SENSOR_DATA)) is None
        assert "not a GroundTruth" in caplog.text


class TestOpenReader:
    """Test open_reader."""

    def test_unsupported_extension(self, tmp_path: Path):
        """Test that unknown formats raise."""
        with pytest.raises(UnsupportedFormatError):
            open_reader(tmp_path / "trace.bag")

    def test_open_failure(self, tmp_path: Path):
        """Test that a file that cannot be opened raises."""
        with pytest.raises(TraceFileError, match="Could not open input file"):
            open_reader(tmp_path / "missing_gt_.osi")

    def test_mcap_skip_policy(self, mixed_mcap_file: Path):
        """Test that MCAP readers skip foreign messages by default."""
        reader = open_reader(mixed_mcap_file)
        assert isinstance(reader, MCAPTraceFileReader)
        assert reader.skip_non_osi_messages
        reader.close()


class TestConvertTrace:
    """Test convert_trace between formats."""

    def test_osi_to_mcap(self, tmp_path: Path):
        """Test binary to MCAP with topic and metadata."""
        source = write_binary_trace(
            tmp_path / "20240115T093000Z_gt_370_294_1.osi", make_ground_truth_frames(10)
        )
        output = tmp_path / "trace.mcap"
        options = ConvertOptions(topic="ground_truth", compression=CompressionType.LZ4)

        stats = convert_trace(source, output, options)
        assert stats.message_count == 10
        assert stats.skipped_message_count == 0
        assert stats.topics == {"ground_truth"}

        with MCAPTraceFileReader() as reader:
            assert reader.open(output)
            metadata = reader.metadata()["net.asam.osi.trace"]
            results = list(reader)
        assert metadata["zero_time"] == "2024-01-15T09:30:00Z"
        assert [r.message for r in results] == make_ground_truth_frames(10)
        assert all(r.channel_name == "ground_truth" for r in results)

    def test_mcap_to_txth(self, mixed_mcap_file: Path, tmp_path: Path):
        """Test that foreign messages are dropped when leaving MCAP."""
        output = tmp_path / "trace_gt_.txth"
        stats = convert_trace(mixed_mcap_file, output)
        assert stats.message_count == 3
        assert stats.topics == {"gt"}

        results = read_all(output)
        assert [r.message.timestamp.seconds for r in results] == [0, 1, 2]

    def test_txth_to_osi(self, tmp_path: Path):
        """Test text to binary with an explicit message type."""
        frames = [make_message(TopLevelMessage.TRAFFIC_UPDATE, seconds=i) for i in range(4)]
        source = write_binary_trace(tmp_path / "updates_tu_.osi", frames)
        text = tmp_path / "updates.txth"
        convert_trace(source, text)
        binary = tmp_path / "copy.osi"

        stats = convert_trace(
            text, binary, ConvertOptions(message_type=TopLevelMessage.TRAFFIC_UPDATE)
        )
        assert stats.message_count == 4
        assert binary.read_bytes() == source.read_bytes()

    def test_single_channel_output_keeps_first_type(
        self, mcap_writer: MCAPTraceFileWriter, tmp_path: Path, caplog
    ):
        """Test that mixed MCAP topics collapse to the first message type."""
        mcap_writer.add_channel("gt", TopLevelMessage.GROUND_TRUTH)
        mcap_writer.add_channel("sv", TopLevelMessage.SENSOR_VIEW)
        mcap_writer.write_message(make_message(TopLevelMessage.GROUND_TRUTH, seconds=1), "gt")
        mcap_writer.write_message(make_message(TopLevelMessage.SENSOR_VIEW, seconds=2), "sv")
        mcap_writer.write_message(make_message(TopLevelMessage.GROUND_TRUTH, seconds=3), "gt")
        mcap_writer.close()
        source = tmp_path / "trace.mcap"

        output = tmp_path / "out_gt_.osi"
        with caplog.at_level(logging.WARNING):
            stats = convert_trace(source, output)
        assert stats.message_count == 2
        assert stats.skipped_message_count == 1
        assert "Skipping SENSOR_VIEW message on 'sv'" in caplog.text
        assert [r.message.timestamp.seconds for r in read_all(output)] == [1, 3]

    def test_transform(self, gt_osi_file: Path, tmp_path: Path):
        """Test that transformed messages are written."""
        output = tmp_path / "trace_sv_.osi"
        stats = convert_trace(gt_osi_file, output, transform=ground_truth_to_sensor_view)
        assert stats.message_count == 20

        results = read_all(output)
        assert all(r.message_type == TopLevelMessage.SENSOR_VIEW for r in results)
        assert results[0].message.global_ground_truth.timestamp.seconds == 100

    def test_unopenable_output(self, gt_osi_file: Path, tmp_path: Path):
        """Test that an output with wrong extension raises and leaves no file."""
        with pytest.raises(UnsupportedFormatError):
            convert_trace(gt_osi_file, tmp_path / "trace.bag")
        assert not (tmp_path / "trace.bag").exists()

    def test_unreadable_input(self, tmp_path: Path):
        """Test that an input without resolvable type raises."""
        source = write_binary_trace(tmp_path / "trace.osi", make_ground_truth_frames(2))
        with pytest.raises(TraceFileError):
            convert_trace(source, tmp_path / "trace.mcap")

    def test_reader_is_created_by_extension(self, gt_osi_file: Path, tmp_path: Path):
        """Test that the output can be read back with the factory."""
        output = tmp_path / "trace.mcap"
        convert_trace(gt_osi_file, output)
        reader = create_reader(output)
        assert reader.open(output)
        assert len(list(reader)) == 20
        reader.close()

