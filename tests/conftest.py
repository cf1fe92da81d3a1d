"""Shared pytest fixtures for osi-trace tests."""

from pathlib import Path

import pytest
from google.protobuf.message import Message

from osi_trace.message_types import TopLevelMessage
from osi_trace.writer import MCAPTraceFileWriter
from osi_trace.writer.mcap import prepare_required_file_metadata
from tests.fixtures.trace_generator import (
    make_ground_truth_frames,
    make_message,
    write_binary_trace,
    write_mixed_mcap,
)


@pytest.fixture
def ground_truth() -> Message:
    """A GroundTruth at 1.5 s."""
    return make_message(TopLevelMessage.GROUND_TRUTH, seconds=1, nanos=500_000_000)


@pytest.fixture
def gt_osi_file(tmp_path: Path) -> Path:
    """Binary GroundTruth trace with 20 frames at 10 Hz."""
    return write_binary_trace(tmp_path / "trace_gt_.osi", make_ground_truth_frames(20))


@pytest.fixture
def mixed_mcap_file(tmp_path: Path) -> Path:
    """MCAP file with OSI and non-OSI topics."""
    return write_mixed_mcap(tmp_path / "mixed.mcap")


@pytest.fixture
def mcap_writer(tmp_path: Path):
    """MCAP writer opened on a temporary file, with the required metadata added."""
    writer = MCAPTraceFileWriter()
    assert writer.open(tmp_path / "trace.mcap")
    assert writer.add_file_metadata("net.asam.osi.trace", prepare_required_file_metadata())
    yield writer
    writer.close()
