"""Tests for osi_trace.utils module."""

import pytest
from small_mcap import CompressionType

from osi_trace.utils import bytes_to_human, str_to_compression_type, zero_time_from_filename


class TestZeroTimeFromFilename:
    """Test zero_time_from_filename."""

    @pytest.mark.parametrize(
        ("path", "expected"),
        [
            ("20240115T093000Z_sv_370_294_1.osi", "2024-01-15T09:30:00Z"),
            ("/recordings/20231231T235959Z_gt_.mcap", "2023-12-31T23:59:59Z"),
            ("trace_gt_.osi", None),
            ("x20240115T093000Z_gt_.osi", None),
            ("20241340T093000Z_gt_.osi", None),
        ],
    )
    def test_zero_time(self, path: str, expected):
        """Test names with, without and with invalid timestamps."""
        assert zero_time_from_filename(path) == expected

    def test_directory_is_ignored(self):
        """Test that only the file name is considered."""
        assert zero_time_from_filename("20240115T093000Z/trace_gt_.osi") is None


class TestStrToCompressionType:
    """Test str_to_compression_type."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("zstd", CompressionType.ZSTD),
            ("LZ4", CompressionType.LZ4),
            ("none", CompressionType.NONE),
            ("", CompressionType.NONE),
        ],
    )
    def test_known(self, value: str, expected: CompressionType):
        """Test the accepted names."""
        assert str_to_compression_type(value) == expected

    def test_unknown(self):
        """Test that unknown names raise."""
        with pytest.raises(ValueError, match="brotli"):
            str_to_compression_type("brotli")


def test_bytes_to_human():
    """Test human readable sizes."""
    assert bytes_to_human(None) == "N/A"
    assert bytes_to_human(1_500_000) == "1.5MB"
