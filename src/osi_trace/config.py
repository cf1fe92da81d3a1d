"""Configuration constants for reading, writing and analyzing OSI trace files."""

from typing import Final

# MCAP chunk sizing
# 4-32 MiB chunks give the smoothest playback in MCAP viewers for OSI traces.
DEFAULT_CHUNK_SIZE: Final = 16 * 1024 * 1024
MIN_CHUNK_SIZE: Final = 1024 * 1024
MAX_CHUNK_SIZE: Final = 32 * 1024 * 1024

NANOSECONDS_PER_SECOND: Final = 1_000_000_000

# Single channel binary format (.osi)
BINARY_LENGTH_PREFIX_SIZE: Final = 4
# Anything larger is treated as a corrupted length prefix
MAX_EXPECTED_MESSAGE_SIZE: Final = 512 * 1024 * 1024
# Largest payload a little-endian u32 prefix can describe
MAX_ENCODABLE_MESSAGE_SIZE: Final = 0xFFFFFFFF

# File analysis
ANALYSIS_SAMPLE_SIZE: Final = 100
MIN_MESSAGES_FOR_RELIABLE_ANALYSIS: Final = 10
TARGET_CHUNK_DURATION_SECONDS: Final = 1.0
MIN_CHUNK_DURATION_SECONDS: Final = 0.1
MAX_CHUNK_DURATION_SECONDS: Final = 10.0
DEFAULT_ASSUMED_FRAME_RATE_HZ: Final = 10.0
MIN_EXPECTED_FRAME_RATE_HZ: Final = 1.0
MAX_EXPECTED_FRAME_RATE_HZ: Final = 1000.0
MIN_MESSAGE_SIZE_FOR_COMPRESSION: Final = 1024

# MCAP trace file metadata
TRACE_FILE_SPEC_VERSION: Final = "1.0.0"
TRACE_METADATA_NAME: Final = "net.asam.osi.trace"
REQUIRED_TRACE_METADATA_FIELDS: Final = (
    "version",
    "min_osi_version",
    "max_osi_version",
    "min_protobuf_version",
    "max_protobuf_version",
)
CHANNEL_OSI_VERSION_KEY: Final = "net.asam.osi.trace.channel.osi_version"
CHANNEL_PROTOBUF_VERSION_KEY: Final = "net.asam.osi.trace.channel.protobuf_version"
PROTOBUF_ENCODING: Final = "protobuf"
OSI_TYPE_PREFIX: Final = "osi3."

# File extensions
OSI_EXTENSION: Final = ".osi"
TXTH_EXTENSION: Final = ".txth"
MCAP_EXTENSION: Final = ".mcap"
