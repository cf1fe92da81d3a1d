"""osi-trace: read, write, convert and analyze OSI trace files.

Three file formats are supported:

- ``.osi``: length-prefixed binary protobuf messages of a single message type
- ``.txth``: protobuf text format messages of a single message type
- ``.mcap``: multi-channel MCAP container with one OSI message type per topic
"""

__version__ = "0.1.0"

from osi_trace.analyzer import (
    CompressionLevel,
    OsiFileAnalyzer,
    OsiFileStatistics,
    RecommendedMcapOptions,
    format_recommendation,
    format_statistics,
    recommend_mcap_options,
)
from osi_trace.exceptions import (
    AnalysisError,
    ChannelConflictError,
    InvalidMessageSizeError,
    MessageDecodeError,
    MissingTraceMetadataError,
    TraceFileError,
    TruncatedMessageError,
    UnsupportedFormatError,
    UnsupportedMessageTypeError,
)
from osi_trace.message_types import (
    MESSAGE_TYPES,
    MessageTypeInfo,
    TopLevelMessage,
    get_message_type,
    message_type_from_filename,
    message_type_from_name,
    message_type_from_type_name,
    message_type_of,
)
from osi_trace.reader import (
    MCAPTraceFileReader,
    ReadResult,
    SingleChannelBinaryTraceFileReader,
    TraceFileReader,
    TXTHTraceFileReader,
    create_reader,
)
from osi_trace.wire import extract_timestamp_ns
from osi_trace.writer import (
    MCAPTraceFileWriter,
    SingleChannelBinaryTraceFileWriter,
    TraceFileWriter,
    TXTHTraceFileWriter,
    create_writer,
)

__all__ = [
    "MESSAGE_TYPES",
    "AnalysisError",
    "ChannelConflictError",
    "CompressionLevel",
    "InvalidMessageSizeError",
    "MCAPTraceFileReader",
    "MCAPTraceFileWriter",
    "MessageDecodeError",
    "MessageTypeInfo",
    "MissingTraceMetadataError",
    "OsiFileAnalyzer",
    "OsiFileStatistics",
    "ReadResult",
    "RecommendedMcapOptions",
    "SingleChannelBinaryTraceFileReader",
    "SingleChannelBinaryTraceFileWriter",
    "TXTHTraceFileReader",
    "TXTHTraceFileWriter",
    "TopLevelMessage",
    "TraceFileError",
    "TraceFileReader",
    "TraceFileWriter",
    "TruncatedMessageError",
    "UnsupportedFormatError",
    "UnsupportedMessageTypeError",
    "__version__",
    "create_reader",
    "create_writer",
    "extract_timestamp_ns",
    "format_recommendation",
    "format_statistics",
    "get_message_type",
    "message_type_from_filename",
    "message_type_from_name",
    "message_type_from_type_name",
    "message_type_of",
    "recommend_mcap_options",
]
