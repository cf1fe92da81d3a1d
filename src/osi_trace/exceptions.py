from pathlib import Path


class TraceFileError(Exception):
    pass


class MessageDecodeError(TraceFileError):
    pass


class InvalidMessageSizeError(MessageDecodeError):
    def __init__(self, size: int, limit: int) -> None:
        super().__init__(f"invalid message size {size}, expected a value in (0, {limit}]")


class TruncatedMessageError(MessageDecodeError):
    def __init__(self, what: str, expected: int, actual: int) -> None:
        super().__init__(f"failed to read {what}: expected {expected} bytes, got {actual}")


class UnsupportedFormatError(TraceFileError, ValueError):
    def __init__(self, path: str | Path) -> None:
        suffix = Path(path).suffix
        if suffix:
            message = f"unsupported trace file format: '{suffix}'"
        else:
            message = f"unsupported trace file format: '{path}' has no extension"
        super().__init__(message)


class UnsupportedMessageTypeError(TraceFileError):
    def __init__(self, schema_name: str, encoding: str) -> None:
        super().__init__(
            f"unsupported message type '{schema_name}' (encoding '{encoding}'), "
            "only OSI3 protobuf messages are supported"
        )


class ChannelConflictError(TraceFileError):
    def __init__(self, topic: str, existing: str, requested: str) -> None:
        super().__init__(
            f"topic '{topic}' already exists with message type {existing}, "
            f"cannot register it again with {requested}"
        )


class MissingTraceMetadataError(TraceFileError):
    def __init__(self, name: str) -> None:
        super().__init__(
            f"required metadata record '{name}' must be added before writing messages"
        )


class AnalysisError(TraceFileError):
    pass
