from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from types import TracebackType

from google.protobuf.message import Message

from osi_trace.message_types import MessageTypeInfo, get_message_type, message_type_of

logger = logging.getLogger(__name__)


class TraceFileWriter(ABC):
    """Common interface of all trace file writers."""

    @abstractmethod
    def open(self, path: str | Path) -> bool: ...

    @abstractmethod
    def close(self) -> None: ...

    def __enter__(self) -> TraceFileWriter:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def check_output_extension(path: Path, extension: str) -> bool:
    if path.suffix != extension:
        logger.error(f"The trace file '{path}' must have a '{extension}' extension.")
        return False
    return True


def top_level_message_type(message: Message) -> MessageTypeInfo | None:
    """Registry entry for ``message``, or ``None`` (with an error log) for non top-level messages."""
    kind = message_type_of(message)
    if kind is None:
        logger.error(
            f"Cannot write message of type '{message.DESCRIPTOR.full_name}', "
            "it is not a supported OSI top-level message."
        )
        return None
    return get_message_type(kind)
