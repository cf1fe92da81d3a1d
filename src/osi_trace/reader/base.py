from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from types import TracebackType

from google.protobuf.message import Message

from osi_trace.message_types import TopLevelMessage, message_type_from_filename

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ReadResult:
    """A single decoded message and where it came from.

    ``channel_name`` is only populated by multi-channel formats.
    """

    message: Message
    message_type: TopLevelMessage
    channel_name: str = ""


class TraceFileReader(ABC):
    """Common interface of all trace file readers.

    ``open`` and ``has_next`` report problems through their return value, ``read_message`` raises
    on corrupted data.
    """

    @abstractmethod
    def open(self, path: str | Path) -> bool: ...

    @abstractmethod
    def has_next(self) -> bool: ...

    @abstractmethod
    def read_message(self) -> ReadResult | None: ...

    @abstractmethod
    def close(self) -> None: ...

    def __iter__(self) -> Iterator[ReadResult]:
        while self.has_next():
            result = self.read_message()
            if result is None:
                return
            yield result

    def __enter__(self) -> TraceFileReader:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def check_trace_file(path: Path, extension: str) -> bool:
    if path.suffix != extension:
        logger.error(f"The trace file '{path}' must have a '{extension}' extension.")
        return False
    if not path.exists():
        logger.error(f"The trace file '{path}' does not exist.")
        return False
    return True


def resolve_message_type(path: Path, message_type: TopLevelMessage) -> TopLevelMessage:
    """Pick the message kind for a single-channel trace file.

    An explicit ``message_type`` wins over the file name, with a warning when the two disagree.
    Returns ``TopLevelMessage.UNKNOWN`` when neither resolves.
    """
    from_filename = message_type_from_filename(path)
    if message_type == TopLevelMessage.UNKNOWN:
        if from_filename == TopLevelMessage.UNKNOWN:
            logger.error(f"Unable to determine message type from filename '{path.name}'.")
        return from_filename

    if from_filename != message_type:
        if from_filename == TopLevelMessage.UNKNOWN:
            logger.warning(
                f"Filename '{path.name}' does not indicate a message type, using {message_type.name}."
            )
        else:
            logger.warning(
                f"Filename '{path.name}' suggests {from_filename.name} but {message_type.name} was "
                f"requested, using {message_type.name}."
            )
    return message_type
