"""Registry of the top-level OSI message kinds a trace file can carry."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import IntEnum
from pathlib import Path
from types import MappingProxyType

from google.protobuf import text_format
from google.protobuf.descriptor import Descriptor
from google.protobuf.message import DecodeError, Message

from osi_trace import schema
from osi_trace.exceptions import MessageDecodeError


class TopLevelMessage(IntEnum):
    UNKNOWN = 0
    GROUND_TRUTH = 1
    SENSOR_DATA = 2
    SENSOR_VIEW = 3
    SENSOR_VIEW_CONFIGURATION = 4
    HOST_VEHICLE_DATA = 5
    TRAFFIC_COMMAND = 6
    TRAFFIC_COMMAND_UPDATE = 7
    TRAFFIC_UPDATE = 8
    MOTION_REQUEST = 9
    STREAMING_UPDATE = 10


@dataclass(frozen=True, slots=True)
class MessageTypeInfo:
    kind: TopLevelMessage
    type_name: str
    message_class: type[Message]
    file_infix: str
    timestamp_field: int | None = 2

    @property
    def name(self) -> str:
        """Short message name, e.g. ``GroundTruth``."""
        return self.type_name.removeprefix(f"{schema.OSI_PACKAGE}.")

    @property
    def descriptor(self) -> Descriptor:
        return self.message_class.DESCRIPTOR

    def parse(self, data: bytes) -> Message:
        message = self.message_class()
        try:
            message.ParseFromString(data)
        except DecodeError as e:
            raise MessageDecodeError(f"failed to parse {self.type_name}: {e}") from e
        return message

    def parse_text(self, text: str) -> Message:
        message = self.message_class()
        try:
            text_format.Parse(text, message)
        except text_format.ParseError as e:
            raise MessageDecodeError(f"failed to parse {self.type_name} from text: {e}") from e
        return message

    def print_text(self, message: Message) -> str:
        return text_format.MessageToString(message)


def _info(
    kind: TopLevelMessage,
    message_class: type[Message],
    file_infix: str,
    timestamp_field: int | None = 2,
) -> MessageTypeInfo:
    return MessageTypeInfo(
        kind=kind,
        type_name=message_class.DESCRIPTOR.full_name,
        message_class=message_class,
        file_infix=file_infix,
        timestamp_field=timestamp_field,
    )


MESSAGE_TYPES: Mapping[TopLevelMessage, MessageTypeInfo] = MappingProxyType(
    {
        info.kind: info
        for info in (
            _info(TopLevelMessage.GROUND_TRUTH, schema.GroundTruth, "_gt_"),
            _info(TopLevelMessage.SENSOR_DATA, schema.SensorData, "_sd_"),
            _info(TopLevelMessage.SENSOR_VIEW, schema.SensorView, "_sv_"),
            _info(
                TopLevelMessage.SENSOR_VIEW_CONFIGURATION,
                schema.SensorViewConfiguration,
                "_svc_",
                timestamp_field=None,
            ),
            # HostVehicleData carries its timestamp in field 10, not 2
            _info(
                TopLevelMessage.HOST_VEHICLE_DATA,
                schema.HostVehicleData,
                "_hvd_",
                timestamp_field=10,
            ),
            _info(TopLevelMessage.TRAFFIC_COMMAND, schema.TrafficCommand, "_tc_"),
            _info(TopLevelMessage.TRAFFIC_COMMAND_UPDATE, schema.TrafficCommandUpdate, "_tcu_"),
            _info(TopLevelMessage.TRAFFIC_UPDATE, schema.TrafficUpdate, "_tu_"),
            _info(TopLevelMessage.MOTION_REQUEST, schema.MotionRequest, "_mr_"),
            _info(TopLevelMessage.STREAMING_UPDATE, schema.StreamingUpdate, "_su_"),
        )
    }
)

_BY_TYPE_NAME: Mapping[str, MessageTypeInfo] = MappingProxyType(
    {info.type_name: info for info in MESSAGE_TYPES.values()}
)

_BY_NAME: Mapping[str, MessageTypeInfo] = MappingProxyType(
    {info.name.lower(): info for info in MESSAGE_TYPES.values()}
)


def get_message_type(kind: TopLevelMessage) -> MessageTypeInfo:
    """Look up the registry entry for ``kind``.

    Raises ``KeyError`` for ``TopLevelMessage.UNKNOWN``, which never has an entry.
    """
    return MESSAGE_TYPES[kind]


def message_type_from_filename(path: str | Path) -> TopLevelMessage:
    """Infer the message kind from the infix in a trace file name.

    Returns ``TopLevelMessage.UNKNOWN`` when no infix matches. The first match in registry order wins.
    """
    name = Path(path).name
    for info in MESSAGE_TYPES.values():
        if info.file_infix in name:
            return info.kind
    return TopLevelMessage.UNKNOWN


def message_type_from_type_name(type_name: str) -> TopLevelMessage | None:
    info = _BY_TYPE_NAME.get(type_name)
    return info.kind if info is not None else None


def message_type_of(message: Message) -> TopLevelMessage | None:
    return message_type_from_type_name(message.DESCRIPTOR.full_name)


def message_type_from_name(name: str) -> TopLevelMessage:
    """Resolve a user supplied name such as ``GroundTruth``, ``osi3.SensorView`` or ``ground_truth``."""
    key = name.strip().removeprefix(f"{schema.OSI_PACKAGE}.").replace("_", "").replace("-", "")
    key = key.lower()
    info = _BY_NAME.get(key)
    if info is None:
        choices = ", ".join(info.name for info in MESSAGE_TYPES.values())
        raise ValueError(f"Unknown message type '{name}'. Choose from: {choices}")
    return info.kind
