"""OSI3 protobuf message classes.

The ``osi3`` schema is assembled from a ``FileDescriptorProto`` at import time and registered in a
private descriptor pool, so the package does not depend on generated ``*_pb2`` modules. Field
numbers of the envelope fields (``version``, ``timestamp``) follow the published OSI interface, which
keeps files written here readable by other OSI tooling and vice versa.
"""

from __future__ import annotations

from google.protobuf import descriptor_pb2, descriptor_pool, message_factory
from google.protobuf.descriptor import Descriptor, FileDescriptor
from google.protobuf.message import Message

OSI_PACKAGE = "osi3"
OSI_FILE_NAME = "osi_trace/osi3.proto"

OSI_VERSION_MAJOR = 3
OSI_VERSION_MINOR = 7
OSI_VERSION_PATCH = 0
OSI_VERSION = f"{OSI_VERSION_MAJOR}.{OSI_VERSION_MINOR}.{OSI_VERSION_PATCH}"

_FDP = descriptor_pb2.FieldDescriptorProto

# (name, number, type, label, type_name)
_FieldSpec = tuple[str, int, int, int, str]

_OPTIONAL = _FDP.LABEL_OPTIONAL
_REPEATED = _FDP.LABEL_REPEATED


def _scalar(name: str, number: int, field_type: int) -> _FieldSpec:
    return (name, number, field_type, _OPTIONAL, "")


def _message(name: str, number: int, type_name: str, *, repeated: bool = False) -> _FieldSpec:
    return (name, number, _FDP.TYPE_MESSAGE, _REPEATED if repeated else _OPTIONAL, type_name)


def _envelope(version_number: int = 1, timestamp_number: int | None = 2) -> list[_FieldSpec]:
    fields = [_message("version", version_number, "InterfaceVersion")]
    if timestamp_number is not None:
        fields.append(_message("timestamp", timestamp_number, "Timestamp"))
    return fields


_MESSAGES: dict[str, list[_FieldSpec]] = {
    "Timestamp": [
        _scalar("seconds", 1, _FDP.TYPE_INT64),
        _scalar("nanos", 2, _FDP.TYPE_UINT32),
    ],
    "InterfaceVersion": [
        _scalar("version_major", 1, _FDP.TYPE_UINT32),
        _scalar("version_minor", 2, _FDP.TYPE_UINT32),
        _scalar("version_patch", 3, _FDP.TYPE_UINT32),
    ],
    "Identifier": [
        _scalar("value", 1, _FDP.TYPE_UINT64),
    ],
    "Vector3d": [
        _scalar("x", 1, _FDP.TYPE_DOUBLE),
        _scalar("y", 2, _FDP.TYPE_DOUBLE),
        _scalar("z", 3, _FDP.TYPE_DOUBLE),
    ],
    "Dimension3d": [
        _scalar("length", 1, _FDP.TYPE_DOUBLE),
        _scalar("width", 2, _FDP.TYPE_DOUBLE),
        _scalar("height", 3, _FDP.TYPE_DOUBLE),
    ],
    "Orientation3d": [
        _scalar("roll", 1, _FDP.TYPE_DOUBLE),
        _scalar("pitch", 2, _FDP.TYPE_DOUBLE),
        _scalar("yaw", 3, _FDP.TYPE_DOUBLE),
    ],
    "BaseMoving": [
        _message("dimension", 1, "Dimension3d"),
        _message("position", 2, "Vector3d"),
        _message("orientation", 3, "Orientation3d"),
        _message("velocity", 4, "Vector3d"),
        _message("acceleration", 5, "Vector3d"),
    ],
    "MovingObject": [
        _message("id", 1, "Identifier"),
        _message("base", 2, "BaseMoving"),
    ],
    "GroundTruth": [
        *_envelope(),
        _message("host_vehicle_id", 3, "Identifier"),
        _message("moving_object", 5, "MovingObject", repeated=True),
    ],
    "SensorData": [
        *_envelope(),
        _message("sensor_id", 5, "Identifier"),
    ],
    "SensorView": [
        *_envelope(),
        _message("sensor_id", 3, "Identifier"),
        _message("global_ground_truth", 7, "GroundTruth"),
        _message("host_vehicle_id", 8, "Identifier"),
    ],
    "SensorViewConfiguration": [
        *_envelope(timestamp_number=None),
        _message("sensor_id", 2, "Identifier"),
    ],
    "HostVehicleData": [
        *_envelope(version_number=9, timestamp_number=10),
        _message("host_vehicle_id", 11, "Identifier"),
    ],
    "TrafficCommand": [
        *_envelope(),
        _message("traffic_participant_id", 3, "Identifier"),
    ],
    "TrafficCommandUpdate": [
        *_envelope(),
        _message("traffic_participant_id", 3, "Identifier"),
    ],
    "TrafficUpdate": [
        *_envelope(),
        _message("update", 3, "MovingObject", repeated=True),
    ],
    "MotionRequest": [
        *_envelope(),
    ],
    "StreamingUpdate": [
        *_envelope(),
        _message("moving_object", 3, "MovingObject", repeated=True),
    ],
}


def _build_file_proto() -> descriptor_pb2.FileDescriptorProto:
    file_proto = descriptor_pb2.FileDescriptorProto(
        name=OSI_FILE_NAME,
        package=OSI_PACKAGE,
        syntax="proto2",
    )
    for message_name, fields in _MESSAGES.items():
        message_proto = file_proto.message_type.add(name=message_name)
        for name, number, field_type, label, type_name in fields:
            field = message_proto.field.add(name=name, number=number, type=field_type, label=label)
            if type_name:
                field.type_name = f".{OSI_PACKAGE}.{type_name}"
    return file_proto


_pool = descriptor_pool.DescriptorPool()
_pool.AddSerializedFile(_build_file_proto().SerializeToString())

FILE_DESCRIPTOR: FileDescriptor = _pool.FindFileByName(OSI_FILE_NAME)


def _message_class(name: str) -> type[Message]:
    return message_factory.GetMessageClass(_pool.FindMessageTypeByName(f"{OSI_PACKAGE}.{name}"))


Timestamp = _message_class("Timestamp")
InterfaceVersion = _message_class("InterfaceVersion")
Identifier = _message_class("Identifier")
Vector3d = _message_class("Vector3d")
Dimension3d = _message_class("Dimension3d")
Orientation3d = _message_class("Orientation3d")
BaseMoving = _message_class("BaseMoving")
MovingObject = _message_class("MovingObject")
GroundTruth = _message_class("GroundTruth")
SensorData = _message_class("SensorData")
SensorView = _message_class("SensorView")
SensorViewConfiguration = _message_class("SensorViewConfiguration")
HostVehicleData = _message_class("HostVehicleData")
TrafficCommand = _message_class("TrafficCommand")
TrafficCommandUpdate = _message_class("TrafficCommandUpdate")
TrafficUpdate = _message_class("TrafficUpdate")
MotionRequest = _message_class("MotionRequest")
StreamingUpdate = _message_class("StreamingUpdate")


def current_interface_version() -> Message:
    """Return an ``InterfaceVersion`` populated with the supported OSI version."""
    return InterfaceVersion(
        version_major=OSI_VERSION_MAJOR,
        version_minor=OSI_VERSION_MINOR,
        version_patch=OSI_VERSION_PATCH,
    )


def build_file_descriptor_set(descriptor: Descriptor) -> bytes:
    """Serialize the ``FileDescriptorSet`` describing ``descriptor``.

    Dependencies are emitted before the files that import them, which is the order MCAP viewers
    expect when they rebuild the schema.
    """
    descriptor_set = descriptor_pb2.FileDescriptorSet()
    seen: set[str] = set()

    def add(file_descriptor: FileDescriptor) -> None:
        if file_descriptor.name in seen:
            return
        seen.add(file_descriptor.name)
        for dependency in file_descriptor.dependencies:
            add(dependency)
        file_descriptor.CopyToProto(descriptor_set.file.add())

    add(descriptor.file)
    return descriptor_set.SerializeToString()
