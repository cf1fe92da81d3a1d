"""Shared CLI parameter types."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Annotated

from cyclopts import Group, Parameter

INPUT_OPTIONS_GROUP = Group("Input Options")
OUTPUT_OPTIONS_GROUP = Group("Output Options")


class CompressionChoice(str, Enum):
    """Compression algorithm types."""

    ZSTD = "zstd"
    LZ4 = "lz4"
    NONE = "none"


InputTypeOption = Annotated[
    str | None,
    Parameter(
        name=["--input-type"],
        group=INPUT_OPTIONS_GROUP,
        help="Message type of a single-channel input such as GroundTruth or SensorView. "
        "Overrides the type inferred from the file name.",
    ),
]

OutputPathOption = Annotated[
    Path,
    Parameter(
        name=["-o", "--output"],
        group=OUTPUT_OPTIONS_GROUP,
    ),
]

ChunkSizeOption = Annotated[
    int | None,
    Parameter(
        name=["--chunk-size"],
        group=OUTPUT_OPTIONS_GROUP,
    ),
]

CompressionOption = Annotated[
    CompressionChoice | None,
    Parameter(
        name=["--compression"],
        group=OUTPUT_OPTIONS_GROUP,
    ),
]

ForceOverwriteOption = Annotated[
    bool,
    Parameter(
        name=["-f", "--force"],
        group=OUTPUT_OPTIONS_GROUP,
    ),
]
