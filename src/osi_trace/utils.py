from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path

from rich import filesize
from small_mcap import CompressionType

# Trace files recorded by OSI tooling start with the recording time, e.g. 20240115T093000Z_sv_...
_ZERO_TIME_PATTERN = re.compile(r"^(\d{8}T\d{6}Z)")


def bytes_to_human(size_bytes: float | None) -> str:
    """Convert bytes to a human-readable format."""
    if size_bytes is None:
        return "N/A"

    return filesize.decimal(int(abs(size_bytes)), separator="")


def str_to_compression_type(compression: str) -> CompressionType:
    """Convert compression string to small_mcap CompressionType enum."""
    compression_lower = compression.lower()
    if compression_lower in ("none", "", "off"):
        return CompressionType.NONE
    if compression_lower == "lz4":
        return CompressionType.LZ4
    if compression_lower == "zstd":
        return CompressionType.ZSTD
    raise ValueError(f"Unknown compression type: {compression}")


def zero_time_from_filename(path: str | Path) -> str | None:
    """Recording start time encoded at the front of a trace file name.

    ``20240115T093000Z_sv_370_294_1.osi`` gives ``2024-01-15T09:30:00Z``. Returns ``None`` when the
    name does not start with a ``YYYYMMDDTHHMMSSZ`` timestamp.
    """
    match = _ZERO_TIME_PATTERN.match(Path(path).name)
    if match is None:
        return None
    try:
        parsed = datetime.strptime(match.group(1), "%Y%m%dT%H%M%SZ").replace(tzinfo=timezone.utc)
    except ValueError:
        return None
    return f"{parsed:%Y-%m-%dT%H:%M:%SZ}"


def confirm_output_overwrite(output: Path, force: bool) -> None:
    """Confirm overwrite if output exists and force=False.

    Raises:
        SystemExit: If user declines to overwrite
    """
    if output.exists() and not force:
        response = input(f"Output file '{output}' already exists. Overwrite? [y/N]: ")
        if response.lower() not in ("y", "yes"):
            print("Aborted.")  # noqa: T201
            raise SystemExit(1)
