"""Convert command - convert between .osi, .txth and .mcap trace files."""

import logging
from pathlib import Path
from typing import Annotated

from cyclopts import Parameter
from rich.console import Console

from osi_trace.analyzer import OsiFileAnalyzer, compression_name, recommend_mcap_options
from osi_trace.cmd.types import (
    OUTPUT_OPTIONS_GROUP,
    ChunkSizeOption,
    CompressionOption,
    ForceOverwriteOption,
    InputTypeOption,
    OutputPathOption,
)
from osi_trace.config import DEFAULT_CHUNK_SIZE, MCAP_EXTENSION, OSI_EXTENSION
from osi_trace.convert import DEFAULT_TOPIC, ConvertOptions, convert_trace
from osi_trace.exceptions import TraceFileError
from osi_trace.message_types import TopLevelMessage, message_type_from_name
from osi_trace.utils import bytes_to_human, confirm_output_overwrite, str_to_compression_type

logger = logging.getLogger(__name__)

console = Console()


def resolve_input_type(input_type: str | None) -> TopLevelMessage:
    if input_type is None:
        return TopLevelMessage.UNKNOWN
    try:
        return message_type_from_name(input_type)
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1) from e


def convert(
    file: Path,
    output: OutputPathOption,
    *,
    input_type: InputTypeOption = None,
    topic: Annotated[
        str,
        Parameter(
            name=["--topic"],
            group=OUTPUT_OPTIONS_GROUP,
        ),
    ] = DEFAULT_TOPIC,
    chunk_size: ChunkSizeOption = None,
    compression: CompressionOption = None,
    auto: Annotated[
        bool,
        Parameter(
            name=["--auto"],
            group=OUTPUT_OPTIONS_GROUP,
        ),
    ] = False,
    force: ForceOverwriteOption = False,
) -> None:
    """Convert a trace file to another trace file format.

    The formats are chosen by file extension (.osi, .txth or .mcap). MCAP outputs
    get the net.asam.osi.trace metadata record with a description, the creation
    time and, when the input file name starts with a YYYYMMDDTHHMMSSZ timestamp,
    the zero time of the recording.

    Parameters
    ----------
    file
        Path to the trace file to convert.
    output
        Output trace file.
    input_type
        Message type of a single-channel input.
    topic
        MCAP topic for messages of single-channel inputs.
    chunk_size
        Chunk size of an MCAP output file in bytes.
    compression
        Compression algorithm of an MCAP output file.
    auto
        Pick chunk size and compression by analyzing a .osi input first.
        Explicit --chunk-size and --compression take precedence.
    force
        Force overwrite of output file without confirmation.

    Examples
    --------
    ```
    # Binary trace to MCAP with recommended settings
    osi-trace convert 20240115T093000Z_sv_370_294_1.osi -o trace.mcap --auto

    # MCAP back to text format
    osi-trace convert trace.mcap -o trace_sv_.txth
    ```
    """
    if not file.exists():
        console.print(f"[red]Error: Input file '{file}' does not exist[/red]")
        raise SystemExit(1)

    confirm_output_overwrite(output, force)

    options = ConvertOptions(
        message_type=resolve_input_type(input_type),
        topic=topic,
        chunk_size=DEFAULT_CHUNK_SIZE,
        show_progress=True,
    )

    if auto and output.suffix == MCAP_EXTENSION:
        if file.suffix == OSI_EXTENSION:
            try:
                stats = OsiFileAnalyzer().analyze(file)
            except TraceFileError as e:
                console.print(f"[red]Error: {e}[/red]")
                raise SystemExit(1) from e
            if stats is not None:
                recommended = recommend_mcap_options(stats)
                options.chunk_size = recommended.chunk_size
                options.compression = recommended.compression
                console.print(
                    f"[dim]Auto settings: chunk size {bytes_to_human(recommended.chunk_size)}, "
                    f"compression {compression_name(recommended.compression)}[/dim]"
                )
        else:
            logger.warning("--auto only analyzes .osi inputs, using default MCAP settings")

    if chunk_size is not None:
        options.chunk_size = chunk_size
    if compression is not None:
        options.compression = str_to_compression_type(compression.value)

    console.print(f"[blue]Converting '{file}' to '{output}'[/blue]")
    try:
        result = convert_trace(file, output, options, console=console)
    except TraceFileError as e:
        console.print(f"[red]Error during conversion: {e}[/red]")
        raise SystemExit(1) from e

    console.print("[green]✓ Conversion completed successfully![/green]")
    console.print(f"Converted {result.message_count:,} messages on {len(result.topics)} topic(s)")
    if result.skipped_message_count:
        console.print(f"[yellow]⚠ Skipped {result.skipped_message_count:,} messages[/]")
