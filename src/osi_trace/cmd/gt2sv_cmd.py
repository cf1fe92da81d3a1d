"""gt2sv command - wrap GroundTruth frames into SensorView frames."""

from pathlib import Path

from rich.console import Console

from osi_trace.cmd.types import ForceOverwriteOption
from osi_trace.convert import ConvertOptions, convert_trace, ground_truth_to_sensor_view
from osi_trace.exceptions import TraceFileError
from osi_trace.message_types import TopLevelMessage
from osi_trace.utils import confirm_output_overwrite

console = Console()


def gt2sv(
    file: Path,
    output: Path,
    *,
    force: ForceOverwriteOption = False,
) -> None:
    """Convert a GroundTruth trace into a SensorView trace.

    Every GroundTruth frame becomes the global_ground_truth of a SensorView
    frame, which also takes over the timestamp and host vehicle id. Tools that
    only accept SensorView input can then replay ground truth recordings.

    Parameters
    ----------
    file
        GroundTruth trace file.
    output
        SensorView trace file to write.
    force
        Force overwrite of output file without confirmation.
    """
    if not file.exists():
        console.print(f"[red]Error: Input file '{file}' does not exist[/red]")
        raise SystemExit(1)

    confirm_output_overwrite(output, force)

    options = ConvertOptions(message_type=TopLevelMessage.GROUND_TRUTH, topic="SensorView")
    try:
        result = convert_trace(file, output, options, transform=ground_truth_to_sensor_view)
    except TraceFileError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1) from e

    console.print(
        f"Converted {result.message_count:,} frames from GroundTruth to SensorView."
    )
