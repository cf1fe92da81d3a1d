"""Cat command - print the messages of a trace file in text format."""

from pathlib import Path
from typing import Annotated

from cyclopts import Group, Parameter
from rich.console import Console
from rich.markup import escape

from osi_trace.cmd.convert_cmd import resolve_input_type
from osi_trace.cmd.types import InputTypeOption
from osi_trace.convert import open_reader
from osi_trace.exceptions import TraceFileError
from osi_trace.message_types import get_message_type

console_err = Console(stderr=True)
console_out = Console()

OUTPUT_GROUP = Group("Output")


def cat(
    file: Path,
    *,
    input_type: InputTypeOption = None,
    limit: Annotated[
        int | None,
        Parameter(
            name=["-l", "--limit"],
            group=OUTPUT_GROUP,
        ),
    ] = None,
) -> None:
    """Print the messages of a trace file in protobuf text format.

    Parameters
    ----------
    file
        Path to a .osi, .txth or .mcap trace file.
    input_type
        Message type of a single-channel input.
    limit
        Stop after this many messages.
    """
    try:
        reader = open_reader(file, resolve_input_type(input_type))
    except TraceFileError as e:
        console_err.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1) from e

    count = 0
    with reader:
        try:
            for result in reader:
                if limit is not None and count >= limit:
                    break
                info = get_message_type(result.message_type)
                header = f"[bold cyan]{info.type_name}[/]"
                if result.channel_name:
                    header += f" [dim]on[/] [bold]{escape(result.channel_name)}[/]"
                console_out.print(f"{header} [dim]#{count}[/]")
                console_out.print(info.print_text(result.message), markup=False, highlight=False)
                count += 1
        except TraceFileError as e:
            console_err.print(f"[red]Error reading message {count}: {e}[/red]")
            raise SystemExit(1) from e
