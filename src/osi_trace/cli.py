"""Main CLI entry point for osi-trace using Cyclopts."""

import logging
import os

from cyclopts import App
from rich.console import Console
from rich.logging import RichHandler

from osi_trace.cmd import analyze_cmd, cat_cmd, convert_cmd, gt2sv_cmd

app = App(
    name="osi-trace",
    help="Read, convert and analyze OSI trace files (.osi, .txth, .mcap).",
    help_format="rich",
)


app.command(name="analyze")(analyze_cmd.analyze)
app.command(name="convert")(convert_cmd.convert)
app.command(name="cat")(cat_cmd.cat)
app.command(name="gt2sv")(gt2sv_cmd.gt2sv)


def setup_logging(level: str | int = logging.INFO) -> None:
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


def main() -> None:
    setup_logging(os.environ.get("OSI_TRACE_LOG_LEVEL", "INFO").upper())
    app()


if __name__ == "__main__":
    main()
