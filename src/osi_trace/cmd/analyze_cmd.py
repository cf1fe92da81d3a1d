"""Analyze command - statistics and recommended MCAP settings for a binary trace."""

from pathlib import Path
from typing import Annotated

from cyclopts import Group, Parameter
from rich.console import Console

from osi_trace.analyzer import (
    OsiFileAnalyzer,
    format_recommendation,
    format_statistics,
    recommend_mcap_options,
)
from osi_trace.config import ANALYSIS_SAMPLE_SIZE, TARGET_CHUNK_DURATION_SECONDS
from osi_trace.exceptions import AnalysisError

console = Console()

ANALYSIS_GROUP = Group("Analysis Options")


def analyze(
    file: Path,
    *,
    sample_size: Annotated[
        int,
        Parameter(
            name=["--sample-size"],
            group=ANALYSIS_GROUP,
        ),
    ] = ANALYSIS_SAMPLE_SIZE,
    target_duration: Annotated[
        float,
        Parameter(
            name=["--target-duration"],
            group=ANALYSIS_GROUP,
        ),
    ] = TARGET_CHUNK_DURATION_SECONDS,
) -> None:
    """Analyze a binary OSI trace and recommend MCAP writer settings.

    Message sizes are collected from every frame, timestamps only from an evenly
    spaced sample. The recommended chunk size holds roughly ``target_duration``
    seconds of data.

    Parameters
    ----------
    file
        Path to the .osi trace file.
    sample_size
        Number of messages whose timestamps are sampled, 0 samples all of them.
    target_duration
        Target duration of one MCAP chunk in seconds.
    """
    try:
        stats = OsiFileAnalyzer().analyze(file, sample_size=sample_size)
    except AnalysisError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise SystemExit(1) from e

    if stats is None:
        console.print(f"[red]Error: could not analyze '{file}'[/red]")
        raise SystemExit(1)

    console.print(format_statistics(stats))
    console.print(format_recommendation(recommend_mcap_options(stats, target_duration)))
