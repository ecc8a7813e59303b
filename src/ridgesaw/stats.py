"""
Self-avoiding walk statistics for detected ridge lines.

Each line contributes its step count and the end-to-end distance between
the whole pixels containing its first and last points.
"""

import math

from ridgesaw.errors import DataLoadError, OutputError
from ridgesaw.models import DataKind
from ridgesaw.tracer import get_tracer, trace


def saw_stats(line):
    """
    Return (step_count, distance) for one ridge line.

    Coordinates are floored before differencing, so the distance is
    measured on the integer pixel lattice.
    """
    start, end = line.start, line.end
    dx = math.floor(end.col) - math.floor(start.col)
    dy = math.floor(end.row) - math.floor(start.row)
    return line.step_count, math.sqrt(dx * dx + dy * dy)


def format_record(steps, distance):
    return f"{steps}, {distance:f}\n"


@trace(label="write_saw_stats")
def write_saw_stats(data, fp):
    """
    Write one CSV record per line of data to fp.

    Returns the number of records written. Raises DataLoadError if data
    does not hold lines and OutputError if writing fails.
    """
    tracer = get_tracer()

    if data.kind != DataKind.LINES:
        raise DataLoadError(f"Expected line data, got {data.kind.value}")

    count = 0
    try:
        for line in data.lines:
            fp.write(format_record(*saw_stats(line)))
            count += 1
    except OSError as e:
        raise OutputError(f"Output failed: {e.strerror or e}") from e

    tracer.event("Wrote records", count=count)
    return count
