"""
Reader and writer for ridge detector data files.

The detector writes its results in a small binary container. All
integers are big-endian:

    magic        3 bytes   b"RIO"
    kind         1 byte    b"L" (lines) or b"P" (points)
    count        uint32    number of lines (L) or points (P)
    entries      lines:  uint32 n followed by n points, n >= 1
                 points: one point each
    point        float64 row, float64 col (sub-pixel position)

No bytes may follow the last entry.
"""

import os

import numpy as np
from pydantic import ValidationError

from ridgesaw.errors import DataLoadError
from ridgesaw.models import DataKind, RidgeLine, RidgeLineSet, RidgePoint
from ridgesaw.tracer import get_tracer, trace


MAGIC = b"RIO"
KIND_CODES = {DataKind.LINES: b"L", DataKind.POINTS: b"P"}
COUNT_DTYPE = np.dtype(">u4")
POINT_DTYPE = np.dtype([("row", ">f8"), ("col", ">f8")])
HEADER_SIZE = len(MAGIC) + 1 + COUNT_DTYPE.itemsize


@trace(label="read_ridge_data")
def read_ridge_data(path):
    """
    Load a ridge data file.

    Raises DataLoadError if the file cannot be read or is malformed.
    """
    tracer = get_tracer()

    try:
        with open(path, "rb") as f:
            buf = f.read()
    except OSError as e:
        raise DataLoadError(
            f"Failed to load ridge data from '{path}': {e.strerror or e}"
        ) from e

    data = parse_ridge_data(buf, source=path)
    tracer.event("Loaded ridge data", kind=data.kind.value, lines=len(data.lines),
                 nbytes=len(buf))
    return data


def parse_ridge_data(buf, source="<buffer>"):
    """Parse the bytes of a ridge data file into a RidgeLineSet."""
    if len(buf) < HEADER_SIZE or buf[:len(MAGIC)] != MAGIC:
        raise DataLoadError(f"Failed to load ridge data from '{source}': not a ridge data file")

    code = buf[len(MAGIC):len(MAGIC) + 1]
    kinds = {v: k for k, v in KIND_CODES.items()}
    if code not in kinds:
        raise DataLoadError(
            f"Failed to load ridge data from '{source}': unknown data kind {code!r}"
        )
    kind = kinds[code]

    offset = len(MAGIC) + 1
    count = _read_count(buf, offset, source)
    offset += COUNT_DTYPE.itemsize

    lines = []
    try:
        if kind == DataKind.POINTS:
            coords = _read_points(buf, offset, count, source)
            offset += count * POINT_DTYPE.itemsize
            lines = [_make_line(coords[i:i + 1]) for i in range(count)]
        else:
            for _ in range(count):
                n = _read_count(buf, offset, source)
                offset += COUNT_DTYPE.itemsize
                if n < 1:
                    raise DataLoadError(
                        f"Failed to load ridge data from '{source}': empty line"
                    )
                lines.append(_make_line(_read_points(buf, offset, n, source)))
                offset += n * POINT_DTYPE.itemsize
    except ValidationError as e:
        raise DataLoadError(f"Failed to load ridge data from '{source}': {e}") from e

    if offset != len(buf):
        raise DataLoadError(
            f"Failed to load ridge data from '{source}': "
            f"{len(buf) - offset} unexpected trailing bytes"
        )

    return RidgeLineSet(kind=kind, lines=lines)


def _read_count(buf, offset, source):
    if offset + COUNT_DTYPE.itemsize > len(buf):
        raise DataLoadError(f"Failed to load ridge data from '{source}': truncated file")
    return int(np.frombuffer(buf, dtype=COUNT_DTYPE, count=1, offset=offset)[0])


def _read_points(buf, offset, n, source):
    if offset + n * POINT_DTYPE.itemsize > len(buf):
        raise DataLoadError(f"Failed to load ridge data from '{source}': truncated file")
    if n == 0:
        return np.empty(0, dtype=POINT_DTYPE)
    return np.frombuffer(buf, dtype=POINT_DTYPE, count=n, offset=offset)


def _make_line(coords):
    return RidgeLine(points=[
        RidgePoint(row=float(p["row"]), col=float(p["col"])) for p in coords
    ])


def encode_ridge_data(data):
    """Serialize a RidgeLineSet to bytes."""
    parts = [MAGIC, KIND_CODES[data.kind]]

    if data.kind == DataKind.POINTS:
        points = [p for line in data.lines for p in line.points]
        parts.append(np.array(len(points), dtype=COUNT_DTYPE).tobytes())
        parts.append(_points_array(points).tobytes())
    else:
        parts.append(np.array(len(data.lines), dtype=COUNT_DTYPE).tobytes())
        for line in data.lines:
            parts.append(np.array(len(line.points), dtype=COUNT_DTYPE).tobytes())
            parts.append(_points_array(line.points).tobytes())

    return b"".join(parts)


def _points_array(points):
    arr = np.empty(len(points), dtype=POINT_DTYPE)
    arr["row"] = [p.row for p in points]
    arr["col"] = [p.col for p in points]
    return arr


def write_ridge_data(data, path):
    """Write a RidgeLineSet to a ridge data file."""
    dirname = os.path.dirname(path)
    if dirname:
        os.makedirs(dirname, exist_ok=True)
    with open(path, "wb") as f:
        f.write(encode_ridge_data(data))
