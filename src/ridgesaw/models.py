"""
Pydantic data models for ridge line data.

Detector output is parsed into these validated models before statistics
are computed from it.
"""

import math
from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DataKind(str, Enum):
    """Kind of entries held in a ridge data file."""
    POINTS = "points"
    LINES = "lines"


class NoiseKind(str, Enum):
    """Noise distributions available for random tile generation."""
    SPECKLE = "S"  # Rayleigh, scale 1
    NORM = "N"  # standard normal


class RidgePoint(BaseModel):
    """A sub-pixel ridge location."""
    row: float
    col: float

    model_config = ConfigDict(extra="forbid", frozen=True)

    @field_validator("row", "col")
    @classmethod
    def _finite(cls, value):
        if not math.isfinite(value):
            raise ValueError(f"coordinate must be finite, got {value}")
        return value


class RidgeLine(BaseModel):
    """One detected ridge polyline, ordered from start to end."""
    points: List[RidgePoint] = Field(..., min_length=1)

    model_config = ConfigDict(extra="forbid")

    @property
    def start(self):
        return self.points[0]

    @property
    def end(self):
        return self.points[-1]

    @property
    def step_count(self):
        """Number of segments in the line; zero for a single point."""
        return len(self.points) - 1


class RidgeLineSet(BaseModel):
    """Ordered collection of ridge lines loaded from one detector run."""
    kind: DataKind = DataKind.LINES
    lines: List[RidgeLine] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid")

    def __len__(self):
        return len(self.lines)


def line_from_coords(coords):
    """
    Build a RidgeLine from a sequence of (row, col) pairs.
    """
    return RidgeLine(points=[RidgePoint(row=r, col=c) for r, c in coords])
