"""Tests for the ridge line data models."""

import math

import pytest
from pydantic import ValidationError

from ridgesaw.models import (
    DataKind, NoiseKind, RidgeLine, RidgeLineSet, RidgePoint, line_from_coords,
)


class TestRidgeLine:

    def test_empty_line_rejected(self):
        with pytest.raises(ValidationError):
            RidgeLine(points=[])

    def test_endpoints(self):
        line = line_from_coords([(1, 2), (3, 4), (5, 6)])

        assert line.start == RidgePoint(row=1, col=2)
        assert line.end == RidgePoint(row=5, col=6)
        assert line.step_count == 2

    def test_infinite_coordinate_rejected(self):
        with pytest.raises(ValidationError):
            RidgePoint(row=math.inf, col=0.0)


class TestRidgeLineSet:

    def test_defaults_to_lines(self):
        data = RidgeLineSet()

        assert data.kind == DataKind.LINES
        assert len(data) == 0

    def test_noise_codes(self):
        assert NoiseKind("S") is NoiseKind.SPECKLE
        assert NoiseKind("N") is NoiseKind.NORM
