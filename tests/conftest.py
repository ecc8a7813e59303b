"""Pytest fixtures for ridge-saw tests."""

import os
import stat
import sys
import tempfile

import cv2
import numpy as np
import pytest


FAKE_RIDGETOOL = """#!{python}
import os
import shutil
import sys

log = os.environ.get("FAKE_RIDGETOOL_LOG")
if log:
    with open(log, "a") as f:
        f.write("\\t".join(sys.argv[1:]) + "\\n")

status = int(os.environ.get("FAKE_RIDGETOOL_STATUS", "0"))
if status:
    sys.stderr.write("fake ridgetool failure\\n")
    sys.exit(status)

if not os.path.exists(sys.argv[-2]):
    sys.stderr.write("cannot open input image\\n")
    sys.exit(1)

shutil.copyfile(os.environ["FAKE_RIDGETOOL_DATA"], sys.argv[-1])
"""


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test outputs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def sample_lines():
    """Three ridge lines with 3, 5 and 1 points."""
    from ridgesaw.models import RidgeLineSet, line_from_coords

    return RidgeLineSet(lines=[
        line_from_coords([(0.5, 0.5), (1.5, 1.2), (3.9, 4.1)]),
        line_from_coords([(10.2, 5.9), (10.4, 8.0), (10.5, 12.0), (10.7, 16.0), (10.8, 20.1)]),
        line_from_coords([(7.0, 7.0)]),
    ])


@pytest.fixture
def ridge_data_file(temp_dir, sample_lines):
    """sample_lines written as a detector output file."""
    from ridgesaw.io.ridge_data import write_ridge_data

    path = os.path.join(temp_dir, "lines.rio")
    write_ridge_data(sample_lines, path)
    return path


@pytest.fixture
def input_image(temp_dir):
    """A small grayscale image on disk."""
    img = np.full((32, 32), 255, dtype=np.uint8)
    cv2.line(img, (4, 16), (28, 16), 0, 2)
    path = os.path.join(temp_dir, "input.png")
    cv2.imwrite(path, img)
    return path


class FakeRidgetool:
    """Handle on the fake detector script and its call log."""

    def __init__(self, path, log_path, monkeypatch):
        self.path = path
        self.log_path = log_path
        self._monkeypatch = monkeypatch

    def fail_with(self, status):
        self._monkeypatch.setenv("FAKE_RIDGETOOL_STATUS", str(status))

    def serve(self, data_path):
        self._monkeypatch.setenv("FAKE_RIDGETOOL_DATA", data_path)

    @property
    def calls(self):
        if not os.path.exists(self.log_path):
            return []
        with open(self.log_path, encoding="utf-8") as f:
            return [line.rstrip("\n").split("\t") for line in f]


@pytest.fixture
def fake_ridgetool(temp_dir, ridge_data_file, monkeypatch):
    """
    Install an executable stand-in for ridgetool via RIDGETOOL.

    It copies ridge_data_file to the requested output path and logs its
    arguments.
    """
    path = os.path.join(temp_dir, "fake-ridgetool")
    with open(path, "w", encoding="utf-8") as f:
        f.write(FAKE_RIDGETOOL.format(python=sys.executable))
    os.chmod(path, os.stat(path).st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    log_path = os.path.join(temp_dir, "ridgetool.log")
    monkeypatch.setenv("RIDGETOOL", path)
    monkeypatch.setenv("FAKE_RIDGETOOL_LOG", log_path)
    monkeypatch.setenv("FAKE_RIDGETOOL_DATA", ridge_data_file)
    monkeypatch.delenv("FAKE_RIDGETOOL_STATUS", raising=False)
    return FakeRidgetool(path, log_path, monkeypatch)


@pytest.fixture(autouse=True)
def tracer_disabled():
    """Leave the global tracer disabled between tests."""
    from ridgesaw.tracer import configure_tracer

    yield
    configure_tracer(enabled=False)
