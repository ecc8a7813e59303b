"""
Ridge detection for ridge-saw.

The orchestrator only depends on `Detector.detect_lines`. The shipped
implementation runs the external `ridgetool` program and reads back the
line data file it writes.
"""

import os
import subprocess
import tempfile
from contextlib import contextmanager

from ridgesaw.config import DEFAULT_DETECTOR
from ridgesaw.errors import DetectorError, TempFileError
from ridgesaw.io.ridge_data import read_ridge_data
from ridgesaw.tracer import get_tracer, trace


TEMP_PREFIX = "ridge-saw."


class Detector:
    """Interface for anything that turns an image into ridge lines."""

    def detect_lines(self, image_path, scale):
        """Return a RidgeLineSet of the ridges found in image_path."""
        raise NotImplementedError


@contextmanager
def scratch_file(dir=None, suffix="", error_cls=TempFileError):
    """
    Yield the path of a new, uniquely named empty file.

    The file is removed when the block exits, whether or not it raised.
    """
    try:
        fd, path = tempfile.mkstemp(prefix=TEMP_PREFIX, suffix=suffix, dir=dir)
    except OSError as e:
        raise error_cls(f"Failed to create temporary file: {e.strerror or e}") from e
    os.close(fd)
    try:
        yield path
    finally:
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass


def ridgetool_command(executable, image_path, output_path, scale):
    """Argument list for a line-mode ridgetool run."""
    return [
        executable,
        "-l",
        f"-t{scale:f}",
        "-i0",
        str(image_path),
        str(output_path),
    ]


class RidgetoolDetector(Detector):
    """
    Runs ridgetool as a child process.

    Each call blocks until the child exits; there is no timeout.
    """

    def __init__(self, executable=DEFAULT_DETECTOR, temp_dir=None):
        self.executable = executable
        self.temp_dir = temp_dir

    @trace(label="detect_lines")
    def detect_lines(self, image_path, scale):
        tracer = get_tracer()

        with scratch_file(dir=self.temp_dir) as output_path:
            args = ridgetool_command(self.executable, image_path, output_path, scale)
            tracer.event("Running detector", level="DEBUG", args=" ".join(args))

            try:
                result = subprocess.run(
                    args,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.PIPE,
                    text=True,
                )
            except OSError as e:
                raise DetectorError(
                    f"Failed to run '{self.executable}': {e.strerror or e}"
                ) from e

            if result.returncode != 0:
                raise DetectorError(
                    f"'{self.executable}' failed (exit status {result.returncode}):\n"
                    f"{result.stderr.rstrip()}",
                    returncode=result.returncode,
                    stderr=result.stderr,
                )

            data = read_ridge_data(output_path)

        tracer.event("Detected lines", lines=len(data.lines))
        return data
