"""Tests for running the external ridge detector."""

import os
import tempfile

import pytest

from ridgesaw.detector import RidgetoolDetector, ridgetool_command, scratch_file
from ridgesaw.errors import DataLoadError, DetectorError, TempFileError


def _leftover_temp_files(directory):
    return [name for name in os.listdir(directory) if name.startswith("ridge-saw.")]


class TestRidgetoolCommand:

    def test_argument_list(self):
        """Line mode, formatted scale and zero-based indexing, no shell quoting."""
        args = ridgetool_command("ridgetool", "in image.tif", "/tmp/out", 1.5)

        assert args == ["ridgetool", "-l", "-t1.500000", "-i0", "in image.tif", "/tmp/out"]

    def test_zero_scale(self):
        assert ridgetool_command("rt", "a", "b", 0)[2] == "-t0.000000"


class TestScratchFile:

    def test_removed_on_exit(self, temp_dir):
        with scratch_file(dir=temp_dir) as path:
            assert os.path.exists(path)

        assert not os.path.exists(path)

    def test_removed_on_error(self, temp_dir):
        with pytest.raises(RuntimeError):
            with scratch_file(dir=temp_dir) as path:
                raise RuntimeError("boom")

        assert not os.path.exists(path)

    def test_creation_failure(self, temp_dir):
        with pytest.raises(TempFileError) as excinfo:
            with scratch_file(dir=os.path.join(temp_dir, "missing")):
                pass

        assert excinfo.value.exit_status == 2


class TestRidgetoolDetector:
    """Tests against a fake ridgetool executable."""

    def test_detects_lines(self, fake_ridgetool, input_image, temp_dir):
        detector = RidgetoolDetector(executable=fake_ridgetool.path, temp_dir=temp_dir)

        data = detector.detect_lines(input_image, 2.0)

        assert [len(line.points) for line in data.lines] == [3, 5, 1]
        call = fake_ridgetool.calls[0]
        assert call[:4] == ["-l", "-t2.000000", "-i0", input_image]

    def test_output_file_removed(self, fake_ridgetool, input_image):
        scratch = tempfile.mkdtemp()
        detector = RidgetoolDetector(executable=fake_ridgetool.path, temp_dir=scratch)

        detector.detect_lines(input_image, 0.0)

        assert _leftover_temp_files(scratch) == []
        os.rmdir(scratch)

    def test_nonzero_exit(self, fake_ridgetool, input_image, temp_dir):
        """A failing detector raises with its exit status and stderr."""
        fake_ridgetool.fail_with(7)
        detector = RidgetoolDetector(executable=fake_ridgetool.path, temp_dir=temp_dir)

        with pytest.raises(DetectorError) as excinfo:
            detector.detect_lines(input_image, 0.0)

        assert excinfo.value.exit_status == 3
        assert excinfo.value.returncode == 7
        assert "fake ridgetool failure" in excinfo.value.stderr
        assert _leftover_temp_files(temp_dir) == []

    def test_missing_executable(self, input_image, temp_dir):
        detector = RidgetoolDetector(
            executable=os.path.join(temp_dir, "no-such-ridgetool"), temp_dir=temp_dir,
        )

        with pytest.raises(DetectorError, match="Failed to run"):
            detector.detect_lines(input_image, 0.0)

        assert _leftover_temp_files(temp_dir) == []

    def test_malformed_output(self, fake_ridgetool, input_image, temp_dir):
        garbage = os.path.join(temp_dir, "garbage.rio")
        with open(garbage, "wb") as f:
            f.write(b"not ridge data")
        fake_ridgetool.serve(garbage)
        detector = RidgetoolDetector(executable=fake_ridgetool.path, temp_dir=temp_dir)

        with pytest.raises(DataLoadError) as excinfo:
            detector.detect_lines(input_image, 0.0)

        assert excinfo.value.exit_status == 2
