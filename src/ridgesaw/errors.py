"""
Exception hierarchy for ridge-saw.

Each error class carries the process exit status the command line reports
for it.
"""


class RidgeSawError(Exception):
    """Base class for fatal ridge-saw errors."""
    exit_status = 1


class UsageError(RidgeSawError):
    """Bad or conflicting command-line arguments."""
    exit_status = 1


class TempFileError(RidgeSawError):
    """A temporary file for detector output could not be created."""
    exit_status = 2


class DataLoadError(RidgeSawError):
    """Detector output is missing, malformed or of the wrong kind."""
    exit_status = 2


class DetectorError(RidgeSawError):
    """The external detector could not be run or exited with an error."""
    exit_status = 3

    def __init__(self, message, returncode=None, stderr=""):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class OutputError(RidgeSawError):
    """Writing to or closing the CSV output failed."""
    exit_status = 4


class GenerationError(RidgeSawError):
    """Random image generation could not be set up or written."""
    exit_status = 5
