"""
Random noise tiles for ridge statistics.

Fills a square float32 surface with i.i.d. samples from the selected
distribution and writes it to a TIFF file the detector can read.
"""

import sys

import cv2
import numpy as np

from ridgesaw.errors import GenerationError
from ridgesaw.models import NoiseKind
from ridgesaw.tracer import get_tracer, trace


def new_surface(size):
    """Allocate a size x size float32 surface."""
    return np.zeros((size, size), dtype=np.float32)


class SurfaceGenerator:
    """
    Seeded source of noise surfaces.

    With no seed a fresh one is drawn from OS entropy; either way the seed
    in use is available as `seed` so a run can be repeated.
    """

    def __init__(self, noise=NoiseKind.SPECKLE, seed=None):
        self.noise = NoiseKind(noise)
        if seed is None:
            seed = np.random.SeedSequence().entropy
        self.seed = int(seed)
        self.rng = np.random.default_rng(self.seed)

    @property
    def name(self):
        """Name of the underlying bit generator."""
        return type(self.rng.bit_generator).__name__

    def report_seed(self, stream=None):
        """Print the seed and generator name for reproducibility records."""
        print(f"Random number seed: {self.seed} ({self.name})", file=stream or sys.stderr)

    def fill(self, surface):
        """Overwrite surface in place with fresh samples and return it."""
        if self.noise == NoiseKind.NORM:
            samples = self.rng.standard_normal(size=surface.shape)
        else:
            samples = self.rng.rayleigh(scale=1.0, size=surface.shape)
        surface[...] = samples
        return surface


@trace(label="write_surface_tiff")
def write_surface_tiff(surface, path):
    """
    Encode a float32 surface as a single-channel TIFF.

    The path must carry a .tif or .tiff extension. Raises GenerationError
    if OpenCV cannot write the file.
    """
    tracer = get_tracer()

    try:
        ok = cv2.imwrite(str(path), np.ascontiguousarray(surface, dtype=np.float32))
    except cv2.error as e:
        raise GenerationError(f"Failed to write image data to '{path}': {e}") from e
    if not ok:
        raise GenerationError(f"Failed to write image data to '{path}'.")

    tracer.event("Wrote surface", path=str(path), surface=surface)
