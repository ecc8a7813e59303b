"""
Run orchestration for ridge-saw.

Drives either a single detection on an existing image or the repeated
generate/detect/emit loop over random noise tiles.
"""

import sys
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Optional

from ridgesaw.config import GenerationConfig
from ridgesaw.detector import scratch_file
from ridgesaw.errors import GenerationError, OutputError
from ridgesaw.noise import SurfaceGenerator, new_surface, write_surface_tiff
from ridgesaw.stats import write_saw_stats
from ridgesaw.tracer import get_tracer, trace


@dataclass(frozen=True)
class RunOptions:
    """Fully validated description of one run."""
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    infile: Optional[str] = None  # None: generate random tiles
    outfile: Optional[str] = None  # None: standard output
    temp_dir: Optional[str] = None

    @property
    def generate(self):
        return self.infile is None


@contextmanager
def open_output(outfile=None):
    """
    Yield a writable text stream for CSV records.

    Opens (truncating) outfile, or uses standard output when it is None.
    Open, flush and close failures raise OutputError.
    """
    if outfile is None:
        yield sys.stdout
        try:
            sys.stdout.flush()
        except OSError as e:
            raise OutputError(f"Output failed: {e.strerror or e}") from e
        return

    try:
        fp = open(outfile, "w", encoding="utf-8", newline="\n")
    except OSError as e:
        raise OutputError(f"Failed to open output file '{outfile}': {e.strerror or e}") from e

    try:
        yield fp
    except BaseException:
        fp.close()
        raise

    try:
        fp.close()
    except OSError as e:
        raise OutputError(f"Failed to close output file '{outfile}': {e.strerror or e}") from e


@trace(label="analyze_image")
def analyze_image(image_path, detector, scale, fp):
    """Detect ridges in image_path and write their statistics. Returns the record count."""
    data = detector.detect_lines(image_path, scale)
    return write_saw_stats(data, fp)


@trace(label="generate_and_analyze")
def generate_and_analyze(generation, detector, fp, temp_dir=None, generator=None):
    """
    Repeatedly analyze random noise tiles.

    Runs once when generation.target is None; otherwise keeps generating
    until at least that many records have been written. Returns the total
    record count.
    """
    tracer = get_tracer()

    if generator is None:
        generator = SurfaceGenerator(generation.noise, generation.seed)
        generator.report_seed()

    surface = new_surface(generation.size)
    emitted = 0
    iteration = 0

    with scratch_file(dir=temp_dir, suffix=".tif", error_cls=GenerationError) as image_path:
        while True:
            with tracer.span(f"tile_{iteration}", module="pipeline"):
                generator.fill(surface)
                write_surface_tiff(surface, image_path)
                count = analyze_image(image_path, detector, generation.scale, fp)

            emitted += count
            iteration += 1
            if count == 0:
                tracer.event("Tile produced no ridge lines", level="WARN", iteration=iteration)
            tracer.event("Progress", emitted=emitted, target=generation.target)

            if generation.target is None or emitted >= generation.target:
                break

    return emitted


@trace(label="run")
def run(options, detector):
    """Execute a run described by options. Returns the number of records written."""
    with open_output(options.outfile) as fp:
        if options.generate:
            return generate_and_analyze(
                options.generation, detector, fp, temp_dir=options.temp_dir,
            )
        return analyze_image(options.infile, detector, options.generation.scale, fp)
