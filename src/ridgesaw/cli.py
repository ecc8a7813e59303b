"""
Command-line interface for ridge-saw.

Parses getopt-style options into a RunOptions value, validates the whole
command line before touching any file, and maps errors to exit statuses.
"""

import argparse
import os
import sys
from dataclasses import replace

from ridgesaw.config import (
    load_config, resolve_detector_executable, resolve_temp_dir, save_default_config,
)
from ridgesaw.detector import RidgetoolDetector
from ridgesaw.errors import RidgeSawError, UsageError
from ridgesaw.models import NoiseKind
from ridgesaw.pipeline import RunOptions, run
from ridgesaw.tracer import configure_tracer, get_tracer


PROG = "ridge-saw"

USAGE = """\
Usage: {prog} OPTION... [OUTFILE]

Generate ridge data for self-avoiding walk analysis.

  -i FILE         Load image data from FILE
  -r [TYPE]       Generate random image data [default: S]
  -d SIZE         Size for random tiles [default: 2048]
  -t SCALE        Ridge detection scale [default: 0]
  -n NUM          Target data point count for random generation
  -s SEED         Random seed
  -c, --config FILE
                  Load settings from a YAML configuration file
  --init-config FILE
                  Write the default configuration to FILE and exit
  --trace         Enable runtime tracing on standard error
  --trace-level LEVEL
                  Trace level: ERROR, WARN, INFO or DEBUG [default: INFO]
  --trace-file FILE
                  Also write trace output to FILE
  --trace-json    Emit trace records as JSON
  -h              Display this message and exit

Detect ridge lines and output step count and end-to-end distance for
comparison with self-avoiding walk statistics.  Two modes are
available:

  - If the '-i' option was given, image data is loaded from FILE, and
    the number of data points is determined automatically.

  - If the '-r' option was given, random noise images are generated
    and used to obtain line data.  The '-r' option controls the
    noise function used; the TYPE must be 'S' (Rayleigh speckle,
    default) or 'N' (normal), and must be attached to the option,
    as in '-rN'.  The '-d' option controls how large the generated
    images are.  If the '-n' option is given, images will be
    repeatedly generated until at least NUM data points have been
    written.  The '-s' option allows the random number generator
    seed to be overridden.

If an OUTFILE was specified, CSV data is output to that file;
otherwise, output is to standard output.

The RIDGETOOL environment variable can be set to control the path to
the 'ridgetool' program.
"""


def usage_text():
    return USAGE.format(prog=PROG)


class _Parser(argparse.ArgumentParser):
    """ArgumentParser that reports problems as UsageError instead of exiting."""

    def error(self, message):
        raise UsageError(message[0].upper() + message[1:] + ".")


def build_parser():
    parser = _Parser(prog=PROG, add_help=False)
    parser.add_argument("-i", dest="infile", metavar="FILE")
    parser.add_argument("-r", dest="noise", metavar="TYPE")
    parser.add_argument("--random-default", dest="random_default", action="store_true",
                        help=argparse.SUPPRESS)
    parser.add_argument("-d", dest="size", metavar="SIZE")
    parser.add_argument("-t", dest="scale", metavar="SCALE")
    parser.add_argument("-n", dest="target", metavar="NUM")
    parser.add_argument("-s", dest="seed", metavar="SEED")
    parser.add_argument("-c", "--config", default=None)
    parser.add_argument("--init-config", dest="init_config", default=None)
    parser.add_argument("--trace", action="store_true", default=None)
    parser.add_argument("--trace-level", dest="trace_level", default=None,
                        choices=["ERROR", "WARN", "INFO", "DEBUG"])
    parser.add_argument("--trace-file", dest="trace_file", default=None)
    parser.add_argument("--trace-json", dest="trace_json", action="store_true", default=None)
    parser.add_argument("-h", dest="help", action="store_true")
    parser.add_argument("outfile", nargs="?", default=None)
    return parser


def normalize_argv(argv):
    """
    Rewrite a bare '-r' so its optional TYPE is only taken when attached.

    '-r out.csv' selects the default noise and writes to out.csv, while
    '-rN out.csv' selects normal noise.
    """
    result = []
    for i, arg in enumerate(argv):
        if arg == "--":
            return result + list(argv[i:])
        result.append("--random-default" if arg == "-r" else arg)
    return result


def _parse_int(value, option, minimum=1):
    try:
        number = int(value)
    except (TypeError, ValueError):
        number = None
    if number is None or number < minimum:
        raise UsageError(f"Bad argument '{value}' to -{option} option.")
    return number


def _parse_scale(value):
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = None
    if number is None or not number >= 0:
        raise UsageError(f"Bad argument '{value}' to -t option.")
    return number


def build_options(args, config):
    """
    Validate parsed arguments against each other and merge them with config.

    Raises UsageError on any problem; performs no file or process side effects
    beyond checking that the input image exists.
    """
    random_mode = args.random_default or args.noise is not None
    if args.infile is not None and random_mode:
        raise UsageError("Only one of '-i' or '-r' options may be given.")
    if args.infile is None and not random_mode:
        raise UsageError("You must specify '-r' or '-i' options.")

    changes = {}
    if args.noise is not None:
        try:
            changes["noise"] = NoiseKind(args.noise)
        except ValueError:
            raise UsageError(f"Bad argument '{args.noise}' to -r option.") from None
    if args.size is not None:
        changes["size"] = _parse_int(args.size, "d")
    if args.scale is not None:
        changes["scale"] = _parse_scale(args.scale)
    if args.target is not None:
        changes["target"] = _parse_int(args.target, "n")
    if args.seed is not None:
        changes["seed"] = _parse_int(args.seed, "s")

    if args.infile is not None and not os.path.isfile(args.infile):
        raise UsageError(f"Input file '{args.infile}' not found.")

    return RunOptions(
        generation=replace(config.generation, **changes),
        infile=args.infile,
        outfile=args.outfile,
        temp_dir=resolve_temp_dir(config.detector),
    )


def _configure_tracing(args, config):
    tracing = config.tracing
    file_path = args.trace_file or tracing.file_path
    try:
        configure_tracer(
            enabled=tracing.enabled if args.trace is None else args.trace,
            level=str(args.trace_level or tracing.level),
            file_path=file_path,
            json_output=tracing.json_output if args.trace_json is None else args.trace_json,
        )
    except OSError as e:
        raise UsageError(f"Failed to open trace file '{file_path}': {e.strerror or e}") from e


def _report(error):
    print(f"ERROR: {error}\n", file=sys.stderr)
    if isinstance(error, UsageError):
        print(usage_text(), file=sys.stderr, end="")


def main(argv=None):
    """Main entry point. Returns the process exit status."""
    if argv is None:
        argv = sys.argv[1:]

    try:
        args = build_parser().parse_args(normalize_argv(argv))

        if args.help:
            print(usage_text(), end="")
            return 0

        if args.init_config:
            save_default_config(args.init_config)
            print(f"Default configuration saved to: {args.init_config}")
            return 0

        try:
            config = load_config(args.config)
        except (OSError, ValueError) as e:
            raise UsageError(str(e)) from e

        options = build_options(args, config)
        _configure_tracing(args, config)

        detector = RidgetoolDetector(
            executable=resolve_detector_executable(config.detector),
            temp_dir=options.temp_dir,
        )

        tracer = get_tracer()
        with tracer.span("cli_run", module="cli", infile=options.infile,
                         outfile=options.outfile):
            count = run(options, detector)
        tracer.event("Run complete", records=count)
        return 0

    except RidgeSawError as e:
        _report(e)
        return e.exit_status

    finally:
        get_tracer().config.close()


if __name__ == "__main__":
    sys.exit(main())
