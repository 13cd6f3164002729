"""
readahead - show fs automatic read-ahead usage.

Counts read-ahead pages that were never used, and prints a log2
histogram of the time (msecs) from page allocation to first access.

Requirements: BCC (bpfcc-tools), root privileges
Install: apt install bpfcc-tools python3-bpfcc (Debian/Ubuntu)
         dnf install bcc-tools python3-bcc (Fedora/RHEL)
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from typing import Optional

from . import __version__
from .attach import ProbeGroup
from .errors import ReadaheadError
from .kernel import KernelSymbols, bump_memlock_rlimit, load_program
from .report import read_snapshot
from .variants import select_variant
from .window import CancellationToken, ObservationWindow

VERSION = f"readahead {__version__}"

# 128 + SIGINT, as a shell reports a Ctrl-C.
EXIT_INTERRUPTED = 130

EXAMPLES = """examples:
    readahead              # summarize read-ahead usage until Ctrl-C
    readahead -d 10        # trace for 10 seconds only
"""

log = logging.getLogger(__name__)


class Color:
    RED     = "\033[91m"
    RESET   = "\033[0m"


@dataclass(frozen=True)
class RunConfiguration:
    duration: Optional[int] = None   # None = until Ctrl-C
    verbose: bool = False

    @classmethod
    def from_args(cls, args):
        return cls(duration=args.duration, verbose=args.verbose)


def positive_duration(text):
    try:
        value = int(text, 10)
    except ValueError:
        value = 0
    if value <= 0:
        raise argparse.ArgumentTypeError(f"Invalid duration: {text}")
    return value


def build_parser():
    parser = argparse.ArgumentParser(
        prog="readahead",
        description="Show fs automatic read-ahead usage.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EXAMPLES,
    )
    parser.add_argument(
        "-d", "--duration", type=positive_duration, default=None,
        metavar="DURATION",
        help="Duration to trace, in seconds (default: until Ctrl-C)"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true",
        help="Verbose debug output"
    )
    parser.add_argument("--version", action="version", version=VERSION)
    return parser


def run(config, token=None, out=None, resolver=None, load=None, bump_rlimit=None,
        window_factory=ObservationWindow):
    """
    One tracing session: load, select, attach, observe, report, tear down.

    Raises ReadaheadError subclasses for every fatal condition. Nothing is
    printed to ``out`` unless the probes were attached. SIGINT/SIGTERM only
    end the window once tracing has started; before that a Ctrl-C raises
    KeyboardInterrupt, which still unwinds through the probe teardown.
    """
    out = out if out is not None else sys.stdout
    token = token if token is not None else CancellationToken()
    (bump_rlimit or bump_memlock_rlimit)()
    bpf = (load or load_program)(verbose=config.verbose)
    try:
        variant = select_variant(resolver if resolver is not None else KernelSymbols())
        with ProbeGroup(bpf) as group:
            group.attach_all(variant)

            token.install()
            try:
                print("Tracing fs read-ahead ... Hit Ctrl-C to end.", file=out)
                out.flush()
                window_factory(config.duration, token).run()
            finally:
                token.restore()
            print(file=out)

            snapshot = read_snapshot(bpf)
            print(snapshot.render(), file=out)
        return snapshot
    finally:
        cleanup = getattr(bpf, "cleanup", None)
        if cleanup is not None:
            cleanup()


def main(argv=None):
    args = build_parser().parse_args(argv)
    config = RunConfiguration.from_args(args)

    logging.basicConfig(
        level=logging.DEBUG if config.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        run(config)
    except ReadaheadError as e:
        print(f"{Color.RED}ERROR: {e}{Color.RESET}", file=sys.stderr)
        return e.exit_code
    except KeyboardInterrupt:
        print(f"{Color.RED}Interrupted, no report produced{Color.RESET}", file=sys.stderr)
        return EXIT_INTERRUPTED
    return 0
