"""
Command-line front end.

Usage:
    recordfix -d DATAFILE -l LENGTH (-p POS | -i LISTFILE | -x | -y) [-u]

Report only unless -u is given.
"""

from __future__ import annotations

import sys
import logging
import argparse
from typing import Optional

from . import __version__
from .classifier import DEFAULT_FILL_VALUE, DELETE_NULL_THRESHOLD
from .config import RepairConfig
from .coordinator import run_repair
from .errors import ConfigurationError, FileOpenError, OffsetListError
from .reindex import ItestHook

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1

EPILOG = """\
Run notes:
  - -x and -y can be combined. Neither can be used with -p or -i.
  - Running -x (hex zero full-detection) should be followed by ITEST (-t)
    or a reindex of the data file.
  - The record size should be one more than the size in the XXX.DEF file,
    for the record divider character (0xFA).
  - When both -p and -i are given, the single position is processed first.
"""


def _non_negative_int(text: str) -> int:
    try:
        value = int(text, 10)
    except ValueError:
        raise argparse.ArgumentTypeError(f"{text!r} is not a number")
    if value < 0:
        raise argparse.ArgumentTypeError(f"{text!r} must not be negative")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="recordfix",
        description="Report and correct invalid characters in "
                    "fixed-length-record data files.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    req = parser.add_argument_group("mandatory arguments")
    req.add_argument("-d", "--data-file", default="",
                     help="Data file including path and extension "
                          "(e.g. /ppro/data/SOH0001.TXT)")
    req.add_argument("-l", "--length", type=_non_negative_int, default=None,
                     help="Record size (file definition size +1 for the "
                          "record separator)")

    mode = parser.add_argument_group("one of")
    mode.add_argument("-p", "--position", type=_non_negative_int,
                      default=None,
                      help="Record position (byte offset) to check")
    mode.add_argument("-i", "--input-file", default="",
                      help="File with one record position per line")
    mode.add_argument("-y", "--full-detection", action="store_true",
                      help="Full-detection mode: replace every non-null "
                           "invalid byte with the fill character")
    mode.add_argument("-x", "--zero-detection", action="store_true",
                      help="Hex zero full-detection mode: replace 0x00 "
                           "with 0xFF")

    opt = parser.add_argument_group("optional arguments")
    opt.add_argument("-f", "--fill", type=_non_negative_int,
                     default=DEFAULT_FILL_VALUE,
                     help="ASCII fill value. Default is 32 (space)")
    opt.add_argument("-u", "--update", action="store_true",
                     help="Update mode. Default is report only")
    opt.add_argument("-t", "--itest", action="store_true",
                     help="Run ITEST after processing. Highly recommended "
                          "after -x")
    opt.add_argument("-v", "--verbose", action="store_true",
                     help="Log every byte-level decision")
    opt.add_argument("--null-threshold", type=_non_negative_int,
                     default=DELETE_NULL_THRESHOLD,
                     help="Blank the whole record when it has more nulls "
                          f"than this (default {DELETE_NULL_THRESHOLD})")
    opt.add_argument("--workers", type=_non_negative_int, default=1,
                     help="Worker processes for -x/-y scans (0 = auto)")
    opt.add_argument("--version", action="version",
                     version=f"%(prog)s {__version__}")
    return parser


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _print_settings(config: RepairConfig) -> None:
    print(f"DATAFILE: {config.data_file}")
    print(f"Setting record size to: {config.record_size}")
    if config.position is not None:
        print(f"Setting record position to: {config.position}")
    if config.offset_list:
        print(f"Input file: {config.offset_list}")
    if config.full_detection:
        print("Full-detection mode set.")
    if config.zero_detection:
        print("Zero-detection mode set.")
    if config.update:
        print("Update mode set.")
    fill = config.fill_value
    print(f"Using fill character: '{chr(fill)}' (hex: {fill:x}; dec: {fill}).")


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.workers == 0:
        # Auto only splits full/zero scans; positional runs stay in one process
        if args.full_detection or args.zero_detection:
            from .parallel import default_worker_count
            args.workers = default_worker_count()
        else:
            args.workers = 1

    setup_logging(args.verbose)

    try:
        config = RepairConfig.from_args(args)
    except ConfigurationError as e:
        print(f"Not all parameters provided: {e}")
        print("Error detected. Program shutting down.")
        return EXIT_FATAL

    _print_settings(config)
    hook = ItestHook() if config.reindex else None

    try:
        stats = run_repair(config, hook)
    except (OffsetListError, FileOpenError, ConfigurationError) as e:
        logger.error("%s", e)
        print(f"ERROR: {e}")
        print("Error detected. Program shutting down.")
        return EXIT_FATAL

    print()
    print(stats.summary)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
