"""
Command-Line Interface (CLI) setup for the Video Clipper.

This module uses Python's `argparse` to define and parse the command-line
arguments that control the application's behavior. Values given here
override the settings file.
"""
import argparse
from pathlib import Path

from .config.common import DEFAULT_SETTINGS_FILE


def get_args(argv=None) -> argparse.Namespace:
    """
    Parses command-line arguments for the Video Clipper.

    Args:
        argv: Argument list to parse; defaults to `sys.argv[1:]`.

    Returns:
        argparse.Namespace: An object containing the parsed command-line
                            arguments as attributes.
    """
    parser = argparse.ArgumentParser(
        description="Cut fixed-shape, fixed-length clips from every video in a folder."
    )
    parser.add_argument(
        "target", nargs="?", type=Path, default=None,
        help="A single video to clip, or a directory to batch-process instead of the configured input directory."
    )
    parser.add_argument(
        "--config", type=Path, default=Path(DEFAULT_SETTINGS_FILE),
        help=f"Settings file (JSON or YAML). Defaults to ./{DEFAULT_SETTINGS_FILE}; built-in defaults if missing."
    )
    parser.add_argument(
        "--input-dir", type=Path, default=None, help="Root directory scanned for source videos."
    )
    parser.add_argument(
        "--output-dir", type=Path, default=None, help="Root directory for the produced clips."
    )
    parser.add_argument(
        "--videos", type=int, default=None, help="Number of videos processed at once."
    )
    parser.add_argument(
        "--variants", type=int, default=None, help="Number of variants of one video encoded at once."
    )
    parser.add_argument(
        "--batch-size", type=int, default=None, help="Number of videos taken per batch."
    )
    parser.add_argument(
        "--quality-preset", type=str, default=None, choices=["fast", "balanced", "maximum"],
        help="Quality tier for the final encode stage."
    )
    parser.add_argument(
        "--timeout", type=float, default=None, help="Seconds before one ffmpeg invocation is killed."
    )
    parser.add_argument(
        "--no-verify", action="store_true", help="Do not re-probe finished clips for duration drift."
    )
    parser.add_argument(
        "--random", action="store_true", help="Process source videos in random order."
    )
    parser.add_argument(
        "--write-default-config", type=Path, default=None, metavar="PATH",
        help="Write the built-in default settings to PATH and exit."
    )
    parser.add_argument(
        "--show-config", action="store_true", help="Log the effective settings and exit."
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO", choices=["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set the logging level."
    )
    parser.add_argument(
        "--debug", action="store_true", help="Shorthand for --log-level DEBUG."
    )

    args = parser.parse_args(argv)

    for option in ("videos", "variants", "batch_size"):
        value = getattr(args, option)
        if value is not None and value < 1:
            parser.error(f"--{option.replace('_', '-')} must be at least 1, got {value}")
    if args.timeout is not None and args.timeout <= 0:
        parser.error(f"--timeout must be positive, got {args.timeout}")

    return args
