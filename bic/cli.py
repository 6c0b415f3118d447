from __future__ import annotations

import argparse
from pathlib import Path
from typing import Callable, List, Optional

from .batch import compress_tree
from .codec import ImageCodec
from .logs import setup_logging
from .progress import NullProgress, TqdmProgress
from .report import build_report, save_report_csv, save_report_json
from .settings import ConfigError, RunConfig


DEFAULT_DIRECTORY = "images/"
DEFAULT_QUALITY = 80


def _parse_quality(text: str) -> int:
    q = int(str(text).strip())
    if not 0 <= q <= 100:
        raise ValueError("quality must be within 0-100")
    return q


def _quality_arg(text: str) -> int:
    try:
        return _parse_quality(text)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def prompt_config(
    input_func: Callable[[str], str] = input,
    default_quality: int = DEFAULT_QUALITY,
    default_strip: bool = True,
) -> RunConfig:
    """
    Ask for directory, quality and metadata handling, re-asking on bad answers.
    Empty answers take the defaults; the CLI passes its --quality and
    --keep-metadata values in as those defaults.
    """
    while True:
        answer = input_func(f"Image directory? [{DEFAULT_DIRECTORY}] ").strip() or DEFAULT_DIRECTORY
        directory = Path(answer)
        if directory.is_dir():
            break
        print("That directory does not exist, please enter a valid directory.")

    while True:
        answer = input_func(f"Image quality (0-100)? [{default_quality}] ").strip() or str(default_quality)
        try:
            quality = _parse_quality(answer)
            break
        except ValueError:
            print("Please enter a whole number between 0 and 100.")

    while True:
        hint = "[Y/n]" if default_strip else "[y/N]"
        answer = input_func(f"Strip image metadata? {hint} ").strip().lower()
        if answer == "":
            strip_metadata = default_strip
            break
        if answer in ("y", "yes"):
            strip_metadata = True
            break
        if answer in ("n", "no"):
            strip_metadata = False
            break
        print("Please answer y or n.")

    return RunConfig.from_quality(directory, quality, strip_metadata=strip_metadata)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="bic",
        description="Batch Image Compressor: compress PNG/JPEG files in place, keeping backups",
    )
    sub = p.add_subparsers(dest="command", required=True)

    comp = sub.add_parser("compress", help="Compress every image under a folder in place")
    comp.add_argument(
        "directory",
        nargs="?",
        default=None,
        help="Folder to process (prompted for when omitted)",
    )

    # Encoder knobs
    comp.add_argument(
        "--quality",
        type=_quality_arg,
        default=DEFAULT_QUALITY,
        help=f"JPEG quality (0-100); PNG uses (quality-10)%%..quality%%. Default {DEFAULT_QUALITY}",
    )
    comp.add_argument("--keep-metadata", action="store_true", help="Keep EXIF/ICC metadata (default: strip)")

    # Output
    comp.add_argument("--report", default=None, help="Folder to write report.json / report.csv into")
    comp.add_argument("--no-progress", action="store_true", help="Don't draw the progress bar")

    # Logging
    comp.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    comp.add_argument("--log-file", default=None, help="Also write the log to this file")

    return p


def main(argv: Optional[List[str]] = None, input_func: Callable[[str], str] = input) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.command == "compress":
        setup_logging(verbose=bool(args.verbose), log_file=args.log_file)

        if args.directory is None:
            config = prompt_config(
                input_func,
                default_quality=args.quality,
                default_strip=not bool(args.keep_metadata),
            )
        else:
            config = RunConfig.from_quality(
                Path(args.directory),
                args.quality,
                strip_metadata=not bool(args.keep_metadata),
            )

        try:
            config.validate()
        except ConfigError as e:
            parser.error(str(e))

        progress = NullProgress() if args.no_progress else TqdmProgress()
        results, summary = compress_tree(config, codec=ImageCodec.detect(), progress=progress)

        # Print summary
        print("\n=== Run Summary ===")
        print("Total found:", summary.total)
        print("Compressed :", summary.completed)
        print("Failed     :", summary.failed)
        print(f"Saved      : {summary.saved_bytes} bytes ({summary.saved_percent:.1f}%)")

        # Failure reasons breakdown
        reasons: dict[str, int] = {}
        for r in results:
            if not r.changed and r.skipped_reason:
                reasons[r.skipped_reason] = reasons.get(r.skipped_reason, 0) + 1

        if reasons:
            print("\nFailure reasons:")
            for k, v in sorted(reasons.items(), key=lambda x: (-x[1], x[0])):
                print(f"  {k}: {v}")

        # Reports
        if args.report:
            report = build_report(results, summary)
            out_dir = Path(args.report)

            json_path = out_dir / "report.json"
            save_report_json(report, json_path)

            csv_path = out_dir / "report.csv"
            save_report_csv(report, csv_path)

            print("\nReport written:", json_path)
            print("CSV written   :", csv_path)

        if not summary.ok:
            print("\nRun aborted:", summary.error)
            return 1
        return 0

    parser.print_help()
    return 2
