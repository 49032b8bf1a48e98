"""
Command-line entry point.

Analyzes an audio file and prints the resulting chart summary.
"""

import argparse
import logging
import sys
from pathlib import Path

from beatlane.core.chart import Difficulty
from beatlane.pipeline import ChartPipeline


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="beatlane",
        description="Generate a four-lane rhythm chart from an audio file",
    )
    parser.add_argument(
        "audio",
        type=Path,
        help="Input audio file (wav, mp3, flac)",
    )
    parser.add_argument(
        "-d", "--difficulty",
        choices=[d.value for d in Difficulty],
        default=Difficulty.NORMAL.value,
        help="Chart density (default: normal)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for lane assignment and thinning",
    )
    parser.add_argument(
        "--sr",
        type=int,
        default=None,
        help="Resample to this rate before analysis (default: file rate)",
    )
    parser.add_argument(
        "--show-notes",
        action="store_true",
        help="List every note as 'time lane'",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Debug logging",
    )
    return parser


def main(argv=None) -> int:
    """CLI entry point."""
    args = build_arg_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )

    if not args.audio.exists():
        print(f"Error: Audio file not found: {args.audio}", file=sys.stderr)
        return 1

    pipeline = ChartPipeline(difficulty=args.difficulty, seed=args.seed)
    result = pipeline.process_file(args.audio, sr=args.sr)

    print(f"{args.audio.name}: {result.summary()} ({result.duration:.2f}s)")
    lane_counts = result.chart.lane_counts()
    print("Lanes: " + "  ".join(f"{lane}={count}" for lane, count in enumerate(lane_counts)))

    if args.show_notes:
        for note in result.chart:
            print(f"{note.time:9.3f}  {note.lane}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
