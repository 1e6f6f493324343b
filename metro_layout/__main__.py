import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from metro_layout import (
    MapParseError,
    MapStructureError,
    PipelineOptions,
    SpacingOptions,
    StageError,
    read_map,
    run_benchmark,
    run_pipeline,
    summarize,
)
from metro_layout.benchmark import BenchmarkMismatch

logger = logging.getLogger(__name__)

DEFAULT_INPUT = "input/test0.txt"

# Stage failures exit with their step number (1-5), so input and benchmark
# errors use the sysexits codes above that range.
EXIT_INPUT_ERROR = 65
EXIT_BENCHMARK_MISMATCH = 70


def _configure_logging(level: str) -> None:
    log_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(levelname)s:%(name)s:%(message)s",
    )


def _build_options(args: argparse.Namespace) -> PipelineOptions:
    return PipelineOptions(
        spacing=SpacingOptions(min_spacing=args.min_spacing),
        output_dir=args.output_dir,
        testcase=args.testcase or Path(args.path).stem,
        write_svg=not args.no_svg,
        use_spatial_hash=not args.no_spatial_hash,
        cell_size=args.cell_size,
    )


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Octilinear-style layout of metro station maps")
    parser.add_argument(
        "path",
        nargs="?",
        default=DEFAULT_INPUT,
        help=f"Path to the station map (default: {DEFAULT_INPUT})",
    )
    parser.add_argument(
        "--output-dir",
        default="output",
        help="Directory for the per-stage SVG snapshots (default: output)",
    )
    parser.add_argument(
        "--testcase",
        help="Name prefix of the SVG snapshots (default: input file stem)",
    )
    parser.add_argument(
        "--min-spacing",
        type=float,
        default=10.0,
        help="Minimum distance between neighbouring guide lines (default: 10)",
    )
    parser.add_argument(
        "--cell-size",
        type=float,
        help="Spatial hash cell size (default: 1.5 x average edge length)",
    )
    parser.add_argument(
        "--no-spatial-hash",
        action="store_true",
        help="Use the naive overlap check everywhere",
    )
    parser.add_argument(
        "--no-svg",
        action="store_true",
        help="Do not write SVG snapshots",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--benchmark",
        type=int,
        metavar="N",
        help="Run the overlap benchmark with N random probes instead of the pipeline",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=123,
        help="Random seed for the benchmark probes (default: 123)",
    )
    args = parser.parse_args(argv)

    _configure_logging(args.log_level)

    try:
        graph = read_map(args.path)
    except (MapParseError, MapStructureError, OSError) as exc:
        logger.error("Cannot read %s: %s", args.path, exc)
        raise SystemExit(EXIT_INPUT_ERROR)

    if args.benchmark is not None:
        try:
            report = run_benchmark(graph, args.benchmark, seed=args.seed, cell_size=args.cell_size)
        except BenchmarkMismatch as exc:
            logger.error("%s", exc)
            raise SystemExit(EXIT_BENCHMARK_MISMATCH)
        print(report.format())
        return

    options = _build_options(args)
    try:
        result = run_pipeline(graph, options)
    except StageError as exc:
        logger.error("%s", exc)
        raise SystemExit(exc.step)

    summary = summarize(result)
    print(result.graph.describe())
    print(f"Horizontal lines: {summary['horizontal_lines']}")
    print(f"Vertical lines: {summary['vertical_lines']}")
    print(f"Key lines: {summary['key_lines']}")
    print("Coordinates:")
    for station in result.graph.stations():
        print(f"  {station.id}. {station.name} ({station.x:.3f}, {station.y:.3f})")
    if result.snapshots:
        print("Snapshots:")
        for path in result.snapshots:
            print(f"  {path}")


if __name__ == "__main__":
    main(sys.argv[1:])
