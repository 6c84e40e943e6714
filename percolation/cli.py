#!/usr/bin/env python3
"""
Command-line driver for two-color percolation runs.

Usage:
    python -m percolation -L 100 --black 0.5 -N 1000 --seed 42
    python -m percolation --rows 64 --cols 256 --diag 1.0 --diag-black-share 0.5 -N 500
    python -m percolation --preset critical --sessions 8 --jobs -1 --output results/
    python -m percolation -L 200 --black 0.6 --ppm grid.ppm
"""

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from percolation.config import PRESETS, SimulationConfig, get_preset
from percolation.errors import AllocationError, GridTooLargeError, InvalidConfigError
from percolation.prng import U64_MAX
from percolation.report import (
    format_histogram,
    plot_histogram,
    save_summary_json,
    write_histogram,
    write_ppm,
)
from percolation.simulation import PercolationSimulation, run_parallel

logger = logging.getLogger(__name__)


def parse_seed(text: str) -> int:
    """argparse type for seeds: decimal, or hexadecimal with a 0x prefix."""
    try:
        if text.lower().startswith("0x"):
            value = int(text[2:], 16)
        else:
            value = int(text, 10)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid seed: {text!r}")
    if value < 0 or value > U64_MAX:
        raise argparse.ArgumentTypeError(f"seed must fit in 64 bits: {text!r}")
    return value


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="percolation",
        description="Two-color site percolation with probabilistic diagonal bonds",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Diagonal bonds:
  --diag-white/--diag-black  per-color probability of joining a crossed diagonal
  --diag P --diag-black-share S
                             both colors use P; when both diagonals of a block
                             would join, black wins with probability S
        """,
    )
    parser.add_argument("--preset", choices=sorted(PRESETS),
                        help="Start from a named preset")

    size = parser.add_argument_group("grid")
    size.add_argument("--rows", type=int, help="Number of rows")
    size.add_argument("--cols", type=int, help="Number of columns")
    size.add_argument("-L", "--size", type=int,
                      help="Square grid side (sets rows and cols)")

    colors = parser.add_argument_group("probabilities")
    colors.add_argument("--black", type=float, help="Probability of a black cell")
    colors.add_argument("--white", type=float,
                        help="Probability of a white cell (black = 1 - white)")
    colors.add_argument("--diag-white", type=float,
                        help="Probability of joining a white diagonal")
    colors.add_argument("--diag-black", type=float,
                        help="Probability of joining a black diagonal")
    colors.add_argument("--diag", type=float,
                        help="Shared diagonal probability for both colors")
    colors.add_argument("--diag-black-share", type=float,
                        help="Probability black wins a doubly-joined crossed block")

    run = parser.add_argument_group("run")
    run.add_argument("-N", "--iterations", type=int, help="Grids per session")
    run.add_argument("--seed", type=parse_seed,
                     help="Generator seed, decimal or 0x-prefixed hex (default: clock)")
    run.add_argument("--sessions", type=int, help="Independent sessions to run")
    run.add_argument("--jobs", type=int, help="joblib workers (-1 for all cores)")

    out = parser.add_argument_group("output")
    out.add_argument("--output", type=Path,
                     help="Directory for histogram.txt, summary.json and the log")
    out.add_argument("--ppm", type=Path, help="Render the last grid to this PPM file")
    out.add_argument("--plot", action="store_true",
                     help="Save a log-log plot of the histograms")
    out.add_argument("--progress", action="store_true", help="Show progress bars")
    out.add_argument("--log-level", default="INFO",
                     choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def config_from_args(args: argparse.Namespace) -> SimulationConfig:
    """Apply command-line overrides on top of the preset (or defaults)."""
    cfg = get_preset(args.preset) if args.preset else SimulationConfig()
    updates = {}

    if args.size is not None:
        updates["rows"] = args.size
        updates["cols"] = args.size
    if args.rows is not None:
        updates["rows"] = args.rows
    if args.cols is not None:
        updates["cols"] = args.cols

    if args.white is not None:
        updates["p_black"] = 1.0 - args.white
    if args.black is not None:
        updates["p_black"] = args.black

    if args.diag is not None:
        updates["diag_white"] = args.diag
        updates["diag_black"] = args.diag
        updates["diag_tiebreak_black"] = 0.5
    if args.diag_black_share is not None:
        updates["diag_tiebreak_black"] = args.diag_black_share
    if args.diag_white is not None:
        updates["diag_white"] = args.diag_white
    if args.diag_black is not None:
        updates["diag_black"] = args.diag_black

    if args.iterations is not None:
        updates["iterations"] = args.iterations
    if args.seed is not None:
        updates["seed"] = args.seed
    if args.sessions is not None:
        updates["n_sessions"] = args.sessions
    if args.jobs is not None:
        updates["n_jobs"] = args.jobs

    return replace(cfg, **updates)


def setup_logging(level: str, output: Optional[Path]) -> None:
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if output is not None:
        handlers.insert(0, logging.FileHandler(output / "percolation.log"))
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s [%(levelname)s] %(message)s",
        handlers=handlers,
        force=True,
    )


def run(cfg: SimulationConfig, progress: bool = False) -> PercolationSimulation:
    if cfg.n_sessions > 1:
        return run_parallel(cfg, progress=progress)
    sim = PercolationSimulation(cfg)
    sim.run(progress=progress)
    return sim


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.output is not None:
        args.output.mkdir(parents=True, exist_ok=True)
    setup_logging(args.log_level, args.output)

    cfg = config_from_args(args)

    logger.info("=" * 60)
    logger.info("TWO-COLOR PERCOLATION")
    logger.info("=" * 60)
    logger.info(f"Grid: {cfg.rows}x{cfg.cols}, P(black)={cfg.p_black:.6f}")
    logger.info(f"Diagonals: white={cfg.diag_white:.6f} black={cfg.diag_black:.6f}")
    logger.info(f"Iterations: {cfg.iterations} x {cfg.n_sessions} sessions")

    try:
        sim = run(cfg, progress=args.progress)
    except GridTooLargeError as exc:
        logger.error("Size is too large.")
        logger.debug(str(exc))
        return 1
    except InvalidConfigError as exc:
        if str(exc).startswith(("rows", "cols")):
            logger.error("Invalid size.")
        else:
            logger.error(f"Invalid configuration: {exc}")
        logger.debug(str(exc))
        return 1
    except AllocationError as exc:
        logger.error("Not enough memory.")
        logger.debug(str(exc))
        return 1

    logger.info(f"Seed: {sim.seed}")

    if args.output is not None:
        write_histogram(sim, args.output / "histogram.txt")
        save_summary_json(sim, args.output / "summary.json")
    else:
        sys.stdout.write(format_histogram(sim))

    if args.ppm is not None:
        if sim.last is None:
            # Parallel runs reduce remote sessions; draw a local grid to render
            sim.engine.generate(sim.rng)
        write_ppm(sim, args.ppm)

    if args.plot:
        import matplotlib.pyplot as plt

        plot_dir = args.output if args.output is not None else Path(".")
        fig = plot_histogram(sim, save_path=plot_dir / "histogram.png")
        plt.close(fig)

    return 0


if __name__ == "__main__":
    sys.exit(main())
