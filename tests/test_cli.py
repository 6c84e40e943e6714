#!/usr/bin/env python3
"""
Unit Tests for percolation/cli.py

Run with:
    pytest tests/test_cli.py -v
"""

import argparse
import json
import logging
import sys
from pathlib import Path

import matplotlib
matplotlib.use('Agg')

import pytest

# Setup path
project_root = str(Path(__file__).resolve().parents[1])
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from percolation.cli import build_parser, config_from_args, main, parse_seed


def parse(*argv):
    return config_from_args(build_parser().parse_args(list(argv)))


@pytest.fixture(autouse=True)
def close_log_files():
    """main() installs root handlers; release log files after each test."""
    yield
    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()


# ============================================================================
# TEST: Argument parsing
# ============================================================================

class TestArguments:
    """Command-line options to SimulationConfig."""

    def test_seed_formats(self):
        assert parse_seed("42") == 42
        assert parse_seed("0x10") == 16
        assert parse_seed("0XfF") == 255

    @pytest.mark.parametrize("text", ["abc", "-1", "0x", str(2 ** 64)])
    def test_bad_seed(self, text):
        with pytest.raises(argparse.ArgumentTypeError):
            parse_seed(text)

    def test_square_size(self):
        cfg = parse("-L", "12")
        assert (cfg.rows, cfg.cols) == (12, 12)

    def test_rows_override_size(self):
        cfg = parse("-L", "12", "--rows", "5")
        assert (cfg.rows, cfg.cols) == (5, 12)

    def test_white_probability(self):
        assert parse("--white", "0.3").p_black == pytest.approx(0.7)

    def test_black_probability(self):
        assert parse("--black", "0.25").p_black == 0.25

    def test_per_color_diagonals(self):
        cfg = parse("--diag-white", "0.2", "--diag-black", "0.6")
        assert (cfg.diag_white, cfg.diag_black) == (0.2, 0.6)
        assert cfg.tiebreak_black() == pytest.approx(0.75)

    def test_shared_diagonal(self):
        cfg = parse("--diag", "0.8", "--diag-black-share", "0.25")
        assert (cfg.diag_white, cfg.diag_black) == (0.8, 0.8)
        assert cfg.tiebreak_black() == 0.25

    def test_preset_with_override(self):
        cfg = parse("--preset", "critical", "-N", "5", "--seed", "0x2a")
        assert cfg.rows == 200
        assert cfg.iterations == 5
        assert cfg.seed == 42

    def test_sessions_and_jobs(self):
        cfg = parse("--sessions", "4", "--jobs", "-1")
        assert (cfg.n_sessions, cfg.n_jobs) == (4, -1)


# ============================================================================
# TEST: main()
# ============================================================================

class TestMain:
    """End-to-end runs of the driver."""

    def test_report_to_stdout(self, capsys):
        assert main(["-L", "4", "--black", "0", "-N", "1", "--seed", "3"]) == 0
        out = capsys.readouterr().out
        assert "# seed: 3 (Xorshift 64*)" in out
        assert "# Iterations: 1" in out
        assert "16 1 0 1" in out.splitlines()

    def test_output_directory(self, tmp_path):
        out_dir = tmp_path / "results"
        assert main(["-L", "6", "-N", "3", "--seed", "1", "--output", str(out_dir)]) == 0
        assert (out_dir / "histogram.txt").read_text().startswith("# seed: 1")
        with open(out_dir / "summary.json") as f:
            assert json.load(f)["iterations"] == 3
        assert (out_dir / "percolation.log").exists()

    def test_parallel_sessions(self, tmp_path):
        argv = ["-L", "6", "-N", "2", "--sessions", "2", "--jobs", "1",
                "--seed", "9", "--output", str(tmp_path)]
        assert main(argv) == 0
        with open(tmp_path / "summary.json") as f:
            assert json.load(f)["iterations"] == 4

    def test_ppm(self, tmp_path):
        path = tmp_path / "grid.ppm"
        assert main(["-L", "8", "-N", "2", "--seed", "1", "--ppm", str(path)]) == 0
        assert path.read_bytes().startswith(b"P6\n8 8\n255\n")

    def test_ppm_after_parallel_run(self, tmp_path):
        path = tmp_path / "grid.ppm"
        argv = ["-L", "5", "-N", "1", "--sessions", "2", "--jobs", "1",
                "--seed", "4", "--ppm", str(path), "--output", str(tmp_path)]
        assert main(argv) == 0
        assert len(path.read_bytes()) == len(b"P6\n5 5\n255\n") + 75

    def test_plot(self, tmp_path):
        argv = ["-L", "10", "-N", "5", "--seed", "2", "--plot", "--output", str(tmp_path)]
        assert main(argv) == 0
        assert (tmp_path / "histogram.png").exists()

    def test_invalid_size(self, tmp_path):
        assert main(["--rows", "0", "--output", str(tmp_path)]) == 1
        assert "Invalid size." in (tmp_path / "percolation.log").read_text()

    def test_invalid_probability(self, tmp_path):
        assert main(["--black", "1.5", "--output", str(tmp_path)]) == 1
        assert "Invalid configuration" in (tmp_path / "percolation.log").read_text()

    def test_zero_jobs(self, tmp_path):
        argv = ["-L", "4", "--sessions", "2", "--jobs", "0", "--output", str(tmp_path)]
        assert main(argv) == 1
        assert "Invalid configuration: n_jobs" in (tmp_path / "percolation.log").read_text()

    def test_too_large(self, tmp_path):
        assert main(["--rows", "50000", "--cols", "50000", "--output", str(tmp_path)]) == 1
        assert "Size is too large." in (tmp_path / "percolation.log").read_text()
