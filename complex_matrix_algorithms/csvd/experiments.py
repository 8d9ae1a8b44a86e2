"""CSVD experiment runner.

Experiments implemented:
1) Accuracy sweep across matrix families and shapes (reconstruction error,
   orthonormality of U and V, singular value error against LAPACK, runtime
   against ``numpy.linalg.svd``).
2) Pseudo-inverse sweep (Moore-Penrose residuals against the LAPACK
   pseudo-inverse with the same cutoff).

Outputs are written under the chosen output directory:
- ``csvd_accuracy.csv``
- ``csvd_pinv.csv``
- ``summary.jsonl`` (one aggregate record per experiment run)
"""

from __future__ import annotations

import argparse
import csv
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Dict, List

import numpy as np

from complex_matrix_algorithms.common.config import (
    ExperimentConfig,
    MatrixFamily,
    MatrixShape,
)
from complex_matrix_algorithms.common.datasets import generate
from complex_matrix_algorithms.common.logging_utils import append_jsonl, get_logger
from complex_matrix_algorithms.common.metrics import (
    max_abs_error,
    moore_penrose_residuals,
    orthonormality_error,
    reconstruct_from_svd,
    relative_frobenius_error,
)
from complex_matrix_algorithms.common.timing import time_repeated
from complex_matrix_algorithms.csvd.core import CsvdResult, csvd
from complex_matrix_algorithms.overall.baselines import numpy_pinv_baseline, numpy_svd_baseline
from complex_matrix_algorithms.pinv.core import pinv_from_svd

logger = get_logger(__name__)

DEFAULT_OUTPUT_DIR = Path("complex_matrix_algorithms/csvd/results")
TIMING_REPEATS = 3


def _write_csv(path: Path, rows: List[Dict]) -> None:
    """Write rows to CSV with a header derived from the first row."""

    path.parent.mkdir(parents=True, exist_ok=True)
    if not rows:
        return
    fieldnames = list(rows[0].keys())
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=fieldnames)
        writer.writeheader()
        writer.writerows(rows)
    logger.info("Wrote %d rows to %s", len(rows), path)


@dataclass
class CsvdMetrics:
    """Accuracy and runtime of one CSVD run against the LAPACK baseline."""

    rel_error: float
    u_orth_error: float
    v_orth_error: float
    sv_error: float
    sweeps: int
    runtime_sec: float
    baseline_runtime_sec: float

    @property
    def slowdown(self) -> float:
        if self.baseline_runtime_sec <= 0.0:
            return float("inf")
        return self.runtime_sec / self.baseline_runtime_sec


def evaluate_csvd(a: np.ndarray, config: ExperimentConfig) -> tuple[CsvdMetrics, CsvdResult]:
    """Decompose a copy of ``a`` and compare against ``numpy.linalg.svd``."""

    def fresh_call():
        # csvd consumes its input, so every repetition gets its own copy.
        return partial(csvd, a.copy(), config=config.csvd)

    result, timing = time_repeated(fresh_call, TIMING_REPEATS)
    (_, s_ref, _), base_timing = time_repeated(lambda: partial(numpy_svd_baseline, a), TIMING_REPEATS)

    approx = reconstruct_from_svd(result.s, result.u, result.v)
    metrics = CsvdMetrics(
        rel_error=relative_frobenius_error(a, approx) if np.any(a) else max_abs_error(a, approx),
        u_orth_error=orthonormality_error(result.u),
        v_orth_error=orthonormality_error(result.v),
        sv_error=max_abs_error(s_ref[: result.s.shape[0]], result.s),
        sweeps=result.sweeps,
        runtime_sec=timing.best,
        baseline_runtime_sec=base_timing.best,
    )
    return metrics, result


# ============================================================================
# Experiment 1: Accuracy across families and shapes
# ============================================================================

def run_accuracy_sweep(output_dir: Path, config: ExperimentConfig) -> List[Dict]:
    logger.info("Running CSVD accuracy sweep (%d shapes)", len(config.shapes))

    rng = np.random.default_rng(config.seed)
    rows: List[Dict] = []

    for family in config.families:
        logger.info("  Matrix family: %s", family.value)
        for shape in config.shapes:
            for trial in range(config.num_trials):
                a = generate(family, shape.m, shape.n, seed=int(rng.integers(0, 1_000_000)))
                metrics, _ = evaluate_csvd(a, config)
                rows.append(
                    {
                        "family": family.value,
                        "m": shape.m,
                        "n": shape.n,
                        "trial": trial,
                        "rel_error": metrics.rel_error,
                        "u_orth_error": metrics.u_orth_error,
                        "v_orth_error": metrics.v_orth_error,
                        "sv_error": metrics.sv_error,
                        "sweeps": metrics.sweeps,
                        "runtime_sec": metrics.runtime_sec,
                        "baseline_runtime_sec": metrics.baseline_runtime_sec,
                        "slowdown": metrics.slowdown,
                    }
                )
    _write_csv(output_dir / "csvd_accuracy.csv", rows)
    return rows


# ============================================================================
# Experiment 2: Pseudo-inverse residuals
# ============================================================================

def run_pinv_sweep(output_dir: Path, config: ExperimentConfig) -> List[Dict]:
    logger.info("Running pseudo-inverse sweep")

    rng = np.random.default_rng(config.seed + 1)
    rows: List[Dict] = []

    for family in config.families:
        for shape in config.shapes:
            for trial in range(config.num_trials):
                a = generate(family, shape.m, shape.n, seed=int(rng.integers(0, 1_000_000)))
                result = csvd(a.copy(), config=config.csvd)
                inv = pinv_from_svd(result.s, result.u, result.v, cutoff=config.pinv.cutoff)
                residuals = moore_penrose_residuals(a, inv)
                reference = numpy_pinv_baseline(a, cutoff=config.pinv.cutoff)
                rows.append(
                    {
                        "family": family.value,
                        "m": shape.m,
                        "n": shape.n,
                        "trial": trial,
                        "a_inv_a": residuals.a_inv_a,
                        "inv_a_inv": residuals.inv_a_inv,
                        "a_inv_herm": residuals.a_inv_herm,
                        "inv_a_herm": residuals.inv_a_herm,
                        "baseline_diff": max_abs_error(reference, inv),
                    }
                )
    _write_csv(output_dir / "csvd_pinv.csv", rows)
    return rows


# ============================================================================
# Entry point
# ============================================================================

def run_all_experiments(output_dir: Path, config: ExperimentConfig | None = None) -> None:
    """Run every CSVD experiment and emit CSVs plus a JSONL summary."""

    cfg = config or ExperimentConfig()
    output_dir.mkdir(parents=True, exist_ok=True)

    logger.info("=" * 60)
    logger.info("Starting CSVD experiments (seed=%d, trials=%d)", cfg.seed, cfg.num_trials)
    logger.info("=" * 60)

    accuracy_rows = run_accuracy_sweep(output_dir, cfg)
    pinv_rows = run_pinv_sweep(output_dir, cfg)

    append_jsonl(
        output_dir / "summary.jsonl",
        {
            "seed": cfg.seed,
            "num_trials": cfg.num_trials,
            "shapes": [[s.m, s.n] for s in cfg.shapes],
            "families": [f.value for f in cfg.families],
            "max_rel_error": max((r["rel_error"] for r in accuracy_rows), default=0.0),
            "max_orth_error": max(
                (max(r["u_orth_error"], r["v_orth_error"]) for r in accuracy_rows), default=0.0
            ),
            "max_penrose_residual": max((r["a_inv_a"] for r in pinv_rows), default=0.0),
        },
    )

    logger.info("All experiments complete. Results in %s", output_dir)


def _parse_shape(text: str) -> MatrixShape:
    m, _, n = text.partition("x")
    try:
        return MatrixShape(m=int(m), n=int(n))
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"shape must look like MxN, got {text!r}") from exc


def main() -> None:
    parser = argparse.ArgumentParser(description="Run CSVD accuracy and runtime experiments")
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=DEFAULT_OUTPUT_DIR,
        help="Directory to write CSV and JSONL results",
    )
    parser.add_argument("--seed", type=int, default=42, help="Base random seed")
    parser.add_argument("--trials", type=int, default=3, help="Trials per family and shape")
    parser.add_argument(
        "--shape",
        dest="shapes",
        type=_parse_shape,
        action="append",
        help="Matrix shape MxN (repeatable); defaults to a built-in sweep",
    )
    parser.add_argument(
        "--family",
        dest="families",
        type=MatrixFamily,
        choices=list(MatrixFamily),
        action="append",
        help="Matrix family (repeatable); defaults to all families",
    )
    args = parser.parse_args()

    cfg = ExperimentConfig(seed=args.seed, num_trials=args.trials)
    if args.shapes:
        cfg.shapes = args.shapes
    if args.families:
        cfg.families = args.families
    run_all_experiments(args.output_dir, cfg)


if __name__ == "__main__":  # pragma: no cover - manual execution
    main()
