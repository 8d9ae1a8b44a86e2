"""Plotting functions for CSVD experiments.

Generates figures from:
- csvd_accuracy.csv (reconstruction / orthonormality error and runtime vs size)
- csvd_pinv.csv (Moore-Penrose residuals vs size)
"""

from __future__ import annotations

import argparse
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import pandas as pd

plt.rcParams.update({
    "font.size": 11,
    "axes.labelsize": 12,
    "axes.titlesize": 13,
    "legend.fontsize": 10,
    "figure.figsize": (10, 6),
    "figure.dpi": 150,
})

FAMILY_COLORS = {
    "gaussian": "#d73027",
    "low_rank": "#1a9850",
    "zero_row": "#3288bd",
}


def _save_figure(fig: plt.Figure, path: Path) -> None:
    """Save figure with tight layout."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fig.tight_layout()
    fig.savefig(path, dpi=150, bbox_inches="tight")
    plt.close(fig)
    print(f"Saved: {path}")


def _aggregate(df: pd.DataFrame, value: str) -> pd.DataFrame:
    """Mean and std of ``value`` per (family, m, n), with a size label column."""
    agg = df.groupby(["family", "m", "n"]).agg({value: ["mean", "std"]}).reset_index()
    agg.columns = ["family", "m", "n", "mean", "std"]
    agg["std"] = agg["std"].fillna(0.0)
    agg["cells"] = agg["m"] * agg["n"]
    return agg.sort_values("cells")


# ============================================================================
# Figure 1: Reconstruction error vs size
# ============================================================================

def plot_error_vs_size(csv_path: Path, output_path: Path) -> None:
    df = pd.read_csv(csv_path)
    agg = _aggregate(df, "rel_error")

    fig, ax = plt.subplots()
    for family, subset in agg.groupby("family"):
        ax.errorbar(
            subset["cells"], subset["mean"], yerr=subset["std"],
            marker="o", color=FAMILY_COLORS.get(family, "#4d4d4d"), label=family,
        )
    ax.axhline(1e-4, color="#4d4d4d", linestyle="--", linewidth=1, label="1e-4")
    ax.set_xlabel("Matrix entries (m·n)")
    ax.set_ylabel("Relative Frobenius Error of U·S·V*")
    ax.set_xscale("log")
    ax.set_yscale("log")
    ax.set_title("CSVD Reconstruction Error vs Matrix Size")
    ax.grid(True, alpha=0.3, which="both")
    ax.legend(loc="upper left", title="Family")
    _save_figure(fig, output_path)


# ============================================================================
# Figure 2: Runtime vs size
# ============================================================================

def plot_runtime_vs_size(csv_path: Path, output_path: Path) -> None:
    df = pd.read_csv(csv_path)
    ours = _aggregate(df, "runtime_sec")
    lapack = _aggregate(df, "baseline_runtime_sec")

    fig, ax = plt.subplots()
    for label, agg, marker in (("csvd", ours, "o"), ("numpy.linalg.svd", lapack, "x")):
        overall = agg.groupby("cells")["mean"].mean()
        ax.plot(overall.index, overall.values, marker=marker, label=label)
    ax.set_xlabel("Matrix entries (m·n)")
    ax.set_ylabel("Runtime (s)")
    ax.set_xscale("log")
    ax.set_yscale("log")
    ax.set_title("CSVD Runtime vs LAPACK")
    ax.grid(True, alpha=0.3, which="both")
    ax.legend(loc="upper left")
    _save_figure(fig, output_path)


# ============================================================================
# Figure 3: Pseudo-inverse residuals
# ============================================================================

def plot_pinv_residuals(csv_path: Path, output_path: Path) -> None:
    df = pd.read_csv(csv_path)
    agg = _aggregate(df, "a_inv_a")

    fig, ax = plt.subplots()
    for family, subset in agg.groupby("family"):
        ax.plot(
            subset["cells"], subset["mean"],
            marker="s", color=FAMILY_COLORS.get(family, "#4d4d4d"), label=family,
        )
    ax.set_xlabel("Matrix entries (m·n)")
    ax.set_ylabel("max |A·INV·A − A|")
    ax.set_xscale("log")
    ax.set_yscale("log")
    ax.set_title("Pseudo-Inverse Residual vs Matrix Size")
    ax.grid(True, alpha=0.3, which="both")
    ax.legend(loc="upper left", title="Family")
    _save_figure(fig, output_path)


# ============================================================================
# Entrypoint
# ============================================================================

def generate_all_plots(results_dir: Path, output_dir: Path) -> None:
    output_dir.mkdir(parents=True, exist_ok=True)

    accuracy_csv = results_dir / "csvd_accuracy.csv"
    pinv_csv = results_dir / "csvd_pinv.csv"

    if accuracy_csv.exists():
        plot_error_vs_size(accuracy_csv, output_dir / "csvd_fig1_error_vs_size.png")
        plot_runtime_vs_size(accuracy_csv, output_dir / "csvd_fig2_runtime_vs_size.png")
    else:
        print(f"Skipping: {accuracy_csv} not found")

    if pinv_csv.exists():
        plot_pinv_residuals(pinv_csv, output_dir / "csvd_fig3_pinv_residuals.png")
    else:
        print(f"Skipping: {pinv_csv} not found")


def main() -> None:
    parser = argparse.ArgumentParser(description="Generate CSVD plots from experiment CSVs")
    parser.add_argument(
        "--results-dir",
        type=Path,
        default=Path("complex_matrix_algorithms/csvd/results"),
        help="Directory containing CSVD CSVs",
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=Path("complex_matrix_algorithms/csvd/results/figures"),
        help="Directory to save plots",
    )
    args = parser.parse_args()
    generate_all_plots(args.results_dir, args.output_dir)


if __name__ == "__main__":  # pragma: no cover - plotting entrypoint
    main()
