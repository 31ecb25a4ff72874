"""
Visualization Module for the Timecourse Toolkit

Diagnostic figures for a shrinkage run: the fitted pi0(time) curve, p-value
histograms per time, and raw versus shrunken values.
"""

import numpy as np
import pandas as pd
import matplotlib.pyplot as plt
from matplotlib.figure import Figure
import seaborn as sns
from typing import Optional, Tuple

from .config import ShrinkageConfig


def plot_pi0_by_time(
    pi0_table: pd.DataFrame,
    config: Optional[ShrinkageConfig] = None,
    figsize: Tuple[int, int] = (8, 5),
    title: str = "Null fraction by time",
) -> Figure:
    """
    Plot per-time raw pi0 proxies against the fitted monotone pi0 curve.

    Parameters
    ----------
    pi0_table : pd.DataFrame
        Output of estimate_pi0_by_time
    config : ShrinkageConfig, optional
        Supplies the time column name
    figsize : tuple
        Figure size
    title : str
        Plot title

    Returns
    -------
    fig : matplotlib.Figure
    """
    config = config or ShrinkageConfig()
    time_col = config.time_column

    fig, ax = plt.subplots(figsize=figsize)

    sizes = 30 + 170 * pi0_table["n_observations"] / pi0_table["n_observations"].max()
    ax.scatter(
        pi0_table[time_col], pi0_table["pi0_raw"], s=sizes,
        color="#377eb8", alpha=0.6, edgecolors="black", linewidth=0.5,
        label="Per-time proxy",
    )
    ax.plot(
        pi0_table[time_col], pi0_table["pi0"], color="#e41a1c",
        linewidth=2.5, marker="o", label="Fitted pi0 (monotone)",
    )

    ax.set_xlabel("Time", fontsize=12)
    ax.set_ylabel("pi0", fontsize=12)
    ax.set_ylim(0, 1.05)
    ax.set_title(title, fontsize=13, fontweight="bold")
    ax.legend(loc="upper right")
    ax.grid(True, alpha=0.3)

    plt.tight_layout()
    return fig


def plot_pvalue_histograms(
    results: pd.DataFrame,
    pi0_table: Optional[pd.DataFrame] = None,
    config: Optional[ShrinkageConfig] = None,
    bins: int = 40,
    n_cols: int = 3,
) -> Figure:
    """
    Density-scaled p-value histograms for each time, with the pi0 null level.

    A flat histogram at height pi0 is what the null component contributes;
    the excess near p = 0 is the signal.
    """
    config = config or ShrinkageConfig()
    time_col = config.time_column

    times = np.sort(results[time_col].unique())
    n_rows = (len(times) + n_cols - 1) // n_cols
    fig, axes = plt.subplots(n_rows, n_cols, figsize=(4.5 * n_cols, 3.5 * n_rows), squeeze=False)
    axes = axes.flatten()

    pi0_lookup = {}
    if pi0_table is not None:
        pi0_lookup = dict(zip(pi0_table[time_col], pi0_table["pi0"]))

    for ax, time_value in zip(axes, times):
        stratum = results[results[time_col] == time_value]
        sns.histplot(
            stratum["p_value"], bins=bins, binrange=(0, 1), stat="density",
            color="#4daf4a", ax=ax,
        )
        if time_value in pi0_lookup:
            ax.axhline(pi0_lookup[time_value], color="#e41a1c", linestyle="--",
                       label=f"pi0 = {pi0_lookup[time_value]:.2f}")
            ax.legend(loc="upper right", fontsize=9)
        ax.set_title(f"Time {time_value:g} (n={len(stratum)})", fontsize=11)
        ax.set_xlabel("p-value")

    for idx in range(len(times), len(axes)):
        axes[idx].set_visible(False)

    plt.tight_layout()
    return fig


def plot_shrinkage(
    results: pd.DataFrame,
    config: Optional[ShrinkageConfig] = None,
    figsize: Tuple[int, int] = (8, 7),
    title: str = "Local-FDR shrinkage",
) -> Optional[Figure]:
    """
    Scatter of raw versus shrunken values colored by local FDR.

    Points lie between the identity line (no shrinkage) and zero. Returns None
    when there is nothing to plot.
    """
    config = config or ShrinkageConfig()

    if len(results) == 0:
        print("No data to plot")
        return None

    fig, ax = plt.subplots(figsize=figsize)
    scatter = ax.scatter(
        results[config.value_column], results["shrunken_value"],
        c=results["local_fdr"], cmap="viridis_r", vmin=0, vmax=1,
        s=12, alpha=0.7,
    )
    limit = float(np.nanmax(np.abs(results[config.value_column])))
    ax.plot([-limit, limit], [-limit, limit], color="gray", linestyle=":", linewidth=1)
    ax.axhline(0, color="gray", linewidth=0.8)

    fig.colorbar(scatter, ax=ax, label="Local FDR")
    ax.set_xlabel("Raw value", fontsize=12)
    ax.set_ylabel("Shrunken value", fontsize=12)
    ax.set_title(title, fontsize=13, fontweight="bold")
    ax.grid(True, alpha=0.3)

    plt.tight_layout()
    return fig
