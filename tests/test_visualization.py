"""
Tests for timecourse_toolkit.visualization module
"""

import matplotlib.pyplot as plt
from matplotlib.figure import Figure
import pytest

from timecourse_toolkit.statistical_analysis import run_timecourse_shrinkage
from timecourse_toolkit.visualization import (
    plot_pi0_by_time,
    plot_pvalue_histograms,
    plot_shrinkage,
)


@pytest.fixture
def shrinkage_run(simulated_observations, shrinkage_config):
    return run_timecourse_shrinkage(simulated_observations, shrinkage_config)


def test_plot_pi0_by_time(shrinkage_run, shrinkage_config):
    _, pi0_table = shrinkage_run

    fig = plot_pi0_by_time(pi0_table, shrinkage_config)

    assert isinstance(fig, Figure)
    assert fig.axes[0].get_ylabel() == "pi0"
    plt.close(fig)


def test_plot_pvalue_histograms(shrinkage_run, shrinkage_config):
    results, pi0_table = shrinkage_run

    fig = plot_pvalue_histograms(results, pi0_table, shrinkage_config, n_cols=4)

    visible = [ax for ax in fig.axes if ax.get_visible()]
    assert len(fig.axes) == 8
    assert len(visible) == 6
    plt.close(fig)


def test_plot_shrinkage(shrinkage_run, shrinkage_config):
    results, _ = shrinkage_run

    fig = plot_shrinkage(results, shrinkage_config, title="Heat shock")

    assert isinstance(fig, Figure)
    assert fig.axes[0].get_title() == "Heat shock"
    plt.close(fig)


def test_plot_shrinkage_empty_results(shrinkage_run, shrinkage_config, capsys):
    results, _ = shrinkage_run
    n_figures = len(plt.get_fignums())

    fig = plot_shrinkage(results.iloc[0:0], shrinkage_config)

    assert fig is None
    assert len(plt.get_fignums()) == n_figures
    assert "No data to plot" in capsys.readouterr().out
