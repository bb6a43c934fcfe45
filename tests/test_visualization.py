"""
Tests for the diagnostic and result figures
"""

import os

import numpy as np
import pandas as pd
import pytest
import matplotlib.pyplot as plt
from matplotlib.figure import Figure
from unittest.mock import patch

from proteomics_explorer.dimensionality_reduction import run_pca
from proteomics_explorer.preprocessing import summarize_missingness
from proteomics_explorer.sample_clustering import cluster_samples, compute_elbow_curve
from proteomics_explorer.statistical_analysis import run_differential_analysis
from proteomics_explorer.visualization import (
    plot_intensity_histogram,
    plot_qq,
    plot_missing_per_sample,
    plot_missingness_matrix,
    plot_pca,
    plot_elbow,
    plot_zscore_heatmap,
    plot_volcano,
    zscore_rows,
)


def _horizontal_line_heights(fig):
    ax = fig.axes[0]
    return [
        line.get_ydata()[0] for line in ax.lines
        if list(line.get_xdata()) == [0, 1] and line.get_ydata()[0] == line.get_ydata()[1]
    ]


class TestDistributionPlots:
    """Test histogram, Q-Q and missingness figures"""

    def test_histogram_ignores_missing(self, sparse_log_matrix):
        with patch('matplotlib.pyplot.show'):
            fig = plot_intensity_histogram(sparse_log_matrix)
        assert isinstance(fig, Figure)
        plt.close(fig)

    def test_qq_plot_saved(self, sparse_log_matrix, tmp_path):
        path = tmp_path / "qq.png"
        fig = plot_qq(sparse_log_matrix, save_path=str(path))

        assert isinstance(fig, Figure)
        assert os.path.exists(path)

    def test_missing_per_sample_bars(self, sparse_log_matrix):
        summary = summarize_missingness(sparse_log_matrix)
        with patch('matplotlib.pyplot.show'):
            fig = plot_missing_per_sample(summary)

        heights = [patch_.get_height() for patch_ in fig.axes[0].patches]
        assert heights == summary["Missing"].tolist()
        plt.close(fig)

    def test_missingness_matrix_saved(self, sparse_log_matrix, tmp_path):
        path = tmp_path / "missingness.png"
        plot_missingness_matrix(sparse_log_matrix, save_path=str(path))
        assert os.path.exists(path)


class TestPCAAndElbowPlots:
    """Test PCA scatter and elbow curve"""

    @pytest.fixture
    def pca_result(self, shifted_log_matrix):
        return run_pca(shifted_log_matrix)

    def test_pca_plain_and_by_cluster(self, pca_result):
        clusters = cluster_samples(pca_result, n_clusters=2)

        with patch('matplotlib.pyplot.show'):
            plain = plot_pca(pca_result)
            coloured = plot_pca(pca_result, clusters=clusters, label_samples=False)

        assert "PC1" in plain.axes[0].get_xlabel()
        legend_labels = [t.get_text() for t in coloured.axes[0].get_legend().get_texts()]
        assert legend_labels == ["Cluster 1", "Cluster 2"]
        plt.close("all")

    def test_elbow_marks_selected_k(self, pca_result, tmp_path):
        curve = compute_elbow_curve(pca_result, max_clusters=5)
        path = tmp_path / "elbow.png"

        fig = plot_elbow(curve, selected_k=2, save_path=str(path))

        assert os.path.exists(path)
        assert any(list(line.get_xdata()) == [2, 2] for line in fig.axes[0].lines)


class TestZScoreHeatmap:
    """Test row standardization and the clustered heatmap"""

    def test_zscore_rows(self):
        matrix = pd.DataFrame({"S1": [1.0, 5.0], "S2": [2.0, 5.0], "S3": [3.0, 5.0]}, index=["P1", "P2"])
        z = zscore_rows(matrix)

        np.testing.assert_allclose(z.loc["P1"].values, [-1.0, 0.0, 1.0])
        np.testing.assert_allclose(z.loc["P2"].values, [0.0, 0.0, 0.0])

    def test_heatmap_with_cluster_colours(self, shifted_log_matrix, tmp_path):
        clusters = pd.Series(
            pd.Categorical([1] * 5 + [2] * 5, categories=[1, 2]),
            index=shifted_log_matrix.columns,
            name="Cluster",
        )
        path = tmp_path / "heatmap.png"

        fig = plot_zscore_heatmap(shifted_log_matrix, clusters=clusters, save_path=str(path))

        assert isinstance(fig, Figure)
        assert os.path.exists(path)


class TestVolcanoPlot:
    """Test the volcano plot and its guide lines"""

    @pytest.fixture
    def results(self, shifted_log_matrix, true_metadata):
        return run_differential_analysis(shifted_log_matrix, true_metadata)

    def test_guide_line_matches_significance_cutoff(self, results):
        with patch('matplotlib.pyplot.show'):
            fig = plot_volcano(results, fc_threshold=1.5, p_threshold=0.01)

        assert _horizontal_line_heights(fig) == pytest.approx([2.0])
        plt.close(fig)

    def test_separate_guide_line(self, results):
        with patch('matplotlib.pyplot.show'):
            fig = plot_volcano(results, p_threshold=0.01, pvalue_line=0.05)

        assert _horizontal_line_heights(fig) == pytest.approx([-np.log10(0.05)])
        plt.close(fig)

    def test_increased_points_coloured_red(self, results, tmp_path):
        path = tmp_path / "volcano.png"
        fig = plot_volcano(results, save_path=str(path))

        labels = [t.get_text() for t in fig.axes[0].get_legend().get_texts()]
        assert "Increased" in labels
        assert "Not significant" in labels
        assert os.path.exists(path)

    def test_empty_results_return_none(self):
        empty = pd.DataFrame(columns=["logFC", "adj.P.Val", "Significant"])
        assert plot_volcano(empty) is None
