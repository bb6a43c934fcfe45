"""
Tests for k-means clustering of samples on PC1/PC2
"""

import pandas as pd
import pytest

from proteomics_explorer.dimensionality_reduction import run_pca
from proteomics_explorer.sample_clustering import (
    compute_elbow_curve,
    cluster_samples,
    build_sample_metadata,
)


@pytest.fixture
def pca_result(shifted_log_matrix):
    return run_pca(shifted_log_matrix)


class TestClusterSamples:
    """Test cluster assignment"""

    def test_recovers_known_groups(self, pca_result, true_groups):
        clusters = cluster_samples(pca_result, n_clusters=2, random_seed=42)

        # label numbering is arbitrary, so compare partitions
        crosstab = pd.crosstab(clusters, true_groups[clusters.index])
        assert sorted(crosstab.values.max(axis=1).tolist()) == [5, 5]
        assert (crosstab.values == 0).sum() == 2

    def test_labels_are_categorical_one_based(self, pca_result):
        clusters = cluster_samples(pca_result, n_clusters=2)

        assert isinstance(clusters.dtype, pd.CategoricalDtype)
        assert list(clusters.cat.categories) == [1, 2]
        assert clusters.name == "Cluster"
        assert list(clusters.index) == list(pca_result.scores.index)

    def test_same_seed_same_labels(self, pca_result):
        first = cluster_samples(pca_result, n_clusters=3, random_seed=1)
        second = cluster_samples(pca_result, n_clusters=3, random_seed=1)
        pd.testing.assert_series_equal(first, second)

    def test_too_many_clusters_rejected(self, pca_result):
        with pytest.raises(ValueError, match="n_clusters"):
            cluster_samples(pca_result, n_clusters=11)


class TestElbowCurve:
    """Test the within-cluster sum of squares curve"""

    def test_k_range_capped_at_samples(self, pca_result):
        curve = compute_elbow_curve(pca_result, max_clusters=15)

        assert curve["k"].tolist() == list(range(1, 11))
        assert curve["within_ss"].iloc[-1] == pytest.approx(0.0, abs=1e-8)

    def test_two_clusters_remove_most_variance(self, pca_result):
        curve = compute_elbow_curve(pca_result, max_clusters=4)

        assert curve["k"].tolist() == [1, 2, 3, 4]
        within = curve.set_index("k")["within_ss"]
        assert within[2] < 0.5 * within[1]


class TestSampleMetadata:
    """Test the sample to cluster table"""

    def test_metadata_follows_cluster_order(self, pca_result):
        clusters = cluster_samples(pca_result, n_clusters=2)
        metadata = build_sample_metadata(clusters)

        assert list(metadata.columns) == ["Sample", "Cluster"]
        assert metadata["Sample"].tolist() == list(clusters.index)
        assert metadata["Cluster"].tolist() == clusters.tolist()
