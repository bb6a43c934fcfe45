"""
Sample Clustering Module

K-means clustering of samples on their first two principal components,
with an elbow (within-cluster sum of squares) curve to guide the choice of k.

Cluster numbering comes straight from k-means and carries no meaning: which
cluster is "1" can change with the seed, and with it the sign of any
cluster-versus-cluster fold change.
"""

import numpy as np
import pandas as pd
import warnings
from sklearn.cluster import KMeans

from .dimensionality_reduction import PCAResult


def _pc_coordinates(pca_result: PCAResult, n_pcs: int = 2) -> np.ndarray:
    scores = pca_result.scores
    if scores.shape[1] < n_pcs:
        raise ValueError(f"Clustering needs {n_pcs} principal components, got {scores.shape[1]}")
    return scores.iloc[:, :n_pcs].to_numpy(dtype=float)


def compute_elbow_curve(
    pca_result: PCAResult,
    max_clusters: int = 10,
    random_seed: int = 42
) -> pd.DataFrame:
    """
    Within-cluster sum of squares for k = 1..max_clusters on (PC1, PC2).

    k is capped at the number of samples.

    Returns:
    --------
    pd.DataFrame with columns k, within_ss
    """
    X = _pc_coordinates(pca_result)
    k_values = list(range(1, min(max_clusters, X.shape[0]) + 1))

    inertias = []
    for k in k_values:
        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            kmeans = KMeans(n_clusters=k, random_state=random_seed, n_init=10)
            kmeans.fit(X)
        inertias.append(float(kmeans.inertia_))

    return pd.DataFrame({"k": k_values, "within_ss": inertias})


def cluster_samples(
    pca_result: PCAResult,
    n_clusters: int = 2,
    random_seed: int = 42
) -> pd.Series:
    """
    Assign samples to k-means clusters on (PC1, PC2).

    Parameters:
    -----------
    pca_result : PCAResult
        Output of run_pca()
    n_clusters : int
        Number of clusters (default: 2)
    random_seed : int
        Seed for the k-means initialisation

    Returns:
    --------
    pd.Series : Categorical cluster labels 1..k indexed by sample
    """

    print("=== K-MEANS CLUSTERING OF SAMPLES ===\n")

    X = _pc_coordinates(pca_result)
    if not 1 <= n_clusters <= X.shape[0]:
        raise ValueError(
            f"n_clusters must be between 1 and the number of samples ({X.shape[0]}), got {n_clusters}"
        )

    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        model = KMeans(n_clusters=n_clusters, random_state=random_seed, n_init=10)
        labels = model.fit_predict(X) + 1

    clusters = pd.Series(
        pd.Categorical(labels, categories=list(range(1, n_clusters + 1))),
        index=pca_result.scores.index.copy(),
        name="Cluster",
    )

    for cluster, count in clusters.value_counts(sort=False).items():
        print(f"  Cluster {cluster}: {count} samples")
    print(f"Within-cluster sum of squares: {model.inertia_:.2f}")

    return clusters


def build_sample_metadata(clusters: pd.Series) -> pd.DataFrame:
    """Metadata table mapping each sample to its cluster, in cluster-series order."""
    return pd.DataFrame({
        "Sample": [str(s) for s in clusters.index],
        "Cluster": clusters.values,
    })
