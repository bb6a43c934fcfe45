"""
Dimensionality Reduction Module

Scaled principal component analysis with samples as observations and
proteins as variables.
"""

import pandas as pd
import numpy as np
import warnings
from dataclasses import dataclass
from sklearn.decomposition import PCA
from sklearn.preprocessing import StandardScaler


@dataclass(frozen=True)
class PCAResult:
    """Principal component scores and loadings for a set of samples."""
    scores: pd.DataFrame  # samples x PCs
    explained_variance_ratio: pd.Series  # indexed by PC name
    loadings: pd.DataFrame  # proteins x PCs

    def with_clusters(self, clusters: pd.Series) -> pd.DataFrame:
        """Copy of the scores with a 'Cluster' column appended."""
        if not clusters.index.equals(self.scores.index):
            clusters = clusters.reindex(self.scores.index)
        annotated = self.scores.copy()
        annotated["Cluster"] = clusters.values
        return annotated


def run_pca(matrix: pd.DataFrame) -> PCAResult:
    """
    Run PCA on a complete protein-by-sample matrix.

    The matrix is transposed so samples are observations, each protein is
    centred and scaled to unit variance, and every component is kept.
    Proteins that are constant across samples scale to zero, so a matrix of
    identical samples yields zero scores and zero explained variance.

    Parameters:
    -----------
    matrix : pd.DataFrame
        Protein-by-sample matrix without missing values

    Returns:
    --------
    PCAResult : Scores ordered by decreasing explained variance
    """

    print("=== PRINCIPAL COMPONENT ANALYSIS ===\n")

    if matrix.isna().any().any():
        raise ValueError("PCA requires a complete matrix; impute missing values first")

    sample_data = matrix.T

    scaler = StandardScaler()
    scaled_data = scaler.fit_transform(sample_data.to_numpy(dtype=float))

    n_components = min(scaled_data.shape)
    pca = PCA(n_components=n_components, svd_solver="full")
    with warnings.catch_warnings():
        # zero total variance makes sklearn divide 0 by 0 for the ratios
        warnings.simplefilter("ignore")
        pca_scores = pca.fit_transform(scaled_data)

    pc_names = [f"PC{i + 1}" for i in range(n_components)]

    total_variance = float(np.sum(pca.explained_variance_))
    if total_variance > 0:
        ratio = pca.explained_variance_ / total_variance
    else:
        ratio = np.zeros(n_components)

    result = PCAResult(
        scores=pd.DataFrame(pca_scores, index=matrix.columns.copy(), columns=pc_names),
        explained_variance_ratio=pd.Series(ratio, index=pc_names, name="explained_variance_ratio"),
        loadings=pd.DataFrame(pca.components_.T, index=matrix.index.copy(), columns=pc_names),
    )

    print(f"Samples: {sample_data.shape[0]}, proteins: {sample_data.shape[1]}")
    if n_components >= 2:
        print(f"PC1 explains {ratio[0]:.1%} of variance")
        print(f"PC2 explains {ratio[1]:.1%} of variance")

    return result
