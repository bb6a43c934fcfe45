"""
Imputation Module for Exploratory Proteomics Analysis

k-nearest-neighbour imputation of missing log2 intensities. Proteins are
the rows of the matrix and the neighbours of a protein are the proteins with
the most similar profiles across samples.
"""

import pandas as pd
import numpy as np
from sklearn.impute import KNNImputer

from .validation import ImputationError


def check_imputable(matrix: pd.DataFrame) -> None:
    """
    Raise ImputationError if k-NN imputation is undefined for the matrix.

    Every protein row and every sample column needs at least one observed
    value, and no value may be infinite.
    """
    values = matrix.to_numpy(dtype=float)

    if np.isinf(values).any():
        raise ImputationError(
            f"Matrix contains {int(np.isinf(values).sum())} infinite values; "
            "impute only finite log intensities"
        )

    empty_rows = matrix.index[matrix.isna().all(axis=1)].tolist()
    if empty_rows:
        raise ImputationError(
            f"{len(empty_rows)} proteins have no observed values, no neighbours can be computed: "
            f"{empty_rows[:5]}{'...' if len(empty_rows) > 5 else ''}"
        )

    empty_columns = matrix.columns[matrix.isna().all(axis=0)].tolist()
    if empty_columns:
        raise ImputationError(
            f"{len(empty_columns)} samples have no observed values: {empty_columns}"
        )


def knn_impute(matrix: pd.DataFrame, n_neighbors: int = 10) -> pd.DataFrame:
    """
    Fill missing values with the average of the k most similar proteins.

    KNNImputer works on a plain array, so protein and sample labels are
    re-attached afterwards and checked against the input.

    Parameters:
    -----------
    matrix : pd.DataFrame
        Protein-by-sample log2 matrix with missing values
    n_neighbors : int
        Number of neighbouring proteins (default: 10)

    Returns:
    --------
    pd.DataFrame : Matrix with the same labels and no missing values
    """

    print("=== K-NN IMPUTATION ===\n")

    check_imputable(matrix)

    n_missing = int(matrix.isna().sum().sum())
    print(f"Missing values before imputation: {n_missing:,}")

    if n_missing == 0:
        print("No missing values - returning a copy of the input")
        return matrix.copy()

    imputer = KNNImputer(n_neighbors=n_neighbors, weights="uniform")
    imputed_values = imputer.fit_transform(matrix.to_numpy(dtype=float))

    if imputed_values.shape != matrix.shape:
        raise ImputationError(
            f"Imputer returned shape {imputed_values.shape}, expected {matrix.shape}"
        )

    imputed = pd.DataFrame(imputed_values, index=matrix.index.copy(), columns=matrix.columns.copy())

    assert imputed.index.equals(matrix.index), "protein labels out of order after imputation"
    assert imputed.columns.equals(matrix.columns), "sample labels out of order after imputation"

    remaining = int(imputed.isna().sum().sum())
    if remaining > 0:
        raise ImputationError(f"{remaining} values are still missing after imputation")

    print(f"✓ Imputed {n_missing:,} values using {n_neighbors} nearest proteins")
    return imputed
