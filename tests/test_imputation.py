"""
Tests for k-NN imputation
"""

import numpy as np
import pandas as pd
import pytest

from proteomics_explorer.imputation import knn_impute, check_imputable
from proteomics_explorer.validation import ImputationError


class TestKnnImpute:
    """Test k-nearest-neighbour imputation of missing log2 values"""

    def test_fills_all_missing_values(self, matrix_with_missing):
        assert matrix_with_missing.isna().any().any()

        imputed = knn_impute(matrix_with_missing, n_neighbors=5)

        assert not imputed.isna().any().any()
        assert imputed.shape == matrix_with_missing.shape

    def test_labels_and_observed_values_preserved(self, matrix_with_missing):
        imputed = knn_impute(matrix_with_missing, n_neighbors=5)

        assert imputed.index.equals(matrix_with_missing.index)
        assert imputed.columns.equals(matrix_with_missing.columns)

        observed = matrix_with_missing.notna()
        np.testing.assert_allclose(
            imputed.values[observed.values], matrix_with_missing.values[observed.values]
        )

    def test_value_is_mean_of_nearest_proteins(self):
        matrix = pd.DataFrame(
            {
                "S1": [1.0, 1.0, 1.0, 10.0],
                "S2": [2.0, 2.0, 2.0, 20.0],
                "S3": [np.nan, 3.0, 5.0, 100.0],
            },
            index=["P1", "P2", "P3", "P4"],
        )

        imputed = knn_impute(matrix, n_neighbors=2)

        # P2 and P3 match P1 exactly on S1/S2; P4 is far away
        assert imputed.loc["P1", "S3"] == pytest.approx(4.0)

    def test_complete_matrix_returns_copy(self, shifted_log_matrix):
        imputed = knn_impute(shifted_log_matrix)

        pd.testing.assert_frame_equal(imputed, shifted_log_matrix)
        assert imputed is not shifted_log_matrix


class TestImputationErrors:
    """Test that undefined imputation fails loudly"""

    def test_all_missing_protein_raises(self, matrix_with_missing):
        matrix = matrix_with_missing.copy()
        matrix.iloc[3, :] = np.nan

        with pytest.raises(ImputationError, match="no observed values"):
            knn_impute(matrix)

    def test_all_missing_sample_raises(self, matrix_with_missing):
        matrix = matrix_with_missing.copy()
        matrix.iloc[:, 2] = np.nan

        with pytest.raises(ImputationError, match="samples have no observed values"):
            knn_impute(matrix)

    def test_infinite_values_raise(self, matrix_with_missing):
        matrix = matrix_with_missing.copy()
        matrix.iloc[0, 0] = -np.inf

        with pytest.raises(ImputationError, match="infinite"):
            check_imputable(matrix)
