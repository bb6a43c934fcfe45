"""
Tests for loading the intensity matrix
"""

import numpy as np
import pandas as pd
import pytest

from proteomics_explorer.data_import import load_intensity_matrix, truncate_sample_names


class TestTruncateSampleNames:
    """Test sample name truncation at the first delimiter"""

    def test_truncates_at_first_delimiter(self):
        mapping = truncate_sample_names(["S01_groupA_rep1", "S02_groupB"])
        assert mapping == {"S01_groupA_rep1": "S01", "S02_groupB": "S02"}

    def test_names_without_delimiter_unchanged(self):
        mapping = truncate_sample_names(["Sample1", "S02_x"])
        assert mapping["Sample1"] == "Sample1"
        assert mapping["S02_x"] == "S02"

    def test_custom_delimiter(self):
        mapping = truncate_sample_names(["S01-groupA_x"], delimiter="-")
        assert mapping == {"S01-groupA_x": "S01"}


class TestLoadIntensityMatrix:
    """Test reading a tab-delimited protein-by-sample file"""

    def test_loads_matrix_with_truncated_names(self, intensity_file, shifted_log_matrix):
        matrix = load_intensity_matrix(intensity_file)

        assert matrix.shape == (100, 10)
        assert list(matrix.columns) == list(shifted_log_matrix.columns)
        assert list(matrix.index) == list(shifted_log_matrix.index)
        assert matrix.index.name == "Protein"
        np.testing.assert_allclose(np.log2(matrix.values), shifted_log_matrix.values, atol=1e-9)

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_intensity_matrix(str(tmp_path / "does_not_exist.tsv"))

    def test_duplicate_truncated_names_rejected(self, tmp_path):
        path = tmp_path / "dup_samples.tsv"
        path.write_text("Protein\tS01_a\tS01_b\nP1\t100\t200\n")

        with pytest.raises(ValueError, match="not unique after truncation"):
            load_intensity_matrix(str(path))

    def test_duplicate_protein_ids_rejected(self, tmp_path):
        path = tmp_path / "dup_proteins.tsv"
        path.write_text("Protein\tS01_a\tS02_a\nP1\t100\t200\nP1\t300\t400\n")

        with pytest.raises(ValueError, match="Duplicated protein identifiers"):
            load_intensity_matrix(str(path))

    def test_empty_cells_and_text_read_as_missing(self, tmp_path):
        path = tmp_path / "gaps.tsv"
        path.write_text("Protein\tS01_a\tS02_a\nP1\t100\t\nP2\tn/a_value\t400\n")

        matrix = load_intensity_matrix(str(path))

        assert pd.isna(matrix.loc["P1", "S02"])
        assert pd.isna(matrix.loc["P2", "S01"])
        assert matrix.loc["P2", "S02"] == 400
