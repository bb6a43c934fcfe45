"""
Pytest configuration and fixtures for proteomics_explorer tests
"""

import matplotlib

matplotlib.use("Agg")

import pytest
import pandas as pd
import numpy as np


N_PROTEINS = 100
N_SHIFTED = 10
SAMPLES = [f"S{i:02d}" for i in range(1, 11)]
GROUPS = {s: ("groupA" if i < 5 else "groupB") for i, s in enumerate(SAMPLES)}


def _write_intensity_file(path, log_matrix):
    """Write 2**log_matrix as a tab-delimited file with '<sample>_<group>' headers."""
    raw = np.power(2.0, log_matrix)
    raw.columns = [f"{s}_{GROUPS[s]}" for s in log_matrix.columns]
    raw.index.name = "Protein"
    raw.to_csv(path, sep="\t")
    return str(path)


@pytest.fixture
def shifted_log_matrix():
    """
    100 proteins x 10 samples of log2 intensities.

    Samples S01-S05 are group A and S06-S10 group B. The first 10 proteins
    carry replicate noise and a +2 log2 shift in group B; the other 90 sit at
    a flat integer baseline so the group structure dominates the scaled PCA.
    """
    np.random.seed(42)

    proteins = [f"P{i:05d}" for i in range(N_PROTEINS)]
    baselines = np.random.randint(16, 25, size=N_PROTEINS).astype(float)
    values = np.tile(baselines[:, None], (1, len(SAMPLES)))

    values[:N_SHIFTED] += np.random.normal(0, 0.3, (N_SHIFTED, len(SAMPLES)))
    values[:N_SHIFTED, 5:] += 2.0

    matrix = pd.DataFrame(values, index=proteins, columns=SAMPLES)
    matrix.index.name = "Protein"
    matrix.columns.name = "Sample"
    return matrix


@pytest.fixture
def shifted_proteins(shifted_log_matrix):
    """Identifiers of the proteins shifted between the two groups"""
    return list(shifted_log_matrix.index[:N_SHIFTED])


@pytest.fixture
def true_groups():
    """Known group of each sample"""
    return pd.Series(GROUPS)


@pytest.fixture
def intensity_file(tmp_path, shifted_log_matrix):
    """Tab-delimited raw intensity file for the shifted design"""
    return _write_intensity_file(tmp_path / "intensities.tsv", shifted_log_matrix)


@pytest.fixture
def sparse_log_matrix(shifted_log_matrix):
    """Shifted design where sample S07 is missing 95 of its 100 proteins"""
    matrix = shifted_log_matrix.copy()
    matrix.iloc[:95, matrix.columns.get_loc("S07")] = np.nan
    return matrix


@pytest.fixture
def sparse_intensity_file(tmp_path, sparse_log_matrix):
    """Tab-delimited raw intensity file with one 95%-missing sample"""
    return _write_intensity_file(tmp_path / "sparse_intensities.tsv", sparse_log_matrix)


@pytest.fixture
def true_metadata():
    """Sample metadata using the known groups as clusters 1 and 2"""
    return pd.DataFrame({
        "Sample": SAMPLES,
        "Cluster": pd.Categorical([1] * 5 + [2] * 5, categories=[1, 2]),
    })


@pytest.fixture
def matrix_with_missing():
    """Small random log2 matrix with scattered missing values"""
    np.random.seed(7)
    values = np.random.normal(20, 2, (30, 6))
    mask = np.random.random(values.shape) < 0.1
    mask[:, 0] = False  # every protein keeps an observed value
    values[mask] = np.nan
    return pd.DataFrame(
        values,
        index=[f"P{i:05d}" for i in range(30)],
        columns=[f"S{i:02d}" for i in range(1, 7)],
    )


@pytest.fixture
def differential_table():
    """Constructed results table straddling both significance thresholds"""
    return pd.DataFrame({
        "logFC": [1.0, 0.5, 1.0, -1.0, 0.59, 1.0, -0.58],
        "AveExpr": [20.0] * 7,
        "t": [5.0, 2.0, 3.0, -5.0, 4.0, 2.5, -4.0],
        "P.Value": [0.0001, 0.0002, 0.01, 0.0001, 0.0003, 0.005, 0.0002],
        "adj.P.Val": [0.005, 0.005, 0.02, 0.005, 0.0099, 0.01, 0.005],
    }, index=["up", "small_fc", "high_p", "down", "edge", "p_at_alpha", "fc_below"])
