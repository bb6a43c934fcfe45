"""
Preprocessing Module for Exploratory Proteomics Analysis

Sample coverage filtering, log2 transformation and missingness summaries.
"""

import pandas as pd
import numpy as np
import warnings
from dataclasses import dataclass
from typing import List

from .validation import check_matrix_not_empty, NonFiniteValueWarning


@dataclass(frozen=True)
class SampleFilterResult:
    """Outcome of the coverage filter."""
    matrix: pd.DataFrame
    excluded_samples: List[str]
    detected_counts: pd.Series
    threshold: float


def count_detected_per_sample(matrix: pd.DataFrame) -> pd.Series:
    """Number of non-missing proteins in each sample column."""
    counts = matrix.notna().sum(axis=0)
    counts.name = "Detected"
    return counts


def filter_samples_by_coverage(
    matrix: pd.DataFrame, coverage_fraction: float = 0.8
) -> SampleFilterResult:
    """
    Drop samples with too few detected proteins.

    The threshold is ``coverage_fraction`` times the median detected count,
    where the median is taken over all samples before any are removed.
    Samples with a count below the threshold are dropped.

    Parameters:
    -----------
    matrix : pd.DataFrame
        Protein-by-sample intensity matrix
    coverage_fraction : float
        Fraction of the median detected count a sample must reach (default: 0.8)

    Returns:
    --------
    SampleFilterResult : Filtered matrix, excluded sample ids, counts and threshold
    """

    print("=== FILTERING SAMPLES BY COVERAGE ===\n")

    counts = count_detected_per_sample(matrix)
    threshold = float(coverage_fraction * counts.median()) if len(counts) > 0 else 0.0

    keep = counts >= threshold
    excluded = [str(s) for s in counts.index[~keep]]
    filtered = matrix.loc[:, keep.values].copy()

    print(f"Median detected proteins per sample: {counts.median():.1f}")
    print(f"Coverage threshold ({coverage_fraction * 100:.0f}% of median): {threshold:.1f}")
    print(f"Original samples: {matrix.shape[1]}")
    print(f"Retained samples: {filtered.shape[1]}")
    if excluded:
        for sample in excluded:
            print(f"  Removed {sample}: {counts[sample]} detected proteins")
    else:
        print("  No samples removed")

    check_matrix_not_empty(filtered, "sample filtering")

    return SampleFilterResult(
        matrix=filtered,
        excluded_samples=excluded,
        detected_counts=counts,
        threshold=threshold,
    )


def log2_transform(matrix: pd.DataFrame) -> pd.DataFrame:
    """
    Apply an elementwise base-2 logarithm.

    Zero and negative intensities have no finite logarithm. They are reported
    with a NonFiniteValueWarning and stored as missing values so that they
    are handled by imputation instead of propagating as infinities.

    Parameters:
    -----------
    matrix : pd.DataFrame
        Protein-by-sample intensity matrix

    Returns:
    --------
    pd.DataFrame : Log2-transformed matrix with the same labels
    """
    values = matrix.to_numpy(dtype=float)

    with np.errstate(divide="ignore", invalid="ignore"):
        logged = np.log2(values)

    nonfinite = ~np.isfinite(logged) & ~np.isnan(values)
    n_nonfinite = int(nonfinite.sum())
    if n_nonfinite > 0:
        affected = [str(s) for s in matrix.columns[nonfinite.any(axis=0)]]
        warnings.warn(
            f"log2 transform produced {n_nonfinite} non-finite values from zero or negative "
            f"intensities in samples {affected[:5]}{'...' if len(affected) > 5 else ''}; "
            "they are treated as missing",
            NonFiniteValueWarning,
        )
        logged[nonfinite] = np.nan

    print(f"Applied log2 transformation to {matrix.shape[0]} proteins x {matrix.shape[1]} samples")

    transformed = pd.DataFrame(logged, index=matrix.index, columns=matrix.columns)
    return transformed


def to_long_format(matrix: pd.DataFrame) -> pd.DataFrame:
    """
    Reshape a protein-by-sample matrix into (Protein, Sample, Value) rows.

    Missing values are kept as rows with a NaN Value.
    """
    wide = matrix.copy()
    wide.index.name = "Protein"
    wide.columns.name = None
    long_df = wide.reset_index().melt(id_vars="Protein", var_name="Sample", value_name="Value")
    return long_df[["Protein", "Sample", "Value"]]


def summarize_missingness(matrix: pd.DataFrame) -> pd.DataFrame:
    """
    Per-sample count and percentage of missing values.

    Returns:
    --------
    pd.DataFrame with columns Sample, Missing, Total, Percent_Missing
    """
    missing = matrix.isna().sum(axis=0)
    total = len(matrix)
    summary = pd.DataFrame({
        "Sample": [str(s) for s in matrix.columns],
        "Missing": missing.values.astype(int),
        "Total": total,
    })
    summary["Percent_Missing"] = summary["Missing"] / total * 100 if total > 0 else 0.0
    return summary


def assess_data_completeness(matrix: pd.DataFrame) -> pd.DataFrame:
    """
    Print a completeness report for the matrix and return the per-sample summary.

    Parameters:
    -----------
    matrix : pd.DataFrame
        Protein-by-sample matrix (typically log2 transformed)

    Returns:
    --------
    pd.DataFrame : Output of summarize_missingness()
    """

    print("=== ASSESSING DATA COMPLETENESS ===\n")

    total_values = matrix.shape[0] * matrix.shape[1]
    non_null_values = int(matrix.notna().sum().sum())

    print("Data completeness summary:")
    print(f"Total possible values: {total_values:,}")
    if total_values > 0:
        print(
            f"Non-null values: {non_null_values:,} ({non_null_values / total_values * 100:.1f}%)"
        )

    summary = summarize_missingness(matrix)
    print("\nPer-sample missingness:")
    for _, row in summary.iterrows():
        print(f"{row['Sample']}: {row['Missing']}/{row['Total']} missing ({row['Percent_Missing']:.1f}%)")

    detected_per_protein = matrix.notna().sum(axis=1)
    n_samples = matrix.shape[1]
    print("\nProtein detection summary:")
    print(f"Proteins detected in all samples: {(detected_per_protein == n_samples).sum()}")
    print(f"Proteins detected in >50% samples: {(detected_per_protein > 0.5 * n_samples).sum()}")
    print(f"Proteins never detected: {(detected_per_protein == 0).sum()}")

    return summary
