"""
Validation Module for Exploratory Proteomics Analysis

Exceptions raised by the pipeline stages and checks that the tables passed
between stages stay aligned (same samples, same proteins, same order).
"""

import pandas as pd
from typing import Dict, List, Optional


class PipelineError(Exception):
    """Base exception for fatal pipeline failures."""
    def __init__(self, message):
        super().__init__(message)


class EmptyMatrixError(PipelineError):
    """Raised when a matrix has no samples or no proteins left."""
    def __init__(self, message):
        super().__init__(message)


class ImputationError(PipelineError):
    """Raised when k-NN imputation cannot be computed for the input matrix."""
    def __init__(self, message):
        super().__init__(message)


class DesignMatrixError(PipelineError):
    """Raised when the two-group design cannot be estimated."""
    def __init__(self, message):
        super().__init__(message)


class AlignmentError(PipelineError):
    """Raised when samples or proteins drift out of order between stages."""
    def __init__(self, message):
        super().__init__(message)


class NonFiniteValueWarning(UserWarning):
    """Warning for infinite/undefined values produced by the log transform."""


def check_matrix_not_empty(matrix: pd.DataFrame, stage: str) -> None:
    """
    Raise EmptyMatrixError if the matrix has no samples or no proteins.

    Parameters:
    -----------
    matrix : pd.DataFrame
        Protein-by-sample matrix
    stage : str
        Stage name used in the error message
    """
    n_proteins, n_samples = matrix.shape
    if n_samples == 0 or n_proteins == 0:
        raise EmptyMatrixError(
            f"Empty matrix after {stage}: {n_proteins} proteins x {n_samples} samples"
        )


def _describe_mismatch(expected: List[str], observed: List[str]) -> str:
    missing = [x for x in expected if x not in set(observed)]
    extra = [x for x in observed if x not in set(expected)]
    if missing or extra:
        return (f"missing {missing[:5]}{'...' if len(missing) > 5 else ''}, "
                f"unexpected {extra[:5]}{'...' if len(extra) > 5 else ''}")
    return "same labels in a different order"


def validate_pipeline_alignment(
    imputed_matrix: pd.DataFrame,
    pca_scores: pd.DataFrame,
    sample_metadata: pd.DataFrame,
    differential_results: Optional[pd.DataFrame] = None,
    raise_on_error: bool = True,
    verbose: bool = False
) -> Dict:
    """
    Check sample and protein alignment across pipeline outputs.

    Samples must appear in the same order as imputed matrix columns, PCA
    score rows and metadata rows. Proteins must appear in the same order as
    imputed matrix rows and differential result rows.

    Parameters:
    -----------
    imputed_matrix : pd.DataFrame
        Protein-by-sample imputed matrix
    pca_scores : pd.DataFrame
        Sample-by-component PCA scores
    sample_metadata : pd.DataFrame
        Metadata table with a 'Sample' column
    differential_results : pd.DataFrame, optional
        Differential results indexed by protein
    raise_on_error : bool, default True
        Raise AlignmentError when any check fails
    verbose : bool, default False
        Print the outcome of each check

    Returns:
    --------
    Dict with keys 'is_valid' and 'errors'
    """
    results = {'is_valid': True, 'errors': []}

    samples = [str(s) for s in imputed_matrix.columns]
    checks = [
        ("PCA scores", [str(s) for s in pca_scores.index]),
        ("sample metadata", [str(s) for s in sample_metadata['Sample']]),
    ]
    for name, observed in checks:
        if observed != samples:
            results['errors'].append(
                f"Sample order in {name} does not match the imputed matrix: "
                f"{_describe_mismatch(samples, observed)}"
            )

    if differential_results is not None:
        proteins = [str(p) for p in imputed_matrix.index]
        observed = [str(p) for p in differential_results.index]
        if observed != proteins:
            results['errors'].append(
                "Protein order in differential results does not match the imputed matrix: "
                f"{_describe_mismatch(proteins, observed)}"
            )

    results['is_valid'] = not results['errors']

    if verbose:
        if results['is_valid']:
            print("✓ Samples and proteins aligned across pipeline outputs")
        for error in results['errors']:
            print(f"✗ {error}")

    if raise_on_error and not results['is_valid']:
        raise AlignmentError("Pipeline alignment check failed:\n" + "\n".join(results['errors']))

    return results
