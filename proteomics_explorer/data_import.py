"""
Data Import Module for Exploratory Proteomics Analysis

Functions for loading a tab-delimited protein-by-sample intensity matrix.
"""

import pandas as pd
import os
from typing import Dict, List

from .validation import check_matrix_not_empty


def truncate_sample_names(sample_columns: List[str], delimiter: str = "_") -> Dict[str, str]:
    """
    Truncate sample names to the prefix before the first delimiter.

    Names that do not contain the delimiter are kept unchanged.

    Parameters:
    -----------
    sample_columns : List[str]
        Original sample column names
    delimiter : str
        Delimiter marking the end of the sample identifier (default: '_')

    Returns:
    --------
    Dict[str, str] : Mapping from original to truncated names
    """
    return {str(name): str(name).split(delimiter, 1)[0] for name in sample_columns}


def load_intensity_matrix(input_path: str, sep: str = "\t", delimiter: str = "_") -> pd.DataFrame:
    """
    Load a protein-by-sample intensity matrix.

    The first column holds protein identifiers and becomes the row index; the
    header row holds sample names, which are truncated at the first
    ``delimiter``. Cells that are not numeric are read as missing.

    Parameters:
    -----------
    input_path : str
        Path to the delimited intensity file
    sep : str
        Field separator (default: tab)
    delimiter : str
        Sample name truncation delimiter (default: '_')

    Returns:
    --------
    pd.DataFrame : Intensity matrix (index 'Protein', columns 'Sample')
    """

    print("=== LOADING INTENSITY MATRIX ===\n")

    if not os.path.exists(input_path):
        raise FileNotFoundError(f"Intensity file not found: {input_path}")

    try:
        raw = pd.read_csv(input_path, sep=sep, index_col=0)
    except Exception as e:
        raise ValueError(f"Error loading intensity file: {e}")

    print(f"✓ Loaded intensity data: {raw.shape}")

    if raw.index.has_duplicates:
        duplicated = raw.index[raw.index.duplicated()].unique().tolist()
        raise ValueError(
            f"Duplicated protein identifiers: {duplicated[:5]}{'...' if len(duplicated) > 5 else ''}"
        )

    name_map = truncate_sample_names(list(raw.columns), delimiter=delimiter)
    truncated = pd.Series(list(name_map.values()))
    if truncated.duplicated().any():
        duplicated = truncated[truncated.duplicated()].unique().tolist()
        raise ValueError(
            f"Sample names are not unique after truncation at '{delimiter}': {duplicated}"
        )

    matrix = raw.apply(pd.to_numeric, errors="coerce")
    matrix.columns = list(name_map.values())
    matrix.index = matrix.index.astype(str)
    matrix.index.name = "Protein"
    matrix.columns.name = "Sample"

    check_matrix_not_empty(matrix, "loading")

    n_coerced = int(matrix.isna().sum().sum() - raw.isna().sum().sum())
    if n_coerced > 0:
        print(f"  Non-numeric cells read as missing: {n_coerced}")

    print(f"✓ Proteins: {matrix.shape[0]}, samples: {matrix.shape[1]}")
    return matrix
