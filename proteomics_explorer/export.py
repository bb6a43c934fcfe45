"""
Export Module for Exploratory Proteomics Analysis

Writes the differential results, the intermediate tables of a run and a
timestamped Python configuration file that load_config_file() reads back.
"""

import os
import pandas as pd
from datetime import datetime
from typing import Dict, Any, Optional, List

from .config import AnalysisConfig
from .statistical_analysis import top_table


CONFIG_SECTIONS = [
    (1, "INPUT FILES", ["input_path", "sample_name_delimiter"]),
    (2, "SAMPLE FILTERING", ["coverage_fraction"]),
    (3, "IMPUTATION", ["knn_neighbors"]),
    (4, "CLUSTERING", ["cluster_count", "max_elbow_clusters", "random_seed"]),
    (5, "SIGNIFICANCE THRESHOLDS", ["significance_alpha", "fold_change_threshold", "reference_group"]),
    (6, "VISUALIZATION SETTINGS", ["volcano_pvalue_line", "label_top_n"]),
    (7, "OUTPUT SETTINGS", ["output_dir", "output_prefix"]),
]


def _output_path(filename: str, output_dir: Optional[str]) -> str:
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)
        return os.path.join(output_dir, filename)
    return filename


def export_differential_results(
    differential_df: pd.DataFrame, output_file: str, include_all: bool = True
) -> str:
    """
    Export ranked differential results to a CSV file.

    Parameters:
    -----------
    differential_df : pd.DataFrame
        Differential analysis results indexed by protein
    output_file : str
        Output CSV filename
    include_all : bool
        Whether to include all proteins or only significant ones

    Returns:
    --------
    str : Path of the written file
    """
    ranked = top_table(differential_df)

    if not include_all:
        export_df = ranked[ranked["Significant"]].copy()
        print(f"Exporting {len(export_df)} significant proteins to {output_file}")
    else:
        export_df = ranked.copy()
        print(f"Exporting all {len(export_df)} proteins to {output_file}")

    export_df.index.name = "Protein"
    export_df.reset_index().to_csv(output_file, index=False)
    print("Results exported successfully!")
    return output_file


def export_significant_proteins_summary(
    differential_results: pd.DataFrame,
    output_prefix: str = "proteomics_exploration",
    output_dir: Optional[str] = None,
) -> str:
    """
    Export the significant proteins with their direction of change.

    Returns:
    --------
    str : Path to the summary file, or "" when nothing is significant
    """
    significant = differential_results[differential_results["Significant"]]

    if len(significant) == 0:
        print("No significant proteins found - skipping summary export")
        return ""

    summary_file = _output_path(f"{output_prefix}_significant_proteins_summary.csv", output_dir)

    summary_data = significant[["logFC", "P.Value", "adj.P.Val"]].copy()
    summary_data["Regulation"] = summary_data["logFC"].apply(lambda x: "Up" if x > 0 else "Down")
    summary_data = summary_data.sort_values("adj.P.Val")
    summary_data.index.name = "Protein"

    summary_data.reset_index().to_csv(summary_file, index=False)
    print(f"Significant proteins summary exported to: {summary_file}")
    print(f"  • Total significant: {len(summary_data)}")
    print(f"  • Upregulated: {(summary_data['Regulation'] == 'Up').sum()}")
    print(f"  • Downregulated: {(summary_data['Regulation'] == 'Down').sum()}")

    return summary_file


def _write_config_section(
    file_handle,
    section_name: str,
    config_dict: Dict[str, Any],
    param_names: List[str],
    section_number: int = 1,
) -> None:
    """Write a configuration section to file."""

    file_handle.write(
        "# =============================================================================\n"
    )
    file_handle.write(f"# {section_number}. {section_name}\n")
    file_handle.write(
        "# =============================================================================\n"
    )

    for param in param_names:
        if param in config_dict:
            file_handle.write(f"{param} = {repr(config_dict[param])}\n")

    file_handle.write("\n")


def export_timestamped_config(
    config: AnalysisConfig,
    output_prefix: Optional[str] = None,
    output_dir: Optional[str] = None,
    analysis_description: str = "Exploratory proteomics analysis",
    computed_values: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Export the analysis configuration as a timestamped Python file.

    Parameters:
    -----------
    config : AnalysisConfig
        Configuration to export
    output_prefix : str, optional
        Filename prefix (defaults to config.output_prefix)
    output_dir : str, optional
        Directory for the file (defaults to the working directory)
    analysis_description : str
        Description written into the header
    computed_values : dict, optional
        Additional values written as comments

    Returns:
    --------
    str : Path to the exported configuration file
    """
    prefix = output_prefix or config.output_prefix
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    config_file = _output_path(f"{prefix}_config_{timestamp}.py", output_dir)
    config_dict = config.to_dict()

    print(f"Exporting analysis configuration to: {config_file}")

    with open(config_file, "w", encoding="utf-8") as f:
        f.write(
            "# =============================================================================\n"
        )
        f.write("# PROTEOMICS EXPLORATION CONFIGURATION\n")
        f.write(f"# Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}\n")
        f.write(f"# Analysis: {analysis_description}\n")
        f.write(
            "# =============================================================================\n\n"
        )

        for section_num, section_name, param_names in CONFIG_SECTIONS:
            _write_config_section(f, section_name, config_dict, param_names, section_num)

        if computed_values:
            f.write(
                "# =============================================================================\n"
            )
            f.write("# COMPUTED VALUES (for reference)\n")
            f.write(
                "# =============================================================================\n"
            )
            for key, value in computed_values.items():
                f.write(f"# {key}: {value}\n")

    return config_file


def export_analysis_tables(
    results,
    output_dir: Optional[str] = None,
    output_prefix: str = "proteomics_exploration",
) -> Dict[str, str]:
    """
    Export the tables of a pipeline run as CSV files.

    Parameters:
    -----------
    results : AnalysisResults
        Output of pipeline.run_exploratory_analysis()
    output_dir : str, optional
        Destination directory
    output_prefix : str
        Filename prefix

    Returns:
    --------
    Dict[str, str] : Table name to written path
    """
    exported_files = {}

    def _write(name: str, frame: pd.DataFrame, index: bool) -> None:
        path = _output_path(f"{output_prefix}_{name}.csv", output_dir)
        frame.to_csv(path, index=index)
        exported_files[name] = path

    _write("imputed_matrix", results.imputed_matrix, index=True)
    _write("pca_scores", results.pca.with_clusters(results.clusters), index=True)
    _write("sample_metadata", results.sample_metadata, index=False)
    _write("missingness_summary", results.missingness_summary, index=False)
    _write("excluded_samples", pd.DataFrame({"Sample": results.excluded_samples}), index=False)

    exported_files["differential_results"] = export_differential_results(
        results.differential_results,
        _output_path(f"{output_prefix}_differential_results.csv", output_dir),
    )

    print("\n" + "=" * 60)
    print("✓ Analysis tables exported successfully!")
    print("Files created:")
    for name, path in exported_files.items():
        print(f"  • {path} - {name.replace('_', ' ')}")
    print("=" * 60)

    return exported_files
