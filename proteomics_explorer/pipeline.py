"""
Exploratory analysis pipeline.

Runs the stages in a fixed order, each taking the previous stage's output as
an explicit argument:

    load -> filter samples -> log2 -> missingness report -> k-NN impute
    -> PCA -> k-means -> heatmap -> differential test

Any stage failure propagates; there are no retries and no partial results.
"""

import contextlib
import io
import os
import pandas as pd
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional

from .config import AnalysisConfig
from .data_import import load_intensity_matrix
from .preprocessing import filter_samples_by_coverage, log2_transform, to_long_format, assess_data_completeness
from .imputation import knn_impute
from .dimensionality_reduction import PCAResult, run_pca
from .sample_clustering import compute_elbow_curve, cluster_samples, build_sample_metadata
from .statistical_analysis import run_differential_analysis, display_analysis_summary
from .validation import validate_pipeline_alignment
from . import visualization as viz
from . import export


@dataclass(frozen=True)
class AnalysisResults:
    """Every intermediate table of one pipeline run."""
    config: AnalysisConfig
    raw_matrix: pd.DataFrame
    filtered_matrix: pd.DataFrame
    excluded_samples: List[str]
    log_matrix: pd.DataFrame
    long_table: pd.DataFrame
    missingness_summary: pd.DataFrame
    imputed_matrix: pd.DataFrame
    pca: PCAResult
    elbow_curve: pd.DataFrame
    clusters: pd.Series
    sample_metadata: pd.DataFrame
    differential_results: pd.DataFrame
    figures: Dict[str, Optional[str]] = field(default_factory=dict)
    exported_files: Dict[str, str] = field(default_factory=dict)


def _figure_path(config: AnalysisConfig, name: str) -> Optional[str]:
    if not config.output_dir:
        return None
    os.makedirs(config.output_dir, exist_ok=True)
    return os.path.join(config.output_dir, f"{config.output_prefix}_{name}.png")


def _run_stages(config: AnalysisConfig, make_plots: bool) -> AnalysisResults:
    figures = {}

    def plot(name, func, *args, **kwargs):
        if make_plots:
            path = _figure_path(config, name)
            func(*args, save_path=path, **kwargs)
            figures[name] = path

    # 1. Loader
    raw_matrix = load_intensity_matrix(config.input_path, delimiter=config.sample_name_delimiter)

    # 2. Sample filter
    filtered = filter_samples_by_coverage(raw_matrix, coverage_fraction=config.coverage_fraction)

    # 3. Transformer
    log_matrix = log2_transform(filtered.matrix)

    # 4. Missingness reporter
    long_table = to_long_format(log_matrix)
    missingness_summary = assess_data_completeness(log_matrix)
    plot("intensity_histogram", viz.plot_intensity_histogram, log_matrix)
    plot("qq_plot", viz.plot_qq, log_matrix)
    plot("missing_per_sample", viz.plot_missing_per_sample, missingness_summary)
    plot("missingness_matrix", viz.plot_missingness_matrix, log_matrix)

    # 5. Imputer
    imputed_matrix = knn_impute(log_matrix, n_neighbors=config.knn_neighbors)

    # 6. Dimensionality reducer
    pca = run_pca(imputed_matrix)
    plot("pca", viz.plot_pca, pca)

    # 7. Clusterer
    elbow_curve = compute_elbow_curve(pca, max_clusters=config.max_elbow_clusters,
                                      random_seed=config.random_seed)
    plot("elbow", viz.plot_elbow, elbow_curve, selected_k=config.cluster_count)
    clusters = cluster_samples(pca, n_clusters=config.cluster_count, random_seed=config.random_seed)
    sample_metadata = build_sample_metadata(clusters)
    plot("pca_clusters", viz.plot_pca, pca, clusters=clusters, title="PCA by K-means Cluster")

    # 8. Heatmap renderer
    plot("heatmap", viz.plot_zscore_heatmap, imputed_matrix, clusters=clusters)

    # 9. Differential tester
    differential_results = run_differential_analysis(
        imputed_matrix,
        sample_metadata,
        alpha=config.significance_alpha,
        fold_change_threshold=config.fold_change_threshold,
        reference_group=config.reference_group,
    )
    display_analysis_summary(differential_results, label_top_n=config.label_top_n)
    plot("volcano", viz.plot_volcano, differential_results,
         fc_threshold=config.fold_change_threshold,
         p_threshold=config.significance_alpha,
         pvalue_line=config.effective_volcano_pvalue_line,
         label_top_n=config.label_top_n)

    validate_pipeline_alignment(imputed_matrix, pca.scores, sample_metadata,
                                differential_results, raise_on_error=True, verbose=True)

    return AnalysisResults(
        config=config,
        raw_matrix=raw_matrix,
        filtered_matrix=filtered.matrix,
        excluded_samples=filtered.excluded_samples,
        log_matrix=log_matrix,
        long_table=long_table,
        missingness_summary=missingness_summary,
        imputed_matrix=imputed_matrix,
        pca=pca,
        elbow_curve=elbow_curve,
        clusters=clusters,
        sample_metadata=sample_metadata,
        differential_results=differential_results,
        figures=figures,
    )


def run_exploratory_analysis(
    config: AnalysisConfig,
    make_plots: bool = True,
    export_tables: Optional[bool] = None,
    verbose: bool = True
) -> AnalysisResults:
    """
    Run the full exploratory analysis for one intensity file.

    Parameters:
    -----------
    config : AnalysisConfig
        Analysis configuration; ``input_path`` is required
    make_plots : bool
        Render the diagnostic and result figures. They are saved under
        ``config.output_dir`` when it is set and shown otherwise.
    export_tables : bool, optional
        Write the result tables and a timestamped config to
        ``config.output_dir``. Defaults to True when output_dir is set.
    verbose : bool
        Print stage progress

    Returns:
    --------
    AnalysisResults
    """
    config.validate()
    if not config.input_path:
        raise ValueError("config.input_path must be set")

    if export_tables is None:
        export_tables = bool(config.output_dir)

    stream = contextlib.nullcontext() if verbose else contextlib.redirect_stdout(io.StringIO())
    with stream:
        results = _run_stages(config, make_plots)

        if export_tables:
            exported_files = export.export_analysis_tables(
                results, output_dir=config.output_dir, output_prefix=config.output_prefix
            )
            exported_files["configuration"] = export.export_timestamped_config(
                config,
                output_dir=config.output_dir,
                computed_values={
                    "Proteins analyzed": results.imputed_matrix.shape[0],
                    "Samples analyzed": results.imputed_matrix.shape[1],
                    "Excluded samples": results.excluded_samples,
                    "Contrast": results.differential_results.attrs.get("contrast"),
                    "Significant proteins": int(results.differential_results["Significant"].sum()),
                },
            )
            summary_file = export.export_significant_proteins_summary(
                results.differential_results,
                output_prefix=config.output_prefix,
                output_dir=config.output_dir,
            )
            if summary_file:
                exported_files["significant_summary"] = summary_file
            results = replace(results, exported_files=exported_files)

    return results
