"""
Proteomics Explorer
===================

Exploratory analysis of a mass spectrometry protein-by-sample intensity
matrix: sample coverage filtering, log2 transformation, missingness
diagnostics, k-NN imputation, PCA, k-means clustering of samples, a
clustered z-score heatmap and a two-cluster moderated differential test.

QUICK START EXAMPLE:
-------------------
    import proteomics_explorer as pex

    config = pex.AnalysisConfig(input_path='proteins.tsv', output_dir='results')
    results = pex.run_exploratory_analysis(config)

    pex.top_table(results.differential_results).head(20)

Or stage by stage:

    matrix = pex.load_intensity_matrix('proteins.tsv')
    filtered = pex.filter_samples_by_coverage(matrix, coverage_fraction=0.8)
    log_matrix = pex.log2_transform(filtered.matrix)
    imputed = pex.knn_impute(log_matrix)
    pca = pex.run_pca(imputed)
    clusters = pex.cluster_samples(pca, n_clusters=2)
    metadata = pex.build_sample_metadata(clusters)
    results = pex.run_differential_analysis(imputed, metadata)
    pex.plot_volcano(results)

MODULE OVERVIEW:
===============

data_import
    Load the tab-delimited intensity matrix, truncate sample names
preprocessing
    Coverage filter, log2 transform, long format, missingness summary
imputation
    k-nearest-neighbour imputation with label re-attachment
dimensionality_reduction
    Scaled PCA with samples as observations
sample_clustering
    Elbow curve and k-means on (PC1, PC2)
statistical_analysis
    Linear models, empirical-Bayes moderation, BH correction, significance flags
visualization
    Histogram, Q-Q, missingness plots, PCA, elbow, heatmap, volcano
validation
    Pipeline exceptions and alignment checks
export
    CSV export of results and timestamped configuration files
pipeline
    run_exploratory_analysis(): every stage in order

ERROR HANDLING:
==============
Fatal problems raise a PipelineError subclass:
- EmptyMatrixError: no samples or proteins left
- ImputationError: a protein or sample with no observed values
- DesignMatrixError: the two-cluster design cannot be estimated
- AlignmentError: samples or proteins out of order between stages
Zero or negative intensities raise a NonFiniteValueWarning and become missing.
"""

from . import config
from . import validation
from . import data_import
from . import preprocessing
from . import imputation
from . import dimensionality_reduction
from . import sample_clustering
from . import statistical_analysis
from . import visualization
from . import export
from . import pipeline

__version__ = "0.1.0"

from .config import AnalysisConfig, load_config_file

from .validation import (
    PipelineError,
    EmptyMatrixError,
    ImputationError,
    DesignMatrixError,
    AlignmentError,
    NonFiniteValueWarning,
    validate_pipeline_alignment,
)

from .data_import import load_intensity_matrix, truncate_sample_names

from .preprocessing import (
    filter_samples_by_coverage,
    log2_transform,
    to_long_format,
    summarize_missingness,
)

from .imputation import knn_impute

from .dimensionality_reduction import PCAResult, run_pca

from .sample_clustering import compute_elbow_curve, cluster_samples, build_sample_metadata

from .statistical_analysis import (
    run_differential_analysis,
    apply_multiple_testing_correction,
    flag_significant,
    top_table,
)

from .visualization import (
    plot_intensity_histogram,
    plot_qq,
    plot_missing_per_sample,
    plot_missingness_matrix,
    plot_pca,
    plot_elbow,
    plot_zscore_heatmap,
    plot_volcano,
)

from .export import (
    export_differential_results,
    export_significant_proteins_summary,
    export_timestamped_config,
    export_analysis_tables,
)

from .pipeline import AnalysisResults, run_exploratory_analysis

__all__ = [
    # MODULES
    "config",
    "validation",
    "data_import",
    "preprocessing",
    "imputation",
    "dimensionality_reduction",
    "sample_clustering",
    "statistical_analysis",
    "visualization",
    "export",
    "pipeline",

    # CONFIGURATION
    "AnalysisConfig",
    "load_config_file",

    # ERRORS
    "PipelineError",
    "EmptyMatrixError",
    "ImputationError",
    "DesignMatrixError",
    "AlignmentError",
    "NonFiniteValueWarning",
    "validate_pipeline_alignment",

    # STAGES
    "load_intensity_matrix",
    "truncate_sample_names",
    "filter_samples_by_coverage",
    "log2_transform",
    "to_long_format",
    "summarize_missingness",
    "knn_impute",
    "PCAResult",
    "run_pca",
    "compute_elbow_curve",
    "cluster_samples",
    "build_sample_metadata",
    "run_differential_analysis",
    "apply_multiple_testing_correction",
    "flag_significant",
    "top_table",

    # VISUALIZATION
    "plot_intensity_histogram",
    "plot_qq",
    "plot_missing_per_sample",
    "plot_missingness_matrix",
    "plot_pca",
    "plot_elbow",
    "plot_zscore_heatmap",
    "plot_volcano",

    # EXPORT
    "export_differential_results",
    "export_significant_proteins_summary",
    "export_timestamped_config",
    "export_analysis_tables",

    # PIPELINE
    "AnalysisResults",
    "run_exploratory_analysis",
]
