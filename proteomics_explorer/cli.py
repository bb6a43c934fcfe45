"""Command-line interface for the exploratory proteomics pipeline."""

import argparse
import sys

import matplotlib

from .config import AnalysisConfig, load_config_file
from .validation import PipelineError


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="proteomics-explorer",
        description="Exploratory analysis of a protein-by-sample intensity matrix: "
                    "coverage filter, log2, k-NN imputation, PCA, k-means and a "
                    "two-cluster moderated differential test.",
    )
    parser.add_argument("input", nargs="?", help="Tab-delimited intensity file")
    parser.add_argument("-c", "--config", help="Python configuration file (overrides defaults)")
    parser.add_argument("-o", "--output-dir", help="Directory for figures and tables")
    parser.add_argument("--prefix", help="Output filename prefix")
    parser.add_argument("--coverage-fraction", type=float, help="Fraction of median coverage a sample must reach")
    parser.add_argument("--neighbors", type=int, help="k for k-NN imputation")
    parser.add_argument("--clusters", type=int, help="Number of k-means clusters")
    parser.add_argument("--alpha", type=float, help="Adjusted p-value cutoff")
    parser.add_argument("--fold-change", type=float, help="Linear fold-change cutoff")
    parser.add_argument("--seed", type=int, help="Random seed for k-means")
    parser.add_argument("--no-plots", action="store_true", help="Skip all figures")
    parser.add_argument("-q", "--quiet", action="store_true", help="Suppress progress output")
    return parser


def config_from_args(args: argparse.Namespace) -> AnalysisConfig:
    """Start from the config file (or defaults) and apply command-line overrides."""
    config = load_config_file(args.config) if args.config else AnalysisConfig()

    overrides = {
        "input_path": args.input,
        "output_dir": args.output_dir,
        "output_prefix": args.prefix,
        "coverage_fraction": args.coverage_fraction,
        "knn_neighbors": args.neighbors,
        "cluster_count": args.clusters,
        "significance_alpha": args.alpha,
        "fold_change_threshold": args.fold_change,
        "random_seed": args.seed,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)

    config.validate()
    return config


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.output_dir:
        # figures are written to disk, never shown
        matplotlib.use("Agg")

    from .pipeline import run_exploratory_analysis

    try:
        config = config_from_args(args)
        if not config.input_path:
            parser.error("an input file is required (positional argument or input_path in the config file)")
        results = run_exploratory_analysis(config, make_plots=not args.no_plots, verbose=not args.quiet)
    except (PipelineError, ValueError, FileNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    n_sig = int(results.differential_results["Significant"].sum())
    print(f"Done: {len(results.differential_results)} proteins tested, {n_sig} significant")
    return 0


if __name__ == "__main__":
    sys.exit(main())
