"""
Visualization Module for Exploratory Proteomics Analysis

Distribution and missingness diagnostics, PCA and elbow plots, the z-scored
clustered heatmap and the volcano plot.

Every plot function returns its matplotlib Figure. When ``save_path`` is
given the figure is written there and closed; otherwise it is shown.
"""

import pandas as pd
import numpy as np
import matplotlib.pyplot as plt
import seaborn as sns
from matplotlib.figure import Figure
from scipy import stats
from typing import Optional, Tuple
import warnings

from .dimensionality_reduction import PCAResult


CLUSTER_COLORS = ['#e41a1c', '#377eb8', '#4daf4a', '#984ea3', '#ff7f00',
                  '#ffff33', '#a65628', '#f781bf', '#66c2a5', '#8da0cb']


def _finish_figure(fig: Figure, save_path: Optional[str] = None) -> Figure:
    if save_path:
        fig.savefig(save_path, dpi=150, bbox_inches="tight")
        plt.close(fig)
        print(f"  Saved figure: {save_path}")
    else:
        plt.show()
    return fig


def _cluster_color_map(clusters: pd.Series) -> dict:
    if isinstance(clusters.dtype, pd.CategoricalDtype):
        levels = list(clusters.cat.categories)
    else:
        levels = sorted(clusters.dropna().unique().tolist())
    return {lvl: CLUSTER_COLORS[i % len(CLUSTER_COLORS)] for i, lvl in enumerate(levels)}


def _finite_values(matrix: pd.DataFrame) -> np.ndarray:
    values = matrix.to_numpy(dtype=float).ravel()
    return values[np.isfinite(values)]


def plot_intensity_histogram(
    log_matrix: pd.DataFrame,
    bins: int = 50,
    figsize: Tuple[int, int] = (10, 6),
    title: str = "Distribution of Log2 Intensities",
    save_path: Optional[str] = None,
) -> Figure:
    """
    Frequency histogram of all finite log2 intensities.

    Parameters:
    -----------
    log_matrix : pd.DataFrame
        Log2 protein-by-sample matrix
    bins : int
        Number of histogram bins
    figsize : Tuple[int, int]
        Figure size (width, height)
    title : str
        Plot title
    save_path : str, optional
        Write the figure here instead of showing it
    """
    values = _finite_values(log_matrix)

    fig, ax = plt.subplots(figsize=figsize)
    sns.histplot(values, bins=bins, color="#377eb8", edgecolor="white", ax=ax)
    ax.set_xlabel("Log2 Intensity", fontsize=14)
    ax.set_ylabel("Frequency", fontsize=14)
    ax.set_title(title, fontsize=16, fontweight="bold")
    ax.grid(True, alpha=0.3, axis="y")
    plt.tight_layout()

    print("Histogram summary:")
    print(f"Finite values plotted: {len(values):,}")
    if len(values) > 0:
        print(f"Median log2 intensity: {np.median(values):.2f}")

    return _finish_figure(fig, save_path)


def plot_qq(
    log_matrix: pd.DataFrame,
    figsize: Tuple[int, int] = (8, 8),
    title: str = "Normal Q-Q Plot of Log2 Intensities",
    save_path: Optional[str] = None,
) -> Figure:
    """Normal Q-Q plot of all finite log2 intensities with a reference line."""
    values = _finite_values(log_matrix)

    fig, ax = plt.subplots(figsize=figsize)
    if len(values) > 1:
        (theoretical, ordered), (slope, intercept, r) = stats.probplot(values, dist="norm")
        ax.scatter(theoretical, ordered, s=6, alpha=0.5, color="#377eb8")
        ax.plot(theoretical, slope * theoretical + intercept, color="#e41a1c", linewidth=2)
        print(f"Q-Q fit: slope={slope:.3f}, intercept={intercept:.3f}, r={r:.4f}")
    else:
        print("Not enough finite values for a Q-Q plot")

    ax.set_xlabel("Theoretical Quantiles", fontsize=14)
    ax.set_ylabel("Sample Quantiles", fontsize=14)
    ax.set_title(title, fontsize=16, fontweight="bold")
    ax.grid(True, alpha=0.3)
    plt.tight_layout()

    return _finish_figure(fig, save_path)


def plot_missing_per_sample(
    missingness_summary: pd.DataFrame,
    figsize: Tuple[int, int] = (12, 6),
    title: str = "Missing Values per Sample",
    save_path: Optional[str] = None,
) -> Figure:
    """
    Bar chart of missing value counts per sample.

    Parameters:
    -----------
    missingness_summary : pd.DataFrame
        Output of preprocessing.summarize_missingness()
    """
    fig, ax = plt.subplots(figsize=figsize)
    positions = np.arange(len(missingness_summary))
    ax.bar(positions, missingness_summary["Missing"], color="#984ea3", alpha=0.8)
    ax.set_xticks(positions)
    ax.set_xticklabels(missingness_summary["Sample"], rotation=45, ha="right", fontsize=10)
    ax.set_xlabel("Sample", fontsize=14)
    ax.set_ylabel("Missing Values", fontsize=14)
    ax.set_title(title, fontsize=16, fontweight="bold")
    ax.grid(True, alpha=0.3, axis="y")
    plt.tight_layout()

    if len(missingness_summary) > 0:
        worst = missingness_summary.sort_values("Missing", ascending=False).iloc[0]
        print(f"Most missing: {worst['Sample']} ({worst['Percent_Missing']:.1f}%)")

    return _finish_figure(fig, save_path)


def plot_missingness_matrix(
    log_matrix: pd.DataFrame,
    figsize: Tuple[int, int] = (12, 8),
    title: str = "Missingness Matrix",
    save_path: Optional[str] = None,
) -> Figure:
    """Heatmap of observed (light) versus missing (dark) cells, proteins by samples."""
    missing = log_matrix.isna().astype(int)

    fig, ax = plt.subplots(figsize=figsize)
    sns.heatmap(
        missing,
        cmap=["#f0f0f0", "#252525"],
        vmin=0,
        vmax=1,
        cbar_kws={"ticks": [0.25, 0.75]},
        yticklabels=len(missing) <= 50,
        ax=ax,
    )
    colorbar = ax.collections[0].colorbar
    colorbar.set_ticklabels(["Observed", "Missing"])
    ax.set_xlabel("Sample", fontsize=14)
    ax.set_ylabel(f"Proteins (n={len(missing)})", fontsize=14)
    ax.set_title(title, fontsize=16, fontweight="bold")
    plt.tight_layout()

    total = missing.size
    if total > 0:
        print(f"Overall missingness: {missing.values.sum() / total * 100:.1f}%")

    return _finish_figure(fig, save_path)


def plot_pca(
    pca_result: PCAResult,
    clusters: Optional[pd.Series] = None,
    figsize: Tuple[int, int] = (10, 8),
    title: str = "Principal Component Analysis",
    label_samples: bool = True,
    save_path: Optional[str] = None,
) -> Figure:
    """
    Scatter of samples on PC1 and PC2, optionally coloured by cluster.

    Parameters:
    -----------
    pca_result : PCAResult
        Output of dimensionality_reduction.run_pca()
    clusters : pd.Series, optional
        Cluster label per sample
    """
    scores = pca_result.scores
    ratio = pca_result.explained_variance_ratio

    fig, ax = plt.subplots(figsize=figsize)

    if clusters is None:
        ax.scatter(scores["PC1"], scores["PC2"], c="#377eb8", alpha=0.7, s=100,
                   edgecolors="black", linewidth=0.5)
    else:
        clusters = clusters.reindex(scores.index)
        color_map = _cluster_color_map(clusters)
        for cluster, color in color_map.items():
            members = clusters == cluster
            ax.scatter(
                scores.loc[members.values, "PC1"],
                scores.loc[members.values, "PC2"],
                c=color,
                label=f"Cluster {cluster}",
                alpha=0.7,
                s=100,
                edgecolors="black",
                linewidth=0.5,
            )
        ax.legend()

    if label_samples:
        for sample, row in scores.iterrows():
            ax.annotate(str(sample), (row["PC1"], row["PC2"]), xytext=(5, 5),
                        textcoords="offset points", fontsize=8, alpha=0.7)

    ax.set_xlabel(f"PC1 ({ratio['PC1']:.1%} variance)")
    ax.set_ylabel(f"PC2 ({ratio['PC2']:.1%} variance)")
    ax.set_title(title)
    ax.grid(True, alpha=0.3)
    plt.tight_layout()

    print("PCA summary:")
    print(f"PC1 explains {ratio['PC1']:.1%} of variance")
    print(f"PC2 explains {ratio['PC2']:.1%} of variance")

    return _finish_figure(fig, save_path)


def plot_elbow(
    elbow_curve: pd.DataFrame,
    selected_k: Optional[int] = None,
    figsize: Tuple[int, int] = (8, 5),
    save_path: Optional[str] = None,
) -> Figure:
    """Within-cluster sum of squares against k, marking the chosen k."""
    fig, ax = plt.subplots(figsize=figsize)
    ax.plot(elbow_curve["k"], elbow_curve["within_ss"], 'b-o', linewidth=2, markersize=8)
    if selected_k is not None:
        ax.axvline(x=selected_k, color='red', linestyle='--', linewidth=2, label=f'Selected: k={selected_k}')
        ax.legend(fontsize=10)
    ax.set_xlabel('Number of Clusters (k)', fontsize=12)
    ax.set_ylabel('Within-cluster Sum of Squares', fontsize=12)
    ax.set_title('Elbow Method', fontsize=14, fontweight='bold')
    ax.set_xticks(list(elbow_curve["k"]))
    ax.grid(True, alpha=0.3)
    plt.tight_layout()

    return _finish_figure(fig, save_path)


def zscore_rows(matrix: pd.DataFrame) -> pd.DataFrame:
    """
    Standardize each protein across samples (mean 0, sample SD 1).

    Proteins with zero spread become rows of zeros.
    """
    means = matrix.mean(axis=1)
    stds = matrix.std(axis=1, ddof=1)
    stds = stds.where(stds > 0, 1.0).fillna(1.0)
    return matrix.sub(means, axis=0).div(stds, axis=0)


def plot_zscore_heatmap(
    matrix: pd.DataFrame,
    clusters: Optional[pd.Series] = None,
    figsize: Tuple[int, int] = (10, 12),
    title: str = "Z-scored Protein Intensities",
    save_path: Optional[str] = None,
) -> Figure:
    """
    Two-way hierarchically clustered heatmap of row z-scores.

    Rows (proteins) and columns (samples) are clustered independently and
    drawn on a blue-white-red scale centred at zero.

    Parameters:
    -----------
    matrix : pd.DataFrame
        Complete protein-by-sample matrix
    clusters : pd.Series, optional
        Cluster label per sample, drawn as a colour bar over the columns
    """
    z_data = zscore_rows(matrix)

    col_colors = None
    if clusters is not None:
        color_map = _cluster_color_map(clusters)
        col_colors = clusters.reindex(z_data.columns).astype(object).map(color_map).rename("Cluster")

    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        g = sns.clustermap(
            z_data,
            figsize=figsize,
            cmap="RdBu_r",
            center=0,
            row_cluster=z_data.shape[0] > 1,
            col_cluster=z_data.shape[1] > 1,
            col_colors=col_colors,
            yticklabels=z_data.shape[0] <= 60,
            cbar_kws={"label": "Z-score"},
        )
        g.ax_heatmap.set_xlabel("Samples")
        g.ax_heatmap.set_ylabel("Proteins")
        g.fig.suptitle(title, fontsize=16, y=1.02)

    print(f"Heatmap: {z_data.shape[0]} proteins x {z_data.shape[1]} samples")

    return _finish_figure(g.fig, save_path)


def plot_volcano(
    differential_df: pd.DataFrame,
    fc_threshold: float = 1.5,
    p_threshold: float = 0.01,
    pvalue_line: Optional[float] = None,
    figsize: Tuple[int, int] = (12, 8),
    title: Optional[str] = None,
    label_top_n: int = 10,
    save_path: Optional[str] = None,
) -> Optional[Figure]:
    """
    Volcano plot of log2 fold change against -log10 adjusted p-value.

    Parameters:
    -----------
    differential_df : pd.DataFrame
        Differential results with logFC, adj.P.Val and Significant columns
    fc_threshold : float
        Linear fold-change cutoff; guide lines are drawn at +/- log2 of it
    p_threshold : float
        Adjusted p-value cutoff used for colouring
    pvalue_line : float, optional
        Adjusted p-value at which to draw the horizontal guide line.
        Defaults to ``p_threshold`` so the line matches the significance flag.
    label_top_n : int
        Number of top significant proteins to label
    """

    if len(differential_df) == 0:
        print("No data to plot")
        return None

    df = differential_df.copy()
    log_fc_cutoff = np.log2(fc_threshold)
    if pvalue_line is None:
        pvalue_line = p_threshold

    with np.errstate(divide="ignore"):
        df["neg_log10_p"] = -np.log10(df["adj.P.Val"])
    finite_max = df["neg_log10_p"].replace(np.inf, np.nan).max()
    df["neg_log10_p"] = df["neg_log10_p"].replace(np.inf, (finite_max if pd.notna(finite_max) else 0) + 1)

    passes_p = df["adj.P.Val"] < p_threshold
    colors = np.where(
        passes_p & (df["logFC"] > log_fc_cutoff), "red",
        np.where(passes_p & (df["logFC"] < -log_fc_cutoff), "blue",
                 np.where(passes_p, "orange", "gray"))
    )
    df["color"] = colors

    fig, ax = plt.subplots(figsize=figsize)

    for color in ["gray", "orange", "blue", "red"]:
        subset = df[df["color"] == color]
        if len(subset) > 0:
            label = {
                "gray": "Not significant",
                "orange": "Significant",
                "blue": "Decreased",
                "red": "Increased",
            }[color]
            ax.scatter(subset["logFC"], subset["neg_log10_p"], c=color, alpha=0.6, s=30, label=label)

    ax.axhline(y=-np.log10(pvalue_line), color="black", linestyle="--", alpha=0.5)
    ax.axvline(x=log_fc_cutoff, color="black", linestyle="--", alpha=0.5)
    ax.axvline(x=-log_fc_cutoff, color="black", linestyle="--", alpha=0.5)

    if label_top_n > 0:
        significant = df[df["Significant"]].sort_values("adj.P.Val").head(label_top_n)
        for protein, row in significant.iterrows():
            ax.annotate(str(protein), (row["logFC"], row["neg_log10_p"]), xytext=(5, 5),
                        textcoords="offset points", fontsize=8, alpha=0.7)

    contrast = differential_df.attrs.get("contrast")
    if title is None:
        title = f"Volcano Plot (FC > {fc_threshold}, FDR < {p_threshold})"
        if contrast:
            title += f"\n{contrast}"

    ax.set_xlabel("Log2 Fold Change", fontsize=16, fontweight="bold")
    ax.set_ylabel("-Log10 Adjusted P-value", fontsize=16, fontweight="bold")
    ax.set_title(title, fontsize=14)
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)
    ax.grid(True, alpha=0.3)
    ax.legend(loc="upper right", frameon=True, fontsize=11)
    plt.tight_layout()

    n_up = int((df["color"] == "red").sum())
    n_down = int((df["color"] == "blue").sum())
    print("Volcano plot summary:")
    print(f"Total proteins: {len(df)}")
    print(f"Up-regulated (log2FC > {log_fc_cutoff:.3f}, FDR < {p_threshold}): {n_up}")
    print(f"Down-regulated (log2FC < -{log_fc_cutoff:.3f}, FDR < {p_threshold}): {n_down}")
    if pvalue_line != p_threshold:
        print(f"Note: guide line drawn at FDR {pvalue_line}, significance uses FDR < {p_threshold}")

    return _finish_figure(fig, save_path)
