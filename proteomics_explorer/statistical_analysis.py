"""
Statistical Analysis Module for Exploratory Proteomics Data

Two-group differential expression with per-protein linear models and
empirical-Bayes moderated t-statistics (limma's approach): residual
variances of all proteins are pooled into a scaled inverse-chi-square prior,
each protein's variance is shrunk towards it, and the moderated t-statistic
is tested with the prior degrees of freedom added to the residual ones.
P-values are adjusted with Benjamini-Hochberg.
"""

import pandas as pd
import numpy as np
from dataclasses import dataclass
from scipy.special import digamma, polygamma
from scipy.stats import t as t_dist
from statsmodels.stats.multitest import multipletests
from typing import Optional, Tuple

from .validation import DesignMatrixError


RESULT_COLUMNS = ["logFC", "AveExpr", "t", "P.Value", "adj.P.Val", "Significant"]


@dataclass(frozen=True)
class LinearModelFit:
    """Per-protein least-squares fit against a shared design matrix."""
    coefficients: pd.DataFrame  # proteins x design columns
    sigma2: np.ndarray  # residual variance per protein
    df_residual: int
    unscaled_covariance: np.ndarray  # (X'X)^-1
    design: pd.DataFrame
    ave_expr: pd.Series


def build_design_matrix(
    sample_metadata: pd.DataFrame,
    group_column: str = "Cluster",
    reference_group=None
) -> pd.DataFrame:
    """
    Build a no-intercept two-group design matrix.

    One 0/1 indicator column per group, named ``<group_column><level>``, with
    rows in metadata order. The first column is group1 of the contrast: the
    ``reference_group`` when given, otherwise the first category.

    Parameters:
    -----------
    sample_metadata : pd.DataFrame
        Table with 'Sample' and ``group_column`` columns
    group_column : str
        Column holding the group labels
    reference_group : optional
        Group to use as group1

    Returns:
    --------
    pd.DataFrame : Design matrix indexed by sample
    """
    if group_column not in sample_metadata.columns:
        raise DesignMatrixError(f"Metadata has no '{group_column}' column")

    groups = sample_metadata[group_column]
    if isinstance(groups.dtype, pd.CategoricalDtype):
        levels = list(groups.cat.categories)
    else:
        levels = sorted(groups.dropna().unique().tolist())

    if groups.isna().any():
        raise DesignMatrixError(f"{int(groups.isna().sum())} samples have no '{group_column}' label")

    if len(levels) != 2:
        raise DesignMatrixError(
            f"Two-group comparison needs exactly 2 groups, found {len(levels)}: {levels}"
        )

    if reference_group is not None:
        matches = [lvl for lvl in levels if str(lvl) == str(reference_group)]
        if not matches:
            raise DesignMatrixError(
                f"Reference group {reference_group!r} is not one of {levels}"
            )
        levels = matches + [lvl for lvl in levels if lvl not in matches]

    counts = {lvl: int((groups == lvl).sum()) for lvl in levels}
    empty = [lvl for lvl, n in counts.items() if n == 0]
    if empty:
        raise DesignMatrixError(f"Groups with no samples: {empty} (counts: {counts})")

    design = pd.DataFrame(
        {f"{group_column}{lvl}": (groups == lvl).astype(float).values for lvl in levels},
        index=sample_metadata["Sample"].astype(str).values,
    )

    rank = np.linalg.matrix_rank(design.to_numpy())
    if rank < design.shape[1]:
        raise DesignMatrixError(f"Design matrix is rank deficient (rank {rank} < {design.shape[1]})")
    if design.shape[0] - rank < 1:
        raise DesignMatrixError(
            f"No residual degrees of freedom: {design.shape[0]} samples for {rank} coefficients"
        )

    return design


def fit_linear_models(expression: pd.DataFrame, design: pd.DataFrame) -> LinearModelFit:
    """
    Fit one ordinary least-squares model per protein, vectorised across proteins.

    Parameters:
    -----------
    expression : pd.DataFrame
        Protein-by-sample matrix with columns in design row order
    design : pd.DataFrame
        Sample-by-coefficient design matrix

    Returns:
    --------
    LinearModelFit
    """
    if [str(c) for c in expression.columns] != [str(s) for s in design.index]:
        raise DesignMatrixError("Expression columns and design rows are not the same samples in the same order")

    X = design.to_numpy(dtype=float)
    Y = expression.to_numpy(dtype=float).T  # samples x proteins

    xtx_inv = np.linalg.inv(X.T @ X)
    betas = xtx_inv @ (X.T @ Y)  # coefficients x proteins

    resid = Y - X @ betas
    df_residual = X.shape[0] - np.linalg.matrix_rank(X)
    sigma2 = np.sum(resid ** 2, axis=0) / df_residual

    return LinearModelFit(
        coefficients=pd.DataFrame(betas.T, index=expression.index.copy(), columns=design.columns),
        sigma2=sigma2,
        df_residual=int(df_residual),
        unscaled_covariance=xtx_inv,
        design=design,
        ave_expr=expression.mean(axis=1),
    )


def trigamma_inverse(y: float, tol: float = 1e-8, max_iter: int = 50) -> float:
    """Solve trigamma(x) = y for x by Newton iteration."""
    if y > 1e7:
        return 1.0 / np.sqrt(y)
    if y < 1e-6:
        return 1.0 / y

    x = 0.5 + 1.0 / y
    for _ in range(max_iter):
        tri = polygamma(1, x)
        dif = tri * (1 - tri / y) / polygamma(2, x)
        x = x + dif
        if -dif / x < tol:
            break
    return float(x)


def fit_f_dist(sigma2: np.ndarray, df: float) -> Tuple[float, float]:
    """
    Estimate the variance prior from the residual variances of all proteins.

    Moment matching on log variances, as limma's fitFDist: the residual
    variances are taken to follow s0^2 * F(df, d0).

    Parameters:
    -----------
    sigma2 : np.ndarray
        Residual variance per protein
    df : float
        Residual degrees of freedom shared by all proteins

    Returns:
    --------
    (s0_squared, d0) : prior variance and prior degrees of freedom.
        d0 is 0 when fewer than two usable variances exist and inf when the
        observed spread is fully explained by sampling error.
    """
    x = np.asarray(sigma2, dtype=float)
    x = x[np.isfinite(x)]
    if x.size < 2:
        return float("nan"), 0.0

    x = np.maximum(x, 0)
    m = np.median(x)
    if m == 0:
        m = 1.0
    x = np.maximum(x, 1e-5 * m)

    z = np.log(x)
    e = z - digamma(df / 2.0) + np.log(df / 2.0)
    emean = float(np.mean(e))
    evar = float(np.var(e, ddof=1)) - float(polygamma(1, df / 2.0))

    if evar > 0:
        d0 = 2 * trigamma_inverse(evar)
        s0_squared = float(np.exp(emean + digamma(d0 / 2.0) - np.log(d0 / 2.0)))
    else:
        d0 = float("inf")
        s0_squared = float(np.exp(emean))

    return s0_squared, float(d0)


def squeeze_variances(sigma2: np.ndarray, df: float, s0_squared: float, d0: float) -> np.ndarray:
    """Posterior variances shrunk towards the prior s0^2 with weight d0."""
    sigma2 = np.asarray(sigma2, dtype=float)
    if d0 == 0 or not np.isfinite(s0_squared):
        return sigma2.copy()
    if np.isinf(d0):
        return np.full_like(sigma2, s0_squared)
    return (d0 * s0_squared + df * sigma2) / (d0 + df)


def moderated_contrast(fit: LinearModelFit, contrast: np.ndarray) -> pd.DataFrame:
    """
    Moderated t-test of a contrast of the fitted coefficients.

    Parameters:
    -----------
    fit : LinearModelFit
        Output of fit_linear_models()
    contrast : np.ndarray
        Weights over the design columns, e.g. [-1, 1] for group2 - group1

    Returns:
    --------
    pd.DataFrame with columns logFC, AveExpr, t, P.Value indexed by protein
    """
    contrast = np.asarray(contrast, dtype=float)
    log_fc = fit.coefficients.to_numpy() @ contrast
    unscaled_var = float(contrast @ fit.unscaled_covariance @ contrast)

    s0_squared, d0 = fit_f_dist(fit.sigma2, fit.df_residual)
    s2_post = squeeze_variances(fit.sigma2, fit.df_residual, s0_squared, d0)

    n_proteins = len(fit.sigma2)
    df_pooled = fit.df_residual * n_proteins
    df_total = min(fit.df_residual + d0, df_pooled)

    with np.errstate(divide="ignore", invalid="ignore"):
        t_stat = log_fc / np.sqrt(s2_post * unscaled_var)
    p_value = 2 * t_dist.sf(np.abs(t_stat), df=df_total)

    results = pd.DataFrame({
        "logFC": log_fc,
        "AveExpr": fit.ave_expr.values,
        "t": t_stat,
        "P.Value": p_value,
    }, index=fit.coefficients.index.copy())
    results.attrs["prior_df"] = d0
    results.attrs["prior_variance"] = s0_squared
    results.attrs["df_total"] = df_total
    return results


def apply_multiple_testing_correction(results_df: pd.DataFrame, method: str = "fdr_bh") -> pd.DataFrame:
    """
    Add an 'adj.P.Val' column of Benjamini-Hochberg adjusted p-values.

    Missing p-values are treated as 1.0.
    """
    results_df = results_df.copy()
    all_pvalues = results_df["P.Value"].fillna(1.0).to_numpy()
    if len(all_pvalues) == 0:
        results_df["adj.P.Val"] = np.array([], dtype=float)
        return results_df
    _, adj_pvalues, _, _ = multipletests(all_pvalues, method=method)
    results_df["adj.P.Val"] = adj_pvalues
    return results_df


def flag_significant(
    results_df: pd.DataFrame,
    alpha: float = 0.01,
    fold_change_threshold: float = 1.5
) -> pd.DataFrame:
    """
    Add a boolean 'Significant' column.

    A protein is significant when adj.P.Val < alpha and
    |logFC| > log2(fold_change_threshold).
    """
    results_df = results_df.copy()
    log_fc_cutoff = np.log2(fold_change_threshold)
    results_df["Significant"] = (
        (results_df["adj.P.Val"] < alpha) & (results_df["logFC"].abs() > log_fc_cutoff)
    ).astype(bool)
    return results_df


def top_table(results_df: pd.DataFrame) -> pd.DataFrame:
    """Results ranked by raw p-value (most significant first)."""
    ranked = results_df.sort_values(["P.Value", "adj.P.Val"], kind="mergesort")
    ranked.attrs = dict(results_df.attrs)
    return ranked


def run_differential_analysis(
    imputed_matrix: pd.DataFrame,
    sample_metadata: pd.DataFrame,
    alpha: float = 0.01,
    fold_change_threshold: float = 1.5,
    group_column: str = "Cluster",
    reference_group=None
) -> pd.DataFrame:
    """
    Two-group moderated differential test, group2 - group1.

    Parameters:
    -----------
    imputed_matrix : pd.DataFrame
        Complete protein-by-sample log2 matrix
    sample_metadata : pd.DataFrame
        Table with 'Sample' and ``group_column`` columns
    alpha : float
        Adjusted p-value cutoff (default: 0.01)
    fold_change_threshold : float
        Linear fold-change cutoff (default: 1.5)
    group_column : str
        Metadata column defining the two groups
    reference_group : optional
        Group used as group1 (the subtracted group)

    Returns:
    --------
    pd.DataFrame : logFC, AveExpr, t, P.Value, adj.P.Val, Significant, in
        the protein order of ``imputed_matrix``. The contrast label is stored
        in ``attrs['contrast']``.
    """

    print("=== DIFFERENTIAL EXPRESSION ANALYSIS ===\n")

    if imputed_matrix.isna().any().any():
        raise ValueError("Differential analysis requires a complete matrix")

    design = build_design_matrix(sample_metadata, group_column=group_column,
                                 reference_group=reference_group)
    missing = [s for s in design.index if s not in imputed_matrix.columns]
    if missing:
        raise DesignMatrixError(f"Metadata samples missing from the expression matrix: {missing}")
    expression = imputed_matrix.loc[:, list(design.index)]

    group1, group2 = design.columns
    contrast_label = f"{group2} - {group1}"
    print(f"Contrast: {contrast_label}")
    print(f"  {group1}: {int(design[group1].sum())} samples")
    print(f"  {group2}: {int(design[group2].sum())} samples")

    fit = fit_linear_models(expression, design)
    results = moderated_contrast(fit, np.array([-1.0, 1.0]))
    results = apply_multiple_testing_correction(results)
    results = flag_significant(results, alpha=alpha, fold_change_threshold=fold_change_threshold)
    results = results[RESULT_COLUMNS]
    results.attrs["contrast"] = contrast_label

    d0 = fit_f_dist(fit.sigma2, fit.df_residual)[1]
    n_sig = int(results["Significant"].sum())
    n_up = int((results["Significant"] & (results["logFC"] > 0)).sum())
    print(f"Residual df: {fit.df_residual}, prior df: {d0:.2f}")
    print(f"Proteins tested: {len(results)}")
    print(f"Significant (adj.P.Val < {alpha}, |logFC| > log2({fold_change_threshold})): {n_sig}")
    print(f"  Up in {group2}: {n_up}, down in {group2}: {n_sig - n_up}")
    print("Note: cluster numbering is arbitrary, so the sign of logFC follows the contrast above")

    return results


def display_analysis_summary(differential_results: pd.DataFrame, label_top_n: int = 10) -> Optional[pd.DataFrame]:
    """Print the top proteins of a differential results table and return them."""
    if len(differential_results) == 0:
        print("No differential results to summarize")
        return None

    ranked = top_table(differential_results).head(label_top_n)
    contrast = differential_results.attrs.get("contrast", "group2 - group1")

    print(f"\nTop {len(ranked)} proteins ({contrast}):")
    for protein, row in ranked.iterrows():
        flag = "*" if row["Significant"] else " "
        print(f"{flag} {protein}: logFC={row['logFC']:.3f}, P={row['P.Value']:.2e}, adj.P={row['adj.P.Val']:.2e}")

    return ranked
