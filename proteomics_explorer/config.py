"""
Configuration for the exploratory proteomics pipeline.

All thresholds that drive the analysis live on AnalysisConfig. A config can
also be read back from the Python config files written by
export.export_timestamped_config().
"""

import os
import runpy
import types
from dataclasses import dataclass, asdict, fields
from typing import Any, Dict, Optional


@dataclass
class AnalysisConfig:
    """Configuration for a single exploratory analysis run."""

    # Input
    input_path: Optional[str] = None
    sample_name_delimiter: str = "_"

    # Sample filtering
    coverage_fraction: float = 0.8

    # Imputation
    knn_neighbors: int = 10

    # Clustering
    cluster_count: int = 2
    max_elbow_clusters: int = 10
    random_seed: int = 42

    # Differential testing
    significance_alpha: float = 0.01
    fold_change_threshold: float = 1.5  # linear ratio, compared as log2
    reference_group: Optional[int] = None  # cluster used as group1 of the contrast

    # Visualization
    volcano_pvalue_line: Optional[float] = None  # None: same as significance_alpha
    label_top_n: int = 10

    # Output
    output_dir: Optional[str] = None
    output_prefix: str = "proteomics_exploration"

    @property
    def effective_volcano_pvalue_line(self) -> float:
        if self.volcano_pvalue_line is None:
            return self.significance_alpha
        return self.volcano_pvalue_line

    def validate(self):
        """Validate parameter ranges. Raises ValueError on the first problem."""
        if not 0 <= self.coverage_fraction <= 1:
            raise ValueError(f"coverage_fraction must be between 0 and 1, got {self.coverage_fraction}")
        if self.knn_neighbors < 1:
            raise ValueError(f"knn_neighbors must be >= 1, got {self.knn_neighbors}")
        if self.cluster_count < 1:
            raise ValueError(f"cluster_count must be >= 1, got {self.cluster_count}")
        if self.max_elbow_clusters < 1:
            raise ValueError(f"max_elbow_clusters must be >= 1, got {self.max_elbow_clusters}")
        if not 0 < self.significance_alpha < 1:
            raise ValueError(f"significance_alpha must be between 0 and 1, got {self.significance_alpha}")
        if self.fold_change_threshold < 1:
            raise ValueError(
                f"fold_change_threshold is a linear ratio and must be >= 1, got {self.fold_change_threshold}"
            )
        if self.volcano_pvalue_line is not None and not 0 < self.volcano_pvalue_line < 1:
            raise ValueError(f"volcano_pvalue_line must be between 0 and 1, got {self.volcano_pvalue_line}")
        if not self.sample_name_delimiter:
            raise ValueError("sample_name_delimiter must be a non-empty string")
        return True

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, values: Dict[str, Any]) -> "AnalysisConfig":
        """Build a config from a dictionary, ignoring keys that are not config fields."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(k for k in values if k not in known)
        if unknown:
            print(f"Ignoring unknown configuration keys: {unknown}")
        return cls(**{k: v for k, v in values.items() if k in known})


def load_config_file(config_file: str) -> AnalysisConfig:
    """
    Load an AnalysisConfig from a Python configuration file.

    The file is a plain sequence of ``name = value`` assignments, which is
    the format written by export.export_timestamped_config().

    Parameters:
    -----------
    config_file : str
        Path to the configuration file

    Returns:
    --------
    AnalysisConfig : Validated configuration
    """
    if not os.path.exists(config_file):
        raise FileNotFoundError(f"Configuration file not found: {config_file}")

    namespace = runpy.run_path(config_file)
    values = {
        k: v for k, v in namespace.items()
        if not k.startswith("_") and not callable(v) and not isinstance(v, types.ModuleType)
    }

    config = AnalysisConfig.from_dict(values)
    config.validate()
    print(f"✓ Loaded configuration from {config_file}")
    return config
